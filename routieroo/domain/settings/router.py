"""Settings router - preferences, starting points, stop types, folders and lookup lists"""

import logging

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ...auth import get_current_user
from ...database import get_db
from ...models import Folder, StopType, User
from ...services.reminder_service import get_upcoming_date_reminders, process_user_reminders
from .schemas import (
    CommentOptionCreate,
    CommentOptionResponse,
    FolderCreate,
    FolderResponse,
    FolderUpdate,
    ImportantDateTypeCreate,
    ImportantDateTypeResponse,
    PreferencesResponse,
    PreferencesUpdate,
    StartingPointCreate,
    StartingPointResponse,
    StartingPointUpdate,
    StopTypeCreate,
    StopTypeResponse,
    StopTypeUpdate,
)
from .service import SettingsService, preferences_of

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/settings", tags=["Settings"])
stop_types_router = APIRouter(prefix="/stop-types", tags=["Stop Types"])
folders_router = APIRouter(prefix="/folders", tags=["Folders"])


def get_settings_service(db: Session = Depends(get_db)) -> SettingsService:
    """Dependency injection for SettingsService"""
    return SettingsService(db)


def to_stop_type_response(stop_type: StopType) -> StopTypeResponse:
    return StopTypeResponse(
        id=stop_type.id, name=stop_type.name, color=stop_type.color, isDefault=stop_type.is_default
    )


def to_folder_response(folder: Folder) -> FolderResponse:
    return FolderResponse(id=folder.id, name=folder.name, color=folder.color, createdAt=folder.created_at)


# ============================================================================
# PREFERENCES
# ============================================================================


@router.get("/preferences", response_model=PreferencesResponse)
async def get_preferences(current_user: User = Depends(get_current_user)):
    return preferences_of(current_user)


@router.patch("/preferences", response_model=PreferencesResponse)
async def update_preferences(
    data: PreferencesUpdate,
    current_user: User = Depends(get_current_user),
    service: SettingsService = Depends(get_settings_service),
):
    """Update calling service, units, stop defaults, archive and reminder settings"""
    return preferences_of(service.update_preferences(data, current_user))


# ============================================================================
# STARTING POINTS
# ============================================================================


@router.get("/starting-points", response_model=list[StartingPointResponse])
async def list_starting_points(
    current_user: User = Depends(get_current_user),
    service: SettingsService = Depends(get_settings_service),
):
    return [
        StartingPointResponse(id=p.id, name=p.name, address=p.address, createdAt=p.created_at)
        for p in service.list_starting_points(current_user)
    ]


@router.post("/starting-points", response_model=StartingPointResponse)
async def create_starting_point(
    data: StartingPointCreate,
    current_user: User = Depends(get_current_user),
    service: SettingsService = Depends(get_settings_service),
):
    point = service.create_starting_point(data, current_user)
    return StartingPointResponse(id=point.id, name=point.name, address=point.address, createdAt=point.created_at)


@router.patch("/starting-points/{point_id}", response_model=StartingPointResponse)
async def update_starting_point(
    point_id: int,
    data: StartingPointUpdate,
    current_user: User = Depends(get_current_user),
    service: SettingsService = Depends(get_settings_service),
):
    point = service.update_starting_point(point_id, data, current_user)
    return StartingPointResponse(id=point.id, name=point.name, address=point.address, createdAt=point.created_at)


@router.delete("/starting-points/{point_id}")
async def delete_starting_point(
    point_id: int,
    current_user: User = Depends(get_current_user),
    service: SettingsService = Depends(get_settings_service),
):
    service.delete_starting_point(point_id, current_user)
    return {"success": True}


# ============================================================================
# COMMENT OPTIONS
# ============================================================================


@router.get("/comment-options", response_model=list[CommentOptionResponse])
async def list_comment_options(
    current_user: User = Depends(get_current_user),
    service: SettingsService = Depends(get_settings_service),
):
    return [CommentOptionResponse(id=o.id, option=o.option) for o in service.list_comment_options(current_user)]


@router.post("/comment-options", response_model=CommentOptionResponse)
async def create_comment_option(
    data: CommentOptionCreate,
    current_user: User = Depends(get_current_user),
    service: SettingsService = Depends(get_settings_service),
):
    option = service.create_comment_option(data.option, current_user)
    return CommentOptionResponse(id=option.id, option=option.option)


@router.delete("/comment-options/{option_id}")
async def delete_comment_option(
    option_id: int,
    current_user: User = Depends(get_current_user),
    service: SettingsService = Depends(get_settings_service),
):
    service.delete_comment_option(option_id, current_user)
    return {"success": True}


# ============================================================================
# IMPORTANT DATE TYPES
# ============================================================================


@router.get("/important-date-types", response_model=list[ImportantDateTypeResponse])
async def list_important_date_types(
    current_user: User = Depends(get_current_user),
    service: SettingsService = Depends(get_settings_service),
):
    return [
        ImportantDateTypeResponse(id=t.id, name=t.name)
        for t in service.list_important_date_types(current_user)
    ]


@router.post("/important-date-types", response_model=ImportantDateTypeResponse)
async def create_important_date_type(
    data: ImportantDateTypeCreate,
    current_user: User = Depends(get_current_user),
    service: SettingsService = Depends(get_settings_service),
):
    date_type = service.create_important_date_type(data.name, current_user)
    return ImportantDateTypeResponse(id=date_type.id, name=date_type.name)


@router.delete("/important-date-types/{type_id}")
async def delete_important_date_type(
    type_id: int,
    current_user: User = Depends(get_current_user),
    service: SettingsService = Depends(get_settings_service),
):
    service.delete_important_date_type(type_id, current_user)
    return {"success": True}


# ============================================================================
# STOP TYPES
# ============================================================================


@stop_types_router.get("", response_model=list[StopTypeResponse])
async def list_stop_types(
    current_user: User = Depends(get_current_user),
    service: SettingsService = Depends(get_settings_service),
):
    return [to_stop_type_response(s) for s in service.list_stop_types(current_user)]


@stop_types_router.post("", response_model=StopTypeResponse)
async def create_stop_type(
    data: StopTypeCreate,
    current_user: User = Depends(get_current_user),
    service: SettingsService = Depends(get_settings_service),
):
    return to_stop_type_response(service.create_stop_type(data, current_user))


@stop_types_router.patch("/{stop_type_id}", response_model=StopTypeResponse)
async def update_stop_type(
    stop_type_id: int,
    data: StopTypeUpdate,
    current_user: User = Depends(get_current_user),
    service: SettingsService = Depends(get_settings_service),
):
    return to_stop_type_response(service.update_stop_type(stop_type_id, data, current_user))


@stop_types_router.delete("/{stop_type_id}")
async def delete_stop_type(
    stop_type_id: int,
    current_user: User = Depends(get_current_user),
    service: SettingsService = Depends(get_settings_service),
):
    service.delete_stop_type(stop_type_id, current_user)
    return {"success": True}


# ============================================================================
# FOLDERS
# ============================================================================


@folders_router.get("", response_model=list[FolderResponse])
async def list_folders(
    current_user: User = Depends(get_current_user),
    service: SettingsService = Depends(get_settings_service),
):
    return [to_folder_response(f) for f in service.list_folders(current_user)]


@folders_router.post("", response_model=FolderResponse)
async def create_folder(
    data: FolderCreate,
    current_user: User = Depends(get_current_user),
    service: SettingsService = Depends(get_settings_service),
):
    return to_folder_response(service.create_folder(data, current_user))


@folders_router.patch("/{folder_id}", response_model=FolderResponse)
async def update_folder(
    folder_id: int,
    data: FolderUpdate,
    current_user: User = Depends(get_current_user),
    service: SettingsService = Depends(get_settings_service),
):
    return to_folder_response(service.update_folder(folder_id, data, current_user))


@folders_router.delete("/{folder_id}")
async def delete_folder(
    folder_id: int,
    current_user: User = Depends(get_current_user),
    service: SettingsService = Depends(get_settings_service),
):
    """Delete a folder; its routes are kept"""
    service.delete_folder(folder_id, current_user)
    return {"success": True}


# ============================================================================
# DATE REMINDERS
# ============================================================================


@router.get("/reminders/upcoming")
async def get_upcoming_reminders(
    current_user: User = Depends(get_current_user), db: Session = Depends(get_db)
):
    """Important dates that are due a reminder today (past-due dates included)"""
    return [
        {
            "contactId": r.contact_id,
            "contactName": r.contact_name,
            "dateType": r.date_type,
            "date": r.date,
            "daysUntil": r.days_until,
            "isPastDue": r.is_past_due,
        }
        for r in get_upcoming_date_reminders(db, current_user)
    ]


@router.post("/reminders/send")
async def send_reminders_now(
    current_user: User = Depends(get_current_user), db: Session = Depends(get_db)
):
    """Send today's reminder emails without waiting for the daily job"""
    return await process_user_reminders(db, current_user)
