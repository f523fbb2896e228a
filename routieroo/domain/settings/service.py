"""Settings service - Business logic for user preferences and lookup lists"""

import logging

from fastapi import HTTPException
from sqlalchemy.orm import Session

from ...config import DEFAULT_REMINDER_INTERVALS
from ...models import CommentOption, Folder, ImportantDateType, SavedStartingPoint, StopType, User
from .repository import SettingsRepository
from .schemas import (
    FolderCreate,
    FolderUpdate,
    PreferencesUpdate,
    StartingPointCreate,
    StartingPointUpdate,
    StopTypeCreate,
    StopTypeUpdate,
)

logger = logging.getLogger(__name__)

# request field -> User column
PREFERENCE_FIELDS = {
    "preferredCallingService": "preferred_calling_service",
    "distanceUnit": "distance_unit",
    "defaultStartingPoint": "default_starting_point",
    "defaultStopDuration": "default_stop_duration",
    "eventDurationMode": "event_duration_mode",
    "autoArchiveDays": "auto_archive_days",
    "defaultStopType": "default_stop_type",
    "defaultStopTypeColor": "default_stop_type_color",
    "enableDateReminders": "enable_date_reminders",
    "reminderIntervals": "reminder_intervals",
    "schedulingEmail": "scheduling_email",
}

# Columns that must never be set to NULL
REQUIRED_PREFERENCES = {
    "preferred_calling_service",
    "distance_unit",
    "default_stop_duration",
    "event_duration_mode",
    "enable_date_reminders",
}


def preferences_of(user: User) -> dict:
    prefs = {field: getattr(user, column) for field, column in PREFERENCE_FIELDS.items()}
    if prefs["reminderIntervals"] is None:
        prefs["reminderIntervals"] = list(DEFAULT_REMINDER_INTERVALS)
    return prefs


class SettingsService:
    """Service layer for settings business logic"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = SettingsRepository()

    def _get_owned(self, model, obj_id: int, user: User, label: str):
        obj = self.repo.get_for_user(self.db, model, obj_id, user.id)
        if not obj:
            raise HTTPException(status_code=404, detail=f"{label} not found")
        return obj

    # ========================================================================
    # PREFERENCES
    # ========================================================================

    def update_preferences(self, data: PreferencesUpdate, user: User) -> User:
        """Apply explicitly sent fields; null clears optional ones"""
        changes = data.model_dump(exclude_unset=True)
        for field, value in changes.items():
            column = PREFERENCE_FIELDS[field]
            if value is None and column in REQUIRED_PREFERENCES:
                raise HTTPException(status_code=400, detail=f"{field} cannot be empty")
            setattr(user, column, value)

        logger.info(f"⚙️ Preferences updated for user {user.id}: {', '.join(changes) or 'nothing'}")
        return self.repo.update(self.db, user)

    # ========================================================================
    # STARTING POINTS
    # ========================================================================

    def list_starting_points(self, user: User) -> list[SavedStartingPoint]:
        return self.repo.get_starting_points(self.db, user.id)

    def create_starting_point(self, data: StartingPointCreate, user: User) -> SavedStartingPoint:
        point = SavedStartingPoint(user_id=user.id, name=data.name, address=data.address)
        return self.repo.create(self.db, point)

    def update_starting_point(self, point_id: int, data: StartingPointUpdate, user: User) -> SavedStartingPoint:
        point = self._get_owned(SavedStartingPoint, point_id, user, "Starting point")
        if data.name is not None:
            point.name = data.name
        if data.address is not None:
            point.address = data.address
        return self.repo.update(self.db, point)

    def delete_starting_point(self, point_id: int, user: User) -> None:
        self.repo.delete(self.db, self._get_owned(SavedStartingPoint, point_id, user, "Starting point"))

    # ========================================================================
    # STOP TYPES
    # ========================================================================

    def list_stop_types(self, user: User) -> list[StopType]:
        return self.repo.get_stop_types(self.db, user.id)

    def _make_default(self, stop_type: StopType, user: User) -> None:
        self.repo.clear_default_stop_type(self.db, user.id, keep_id=stop_type.id)
        stop_type.is_default = True
        user.default_stop_type = stop_type.name
        user.default_stop_type_color = stop_type.color

    def create_stop_type(self, data: StopTypeCreate, user: User) -> StopType:
        stop_type = StopType(user_id=user.id, name=data.name, color=data.color, is_default=False)
        self.db.add(stop_type)
        if data.isDefault:
            self._make_default(stop_type, user)
        return self.repo.update(self.db, stop_type)

    def update_stop_type(self, stop_type_id: int, data: StopTypeUpdate, user: User) -> StopType:
        stop_type = self._get_owned(StopType, stop_type_id, user, "Stop type")
        if data.name is not None:
            stop_type.name = data.name
        if data.color is not None:
            stop_type.color = data.color

        if data.isDefault:
            self._make_default(stop_type, user)
        elif data.isDefault is False and stop_type.is_default:
            stop_type.is_default = False
            user.default_stop_type = None
            user.default_stop_type_color = None
        elif stop_type.is_default:
            user.default_stop_type = stop_type.name
            user.default_stop_type_color = stop_type.color

        return self.repo.update(self.db, stop_type)

    def delete_stop_type(self, stop_type_id: int, user: User) -> None:
        stop_type = self._get_owned(StopType, stop_type_id, user, "Stop type")
        if stop_type.is_default:
            user.default_stop_type = None
            user.default_stop_type_color = None
        self.repo.delete(self.db, stop_type)

    # ========================================================================
    # COMMENT OPTIONS / IMPORTANT DATE TYPES
    # ========================================================================

    def list_comment_options(self, user: User) -> list[CommentOption]:
        return self.repo.get_comment_options(self.db, user.id)

    def create_comment_option(self, option: str, user: User) -> CommentOption:
        option = option.strip()
        if self.repo.comment_option_exists(self.db, user.id, option):
            raise HTTPException(status_code=409, detail="Comment option already exists")
        return self.repo.create(self.db, CommentOption(user_id=user.id, option=option))

    def delete_comment_option(self, option_id: int, user: User) -> None:
        self.repo.delete(self.db, self._get_owned(CommentOption, option_id, user, "Comment option"))

    def list_important_date_types(self, user: User) -> list[ImportantDateType]:
        return self.repo.get_important_date_types(self.db, user.id)

    def create_important_date_type(self, name: str, user: User) -> ImportantDateType:
        name = name.strip()
        if self.repo.important_date_type_exists(self.db, user.id, name):
            raise HTTPException(status_code=409, detail="Important date type already exists")
        return self.repo.create(self.db, ImportantDateType(user_id=user.id, name=name))

    def delete_important_date_type(self, type_id: int, user: User) -> None:
        self.repo.delete(self.db, self._get_owned(ImportantDateType, type_id, user, "Important date type"))

    # ========================================================================
    # FOLDERS
    # ========================================================================

    def list_folders(self, user: User) -> list[Folder]:
        return self.repo.get_folders(self.db, user.id)

    def create_folder(self, data: FolderCreate, user: User) -> Folder:
        return self.repo.create(self.db, Folder(user_id=user.id, name=data.name, color=data.color))

    def update_folder(self, folder_id: int, data: FolderUpdate, user: User) -> Folder:
        folder = self._get_owned(Folder, folder_id, user, "Folder")
        if data.name is not None:
            folder.name = data.name
        if data.color is not None:
            folder.color = data.color
        return self.repo.update(self.db, folder)

    def delete_folder(self, folder_id: int, user: User) -> None:
        """Routes in the folder are kept and become unfiled"""
        folder = self._get_owned(Folder, folder_id, user, "Folder")
        self.repo.detach_folder(self.db, folder.id)
        self.repo.delete(self.db, folder)
