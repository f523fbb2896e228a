"""Contact router - FastAPI endpoints for contacts"""

import logging
from datetime import date

from fastapi import APIRouter, Depends, File, HTTPException, UploadFile
from sqlalchemy.orm import Session

from ...auth import get_current_user
from ...database import get_db
from ...models import Contact, User
from ...shared.addresses import get_primary_address, load_json_list, parse_addresses
from ..routes.router import phone_links
from ..scheduling.recurrence import (
    describe_contact_schedule,
    has_schedule,
    parse_days,
    parse_one_time_visits,
    scheduled_days_badge,
)
from ..scheduling.schemas import OneTimeVisitRequest, ScheduledDaysUpdate, ScheduleUpdate
from ..scheduling.service import SchedulingService
from .schemas import (
    ChangedAddressResponse,
    ContactResponse,
    ContactUpdate,
    GoogleCallbackRequest,
    ImportContactsRequest,
    ImportResult,
    ToggleActiveRequest,
)
from .service import ContactService, parse_contacts_csv

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/contacts", tags=["Contacts"])


def get_contact_service(db: Session = Depends(get_db)) -> ContactService:
    """Dependency injection for ContactService"""
    return ContactService(db)


def get_scheduling_service(db: Session = Depends(get_db)) -> SchedulingService:
    return SchedulingService(db)


def to_contact_response(contact: Contact, calling_service: str = "phone") -> ContactResponse:
    days = parse_days(contact.scheduled_days)
    return ContactResponse(
        id=contact.id,
        googleResourceName=contact.google_resource_name,
        name=contact.name,
        email=contact.email,
        address=contact.address,
        addresses=parse_addresses(contact.addresses),
        primaryAddress=get_primary_address(contact.addresses),
        phoneNumbers=phone_links(contact.phone_numbers, calling_service),
        photoUrl=contact.photo_url,
        labels=[label for label in load_json_list(contact.labels) if isinstance(label, str)],
        isActive=contact.is_active,
        scheduledDays=days,
        scheduledDaysBadge=scheduled_days_badge(days),
        repeatInterval=contact.repeat_interval or 1,
        scheduleStartDate=contact.schedule_start_date,
        scheduleEndType=contact.schedule_end_type or "never",
        scheduleEndDate=contact.schedule_end_date,
        scheduleEndOccurrences=contact.schedule_end_occurrences,
        scheduleSummary=describe_contact_schedule(contact),
        oneTimeVisits=parse_one_time_visits(contact.one_time_visits),
        hasSchedule=has_schedule(contact),
        importantDates=[d for d in load_json_list(contact.important_dates) if isinstance(d, dict)],
        comments=[c for c in load_json_list(contact.comments) if isinstance(c, dict)],
        addressModified=bool(contact.address_modified),
        originalAddress=contact.original_address,
    )


# ============================================================================
# CONTACTS
# ============================================================================


@router.get("", response_model=list[ContactResponse])
async def get_contacts(
    current_user: User = Depends(get_current_user),
    service: ContactService = Depends(get_contact_service),
):
    """Get all contacts for the current user"""
    calling_service = current_user.preferred_calling_service or "phone"
    return [to_contact_response(c, calling_service) for c in service.get_contacts(current_user)]


@router.get("/labels", response_model=list[str])
async def get_labels(
    current_user: User = Depends(get_current_user),
    service: ContactService = Depends(get_contact_service),
):
    """Unique contact labels, emoji-prefixed first"""
    return service.get_labels(current_user)


@router.get("/changed-addresses", response_model=list[ChangedAddressResponse])
async def get_changed_addresses(
    current_user: User = Depends(get_current_user),
    service: ContactService = Depends(get_contact_service),
):
    """Synced contacts whose address was edited locally"""
    return [
        ChangedAddressResponse(
            id=c.id,
            name=c.name,
            originalAddress=c.original_address,
            currentAddress=c.address,
            modifiedAt=c.address_modified_at,
        )
        for c in service.get_changed_addresses(current_user)
    ]


@router.post("/changed-addresses/mark-all-synced")
async def mark_all_addresses_synced(
    current_user: User = Depends(get_current_user),
    service: ContactService = Depends(get_contact_service),
):
    count = service.mark_all_addresses_synced(current_user)
    return {"success": True, "count": count}


@router.get("/{contact_id}", response_model=ContactResponse)
async def get_contact(
    contact_id: int,
    current_user: User = Depends(get_current_user),
    service: ContactService = Depends(get_contact_service),
):
    contact = service.get_contact(contact_id, current_user)
    return to_contact_response(contact, current_user.preferred_calling_service or "phone")


@router.patch("/{contact_id}", response_model=ContactResponse)
async def update_contact(
    contact_id: int,
    data: ContactUpdate,
    current_user: User = Depends(get_current_user),
    service: ContactService = Depends(get_contact_service),
):
    """Update a contact"""
    contact = service.update_contact(contact_id, data, current_user)
    return to_contact_response(contact, current_user.preferred_calling_service or "phone")


@router.patch("/{contact_id}/active", response_model=ContactResponse)
async def toggle_contact_active(
    contact_id: int,
    data: ToggleActiveRequest,
    current_user: User = Depends(get_current_user),
    service: ContactService = Depends(get_contact_service),
):
    """Activate or deactivate a contact; inactive contacts are never scheduled"""
    contact = service.toggle_active(contact_id, data.isActive, current_user)
    return to_contact_response(contact)


@router.post("/{contact_id}/mark-synced", response_model=ContactResponse)
async def mark_address_synced(
    contact_id: int,
    current_user: User = Depends(get_current_user),
    service: ContactService = Depends(get_contact_service),
):
    return to_contact_response(service.mark_address_synced(contact_id, current_user))


# ============================================================================
# SCHEDULES
# ============================================================================


@router.put("/{contact_id}/scheduled-days", response_model=ContactResponse)
async def update_scheduled_days(
    contact_id: int,
    data: ScheduledDaysUpdate,
    current_user: User = Depends(get_current_user),
    service: SchedulingService = Depends(get_scheduling_service),
):
    return to_contact_response(service.update_scheduled_days(contact_id, data.scheduledDays, current_user))


@router.put("/{contact_id}/schedule", response_model=ContactResponse)
async def update_schedule(
    contact_id: int,
    data: ScheduleUpdate,
    current_user: User = Depends(get_current_user),
    service: SchedulingService = Depends(get_scheduling_service),
):
    """Set the recurring schedule (days, interval, start and end condition)"""
    return to_contact_response(service.update_contact_schedule(contact_id, data, current_user))


@router.post("/{contact_id}/one-time-visits", response_model=ContactResponse)
async def add_one_time_visit(
    contact_id: int,
    data: OneTimeVisitRequest,
    current_user: User = Depends(get_current_user),
    service: SchedulingService = Depends(get_scheduling_service),
):
    return to_contact_response(service.add_one_time_visit(contact_id, data.date, current_user))


@router.delete("/{contact_id}/one-time-visits/{visit_date}", response_model=ContactResponse)
async def remove_one_time_visit(
    contact_id: int,
    visit_date: date,
    current_user: User = Depends(get_current_user),
    service: SchedulingService = Depends(get_scheduling_service),
):
    return to_contact_response(service.remove_one_time_visit(contact_id, visit_date, current_user))


# ============================================================================
# IMPORT
# ============================================================================


@router.post("/import", response_model=ImportResult)
async def import_contacts(
    data: ImportContactsRequest,
    current_user: User = Depends(get_current_user),
    service: ContactService = Depends(get_contact_service),
):
    """Import contacts from parsed CSV rows; each address is geocoded"""
    return await service.import_contacts(data.contacts, current_user)


@router.post("/import/csv", response_model=ImportResult)
async def import_contacts_csv(
    file: UploadFile = File(...),
    current_user: User = Depends(get_current_user),
    service: ContactService = Depends(get_contact_service),
):
    """Import contacts from an uploaded CSV file"""
    raw = await file.read()
    try:
        text = raw.decode("utf-8")
    except UnicodeDecodeError:
        raise HTTPException(status_code=400, detail="CSV file must be UTF-8 encoded")

    rows, parse_errors = parse_contacts_csv(text)
    if not rows and not parse_errors:
        raise HTTPException(status_code=400, detail="No contacts found in CSV")
    return await service.import_contacts(rows, current_user, parse_errors)


# ============================================================================
# GOOGLE CONTACTS
# ============================================================================


@router.get("/google/auth-url")
async def get_google_auth_url(
    current_user: User = Depends(get_current_user),
    service: ContactService = Depends(get_contact_service),
):
    """Google consent URL covering contacts and calendar access"""
    return {"url": service.get_google_auth_url(current_user)}


@router.post("/google/callback")
async def google_contacts_callback(
    data: GoogleCallbackRequest,
    current_user: User = Depends(get_current_user),
    service: ContactService = Depends(get_contact_service),
):
    """Exchange the OAuth code and sync Google contacts"""
    return await service.sync_google_contacts(data.code, current_user)
