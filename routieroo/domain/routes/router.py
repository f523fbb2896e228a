"""Route router - FastAPI endpoints for routes, waypoints and sharing"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ...auth import get_current_user
from ...database import get_db
from ...models import Route, RouteNote, RouteWaypoint, User
from ...shared.addresses import load_json_list
from ...shared.distance import format_duration, format_route_distance
from ...shared.phone import build_call_link, build_text_link, format_us_phone_number
from ..scheduling.calendar_plan import estimate_route_minutes
from .progress import route_progress
from .schemas import (
    AddGapStopRequest,
    AddWaypointRequest,
    MissedWaypointResponse,
    MoveToFolderRequest,
    PhoneLink,
    PublicRescheduleRequest,
    PublicStatusUpdate,
    RescheduleRequest,
    RouteCreate,
    RouteCreatedResponse,
    RouteDetailResponse,
    RouteNoteCreate,
    RouteNoteResponse,
    RouteResponse,
    RouteUpdate,
    WaypointAddressUpdate,
    WaypointEventsRequest,
    WaypointOrderUpdate,
    WaypointReorderRequest,
    WaypointResponse,
    WaypointStatusUpdate,
)
from .service import RouteService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/routes", tags=["Routes"])


def get_route_service(db: Session = Depends(get_db)) -> RouteService:
    """Dependency injection for RouteService"""
    return RouteService(db)


# ============================================================================
# RESPONSE BUILDERS
# ============================================================================


def phone_links(raw, calling_service: str = "phone") -> list[PhoneLink]:
    links = []
    for entry in load_json_list(raw):
        if not isinstance(entry, dict) or not entry.get("value"):
            continue
        value = entry["value"]
        links.append(
            PhoneLink(
                value=value,
                label=entry.get("label"),
                display=format_us_phone_number(value),
                callLink=build_call_link(value, calling_service),
                textLink=build_text_link(value),
            )
        )
    return links


def to_waypoint_response(wp: RouteWaypoint, calling_service: str = "phone") -> WaypointResponse:
    return WaypointResponse(
        id=wp.id,
        position=wp.position,
        executionOrder=wp.execution_order,
        contactId=wp.contact_id,
        contactName=wp.contact_name,
        address=wp.address or "",
        latitude=wp.latitude,
        longitude=wp.longitude,
        phoneNumbers=phone_links(wp.phone_numbers, calling_service),
        contactLabels=[label for label in load_json_list(wp.contact_labels) if isinstance(label, str)],
        importantDates=[d for d in load_json_list(wp.important_dates) if isinstance(d, dict)],
        comments=[c for c in load_json_list(wp.comments) if isinstance(c, dict)],
        stopType=wp.stop_type,
        stopColor=wp.stop_color,
        status=wp.status,
        completedAt=wp.completed_at,
        missedReason=wp.missed_reason,
        executionNotes=wp.execution_notes,
        needsReschedule=bool(wp.needs_reschedule),
        rescheduledDate=wp.rescheduled_date,
        isGapStop=bool(wp.is_gap_stop),
        gapDuration=wp.gap_duration,
        calendarEventId=wp.calendar_event_id,
    )


def to_route_response(route: Route, counts: Optional[tuple[int, int]] = None) -> RouteResponse:
    if counts is None:
        counts = (len(route.waypoints), sum(1 for wp in route.waypoints if wp.status == "complete"))

    return RouteResponse(
        id=route.id,
        name=route.name,
        notes=route.notes,
        shareId=route.share_id,
        isPublic=route.is_public,
        shareToken=route.share_token,
        isPubliclyAccessible=route.is_publicly_accessible,
        totalDistance=route.total_distance,
        totalDuration=route.total_duration,
        distanceDisplay=format_route_distance(route.total_distance, route.distance_unit or "km"),
        durationDisplay=format_duration(route.total_duration),
        optimized=route.optimized,
        folderId=route.folder_id,
        startingPointAddress=route.starting_point_address,
        distanceUnit=route.distance_unit or "km",
        scheduledDate=route.scheduled_date,
        googleCalendarId=route.google_calendar_id,
        completedAt=route.completed_at,
        isArchived=route.is_archived,
        archivedAt=route.archived_at,
        createdAt=route.created_at,
        waypointCount=counts[0],
        completedWaypointCount=counts[1],
    )


def to_route_detail(route: Route, calling_service: str = "phone") -> RouteDetailResponse:
    return RouteDetailResponse(
        route=to_route_response(route),
        waypoints=[to_waypoint_response(wp, calling_service) for wp in route.waypoints],
        progress=route_progress(route.waypoints),
        estimatedMinutes=estimate_route_minutes(route, route.waypoints, route.user.default_stop_duration),
    )


def to_note_response(note: RouteNote) -> RouteNoteResponse:
    return RouteNoteResponse(id=note.id, routeId=note.route_id, note=note.note, createdAt=note.created_at)


# ============================================================================
# PUBLIC ACCESS (no authentication)
# ============================================================================


@router.get("/shared/{share_id}", response_model=RouteDetailResponse)
async def get_route_by_share_id(share_id: str, service: RouteService = Depends(get_route_service)):
    """Get a public route by its short share id"""
    return to_route_detail(service.get_by_share_id(share_id))


@router.get("/share-token/{share_token}", response_model=RouteDetailResponse)
async def get_route_by_share_token(share_token: str, service: RouteService = Depends(get_route_service)):
    """Get a route through its execution share link"""
    return to_route_detail(service.get_by_share_token(share_token))


@router.post("/share-token/{share_token}/status", response_model=WaypointResponse)
async def update_shared_waypoint_status(
    share_token: str,
    data: PublicStatusUpdate,
    service: RouteService = Depends(get_route_service),
):
    """Update a stop's status through a share link"""
    return to_waypoint_response(service.update_shared_waypoint_status(share_token, data.waypointId, data))


@router.post("/share-token/{share_token}/reschedule", response_model=WaypointResponse)
async def reschedule_shared_waypoint(
    share_token: str,
    data: PublicRescheduleRequest,
    service: RouteService = Depends(get_route_service),
):
    """Reschedule a missed stop through a share link"""
    return to_waypoint_response(
        service.reschedule_shared_waypoint(share_token, data.waypointId, data.rescheduledDate)
    )


# ============================================================================
# ROUTE CRUD
# ============================================================================


@router.get("", response_model=list[RouteResponse])
async def list_routes(
    current_user: User = Depends(get_current_user),
    service: RouteService = Depends(get_route_service),
):
    """List the user's routes (archived routes excluded)"""
    routes = service.list_routes(current_user)
    counts = service.waypoint_counts(routes)
    return [to_route_response(r, counts.get(r.id, (0, 0))) for r in routes]


@router.get("/archived", response_model=list[RouteResponse])
async def list_archived_routes(
    current_user: User = Depends(get_current_user),
    service: RouteService = Depends(get_route_service),
):
    """List archived routes with waypoint counts"""
    routes = service.list_archived_routes(current_user)
    counts = service.waypoint_counts(routes)
    return [to_route_response(r, counts.get(r.id, (0, 0))) for r in routes]


@router.get("/missed-waypoints", response_model=list[MissedWaypointResponse])
async def get_missed_waypoints(
    current_user: User = Depends(get_current_user),
    service: RouteService = Depends(get_route_service),
):
    """Missed stops across all of the user's routes"""
    return [
        MissedWaypointResponse(
            **to_waypoint_response(wp, current_user.preferred_calling_service).model_dump(),
            routeId=route.id,
            routeName=route.name,
        )
        for wp, route in service.get_missed_waypoints(current_user)
    ]


@router.post("", response_model=RouteCreatedResponse)
async def create_route(
    data: RouteCreate,
    current_user: User = Depends(get_current_user),
    service: RouteService = Depends(get_route_service),
):
    """Create a route; Google computes distance, duration and the optimized order"""
    route = await service.create_route(data, current_user)
    return RouteCreatedResponse(
        routeId=route.id,
        shareId=route.share_id,
        totalDistance=route.total_distance,
        totalDuration=route.total_duration,
    )


@router.get("/{route_id}", response_model=RouteDetailResponse)
async def get_route(
    route_id: int,
    current_user: User = Depends(get_current_user),
    service: RouteService = Depends(get_route_service),
):
    route = service.get_viewable_route(route_id, current_user)
    return to_route_detail(route, current_user.preferred_calling_service)


@router.get("/{route_id}/google-maps-url")
async def get_google_maps_url(
    route_id: int,
    current_user: User = Depends(get_current_user),
    service: RouteService = Depends(get_route_service),
):
    return {"url": service.get_google_maps_url(route_id, current_user)}


@router.patch("/{route_id}", response_model=RouteResponse)
async def update_route(
    route_id: int,
    data: RouteUpdate,
    current_user: User = Depends(get_current_user),
    service: RouteService = Depends(get_route_service),
):
    return to_route_response(service.update_route(route_id, data, current_user))


@router.delete("/{route_id}")
async def delete_route(
    route_id: int,
    current_user: User = Depends(get_current_user),
    service: RouteService = Depends(get_route_service),
):
    service.delete_route(route_id, current_user)
    return {"success": True}


@router.post("/{route_id}/folder", response_model=RouteResponse)
async def move_route_to_folder(
    route_id: int,
    data: MoveToFolderRequest,
    current_user: User = Depends(get_current_user),
    service: RouteService = Depends(get_route_service),
):
    return to_route_response(service.move_to_folder(route_id, data.folderId, current_user))


@router.post("/{route_id}/copy")
async def copy_route(
    route_id: int,
    current_user: User = Depends(get_current_user),
    service: RouteService = Depends(get_route_service),
):
    route = service.copy_route(route_id, current_user)
    return {"routeId": route.id}


@router.post("/{route_id}/recalculate")
async def recalculate_route(
    route_id: int,
    current_user: User = Depends(get_current_user),
    service: RouteService = Depends(get_route_service),
):
    route = await service.recalculate_route(route_id, current_user)
    return {"totalDistance": route.total_distance, "totalDuration": route.total_duration}


@router.post("/{route_id}/reoptimize")
async def reoptimize_route(
    route_id: int,
    current_user: User = Depends(get_current_user),
    service: RouteService = Depends(get_route_service),
):
    """Place stops added after creation at their cheapest position"""
    return await service.reoptimize_route(route_id, current_user)


# ============================================================================
# ARCHIVING
# ============================================================================


@router.post("/{route_id}/archive", response_model=RouteResponse)
async def archive_route(
    route_id: int,
    current_user: User = Depends(get_current_user),
    service: RouteService = Depends(get_route_service),
):
    return to_route_response(service.archive_route(route_id, current_user))


@router.post("/{route_id}/unarchive", response_model=RouteResponse)
async def unarchive_route(
    route_id: int,
    current_user: User = Depends(get_current_user),
    service: RouteService = Depends(get_route_service),
):
    return to_route_response(service.unarchive_route(route_id, current_user))


# ============================================================================
# WAYPOINTS
# ============================================================================


@router.post("/{route_id}/waypoints", response_model=WaypointResponse)
async def add_waypoint(
    route_id: int,
    data: AddWaypointRequest,
    current_user: User = Depends(get_current_user),
    service: RouteService = Depends(get_route_service),
):
    waypoint = service.add_waypoint(route_id, data, current_user)
    return to_waypoint_response(waypoint, current_user.preferred_calling_service)


@router.post("/{route_id}/gap-stops", response_model=WaypointResponse)
async def add_gap_stop(
    route_id: int,
    data: AddGapStopRequest,
    current_user: User = Depends(get_current_user),
    service: RouteService = Depends(get_route_service),
):
    """Insert a timed break into the route"""
    return to_waypoint_response(service.add_gap_stop(route_id, data, current_user))


@router.put("/{route_id}/waypoints/order", response_model=RouteDetailResponse)
async def reorder_waypoints(
    route_id: int,
    data: WaypointReorderRequest,
    current_user: User = Depends(get_current_user),
    service: RouteService = Depends(get_route_service),
):
    route = service.reorder_waypoints(route_id, data.waypointIds, current_user)
    return to_route_detail(route, current_user.preferred_calling_service)


@router.patch("/waypoints/{waypoint_id}/status", response_model=WaypointResponse)
async def update_waypoint_status(
    waypoint_id: int,
    data: WaypointStatusUpdate,
    current_user: User = Depends(get_current_user),
    service: RouteService = Depends(get_route_service),
):
    """Mark a stop pending, in progress, complete or missed"""
    waypoint = service.update_waypoint_status(waypoint_id, data, current_user)
    return to_waypoint_response(waypoint, current_user.preferred_calling_service)


@router.patch("/waypoints/{waypoint_id}/execution-order", response_model=WaypointResponse)
async def update_execution_order(
    waypoint_id: int,
    data: WaypointOrderUpdate,
    current_user: User = Depends(get_current_user),
    service: RouteService = Depends(get_route_service),
):
    waypoint = service.update_execution_order(waypoint_id, data.newOrder, current_user)
    return to_waypoint_response(waypoint, current_user.preferred_calling_service)


@router.post("/waypoints/{waypoint_id}/reschedule", response_model=WaypointResponse)
async def reschedule_waypoint(
    waypoint_id: int,
    data: RescheduleRequest,
    current_user: User = Depends(get_current_user),
    service: RouteService = Depends(get_route_service),
):
    waypoint = service.reschedule_waypoint(waypoint_id, data.rescheduledDate, current_user)
    return to_waypoint_response(waypoint, current_user.preferred_calling_service)


@router.patch("/waypoints/{waypoint_id}/address", response_model=WaypointResponse)
async def update_waypoint_address(
    waypoint_id: int,
    data: WaypointAddressUpdate,
    current_user: User = Depends(get_current_user),
    service: RouteService = Depends(get_route_service),
):
    waypoint = service.update_waypoint_address(waypoint_id, data.address, data.contactName, current_user)
    return to_waypoint_response(waypoint, current_user.preferred_calling_service)


@router.delete("/waypoints/{waypoint_id}")
async def remove_waypoint(
    waypoint_id: int,
    current_user: User = Depends(get_current_user),
    service: RouteService = Depends(get_route_service),
):
    service.remove_waypoint(waypoint_id, current_user)
    return {"success": True}


# ============================================================================
# SHARING
# ============================================================================


@router.post("/{route_id}/share-token")
async def generate_share_token(
    route_id: int,
    current_user: User = Depends(get_current_user),
    service: RouteService = Depends(get_route_service),
):
    return {"shareToken": service.generate_share_token(route_id, current_user)}


@router.delete("/{route_id}/share-token")
async def revoke_share_token(
    route_id: int,
    current_user: User = Depends(get_current_user),
    service: RouteService = Depends(get_route_service),
):
    service.revoke_share_token(route_id, current_user)
    return {"success": True}


# ============================================================================
# NOTES
# ============================================================================


@router.get("/{route_id}/notes", response_model=list[RouteNoteResponse])
async def list_route_notes(
    route_id: int,
    current_user: User = Depends(get_current_user),
    service: RouteService = Depends(get_route_service),
):
    return [to_note_response(n) for n in service.list_notes(route_id, current_user)]


@router.post("/{route_id}/notes", response_model=RouteNoteResponse)
async def add_route_note(
    route_id: int,
    data: RouteNoteCreate,
    current_user: User = Depends(get_current_user),
    service: RouteService = Depends(get_route_service),
):
    return to_note_response(service.add_note(route_id, data.note, current_user))


@router.patch("/notes/{note_id}", response_model=RouteNoteResponse)
async def update_route_note(
    note_id: int,
    data: RouteNoteCreate,
    current_user: User = Depends(get_current_user),
    service: RouteService = Depends(get_route_service),
):
    return to_note_response(service.update_note(note_id, data.note, current_user))


@router.delete("/notes/{note_id}")
async def delete_route_note(
    note_id: int,
    current_user: User = Depends(get_current_user),
    service: RouteService = Depends(get_route_service),
):
    service.delete_note(note_id, current_user)
    return {"success": True}


# ============================================================================
# GOOGLE CALENDAR
# ============================================================================


@router.post("/{route_id}/calendar-events")
async def create_waypoint_events(
    route_id: int,
    data: WaypointEventsRequest,
    current_user: User = Depends(get_current_user),
    service: RouteService = Depends(get_route_service),
):
    """Create one Google Calendar event per stop"""
    return await service.create_waypoint_events(route_id, data, current_user)


@router.delete("/{route_id}/calendar-events", response_model=RouteResponse)
async def clear_calendar_events(
    route_id: int,
    current_user: User = Depends(get_current_user),
    service: RouteService = Depends(get_route_service),
):
    """Forget calendar event tracking for the route"""
    return to_route_response(service.clear_calendar_events(route_id, current_user))
