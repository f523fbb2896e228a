"""Route service - Business logic for route and waypoint lifecycle"""

import logging
import secrets
from datetime import datetime, timedelta
from typing import Optional

from fastapi import HTTPException
from sqlalchemy.orm import Session

from ...config import DEFAULT_STOP_COLOR, DEFAULT_STOP_TYPE
from ...models import Contact, Folder, Route, RouteNote, RouteWaypoint, User, generate_share_token
from ...services import google_calendar_service, google_maps_service
from ..scheduling.calendar_plan import as_naive_utc, plan_waypoint_events
from .progress import apply_status_change, mark_route_completed
from .repository import RouteRepository
from .schemas import (
    AddGapStopRequest,
    AddWaypointRequest,
    RouteCreate,
    RouteUpdate,
    WaypointEventsRequest,
    WaypointStatusUpdate,
)

logger = logging.getLogger(__name__)

GAP_STOP_TYPE = "gap"
GAP_STOP_COLOR = "#9ca3af"
SHARE_ID_BYTES = 9  # 12 url-safe characters


def default_stop_style(user: User) -> tuple[str, str]:
    """The user's default stop type and color, falling back to visit/blue"""
    return (
        user.default_stop_type or DEFAULT_STOP_TYPE,
        user.default_stop_type_color or DEFAULT_STOP_COLOR,
    )


def routable_waypoints(waypoints: list[RouteWaypoint]) -> list[RouteWaypoint]:
    """Waypoints that take part in driving directions (gap stops have no address)"""
    return [wp for wp in waypoints if not wp.is_gap_stop and wp.address]


def renumber_positions(waypoints: list[RouteWaypoint]) -> None:
    for index, waypoint in enumerate(waypoints):
        waypoint.position = index


class RouteService:
    """Service layer for route business logic"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = RouteRepository()

    # ========================================================================
    # ACCESS CHECKS
    # ========================================================================

    def get_owned_route(self, route_id: int, user: User) -> Route:
        route = self.repo.get_route(self.db, route_id)
        if not route:
            raise HTTPException(status_code=404, detail="Route not found")
        if route.user_id != user.id:
            raise HTTPException(status_code=403, detail="Access denied")
        return route

    def get_viewable_route(self, route_id: int, user: User) -> Route:
        """Owners see their routes; anyone signed in sees public routes"""
        route = self.repo.get_route(self.db, route_id)
        if not route:
            raise HTTPException(status_code=404, detail="Route not found")
        if route.user_id != user.id and not route.is_public:
            raise HTTPException(status_code=403, detail="Access denied")
        return route

    def get_owned_waypoint(self, waypoint_id: int, user: User) -> RouteWaypoint:
        waypoint = self.repo.get_waypoint(self.db, waypoint_id)
        if not waypoint:
            raise HTTPException(status_code=404, detail="Waypoint not found")
        if waypoint.route.user_id != user.id:
            raise HTTPException(status_code=403, detail="Not authorized")
        return waypoint

    def _check_folder(self, folder_id: Optional[int], user: User) -> None:
        if folder_id is None:
            return
        folder = self.db.query(Folder).filter(Folder.id == folder_id, Folder.user_id == user.id).first()
        if not folder:
            raise HTTPException(status_code=404, detail="Folder not found")

    def _new_share_id(self) -> str:
        while True:
            share_id = secrets.token_urlsafe(SHARE_ID_BYTES)
            if not self.repo.share_id_exists(self.db, share_id):
                return share_id

    # ========================================================================
    # ROUTE CRUD
    # ========================================================================

    async def create_route(self, data: RouteCreate, user: User) -> Route:
        """Compute the route with Google, apply the optimized order and store it"""
        self._check_folder(data.folderId, user)

        computation = await google_maps_service.compute_route(
            [wp.address for wp in data.waypoints], optimize=data.optimizeRoute
        )

        ordered = list(data.waypoints)
        if data.optimizeRoute:
            ordered = google_maps_service.apply_optimized_order(ordered, computation.optimized_order)

        now = datetime.utcnow()
        route = Route(
            user_id=user.id,
            name=data.name,
            notes=data.notes,
            share_id=self._new_share_id(),
            is_public=data.isPublic,
            total_distance=computation.distance_meters,
            total_duration=computation.duration_seconds,
            optimized=data.optimizeRoute,
            folder_id=data.folderId,
            starting_point_address=data.startingPointAddress,
            distance_unit=data.distanceUnit or user.distance_unit or "km",
            scheduled_date=as_naive_utc(data.scheduledDate) if data.scheduledDate else None,
            created_at=now,
        )

        stop_type, stop_color = default_stop_style(user)
        for index, wp in enumerate(ordered):
            # Leg i starts at stop i; the final stop is where the last leg ends
            if index < len(computation.legs):
                latitude, longitude = computation.leg_start(index)
            else:
                latitude, longitude = computation.leg_end(index - 1)

            route.waypoints.append(
                RouteWaypoint(
                    position=index,
                    execution_order=index,
                    contact_id=wp.contactId,
                    contact_name=wp.contactName,
                    address=wp.address,
                    latitude=latitude,
                    longitude=longitude,
                    phone_numbers=wp.phoneNumbers,
                    contact_labels=wp.contactLabels,
                    important_dates=wp.importantDates,
                    comments=wp.comments,
                    stop_type=wp.stopType or stop_type,
                    stop_color=wp.stopColor or stop_color,
                    status="pending",
                    created_at=now,
                )
            )

        self.repo.save(self.db, route)
        logger.info(f"✅ Route {route.id} created for user {user.id} with {len(ordered)} stops")
        return route

    def list_routes(self, user: User) -> list[Route]:
        return self.repo.get_user_routes(self.db, user.id, archived=False)

    def list_archived_routes(self, user: User) -> list[Route]:
        return self.repo.get_user_routes(self.db, user.id, archived=True)

    def waypoint_counts(self, routes: list[Route]) -> dict[int, tuple[int, int]]:
        return self.repo.get_waypoint_counts(self.db, [r.id for r in routes])

    def get_by_share_id(self, share_id: str) -> Route:
        route = self.repo.get_by_share_id(self.db, share_id)
        if not route:
            raise HTTPException(status_code=404, detail="Route not found")
        if not route.is_public:
            raise HTTPException(status_code=403, detail="This route is private")
        return route

    def get_google_maps_url(self, route_id: int, user: User) -> str:
        route = self.get_viewable_route(route_id, user)
        addresses = [wp.address for wp in routable_waypoints(route.waypoints)]
        if len(addresses) < 2:
            raise HTTPException(status_code=400, detail="Route must have at least 2 waypoints")
        return google_maps_service.build_google_maps_url(addresses)

    def update_route(self, route_id: int, data: RouteUpdate, user: User) -> Route:
        route = self.get_owned_route(route_id, user)
        updates = data.model_dump(exclude_unset=True)

        if "folderId" in updates:
            self._check_folder(updates["folderId"], user)
            route.folder_id = updates["folderId"]
        if "name" in updates and updates["name"]:
            route.name = updates["name"]
        if "notes" in updates:
            route.notes = updates["notes"]
        if "startingPointAddress" in updates:
            route.starting_point_address = updates["startingPointAddress"]
        if "scheduledDate" in updates:
            scheduled = updates["scheduledDate"]
            route.scheduled_date = as_naive_utc(scheduled) if scheduled else None

        self.repo.save(self.db, route)
        return route

    def delete_route(self, route_id: int, user: User) -> None:
        route = self.get_owned_route(route_id, user)
        self.repo.delete(self.db, route)
        logger.info(f"🗑️ Route {route_id} deleted by user {user.id}")

    def move_to_folder(self, route_id: int, folder_id: Optional[int], user: User) -> Route:
        route = self.get_owned_route(route_id, user)
        self._check_folder(folder_id, user)
        route.folder_id = folder_id
        self.repo.save(self.db, route)
        return route

    def copy_route(self, route_id: int, user: User) -> Route:
        """Duplicate a route with every stop reset to pending"""
        original = self.get_owned_route(route_id, user)
        now = datetime.utcnow()

        copy = Route(
            user_id=user.id,
            name=f"{original.name} (Copy)",
            notes=original.notes,
            share_id=self._new_share_id(),
            is_public=False,
            total_distance=original.total_distance,
            total_duration=original.total_duration,
            optimized=original.optimized,
            folder_id=original.folder_id,
            starting_point_address=original.starting_point_address,
            distance_unit=original.distance_unit,
            created_at=now,
        )
        for wp in original.waypoints:
            copy.waypoints.append(
                RouteWaypoint(
                    position=wp.position,
                    execution_order=wp.position,
                    contact_id=wp.contact_id,
                    contact_name=wp.contact_name,
                    address=wp.address,
                    latitude=wp.latitude,
                    longitude=wp.longitude,
                    phone_numbers=wp.phone_numbers,
                    contact_labels=wp.contact_labels,
                    important_dates=wp.important_dates,
                    comments=wp.comments,
                    stop_type=wp.stop_type,
                    stop_color=wp.stop_color,
                    is_gap_stop=wp.is_gap_stop,
                    gap_duration=wp.gap_duration,
                    status="pending",
                    created_at=now,
                )
            )

        self.repo.save(self.db, copy)
        return copy

    # ========================================================================
    # RECALCULATION / OPTIMIZATION
    # ========================================================================

    async def recalculate_route(self, route_id: int, user: User) -> Route:
        route = self.get_owned_route(route_id, user)
        addresses = [wp.address for wp in routable_waypoints(route.waypoints)]
        if len(addresses) < 2:
            raise HTTPException(status_code=400, detail="Route must have at least 2 waypoints")

        computation = await google_maps_service.compute_route(addresses)
        route.total_distance = computation.distance_meters
        route.total_duration = computation.duration_seconds
        self.repo.save(self.db, route)
        return route

    async def _distance_for(self, order: list[RouteWaypoint]) -> Optional[int]:
        try:
            computation = await google_maps_service.compute_route(
                [wp.address for wp in routable_waypoints(order)]
            )
        except HTTPException as e:
            logger.warning(f"⚠️ Skipping candidate order: {e.detail}")
            return None
        return computation.distance_meters

    async def reoptimize_route(self, route_id: int, user: User) -> dict:
        """
        Insert stops added after the route was created at their cheapest
        position. The origin stays first; each new stop is tried at every
        later slot and kept where total distance is smallest.
        """
        route = self.get_owned_route(route_id, user)
        waypoints = list(route.waypoints)
        if len(routable_waypoints(waypoints)) < 2:
            raise HTTPException(status_code=400, detail="Route must have at least 2 waypoints")

        created = route.created_at
        new_stops = [
            wp for wp in waypoints
            if not wp.is_gap_stop and created and wp.created_at and wp.created_at > created
        ]
        if not new_stops:
            return {"message": "No new stops to optimize", "optimizedCount": 0}

        current = [wp for wp in waypoints if wp not in new_stops]
        for stop in new_stops:
            best_position = len(current)
            best_distance = None
            for i in range(1, len(current)):
                candidate = current[:i] + [stop] + current[i:]
                distance = await self._distance_for(candidate)
                if distance is not None and (best_distance is None or distance < best_distance):
                    best_distance = distance
                    best_position = i
            current.insert(best_position, stop)

        renumber_positions(current)
        computation = await google_maps_service.compute_route(
            [wp.address for wp in routable_waypoints(current)]
        )
        route.total_distance = computation.distance_meters
        route.total_duration = computation.duration_seconds
        self.db.commit()

        logger.info(f"🔀 Re-optimized route {route.id}: {len(new_stops)} new stop(s) placed")
        return {
            "message": f"Optimized {len(new_stops)} new stop(s)",
            "optimizedCount": len(new_stops),
            "totalDistance": computation.distance_meters,
            "totalDuration": computation.duration_seconds,
        }

    # ========================================================================
    # ARCHIVING
    # ========================================================================

    def archive_route(self, route_id: int, user: User) -> Route:
        route = self.get_owned_route(route_id, user)
        route.is_archived = True
        route.archived_at = datetime.utcnow()
        self.repo.save(self.db, route)
        return route

    def unarchive_route(self, route_id: int, user: User) -> Route:
        route = self.get_owned_route(route_id, user)
        route.is_archived = False
        route.archived_at = None
        self.repo.save(self.db, route)
        return route

    def auto_archive_routes(self, user: User, now: Optional[datetime] = None) -> int:
        """Archive completed routes older than the user's auto-archive window"""
        if user.auto_archive_days is None:
            return 0

        now = now or datetime.utcnow()
        cutoff = now - timedelta(days=user.auto_archive_days)
        routes = self.repo.get_completed_routes_before(self.db, user.id, cutoff)
        for route in routes:
            route.is_archived = True
            route.archived_at = now
        self.db.commit()

        if routes:
            logger.info(f"📦 Auto-archived {len(routes)} route(s) for user {user.id}")
        return len(routes)

    # ========================================================================
    # WAYPOINT EXECUTION
    # ========================================================================

    def _change_status(self, waypoint: RouteWaypoint, data: WaypointStatusUpdate) -> RouteWaypoint:
        apply_status_change(waypoint, data.status, data.missedReason, data.executionNotes)
        if mark_route_completed(waypoint.route):
            logger.info(f"🏁 Route {waypoint.route_id} completed")
        self.db.commit()
        self.db.refresh(waypoint)
        return waypoint

    def update_waypoint_status(self, waypoint_id: int, data: WaypointStatusUpdate, user: User) -> RouteWaypoint:
        return self._change_status(self.get_owned_waypoint(waypoint_id, user), data)

    def update_execution_order(self, waypoint_id: int, new_order: int, user: User) -> RouteWaypoint:
        waypoint = self.get_owned_waypoint(waypoint_id, user)
        waypoint.execution_order = new_order
        self.repo.save(self.db, waypoint)
        return waypoint

    def reorder_waypoints(self, route_id: int, waypoint_ids: list[int], user: User) -> Route:
        route = self.get_owned_route(route_id, user)
        by_id = {wp.id: wp for wp in route.waypoints}
        if sorted(waypoint_ids) != sorted(by_id):
            raise HTTPException(status_code=400, detail="Waypoint list must contain every stop of the route exactly once")

        ordered = [by_id[wid] for wid in waypoint_ids]
        renumber_positions(ordered)
        for wp in ordered:
            wp.execution_order = wp.position
        self.db.commit()
        self.db.refresh(route)
        return route

    def reschedule_waypoint(self, waypoint_id: int, rescheduled_date: datetime, user: User) -> RouteWaypoint:
        waypoint = self.get_owned_waypoint(waypoint_id, user)
        waypoint.rescheduled_date = as_naive_utc(rescheduled_date)
        waypoint.needs_reschedule = False
        self.repo.save(self.db, waypoint)
        return waypoint

    def get_missed_waypoints(self, user: User) -> list[tuple[RouteWaypoint, Route]]:
        return self.repo.get_missed_waypoints(self.db, user.id)

    # ========================================================================
    # WAYPOINT EDITING
    # ========================================================================

    def add_waypoint(self, route_id: int, data: AddWaypointRequest, user: User) -> RouteWaypoint:
        route = self.get_owned_route(route_id, user)
        stop_type, stop_color = default_stop_style(user)

        waypoint = RouteWaypoint(
            position=len(route.waypoints),
            execution_order=len(route.waypoints),
            contact_id=data.contactId,
            contact_name=data.contactName,
            address=data.address,
            phone_numbers=data.phoneNumbers,
            stop_type=data.stopType or stop_type,
            stop_color=data.stopColor or stop_color,
            status="pending",
            created_at=datetime.utcnow(),
        )

        if data.contactId is not None:
            contact = (
                self.db.query(Contact)
                .filter(Contact.id == data.contactId, Contact.user_id == user.id)
                .first()
            )
            if not contact:
                raise HTTPException(status_code=404, detail="Contact not found")
            waypoint.contact_name = data.contactName or contact.name
            waypoint.phone_numbers = data.phoneNumbers or contact.phone_numbers
            waypoint.contact_labels = contact.labels
            waypoint.important_dates = contact.important_dates
            waypoint.comments = contact.comments

        route.waypoints.append(waypoint)
        self.repo.save(self.db, waypoint)
        return waypoint

    def add_gap_stop(self, route_id: int, data: AddGapStopRequest, user: User) -> RouteWaypoint:
        """Insert a timed break (no address) at ``position`` or at the end"""
        route = self.get_owned_route(route_id, user)
        waypoints = list(route.waypoints)

        gap = RouteWaypoint(
            contact_name=data.label,
            address="",
            stop_type=GAP_STOP_TYPE,
            stop_color=GAP_STOP_COLOR,
            status="pending",
            is_gap_stop=True,
            gap_duration=data.durationMinutes,
            created_at=datetime.utcnow(),
        )
        position = len(waypoints) if data.position is None else min(data.position, len(waypoints))
        waypoints.insert(position, gap)
        renumber_positions(waypoints)
        gap.execution_order = gap.position

        route.waypoints.append(gap)
        self.repo.save(self.db, gap)
        return gap

    def remove_waypoint(self, waypoint_id: int, user: User) -> None:
        waypoint = self.get_owned_waypoint(waypoint_id, user)
        route = waypoint.route
        route.waypoints.remove(waypoint)
        renumber_positions(route.waypoints)
        self.db.commit()

    def update_waypoint_address(
        self, waypoint_id: int, address: str, contact_name: Optional[str], user: User
    ) -> RouteWaypoint:
        waypoint = self.get_owned_waypoint(waypoint_id, user)
        waypoint.address = address
        waypoint.latitude = None
        waypoint.longitude = None
        if contact_name is not None:
            waypoint.contact_name = contact_name
        self.repo.save(self.db, waypoint)
        return waypoint

    # ========================================================================
    # SHARE TOKENS (public execution links)
    # ========================================================================

    def generate_share_token(self, route_id: int, user: User) -> str:
        route = self.get_owned_route(route_id, user)
        route.share_token = generate_share_token()
        route.is_publicly_accessible = True
        route.shared_at = datetime.utcnow()
        self.repo.save(self.db, route)
        logger.info(f"🔗 Share link generated for route {route.id}")
        return route.share_token

    def revoke_share_token(self, route_id: int, user: User) -> None:
        route = self.get_owned_route(route_id, user)
        route.share_token = None
        route.is_publicly_accessible = False
        self.repo.save(self.db, route)

    def get_by_share_token(self, share_token: str) -> Route:
        route = self.repo.get_by_share_token(self.db, share_token)
        if not route or not route.is_publicly_accessible:
            raise HTTPException(status_code=404, detail="Route not found or no longer shared")
        return route

    def _shared_waypoint(self, share_token: str, waypoint_id: int) -> RouteWaypoint:
        route = self.repo.get_by_share_token(self.db, share_token)
        if not route or not route.is_publicly_accessible:
            raise HTTPException(status_code=403, detail="Invalid or expired share link")

        waypoint = self.repo.get_waypoint(self.db, waypoint_id)
        if not waypoint or waypoint.route_id != route.id:
            raise HTTPException(status_code=404, detail="Waypoint not found")
        return waypoint

    def update_shared_waypoint_status(
        self, share_token: str, waypoint_id: int, data: WaypointStatusUpdate
    ) -> RouteWaypoint:
        return self._change_status(self._shared_waypoint(share_token, waypoint_id), data)

    def reschedule_shared_waypoint(
        self, share_token: str, waypoint_id: int, rescheduled_date: datetime
    ) -> RouteWaypoint:
        waypoint = self._shared_waypoint(share_token, waypoint_id)
        waypoint.rescheduled_date = as_naive_utc(rescheduled_date)
        waypoint.needs_reschedule = False
        self.repo.save(self.db, waypoint)
        return waypoint

    # ========================================================================
    # NOTES
    # ========================================================================

    def add_note(self, route_id: int, note: str, user: User) -> RouteNote:
        route = self.get_owned_route(route_id, user)
        route_note = RouteNote(route_id=route.id, user_id=user.id, note=note, created_at=datetime.utcnow())
        self.repo.save(self.db, route_note)
        return route_note

    def list_notes(self, route_id: int, user: User) -> list[RouteNote]:
        route = self.get_owned_route(route_id, user)
        return self.repo.get_notes(self.db, route.id)

    def update_note(self, note_id: int, note: str, user: User) -> RouteNote:
        route_note = self.repo.get_note(self.db, note_id, user.id)
        if not route_note:
            raise HTTPException(status_code=404, detail="Note not found")
        route_note.note = note
        self.repo.save(self.db, route_note)
        return route_note

    def delete_note(self, note_id: int, user: User) -> None:
        route_note = self.repo.get_note(self.db, note_id, user.id)
        if not route_note:
            raise HTTPException(status_code=404, detail="Note not found")
        self.repo.delete(self.db, route_note)

    # ========================================================================
    # GOOGLE CALENDAR
    # ========================================================================

    def clear_calendar_events(self, route_id: int, user: User) -> Route:
        route = self.get_owned_route(route_id, user)
        route.google_calendar_id = None
        for wp in route.waypoints:
            wp.calendar_event_id = None
        self.repo.save(self.db, route)
        return route

    async def create_waypoint_events(self, route_id: int, data: WaypointEventsRequest, user: User) -> dict:
        """One Google Calendar event per stop, laid out by the user's duration mode"""
        route = self.get_owned_route(route_id, user)

        integration = google_calendar_service.get_integration(self.db, user.id)
        if not integration:
            raise HTTPException(status_code=400, detail="Google Calendar not connected")

        access_token = await google_calendar_service.get_valid_access_token(integration, self.db)
        if not access_token:
            raise HTTPException(status_code=502, detail="Could not refresh Google Calendar access")

        calendar_id = data.calendarId or integration.google_calendar_id or "primary"
        start = as_naive_utc(data.startTime)
        planned = plan_waypoint_events(
            start,
            list(route.waypoints),
            route.total_duration,
            user.default_stop_duration,
            user.event_duration_mode or "stop_only",
        )

        created = []
        for index, event in enumerate(planned):
            wp = event.waypoint
            description = f"Address: {wp.address}" if wp.address else "Scheduled break"
            if wp.execution_notes:
                description += f"\nNotes: {wp.execution_notes}"

            body = google_calendar_service.build_event_body(
                summary=f"{route.name} - Stop {index + 1}: {wp.contact_name or 'Waypoint'}",
                start=event.start,
                end=event.end,
                location=wp.address or None,
                description=description,
            )
            event_id = await google_calendar_service.create_calendar_event(access_token, body, calendar_id)
            if event_id:
                wp.calendar_event_id = event_id
                created.append({"waypointId": wp.id, "eventId": event_id})

        route.scheduled_date = start
        route.google_calendar_id = calendar_id
        self.db.commit()

        logger.info(f"📅 Created {len(created)}/{len(planned)} calendar events for route {route.id}")
        return {"success": True, "eventsCreated": len(created), "events": created}
