"""Scheduling service - who to visit when, and turning a day into a route"""

import logging
from datetime import date, datetime, time, timedelta
from typing import Optional

from fastapi import HTTPException
from sqlalchemy.orm import Session

from ...models import Contact, Route, User
from ...shared.addresses import get_primary_address, load_json_list
from ..contacts.repository import ContactRepository
from ..routes.repository import RouteRepository
from ..routes.schemas import RouteCreate, WaypointInput
from ..routes.service import RouteService
from .recurrence import (
    END_DATE,
    END_NEVER,
    END_OCCURRENCES,
    ONE_DAY,
    WEEKDAYS,
    VisitAssignment,
    assignments_between,
    assignments_for_date,
    parse_one_time_visits,
)
from .schemas import GenerateRouteRequest, ScheduleUpdate

logger = logging.getLogger(__name__)


def contact_address(contact: Contact) -> Optional[str]:
    """The address a visit is routed to"""
    if contact.address:
        return contact.address
    primary = get_primary_address(contact.addresses)
    return primary.get("formattedValue") if primary else None


def contact_waypoint(contact: Contact, address: str) -> WaypointInput:
    return WaypointInput(
        contactId=contact.id,
        contactName=contact.name,
        address=address,
        phoneNumbers=[p for p in load_json_list(contact.phone_numbers) if isinstance(p, dict)] or None,
        contactLabels=[label for label in load_json_list(contact.labels) if isinstance(label, str)] or None,
        importantDates=[d for d in load_json_list(contact.important_dates) if isinstance(d, dict)] or None,
        comments=[c for c in load_json_list(contact.comments) if isinstance(c, dict)] or None,
    )


def default_route_name(day: date) -> str:
    return f"Route for {day:%A}, {day:%b} {day.day}"


class SchedulingService:
    """Service layer for visit schedules"""

    def __init__(self, db: Session):
        self.db = db
        self.contacts = ContactRepository()
        self.routes = RouteRepository()

    def _get_contact(self, contact_id: int, user: User) -> Contact:
        contact = self.contacts.get_by_id(self.db, contact_id, user.id)
        if not contact:
            raise HTTPException(status_code=404, detail="Contact not found")
        return contact

    def _active_contacts(self, user: User) -> list[Contact]:
        return self.contacts.get_user_contacts(self.db, user.id, active_only=True)

    # ========================================================================
    # PLANNING
    # ========================================================================

    def get_day_plan(self, user: User, day: date) -> tuple[list[VisitAssignment], list[Route]]:
        assignments = assignments_for_date(self._active_contacts(user), day)
        start = datetime.combine(day, time.min)
        routes = self.routes.get_routes_scheduled_between(self.db, user.id, start, start + ONE_DAY)
        return assignments, routes

    def get_week_overview(self, user: User, start: date) -> list[dict]:
        end = start + timedelta(days=6)
        by_day = assignments_between(self._active_contacts(user), start, end)
        return [
            {
                "date": start + timedelta(days=offset),
                "dayName": WEEKDAYS[(start + timedelta(days=offset)).weekday()],
                "visitCount": len(by_day.get(start + timedelta(days=offset), [])),
            }
            for offset in range(7)
        ]

    async def generate_route_for_date(self, user: User, request: GenerateRouteRequest) -> tuple[Route, list[str]]:
        """
        Build a route from the day's scheduled visits.

        Origin is the requested starting point, then the user's default, then
        the first visit itself. Contacts without an address are skipped and
        returned by name.
        """
        assignments = assignments_for_date(self._active_contacts(user), request.date)
        if not assignments:
            raise HTTPException(status_code=400, detail="No visits scheduled for this date")

        skipped = []
        stops = []
        for assignment in assignments:
            address = contact_address(assignment.contact)
            if not address:
                skipped.append(assignment.contact.name or f"Contact {assignment.contact.id}")
                continue
            stops.append(contact_waypoint(assignment.contact, address))
        if not stops:
            raise HTTPException(status_code=400, detail="None of the scheduled contacts have an address")

        origin_address = request.startingPoint or user.default_starting_point
        waypoints = []
        if origin_address:
            waypoints.append(WaypointInput(address=origin_address, contactName="Start"))
        else:
            origin_address = stops[0].address
        waypoints.extend(stops)
        if request.returnToStart and origin_address:
            waypoints.append(WaypointInput(address=origin_address, contactName="Return to start"))

        if len(waypoints) < 2:
            raise HTTPException(status_code=400, detail="At least 2 waypoints required to create a route")

        route = await RouteService(self.db).create_route(
            RouteCreate(
                name=request.name or default_route_name(request.date),
                waypoints=waypoints,
                optimizeRoute=request.optimize,
                startingPointAddress=origin_address,
                scheduledDate=request.scheduledTime or datetime.combine(request.date, time.min),
            ),
            user,
        )
        if skipped:
            logger.warning(f"⚠️ Route {route.id} skipped {len(skipped)} contacts without an address")
        return route, skipped

    # ========================================================================
    # CONTACT SCHEDULES
    # ========================================================================

    def update_contact_schedule(self, contact_id: int, data: ScheduleUpdate, user: User) -> Contact:
        contact = self._get_contact(contact_id, user)

        if data.scheduleEndType == END_DATE and not data.scheduleEndDate:
            raise HTTPException(status_code=400, detail="scheduleEndDate is required when the schedule ends on a date")
        if data.scheduleEndType == END_OCCURRENCES and not data.scheduleEndOccurrences:
            raise HTTPException(
                status_code=400, detail="scheduleEndOccurrences is required when the schedule ends after occurrences"
            )
        if data.scheduleEndDate and data.scheduleStartDate and data.scheduleEndDate < data.scheduleStartDate:
            raise HTTPException(status_code=400, detail="scheduleEndDate must be on or after scheduleStartDate")

        contact.scheduled_days = data.scheduledDays
        contact.repeat_interval = data.repeatInterval
        contact.schedule_start_date = data.scheduleStartDate or date.today()
        contact.schedule_end_type = data.scheduleEndType
        contact.schedule_end_date = data.scheduleEndDate if data.scheduleEndType == END_DATE else None
        contact.schedule_end_occurrences = (
            data.scheduleEndOccurrences if data.scheduleEndType == END_OCCURRENCES else None
        )

        logger.info(f"📅 Schedule updated for contact {contact.id}: {', '.join(data.scheduledDays) or 'none'}")
        return self.contacts.update(self.db, contact)

    def update_scheduled_days(self, contact_id: int, days: list[str], user: User) -> Contact:
        """Weekly days only; clearing the days resets the recurrence"""
        contact = self._get_contact(contact_id, user)
        contact.scheduled_days = days
        if not days:
            contact.repeat_interval = 1
            contact.schedule_end_type = END_NEVER
            contact.schedule_end_date = None
            contact.schedule_end_occurrences = None
        elif contact.schedule_start_date is None:
            contact.schedule_start_date = date.today()
        return self.contacts.update(self.db, contact)

    def add_one_time_visit(self, contact_id: int, visit_date: date, user: User) -> Contact:
        contact = self._get_contact(contact_id, user)
        visits = set(parse_one_time_visits(contact.one_time_visits))
        visits.add(visit_date)
        contact.one_time_visits = [d.isoformat() for d in sorted(visits)]
        return self.contacts.update(self.db, contact)

    def remove_one_time_visit(self, contact_id: int, visit_date: date, user: User) -> Contact:
        contact = self._get_contact(contact_id, user)
        visits = parse_one_time_visits(contact.one_time_visits)
        if visit_date not in visits:
            raise HTTPException(status_code=404, detail="Visit not found")
        contact.one_time_visits = [d.isoformat() for d in visits if d != visit_date]
        return self.contacts.update(self.db, contact)
