"""Calendar service - one merged view of routes, Google events and planned visits"""

import logging
from calendar import monthrange
from datetime import date, datetime, time

import httpx
from fastapi import HTTPException
from sqlalchemy.orm import Session

from ...models import User
from ...services import google_calendar_service
from ..contacts.repository import ContactRepository
from ..routes.repository import RouteRepository
from ..scheduling.calendar_plan import (
    google_to_event,
    merge_calendar_events,
    route_to_event,
    visit_to_event,
)
from ..scheduling.recurrence import assignments_between

logger = logging.getLogger(__name__)


def month_bounds(year: int, month: int) -> tuple[date, date]:
    """First and last day of a month"""
    if not 1 <= month <= 12:
        raise HTTPException(status_code=400, detail="month must be between 1 and 12")
    if not date.min.year <= year <= date.max.year:
        raise HTTPException(status_code=400, detail=f"year must be between {date.min.year} and {date.max.year}")
    return date(year, month, 1), date(year, month, monthrange(year, month)[1])


class CalendarService:
    def __init__(self, db: Session):
        self.db = db
        self.routes = RouteRepository()
        self.contacts = ContactRepository()

    def route_events(self, user: User, first: date, last: date) -> list[dict]:
        start = datetime.combine(first, time.min)
        end = datetime.combine(last, time.max)
        routes = self.routes.get_routes_scheduled_between(self.db, user.id, start, end)
        return [route_to_event(r) for r in routes]

    async def google_events(self, user: User, first: date, last: date) -> list[dict]:
        """Events from every calendar of the connected account; failures yield []"""
        integration = google_calendar_service.get_integration(self.db, user.id)
        if not integration:
            return []

        access_token = await google_calendar_service.get_valid_access_token(integration, self.db)
        if not access_token:
            logger.warning(f"⚠️ No valid Google token for user {user.id}, calendar shows local events only")
            return []

        try:
            raw = await google_calendar_service.get_all_calendar_events(
                access_token, datetime.combine(first, time.min), datetime.combine(last, time.max)
            )
        except httpx.HTTPError as e:
            logger.error(f"❌ Failed to fetch Google events for user {user.id}: {str(e)}")
            return []
        return [google_to_event(e) for e in raw]

    def visit_events(self, user: User, first: date, last: date) -> list[dict]:
        contacts = self.contacts.get_user_contacts(self.db, user.id, active_only=True)
        by_day = assignments_between(contacts, first, last)
        return [visit_to_event(a) for assignments in by_day.values() for a in assignments]

    async def get_month_events(self, user: User, year: int, month: int, include_visits: bool = True) -> list[dict]:
        first, last = month_bounds(year, month)
        route_events = self.route_events(user, first, last)
        google_events = await self.google_events(user, first, last)
        visit_events = self.visit_events(user, first, last) if include_visits else []
        return merge_calendar_events(route_events, google_events, visit_events)
