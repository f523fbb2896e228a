"""Scheduling router - day plans, week overview and route generation"""

import logging
from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ...auth import get_current_user
from ...database import get_db
from ...models import User
from .recurrence import describe_contact_schedule
from .schemas import (
    DayPlanResponse,
    GenerateRouteRequest,
    GenerateRouteResponse,
    ScheduledRouteSummary,
    VisitResponse,
    WeekDaySummary,
)
from .service import SchedulingService, contact_address

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/scheduling", tags=["Scheduling"])


def get_scheduling_service(db: Session = Depends(get_db)) -> SchedulingService:
    """Dependency injection for SchedulingService"""
    return SchedulingService(db)


@router.get("/day", response_model=DayPlanResponse)
async def get_day_plan(
    day: Optional[date] = None,
    current_user: User = Depends(get_current_user),
    service: SchedulingService = Depends(get_scheduling_service),
):
    """Contacts to visit on a day (today by default) and routes already planned"""
    day = day or date.today()
    assignments, routes = service.get_day_plan(current_user, day)
    return DayPlanResponse(
        date=day,
        visits=[
            VisitResponse(
                contactId=a.contact.id,
                name=a.contact.name,
                address=contact_address(a.contact),
                source=a.source,
                scheduleSummary=describe_contact_schedule(a.contact),
            )
            for a in assignments
        ],
        routes=[
            ScheduledRouteSummary(
                id=r.id, name=r.name, scheduledDate=r.scheduled_date, completedAt=r.completed_at
            )
            for r in routes
        ],
    )


@router.get("/week", response_model=list[WeekDaySummary])
async def get_week_overview(
    start: Optional[date] = None,
    current_user: User = Depends(get_current_user),
    service: SchedulingService = Depends(get_scheduling_service),
):
    """Visit counts for the 7 days starting at ``start``"""
    return service.get_week_overview(current_user, start or date.today())


@router.post("/generate-route", response_model=GenerateRouteResponse)
async def generate_route(
    data: GenerateRouteRequest,
    current_user: User = Depends(get_current_user),
    service: SchedulingService = Depends(get_scheduling_service),
):
    """Create a route from the visits scheduled on a date"""
    route, skipped = await service.generate_route_for_date(current_user, data)
    return GenerateRouteResponse(
        routeId=route.id,
        shareId=route.share_id,
        waypointCount=len(route.waypoints),
        skipped=skipped,
    )
