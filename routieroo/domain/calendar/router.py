"""Calendar router"""

from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ...auth import get_current_user
from ...database import get_db
from ...models import User
from .service import CalendarService

router = APIRouter(prefix="/calendar", tags=["Calendar"])


def get_calendar_service(db: Session = Depends(get_db)) -> CalendarService:
    return CalendarService(db)


@router.get("/events")
async def get_calendar_events(
    month: Optional[int] = Query(None, ge=1, le=12),
    year: Optional[int] = Query(None, ge=1, le=9999),
    includeVisits: bool = True,
    current_user: User = Depends(get_current_user),
    service: CalendarService = Depends(get_calendar_service),
):
    """Routes, Google Calendar events and scheduled visits for a month, sorted by start"""
    today = date.today()
    events = await service.get_month_events(
        current_user,
        today.year if year is None else year,
        today.month if month is None else month,
        include_visits=includeVisits,
    )
    return {"events": events, "count": len(events)}
