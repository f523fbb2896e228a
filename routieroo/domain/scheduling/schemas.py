"""Scheduling domain schemas"""

from datetime import date, datetime
from typing import Optional

from pydantic import BaseModel, Field, field_validator

from .recurrence import END_NEVER, END_TYPES, WEEKDAYS


def _check_days(days: list[str]) -> list[str]:
    normalized = []
    for day in days:
        name = day.strip().capitalize()
        if name not in WEEKDAYS:
            raise ValueError(f"Invalid day: {day}")
        if name not in normalized:
            normalized.append(name)
    return sorted(normalized, key=WEEKDAYS.index)


class ScheduledDaysUpdate(BaseModel):
    scheduledDays: list[str]

    @field_validator("scheduledDays")
    @classmethod
    def validate_days(cls, v):
        return _check_days(v)


class ScheduleUpdate(BaseModel):
    """Recurring schedule for a contact"""

    scheduledDays: list[str]
    repeatInterval: int = Field(1, ge=1, le=52)
    scheduleStartDate: Optional[date] = None
    scheduleEndType: str = END_NEVER
    scheduleEndDate: Optional[date] = None
    scheduleEndOccurrences: Optional[int] = Field(None, ge=1)

    @field_validator("scheduledDays")
    @classmethod
    def validate_days(cls, v):
        return _check_days(v)

    @field_validator("scheduleEndType")
    @classmethod
    def validate_end_type(cls, v):
        if v not in END_TYPES:
            raise ValueError(f"scheduleEndType must be one of: {', '.join(END_TYPES)}")
        return v


class OneTimeVisitRequest(BaseModel):
    date: date


class GenerateRouteRequest(BaseModel):
    date: date
    name: Optional[str] = Field(None, max_length=255)
    startingPoint: Optional[str] = None
    returnToStart: bool = False
    optimize: bool = True
    scheduledTime: Optional[datetime] = None


class VisitResponse(BaseModel):
    contactId: int
    name: Optional[str] = None
    address: Optional[str] = None
    source: str
    scheduleSummary: str


class ScheduledRouteSummary(BaseModel):
    id: int
    name: str
    scheduledDate: Optional[datetime] = None
    completedAt: Optional[datetime] = None


class DayPlanResponse(BaseModel):
    date: date
    visits: list[VisitResponse]
    routes: list[ScheduledRouteSummary]


class WeekDaySummary(BaseModel):
    date: date
    dayName: str
    visitCount: int


class GenerateRouteResponse(BaseModel):
    success: bool = True
    routeId: int
    shareId: str
    waypointCount: int
    skipped: list[str] = []

