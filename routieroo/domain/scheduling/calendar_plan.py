"""
Route duration and calendar event planning.

Routes store total drive time; stop time comes from the user's default stop
duration. Two modes decide how a route is laid out on a calendar:

- stop_only: each stop event lasts the stop duration, drive time sits between events
- include_drive: the drive to a stop is folded into that stop's event
"""

from dataclasses import dataclass
from datetime import date, datetime, time, timedelta, timezone
from typing import Any, Iterable, Optional

from ...config import DEFAULT_STOP_DURATION_MINUTES
from .recurrence import VisitAssignment, field_of

MODE_STOP_ONLY = "stop_only"
MODE_INCLUDE_DRIVE = "include_drive"

ROUTE_EVENT_COLOR = "#3b82f6"
GOOGLE_EVENT_COLOR = "#6b7280"
VISIT_EVENT_COLOR = "#10b981"


@dataclass
class PlannedEvent:
    waypoint: Any
    start: datetime
    end: datetime

    @property
    def minutes(self) -> int:
        return int((self.end - self.start).total_seconds() // 60)


def _stop_minutes_for(waypoint: Any, stop_minutes: int) -> int:
    # Gap stops only take their own gap time, none when unset
    if field_of(waypoint, "is_gap_stop"):
        return int(field_of(waypoint, "gap_duration") or 0)
    return stop_minutes


def plan_waypoint_events(
    start: datetime,
    waypoints: list,
    total_duration_s: Optional[int],
    stop_minutes: Optional[int] = None,
    mode: str = MODE_STOP_ONLY,
) -> list[PlannedEvent]:
    """Lay out one calendar event per waypoint, starting at ``start``"""
    if mode not in (MODE_STOP_ONLY, MODE_INCLUDE_DRIVE):
        raise ValueError(f"Unknown event duration mode: {mode}")
    if not waypoints:
        return []

    stop_minutes = stop_minutes or DEFAULT_STOP_DURATION_MINUTES
    travel = timedelta(seconds=(total_duration_s or 0) / len(waypoints))

    events = []
    current = start
    for index, waypoint in enumerate(waypoints):
        duration = timedelta(minutes=_stop_minutes_for(waypoint, stop_minutes))

        if mode == MODE_INCLUDE_DRIVE:
            if index > 0:
                duration += travel
            end = current + duration
            events.append(PlannedEvent(waypoint, current, end))
            current = end
        else:
            end = current + duration
            events.append(PlannedEvent(waypoint, current, end))
            current = end + travel

    return events


def estimate_route_minutes(route: Any, waypoints: list, stop_minutes: Optional[int] = None) -> int:
    """Drive time of ``route`` plus stop time at every regular stop and gap time at gap stops"""
    stop_minutes = stop_minutes or DEFAULT_STOP_DURATION_MINUTES
    total = (field_of(route, "total_duration") or 0) / 60
    for waypoint in waypoints:
        total += _stop_minutes_for(waypoint, stop_minutes)
    return round(total)


def route_event_window(route: Any) -> Optional[tuple[datetime, datetime]]:
    scheduled = field_of(route, "scheduled_date")
    if scheduled is None:
        return None
    return scheduled, scheduled + timedelta(seconds=field_of(route, "total_duration") or 0)


# ============================================================================
# Calendar event merging
# ============================================================================

def as_naive_utc(value: datetime) -> datetime:
    if value.tzinfo is not None:
        return value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


def parse_event_time(value: Any) -> Optional[datetime]:
    """Accept datetimes, dates (all-day events) or ISO strings"""
    if value is None:
        return None
    if isinstance(value, datetime):
        return as_naive_utc(value)
    if isinstance(value, date):
        return datetime.combine(value, time.min)
    if isinstance(value, str):
        try:
            return as_naive_utc(datetime.fromisoformat(value.replace("Z", "+00:00")))
        except ValueError:
            return None
    return None


def route_to_event(route: Any) -> Optional[dict]:
    window = route_event_window(route)
    if window is None:
        return None

    start, end = window
    return {
        "id": f"route-{field_of(route, 'id')}",
        "title": field_of(route, "name"),
        "start": start.isoformat(),
        "end": end.isoformat(),
        "type": "route",
        "color": ROUTE_EVENT_COLOR,
        "routeId": field_of(route, "id"),
        "completed": field_of(route, "completed_at") is not None,
    }


def google_to_event(event: dict) -> Optional[dict]:
    """Normalize a Google Calendar API event; cancelled or timeless events are dropped"""
    if event.get("status") == "cancelled":
        return None

    start = event.get("start") or {}
    end = event.get("end") or {}
    start_value = start.get("dateTime") or start.get("date")
    if not start_value:
        return None

    return {
        "id": f"google-{event.get('id')}",
        "title": event.get("summary") or "(No title)",
        "start": start_value,
        "end": end.get("dateTime") or end.get("date") or start_value,
        "type": "google",
        "color": GOOGLE_EVENT_COLOR,
        "allDay": "dateTime" not in start,
        "location": event.get("location"),
        "calendarId": event.get("calendarId"),
    }


def visit_to_event(assignment: VisitAssignment) -> dict:
    contact = assignment.contact
    return {
        "id": f"visit-{field_of(contact, 'id')}-{assignment.date.isoformat()}",
        "title": field_of(contact, "name"),
        "start": assignment.date.isoformat(),
        "end": assignment.date.isoformat(),
        "type": "visit",
        "color": VISIT_EVENT_COLOR,
        "allDay": True,
        "contactId": field_of(contact, "id"),
        "source": assignment.source,
    }


def _sort_key(event: dict) -> datetime:
    return parse_event_time(event.get("start")) or datetime.max


def merge_calendar_events(*event_lists: Iterable[Optional[dict]]) -> list[dict]:
    """One list ordered by start time; None entries are skipped"""
    merged = [event for events in event_lists for event in events if event]
    merged.sort(key=_sort_key)
    return merged
