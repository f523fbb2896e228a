"""Route execution progress and completion bookkeeping"""

from datetime import datetime
from typing import Any, Optional

from ..scheduling.recurrence import field_of

STATUS_PENDING = "pending"
STATUS_IN_PROGRESS = "in_progress"
STATUS_COMPLETE = "complete"
STATUS_MISSED = "missed"

WAYPOINT_STATUSES = (STATUS_PENDING, STATUS_IN_PROGRESS, STATUS_COMPLETE, STATUS_MISSED)
FINISHED_STATUSES = (STATUS_COMPLETE, STATUS_MISSED)


def countable_stops(waypoints: list) -> list:
    """Gap stops are time blocks, not visits"""
    return [wp for wp in waypoints if not field_of(wp, "is_gap_stop")]


def all_stops_finished(waypoints: list) -> bool:
    stops = countable_stops(waypoints)
    return bool(stops) and all(field_of(wp, "status") in FINISHED_STATUSES for wp in stops)


def route_progress(waypoints: list) -> dict:
    stops = countable_stops(waypoints)
    counts = {status: 0 for status in WAYPOINT_STATUSES}
    for wp in stops:
        status = field_of(wp, "status") or STATUS_PENDING
        counts[status] = counts.get(status, 0) + 1

    total = len(stops)
    finished = counts[STATUS_COMPLETE] + counts[STATUS_MISSED]
    return {
        "total": total,
        "completed": counts[STATUS_COMPLETE],
        "missed": counts[STATUS_MISSED],
        "inProgress": counts[STATUS_IN_PROGRESS],
        "pending": counts[STATUS_PENDING],
        "percent": round(finished * 100 / total) if total else 0,
    }


def apply_status_change(
    waypoint: Any,
    status: str,
    missed_reason: Optional[str] = None,
    execution_notes: Optional[str] = None,
    now: Optional[datetime] = None,
) -> None:
    """Update a waypoint's execution fields for a new status"""
    if status not in WAYPOINT_STATUSES:
        raise ValueError(f"Unknown waypoint status: {status}")

    now = now or datetime.utcnow()
    waypoint.status = status

    if status == STATUS_COMPLETE:
        waypoint.completed_at = now
    elif status == STATUS_MISSED:
        waypoint.needs_reschedule = True
        if missed_reason:
            waypoint.missed_reason = missed_reason

    if execution_notes:
        waypoint.execution_notes = execution_notes


def mark_route_completed(route: Any, now: Optional[datetime] = None) -> bool:
    """Set completed_at the first time every stop is finished; True when it was set"""
    if route.completed_at is not None:
        return False
    if not all_stops_finished(route.waypoints):
        return False
    route.completed_at = now or datetime.utcnow()
    return True
