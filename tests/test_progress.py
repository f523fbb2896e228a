"""Route progress and completion bookkeeping tests"""

from datetime import datetime
from types import SimpleNamespace

import pytest

from routieroo.domain.routes.progress import (
    STATUS_COMPLETE,
    STATUS_MISSED,
    all_stops_finished,
    apply_status_change,
    mark_route_completed,
    route_progress,
)

NOW = datetime(2026, 2, 3, 14, 0)


def waypoint(status="pending", gap=False):
    return SimpleNamespace(
        status=status,
        is_gap_stop=gap,
        completed_at=None,
        needs_reschedule=False,
        missed_reason=None,
        execution_notes=None,
    )


class TestProgress:
    def test_gap_stops_not_counted(self):
        waypoints = [waypoint("complete"), waypoint("missed"), waypoint("pending", gap=True), waypoint()]
        progress = route_progress(waypoints)
        assert progress == {
            "total": 3,
            "completed": 1,
            "missed": 1,
            "inProgress": 0,
            "pending": 1,
            "percent": 67,
        }

    def test_empty_route(self):
        assert route_progress([])["percent"] == 0
        assert all_stops_finished([]) is False

    def test_all_finished_ignores_gap_stops(self):
        assert all_stops_finished([waypoint("complete"), waypoint("missed"), waypoint(gap=True)]) is True


class TestStatusChange:
    def test_complete_stamps_time(self):
        wp = waypoint()
        apply_status_change(wp, STATUS_COMPLETE, execution_notes="Left at door", now=NOW)
        assert wp.completed_at == NOW
        assert wp.execution_notes == "Left at door"

    def test_missed_flags_reschedule(self):
        wp = waypoint()
        apply_status_change(wp, STATUS_MISSED, missed_reason="Nobody home")
        assert wp.needs_reschedule is True
        assert wp.missed_reason == "Nobody home"

    def test_unknown_status(self):
        with pytest.raises(ValueError):
            apply_status_change(waypoint(), "skipped")


class TestRouteCompletion:
    def test_marks_once(self):
        route = SimpleNamespace(completed_at=None, waypoints=[waypoint("complete")])
        assert mark_route_completed(route, NOW) is True
        assert route.completed_at == NOW
        assert mark_route_completed(route, datetime(2026, 3, 1)) is False
        assert route.completed_at == NOW

    def test_not_finished(self):
        route = SimpleNamespace(completed_at=None, waypoints=[waypoint("complete"), waypoint("in_progress")])
        assert mark_route_completed(route) is False
        assert route.completed_at is None
