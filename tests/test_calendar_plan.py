"""Route duration and calendar event planning tests"""

from datetime import date, datetime, timedelta, timezone

import pytest

from routieroo.domain.scheduling.calendar_plan import (
    GOOGLE_EVENT_COLOR,
    ROUTE_EVENT_COLOR,
    VISIT_EVENT_COLOR,
    as_naive_utc,
    estimate_route_minutes,
    google_to_event,
    merge_calendar_events,
    parse_event_time,
    plan_waypoint_events,
    route_event_window,
    route_to_event,
    visit_to_event,
)
from routieroo.domain.scheduling.recurrence import VisitAssignment

START = datetime(2026, 3, 2, 9, 0)


def stops(count):
    return [{"id": i, "is_gap_stop": False} for i in range(count)]


class TestPlanWaypointEvents:
    def test_stop_only_spaces_events_by_travel_time(self):
        # 3 stops, 30 min total drive -> 10 min travel per segment
        events = plan_waypoint_events(START, stops(3), 1800, 20, "stop_only")

        assert [e.start for e in events] == [
            START,
            START + timedelta(minutes=30),
            START + timedelta(minutes=60),
        ]
        assert all(e.minutes == 20 for e in events)

    def test_include_drive_folds_travel_into_later_events(self):
        events = plan_waypoint_events(START, stops(3), 1800, 20, "include_drive")

        assert [e.minutes for e in events] == [20, 30, 30]
        assert events[1].start == events[0].end
        assert events[2].start == events[1].end

    def test_gap_stop_uses_its_own_duration(self):
        waypoints = stops(2) + [{"id": 9, "is_gap_stop": True, "gap_duration": 45}]
        events = plan_waypoint_events(START, waypoints, 0, 15, "stop_only")
        assert [e.minutes for e in events] == [15, 15, 45]

    def test_gap_stop_without_duration_is_instant(self):
        waypoints = [{"id": 1, "is_gap_stop": False}, {"id": 2, "is_gap_stop": True, "gap_duration": None}]
        events = plan_waypoint_events(START, waypoints, 0, 15, "stop_only")
        assert [e.minutes for e in events] == [15, 0]
        assert events[1].start == events[0].end

    def test_default_stop_duration(self):
        events = plan_waypoint_events(START, stops(1), None)
        assert events[0].minutes == 30

    def test_unknown_mode(self):
        with pytest.raises(ValueError):
            plan_waypoint_events(START, stops(2), 600, 30, "teleport")

    def test_no_waypoints(self):
        assert plan_waypoint_events(START, [], 600) == []


class TestEstimates:
    def test_estimate_route_minutes(self):
        waypoints = stops(3) + [{"is_gap_stop": True, "gap_duration": 15}]
        assert estimate_route_minutes({"total_duration": 3600}, waypoints, 20) == 60 + 60 + 15

    def test_gap_stop_without_duration_adds_nothing(self):
        waypoints = stops(2) + [{"is_gap_stop": True, "gap_duration": None}]
        assert estimate_route_minutes({"total_duration": 1200}, waypoints, 30) == 20 + 60

    def test_unrouted_route_counts_stops_only(self):
        assert estimate_route_minutes({"total_duration": None}, stops(2)) == 60

    def test_route_event_window(self):
        route = {"scheduled_date": START, "total_duration": 5400}
        assert route_event_window(route) == (START, START + timedelta(minutes=90))

    def test_route_event_window_unscheduled(self):
        assert route_event_window({"scheduled_date": None}) is None


class TestEventTimes:
    def test_as_naive_utc(self):
        aware = datetime(2026, 3, 2, 9, 0, tzinfo=timezone(timedelta(hours=-6)))
        assert as_naive_utc(aware) == datetime(2026, 3, 2, 15, 0)

    def test_parse_event_time(self):
        assert parse_event_time("2026-03-02T10:00:00Z") == datetime(2026, 3, 2, 10, 0)
        assert parse_event_time(date(2026, 3, 2)) == datetime(2026, 3, 2)
        assert parse_event_time("nonsense") is None


class TestCalendarEvents:
    def test_route_event(self):
        event = route_to_event({"id": 7, "name": "North loop", "scheduled_date": START, "total_duration": 3600})
        assert event["id"] == "route-7"
        assert event["color"] == ROUTE_EVENT_COLOR
        assert event["end"] == "2026-03-02T10:00:00"
        assert event["completed"] is False

    def test_google_event_all_day(self):
        event = google_to_event({"id": "abc", "summary": "Holiday", "start": {"date": "2026-03-02"}, "end": {"date": "2026-03-03"}})
        assert event["id"] == "google-abc"
        assert event["allDay"] is True
        assert event["color"] == GOOGLE_EVENT_COLOR

    def test_cancelled_google_event_dropped(self):
        assert google_to_event({"id": "x", "status": "cancelled", "start": {"dateTime": "2026-03-02T10:00:00Z"}}) is None

    def test_visit_event(self):
        event = visit_to_event(VisitAssignment({"id": 4, "name": "Alice"}, date(2026, 3, 2), "recurring"))
        assert event["id"] == "visit-4-2026-03-02"
        assert event["color"] == VISIT_EVENT_COLOR

    def test_merge_sorts_by_start(self):
        route = route_to_event({"id": 1, "name": "R", "scheduled_date": datetime(2026, 3, 2, 12, 0), "total_duration": 0})
        google = google_to_event({"id": "g", "start": {"dateTime": "2026-03-02T08:00:00Z"}, "end": {"dateTime": "2026-03-02T09:00:00Z"}})
        visit = visit_to_event(VisitAssignment({"id": 2, "name": "B"}, date(2026, 3, 1), "one_time"))

        merged = merge_calendar_events([route], [google, None], [visit])
        assert [e["id"] for e in merged] == ["visit-2-2026-03-01", "google-g", "route-1"]
