"""Scheduling and calendar API tests"""

from calendar import monthrange
from datetime import date, datetime

import httpx
import pytest
from fastapi import HTTPException

from routieroo.domain.calendar.service import month_bounds
from routieroo.domain.scheduling.recurrence import WEEKDAYS
from routieroo.models import Route
from routieroo.services import google_calendar_service

MONDAY = date(2026, 1, 5)


@pytest.fixture
def monday_contacts(make_contact):
    return {
        "amy": make_contact(name="Amy", address="1 Amy St", scheduled_days=["Monday"], schedule_start_date=MONDAY),
        "ben": make_contact(name="ben", address="2 Ben St", one_time_visits=["2026-01-05"]),
        "cal": make_contact(name="Cal", address=None, scheduled_days=["Monday"], schedule_start_date=MONDAY),
        "dee": make_contact(
            name="Dee", scheduled_days=["Monday"], schedule_start_date=MONDAY, is_active=False
        ),
    }


class TestDayPlan:
    def test_day_plan(self, client, monday_contacts):
        plan = client.get("/scheduling/day", params={"day": "2026-01-05"}).json()

        assert plan["date"] == "2026-01-05"
        assert [v["name"] for v in plan["visits"]] == ["Amy", "ben", "Cal"]
        assert [v["source"] for v in plan["visits"]] == ["recurring", "one_time", "recurring"]
        assert plan["visits"][2]["address"] is None
        assert plan["routes"] == []

    def test_week_overview(self, client, monday_contacts):
        week = client.get("/scheduling/week", params={"start": "2026-01-05"}).json()

        assert len(week) == 7
        assert week[0] == {"date": "2026-01-05", "dayName": "Monday", "visitCount": 3}
        assert [d["visitCount"] for d in week[1:]] == [0] * 6


class TestGenerateRoute:
    def test_generate_from_visits(self, client, fake_maps, monday_contacts):
        result = client.post("/scheduling/generate-route", json={"date": "2026-01-05", "optimize": False}).json()

        assert result["waypointCount"] == 2
        assert result["skipped"] == ["Cal"]

        detail = client.get(f"/routes/{result['routeId']}").json()
        assert detail["route"]["name"] == "Route for Monday, Jan 5"
        assert detail["route"]["scheduledDate"] == "2026-01-05T00:00:00"
        assert [wp["address"] for wp in detail["waypoints"]] == ["1 Amy St", "2 Ben St"]
        assert detail["waypoints"][0]["contactId"] == monday_contacts["amy"].id

        plan = client.get("/scheduling/day", params={"day": "2026-01-05"}).json()
        assert [r["id"] for r in plan["routes"]] == [result["routeId"]]

    def test_starting_point_and_return(self, client, fake_maps, monday_contacts):
        result = client.post(
            "/scheduling/generate-route",
            json={
                "date": "2026-01-05",
                "name": "Loop",
                "startingPoint": "9 Depot Rd",
                "returnToStart": True,
                "scheduledTime": "2026-01-05T08:30:00",
            },
        ).json()

        detail = client.get(f"/routes/{result['routeId']}").json()
        assert [wp["address"] for wp in detail["waypoints"]] == ["9 Depot Rd", "1 Amy St", "2 Ben St", "9 Depot Rd"]
        assert detail["route"]["name"] == "Loop"
        assert detail["route"]["startingPointAddress"] == "9 Depot Rd"
        assert detail["route"]["scheduledDate"] == "2026-01-05T08:30:00"
        assert fake_maps["calls"][0]["optimize"] is True

    def test_user_default_starting_point(self, client, fake_maps, db_session, user, monday_contacts):
        user.default_starting_point = "5 Home Base"
        db_session.commit()

        result = client.post("/scheduling/generate-route", json={"date": "2026-01-05"}).json()
        detail = client.get(f"/routes/{result['routeId']}").json()
        assert detail["waypoints"][0]["address"] == "5 Home Base"
        assert detail["waypoints"][0]["contactName"] == "Start"

    def test_no_visits(self, client, fake_maps, monday_contacts):
        response = client.post("/scheduling/generate-route", json={"date": "2026-01-06"})
        assert response.status_code == 400

    def test_no_addresses(self, client, fake_maps, make_contact):
        make_contact(name="Cal", address=None, scheduled_days=["Monday"], schedule_start_date=MONDAY)
        response = client.post("/scheduling/generate-route", json={"date": "2026-01-05"})
        assert response.status_code == 400

    def test_single_stop_needs_origin(self, client, fake_maps, make_contact):
        make_contact(name="Solo", scheduled_days=["Monday"], schedule_start_date=MONDAY)
        response = client.post("/scheduling/generate-route", json={"date": "2026-01-05"})
        assert response.status_code == 400


class TestCalendarEvents:
    @pytest.fixture
    def march(self, db_session, user, make_contact):
        db_session.add(
            Route(user_id=user.id, name="March run", share_id="marchroute01", scheduled_date=datetime(2026, 3, 2, 9, 0), total_duration=3600)
        )
        db_session.add(
            Route(user_id=user.id, name="April run", share_id="aprilroute01", scheduled_date=datetime(2026, 4, 1, 9, 0))
        )
        db_session.commit()
        make_contact(name="Weekly", scheduled_days=["Monday"], schedule_start_date=date(2026, 3, 1))

    def test_month_events(self, client, march):
        body = client.get("/calendar/events", params={"month": 3, "year": 2026}).json()

        types = [e["type"] for e in body["events"]]
        assert body["count"] == 6
        assert types.count("route") == 1
        assert types.count("visit") == 5
        route_event = next(e for e in body["events"] if e["type"] == "route")
        assert route_event["title"] == "March run"
        assert route_event["end"] == "2026-03-02T10:00:00"

    def test_without_visits(self, client, march):
        body = client.get("/calendar/events", params={"month": 3, "year": 2026, "includeVisits": "false"}).json()
        assert [e["title"] for e in body["events"]] == ["March run"]

    def test_google_events_merged(self, client, march, monkeypatch):
        async def fake_token(integration, db):
            return "token"

        async def fake_events(access_token, time_min, time_max):
            return [
                {"id": "g1", "summary": "Dentist", "start": {"dateTime": "2026-03-02T07:00:00Z"}, "end": {"dateTime": "2026-03-02T08:00:00Z"}},
                {"id": "g2", "status": "cancelled", "start": {"dateTime": "2026-03-03T07:00:00Z"}},
            ]

        monkeypatch.setattr(google_calendar_service, "get_integration", lambda db, user_id: object())
        monkeypatch.setattr(google_calendar_service, "get_valid_access_token", fake_token)
        monkeypatch.setattr(google_calendar_service, "get_all_calendar_events", fake_events)

        body = client.get("/calendar/events", params={"month": 3, "year": 2026, "includeVisits": "false"}).json()
        assert [e["id"] for e in body["events"]] == ["google-g1", f"route-{body['events'][1]['routeId']}"]

    def test_google_failure_shows_local_events(self, client, march, monkeypatch):
        async def fake_token(integration, db):
            return "token"

        async def failing_events(access_token, time_min, time_max):
            raise httpx.ConnectError("offline")

        monkeypatch.setattr(google_calendar_service, "get_integration", lambda db, user_id: object())
        monkeypatch.setattr(google_calendar_service, "get_valid_access_token", fake_token)
        monkeypatch.setattr(google_calendar_service, "get_all_calendar_events", failing_events)

        body = client.get("/calendar/events", params={"month": 3, "year": 2026, "includeVisits": "false"}).json()
        assert body["count"] == 1

    @pytest.mark.parametrize(
        "params",
        [
            {"month": 13, "year": 2026},
            {"month": 0, "year": 2026},
            {"month": 1, "year": 0},
            {"month": 1, "year": 10000},
        ],
    )
    def test_out_of_range_month_or_year(self, client, params):
        assert client.get("/calendar/events", params=params).status_code == 422

    def test_defaults_to_current_month(self, client, make_contact):
        make_contact(name="Daily", scheduled_days=list(WEEKDAYS), schedule_start_date=date(2020, 1, 6))

        body = client.get("/calendar/events").json()
        today = date.today()
        assert body["count"] == monthrange(today.year, today.month)[1]

    def test_last_supported_month(self, client, make_contact):
        make_contact(name="Weekly", scheduled_days=["Friday"], schedule_start_date=date(9999, 12, 1))

        body = client.get("/calendar/events", params={"month": 12, "year": 9999}).json()
        assert body["events"][-1]["start"] == "9999-12-31"
        assert body["count"] == 5

    def test_month_bounds_rejects_bad_year(self):
        with pytest.raises(HTTPException) as exc:
            month_bounds(10000, 1)
        assert exc.value.status_code == 400
