"""Recurring schedule tests"""

from datetime import date, datetime

from routieroo.domain.scheduling.recurrence import (
    SOURCE_ONE_TIME,
    SOURCE_RECURRING,
    RecurringSchedule,
    assignments_between,
    assignments_for_date,
    expand_occurrences,
    format_recurring_schedule,
    has_schedule,
    occurs_on,
    parse_days,
    parse_one_time_visits,
    schedule_from_contact,
    scheduled_days_badge,
    visit_dates,
)

MONDAY = date(2026, 1, 5)


class TestParsing:
    def test_parse_days_from_json_string(self):
        assert parse_days('["Friday", "monday"]') == ["Monday", "Friday"]

    def test_parse_days_drops_unknown_and_duplicates(self):
        assert parse_days(["Tuesday", "Funday", "Tuesday"]) == ["Tuesday"]

    def test_parse_days_invalid_input(self):
        assert parse_days(None) == []
        assert parse_days("") == []
        assert parse_days("not json") == []

    def test_parse_one_time_visits_accepts_strings_and_dicts(self):
        visits = parse_one_time_visits(["2026-02-01", {"date": "2026-01-15"}, "garbage"])
        assert visits == [date(2026, 1, 15), date(2026, 2, 1)]


class TestExpandOccurrences:
    def test_weekly(self):
        schedule = RecurringSchedule(days=["Monday", "Wednesday"], start_date=MONDAY)
        result = expand_occurrences(schedule, MONDAY, date(2026, 1, 18))
        assert result == [date(2026, 1, 5), date(2026, 1, 7), date(2026, 1, 12), date(2026, 1, 14)]

    def test_every_other_week(self):
        schedule = RecurringSchedule(days=["Tuesday"], interval=2, start_date=MONDAY)
        result = expand_occurrences(schedule, MONDAY, date(2026, 2, 1))
        assert result == [date(2026, 1, 6), date(2026, 1, 20)]

    def test_interval_counts_weeks_from_start_week(self):
        # Start on a Thursday; the Tuesday of the same week is before the start
        schedule = RecurringSchedule(days=["Tuesday"], interval=2, start_date=date(2026, 1, 8))
        result = expand_occurrences(schedule, MONDAY, date(2026, 1, 31))
        assert result == [date(2026, 1, 20)]

    def test_nothing_before_start(self):
        schedule = RecurringSchedule(days=["Monday"], start_date=date(2026, 1, 12))
        assert expand_occurrences(schedule, MONDAY, date(2026, 1, 11)) == []

    def test_end_date_is_inclusive(self):
        schedule = RecurringSchedule(
            days=["Monday"], start_date=MONDAY, end_type="date", end_date=date(2026, 1, 12)
        )
        result = expand_occurrences(schedule, MONDAY, date(2026, 2, 28))
        assert result == [date(2026, 1, 5), date(2026, 1, 12)]

    def test_occurrences_counted_from_start(self):
        schedule = RecurringSchedule(
            days=["Monday"], start_date=MONDAY, end_type="occurrences", end_occurrences=3
        )
        # Window starts after the first occurrence; only two remain
        result = expand_occurrences(schedule, date(2026, 1, 10), date(2026, 3, 31))
        assert result == [date(2026, 1, 12), date(2026, 1, 19)]

    def test_interval_below_one_treated_as_weekly(self):
        schedule = RecurringSchedule(days=["Friday"], interval=0, start_date=MONDAY)
        assert schedule.interval == 1
        assert len(expand_occurrences(schedule, MONDAY, date(2026, 1, 31))) == 4

    def test_window_ending_on_last_representable_day(self):
        schedule = RecurringSchedule(days=["Friday"], start_date=date(9999, 12, 1))
        result = expand_occurrences(schedule, date(9999, 12, 25), date.max)
        assert result == [date.max]

    def test_occurrences_up_to_last_representable_day(self):
        schedule = RecurringSchedule(
            days=["Friday"], start_date=date(9999, 12, 1), end_type="occurrences", end_occurrences=10
        )
        assert expand_occurrences(schedule, date(9999, 12, 1), date.max)[-1] == date.max

    def test_empty_days(self):
        assert expand_occurrences(RecurringSchedule(days=[]), MONDAY, date(2026, 12, 31)) == []

    def test_occurs_on(self):
        schedule = RecurringSchedule(days=["Monday"], interval=2, start_date=MONDAY)
        assert occurs_on(schedule, date(2026, 1, 19)) is True
        assert occurs_on(schedule, date(2026, 1, 12)) is False


class TestContacts:
    def test_created_at_anchors_when_no_start(self):
        contact = {
            "scheduled_days": ["Monday"],
            "repeat_interval": 2,
            "created_at": datetime(2026, 1, 7, 15, 30),
        }
        schedule = schedule_from_contact(contact)
        assert schedule.start_date == date(2026, 1, 7)
        assert visit_dates(contact, MONDAY, date(2026, 1, 31)) == [date(2026, 1, 19)]

    def test_visit_dates_merges_one_time_visits(self):
        contact = {
            "scheduled_days": ["Monday"],
            "schedule_start_date": MONDAY,
            "one_time_visits": ["2026-01-08", "2026-01-12"],
        }
        assert visit_dates(contact, MONDAY, date(2026, 1, 12)) == [
            date(2026, 1, 5),
            date(2026, 1, 8),
            date(2026, 1, 12),
        ]

    def test_inactive_contact_has_no_visits(self):
        contact = {"scheduled_days": ["Monday"], "schedule_start_date": MONDAY, "is_active": False}
        assert visit_dates(contact, MONDAY, date(2026, 1, 31)) == []

    def test_has_schedule(self):
        assert has_schedule({"scheduled_days": ["Monday"]}) is True
        assert has_schedule({"one_time_visits": ["2026-03-01"]}) is True
        assert has_schedule({"scheduled_days": [], "one_time_visits": []}) is False


class TestAssignments:
    def test_sorted_by_name_with_sources(self):
        contacts = [
            {"id": 1, "name": "zoe", "scheduled_days": ["Monday"], "schedule_start_date": MONDAY},
            {"id": 2, "name": "Adam", "one_time_visits": ["2026-01-05"]},
            {"id": 3, "name": "Mia", "scheduled_days": ["Tuesday"], "schedule_start_date": MONDAY},
        ]
        assignments = assignments_for_date(contacts, MONDAY)
        assert [a.contact["name"] for a in assignments] == ["Adam", "zoe"]
        assert [a.source for a in assignments] == [SOURCE_ONE_TIME, SOURCE_RECURRING]

    def test_recurring_wins_over_one_time(self):
        contact = {
            "id": 1,
            "name": "Both",
            "scheduled_days": ["Monday"],
            "schedule_start_date": MONDAY,
            "one_time_visits": ["2026-01-05"],
        }
        assignments = assignments_for_date([contact], MONDAY)
        assert len(assignments) == 1
        assert assignments[0].source == SOURCE_RECURRING

    def test_between_groups_by_date(self):
        contact = {"id": 1, "name": "A", "scheduled_days": ["Monday", "Friday"], "schedule_start_date": MONDAY}
        by_day = assignments_between([contact], MONDAY, date(2026, 1, 11))
        assert list(by_day) == [date(2026, 1, 5), date(2026, 1, 9)]


class TestFormatting:
    def test_badge(self):
        assert scheduled_days_badge(["Friday", "Monday", "Wednesday"]) == "Mon, Wed, Fri"
        assert scheduled_days_badge([]) == ""

    def test_weekly(self):
        assert format_recurring_schedule(["Monday", "Wednesday"]) == "Every week on Mon, Wed"

    def test_interval_with_end_date(self):
        text = format_recurring_schedule(["Tuesday"], 2, "date", date(2026, 1, 5))
        assert text == "Every 2 weeks on Tue (until Jan 5, 2026)"

    def test_occurrences(self):
        assert format_recurring_schedule(["Thursday"], 1, "occurrences", None, 13) == "Every week on Thu (13 times)"

    def test_no_days(self):
        assert format_recurring_schedule([]) == "No schedule"
