"""
Recurring visit schedules.

A contact is visited on a set of weekdays every N weeks, starting from an
anchor date, optionally ending on a date or after a number of occurrences.
One-time visits add extra dates on top of the recurring pattern.
"""

from dataclasses import dataclass
from datetime import date, datetime, timedelta
from typing import Any, Optional

from ...shared.addresses import load_json_list

WEEKDAYS = ("Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday", "Sunday")
DAY_SHORT_NAMES = {day: day[:3] for day in WEEKDAYS}

END_NEVER = "never"
END_DATE = "date"
END_OCCURRENCES = "occurrences"
END_TYPES = (END_NEVER, END_DATE, END_OCCURRENCES)

SOURCE_RECURRING = "recurring"
SOURCE_ONE_TIME = "one_time"

ONE_DAY = timedelta(days=1)


def field_of(obj: Any, name: str, default: Any = None) -> Any:
    """Read a field from an ORM object or a plain dict"""
    if isinstance(obj, dict):
        return obj.get(name, default)
    return getattr(obj, name, default)


def to_date(value: Any) -> Optional[date]:
    """Coerce date, datetime or ISO string into a date; None if not parseable"""
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        try:
            return date.fromisoformat(value[:10])
        except ValueError:
            return None
    return None


def parse_days(value: Any) -> list[str]:
    """Weekday names from a JSON string or list, in week order, unknown names dropped"""
    wanted = set()
    for day in load_json_list(value):
        if isinstance(day, str):
            name = day.strip().capitalize()
            if name in WEEKDAYS:
                wanted.add(name)
    return [day for day in WEEKDAYS if day in wanted]


def parse_one_time_visits(value: Any) -> list[date]:
    """One-time visits are stored as ISO dates or {"date": ...} entries"""
    dates = set()
    for entry in load_json_list(value):
        raw = entry.get("date") if isinstance(entry, dict) else entry
        parsed = to_date(raw)
        if parsed:
            dates.add(parsed)
    return sorted(dates)


@dataclass
class RecurringSchedule:
    days: list[str]
    interval: int = 1
    start_date: Optional[date] = None
    end_type: str = END_NEVER
    end_date: Optional[date] = None
    end_occurrences: Optional[int] = None

    def __post_init__(self):
        if not self.interval or self.interval < 1:
            self.interval = 1

    @property
    def is_empty(self) -> bool:
        return not self.days


def schedule_from_contact(contact: Any) -> RecurringSchedule:
    """Build the schedule; the contact's creation date anchors it when no start is stored"""
    start = to_date(field_of(contact, "schedule_start_date")) or to_date(field_of(contact, "created_at"))
    return RecurringSchedule(
        days=parse_days(field_of(contact, "scheduled_days")),
        interval=field_of(contact, "repeat_interval") or 1,
        start_date=start,
        end_type=field_of(contact, "schedule_end_type") or END_NEVER,
        end_date=to_date(field_of(contact, "schedule_end_date")),
        end_occurrences=field_of(contact, "schedule_end_occurrences"),
    )


def _week_start(day: date) -> date:
    return day - timedelta(days=day.weekday())


def _matches_pattern(schedule: RecurringSchedule, day: date) -> bool:
    """Weekday, start date and week interval checks (end conditions excluded)"""
    if WEEKDAYS[day.weekday()] not in schedule.days:
        return False
    if schedule.start_date is None:
        return True
    if day < schedule.start_date:
        return False
    weeks = (_week_start(day) - _week_start(schedule.start_date)).days // 7
    return weeks % schedule.interval == 0


def _limited_by_occurrences(schedule: RecurringSchedule) -> bool:
    return (
        schedule.end_type == END_OCCURRENCES
        and bool(schedule.end_occurrences)
        and schedule.start_date is not None
    )


def _days(first: date, last: date):
    """Each date in [first, last]; stops at date.max without overflowing"""
    for offset in range((last - first).days + 1):
        yield first + offset * ONE_DAY


def expand_occurrences(schedule: RecurringSchedule, start: date, end: date) -> list[date]:
    """Every date in [start, end] on which the recurring schedule falls"""
    if schedule.is_empty or end < start:
        return []

    if _limited_by_occurrences(schedule):
        # Occurrences are counted from the anchor, not from the query window
        results = []
        seen = 0
        for day in _days(schedule.start_date, end):
            if seen >= schedule.end_occurrences:
                break
            if _matches_pattern(schedule, day):
                seen += 1
                if day >= start:
                    results.append(day)
        return results

    first = max(start, schedule.start_date) if schedule.start_date else start
    last = end
    if schedule.end_type == END_DATE and schedule.end_date:
        last = min(end, schedule.end_date)

    return [day for day in _days(first, last) if _matches_pattern(schedule, day)]


def occurs_on(schedule: RecurringSchedule, day: date) -> bool:
    return bool(expand_occurrences(schedule, day, day))


def is_active(contact: Any) -> bool:
    active = field_of(contact, "is_active", True)
    return active is None or bool(active)


def has_schedule(contact: Any) -> bool:
    """A contact is scheduled when it has recurring days or a one-time visit"""
    if parse_days(field_of(contact, "scheduled_days")):
        return True
    return bool(parse_one_time_visits(field_of(contact, "one_time_visits")))


def visit_dates(contact: Any, start: date, end: date) -> list[date]:
    """Recurring occurrences plus one-time visits in [start, end]"""
    if not is_active(contact):
        return []

    dates = set(expand_occurrences(schedule_from_contact(contact), start, end))
    dates.update(
        d for d in parse_one_time_visits(field_of(contact, "one_time_visits")) if start <= d <= end
    )
    return sorted(dates)


@dataclass
class VisitAssignment:
    contact: Any
    date: date
    source: str


def _by_name(assignment: VisitAssignment) -> str:
    return (field_of(assignment.contact, "name") or "").casefold()


def assignments_between(contacts: list, start: date, end: date) -> dict[date, list[VisitAssignment]]:
    """Group every visit in [start, end] by date"""
    by_date: dict[date, list[VisitAssignment]] = {}

    for contact in contacts:
        if not is_active(contact):
            continue

        recurring = set(expand_occurrences(schedule_from_contact(contact), start, end))
        one_time = {
            d
            for d in parse_one_time_visits(field_of(contact, "one_time_visits"))
            if start <= d <= end
        }

        for day in sorted(recurring | one_time):
            source = SOURCE_RECURRING if day in recurring else SOURCE_ONE_TIME
            by_date.setdefault(day, []).append(VisitAssignment(contact, day, source))

    for assignments in by_date.values():
        assignments.sort(key=_by_name)
    return dict(sorted(by_date.items()))


def assignments_for_date(contacts: list, day: date) -> list[VisitAssignment]:
    return assignments_between(contacts, day, day).get(day, [])


def _format_long_date(value: date) -> str:
    return f"{value:%b} {value.day}, {value.year}"


def scheduled_days_badge(days: Any) -> str:
    """Short badge text, e.g. 'Mon, Wed, Fri'"""
    return ", ".join(DAY_SHORT_NAMES[d] for d in parse_days(days))


def format_recurring_schedule(
    days: Any,
    interval: Optional[int] = 1,
    end_type: Optional[str] = None,
    end_date: Any = None,
    end_occurrences: Optional[int] = None,
) -> str:
    """Human-readable schedule, e.g. 'Every 2 weeks on Tue, Thu (until Jan 5, 2026)'"""
    badge = scheduled_days_badge(days)
    if not badge:
        return "No schedule"

    interval = interval or 1
    if interval == 1:
        text = f"Every week on {badge}"
    else:
        text = f"Every {interval} weeks on {badge}"

    until = to_date(end_date)
    if end_type == END_DATE and until:
        text += f" (until {_format_long_date(until)})"
    elif end_type == END_OCCURRENCES and end_occurrences:
        text += f" ({end_occurrences} times)"

    return text


def describe_contact_schedule(contact: Any) -> str:
    return format_recurring_schedule(
        field_of(contact, "scheduled_days"),
        field_of(contact, "repeat_interval"),
        field_of(contact, "schedule_end_type"),
        field_of(contact, "schedule_end_date"),
        field_of(contact, "schedule_end_occurrences"),
    )
