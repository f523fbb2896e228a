"""
Important date reminders

Contacts carry important dates ({type, date}). A reminder is due when the
number of whole days until the date is one of the user's reminder intervals,
or when the date has already passed.
"""
import logging
from dataclasses import dataclass
from datetime import date
from typing import Optional

from sqlalchemy.orm import Session

from ..config import DEFAULT_REMINDER_INTERVALS, FRONTEND_URL
from ..domain.scheduling.recurrence import to_date
from ..email_service import send_email
from ..email_templates import date_reminder_template
from ..models import Contact, User
from ..shared.addresses import load_json_list

logger = logging.getLogger(__name__)


@dataclass
class DateReminder:
    contact_id: int
    contact_name: str
    contact_email: Optional[str]
    date_type: str
    date: str
    days_until: int

    @property
    def is_past_due(self) -> bool:
        return self.days_until < 0


def reminder_intervals_for(user: User) -> list[int]:
    intervals = [i for i in load_json_list(user.reminder_intervals) if isinstance(i, int)]
    return intervals or list(DEFAULT_REMINDER_INTERVALS)


def days_until(value, today: date) -> Optional[int]:
    target = to_date(value)
    if target is None:
        return None
    return (target - today).days


def get_upcoming_date_reminders(db: Session, user: User, today: Optional[date] = None) -> list[DateReminder]:
    if not user.enable_date_reminders:
        return []

    today = today or date.today()
    intervals = reminder_intervals_for(user)
    reminders = []

    contacts = db.query(Contact).filter(Contact.user_id == user.id).all()
    for contact in contacts:
        for entry in load_json_list(contact.important_dates):
            if not isinstance(entry, dict):
                continue
            remaining = days_until(entry.get("date"), today)
            if remaining is None:
                continue
            if remaining in intervals or remaining < 0:
                reminders.append(
                    DateReminder(
                        contact_id=contact.id,
                        contact_name=contact.name or "Unknown",
                        contact_email=contact.email,
                        date_type=entry.get("type") or "Date",
                        date=entry.get("date"),
                        days_until=remaining,
                    )
                )

    return reminders


def build_reminder_message(reminder: DateReminder) -> tuple[str, str]:
    """(subject, body) for a reminder email"""
    if reminder.is_past_due:
        subject = f"PAST DUE: {reminder.date_type} for {reminder.contact_name}"
        message = (
            f"{reminder.contact_name}'s {reminder.date_type} ({reminder.date}) "
            f"is past due by {abs(reminder.days_until)} days."
        )
    else:
        subject = f"Reminder: {reminder.date_type} for {reminder.contact_name} in {reminder.days_until} days"
        message = (
            f"{reminder.contact_name}'s {reminder.date_type} is coming up on "
            f"{reminder.date} ({reminder.days_until} days from now)."
        )
    return subject, message


async def send_date_reminder(reminder: DateReminder, scheduling_email: Optional[str]) -> bool:
    recipients = [r for r in (reminder.contact_email, scheduling_email) if r]
    if not recipients:
        logger.info(f"ℹ️ No recipients for reminder about {reminder.contact_name}, skipping")
        return False

    subject, message = build_reminder_message(reminder)
    await send_email(
        to=recipients,
        subject=subject,
        mjml_content=date_reminder_template(subject, message, reminder.is_past_due, f"{FRONTEND_URL}/contacts"),
    )
    return True


async def process_user_reminders(db: Session, user: User, today: Optional[date] = None) -> dict:
    if not user.enable_date_reminders:
        return {"processed": 0, "sent": 0}

    reminders = get_upcoming_date_reminders(db, user, today)
    sent = 0
    for reminder in reminders:
        try:
            if await send_date_reminder(reminder, user.scheduling_email):
                sent += 1
        except Exception as e:
            logger.error(f"❌ Failed to send reminder for {reminder.contact_name}: {str(e)}")

    logger.info(f"🔔 User {user.id}: {len(reminders)} reminders processed, {sent} sent")
    return {"processed": len(reminders), "sent": sent}
