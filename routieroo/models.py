import uuid

from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    Date,
    DateTime,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from .database import Base


def generate_share_token():
    """Generate a UUID4 token for public route links"""
    return str(uuid.uuid4())


class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    firebase_uid = Column(String(255), unique=True, index=True, nullable=False)
    full_name = Column(String(255), nullable=True)
    email = Column(String(320), index=True, nullable=True)
    role = Column(String(20), default="user", nullable=False)  # user, admin

    # Preferences
    preferred_calling_service = Column(String(20), default="phone", nullable=False)
    distance_unit = Column(String(10), default="km", nullable=False)  # km, miles
    default_starting_point = Column(Text, nullable=True)
    default_stop_duration = Column(Integer, default=30, nullable=False)  # minutes
    event_duration_mode = Column(String(20), default="stop_only", nullable=False)
    auto_archive_days = Column(Integer, nullable=True)  # None = never auto-archive
    default_stop_type = Column(String(100), nullable=True)
    default_stop_type_color = Column(String(7), nullable=True)

    # Important date reminders
    enable_date_reminders = Column(Boolean, default=False, nullable=False)
    reminder_intervals = Column(JSON, nullable=True)  # days before, e.g. [30, 10, 5]
    scheduling_email = Column(String(320), nullable=True)

    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())
    last_signed_in = Column(DateTime, server_default=func.now())

    contacts = relationship("Contact", back_populates="user", cascade="all, delete-orphan")
    routes = relationship("Route", back_populates="user", cascade="all, delete-orphan")


class Contact(Base):
    """A person or place the user visits, cached from Google or imported"""

    __tablename__ = "contacts"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    google_resource_name = Column(String(255), nullable=True)

    name = Column(String(255), nullable=True)
    email = Column(String(320), nullable=True)
    address = Column(Text, nullable=True)  # Primary formatted address
    addresses = Column(JSON, nullable=True)  # [{type, formattedValue, isPrimary, latitude, longitude}]
    phone_numbers = Column(JSON, nullable=True)  # [{value, label}]
    photo_url = Column(Text, nullable=True)
    labels = Column(JSON, nullable=True)  # ["VIP", ...]
    is_active = Column(Boolean, default=True, nullable=False)

    # Recurring schedule
    scheduled_days = Column(JSON, nullable=True)  # ["Monday", "Thursday"]
    repeat_interval = Column(Integer, default=1, nullable=False)  # weeks
    schedule_start_date = Column(Date, nullable=True)
    schedule_end_type = Column(String(20), default="never", nullable=False)  # never, date, occurrences
    schedule_end_date = Column(Date, nullable=True)
    schedule_end_occurrences = Column(Integer, nullable=True)
    one_time_visits = Column(JSON, nullable=True)  # ["2026-03-14", ...]

    important_dates = Column(JSON, nullable=True)  # [{type, date}]
    comments = Column(JSON, nullable=True)  # [{option, customText}]

    # Address change tracking (local edits not yet pushed to Google)
    original_address = Column(Text, nullable=True)
    address_modified = Column(Boolean, default=False, nullable=False)
    address_modified_at = Column(DateTime, nullable=True)

    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    user = relationship("User", back_populates="contacts")


class Folder(Base):
    __tablename__ = "folders"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    name = Column(String(255), nullable=False)
    color = Column(String(7), nullable=True)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())


class Route(Base):
    """A generated driving route"""

    __tablename__ = "routes"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    name = Column(String(255), nullable=False)
    notes = Column(Text, nullable=True)

    share_id = Column(String(32), unique=True, nullable=False, index=True)
    is_public = Column(Boolean, default=False, nullable=False)
    share_token = Column(String(36), unique=True, nullable=True, index=True)
    is_publicly_accessible = Column(Boolean, default=False, nullable=False)
    shared_at = Column(DateTime, nullable=True)

    total_distance = Column(Integer, nullable=True)  # meters
    total_duration = Column(Integer, nullable=True)  # seconds
    optimized = Column(Boolean, default=True, nullable=False)
    folder_id = Column(Integer, ForeignKey("folders.id"), nullable=True)
    starting_point_address = Column(Text, nullable=True)
    distance_unit = Column(String(10), default="km", nullable=False)

    scheduled_date = Column(DateTime, nullable=True)
    google_calendar_id = Column(String(500), nullable=True)
    completed_at = Column(DateTime, nullable=True)
    is_archived = Column(Boolean, default=False, nullable=False)
    archived_at = Column(DateTime, nullable=True)

    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    user = relationship("User", back_populates="routes")
    waypoints = relationship(
        "RouteWaypoint",
        back_populates="route",
        cascade="all, delete-orphan",
        order_by="RouteWaypoint.position",
    )
    route_notes = relationship("RouteNote", back_populates="route", cascade="all, delete-orphan")


class RouteWaypoint(Base):
    """An individual stop in a route"""

    __tablename__ = "route_waypoints"

    id = Column(Integer, primary_key=True, index=True)
    route_id = Column(Integer, ForeignKey("routes.id"), nullable=False, index=True)
    contact_id = Column(Integer, ForeignKey("contacts.id"), nullable=True)
    position = Column(Integer, nullable=False)  # 0 = origin, last = destination
    execution_order = Column(Integer, nullable=True)

    contact_name = Column(String(255), nullable=True)
    address = Column(Text, nullable=False, default="")
    latitude = Column(String(32), nullable=True)
    longitude = Column(String(32), nullable=True)
    phone_numbers = Column(JSON, nullable=True)
    contact_labels = Column(JSON, nullable=True)
    important_dates = Column(JSON, nullable=True)
    comments = Column(JSON, nullable=True)
    stop_type = Column(String(100), default="visit", nullable=False)
    stop_color = Column(String(7), default="#3b82f6", nullable=False)

    # Execution: pending -> in_progress -> complete | missed
    status = Column(String(20), default="pending", nullable=False, index=True)
    completed_at = Column(DateTime, nullable=True)
    missed_reason = Column(Text, nullable=True)
    execution_notes = Column(Text, nullable=True)
    needs_reschedule = Column(Boolean, default=False, nullable=False)
    rescheduled_date = Column(DateTime, nullable=True)

    # Gap stops are time blocks (lunch, admin) with no address
    is_gap_stop = Column(Boolean, default=False, nullable=False)
    gap_duration = Column(Integer, nullable=True)  # minutes

    calendar_event_id = Column(String(255), nullable=True)
    created_at = Column(DateTime, server_default=func.now())

    route = relationship("Route", back_populates="waypoints")


class RouteNote(Base):
    __tablename__ = "route_notes"

    id = Column(Integer, primary_key=True, index=True)
    route_id = Column(Integer, ForeignKey("routes.id"), nullable=False, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    note = Column(Text, nullable=False)
    created_at = Column(DateTime, server_default=func.now())

    route = relationship("Route", back_populates="route_notes")


class StopType(Base):
    __tablename__ = "stop_types"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    name = Column(String(100), nullable=False)
    color = Column(String(7), nullable=False)
    is_default = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime, server_default=func.now())


class CommentOption(Base):
    __tablename__ = "comment_options"
    __table_args__ = (UniqueConstraint("user_id", "option", name="uq_comment_option_user"),)

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    option = Column(String(255), nullable=False)
    created_at = Column(DateTime, server_default=func.now())


class ImportantDateType(Base):
    __tablename__ = "important_date_types"
    __table_args__ = (UniqueConstraint("user_id", "name", name="uq_important_date_type_user"),)

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    name = Column(String(100), nullable=False)
    created_at = Column(DateTime, server_default=func.now())


class SavedStartingPoint(Base):
    __tablename__ = "saved_starting_points"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    name = Column(String(100), nullable=False)
    address = Column(Text, nullable=False)
    created_at = Column(DateTime, server_default=func.now())


class GoogleCalendarIntegration(Base):
    """One connected Google account per user; tokens are Fernet-encrypted"""

    __tablename__ = "google_calendar_integrations"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, unique=True)
    access_token = Column(Text, nullable=False)
    refresh_token = Column(Text)  # Google omits it on repeat consent
    token_expires_at = Column(DateTime, nullable=False)
    google_user_email = Column(String(255))
    google_calendar_id = Column(String(500))  # calendar that route events are written to
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())
