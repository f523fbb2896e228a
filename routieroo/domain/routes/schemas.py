"""Route domain schemas - Pydantic models for validation"""

from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, Field, field_validator

from ...shared.validators import DISTANCE_UNITS, validate_choice, validate_hex_color
from .progress import WAYPOINT_STATUSES


class WaypointInput(BaseModel):
    """A stop supplied when creating a route"""

    contactId: Optional[int] = None
    contactName: Optional[str] = None
    address: str = Field(..., min_length=1)
    phoneNumbers: Optional[list[dict[str, Any]]] = None
    contactLabels: Optional[list[str]] = None
    importantDates: Optional[list[dict[str, Any]]] = None
    comments: Optional[list[dict[str, Any]]] = None
    stopType: Optional[str] = Field(None, max_length=100)
    stopColor: Optional[str] = None

    @field_validator("stopColor")
    @classmethod
    def validate_color(cls, v):
        return validate_hex_color(v)


class RouteCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    notes: Optional[str] = None
    waypoints: list[WaypointInput] = Field(..., min_length=2)
    isPublic: bool = False
    optimizeRoute: bool = True
    folderId: Optional[int] = None
    startingPointAddress: Optional[str] = None
    distanceUnit: Optional[str] = None
    scheduledDate: Optional[datetime] = None

    @field_validator("distanceUnit")
    @classmethod
    def validate_unit(cls, v):
        return validate_choice(v, DISTANCE_UNITS, "distanceUnit")


class RouteUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    notes: Optional[str] = None
    folderId: Optional[int] = None
    startingPointAddress: Optional[str] = None
    scheduledDate: Optional[datetime] = None


class MoveToFolderRequest(BaseModel):
    folderId: Optional[int] = None


class WaypointStatusUpdate(BaseModel):
    status: str
    missedReason: Optional[str] = None
    executionNotes: Optional[str] = None

    @field_validator("status")
    @classmethod
    def validate_status(cls, v):
        return validate_choice(v, WAYPOINT_STATUSES, "status")


class WaypointOrderUpdate(BaseModel):
    newOrder: int = Field(..., ge=0)


class WaypointReorderRequest(BaseModel):
    """Full list of waypoint ids in their new order"""

    waypointIds: list[int] = Field(..., min_length=1)


class RescheduleRequest(BaseModel):
    rescheduledDate: datetime


class AddWaypointRequest(BaseModel):
    contactId: Optional[int] = None
    contactName: Optional[str] = None
    address: str = Field(..., min_length=1)
    phoneNumbers: Optional[list[dict[str, Any]]] = None
    stopType: Optional[str] = Field(None, max_length=100)
    stopColor: Optional[str] = None

    @field_validator("stopColor")
    @classmethod
    def validate_color(cls, v):
        return validate_hex_color(v)


class AddGapStopRequest(BaseModel):
    label: str = Field("Break", min_length=1, max_length=255)
    durationMinutes: int = Field(..., ge=1, le=24 * 60)
    position: Optional[int] = Field(None, ge=0)


class WaypointAddressUpdate(BaseModel):
    address: str = Field(..., min_length=1)
    contactName: Optional[str] = None


class PublicStatusUpdate(WaypointStatusUpdate):
    waypointId: int


class PublicRescheduleRequest(RescheduleRequest):
    waypointId: int


class RouteNoteCreate(BaseModel):
    note: str = Field(..., min_length=1)


class WaypointEventsRequest(BaseModel):
    startTime: datetime
    calendarId: Optional[str] = None


class PhoneLink(BaseModel):
    value: str
    label: Optional[str] = None
    display: str
    callLink: Optional[str] = None
    textLink: Optional[str] = None


class WaypointResponse(BaseModel):
    id: int
    position: int
    executionOrder: Optional[int] = None
    contactId: Optional[int] = None
    contactName: Optional[str] = None
    address: str
    latitude: Optional[str] = None
    longitude: Optional[str] = None
    phoneNumbers: list[PhoneLink] = []
    contactLabels: list[str] = []
    importantDates: list[dict[str, Any]] = []
    comments: list[dict[str, Any]] = []
    stopType: str
    stopColor: str
    status: str
    completedAt: Optional[datetime] = None
    missedReason: Optional[str] = None
    executionNotes: Optional[str] = None
    needsReschedule: bool = False
    rescheduledDate: Optional[datetime] = None
    isGapStop: bool = False
    gapDuration: Optional[int] = None
    calendarEventId: Optional[str] = None


class RouteResponse(BaseModel):
    id: int
    name: str
    notes: Optional[str] = None
    shareId: str
    isPublic: bool
    shareToken: Optional[str] = None
    isPubliclyAccessible: bool = False
    totalDistance: Optional[int] = None
    totalDuration: Optional[int] = None
    distanceDisplay: str
    durationDisplay: str
    optimized: bool
    folderId: Optional[int] = None
    startingPointAddress: Optional[str] = None
    distanceUnit: str
    scheduledDate: Optional[datetime] = None
    googleCalendarId: Optional[str] = None
    completedAt: Optional[datetime] = None
    isArchived: bool = False
    archivedAt: Optional[datetime] = None
    createdAt: Optional[datetime] = None
    waypointCount: int = 0
    completedWaypointCount: int = 0


class RouteDetailResponse(BaseModel):
    route: RouteResponse
    waypoints: list[WaypointResponse]
    progress: dict[str, int]
    estimatedMinutes: int  # drive time plus time at every stop


class RouteCreatedResponse(BaseModel):
    routeId: int
    shareId: str
    totalDistance: int
    totalDuration: int


class MissedWaypointResponse(WaypointResponse):
    routeId: int
    routeName: str


class RouteNoteResponse(BaseModel):
    id: int
    routeId: int
    note: str
    createdAt: Optional[datetime] = None
