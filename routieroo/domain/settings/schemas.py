"""Settings domain schemas"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field, field_validator

from ...shared.validators import (
    CALLING_SERVICES,
    DISTANCE_UNITS,
    EVENT_DURATION_MODES,
    validate_choice,
    validate_email,
    validate_hex_color,
)


class PreferencesUpdate(BaseModel):
    """Only the fields present in the request are changed"""

    preferredCallingService: Optional[str] = None
    distanceUnit: Optional[str] = None
    defaultStartingPoint: Optional[str] = None
    defaultStopDuration: Optional[int] = Field(None, ge=1, le=480)
    eventDurationMode: Optional[str] = None
    autoArchiveDays: Optional[int] = Field(None, ge=1, le=365)
    defaultStopType: Optional[str] = Field(None, max_length=100)
    defaultStopTypeColor: Optional[str] = None
    enableDateReminders: Optional[bool] = None
    reminderIntervals: Optional[list[int]] = None
    schedulingEmail: Optional[str] = None

    @field_validator("preferredCallingService")
    @classmethod
    def validate_calling_service(cls, v):
        return validate_choice(v, CALLING_SERVICES, "preferredCallingService")

    @field_validator("distanceUnit")
    @classmethod
    def validate_unit(cls, v):
        return validate_choice(v, DISTANCE_UNITS, "distanceUnit")

    @field_validator("eventDurationMode")
    @classmethod
    def validate_mode(cls, v):
        return validate_choice(v, EVENT_DURATION_MODES, "eventDurationMode")

    @field_validator("defaultStopTypeColor")
    @classmethod
    def validate_color(cls, v):
        return validate_hex_color(v)

    @field_validator("reminderIntervals")
    @classmethod
    def validate_intervals(cls, v):
        if v is None:
            return v
        if any(days < 0 or days > 365 for days in v):
            raise ValueError("Reminder intervals must be between 0 and 365 days")
        return sorted(set(v), reverse=True)

    @field_validator("schedulingEmail")
    @classmethod
    def validate_scheduling_email(cls, v):
        return validate_email(v) if v else v


class PreferencesResponse(BaseModel):
    preferredCallingService: str
    distanceUnit: str
    defaultStartingPoint: Optional[str] = None
    defaultStopDuration: int
    eventDurationMode: str
    autoArchiveDays: Optional[int] = None
    defaultStopType: Optional[str] = None
    defaultStopTypeColor: Optional[str] = None
    enableDateReminders: bool
    reminderIntervals: list[int]
    schedulingEmail: Optional[str] = None


class StartingPointCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    address: str = Field(..., min_length=1)


class StartingPointUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    address: Optional[str] = Field(None, min_length=1)


class StartingPointResponse(BaseModel):
    id: int
    name: str
    address: str
    createdAt: Optional[datetime] = None


class StopTypeCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    color: str
    isDefault: bool = False

    @field_validator("color")
    @classmethod
    def validate_color(cls, v):
        return validate_hex_color(v)


class StopTypeUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    color: Optional[str] = None
    isDefault: Optional[bool] = None

    @field_validator("color")
    @classmethod
    def validate_color(cls, v):
        return validate_hex_color(v)


class StopTypeResponse(BaseModel):
    id: int
    name: str
    color: str
    isDefault: bool


class CommentOptionCreate(BaseModel):
    option: str = Field(..., min_length=1, max_length=255)


class CommentOptionResponse(BaseModel):
    id: int
    option: str


class ImportantDateTypeCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)


class ImportantDateTypeResponse(BaseModel):
    id: int
    name: str


class FolderCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    color: Optional[str] = None

    @field_validator("color")
    @classmethod
    def validate_color(cls, v):
        return validate_hex_color(v)


class FolderUpdate(FolderCreate):
    name: Optional[str] = Field(None, min_length=1, max_length=255)


class FolderResponse(BaseModel):
    id: int
    name: str
    color: Optional[str] = None
    createdAt: Optional[datetime] = None
