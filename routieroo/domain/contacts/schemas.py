"""Contact domain schemas - Pydantic models for validation"""

from datetime import date, datetime
from typing import Any, Optional

from pydantic import BaseModel, Field, field_validator

from ...shared.validators import validate_email
from ..routes.schemas import PhoneLink


class PhoneNumberInput(BaseModel):
    value: str = Field(..., min_length=1)
    label: str = "other"


class AddressInput(BaseModel):
    type: str = "other"
    formattedValue: str = Field(..., min_length=1)
    isPrimary: bool = False
    latitude: Optional[float] = None
    longitude: Optional[float] = None


class ImportantDateInput(BaseModel):
    type: str = Field(..., min_length=1)
    date: date


class CommentInput(BaseModel):
    option: str = Field(..., min_length=1)
    customText: Optional[str] = None


class ContactUpdate(BaseModel):
    """Schema for updating a contact; omitted fields are left alone"""

    name: Optional[str] = Field(None, min_length=1, max_length=255)
    email: Optional[str] = None
    address: Optional[str] = None
    addresses: Optional[list[AddressInput]] = None
    phoneNumbers: Optional[list[PhoneNumberInput]] = None
    labels: Optional[list[str]] = None
    importantDates: Optional[list[ImportantDateInput]] = None
    comments: Optional[list[CommentInput]] = None

    @field_validator("email")
    @classmethod
    def validate_email_field(cls, v):
        return validate_email(v) if v else v


class ToggleActiveRequest(BaseModel):
    isActive: bool


class ImportContactRow(BaseModel):
    name: str = Field(..., min_length=1)
    email: Optional[str] = None
    address: str
    phoneNumbers: Optional[list[PhoneNumberInput]] = None
    rowNumber: Optional[int] = Field(None, ge=1)  # 1-based data row in the source file


class ImportContactsRequest(BaseModel):
    contacts: list[ImportContactRow] = Field(..., min_length=1)


class ImportRowError(BaseModel):
    row: int
    name: Optional[str] = None
    error: str


class ImportResult(BaseModel):
    success: bool = True
    imported: int
    failed: int
    errors: list[ImportRowError]


class GoogleCallbackRequest(BaseModel):
    code: str = Field(..., min_length=1)


class ContactResponse(BaseModel):
    id: int
    googleResourceName: Optional[str] = None
    name: Optional[str] = None
    email: Optional[str] = None
    address: Optional[str] = None
    addresses: list[dict[str, Any]] = []
    primaryAddress: Optional[dict[str, Any]] = None
    phoneNumbers: list[PhoneLink] = []
    photoUrl: Optional[str] = None
    labels: list[str] = []
    isActive: bool
    scheduledDays: list[str] = []
    scheduledDaysBadge: str = ""
    repeatInterval: int = 1
    scheduleStartDate: Optional[date] = None
    scheduleEndType: str = "never"
    scheduleEndDate: Optional[date] = None
    scheduleEndOccurrences: Optional[int] = None
    scheduleSummary: str
    oneTimeVisits: list[date] = []
    hasSchedule: bool = False
    importantDates: list[dict[str, Any]] = []
    comments: list[dict[str, Any]] = []
    addressModified: bool = False
    originalAddress: Optional[str] = None


class ChangedAddressResponse(BaseModel):
    id: int
    name: Optional[str] = None
    originalAddress: Optional[str] = None
    currentAddress: Optional[str] = None
    modifiedAt: Optional[datetime] = None
