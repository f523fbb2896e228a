"""Address validation proxy.

Keeps the Google Maps key server-side; the frontend validates addresses
before saving contacts and stops.
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field

from ..auth import get_current_user
from ..models import User
from ..services import google_maps_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/geocoding", tags=["Geocoding"])


class ValidateAddressRequest(BaseModel):
    address: str = Field(..., max_length=500)


class ValidateAddressResponse(BaseModel):
    isValid: bool
    formattedAddress: Optional[str] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    highQuality: Optional[bool] = None
    suggestions: Optional[list[str]] = None
    error: Optional[str] = None


@router.post("/validate", response_model=ValidateAddressResponse)
async def validate(data: ValidateAddressRequest, current_user: User = Depends(get_current_user)):
    """Geocode an address and report whether it can be routed to"""
    result = await google_maps_service.validate_address(data.address)
    if not result.get("isValid"):
        logger.info(f"📍 Address rejected for user {current_user.id}: {result.get('error')}")
    return result
