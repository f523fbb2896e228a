"""
Google Calendar Integration Routes
Handles the OAuth connection used for route events and the calendar view
"""

import logging

from cryptography.fernet import InvalidToken
from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from ..auth import get_current_user
from ..config import GOOGLE_CLIENT_ID, GOOGLE_CLIENT_SECRET, GOOGLE_REDIRECT_URI
from ..database import get_db
from ..models import User
from ..services import google_calendar_service
from ..services.google_calendar_service import GOOGLE_CALENDAR_SCOPES

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/google-calendar", tags=["google-calendar"])


class CalendarCallbackRequest(BaseModel):
    code: str = Field(..., min_length=1)


@router.get("/status")
async def get_google_calendar_status(
    current_user: User = Depends(get_current_user), db: Session = Depends(get_db)
):
    """Get Google Calendar connection status"""
    integration = google_calendar_service.get_integration(db, current_user.id)

    if not integration:
        return {"connected": False, "userEmail": None, "calendarId": None}

    return {
        "connected": True,
        "userEmail": integration.google_user_email,
        "calendarId": integration.google_calendar_id,
    }


@router.get("/connect")
async def initiate_google_calendar_oauth(current_user: User = Depends(get_current_user)):
    """Initiate Google Calendar OAuth flow"""
    if not GOOGLE_CLIENT_ID or not GOOGLE_CLIENT_SECRET:
        raise HTTPException(status_code=500, detail="Google Calendar not configured")

    auth_url = google_calendar_service.build_auth_url(
        GOOGLE_REDIRECT_URI, current_user.firebase_uid, GOOGLE_CALENDAR_SCOPES
    )
    logger.info(f"Google Calendar OAuth initiated for user: {current_user.email}")
    return {"authorizationUrl": auth_url}


@router.post("/callback")
async def handle_google_calendar_callback(
    data: CalendarCallbackRequest,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Handle Google Calendar OAuth callback"""
    tokens = await google_calendar_service.exchange_code(data.code, GOOGLE_REDIRECT_URI)
    if not tokens or not tokens.get("access_token"):
        raise HTTPException(status_code=400, detail="Failed to exchange authorization code")

    google_email = await google_calendar_service.get_google_email(tokens["access_token"])
    google_calendar_service.save_integration(db, current_user.id, tokens, google_email)

    logger.info(f"✅ Google Calendar connected for user: {current_user.email}")
    return {
        "success": True,
        "message": "Google Calendar connected successfully",
        "userEmail": google_email,
    }


@router.get("/calendars")
async def list_google_calendars(
    current_user: User = Depends(get_current_user), db: Session = Depends(get_db)
):
    """Calendars the user can add route events to"""
    integration = google_calendar_service.get_integration(db, current_user.id)
    if not integration:
        raise HTTPException(status_code=400, detail="Google Calendar not connected")

    access_token = await google_calendar_service.get_valid_access_token(integration, db)
    if not access_token:
        raise HTTPException(status_code=401, detail="Google Calendar authorization expired, please reconnect")

    calendars = await google_calendar_service.list_calendars(access_token)
    return [
        {
            "id": c.get("id"),
            "summary": c.get("summary"),
            "primary": bool(c.get("primary")),
            "backgroundColor": c.get("backgroundColor"),
        }
        for c in calendars
    ]


@router.post("/disconnect")
async def disconnect_google_calendar(
    current_user: User = Depends(get_current_user), db: Session = Depends(get_db)
):
    """Disconnect Google Calendar integration"""
    integration = google_calendar_service.get_integration(db, current_user.id)
    if not integration:
        raise HTTPException(status_code=404, detail="Google Calendar not connected")

    try:
        await google_calendar_service.revoke_token(google_calendar_service.decrypt_token(integration.access_token))
    except InvalidToken:
        logger.warning(f"⚠️ Could not decrypt stored token for user {current_user.id}, skipping revoke")

    db.delete(integration)
    db.commit()

    logger.info(f"✅ Google Calendar disconnected for user: {current_user.email}")
    return {"success": True, "message": "Google Calendar disconnected"}
