"""
Google Calendar Service
Handles OAuth tokens, calendar listing, and event creation/deletion
"""
import base64
import hashlib
import logging
from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional
from urllib.parse import urlencode

import httpx
from cryptography.fernet import Fernet, InvalidToken
from sqlalchemy.orm import Session

from ..config import GOOGLE_CLIENT_ID, GOOGLE_CLIENT_SECRET, SECRET_KEY
from ..models import GoogleCalendarIntegration

logger = logging.getLogger(__name__)

GOOGLE_AUTH_URL = "https://accounts.google.com/o/oauth2/v2/auth"
GOOGLE_TOKEN_URL = "https://oauth2.googleapis.com/token"  # noqa: S105 - OAuth endpoint URL
GOOGLE_REVOKE_URL = "https://oauth2.googleapis.com/revoke"
GOOGLE_USERINFO_URL = "https://www.googleapis.com/oauth2/v2/userinfo"
GOOGLE_CALENDAR_API = "https://www.googleapis.com/calendar/v3"

GOOGLE_CALENDAR_SCOPES = [
    "https://www.googleapis.com/auth/calendar",
    "https://www.googleapis.com/auth/calendar.events",
    "https://www.googleapis.com/auth/userinfo.email",
]


def get_cipher() -> Fernet:
    """Fernet cipher keyed from SECRET_KEY"""
    key = base64.urlsafe_b64encode(hashlib.sha256(SECRET_KEY.encode()).digest())
    return Fernet(key)


def encrypt_token(token: str) -> str:
    return get_cipher().encrypt(token.encode()).decode()


def decrypt_token(token: str) -> str:
    return get_cipher().decrypt(token.encode()).decode()


def build_auth_url(redirect_uri: str, state: str, scopes: List[str]) -> str:
    """Google consent screen URL requesting offline access"""
    params = {
        "client_id": GOOGLE_CLIENT_ID,
        "redirect_uri": redirect_uri,
        "response_type": "code",
        "scope": " ".join(scopes),
        "access_type": "offline",
        "prompt": "consent",
        "state": state,
    }
    return f"{GOOGLE_AUTH_URL}?{urlencode(params)}"


async def exchange_code(code: str, redirect_uri: str) -> Optional[Dict[str, Any]]:
    """Exchange an authorization code for tokens; None on failure"""
    async with httpx.AsyncClient() as client:
        response = await client.post(
            GOOGLE_TOKEN_URL,
            data={
                "code": code,
                "client_id": GOOGLE_CLIENT_ID,
                "client_secret": GOOGLE_CLIENT_SECRET,
                "redirect_uri": redirect_uri,
                "grant_type": "authorization_code",
            },
        )

    if response.status_code != 200:
        logger.error(f"❌ Token exchange failed: {response.text}")
        return None
    return response.json()


async def get_google_email(access_token: str) -> Optional[str]:
    async with httpx.AsyncClient() as client:
        response = await client.get(
            GOOGLE_USERINFO_URL, headers={"Authorization": f"Bearer {access_token}"}
        )
    if response.status_code != 200:
        logger.warning(f"⚠️ Failed to get Google user info: {response.text}")
        return None
    return response.json().get("email")


async def revoke_token(token: str) -> None:
    try:
        async with httpx.AsyncClient() as client:
            await client.post(GOOGLE_REVOKE_URL, params={"token": token})
    except httpx.HTTPError as e:
        logger.warning(f"⚠️ Failed to revoke Google token: {str(e)}")


def get_integration(db: Session, user_id: int) -> Optional[GoogleCalendarIntegration]:
    return (
        db.query(GoogleCalendarIntegration)
        .filter(GoogleCalendarIntegration.user_id == user_id)
        .first()
    )


def save_integration(
    db: Session,
    user_id: int,
    tokens: Dict[str, Any],
    google_email: Optional[str] = None,
) -> GoogleCalendarIntegration:
    """Create or update the user's integration with freshly issued tokens"""
    expires_at = datetime.utcnow() + timedelta(seconds=tokens.get("expires_in", 3600))
    integration = get_integration(db, user_id)

    if integration is None:
        integration = GoogleCalendarIntegration(user_id=user_id, google_calendar_id="primary")
        db.add(integration)

    integration.access_token = encrypt_token(tokens["access_token"])
    # Google only returns a refresh token on first consent
    if tokens.get("refresh_token"):
        integration.refresh_token = encrypt_token(tokens["refresh_token"])
    integration.token_expires_at = expires_at
    if google_email:
        integration.google_user_email = google_email

    db.commit()
    db.refresh(integration)
    return integration


async def get_valid_access_token(integration: GoogleCalendarIntegration, db: Session) -> Optional[str]:
    """
    Get a valid access token, refreshing if necessary
    Returns None if refresh fails
    """
    try:
        # Check if token is expired or about to expire (within 5 minutes)
        if integration.token_expires_at > datetime.utcnow() + timedelta(minutes=5):
            return decrypt_token(integration.access_token)

        if not integration.refresh_token:
            logger.warning(f"⚠️ No refresh token stored for user {integration.user_id}")
            return None

        logger.info("🔄 Google token expired, refreshing...")
        async with httpx.AsyncClient() as client:
            response = await client.post(
                GOOGLE_TOKEN_URL,
                data={
                    "client_id": GOOGLE_CLIENT_ID,
                    "client_secret": GOOGLE_CLIENT_SECRET,
                    "refresh_token": decrypt_token(integration.refresh_token),
                    "grant_type": "refresh_token",
                },
            )

        if response.status_code != 200:
            logger.error(f"❌ Token refresh failed: {response.text}")
            return None

        tokens = response.json()
        new_access_token = tokens.get("access_token")
        if not new_access_token:
            logger.error("❌ No access token in refresh response")
            return None

        integration.access_token = encrypt_token(new_access_token)
        integration.token_expires_at = datetime.utcnow() + timedelta(seconds=tokens.get("expires_in", 3600))
        db.commit()

        logger.info("✅ Google token refreshed successfully")
        return new_access_token

    except (InvalidToken, httpx.HTTPError) as e:
        logger.error(f"❌ Error getting valid access token: {str(e)}")
        return None


async def list_calendars(access_token: str) -> List[Dict[str, Any]]:
    async with httpx.AsyncClient() as client:
        response = await client.get(
            f"{GOOGLE_CALENDAR_API}/users/me/calendarList",
            headers={"Authorization": f"Bearer {access_token}"},
        )

    if response.status_code != 200:
        logger.error(f"❌ Failed to list calendars: {response.text}")
        return []
    return response.json().get("items", [])


async def list_events(
    access_token: str, calendar_id: str, time_min: datetime, time_max: datetime
) -> List[Dict[str, Any]]:
    """Expanded (single) events of one calendar between time_min and time_max"""
    async with httpx.AsyncClient() as client:
        response = await client.get(
            f"{GOOGLE_CALENDAR_API}/calendars/{calendar_id}/events",
            headers={"Authorization": f"Bearer {access_token}"},
            params={
                "timeMin": time_min.isoformat() + "Z",
                "timeMax": time_max.isoformat() + "Z",
                "singleEvents": "true",
                "orderBy": "startTime",
                "maxResults": 2500,
            },
        )

    if response.status_code != 200:
        logger.warning(f"⚠️ Failed to fetch events for calendar {calendar_id}: {response.status_code}")
        return []

    items = response.json().get("items", [])
    for item in items:
        item["calendarId"] = calendar_id
    return items


async def get_all_calendar_events(
    access_token: str, time_min: datetime, time_max: datetime
) -> List[Dict[str, Any]]:
    """Events from every calendar of the account; a failing calendar is skipped"""
    events = []
    for calendar in await list_calendars(access_token):
        calendar_id = calendar.get("id")
        if not calendar_id:
            continue
        try:
            events.extend(await list_events(access_token, calendar_id, time_min, time_max))
        except httpx.HTTPError as e:
            logger.warning(f"⚠️ Skipping calendar {calendar_id}: {str(e)}")
    return events


def build_event_body(
    summary: str,
    start: datetime,
    end: datetime,
    location: Optional[str] = None,
    description: Optional[str] = None,
    color_id: Optional[str] = None,
) -> Dict[str, Any]:
    event_data = {
        "summary": summary,
        "start": {"dateTime": start.isoformat(), "timeZone": "UTC"},
        "end": {"dateTime": end.isoformat(), "timeZone": "UTC"},
    }
    if location:
        event_data["location"] = location
    if description:
        event_data["description"] = description
    if color_id:
        event_data["colorId"] = color_id
    return event_data


async def create_calendar_event(
    access_token: str, event_data: Dict[str, Any], calendar_id: str = "primary"
) -> Optional[str]:
    """
    Create a Google Calendar event
    Returns the Google Calendar event ID if successful, None otherwise
    """
    try:
        async with httpx.AsyncClient() as client:
            response = await client.post(
                f"{GOOGLE_CALENDAR_API}/calendars/{calendar_id}/events",
                headers={"Authorization": f"Bearer {access_token}"},
                json=event_data,
            )
    except httpx.HTTPError as e:
        logger.error(f"❌ Error creating calendar event: {str(e)}")
        return None

    if response.status_code not in [200, 201]:
        logger.error(f"❌ Failed to create calendar event: {response.text}")
        return None

    event_id = response.json().get("id")
    logger.info(f"✅ Google Calendar event created: {event_id}")
    return event_id
