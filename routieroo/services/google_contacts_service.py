"""
Google Contacts (People API) Service
Fetches the user's connections and contact groups and maps them onto contact fields
"""
import logging
from typing import Any, Dict, List, Optional

import httpx

logger = logging.getLogger(__name__)

PEOPLE_API = "https://people.googleapis.com/v1"
PERSON_FIELDS = "names,emailAddresses,addresses,phoneNumbers,photos,memberships"
PAGE_SIZE = 1000

GOOGLE_CONTACTS_SCOPES = [
    "https://www.googleapis.com/auth/contacts",
    "https://www.googleapis.com/auth/calendar.events",
    "https://www.googleapis.com/auth/calendar.readonly",
]


class GoogleContactsError(Exception):
    """Raised when the People API rejects a request"""


async def fetch_google_contacts(access_token: str) -> List[Dict[str, Any]]:
    """All connections, following nextPageToken until exhausted"""
    contacts = []
    page_token = None

    async with httpx.AsyncClient(timeout=30.0) as client:
        while True:
            params = {"personFields": PERSON_FIELDS, "pageSize": PAGE_SIZE}
            if page_token:
                params["pageToken"] = page_token

            response = await client.get(
                f"{PEOPLE_API}/people/me/connections",
                headers={"Authorization": f"Bearer {access_token}"},
                params=params,
            )
            if response.status_code != 200:
                raise GoogleContactsError(f"Failed to fetch contacts: {response.text}")

            data = response.json()
            contacts.extend(data.get("connections") or [])

            page_token = data.get("nextPageToken")
            if not page_token:
                break

    logger.info(f"📇 Fetched {len(contacts)} Google connections")
    return contacts


async def fetch_contact_group_names(access_token: str) -> Dict[str, str]:
    """Map of contactGroups/<id> to display name; empty on failure"""
    try:
        async with httpx.AsyncClient(timeout=30.0) as client:
            response = await client.get(
                f"{PEOPLE_API}/contactGroups",
                headers={"Authorization": f"Bearer {access_token}"},
            )
    except httpx.HTTPError as e:
        logger.error(f"❌ Error fetching contact groups: {str(e)}")
        return {}

    if response.status_code != 200:
        logger.error(f"❌ Failed to fetch contact groups: {response.text}")
        return {}

    return {
        group["resourceName"]: group["name"]
        for group in response.json().get("contactGroups") or []
        if group.get("resourceName") and group.get("name")
    }


def _first(items: Optional[list], key: str) -> Optional[str]:
    if items:
        return items[0].get(key) or None
    return None


def parse_google_contact(person: Dict[str, Any], group_names: Optional[Dict[str, str]] = None) -> Dict[str, Any]:
    addresses = [
        {
            "type": (a.get("type") or "other").lower(),
            "formattedValue": a.get("formattedValue"),
            "isPrimary": bool((a.get("metadata") or {}).get("primary")),
        }
        for a in person.get("addresses") or []
        if a.get("formattedValue")
    ]

    memberships = [
        m["contactGroupMembership"]["contactGroupResourceName"]
        for m in person.get("memberships") or []
        if (m.get("contactGroupMembership") or {}).get("contactGroupResourceName")
    ]
    labels = [(group_names or {}).get(name, name) for name in memberships]

    return {
        "google_resource_name": person["resourceName"],
        "name": _first(person.get("names"), "displayName") or "Unknown",
        "email": _first(person.get("emailAddresses"), "value"),
        "address": _first(person.get("addresses"), "formattedValue"),
        "addresses": addresses,
        "phone_numbers": [
            {"value": p.get("value") or "", "label": p.get("type") or "other"}
            for p in person.get("phoneNumbers") or []
        ],
        "photo_url": _first(person.get("photos"), "url"),
        "labels": labels,
    }


def parse_google_contacts(
    people: List[Dict[str, Any]], group_names: Optional[Dict[str, str]] = None
) -> List[Dict[str, Any]]:
    """Keep real people (people/ resources) that have a name"""
    return [
        parse_google_contact(person, group_names)
        for person in people
        if (person.get("resourceName") or "").startswith("people/") and person.get("names")
    ]
