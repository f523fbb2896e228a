"""Contact service - Business logic for contacts, imports and Google sync"""

import csv
import logging
from datetime import datetime
from io import StringIO
from typing import Any, Optional

from fastapi import HTTPException
from sqlalchemy.orm import Session

from ...config import GOOGLE_CONTACTS_REDIRECT_URI, GOOGLE_MAPS_API_KEY
from ...models import Contact, User
from ...services import google_calendar_service, google_contacts_service, google_maps_service
from ...services.google_contacts_service import GOOGLE_CONTACTS_SCOPES, GoogleContactsError
from ...shared.addresses import get_primary_address, normalize_primary
from ...shared.labels import extract_and_sort_labels
from .repository import ContactRepository
from .schemas import ContactUpdate, ImportContactRow

logger = logging.getLogger(__name__)

CSV_NAME_COLUMNS = ("name", "full name", "contact name")
CSV_EMAIL_COLUMNS = ("email", "email address", "e-mail")
CSV_ADDRESS_COLUMNS = ("address", "street address", "full address")
CSV_PHONE_COLUMNS = ("phone", "phone number", "mobile")


def _pick(row: dict[str, Any], columns: tuple) -> Optional[str]:
    lowered = {(key or "").strip().lower(): value for key, value in row.items()}
    for column in columns:
        value = lowered.get(column)
        if value and value.strip():
            return value.strip()
    return None


def _is_blank(row: dict[str, Any]) -> bool:
    return not any(isinstance(value, str) and value.strip() for value in row.values())


def parse_contacts_csv(text: str) -> tuple[list[ImportContactRow], list[dict]]:
    """
    Read an uploaded CSV into import rows plus errors for rows without a name.

    Header names are matched case-insensitively and every row keeps its
    1-based data row number. Blank rows are ignored; an empty address is
    kept so the row is reported as failed during import.
    """
    rows = []
    errors = []
    for row_number, row in enumerate(csv.DictReader(StringIO(text.lstrip("\ufeff"))), start=1):
        if _is_blank(row):
            continue
        name = _pick(row, CSV_NAME_COLUMNS)
        if not name:
            errors.append({"row": row_number, "name": None, "error": "Missing name"})
            continue
        phone = _pick(row, CSV_PHONE_COLUMNS)
        rows.append(
            ImportContactRow(
                name=name,
                email=_pick(row, CSV_EMAIL_COLUMNS),
                address=_pick(row, CSV_ADDRESS_COLUMNS) or "",
                phoneNumbers=[{"value": phone, "label": "mobile"}] if phone else None,
                rowNumber=row_number,
            )
        )
    return rows, errors


class ContactService:
    """Service layer for contact business logic"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = ContactRepository()

    def get_contacts(self, user: User) -> list[Contact]:
        """Get all contacts for a user, ordered by name"""
        return self.repo.get_user_contacts(self.db, user.id)

    def get_contact(self, contact_id: int, user: User) -> Contact:
        contact = self.repo.get_by_id(self.db, contact_id, user.id)
        if not contact:
            raise HTTPException(status_code=404, detail="Contact not found")
        return contact

    def update_contact(self, contact_id: int, data: ContactUpdate, user: User) -> Contact:
        """Update a contact; address edits on synced contacts are tracked"""
        contact = self.get_contact(contact_id, user)

        if data.name is not None:
            contact.name = data.name
        if data.email is not None:
            contact.email = data.email or None
        if data.phoneNumbers is not None:
            contact.phone_numbers = [p.model_dump() for p in data.phoneNumbers]
        if data.labels is not None:
            contact.labels = data.labels
        if data.importantDates is not None:
            contact.important_dates = [
                {"type": d.type, "date": d.date.isoformat()} for d in data.importantDates
            ]
        if data.comments is not None:
            contact.comments = [c.model_dump() for c in data.comments]

        new_address = data.address
        if data.addresses is not None:
            addresses = normalize_primary([a.model_dump() for a in data.addresses])
            contact.addresses = addresses
            primary = get_primary_address(addresses)
            if new_address is None and primary:
                new_address = primary.get("formattedValue")

        if new_address is not None and new_address != contact.address:
            self._track_address_change(contact, new_address)
            contact.address = new_address or None

        logger.info(f"✏️ Contact {contact.id} updated for user {user.id}")
        return self.repo.update(self.db, contact)

    def _track_address_change(self, contact: Contact, new_address: str) -> None:
        # Only contacts that came from Google need pushing back
        if not contact.google_resource_name:
            return
        if not contact.address_modified:
            contact.original_address = contact.address
        contact.address_modified = new_address != contact.original_address
        contact.address_modified_at = datetime.utcnow() if contact.address_modified else None

    def toggle_active(self, contact_id: int, is_active: bool, user: User) -> Contact:
        contact = self.get_contact(contact_id, user)
        contact.is_active = is_active
        return self.repo.update(self.db, contact)

    def get_labels(self, user: User) -> list[str]:
        return extract_and_sort_labels(self.repo.get_user_contacts(self.db, user.id))

    # ========================================================================
    # IMPORT
    # ========================================================================

    async def import_contacts(
        self, rows: list[ImportContactRow], user: User, parse_errors: Optional[list[dict]] = None
    ) -> dict:
        """Geocode and store each row; failed rows are reported, not fatal"""
        if not GOOGLE_MAPS_API_KEY:
            raise HTTPException(status_code=500, detail="Google Maps API key not configured")

        imported = 0
        errors = list(parse_errors or [])
        for index, row in enumerate(rows):
            row_number = row.rowNumber or index + 1
            try:
                result = await google_maps_service.validate_address(row.address)
            except Exception as e:
                logger.error(f"❌ Geocoding failed for import row {row_number}: {str(e)}")
                errors.append({"row": row_number, "name": row.name, "error": "Geocoding failed"})
                continue

            if not result.get("isValid"):
                errors.append({"row": row_number, "name": row.name, "error": "Invalid address"})
                continue

            formatted = result.get("formattedAddress") or row.address
            contact = Contact(
                user_id=user.id,
                name=row.name,
                email=row.email,
                address=formatted,
                addresses=[
                    {
                        "type": "home",
                        "formattedValue": formatted,
                        "isPrimary": True,
                        "latitude": result.get("latitude"),
                        "longitude": result.get("longitude"),
                    }
                ],
                phone_numbers=[p.model_dump() for p in row.phoneNumbers] if row.phoneNumbers else None,
                is_active=True,
            )
            self.db.add(contact)
            imported += 1

        self.db.commit()
        errors.sort(key=lambda error: error["row"])
        logger.info(f"📥 Imported {imported} contacts for user {user.id}, {len(errors)} failed")
        return {"success": True, "imported": imported, "failed": len(errors), "errors": errors}

    # ========================================================================
    # GOOGLE CONTACTS SYNC
    # ========================================================================

    def get_google_auth_url(self, user: User) -> str:
        return google_calendar_service.build_auth_url(
            GOOGLE_CONTACTS_REDIRECT_URI, user.firebase_uid, GOOGLE_CONTACTS_SCOPES
        )

    async def sync_google_contacts(self, code: str, user: User) -> dict:
        """Finish the OAuth flow and upsert the user's Google contacts"""
        tokens = await google_calendar_service.exchange_code(code, GOOGLE_CONTACTS_REDIRECT_URI)
        if not tokens or not tokens.get("access_token"):
            raise HTTPException(status_code=400, detail="Failed to exchange authorization code")

        access_token = tokens["access_token"]
        # The same consent grants calendar access
        google_email = await google_calendar_service.get_google_email(access_token)
        google_calendar_service.save_integration(self.db, user.id, tokens, google_email)

        try:
            group_names = await google_contacts_service.fetch_contact_group_names(access_token)
            people = await google_contacts_service.fetch_google_contacts(access_token)
        except GoogleContactsError as e:
            logger.error(f"❌ Google contacts sync failed for user {user.id}: {str(e)}")
            raise HTTPException(status_code=502, detail="Failed to fetch Google contacts") from e

        parsed = google_contacts_service.parse_google_contacts(people, group_names)
        created, updated = self.upsert_google_contacts(parsed, user)
        logger.info(f"🔄 Synced Google contacts for user {user.id}: {created} new, {updated} updated")
        return {"success": True, "count": len(parsed), "created": created, "updated": updated}

    def upsert_google_contacts(self, parsed: list[dict[str, Any]], user: User) -> tuple[int, int]:
        """Match by resource name; locally edited addresses and schedules are kept"""
        created = updated = 0
        for data in parsed:
            contact = self.repo.get_by_resource_name(self.db, user.id, data["google_resource_name"])
            if contact is None:
                contact = Contact(user_id=user.id, google_resource_name=data["google_resource_name"], is_active=True)
                self.db.add(contact)
                created += 1
            else:
                updated += 1

            contact.name = data["name"]
            contact.email = data.get("email")
            contact.phone_numbers = data.get("phone_numbers")
            contact.photo_url = data.get("photo_url")
            contact.labels = data.get("labels")
            if not contact.address_modified:
                contact.address = data.get("address")
                contact.addresses = data.get("addresses")

        self.db.commit()
        return created, updated

    # ========================================================================
    # CHANGED ADDRESSES
    # ========================================================================

    def get_changed_addresses(self, user: User) -> list[Contact]:
        return self.repo.get_changed_addresses(self.db, user.id)

    def mark_address_synced(self, contact_id: int, user: User) -> Contact:
        contact = self.get_contact(contact_id, user)
        self._clear_modified(contact)
        return self.repo.update(self.db, contact)

    def mark_all_addresses_synced(self, user: User) -> int:
        contacts = self.repo.get_changed_addresses(self.db, user.id)
        for contact in contacts:
            self._clear_modified(contact)
        self.db.commit()
        return len(contacts)

    @staticmethod
    def _clear_modified(contact: Contact) -> None:
        contact.address_modified = False
        contact.address_modified_at = None
        contact.original_address = None
