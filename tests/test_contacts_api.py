"""Contact API tests: editing, address tracking, schedules, imports and Google sync"""

import pytest

from routieroo.domain.contacts import service as contact_service_module
from routieroo.domain.contacts.service import parse_contacts_csv
from routieroo.models import Contact, GoogleCalendarIntegration
from routieroo.services import google_calendar_service, google_contacts_service


@pytest.fixture
def maps_key(monkeypatch):
    monkeypatch.setattr(contact_service_module, "GOOGLE_MAPS_API_KEY", "test-key")


class TestContactEndpoints:
    def test_list_sorted_by_name(self, client, make_contact):
        make_contact(name="Zed")
        make_contact(name="Amy", phone_numbers=[{"value": "817-555-1234", "label": "mobile"}])

        contacts = client.get("/contacts").json()
        assert [c["name"] for c in contacts] == ["Amy", "Zed"]
        assert contacts[0]["phoneNumbers"][0]["display"] == "(817) 555-1234"

    def test_calling_service_shapes_links(self, client, db_session, user, make_contact):
        user.preferred_calling_service = "whatsapp"
        db_session.commit()
        contact = make_contact(phone_numbers=[{"value": "(817) 555-1234"}])

        phone = client.get(f"/contacts/{contact.id}").json()["phoneNumbers"][0]
        assert phone["callLink"] == "https://wa.me/8175551234"

    def test_other_users_contact_hidden(self, client, make_contact, other_user):
        contact = make_contact(user_id=other_user.id)
        assert client.get(f"/contacts/{contact.id}").status_code == 404
        assert client.get("/contacts").json() == []

    def test_labels(self, client, make_contact):
        make_contact(labels=["Weekly", "🌟 VIP"])
        make_contact(name="Bob", labels=["contactGroups/Family", "myContacts"])

        assert client.get("/contacts/labels").json() == ["🌟 VIP", "Family", "Weekly"]

    def test_update_fields(self, client, make_contact):
        contact = make_contact()
        response = client.patch(
            f"/contacts/{contact.id}",
            json={
                "name": "Alice Jones",
                "email": "Alice@Example.com",
                "importantDates": [{"type": "Birthday", "date": "2026-05-01"}],
                "comments": [{"option": "Dog on site", "customText": "Friendly"}],
            },
        )
        body = response.json()
        assert body["name"] == "Alice Jones"
        assert body["email"] == "alice@example.com"
        assert body["importantDates"] == [{"type": "Birthday", "date": "2026-05-01"}]
        assert body["comments"][0]["option"] == "Dog on site"

    def test_invalid_email(self, client, make_contact):
        contact = make_contact()
        assert client.patch(f"/contacts/{contact.id}", json={"email": "nope"}).status_code == 422

    def test_primary_address_fills_address(self, client, make_contact):
        contact = make_contact()
        body = client.patch(
            f"/contacts/{contact.id}",
            json={
                "addresses": [
                    {"type": "work", "formattedValue": "1 Office Pkwy"},
                    {"type": "home", "formattedValue": "2 House Ln", "isPrimary": True},
                ]
            },
        ).json()
        assert body["address"] == "2 House Ln"
        assert body["primaryAddress"]["formattedValue"] == "2 House Ln"

    def test_toggle_active(self, client, make_contact):
        contact = make_contact()
        body = client.patch(f"/contacts/{contact.id}/active", json={"isActive": False}).json()
        assert body["isActive"] is False


class TestAddressTracking:
    def test_synced_contact_edit_is_tracked(self, client, make_contact):
        contact = make_contact(google_resource_name="people/c1", address="1 Old Rd")

        body = client.patch(f"/contacts/{contact.id}", json={"address": "2 New Rd"}).json()
        assert body["addressModified"] is True
        assert body["originalAddress"] == "1 Old Rd"

        changed = client.get("/contacts/changed-addresses").json()
        assert changed[0]["currentAddress"] == "2 New Rd"
        assert changed[0]["originalAddress"] == "1 Old Rd"

    def test_reverting_clears_flag(self, client, make_contact):
        contact = make_contact(google_resource_name="people/c1", address="1 Old Rd")
        client.patch(f"/contacts/{contact.id}", json={"address": "2 New Rd"})
        client.patch(f"/contacts/{contact.id}", json={"address": "3 Other Rd"})

        body = client.patch(f"/contacts/{contact.id}", json={"address": "1 Old Rd"}).json()
        assert body["addressModified"] is False
        assert client.get("/contacts/changed-addresses").json() == []

    def test_local_contact_not_tracked(self, client, make_contact):
        contact = make_contact(address="1 Old Rd")
        body = client.patch(f"/contacts/{contact.id}", json={"address": "2 New Rd"}).json()
        assert body["addressModified"] is False

    def test_mark_synced(self, client, make_contact):
        first = make_contact(google_resource_name="people/c1", address="1 Old Rd")
        second = make_contact(name="Bob", google_resource_name="people/c2", address="5 Old Rd")
        for contact in (first, second):
            client.patch(f"/contacts/{contact.id}", json={"address": "9 Moved Rd"})

        single = client.post(f"/contacts/{first.id}/mark-synced").json()
        assert single["addressModified"] is False
        assert single["originalAddress"] is None

        result = client.post("/contacts/changed-addresses/mark-all-synced").json()
        assert result == {"success": True, "count": 1}
        assert client.get("/contacts/changed-addresses").json() == []


class TestSchedules:
    def test_set_recurring_schedule(self, client, make_contact):
        contact = make_contact()
        body = client.put(
            f"/contacts/{contact.id}/schedule",
            json={"scheduledDays": ["friday", "Monday"], "repeatInterval": 2, "scheduleStartDate": "2026-01-05"},
        ).json()

        assert body["scheduledDays"] == ["Monday", "Friday"]
        assert body["scheduledDaysBadge"] == "Mon, Fri"
        assert body["scheduleSummary"] == "Every 2 weeks on Mon, Fri"
        assert body["hasSchedule"] is True

    def test_end_date_required(self, client, make_contact):
        contact = make_contact()
        response = client.put(
            f"/contacts/{contact.id}/schedule", json={"scheduledDays": ["Monday"], "scheduleEndType": "date"}
        )
        assert response.status_code == 400

    def test_end_before_start(self, client, make_contact):
        contact = make_contact()
        response = client.put(
            f"/contacts/{contact.id}/schedule",
            json={
                "scheduledDays": ["Monday"],
                "scheduleStartDate": "2026-02-01",
                "scheduleEndType": "date",
                "scheduleEndDate": "2026-01-01",
            },
        )
        assert response.status_code == 400

    def test_occurrence_end(self, client, make_contact):
        contact = make_contact()
        body = client.put(
            f"/contacts/{contact.id}/schedule",
            json={
                "scheduledDays": ["Thursday"],
                "scheduleStartDate": "2026-01-01",
                "scheduleEndType": "occurrences",
                "scheduleEndOccurrences": 13,
                "scheduleEndDate": "2026-06-01",
            },
        ).json()
        assert body["scheduleEndOccurrences"] == 13
        assert body["scheduleEndDate"] is None
        assert body["scheduleSummary"] == "Every week on Thu (13 times)"

    def test_invalid_day(self, client, make_contact):
        contact = make_contact()
        response = client.put(f"/contacts/{contact.id}/scheduled-days", json={"scheduledDays": ["Funday"]})
        assert response.status_code == 422

    def test_clearing_days_resets_recurrence(self, client, make_contact):
        contact = make_contact(scheduled_days=["Monday"], repeat_interval=3)
        body = client.put(f"/contacts/{contact.id}/scheduled-days", json={"scheduledDays": []}).json()
        assert body["repeatInterval"] == 1
        assert body["hasSchedule"] is False

    def test_setting_days_sets_start(self, client, make_contact):
        contact = make_contact()
        body = client.put(f"/contacts/{contact.id}/scheduled-days", json={"scheduledDays": ["Tuesday"]}).json()
        assert body["scheduleStartDate"] is not None

    def test_one_time_visits(self, client, make_contact):
        contact = make_contact()
        client.post(f"/contacts/{contact.id}/one-time-visits", json={"date": "2026-04-10"})
        client.post(f"/contacts/{contact.id}/one-time-visits", json={"date": "2026-04-02"})
        body = client.post(f"/contacts/{contact.id}/one-time-visits", json={"date": "2026-04-10"}).json()
        assert body["oneTimeVisits"] == ["2026-04-02", "2026-04-10"]

        body = client.delete(f"/contacts/{contact.id}/one-time-visits/2026-04-02").json()
        assert body["oneTimeVisits"] == ["2026-04-10"]

        missing = client.delete(f"/contacts/{contact.id}/one-time-visits/2026-04-02")
        assert missing.status_code == 404


class TestImport:
    def test_import_rows(self, client, fake_maps, maps_key):
        response = client.post(
            "/contacts/import",
            json={
                "contacts": [
                    {"name": "Dana", "address": "5 Pine St", "phoneNumbers": [{"value": "8175550000"}]},
                    {"name": "Eve", "address": "invalid place"},
                ]
            },
        )
        assert response.json() == {
            "success": True,
            "imported": 1,
            "failed": 1,
            "errors": [{"row": 2, "name": "Eve", "error": "Invalid address"}],
        }

        contact = client.get("/contacts").json()[0]
        assert contact["address"] == "5 Pine St, USA"
        assert contact["primaryAddress"]["latitude"] == 32.7
        assert contact["isActive"] is True

    def test_import_needs_maps_key(self, client, fake_maps, monkeypatch):
        monkeypatch.setattr(contact_service_module, "GOOGLE_MAPS_API_KEY", None)
        response = client.post("/contacts/import", json={"contacts": [{"name": "Dana", "address": "5 Pine St"}]})
        assert response.status_code == 500

    def test_csv_upload(self, client, fake_maps, maps_key):
        csv_text = "Full Name,Street Address,Phone\nFay,6 Oak St,8175551111\n,7 No Name St,\n"
        response = client.post("/contacts/import/csv", files={"file": ("contacts.csv", csv_text, "text/csv")})

        assert response.json()["imported"] == 1
        assert response.json()["errors"] == [{"row": 2, "name": None, "error": "Missing name"}]
        contact = client.get("/contacts").json()[0]
        assert contact["name"] == "Fay"
        assert contact["phoneNumbers"][0]["label"] == "mobile"

    def test_csv_error_rows_match_file_rows(self, client, fake_maps, maps_key):
        csv_text = "name,address\n,1 Nameless Rd\nBob,invalid place\nCy,8 Ash St\n"
        response = client.post("/contacts/import/csv", files={"file": ("contacts.csv", csv_text, "text/csv")})

        assert response.json() == {
            "success": True,
            "imported": 1,
            "failed": 2,
            "errors": [
                {"row": 1, "name": None, "error": "Missing name"},
                {"row": 2, "name": "Bob", "error": "Invalid address"},
            ],
        }

    def test_csv_without_rows(self, client, maps_key):
        response = client.post("/contacts/import/csv", files={"file": ("c.csv", "Name,Address\n", "text/csv")})
        assert response.status_code == 400

    def test_csv_not_utf8(self, client, maps_key):
        response = client.post("/contacts/import/csv", files={"file": ("c.csv", b"\xff\xfe\x00N", "text/csv")})
        assert response.status_code == 400

    def test_parse_csv_strips_bom(self):
        rows, errors = parse_contacts_csv("\ufeffName,Address,Email\nGus,1 Elm,gus@example.com\nHal,,\n")
        assert [(r.name, r.address, r.email, r.rowNumber) for r in rows] == [
            ("Gus", "1 Elm", "gus@example.com", 1),
            ("Hal", "", None, 2),
        ]
        assert errors == []

    def test_parse_csv_skips_blank_rows_keeps_numbering(self):
        rows, errors = parse_contacts_csv("Name,Address\n,\n,9 Elm\nIvy,2 Oak\n")
        assert [(r.name, r.rowNumber) for r in rows] == [("Ivy", 3)]
        assert errors == [{"row": 2, "name": None, "error": "Missing name"}]


PEOPLE = [
    {
        "resourceName": "people/c1",
        "names": [{"displayName": "Ida Updated"}],
        "addresses": [{"formattedValue": "1 Google Way", "type": "home"}],
        "memberships": [{"contactGroupMembership": {"contactGroupResourceName": "contactGroups/abc"}}],
    },
    {
        "resourceName": "people/c2",
        "names": [{"displayName": "Jo"}],
        "addresses": [{"formattedValue": "2 Google Way"}],
        "phoneNumbers": [{"value": "817 555 2222", "type": "mobile"}],
    },
    {"resourceName": "otherContacts/c3", "names": [{"displayName": "Not a connection"}]},
]


class TestGoogleSync:
    @pytest.fixture
    def google(self, monkeypatch):
        async def fake_exchange(code, redirect_uri):
            return {"access_token": "at", "refresh_token": "rt", "expires_in": 3600} if code == "good" else None

        async def fake_email(access_token):
            return "owner@gmail.com"

        async def fake_groups(access_token):
            return {"contactGroups/abc": "Family"}

        async def fake_people(access_token):
            return PEOPLE

        monkeypatch.setattr(google_calendar_service, "exchange_code", fake_exchange)
        monkeypatch.setattr(google_calendar_service, "get_google_email", fake_email)
        monkeypatch.setattr(google_contacts_service, "fetch_contact_group_names", fake_groups)
        monkeypatch.setattr(google_contacts_service, "fetch_google_contacts", fake_people)

    def test_auth_url(self, client):
        url = client.get("/contacts/google/auth-url").json()["url"]
        assert url.startswith("https://accounts.google.com/o/oauth2/v2/auth?")
        assert "state=firebase-test-user" in url
        assert "contacts" in url

    def test_sync_upserts_and_keeps_local_address(self, client, google, make_contact, db_session, user):
        existing = make_contact(
            name="Ida",
            google_resource_name="people/c1",
            address="Local edit Rd",
            address_modified=True,
            original_address="Old Google Rd",
            scheduled_days=["Monday"],
        )

        result = client.post("/contacts/google/callback", json={"code": "good"}).json()
        assert result == {"success": True, "count": 2, "created": 1, "updated": 1}

        db_session.expire_all()
        ida = db_session.get(Contact, existing.id)
        assert ida.name == "Ida Updated"
        assert ida.address == "Local edit Rd"
        assert ida.labels == ["Family"]
        assert ida.scheduled_days == ["Monday"]

        jo = db_session.query(Contact).filter(Contact.google_resource_name == "people/c2").one()
        assert jo.address == "2 Google Way"
        assert jo.phone_numbers == [{"value": "817 555 2222", "label": "mobile"}]

        integration = db_session.query(GoogleCalendarIntegration).filter_by(user_id=user.id).one()
        assert integration.google_user_email == "owner@gmail.com"
        assert google_calendar_service.decrypt_token(integration.access_token) == "at"

    def test_bad_code(self, client, google):
        response = client.post("/contacts/google/callback", json={"code": "bad"})
        assert response.status_code == 400
