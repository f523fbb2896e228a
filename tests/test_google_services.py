"""Google API response parsing, request building and Firebase claim checks"""

from datetime import datetime
from urllib.parse import parse_qs, urlparse

import pytest
from fastapi import HTTPException

from routieroo import auth
from routieroo.services.google_calendar_service import (
    build_auth_url,
    build_event_body,
    decrypt_token,
    encrypt_token,
)
from routieroo.services.google_contacts_service import GOOGLE_CONTACTS_SCOPES, parse_google_contacts
from routieroo.services.google_maps_service import (
    apply_optimized_order,
    build_google_maps_url,
    build_route_request,
    parse_geocode_response,
    parse_route_response,
)


class TestRoutesApi:
    def test_request_with_intermediates(self):
        body = build_route_request(["A", "B", "C", "D"], optimize=True)
        assert body["origin"] == {"address": "A"}
        assert body["destination"] == {"address": "D"}
        assert body["intermediates"] == [{"address": "B"}, {"address": "C"}]
        assert body["optimizeWaypointOrder"] is True

    def test_two_stops_never_optimize(self):
        body = build_route_request(["A", "B"], optimize=True)
        assert "intermediates" not in body
        assert "optimizeWaypointOrder" not in body

    def test_parse_response(self):
        result = parse_route_response(
            {
                "routes": [
                    {
                        "distanceMeters": 5300,
                        "duration": "1260s",
                        "legs": [{"startLocation": {"latLng": {"latitude": 32.7, "longitude": -97.1}}}],
                        "optimizedIntermediateWaypointIndex": [1, 0],
                        "polyline": {"encodedPolyline": "abc"},
                    }
                ]
            }
        )
        assert result.distance_meters == 5300
        assert result.duration_seconds == 1260
        assert result.optimized_order == [1, 0]
        assert result.polyline == "abc"
        assert result.leg_start(0) == ("32.7", "-97.1")
        assert result.leg_end(0) == (None, None)
        assert result.leg_start(3) == (None, None)

    def test_no_route(self):
        with pytest.raises(HTTPException) as exc:
            parse_route_response({"routes": []})
        assert exc.value.status_code == 404

    def test_apply_optimized_order(self):
        assert apply_optimized_order(["o", "a", "b", "c", "d"], [2, 0, 1]) == ["o", "c", "a", "b", "d"]

    def test_invalid_order_ignored(self):
        assert apply_optimized_order(["o", "a", "b", "d"], [0, 0]) == ["o", "a", "b", "d"]
        assert apply_optimized_order(["o", "d"], [0]) == ["o", "d"]

    def test_maps_url(self):
        url = build_google_maps_url(["1 Main St", "2 Oak Ave", "3 Elm St"])
        query = parse_qs(urlparse(url).query)
        assert query["origin"] == ["1 Main St"]
        assert query["destination"] == ["3 Elm St"]
        assert query["waypoints"] == ["2 Oak Ave"]
        assert query["travelmode"] == ["driving"]

    def test_maps_url_needs_two(self):
        with pytest.raises(ValueError):
            build_google_maps_url(["1 Main St"])


class TestGeocoding:
    def test_valid_address(self):
        result = parse_geocode_response(
            {
                "status": "OK",
                "results": [
                    {
                        "formatted_address": "1 Main St, Arlington, TX 76010, USA",
                        "geometry": {"location": {"lat": 32.7, "lng": -97.1}, "location_type": "ROOFTOP"},
                    }
                ],
            }
        )
        assert result["isValid"] is True
        assert result["highQuality"] is True
        assert result["suggestions"] is None
        assert result["latitude"] == 32.7

    def test_ambiguous_address_suggestions(self):
        result = parse_geocode_response(
            {
                "status": "OK",
                "results": [
                    {"formatted_address": "Main St, A", "geometry": {"location_type": "APPROXIMATE"}},
                    {"formatted_address": "Main St, B", "geometry": {}},
                ],
            }
        )
        assert result["highQuality"] is False
        assert result["suggestions"] == ["Main St, A", "Main St, B"]

    def test_not_found(self):
        assert parse_geocode_response({"status": "ZERO_RESULTS", "results": []})["isValid"] is False

    def test_api_error(self):
        result = parse_geocode_response({"status": "REQUEST_DENIED"})
        assert result == {"isValid": False, "error": "Unable to validate address: REQUEST_DENIED"}


class TestPeopleApi:
    def test_parse_contacts(self):
        people = [
            {
                "resourceName": "people/c1",
                "names": [{"displayName": "Gail Force"}],
                "emailAddresses": [{"value": "gail@example.com"}],
                "addresses": [
                    {"type": "Home", "formattedValue": "1 Home Rd", "metadata": {"primary": True}},
                    {"formattedValue": "2 Work Rd"},
                ],
                "phoneNumbers": [{"value": "555-0100", "type": "mobile"}],
                "memberships": [
                    {"contactGroupMembership": {"contactGroupResourceName": "contactGroups/abc"}},
                    {"contactGroupMembership": {"contactGroupResourceName": "contactGroups/zzz"}},
                ],
            },
            {"resourceName": "people/c2"},
            {"resourceName": "otherContacts/c3", "names": [{"displayName": "Other"}]},
        ]

        parsed = parse_google_contacts(people, {"contactGroups/abc": "Clients"})

        assert len(parsed) == 1
        contact = parsed[0]
        assert contact["google_resource_name"] == "people/c1"
        assert contact["address"] == "1 Home Rd"
        assert contact["addresses"] == [
            {"type": "home", "formattedValue": "1 Home Rd", "isPrimary": True},
            {"type": "other", "formattedValue": "2 Work Rd", "isPrimary": False},
        ]
        assert contact["phone_numbers"] == [{"value": "555-0100", "label": "mobile"}]
        assert contact["labels"] == ["Clients", "contactGroups/zzz"]
        assert contact["photo_url"] is None

    def test_contacts_consent_covers_calendar(self):
        assert "https://www.googleapis.com/auth/contacts" in GOOGLE_CONTACTS_SCOPES
        assert "https://www.googleapis.com/auth/calendar.readonly" in GOOGLE_CONTACTS_SCOPES


class TestCalendarApi:
    def test_auth_url(self):
        url = build_auth_url("http://localhost/callback", "state-123", ["scope.a", "scope.b"])
        query = parse_qs(urlparse(url).query)
        assert query["redirect_uri"] == ["http://localhost/callback"]
        assert query["scope"] == ["scope.a scope.b"]
        assert query["access_type"] == ["offline"]
        assert query["state"] == ["state-123"]

    def test_token_encryption(self):
        encrypted = encrypt_token("refresh-token")
        assert encrypted != "refresh-token"
        assert decrypt_token(encrypted) == "refresh-token"

    def test_event_body(self):
        body = build_event_body("Route", datetime(2026, 3, 2, 9), datetime(2026, 3, 2, 10), location="1 Main St")
        assert body["start"] == {"dateTime": "2026-03-02T09:00:00", "timeZone": "UTC"}
        assert body["location"] == "1 Main St"
        assert "description" not in body


class TestFirebaseClaims:
    NOW = 1_700_000_000

    @pytest.fixture(autouse=True)
    def project(self, monkeypatch):
        monkeypatch.setattr(auth, "FIREBASE_PROJECT_ID", "routieroo-test")

    def claims(self, **overrides):
        payload = {
            "aud": "routieroo-test",
            "iss": "https://securetoken.google.com/routieroo-test",
            "exp": self.NOW + 3600,
            "iat": self.NOW - 10,
            "auth_time": self.NOW - 10,
            "sub": "uid-1",
        }
        payload.update(overrides)
        return payload

    def test_valid(self):
        assert auth.check_token_claims(self.claims(), now=self.NOW)["sub"] == "uid-1"

    def test_clock_skew_allowed(self):
        auth.check_token_claims(self.claims(iat=self.NOW + 30), now=self.NOW)

    @pytest.mark.parametrize(
        "overrides",
        [
            {"aud": "other-project"},
            {"iss": "https://securetoken.google.com/other-project"},
            {"exp": NOW - 1},
            {"iat": NOW + 120},
        ],
    )
    def test_rejected(self, overrides):
        with pytest.raises(HTTPException) as exc:
            auth.check_token_claims(self.claims(**overrides), now=self.NOW)
        assert exc.value.status_code == 401

    def test_expired_header(self):
        with pytest.raises(HTTPException) as exc:
            auth.check_token_claims(self.claims(exp=self.NOW - 1), now=self.NOW)
        assert exc.value.headers == {"X-Token-Expired": "true"}

    def test_missing_auth_time(self):
        payload = self.claims()
        del payload["auth_time"]
        with pytest.raises(HTTPException):
            auth.check_token_claims(payload, now=self.NOW)
