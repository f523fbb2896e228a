"""pytest configuration

Shared fixtures: an in-memory database, an API client authenticated as a
test user, and fakes for the Google Maps calls.
"""

import os

os.environ.setdefault("SECRET_KEY", "test-secret-key")
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("DB_LOG_SLOW_QUERIES", "false")

import pytest
from fastapi import Depends
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from routieroo.auth import get_current_user
from routieroo.database import Base, get_db
from routieroo.main import app
from routieroo.models import Contact, User
from routieroo.services import google_maps_service
from routieroo.services.google_maps_service import RouteComputation

TEST_UID = "firebase-test-user"


@pytest.fixture
def engine():
    test_engine = create_engine(
        "sqlite://", connect_args={"check_same_thread": False}, poolclass=StaticPool
    )
    Base.metadata.create_all(bind=test_engine)
    yield test_engine
    Base.metadata.drop_all(bind=test_engine)
    test_engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db_session(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def user(db_session):
    test_user = User(firebase_uid=TEST_UID, email="owner@example.com", full_name="Test Owner")
    db_session.add(test_user)
    db_session.commit()
    db_session.refresh(test_user)
    return test_user


@pytest.fixture
def other_user(db_session):
    stranger = User(firebase_uid="someone-else", email="other@example.com")
    db_session.add(stranger)
    db_session.commit()
    db_session.refresh(stranger)
    return stranger


@pytest.fixture
def client(session_factory, user):
    """TestClient whose requests run as ``user`` against the test database"""

    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    def override_current_user(db: Session = Depends(get_db)):
        return db.query(User).filter(User.firebase_uid == TEST_UID).first()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_current_user] = override_current_user
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def fake_maps(monkeypatch):
    """
    Replace the Routes API with a deterministic fake.

    Every leg is 1000 m / 600 s; leg i starts at (i, -i) and ends at (i+1, -(i+1)).
    Set ``fake_maps["order"]`` to return an optimized intermediate order.
    """
    state = {"calls": [], "order": None}

    async def fake_compute_route(addresses, optimize=False):
        state["calls"].append({"addresses": list(addresses), "optimize": optimize})
        legs = [
            {
                "startLocation": {"latLng": {"latitude": i, "longitude": -i}},
                "endLocation": {"latLng": {"latitude": i + 1, "longitude": -(i + 1)}},
            }
            for i in range(len(addresses) - 1)
        ]
        order = state["order"] if optimize and state["order"] is not None else []
        return RouteComputation(
            distance_meters=1000 * len(legs),
            duration_seconds=600 * len(legs),
            legs=legs,
            optimized_order=order,
        )

    async def fake_validate_address(address):
        if "invalid" in address.lower():
            return {"isValid": False, "error": "Address not found"}
        return {
            "isValid": True,
            "formattedAddress": f"{address.strip()}, USA",
            "latitude": 32.7,
            "longitude": -97.1,
        }

    monkeypatch.setattr(google_maps_service, "compute_route", fake_compute_route)
    monkeypatch.setattr(google_maps_service, "validate_address", fake_validate_address)
    return state


@pytest.fixture
def make_contact(db_session, user):
    def _make(**fields):
        fields.setdefault("name", "Alice Smith")
        fields.setdefault("address", "100 Main St, Arlington, TX")
        contact = Contact(user_id=fields.pop("user_id", user.id), **fields)
        db_session.add(contact)
        db_session.commit()
        db_session.refresh(contact)
        return contact

    return _make


def route_payload(*addresses, **extra):
    payload = {
        "name": extra.pop("name", "Monday run"),
        "waypoints": [{"address": a, "contactName": f"Stop {i}"} for i, a in enumerate(addresses)],
        "optimizeRoute": extra.pop("optimizeRoute", False),
    }
    payload.update(extra)
    return payload


@pytest.fixture
def create_route(client, fake_maps):
    """Create a route through the API and return its detail JSON"""

    def _create(*addresses, **extra):
        if not addresses:
            addresses = ("1 Start Rd", "2 Oak Ave", "3 Elm St", "4 End Blvd")
        response = client.post("/routes", json=route_payload(*addresses, **extra))
        assert response.status_code == 200, response.text
        return client.get(f"/routes/{response.json()['routeId']}").json()

    return _create
