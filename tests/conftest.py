"""Shared fixtures: an in-memory SQLite database, seeded profiles and a TestClient."""

import os
import uuid
from datetime import datetime, timedelta, timezone

os.environ["DATABASE_URL"] = "sqlite://"
os.environ["SUPABASE_JWT_SECRET"] = "test-jwt-secret"
os.environ["APP_ENV"] = "test"

import pytest
from fastapi.testclient import TestClient
from jose import jwt
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from fleetdesk.config import settings
from fleetdesk.database import Base, get_db
from fleetdesk.main import app
from fleetdesk.models import Booking, BookingStatus, Organization, Profile, UserRole, Vehicle
from fleetdesk.services.permissions import Actor

engine = create_engine(
    "sqlite://",
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestingSessionLocal = sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)

UTC = timezone.utc


def at(day: int, hour: int, minute: int = 0) -> datetime:
    """An instant in January 2099, far enough ahead that nothing is "in the past"."""
    return datetime(2099, 1, day, hour, minute, tzinfo=UTC)


def make_token(profile_id, expires_in: timedelta = timedelta(hours=1), **claims) -> str:
    payload = {
        "sub": str(profile_id),
        "aud": settings.JWT_AUDIENCE,
        "role": "authenticated",
        "exp": datetime.now(UTC) + expires_in,
        **claims,
    }
    return jwt.encode(payload, settings.SUPABASE_JWT_SECRET, algorithm=settings.JWT_ALGORITHM)


def auth_header(profile) -> dict:
    return {"Authorization": f"Bearer {make_token(profile.id)}"}


# ─── Database ─────────────────────────────────────────────────────────────────
@pytest.fixture
def db():
    Base.metadata.create_all(bind=engine)
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def client(db):
    def override_get_db():
        yield db

    app.dependency_overrides[get_db] = override_get_db
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


# ─── Seed data ────────────────────────────────────────────────────────────────
def _org(db, name: str) -> Organization:
    org = Organization(name=name, email=f"fleet@{name.lower()}.test")
    db.add(org)
    db.commit()
    return org


def _profile(db, org, role: UserRole, first_name: str, **kwargs) -> Profile:
    profile = Profile(
        id=uuid.uuid4(),
        email=f"{first_name.lower()}@example.test",
        first_name=first_name,
        last_name="Tester",
        organization_id=org.id if org else None,
        role=role,
        **kwargs,
    )
    db.add(profile)
    db.commit()
    return profile


@pytest.fixture
def org(db):
    return _org(db, "Acme")


@pytest.fixture
def other_org(db):
    return _org(db, "Globex")


@pytest.fixture
def admin(db, org):
    return _profile(db, org, UserRole.ADMIN, "Ada")


@pytest.fixture
def manager(db, org):
    return _profile(db, org, UserRole.FLEET_MANAGER, "Maria")


@pytest.fixture
def driver(db, org):
    return _profile(db, org, UserRole.DRIVER, "Dan")


@pytest.fixture
def other_driver(db, org):
    return _profile(db, org, UserRole.DRIVER, "Olga")


@pytest.fixture
def outside_manager(db, other_org):
    return _profile(db, other_org, UserRole.FLEET_MANAGER, "Otto")


@pytest.fixture
def vehicle(db, org):
    v = Vehicle(organization_id=org.id, make="Toyota", model="Corolla", year=2022,
                license_plate="ABC123", seats=5)
    db.add(v)
    db.commit()
    return v


@pytest.fixture
def as_actor():
    return Actor.from_profile


@pytest.fixture
def add_booking(db):
    """Insert a booking directly, bypassing the service's checks."""
    def _add(user, vehicle, start, end, status=BookingStatus.PENDING) -> Booking:
        b = Booking(user_id=user.id, vehicle_id=vehicle.id, start_time=start, end_time=end, status=status)
        db.add(b)
        db.commit()
        return b
    return _add
