"""
Centralized test configuration.

MongoDB is replaced by mongomock-motor and the Firebase token check by a
dependency override, so the suite runs without any external service.
"""
from datetime import datetime, timezone

import pytest
from httpx import AsyncClient, ASGITransport
from mongomock_motor import AsyncMongoMockClient

import database
from core.dependencies import Identity, get_identity
from core.rate_limit import limiter
from core.utils import normalize_email
from main import app


@pytest.fixture(autouse=True)
def mongo():
    """Fresh in-memory database per test."""
    test_db = AsyncMongoMockClient()["profirst_test"]
    database.use_database(test_db)
    yield test_db
    database.use_database(None)


@pytest.fixture(autouse=True)
def fresh_rate_limits():
    limiter.reset()
    yield


@pytest.fixture
async def client():
    transport = ASGITransport(app=app, raise_app_exceptions=False)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


@pytest.fixture
def login():
    """login("a@b.com") makes every following request come from that identity."""
    def _login(email: str, uid: str = None) -> Identity:
        email = normalize_email(email)
        identity = Identity(uid=uid or f"uid-{email.split('@')[0]}", email=email)
        app.dependency_overrides[get_identity] = lambda: identity
        return identity

    yield _login
    app.dependency_overrides.clear()


@pytest.fixture
def seed_user(mongo):
    async def _seed(email: str, role: str = "user", name: str = "Test User") -> dict:
        now = datetime.now(timezone.utc)
        doc = {
            "user_id":    f"usr_{email.split('@')[0]}",
            "email":      email,
            "name":       name,
            "role":       role,
            "created_at": now,
            "last_login": now,
        }
        await mongo.users.insert_one(dict(doc))
        return doc
    return _seed


@pytest.fixture
def seed_rider(mongo, seed_user):
    async def _seed(
        email: str,
        work_status: str = "idle",
        application_status: str = "approved",
        is_active: bool = True,
        region: str = "Dhaka",
    ) -> dict:
        await seed_user(email, role="rider" if application_status == "approved" else "user")
        handle = email.split("@")[0]
        doc = {
            "rider_id":           f"rdr_{handle}",
            "uid":                f"uid-{handle}",
            "email":              email,
            "name":               handle.title(),
            "age":                "27",
            "nid":                "1990123456789",
            "contact":            "01712345678",
            "bike_model":         "Honda CB Shine",
            "region":             region,
            "warehouse":          "Mirpur Hub",
            "application_at":     datetime.now(timezone.utc),
            "application_status": application_status,
            "work_status":        work_status,
            "approve_date":       datetime.now(timezone.utc) if application_status == "approved" else None,
            "reject_date":        None,
            "is_active":          is_active,
        }
        await mongo.riders.insert_one(dict(doc))
        return doc
    return _seed


def party(**overrides) -> dict:
    profile = {
        "name":        "Rahim Uddin",
        "contact":     "01712345678",
        "region":      "Dhaka",
        "center":      "Mirpur",
        "area":        "Mirpur 10",
        "instruction": "Call before arriving",
    }
    profile.update(overrides)
    return profile


def parcel_payload(**overrides) -> dict:
    payload = {
        "type":       "non-document",
        "title":      "Winter jacket",
        "weight":     2.5,
        "sender":     party(),
        "receiver":   party(name="Karim Ahmed", contact="+8801812345678", region="Chattogram",
                            center="Agrabad", area="Agrabad C/A", instruction="Leave at reception"),
        "total_cost": 150,
    }
    payload.update(overrides)
    return payload
