"""
Pytest configuration for Zomatify tests.
"""

import asyncio
import hashlib
import hmac
import os

# settings are read at import time
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("ENVIRONMENT", "test")

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from zomatify.celery_worker import celery_app
from zomatify.data.models import VendorSettingsModel
from zomatify.data.database import Base, get_db
from zomatify.domain.schemas import AuthSession, AuthUser, MenuItem, Profile
from zomatify.exceptions import ProfileNotFoundError
from zomatify.main import app
from zomatify.services.supabase_client import NO_ROWS_CODE

celery_app.conf.task_always_eager = True

engine = create_engine(
    "sqlite://",
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestingSessionLocal = sessionmaker(bind=engine, autocommit=False, autoflush=False)


# =============================================================================
# Database / API
# =============================================================================


@pytest.fixture
def db_session():
    """Fresh schema per test on a shared in-memory connection."""
    Base.metadata.create_all(bind=engine)
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def client(db_session) -> TestClient:
    def override_get_db():
        db = TestingSessionLocal()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_get_db
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def open_vendors(db_session):
    """Settings rows for vendor-1 and vendor-2, both taking orders."""
    rows = [VendorSettingsModel(vendor_id=v) for v in ("vendor-1", "vendor-2")]
    db_session.add_all(rows)
    db_session.commit()
    return rows


# =============================================================================
# Domain fixtures
# =============================================================================


@pytest.fixture
def burger() -> MenuItem:
    return MenuItem(id="burger", name="Veg Burger", price="120.00", category="mains")


@pytest.fixture
def fries() -> MenuItem:
    return MenuItem(id="fries", name="Fries", price="60.50", category="sides")


def sign(secret: str, message: str | bytes) -> str:
    """Hex HMAC-SHA256, the way the gateway signs checkouts and webhooks."""
    if isinstance(message, str):
        message = message.encode()
    return hmac.new(secret.encode(), message, hashlib.sha256).hexdigest()


def make_session(user_id: str = "user-1", **metadata) -> AuthSession:
    return AuthSession(
        access_token=f"token-{user_id}",
        refresh_token=f"refresh-{user_id}",
        user=AuthUser(id=user_id, email=f"{user_id}@example.com", user_metadata=metadata),
    )


class FakeSubscription:
    def __init__(self, client, callback):
        self.client = client
        self.callback = callback

    def unsubscribe(self):
        self.client.callbacks.remove(self.callback)


class FakeAuthClient:
    """In-memory stand-in for SupabaseClient used by the session manager."""

    def __init__(self, session: AuthSession | None = None, profile_delay: float = 0.0):
        self.session = session
        self.profile_delay = profile_delay
        self.profiles: dict[str, Profile] = {}
        self.callbacks = []
        self.fetch_calls: list[str] = []
        self.inserted: list[dict] = []
        self.sign_in_error: Exception | None = None

    def on_auth_state_change(self, callback):
        self.callbacks.append(callback)
        callback("INITIAL_SESSION", self.session)
        return FakeSubscription(self, callback)

    def emit(self, event: str, session: AuthSession | None):
        self.session = session
        for callback in list(self.callbacks):
            callback(event, session)

    async def get_session(self):
        return self.session

    async def get_user(self):
        return self.session.user if self.session else None

    async def fetch_profile(self, user_id: str) -> Profile:
        self.fetch_calls.append(user_id)
        if self.profile_delay:
            await asyncio.sleep(self.profile_delay)
        if user_id not in self.profiles:
            raise ProfileNotFoundError("JSON object requested, multiple (or no) rows returned", code=NO_ROWS_CODE)
        return self.profiles[user_id]

    async def insert_profile(self, row: dict) -> Profile:
        self.inserted.append(row)
        profile = Profile.model_validate(row)
        self.profiles[row["id"]] = profile
        return profile

    async def update_profile(self, user_id: str, changes: dict) -> Profile:
        data = self.profiles[user_id].model_dump()
        data.update(changes)
        self.profiles[user_id] = Profile.model_validate(data)
        return self.profiles[user_id]

    async def sign_in_with_password(self, email: str, password: str) -> AuthSession:
        if self.sign_in_error:
            raise self.sign_in_error
        self.emit("SIGNED_IN", make_session("user-1"))
        return self.session

    async def sign_up(self, email: str, password: str, metadata: dict) -> AuthUser:
        return AuthUser(id="new-user", email=email, user_metadata=metadata)

    async def sign_out(self) -> None:
        self.emit("SIGNED_OUT", None)


@pytest.fixture
def auth_client() -> FakeAuthClient:
    return FakeAuthClient()
