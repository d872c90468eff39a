"""
Shared test fixtures.

Provides: in-memory SQLite session, TestClient with dependency overrides,
signed-in DJ switch, model factories, captured outgoing emails.
Dependencies: pytest, fastapi TestClient, sqlalchemy
"""

import os

os.environ["DATABASE_URL"] = "sqlite://"
os.environ["RATE_LIMIT_ENABLED"] = "false"
os.environ.setdefault("ENVIRONMENT", "test")
os.environ["RESEND_API_KEY"] = ""
os.environ["DODO_PAYMENTS_API_KEY"] = ""

import uuid
from datetime import date, datetime, timedelta, timezone
from unittest.mock import AsyncMock

import pytest
from fastapi.testclient import TestClient

from spinbook.auth import get_optional_user
from spinbook.database import Base, engine, get_db, SessionLocal
from spinbook.main import app
from spinbook.models import BookingRequest, DjProfile, User
from spinbook.shared.validators import generate_public_token


@pytest.fixture
def db():
    """Fresh schema per test on the shared in-memory connection"""
    Base.metadata.create_all(bind=engine)
    session = SessionLocal()
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
    app.dependency_overrides[get_optional_user] = lambda: None
    with_client = TestClient(app, follow_redirects=False)
    yield with_client
    app.dependency_overrides.clear()


@pytest.fixture
def sign_in():
    """Make every request resolve to the given user"""

    def _sign_in(user):
        app.dependency_overrides[get_optional_user] = lambda: user
        return user

    return _sign_in


# ============================================
# Factories
# ============================================


@pytest.fixture
def make_user(db):
    def _make_user(email=None, **fields):
        email = email or f"dj-{uuid.uuid4().hex[:8]}@example.com"
        user = User(auth_uid=fields.pop("auth_uid", str(uuid.uuid4())), email=email, **fields)
        db.add(user)
        db.commit()
        db.refresh(user)
        return user

    return _make_user


@pytest.fixture
def make_profile(db):
    def _make_profile(user, **fields):
        values = {
            "stage_name": "DJ Nova",
            "slug": f"dj-nova-{user.id}",
            "city": "Washington, DC",
            "bio": "Open format, weddings and clubs.",
            "genres": ["Afrobeats", "House"],
            "rate": 800,
            "avatar_url": f"https://cdn.example.com/avatars/{user.id}/avatar.jpg",
            "published": True,
        }
        values.update(fields)
        profile = DjProfile(user_id=user.id, **values)
        db.add(profile)
        db.commit()
        db.refresh(profile)
        return profile

    return _make_profile


@pytest.fixture
def make_booking(db):
    def _make_booking(user, **fields):
        values = {
            "requester_name": "Ada Client",
            "requester_email": "ada@example.com",
            "event_date": date.today() + timedelta(days=30),
            "event_location": "The Anthem, DC",
            "message": "Wedding reception, 150 guests",
            "status": "new",
            "public_token": generate_public_token(),
            "created_at": datetime.now(timezone.utc),
        }
        values.update(fields)
        booking = BookingRequest(dj_user_id=user.id, **values)
        db.add(booking)
        db.commit()
        db.refresh(booking)
        return booking

    return _make_booking


@pytest.fixture
def dj(make_user, make_profile):
    """Signed-out DJ with a published profile"""
    user = make_user(email="nova@example.com")
    make_profile(user, slug="dj-nova")
    return user


# ============================================
# Email capture
# ============================================


@pytest.fixture
def sent_emails(monkeypatch):
    """Replace Resend delivery; every send_email call is recorded"""
    calls = []

    async def fake_send_email(to, subject, mjml_content, from_address=None):
        calls.append({"to": to, "subject": subject, "mjml": mjml_content})
        return {"id": f"email_{len(calls)}"}

    monkeypatch.setattr("spinbook.email_service.send_email", fake_send_email)
    return calls


@pytest.fixture
def failing_emails(monkeypatch):
    """Every send raises EmailDeliveryError"""
    from spinbook.email_service import EmailDeliveryError

    mock = AsyncMock(side_effect=EmailDeliveryError("Resend rejected the message"))
    monkeypatch.setattr("spinbook.email_service.send_email", mock)
    return mock
