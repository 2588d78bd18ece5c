"""
Shared fixtures: in-memory database, a fake Redis for PKCE slots and a
scripted Google endpoint served through httpx.MockTransport.
"""

import os

# Configuration is read at import time
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("SECRET_KEY", "test-secret-key")
os.environ.setdefault("GOOGLE_CLIENT_ID", "test-client-id.apps.googleusercontent.com")
os.environ.setdefault("GOOGLE_CLIENT_SECRET", "test-client-secret")
os.environ.setdefault("GOOGLE_REDIRECT_URI", "http://localhost:5173/configuracoes")
os.environ.setdefault("DB_LOG_SLOW_QUERIES", "false")

import asyncio  # noqa: E402
import functools  # noqa: E402
from datetime import timedelta  # noqa: E402
from typing import Optional  # noqa: E402

import httpx  # noqa: E402
import pytest  # noqa: E402
from sqlalchemy import create_engine  # noqa: E402
from sqlalchemy.orm import sessionmaker  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from proposal_app import models, models_google_calendar  # noqa: E402, F401
from proposal_app.cache import Cache  # noqa: E402
from proposal_app.database import Base  # noqa: E402
from proposal_app.domain.calendar_sync.google_client import GoogleApiClient  # noqa: E402
from proposal_app.domain.calendar_sync.token_manager import PkceVerifierStore, TokenManager  # noqa: E402
from proposal_app.models import User  # noqa: E402
from proposal_app.models_google_calendar import GoogleCalendarIntegration  # noqa: E402
from proposal_app.security_utils import encrypt_token  # noqa: E402
from proposal_app.shared.clock import utcnow  # noqa: E402

CLIENT_ID = os.environ["GOOGLE_CLIENT_ID"]
CLIENT_SECRET = os.environ["GOOGLE_CLIENT_SECRET"]


def async_test(coro):
    """Decorator to run async tests with asyncio.run; keeps the signature so fixtures still resolve."""

    @functools.wraps(coro)
    def wrapper(*args, **kwargs):
        return asyncio.run(coro(*args, **kwargs))

    return wrapper


class FakeRedis:
    """The two Redis commands the PKCE slot uses; every call is recorded in `commands`"""

    def __init__(self):
        self.values: dict[str, str] = {}
        self.ttls: dict[str, int] = {}
        self.commands: list[str] = []

    def setex(self, key, ttl, value):
        self.commands.append("SETEX")
        self.values[key] = value
        self.ttls[key] = ttl

    def getdel(self, key):
        self.commands.append("GETDEL")
        self.ttls.pop(key, None)
        return self.values.pop(key, None)


class FakeGoogle:
    """
    Scripted Google endpoints. Each attribute holds the (status, json) the
    matching endpoint answers with; every request is recorded in `requests`.
    """

    def __init__(self):
        self.requests: list[httpx.Request] = []
        self.token_response = (200, {"access_token": "new-access", "expires_in": 3600})
        self.userinfo_response = (200, {"email": "owner@example.com"})
        self.events_response = (200, {"items": []})
        self.revoke_response = (200, {})

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = request.url.path
        if request.url.host == "oauth2.googleapis.com" and path == "/token":
            status, body = self.token_response
        elif request.url.host == "oauth2.googleapis.com" and path == "/revoke":
            status, body = self.revoke_response
        elif path == "/oauth2/v2/userinfo":
            status, body = self.userinfo_response
        elif "/calendar/v3/calendars/" in path:
            status, body = self.events_response
        else:
            status, body = 404, {"error": "not_found"}
        return httpx.Response(status, json=body)

    def calls_to(self, fragment: str) -> list[httpx.Request]:
        return [r for r in self.requests if fragment in str(r.url)]

    def client(self) -> GoogleApiClient:
        return GoogleApiClient(
            client_id=CLIENT_ID,
            client_secret=CLIENT_SECRET,
            transport=httpx.MockTransport(self.handler),
        )


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def db(engine):
    Session = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    session = Session()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def user(db):
    user = User(external_uid="user-1", email="seller@example.com", full_name="Seller")
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


@pytest.fixture
def other_user(db):
    user = User(external_uid="user-2", email="other@example.com")
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


@pytest.fixture
def fake_google():
    return FakeGoogle()


@pytest.fixture
def fake_redis():
    return FakeRedis()


@pytest.fixture
def verifier_store(fake_redis):
    return PkceVerifierStore(cache=Cache(client=fake_redis))


@pytest.fixture
def token_manager(db, fake_google, verifier_store):
    return TokenManager(
        db,
        google=fake_google.client(),
        verifier_store=verifier_store,
        client_id=CLIENT_ID,
        client_secret=CLIENT_SECRET,
        redirect_uri="http://localhost:5173/configuracoes",
    )


@pytest.fixture
def make_integration(db):
    """Factory for credential records; tokens are stored encrypted like the real flow does"""

    def _make(
        user: User,
        access_token: str = "stored-access",
        refresh_token: Optional[str] = "stored-refresh",
        expires_in: Optional[timedelta] = timedelta(hours=1),
        enabled: bool = True,
        last_sync_at=None,
    ) -> GoogleCalendarIntegration:
        integration = GoogleCalendarIntegration(
            user_id=user.id,
            access_token=encrypt_token(access_token),
            refresh_token=encrypt_token(refresh_token) if refresh_token else None,
            token_expires_at=utcnow() + expires_in if expires_in is not None else None,
            google_user_email="owner@example.com",
            google_calendar_id="primary",
            enabled=enabled,
            last_sync_at=last_sync_at,
        )
        db.add(integration)
        db.commit()
        db.refresh(integration)
        return integration

    return _make


def google_event(
    event_id: str,
    summary: Optional[str],
    start: str = "2026-10-20T14:00:00-03:00",
    end: Optional[str] = "2026-10-20T15:00:00-03:00",
    **extra,
) -> dict:
    """Build a Google Calendar event resource"""
    event = {"id": event_id, "status": "confirmed", "start": {"dateTime": start}}
    if summary is not None:
        event["summary"] = summary
    if end is not None:
        event["end"] = {"dateTime": end}
    event.update(extra)
    return event
