"""API tests for the Google Calendar and meeting lead routes"""

from datetime import datetime, timedelta
from urllib.parse import parse_qs, urlparse

import pytest
from conftest import google_event
from fastapi.testclient import TestClient

from proposal_app.auth import get_current_user
from proposal_app.database import get_db
from proposal_app.domain.calendar_sync.google_client import GoogleApiClient
from proposal_app.domain.calendar_sync.router import get_google_client, get_scheduler, get_verifier_store
from proposal_app.domain.calendar_sync.scheduler import SyncScheduler
from proposal_app.main import app
from proposal_app.models import User
from proposal_app.models_google_calendar import MeetingLead
from proposal_app.security_utils import create_jwt_token
from proposal_app.shared.clock import utcnow


@pytest.fixture
def scheduler():
    return SyncScheduler(interval=timedelta(minutes=5))


@pytest.fixture
def client(db, user, fake_google, verifier_store, scheduler):
    def override_get_db():
        yield db

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_current_user] = lambda: user
    app.dependency_overrides[get_google_client] = fake_google.client
    app.dependency_overrides[get_verifier_store] = lambda: verifier_store
    app.dependency_overrides[get_scheduler] = lambda: scheduler
    yield TestClient(app)
    app.dependency_overrides.clear()


class TestHealth:
    def test_root_and_health(self, client):
        assert client.get("/").status_code == 200
        assert client.get("/health").json() == {"status": "healthy"}


class TestAuthentication:
    @pytest.fixture
    def anonymous_client(self, db):
        def override_get_db():
            yield db

        app.dependency_overrides[get_db] = override_get_db
        yield TestClient(app)
        app.dependency_overrides.clear()

    def test_malformed_token(self, anonymous_client):
        response = anonymous_client.get("/google-calendar/status", headers={"Authorization": "Bearer nope"})
        assert response.status_code == 401

    def test_expired_token(self, anonymous_client):
        token = create_jwt_token({"sub": "someone"}, expires_delta=timedelta(minutes=-1))
        response = anonymous_client.get("/google-calendar/status", headers={"Authorization": f"Bearer {token}"})
        assert response.status_code == 401
        assert response.headers["X-Token-Expired"] == "true"

    def test_missing_header_is_rejected_before_validation(self, anonymous_client):
        response = anonymous_client.get("/google-calendar/status")
        assert response.status_code in (401, 403)

    def test_first_request_creates_user(self, db, anonymous_client):
        token = create_jwt_token({"sub": "new-seller", "email": "new@example.com"})

        response = anonymous_client.get("/google-calendar/status", headers={"Authorization": f"Bearer {token}"})

        assert response.status_code == 200
        assert response.json()["connected"] is False
        user = db.query(User).filter(User.external_uid == "new-seller").one()
        assert user.email == "new@example.com"


class TestStatus:
    def test_not_connected(self, client):
        assert client.get("/google-calendar/status").json()["connected"] is False

    def test_connected(self, client, user, make_integration):
        make_integration(user)

        body = client.get("/google-calendar/status").json()

        assert body["connected"] is True
        assert body["needs_reconnect"] is False
        assert body["user_email"] == "owner@example.com"

    def test_needs_reconnect(self, client, user, make_integration):
        make_integration(user, enabled=False)

        body = client.get("/google-calendar/status").json()

        assert body["connected"] is True
        assert body["needs_reconnect"] is True


class TestConnectFlow:
    def test_connect_then_callback(self, db, client, user, fake_google, fake_redis):
        fake_google.token_response = (200, {"access_token": "a", "refresh_token": "r", "expires_in": 3600})

        connect = client.get("/google-calendar/connect").json()
        state = connect["state"]
        verifier = fake_redis.values[f"calendar_pkce:{state}"]
        params = parse_qs(urlparse(connect["authorization_url"]).query)
        assert params["state"] == [state]

        response = client.post("/google-calendar/callback", json={"code": "auth-code", "state": state})

        assert response.status_code == 200
        assert response.json() == {"success": True, "email": "owner@example.com"}
        token_request = parse_qs(fake_google.calls_to("/token")[0].content.decode())
        assert token_request["code_verifier"] == [verifier]
        assert fake_redis.values == {}

    def test_replayed_state_is_rejected(self, client, fake_google):
        state = client.get("/google-calendar/connect").json()["state"]
        fake_google.token_response = (400, {"error": "invalid_grant"})
        client.post("/google-calendar/callback", json={"code": "c", "state": state})

        response = client.post("/google-calendar/callback", json={"code": "c", "state": state})

        assert response.status_code == 400
        assert len(fake_google.calls_to("/token")) == 1

    def test_client_held_verifier(self, client, fake_google):
        response = client.post("/google-calendar/callback", json={"code": "c", "codeVerifier": "v" * 43})

        assert response.status_code == 200
        token_request = parse_qs(fake_google.calls_to("/token")[0].content.decode())
        assert token_request["code_verifier"] == ["v" * 43]

    def test_rejected_code(self, client, fake_google):
        fake_google.token_response = (400, {"error": "invalid_grant", "error_description": "Malformed auth code."})

        response = client.post("/google-calendar/callback", json={"code": "c", "codeVerifier": "v" * 43})

        assert response.status_code == 400
        assert response.json()["code"] == "AUTH_EXCHANGE_FAILED"

    def test_not_configured(self, client):
        app.dependency_overrides[get_google_client] = lambda: GoogleApiClient(client_id=None, client_secret=None)

        response = client.get("/google-calendar/connect")

        assert response.status_code == 500
        assert response.json()["code"] == "NOT_CONFIGURED"


class TestSync:
    def test_sync_creates_leads(self, db, client, user, fake_google, make_integration):
        make_integration(user)
        fake_google.events_response = (200, {"items": [google_event("evt-1", "Reunião Maria Oliveira")]})

        response = client.post("/google-calendar/sync")

        assert response.status_code == 200
        assert response.json() == {
            "success": True,
            "triggered": True,
            "reason": None,
            "newEventCount": 1,
            "updatedEventCount": 0,
        }

    def test_second_sync_is_debounced(self, client, user, fake_google, make_integration):
        make_integration(user)

        client.post("/google-calendar/sync")
        body = client.post("/google-calendar/sync").json()

        assert body["triggered"] is False
        assert body["reason"] == "debounced"
        assert len(fake_google.calls_to("/events")) == 1

    def test_not_connected(self, client):
        response = client.post("/google-calendar/sync")

        assert response.status_code == 404
        assert response.json()["code"] == "NOT_CONNECTED"

    def test_needs_reconnect(self, client, user, fake_google, make_integration):
        make_integration(user, enabled=False)

        response = client.post("/google-calendar/sync")

        assert response.status_code == 409
        assert response.json() == {
            "success": False,
            "code": "TOKEN_EXPIRED",
            "error": "Google Calendar needs to be reconnected",
        }
        assert fake_google.requests == []

    def test_calendar_failure(self, client, user, fake_google, make_integration):
        make_integration(user)
        fake_google.events_response = (503, {"error": {"code": 503, "message": "Unavailable"}})

        response = client.post("/google-calendar/sync")

        assert response.status_code == 502
        assert response.json()["code"] == "CALENDAR_FETCH_FAILED"

    def test_auto_sync_respects_last_sync(self, client, user, fake_google, make_integration):
        make_integration(user, last_sync_at=utcnow() - timedelta(minutes=1))

        body = client.post("/google-calendar/sync/auto").json()

        assert body["triggered"] is False
        assert body["reason"] == "not_due"
        assert fake_google.requests == []


class TestDisconnect:
    def test_disconnect_is_idempotent(self, client, user, make_integration):
        make_integration(user)

        assert client.post("/google-calendar/disconnect").status_code == 200
        assert client.post("/google-calendar/disconnect").status_code == 200
        assert client.get("/google-calendar/status").json()["connected"] is False


class TestMeetingLeadRoutes:
    @pytest.fixture
    def lead(self, db, user):
        lead = MeetingLead(
            user_id=user.id,
            google_event_id="evt-1",
            title="Reunião Ana Silva",
            detected_client_name="Ana Silva",
            event_at=datetime(2026, 10, 20, 17, 0),
            status="pending",
            attendees=["ana@cliente.com.br"],
        )
        db.add(lead)
        db.commit()
        db.refresh(lead)
        return lead

    def test_list(self, client, lead):
        body = client.get("/meeting-leads").json()

        assert len(body) == 1
        assert body[0]["detected_client_name"] == "Ana Silva"
        assert body[0]["attendees"] == ["ana@cliente.com.br"]
        assert client.get("/meeting-leads", params={"status": "ignored"}).json() == []

    def test_invalid_status_filter(self, client, lead):
        response = client.get("/meeting-leads", params={"status": "archived"})
        assert response.status_code == 422
        assert response.json()["detail"][0]["loc"] == ["query", "status"]

    def test_ignore_and_restore(self, client, lead):
        assert client.post(f"/meeting-leads/{lead.id}/ignore").json()["status"] == "ignored"
        assert client.post(f"/meeting-leads/{lead.id}/restore").json()["status"] == "pending"

    def test_unknown_lead(self, client):
        response = client.post("/meeting-leads/999/ignore")

        assert response.status_code == 404
        assert response.json()["code"] == "LEAD_NOT_FOUND"

    def test_create_proposal(self, client, lead):
        response = client.post(f"/meeting-leads/{lead.id}/proposal")

        assert response.status_code == 200
        body = response.json()
        assert body["proposal"]["client_name"] == "Ana Silva"
        assert body["proposal"]["status"] == "new_lead"
        assert body["lead"]["status"] == "linked"
        assert body["lead"]["linked_proposal_id"] == body["proposal"]["id"]

        again = client.post(f"/meeting-leads/{lead.id}/proposal")
        assert again.status_code == 409
        assert again.json()["code"] == "INVALID_TRANSITION"

    def test_link_missing_proposal(self, client, lead):
        response = client.post(f"/meeting-leads/{lead.id}/link", json={"proposal_id": 42})

        assert response.status_code == 404
