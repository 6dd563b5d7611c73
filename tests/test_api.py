"""Tests for the HTTP API.

Tests cover:
- Bearer token resolution and profile provisioning
- Reminder create/list/status endpoints and error mapping
- Draft attachment upload against the tier cap
- Billing webhook signature handling
"""

import hashlib
import hmac
import json
import time
from datetime import datetime, timedelta

import pytest
from fastapi.testclient import TestClient
from jose import jwt
from sqlmodel import Session

from app.api import deps
from app.config import get_settings
from app.main import app
from app.models.profile import Profile, SubscriptionTier

AUTH_SECRET = "test-auth-secret"
WEBHOOK_SECRET = "whsec_api"


@pytest.fixture
def client(engine, center, blob_storage, monkeypatch):
    settings = get_settings()
    monkeypatch.setattr(settings, "AUTH_SECRET", AUTH_SECRET)
    monkeypatch.setattr(settings, "STRIPE_WEBHOOK_SECRET", WEBHOOK_SECRET)

    def override_session():
        with Session(engine) as session:
            yield session

    app.dependency_overrides[deps.get_db_session] = override_session
    app.state.notification_center = center
    app.state.blob_storage = blob_storage

    # Not entered as a context manager: the lifespan would open the real database
    yield TestClient(app)

    app.dependency_overrides.clear()


def auth_header(profile: Profile) -> dict[str, str]:
    token = jwt.encode({"sub": str(profile.id), "email": profile.email}, AUTH_SECRET, algorithm="HS256")
    return {"Authorization": f"Bearer {token}"}


def in_hours(hours: int) -> str:
    return (datetime.utcnow() + timedelta(hours=hours)).replace(microsecond=0).isoformat()


# ============================================================================
# Auth
# ============================================================================

class TestAuth:
    """Tests for bearer token handling."""

    def test_health(self, client):
        assert client.get("/health").json() == {"status": "healthy"}

    def test_invalid_token_rejected(self, client):
        response = client.get("/api/reminders", headers={"Authorization": "Bearer not-a-jwt"})

        assert response.status_code == 401

    def test_first_request_provisions_profile(self, client, engine):
        token = jwt.encode(
            {"sub": "5f1c9f4e-8d1b-4c38-9d6c-0a1d7f3e2b11", "email": "fresh@example.com"},
            AUTH_SECRET,
            algorithm="HS256",
        )

        response = client.get("/api/profiles/me", headers={"Authorization": f"Bearer {token}"})

        assert response.status_code == 200
        assert response.json()["email"] == "fresh@example.com"
        assert response.json()["subscription_tier"] == "free"


# ============================================================================
# Reminders
# ============================================================================

class TestReminderEndpoints:
    """Tests for reminder endpoints."""

    def test_create_and_list(self, client, test_user):
        response = client.post(
            "/api/reminders",
            json={"title": "Buy milk", "scheduled_at": in_hours(1)},
            headers=auth_header(test_user),
        )

        assert response.status_code == 201
        body = response.json()
        assert body["status"] == "pending"
        assert body["notification_error"] is None

        listed = client.get("/api/reminders", headers=auth_header(test_user)).json()
        assert listed["total"] == 1
        assert listed["reminders"][0]["id"] == body["id"]

    def test_blank_title_is_bad_request(self, client, test_user):
        response = client.post(
            "/api/reminders",
            json={"title": "  ", "scheduled_at": in_hours(1)},
            headers=auth_header(test_user),
        )

        assert response.status_code == 400
        assert response.json()["error"] == "ValidationError"

    def test_recurring_on_free_requires_upgrade(self, client, test_user):
        response = client.post(
            "/api/reminders",
            json={"title": "Gym", "scheduled_at": in_hours(1), "is_recurring": True},
            headers=auth_header(test_user),
        )

        assert response.status_code == 402
        assert response.json()["feature"] == "recurring reminders"

    def test_terminal_status_conflict(self, client, test_user):
        created = client.post(
            "/api/reminders",
            json={"title": "Call dentist", "scheduled_at": in_hours(3)},
            headers=auth_header(test_user),
        ).json()
        url = f"/api/reminders/{created['id']}/status"

        assert client.post(url, json={"status": "completed"}, headers=auth_header(test_user)).status_code == 200

        response = client.post(url, json={"status": "cancelled"}, headers=auth_header(test_user))
        assert response.status_code == 409

    def test_stranger_gets_not_found(self, client, test_user, other_user):
        created = client.post(
            "/api/reminders",
            json={"title": "Private", "scheduled_at": in_hours(1)},
            headers=auth_header(test_user),
        ).json()

        response = client.get(f"/api/reminders/{created['id']}", headers=auth_header(other_user))

        assert response.status_code == 404

    def test_cards_truncate_attachments(self, client, pro_user):
        attachments = [
            {"type": "image", "id": str(i), "url": f"https://cdn/{i}.jpg", "filename": f"{i}.jpg", "size": 1}
            for i in range(5)
        ]
        client.post(
            "/api/reminders",
            json={"title": "Album", "scheduled_at": in_hours(1), "attachments": attachments},
            headers=auth_header(pro_user),
        )

        cards = client.get("/api/reminders/cards", headers=auth_header(pro_user)).json()

        assert len(cards[0]["preview"]["shown"]) == 3
        assert cards[0]["preview"]["overflow"] == 2


# ============================================================================
# Attachments
# ============================================================================

class TestUploadEndpoints:
    """Tests for attachment upload endpoints."""

    def test_draft_upload(self, client, test_user):
        response = client.post(
            "/api/attachments",
            data={"kind": "image", "draft_count": "0"},
            files={"file": ("cat.jpg", b"meow", "image/jpeg")},
            headers=auth_header(test_user),
        )

        assert response.status_code == 201
        assert response.json()["type"] == "image"
        assert response.json()["filename"] == "cat.jpg"
        assert response.json()["size"] == 4

    def test_draft_upload_over_cap(self, client, test_user):
        response = client.post(
            "/api/attachments",
            data={"kind": "image", "draft_count": "3"},
            files={"file": ("cat.jpg", b"meow", "image/jpeg")},
            headers=auth_header(test_user),
        )

        assert response.status_code == 402


# ============================================================================
# Billing
# ============================================================================

class TestBillingWebhook:
    """Tests for the billing webhook endpoint."""

    def _post(self, client, event: dict, secret: str = WEBHOOK_SECRET):
        body = json.dumps(event).encode()
        timestamp = int(time.time())
        digest = hmac.new(secret.encode(), f"{timestamp}.".encode() + body, hashlib.sha256).hexdigest()
        return client.post(
            "/api/billing/webhook",
            content=body,
            headers={"stripe-signature": f"t={timestamp},v1={digest}", "content-type": "application/json"},
        )

    def test_signed_event_upgrades(self, client, engine, test_user):
        event = {
            "type": "customer.subscription.created",
            "data": {"object": {"status": "active", "metadata": {"user_id": str(test_user.id)}}},
        }

        response = self._post(client, event)

        assert response.status_code == 200
        assert response.json()["handled"] is True
        with Session(engine) as session:
            assert session.get(Profile, test_user.id).subscription_tier == SubscriptionTier.PRO

    def test_bad_signature_rejected(self, client, test_user):
        response = self._post(client, {"type": "customer.subscription.deleted"}, secret="wrong")

        assert response.status_code == 400
