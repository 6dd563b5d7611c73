"""Tests for profiles and the billing webhook.

Tests cover:
- Webhook signature verification
- Subscription events mapped to tiers
- Profile provisioning, preferences and user search (wildcards literal)
"""

import hashlib
import hmac
import json
import time
from uuid import uuid4

import pytest

from app.errors import NotFoundError, ValidationError
from app.models.profile import NotificationPreferences, Profile, ProfileUpdate, SubscriptionTier
from app.services.billing import handle_subscription_event, tier_for_status, verify_signature
from app.services.profiles import (
    ensure_profile,
    get_profile,
    search_users,
    update_notification_preferences,
    update_profile,
)

SECRET = "whsec_test"


def sign(payload: bytes, timestamp: int, secret: str = SECRET) -> str:
    digest = hmac.new(secret.encode(), f"{timestamp}.".encode() + payload, hashlib.sha256).hexdigest()
    return f"t={timestamp},v1={digest}"


def subscription_event(event_type: str, user_id, status: str | None = "active") -> dict:
    obj: dict = {"metadata": {"user_id": str(user_id)}}
    if status is not None:
        obj["status"] = status
    return {"type": event_type, "data": {"object": obj}}


# ============================================================================
# Signature
# ============================================================================

class TestVerifySignature:
    """Tests for verify_signature."""

    def test_valid_signature(self):
        payload = b'{"type": "ping"}'
        now = int(time.time())

        verify_signature(payload, sign(payload, now), SECRET, now=now)

    def test_tampered_payload_rejected(self):
        now = int(time.time())
        header = sign(b"original", now)

        with pytest.raises(ValidationError, match="mismatch"):
            verify_signature(b"tampered", header, SECRET, now=now)

    def test_stale_timestamp_rejected(self):
        payload = b"{}"
        signed_at = int(time.time()) - 600

        with pytest.raises(ValidationError, match="tolerance"):
            verify_signature(payload, sign(payload, signed_at), SECRET)

    @pytest.mark.parametrize("header", [None, "", "garbage", "t=abc,v1=00", "v1=abc"])
    def test_malformed_header_rejected(self, header):
        with pytest.raises(ValidationError):
            verify_signature(b"{}", header, SECRET)

    def test_missing_secret_rejected(self):
        payload = b"{}"
        now = int(time.time())

        with pytest.raises(ValidationError):
            verify_signature(payload, sign(payload, now), "", now=now)


# ============================================================================
# Subscription Events
# ============================================================================

class TestSubscriptionEvents:
    """Tests for handle_subscription_event."""

    def test_status_mapping(self):
        assert tier_for_status("active") == SubscriptionTier.PRO
        assert tier_for_status("past_due") == SubscriptionTier.FREE
        assert tier_for_status(None) == SubscriptionTier.FREE

    def test_created_active_upgrades(self, db_session, test_user):
        outcome = handle_subscription_event(
            db_session, subscription_event("customer.subscription.created", test_user.id)
        )

        assert outcome.handled is True
        assert outcome.tier == SubscriptionTier.PRO
        assert db_session.get(Profile, test_user.id).subscription_tier == SubscriptionTier.PRO

    def test_updated_inactive_downgrades(self, db_session, pro_user):
        handle_subscription_event(
            db_session, subscription_event("customer.subscription.updated", pro_user.id, "canceled")
        )

        assert db_session.get(Profile, pro_user.id).subscription_tier == SubscriptionTier.FREE

    def test_deleted_downgrades(self, db_session, pro_user):
        handle_subscription_event(
            db_session, subscription_event("customer.subscription.deleted", pro_user.id, None)
        )

        assert db_session.get(Profile, pro_user.id).subscription_tier == SubscriptionTier.FREE

    def test_unrelated_event_ignored(self, db_session, test_user):
        outcome = handle_subscription_event(
            db_session, subscription_event("invoice.paid", test_user.id)
        )

        assert outcome.handled is False
        assert db_session.get(Profile, test_user.id).subscription_tier == SubscriptionTier.FREE

    def test_unknown_user_not_handled(self, db_session):
        outcome = handle_subscription_event(
            db_session, subscription_event("customer.subscription.created", uuid4())
        )

        assert outcome.handled is False

    def test_missing_metadata_not_handled(self, db_session):
        event = {"type": "customer.subscription.created", "data": {"object": {"status": "active"}}}

        assert handle_subscription_event(db_session, event).handled is False

    def test_event_round_trips_through_json(self, db_session, test_user):
        raw = json.dumps(subscription_event("customer.subscription.created", test_user.id))

        outcome = handle_subscription_event(db_session, json.loads(raw))

        assert outcome.user_id == test_user.id


# ============================================================================
# Profiles
# ============================================================================

class TestProfiles:
    """Tests for the profile service."""

    def test_ensure_profile_creates_once(self, db_session):
        user_id = uuid4()

        first = ensure_profile(db_session, user_id, "new@example.com")
        second = ensure_profile(db_session, user_id, "new@example.com")

        assert first.id == second.id == user_id
        assert first.subscription_tier == SubscriptionTier.FREE
        assert first.preferences == NotificationPreferences()

    def test_get_missing_profile(self, db_session):
        with pytest.raises(NotFoundError):
            get_profile(db_session, uuid4())

    def test_update_preferences(self, db_session, test_user):
        updated = update_profile(
            db_session,
            test_user,
            ProfileUpdate(notification_preferences=NotificationPreferences(sound_enabled=False)),
        )

        assert updated.preferences.sound_enabled is False
        assert updated.preferences.push_enabled is True
        assert updated.display_name == "Free User"

    def test_update_notification_preferences(self, db_session, test_user):
        updated = update_notification_preferences(
            db_session, test_user, NotificationPreferences(push_enabled=False)
        )

        assert updated.preferences.push_enabled is False
        assert updated.preferences.call_popup_enabled is True

    def test_search_matches_email_and_name(self, db_session, test_user, pro_user, other_user):
        assert [p.id for p in search_users(db_session, "BOB")] == [other_user.id]
        assert {p.id for p in search_users(db_session, "example.com")} == {
            test_user.id,
            pro_user.id,
            other_user.id,
        }

    def test_search_excludes_caller_and_limits(self, db_session, test_user, pro_user, other_user):
        results = search_users(db_session, "example", limit=1, exclude_id=test_user.id)

        assert len(results) == 1
        assert results[0].id != test_user.id

    def test_blank_search_returns_nothing(self, db_session, test_user):
        assert search_users(db_session, "   ") == []

    def test_search_wildcards_match_literally(self, db_session, test_user, other_user):
        """``%`` and ``_`` in a query match those characters, not any text."""
        underscored = Profile(email="first_last@example.com")
        db_session.add(underscored)
        db_session.commit()

        assert [p.id for p in search_users(db_session, "_")] == [underscored.id]
        assert search_users(db_session, "%") == []
