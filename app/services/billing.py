"""Billing webhook handling.

The payment provider posts subscription lifecycle events; the only effect on
this system is the profile's subscription tier:
- customer.subscription.created / updated: pro if status is active, else free
- customer.subscription.deleted: free

The user id travels in ``data.object.metadata.user_id``.
"""

import hashlib
import hmac
import logging
import time
from dataclasses import dataclass
from typing import Any
from uuid import UUID

from sqlmodel import Session

from app.errors import ValidationError
from app.models.profile import SubscriptionTier
from app.services.profiles import update_subscription_tier

logger = logging.getLogger(__name__)

SIGNATURE_TOLERANCE_SECONDS = 300

SUBSCRIPTION_UPSERT_EVENTS = {
    "customer.subscription.created",
    "customer.subscription.updated",
}
SUBSCRIPTION_DELETED_EVENT = "customer.subscription.deleted"


@dataclass
class WebhookOutcome:
    """Result of handling one webhook event."""

    event_type: str
    handled: bool
    user_id: UUID | None = None
    tier: SubscriptionTier | None = None


def verify_signature(
    payload: bytes,
    header: str | None,
    secret: str,
    tolerance: int = SIGNATURE_TOLERANCE_SECONDS,
    now: float | None = None,
) -> None:
    """Check a ``t=<ts>,v1=<hex>`` signature header.

    The signed message is ``"{t}.{payload}"`` under HMAC-SHA256.

    Raises:
        ValidationError: Missing secret, malformed header, stale timestamp or
            no matching signature
    """
    if not header or not secret:
        raise ValidationError("Missing signature or webhook secret")

    timestamp: str | None = None
    signatures: list[str] = []
    for part in header.split(","):
        key, _, value = part.strip().partition("=")
        if key == "t":
            timestamp = value
        elif key == "v1":
            signatures.append(value)

    if timestamp is None or not signatures:
        raise ValidationError("Malformed signature header")

    try:
        signed_at = int(timestamp)
    except ValueError as e:
        raise ValidationError("Malformed signature timestamp") from e

    current = now if now is not None else time.time()
    if abs(current - signed_at) > tolerance:
        raise ValidationError("Signature timestamp outside tolerance")

    expected = hmac.new(
        secret.encode(),
        f"{timestamp}.".encode() + payload,
        hashlib.sha256,
    ).hexdigest()

    if not any(hmac.compare_digest(expected, candidate) for candidate in signatures):
        raise ValidationError("Signature mismatch")


def tier_for_status(status: str | None) -> SubscriptionTier:
    return SubscriptionTier.PRO if status == "active" else SubscriptionTier.FREE


def _user_id_from(event: dict[str, Any]) -> UUID | None:
    obj = (event.get("data") or {}).get("object") or {}
    raw = (obj.get("metadata") or {}).get("user_id")
    if not raw:
        return None
    try:
        return UUID(str(raw))
    except ValueError:
        logger.warning("Webhook carries invalid user id", extra={"user_id": raw})
        return None


def handle_subscription_event(session: Session, event: dict[str, Any]) -> WebhookOutcome:
    """Apply a subscription lifecycle event to the user's profile."""
    event_type = str(event.get("type", ""))

    if event_type in SUBSCRIPTION_UPSERT_EVENTS:
        status = ((event.get("data") or {}).get("object") or {}).get("status")
        tier = tier_for_status(status)
    elif event_type == SUBSCRIPTION_DELETED_EVENT:
        tier = SubscriptionTier.FREE
    else:
        logger.info("Unhandled webhook event type", extra={"event_type": event_type})
        return WebhookOutcome(event_type=event_type, handled=False)

    user_id = _user_id_from(event)
    if user_id is None:
        return WebhookOutcome(event_type=event_type, handled=False)

    profile = update_subscription_tier(session, user_id, tier)
    return WebhookOutcome(
        event_type=event_type,
        handled=profile is not None,
        user_id=user_id,
        tier=tier,
    )
