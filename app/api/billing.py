"""Billing webhook endpoint."""

import json
import logging

from fastapi import APIRouter, Header, Request

from app.api.deps import DBSession
from app.config import get_settings
from app.errors import ValidationError
from app.services.billing import handle_subscription_event, verify_signature

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/billing", tags=["Billing"])


@router.post("/webhook")
async def billing_webhook_endpoint(
    request: Request,
    session: DBSession,
    stripe_signature: str | None = Header(default=None, alias="stripe-signature"),
) -> dict:
    """Receive subscription lifecycle events from the payment provider."""
    body = await request.body()
    verify_signature(body, stripe_signature, get_settings().STRIPE_WEBHOOK_SECRET)

    try:
        event = json.loads(body)
    except json.JSONDecodeError as e:
        raise ValidationError("Webhook body is not valid JSON") from e

    outcome = handle_subscription_event(session, event)
    logger.info(
        "Billing webhook processed",
        extra={"event_type": outcome.event_type, "handled": outcome.handled},
    )
    return {"received": True, "handled": outcome.handled}
