"""Subscription tier policy.

Pure functions mapping a tier to its limits. Callers decide how to present a
denial; the ``require_*`` helpers raise ``UpgradeRequiredError`` for callers
that want an exception instead of a boolean.
"""

from dataclasses import dataclass

from app.errors import UpgradeRequiredError
from app.models.profile import SubscriptionTier

FREE_MAX_ATTACHMENTS = 3


@dataclass(frozen=True)
class TierLimits:
    """Feature limits for a subscription tier.

    Attributes:
        max_attachments: Attachment cap per reminder, None for unbounded
        recurring_allowed: Whether recurring reminders may be created
        collaboration_allowed: Whether reminders may be shared
        priority_notifications: Whether notifications are sent with priority
    """

    max_attachments: int | None
    recurring_allowed: bool
    collaboration_allowed: bool
    priority_notifications: bool


_LIMITS: dict[SubscriptionTier, TierLimits] = {
    SubscriptionTier.FREE: TierLimits(
        max_attachments=FREE_MAX_ATTACHMENTS,
        recurring_allowed=False,
        collaboration_allowed=False,
        priority_notifications=False,
    ),
    SubscriptionTier.PRO: TierLimits(
        max_attachments=None,
        recurring_allowed=True,
        collaboration_allowed=True,
        priority_notifications=True,
    ),
}


def limits_for(tier: SubscriptionTier | str) -> TierLimits:
    """Get the limits for a tier. Unknown tiers get the free limits."""
    try:
        return _LIMITS[SubscriptionTier(tier)]
    except ValueError:
        return _LIMITS[SubscriptionTier.FREE]


def can_add_attachment(current_count: int, tier: SubscriptionTier | str) -> bool:
    """Check whether one more attachment fits under the tier's cap."""
    limit = limits_for(tier).max_attachments
    if limit is None:
        return True
    return current_count < limit


def can_create_recurring(tier: SubscriptionTier | str) -> bool:
    return limits_for(tier).recurring_allowed


def can_share(tier: SubscriptionTier | str) -> bool:
    return limits_for(tier).collaboration_allowed


def allows_attachment_count(count: int, tier: SubscriptionTier | str) -> bool:
    """Check whether a reminder may hold ``count`` attachments in total."""
    limit = limits_for(tier).max_attachments
    return limit is None or count <= limit


def require_attachment_slot(current_count: int, tier: SubscriptionTier | str) -> None:
    if not can_add_attachment(current_count, tier):
        raise UpgradeRequiredError(
            "unlimited attachments",
            f"Free plan reminders hold at most {limits_for(tier).max_attachments} attachments",
        )


def require_attachment_count(count: int, tier: SubscriptionTier | str) -> None:
    if not allows_attachment_count(count, tier):
        raise UpgradeRequiredError(
            "unlimited attachments",
            f"Free plan reminders hold at most {limits_for(tier).max_attachments} attachments",
        )


def require_recurring(tier: SubscriptionTier | str) -> None:
    if not can_create_recurring(tier):
        raise UpgradeRequiredError("recurring reminders")


def require_collaboration(tier: SubscriptionTier | str) -> None:
    if not can_share(tier):
        raise UpgradeRequiredError("collaboration")
