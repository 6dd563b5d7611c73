"""Notifier events and the in-process publish/subscribe bus.

Components:
- types.py: Event type definitions and notification payload schema
- bus.py: Subscription-based dispatch with error isolation
"""

from app.events.bus import NotificationBus, Subscription
from app.events.types import (
    AlertAction,
    NotificationFired,
    NotificationPayload,
    NotifierEvent,
    NotifierEventType,
    UserResponded,
)

__all__ = [
    # Types
    "AlertAction",
    "NotificationFired",
    "NotificationPayload",
    "NotifierEvent",
    "NotifierEventType",
    "UserResponded",
    # Bus
    "NotificationBus",
    "Subscription",
]
