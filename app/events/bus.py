"""In-process publish/subscribe channel for notifier events.

Event Flow:
    TriggerWorker -> Scheduler.handle_fire -> NotificationBus -> subscribers
                                                     |
                                        [AlertDelivery, analytics, ...]

Subscribers receive events in subscription order. A failing subscriber is
logged and does not block the others.
"""

import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from uuid import UUID, uuid4

from app.events.types import NotifierEvent, NotifierEventType

logger = logging.getLogger(__name__)

Handler = Callable[[NotifierEvent], None]


@dataclass
class Subscription:
    """Handle returned by ``NotificationBus.subscribe``.

    ``close()`` detaches the handler; calling it twice is harmless.
    """

    bus: "NotificationBus"
    event_type: NotifierEventType
    handler: Handler
    id: UUID = field(default_factory=uuid4)

    @property
    def active(self) -> bool:
        return self.bus.is_subscribed(self)

    def close(self) -> None:
        self.bus.unsubscribe(self)


class NotificationBus:
    """Routes notifier events to registered subscribers."""

    def __init__(self) -> None:
        self._subscriptions: list[Subscription] = []

    def subscribe(self, event_type: NotifierEventType, handler: Handler) -> Subscription:
        """Register a handler for one event type."""
        subscription = Subscription(bus=self, event_type=event_type, handler=handler)
        self._subscriptions.append(subscription)
        return subscription

    def unsubscribe(self, subscription: Subscription) -> None:
        self._subscriptions = [s for s in self._subscriptions if s.id != subscription.id]

    def is_subscribed(self, subscription: Subscription) -> bool:
        return any(s.id == subscription.id for s in self._subscriptions)

    def has_subscribers(self, event_type: NotifierEventType) -> bool:
        return any(s.event_type == event_type for s in self._subscriptions)

    def publish(self, event: NotifierEvent) -> int:
        """Deliver an event to every subscriber of its type.

        Returns:
            int: Number of subscribers that handled the event without error
        """
        delivered = 0
        # Snapshot so handlers may subscribe or unsubscribe while dispatching
        for subscription in list(self._subscriptions):
            if subscription.event_type != event.event_type:
                continue

            try:
                subscription.handler(event)
                delivered += 1
            except Exception as e:
                logger.error(
                    "Subscriber failed",
                    extra={
                        "subscription_id": str(subscription.id),
                        "event_id": str(event.event_id),
                        "event_type": event.event_type.value,
                        "error": str(e),
                    },
                    exc_info=True,
                )

        return delivered

    def close(self) -> None:
        """Detach every subscriber."""
        count = len(self._subscriptions)
        self._subscriptions = []
        if count:
            logger.info("Notification bus closed", extra={"detached": count})
