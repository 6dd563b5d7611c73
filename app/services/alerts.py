"""Call-style alert delivery.

State machine:
    idle -> ringing          on NotificationFired
    ringing -> accepted      accept(): opens the reminder detail
    ringing -> dismissed     dismiss()
    accepted | dismissed -> idle

Neither response changes the reminder's status. Fires that arrive while an
alert is ringing wait in a queue and ring in arrival order. There is no
ring timeout.
"""

import logging
from abc import ABC, abstractmethod
from collections import deque
from dataclasses import dataclass
from enum import Enum
from uuid import UUID

from app.errors import InvalidTransitionError
from app.events.bus import NotificationBus
from app.events.types import (
    AlertAction,
    NotificationFired,
    NotificationPayload,
    NotifierEventType,
    UserResponded,
)

logger = logging.getLogger(__name__)


class AlertState(str, Enum):
    """Alert delivery states."""

    IDLE = "idle"
    RINGING = "ringing"
    ACCEPTED = "accepted"
    DISMISSED = "dismissed"


@dataclass
class Alert:
    """What the ringing screen shows."""

    reminder_id: UUID
    title: str
    description: str | None
    image_url: str | None
    attachment_count: int
    sound_enabled: bool = True

    @classmethod
    def from_payload(cls, payload: NotificationPayload) -> "Alert":
        return cls(
            reminder_id=payload.reminder_id,
            title=payload.title,
            description=payload.description,
            image_url=payload.image_url,
            attachment_count=payload.attachment_count,
            sound_enabled=payload.sound_enabled,
        )


class AlertPresenter(ABC):
    """Output side of alert delivery (screen, haptics, navigation)."""

    @abstractmethod
    def haptic_pulse(self) -> None:
        pass

    @abstractmethod
    def present(self, alert: Alert) -> None:
        pass

    @abstractmethod
    def play_sound(self, alert: Alert) -> None:
        pass

    @abstractmethod
    def open_detail(self, reminder_id: UUID) -> None:
        pass

    @abstractmethod
    def hide(self, alert: Alert) -> None:
        pass


class LoggingAlertPresenter(AlertPresenter):
    """Presenter that only logs; used by headless processes."""

    def haptic_pulse(self) -> None:
        logger.debug("Haptic pulse")

    def present(self, alert: Alert) -> None:
        logger.info(
            "Alert ringing",
            extra={
                "reminder_id": str(alert.reminder_id),
                "title": alert.title,
                "attachment_count": alert.attachment_count,
            },
        )

    def play_sound(self, alert: Alert) -> None:
        logger.debug("Ringtone", extra={"reminder_id": str(alert.reminder_id)})

    def open_detail(self, reminder_id: UUID) -> None:
        logger.info("Opening reminder detail", extra={"reminder_id": str(reminder_id)})

    def hide(self, alert: Alert) -> None:
        logger.debug("Alert hidden", extra={"reminder_id": str(alert.reminder_id)})


class AlertDelivery:
    """Foreground ring/accept/dismiss interaction for fired reminders."""

    def __init__(self, bus: NotificationBus, presenter: AlertPresenter) -> None:
        self.bus = bus
        self.presenter = presenter
        self._state = AlertState.IDLE
        self._current: Alert | None = None
        self._queue: deque[Alert] = deque()
        self._subscription = bus.subscribe(NotifierEventType.FIRED, self._on_fired)

    @property
    def state(self) -> AlertState:
        return self._state

    @property
    def current(self) -> Alert | None:
        return self._current

    @property
    def waiting(self) -> int:
        return len(self._queue)

    def _on_fired(self, event: NotificationFired) -> None:
        self._queue.append(Alert.from_payload(event.payload))
        if self._state == AlertState.IDLE:
            self._ring_next()

    def _ring_next(self) -> None:
        if not self._queue:
            return

        alert = self._queue.popleft()
        self._current = alert
        self._state = AlertState.RINGING

        self.presenter.haptic_pulse()
        self.presenter.present(alert)
        if alert.sound_enabled:
            self.presenter.play_sound(alert)

    def _require_ringing(self, action: AlertAction) -> Alert:
        if self._state != AlertState.RINGING or self._current is None:
            raise InvalidTransitionError(f"Cannot {action.value} while {self._state.value}")
        return self._current

    def _respond(self, alert: Alert, action: AlertAction) -> None:
        self.bus.publish(UserResponded(reminder_id=alert.reminder_id, action=action))
        logger.info(
            "Alert answered",
            extra={"reminder_id": str(alert.reminder_id), "action": action.value},
        )

    def _finish(self, alert: Alert) -> None:
        self.presenter.hide(alert)
        self._current = None
        self._state = AlertState.IDLE
        self._ring_next()

    def accept(self) -> UUID:
        """Answer the ringing alert and open its reminder.

        Returns:
            UUID of the reminder that was opened
        """
        alert = self._require_ringing(AlertAction.ACCEPT)
        self._state = AlertState.ACCEPTED
        self._respond(alert, AlertAction.ACCEPT)
        self.presenter.open_detail(alert.reminder_id)
        self._finish(alert)
        return alert.reminder_id

    def dismiss(self) -> UUID:
        """Decline the ringing alert."""
        alert = self._require_ringing(AlertAction.DISMISS)
        self._state = AlertState.DISMISSED
        self._respond(alert, AlertAction.DISMISS)
        self._finish(alert)
        return alert.reminder_id

    def close(self) -> None:
        """Detach from the bus and drop queued alerts."""
        self._subscription.close()
        self._queue.clear()
