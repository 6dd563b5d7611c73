"""Notifier event definitions."""

from datetime import datetime
from enum import Enum
from typing import Any
from uuid import UUID, uuid4

from pydantic import BaseModel, Field


class NotifierEventType(str, Enum):
    """Versioned notifier event types."""

    FIRED = "notification.fired.v1"
    USER_RESPONDED = "notification.responded.v1"


class AlertAction(str, Enum):
    """User responses to a ringing alert."""

    ACCEPT = "accept"
    DISMISS = "dismiss"


class NotificationPayload(BaseModel):
    """Content carried by a device trigger."""

    reminder_id: UUID
    title: str
    description: str | None = None
    image_url: str | None = None
    attachment_count: int = 0
    recipient_id: UUID | None = None
    scheduled_at: datetime | None = None
    sound_enabled: bool = True

    def to_dict(self) -> dict[str, Any]:
        """Convert to a JSON-safe dictionary."""
        return self.model_dump(mode="json")


class NotifierEvent(BaseModel):
    """Base for events published on the notifier bus."""

    event_id: UUID = Field(default_factory=uuid4)
    event_type: NotifierEventType
    timestamp: datetime = Field(default_factory=datetime.utcnow)


class NotificationFired(NotifierEvent):
    """A trigger fired while the app is foregrounded."""

    event_type: NotifierEventType = NotifierEventType.FIRED
    trigger_id: UUID | None = None
    payload: NotificationPayload


class UserResponded(NotifierEvent):
    """The user accepted or dismissed an alert."""

    event_type: NotifierEventType = NotifierEventType.USER_RESPONDED
    reminder_id: UUID
    action: AlertAction
