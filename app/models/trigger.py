"""ReminderTrigger entity model for scheduler bookkeeping."""

from datetime import datetime
from enum import Enum
from typing import Any
from uuid import UUID, uuid4

from sqlmodel import Column, Field, SQLModel

from app.models.profile import JSONType


class TriggerState(str, Enum):
    """Lifecycle of a device trigger.

    armed -> fired | disarmed; fired and disarmed are final.
    """
    ARMED = "armed"
    FIRED = "fired"
    DISARMED = "disarmed"


class ReminderTrigger(SQLModel, table=True):
    """A scheduled device trigger for one occurrence of a reminder."""

    __tablename__ = "reminder_triggers"

    id: UUID = Field(default_factory=uuid4, primary_key=True)
    reminder_id: UUID = Field(index=True)
    device_trigger_id: str = Field(max_length=255)
    fire_at: datetime = Field(index=True)
    state: TriggerState = Field(default=TriggerState.ARMED, index=True)
    payload: dict[str, Any] = Field(
        default_factory=dict,
        sa_column=Column(JSONType, nullable=False),
    )
    created_at: datetime = Field(default_factory=datetime.utcnow)
    fired_at: datetime | None = Field(default=None)
    disarmed_at: datetime | None = Field(default=None)
