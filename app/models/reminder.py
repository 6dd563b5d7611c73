"""Reminder entity model."""

from datetime import datetime
from enum import Enum
from typing import Any
from uuid import UUID, uuid4

from sqlmodel import Column, Field, SQLModel

from app.models.attachment import Attachment, AttachmentPreview, parse_attachments
from app.models.profile import JSONType

TITLE_MAX_LENGTH = 100


class ReminderStatus(str, Enum):
    """Reminder status values.

    ``pending`` is the only non-terminal status.
    """
    PENDING = "pending"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class RecurringPattern(str, Enum):
    """Recurrence intervals for recurring reminders."""
    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"


class Reminder(SQLModel, table=True):
    """Reminder database model."""

    __tablename__ = "reminders"

    id: UUID = Field(default_factory=uuid4, primary_key=True)
    title: str = Field(max_length=TITLE_MAX_LENGTH)
    description: str | None = Field(default=None)
    scheduled_at: datetime = Field(index=True)
    created_by: UUID = Field(foreign_key="profiles.id", index=True)
    assigned_to: UUID = Field(foreign_key="profiles.id", index=True)
    attachments: list[dict[str, Any]] = Field(
        default_factory=list,
        sa_column=Column(JSONType, nullable=False),
    )
    status: ReminderStatus = Field(default=ReminderStatus.PENDING, index=True)
    is_recurring: bool = Field(default=False)
    recurring_pattern: RecurringPattern | None = Field(default=None)
    # First occurrence of the series; monthly steps keep its day of month
    recurrence_anchor: datetime | None = Field(default=None)
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)

    @property
    def attachment_list(self) -> list:
        """Typed attachments in insertion order."""
        return parse_attachments(self.attachments)

    def touch(self) -> None:
        self.updated_at = datetime.utcnow()


class ReminderCreate(SQLModel):
    """Schema for reminder creation.

    Title rules are enforced by the reminder store so that violations surface
    as domain validation errors.
    """

    title: str
    description: str | None = None
    scheduled_at: datetime
    assigned_to: UUID | None = None
    attachments: list[Attachment] = Field(default_factory=list)
    is_recurring: bool = False
    recurring_pattern: RecurringPattern | None = None


class ReminderUpdate(SQLModel):
    """Schema for reminder field edits."""

    title: str | None = None
    description: str | None = None
    scheduled_at: datetime | None = None
    assigned_to: UUID | None = None
    is_recurring: bool | None = None
    recurring_pattern: RecurringPattern | None = None


class ReminderStatusUpdate(SQLModel):
    """Schema for status transitions."""

    status: ReminderStatus


class ReminderResponse(SQLModel):
    """Schema for reminder response."""

    id: UUID
    title: str
    description: str | None
    scheduled_at: datetime
    created_by: UUID
    assigned_to: UUID
    attachments: list[Attachment]
    status: ReminderStatus
    is_recurring: bool
    recurring_pattern: RecurringPattern | None
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class ReminderCreatedResponse(ReminderResponse):
    """Creation response; ``notification_error`` is set when no trigger was armed."""

    notification_error: str | None = None


class ReminderListResponse(SQLModel):
    """Schema for reminder list response."""

    reminders: list[ReminderResponse]
    total: int


class ReminderCardResponse(SQLModel):
    """Compact reminder with truncated attachment preview."""

    id: UUID
    title: str
    scheduled_at: datetime
    status: ReminderStatus
    preview: AttachmentPreview
