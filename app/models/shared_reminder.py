"""SharedReminder entity model."""

from datetime import datetime
from enum import Enum
from uuid import UUID, uuid4

from sqlalchemy import UniqueConstraint
from sqlmodel import Field, SQLModel


class SharePermission(str, Enum):
    """Grant levels for shared reminders."""
    VIEW = "view"
    EDIT = "edit"


class SharedReminder(SQLModel, table=True):
    """Grant of visibility on a reminder to a non-owning user."""

    __tablename__ = "shared_reminders"
    __table_args__ = (
        UniqueConstraint("reminder_id", "shared_with", name="uq_shared_reminder_target"),
    )

    id: UUID = Field(default_factory=uuid4, primary_key=True)
    reminder_id: UUID = Field(foreign_key="reminders.id", index=True, ondelete="CASCADE")
    shared_with: UUID = Field(foreign_key="profiles.id", index=True)
    permission: SharePermission = Field(default=SharePermission.VIEW)
    created_at: datetime = Field(default_factory=datetime.utcnow)


class ShareCreate(SQLModel):
    """Schema for sharing a reminder."""

    user_id: UUID
    permission: SharePermission = SharePermission.VIEW


class SharedReminderResponse(SQLModel):
    """Schema for share response."""

    id: UUID
    reminder_id: UUID
    shared_with: UUID
    permission: SharePermission
    created_at: datetime

    model_config = {"from_attributes": True}
