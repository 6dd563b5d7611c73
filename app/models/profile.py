"""Profile entity model."""

from datetime import datetime
from enum import Enum
from typing import Any
from uuid import UUID, uuid4

from pydantic import BaseModel
from sqlalchemy import JSON
from sqlalchemy.dialects.postgresql import JSONB
from sqlmodel import Column, Field, SQLModel

JSONType = JSON().with_variant(JSONB(), "postgresql")


class SubscriptionTier(str, Enum):
    """Subscription levels."""
    FREE = "free"
    PRO = "pro"


class NotificationPreferences(BaseModel):
    """Per-user delivery switches."""

    push_enabled: bool = True
    call_popup_enabled: bool = True
    sound_enabled: bool = True


def _default_preferences() -> dict[str, Any]:
    return NotificationPreferences().model_dump()


class Profile(SQLModel, table=True):
    """User profile database model.

    The identity provider owns sign-in; this row mirrors the user id it issues.
    """

    __tablename__ = "profiles"

    id: UUID = Field(default_factory=uuid4, primary_key=True)
    email: str = Field(max_length=255, unique=True, index=True)
    display_name: str | None = Field(default=None, max_length=100)
    avatar_url: str | None = Field(default=None, max_length=500)
    notification_preferences: dict[str, Any] = Field(
        default_factory=_default_preferences,
        sa_column=Column(JSONType, nullable=False),
    )
    subscription_tier: SubscriptionTier = Field(default=SubscriptionTier.FREE)
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)

    @property
    def preferences(self) -> NotificationPreferences:
        return NotificationPreferences.model_validate(self.notification_preferences or {})


class ProfileUpdate(SQLModel):
    """Schema for profile update."""

    display_name: str | None = Field(default=None, max_length=100)
    avatar_url: str | None = Field(default=None, max_length=500)
    notification_preferences: NotificationPreferences | None = None


class ProfileResponse(SQLModel):
    """Schema for profile response."""

    id: UUID
    email: str
    display_name: str | None
    avatar_url: str | None
    notification_preferences: NotificationPreferences
    subscription_tier: SubscriptionTier
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class UserSummary(SQLModel):
    """Public subset of a profile returned by user search."""

    id: UUID
    email: str
    display_name: str | None
    avatar_url: str | None

    model_config = {"from_attributes": True}
