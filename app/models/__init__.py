"""SQLModel entities for the reminders application."""

from app.models.attachment import (
    Attachment,
    AttachmentType,
    FileAttachment,
    ImageAttachment,
    VideoAttachment,
)
from app.models.profile import NotificationPreferences, Profile, SubscriptionTier
from app.models.reminder import RecurringPattern, Reminder, ReminderStatus
from app.models.shared_reminder import SharedReminder, SharePermission
from app.models.trigger import ReminderTrigger, TriggerState

__all__ = [
    "Attachment",
    "AttachmentType",
    "ImageAttachment",
    "VideoAttachment",
    "FileAttachment",
    "Profile",
    "NotificationPreferences",
    "SubscriptionTier",
    "Reminder",
    "ReminderStatus",
    "RecurringPattern",
    "SharedReminder",
    "SharePermission",
    "ReminderTrigger",
    "TriggerState",
]
