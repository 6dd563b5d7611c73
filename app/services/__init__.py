"""Services module for the reminders core.

Services:
- tiers.py: Subscription tier capability checks
- attachments.py: Media acquisition and upload
- reminders.py: Reminder store and status state machine
- sharing.py: Per-user view/edit grants
- scheduler.py: Device trigger arm/disarm/fire
- alerts.py: Call-style ring/accept/dismiss delivery
- profiles.py / billing.py: Profiles and subscription webhook
"""

from app.services.notification_center import NotificationCenter
from app.services.reminders import ReminderResult, ReminderStore
from app.services.scheduler import FireOutcome, Scheduler
from app.services.alerts import AlertDelivery, AlertState
from app.services.attachments import AttachmentManager

__all__ = [
    "NotificationCenter",
    "ReminderResult",
    "ReminderStore",
    "FireOutcome",
    "Scheduler",
    "AlertDelivery",
    "AlertState",
    "AttachmentManager",
]
