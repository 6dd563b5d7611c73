"""Scheduler/Notifier for reminder triggers.

This module arms and disarms device triggers and handles fires:
1. arm() registers one device timer per pending reminder
2. disarm() cancels an outstanding timer (idempotent)
3. handle_fire() dispatches the alert and re-arms recurring reminders

Design Principles:
- At most one armed trigger per reminder; arming always disarms first
- Recurrence stays on the schedule of its anchor; missed windows are skipped, not replayed
- Fires are driven by TriggerWorker polling due triggers
"""

import calendar
import logging
from datetime import datetime, timedelta
from enum import Enum
from uuid import UUID

from sqlmodel import Session, select

from app.errors import InvalidTransitionError, NotificationError
from app.events.types import NotificationFired, NotificationPayload, NotifierEventType
from app.models.attachment import first_image_url
from app.models.profile import NotificationPreferences, Profile
from app.models.reminder import RecurringPattern, Reminder, ReminderStatus
from app.models.trigger import ReminderTrigger, TriggerState
from app.services.notification_center import NotificationCenter

logger = logging.getLogger(__name__)


class FireOutcome(str, Enum):
    """What happened when a trigger fired."""

    RANG = "rang"  # Delivered to in-app alert delivery
    PUSHED = "pushed"  # Delivered as platform notification
    SUPPRESSED = "suppressed"  # Recipient disabled every channel
    DELIVERY_FAILED = "delivery_failed"
    IGNORED = "ignored"  # Stale trigger or reminder no longer pending


def add_months(moment: datetime, months: int) -> datetime:
    """Add calendar months, clamping the day to the target month's length."""
    month_index = moment.month - 1 + months
    year = moment.year + month_index // 12
    month = month_index % 12 + 1
    day = min(moment.day, calendar.monthrange(year, month)[1])
    return moment.replace(year=year, month=month, day=day)


def months_between(start: datetime, end: datetime) -> int:
    return (end.year - start.year) * 12 + end.month - start.month


def next_occurrence(
    scheduled_at: datetime,
    pattern: RecurringPattern | str,
    after: datetime | None = None,
    anchor: datetime | None = None,
) -> datetime:
    """Next trigger time for a recurring reminder.

    Args:
        scheduled_at: The occurrence that just fired
        pattern: daily, weekly or monthly
        after: Skip occurrences at or before this time (missed windows)
        anchor: First occurrence of the series; monthly steps keep its day

    Returns:
        datetime: The first occurrence on the schedule later than both
        scheduled_at and after
    """
    pattern = RecurringPattern(pattern)
    after = max(after or scheduled_at, scheduled_at)

    if pattern in (RecurringPattern.DAILY, RecurringPattern.WEEKLY):
        step = timedelta(days=1 if pattern == RecurringPattern.DAILY else 7)
        return scheduled_at + step * ((after - scheduled_at) // step + 1)

    anchor = anchor or scheduled_at
    months = months_between(anchor, scheduled_at) + 1
    candidate = add_months(anchor, months)
    while candidate <= after:
        months += 1
        candidate = add_months(anchor, months)
    return candidate


class Scheduler:
    """Arms, disarms and fires reminder triggers."""

    def __init__(self, center: NotificationCenter) -> None:
        self.center = center

    @property
    def service(self):
        return self.center.service

    # -------------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------------

    def get_armed_trigger(self, session: Session, reminder_id: UUID) -> ReminderTrigger | None:
        return session.exec(
            select(ReminderTrigger)
            .where(ReminderTrigger.reminder_id == reminder_id)
            .where(ReminderTrigger.state == TriggerState.ARMED)
        ).first()

    def get_due_triggers(
        self,
        session: Session,
        as_of: datetime | None = None,
        limit: int = 100,
    ) -> list[ReminderTrigger]:
        """Armed triggers whose fire time has passed, oldest first."""
        check_time = as_of or datetime.utcnow()

        return list(
            session.exec(
                select(ReminderTrigger)
                .where(ReminderTrigger.state == TriggerState.ARMED)
                .where(ReminderTrigger.fire_at <= check_time)
                .order_by(ReminderTrigger.fire_at)
                .limit(limit)
            ).all()
        )

    def _recipient_preferences(self, session: Session, reminder: Reminder) -> NotificationPreferences:
        profile = session.get(Profile, reminder.assigned_to)
        if profile is None:
            return NotificationPreferences()
        return profile.preferences

    def build_payload(self, session: Session, reminder: Reminder) -> NotificationPayload:
        attachments = reminder.attachment_list
        preferences = self._recipient_preferences(session, reminder)
        return NotificationPayload(
            reminder_id=reminder.id,
            title=reminder.title,
            description=reminder.description,
            image_url=first_image_url(attachments),
            attachment_count=len(attachments),
            recipient_id=reminder.assigned_to,
            scheduled_at=reminder.scheduled_at,
            sound_enabled=preferences.sound_enabled,
        )

    # -------------------------------------------------------------------------
    # Arm / Disarm
    # -------------------------------------------------------------------------

    def arm(self, session: Session, reminder: Reminder) -> ReminderTrigger:
        """Register a device trigger for the reminder's scheduled_at.

        Any previously armed trigger for the reminder is disarmed first.

        Raises:
            InvalidTransitionError: If the reminder is not pending
            NotificationError: If the device refuses to schedule
        """
        if reminder.status != ReminderStatus.PENDING:
            raise InvalidTransitionError(
                f"Cannot arm a {reminder.status.value} reminder"
            )

        self.disarm_reminder(session, reminder.id)

        payload = self.build_payload(session, reminder)
        try:
            device_trigger_id = self.service.schedule_at(reminder.scheduled_at, payload.to_dict())
        except NotificationError:
            logger.warning(
                "Device refused to schedule trigger",
                extra={"reminder_id": str(reminder.id)},
            )
            raise

        trigger = ReminderTrigger(
            reminder_id=reminder.id,
            device_trigger_id=device_trigger_id,
            fire_at=reminder.scheduled_at,
            state=TriggerState.ARMED,
            payload=payload.to_dict(),
        )
        session.add(trigger)
        session.flush()

        logger.info(
            "Trigger armed",
            extra={
                "reminder_id": str(reminder.id),
                "trigger_id": str(trigger.id),
                "fire_at": reminder.scheduled_at.isoformat(),
            },
        )

        return trigger

    def disarm(self, session: Session, trigger: ReminderTrigger) -> bool:
        """Cancel an armed trigger.

        Disarming a fired or already disarmed trigger is a no-op.

        Returns:
            bool: True if the trigger was armed and is now disarmed
        """
        if trigger.state != TriggerState.ARMED:
            return False

        try:
            self.service.cancel(trigger.device_trigger_id)
        except NotificationError as e:
            # The local state still prevents the worker from firing it
            logger.warning(
                "Device cancel failed",
                extra={"trigger_id": str(trigger.id), "error": str(e)},
            )

        trigger.state = TriggerState.DISARMED
        trigger.disarmed_at = datetime.utcnow()
        session.add(trigger)

        logger.info(
            "Trigger disarmed",
            extra={"reminder_id": str(trigger.reminder_id), "trigger_id": str(trigger.id)},
        )

        return True

    def disarm_reminder(self, session: Session, reminder_id: UUID) -> bool:
        """Disarm whatever trigger is armed for a reminder."""
        armed = session.exec(
            select(ReminderTrigger)
            .where(ReminderTrigger.reminder_id == reminder_id)
            .where(ReminderTrigger.state == TriggerState.ARMED)
        ).all()

        disarmed = False
        for trigger in armed:
            disarmed = self.disarm(session, trigger) or disarmed
        return disarmed

    # -------------------------------------------------------------------------
    # Fire
    # -------------------------------------------------------------------------

    def handle_fire(
        self,
        session: Session,
        trigger: ReminderTrigger,
        as_of: datetime | None = None,
    ) -> FireOutcome:
        """Consume a fired trigger, dispatch it and re-arm recurring reminders.

        Occurrences missed while no worker ran are skipped: the next trigger
        is the first scheduled time after as_of.

        Args:
            session: Database session
            trigger: The trigger whose time has come
            as_of: Processing time (defaults to now)

        Returns:
            FireOutcome describing the dispatch
        """
        if trigger.state != TriggerState.ARMED:
            return FireOutcome.IGNORED

        reminder = session.get(Reminder, trigger.reminder_id)
        if reminder is None or reminder.status != ReminderStatus.PENDING:
            logger.info(
                "Dropping trigger for inactive reminder",
                extra={"trigger_id": str(trigger.id), "reminder_id": str(trigger.reminder_id)},
            )
            self.disarm(session, trigger)
            return FireOutcome.IGNORED

        trigger.state = TriggerState.FIRED
        trigger.fired_at = datetime.utcnow()
        session.add(trigger)
        self.service.acknowledge(trigger.device_trigger_id)

        outcome = self._dispatch(session, reminder, trigger)

        logger.info(
            "Trigger fired",
            extra={
                "reminder_id": str(reminder.id),
                "trigger_id": str(trigger.id),
                "outcome": outcome.value,
            },
        )

        if reminder.is_recurring and reminder.recurring_pattern:
            self._rearm_next(session, reminder, trigger.fire_at, as_of or datetime.utcnow())

        return outcome

    def _dispatch(
        self,
        session: Session,
        reminder: Reminder,
        trigger: ReminderTrigger,
    ) -> FireOutcome:
        # Rebuilt from the current record so edits after arming are reflected
        payload = self.build_payload(session, reminder)
        preferences = self._recipient_preferences(session, reminder)

        if (
            self.center.foreground
            and preferences.call_popup_enabled
            and self.center.bus.has_subscribers(NotifierEventType.FIRED)
        ):
            self.center.bus.publish(NotificationFired(trigger_id=trigger.id, payload=payload))
            return FireOutcome.RANG

        if not preferences.push_enabled:
            return FireOutcome.SUPPRESSED

        try:
            self.service.present(payload.to_dict())
        except NotificationError as e:
            logger.error(
                "Platform notification failed",
                extra={"reminder_id": str(reminder.id), "error": str(e)},
            )
            return FireOutcome.DELIVERY_FAILED
        return FireOutcome.PUSHED

    def _rearm_next(
        self,
        session: Session,
        reminder: Reminder,
        fired_at: datetime,
        now: datetime,
    ) -> None:
        reminder.scheduled_at = next_occurrence(
            fired_at,
            reminder.recurring_pattern,
            after=now,
            anchor=reminder.recurrence_anchor,
        )
        reminder.touch()
        session.add(reminder)

        try:
            self.arm(session, reminder)
        except NotificationError as e:
            logger.error(
                "Failed to re-arm recurring reminder",
                extra={"reminder_id": str(reminder.id), "error": str(e)},
            )

    def fire_due(self, session: Session, as_of: datetime | None = None) -> dict[UUID, FireOutcome]:
        """Fire every due trigger in order. Used by tests and one-shot runs."""
        outcomes: dict[UUID, FireOutcome] = {}
        for trigger in self.get_due_triggers(session, as_of=as_of):
            outcomes[trigger.reminder_id] = self.handle_fire(session, trigger, as_of=as_of)
        session.commit()
        return outcomes
