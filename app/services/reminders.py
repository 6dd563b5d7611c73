"""Reminder store: lifecycle, queries and the status state machine.

This module provides reminder management functionality:
1. Create reminders behind the tier gate and arm their first trigger
2. Query reminders owned, assigned, shared or upcoming for a user
3. Apply status transitions (pending -> completed | cancelled only)
4. Edit fields, manage attachments and delete, keeping triggers in step

Design Principles:
- Validation and tier checks run before any write
- Every mutation bumps updated_at
- Disarm always happens before re-arm or removal
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from uuid import UUID

from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session, or_, select

from app.errors import (
    InvalidTransitionError,
    NotFoundError,
    NotificationError,
    PermissionDeniedError,
    PersistenceError,
    ValidationError,
)
from app.models.attachment import dump_attachments
from app.models.profile import Profile, SubscriptionTier
from app.models.reminder import (
    TITLE_MAX_LENGTH,
    RecurringPattern,
    Reminder,
    ReminderCreate,
    ReminderStatus,
    ReminderUpdate,
)
from app.models.shared_reminder import SharedReminder
from app.models.trigger import ReminderTrigger
from app.services import sharing, tiers
from app.services.scheduler import Scheduler
from app.services.sharing import AccessLevel

logger = logging.getLogger(__name__)

TERMINAL_STATUSES = {ReminderStatus.COMPLETED, ReminderStatus.CANCELLED}


@dataclass
class ReminderResult:
    """A persisted reminder plus any trigger arming failure.

    ``notification_error`` is set when the reminder was saved as pending but
    no trigger could be armed; callers must surface it to the user.
    """

    reminder: Reminder
    notification_error: str | None = None


def validate_title(title: str | None) -> str:
    """Return the stripped title or raise ValidationError."""
    cleaned = (title or "").strip()
    if not cleaned:
        raise ValidationError("Please enter a title for your reminder")
    if len(cleaned) > TITLE_MAX_LENGTH:
        raise ValidationError(f"Title must be at most {TITLE_MAX_LENGTH} characters")
    return cleaned


def normalize_timestamp(moment: datetime) -> datetime:
    """Store timestamps as naive UTC."""
    if moment.tzinfo is not None:
        return moment.astimezone(timezone.utc).replace(tzinfo=None)
    return moment


def can_transition(current: ReminderStatus, new: ReminderStatus) -> bool:
    """Only pending reminders move, and only to a terminal status."""
    return current == ReminderStatus.PENDING and new in TERMINAL_STATUSES


class ReminderStore:
    """CRUD and query access to reminders.

    The store owns the rules; the scheduler owns the device triggers.
    """

    def __init__(self, scheduler: Scheduler) -> None:
        self.scheduler = scheduler

    # -------------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------------

    def _commit(self, session: Session, action: str) -> None:
        try:
            session.commit()
        except SQLAlchemyError as e:
            session.rollback()
            logger.error(
                "Store operation failed",
                extra={"action": action, "error": str(e)},
            )
            raise PersistenceError(f"Failed to {action}") from e

    def _owner_tier(self, session: Session, reminder: Reminder) -> SubscriptionTier:
        owner = session.get(Profile, reminder.created_by)
        return owner.subscription_tier if owner else SubscriptionTier.FREE

    def _arm(self, session: Session, reminder: Reminder) -> str | None:
        """Arm the reminder's trigger and return an error message on refusal."""
        try:
            self.scheduler.arm(session, reminder)
            self._commit(session, "arm reminder trigger")
        except NotificationError as e:
            logger.warning(
                "Reminder saved without trigger",
                extra={"reminder_id": str(reminder.id), "error": e.message},
            )
            return e.message
        return None

    def _resolve_assignee(self, session: Session, owner_id: UUID, assigned_to: UUID | None) -> UUID:
        if assigned_to is None or assigned_to == owner_id:
            return owner_id
        if session.get(Profile, assigned_to) is None:
            raise NotFoundError("Assignee not found")
        return assigned_to

    def _load(self, session: Session, user_id: UUID, reminder_id: UUID) -> tuple[Reminder, AccessLevel]:
        reminder = session.get(Reminder, reminder_id)
        if reminder is None:
            raise NotFoundError("Reminder not found")
        access = sharing.permission_for(session, user_id, reminder)
        if not access.can_view:
            raise NotFoundError("Reminder not found")
        return reminder, access

    def _load_editable(self, session: Session, actor_id: UUID, reminder_id: UUID) -> Reminder:
        reminder, access = self._load(session, actor_id, reminder_id)
        if not access.can_edit:
            raise PermissionDeniedError("You only have view access to this reminder")
        return reminder

    # -------------------------------------------------------------------------
    # Create
    # -------------------------------------------------------------------------

    def create(self, session: Session, owner: Profile, draft: ReminderCreate) -> ReminderResult:
        """Create a pending reminder and arm its first trigger.

        Args:
            session: Database session
            owner: Profile of the creating user
            draft: Reminder fields

        Returns:
            ReminderResult with the persisted reminder

        Raises:
            ValidationError: Blank or overlong title
            UpgradeRequiredError: Attachment count or recurrence exceeds the tier
            NotFoundError: Assignee does not exist
            PersistenceError: The store rejected the insert
        """
        title = validate_title(draft.title)
        tier = owner.subscription_tier

        tiers.require_attachment_count(len(draft.attachments), tier)

        pattern: RecurringPattern | None = None
        if draft.is_recurring:
            tiers.require_recurring(tier)
            pattern = draft.recurring_pattern or RecurringPattern.DAILY

        now = datetime.utcnow()
        scheduled_at = normalize_timestamp(draft.scheduled_at)
        reminder = Reminder(
            title=title,
            description=draft.description,
            scheduled_at=scheduled_at,
            created_by=owner.id,
            assigned_to=self._resolve_assignee(session, owner.id, draft.assigned_to),
            attachments=dump_attachments(draft.attachments),
            status=ReminderStatus.PENDING,
            is_recurring=draft.is_recurring,
            recurring_pattern=pattern,
            recurrence_anchor=scheduled_at if pattern else None,
            created_at=now,
            updated_at=now,
        )
        session.add(reminder)
        self._commit(session, "create reminder")
        session.refresh(reminder)

        logger.info(
            "Reminder created",
            extra={
                "reminder_id": str(reminder.id),
                "created_by": str(owner.id),
                "scheduled_at": reminder.scheduled_at.isoformat(),
                "attachments": len(draft.attachments),
            },
        )

        notification_error = self._arm(session, reminder)
        return ReminderResult(reminder=reminder, notification_error=notification_error)

    # -------------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------------

    def get_for_user(self, session: Session, user_id: UUID) -> list[Reminder]:
        """Reminders created by or assigned to a user, soonest first.

        One row per reminder, so a reminder both created by and assigned to
        the user appears once.
        """
        return list(
            session.exec(
                select(Reminder)
                .where(or_(Reminder.created_by == user_id, Reminder.assigned_to == user_id))
                .order_by(Reminder.scheduled_at)
            ).all()
        )

    def get_shared(self, session: Session, user_id: UUID) -> list[Reminder]:
        """Reminders explicitly shared with a user."""
        return list(
            session.exec(
                select(Reminder)
                .join(SharedReminder, SharedReminder.reminder_id == Reminder.id)
                .where(SharedReminder.shared_with == user_id)
                .order_by(Reminder.scheduled_at)
            ).all()
        )

    def get_upcoming(
        self,
        session: Session,
        user_id: UUID,
        hours: int = 24,
        as_of: datetime | None = None,
    ) -> list[Reminder]:
        """Pending reminders for a user due within the next ``hours``."""
        now = as_of or datetime.utcnow()
        window_end = now + timedelta(hours=hours)

        return list(
            session.exec(
                select(Reminder)
                .where(or_(Reminder.created_by == user_id, Reminder.assigned_to == user_id))
                .where(Reminder.status == ReminderStatus.PENDING)
                .where(Reminder.scheduled_at >= now)
                .where(Reminder.scheduled_at <= window_end)
                .order_by(Reminder.scheduled_at)
            ).all()
        )

    def get_visible(self, session: Session, user_id: UUID, reminder_id: UUID) -> Reminder:
        """A reminder the user may read (owner, assignee or share holder)."""
        reminder, _ = self._load(session, user_id, reminder_id)
        return reminder

    # -------------------------------------------------------------------------
    # Mutations
    # -------------------------------------------------------------------------

    def update_status(
        self,
        session: Session,
        actor_id: UUID,
        reminder_id: UUID,
        new_status: ReminderStatus,
    ) -> Reminder:
        """Move a pending reminder to completed or cancelled.

        Raises:
            PermissionDeniedError: Actor has view access only
            InvalidTransitionError: Reminder is not pending or target is pending
        """
        reminder = self._load_editable(session, actor_id, reminder_id)
        new_status = ReminderStatus(new_status)

        if not can_transition(reminder.status, new_status):
            logger.warning(
                "Rejected status transition",
                extra={
                    "reminder_id": str(reminder_id),
                    "current_status": reminder.status.value,
                    "requested_status": new_status.value,
                },
            )
            raise InvalidTransitionError(
                f"Cannot change status from {reminder.status.value} to {new_status.value}"
            )

        self.scheduler.disarm_reminder(session, reminder.id)
        reminder.status = new_status
        reminder.touch()
        session.add(reminder)
        self._commit(session, "update reminder status")
        session.refresh(reminder)

        logger.info(
            "Reminder status updated",
            extra={"reminder_id": str(reminder_id), "status": new_status.value},
        )

        return reminder

    def edit(
        self,
        session: Session,
        actor_id: UUID,
        reminder_id: UUID,
        changes: ReminderUpdate,
    ) -> ReminderResult:
        """Edit fields of a pending reminder.

        A new scheduled_at disarms the old trigger and arms a new one.
        """
        reminder = self._load_editable(session, actor_id, reminder_id)
        if reminder.status != ReminderStatus.PENDING:
            raise InvalidTransitionError("Only pending reminders can be edited")

        update_data = changes.model_dump(exclude_unset=True)
        rescheduled = False

        if "title" in update_data:
            reminder.title = validate_title(update_data["title"])

        if "description" in update_data:
            reminder.description = update_data["description"]

        if "assigned_to" in update_data:
            reminder.assigned_to = self._resolve_assignee(
                session, reminder.created_by, update_data["assigned_to"]
            )

        if update_data.get("is_recurring") is not None:
            if update_data["is_recurring"]:
                tiers.require_recurring(self._owner_tier(session, reminder))
                reminder.is_recurring = True
                reminder.recurring_pattern = (
                    update_data.get("recurring_pattern")
                    or reminder.recurring_pattern
                    or RecurringPattern.DAILY
                )
            else:
                reminder.is_recurring = False
                reminder.recurring_pattern = None
                reminder.recurrence_anchor = None
        elif update_data.get("recurring_pattern") is not None:
            if not reminder.is_recurring:
                raise ValidationError("recurring_pattern requires a recurring reminder")
            reminder.recurring_pattern = update_data["recurring_pattern"]

        if update_data.get("scheduled_at") is not None:
            new_time = normalize_timestamp(update_data["scheduled_at"])
            rescheduled = new_time != reminder.scheduled_at
            reminder.scheduled_at = new_time

        if reminder.is_recurring and (rescheduled or reminder.recurrence_anchor is None):
            reminder.recurrence_anchor = reminder.scheduled_at

        reminder.touch()
        session.add(reminder)

        if rescheduled:
            self.scheduler.disarm_reminder(session, reminder.id)

        self._commit(session, "edit reminder")
        session.refresh(reminder)

        logger.info(
            "Reminder edited",
            extra={
                "reminder_id": str(reminder_id),
                "fields": sorted(update_data),
                "rescheduled": rescheduled,
            },
        )

        notification_error = self._arm(session, reminder) if rescheduled else None
        return ReminderResult(reminder=reminder, notification_error=notification_error)

    def require_attachment_room(self, session: Session, actor_id: UUID, reminder_id: UUID) -> Reminder:
        """Check the actor may add one more attachment to the reminder.

        Raises:
            PermissionDeniedError: Actor has view access only
            UpgradeRequiredError: Owner's tier has no free attachment slot
        """
        reminder = self._load_editable(session, actor_id, reminder_id)
        tiers.require_attachment_slot(len(reminder.attachment_list), self._owner_tier(session, reminder))
        return reminder

    def add_attachment(
        self,
        session: Session,
        actor_id: UUID,
        reminder_id: UUID,
        attachment,
    ) -> Reminder:
        """Append an attachment if the owner's tier has room.

        The count check reads a snapshot and is not atomic with the append.
        """
        reminder = self.require_attachment_room(session, actor_id, reminder_id)
        current = reminder.attachment_list

        reminder.attachments = dump_attachments([*current, attachment])
        reminder.touch()
        session.add(reminder)
        self._commit(session, "add attachment")
        session.refresh(reminder)

        logger.info(
            "Attachment added",
            extra={
                "reminder_id": str(reminder_id),
                "attachment_id": attachment.id,
                "count": len(current) + 1,
            },
        )

        return reminder

    def remove_attachment(
        self,
        session: Session,
        actor_id: UUID,
        reminder_id: UUID,
        attachment_id: str,
    ) -> Reminder:
        reminder = self._load_editable(session, actor_id, reminder_id)
        current = reminder.attachment_list
        remaining = [a for a in current if a.id != attachment_id]
        if len(remaining) == len(current):
            raise NotFoundError("Attachment not found")

        reminder.attachments = dump_attachments(remaining)
        reminder.touch()
        session.add(reminder)
        self._commit(session, "remove attachment")
        session.refresh(reminder)
        return reminder

    def delete(self, session: Session, actor_id: UUID, reminder_id: UUID) -> None:
        """Delete a reminder, its shares and its triggers. Owner only.

        The armed trigger is disarmed before the record is removed.
        """
        reminder, access = self._load(session, actor_id, reminder_id)
        if access != AccessLevel.OWNER:
            raise PermissionDeniedError("Only the owner can delete a reminder")

        self.scheduler.disarm_reminder(session, reminder.id)
        session.flush()

        for shared in sharing.list_shares(session, reminder.id):
            session.delete(shared)
        for trigger in session.exec(
            select(ReminderTrigger).where(ReminderTrigger.reminder_id == reminder.id)
        ).all():
            session.delete(trigger)
        session.flush()
        session.delete(reminder)
        self._commit(session, "delete reminder")

        logger.info("Reminder deleted", extra={"reminder_id": str(reminder_id)})
