"""Sharing and permission model for reminders.

Access levels, strongest first:
- owner: created_by; may do anything including delete
- edit: holder of an edit share; may change status, edit fields and re-share
- view: holder of a view share, or the assignee; read-only
- none: not visible
"""

import logging
from enum import Enum
from uuid import UUID

from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session, select

from app.errors import NotFoundError, PermissionDeniedError, PersistenceError, ValidationError
from app.models.profile import Profile, SubscriptionTier
from app.models.reminder import Reminder
from app.models.shared_reminder import SharedReminder, SharePermission
from app.services import tiers

logger = logging.getLogger(__name__)


class AccessLevel(str, Enum):
    """Effective access of a user on a reminder."""

    OWNER = "owner"
    EDIT = "edit"
    VIEW = "view"
    NONE = "none"

    @property
    def can_edit(self) -> bool:
        return self in (AccessLevel.OWNER, AccessLevel.EDIT)

    @property
    def can_view(self) -> bool:
        return self != AccessLevel.NONE


def get_share(session: Session, reminder_id: UUID, user_id: UUID) -> SharedReminder | None:
    return session.exec(
        select(SharedReminder)
        .where(SharedReminder.reminder_id == reminder_id)
        .where(SharedReminder.shared_with == user_id)
    ).first()


def permission_for(session: Session, user_id: UUID, reminder: Reminder) -> AccessLevel:
    """Resolve the effective access level of a user on a reminder."""
    if reminder.created_by == user_id:
        return AccessLevel.OWNER

    share = get_share(session, reminder.id, user_id)
    if share is not None and share.permission == SharePermission.EDIT:
        return AccessLevel.EDIT
    if share is not None or reminder.assigned_to == user_id:
        return AccessLevel.VIEW
    return AccessLevel.NONE


def list_shares(session: Session, reminder_id: UUID) -> list[SharedReminder]:
    return list(
        session.exec(
            select(SharedReminder)
            .where(SharedReminder.reminder_id == reminder_id)
            .order_by(SharedReminder.created_at)
        ).all()
    )


def _load_reminder_for(session: Session, actor_id: UUID, reminder_id: UUID) -> tuple[Reminder, AccessLevel]:
    reminder = session.get(Reminder, reminder_id)
    if reminder is None:
        raise NotFoundError("Reminder not found")

    access = permission_for(session, actor_id, reminder)
    if not access.can_view:
        raise NotFoundError("Reminder not found")
    if not access.can_edit:
        raise PermissionDeniedError("Only the owner or an editor can manage sharing")
    return reminder, access


def share(
    session: Session,
    actor_id: UUID,
    reminder_id: UUID,
    target_user_id: UUID,
    permission: SharePermission = SharePermission.VIEW,
) -> SharedReminder:
    """Grant a user visibility on a reminder.

    Re-sharing with an existing target replaces its permission.

    Raises:
        NotFoundError: Reminder or target profile does not exist
        PermissionDeniedError: Actor is neither owner nor editor
        UpgradeRequiredError: Actor's tier does not allow collaboration
        ValidationError: Target is the reminder's owner
    """
    reminder, _ = _load_reminder_for(session, actor_id, reminder_id)

    if target_user_id == reminder.created_by:
        raise ValidationError("A reminder cannot be shared with its owner")

    actor = session.get(Profile, actor_id)
    tiers.require_collaboration(actor.subscription_tier if actor else SubscriptionTier.FREE)

    if session.get(Profile, target_user_id) is None:
        raise NotFoundError("User not found")

    shared = get_share(session, reminder_id, target_user_id)
    if shared is None:
        shared = SharedReminder(
            reminder_id=reminder_id,
            shared_with=target_user_id,
            permission=permission,
        )
    else:
        shared.permission = permission

    try:
        session.add(shared)
        session.commit()
        session.refresh(shared)
    except SQLAlchemyError as e:
        session.rollback()
        raise PersistenceError(f"Failed to share reminder: {e}") from e

    logger.info(
        "Reminder shared",
        extra={
            "reminder_id": str(reminder_id),
            "shared_with": str(target_user_id),
            "permission": permission.value,
        },
    )

    return shared


def revoke(
    session: Session,
    actor_id: UUID,
    reminder_id: UUID,
    target_user_id: UUID,
) -> bool:
    """Remove a user's share on a reminder.

    Returns:
        bool: True if a share was removed
    """
    _load_reminder_for(session, actor_id, reminder_id)

    shared = get_share(session, reminder_id, target_user_id)
    if shared is None:
        return False

    try:
        session.delete(shared)
        session.commit()
    except SQLAlchemyError as e:
        session.rollback()
        raise PersistenceError(f"Failed to revoke share: {e}") from e

    logger.info(
        "Share revoked",
        extra={"reminder_id": str(reminder_id), "shared_with": str(target_user_id)},
    )
    return True
