"""Tests for reminder sharing and access levels.

Tests cover:
- View shares are read-only, edit shares may change status
- Tier gate and self-share rejection
- Re-sharing updates in place, revoke
"""

from uuid import uuid4

import pytest
from sqlmodel import Session, select

from app.errors import (
    NotFoundError,
    PermissionDeniedError,
    UpgradeRequiredError,
    ValidationError,
)
from app.models.reminder import Reminder, ReminderCreate, ReminderStatus
from app.models.shared_reminder import SharedReminder, SharePermission
from app.services import sharing
from app.services.sharing import AccessLevel


@pytest.fixture
def pro_reminder(db_session: Session, store, pro_user, in_one_hour) -> Reminder:
    return store.create(
        db_session, pro_user, ReminderCreate(title="Team standup", scheduled_at=in_one_hour)
    ).reminder


# ============================================================================
# Share
# ============================================================================

class TestShare:
    """Tests for sharing.share."""

    def test_view_share_is_read_only(self, db_session, store, pro_user, other_user, pro_reminder):
        """A view share shows the reminder but does not allow status changes."""
        sharing.share(db_session, pro_user.id, pro_reminder.id, other_user.id, SharePermission.VIEW)

        shared = store.get_shared(db_session, other_user.id)
        assert [r.id for r in shared] == [pro_reminder.id]

        with pytest.raises(PermissionDeniedError):
            store.update_status(db_session, other_user.id, pro_reminder.id, ReminderStatus.COMPLETED)

        assert db_session.get(Reminder, pro_reminder.id).status == ReminderStatus.PENDING

    def test_edit_share_allows_status_change(self, db_session, store, pro_user, other_user, pro_reminder):
        sharing.share(db_session, pro_user.id, pro_reminder.id, other_user.id, SharePermission.EDIT)

        updated = store.update_status(db_session, other_user.id, pro_reminder.id, ReminderStatus.COMPLETED)

        assert updated.status == ReminderStatus.COMPLETED

    def test_share_with_owner_rejected(self, db_session, pro_user, pro_reminder):
        with pytest.raises(ValidationError):
            sharing.share(db_session, pro_user.id, pro_reminder.id, pro_user.id)

    def test_free_tier_cannot_share(self, db_session, store, test_user, other_user, in_one_hour):
        reminder = store.create(
            db_session, test_user, ReminderCreate(title="Solo", scheduled_at=in_one_hour)
        ).reminder

        with pytest.raises(UpgradeRequiredError):
            sharing.share(db_session, test_user.id, reminder.id, other_user.id)

        assert db_session.exec(select(SharedReminder)).all() == []

    def test_share_with_unknown_user(self, db_session, pro_user, pro_reminder):
        with pytest.raises(NotFoundError):
            sharing.share(db_session, pro_user.id, pro_reminder.id, uuid4())

    def test_stranger_cannot_share(self, db_session, test_user, other_user, pro_reminder):
        with pytest.raises(NotFoundError):
            sharing.share(db_session, other_user.id, pro_reminder.id, test_user.id)

    def test_reshare_updates_permission(self, db_session, pro_user, other_user, pro_reminder):
        first = sharing.share(db_session, pro_user.id, pro_reminder.id, other_user.id, SharePermission.VIEW)
        second = sharing.share(db_session, pro_user.id, pro_reminder.id, other_user.id, SharePermission.EDIT)

        assert first.id == second.id
        assert second.permission == SharePermission.EDIT
        assert len(sharing.list_shares(db_session, pro_reminder.id)) == 1


# ============================================================================
# Access Levels
# ============================================================================

class TestAccessLevels:
    """Tests for permission_for."""

    def test_levels(self, db_session, store, pro_user, test_user, other_user, in_one_hour):
        reminder = store.create(
            db_session,
            pro_user,
            ReminderCreate(title="Pick up kids", scheduled_at=in_one_hour, assigned_to=test_user.id),
        ).reminder

        assert sharing.permission_for(db_session, pro_user.id, reminder) == AccessLevel.OWNER
        assert sharing.permission_for(db_session, test_user.id, reminder) == AccessLevel.VIEW
        assert sharing.permission_for(db_session, other_user.id, reminder) == AccessLevel.NONE

        sharing.share(db_session, pro_user.id, reminder.id, other_user.id, SharePermission.EDIT)

        assert sharing.permission_for(db_session, other_user.id, reminder) == AccessLevel.EDIT

    def test_access_flags(self):
        assert AccessLevel.OWNER.can_edit and AccessLevel.EDIT.can_edit
        assert not AccessLevel.VIEW.can_edit
        assert AccessLevel.VIEW.can_view
        assert not AccessLevel.NONE.can_view


# ============================================================================
# Revoke
# ============================================================================

class TestRevoke:
    """Tests for sharing.revoke."""

    def test_revoke_removes_visibility(self, db_session, store, pro_user, other_user, pro_reminder):
        sharing.share(db_session, pro_user.id, pro_reminder.id, other_user.id)

        assert sharing.revoke(db_session, pro_user.id, pro_reminder.id, other_user.id) is True
        assert store.get_shared(db_session, other_user.id) == []

    def test_revoke_missing_share(self, db_session, pro_user, other_user, pro_reminder):
        assert sharing.revoke(db_session, pro_user.id, pro_reminder.id, other_user.id) is False

    def test_view_holder_cannot_revoke(self, db_session, pro_user, other_user, test_user, pro_reminder):
        sharing.share(db_session, pro_user.id, pro_reminder.id, other_user.id, SharePermission.VIEW)
        sharing.share(db_session, pro_user.id, pro_reminder.id, test_user.id, SharePermission.VIEW)

        with pytest.raises(PermissionDeniedError):
            sharing.revoke(db_session, other_user.id, pro_reminder.id, test_user.id)

    def test_delete_removes_shares(self, db_session, store, pro_user, other_user, pro_reminder):
        sharing.share(db_session, pro_user.id, pro_reminder.id, other_user.id)

        store.delete(db_session, pro_user.id, pro_reminder.id)

        assert db_session.exec(select(SharedReminder)).all() == []
