"""Reminders schema - profiles, reminders, shares and device triggers.

Revision ID: 001
Revises: None
Create Date: 2026-10-18

Tables:
- profiles: mirror of identity-provider users with tier and preferences
- reminders: scheduled reminders with JSON attachments and recurrence
- shared_reminders: per-user view/edit grants, unique per (reminder, user)
- reminder_triggers: armed/fired/disarmed device triggers
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = '001'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

json_type = sa.JSON().with_variant(postgresql.JSONB(), "postgresql")

subscription_tier_enum = sa.Enum('FREE', 'PRO', name='subscriptiontier')
reminder_status_enum = sa.Enum('PENDING', 'COMPLETED', 'CANCELLED', name='reminderstatus')
recurring_pattern_enum = sa.Enum('DAILY', 'WEEKLY', 'MONTHLY', name='recurringpattern')
share_permission_enum = sa.Enum('VIEW', 'EDIT', name='sharepermission')
trigger_state_enum = sa.Enum('ARMED', 'FIRED', 'DISARMED', name='triggerstate')


def upgrade() -> None:
    op.create_table(
        'profiles',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('email', sa.String(length=255), nullable=False),
        sa.Column('display_name', sa.String(length=100), nullable=True),
        sa.Column('avatar_url', sa.String(length=500), nullable=True),
        sa.Column('notification_preferences', json_type, nullable=False),
        sa.Column('subscription_tier', subscription_tier_enum, nullable=False, server_default='FREE'),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_profiles_email', 'profiles', ['email'], unique=True)

    op.create_table(
        'reminders',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('title', sa.String(length=100), nullable=False),
        sa.Column('description', sa.String(), nullable=True),
        sa.Column('scheduled_at', sa.DateTime(), nullable=False),
        sa.Column('created_by', sa.Uuid(), nullable=False),
        sa.Column('assigned_to', sa.Uuid(), nullable=False),
        sa.Column('attachments', json_type, nullable=False),
        sa.Column('status', reminder_status_enum, nullable=False, server_default='PENDING'),
        sa.Column('is_recurring', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('recurring_pattern', recurring_pattern_enum, nullable=True),
        sa.Column('recurrence_anchor', sa.DateTime(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(['created_by'], ['profiles.id']),
        sa.ForeignKeyConstraint(['assigned_to'], ['profiles.id']),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_reminders_scheduled_at', 'reminders', ['scheduled_at'])
    op.create_index('ix_reminders_created_by', 'reminders', ['created_by'])
    op.create_index('ix_reminders_assigned_to', 'reminders', ['assigned_to'])
    op.create_index('ix_reminders_status', 'reminders', ['status'])

    op.create_table(
        'shared_reminders',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('reminder_id', sa.Uuid(), nullable=False),
        sa.Column('shared_with', sa.Uuid(), nullable=False),
        sa.Column('permission', share_permission_enum, nullable=False, server_default='VIEW'),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(['reminder_id'], ['reminders.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['shared_with'], ['profiles.id']),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('reminder_id', 'shared_with', name='uq_shared_reminder_target'),
    )
    op.create_index('ix_shared_reminders_reminder_id', 'shared_reminders', ['reminder_id'])
    op.create_index('ix_shared_reminders_shared_with', 'shared_reminders', ['shared_with'])

    op.create_table(
        'reminder_triggers',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('reminder_id', sa.Uuid(), nullable=False),
        sa.Column('device_trigger_id', sa.String(length=255), nullable=False),
        sa.Column('fire_at', sa.DateTime(), nullable=False),
        sa.Column('state', trigger_state_enum, nullable=False, server_default='ARMED'),
        sa.Column('payload', json_type, nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('fired_at', sa.DateTime(), nullable=True),
        sa.Column('disarmed_at', sa.DateTime(), nullable=True),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_reminder_triggers_reminder_id', 'reminder_triggers', ['reminder_id'])
    op.create_index('ix_reminder_triggers_fire_at', 'reminder_triggers', ['fire_at'])
    op.create_index('ix_reminder_triggers_state', 'reminder_triggers', ['state'])


def downgrade() -> None:
    op.drop_table('reminder_triggers')
    op.drop_table('shared_reminders')
    op.drop_table('reminders')
    op.drop_table('profiles')

    bind = op.get_bind()
    for enum in (
        trigger_state_enum,
        share_permission_enum,
        recurring_pattern_enum,
        reminder_status_enum,
        subscription_tier_enum,
    ):
        enum.drop(bind, checkfirst=True)
