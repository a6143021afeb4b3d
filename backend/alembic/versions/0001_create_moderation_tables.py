"""Create users, approval requests and notification tables

Revision ID: 0001
Revises:
Create Date: 2026-10-19 09:00:00.000000

At most one pending approval request may exist per user; the partial unique
index makes a second concurrent materialization fail instead of duplicating.
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

revision: str | None = '0001'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Apply schema changes."""
    op.create_table(
        'users',
        sa.Column('id', sa.String(length=36), nullable=False),
        sa.Column('firstName', sa.String(length=100), nullable=False),
        sa.Column('middleName', sa.String(length=100), nullable=True),
        sa.Column('lastName', sa.String(length=100), nullable=False),
        sa.Column('email', sa.String(length=255), nullable=False),
        sa.Column('mobileNumber', sa.String(length=32), nullable=True),
        sa.Column('user_type', sa.String(length=20), nullable=False),
        sa.Column('status', sa.String(length=20), nullable=False),
        sa.Column('requested_role', sa.String(length=20), nullable=True),
        sa.Column('is_banned', sa.Boolean(), server_default='false', nullable=False),
        sa.Column('banned_until', sa.DateTime(timezone=True), nullable=True),
        sa.Column('ban_reason', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.PrimaryKeyConstraint('id', name=op.f('pk_users')),
        sa.UniqueConstraint('email', name=op.f('uq_users_email')),
        sa.CheckConstraint(
            "user_type IN ('superadmin', 'admin', 'user')", name='valid_user_type'
        ),
        sa.CheckConstraint(
            "status IN ('active', 'pending_admin')", name='valid_user_status'
        ),
    )
    op.create_index('ix_users_user_type', 'users', ['user_type'], unique=False)
    op.create_index('ix_users_status', 'users', ['status'], unique=False)

    op.create_table(
        'approval_requests',
        sa.Column('id', sa.String(length=36), nullable=False),
        sa.Column('user_id', sa.String(length=36), nullable=False),
        sa.Column('requested_role', sa.String(length=20), nullable=False),
        sa.Column('requested_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.Column('status', sa.String(length=20), nullable=False),
        sa.Column('reviewed_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('reviewed_by', sa.String(length=36), nullable=True),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], name=op.f('fk_approval_requests_user_id_users'), ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id', name=op.f('pk_approval_requests')),
        sa.CheckConstraint(
            "status IN ('pending', 'approved', 'rejected')", name='valid_request_status'
        ),
    )
    op.create_index('ix_approval_requests_user_id', 'approval_requests', ['user_id'], unique=False)
    op.create_index(
        'uq_approval_requests_pending_user',
        'approval_requests',
        ['user_id'],
        unique=True,
        postgresql_where=sa.text("status = 'pending'"),
    )

    op.create_table(
        'notifications',
        sa.Column('id', sa.String(length=36), nullable=False),
        sa.Column('user_id', sa.String(length=36), nullable=False),
        sa.Column('message', sa.Text(), nullable=False),
        sa.Column('emergency_report_id', sa.String(length=36), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], name=op.f('fk_notifications_user_id_users'), ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id', name=op.f('pk_notifications')),
    )
    op.create_index('ix_notifications_user_id', 'notifications', ['user_id'], unique=False)

    op.create_table(
        'admin_notifications',
        sa.Column('id', sa.String(length=36), nullable=False),
        sa.Column('type', sa.String(length=50), nullable=False),
        sa.Column('message', sa.Text(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.PrimaryKeyConstraint('id', name=op.f('pk_admin_notifications')),
    )
    op.create_index('ix_admin_notifications_type', 'admin_notifications', ['type'], unique=False)


def downgrade() -> None:
    """Revert schema changes."""
    op.drop_index('ix_admin_notifications_type', table_name='admin_notifications')
    op.drop_table('admin_notifications')
    op.drop_index('ix_notifications_user_id', table_name='notifications')
    op.drop_table('notifications')
    op.drop_index('uq_approval_requests_pending_user', table_name='approval_requests')
    op.drop_index('ix_approval_requests_user_id', table_name='approval_requests')
    op.drop_table('approval_requests')
    op.drop_index('ix_users_status', table_name='users')
    op.drop_index('ix_users_user_type', table_name='users')
    op.drop_table('users')
