"""Create user_sessions and audit_events tables

Revision ID: 0001
Revises:
Create Date: 2026-10-18 09:00:00.000000
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

revision: str | None = '0001'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Apply schema changes."""
    op.create_table(
        'user_sessions',
        sa.Column('id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('user_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('authorization_id', sa.String(length=200), nullable=False),
        sa.Column('client_id', sa.String(length=200), nullable=True),
        sa.Column('client_display_name', sa.String(length=200), nullable=True),
        sa.Column('current_refresh_token_hash', sa.String(length=64), nullable=True),
        sa.Column('previous_refresh_token_hash', sa.String(length=64), nullable=True),
        sa.Column('absolute_expires_utc', sa.DateTime(timezone=True), nullable=True),
        sa.Column('sliding_expires_utc', sa.DateTime(timezone=True), nullable=True),
        sa.Column('sliding_extension_count', sa.Integer(), server_default='0', nullable=False),
        sa.Column('created_utc', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.Column('last_activity_utc', sa.DateTime(timezone=True), nullable=True),
        sa.Column('revoked_utc', sa.DateTime(timezone=True), nullable=True),
        sa.Column('revocation_reason', sa.String(length=500), nullable=True),
        sa.Column('reuse_detected_utc', sa.DateTime(timezone=True), nullable=True),
        sa.Column('ip_address', sa.String(length=45), nullable=True),
        sa.Column('user_agent', sa.Text(), nullable=True),
        sa.PrimaryKeyConstraint('id', name=op.f('pk_user_sessions')),
        sa.UniqueConstraint('authorization_id', name='uq_user_sessions_authorization_id'),
    )
    op.create_index('ix_user_sessions_user_id', 'user_sessions', ['user_id'], unique=False)
    op.create_index(
        'ix_user_sessions_user_id_authorization_id',
        'user_sessions',
        ['user_id', 'authorization_id'],
        unique=False,
    )
    op.create_index('ix_user_sessions_revoked_utc', 'user_sessions', ['revoked_utc'], unique=False)

    op.create_table(
        'audit_events',
        sa.Column('id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('event_type', sa.String(length=100), nullable=False),
        sa.Column('user_id', sa.String(length=64), nullable=True),
        sa.Column('details', sa.Text(), nullable=True),
        sa.Column('ip_address', sa.String(length=45), nullable=True),
        sa.Column('user_agent', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.PrimaryKeyConstraint('id', name=op.f('pk_audit_events')),
    )
    op.create_index('ix_audit_events_event_type', 'audit_events', ['event_type'], unique=False)
    op.create_index('ix_audit_events_user_id', 'audit_events', ['user_id'], unique=False)
    op.create_index('ix_audit_events_created_at', 'audit_events', ['created_at'], unique=False)


def downgrade() -> None:
    """Revert schema changes."""
    op.drop_index('ix_audit_events_created_at', table_name='audit_events')
    op.drop_index('ix_audit_events_user_id', table_name='audit_events')
    op.drop_index('ix_audit_events_event_type', table_name='audit_events')
    op.drop_table('audit_events')

    op.drop_index('ix_user_sessions_revoked_utc', table_name='user_sessions')
    op.drop_index('ix_user_sessions_user_id_authorization_id', table_name='user_sessions')
    op.drop_index('ix_user_sessions_user_id', table_name='user_sessions')
    op.drop_table('user_sessions')
