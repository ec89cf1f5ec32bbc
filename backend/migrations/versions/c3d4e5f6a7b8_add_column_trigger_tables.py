"""Add column trigger tables

Revision ID: c3d4e5f6a7b8
Revises:
Create Date: 2024-01-15

This migration adds:
- column_message_triggers: message rules attached to kanban columns
- automated_message_logs: ledger of scheduled/sent/failed automated messages

whatsapp_connections, lead_columns and contacto_bloqueado_bot already exist (owned by the CRM).
"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = 'c3d4e5f6a7b8'
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    # Create column_message_triggers table
    op.create_table(
        'column_message_triggers',
        sa.Column('id', sa.String(36), primary_key=True),

        # Ownership
        sa.Column('user_id', sa.String(36), nullable=False),
        sa.Column('column_id', sa.String(36), nullable=False),

        # Message
        sa.Column('message_title', sa.Text(), nullable=False),
        sa.Column('message_content', sa.Text(), nullable=False),

        # Firing rule
        sa.Column('trigger_condition', sa.Text(), nullable=False, server_default='on_enter'),
        sa.Column('delay_hours', sa.Float(), nullable=True, server_default='0'),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),

        # Timestamps
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),

        sa.CheckConstraint('delay_hours IS NULL OR delay_hours >= 0', name='ck_triggers_delay_non_negative'),
        sa.CheckConstraint(
            "trigger_condition IN ('on_enter', 'on_exit', 'on_both')",
            name='ck_triggers_condition'
        ),
    )

    op.create_index('idx_triggers_user_id', 'column_message_triggers', ['user_id'])
    op.create_index('idx_triggers_column_active', 'column_message_triggers', ['column_id', 'is_active'])

    # Create automated_message_logs table
    op.create_table(
        'automated_message_logs',
        sa.Column('id', sa.String(36), primary_key=True),

        # References
        sa.Column(
            'trigger_id',
            sa.String(36),
            sa.ForeignKey('column_message_triggers.id', ondelete='SET NULL'),
            nullable=True
        ),
        sa.Column('lead_id', sa.String(36), nullable=False),
        sa.Column('user_id', sa.String(36), nullable=False),

        # Message
        sa.Column('message_content', sa.Text(), nullable=False),
        sa.Column('whatsapp_number', sa.Text(), nullable=False),
        sa.Column('instance_name', sa.Text(), nullable=False),

        # Delivery status
        sa.Column('status', sa.Text(), nullable=False, server_default='pending'),
        sa.Column('scheduled_for', sa.DateTime(timezone=True), nullable=False),
        sa.Column('sent_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('error_message', sa.Text(), nullable=True),

        # Retry bookkeeping
        sa.Column('retry_count', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('last_retry_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('last_retry_error', sa.Text(), nullable=True),

        # Idempotency
        sa.Column('move_event_id', sa.Text(), nullable=True),

        # Timestamps
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),

        sa.UniqueConstraint('trigger_id', 'move_event_id', name='uq_message_logs_trigger_move_event'),
    )

    op.create_index('idx_message_logs_status_scheduled', 'automated_message_logs', ['status', 'scheduled_for'])
    op.create_index('idx_message_logs_lead_id', 'automated_message_logs', ['lead_id'])
    op.create_index('idx_message_logs_user_id', 'automated_message_logs', ['user_id'])


def downgrade() -> None:
    op.drop_index('idx_message_logs_user_id', table_name='automated_message_logs')
    op.drop_index('idx_message_logs_lead_id', table_name='automated_message_logs')
    op.drop_index('idx_message_logs_status_scheduled', table_name='automated_message_logs')
    op.drop_table('automated_message_logs')

    op.drop_index('idx_triggers_column_active', table_name='column_message_triggers')
    op.drop_index('idx_triggers_user_id', table_name='column_message_triggers')
    op.drop_table('column_message_triggers')
