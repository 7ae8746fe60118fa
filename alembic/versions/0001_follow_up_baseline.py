"""Baseline migration - proposals, follow-up log, notifications, push

Revision ID: 0001_follow_up_baseline
Revises:
Create Date: 2026-10-18

Creates profiles, proposals with follow-up tracking columns, the
append-only follow-up log, in-app notifications and push subscriptions.
"""
from typing import Sequence, Union

from alembic import op


# revision identifiers, used by Alembic.
revision: str = '0001_follow_up_baseline'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Create follow-up tracking tables."""

    op.execute('CREATE EXTENSION IF NOT EXISTS pgcrypto')  # For gen_random_uuid()

    # ==========================================================================
    # Profiles
    # ==========================================================================
    op.execute('''
        CREATE TABLE profiles (
            id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
            email VARCHAR(255) UNIQUE NOT NULL,
            full_name VARCHAR(255),
            role VARCHAR(50) NOT NULL DEFAULT 'representative',
            is_active BOOLEAN NOT NULL DEFAULT true,
            created_at TIMESTAMPTZ NOT NULL DEFAULT now()
        )
    ''')

    # ==========================================================================
    # Proposals
    # ==========================================================================
    op.execute('''
        CREATE TABLE proposals (
            id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
            proposal_no VARCHAR(100) NOT NULL,
            customer_name VARCHAR(255) NOT NULL,
            amount NUMERIC(14, 2),
            currency VARCHAR(3),
            status VARCHAR(20) NOT NULL DEFAULT 'draft',
            representative_id UUID REFERENCES profiles(id) ON DELETE SET NULL,
            representative_name VARCHAR(255),
            next_follow_up_date DATE,
            missed_follow_up_count INTEGER NOT NULL DEFAULT 0,
            last_contact_date DATE,
            last_reminder_sent_at TIMESTAMPTZ,
            created_at TIMESTAMPTZ NOT NULL DEFAULT now(),
            updated_at TIMESTAMPTZ NOT NULL DEFAULT now(),
            CONSTRAINT ck_proposals_missed_non_negative CHECK (missed_follow_up_count >= 0)
        )
    ''')
    op.execute('CREATE INDEX idx_proposals_follow_up ON proposals (status, next_follow_up_date)')
    op.execute(
        'CREATE INDEX idx_proposals_representative ON proposals (representative_id, created_at)'
    )

    # ==========================================================================
    # Follow-up log (append-only)
    # ==========================================================================
    op.execute('''
        CREATE TABLE follow_up_logs (
            id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
            proposal_id UUID NOT NULL REFERENCES proposals(id) ON DELETE CASCADE,
            representative_id UUID,
            action_type VARCHAR(20) NOT NULL,
            scheduled_date DATE NOT NULL,
            completed_at TIMESTAMPTZ,
            notes TEXT,
            created_at TIMESTAMPTZ NOT NULL DEFAULT now()
        )
    ''')
    op.execute(
        'CREATE INDEX idx_follow_up_logs_proposal ON follow_up_logs (proposal_id, created_at)'
    )

    # ==========================================================================
    # Notifications
    # ==========================================================================
    op.execute('''
        CREATE TABLE notifications (
            id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
            user_id UUID NOT NULL REFERENCES profiles(id) ON DELETE CASCADE,
            proposal_id UUID,
            type VARCHAR(20) NOT NULL,
            title VARCHAR(255) NOT NULL,
            message TEXT NOT NULL,
            dedupe_key VARCHAR(255),
            is_read BOOLEAN NOT NULL DEFAULT false,
            read_at TIMESTAMPTZ,
            created_at TIMESTAMPTZ NOT NULL DEFAULT now()
        )
    ''')
    op.execute(
        'CREATE INDEX idx_notif_user_unread ON notifications (user_id, is_read, created_at)'
    )
    op.execute('CREATE INDEX idx_notif_dedupe ON notifications (dedupe_key, created_at)')

    # ==========================================================================
    # Push subscriptions
    # ==========================================================================
    op.execute('''
        CREATE TABLE push_subscriptions (
            id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
            user_id UUID NOT NULL REFERENCES profiles(id) ON DELETE CASCADE,
            endpoint TEXT NOT NULL,
            transport VARCHAR(20) NOT NULL,
            p256dh TEXT,
            auth TEXT,
            keys JSON,
            user_agent VARCHAR(255),
            created_at TIMESTAMPTZ NOT NULL DEFAULT now(),
            CONSTRAINT uq_push_subscriptions_user_endpoint UNIQUE (user_id, endpoint)
        )
    ''')
    op.execute('CREATE INDEX ix_push_subscriptions_user_id ON push_subscriptions (user_id)')


def downgrade() -> None:
    """Drop follow-up tracking tables."""
    op.execute('DROP TABLE IF EXISTS push_subscriptions')
    op.execute('DROP TABLE IF EXISTS notifications')
    op.execute('DROP TABLE IF EXISTS follow_up_logs')
    op.execute('DROP TABLE IF EXISTS proposals')
    op.execute('DROP TABLE IF EXISTS profiles')
