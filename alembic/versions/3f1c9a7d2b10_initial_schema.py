"""initial_schema

Revision ID: 3f1c9a7d2b10
Revises:
Create Date: 2026-10-19 10:00:00.000000

"""
from typing import Sequence, Union

import sqlalchemy as sa
from alembic import op


# revision identifiers, used by Alembic.
revision: str = '3f1c9a7d2b10'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Create users, submissions, assignment/review ledgers, outbox, support, counters."""
    op.create_table(
        'users',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('name', sa.Text(), nullable=False, server_default=''),
        sa.Column('email', sa.Text(), nullable=False),
        sa.Column('password_hash', sa.Text(), nullable=True),
        sa.Column('role', sa.Text(), nullable=False, server_default='user'),
        sa.Column('track', sa.Text(), nullable=True),
        sa.Column('is_first_login', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('created_at', sa.Text(), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('email'),
    )
    op.create_index('idx_users_role', 'users', ['role'], unique=False)

    op.create_table(
        'registrations',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('user_id', sa.Integer(), nullable=True),
        sa.Column('paper_title', sa.Text(), nullable=False, server_default=''),
        sa.Column('authors', sa.Text(), nullable=False, server_default='[]'),
        sa.Column('email', sa.Text(), nullable=False, server_default=''),
        sa.Column('abstract_blob', sa.LargeBinary(), nullable=True),
        sa.Column('final_paper_blob', sa.LargeBinary(), nullable=True),
        sa.Column('tracks', sa.Text(), nullable=False, server_default=''),
        sa.Column('country', sa.Text(), nullable=False, server_default=''),
        sa.Column('state', sa.Text(), nullable=False, server_default=''),
        sa.Column('city', sa.Text(), nullable=False, server_default=''),
        sa.Column('status', sa.Text(), nullable=False, server_default='submitted'),
        sa.Column('final_submission_status', sa.Text(), nullable=False, server_default='not_submitted'),
        sa.Column('comments', sa.Text(), nullable=True),
        sa.Column('notification_sent', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('created_at', sa.Text(), nullable=False),
        sa.Column('updated_at', sa.Text(), nullable=False),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], ondelete='SET NULL'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('idx_registrations_user_title', 'registrations', ['user_id', 'paper_title'], unique=False)
    op.create_index('idx_registrations_status', 'registrations', ['status'], unique=False)

    op.create_table(
        'paper_assignments',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('paper_id', sa.Integer(), nullable=False),
        sa.Column('reviewer1', sa.Integer(), nullable=True),
        sa.Column('reviewer2', sa.Integer(), nullable=True),
        sa.Column('assigned_at', sa.Text(), nullable=False),
        sa.ForeignKeyConstraint(['paper_id'], ['registrations.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['reviewer1'], ['users.id'], ondelete='SET NULL'),
        sa.ForeignKeyConstraint(['reviewer2'], ['users.id'], ondelete='SET NULL'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('paper_id'),
    )

    op.create_table(
        'paper_reviews',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('paper_id', sa.Integer(), nullable=False),
        sa.Column('reviewer_id', sa.Integer(), nullable=False),
        sa.Column('status', sa.Text(), nullable=False, server_default='under_review'),
        sa.Column('comments', sa.Text(), nullable=True),
        sa.Column('reviewed_at', sa.Text(), nullable=False),
        sa.ForeignKeyConstraint(['paper_id'], ['registrations.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['reviewer_id'], ['users.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('paper_id', 'reviewer_id', name='uq_paper_reviews_paper_reviewer'),
    )
    op.create_index('idx_paper_reviews_reviewer', 'paper_reviews', ['reviewer_id'], unique=False)

    op.create_table(
        'notification_outbox',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('kind', sa.Text(), nullable=False),
        sa.Column('recipient', sa.Text(), nullable=False),
        sa.Column('payload_json', sa.Text(), nullable=False, server_default='{}'),
        sa.Column('status', sa.Text(), nullable=False, server_default='pending'),
        sa.Column('attempts', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('last_error', sa.Text(), nullable=False, server_default=''),
        sa.Column('created_at', sa.Text(), nullable=False),
        sa.Column('updated_at', sa.Text(), nullable=False),
        sa.Column('sent_at', sa.Text(), nullable=True),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(
        'idx_notification_outbox_status_created', 'notification_outbox', ['status', 'created_at'], unique=False,
    )

    op.create_table(
        'support_tickets',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('title', sa.Text(), nullable=False),
        sa.Column('description', sa.Text(), nullable=False, server_default=''),
        sa.Column('priority', sa.Text(), nullable=False, server_default='medium'),
        sa.Column('status', sa.Text(), nullable=False, server_default='open'),
        sa.Column('user_id', sa.Integer(), nullable=True),
        sa.Column('assigned_to', sa.Integer(), nullable=True),
        sa.Column('created_at', sa.Text(), nullable=False),
        sa.Column('updated_at', sa.Text(), nullable=False),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], ondelete='SET NULL'),
        sa.ForeignKeyConstraint(['assigned_to'], ['users.id'], ondelete='SET NULL'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('idx_support_tickets_status', 'support_tickets', ['status'], unique=False)

    op.create_table(
        'visitor_counter',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('count', sa.Integer(), nullable=False, server_default='0'),
        sa.PrimaryKeyConstraint('id'),
    )

    op.create_table(
        'revoked_tokens',
        sa.Column('token_hash', sa.Text(), nullable=False),
        sa.Column('expires_at', sa.Text(), nullable=False),
        sa.Column('revoked_at', sa.Text(), nullable=False),
        sa.PrimaryKeyConstraint('token_hash'),
    )
    op.create_index('idx_revoked_tokens_expires_at', 'revoked_tokens', ['expires_at'], unique=False)


def downgrade() -> None:
    op.drop_index('idx_revoked_tokens_expires_at', table_name='revoked_tokens')
    op.drop_table('revoked_tokens')
    op.drop_table('visitor_counter')
    op.drop_index('idx_support_tickets_status', table_name='support_tickets')
    op.drop_table('support_tickets')
    op.drop_index('idx_notification_outbox_status_created', table_name='notification_outbox')
    op.drop_table('notification_outbox')
    op.drop_index('idx_paper_reviews_reviewer', table_name='paper_reviews')
    op.drop_table('paper_reviews')
    op.drop_table('paper_assignments')
    op.drop_index('idx_registrations_status', table_name='registrations')
    op.drop_index('idx_registrations_user_title', table_name='registrations')
    op.drop_table('registrations')
    op.drop_index('idx_users_role', table_name='users')
    op.drop_table('users')
