"""initial schema - forms, submissions and webhook delivery log

Revision ID: 001
Revises: 
Create Date: 2026-10-19 09:00:00.000000

"""
from typing import Sequence, Union
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '001'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # Forms (only the columns the webhook pipeline reads)
    op.create_table(
        'forms',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('title', sa.String(255), nullable=False),
        sa.Column('fields', sa.JSON(), nullable=True),
        sa.Column('webhook_enabled', sa.Boolean(), server_default=sa.false()),
        sa.Column('webhook_url', sa.Text(), nullable=True),
        sa.Column('webhook_method', sa.String(10), nullable=True, server_default='POST'),
        sa.Column('webhook_headers', sa.JSON(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()')),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('now()')),
    )

    # Form submissions
    op.create_table(
        'form_submissions',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('form_id', sa.String(36), sa.ForeignKey('forms.id', ondelete='CASCADE'), nullable=False, index=True),
        sa.Column('submission_data', sa.JSON(), nullable=False),
        sa.Column('submitted_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
    )

    # Webhook delivery attempts (status as VARCHAR, not enum)
    op.create_table(
        'webhook_deliveries',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('form_id', sa.String(36), nullable=False, index=True),
        sa.Column('submission_id', sa.String(36), nullable=False, index=True),
        sa.Column('webhook_url', sa.Text(), nullable=False),
        sa.Column('status', sa.String(20), nullable=False, server_default='pending'),
        sa.Column('attempt_count', sa.Integer(), nullable=False, server_default='1'),
        sa.Column('response_code', sa.Integer(), nullable=True),
        sa.Column('response_body', sa.Text(), nullable=True),
        sa.Column('error_message', sa.Text(), nullable=True),
        sa.Column('delivered_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()')),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('now()')),
        sa.UniqueConstraint('submission_id', 'attempt_count', name='uq_webhook_deliveries_submission_attempt'),
    )


def downgrade() -> None:
    op.drop_table('webhook_deliveries')
    op.drop_table('form_submissions')
    op.drop_table('forms')
