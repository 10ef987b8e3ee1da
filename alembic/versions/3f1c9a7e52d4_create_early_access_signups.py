"""create_early_access_signups

Revision ID: 3f1c9a7e52d4
Revises:
Create Date: 2026-10-19 09:12:44.118302

"""
from typing import Sequence, Union

import sqlalchemy as sa
from alembic import op

# revision identifiers, used by Alembic.
revision: str = '3f1c9a7e52d4'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Create the early access signups table."""
    op.create_table(
        'early_access_signups',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('email', sa.String(length=255), nullable=False),
        sa.Column('first_name', sa.String(length=100), nullable=True),
        sa.Column('last_name', sa.String(length=100), nullable=True),
        sa.Column('ip_address', sa.String(length=45), nullable=True),
        sa.Column('otp_code', sa.String(length=6), nullable=True),
        sa.Column('otp_expires_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('otp_verified_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('otp_attempts', sa.Integer(), server_default='0', nullable=False),
        sa.Column('otp_last_attempt', sa.DateTime(timezone=True), nullable=True),
        sa.Column('is_verified', sa.Boolean(), server_default=sa.false(), nullable=False),
        sa.Column('email_sent', sa.Boolean(), server_default=sa.false(), nullable=False),
        sa.Column('engagement_token', sa.String(length=64), nullable=False),
        sa.Column('read_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('read_count', sa.Integer(), server_default='0', nullable=False),
        sa.Column('last_read_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('reader_ip', sa.String(length=45), nullable=True),
        sa.Column('reader_client', sa.String(length=500), nullable=True),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(op.f('ix_early_access_signups_id'), 'early_access_signups', ['id'], unique=False)
    op.create_index(op.f('ix_early_access_signups_created_at'), 'early_access_signups', ['created_at'], unique=False)
    op.create_index(op.f('ix_early_access_signups_email'), 'early_access_signups', ['email'], unique=True)
    op.create_index(op.f('ix_early_access_signups_engagement_token'), 'early_access_signups', ['engagement_token'], unique=True)


def downgrade() -> None:
    """Drop the early access signups table."""
    op.drop_index(op.f('ix_early_access_signups_engagement_token'), table_name='early_access_signups')
    op.drop_index(op.f('ix_early_access_signups_email'), table_name='early_access_signups')
    op.drop_index(op.f('ix_early_access_signups_created_at'), table_name='early_access_signups')
    op.drop_index(op.f('ix_early_access_signups_id'), table_name='early_access_signups')
    op.drop_table('early_access_signups')
