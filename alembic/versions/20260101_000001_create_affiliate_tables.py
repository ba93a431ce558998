"""Create affiliate tables

Revision ID: 20260101_000001
Revises: 
Create Date: 2026-01-01

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '20260101_000001'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # Members known to the affiliate program
    op.create_table(
        'discord_members',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('discord_id', sa.String(32), nullable=False),
        sa.Column('username', sa.String(255), nullable=True),
        sa.Column('display_name', sa.String(255), nullable=True),
        sa.Column('joined_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('invited_by_discord_id', sa.String(32), nullable=True),
        sa.Column('invite_code_used', sa.String(64), nullable=True),
        sa.Column('last_earnings_dm_month', sa.String(7), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_discord_members_discord_id', 'discord_members', ['discord_id'], unique=True)
    op.create_index('ix_discord_members_invited_by_discord_id', 'discord_members', ['invited_by_discord_id'])

    # Personal invite links
    op.create_table(
        'invite_records',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('code', sa.String(64), nullable=False),
        sa.Column('owner_discord_id', sa.String(32), nullable=False),
        sa.Column('personal_url', sa.String(255), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_invite_records_code', 'invite_records', ['code'], unique=True)
    op.create_index('ix_invite_records_owner_discord_id', 'invite_records', ['owner_discord_id'], unique=True)

    # Append-only invites log
    op.create_table(
        'invites_log',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('invitee_discord_id', sa.String(32), nullable=False),
        sa.Column('inviter_discord_id', sa.String(32), nullable=False),
        sa.Column('invite_code', sa.String(64), nullable=False),
        sa.Column('joined_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('month_key', sa.String(7), nullable=False),
        sa.Column('qualified', sa.Boolean(), nullable=False, server_default='false'),
        sa.Column('qualified_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_invites_log_invitee_discord_id', 'invites_log', ['invitee_discord_id'])
    op.create_index('ix_invites_log_inviter_discord_id', 'invites_log', ['inviter_discord_id'])
    op.create_index('ix_invites_log_month_key', 'invites_log', ['month_key'])
    op.create_index('ix_invites_log_month_inviter', 'invites_log', ['month_key', 'inviter_discord_id'])


def downgrade() -> None:
    op.drop_index('ix_invites_log_month_inviter', table_name='invites_log')
    op.drop_index('ix_invites_log_month_key', table_name='invites_log')
    op.drop_index('ix_invites_log_inviter_discord_id', table_name='invites_log')
    op.drop_index('ix_invites_log_invitee_discord_id', table_name='invites_log')
    op.drop_table('invites_log')

    op.drop_index('ix_invite_records_owner_discord_id', table_name='invite_records')
    op.drop_index('ix_invite_records_code', table_name='invite_records')
    op.drop_table('invite_records')

    op.drop_index('ix_discord_members_invited_by_discord_id', table_name='discord_members')
    op.drop_index('ix_discord_members_discord_id', table_name='discord_members')
    op.drop_table('discord_members')
