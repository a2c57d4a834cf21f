"""Create short_links table

Revision ID: 001_short_links
Revises:
Create Date: 2026-10-18 00:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy import inspect

# revision identifiers, used by Alembic.
revision: str = '001_short_links'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """
    Create short_links: one row per issued short code.

    The unique index on code is what makes concurrent inserts of the same
    code fail at the database instead of silently overwriting each other.
    """
    bind = op.get_bind()
    existing_tables = inspect(bind).get_table_names()

    # The application may already have created the table on startup
    if 'short_links' in existing_tables:
        return

    op.create_table(
        'short_links',
        sa.Column('id', sa.Integer(), nullable=False, autoincrement=True),
        sa.Column('code', sa.String(length=32), nullable=False),
        sa.Column('target_url', sa.Text(), nullable=False),
        sa.Column('owner_id', sa.String(length=255), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('expires_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('click_count', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('deleted_at', sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint('id')
    )

    op.create_index('ix_short_links_code', 'short_links', ['code'], unique=True)
    op.create_index('ix_short_links_created_at', 'short_links', ['created_at'])
    op.create_index('ix_short_links_owner_created', 'short_links', ['owner_id', 'created_at'])


def downgrade() -> None:
    op.drop_index('ix_short_links_owner_created', table_name='short_links')
    op.drop_index('ix_short_links_created_at', table_name='short_links')
    op.drop_index('ix_short_links_code', table_name='short_links')
    op.drop_table('short_links')
