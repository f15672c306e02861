"""Add block timestamp cache.

Revision ID: 20261018_000002
Revises: 20261018_000001
Create Date: 2026-10-18

Blocks table plus mint timestamp columns on the derived stats.
"""

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '20261018_000002'
down_revision = '20261018_000001'
branch_labels = None
depends_on = None


def upgrade() -> None:
    """Add blocks table and timestamp columns."""
    op.create_table(
        'blocks',
        sa.Column('block_number', sa.BigInteger(), autoincrement=False, nullable=False),
        sa.Column('timestamp', sa.BigInteger(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint('block_number'),
    )
    op.add_column('token_stats', sa.Column('mint_timestamp', sa.BigInteger(), nullable=True))
    op.add_column('authors', sa.Column('first_mint_timestamp', sa.BigInteger(), nullable=True))


def downgrade() -> None:
    """Drop blocks table and timestamp columns."""
    op.drop_column('authors', 'first_mint_timestamp')
    op.drop_column('token_stats', 'mint_timestamp')
    op.drop_table('blocks')
