"""Create indexer tables.

Revision ID: 20261018_000001
Revises:
Create Date: 2026-10-18

Event log, sync checkpoints, derived stats, content cache and render
jobs.
"""

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql


# revision identifiers, used by Alembic.
revision = '20261018_000001'
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    """Create indexer tables."""
    op.create_table(
        'events',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('tx_hash', sa.String(length=66), nullable=False),
        sa.Column('log_index', sa.Integer(), nullable=False),
        sa.Column('block_number', sa.BigInteger(), nullable=False),
        sa.Column('event_type', sa.String(length=50), nullable=False),
        sa.Column('token_id', sa.BigInteger(), nullable=False),
        sa.Column(
            'data',
            sa.JSON().with_variant(postgresql.JSONB(), 'postgresql'),
            nullable=False,
            comment='Event args; uint256 values as decimal strings'
        ),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('tx_hash', 'log_index', name='uq_events_tx_log'),
    )
    op.create_index('idx_events_token_id', 'events', ['token_id'])
    op.create_index('idx_events_block', 'events', ['block_number'])
    op.create_index('idx_events_type', 'events', ['event_type'])

    op.create_table(
        'sync_status',
        sa.Column('key', sa.String(length=50), nullable=False),
        sa.Column('last_block', sa.BigInteger(), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint('key'),
    )

    op.create_table(
        'token_stats',
        sa.Column('token_id', sa.BigInteger(), autoincrement=False, nullable=False),
        sa.Column('mint_block', sa.BigInteger(), nullable=True),
        sa.Column('transfer_count', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('last_sale_price', sa.Text(), nullable=True),
        sa.Column('last_sale_block', sa.BigInteger(), nullable=True),
        sa.Column('total_supply', sa.Text(), nullable=True),
        sa.Column('floor_price', sa.Text(), nullable=True),
        sa.Column('listed_count', sa.Text(), nullable=True),
        sa.Column('total_volume', sa.Text(), nullable=True),
        sa.Column('royalty_recipient', sa.String(length=42), nullable=True),
        sa.Column('royalty_bps', sa.Integer(), nullable=True),
        sa.PrimaryKeyConstraint('token_id'),
    )

    op.create_table(
        'authors',
        sa.Column('address', sa.String(length=42), nullable=False),
        sa.Column('total_minted', sa.Integer(), nullable=False, server_default='0'),
        sa.Column(
            'first_mint_block',
            sa.BigInteger(),
            nullable=True,
            comment='Set once, never overwritten'
        ),
        sa.PrimaryKeyConstraint('address'),
    )
    op.create_index('idx_authors_minted', 'authors', ['total_minted'])

    op.create_table(
        'nfts',
        sa.Column('token_id', sa.BigInteger(), autoincrement=False, nullable=False),
        sa.Column('uri', sa.Text(), nullable=False),
        sa.Column('author', sa.String(length=42), nullable=False),
        sa.Column('name', sa.Text(), nullable=True),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('text_uri', sa.Text(), nullable=True),
        sa.Column('content_type', sa.Text(), nullable=True),
        sa.Column('content', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint('token_id'),
    )
    op.create_index('idx_nfts_author', 'nfts', ['author'])

    op.create_table(
        'render_jobs',
        sa.Column('token_id', sa.BigInteger(), autoincrement=False, nullable=False),
        sa.Column('status', sa.String(length=20), nullable=False),
        sa.Column('file_path', sa.Text(), nullable=True),
        sa.Column('error', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('generated_at', sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint('token_id'),
    )
    op.create_index('idx_render_jobs_status', 'render_jobs', ['status'])


def downgrade() -> None:
    """Drop indexer tables."""
    op.drop_index('idx_render_jobs_status', table_name='render_jobs')
    op.drop_table('render_jobs')
    op.drop_index('idx_nfts_author', table_name='nfts')
    op.drop_table('nfts')
    op.drop_index('idx_authors_minted', table_name='authors')
    op.drop_table('authors')
    op.drop_table('token_stats')
    op.drop_table('sync_status')
    op.drop_index('idx_events_type', table_name='events')
    op.drop_index('idx_events_block', table_name='events')
    op.drop_index('idx_events_token_id', table_name='events')
    op.drop_table('events')
