"""
Chain Event repository.

Data access layer for the append-only event log.
"""

from typing import Any

from sqlalchemy import delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.config.constants import EVENT_TOKEN_PURCHASED, EVENT_TRANSFER_SINGLE
from app.models.chain_event import ChainEvent
from app.repositories.base import BaseRepository
from app.utils.db_decorators import with_rollback_on_error

# Rows per INSERT statement (keeps bind parameters under driver limits)
INSERT_CHUNK_SIZE = 1000


class EventRepository(BaseRepository[ChainEvent]):
    """Repository for chain events."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize repository."""
        super().__init__(ChainEvent, session)

    @with_rollback_on_error
    async def insert_ignore_duplicates(self, rows: list[dict[str, Any]]) -> None:
        """
        Insert events, skipping any (tx_hash, log_index) already stored.

        Args:
            rows: Normalized event dicts with tx_hash, log_index,
                block_number, event_type, token_id and data
        """
        for start in range(0, len(rows), INSERT_CHUNK_SIZE):
            chunk = rows[start:start + INSERT_CHUNK_SIZE]
            stmt = (
                self.upsert_statement()
                .values(chunk)
                .on_conflict_do_nothing(index_elements=["tx_hash", "log_index"])
            )
            await self.session.execute(stmt)
        await self.session.flush()

    async def get_by_type(self, event_type: str) -> list[ChainEvent]:
        """
        Get all events of a type in chain order.

        Args:
            event_type: Event type name

        Returns:
            Events ordered by block and log index
        """
        query = (
            select(ChainEvent)
            .where(ChainEvent.event_type == event_type)
            .order_by(ChainEvent.block_number.asc(), ChainEvent.log_index.asc())
        )
        result = await self.session.execute(query)
        return list(result.scalars().all())

    async def count_transfers_by_token(self) -> dict[int, int]:
        """
        Count transfer events per token.

        Returns:
            Mapping of token_id to transfer count
        """
        query = (
            select(ChainEvent.token_id, func.count())
            .where(ChainEvent.event_type == EVENT_TRANSFER_SINGLE)
            .group_by(ChainEvent.token_id)
        )
        result = await self.session.execute(query)
        return {token_id: count for token_id, count in result.all()}

    async def get_purchases_for_token(self, token_id: int) -> list[ChainEvent]:
        """Get purchase events for a token in chain order."""
        query = (
            select(ChainEvent)
            .where(
                ChainEvent.event_type == EVENT_TOKEN_PURCHASED,
                ChainEvent.token_id == token_id,
            )
            .order_by(ChainEvent.block_number.asc(), ChainEvent.log_index.asc())
        )
        result = await self.session.execute(query)
        return list(result.scalars().all())

    async def get_token_events(self, token_id: int) -> list[ChainEvent]:
        """
        Get all events for a token.

        Args:
            token_id: Token ID

        Returns:
            Events ordered by block and log index
        """
        query = (
            select(ChainEvent)
            .where(ChainEvent.token_id == token_id)
            .order_by(ChainEvent.block_number.asc(), ChainEvent.log_index.asc())
        )
        result = await self.session.execute(query)
        return list(result.scalars().all())

    async def get_recent(self, limit: int = 500) -> list[ChainEvent]:
        """
        Get most recent events across all tokens.

        Args:
            limit: Max results

        Returns:
            Events, newest first
        """
        query = (
            select(ChainEvent)
            .order_by(ChainEvent.block_number.desc(), ChainEvent.log_index.desc())
            .limit(limit)
        )
        result = await self.session.execute(query)
        return list(result.scalars().all())

    async def get_block_numbers(self) -> list[int]:
        """Get every distinct block holding an event, ascending."""
        result = await self.session.execute(
            select(ChainEvent.block_number).distinct().order_by(ChainEvent.block_number)
        )
        return list(result.scalars().all())

    @with_rollback_on_error
    async def delete_all(self) -> None:
        """Remove every event (used by a full resync)."""
        await self.session.execute(delete(ChainEvent))
