"""
Block repository.
"""

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.block import Block
from app.repositories.base import BaseRepository
from app.utils.db_decorators import with_rollback_on_error


class BlockRepository(BaseRepository[Block]):
    """Repository for cached block timestamps."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize repository."""
        super().__init__(Block, session)

    async def get_timestamps(self, block_numbers: list[int]) -> dict[int, int]:
        """
        Look up cached timestamps.

        Args:
            block_numbers: Blocks to look up

        Returns:
            Mapping of block number to timestamp for the cached ones
        """
        if not block_numbers:
            return {}
        result = await self.session.execute(
            select(Block.block_number, Block.timestamp).where(
                Block.block_number.in_(set(block_numbers))
            )
        )
        return {number: timestamp for number, timestamp in result.all()}

    async def get_cached_numbers(self) -> set[int]:
        """Get every cached block number."""
        result = await self.session.execute(select(Block.block_number))
        return set(result.scalars().all())

    @with_rollback_on_error
    async def insert_ignore_existing(self, block_number: int, timestamp: int) -> None:
        """
        Cache a timestamp; an existing row wins.

        Args:
            block_number: Block number
            timestamp: Unix timestamp of the block
        """
        stmt = (
            self.upsert_statement()
            .values(block_number=block_number, timestamp=timestamp)
            .on_conflict_do_nothing(index_elements=["block_number"])
        )
        await self.session.execute(stmt)
        await self.session.flush()
