"""
Block Timestamp Service.

Read-through cache of block timestamps. A timestamp is read from the
chain at most once and served from the blocks table afterwards.
"""

import asyncio

from loguru import logger
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.repositories.block_repository import BlockRepository
from app.repositories.event_repository import EventRepository
from app.services.chain_client import ChainClient


class BlockTimestampService:
    """Cached block timestamps."""

    def __init__(
        self,
        session_maker: async_sessionmaker[AsyncSession],
        chain: ChainClient,
        prewarm_batch_size: int = 10,
        prewarm_batch_delay: float = 0.2,
    ):
        """
        Initialize timestamp service.

        Args:
            session_maker: Session factory
            chain: Chain client
            prewarm_batch_size: Blocks fetched concurrently by prewarm()
            prewarm_batch_delay: Seconds between prewarm batches
        """
        self.session_maker = session_maker
        self.chain = chain
        self.prewarm_batch_size = prewarm_batch_size
        self.prewarm_batch_delay = prewarm_batch_delay

    async def get_timestamp(self, block_number: int) -> int:
        """
        Get a block timestamp, fetching and caching it on a miss.

        Raises:
            ChainReadError: If the block cannot be read
        """
        async with self.session_maker() as session:
            cached = await BlockRepository(session).get_timestamps([block_number])
        if block_number in cached:
            return cached[block_number]

        timestamp = await self.chain.get_block_timestamp(block_number)

        async with self.session_maker() as session:
            await BlockRepository(session).insert_ignore_existing(block_number, timestamp)
            await session.commit()
        return timestamp

    async def get_many(self, block_numbers: list[int]) -> dict[int, int | None]:
        """
        Resolve several timestamps; one failing block does not fail the rest.

        Returns:
            Mapping of block number to timestamp, None where unavailable
        """
        results = await asyncio.gather(
            *(self.get_timestamp(number) for number in block_numbers),
            return_exceptions=True,
        )
        timestamps: dict[int, int | None] = {}
        for number, result in zip(block_numbers, results):
            if isinstance(result, BaseException):
                if isinstance(result, asyncio.CancelledError):
                    raise result
                logger.warning(f"[Blocks] Timestamp of block {number} unavailable: {result}")
                timestamps[number] = None
            else:
                timestamps[number] = result
        return timestamps

    async def prewarm(self) -> dict[str, int]:
        """
        Cache the timestamp of every block that holds an event.

        Returns:
            Dict with fetched and total counts
        """
        async with self.session_maker() as session:
            event_blocks = await EventRepository(session).get_block_numbers()
            cached = await BlockRepository(session).get_cached_numbers()

        missing = [number for number in event_blocks if number not in cached]
        logger.info(
            f"[Blocks] Found {len(missing)} uncached blocks out of {len(event_blocks)} total"
        )

        fetched = 0
        for start in range(0, len(missing), self.prewarm_batch_size):
            if start > 0 and self.prewarm_batch_delay:
                await asyncio.sleep(self.prewarm_batch_delay)

            batch = missing[start:start + self.prewarm_batch_size]
            timestamps = await self.get_many(batch)
            fetched += sum(1 for value in timestamps.values() if value is not None)

        logger.info(f"[Blocks] Block pre-warm complete: {fetched} cached")
        return {"fetched": fetched, "total": len(missing)}
