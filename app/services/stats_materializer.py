"""
Derived Stats Materializer.

Full-table recompute of per-token and per-author aggregates from the
event log. Running either recompute twice over unchanged events yields
identical rows.
"""

from collections import Counter
from typing import Any

from loguru import logger
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.config.constants import EVENT_TOKEN_PURCHASED, EVENT_TRANSFER_SINGLE
from app.models.chain_event import ChainEvent
from app.repositories.author_stats_repository import AuthorStatsRepository
from app.repositories.block_repository import BlockRepository
from app.repositories.event_repository import EventRepository
from app.repositories.nft_repository import NftRepository
from app.repositories.token_stats_repository import TokenStatsRepository
from app.validators.address import is_zero_address


def is_mint(event: ChainEvent) -> bool:
    """A transfer from the zero address."""
    sender = (event.data or {}).get("from")
    return isinstance(sender, str) and is_zero_address(sender)


def first_mints(transfers: list[ChainEvent]) -> dict[int, ChainEvent]:
    """
    Pick the earliest mint per token.

    Args:
        transfers: Transfer events in chain order

    Returns:
        Mapping of token_id to its first mint event
    """
    mints: dict[int, ChainEvent] = {}
    for event in transfers:
        if is_mint(event) and event.token_id not in mints:
            mints[event.token_id] = event
    return mints


def latest_sales(purchases: list[ChainEvent]) -> dict[int, ChainEvent]:
    """Pick the latest purchase per token (input in chain order)."""
    sales: dict[int, ChainEvent] = {}
    for event in purchases:
        sales[event.token_id] = event
    return sales


class StatsMaterializerService:
    """Recomputes TokenStats and AuthorStats from persisted events."""

    def __init__(self, session_maker: async_sessionmaker[AsyncSession]) -> None:
        """
        Initialize materializer.

        Args:
            session_maker: Session factory
        """
        self.session_maker = session_maker

    async def recompute_token_stats(self) -> int:
        """
        Rewrite mint/transfer/sale columns for every minted token.

        mint_timestamp is read from the block cache when the mint block
        is cached there.

        Market columns written by the listing sync are left untouched.

        Returns:
            Number of tokens written
        """
        async with self.session_maker() as session:
            events = EventRepository(session)
            mints = first_mints(await events.get_by_type(EVENT_TRANSFER_SINGLE))
            transfer_counts = await events.count_transfers_by_token()
            sales = latest_sales(await events.get_by_type(EVENT_TOKEN_PURCHASED))
            timestamps = await BlockRepository(session).get_timestamps(
                [mint.block_number for mint in mints.values()]
            )

            rows: list[dict[str, Any]] = []
            for token_id, mint in mints.items():
                sale = sales.get(token_id)
                rows.append({
                    "token_id": token_id,
                    "mint_block": mint.block_number,
                    "mint_timestamp": timestamps.get(mint.block_number),
                    "transfer_count": transfer_counts.get(token_id, 0),
                    "last_sale_price": sale.data.get("_price") if sale else None,
                    "last_sale_block": sale.block_number if sale else None,
                })

            await TokenStatsRepository(session).upsert_event_stats(rows)
            await session.commit()

        logger.info(f"[Stats] Token stats updated for {len(rows)} tokens")
        return len(rows)

    async def recompute_author_stats(self) -> int:
        """
        Rewrite mint counts per author.

        total_minted comes from cached content records; first_mint_block
        from the earliest zero-origin transfer received, and is never
        overwritten once set. Timestamps come from the block cache and
        stay empty until the block is cached.

        Returns:
            Number of authors written
        """
        async with self.session_maker() as session:
            totals: Counter[str] = Counter()
            for author, count in await NftRepository(session).count_by_author():
                totals[author.lower()] += count

            first_blocks: dict[str, int] = {}
            transfers = await EventRepository(session).get_by_type(EVENT_TRANSFER_SINGLE)
            for event in transfers:
                recipient = event.data.get("to")
                if not is_mint(event) or not isinstance(recipient, str):
                    continue
                first_blocks.setdefault(recipient.lower(), event.block_number)
            timestamps = await BlockRepository(session).get_timestamps(list(first_blocks.values()))

            rows = [
                {
                    "address": address,
                    "total_minted": total,
                    "first_mint_block": first_blocks.get(address),
                    "first_mint_timestamp": timestamps.get(first_blocks.get(address)),
                }
                for address, total in sorted(totals.items())
            ]

            await AuthorStatsRepository(session).upsert_many(rows)
            await session.commit()

        logger.info(f"[Stats] Author stats updated for {len(rows)} authors")
        return len(rows)

    async def recompute_all(self) -> dict[str, int]:
        """Run both recomputes."""
        return {
            "tokens": await self.recompute_token_stats(),
            "authors": await self.recompute_author_stats(),
        }

    async def clear(self) -> None:
        """Delete all derived rows (used by a full resync)."""
        async with self.session_maker() as session:
            await TokenStatsRepository(session).delete_all()
            await AuthorStatsRepository(session).delete_all()
            await session.commit()
        logger.warning("[Stats] Token and author stats cleared")
