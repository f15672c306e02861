"""
Token Stats repository.

Two writers own disjoint column sets: the stats materializer
(mint/transfer/sale columns) and the listing sync (market columns).
"""

from typing import Any

from sqlalchemy import delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.token_stats import TokenStats
from app.repositories.base import BaseRepository
from app.utils.db_decorators import with_rollback_on_error

EVENT_COLUMNS = ("transfer_count", "last_sale_price", "last_sale_block")
MARKET_COLUMNS = (
    "total_supply",
    "floor_price",
    "listed_count",
    "total_volume",
    "royalty_recipient",
    "royalty_bps",
)


class TokenStatsRepository(BaseRepository[TokenStats]):
    """Repository for derived token statistics."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize repository."""
        super().__init__(TokenStats, session)

    @with_rollback_on_error
    async def upsert_event_stats(self, rows: list[dict[str, Any]]) -> None:
        """
        Write event-derived columns.

        mint_block is set on insert only; transfer_count and the last sale
        are overwritten. mint_timestamp is filled once its block is
        known and never cleared. Market columns are left untouched.

        Args:
            rows: Dicts with token_id, mint_block, mint_timestamp and
                EVENT_COLUMNS
        """
        for row in rows:
            stmt = self.upsert_statement().values(**row)
            stmt = stmt.on_conflict_do_update(
                index_elements=["token_id"],
                set_={
                    **{col: getattr(stmt.excluded, col) for col in EVENT_COLUMNS},
                    "mint_timestamp": func.coalesce(
                        stmt.excluded.mint_timestamp, TokenStats.mint_timestamp
                    ),
                },
            )
            await self.session.execute(stmt)
        await self.session.flush()

    @with_rollback_on_error
    async def upsert_market_stats(self, token_id: int, values: dict[str, Any]) -> None:
        """
        Overwrite the market columns for a token.

        Args:
            token_id: Token ID
            values: Dict with every key in MARKET_COLUMNS
        """
        row = {col: values.get(col) for col in MARKET_COLUMNS}
        stmt = self.upsert_statement().values(token_id=token_id, **row)
        stmt = stmt.on_conflict_do_update(
            index_elements=["token_id"],
            set_={col: getattr(stmt.excluded, col) for col in MARKET_COLUMNS},
        )
        await self.session.execute(stmt)
        await self.session.flush()

    async def list_all(self) -> list[TokenStats]:
        """Get every row ordered by token."""
        result = await self.session.execute(
            select(TokenStats).order_by(TokenStats.token_id)
        )
        return list(result.scalars().all())

    @with_rollback_on_error
    async def delete_all(self) -> None:
        """Remove every row."""
        await self.session.execute(delete(TokenStats))
