"""
Author Stats repository.
"""

from typing import Any

from sqlalchemy import delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.author_stats import AuthorStats
from app.repositories.base import BaseRepository
from app.utils.db_decorators import with_rollback_on_error


class AuthorStatsRepository(BaseRepository[AuthorStats]):
    """Repository for derived author statistics."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize repository."""
        super().__init__(AuthorStats, session)

    @with_rollback_on_error
    async def upsert_many(self, rows: list[dict[str, Any]]) -> None:
        """
        Write author rows.

        total_minted is overwritten; first_mint_block and
        first_mint_timestamp keep an existing value (first write wins).

        Args:
            rows: Dicts with address, total_minted, first_mint_block and
                optionally first_mint_timestamp
        """
        for row in rows:
            stmt = self.upsert_statement().values(**row)
            stmt = stmt.on_conflict_do_update(
                index_elements=["address"],
                set_={
                    "total_minted": stmt.excluded.total_minted,
                    "first_mint_block": func.coalesce(
                        AuthorStats.first_mint_block,
                        stmt.excluded.first_mint_block,
                    ),
                    "first_mint_timestamp": func.coalesce(
                        AuthorStats.first_mint_timestamp,
                        stmt.excluded.first_mint_timestamp,
                    ),
                },
            )
            await self.session.execute(stmt)
        await self.session.flush()

    async def get_leaderboard(self, limit: int = 50) -> list[AuthorStats]:
        """
        Get authors ordered by mint count.

        Args:
            limit: Max results

        Returns:
            Authors, most prolific first
        """
        query = (
            select(AuthorStats)
            .order_by(AuthorStats.total_minted.desc(), AuthorStats.address.asc())
            .limit(limit)
        )
        result = await self.session.execute(query)
        return list(result.scalars().all())

    @with_rollback_on_error
    async def delete_all(self) -> None:
        """Remove every row."""
        await self.session.execute(delete(AuthorStats))
