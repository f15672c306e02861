"""
NFT content cache repository.
"""

from typing import Any

from sqlalchemy import delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.nft import Nft
from app.repositories.base import BaseRepository
from app.utils.db_decorators import with_rollback_on_error


class NftRepository(BaseRepository[Nft]):
    """Repository for cached token content."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize repository."""
        super().__init__(Nft, session)

    @with_rollback_on_error
    async def upsert(self, data: dict[str, Any]) -> Nft:
        """
        Cache complete token data, replacing any previous row.

        Args:
            data: Column values including token_id

        Returns:
            Stored entity
        """
        stmt = self.upsert_statement().values(**data)
        stmt = stmt.on_conflict_do_update(
            index_elements=["token_id"],
            set_={
                key: getattr(stmt.excluded, key)
                for key in data
                if key != "token_id"
            },
        )
        await self.session.execute(stmt)
        await self.session.flush()
        entity = await self.session.get(Nft, data["token_id"], populate_existing=True)
        return entity

    @with_rollback_on_error
    async def delete_token(self, token_id: int) -> None:
        """Drop a cached row so the next read refetches it."""
        await self.session.execute(delete(Nft).where(Nft.token_id == token_id))
        await self.session.flush()

    async def get_cached_token_ids(self) -> list[int]:
        """
        Get tokens whose content is cached.

        Returns:
            Token IDs in ascending order
        """
        query = (
            select(Nft.token_id)
            .where(Nft.content.is_not(None))
            .order_by(Nft.token_id.asc())
        )
        result = await self.session.execute(query)
        return list(result.scalars().all())

    async def count_by_author(self) -> list[tuple[str, int]]:
        """
        Count cached tokens per author.

        Returns:
            List of (author, count)
        """
        query = (
            select(Nft.author, func.count())
            .group_by(Nft.author)
            .order_by(Nft.author)
        )
        result = await self.session.execute(query)
        return [(author, count) for author, count in result.all()]

    async def get_by_author(self, address: str) -> list[Nft]:
        """Get tokens by author (case-insensitive)."""
        query = (
            select(Nft)
            .where(func.lower(Nft.author) == address.lower())
            .order_by(Nft.token_id.asc())
        )
        result = await self.session.execute(query)
        return list(result.scalars().all())

    async def count_distinct_authors(self) -> int:
        """Count unique authors among cached tokens."""
        result = await self.session.execute(
            select(func.count(func.distinct(Nft.author)))
        )
        return result.scalar() or 0
