"""
Sync Checkpoint repository.
"""

from datetime import UTC, datetime

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.sync_checkpoint import SyncCheckpoint
from app.repositories.base import BaseRepository
from app.utils.db_decorators import with_rollback_on_error


class CheckpointRepository(BaseRepository[SyncCheckpoint]):
    """Repository for sync checkpoints."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize repository."""
        super().__init__(SyncCheckpoint, session)

    async def get_last_block(self, key: str) -> int | None:
        """
        Get the last ingested block for a sync stream.

        Args:
            key: Sync stream key

        Returns:
            Block number or None if the stream never ran
        """
        result = await self.session.execute(
            select(SyncCheckpoint.last_block).where(SyncCheckpoint.key == key)
        )
        return result.scalar_one_or_none()

    @with_rollback_on_error
    async def save(self, key: str, last_block: int) -> None:
        """
        Insert or move a checkpoint.

        Callers only ever pass a block above the value they read, under
        the sync single-flight guard.

        Args:
            key: Sync stream key
            last_block: Last fully ingested block
        """
        now = datetime.now(UTC)
        stmt = self.upsert_statement().values(
            key=key, last_block=last_block, updated_at=now
        )
        stmt = stmt.on_conflict_do_update(
            index_elements=["key"],
            set_={"last_block": stmt.excluded.last_block, "updated_at": now},
        )
        await self.session.execute(stmt)
        await self.session.flush()

    async def list_all(self) -> list[SyncCheckpoint]:
        """Get every checkpoint ordered by key."""
        result = await self.session.execute(
            select(SyncCheckpoint).order_by(SyncCheckpoint.key)
        )
        return list(result.scalars().all())

    @with_rollback_on_error
    async def delete_all(self) -> None:
        """Remove every checkpoint."""
        await self.session.execute(delete(SyncCheckpoint))
