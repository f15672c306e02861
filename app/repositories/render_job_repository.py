"""
Render Job repository.

Status transitions are conditional updates so a job never moves out of
a terminal state.
"""

from datetime import UTC, datetime

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.enums import RenderJobStatus
from app.models.nft import Nft
from app.models.render_job import RenderJob
from app.repositories.base import BaseRepository
from app.utils.db_decorators import with_rollback_on_error


class RenderJobRepository(BaseRepository[RenderJob]):
    """Repository for render jobs."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize repository."""
        super().__init__(RenderJob, session)

    async def get_tokens_without_job(self) -> list[int]:
        """
        Get tokens with cached content and no render job.

        Returns:
            Token IDs in ascending order
        """
        query = (
            select(Nft.token_id)
            .outerjoin(RenderJob, RenderJob.token_id == Nft.token_id)
            .where(Nft.content.is_not(None), RenderJob.token_id.is_(None))
            .order_by(Nft.token_id.asc())
        )
        result = await self.session.execute(query)
        return list(result.scalars().all())

    @with_rollback_on_error
    async def insert_pending(self, token_ids: list[int]) -> None:
        """
        Create pending jobs, leaving existing rows untouched.

        Args:
            token_ids: Tokens to enqueue
        """
        if not token_ids:
            return
        now = datetime.now(UTC)
        stmt = (
            self.upsert_statement()
            .values([
                {
                    "token_id": token_id,
                    "status": RenderJobStatus.PENDING.value,
                    "created_at": now,
                }
                for token_id in token_ids
            ])
            .on_conflict_do_nothing(index_elements=["token_id"])
        )
        await self.session.execute(stmt)
        await self.session.flush()

    async def get_pending(self, limit: int) -> list[RenderJob]:
        """
        Get the oldest pending jobs.

        Args:
            limit: Max results

        Returns:
            Pending jobs, oldest first
        """
        query = (
            select(RenderJob)
            .where(RenderJob.status == RenderJobStatus.PENDING.value)
            .order_by(RenderJob.created_at.asc(), RenderJob.token_id.asc())
            .limit(limit)
        )
        result = await self.session.execute(query)
        return list(result.scalars().all())

    async def has_pending(self) -> bool:
        """Check if any job is waiting."""
        return await self.exists(status=RenderJobStatus.PENDING.value)

    async def _transition(
        self,
        token_id: int,
        from_status: RenderJobStatus,
        to_status: RenderJobStatus,
        **values,
    ) -> bool:
        stmt = (
            update(RenderJob)
            .where(
                RenderJob.token_id == token_id,
                RenderJob.status == from_status.value,
            )
            .values(status=to_status.value, **values)
        )
        result = await self.session.execute(stmt)
        await self.session.flush()
        return result.rowcount > 0

    @with_rollback_on_error
    async def mark_generating(self, token_id: int) -> bool:
        """
        Claim a pending job.

        Returns:
            False if the job was no longer pending
        """
        return await self._transition(
            token_id, RenderJobStatus.PENDING, RenderJobStatus.GENERATING
        )

    @with_rollback_on_error
    async def mark_completed(self, token_id: int, file_path: str) -> bool:
        """Record a successful render."""
        return await self._transition(
            token_id,
            RenderJobStatus.GENERATING,
            RenderJobStatus.COMPLETED,
            file_path=file_path,
            error=None,
            generated_at=datetime.now(UTC),
        )

    @with_rollback_on_error
    async def mark_failed(self, token_id: int, error: str) -> bool:
        """Record a failed render."""
        return await self._transition(
            token_id,
            RenderJobStatus.GENERATING,
            RenderJobStatus.FAILED,
            error=error,
        )

    async def count_by_status(self) -> dict[str, int]:
        """Count jobs per status."""
        result = await self.session.execute(
            select(RenderJob.status, func.count()).group_by(RenderJob.status)
        )
        return {status: count for status, count in result.all()}
