"""
Render Queue Service.

Status-tracked queue turning cached content into preview images:
pending -> generating -> completed | failed. Terminal states are never
left automatically.
"""

import asyncio
from typing import Any

from loguru import logger
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.repositories.nft_repository import NftRepository
from app.repositories.render_job_repository import RenderJobRepository
from app.services.renderer import Renderer
from app.utils.exceptions import PersistenceError
from app.utils.single_flight import SingleFlightGuard


class RenderQueueService:
    """Enqueues and processes render jobs in bounded batches."""

    def __init__(
        self,
        session_maker: async_sessionmaker[AsyncSession],
        renderer: Renderer,
        batch_size: int = 5,
        reschedule_delay: float = 2.0,
    ):
        """
        Initialize render queue.

        Args:
            session_maker: Session factory
            renderer: Render capability
            batch_size: Jobs per process_queue() call
            reschedule_delay: Pause between batches while draining
        """
        self.session_maker = session_maker
        self.renderer = renderer
        self.batch_size = batch_size
        self.reschedule_delay = reschedule_delay
        self._guard = SingleFlightGuard("render queue")

    @property
    def is_processing(self) -> bool:
        """Whether a batch is running."""
        return self._guard.in_flight

    async def enqueue_missing(self) -> int:
        """
        Create a pending job for every cached token without one.

        Returns:
            Number of tokens enqueued
        """
        async with self.session_maker() as session:
            jobs = RenderJobRepository(session)
            token_ids = await jobs.get_tokens_without_job()
            await jobs.insert_pending(token_ids)
            await session.commit()

        if token_ids:
            logger.info(f"[RenderQueue] Enqueued {len(token_ids)} tokens")
        return len(token_ids)

    async def process_queue(self) -> dict[str, Any]:
        """
        Process one batch of pending jobs.

        Returns:
            Dict with processed, completed, failed and has_more, or
            processed=0 with a reason when another batch is running
        """
        with self._guard.attempt() as acquired:
            if not acquired:
                return {"processed": 0, "reason": "already processing"}
            return await self._process_batch()

    async def _process_batch(self) -> dict[str, Any]:
        async with self.session_maker() as session:
            pending = await RenderJobRepository(session).get_pending(self.batch_size)
            token_ids = [job.token_id for job in pending]

        outcomes = [await self._process_job(token_id) for token_id in token_ids]
        completed = outcomes.count("completed")
        failed = outcomes.count("failed")

        async with self.session_maker() as session:
            has_more = await RenderJobRepository(session).has_pending()

        if token_ids:
            logger.info(
                f"[RenderQueue] Batch done: {completed} completed, {failed} failed, "
                f"more pending: {has_more}"
            )
        return {
            "processed": len(token_ids),
            "completed": completed,
            "failed": failed,
            "has_more": has_more,
        }

    async def _process_job(self, token_id: int) -> str:
        try:
            async with self.session_maker() as session:
                claimed = await RenderJobRepository(session).mark_generating(token_id)
                await session.commit()
        except (SQLAlchemyError, PersistenceError) as e:
            logger.error(f"[RenderQueue] Token {token_id} could not be claimed: {e}")
            return "skipped"
        if not claimed:
            logger.debug(f"[RenderQueue] Token {token_id} no longer pending")
            return "skipped"

        # From here on every failure must end the job, never leave it generating
        try:
            return await self._render_claimed(token_id)
        except asyncio.CancelledError:
            raise
        except Exception as e:
            logger.error(f"[RenderQueue] Token {token_id} render failed: {e}")
            await self._mark_failed(token_id, str(e) or type(e).__name__)
            return "failed"

    async def _render_claimed(self, token_id: int) -> str:
        async with self.session_maker() as session:
            nft = await NftRepository(session).get_by_id(token_id)
            if nft is None or nft.content is None:
                logger.warning(f"[RenderQueue] Token {token_id} has no cached content")
                await RenderJobRepository(session).mark_failed(
                    token_id, f"NFT {token_id} not found in cache"
                )
                await session.commit()
                return "failed"

            content = nft.content
            content_type = nft.content_type or "text/plain"
            metadata = {"name": nft.name, "description": nft.description}

        file_path = await self.renderer.render(token_id, content, content_type, metadata)

        async with self.session_maker() as session:
            await RenderJobRepository(session).mark_completed(token_id, file_path)
            await session.commit()
        logger.info(f"[RenderQueue] Token {token_id} rendered: {file_path}")
        return "completed"

    async def _mark_failed(self, token_id: int, error: str) -> None:
        try:
            async with self.session_maker() as session:
                await RenderJobRepository(session).mark_failed(token_id, error)
                await session.commit()
        except (SQLAlchemyError, PersistenceError):
            logger.exception(f"[RenderQueue] Could not record failure of token {token_id}")

    async def drain(self) -> dict[str, int]:
        """
        Process batches until no pending job remains.

        Each iteration handles one bounded batch; the loop pauses
        between batches.

        Returns:
            Totals across all batches
        """
        totals = {"processed": 0, "completed": 0, "failed": 0, "batches": 0}
        while True:
            result = await self.process_queue()
            if "reason" in result:
                break

            totals["batches"] += 1
            for key in ("processed", "completed", "failed"):
                totals[key] += result[key]

            if not result["has_more"] or result["processed"] == 0:
                break
            await asyncio.sleep(self.reschedule_delay)
        return totals

    async def get_stats(self) -> dict[str, int]:
        """Job counts per status."""
        async with self.session_maker() as session:
            return await RenderJobRepository(session).count_by_status()
