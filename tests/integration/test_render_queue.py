"""Integration tests for the render queue."""

import asyncio
from unittest.mock import AsyncMock

import pytest
from sqlalchemy import func, select
from sqlalchemy.exc import OperationalError

from app.models import RenderJob, RenderJobStatus
from app.repositories import NftRepository, RenderJobRepository
from app.services.render_queue_service import RenderQueueService
from app.utils.exceptions import PersistenceError, RenderError
from tests.factories import AUTHOR


async def cache_nft(session_maker, token_id, content="hello"):
    async with session_maker() as session:
        await NftRepository(session).upsert({
            "token_id": token_id,
            "uri": "data:,{}",
            "author": AUTHOR,
            "name": f"Token {token_id}",
            "description": "desc",
            "content": content,
            "content_type": "text/markdown",
        })
        await session.commit()


async def get_job(session_maker, token_id) -> RenderJob | None:
    async with session_maker() as session:
        return await RenderJobRepository(session).get_by_id(token_id)


@pytest.fixture
def renderer():
    renderer = AsyncMock()
    renderer.render = AsyncMock(side_effect=lambda token_id, *args: f"og-images/{token_id}.png")
    return renderer


@pytest.fixture
def queue(session_maker, renderer):
    return RenderQueueService(session_maker, renderer, batch_size=2, reschedule_delay=0)


class TestEnqueue:
    """Tests for enqueue_missing."""

    @pytest.mark.asyncio
    async def test_enqueue_once_per_token(self, session_maker, queue):
        await cache_nft(session_maker, 1)
        await cache_nft(session_maker, 2)

        assert await queue.enqueue_missing() == 2
        assert await queue.enqueue_missing() == 0

        async with session_maker() as session:
            count = (await session.execute(select(func.count()).select_from(RenderJob))).scalar()
        assert count == 2
        assert (await get_job(session_maker, 1)).status == RenderJobStatus.PENDING.value

    @pytest.mark.asyncio
    async def test_insert_pending_ignores_existing(self, session_maker, queue):
        """Concurrent enqueues cannot reset an existing job."""
        await cache_nft(session_maker, 1)
        await queue.enqueue_missing()
        await queue.process_queue()

        async with session_maker() as session:
            await RenderJobRepository(session).insert_pending([1])
            await session.commit()

        assert (await get_job(session_maker, 1)).status == RenderJobStatus.COMPLETED.value

    @pytest.mark.asyncio
    async def test_uncached_tokens_not_enqueued(self, session_maker, queue):
        async with session_maker() as session:
            await NftRepository(session).upsert({"token_id": 5, "uri": "x", "author": AUTHOR})
            await session.commit()

        assert await queue.enqueue_missing() == 0


class TestProcessQueue:
    """Tests for process_queue and drain."""

    @pytest.mark.asyncio
    async def test_success_lifecycle(self, session_maker, queue, renderer):
        await cache_nft(session_maker, 1)
        await queue.enqueue_missing()

        result = await queue.process_queue()

        assert result == {"processed": 1, "completed": 1, "failed": 0, "has_more": False}
        job = await get_job(session_maker, 1)
        assert job.status == RenderJobStatus.COMPLETED.value
        assert job.file_path == "og-images/1.png"
        assert job.generated_at is not None
        assert job.error is None
        renderer.render.assert_awaited_once_with(
            1, "hello", "text/markdown", {"name": "Token 1", "description": "desc"}
        )

    @pytest.mark.asyncio
    async def test_failure_lifecycle(self, session_maker, queue, renderer):
        await cache_nft(session_maker, 1)
        await queue.enqueue_missing()
        renderer.render.side_effect = RenderError("browser crashed")

        result = await queue.process_queue()

        assert result["failed"] == 1
        job = await get_job(session_maker, 1)
        assert job.status == RenderJobStatus.FAILED.value
        assert job.error == "browser crashed"
        assert job.file_path is None

    @pytest.mark.asyncio
    async def test_failed_job_not_retried(self, session_maker, queue, renderer):
        await cache_nft(session_maker, 1)
        await queue.enqueue_missing()
        renderer.render.side_effect = RenderError("boom")
        await queue.process_queue()
        renderer.render.side_effect = None

        result = await queue.process_queue()

        assert result["processed"] == 0
        assert (await get_job(session_maker, 1)).status == RenderJobStatus.FAILED.value

    @pytest.mark.asyncio
    async def test_missing_content_marks_failed(self, session_maker, queue, renderer):
        await cache_nft(session_maker, 1)
        await queue.enqueue_missing()
        async with session_maker() as session:
            await NftRepository(session).delete_token(1)
            await session.commit()

        await queue.process_queue()

        job = await get_job(session_maker, 1)
        assert job.status == RenderJobStatus.FAILED.value
        assert "not found" in job.error
        renderer.render.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_one_failure_does_not_stop_batch(self, session_maker, queue, renderer):
        await cache_nft(session_maker, 1)
        await cache_nft(session_maker, 2)
        await queue.enqueue_missing()

        async def render(token_id, *args):
            if token_id == 1:
                raise RenderError("bad markup")
            return f"og-images/{token_id}.png"

        renderer.render.side_effect = render

        result = await queue.process_queue()

        assert result["completed"] == 1
        assert result["failed"] == 1
        assert (await get_job(session_maker, 2)).status == RenderJobStatus.COMPLETED.value

    @pytest.mark.asyncio
    async def test_batch_size_and_has_more(self, session_maker, queue):
        for token_id in range(1, 6):
            await cache_nft(session_maker, token_id)
        await queue.enqueue_missing()

        result = await queue.process_queue()

        assert result["processed"] == 2
        assert result["has_more"] is True

    @pytest.mark.asyncio
    async def test_drain_until_empty(self, session_maker, queue):
        for token_id in range(1, 6):
            await cache_nft(session_maker, token_id)
        await queue.enqueue_missing()

        totals = await queue.drain()

        assert totals == {"processed": 5, "completed": 5, "failed": 0, "batches": 3}
        assert await queue.get_stats() == {RenderJobStatus.COMPLETED.value: 5}

    @pytest.mark.asyncio
    async def test_concurrent_processing_guarded(self, session_maker, queue, renderer):
        await cache_nft(session_maker, 1)
        await queue.enqueue_missing()
        release = asyncio.Event()

        async def slow_render(token_id, *args):
            await release.wait()
            return "og-images/1.png"

        renderer.render.side_effect = slow_render

        first = asyncio.create_task(queue.process_queue())
        while not queue.is_processing:
            await asyncio.sleep(0)
        second = await queue.process_queue()
        release.set()
        await first

        assert second == {"processed": 0, "reason": "already processing"}
        assert renderer.render.await_count == 1

    @pytest.mark.asyncio
    async def test_datastore_error_fails_job_and_batch_continues(
        self, session_maker, queue, renderer, monkeypatch
    ):
        """A job claimed as generating always ends in a terminal state."""
        await cache_nft(session_maker, 1)
        await cache_nft(session_maker, 2)
        await queue.enqueue_missing()
        real_get_by_id = NftRepository.get_by_id

        async def flaky_get(self, token_id):
            if token_id == 1:
                raise OperationalError("SELECT", {}, Exception("connection reset"))
            return await real_get_by_id(self, token_id)

        monkeypatch.setattr(NftRepository, "get_by_id", flaky_get)

        result = await queue.process_queue()

        assert result["completed"] == 1
        assert result["failed"] == 1
        job = await get_job(session_maker, 1)
        assert job.status == RenderJobStatus.FAILED.value
        assert "connection reset" in job.error
        assert (await get_job(session_maker, 2)).status == RenderJobStatus.COMPLETED.value

    @pytest.mark.asyncio
    async def test_completion_write_error_fails_job(self, session_maker, queue, monkeypatch):
        await cache_nft(session_maker, 1)
        await queue.enqueue_missing()
        monkeypatch.setattr(
            RenderJobRepository,
            "mark_completed",
            AsyncMock(side_effect=PersistenceError("mark_completed failed: disk full")),
        )

        result = await queue.process_queue()

        assert result["failed"] == 1
        job = await get_job(session_maker, 1)
        assert job.status == RenderJobStatus.FAILED.value
        assert "disk full" in job.error
