"""
Background job scheduler.

APScheduler jobs for event sync, marketplace listing sync and the
render queue. The event sync interval shortens while the indexer is
catching up on history.
"""

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from loguru import logger

from app.config.settings import Settings
from app.services.indexer import Indexer
from jobs.tasks.event_sync_task import run_event_sync
from jobs.tasks.listing_sync_task import run_listing_sync
from jobs.tasks.render_queue_task import run_render_queue

EVENT_SYNC_JOB_ID = "event_sync"
LISTING_SYNC_JOB_ID = "listing_sync"
RENDER_QUEUE_JOB_ID = "render_queue"


class SyncScheduler:
    """Owns the scheduler and the adaptive sync interval."""

    def __init__(self, indexer: Indexer, settings: Settings) -> None:
        self.indexer = indexer
        self.settings = settings
        self.scheduler = AsyncIOScheduler()
        self.current_sync_interval = settings.sync_interval_seconds

    async def sync_job(self) -> None:
        """Run one sync and pick the next interval."""
        result = await run_event_sync(self.indexer)
        needs_more = bool(result and result.needs_more_sync)
        interval = (
            self.settings.sync_catchup_interval_seconds
            if needs_more
            else self.settings.sync_interval_seconds
        )
        if interval != self.current_sync_interval:
            logger.info(f"[Scheduler] Event sync interval -> {interval}s")
            self.current_sync_interval = interval
            self.scheduler.reschedule_job(
                EVENT_SYNC_JOB_ID, trigger="interval", seconds=interval
            )

    async def listing_job(self) -> None:
        """Run one listing sync."""
        await run_listing_sync(self.indexer)

    async def render_job(self) -> None:
        """Drain the render queue."""
        await run_render_queue(self.indexer)

    def start(self) -> AsyncIOScheduler:
        """
        Register jobs and start the scheduler.

        Returns:
            Running AsyncIOScheduler
        """
        common = {"max_instances": 1, "coalesce": True}
        self.scheduler.add_job(
            self.sync_job,
            "interval",
            seconds=self.current_sync_interval,
            id=EVENT_SYNC_JOB_ID,
            name="Event sync",
            **common,
        )
        self.scheduler.add_job(
            self.listing_job,
            "interval",
            seconds=self.settings.listing_sync_interval_seconds,
            id=LISTING_SYNC_JOB_ID,
            name="Marketplace listing sync",
            **common,
        )
        if self.indexer.render_queue is not None:
            self.scheduler.add_job(
                self.render_job,
                "interval",
                seconds=self.settings.render_interval_seconds,
                id=RENDER_QUEUE_JOB_ID,
                name="Render queue",
                **common,
            )

        self.scheduler.start()
        logger.info(
            f"[Scheduler] Started ({self.settings.sync_interval_seconds}s normal, "
            f"{self.settings.sync_catchup_interval_seconds}s during catch-up)"
        )
        return self.scheduler

    def shutdown(self) -> None:
        """Stop the scheduler without waiting for running jobs."""
        if self.scheduler.running:
            self.scheduler.shutdown(wait=False)
            logger.info("[Scheduler] Stopped")
