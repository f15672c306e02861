"""
Indexer main entry point.

Starts the API server, the health server and the background scheduler,
runs an initial sync, and shuts everything down on SIGINT/SIGTERM.
"""

import asyncio
import signal
import sys

from loguru import logger

from app.config.database import async_session_maker, engine
from app.config.settings import settings
from app.services.indexer import Indexer, build_indexer
from app.utils.logging_setup import setup_logging
from jobs.health import set_indexer, set_scheduler, start_health_server, stop_runner
from jobs.scheduler import SyncScheduler
from jobs.tasks.event_sync_task import run_event_sync
from jobs.web import create_app, start_api_server


async def initial_sync(indexer: Indexer) -> None:
    """Catch up once at startup, then warm the content cache in background."""
    logger.info("Starting initial event sync...")
    result = await run_event_sync(indexer)
    if result is not None:
        logger.info(f"Initial sync complete: {result.to_payload()}")
        # run_sync_cycle only refreshes derived data when events arrived
        try:
            blocks = await indexer.blocks.prewarm()
            logger.info(f"Block timestamp pre-warm complete: {blocks}")
        except Exception as e:
            logger.error(f"Block timestamp pre-warm failed: {e}")
        try:
            await indexer.stats.recompute_all()
        except Exception as e:
            logger.error(f"Initial stats recompute failed: {e}")

    try:
        warm = await indexer.prewarm()
        logger.info(f"NFT pre-warm complete: {warm}")
    except Exception as e:
        logger.error(f"NFT pre-warm failed: {e}")


async def shutdown_handler(
    indexer: Indexer,
    scheduler: SyncScheduler,
    runners: list,
) -> None:
    """Handle graceful shutdown."""
    logger.info("Graceful shutdown initiated...")

    scheduler.shutdown()
    for runner in runners:
        await stop_runner(runner)

    try:
        await indexer.close()
    except Exception as e:
        logger.warning(f"Error closing indexer resources: {e}")

    try:
        await engine.dispose()
        logger.info("Database connections closed")
    except Exception as e:
        logger.warning(f"Error closing database: {e}")

    logger.info("Graceful shutdown complete")


async def main() -> None:
    """Initialize and run the indexer."""
    setup_logging()

    indexer = build_indexer(settings, async_session_maker)

    api_runner = await start_api_server(
        create_app(indexer, settings.admin_secret, settings.sync_interval_seconds),
        settings.http_host,
        settings.http_port,
    )
    health_runner = await start_health_server(port=settings.health_check_port)

    scheduler = SyncScheduler(indexer, settings)
    set_scheduler(scheduler.start())
    set_indexer(indexer)

    stop_event = asyncio.Event()
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, stop_event.set)

    warmup = asyncio.create_task(initial_sync(indexer))
    try:
        await stop_event.wait()
    finally:
        warmup.cancel()
        await shutdown_handler(indexer, scheduler, [api_runner, health_runner])


if __name__ == "__main__":
    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        sys.exit(0)
