"""
Event Sync Background Task.

Runs one sync cycle: ingest new logs, then refresh token/author stats
and the render queue when new events arrived.
"""

import asyncio

from loguru import logger

from app.services.event_sync import SyncResult
from app.services.indexer import Indexer


async def run_event_sync(indexer: Indexer) -> SyncResult | None:
    """
    Scheduled event sync.

    Errors are logged, never raised, so the scheduler keeps running.

    Args:
        indexer: Indexer services

    Returns:
        SyncResult, or None if the cycle failed
    """
    try:
        result = await indexer.run_sync_cycle()
    except asyncio.CancelledError:
        logger.info("[EventSync Task] Task cancelled")
        raise
    except Exception as e:
        logger.exception(f"[EventSync Task] Sync failed: {e}")
        return None

    if result.events_count:
        logger.info(f"[EventSync Task] Background sync: {result.events_count} new events")
    return result
