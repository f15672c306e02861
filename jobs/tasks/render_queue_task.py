"""
Render Queue Background Task.

Enqueues newly cached tokens and drains pending render jobs.
"""

import asyncio

from loguru import logger

from app.services.indexer import Indexer


async def run_render_queue(indexer: Indexer) -> dict:
    """
    Enqueue missing jobs, then process batches until none are pending.

    Args:
        indexer: Indexer services

    Returns:
        Dict with enqueued count and processing totals
    """
    if indexer.render_queue is None:
        return {"enqueued": 0, "processed": 0}

    try:
        enqueued = await indexer.render_queue.enqueue_missing()
        totals = await indexer.render_queue.drain()
    except asyncio.CancelledError:
        logger.info("[RenderQueue Task] Task cancelled")
        raise
    except Exception as e:
        logger.exception(f"[RenderQueue Task] Render queue run failed: {e}")
        return {"enqueued": 0, "processed": 0, "error": str(e)}

    if totals["processed"]:
        logger.info(
            f"[RenderQueue Task] Rendered {totals['completed']}, "
            f"failed {totals['failed']} in {totals['batches']} batches"
        )
    return {"enqueued": enqueued, **totals}
