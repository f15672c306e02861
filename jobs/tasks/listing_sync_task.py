"""
Marketplace Listing Sync Background Task.
"""

import asyncio

from loguru import logger

from app.services.indexer import Indexer


async def run_listing_sync(indexer: Indexer) -> dict:
    """
    Refresh floor prices, supply and royalty info for cached tokens.

    Args:
        indexer: Indexer services

    Returns:
        Dict with sync results
    """
    try:
        return await indexer.listings.sync_listings()
    except asyncio.CancelledError:
        logger.info("[Listings Task] Task cancelled")
        raise
    except Exception as e:
        logger.exception(f"[Listings Task] Listing sync failed: {e}")
        return {"synced": 0, "error": str(e)}
