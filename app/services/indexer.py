"""
Indexer.

Owns the indexing components and wires the control flow between them:
event sync feeds the derived data (block timestamps, stats) and the
render queue; the listing sync runs on its own.
"""

from dataclasses import dataclass
from typing import Any

from loguru import logger
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.config.settings import Settings
from app.services.block_timestamp_service import BlockTimestampService
from app.services.chain_client import ChainClient
from app.services.event_sync import EventSyncService, SyncResult, build_event_sources
from app.services.listing_sync_service import MarketplaceListingSyncService
from app.services.nft_cache_service import NftCacheService
from app.services.notifier import RealtimeNotifier
from app.services.render_queue_service import RenderQueueService
from app.services.renderer import CommandRenderer, Renderer
from app.services.stats_materializer import StatsMaterializerService


@dataclass
class Indexer:
    """Container for the indexing services."""

    session_maker: async_sessionmaker[AsyncSession]
    chain: ChainClient
    notifier: RealtimeNotifier
    event_sync: EventSyncService
    stats: StatsMaterializerService
    listings: MarketplaceListingSyncService
    nft_cache: NftCacheService
    blocks: BlockTimestampService
    render_queue: RenderQueueService | None = None

    async def run_sync_cycle(self) -> SyncResult:
        """
        One scheduled sync: ingest, then refresh derived data on new events.

        Derived-data failures are logged; they never fail the cycle.

        Returns:
            Result of the event sync
        """
        result = await self.event_sync.sync()
        if result.synced and result.events_count:
            await self._refresh_derived()
        return result

    async def force_sync(self) -> dict[str, Any]:
        """
        Sync immediately and refresh derived data.

        Returns:
            Sync payload plus freshness markers
        """
        result = await self.event_sync.sync()
        if result.synced:
            await self._refresh_derived()
        payload = result.to_payload()
        payload.update(
            {
                "lastSyncBlock": self.event_sync.state.last_sync_block,
                "lastSyncTime": (
                    self.event_sync.state.last_sync_time.isoformat()
                    if self.event_sync.state.last_sync_time
                    else None
                ),
            }
        )
        return payload

    async def reset(self) -> dict[str, Any]:
        """
        Drop all synced and derived data and start over from genesis.

        Refused while a sync is in flight; the payload then carries
        reset=False and the reason.

        Returns:
            Payload of the first sync after the reset
        """
        logger.warning("[Indexer] Full sync reset requested")
        result = await self.event_sync.reset()
        payload = result.to_payload()
        if result.skipped:
            payload["reset"] = False
            return payload

        await self.stats.clear()
        if result.synced:
            await self._refresh_derived()

        payload["reset"] = True
        return payload

    async def prewarm(self) -> dict[str, int]:
        """Fill the content cache, then refresh author counts and the render queue."""
        result = await self.nft_cache.prewarm()
        try:
            await self.stats.recompute_author_stats()
            await self.enqueue_renders()
        except Exception as e:
            logger.error(f"[Indexer] Post-prewarm refresh failed: {e}")
        return result

    async def enqueue_renders(self) -> int:
        """Enqueue render jobs for newly cached content."""
        if self.render_queue is None:
            return 0
        return await self.render_queue.enqueue_missing()

    async def _refresh_derived(self) -> None:
        try:
            await self.blocks.prewarm()
        except Exception as e:
            logger.error(f"[Indexer] Block timestamp pre-warm failed: {e}")
        try:
            await self.stats.recompute_token_stats()
        except Exception as e:
            logger.error(f"[Indexer] Token stats update failed: {e}")
        try:
            await self.stats.recompute_author_stats()
        except Exception as e:
            logger.error(f"[Indexer] Author stats update failed: {e}")
        try:
            await self.enqueue_renders()
        except Exception as e:
            logger.error(f"[Indexer] Render enqueue failed: {e}")

    async def close(self) -> None:
        """Release HTTP and thread pool resources."""
        await self.nft_cache.close()
        self.chain.cleanup()


def build_renderer(settings: Settings) -> Renderer | None:
    """Create the configured renderer, or None when rendering is disabled."""
    if not settings.render_command:
        return None
    return CommandRenderer(
        settings.render_command,
        settings.render_output_dir,
        timeout=settings.render_timeout,
    )


def build_indexer(
    settings: Settings,
    session_maker: async_sessionmaker[AsyncSession],
    chain: ChainClient | None = None,
    renderer: Renderer | None = None,
) -> Indexer:
    """
    Wire the indexing services from settings.

    Args:
        settings: Application settings
        session_maker: Session factory
        chain: Chain client (created from settings if omitted)
        renderer: Render capability (created from settings if omitted)

    Returns:
        Indexer
    """
    if chain is None:
        chain = ChainClient(
            rpc_url=settings.rpc_url,
            timeout=settings.rpc_timeout,
            max_workers=settings.rpc_max_workers,
        )
    notifier = RealtimeNotifier()

    event_sync = EventSyncService(
        session_maker=session_maker,
        chain=chain,
        notifier=notifier,
        sources=build_event_sources(
            settings.content_contract_address,
            settings.marketplace_contract_address,
        ),
        sync_key=settings.sync_key,
        default_checkpoint=settings.default_checkpoint_block,
        max_block_range=settings.sync_max_block_range,
    )

    listings = MarketplaceListingSyncService(
        session_maker=session_maker,
        chain=chain,
        content_address=settings.content_contract_address,
        marketplace_address=settings.marketplace_contract_address,
        batch_size=settings.listing_batch_size,
        batch_delay=settings.listing_batch_delay_seconds,
        listing_read_limit=settings.listing_read_limit,
    )

    nft_cache = NftCacheService(
        session_maker=session_maker,
        chain=chain,
        content_address=settings.content_contract_address,
        max_content_bytes=settings.content_max_bytes,
        fetch_timeout=settings.content_fetch_timeout,
        prewarm_batch_size=settings.prewarm_batch_size,
        prewarm_batch_delay=settings.prewarm_batch_delay_seconds,
    )

    blocks = BlockTimestampService(
        session_maker=session_maker,
        chain=chain,
        prewarm_batch_size=settings.block_prewarm_batch_size,
        prewarm_batch_delay=settings.block_prewarm_batch_delay_seconds,
    )

    renderer = renderer or build_renderer(settings)
    render_queue = None
    if renderer is not None:
        render_queue = RenderQueueService(
            session_maker=session_maker,
            renderer=renderer,
            batch_size=settings.render_batch_size,
            reschedule_delay=settings.render_reschedule_delay_seconds,
        )
    else:
        logger.warning("[Indexer] RENDER_COMMAND not set, preview rendering disabled")

    return Indexer(
        session_maker=session_maker,
        chain=chain,
        notifier=notifier,
        event_sync=event_sync,
        stats=StatsMaterializerService(session_maker),
        listings=listings,
        nft_cache=nft_cache,
        blocks=blocks,
        render_queue=render_queue,
    )
