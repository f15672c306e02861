"""
Event Sync Core Service.

Pulls new contract logs since the last checkpoint, stores them
idempotently and advances the checkpoint.
"""

from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any

from loguru import logger
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.repositories.checkpoint_repository import CheckpointRepository
from app.repositories.event_repository import EventRepository
from app.services.chain_client import ChainClient
from app.services.event_sync.fetching_mixin import FetchingMixin, FetchOutcome
from app.services.event_sync.normalization import normalize_log, to_notification
from app.services.event_sync.sources import EventSource
from app.services.event_sync.status_mixin import StatusMixin, sync_progress
from app.services.notifier import RealtimeNotifier
from app.utils.exceptions import PersistenceError
from app.utils.single_flight import SingleFlightGuard

ALREADY_SYNCING = "already syncing"


@dataclass
class SyncState:
    """In-memory freshness markers."""

    last_sync_block: int = 0
    last_sync_time: datetime | None = None

    def mark(self, block: int, touch: bool = True) -> None:
        """Record the latest known synced block."""
        self.last_sync_block = block
        if touch or self.last_sync_time is None:
            self.last_sync_time = datetime.now(UTC)


@dataclass
class SyncResult:
    """Outcome of a sync() call."""

    synced: bool
    last_block: int | None = None
    is_catching_up: bool = False
    events_count: int | None = None
    needs_more_sync: bool | None = None
    reason: str | None = None
    failed_sources: list[str] = field(default_factory=list)

    @property
    def skipped(self) -> bool:
        """Whether the call was turned away by the single-flight guard."""
        return self.reason == ALREADY_SYNCING

    def to_payload(self) -> dict[str, Any]:
        """Wire shape for the HTTP layer."""
        payload: dict[str, Any] = {"synced": self.synced}
        if self.reason is not None:
            payload["reason"] = self.reason
            return payload
        if self.events_count is not None:
            payload["eventsCount"] = self.events_count
        payload["lastBlock"] = self.last_block
        payload["isCatchingUp"] = self.is_catching_up
        if self.needs_more_sync is not None:
            payload["needsMoreSync"] = self.needs_more_sync
        return payload


class EventSyncService(FetchingMixin, StatusMixin):
    """
    Incremental event indexer for the content and marketplace contracts.

    One sync() call processes at most max_block_range blocks; callers
    re-invoke while needs_more_sync is set to catch up.
    """

    def __init__(
        self,
        session_maker: async_sessionmaker[AsyncSession],
        chain: ChainClient,
        notifier: RealtimeNotifier,
        sources: list[EventSource],
        sync_key: str,
        default_checkpoint: int,
        max_block_range: int = 500000,
    ):
        """
        Initialize sync service.

        Args:
            session_maker: Session factory
            chain: Chain client
            notifier: Realtime notifier for batch/progress messages
            sources: Tracked event types
            sync_key: Checkpoint key of this stream
            default_checkpoint: Checkpoint assumed when none is stored
            max_block_range: Max blocks fetched per call
        """
        self.session_maker = session_maker
        self.chain = chain
        self.notifier = notifier
        self.sources = sources
        self.sync_key = sync_key
        self.default_checkpoint = default_checkpoint
        self.max_block_range = max_block_range

        self.state = SyncState()
        self._guard = SingleFlightGuard("event sync")

    @property
    def is_syncing(self) -> bool:
        """Whether a sync is running."""
        return self._guard.in_flight

    async def sync(self) -> SyncResult:
        """
        Ingest the next block range.

        Returns immediately with reason "already syncing" if another sync
        is in flight. Chain head failures and persistence failures
        propagate; nothing is checkpointed in that case.

        Returns:
            SyncResult
        """
        with self._guard.attempt() as acquired:
            if not acquired:
                return SyncResult(synced=False, reason=ALREADY_SYNCING)
            return await self._sync_once()

    async def _sync_once(self) -> SyncResult:
        async with self.session_maker() as session:
            checkpoints = CheckpointRepository(session)

            stored = await checkpoints.get_last_block(self.sync_key)
            last_synced = stored if stored is not None else self.default_checkpoint

            head = await self.chain.get_block_number()

            if head <= last_synced:
                self.state.mark(last_synced, touch=False)
                self._publish_status(last_synced, head, is_catching_up=False)
                return SyncResult(synced=False, last_block=last_synced)

            to_block = min(last_synced + self.max_block_range, head)
            is_catching_up = (to_block - last_synced) >= self.max_block_range
            from_block = last_synced + 1

            if is_catching_up:
                logger.info(
                    f"[EventSync] Catching up: blocks {from_block} to {to_block} "
                    f"({to_block - last_synced} blocks)"
                )
            else:
                logger.info(f"[EventSync] Syncing events from block {from_block} to {to_block}")

            outcomes = await self.fetch_all(from_block, to_block)
            rows = self._normalize(outcomes)

            await EventRepository(session).insert_ignore_duplicates(rows)
            await self._commit(session)

            await checkpoints.save(self.sync_key, to_block)
            await self._commit(session)

        self.state.mark(to_block)
        logger.info(f"[EventSync] Synced {len(rows)} events up to block {to_block}")

        if rows:
            self.notifier.publish_new_events([to_notification(row) for row in rows])
        self._publish_status(to_block, head, is_catching_up=is_catching_up)

        return SyncResult(
            synced=True,
            events_count=len(rows),
            last_block=to_block,
            is_catching_up=is_catching_up,
            needs_more_sync=is_catching_up and to_block < head,
            failed_sources=[o.source.event_type for o in outcomes if not o.ok],
        )

    def _normalize(self, outcomes: list[FetchOutcome]) -> list[dict[str, Any]]:
        rows = []
        for outcome in outcomes:
            for log in outcome.logs:
                try:
                    rows.append(normalize_log(outcome.source, log))
                except (KeyError, TypeError, ValueError) as e:
                    logger.warning(
                        f"[EventSync] Skipping malformed {outcome.source.event_type} log: {e}"
                    )
        return rows

    async def _commit(self, session: AsyncSession) -> None:
        try:
            await session.commit()
        except SQLAlchemyError as e:
            await session.rollback()
            raise PersistenceError(f"Commit failed: {e}") from e

    def _publish_status(self, synced_block: int, head: int, is_catching_up: bool) -> None:
        last_time = self.state.last_sync_time
        self.notifier.publish_sync_status({
            "lastSyncBlock": synced_block,
            "lastSyncTime": last_time.isoformat() if last_time else None,
            "isSyncing": False,
            "syncProgress": sync_progress(synced_block, head),
            "blocksRemaining": max(0, head - synced_block),
            "isCatchingUp": is_catching_up,
        })

    async def reset(self) -> SyncResult:
        """
        Delete every event and checkpoint, then sync from genesis.

        Runs under the sync guard and is refused while a sync is in
        flight.

        Returns:
            Result of the first sync, or a skipped result
        """
        with self._guard.attempt() as acquired:
            if not acquired:
                logger.warning("[EventSync] Reset refused: sync in flight")
                return SyncResult(synced=False, reason=ALREADY_SYNCING)
            await self._clear()
            return await self._sync_once()

    async def _clear(self) -> None:
        async with self.session_maker() as session:
            await EventRepository(session).delete_all()
            await CheckpointRepository(session).delete_all()
            await self._commit(session)
        self.state = SyncState()
        logger.warning("[EventSync] All events and checkpoints cleared")
