"""
Event Sync Status Mixin.

Read-side queries: sync progress and event history straight from the
database. No sync is triggered from here.
"""

from decimal import ROUND_HALF_UP, Decimal
from typing import Any

from app.config.constants import CATCHING_UP_THRESHOLD_BLOCKS
from app.repositories.checkpoint_repository import CheckpointRepository
from app.repositories.event_repository import EventRepository
from app.repositories.nft_repository import NftRepository


def sync_progress(synced_block: int, head: int) -> int:
    """
    Percentage of the chain ingested, rounded half up.

    Args:
        synced_block: Last ingested block
        head: Current chain head

    Returns:
        Integer percentage (0 when nothing is known)
    """
    if head <= 0 or synced_block <= 0:
        return 0
    ratio = Decimal(synced_block) * 100 / Decimal(head)
    return int(ratio.quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def serialize_event(event, include_token: bool = True) -> dict[str, Any]:
    """Serialize a stored event for API responses."""
    payload = {
        "event_type": event.event_type,
        "block_number": event.block_number,
        "tx_hash": event.tx_hash,
        "log_index": event.log_index,
        "data": event.data,
    }
    if include_token:
        payload["token_id"] = event.token_id
    return payload


class StatusMixin:
    """Mixin providing sync status and event queries."""

    def freshness(self) -> dict[str, Any]:
        """In-memory freshness markers for API metadata."""
        last_time = self.state.last_sync_time
        return {
            "lastSyncBlock": self.state.last_sync_block,
            "lastSyncTime": last_time.isoformat() if last_time else None,
            "isSyncing": self.is_syncing,
        }

    async def get_sync_status(self) -> dict[str, Any]:
        """
        Full sync status.

        Reads the chain head, so it raises ChainReadError if the RPC
        endpoint is down.

        Returns:
            Dict with syncStatus rows, totals and progress figures
        """
        async with self.session_maker() as session:
            checkpoints = await CheckpointRepository(session).list_all()
            total_events = await EventRepository(session).count()
            total_nfts = await NftRepository(session).count()

        current_block = await self.chain.get_block_number()

        synced_block = next(
            (cp.last_block for cp in checkpoints if cp.key == self.sync_key), 0
        )
        blocks_remaining = max(0, current_block - synced_block)

        return {
            "syncStatus": [
                {
                    "key": cp.key,
                    "last_block": cp.last_block,
                    "updated_at": cp.updated_at.isoformat() if cp.updated_at else None,
                }
                for cp in checkpoints
            ],
            "totalEvents": total_events,
            "totalNfts": total_nfts,
            "currentBlock": current_block,
            "syncedBlock": synced_block,
            "blocksRemaining": blocks_remaining,
            "isCatchingUp": blocks_remaining > CATCHING_UP_THRESHOLD_BLOCKS,
            "syncProgress": sync_progress(synced_block, current_block),
        }

    async def get_token_events(self, token_id: int) -> list[dict[str, Any]]:
        """
        Event history for one token, oldest first.

        Args:
            token_id: Token ID

        Returns:
            Serialized events
        """
        async with self.session_maker() as session:
            events = await EventRepository(session).get_token_events(token_id)
        return [serialize_event(e, include_token=False) for e in events]

    async def get_recent_events(self, limit: int = 500) -> list[dict[str, Any]]:
        """
        Most recent events across all tokens, newest first.

        Args:
            limit: Max results

        Returns:
            Serialized events
        """
        async with self.session_maker() as session:
            events = await EventRepository(session).get_recent(limit)
        return [serialize_event(e) for e in events]
