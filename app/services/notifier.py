"""
Realtime Notifier.

In-process publish/subscribe for sync results. Two message kinds:
- newEvents: events ingested by a sync batch
- syncStatus: progress after every sync attempt

Delivery is best-effort: nothing is persisted or replayed, and a
subscriber whose queue is full misses the message.
"""

import asyncio
from dataclasses import dataclass, field
from typing import Any

from loguru import logger

NEW_EVENTS = "newEvents"
SYNC_STATUS = "syncStatus"


@dataclass(eq=False)
class Subscription:
    """
    A consumer's mailbox.

    With no followed tokens the subscriber receives everything; after
    follow() it receives syncStatus plus only the newEvents entries for
    the followed tokens.
    """

    queue: asyncio.Queue
    token_ids: set[int] = field(default_factory=set)

    def follow(self, token_id: int) -> None:
        """Restrict newEvents to a token (cumulative)."""
        self.token_ids.add(int(token_id))

    def unfollow(self, token_id: int) -> None:
        """Stop following a token."""
        self.token_ids.discard(int(token_id))

    async def get(self) -> dict[str, Any]:
        """Wait for the next message."""
        return await self.queue.get()


class RealtimeNotifier:
    """Broadcasts sync messages to current subscribers."""

    def __init__(self, max_queue_size: int = 100) -> None:
        """
        Initialize notifier.

        Args:
            max_queue_size: Per-subscriber buffer before messages are dropped
        """
        self.max_queue_size = max_queue_size
        self._subscribers: set[Subscription] = set()

    @property
    def subscriber_count(self) -> int:
        """Number of connected subscribers."""
        return len(self._subscribers)

    def subscribe(self) -> Subscription:
        """Register a new subscriber."""
        subscription = Subscription(queue=asyncio.Queue(maxsize=self.max_queue_size))
        self._subscribers.add(subscription)
        logger.debug(f"[Notifier] Subscriber added ({self.subscriber_count} total)")
        return subscription

    def unsubscribe(self, subscription: Subscription) -> None:
        """Remove a subscriber; unknown subscriptions are ignored."""
        self._subscribers.discard(subscription)
        logger.debug(f"[Notifier] Subscriber removed ({self.subscriber_count} total)")

    def publish_new_events(self, events: list[dict[str, Any]]) -> int:
        """
        Broadcast a batch of new events.

        Args:
            events: Dicts with type, tokenId, blockNumber, transactionId

        Returns:
            Number of subscribers the message was delivered to
        """
        if not events:
            return 0

        delivered = 0
        for subscription in list(self._subscribers):
            if subscription.token_ids:
                selected = [e for e in events if e["tokenId"] in subscription.token_ids]
                if not selected:
                    continue
            else:
                selected = events
            if self._deliver(subscription, {"type": NEW_EVENTS, "data": selected}):
                delivered += 1
        return delivered

    def publish_sync_status(self, status: dict[str, Any]) -> int:
        """
        Broadcast a sync progress update.

        Args:
            status: Dict with lastSyncBlock, lastSyncTime, isSyncing,
                syncProgress, blocksRemaining, isCatchingUp

        Returns:
            Number of subscribers the message was delivered to
        """
        message = {"type": SYNC_STATUS, "data": status}
        return sum(
            1 for subscription in list(self._subscribers)
            if self._deliver(subscription, message)
        )

    def _deliver(self, subscription: Subscription, message: dict[str, Any]) -> bool:
        try:
            subscription.queue.put_nowait(message)
            return True
        except asyncio.QueueFull:
            logger.warning(f"[Notifier] Subscriber queue full, dropping {message['type']}")
            return False
