"""
Event Sync Fetching Mixin.

Fetches every tracked event type concurrently. Each fetch is isolated:
a failure becomes an error outcome for that type only.
"""

import asyncio
from dataclasses import dataclass, field
from typing import Any

from loguru import logger

from app.services.event_sync.sources import EventSource


@dataclass
class FetchOutcome:
    """Result of fetching one event type: logs, or the reason it failed."""

    source: EventSource
    logs: list[Any] = field(default_factory=list)
    error: str | None = None

    @property
    def ok(self) -> bool:
        """Whether the fetch succeeded."""
        return self.error is None


class FetchingMixin:
    """Mixin providing log fetching."""

    async def _fetch_source(
        self,
        source: EventSource,
        from_block: int,
        to_block: int,
    ) -> FetchOutcome:
        try:
            logs = await self.chain.get_event_logs(
                source.address,
                source.abi,
                source.event_type,
                from_block,
                to_block,
            )
            return FetchOutcome(source=source, logs=list(logs))
        except asyncio.CancelledError:
            raise
        except Exception as e:
            logger.warning(
                f"[EventSync] {source.event_type} fetch failed "
                f"for {from_block}-{to_block}: {e}"
            )
            return FetchOutcome(source=source, error=str(e))

    async def fetch_all(self, from_block: int, to_block: int) -> list[FetchOutcome]:
        """
        Fetch all tracked event types for a block range.

        Args:
            from_block: First block (inclusive)
            to_block: Last block (inclusive)

        Returns:
            One outcome per source, in source order
        """
        outcomes = await asyncio.gather(*(
            self._fetch_source(source, from_block, to_block)
            for source in self.sources
        ))

        counts = ", ".join(
            f"{o.source.event_type}={len(o.logs) if o.ok else 'ERR'}"
            for o in outcomes
        )
        logger.info(f"[EventSync] Event counts: {counts}")
        return list(outcomes)
