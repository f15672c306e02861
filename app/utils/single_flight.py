"""
Single-flight guard.

Allows at most one execution of an operation at a time within the
process; concurrent callers are turned away instead of queued.
"""

from collections.abc import Iterator
from contextlib import contextmanager

from loguru import logger


class SingleFlightGuard:
    """
    In-flight marker owned by a service.

    Entering and leaving never awaits, so under asyncio the check and the
    set happen without interleaving.

    Usage:
        with self._guard.attempt() as acquired:
            if not acquired:
                return skipped_result
            ...
    """

    def __init__(self, name: str) -> None:
        self.name = name
        self._in_flight = False

    @property
    def in_flight(self) -> bool:
        """Whether an execution is currently running."""
        return self._in_flight

    @contextmanager
    def attempt(self) -> Iterator[bool]:
        """Yield True if this caller owns the execution, False otherwise."""
        if self._in_flight:
            logger.debug(f"[SingleFlight] {self.name} already in flight, skipping")
            yield False
            return

        self._in_flight = True
        try:
            yield True
        finally:
            self._in_flight = False
