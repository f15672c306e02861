"""
Event Sync Service.

Incremental ingestion of contract event logs into the events table.

Key features:
- Bounded block range per call with catch-up signalling
- Concurrent, fault-isolated fetch per event type
- Idempotent storage keyed by (tx_hash, log_index)
- Checkpoint advanced only after events are stored
"""

from .core import EventSyncService, SyncResult, SyncState
from .fetching_mixin import FetchingMixin, FetchOutcome
from .normalization import normalize_log, to_notification
from .sources import EventSource, build_event_sources
from .status_mixin import StatusMixin, sync_progress

__all__ = [
    "EventSource",
    "EventSyncService",
    "FetchOutcome",
    "FetchingMixin",
    "StatusMixin",
    "SyncResult",
    "SyncState",
    "build_event_sources",
    "normalize_log",
    "sync_progress",
    "to_notification",
]
