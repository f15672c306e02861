"""Unit tests for sync results and progress."""

import pytest

from app.services.event_sync import SyncResult, sync_progress


class TestSyncProgress:
    """Tests for sync_progress."""

    @pytest.mark.parametrize(
        "synced,head,expected",
        [
            (0, 100, 0),
            (50, 100, 50),
            (101, 200, 51),
            (100, 200, 50),
            (1, 3, 33),
            (2, 3, 67),
            (100, 100, 100),
            (5, 0, 0),
        ],
    )
    def test_rounding(self, synced, head, expected):
        """Halves round up."""
        assert sync_progress(synced, head) == expected


class TestSyncResultPayload:
    """Tests for SyncResult.to_payload."""

    def test_skipped(self):
        payload = SyncResult(synced=False, reason="already syncing").to_payload()
        assert payload == {"synced": False, "reason": "already syncing"}

    def test_noop(self):
        payload = SyncResult(synced=False, last_block=42).to_payload()
        assert payload == {"synced": False, "lastBlock": 42, "isCatchingUp": False}

    def test_synced(self):
        payload = SyncResult(
            synced=True,
            events_count=3,
            last_block=500100,
            is_catching_up=True,
            needs_more_sync=True,
        ).to_payload()
        assert payload == {
            "synced": True,
            "eventsCount": 3,
            "lastBlock": 500100,
            "isCatchingUp": True,
            "needsMoreSync": True,
        }
