"""Unit tests for the single-flight guard."""

import pytest

from app.utils.single_flight import SingleFlightGuard


class TestSingleFlightGuard:
    """Tests for SingleFlightGuard."""

    def test_second_attempt_turned_away(self):
        guard = SingleFlightGuard("test")

        with guard.attempt() as first:
            assert first is True
            assert guard.in_flight
            with guard.attempt() as second:
                assert second is False
            assert guard.in_flight

        assert not guard.in_flight

    def test_released_on_error(self):
        guard = SingleFlightGuard("test")

        with pytest.raises(RuntimeError):
            with guard.attempt():
                raise RuntimeError("boom")

        assert not guard.in_flight

    def test_guards_are_independent(self):
        sync_guard, render_guard = SingleFlightGuard("sync"), SingleFlightGuard("render")

        with sync_guard.attempt() as acquired:
            assert acquired
            with render_guard.attempt() as other:
                assert other
