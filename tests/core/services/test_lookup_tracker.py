"""Tests for generation-stamped lookups."""

import asyncio

import pytest

from src.core.exceptions import StaleLookupError
from src.core.services.lookup_tracker import LookupTracker


class TestLookupTracker:
    """Tests for LookupTracker."""

    def test_latest_ticket_is_current(self):
        tracker = LookupTracker()

        first = tracker.issue("P-A")
        second = tracker.issue("P-B")

        assert not tracker.is_current(first)
        assert tracker.is_current(second)
        assert second.key == "P-B"
        assert tracker.generation == 2

    def test_resolve_current(self):
        tracker = LookupTracker()
        ticket = tracker.issue()

        assert tracker.resolve(ticket, 42) == 42

    def test_resolve_stale_raises(self):
        tracker = LookupTracker()
        stale = tracker.issue("P-A")
        tracker.issue("P-B")

        with pytest.raises(StaleLookupError) as exc_info:
            tracker.resolve(stale, "late")

        assert exc_info.value.details == {"generation": 1, "current": 2}

    def test_cancel_invalidates(self):
        tracker = LookupTracker()
        ticket = tracker.issue()

        tracker.cancel()

        assert not tracker.is_current(ticket)

    async def test_late_answer_is_discarded(self):
        """A slow lookup for A resolving after B was picked is dropped."""
        tracker = LookupTracker()
        applied: list[str] = []

        async def lookup(key: str, delay: float) -> None:
            ticket = tracker.issue(key)
            await asyncio.sleep(delay)
            try:
                applied.append(tracker.resolve(ticket, key))
            except StaleLookupError:
                pass

        await asyncio.gather(lookup("A", 0.05), lookup("B", 0.0))

        assert applied == ["B"]
