#!/usr/bin/env python3
"""Unit tests for the DedupGuard module."""

from limit_keeper.dedup_guard import DedupGuard


class TestDedupGuard:
    """Test suite for DedupGuard functionality."""

    def test_unknown_order_may_be_submitted(self):
        guard = DedupGuard()

        assert guard.should_submit("0x0abc") is True
        assert len(guard) == 0

    def test_marked_order_is_blocked(self):
        guard = DedupGuard()
        guard.mark_submitted("0x0abc")

        assert guard.should_submit("0x0abc") is False
        assert guard.should_submit("0x0ABC") is False
        assert "0x0abc" in guard
        assert guard.duplicates_blocked == 2

    def test_mark_is_idempotent(self):
        guard = DedupGuard()
        guard.mark_submitted("0x0abc")
        guard.mark_submitted("0x0abc")

        assert len(guard) == 1

    def test_no_eviction(self):
        guard = DedupGuard()
        for i in range(5000):
            guard.mark_submitted(hex(i))

        assert len(guard) == 5000
        assert guard.should_submit(hex(0)) is False

    def test_disabled_guard_lets_everything_through(self):
        guard = DedupGuard(enabled=False)
        guard.mark_submitted("0x0abc")

        assert guard.should_submit("0x0abc") is True
        assert len(guard) == 0
        assert guard.duplicates_blocked == 0

    def test_guards_are_independent(self):
        first, second = DedupGuard(), DedupGuard()
        first.mark_submitted("0x0abc")

        assert second.should_submit("0x0abc") is True

    def test_empty_guard_is_truthy(self):
        guard = DedupGuard(enabled=False)

        assert len(guard) == 0
        assert bool(guard) is True
