"""Tests for the webhook dedupe cache (TTL set keyed on item/location/available)."""

from __future__ import annotations

from datetime import timedelta

from freezegun import freeze_time

from stockguard.webhooks.dedupe import DedupeCache


class FakeClock:
    def __init__(self, start: float = 1000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class TestDedupeCache:
    def test_mark_then_duplicate(self):
        cache = DedupeCache(ttl=300, clock=FakeClock())
        cache.mark_seen("111", "222", -4)
        assert cache.is_duplicate("111", "222", -4) is True

    def test_unknown_is_not_duplicate(self):
        cache = DedupeCache(ttl=300, clock=FakeClock())
        assert cache.is_duplicate("111", "222", -4) is False

    def test_expires_after_ttl(self):
        clock = FakeClock()
        cache = DedupeCache(ttl=300, clock=clock)
        cache.mark_seen("111", "222", -4)
        clock.advance(299)
        assert cache.is_duplicate("111", "222", -4) is True
        clock.advance(2)
        assert cache.is_duplicate("111", "222", -4) is False
        assert len(cache) == 0

    def test_different_available_is_distinct(self):
        cache = DedupeCache(ttl=300, clock=FakeClock())
        cache.mark_seen("111", "222", -4)
        assert cache.is_duplicate("111", "222", -5) is False
        assert cache.is_duplicate("111", "333", -4) is False
        assert cache.is_duplicate("999", "222", -4) is False

    def test_key_normalizes_types(self):
        cache = DedupeCache(ttl=300, clock=FakeClock())
        cache.mark_seen(111, 222, -4)
        assert cache.is_duplicate("111", "222", -4) is True

    def test_remark_keeps_first_seen(self):
        clock = FakeClock()
        cache = DedupeCache(ttl=300, clock=clock)
        cache.mark_seen("1", "2", -1)
        clock.advance(200)
        cache.mark_seen("1", "2", -1)
        clock.advance(150)
        assert cache.is_duplicate("1", "2", -1) is False

    def test_sweep_removes_only_expired(self):
        clock = FakeClock()
        cache = DedupeCache(ttl=300, clock=clock)
        cache.mark_seen("old", "loc", -1)
        clock.advance(200)
        cache.mark_seen("new", "loc", -1)
        clock.advance(150)
        cache.is_duplicate("x", "y", 0)
        assert len(cache) == 1
        assert cache.is_duplicate("new", "loc", -1) is True

    def test_check_and_mark(self):
        cache = DedupeCache(ttl=300, clock=FakeClock())
        assert cache.check_and_mark("1", "2", -3) is False
        assert cache.check_and_mark("1", "2", -3) is True

    def test_clear(self):
        cache = DedupeCache(ttl=300, clock=FakeClock())
        cache.mark_seen("1", "2", -3)
        cache.clear()
        assert cache.is_duplicate("1", "2", -3) is False

    def test_default_clock_follows_frozen_time(self):
        with freeze_time("2026-01-01 12:00:00") as frozen:
            cache = DedupeCache(ttl=300)
            cache.mark_seen("1", "2", -3)
            frozen.tick(timedelta(seconds=60))
            assert cache.is_duplicate("1", "2", -3) is True
            frozen.tick(timedelta(seconds=301))
            assert cache.is_duplicate("1", "2", -3) is False

    def test_forget_allows_same_event_again(self):
        cache = DedupeCache(ttl=300, clock=FakeClock())
        assert cache.check_and_mark("1", "2", -3) is False
        cache.forget("1", "2", -3)
        assert cache.check_and_mark("1", "2", -3) is False
        assert cache.check_and_mark("1", "2", -3) is True

    def test_forget_unknown_is_noop(self):
        cache = DedupeCache(ttl=300, clock=FakeClock())
        cache.mark_seen("1", "2", -3)
        cache.forget("1", "2", -9)
        assert len(cache) == 1
