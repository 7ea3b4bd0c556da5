"""
Tests for RecentEventCache.

The cache bridges the gap between creating an event and Google Calendar
listing it, so a second "add lunch tomorrow" is still caught.
"""

import asyncio
import pytest
from datetime import datetime, timedelta, timezone

from app.ai.intent.schemas import ExtractedEvent
from app.services.recent_event_cache import RecentEventCache


def _event(title: str = "점심 약속", date: str = "2025-01-16", time: str = "12:00") -> ExtractedEvent:
    return ExtractedEvent(title=title, date=date, time=time, duration=60)


class TestAddAndRead:
    """Basic store/read behaviour."""

    def test_added_event_is_returned_as_calendar_event(self):
        cache = RecentEventCache(ttl_seconds=600, max_per_session=20)
        cache.add_event("session-1", _event(), "Asia/Seoul", event_id="g-123")

        events = cache.get_recent_events("session-1")

        assert len(events) == 1
        assert events[0].id == "g-123"
        assert events[0].summary == "점심 약속"
        start = events[0].start_datetime("Asia/Seoul")
        assert (start.hour, start.minute) == (12, 0)

    def test_generated_id_when_none_given(self):
        cache = RecentEventCache(ttl_seconds=600, max_per_session=20)
        entry = cache.add_event("session-1", _event(), "Asia/Seoul")
        assert entry.event_id.startswith("recent-")

    def test_sessions_are_isolated(self):
        cache = RecentEventCache(ttl_seconds=600, max_per_session=20)
        cache.add_event("a", _event("A"), "Asia/Seoul")
        cache.add_event("b", _event("B"), "Asia/Seoul")

        assert [e.summary for e in cache.get_recent_events("a")] == ["A"]
        assert [e.summary for e in cache.get_recent_events("b")] == ["B"]

    def test_unknown_session_is_empty(self):
        cache = RecentEventCache(ttl_seconds=600, max_per_session=20)
        assert cache.get_recent_events("nobody") == []

    def test_oldest_entries_dropped_beyond_limit(self):
        cache = RecentEventCache(ttl_seconds=600, max_per_session=3)
        for i in range(5):
            cache.add_event("s", _event(f"event {i}"), "Asia/Seoul")

        titles = [e.summary for e in cache.get_recent_events("s")]
        assert titles == ["event 2", "event 3", "event 4"]

    def test_clear_session(self):
        cache = RecentEventCache(ttl_seconds=600, max_per_session=20)
        cache.add_event("s", _event(), "Asia/Seoul")

        assert cache.clear_session("s") is True
        assert cache.clear_session("s") is False
        assert cache.get_recent_events("s") == []


class TestExpiry:
    """TTL handling on read and in the sweep."""

    def test_expired_entries_are_skipped_on_read(self):
        cache = RecentEventCache(ttl_seconds=60, max_per_session=20)
        old = cache.add_event("s", _event("old"), "Asia/Seoul")
        cache.add_event("s", _event("new"), "Asia/Seoul")
        old.created_at = datetime.now(timezone.utc) - timedelta(seconds=61)

        assert [e.summary for e in cache.get_recent_events("s")] == ["new"]

    def test_cleanup_expired_counts_removed_entries(self):
        cache = RecentEventCache(ttl_seconds=60, max_per_session=20)
        stale = datetime.now(timezone.utc) - timedelta(minutes=5)
        for session_id in ("a", "b"):
            cache.add_event(session_id, _event(), "Asia/Seoul").created_at = stale
        cache.add_event("b", _event("fresh"), "Asia/Seoul")

        assert cache.cleanup_expired() == 2
        assert cache.session_count() == 1
        assert [e.summary for e in cache.get_recent_events("b")] == ["fresh"]

    def test_entry_expires_exactly_at_ttl(self):
        cache = RecentEventCache(ttl_seconds=60, max_per_session=20)
        entry = cache.add_event("s", _event(), "Asia/Seoul")
        assert entry.is_expired(60, entry.created_at + timedelta(seconds=60)) is True
        assert entry.is_expired(60, entry.created_at + timedelta(seconds=59)) is False


class TestCleanupLoop:
    """Background sweep lifecycle."""

    @pytest.mark.asyncio
    async def test_loop_sweeps_and_stops(self):
        cache = RecentEventCache(ttl_seconds=60, max_per_session=20)
        cache.add_event("s", _event(), "Asia/Seoul").created_at = (
            datetime.now(timezone.utc) - timedelta(minutes=5)
        )

        await cache.start_cleanup_loop(interval_seconds=0.01)
        await asyncio.sleep(0.05)
        await cache.stop_cleanup_loop()

        assert cache.session_count() == 0
        assert cache._cleanup_task is None

    @pytest.mark.asyncio
    async def test_second_start_is_ignored(self):
        cache = RecentEventCache(ttl_seconds=60, max_per_session=20)
        await cache.start_cleanup_loop(interval_seconds=10)
        task = cache._cleanup_task

        await cache.start_cleanup_loop(interval_seconds=10)

        assert cache._cleanup_task is task
        await cache.stop_cleanup_loop()
