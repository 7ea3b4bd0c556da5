"""
Recent Event Cache - events created during a session, kept briefly.

Google Calendar list results can lag behind a freshly inserted event, so
a quick second "내일 3시 회의 추가" would not see the first one. Each
successful create is remembered here for RECENT_EVENT_TTL_SECONDS (10
minutes by default) and consulted by the duplicate checker.

Design:
- In-memory storage keyed by session id, newest entry last
- At most RECENT_EVENT_MAX_PER_SESSION entries per session
- Expired entries are skipped on read and swept by cleanup_expired()
- Singleton instance

Usage:
    from app.services.recent_event_cache import recent_event_cache

    recent_event_cache.add_event(session_id, extracted_event, timezone="Asia/Seoul")
    events = recent_event_cache.get_recent_events(session_id)  # List[CalendarEvent]
"""

import asyncio
import logging
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone as tz
from typing import Dict, List, Optional

from app.ai.intent.schemas import ExtractedEvent
from app.core.config import settings
from app.environments.google.calendar.schemas import CalendarEvent


logger = logging.getLogger("calendar_ai.services.recent_event_cache")


@dataclass
class CachedEvent:
    """One created event plus the time it entered the cache."""
    event: ExtractedEvent
    timezone: str
    event_id: str
    created_at: datetime = field(default_factory=lambda: datetime.now(tz.utc))

    def is_expired(self, ttl_seconds: int, now: Optional[datetime] = None) -> bool:
        now = now or datetime.now(tz.utc)
        return now - self.created_at >= timedelta(seconds=ttl_seconds)

    def to_calendar_event(self) -> CalendarEvent:
        return self.event.to_calendar_event(self.event_id, self.timezone)


class RecentEventCache:
    """
    Session-keyed store of recently created events.

    Thread-safety: Operations are not thread-safe; FastAPI runs them on
    the event loop only.
    """

    def __init__(
        self,
        ttl_seconds: Optional[int] = None,
        max_per_session: Optional[int] = None,
    ):
        self.ttl_seconds = ttl_seconds or settings.RECENT_EVENT_TTL_SECONDS
        self.max_per_session = max_per_session or settings.RECENT_EVENT_MAX_PER_SESSION
        self._sessions: Dict[str, List[CachedEvent]] = {}
        self._cleanup_task: Optional[asyncio.Task] = None

    # -------------------------------------------------------------------------
    # CORE OPERATIONS
    # -------------------------------------------------------------------------

    def add_event(
        self,
        session_id: str,
        event: ExtractedEvent,
        timezone: str,
        event_id: Optional[str] = None,
    ) -> CachedEvent:
        """
        Remember a created event for this session.

        Args:
            session_id: Session identifier
            event: The event data that was sent to Google Calendar
            timezone: Zone of the event's wall-clock time
            event_id: Google event id when known
        """
        session_id = str(session_id)
        entry = CachedEvent(
            event=event,
            timezone=timezone,
            event_id=event_id or f"recent-{uuid.uuid4().hex[:12]}",
        )

        entries = self._sessions.setdefault(session_id, [])
        entries.append(entry)
        if len(entries) > self.max_per_session:
            del entries[: len(entries) - self.max_per_session]

        logger.info(
            f"Cached recent event for session {session_id}: {event.title}",
            extra={"session_id": session_id, "cached_count": len(entries)},
        )
        return entry

    def get_recent_entries(self, session_id: str) -> List[CachedEvent]:
        """Non-expired entries, oldest first."""
        session_id = str(session_id)
        entries = self._sessions.get(session_id)
        if not entries:
            return []

        now = datetime.now(tz.utc)
        valid = [e for e in entries if not e.is_expired(self.ttl_seconds, now)]
        if valid:
            self._sessions[session_id] = valid
        else:
            del self._sessions[session_id]
        return list(valid)

    def get_recent_events(self, session_id: str) -> List[CalendarEvent]:
        """Non-expired cached events shaped like Google events."""
        return [e.to_calendar_event() for e in self.get_recent_entries(session_id)]

    def clear_session(self, session_id: str) -> bool:
        """Forget a session's events. Returns True if anything was removed."""
        removed = self._sessions.pop(str(session_id), None)
        return bool(removed)

    # -------------------------------------------------------------------------
    # CLEANUP
    # -------------------------------------------------------------------------

    def cleanup_expired(self) -> int:
        """
        Remove expired entries across all sessions.

        Returns:
            Number of entries removed
        """
        now = datetime.now(tz.utc)
        removed = 0
        for session_id in list(self._sessions):
            entries = self._sessions[session_id]
            valid = [e for e in entries if not e.is_expired(self.ttl_seconds, now)]
            removed += len(entries) - len(valid)
            if valid:
                self._sessions[session_id] = valid
            else:
                del self._sessions[session_id]

        if removed:
            logger.info(f"Cleaned up {removed} expired recent events")

        return removed

    async def start_cleanup_loop(self, interval_seconds: int = 60):
        """Start a background task that sweeps expired entries periodically."""
        if self._cleanup_task is not None:
            logger.warning("Cleanup loop already running")
            return

        async def cleanup_loop():
            while True:
                try:
                    await asyncio.sleep(interval_seconds)
                    self.cleanup_expired()
                except asyncio.CancelledError:
                    break
                except Exception as e:
                    logger.error(f"Cleanup loop error: {e}")

        self._cleanup_task = asyncio.create_task(cleanup_loop())
        logger.info(f"Started recent event cleanup loop (interval: {interval_seconds}s)")

    async def stop_cleanup_loop(self):
        """Stop the background cleanup task."""
        if self._cleanup_task is not None:
            self._cleanup_task.cancel()
            try:
                await self._cleanup_task
            except asyncio.CancelledError:
                pass
            self._cleanup_task = None
            logger.info("Stopped recent event cleanup loop")

    # -------------------------------------------------------------------------
    # UTILITIES
    # -------------------------------------------------------------------------

    def session_count(self) -> int:
        return len(self._sessions)

    def clear_all(self):
        """Clear every session. Use for testing only."""
        self._sessions.clear()


# Singleton instance
recent_event_cache = RecentEventCache()
