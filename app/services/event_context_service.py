"""
Event Context Service - resolves "that event" style references.

Lets the update and delete handlers work without an explicit selection:

    User: "내일 3시 팀 회의 추가"      -> event created, remembered
    User: "방금 만든 일정 4시로 바꿔줘"  -> resolves to the 팀 회의 event

Reference kinds, strongest first:
    specific (0.9)  "팀 회의" 일정 / the "standup" event / a known title
    recent   (0.8)  그 일정, 방금 만든 일정, that event, the last event
    relative (0.7)  내일 일정, 오늘 미팅, 다음 일정, tomorrow's meeting

State is kept per session: the last mentioned event, the events last
shown to the user and a short action history.
"""

import logging
import re
from collections import deque
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta, timezone as tz
from typing import Any, Deque, Dict, List, Optional, Sequence

from app.core.config import settings
from app.core.timeutils import ensure_aware, now_in
from app.environments.google.calendar.schemas import CalendarEvent


logger = logging.getLogger("calendar_ai.services.event_context")

MAX_HISTORY = 20

_NOUNS = r"(?:일정|약속|미팅|이벤트|회의)"
_EN_NOUNS = r"(?:event|meeting|appointment)"

SPECIFIC_PATTERNS = [
    re.compile(rf'"([^"]+)"\s*{_NOUNS}'),
    re.compile(rf'"([^"]+)"\s*{_EN_NOUNS}', re.IGNORECASE),
    re.compile(rf'{_EN_NOUNS}\s*"([^"]+)"', re.IGNORECASE),
]

RECENT_PATTERNS = [
    re.compile(r"그\s*(?:일정|약속|미팅)"),
    re.compile(r"방금\s*(?:만든|생성한|추가한)\s*(?:일정|약속)"),
    re.compile(r"아까\s*(?:그|말한)\s*(?:일정|약속)"),
    re.compile(rf"\bthat\s+{_EN_NOUNS}", re.IGNORECASE),
    re.compile(rf"\bthe\s+last\s+{_EN_NOUNS}", re.IGNORECASE),
    re.compile(rf"\bthe\s+{_EN_NOUNS}\s+i\s+just\s+(?:made|created|added)", re.IGNORECASE),
]

RELATIVE_PATTERNS = [
    (re.compile(r"내일\s*(?:일정|약속|미팅)|tomorrow'?s\s+" + _EN_NOUNS, re.IGNORECASE), "tomorrow"),
    (re.compile(r"오늘\s*(?:일정|약속|미팅)|today'?s\s+" + _EN_NOUNS, re.IGNORECASE), "today"),
    (re.compile(r"다음\s*(?:일정|약속|미팅)|\bnext\s+" + _EN_NOUNS, re.IGNORECASE), "next"),
]

ACTION_PATTERNS = [
    (re.compile(r"(수정|변경|바꾸|바꿔|고쳐|업데이트|update|modify|change|edit)", re.IGNORECASE), "edit", 0.9),
    (re.compile(r"(삭제|지워|취소|없애|제거|delete|remove|cancel)", re.IGNORECASE), "delete", 0.85),
    (re.compile(r"(만들|생성|추가|등록|예약|잡아|create|add|schedule|book)", re.IGNORECASE), "create", 0.88),
    (re.compile(r"(보여|확인|알려|보고|찾아|뭐야|언제|show|view|check|find)", re.IGNORECASE), "view", 0.75),
]


@dataclass
class EventReference:
    """Result of resolving an event reference in a message."""
    event: Optional[CalendarEvent] = None
    confidence: float = 0.0
    reference_type: Optional[str] = None  # "specific" | "recent" | "relative"

    @property
    def found(self) -> bool:
        return self.event is not None


@dataclass
class DateTimeExtraction:
    date: Optional[str] = None
    time: Optional[str] = None
    confidence: float = 0.0


@dataclass
class EventAction:
    event_id: str
    action: str
    timestamp: datetime = field(default_factory=lambda: datetime.now(tz.utc))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "event_id": self.event_id,
            "action": self.action,
            "timestamp": self.timestamp.isoformat(),
        }


@dataclass
class _EventSession:
    last_mentioned_event: Optional[CalendarEvent] = None
    events: List[CalendarEvent] = field(default_factory=list)
    history: Deque[EventAction] = field(default_factory=lambda: deque(maxlen=MAX_HISTORY))


class EventContextService:
    """Per-session event reference tracking."""

    def __init__(self):
        self._sessions: Dict[str, _EventSession] = {}

    def _session(self, session_id: str) -> _EventSession:
        return self._sessions.setdefault(str(session_id), _EventSession())

    # -------------------------------------------------------------------------
    # REFERENCE DETECTION
    # -------------------------------------------------------------------------

    def detect_event_reference(
        self,
        message: str,
        session_id: str,
        events: Optional[Sequence[CalendarEvent]] = None,
        now: Optional[datetime] = None,
        timezone: Optional[str] = None,
    ) -> EventReference:
        """
        Find the event a message refers to.

        Args:
            message: User message
            session_id: Session identifier
            events: Candidate events; defaults to those last shown in this session
            now: Current time (tests)
            timezone: User's IANA zone for "today"/"tomorrow"

        Returns:
            EventReference; `event` is None when nothing matched
        """
        session = self._session(session_id)
        candidates = list(events) if events is not None else list(session.events)

        # Specific: a quoted title, or a known title next to a reference noun
        for pattern in SPECIFIC_PATTERNS:
            match = pattern.search(message)
            if match:
                found = _find_by_title(candidates, match.group(1))
                if found:
                    session.last_mentioned_event = found
                    return EventReference(found, 0.9, "specific")

        if re.search(_NOUNS, message) or re.search(_EN_NOUNS, message, re.IGNORECASE):
            lowered = message.lower()
            for event in candidates:
                title = (event.summary or "").strip().lower()
                if len(title) >= 2 and title in lowered:
                    session.last_mentioned_event = event
                    return EventReference(event, 0.9, "specific")

        # Recent: only meaningful when something was mentioned before
        if session.last_mentioned_event is not None:
            for pattern in RECENT_PATTERNS:
                if pattern.search(message):
                    return EventReference(session.last_mentioned_event, 0.8, "recent")

        # Relative
        current = ensure_aware(now, timezone) if now else now_in(timezone)
        for pattern, time_filter in RELATIVE_PATTERNS:
            if pattern.search(message):
                found = _filter_by_time(candidates, time_filter, current, timezone)
                if found:
                    session.last_mentioned_event = found
                    return EventReference(found, 0.7, "relative")

        return EventReference()

    # -------------------------------------------------------------------------
    # SESSION STATE
    # -------------------------------------------------------------------------

    def record_event_action(
        self,
        session_id: str,
        action: str,
        event: CalendarEvent,
    ) -> None:
        """Remember an action on an event; the event becomes the last mentioned one."""
        session = self._session(session_id)
        session.history.append(EventAction(event_id=event.id, action=action))
        if action == "delete":
            if session.last_mentioned_event and session.last_mentioned_event.id == event.id:
                session.last_mentioned_event = None
            session.events = [e for e in session.events if e.id != event.id]
        else:
            session.last_mentioned_event = event
        logger.debug(f"Recorded {action} on event {event.id} for session {session_id}")

    def get_history(self, session_id: str) -> List[EventAction]:
        return list(self._session(session_id).history)

    def set_session_events(self, session_id: str, events: Sequence[CalendarEvent]) -> None:
        """Remember the events last shown to the user."""
        self._session(session_id).events = list(events)

    def get_session_events(self, session_id: str) -> List[CalendarEvent]:
        return list(self._session(session_id).events)

    def get_last_mentioned_event(self, session_id: str) -> Optional[CalendarEvent]:
        session = self._sessions.get(str(session_id))
        return session.last_mentioned_event if session else None

    def clear_context(self, session_id: str) -> None:
        self._sessions.pop(str(session_id), None)

    def clear_all(self) -> None:
        """Clear all sessions (for testing/reset)."""
        self._sessions.clear()

    # -------------------------------------------------------------------------
    # MESSAGE HEURISTICS
    # -------------------------------------------------------------------------

    @staticmethod
    def suggest_action(message: str) -> Dict[str, Any]:
        """
        Guess what the user wants to do with an event.

        Returns:
            {"action": "edit"|"delete"|"create"|"view"|None, "confidence": float}
        """
        best: Dict[str, Any] = {"action": None, "confidence": 0.0}
        for pattern, action, confidence in ACTION_PATTERNS:
            if pattern.search(message) and confidence > best["confidence"]:
                best = {"action": action, "confidence": confidence}
        return best

    @staticmethod
    def extract_date_time(message: str, now: Optional[datetime] = None) -> DateTimeExtraction:
        """
        Pull a date and a time out of a message.

        Confidence adds up: 0.4 for a relative or month/day date, 0.5 for
        an ISO date, 0.4 for an hour expression, 0.5 for HH:MM.
        """
        current = now or now_in(settings.DEFAULT_TIMEZONE)
        today = current.date()
        result = DateTimeExtraction()

        relative_dates = [
            (re.compile(r"모레|day after tomorrow", re.IGNORECASE), today + timedelta(days=2)),
            (re.compile(r"오늘|today", re.IGNORECASE), today),
            (re.compile(r"내일|tomorrow", re.IGNORECASE), today + timedelta(days=1)),
        ]
        for pattern, value in relative_dates:
            if pattern.search(message):
                result.date = value.isoformat()
                result.confidence += 0.4
                break
        else:
            korean = re.search(r"(\d{1,2})월\s*(\d{1,2})일", message)
            iso = re.search(r"(\d{4})-(\d{1,2})-(\d{1,2})", message)
            if korean:
                parsed = _safe_date(today.year, int(korean.group(1)), int(korean.group(2)))
                if parsed:
                    result.date = parsed.isoformat()
                    result.confidence += 0.4
            elif iso:
                parsed = _safe_date(int(iso.group(1)), int(iso.group(2)), int(iso.group(3)))
                if parsed:
                    result.date = parsed.isoformat()
                    result.confidence += 0.5

        ampm = re.search(r"(오전|오후|\bam|\bpm)\s*(\d{1,2})\s*시?", message, re.IGNORECASE) or re.search(
            r"(\d{1,2})\s*(am|pm)\b", message, re.IGNORECASE
        )
        korean_time = re.search(r"(\d{1,2})\s*[시時](?:\s*(\d{1,2})\s*[분分])?", message)
        standard = re.search(r"(\d{1,2}):(\d{2})", message)

        if ampm:
            groups = ampm.groups()
            marker, hour = (groups[0], int(groups[1])) if not groups[0].isdigit() else (groups[1], int(groups[0]))
            is_pm = marker.lower() in ("오후", "pm")
            if is_pm and hour < 12:
                hour += 12
            if not is_pm and hour == 12:
                hour = 0
            minute = int(korean_time.group(2)) if korean_time and korean_time.group(2) else 0
            result.time = f"{hour % 24:02d}:{minute:02d}"
            result.confidence += 0.4
        elif korean_time:
            hour = int(korean_time.group(1))
            minute = int(korean_time.group(2)) if korean_time.group(2) else 0
            result.time = f"{hour % 24:02d}:{min(minute, 59):02d}"
            result.confidence += 0.4
        elif standard:
            result.time = f"{int(standard.group(1)) % 24:02d}:{standard.group(2)}"
            result.confidence += 0.5

        return result


def _safe_date(year: int, month: int, day: int) -> Optional[date]:
    try:
        return date(year, month, day)
    except ValueError:
        return None


def _find_by_title(events: Sequence[CalendarEvent], name: str) -> Optional[CalendarEvent]:
    needle = name.strip().lower()
    if not needle:
        return None
    for event in events:
        if needle in (event.summary or "").lower():
            return event
    return None


def _filter_by_time(
    events: Sequence[CalendarEvent],
    time_filter: str,
    now: datetime,
    timezone: Optional[str],
) -> Optional[CalendarEvent]:
    if time_filter in ("today", "tomorrow"):
        target = now.date() + timedelta(days=1 if time_filter == "tomorrow" else 0)
        for event in events:
            start = event.start_datetime(timezone)
            if start and start.date() == target:
                return event
        return None

    future = [
        (start, event)
        for event in events
        for start in [event.start_datetime(timezone)]
        if start is not None and start > now
    ]
    if not future:
        return None
    future.sort(key=lambda pair: pair[0])
    return future[0][1]


# ---------------------------------------------------------------------------
# SINGLETON INSTANCE
# ---------------------------------------------------------------------------
event_context_service = EventContextService()
