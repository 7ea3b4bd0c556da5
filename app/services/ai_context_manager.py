"""
AI Context Manager - per-session memory that makes replies smarter.

Tracks, for each chat session:
- ConversationContext: what was last mentioned (date, person, place),
  the last created event and any pending clarification
- UserPreferences: working hours and meeting defaults
- UserPattern: habits learned from the user's calendar

and uses that state to resolve vague time expressions ("그때", "내일
오후"), find free slots, suggest next actions and append helpful notes
to assistant replies.

Sessions expire after CONTEXT_TTL_HOURS of inactivity.

Usage:
    from app.services.ai_context_manager import ai_context_manager

    ai_context_manager.update_context(session_id, last_mentioned_date=start)
    when = ai_context_manager.resolve_time_expression("그때", session_id, now)
"""

import logging
import re
from collections import Counter
from dataclasses import dataclass, field, fields
from datetime import datetime, timedelta, timezone as tz
from typing import Any, Dict, List, Optional, Sequence

from app.core.config import settings
from app.core.timeutils import ensure_aware, js_weekday
from app.environments.google.calendar.schemas import CalendarEvent


logger = logging.getLogger("calendar_ai.services.ai_context")


@dataclass
class ConversationContext:
    """What the conversation has referred to so far."""
    last_mentioned_date: Optional[datetime] = None
    last_mentioned_person: Optional[str] = None
    last_mentioned_location: Optional[str] = None
    last_event_created: Optional[CalendarEvent] = None
    pending_clarification: Optional[Dict[str, Any]] = None  # {"type": "date", "options": [...]}


@dataclass
class UserPreferences:
    work_start_hour: int = 9
    work_end_hour: int = 18
    lunch_start_hour: int = 12
    lunch_end_hour: int = 13
    preferred_meeting_duration: int = 60
    buffer_minutes: int = 10


@dataclass
class UserPattern:
    """Habits learned from past events."""
    common_meeting_times: List[str] = field(default_factory=list)
    frequent_locations: List[str] = field(default_factory=list)
    regular_attendees: List[str] = field(default_factory=list)
    average_meeting_duration: float = 60
    preferred_days: List[int] = field(default_factory=list)  # 0=Sunday

    def to_dict(self) -> Dict[str, Any]:
        return {
            "common_meeting_times": self.common_meeting_times,
            "frequent_locations": self.frequent_locations,
            "regular_attendees": self.regular_attendees,
            "average_meeting_duration": self.average_meeting_duration,
            "preferred_days": self.preferred_days,
        }


@dataclass
class _SessionState:
    context: ConversationContext = field(default_factory=ConversationContext)
    preferences: UserPreferences = field(default_factory=UserPreferences)
    pattern: Optional[UserPattern] = None
    touched_at: datetime = field(default_factory=lambda: datetime.now(tz.utc))


# ---------------------------------------------------------------------------
# EXPRESSION TABLES
# ---------------------------------------------------------------------------

TIME_OF_DAY_HOURS = {
    "아침": 9,
    "오전": 10,
    "점심": 12,
    "오후": 14,
    "저녁": 18,
    "밤": 20,
}

RECURRENCE_PATTERNS = [
    (re.compile(r"격주|every other week|biweekly", re.IGNORECASE), "biweekly"),
    (re.compile(r"평일|weekdays|every weekday", re.IGNORECASE), "weekdays"),
    (re.compile(r"매일|every day|daily", re.IGNORECASE), "daily"),
    (re.compile(r"매주|every week|weekly", re.IGNORECASE), "weekly"),
    (re.compile(r"매월|매달|every month|monthly", re.IGNORECASE), "monthly"),
]

SAME_TIME_RE = re.compile(r"그때|같은 시간|same time|that time", re.IGNORECASE)

MEETING_WORDS_RE = re.compile(r"미팅|회의|meeting", re.IGNORECASE)

SUGGESTIONS = {
    "early": {"ko": ["오늘 일정 브리핑 받기", "오전 일정 확인"],
              "en": ["Get today's briefing", "Check this morning's schedule"]},
    "morning": {"ko": ["점심 약속 잡기", "오후 일정 확인"],
                "en": ["Schedule a lunch", "Check this afternoon's schedule"]},
    "afternoon": {"ko": ["내일 일정 준비", "퇴근 후 일정 추가"],
                  "en": ["Prepare for tomorrow", "Add an after-work plan"]},
    "evening": {"ko": ["내일 일정 확인", "이번 주 일정 요약"],
                "en": ["Check tomorrow's schedule", "Summarize this week"]},
    "location": {"ko": "{location}에서 미팅", "en": "Meeting at {location}"},
    "meeting_today": {"ko": "오늘 미팅 일정 추가", "en": "Add a meeting today"},
    "plan_week": {"ko": "이번 주 계획 세우기", "en": "Plan this week"},
    "busy": {"ko": "바쁜 일정 정리하기", "en": "Tidy up a busy schedule"},
}

NEXT_EVENT_NOTE = {
    "ko": '\n\n⏰ 참고로 {hours}시간 후에 "{summary}" 일정이 있습니다.',
    "en": '\n\n⏰ Heads up: "{summary}" starts in {hours} hour(s).',
}

MEETING_DURATION_TIP = {
    "ko": "\n💡 평소 미팅은 약 {minutes}분 정도 진행하시네요.",
    "en": "\n💡 Your meetings usually run about {minutes} minutes.",
}


def _lang(locale: str) -> str:
    return locale if locale in ("ko", "en") else "ko"


def _at(value: datetime, days: int, hour: int) -> datetime:
    return (value + timedelta(days=days)).replace(hour=hour, minute=0, second=0, microsecond=0)


def _contains(expression: str, korean: Sequence[str], english: Sequence[str]) -> bool:
    if any(word in expression for word in korean):
        return True
    lowered = expression.lower()
    return any(re.search(rf"\b{re.escape(word)}\b", lowered) for word in english)


class AIContextManager:
    """
    Session-keyed conversation context, preferences and learned patterns.

    All times handed in should be aware datetimes in the user's zone;
    naive values are taken as DEFAULT_TIMEZONE.
    """

    def __init__(self, ttl_hours: Optional[int] = None):
        self.ttl = timedelta(hours=ttl_hours or settings.CONTEXT_TTL_HOURS)
        self._sessions: Dict[str, _SessionState] = {}

    # -------------------------------------------------------------------------
    # STATE
    # -------------------------------------------------------------------------

    def _get_state(self, session_id: str, create: bool = True) -> Optional[_SessionState]:
        session_id = str(session_id)
        state = self._sessions.get(session_id)
        now = datetime.now(tz.utc)
        if state and now - state.touched_at > self.ttl:
            logger.debug(f"Context expired for session {session_id}")
            del self._sessions[session_id]
            state = None
        if state is None:
            if not create:
                return None
            state = _SessionState()
            self._sessions[session_id] = state
        state.touched_at = now
        return state

    def get_context(self, session_id: str) -> Optional[ConversationContext]:
        state = self._get_state(session_id, create=False)
        return state.context if state else None

    def update_context(self, session_id: str, **updates: Any) -> ConversationContext:
        """
        Merge fields into the session's ConversationContext.

        Raises:
            ValueError: If a field name is unknown
        """
        known = {f.name for f in fields(ConversationContext)}
        unknown = set(updates) - known
        if unknown:
            raise ValueError(f"Unknown context fields: {', '.join(sorted(unknown))}")

        context = self._get_state(session_id).context
        for name, value in updates.items():
            setattr(context, name, value)
        return context

    def get_preferences(self, session_id: str) -> UserPreferences:
        return self._get_state(session_id).preferences

    def set_preferences(self, session_id: str, **updates: Any) -> UserPreferences:
        preferences = self._get_state(session_id).preferences
        for name, value in updates.items():
            if not hasattr(preferences, name):
                raise ValueError(f"Unknown preference: {name}")
            setattr(preferences, name, value)
        return preferences

    def get_pattern(self, session_id: str) -> Optional[UserPattern]:
        state = self._get_state(session_id, create=False)
        return state.pattern if state else None

    def clear_session(self, session_id: str) -> None:
        self._sessions.pop(str(session_id), None)

    def cleanup_expired(self) -> int:
        now = datetime.now(tz.utc)
        expired = [sid for sid, s in self._sessions.items() if now - s.touched_at > self.ttl]
        for session_id in expired:
            del self._sessions[session_id]
        if expired:
            logger.info(f"Cleaned up {len(expired)} expired AI contexts")
        return len(expired)

    def clear_all(self) -> None:
        """Clear all sessions (for testing/reset)."""
        self._sessions.clear()

    # -------------------------------------------------------------------------
    # TIME EXPRESSIONS
    # -------------------------------------------------------------------------

    def resolve_time_expression(
        self,
        expression: str,
        session_id: str,
        now: datetime,
    ) -> Optional[datetime]:
        """
        Turn a vague time expression into a concrete datetime.

        Relative expressions (checked in order, first match wins):
            지금 / now              -> now
            곧 / soon               -> now + 30 minutes
            조금 있다가 / later     -> now + 1 hour
            오늘 / today            -> today 14:00
            내일 / tomorrow         -> tomorrow 10:00
            모레                    -> in two days, 10:00
            이번 주 / this week     -> Friday 14:00
            다음 주 / next week     -> next Monday 10:00
            주말 / weekend          -> Saturday 10:00

        For day-level expressions a time-of-day word replaces the default
        hour (아침 9, 오전 10, 점심 12, 오후 14, 저녁 18, 밤 20).
        "그때" / "같은 시간" returns the last mentioned date.

        Returns:
            datetime in now's zone, or None if nothing was recognized
        """
        now = ensure_aware(now)
        weekday = now.weekday()  # Monday=0

        instant: List[tuple] = [
            (("지금",), ("now",), lambda: now),
            (("곧",), ("soon",), lambda: now + timedelta(minutes=30)),
            (("조금 있다가",), ("later",), lambda: now + timedelta(hours=1)),
        ]
        day_level: List[tuple] = [
            (("오늘",), ("today",), 0, 14),
            (("모레",), ("day after tomorrow",), 2, 10),
            (("내일",), ("tomorrow",), 1, 10),
            (("이번 주", "이번주"), ("this week",), (4 - weekday) % 7, 14),
            (("다음 주", "다음주"), ("next week",), 7 - weekday, 10),
            (("주말",), ("weekend",), (5 - weekday) % 7, 10),
        ]

        for korean, english, resolver in instant:
            if _contains(expression, korean, english):
                return resolver()

        for korean, english, days, hour in day_level:
            if _contains(expression, korean, english):
                return _at(now, days, self._time_of_day_hour(expression, hour))

        if SAME_TIME_RE.search(expression):
            context = self.get_context(session_id)
            return context.last_mentioned_date if context else None

        return None

    @staticmethod
    def _time_of_day_hour(expression: str, default: int) -> int:
        for word, hour in TIME_OF_DAY_HOURS.items():
            if word in expression:
                return hour
        return default

    @staticmethod
    def detect_recurrence(expression: str) -> Optional[str]:
        """daily / weekly / biweekly / monthly / weekdays, or None."""
        for pattern, kind in RECURRENCE_PATTERNS:
            if pattern.search(expression):
                return kind
        return None

    # -------------------------------------------------------------------------
    # SCHEDULING
    # -------------------------------------------------------------------------

    @staticmethod
    def detect_conflicts(
        start: datetime,
        end: datetime,
        events: Sequence[CalendarEvent],
        timezone: Optional[str] = None,
    ) -> List[CalendarEvent]:
        """Events overlapping [start, end)."""
        start = ensure_aware(start, timezone)
        end = ensure_aware(end, timezone)
        conflicts = []
        for event in events:
            event_start = event.start_datetime(timezone)
            event_end = event.end_datetime(timezone)
            if event_start is None or event_end is None:
                continue
            if start < event_end and end > event_start:
                conflicts.append(event)
        return conflicts

    def suggest_optimal_time(
        self,
        duration_minutes: int,
        events: Sequence[CalendarEvent],
        session_id: str,
        now: datetime,
        limit: int = 3,
    ) -> List[datetime]:
        """
        Find up to `limit` free slots in the next 7 days.

        Slots start on the hour or half hour, lie entirely inside working
        hours and never start in the past.
        """
        now = ensure_aware(now)
        preferences = self.get_preferences(session_id)
        duration = timedelta(minutes=duration_minutes)
        suggestions: List[datetime] = []

        for day in range(7):
            day_start = _at(now, day, preferences.work_start_hour)
            work_end = _at(now, day, preferences.work_end_hour)
            slot = day_start
            while slot + duration <= work_end:
                if slot >= now and not self.detect_conflicts(slot, slot + duration, events):
                    suggestions.append(slot)
                    if len(suggestions) >= limit:
                        return suggestions
                slot += timedelta(minutes=30)

        return suggestions

    # -------------------------------------------------------------------------
    # PATTERNS AND SUGGESTIONS
    # -------------------------------------------------------------------------

    def learn_user_pattern(
        self,
        session_id: str,
        events: Sequence[CalendarEvent],
        timezone: Optional[str] = None,
    ) -> UserPattern:
        times: List[str] = []
        locations: List[str] = []
        attendees: List[str] = []
        durations: List[int] = []
        days: List[int] = []

        for event in events:
            start = event.start_datetime(timezone)
            if start is None:
                continue
            times.append(start.strftime("%H:%M"))
            days.append(js_weekday(start))
            if event.location:
                locations.append(event.location)
            attendees.extend(event.attendee_emails())
            durations.append(event.duration_minutes())

        pattern = UserPattern(
            common_meeting_times=_most_frequent(times, 3),
            frequent_locations=_most_frequent(locations, 5),
            regular_attendees=_most_frequent(attendees, 10),
            average_meeting_duration=(sum(durations) / len(durations)) if durations else 60,
            preferred_days=_most_frequent(days, 3),
        )
        self._get_state(session_id).pattern = pattern
        logger.info(
            f"Learned pattern for session {session_id} from {len(events)} events",
            extra={"session_id": str(session_id)},
        )
        return pattern

    def generate_smart_suggestions(
        self,
        session_id: str,
        now: datetime,
        upcoming_events: Sequence[CalendarEvent],
        locale: str = "ko",
    ) -> List[str]:
        """Up to five follow-up prompts for the user."""
        lang = _lang(locale)
        hour = now.hour
        if hour < 9:
            bucket = "early"
        elif hour < 12:
            bucket = "morning"
        elif hour < 18:
            bucket = "afternoon"
        else:
            bucket = "evening"
        suggestions = list(SUGGESTIONS[bucket][lang])

        pattern = self.get_pattern(session_id)
        if pattern:
            if pattern.frequent_locations:
                suggestions.append(
                    SUGGESTIONS["location"][lang].format(location=pattern.frequent_locations[0])
                )
            if js_weekday(now) in pattern.preferred_days:
                suggestions.append(SUGGESTIONS["meeting_today"][lang])

        if not upcoming_events:
            suggestions.append(SUGGESTIONS["plan_week"][lang])
        elif len(upcoming_events) > 5:
            suggestions.append(SUGGESTIONS["busy"][lang])

        return suggestions[:5]

    def enhance_response(
        self,
        response: str,
        session_id: str,
        events: Optional[Sequence[CalendarEvent]],
        now: datetime,
        locale: str = "ko",
        timezone: Optional[str] = None,
    ) -> str:
        """
        Append context notes to an assistant reply.

        - A heads-up when the next event starts in one to two hours
        - The usual meeting length when the reply talks about meetings
        """
        lang = _lang(locale)
        enhanced = response

        if events:
            next_event = events[0]
            start = next_event.start_datetime(timezone)
            if start is not None:
                seconds = (start - ensure_aware(now, timezone)).total_seconds()
                hours_until = int(seconds // 3600)
                if 0 < hours_until < 2:
                    enhanced += NEXT_EVENT_NOTE[lang].format(
                        hours=hours_until, summary=next_event.get_display_title()
                    )

        pattern = self.get_pattern(session_id)
        if pattern and pattern.average_meeting_duration and MEETING_WORDS_RE.search(response):
            enhanced += MEETING_DURATION_TIP[lang].format(
                minutes=int(pattern.average_meeting_duration + 0.5)
            )

        return enhanced


def _most_frequent(items: List, limit: int) -> List:
    # Counter keeps first-seen order among equal counts
    return [item for item, _ in Counter(items).most_common(limit)]


# ---------------------------------------------------------------------------
# SINGLETON INSTANCE
# ---------------------------------------------------------------------------
ai_context_manager = AIContextManager()
