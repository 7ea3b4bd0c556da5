"""
Duplicate Checker - warns before the user adds an event they already have.

Scoring (0-100) compares a candidate event with an existing one:

    Title     40   exact (case-insensitive) 40, substring 30,
                   otherwise shared words / longer word count * 20
    Time      40   same start 40, < 1h 30, < 24h 20, < 1 week 10
    Location  20   exact 20, substring 10

A score at or above DUPLICATE_THRESHOLD (70) is a probable duplicate.
Same title and same time alone reach 80; same title a few hours apart
with the same place reaches 80 too; a different title at the same time
and place tops out around 60 and is allowed.

Wall-clock comparison: the candidate's date/time are local to its
timezone, so existing events are converted into that zone before the
difference is taken. All-day events count as starting at midnight.

Usage:
    from app.services.duplicate_checker import check_duplicate_event_with_cache

    result = check_duplicate_event_with_cache(candidate, events, session_id, timezone)
    if result.is_duplicate:
        warning = format_duplicate_warning(result, locale)
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional, Sequence

from app.ai.intent.schemas import ExtractedEvent
from app.core.config import settings
from app.environments.google.calendar.schemas import CalendarEvent
from app.services.recent_event_cache import RecentEventCache, recent_event_cache


logger = logging.getLogger("calendar_ai.services.duplicate_checker")


REASONS = {
    "same_title": {"ko": "같은 제목", "en": "same title"},
    "same_time": {"ko": "같은 시간", "en": "same time"},
    "close_time": {"ko": "비슷한 시간 (1시간 이내)", "en": "similar time (within 1 hour)"},
    "same_location": {"ko": "같은 장소", "en": "same location"},
}

WARNING_TEMPLATES = {
    "ko": '⚠️ 비슷한 일정이 이미 있습니다.\n"{summary}" ({reason})\n유사도: {similarity}%\n\n그래도 추가하시겠습니까?',
    "en": '⚠️ Similar event already exists.\n"{summary}" ({reason})\nSimilarity: {similarity}%\n\nDo you still want to add it?',
}


@dataclass
class DuplicateCheckResult:
    """Best match for a candidate event."""
    is_duplicate: bool
    similarity: int = 0
    similar_event: Optional[CalendarEvent] = None
    reason: str = ""
    from_cache: bool = False

    def to_dict(self, tz_name: Optional[str] = None) -> Dict[str, Any]:
        return {
            "is_duplicate": self.is_duplicate,
            "similarity": self.similarity,
            "similar_event": self.similar_event.to_summary_dict(tz_name) if self.similar_event else None,
            "reason": self.reason,
            "from_cache": self.from_cache,
        }


@dataclass
class DuplicateGroup:
    """Existing events that look like copies of each other."""
    events: List[CalendarEvent] = field(default_factory=list)
    similarity: int = 0

    def to_dict(self, tz_name: Optional[str] = None) -> Dict[str, Any]:
        return {
            "similarity": self.similarity,
            "event_ids": [e.id for e in self.events],
            "events": [e.to_summary_dict(tz_name) for e in self.events],
        }


# ---------------------------------------------------------------------------
# SCORING
# ---------------------------------------------------------------------------

def _title_score(title1: Optional[str], title2: Optional[str]) -> int:
    if not title1 or not title2:
        return 0
    t1 = title1.lower().strip()
    t2 = title2.lower().strip()
    if not t1 or not t2:
        return 0
    if t1 == t2:
        return 40
    if t1 in t2 or t2 in t1:
        return 30
    words1 = t1.split()
    words2 = t2.split()
    common = [w for w in words1 if w in words2]
    ratio = len(common) / max(len(words1), len(words2))
    # Round half up
    return int(ratio * 20 + 0.5)


def _hours_apart(start1: Optional[datetime], start2: Optional[datetime]) -> Optional[float]:
    if start1 is None or start2 is None:
        return None
    return abs((start1 - start2).total_seconds()) / 3600


def _time_score(hours: Optional[float]) -> int:
    if hours is None:
        return 0
    if hours == 0:
        return 40
    if hours < 1:
        return 30
    if hours < 24:
        return 20
    if hours < 168:
        return 10
    return 0


def _location_score(loc1: Optional[str], loc2: Optional[str]) -> int:
    if not loc1 or not loc2:
        return 0
    l1 = loc1.lower().strip()
    l2 = loc2.lower().strip()
    if not l1 or not l2:
        return 0
    if l1 == l2:
        return 20
    if l1 in l2 or l2 in l1:
        return 10
    return 0


def _local_start(event: CalendarEvent, tz_name: str) -> Optional[datetime]:
    start = event.start_datetime(tz_name)
    return start.replace(tzinfo=None) if start else None


def calculate_similarity(
    candidate: ExtractedEvent,
    existing: CalendarEvent,
    timezone: Optional[str] = None,
) -> int:
    """
    Score how likely `existing` is the same event as `candidate`.

    Args:
        candidate: The event about to be created
        existing: An event already in the calendar (or the recent cache)
        timezone: Zone of the candidate's wall-clock date/time

    Returns:
        0-100
    """
    tz_name = timezone or settings.DEFAULT_TIMEZONE
    hours = _hours_apart(candidate.start_local(), _local_start(existing, tz_name))
    return (
        _title_score(candidate.title, existing.summary)
        + _time_score(hours)
        + _location_score(candidate.location, existing.location)
    )


def _event_similarity(a: CalendarEvent, b: CalendarEvent, tz_name: str) -> int:
    hours = _hours_apart(_local_start(a, tz_name), _local_start(b, tz_name))
    return (
        _title_score(a.summary, b.summary)
        + _time_score(hours)
        + _location_score(a.location, b.location)
    )


def _build_reason(
    candidate: ExtractedEvent,
    existing: CalendarEvent,
    tz_name: str,
    locale: str,
) -> str:
    keys = []
    if existing.summary and candidate.title.lower().strip() == existing.summary.lower().strip():
        keys.append("same_title")

    hours = _hours_apart(candidate.start_local(), _local_start(existing, tz_name))
    if hours is not None:
        if hours == 0:
            keys.append("same_time")
        elif hours < 1:
            keys.append("close_time")

    if (
        candidate.location and existing.location
        and candidate.location.lower().strip() == existing.location.lower().strip()
    ):
        keys.append("same_location")

    lang = locale if locale in ("ko", "en") else "ko"
    return ", ".join(REASONS[k][lang] for k in keys)


# ---------------------------------------------------------------------------
# PUBLIC API
# ---------------------------------------------------------------------------

def check_duplicate_event(
    candidate: ExtractedEvent,
    existing_events: Sequence[CalendarEvent],
    threshold: Optional[int] = None,
    timezone: Optional[str] = None,
    locale: str = "ko",
) -> DuplicateCheckResult:
    """
    Find the single most similar existing event.

    The first event with the maximum score wins ties. The reason is only
    filled in when the score reaches the threshold.
    """
    threshold = settings.DUPLICATE_THRESHOLD if threshold is None else threshold
    tz_name = timezone or settings.DEFAULT_TIMEZONE

    best_score = 0
    best_event: Optional[CalendarEvent] = None
    for event in existing_events:
        score = calculate_similarity(candidate, event, tz_name)
        if score > best_score:
            best_score = score
            best_event = event

    is_duplicate = best_event is not None and best_score >= threshold
    reason = _build_reason(candidate, best_event, tz_name, locale) if is_duplicate else ""

    return DuplicateCheckResult(
        is_duplicate=is_duplicate,
        similarity=best_score,
        similar_event=best_event,
        reason=reason,
    )


def check_duplicate_event_with_cache(
    candidate: ExtractedEvent,
    existing_events: Sequence[CalendarEvent],
    session_id: str,
    timezone: Optional[str] = None,
    threshold: Optional[int] = None,
    locale: str = "ko",
    cache: Optional[RecentEventCache] = None,
) -> DuplicateCheckResult:
    """
    Like check_duplicate_event(), but also consider this session's
    recently created events.

    A duplicate among existing events is returned immediately. Otherwise
    the recent-cache result wins when its similarity is higher. Cache
    failures are logged and ignored.
    """
    result = check_duplicate_event(candidate, existing_events, threshold, timezone, locale)
    if result.is_duplicate:
        return result

    cache = cache or recent_event_cache
    try:
        recent = cache.get_recent_events(session_id)
        if recent:
            recent_result = check_duplicate_event(candidate, recent, threshold, timezone, locale)
            if recent_result.similarity > result.similarity:
                recent_result.from_cache = True
                return recent_result
    except Exception as e:
        logger.warning(f"Failed to check recent events cache: {e}")

    return result


def format_duplicate_warning(result: DuplicateCheckResult, locale: str = "ko") -> str:
    """User-facing warning text; empty when the result is not a duplicate."""
    if not result.is_duplicate or result.similar_event is None:
        return ""
    template = WARNING_TEMPLATES.get(locale, WARNING_TEMPLATES["ko"])
    return template.format(
        summary=result.similar_event.get_display_title(),
        reason=result.reason,
        similarity=result.similarity,
    )


def find_duplicate_groups(
    events: Sequence[CalendarEvent],
    threshold: Optional[int] = None,
    timezone: Optional[str] = None,
) -> List[DuplicateGroup]:
    """
    Group existing events that score at or above the threshold pairwise.

    Grouping is transitive: if A~B and B~C, all three form one group.
    Groups are returned in calendar order of their first event.
    """
    threshold = settings.DUPLICATE_THRESHOLD if threshold is None else threshold
    tz_name = timezone or settings.DEFAULT_TIMEZONE
    events = list(events)

    parent = list(range(len(events)))

    def find(i: int) -> int:
        while parent[i] != i:
            parent[i] = parent[parent[i]]
            i = parent[i]
        return i

    best: Dict[int, int] = {}
    for i in range(len(events)):
        for j in range(i + 1, len(events)):
            score = _event_similarity(events[i], events[j], tz_name)
            if score >= threshold:
                ri, rj = find(i), find(j)
                if ri != rj:
                    parent[rj] = ri
                root = find(i)
                best[root] = max(best.get(root, 0), best.pop(rj, 0) if rj != root else 0, score)

    members: Dict[int, List[int]] = {}
    for i in range(len(events)):
        members.setdefault(find(i), []).append(i)

    groups = []
    for root, indexes in sorted(members.items(), key=lambda item: item[1][0]):
        if len(indexes) < 2:
            continue
        groups.append(DuplicateGroup(
            events=[events[i] for i in indexes],
            similarity=best.get(root, threshold),
        ))
    return groups
