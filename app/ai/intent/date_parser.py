"""
Rule-based date/time understanding for Korean and English messages.

Two jobs live here:

parse_korean_datetime()
    Turns "내일 저녁 7시" into ("2025-01-02", "19:00"). Used as the
    fallback when the LLM extractor is unavailable, and as a sanity
    baseline for tests.

resolve_search_range()
    Turns "이번 주 일정 보여줘" into a (time_min, time_max) pair for the
    Calendar API. Search never asks the LLM for a range.

Hour heuristics (applied after a time is found, first rule wins):
    저녁        -> +12 when the hour is before noon
    아침        -> 12 becomes 0
    점심        -> 12:00 if no explicit time was given
    오후 / pm   -> +12 when the hour is before noon
    오전 / am   -> 12 becomes 0
    (none)      -> 1..7 are read as afternoon, unless 새벽 is present
"""

import re
from datetime import datetime, timedelta
from typing import Optional, Tuple

from app.core.config import settings
from app.core.timeutils import js_weekday, now_in, start_of_day


# Ordered; the first matching pattern wins
TIME_PATTERNS = [
    re.compile(r"(\d{1,2})\s*시\s*(\d{1,2})\s*분"),   # "2시 30분"
    re.compile(r"(\d{1,2})\s*시"),                    # "2시", "2시반"
    re.compile(r"(\d{1,2}):(\d{1,2})"),               # "14:30"
    re.compile(r"\b(\d{1,2})\s*(?:am|pm)\b", re.IGNORECASE),  # "3pm"
]

_PM_RE = re.compile(r"\bp\.?m\b|\d\s*pm\b", re.IGNORECASE)
_AM_RE = re.compile(r"\ba\.?m\b|\d\s*am\b", re.IGNORECASE)


def _day_offset(text: str) -> int:
    lowered = text.lower()
    if "day after tomorrow" in lowered or "모레" in text:
        return 2
    if "내일" in text or "tomorrow" in lowered:
        return 1
    if "다음주" in text or "다음 주" in text or "next week" in lowered:
        return 7
    return 0


def _find_time(text: str) -> Optional[Tuple[int, int]]:
    for pattern in TIME_PATTERNS:
        match = pattern.search(text)
        if match:
            hour = int(match.group(1))
            groups = match.groups()
            if len(groups) > 1 and groups[1] is not None:
                minute = int(groups[1])
            else:
                minute = 30 if "반" in text else 0
            return hour, minute
    return None


def _adjust_hour(text: str, hour: int, minute: int, explicit: bool) -> Tuple[int, int]:
    if "저녁" in text:
        if hour < 12:
            hour += 12
    elif "아침" in text:
        if hour == 12:
            hour = 0
    elif "점심" in text:
        if not explicit:
            hour, minute = 12, 0
    elif "오후" in text or _PM_RE.search(text):
        if hour < 12:
            hour += 12
    elif "오전" in text or _AM_RE.search(text):
        if hour == 12:
            hour = 0
    elif "새벽" not in text:
        # Without a qualifier, 1-7 o'clock means the afternoon
        if 1 <= hour <= 7:
            hour += 12
    return hour % 24, minute


def parse_korean_datetime(
    text: str,
    timezone: Optional[str] = None,
    now: Optional[datetime] = None,
) -> Tuple[str, str]:
    """
    Extract a (date, time) pair from free text.

    Args:
        text: The user's message, e.g. "내일 오후 2시 반 치과"
        timezone: IANA zone for "today"; defaults to DEFAULT_TIMEZONE
        now: Override for the current time (tests)

    Returns:
        ("YYYY-MM-DD", "HH:MM"); 09:00 today when nothing is recognized.
    """
    current = now or now_in(timezone or settings.DEFAULT_TIMEZONE)
    target = current + timedelta(days=_day_offset(text))

    found = _find_time(text)
    hour, minute = found if found else (9, 0)
    hour, minute = _adjust_hour(text, hour, minute, explicit=found is not None)
    minute = min(minute, 59)

    return target.strftime("%Y-%m-%d"), f"{hour:02d}:{minute:02d}"


def strip_datetime_words(text: str) -> str:
    """Remove date/time phrases, leaving something usable as a title."""
    cleaned = re.sub(
        r"(\d{1,2}\s*시\s*(\d{1,2}\s*분|반)?|\d{1,2}:\d{2}|\b\d{1,2}\s*(am|pm)\b)",
        " ",
        text,
        flags=re.IGNORECASE,
    )
    for word in (
        "오늘", "내일", "모레", "다음주", "다음 주", "오전", "오후", "저녁",
        "아침", "점심", "새벽", "today", "tomorrow", "next week",
        "추가해줘", "추가해 줘", "추가", "등록해줘", "등록", "만들어줘",
        "잡아줘", "일정", "add", "schedule", "create",
    ):
        pattern = rf"\b{re.escape(word)}\b" if word.isascii() else re.escape(word)
        cleaned = re.sub(pattern, " ", cleaned, flags=re.IGNORECASE)
    return re.sub(r"\s+", " ", cleaned).strip(" ,.!?")


# ---------------------------------------------------------------------------
# SEARCH RANGES
# ---------------------------------------------------------------------------

def resolve_search_range(
    message: str,
    now: datetime,
    default_days: Optional[int] = None,
) -> Tuple[datetime, datetime]:
    """
    Map a search request to a (time_min, time_max) window in now's zone.

    Precedence (first match wins):
        weekend / 주말   -> next Saturday 00:00 .. Sunday 23:59:59.999
        today / 오늘     -> today 00:00 .. 23:59:59.999
        tomorrow / 내일  -> tomorrow 00:00 .. 23:59:59.999
        this week / 이번 주 -> Sunday 00:00 .. Saturday 23:59:59.999
        next week / 다음 주 -> the following Sunday-start week
        otherwise        -> now .. now + SEARCH_DEFAULT_DAYS

    On a Saturday, "weekend" means the Saturday one week ahead.
    """
    lowered = message.lower()
    day_end = timedelta(days=1) - timedelta(milliseconds=1)

    if "weekend" in lowered or "주말" in message:
        days_until_saturday = (6 - js_weekday(now) + 7) % 7 or 7
        saturday = start_of_day(now) + timedelta(days=days_until_saturday)
        return saturday, saturday + timedelta(days=1) + day_end

    if "today" in lowered or "오늘" in message:
        start = start_of_day(now)
        return start, start + day_end

    if "tomorrow" in lowered or "내일" in message:
        start = start_of_day(now) + timedelta(days=1)
        return start, start + day_end

    week_start = start_of_day(now) - timedelta(days=js_weekday(now))

    if "this week" in lowered or "이번 주" in message or "이번주" in message:
        return week_start, week_start + timedelta(days=6) + day_end

    if "next week" in lowered or "다음 주" in message or "다음주" in message:
        start = week_start + timedelta(days=7)
        return start, start + timedelta(days=6) + day_end

    days = default_days if default_days is not None else settings.SEARCH_DEFAULT_DAYS
    return now, now + timedelta(days=days)
