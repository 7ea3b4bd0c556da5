"""
Shared Prompt Helpers

Reusable functions for prompt construction and reply localization, so
every prompt formats events and dates the same way.

Functions:
- detect_user_language(): "ko" when the text contains Hangul, else "en"
- resolve_locale(): explicit preference, else detection, else default
- localize(): pick the ko/en variant of a message
- format_events_for_prompt(): numbered event list for LLM prompts
- format_datetime_for_user(): "1월 15일 (수) 14:00" / "Wed, Jan 15 14:00"
"""

import re
from datetime import datetime
from typing import Dict, Iterable, Optional

from app.core.config import settings

SUPPORTED_LANGUAGES = ("ko", "en")

_HANGUL_RE = re.compile(r"[가-힣ㄱ-ㆎ]")

_KO_WEEKDAYS = ["월", "화", "수", "목", "금", "토", "일"]


def detect_user_language(text: str) -> str:
    """
    Detect whether the user wrote in Korean or English.

    Any Hangul syllable or jamo makes the message Korean; mixed messages
    such as "내일 standup 추가" are Korean too.

    Returns:
        "ko" or "en"
    """
    if not text:
        return "en"
    return "ko" if _HANGUL_RE.search(text) else "en"


def resolve_locale(preferred: Optional[str], text: str = "") -> str:
    """An explicit supported locale wins; otherwise detect from the message."""
    if preferred in SUPPORTED_LANGUAGES:
        return preferred
    if text:
        return detect_user_language(text)
    return settings.DEFAULT_LOCALE if settings.DEFAULT_LOCALE in SUPPORTED_LANGUAGES else "ko"


def localize(locale: str, messages: Dict[str, str], **values) -> str:
    """
    Pick the message for locale (falling back to Korean) and format it.

        localize("en", {"ko": "{n}개", "en": "{n} items"}, n=3)  # "3 items"
    """
    template = messages.get(locale) or messages["ko"]
    return template.format(**values) if values else template


def format_datetime_for_user(value: datetime, locale: str) -> str:
    if locale == "ko":
        return (
            f"{value.month}월 {value.day}일 ({_KO_WEEKDAYS[value.weekday()]}) "
            f"{value.strftime('%H:%M')}"
        )
    return value.strftime("%a, %b %d %H:%M")


def format_events_for_prompt(
    events: Iterable,
    tz_name: Optional[str] = None,
    locale: str = "ko",
) -> str:
    """
    Format calendar events as a numbered list for the LLM prompt.

    Args:
        events: CalendarEvent objects
        tz_name: Zone the times are shown in
        locale: Language of the placeholder labels

    Returns:
        Lines like "1. 팀 회의 - 1월 15일 (수) 14:00 @ 회의실 A"
    """
    lines = []
    for i, event in enumerate(events, 1):
        start = event.start_datetime(tz_name)
        if event.is_all_day():
            when = f"{start.strftime('%Y-%m-%d')} ({event.get_time_display(tz_name, locale)})"
        elif start:
            when = format_datetime_for_user(start, locale)
        else:
            when = "?"
        line = f"{i}. {event.get_display_title()} - {when}"
        if event.location:
            line += f" @ {event.location}"
        lines.append(line)

    if not lines:
        return "(일정 없음)" if locale == "ko" else "(No events)"
    return "\n".join(lines)
