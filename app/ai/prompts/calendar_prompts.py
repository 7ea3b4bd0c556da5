"""
Calendar Assistant Prompts - every LLM prompt the assistant sends.

Prompts are module-level templates filled with str.format() by the
build_*_prompt() helpers below. Literal JSON braces are doubled.

Prompts:
- INTENT_CLASSIFICATION_PROMPT: message -> one of seven intents
- EVENT_EXTRACTION_PROMPT: message -> new event fields
- IMAGE_EXTRACTION_PROMPT: poster/screenshot -> new event fields
- EVENT_UPDATE_PROMPT: message + existing event -> changed fields only
- DAILY_BRIEFING_PROMPT: today's events -> short briefing
- EVENT_BRIEFING_PROMPT: one event -> preparation notes (JSON)
- CONVERSATION_SYSTEM_PROMPT: small talk that nudges toward calendar features
"""

from datetime import datetime
from typing import List, Optional

from app.ai.prompts.helpers import format_datetime_for_user, format_events_for_prompt


# ---------------------------------------------------------------------------
# INTENT CLASSIFICATION
# ---------------------------------------------------------------------------

INTENT_CLASSIFICATION_PROMPT = """Analyze the user message and classify the intent. Support both English and Korean.
현재 시간 / Current time: {current_time} ({timezone})
최근 일정 / Recent events: {recent_events}
{selection_note}
메시지 / Message: "{message}"

Response in JSON format:
{{
  "type": "CREATE_EVENT|SEARCH_EVENTS|GET_BRIEFING|UPDATE_EVENT|DELETE_EVENT|BATCH_OPERATION|CONVERSATION",
  "confidence": 0.0-1.0,
  "parameters": {{}}
}}

Examples:
- "내일 2시 미팅" / "Meeting tomorrow at 2pm" → CREATE_EVENT
- "이번 주 일정 보여줘" / "Show me this week's schedule" → SEARCH_EVENTS
- "show me this weekend's schedule" → SEARCH_EVENTS
- "오늘 브리핑" / "Today's briefing" → GET_BRIEFING
- "미팅 시간 변경" / "Change meeting time" → UPDATE_EVENT
- "이 일정 삭제해줘" / "Delete this event" → DELETE_EVENT
- "중복 일정 정리" / "Clean up duplicate events" → BATCH_OPERATION
- "안녕" / "Thanks!" → CONVERSATION

Put anything useful you notice (dates, titles, places) into "parameters"."""

SELECTION_NOTE = "선택된 일정이 있음 / Event selected (likely update/delete intent)\n"


def build_intent_prompt(
    message: str,
    current_time: datetime,
    timezone: str,
    recent_titles: List[str],
    has_selection: bool = False,
) -> str:
    return INTENT_CLASSIFICATION_PROMPT.format(
        current_time=current_time.strftime("%Y-%m-%d %H:%M (%A)"),
        timezone=timezone,
        recent_events=", ".join(recent_titles[:3]) or "-",
        selection_note=SELECTION_NOTE if has_selection else "",
        message=message,
    )


# ---------------------------------------------------------------------------
# EVENT EXTRACTION
# ---------------------------------------------------------------------------

EVENT_EXTRACTION_PROMPT = """다음 텍스트에서 일정 정보를 추출해주세요.
현재 날짜 / Today: {today} ({weekday}), timezone {timezone}

JSON 형식으로 반환하되, 다음 필드를 포함해주세요:
- title: 일정 제목 (구체적이고 명확하게, 날짜/시간 표현은 제외)
- date: 날짜 (YYYY-MM-DD, 기본값: {default_date})
- time: 시간 (HH:MM 24시간제, 기본값: {default_time})
- duration: 소요 시간 (분 단위, 기본값: 60)
- location: 장소 (optional)
- description: 설명 (optional)
- attendees: 참석자 이메일 배열 (optional, 이메일 주소가 있을 때만)

텍스트: {text}

JSON만 반환하고 다른 설명은 포함하지 마세요."""


def build_event_extraction_prompt(
    text: str,
    now: datetime,
    timezone: str,
    default_date: str,
    default_time: str,
) -> str:
    return EVENT_EXTRACTION_PROMPT.format(
        today=now.strftime("%Y-%m-%d"),
        weekday=now.strftime("%A"),
        timezone=timezone,
        default_date=default_date,
        default_time=default_time,
        text=text,
    )


IMAGE_EXTRACTION_PROMPT = """이 이미지에서 일정 정보를 추출해주세요.
현재 날짜 / Today: {today}, timezone {timezone}

JSON 형식으로 반환하되, 다음 필드를 포함해주세요:
- title: 일정 제목
- date: 날짜 (YYYY-MM-DD)
- time: 시간 (HH:MM 24시간제)
- duration: 소요 시간 (분 단위, 기본값: 60)
- location: 장소 (optional)
- description: 설명 (optional)

이미지에 일정 정보가 없으면 {{"title": null}} 을 반환하세요.
JSON만 반환하고 다른 설명은 포함하지 마세요."""


def build_image_extraction_prompt(now: datetime, timezone: str) -> str:
    return IMAGE_EXTRACTION_PROMPT.format(today=now.strftime("%Y-%m-%d"), timezone=timezone)


# ---------------------------------------------------------------------------
# EVENT UPDATE
# ---------------------------------------------------------------------------

EVENT_UPDATE_PROMPT = """사용자가 일정을 수정하려고 합니다.
현재 날짜 / Today: {today}
현재 일정: {summary}
시작: {start}
장소: {location}

사용자 메시지: "{message}"

다음 JSON 형식으로 변경사항만 추출해주세요:
{{
  "summary": "새 제목 (변경시)",
  "newDate": "YYYY-MM-DD (날짜 변경시)",
  "newTime": "HH:MM (시간 변경시)",
  "location": "새 장소 (장소 변경시)",
  "description": "새 설명 (설명 변경시)"
}}
변경하지 않는 필드는 포함하지 마세요."""


def build_event_update_prompt(
    message: str,
    summary: str,
    start: Optional[datetime],
    location: Optional[str],
    now: datetime,
) -> str:
    return EVENT_UPDATE_PROMPT.format(
        today=now.strftime("%Y-%m-%d"),
        summary=summary,
        start=start.strftime("%Y-%m-%d %H:%M") if start else "-",
        location=location or "없음",
        message=message,
    )


# ---------------------------------------------------------------------------
# BRIEFINGS
# ---------------------------------------------------------------------------

DAILY_BRIEFING_PROMPT = {
    "ko": """다음은 오늘의 일정입니다. 간결하고 실용적인 브리핑을 작성해주세요.

일정 목록:
{events}

다음 형식으로 작성:
📋 오늘의 핵심: (한 문장 요약)
⏰ 주요 일정: (시간순으로 간단히)
💡 준비사항: (필요한 것들)""",
    "en": """Here is today's schedule. Write a short, practical briefing.

Events:
{events}

Use this format:
📋 Today's focus: (one-sentence summary)
⏰ Key events: (brief, in time order)
💡 Preparation: (what to get ready)""",
}


def build_daily_briefing_prompt(events: list, tz_name: str, locale: str) -> str:
    template = DAILY_BRIEFING_PROMPT.get(locale, DAILY_BRIEFING_PROMPT["ko"])
    return template.format(events=format_events_for_prompt(events, tz_name, locale))


EVENT_BRIEFING_PROMPT = """다음 일정에 대한 실용적인 브리핑을 작성해주세요.
Write the values in {language}.

제목: {summary}
시간: {when}
장소: {location}
설명: {description}
참석자: {attendees}
남은 시간: 약 {hours_until}시간

Return JSON:
{{
  "summary": "📅 일정 요약 (한 문장)",
  "checklist": ["✅ 준비사항 (구체적으로)"],
  "travel_tips": ["🚗 이동 관련 팁 (장소가 있을 때만)"],
  "advice": "💡 유용한 조언",
  "departure_time": "⏰ 추천 출발 시간 (HH:MM, 장소가 없으면 null)"
}}"""


def build_event_briefing_prompt(
    summary: str,
    start: Optional[datetime],
    location: Optional[str],
    description: Optional[str],
    attendees: List[str],
    hours_until: int,
    locale: str,
) -> str:
    return EVENT_BRIEFING_PROMPT.format(
        language="Korean" if locale == "ko" else "English",
        summary=summary,
        when=format_datetime_for_user(start, locale) if start else "-",
        location=location or "미정",
        description=description or "없음",
        attendees=", ".join(attendees) or "없음",
        hours_until=hours_until,
    )


# ---------------------------------------------------------------------------
# CONVERSATION
# ---------------------------------------------------------------------------

CONVERSATION_SYSTEM_PROMPT = """You are a friendly and helpful AI calendar assistant. Support both English and Korean.
Respond naturally to the user's message, and suggest calendar-related features when appropriate
(adding events, searching the schedule, daily briefings, cleaning up duplicates).
Respond naturally and concisely in the same language as the user's message."""

CONVERSATION_PROMPT = """Current time: {current_time}
Upcoming events:
{events}

User message: "{message}\""""


def build_conversation_prompt(message: str, now: datetime, events: list, tz_name: str, locale: str) -> str:
    return CONVERSATION_PROMPT.format(
        current_time=now.strftime("%Y-%m-%d %H:%M"),
        events=format_events_for_prompt(events[:5], tz_name, locale),
        message=message,
    )
