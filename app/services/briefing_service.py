"""
Briefing Service - daily and per-event briefings written by Gemini.

Daily briefing: a short text over today's events with three sections
(📋 핵심, ⏰ 주요 일정, 💡 준비사항). Returns None when the model fails
so the caller can report an error.

Event briefing: structured preparation notes for one event (checklist,
travel tips, advice, departure time). Falls back to a plain summary
built from the event itself when the model fails.
"""

import json
import logging
import re
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional, Sequence

from app.ai.monitoring import ai_monitor
from app.ai.prompts.calendar_prompts import (
    build_daily_briefing_prompt,
    build_event_briefing_prompt,
)
from app.ai.prompts.helpers import format_datetime_for_user, localize
from app.ai.providers import gemini_provider
from app.core.timeutils import ensure_aware, now_in
from app.environments.google.calendar.schemas import CalendarEvent


logger = logging.getLogger("calendar_ai.services.briefing")

FREE_DAY_MESSAGE = {
    "ko": "오늘은 예정된 일정이 없습니다. 여유로운 하루를 보내세요!",
    "en": "You have no events scheduled today. Enjoy your free day!",
}

FALLBACK_SUMMARY = {
    "ko": "📅 {when}에 \"{title}\" 일정이 있습니다.",
    "en": "📅 \"{title}\" is scheduled for {when}.",
}

_HHMM_RE = re.compile(r"\b([01]?\d|2[0-3]):([0-5]\d)\b")


@dataclass
class EventBriefing:
    """Preparation notes for a single event."""
    event_id: str
    title: str
    summary: str
    checklist: List[str] = field(default_factory=list)
    travel_tips: List[str] = field(default_factory=list)
    advice: Optional[str] = None
    departure_time: Optional[str] = None  # "HH:MM"
    hours_until: int = 0
    generated: bool = True  # False when built without the model

    def to_dict(self) -> Dict[str, Any]:
        return {
            "event_id": self.event_id,
            "title": self.title,
            "summary": self.summary,
            "checklist": self.checklist,
            "travel_tips": self.travel_tips,
            "advice": self.advice,
            "departure_time": self.departure_time,
            "hours_until": self.hours_until,
            "generated": self.generated,
        }


def _string_list(value: Any) -> List[str]:
    if isinstance(value, str):
        return [value] if value.strip() else []
    if isinstance(value, list):
        return [str(v).strip() for v in value if v and str(v).strip()]
    return []


def _departure(value: Any) -> Optional[str]:
    if not value or not isinstance(value, str):
        return None
    match = _HHMM_RE.search(value)
    if not match:
        return None
    return f"{int(match.group(1)):02d}:{match.group(2)}"


class BriefingService:
    """Gemini-backed briefings."""

    def __init__(self, provider=None):
        self.provider = provider or gemini_provider

    async def generate_daily_briefing(
        self,
        events: Sequence[CalendarEvent],
        locale: str = "ko",
        now: Optional[datetime] = None,
        timezone: Optional[str] = None,
        request_id: str = "-",
    ) -> Optional[str]:
        """
        Summarize today's events.

        Returns:
            Briefing text; the free-day message when there are no events;
            None when the model call fails
        """
        if not events:
            return localize(locale, FREE_DAY_MESSAGE)

        prompt = build_daily_briefing_prompt(list(events), timezone, locale)
        response = await self.provider.generate(prompt=prompt, temperature=0.5, max_tokens=800)
        ai_monitor.track_response_from_ai_response(request_id, response, {"stage": "daily_briefing"})

        if not response.success or not response.content.strip():
            logger.warning(f"Daily briefing generation failed: {response.error}")
            ai_monitor.track_error(request_id, response.error or "empty briefing", "daily_briefing")
            return None

        return response.content.strip()

    async def generate_event_briefing(
        self,
        event: CalendarEvent,
        now: Optional[datetime] = None,
        locale: str = "ko",
        timezone: Optional[str] = None,
        request_id: str = "-",
    ) -> EventBriefing:
        """
        Build preparation notes for one event. Never raises.

        hours_until counts whole hours from now to the start (0 for
        events already under way).
        """
        now = ensure_aware(now, timezone) if now else now_in(timezone)
        start = event.start_datetime(timezone)
        hours_until = 0
        if start is not None:
            hours_until = max(int((start - now).total_seconds() // 3600), 0)

        prompt = build_event_briefing_prompt(
            summary=event.get_display_title(),
            start=start,
            location=event.location,
            description=event.description,
            attendees=event.attendee_emails(),
            hours_until=hours_until,
            locale=locale,
        )
        response = await self.provider.generate_json(prompt=prompt, temperature=0.4)
        ai_monitor.track_response_from_ai_response(request_id, response, {"stage": "event_briefing"})

        if response.success:
            try:
                data = json.loads(response.content)
                if not isinstance(data, dict):
                    raise ValueError("expected a JSON object")
                summary = str(data.get("summary") or "").strip()
                if summary:
                    return EventBriefing(
                        event_id=event.id,
                        title=event.get_display_title(),
                        summary=summary,
                        checklist=_string_list(data.get("checklist")),
                        travel_tips=_string_list(data.get("travel_tips")) if event.location else [],
                        advice=(str(data["advice"]).strip() or None) if data.get("advice") else None,
                        departure_time=_departure(data.get("departure_time")) if event.location else None,
                        hours_until=hours_until,
                    )
            except (json.JSONDecodeError, ValueError) as e:
                logger.warning(f"Unusable event briefing JSON: {e}")
        else:
            logger.warning(f"Event briefing generation failed: {response.error}")

        ai_monitor.track_error(request_id, response.error or "unusable briefing", "event_briefing")
        when = format_datetime_for_user(start, locale) if start else "-"
        return EventBriefing(
            event_id=event.id,
            title=event.get_display_title(),
            summary=localize(locale, FALLBACK_SUMMARY, when=when, title=event.get_display_title()),
            hours_until=hours_until,
            generated=False,
        )


# Singleton instance
briefing_service = BriefingService()
