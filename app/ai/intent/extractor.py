"""
Event Extractor - turns messages and images into event data.

Three extractions, all in Gemini JSON mode:

parse_event_from_text()
    "내일 저녁 7시 강남역에서 저녁 약속" -> ExtractedEvent. The rule-based
    parser supplies the default date/time shown to the model, and is the
    whole answer when the model is unavailable.

parse_event_from_image()
    A poster or screenshot -> ExtractedEvent, or None when the image
    holds no event.

extract_update()
    "3시로 옮겨줘" + the existing event -> EventUpdate with only the
    changed fields.
"""

import json
import logging
from datetime import datetime
from typing import Optional

from pydantic import ValidationError

from app.ai.intent.date_parser import parse_korean_datetime, strip_datetime_words
from app.ai.intent.schemas import EventUpdate, ExtractedEvent
from app.ai.monitoring import ai_monitor
from app.ai.prompts.calendar_prompts import (
    build_event_extraction_prompt,
    build_event_update_prompt,
    build_image_extraction_prompt,
)
from app.ai.providers import Attachment, gemini_provider
from app.core.timeutils import now_in
from app.environments.google.calendar.schemas import CalendarEvent

logger = logging.getLogger("calendar_ai.ai.extractor")


class EventExtractor:
    """Structured extraction of event data with rule-based fallbacks."""

    def __init__(self, provider=None):
        self.provider = provider or gemini_provider

    async def parse_event_from_text(
        self,
        message: str,
        timezone: str,
        now: Optional[datetime] = None,
        request_id: str = "-",
    ) -> ExtractedEvent:
        """
        Extract a new event from a chat message. Never raises.

        Missing fields are filled from the rule-based parse; a failed or
        unusable LLM answer yields the rule-based event outright.
        """
        now = now or now_in(timezone)
        default_date, default_time = parse_korean_datetime(message, timezone, now)
        fallback = self._fallback_event(message, default_date, default_time)

        prompt = build_event_extraction_prompt(message, now, timezone, default_date, default_time)
        response = await self.provider.generate_json(prompt=prompt)
        ai_monitor.track_response_from_ai_response(request_id, response, {"stage": "extract_event"})

        if not response.success:
            logger.warning(f"Event extraction failed, using rule-based parse: {response.error}")
            return fallback

        try:
            data = json.loads(response.content)
            if not isinstance(data, dict):
                raise ValueError("expected a JSON object")
            data.setdefault("date", default_date)
            data.setdefault("time", default_time)
            data["date"] = data.get("date") or default_date
            data["time"] = data.get("time") or default_time
            data["title"] = data.get("title") or fallback.title
            return ExtractedEvent(**data)
        except (ValueError, ValidationError) as e:
            logger.warning(f"Unusable extraction result, using rule-based parse: {e}")
            return fallback

    async def parse_event_from_image(
        self,
        image: bytes,
        mime_type: str,
        timezone: str,
        now: Optional[datetime] = None,
        request_id: str = "-",
    ) -> Optional[ExtractedEvent]:
        """Extract an event from an image; None when nothing usable is found."""
        now = now or now_in(timezone)
        prompt = build_image_extraction_prompt(now, timezone)

        response = await self.provider.generate_json(
            prompt=prompt,
            attachments=[Attachment(data=image, mime_type=mime_type)],
        )
        ai_monitor.track_response_from_ai_response(request_id, response, {"stage": "extract_image"})

        if not response.success:
            logger.warning(f"Image extraction failed: {response.error}")
            return None

        try:
            data = json.loads(response.content)
            if not isinstance(data, dict) or not data.get("title") or not data.get("date"):
                logger.info("No event found in image")
                return None
            return ExtractedEvent(**data)
        except (ValueError, ValidationError) as e:
            logger.warning(f"Unusable image extraction result: {e}")
            return None

    async def extract_update(
        self,
        message: str,
        event: CalendarEvent,
        timezone: str,
        now: Optional[datetime] = None,
        request_id: str = "-",
    ) -> EventUpdate:
        """Changed fields only; an empty EventUpdate when nothing is understood."""
        now = now or now_in(timezone)
        prompt = build_event_update_prompt(
            message=message,
            summary=event.get_display_title(),
            start=event.start_datetime(timezone),
            location=event.location,
            now=now,
        )

        response = await self.provider.generate_json(prompt=prompt)
        ai_monitor.track_response_from_ai_response(request_id, response, {"stage": "extract_update"})

        if not response.success:
            logger.warning(f"Update extraction failed: {response.error}")
            return EventUpdate()

        try:
            data = json.loads(response.content)
            if not isinstance(data, dict):
                raise ValueError("expected a JSON object")
            return EventUpdate(**data)
        except (ValueError, ValidationError) as e:
            logger.warning(f"Unusable update extraction result: {e}")
            return EventUpdate()

    def _fallback_event(self, message: str, date: str, time: str) -> ExtractedEvent:
        title = strip_datetime_words(message) or message.strip() or "새 일정"
        return ExtractedEvent(title=title, date=date, time=time, duration=60)


# Singleton instance
event_extractor = EventExtractor()
