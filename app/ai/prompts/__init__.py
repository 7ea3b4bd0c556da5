"""
Prompts Module - Centralized prompt templates for the calendar assistant.

Keeping prompts centralized makes them:
- Easy to update and iterate
- Consistent across classifier, extractor and briefing service
- Testable and version-controlled
"""

from app.ai.prompts.calendar_prompts import (
    build_conversation_prompt,
    build_daily_briefing_prompt,
    build_event_briefing_prompt,
    build_event_extraction_prompt,
    build_event_update_prompt,
    build_image_extraction_prompt,
    build_intent_prompt,
    CONVERSATION_SYSTEM_PROMPT,
)
from app.ai.prompts.helpers import (
    detect_user_language,
    format_events_for_prompt,
    localize,
    resolve_locale,
)

__all__ = [
    "build_conversation_prompt",
    "build_daily_briefing_prompt",
    "build_event_briefing_prompt",
    "build_event_extraction_prompt",
    "build_event_update_prompt",
    "build_image_extraction_prompt",
    "build_intent_prompt",
    "CONVERSATION_SYSTEM_PROMPT",
    "detect_user_language",
    "format_events_for_prompt",
    "localize",
    "resolve_locale",
]
