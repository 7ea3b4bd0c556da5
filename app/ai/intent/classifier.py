"""
Intent Classifier - maps a chat message to one of seven intents.

This is the first step of every chat turn. It uses Gemini in JSON mode:

1. Build a prompt with the user's local time, up to three recent event
   titles and, when the UI has an event selected, a hint that the user
   probably wants to update or delete it
2. Ask for {"type", "confidence", "parameters"}
3. Validate the answer into a ClassifiedIntent

The classifier never raises. Any provider failure, malformed JSON or
unexpected shape yields CONVERSATION with confidence 0.5, so the user
always gets a reply.
"""

import json
import logging
import time
from typing import Optional

from app.ai.intent.schemas import ClassifiedIntent, IntentType, UserContext
from app.ai.monitoring import ai_monitor
from app.ai.prompts.calendar_prompts import build_intent_prompt
from app.ai.providers import gemini_provider

logger = logging.getLogger("calendar_ai.ai.intent")


class IntentClassifier:
    """
    Classifies free text into an IntentType.

    Usage:
        classifier = IntentClassifier()
        intent = await classifier.classify("내일 2시 미팅", context)
        if intent.type == IntentType.CREATE_EVENT:
            ...
    """

    def __init__(self, provider=None):
        self.provider = provider or gemini_provider

    async def classify(
        self,
        message: str,
        context: UserContext,
        selected_event_id: Optional[str] = None,
        request_id: str = "-",
    ) -> ClassifiedIntent:
        start_time = time.time()

        prompt = build_intent_prompt(
            message=message,
            current_time=context.current_time,
            timezone=context.timezone,
            recent_titles=[e.get_display_title() for e in context.recent_events[:3]],
            has_selection=bool(selected_event_id),
        )

        response = await self.provider.generate_json(prompt=prompt, temperature=0.1)
        ai_monitor.track_response_from_ai_response(request_id, response, {"stage": "classify"})

        if not response.success:
            logger.warning(f"Intent classification failed: {response.error}")
            return ClassifiedIntent.fallback(message)

        try:
            data = json.loads(response.content)
            if not isinstance(data, dict):
                raise ValueError(f"expected an object, got {type(data).__name__}")
            intent = self._to_intent(data, message)
        except (ValueError, TypeError) as e:
            logger.warning(f"Unparseable intent response: {e}")
            return ClassifiedIntent.fallback(message)

        processing_time = (time.time() - start_time) * 1000
        logger.info(
            f"Classified intent in {processing_time:.0f}ms: {intent.type.value}",
            extra={"confidence": intent.confidence, "has_selection": bool(selected_event_id)},
        )
        return intent

    def _to_intent(self, data: dict, original_text: str) -> ClassifiedIntent:
        try:
            confidence = float(data.get("confidence", 0.5))
        except (TypeError, ValueError):
            confidence = 0.5
        confidence = min(max(confidence, 0.0), 1.0)

        parameters = data.get("parameters")
        if not isinstance(parameters, dict):
            parameters = {}

        return ClassifiedIntent(
            type=IntentType.from_llm(data.get("type")),
            confidence=confidence,
            parameters=parameters,
            original_text=original_text,
        )


# Singleton instance
intent_classifier = IntentClassifier()
