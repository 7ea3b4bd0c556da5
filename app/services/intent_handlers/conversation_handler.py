"""
Conversation Handler - Handles CONVERSATION intents.

Greetings, thanks and general questions get a friendly bilingual reply
from Gemini, which nudges the user toward calendar features. The reply
is then passed through AIContextManager.enhance_response() and comes
with smart follow-up suggestions.

Design Pattern: Strategy Pattern - implements IntentHandler ABC
"""

import logging
from typing import List

from app.ai.intent.schemas import ClassifiedIntent, IntentType
from app.ai.prompts.calendar_prompts import CONVERSATION_SYSTEM_PROMPT, build_conversation_prompt
from app.ai.prompts.helpers import localize
from app.ai.monitoring import ai_monitor
from app.ai.providers import gemini_provider
from app.services.ai_context_manager import ai_context_manager
from app.services.intent_handlers.base import HandlerContext, IntentHandler
from app.services.intent_result import IntentResult, IntentResultType


logger = logging.getLogger("calendar_ai.services.intent_handlers.conversation")

FALLBACK_REPLY = {
    "ko": "죄송합니다, 다시 한 번 말씀해 주시겠어요?",
    "en": "Sorry, could you please say that again?",
}


class ConversationHandler(IntentHandler):
    """
    Handler for conversational intents.

    Features:
    - Responds in the user's language
    - Mentions an event starting within the next two hours
    - Suggests what to do next
    """

    @property
    def handler_name(self) -> str:
        return "conversation"

    @property
    def supported_intent_types(self) -> List[str]:
        return [IntentType.CONVERSATION.value]

    async def _process(self, intent: ClassifiedIntent, context: HandlerContext) -> IntentResult:
        locale = context.locale
        tz_name = context.timezone
        now = context.user.current_time
        upcoming = list(context.user.recent_events)

        provider = context.get_service("provider", lambda: gemini_provider)
        response = await provider.generate(
            prompt=build_conversation_prompt(context.original_text, now, upcoming, tz_name, locale),
            system_prompt=CONVERSATION_SYSTEM_PROMPT,
            temperature=0.7,
            max_tokens=512,
        )
        ai_monitor.track_response_from_ai_response(
            context.request_id, response, {"stage": "conversation"}
        )

        ai_context = context.get_service("ai_context", lambda: ai_context_manager)
        suggestions = ai_context.generate_smart_suggestions(context.session_id, now, upcoming, locale)

        if not response.success or not response.content.strip():
            logger.warning(f"[{context.request_id}] Conversation reply failed: {response.error}")
            return IntentResult(
                success=False,
                result_type=IntentResultType.TEXT,
                message=localize(locale, FALLBACK_REPLY),
                suggestions=suggestions,
            )

        reply = ai_context.enhance_response(
            response.content.strip(),
            context.session_id,
            upcoming,
            now,
            locale=locale,
            timezone=tz_name,
        )

        return IntentResult(
            success=True,
            result_type=IntentResultType.TEXT,
            message=reply,
            suggestions=suggestions,
        )
