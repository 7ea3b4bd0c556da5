"""
Briefing Handler - GET_BRIEFING intents ("오늘 브리핑 해줘").

Fetches today's events in the user's zone and asks BriefingService for
a short summary. A day without events gets a fixed message and no LLM
call.
"""

import logging
from typing import List

from app.ai.intent.schemas import ClassifiedIntent, IntentType
from app.ai.prompts.helpers import localize
from app.core.timeutils import day_bounds
from app.services.briefing_service import FREE_DAY_MESSAGE, briefing_service
from app.services.intent_handlers.base import HandlerContext, IntentHandler
from app.services.intent_result import IntentResult, IntentResultType


logger = logging.getLogger("calendar_ai.services.intent_handlers.briefing")

BRIEFING_FAILED = {
    "ko": "브리핑을 생성하지 못했습니다. 잠시 후 다시 시도해주세요.",
    "en": "I couldn't generate your briefing. Please try again shortly.",
}


class BriefingHandler(IntentHandler):
    """Handler for daily briefings."""

    @property
    def handler_name(self) -> str:
        return "briefing"

    @property
    def supported_intent_types(self) -> List[str]:
        return [IntentType.GET_BRIEFING.value]

    async def _process(self, intent: ClassifiedIntent, context: HandlerContext) -> IntentResult:
        locale = context.locale
        tz_name = context.timezone
        now = context.user.current_time

        start, end = day_bounds(now.date(), tz_name)
        events = await context.calendar.list_events(time_min=start, time_max=end)

        if not events:
            return IntentResult(
                success=True,
                result_type=IntentResultType.TEXT,
                action="daily_briefing",
                message=localize(locale, FREE_DAY_MESSAGE),
                data={"events": []},
            )

        service = context.get_service("briefing", lambda: briefing_service)
        briefing = await service.generate_daily_briefing(
            events, locale=locale, now=now, timezone=tz_name, request_id=context.request_id
        )
        if briefing is None:
            return IntentResult(
                success=False,
                result_type=IntentResultType.ERROR,
                action="daily_briefing",
                message=localize(locale, BRIEFING_FAILED),
            )

        logger.info(f"[{context.request_id}] Daily briefing over {len(events)} events")
        return IntentResult(
            success=True,
            result_type=IntentResultType.TEXT,
            action="daily_briefing",
            message=briefing,
            data={"events": [e.to_summary_dict(tz_name) for e in events]},
        )
