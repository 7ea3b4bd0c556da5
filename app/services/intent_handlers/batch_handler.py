"""
Batch Handler - BATCH_OPERATION intents ("중복 일정 정리해줘").

Scans the next 30 days for groups of near-identical events and reports
them with their ids. Nothing is deleted here; the user removes copies
through the regular delete flow.
"""

import logging
from datetime import timedelta
from typing import List

from app.ai.intent.schemas import ClassifiedIntent, IntentType
from app.ai.prompts.helpers import localize
from app.services.duplicate_checker import find_duplicate_groups
from app.services.event_context_service import event_context_service
from app.services.intent_handlers.base import HandlerContext, IntentHandler
from app.services.intent_result import IntentResult, IntentResultType


logger = logging.getLogger("calendar_ai.services.intent_handlers.batch")

SCAN_DAYS = 30

MESSAGES = {
    "none": {
        "ko": "앞으로 30일 동안 중복된 일정이 없습니다.",
        "en": "No duplicate events found in the next 30 days.",
    },
    "header": {
        "ko": "중복으로 보이는 일정 {count}개 그룹을 찾았습니다:",
        "en": "Found {count} group(s) of possible duplicates:",
    },
    "line": {
        "ko": "{index}. {title} × {size} ({when})",
        "en": "{index}. {title} × {size} ({when})",
    },
    "hint": {
        "ko": "정리할 일정을 선택한 뒤 \"삭제\"라고 말씀해주세요.",
        "en": "Select the copies you want to remove and say \"delete\".",
    },
}


class BatchHandler(IntentHandler):
    """Handler for duplicate clean-up reports."""

    @property
    def handler_name(self) -> str:
        return "batch"

    @property
    def supported_intent_types(self) -> List[str]:
        return [IntentType.BATCH_OPERATION.value]

    async def _process(self, intent: ClassifiedIntent, context: HandlerContext) -> IntentResult:
        locale = context.locale
        tz_name = context.timezone
        now = context.user.current_time

        events = await context.calendar.list_events(
            time_min=now,
            time_max=now + timedelta(days=SCAN_DAYS),
        )
        groups = find_duplicate_groups(events, timezone=tz_name)

        if not groups:
            return IntentResult(
                success=True,
                result_type=IntentResultType.TEXT,
                action="find_duplicates",
                message=localize(locale, MESSAGES["none"]),
                data={"groups": [], "scanned": len(events)},
            )

        event_context = context.get_service("event_context", lambda: event_context_service)
        event_context.set_session_events(context.session_id, [e for g in groups for e in g.events])

        lines = [localize(locale, MESSAGES["header"], count=len(groups))]
        for index, group in enumerate(groups, 1):
            first = group.events[0]
            start = first.start_datetime(tz_name)
            lines.append(localize(
                locale,
                MESSAGES["line"],
                index=index,
                title=first.get_display_title(),
                size=len(group.events),
                when=start.strftime("%Y-%m-%d %H:%M") if start else "-",
            ))
        lines.append("")
        lines.append(localize(locale, MESSAGES["hint"]))

        logger.info(
            f"[{context.request_id}] Found {len(groups)} duplicate groups in {len(events)} events"
        )
        return IntentResult(
            success=True,
            result_type=IntentResultType.DATA,
            action="find_duplicates",
            message="\n".join(lines),
            data={"groups": [g.to_dict(tz_name) for g in groups], "scanned": len(events)},
        )
