"""
Calendar Handler - Handles intents that read or change single events.

This handler is responsible for:
- CREATE_EVENT: extract, check for duplicates, insert
- SEARCH_EVENTS: resolve a date range, list events
- UPDATE_EVENT: resolve the target event, extract changes, PATCH
- DELETE_EVENT: resolve the target event, confirm, delete

Flows:
- CREATE: message -> ExtractedEvent -> duplicate check
          -> CONFIRMATION (pending_action with force_create) or ACTION
- DELETE: target -> no confirmation keyword -> CONFIRMATION
          target -> confirmation keyword    -> ACTION

Design Pattern: Strategy Pattern - implements IntentHandler ABC
"""

import logging
import re
from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional

from pydantic import ValidationError

from app.ai.intent.date_parser import resolve_search_range
from app.ai.intent.extractor import event_extractor
from app.ai.intent.schemas import ClassifiedIntent, EventUpdate, ExtractedEvent, IntentType
from app.ai.monitoring import ai_monitor
from app.ai.prompts.helpers import format_events_for_prompt, localize
from app.core.config import settings
from app.core.timeutils import ensure_aware
from app.environments.google.calendar.schemas import WALL_CLOCK_FORMAT, CalendarEvent
from app.services.ai_context_manager import ai_context_manager
from app.services.duplicate_checker import (
    check_duplicate_event_with_cache,
    format_duplicate_warning,
)
from app.services.event_context_service import event_context_service
from app.services.intent_handlers.base import HandlerContext, IntentHandler
from app.services.intent_result import IntentResult, IntentResultType
from app.services.recent_event_cache import recent_event_cache


logger = logging.getLogger("calendar_ai.services.intent_handlers.calendar")

# Window searched for possible duplicates around a new event
DUPLICATE_WINDOW = timedelta(days=7)

DELETE_CONFIRM_RE = re.compile(r"삭제|지워|취소|\bdelete\b|\bremove\b|\bcancel\b", re.IGNORECASE)

MESSAGES = {
    "created": {
        "ko": '"{title}" 일정이 {date} {time}에 추가되었습니다.',
        "en": '"{title}" has been added on {date} at {time}.',
    },
    "invalid_pending": {
        "ko": "확인할 일정 정보가 올바르지 않습니다. 다시 말씀해 주세요.",
        "en": "The event to confirm is incomplete. Please describe it again.",
    },
    "found": {
        "ko": "{count}개의 일정을 찾았습니다:",
        "en": "Found {count} event(s):",
    },
    "none_found": {
        "ko": "해당 기간에 일정이 없습니다.",
        "en": "No events found for the specified period.",
    },
    "select_update": {
        "ko": "수정할 일정을 먼저 선택해주세요. 캘린더에서 일정을 클릭하거나 일정 이름을 말씀해주세요.",
        "en": "Please select the event to update first. Click it in your calendar or tell me its name.",
    },
    "select_delete": {
        "ko": "삭제할 일정을 먼저 선택해주세요. 캘린더에서 일정을 클릭하거나 일정 이름을 말씀해주세요.",
        "en": "Please select the event to delete first. Click it in your calendar or tell me its name.",
    },
    "not_found": {
        "ko": "선택한 일정을 찾을 수 없습니다. 이미 삭제되었을 수 있습니다.",
        "en": "I couldn't find that event. It may have been deleted already.",
    },
    "no_changes": {
        "ko": '어떤 내용을 변경할지 알려주세요. 예: "3시로 옮겨줘", "장소를 강남역으로 바꿔줘"',
        "en": 'Tell me what to change, e.g. "move it to 3pm" or "change the place to the main office".',
    },
    "updated": {
        "ko": '"{title}" 일정을 수정했습니다. ({changes})',
        "en": '"{title}" has been updated. ({changes})',
    },
    "confirm_delete": {
        "ko": '"{title}" 일정을 삭제할까요?',
        "en": 'Delete "{title}"?',
    },
    "deleted": {
        "ko": '"{title}" 일정이 삭제되었습니다.',
        "en": '"{title}" has been deleted.',
    },
}

CHANGE_LABELS = {
    "summary": {"ko": "제목", "en": "title"},
    "new_date": {"ko": "날짜", "en": "date"},
    "new_time": {"ko": "시간", "en": "time"},
    "location": {"ko": "장소", "en": "location"},
    "description": {"ko": "설명", "en": "description"},
}


class CalendarHandler(IntentHandler):
    """
    Handler for single-event calendar intents.

    Handles:
    - CREATE_EVENT with duplicate confirmation
    - SEARCH_EVENTS
    - UPDATE_EVENT / DELETE_EVENT on a selected or referenced event
    """

    @property
    def handler_name(self) -> str:
        return "calendar"

    @property
    def supported_intent_types(self) -> List[str]:
        return [
            IntentType.CREATE_EVENT.value,
            IntentType.SEARCH_EVENTS.value,
            IntentType.UPDATE_EVENT.value,
            IntentType.DELETE_EVENT.value,
        ]

    async def _process(self, intent: ClassifiedIntent, context: HandlerContext) -> IntentResult:
        if intent.type == IntentType.CREATE_EVENT:
            return await self._handle_create(context)
        if intent.type == IntentType.SEARCH_EVENTS:
            return await self._handle_search(context)
        if intent.type == IntentType.UPDATE_EVENT:
            return await self._handle_update(context)
        return await self._handle_delete(context)

    # -----------------------------------------------------------------------
    # CREATE
    # -----------------------------------------------------------------------

    async def _handle_create(self, context: HandlerContext) -> IntentResult:
        """
        Create an event, asking first when it looks like a duplicate.

        pending_event_data (sent back after a duplicate warning) is used
        as-is; otherwise the event is extracted from the message.
        """
        locale = context.locale
        tz_name = context.timezone
        pending = context.pending_event_data
        force_create = context.force_create

        if pending:
            try:
                event = ExtractedEvent.model_validate(pending)
            except ValidationError as e:
                logger.warning(f"[{context.request_id}] Invalid pending event data: {e}")
                return IntentResult(
                    success=False,
                    result_type=IntentResultType.CLARIFICATION,
                    message=localize(locale, MESSAGES["invalid_pending"]),
                )
            force_create = force_create or bool(pending.get("force_create"))
        else:
            extractor = context.get_service("extractor", lambda: event_extractor)
            event = await extractor.parse_event_from_text(
                context.original_text,
                tz_name,
                now=context.user.current_time,
                request_id=context.request_id,
            )

        if not force_create:
            result = await self._check_duplicates(event, context)
            if result is not None:
                return result

        created = await context.calendar.create_event(event.to_create_request(tz_name))

        cache = context.get_service("recent_cache", lambda: recent_event_cache)
        cache.add_event(context.session_id, event, tz_name, event_id=created.id)

        ai_context = context.get_service("ai_context", lambda: ai_context_manager)
        ai_context.update_context(
            context.session_id,
            last_mentioned_date=ensure_aware(event.start_local(), tz_name),
            last_mentioned_location=event.location,
            last_event_created=created,
        )
        event_context = context.get_service("event_context", lambda: event_context_service)
        event_context.record_event_action(context.session_id, "create", created)

        return IntentResult(
            success=True,
            result_type=IntentResultType.ACTION,
            action="create_event",
            message=localize(
                locale, MESSAGES["created"], title=event.title, date=event.date, time=event.time
            ),
            data={"event": created.to_summary_dict(tz_name)},
        )

    async def _check_duplicates(
        self,
        event: ExtractedEvent,
        context: HandlerContext,
    ) -> Optional[IntentResult]:
        """CONFIRMATION result when the event looks like a duplicate, else None."""
        tz_name = context.timezone
        start = ensure_aware(event.start_local(), tz_name)
        existing = await context.calendar.list_events(
            time_min=start - DUPLICATE_WINDOW,
            time_max=start + DUPLICATE_WINDOW,
        )

        cache = context.get_service("recent_cache", lambda: recent_event_cache)
        result = check_duplicate_event_with_cache(
            event,
            existing,
            context.session_id,
            timezone=tz_name,
            locale=context.locale,
            cache=cache,
        )
        if not result.is_duplicate:
            return None

        ai_monitor.track_duplicate_warning(
            context.request_id,
            similarity=result.similarity,
            similar_event_id=result.similar_event.id if result.similar_event else None,
            from_cache=result.from_cache,
        )

        event_data = event.model_dump()
        return IntentResult(
            success=True,
            result_type=IntentResultType.CONFIRMATION,
            action="create_event",
            message=format_duplicate_warning(result, context.locale),
            requires_confirmation=True,
            pending_action={
                "action": "create_event",
                "data": {**event_data, "force_create": True},
            },
            data={"event": event_data, "duplicate": result.to_dict(tz_name)},
        )

    # -----------------------------------------------------------------------
    # SEARCH
    # -----------------------------------------------------------------------

    async def _handle_search(self, context: HandlerContext) -> IntentResult:
        locale = context.locale
        tz_name = context.timezone
        time_min, time_max = resolve_search_range(context.original_text, context.user.current_time)

        events = await context.calendar.list_events(
            time_min=time_min,
            time_max=time_max,
            max_results=settings.SEARCH_MAX_RESULTS,
        )

        event_context = context.get_service("event_context", lambda: event_context_service)
        event_context.set_session_events(context.session_id, events)

        if events:
            message = (
                localize(locale, MESSAGES["found"], count=len(events))
                + "\n"
                + format_events_for_prompt(events, tz_name, locale)
            )
        else:
            message = localize(locale, MESSAGES["none_found"])

        return IntentResult(
            success=True,
            result_type=IntentResultType.DATA,
            action="search_events",
            message=message,
            data={
                "events": [e.to_summary_dict(tz_name) for e in events],
                "time_min": time_min.isoformat(),
                "time_max": time_max.isoformat(),
            },
        )

    # -----------------------------------------------------------------------
    # TARGET RESOLUTION
    # -----------------------------------------------------------------------

    async def _resolve_target(self, context: HandlerContext) -> tuple:
        """
        Find the event an update/delete applies to.

        Returns:
            (event or None, attempted) where attempted is False when the
            user neither selected nor referenced an event
        """
        if context.selected_event_id:
            event = await context.calendar.get_event(context.selected_event_id)
            return event, True

        event_context = context.get_service("event_context", lambda: event_context_service)
        candidates: Dict[str, CalendarEvent] = {}
        for event in event_context.get_session_events(context.session_id) + list(context.user.recent_events):
            candidates.setdefault(event.id, event)

        reference = event_context.detect_event_reference(
            context.original_text,
            context.session_id,
            list(candidates.values()),
            now=context.user.current_time,
            timezone=context.timezone,
        )
        if not reference.found:
            return None, False

        logger.info(
            f"[{context.request_id}] Resolved {reference.reference_type} event reference",
            extra={"event_id": reference.event.id, "reference_confidence": reference.confidence},
        )
        # Re-read so the update works on current data
        event = await context.calendar.get_event(reference.event.id)
        return event, True

    def _missing_target(self, context: HandlerContext, attempted: bool, key: str) -> IntentResult:
        return IntentResult(
            success=False,
            result_type=IntentResultType.CLARIFICATION,
            message=localize(context.locale, MESSAGES["not_found" if attempted else key]),
        )

    # -----------------------------------------------------------------------
    # UPDATE
    # -----------------------------------------------------------------------

    async def _handle_update(self, context: HandlerContext) -> IntentResult:
        locale = context.locale
        tz_name = context.timezone

        event, attempted = await self._resolve_target(context)
        if event is None:
            return self._missing_target(context, attempted, "select_update")

        extractor = context.get_service("extractor", lambda: event_extractor)
        update: EventUpdate = await extractor.extract_update(
            context.original_text,
            event,
            tz_name,
            now=context.user.current_time,
            request_id=context.request_id,
        )
        if not update.has_changes():
            return IntentResult(
                success=False,
                result_type=IntentResultType.CLARIFICATION,
                message=localize(locale, MESSAGES["no_changes"]),
                data={"event": event.to_summary_dict(tz_name)},
            )

        patch = build_update_patch(event, update, tz_name)
        updated = await context.calendar.update_event(event.id, patch)

        event_context = context.get_service("event_context", lambda: event_context_service)
        event_context.record_event_action(context.session_id, "update", updated)
        new_start = updated.start_datetime(tz_name)
        if new_start:
            ai_context = context.get_service("ai_context", lambda: ai_context_manager)
            ai_context.update_context(context.session_id, last_mentioned_date=new_start)

        changed = update.model_dump(exclude_none=True)
        lang = locale if locale in ("ko", "en") else "ko"
        labels = ", ".join(CHANGE_LABELS[name][lang] for name in changed)

        return IntentResult(
            success=True,
            result_type=IntentResultType.ACTION,
            action="update_event",
            message=localize(locale, MESSAGES["updated"], title=updated.get_display_title(), changes=labels),
            data={"event": updated.to_summary_dict(tz_name), "changes": changed},
        )

    # -----------------------------------------------------------------------
    # DELETE
    # -----------------------------------------------------------------------

    async def _handle_delete(self, context: HandlerContext) -> IntentResult:
        locale = context.locale
        tz_name = context.timezone

        event, attempted = await self._resolve_target(context)
        if event is None:
            return self._missing_target(context, attempted, "select_delete")

        title = event.get_display_title()
        if not DELETE_CONFIRM_RE.search(context.original_text):
            return IntentResult(
                success=True,
                result_type=IntentResultType.CONFIRMATION,
                action="delete_event",
                message=localize(locale, MESSAGES["confirm_delete"], title=title),
                requires_confirmation=True,
                pending_action={
                    "action": "delete_event",
                    "event_id": event.id,
                    "message": "삭제" if locale == "ko" else "delete",
                },
                data={"event": event.to_summary_dict(tz_name)},
            )

        await context.calendar.delete_event(event.id)

        event_context = context.get_service("event_context", lambda: event_context_service)
        event_context.record_event_action(context.session_id, "delete", event)

        return IntentResult(
            success=True,
            result_type=IntentResultType.ACTION,
            action="delete_event",
            message=localize(locale, MESSAGES["deleted"], title=title),
            data={"event_id": event.id},
        )


def build_update_patch(event: CalendarEvent, update: EventUpdate, tz_name: str) -> Dict[str, Any]:
    """
    Google events.patch body for an EventUpdate.

    Rescheduling keeps the original duration. An all-day event moved to
    another date stays all-day; giving it a time turns it into a one-hour
    timed event.
    """
    patch: Dict[str, Any] = {}
    if update.summary:
        patch["summary"] = update.summary
    if update.location:
        patch["location"] = update.location
    if update.description:
        patch["description"] = update.description

    if not update.reschedules():
        return patch

    start = event.start_datetime(tz_name)
    if event.is_all_day() and not update.new_time:
        day = datetime.strptime(update.new_date, "%Y-%m-%d").date()
        span = max(event.duration_minutes() // (24 * 60), 1)
        patch["start"] = {"date": day.isoformat()}
        patch["end"] = {"date": (day + timedelta(days=span)).isoformat()}
        return patch

    duration = 60 if event.is_all_day() else event.duration_minutes()
    new_date = update.new_date or (start.strftime("%Y-%m-%d") if start else None)
    new_time = update.new_time or (start.strftime("%H:%M") if start else "09:00")
    new_start = datetime.strptime(f"{new_date} {new_time}", "%Y-%m-%d %H:%M")
    new_end = new_start + timedelta(minutes=duration)

    patch["start"] = {"dateTime": new_start.strftime(WALL_CLOCK_FORMAT), "timeZone": tz_name}
    patch["end"] = {"dateTime": new_end.strftime(WALL_CLOCK_FORMAT), "timeZone": tz_name}
    if event.is_all_day():
        # Clear the all-day date so Google accepts the switch to a timed event
        patch["start"]["date"] = None
        patch["end"]["date"] = None
    return patch
