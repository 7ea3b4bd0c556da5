"""
Intent Processing Service - the AI router behind POST /ai/chat.

This service keeps the conversation logic out of the HTTP layer,
following the Single Responsibility Principle.

Responsibilities:
=================
- Classify the message (or short-circuit confirmed creations)
- Pick the handler for the intent
- Record the turn in AIMonitor
- Return an IntentResult

NOT Responsible For:
====================
- HTTP request/response handling (router's job)
- Authentication/authorization (deps.py's job)
- Talking to Gemini or Google Calendar directly (handlers' job)

Architecture:
=============
```
┌─────────────┐
│   Router    │  ← HTTP only
└──────┬──────┘
       │
       ▼
┌─────────────┐
│   Service   │  ← classify + dispatch (this file)
└──────┬──────┘
       │
   ┌───┴────────┬──────────┬──────────────┐
   ▼            ▼          ▼              ▼
Calendar    Briefing     Batch      Conversation   ← handlers
```

Usage:
======
```python
from app.services.intent_service import intent_service

result = await intent_service.process_message(
    message="내일 오후 3시 팀 회의 추가해줘",
    context=user_context,
    access_token=google_token,
)
```
"""

import logging
import time
import uuid
from typing import Any, Dict, List, Optional

from app.ai.intent.classifier import intent_classifier
from app.ai.intent.schemas import ClassifiedIntent, IntentType, UserContext
from app.ai.monitoring import ai_monitor
from app.environments.base import APIError
from app.environments.google.calendar.client import GoogleCalendarClient
from app.services.intent_handlers import (
    BatchHandler,
    BriefingHandler,
    CalendarHandler,
    ConversationHandler,
    HandlerContext,
    IntentHandler,
)
from app.services.intent_result import IntentResult, IntentResultType


logger = logging.getLogger("calendar_ai.services.intent")


class IntentService:
    """
    Routes chat messages to intent handlers.

    Handlers are tried in order; the first whose can_handle() accepts the
    intent wins, and ConversationHandler takes anything left over.
    """

    def __init__(self, classifier=None, handlers: Optional[List[IntentHandler]] = None):
        self.classifier = classifier or intent_classifier
        self.fallback_handler = ConversationHandler()
        self.handlers: List[IntentHandler] = handlers or [
            CalendarHandler(),
            BriefingHandler(),
            BatchHandler(),
            self.fallback_handler,
        ]
        logger.info("Intent service initialized")

    # -----------------------------------------------------------------------
    # MAIN ENTRY POINT
    # -----------------------------------------------------------------------

    async def process_message(
        self,
        message: str,
        context: UserContext,
        access_token: Optional[str] = None,
        selected_event_id: Optional[str] = None,
        pending_event_data: Optional[Dict[str, Any]] = None,
        force_create: bool = False,
        calendar: Any = None,
        service_overrides: Optional[Dict[str, Any]] = None,
    ) -> IntentResult:
        """
        Process one chat message.

        Args:
            message: The user's message
            context: Session id, local time, timezone and locale
            access_token: Google OAuth token used to build the calendar client
            selected_event_id: Event selected in the UI
            pending_event_data: Event the user confirmed after a duplicate
                warning; always handled as CREATE_EVENT
            force_create: Skip the duplicate check
            calendar: Prebuilt calendar client (tests)
            service_overrides: Handler service overrides (tests)

        Returns:
            IntentResult; never raises for handler failures
        """
        request_id = uuid.uuid4().hex[:8]
        start_time = time.time()

        if calendar is None:
            if not access_token:
                raise ValueError("access_token or calendar is required")
            calendar = GoogleCalendarClient(access_token)

        if not context.recent_events:
            context.recent_events = await self._load_upcoming(calendar, request_id)

        logger.info(
            f"[{request_id}] Processing message: {message[:50]}...",
            extra={"session_id": context.session_id, "has_pending": bool(pending_event_data)},
        )

        if pending_event_data:
            intent = ClassifiedIntent(
                type=IntentType.CREATE_EVENT,
                confidence=1.0,
                parameters={"from_pending": True},
                original_text=message,
            )
        else:
            intent = await self.classifier.classify(
                message, context, selected_event_id=selected_event_id, request_id=request_id
            )

        ai_monitor.track_intent(
            request_id=request_id,
            original_text=message,
            intent_type=intent.type.value,
            confidence=intent.confidence,
            processing_time_ms=(time.time() - start_time) * 1000,
            selected_event_id=selected_event_id,
        )

        handler_context = HandlerContext(
            user=context,
            request_id=request_id,
            calendar=calendar,
            start_time=start_time,
            original_text=message,
            selected_event_id=selected_event_id,
            pending_event_data=pending_event_data,
            force_create=force_create,
            _service_overrides=service_overrides or {},
        )

        handler = self._select_handler(intent, handler_context)
        result = await handler.handle(intent, handler_context)

        if result.result_type == IntentResultType.ERROR:
            ai_monitor.track_error(request_id, result.message, stage=handler.handler_name)

        ai_monitor.track_event(request_id, "intent_processed", {
            "intent_type": intent.type.value,
            "handler": handler.handler_name,
            "result_type": result.result_type.value,
            "success": result.success,
            "processing_time_ms": round(result.processing_time_ms, 2),
        })
        return result

    # -----------------------------------------------------------------------
    # HELPERS
    # -----------------------------------------------------------------------

    def _select_handler(self, intent: ClassifiedIntent, context: HandlerContext) -> IntentHandler:
        for handler in self.handlers:
            if handler.can_handle(intent, context):
                return handler
        return self.fallback_handler

    async def _load_upcoming(self, calendar: Any, request_id: str) -> list:
        """Upcoming events for classifier context; empty when the calendar fails."""
        try:
            return await calendar.list_upcoming_events(max_results=10)
        except APIError as e:
            logger.warning(f"[{request_id}] Could not load upcoming events: {e}")
            return []


# ---------------------------------------------------------------------------
# SINGLETON INSTANCE
# ---------------------------------------------------------------------------
intent_service = IntentService()
