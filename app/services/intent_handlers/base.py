"""
Base Intent Handler - Abstract interface for all intent handlers.

This module defines the contract that all intent handlers must follow.
It ensures consistent behavior regardless of which handler processes
the intent.

Design Pattern: Strategy Pattern
================================
The base class defines the interface, and each handler implements it.
This allows IntentService to route to handlers without code changes.

Example:
    handler = ConversationHandler()
    if handler.can_handle(intent, context):
        result = await handler.handle(intent, context)

Reference:
    This follows the same ABC pattern as app/ai/providers/base.py
"""

import logging
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from app.ai.intent.schemas import ClassifiedIntent, UserContext
from app.ai.prompts.helpers import localize
from app.environments.base import APIError, AuthenticationError, ScopeNotGrantedError
from app.services.intent_result import IntentResult, IntentResultType

logger = logging.getLogger("calendar_ai.services.intent_handlers")


ERROR_MESSAGES = {
    "auth": {
        "ko": "Google 캘린더 인증이 만료되었습니다. 다시 로그인해주세요.",
        "en": "Your Google Calendar session has expired. Please sign in again.",
    },
    "calendar": {
        "ko": "캘린더 요청 중 오류가 발생했습니다. 잠시 후 다시 시도해주세요.",
        "en": "Something went wrong talking to Google Calendar. Please try again shortly.",
    },
    "unexpected": {
        "ko": "요청을 처리하는 중 오류가 발생했습니다.",
        "en": "An error occurred while processing your request.",
    },
}


@dataclass
class HandlerContext:
    """
    Context shared between all handlers.

    This dataclass encapsulates everything needed to process an intent.
    It provides a clean separation between the orchestrator
    (IntentService) and the handlers.

    Attributes:
        user: Session id, local time, timezone, locale and recent events
        request_id: Unique identifier for this request (for logging/tracing)
        calendar: GoogleCalendarClient bound to the user's access token
        start_time: Request start time for latency tracking
        original_text: The user's message
        selected_event_id: Event currently selected in the UI, if any
        pending_event_data: Event confirmed by the user after a duplicate warning
        force_create: Skip the duplicate check

    Usage:
        context = HandlerContext(
            user=user_context,
            request_id=str(uuid4()),
            calendar=GoogleCalendarClient(access_token),
            start_time=time.time(),
            original_text=message,
        )

        result = await handler.handle(intent, context)
    """

    # Required fields
    user: UserContext
    request_id: str
    calendar: Any  # GoogleCalendarClient
    start_time: float

    original_text: str = ""
    selected_event_id: Optional[str] = None
    pending_event_data: Optional[Dict[str, Any]] = None
    force_create: bool = False

    # Optional service overrides (for testing)
    _service_overrides: Dict[str, Any] = field(default_factory=dict)

    @property
    def session_id(self) -> str:
        return self.user.session_id

    @property
    def timezone(self) -> str:
        return self.user.timezone

    @property
    def locale(self) -> str:
        return self.user.locale

    def elapsed_ms(self) -> float:
        return (time.time() - self.start_time) * 1000

    def get_service(self, name: str, default_factory: Any = None) -> Any:
        """
        Get a service with optional override for testing.

        This method allows handlers to be tested in isolation by
        injecting mock services.

        Args:
            name: Service identifier (e.g., 'extractor')
            default_factory: Callable that returns the default service

        Returns:
            The service instance (mock or real)

        Raises:
            ValueError: If service not found and no default provided
        """
        if name in self._service_overrides:
            return self._service_overrides[name]
        if default_factory is not None:
            return default_factory()
        raise ValueError(f"Service '{name}' not found and no default provided")


class IntentHandler(ABC):
    """
    Abstract base class for intent handlers.

    Responsibilities:
    - Determine if it can handle a given intent (can_handle)
    - Process the intent and return a result (handle)
    - Provide metadata about supported intents

    NOT Responsible For:
    - Classifying messages (IntentClassifier's job)
    - Routing between handlers (IntentService's job)
    - HTTP request/response handling (router's job)

    Subclasses implement _process(); handle() wraps it with logging and
    turns calendar and unexpected errors into ERROR results.
    """

    @property
    @abstractmethod
    def handler_name(self) -> str:
        """
        Unique identifier for this handler.

        Used for logging, monitoring, and debugging.
        """
        pass

    @property
    @abstractmethod
    def supported_intent_types(self) -> List[str]:
        """IntentType values this handler can process."""
        pass

    def can_handle(self, intent: ClassifiedIntent, context: HandlerContext) -> bool:
        return intent.type.value in self.supported_intent_types

    @abstractmethod
    async def _process(
        self,
        intent: ClassifiedIntent,
        context: HandlerContext,
    ) -> IntentResult:
        pass

    async def handle(
        self,
        intent: ClassifiedIntent,
        context: HandlerContext,
    ) -> IntentResult:
        """
        Process the intent and return a result.

        Note:
            This method does NOT raise. Errors are captured in IntentResult.
        """
        self._log_entry(intent, context)

        try:
            result = await self._process(intent, context)
        except (AuthenticationError, ScopeNotGrantedError) as e:
            logger.warning(f"[{context.request_id}] {self.handler_name}: calendar auth failed: {e}")
            result = self._error_result(intent, context, localize(context.locale, ERROR_MESSAGES["auth"]))
        except APIError as e:
            logger.error(
                f"[{context.request_id}] {self.handler_name}: calendar API error: {e}",
                extra={"status_code": e.status_code},
            )
            result = self._error_result(intent, context, localize(context.locale, ERROR_MESSAGES["calendar"]))
        except Exception as e:
            logger.error(f"[{context.request_id}] {self.handler_name} error: {e}", exc_info=True)
            result = self._error_result(intent, context, localize(context.locale, ERROR_MESSAGES["unexpected"]))

        result.intent_type = result.intent_type or intent.type.value
        result.confidence = intent.confidence
        result.request_id = context.request_id
        result.processing_time_ms = context.elapsed_ms()

        self._log_exit(context, success=result.success, processing_time_ms=result.processing_time_ms)
        return result

    def _error_result(
        self,
        intent: ClassifiedIntent,
        context: HandlerContext,
        message: str,
    ) -> IntentResult:
        return IntentResult(
            success=False,
            result_type=IntentResultType.ERROR,
            intent_type=intent.type.value,
            message=message,
        )

    def _log_entry(self, intent: ClassifiedIntent, context: HandlerContext) -> None:
        logger.info(
            f"[{context.request_id}] {self.handler_name}.handle() called",
            extra={
                "handler": self.handler_name,
                "session_id": context.session_id,
                "has_selection": bool(context.selected_event_id),
            },
        )

    def _log_exit(
        self,
        context: HandlerContext,
        success: bool,
        processing_time_ms: float,
    ) -> None:
        logger.info(
            f"[{context.request_id}] {self.handler_name}.handle() completed",
            extra={
                "handler": self.handler_name,
                "success": success,
                "processing_time_ms": processing_time_ms,
            },
        )
