"""
Intent Handlers Package - Strategy pattern for intent processing.

Each handler is responsible for a group of IntentType values:

    CalendarHandler      CREATE_EVENT, SEARCH_EVENTS, UPDATE_EVENT, DELETE_EVENT
    BriefingHandler      GET_BRIEFING
    BatchHandler         BATCH_OPERATION
    ConversationHandler  CONVERSATION

Usage:
    from app.services.intent_handlers import IntentHandler, HandlerContext

    class MyHandler(IntentHandler):
        @property
        def handler_name(self) -> str:
            return "my_handler"

        @property
        def supported_intent_types(self) -> List[str]:
            return ["MY_INTENT"]

        async def _process(self, intent, context) -> IntentResult:
            ...

Design Pattern: Strategy Pattern
================================
The IntentHandler ABC defines the contract. Concrete handlers implement
the strategy for processing specific intent types. IntentService acts
as the context that delegates to the appropriate handler.
"""

from app.services.intent_handlers.base import (
    IntentHandler,
    HandlerContext,
)
from app.services.intent_handlers.calendar_handler import CalendarHandler
from app.services.intent_handlers.briefing_handler import BriefingHandler
from app.services.intent_handlers.batch_handler import BatchHandler
from app.services.intent_handlers.conversation_handler import ConversationHandler

__all__ = [
    "IntentHandler",
    "HandlerContext",
    "CalendarHandler",
    "BriefingHandler",
    "BatchHandler",
    "ConversationHandler",
]
