"""
Intent Result Types - Shared data structures for intent processing.

This module contains the result types used by IntentService and handlers.
It lives apart from intent_service.py to avoid circular imports between
the service and the handlers.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional


class IntentResultType(str, Enum):
    """How the client should present a result."""
    TEXT = "text"                    # Plain reply
    ACTION = "action"                # A calendar change was made
    DATA = "data"                    # Events or other structured data
    ERROR = "error"
    CLARIFICATION = "clarification"  # The assistant needs more information
    CONFIRMATION = "confirmation"    # The user must confirm pending_action


@dataclass
class IntentResult:
    """
    Result of processing a chat message.

    This is a service-layer result that the router converts to an HTTP
    response.

    Attributes:
        success: Whether the message was processed successfully
        result_type: Presentation type (see IntentResultType)
        intent_type: The classified intent (IntentType value)
        message: Human-readable reply in the user's language
        action: Calendar action performed or proposed ("create_event", ...)
        data: Extra data (created event, search results, duplicate info)
        requires_confirmation: True when pending_action awaits the user's OK
        pending_action: What to send back to carry out the confirmed action
        suggestions: Follow-up prompts for the user
        confidence: Classifier confidence (0.0 - 1.0)
        processing_time_ms: Processing time in milliseconds
        request_id: Unique request identifier for tracing
    """
    success: bool
    result_type: IntentResultType
    intent_type: Optional[str] = None
    message: str = ""

    action: Optional[str] = None
    data: Optional[Dict[str, Any]] = None

    requires_confirmation: bool = False
    pending_action: Optional[Dict[str, Any]] = None
    suggestions: List[str] = field(default_factory=list)

    # Metadata
    confidence: float = 0.0
    processing_time_ms: float = 0.0
    request_id: str = ""

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for response."""
        return {
            "success": self.success,
            "type": self.result_type.value,
            "intent_type": self.intent_type,
            "message": self.message,
            "action": self.action,
            "data": self.data,
            "requires_confirmation": self.requires_confirmation,
            "pending_action": self.pending_action,
            "suggestions": self.suggestions,
            "confidence": self.confidence,
            "processing_time_ms": self.processing_time_ms,
            "request_id": self.request_id,
        }
