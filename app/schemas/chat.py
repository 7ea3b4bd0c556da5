"""
Assistant schemas - request and response bodies for the /ai routes.
"""

from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field, field_validator

from app.ai.intent.schemas import ExtractedEvent
from app.ai.prompts.helpers import SUPPORTED_LANGUAGES
from app.core.timeutils import is_valid_timezone


class _LocaleFields(BaseModel):
    """Optional per-request overrides of the user's timezone and locale."""
    timezone: Optional[str] = Field(default=None, description="IANA timezone, e.g. Asia/Seoul")
    locale: Optional[str] = Field(default=None, description="Reply language: ko or en")

    @field_validator("timezone")
    @classmethod
    def _known_timezone(cls, value: Optional[str]) -> Optional[str]:
        if value is not None and not is_valid_timezone(value):
            raise ValueError(f"Unknown timezone: {value}")
        return value

    @field_validator("locale")
    @classmethod
    def _supported_locale(cls, value: Optional[str]) -> Optional[str]:
        if value is not None and value not in SUPPORTED_LANGUAGES:
            raise ValueError(f"Unsupported locale: {value}")
        return value


# ---------------------------------------------------------------------------
# CHAT
# ---------------------------------------------------------------------------

class ChatRequest(_LocaleFields):
    """
    Request schema for POST /ai/chat.

    Example:
    {
        "message": "내일 오후 3시 팀 회의 추가해줘",
        "timezone": "Asia/Seoul"
    }

    After a duplicate warning the client repeats the request with
    pending_event_data set to the pending_action data it received.
    """
    message: str = Field(..., min_length=1, max_length=2000)
    selected_event_id: Optional[str] = Field(default=None, description="Event selected in the UI")
    pending_event_data: Optional[Dict[str, Any]] = Field(
        default=None, description="Event confirmed after a duplicate warning"
    )
    force_create: bool = Field(default=False, description="Skip the duplicate check")


class ChatResponse(BaseModel):
    """
    Response schema for POST /ai/chat.

    type is one of TEXT, ACTION, DATA, ERROR, CLARIFICATION, CONFIRMATION.
    """
    success: bool
    type: str
    intent_type: Optional[str] = None
    message: str
    action: Optional[str] = None
    data: Optional[Dict[str, Any]] = None
    requires_confirmation: bool = False
    pending_action: Optional[Dict[str, Any]] = None
    suggestions: List[str] = Field(default_factory=list)
    confidence: float = 0.0
    processing_time_ms: float = 0.0
    request_id: Optional[str] = None


# ---------------------------------------------------------------------------
# IMAGE PARSING
# ---------------------------------------------------------------------------

class ParseImageRequest(BaseModel):
    """Request schema for POST /ai/parse-image (poster, invitation, screenshot)."""
    image_base64: str = Field(..., min_length=1)
    mime_type: str = Field(default="image/jpeg", pattern=r"^image/[a-z0-9.+-]+$")
    timezone: Optional[str] = None

    @field_validator("timezone")
    @classmethod
    def _known_timezone(cls, value: Optional[str]) -> Optional[str]:
        if value is not None and not is_valid_timezone(value):
            raise ValueError(f"Unknown timezone: {value}")
        return value


class ParseImageResponse(BaseModel):
    event: ExtractedEvent


# ---------------------------------------------------------------------------
# DUPLICATE CHECK
# ---------------------------------------------------------------------------

class DuplicateCheckRequest(_LocaleFields):
    """Request schema for POST /ai/duplicates/check."""
    event: ExtractedEvent


class DuplicateCheckResponse(BaseModel):
    is_duplicate: bool
    similarity: int
    similar_event: Optional[Dict[str, Any]] = None
    reason: str = ""
    from_cache: bool = False
    warning: str = ""


# ---------------------------------------------------------------------------
# BRIEFINGS AND SUGGESTIONS
# ---------------------------------------------------------------------------

class DailyBriefingResponse(BaseModel):
    briefing: str
    events: List[Dict[str, Any]] = Field(default_factory=list)


class EventBriefingResponse(BaseModel):
    event_id: str
    title: str
    summary: str
    checklist: List[str] = Field(default_factory=list)
    travel_tips: List[str] = Field(default_factory=list)
    advice: Optional[str] = None
    departure_time: Optional[str] = None
    hours_until: int = 0
    generated: bool = True


class SuggestionsResponse(BaseModel):
    suggestions: List[str]


class FreeSlotsResponse(BaseModel):
    duration: int
    slots: List[datetime]
