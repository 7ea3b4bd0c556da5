"""
Intent Schemas - Pydantic models for classified intents and extracted events.

These schemas define what the LLM is asked to produce and what the rest
of the assistant consumes. Using Pydantic means malformed LLM output is
rejected at construction time instead of deep inside a handler.

Design Philosophy:
=================
- Validation at construction time (dates as YYYY-MM-DD, times as HH:MM)
- Wall-clock values stay naive; the timezone travels separately
- Easy serialization to JSON/dict for API responses
"""

import re
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Optional, Dict, Any, List

from pydantic import BaseModel, ConfigDict, Field, field_validator

from app.environments.google.calendar.schemas import (
    CalendarEvent,
    EventCreateRequest,
    EventTime,
)


class IntentType(str, Enum):
    """
    The seven things a chat message can ask the assistant to do.

    CREATE_EVENT: Add a new event ("내일 3시 회의 추가해줘")
    SEARCH_EVENTS: Find or list events ("이번 주 일정 보여줘")
    GET_BRIEFING: Summarize today ("오늘 브리핑 해줘")
    UPDATE_EVENT: Change the selected/referenced event
    DELETE_EVENT: Remove the selected/referenced event
    BATCH_OPERATION: Act on many events at once ("중복 일정 정리해줘")
    CONVERSATION: Anything else; small talk and general questions
    """
    CREATE_EVENT = "CREATE_EVENT"
    SEARCH_EVENTS = "SEARCH_EVENTS"
    GET_BRIEFING = "GET_BRIEFING"
    UPDATE_EVENT = "UPDATE_EVENT"
    DELETE_EVENT = "DELETE_EVENT"
    BATCH_OPERATION = "BATCH_OPERATION"
    CONVERSATION = "CONVERSATION"

    @classmethod
    def from_llm(cls, value: Any) -> "IntentType":
        """Lenient lookup; anything unrecognized is CONVERSATION."""
        if isinstance(value, str):
            key = value.strip().upper().replace("-", "_").replace(" ", "_")
            try:
                return cls(key)
            except ValueError:
                pass
        return cls.CONVERSATION


class ClassifiedIntent(BaseModel):
    """Output of IntentClassifier.classify()."""
    type: IntentType
    confidence: float = Field(..., ge=0.0, le=1.0)
    parameters: Dict[str, Any] = Field(default_factory=dict)
    original_text: str = ""

    @classmethod
    def fallback(cls, original_text: str = "") -> "ClassifiedIntent":
        return cls(
            type=IntentType.CONVERSATION,
            confidence=0.5,
            parameters={},
            original_text=original_text,
        )


@dataclass
class UserContext:
    """
    Per-request context handed to the classifier and handlers.

    session_id keys every in-memory store (recent events, context
    managers); the API uses the authenticated user's id.
    """
    session_id: str
    current_time: datetime
    timezone: str
    locale: str = "ko"
    recent_events: List[CalendarEvent] = field(default_factory=list)


# ---------------------------------------------------------------------------
# EXTRACTED EVENTS
# ---------------------------------------------------------------------------

_DATE_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")
_TIME_RE = re.compile(r"^(\d{1,2}):(\d{2})$")


def _normalize_time(value: Optional[str]) -> Optional[str]:
    if value is None or value == "":
        return None
    match = _TIME_RE.match(str(value).strip())
    if not match:
        raise ValueError(f"time must be HH:MM, got {value!r}")
    hour, minute = int(match.group(1)), int(match.group(2))
    if hour > 23 or minute > 59:
        raise ValueError(f"time out of range: {value!r}")
    return f"{hour:02d}:{minute:02d}"


def _normalize_date(value: Optional[str]) -> Optional[str]:
    if value is None or value == "":
        return None
    value = str(value).strip()
    if not _DATE_RE.match(value):
        raise ValueError(f"date must be YYYY-MM-DD, got {value!r}")
    datetime.strptime(value, "%Y-%m-%d")
    return value


class ExtractedEvent(BaseModel):
    """
    A new event as understood from a message or an image.

    Example:
    {
        "title": "팀 회의",
        "date": "2025-01-15",
        "time": "14:00",
        "duration": 60,
        "location": "회의실 A",
        "attendees": ["kim@example.com"]
    }
    """
    model_config = ConfigDict(extra="ignore")

    title: str = Field(..., min_length=1)
    date: str
    time: str = "09:00"
    duration: int = Field(default=60, gt=0, le=60 * 24 * 7)
    location: Optional[str] = None
    description: Optional[str] = None
    attendees: List[str] = Field(default_factory=list)

    @field_validator("title")
    @classmethod
    def _strip_title(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("title must not be blank")
        return value

    @field_validator("date")
    @classmethod
    def _check_date(cls, value: str) -> str:
        normalized = _normalize_date(value)
        if normalized is None:
            raise ValueError("date is required")
        return normalized

    @field_validator("time", mode="before")
    @classmethod
    def _check_time(cls, value: Any) -> str:
        return _normalize_time(value) or "09:00"

    @field_validator("duration", mode="before")
    @classmethod
    def _default_duration(cls, value: Any) -> Any:
        return 60 if value in (None, "", 0) else value

    @field_validator("attendees", mode="before")
    @classmethod
    def _only_emails(cls, value: Any) -> List[str]:
        if not value:
            return []
        if isinstance(value, str):
            value = [value]
        if not isinstance(value, (list, tuple)):
            return []
        emails = []
        for item in value:
            email = item.get("email") if isinstance(item, dict) else item
            if isinstance(email, str) and "@" in email:
                emails.append(email.strip())
        return emails

    def start_local(self) -> datetime:
        """Naive wall-clock start."""
        return datetime.strptime(f"{self.date} {self.time}", "%Y-%m-%d %H:%M")

    def to_create_request(self, timezone: str) -> EventCreateRequest:
        return EventCreateRequest.from_local(
            summary=self.title,
            start=self.start_local(),
            duration_minutes=self.duration,
            timezone=timezone,
            location=self.location,
            description=self.description,
            attendees=self.attendees,
        )

    def to_calendar_event(self, event_id: str, timezone: str) -> CalendarEvent:
        """Shape a not-yet-synced event like a Google event for comparisons."""
        request = self.to_create_request(timezone)
        return CalendarEvent(
            id=event_id,
            summary=self.title,
            location=self.location,
            description=self.description,
            start=EventTime(date_time=request.start_datetime, time_zone=timezone),
            end=EventTime(date_time=request.end_datetime, time_zone=timezone),
        )


class EventUpdate(BaseModel):
    """
    Changes requested for an existing event. None means "keep".

    Produced by EventExtractor.extract_update(); new_date/new_time move
    the event while keeping its original duration.
    """
    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    summary: Optional[str] = None
    new_date: Optional[str] = Field(None, alias="newDate")
    new_time: Optional[str] = Field(None, alias="newTime")
    location: Optional[str] = None
    description: Optional[str] = None

    @field_validator("new_date", mode="before")
    @classmethod
    def _check_date(cls, value: Any) -> Optional[str]:
        return _normalize_date(value)

    @field_validator("new_time", mode="before")
    @classmethod
    def _check_time(cls, value: Any) -> Optional[str]:
        return _normalize_time(value)

    @field_validator("summary", "location", "description", mode="before")
    @classmethod
    def _blank_is_none(cls, value: Any) -> Optional[str]:
        if isinstance(value, str) and not value.strip():
            return None
        return value

    def has_changes(self) -> bool:
        return any([self.summary, self.new_date, self.new_time, self.location, self.description])

    def reschedules(self) -> bool:
        return bool(self.new_date or self.new_time)
