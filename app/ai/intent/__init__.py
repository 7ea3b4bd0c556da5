"""
Intent Module - natural language understanding for the calendar assistant.

Example Flow:
============
User says: "내일 오후 2시 팀 회의 추가해줘"

IntentClassifier:
{"type": "CREATE_EVENT", "confidence": 0.95, "parameters": {}}

EventExtractor:
{"title": "팀 회의", "date": "2025-01-16", "time": "14:00", "duration": 60}

Result: an event ready for the duplicate check and Google Calendar
"""

from app.ai.intent.schemas import (
    ClassifiedIntent,
    EventUpdate,
    ExtractedEvent,
    IntentType,
    UserContext,
)
from app.ai.intent.classifier import IntentClassifier, intent_classifier
from app.ai.intent.extractor import EventExtractor, event_extractor

__all__ = [
    "ClassifiedIntent",
    "EventUpdate",
    "ExtractedEvent",
    "IntentType",
    "UserContext",
    "IntentClassifier",
    "intent_classifier",
    "EventExtractor",
    "event_extractor",
]
