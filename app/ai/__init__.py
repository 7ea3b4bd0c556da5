"""
AI Module - the language side of the calendar assistant.

Architecture Overview:
=====================

┌────────────────────────────────────────────────────────────┐
│                  IntentClassifier (Gemini)                  │
│   "내일 3시 회의 추가해줘" → CREATE_EVENT (0.95)              │
└─────────────────────────────┬──────────────────────────────┘
                              │
        ┌─────────────────────┼──────────────────────┐
        ▼                     ▼                      ▼
┌───────────────┐     ┌───────────────┐      ┌───────────────┐
│EventExtractor │     │  date_parser  │      │    prompts    │
│ text / image  │     │ rule-based    │      │ ko / en       │
│ → event JSON  │     │ 내일, 오후 3시 │      │ templates     │
└───────────────┘     └───────────────┘      └───────────────┘

Module Structure:
================
- providers/: LLM clients behind AIProvider (Gemini)
- intent/: classification, extraction and Korean date parsing
- prompts/: prompt templates and language helpers
- monitoring/: logging, metrics and usage tracking
"""

__version__ = "0.1.0"

from app.ai.intent.classifier import IntentClassifier, intent_classifier
from app.ai.intent.extractor import EventExtractor, event_extractor
from app.ai.intent.schemas import ClassifiedIntent, ExtractedEvent, IntentType

__all__ = [
    "IntentClassifier",
    "intent_classifier",
    "EventExtractor",
    "event_extractor",
    "ClassifiedIntent",
    "ExtractedEvent",
    "IntentType",
]
