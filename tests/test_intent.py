"""
Tests for intent classification and event extraction.

The Gemini provider is replaced with a mock whose generate_json() returns
canned AIResponse objects, so every LLM answer shape can be exercised:
valid, partial, malformed and failed.

Reference time: Wednesday 2025-01-15, 10:00 in Seoul.
"""

import pytest
from datetime import datetime
from unittest.mock import AsyncMock, MagicMock
from zoneinfo import ZoneInfo

from app.ai.intent.classifier import IntentClassifier
from app.ai.intent.extractor import EventExtractor
from app.ai.intent.schemas import (
    ClassifiedIntent,
    EventUpdate,
    ExtractedEvent,
    IntentType,
    UserContext,
)
from app.ai.monitoring import ai_monitor
from app.ai.prompts.helpers import detect_user_language, localize, resolve_locale


SEOUL = ZoneInfo("Asia/Seoul")
NOW = datetime(2025, 1, 15, 10, 0, tzinfo=SEOUL)


@pytest.fixture
def provider(ai_response):
    mock = MagicMock()
    mock.generate_json = AsyncMock(return_value=ai_response("{}"))
    return mock


@pytest.fixture
def context(event_factory) -> UserContext:
    return UserContext(
        session_id="user-1",
        current_time=NOW,
        timezone="Asia/Seoul",
        recent_events=[
            event_factory(event_id=str(i), summary=f"일정 {i}") for i in range(5)
        ],
    )


# ---------------------------------------------------------------------------
# SCHEMAS
# ---------------------------------------------------------------------------

class TestIntentType:
    """Lenient parsing of the model's intent label."""

    @pytest.mark.parametrize("raw,expected", [
        ("CREATE_EVENT", IntentType.CREATE_EVENT),
        ("search_events", IntentType.SEARCH_EVENTS),
        ("delete-event", IntentType.DELETE_EVENT),
        ("Get Briefing", IntentType.GET_BRIEFING),
        ("SING_A_SONG", IntentType.CONVERSATION),
        (None, IntentType.CONVERSATION),
        (42, IntentType.CONVERSATION),
    ])
    def test_from_llm(self, raw, expected):
        assert IntentType.from_llm(raw) == expected


class TestExtractedEvent:
    """Validation of extracted events."""

    def test_only_emails_are_kept_as_attendees(self):
        event = ExtractedEvent(
            title="회의", date="2025-01-16",
            attendees=["kim@example.com", "김철수", {"email": "lee@example.com"}],
        )
        assert event.attendees == ["kim@example.com", "lee@example.com"]

    @pytest.mark.parametrize("attendees", [5, True, {"email": "kim@example.com"}])
    def test_attendees_that_are_not_a_list_are_dropped(self, attendees):
        event = ExtractedEvent(title="회의", date="2025-01-16", attendees=attendees)
        assert event.attendees == []

    def test_defaults_and_normalization(self):
        event = ExtractedEvent(title="  회의 ", date="2025-01-16", time="9:05", duration=None)

        assert event.title == "회의"
        assert event.time == "09:05"
        assert event.duration == 60

    @pytest.mark.parametrize("field,value", [
        ("date", "2025-02-30"),
        ("date", "16/01/2025"),
        ("time", "25:00"),
        ("title", "   "),
    ])
    def test_invalid_values_rejected(self, field, value):
        data = {"title": "회의", "date": "2025-01-16", "time": "10:00"}
        data[field] = value
        with pytest.raises(ValueError):
            ExtractedEvent(**data)

    def test_create_request_rolls_past_midnight(self):
        event = ExtractedEvent(title="회의", date="2025-01-16", time="23:30", duration=90)

        body = event.to_create_request("Asia/Seoul").to_api_body()

        assert body["start"] == {"dateTime": "2025-01-16T23:30:00", "timeZone": "Asia/Seoul"}
        assert body["end"]["dateTime"] == "2025-01-17T01:00:00"


class TestEventUpdate:
    """Partial updates."""

    def test_aliases_and_blank_fields(self):
        update = EventUpdate(**{"newTime": "15:00", "location": "  "})

        assert update.new_time == "15:00"
        assert update.location is None
        assert update.reschedules() is True

    def test_empty_update(self):
        assert EventUpdate().has_changes() is False


class TestLocaleHelpers:
    """Language detection and message lookup."""

    @pytest.mark.parametrize("text,expected", [
        ("내일 standup 추가", "ko"),
        ("add standup tomorrow", "en"),
        ("", "en"),
    ])
    def test_detect_user_language(self, text, expected):
        assert detect_user_language(text) == expected

    def test_explicit_locale_wins(self):
        assert resolve_locale("en", "안녕하세요") == "en"
        assert resolve_locale("fr", "hello") == "en"

    def test_localize_falls_back_to_korean(self):
        messages = {"ko": "{n}개", "en": "{n} items"}
        assert localize("en", messages, n=3) == "3 items"
        assert localize("ja", messages, n=3) == "3개"


# ---------------------------------------------------------------------------
# CLASSIFIER
# ---------------------------------------------------------------------------

class TestIntentClassifier:
    """IntentClassifier.classify() never raises."""

    @pytest.mark.asyncio
    async def test_valid_answer(self, provider, context, ai_response):
        provider.generate_json.return_value = ai_response(
            '{"type": "create_event", "confidence": 0.93, "parameters": {"title": "회의"}}'
        )

        intent = await IntentClassifier(provider).classify("내일 2시 회의", context)

        assert intent.type == IntentType.CREATE_EVENT
        assert intent.confidence == 0.93
        assert intent.parameters == {"title": "회의"}
        assert intent.original_text == "내일 2시 회의"

    @pytest.mark.asyncio
    async def test_prompt_has_recent_titles_and_selection_hint(self, provider, context):
        await IntentClassifier(provider).classify("이거 지워줘", context, selected_event_id="evt-1")

        prompt = provider.generate_json.call_args.kwargs["prompt"]
        assert "일정 0, 일정 1, 일정 2" in prompt
        assert "일정 3" not in prompt
        assert "Event selected" in prompt
        assert "2025-01-15 10:00" in prompt

    @pytest.mark.asyncio
    async def test_no_selection_hint_without_selection(self, provider, context):
        await IntentClassifier(provider).classify("안녕", context)
        assert "Event selected" not in provider.generate_json.call_args.kwargs["prompt"]

    @pytest.mark.asyncio
    async def test_confidence_is_clamped(self, provider, context, ai_response):
        provider.generate_json.return_value = ai_response('{"type": "GET_BRIEFING", "confidence": 1.7}')

        intent = await IntentClassifier(provider).classify("브리핑", context)

        assert intent.confidence == 1.0

    @pytest.mark.asyncio
    async def test_odd_shapes_are_tolerated(self, provider, context, ai_response):
        provider.generate_json.return_value = ai_response(
            '{"type": "DELETE_EVENT", "confidence": "high", "parameters": ["x"]}'
        )

        intent = await IntentClassifier(provider).classify("삭제", context)

        assert intent.type == IntentType.DELETE_EVENT
        assert intent.confidence == 0.5
        assert intent.parameters == {}

    @pytest.mark.parametrize("content,success", [
        ("", False),
        ("not json", True),
        ('"CREATE_EVENT"', True),
    ])
    @pytest.mark.asyncio
    async def test_failures_fall_back_to_conversation(
        self, provider, context, ai_response, content, success
    ):
        provider.generate_json.return_value = ai_response(content, success=success, error="boom")

        intent = await IntentClassifier(provider).classify("뭐라고?", context)

        assert intent == ClassifiedIntent.fallback("뭐라고?")

    @pytest.mark.asyncio
    async def test_call_is_tracked(self, provider, context):
        await IntentClassifier(provider).classify("안녕", context, request_id="req-1")
        assert ai_monitor.get_stats().total_requests == 1


# ---------------------------------------------------------------------------
# EXTRACTOR
# ---------------------------------------------------------------------------

class TestParseEventFromText:
    """Text extraction with rule-based defaults."""

    @pytest.mark.asyncio
    async def test_missing_fields_come_from_rule_based_parse(self, provider, ai_response):
        provider.generate_json.return_value = ai_response(
            '{"title": "팀 회의", "location": "회의실 A", "duration": null,'
            ' "attendees": ["kim@example.com", "김철수"]}'
        )

        event = await EventExtractor(provider).parse_event_from_text(
            "내일 오후 2시 회의실 A에서 팀 회의", "Asia/Seoul", NOW
        )

        assert (event.title, event.date, event.time) == ("팀 회의", "2025-01-16", "14:00")
        assert event.duration == 60
        assert event.location == "회의실 A"
        assert event.attendees == ["kim@example.com"]

    @pytest.mark.asyncio
    async def test_scalar_attendees_keep_the_extracted_event(self, provider, ai_response):
        provider.generate_json.return_value = ai_response(
            '{"title": "회의", "date": "2025-01-16", "time": "14:00", "attendees": 5}'
        )

        event = await EventExtractor(provider).parse_event_from_text(
            "내일 오후 2시 회의", "Asia/Seoul", NOW
        )

        assert (event.title, event.date, event.time) == ("회의", "2025-01-16", "14:00")
        assert event.attendees == []

    @pytest.mark.asyncio
    async def test_prompt_shows_defaults(self, provider):
        await EventExtractor(provider).parse_event_from_text("모레 저녁 7시 저녁 약속", "Asia/Seoul", NOW)

        prompt = provider.generate_json.call_args.kwargs["prompt"]
        assert "기본값: 2025-01-17" in prompt
        assert "기본값: 19:00" in prompt

    @pytest.mark.parametrize("content,success", [
        ("", False),
        ("[]", True),
        ('{"title": "팀 회의", "date": "2025-13-01"}', True),
    ])
    @pytest.mark.asyncio
    async def test_unusable_answer_uses_rule_based_event(
        self, provider, ai_response, content, success
    ):
        provider.generate_json.return_value = ai_response(content, success=success)

        event = await EventExtractor(provider).parse_event_from_text(
            "내일 오후 2시 팀 회의 추가해줘", "Asia/Seoul", NOW
        )

        assert event == ExtractedEvent(title="팀 회의", date="2025-01-16", time="14:00", duration=60)


class TestParseEventFromImage:
    """Poster and screenshot extraction."""

    @pytest.mark.asyncio
    async def test_event_found(self, provider, ai_response):
        provider.generate_json.return_value = ai_response(
            '{"title": "재즈 콘서트", "date": "2025-02-01", "time": "19:30", "location": "세종문화회관"}'
        )

        event = await EventExtractor(provider).parse_event_from_image(
            b"\xff\xd8jpeg", "image/jpeg", "Asia/Seoul", NOW
        )

        assert event.title == "재즈 콘서트"
        assert event.location == "세종문화회관"
        attachment = provider.generate_json.call_args.kwargs["attachments"][0]
        assert attachment.mime_type == "image/jpeg"
        assert attachment.data == b"\xff\xd8jpeg"

    @pytest.mark.asyncio
    async def test_scalar_attendees_are_dropped(self, provider, ai_response):
        provider.generate_json.return_value = ai_response(
            '{"title": "재즈 콘서트", "date": "2025-02-01", "time": "19:30", "attendees": true}'
        )

        event = await EventExtractor(provider).parse_event_from_image(
            b"img", "image/png", "Asia/Seoul", NOW
        )

        assert event.title == "재즈 콘서트"
        assert event.attendees == []

    @pytest.mark.parametrize("content,success", [
        ('{"title": null}', True),
        ('{"title": "콘서트"}', True),
        ("{}", False),
        ('{"title": "콘서트", "date": "next friday"}', True),
    ])
    @pytest.mark.asyncio
    async def test_nothing_usable(self, provider, ai_response, content, success):
        provider.generate_json.return_value = ai_response(content, success=success)

        event = await EventExtractor(provider).parse_event_from_image(
            b"img", "image/png", "Asia/Seoul", NOW
        )

        assert event is None


class TestExtractUpdate:
    """Changed fields only."""

    @pytest.mark.asyncio
    async def test_time_change(self, provider, ai_response, event_factory):
        provider.generate_json.return_value = ai_response('{"newTime": "15:00"}')
        event = event_factory(summary="팀 회의", start=datetime(2025, 1, 16, 14, 0), location="회의실 A")

        update = await EventExtractor(provider).extract_update("3시로 옮겨줘", event, "Asia/Seoul", NOW)

        assert update.new_time == "15:00"
        assert update.new_date is None
        prompt = provider.generate_json.call_args.kwargs["prompt"]
        assert "팀 회의" in prompt
        assert "2025-01-16 14:00" in prompt
        assert "회의실 A" in prompt

    @pytest.mark.parametrize("content,success", [
        ("", False),
        ("not json", True),
        ('{"newDate": "tomorrow"}', True),
    ])
    @pytest.mark.asyncio
    async def test_unusable_answer_is_empty_update(
        self, provider, ai_response, event_factory, content, success
    ):
        provider.generate_json.return_value = ai_response(content, success=success)

        update = await EventExtractor(provider).extract_update(
            "바꿔줘", event_factory(), "Asia/Seoul", NOW
        )

        assert update.has_changes() is False
