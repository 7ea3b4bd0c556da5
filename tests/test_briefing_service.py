"""
Tests for BriefingService and the AI monitor counters it feeds.

Reference time: Wednesday 2025-01-15, 10:00 in Seoul.
"""

import json
import pytest
from datetime import datetime
from unittest.mock import AsyncMock, MagicMock
from zoneinfo import ZoneInfo

from app.ai.monitoring import ai_monitor
from app.services.briefing_service import BriefingService, FREE_DAY_MESSAGE


SEOUL = ZoneInfo("Asia/Seoul")
NOW = datetime(2025, 1, 15, 10, 0, tzinfo=SEOUL)


@pytest.fixture
def provider(ai_response):
    mock = MagicMock()
    mock.generate = AsyncMock(return_value=ai_response("📋 오늘의 핵심: 회의 두 개"))
    mock.generate_json = AsyncMock(return_value=ai_response("{}"))
    return mock


@pytest.fixture
def service(provider) -> BriefingService:
    return BriefingService(provider)


class TestDailyBriefing:
    """generate_daily_briefing()"""

    @pytest.mark.asyncio
    async def test_free_day_skips_the_model(self, service, provider):
        briefing = await service.generate_daily_briefing([], "en", NOW, "Asia/Seoul")

        assert briefing == FREE_DAY_MESSAGE["en"]
        provider.generate.assert_not_called()

    @pytest.mark.asyncio
    async def test_prompt_lists_events_in_user_zone(self, service, provider, event_factory):
        events = [
            event_factory(summary="팀 회의", start=datetime(2025, 1, 15, 14, 0), location="회의실 A"),
            event_factory(summary="휴가", all_day_date="2025-01-15"),
        ]

        briefing = await service.generate_daily_briefing(events, "ko", NOW, "Asia/Seoul")

        assert briefing == "📋 오늘의 핵심: 회의 두 개"
        prompt = provider.generate.call_args.kwargs["prompt"]
        assert "1. 팀 회의 - 1월 15일 (수) 14:00 @ 회의실 A" in prompt
        assert "2. 휴가 - 2025-01-15 (종일)" in prompt
        assert "💡 준비사항" in prompt

    @pytest.mark.asyncio
    async def test_english_template(self, service, provider, event_factory):
        await service.generate_daily_briefing([event_factory()], "en", NOW, "Asia/Seoul")
        assert "Today's focus" in provider.generate.call_args.kwargs["prompt"]

    @pytest.mark.parametrize("content,success", [("", False), ("   ", True)])
    @pytest.mark.asyncio
    async def test_failure_returns_none(self, service, provider, ai_response, event_factory, content, success):
        provider.generate.return_value = ai_response(content, success=success, error="timeout")

        briefing = await service.generate_daily_briefing([event_factory()], "ko", NOW, "Asia/Seoul")

        assert briefing is None
        assert ai_monitor.get_stats().errors_by_stage["daily_briefing"] == 1


class TestEventBriefing:
    """generate_event_briefing()"""

    @pytest.mark.asyncio
    async def test_generated_briefing(self, service, provider, ai_response, event_factory):
        provider.generate_json.return_value = ai_response(json.dumps({
            "summary": "📅 오후 2시 팀 회의",
            "checklist": ["✅ 노트북", "", "✅ 발표 자료"],
            "travel_tips": "🚗 지하철이 빠릅니다",
            "advice": "💡 10분 일찍 도착하세요",
            "departure_time": "⏰ 13:15 출발",
        }))
        event = event_factory(summary="팀 회의", start=datetime(2025, 1, 15, 14, 0), location="강남역")

        briefing = await service.generate_event_briefing(event, NOW, "ko", "Asia/Seoul")

        assert briefing.generated is True
        assert briefing.summary == "📅 오후 2시 팀 회의"
        assert briefing.checklist == ["✅ 노트북", "✅ 발표 자료"]
        assert briefing.travel_tips == ["🚗 지하철이 빠릅니다"]
        assert briefing.departure_time == "13:15"
        assert briefing.hours_until == 4
        prompt = provider.generate_json.call_args.kwargs["prompt"]
        assert "장소: 강남역" in prompt
        assert "약 4시간" in prompt

    @pytest.mark.asyncio
    async def test_travel_fields_dropped_without_location(self, service, provider, ai_response, event_factory):
        provider.generate_json.return_value = ai_response(json.dumps({
            "summary": "Weekly sync",
            "travel_tips": ["take a taxi"],
            "departure_time": "9:05",
        }))

        briefing = await service.generate_event_briefing(event_factory(), NOW, "en", "Asia/Seoul")

        assert briefing.travel_tips == []
        assert briefing.departure_time is None
        assert "Write the values in English" in provider.generate_json.call_args.kwargs["prompt"]

    @pytest.mark.asyncio
    async def test_started_event_has_zero_hours(self, service, event_factory):
        event = event_factory(start=datetime(2025, 1, 15, 9, 30))
        briefing = await service.generate_event_briefing(event, NOW, "ko", "Asia/Seoul")
        assert briefing.hours_until == 0

    @pytest.mark.parametrize("content,success", [
        ("", False),
        ("[1, 2]", True),
        ('{"checklist": ["x"]}', True),
        ("{broken", True),
    ])
    @pytest.mark.asyncio
    async def test_fallback_summary(self, service, provider, ai_response, event_factory, content, success):
        provider.generate_json.return_value = ai_response(content, success=success)
        event = event_factory(summary="팀 회의", start=datetime(2025, 1, 15, 14, 0))

        briefing = await service.generate_event_briefing(event, NOW, "ko", "Asia/Seoul")

        assert briefing.generated is False
        assert briefing.summary == '📅 1월 15일 (수) 14:00에 "팀 회의" 일정이 있습니다.'
        assert briefing.checklist == []
        assert briefing.to_dict()["event_id"] == event.id
        assert ai_monitor.get_stats().errors_by_stage["event_briefing"] == 1


class TestAIMonitor:
    """Counters exposed by /ai/stats."""

    def test_token_and_intent_counters(self, ai_response):
        ai_monitor.track_response_from_ai_response("r1", ai_response("ok"))
        ai_monitor.track_response_from_ai_response("r2", ai_response("", success=False, error="x"))
        ai_monitor.track_intent("r1", "내일 회의", "CREATE_EVENT", 0.9)
        ai_monitor.track_duplicate_warning("r1", 80, "evt-1")

        stats = ai_monitor.get_stats().to_dict()

        assert stats["total_requests"] == 2
        assert stats["failed_requests"] == 1
        assert stats["success_rate"] == "50.0%"
        assert stats["total_tokens"] == 30
        assert stats["intents"] == {"CREATE_EVENT": 1}
        assert stats["duplicate_warnings"] == 1

    def test_recent_requests_newest_first(self, ai_response):
        ai_monitor.track_response_from_ai_response("first", ai_response("a"))
        ai_monitor.track_response_from_ai_response("second", ai_response("b"))

        assert [m.request_id for m in ai_monitor.get_recent_requests(2)] == ["second", "first"]
