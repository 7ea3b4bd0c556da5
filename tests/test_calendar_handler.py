"""
Tests for CalendarHandler - create, search, update and delete flows.

Handlers get their collaborators through HandlerContext service
overrides: a mocked extractor, a mocked calendar client and fresh
in-memory session stores per test.

Reference time: Wednesday 2025-01-15, 10:00 in Seoul.
"""

import pytest
import time
from datetime import datetime
from unittest.mock import AsyncMock, MagicMock
from zoneinfo import ZoneInfo

from app.ai.intent.schemas import ClassifiedIntent, EventUpdate, ExtractedEvent, IntentType, UserContext
from app.ai.monitoring import ai_monitor
from app.core.config import settings
from app.environments.base import APIError, AuthenticationError, ScopeNotGrantedError
from app.services.ai_context_manager import AIContextManager
from app.services.event_context_service import EventContextService
from app.services.intent_handlers.base import HandlerContext
from app.services.intent_handlers.calendar_handler import CalendarHandler, build_update_patch
from app.services.intent_result import IntentResultType
from app.services.recent_event_cache import RecentEventCache


SEOUL = ZoneInfo("Asia/Seoul")
NOW = datetime(2025, 1, 15, 10, 0, tzinfo=SEOUL)

LUNCH = ExtractedEvent(title="팀 회의", date="2025-01-16", time="14:00", duration=60, location="회의실 A")


# ===========================================================================
# FIXTURES
# ===========================================================================

@pytest.fixture
def handler() -> CalendarHandler:
    return CalendarHandler()


@pytest.fixture
def extractor():
    mock = MagicMock()
    mock.parse_event_from_text = AsyncMock(return_value=LUNCH)
    mock.extract_update = AsyncMock(return_value=EventUpdate())
    return mock


@pytest.fixture
def services(extractor) -> dict:
    return {
        "extractor": extractor,
        "recent_cache": RecentEventCache(ttl_seconds=600, max_per_session=20),
        "event_context": EventContextService(),
        "ai_context": AIContextManager(ttl_hours=24),
    }


@pytest.fixture
def make_context(calendar, services):
    def _make(message: str, locale: str = "ko", **kwargs) -> HandlerContext:
        user = UserContext(session_id="s", current_time=NOW, timezone="Asia/Seoul", locale=locale)
        return HandlerContext(
            user=user,
            request_id="req-1",
            calendar=calendar,
            start_time=time.time(),
            original_text=message,
            _service_overrides=services,
            **kwargs,
        )
    return _make


def intent(intent_type: IntentType, text: str = "") -> ClassifiedIntent:
    return ClassifiedIntent(type=intent_type, confidence=0.9, original_text=text)


# ===========================================================================
# CREATE
# ===========================================================================

class TestCreate:
    """CREATE_EVENT with duplicate protection."""

    @pytest.mark.asyncio
    async def test_creates_event(self, handler, calendar, services, make_context, event_factory):
        calendar.create_event.return_value = event_factory(
            event_id="new-1", start=datetime(2025, 1, 16, 14, 0), location="회의실 A"
        )
        context = make_context("내일 오후 2시 회의실 A에서 팀 회의")

        result = await handler.handle(intent(IntentType.CREATE_EVENT), context)

        assert result.success is True
        assert result.result_type == IntentResultType.ACTION
        assert result.action == "create_event"
        assert result.message == '"팀 회의" 일정이 2025-01-16 14:00에 추가되었습니다.'
        assert result.data["event"]["id"] == "new-1"
        assert result.request_id == "req-1"
        assert result.confidence == 0.9

        request = calendar.create_event.call_args.args[0]
        assert request.timezone == "Asia/Seoul"
        assert request.start_datetime == datetime(2025, 1, 16, 14, 0)

        window = calendar.list_events.call_args.kwargs
        assert window["time_min"] == datetime(2025, 1, 9, 14, 0, tzinfo=SEOUL)
        assert window["time_max"] == datetime(2025, 1, 23, 14, 0, tzinfo=SEOUL)

    @pytest.mark.asyncio
    async def test_create_updates_session_state(self, handler, calendar, services, make_context, event_factory):
        created = event_factory(event_id="new-1", start=datetime(2025, 1, 16, 14, 0))
        calendar.create_event.return_value = created

        await handler.handle(intent(IntentType.CREATE_EVENT), make_context("팀 회의 추가"))

        assert [e.id for e in services["recent_cache"].get_recent_events("s")] == ["new-1"]
        assert services["event_context"].get_last_mentioned_event("s").id == "new-1"
        ai_context = services["ai_context"].get_context("s")
        assert ai_context.last_event_created.id == "new-1"
        assert ai_context.last_mentioned_location == "회의실 A"
        assert ai_context.last_mentioned_date == datetime(2025, 1, 16, 14, 0, tzinfo=SEOUL)

    @pytest.mark.asyncio
    async def test_duplicate_asks_for_confirmation(self, handler, calendar, make_context, event_factory):
        calendar.list_events.return_value = [
            event_factory(event_id="existing", summary="팀 회의", start=datetime(2025, 1, 16, 14, 0))
        ]

        result = await handler.handle(intent(IntentType.CREATE_EVENT), make_context("팀 회의 추가"))

        assert result.result_type == IntentResultType.CONFIRMATION
        assert result.requires_confirmation is True
        assert "비슷한 일정이 이미 있습니다" in result.message
        assert result.pending_action["action"] == "create_event"
        assert result.pending_action["data"]["force_create"] is True
        assert result.pending_action["data"]["title"] == "팀 회의"
        assert result.data["duplicate"]["similarity"] == 80
        calendar.create_event.assert_not_called()
        assert ai_monitor.get_stats().duplicate_warnings == 1

    @pytest.mark.asyncio
    async def test_confirmed_pending_event_skips_check(
        self, handler, calendar, extractor, make_context, event_factory
    ):
        calendar.create_event.return_value = event_factory(event_id="new-2")
        pending = {**LUNCH.model_dump(), "force_create": True}

        result = await handler.handle(
            intent(IntentType.CREATE_EVENT), make_context("네, 추가해줘", pending_event_data=pending)
        )

        assert result.result_type == IntentResultType.ACTION
        calendar.list_events.assert_not_called()
        extractor.parse_event_from_text.assert_not_called()

    @pytest.mark.asyncio
    async def test_force_create_flag(self, handler, calendar, make_context, event_factory):
        calendar.create_event.return_value = event_factory(event_id="new-3")

        result = await handler.handle(
            intent(IntentType.CREATE_EVENT), make_context("팀 회의 추가", force_create=True)
        )

        assert result.success is True
        calendar.list_events.assert_not_called()

    @pytest.mark.asyncio
    async def test_invalid_pending_data(self, handler, calendar, make_context):
        result = await handler.handle(
            intent(IntentType.CREATE_EVENT),
            make_context("yes", locale="en", pending_event_data={"title": "", "date": "soon"}),
        )

        assert result.success is False
        assert result.result_type == IntentResultType.CLARIFICATION
        assert result.message == "The event to confirm is incomplete. Please describe it again."
        calendar.create_event.assert_not_called()

    @pytest.mark.asyncio
    async def test_second_request_caught_by_recent_cache(self, handler, calendar, make_context, event_factory):
        # Google has not listed the first event yet: list_events stays empty
        calendar.create_event.return_value = event_factory(event_id="new-1", start=datetime(2025, 1, 16, 14, 0))
        await handler.handle(intent(IntentType.CREATE_EVENT), make_context("팀 회의 추가"))

        result = await handler.handle(intent(IntentType.CREATE_EVENT), make_context("팀 회의 추가"))

        assert result.result_type == IntentResultType.CONFIRMATION
        assert result.data["duplicate"]["from_cache"] is True
        assert calendar.create_event.await_count == 1


# ===========================================================================
# SEARCH
# ===========================================================================

class TestSearch:
    """SEARCH_EVENTS"""

    @pytest.mark.asyncio
    async def test_lists_events_in_resolved_range(
        self, handler, calendar, services, make_context, event_factory
    ):
        events = [
            event_factory(event_id="a", summary="팀 회의", start=datetime(2025, 1, 16, 10, 0)),
            event_factory(event_id="b", summary="치과", start=datetime(2025, 1, 16, 15, 0)),
        ]
        calendar.list_events.return_value = events

        result = await handler.handle(intent(IntentType.SEARCH_EVENTS), make_context("내일 일정 보여줘"))

        assert result.result_type == IntentResultType.DATA
        assert result.message.startswith("2개의 일정을 찾았습니다:\n1. 팀 회의")
        assert [e["id"] for e in result.data["events"]] == ["a", "b"]
        assert result.data["time_min"] == "2025-01-16T00:00:00+09:00"

        kwargs = calendar.list_events.call_args.kwargs
        assert kwargs["time_min"] == datetime(2025, 1, 16, tzinfo=SEOUL)
        assert kwargs["max_results"] == settings.SEARCH_MAX_RESULTS
        assert [e.id for e in services["event_context"].get_session_events("s")] == ["a", "b"]

    @pytest.mark.asyncio
    async def test_nothing_found(self, handler, make_context):
        result = await handler.handle(
            intent(IntentType.SEARCH_EVENTS), make_context("events this weekend?", locale="en")
        )

        assert result.success is True
        assert result.message == "No events found for the specified period."
        assert result.data["events"] == []


# ===========================================================================
# UPDATE
# ===========================================================================

class TestUpdate:
    """UPDATE_EVENT"""

    @pytest.mark.asyncio
    async def test_reschedules_selected_event(
        self, handler, calendar, extractor, services, make_context, event_factory
    ):
        original = event_factory(event_id="evt-1", summary="팀 회의", start=datetime(2025, 1, 15, 14, 0))
        calendar.get_event.return_value = original
        calendar.update_event.return_value = event_factory(
            event_id="evt-1", summary="팀 회의", start=datetime(2025, 1, 15, 15, 0)
        )
        extractor.extract_update.return_value = EventUpdate(new_time="15:00")

        result = await handler.handle(
            intent(IntentType.UPDATE_EVENT), make_context("3시로 옮겨줘", selected_event_id="evt-1")
        )

        assert result.result_type == IntentResultType.ACTION
        assert result.message == '"팀 회의" 일정을 수정했습니다. (시간)'
        assert result.data["changes"] == {"new_time": "15:00"}
        calendar.get_event.assert_awaited_once_with("evt-1")
        event_id, patch = calendar.update_event.call_args.args
        assert event_id == "evt-1"
        assert patch == {
            "start": {"dateTime": "2025-01-15T15:00:00", "timeZone": "Asia/Seoul"},
            "end": {"dateTime": "2025-01-15T16:00:00", "timeZone": "Asia/Seoul"},
        }
        assert services["ai_context"].get_context("s").last_mentioned_date == datetime(
            2025, 1, 15, 15, 0, tzinfo=SEOUL
        )

    @pytest.mark.asyncio
    async def test_referenced_event_is_refetched(
        self, handler, calendar, extractor, services, make_context, event_factory
    ):
        shown = event_factory(event_id="evt-1", summary="팀 회의")
        services["event_context"].set_session_events("s", [shown])
        calendar.get_event.return_value = shown
        calendar.update_event.return_value = shown
        extractor.extract_update.return_value = EventUpdate(location="회의실 B")

        result = await handler.handle(
            intent(IntentType.UPDATE_EVENT), make_context('"팀 회의" 일정 장소 회의실 B로 바꿔줘')
        )

        assert result.success is True
        calendar.get_event.assert_awaited_once_with("evt-1")
        assert calendar.update_event.call_args.args[1] == {"location": "회의실 B"}

    @pytest.mark.asyncio
    async def test_no_target(self, handler, make_context):
        result = await handler.handle(intent(IntentType.UPDATE_EVENT), make_context("시간 바꿔줘"))

        assert result.success is False
        assert result.result_type == IntentResultType.CLARIFICATION
        assert result.message.startswith("수정할 일정을 먼저 선택해주세요")

    @pytest.mark.asyncio
    async def test_selected_event_gone(self, handler, make_context):
        result = await handler.handle(
            intent(IntentType.UPDATE_EVENT), make_context("시간 바꿔줘", selected_event_id="gone")
        )
        assert result.message.startswith("선택한 일정을 찾을 수 없습니다")

    @pytest.mark.asyncio
    async def test_nothing_to_change(self, handler, calendar, make_context, event_factory):
        calendar.get_event.return_value = event_factory()

        result = await handler.handle(
            intent(IntentType.UPDATE_EVENT), make_context("음 바꿔줘", selected_event_id="evt-1")
        )

        assert result.result_type == IntentResultType.CLARIFICATION
        assert result.data["event"]["id"] == "evt-1"
        calendar.update_event.assert_not_called()


# ===========================================================================
# DELETE
# ===========================================================================

class TestDelete:
    """DELETE_EVENT with confirmation."""

    @pytest.mark.asyncio
    async def test_asks_before_deleting(self, handler, calendar, make_context, event_factory):
        calendar.get_event.return_value = event_factory(summary="팀 회의")

        result = await handler.handle(
            intent(IntentType.DELETE_EVENT), make_context("이거 없애줘", selected_event_id="evt-1")
        )

        assert result.result_type == IntentResultType.CONFIRMATION
        assert result.message == '"팀 회의" 일정을 삭제할까요?'
        assert result.pending_action == {"action": "delete_event", "event_id": "evt-1", "message": "삭제"}
        calendar.delete_event.assert_not_called()

    @pytest.mark.parametrize("message,locale,expected", [
        ("이 일정 삭제해줘", "ko", '"팀 회의" 일정이 삭제되었습니다.'),
        ("remove it", "en", '"팀 회의" has been deleted.'),
    ])
    @pytest.mark.asyncio
    async def test_deletes_with_keyword(
        self, handler, calendar, services, make_context, event_factory, message, locale, expected
    ):
        event = event_factory(summary="팀 회의")
        calendar.get_event.return_value = event
        services["event_context"].record_event_action("s", "create", event)

        result = await handler.handle(
            intent(IntentType.DELETE_EVENT), make_context(message, locale=locale, selected_event_id="evt-1")
        )

        assert result.result_type == IntentResultType.ACTION
        assert result.message == expected
        calendar.delete_event.assert_awaited_once_with("evt-1")
        assert services["event_context"].get_last_mentioned_event("s") is None

    @pytest.mark.asyncio
    async def test_no_target(self, handler, make_context):
        result = await handler.handle(
            intent(IntentType.DELETE_EVENT), make_context("delete that", locale="en")
        )
        assert result.message.startswith("Please select the event to delete first.")


# ===========================================================================
# ERRORS
# ===========================================================================

class TestCalendarErrors:
    """Calendar failures become ERROR results."""

    @pytest.mark.parametrize("error,message", [
        (AuthenticationError("expired", status_code=401), "Google 캘린더 인증이 만료되었습니다"),
        (ScopeNotGrantedError("scope", status_code=403), "Google 캘린더 인증이 만료되었습니다"),
        (APIError("boom", status_code=500), "캘린더 요청 중 오류가 발생했습니다"),
        (RuntimeError("bug"), "요청을 처리하는 중 오류가 발생했습니다"),
    ])
    @pytest.mark.asyncio
    async def test_error_mapping(self, handler, calendar, make_context, error, message):
        calendar.list_events.side_effect = error

        result = await handler.handle(intent(IntentType.SEARCH_EVENTS), make_context("오늘 일정"))

        assert result.success is False
        assert result.result_type == IntentResultType.ERROR
        assert result.message.startswith(message)
        assert result.intent_type == "SEARCH_EVENTS"


# ===========================================================================
# PATCH BUILDING
# ===========================================================================

class TestBuildUpdatePatch:
    """events.patch bodies."""

    def test_text_fields_only(self, event_factory):
        update = EventUpdate(summary="주간 회의", description="안건 공유")
        assert build_update_patch(event_factory(), update, "Asia/Seoul") == {
            "summary": "주간 회의",
            "description": "안건 공유",
        }

    def test_new_date_keeps_time_and_duration(self, event_factory):
        event = event_factory(start=datetime(2025, 1, 15, 14, 0), end=datetime(2025, 1, 15, 15, 30))

        patch = build_update_patch(event, EventUpdate(new_date="2025-01-20"), "Asia/Seoul")

        assert patch["start"]["dateTime"] == "2025-01-20T14:00:00"
        assert patch["end"]["dateTime"] == "2025-01-20T15:30:00"

    def test_all_day_event_moved_to_another_day(self, event_factory):
        event = event_factory(all_day_date="2025-01-15")

        patch = build_update_patch(event, EventUpdate(new_date="2025-01-18"), "Asia/Seoul")

        assert patch == {"start": {"date": "2025-01-18"}, "end": {"date": "2025-01-19"}}

    def test_all_day_event_given_a_time(self, event_factory):
        event = event_factory(all_day_date="2025-01-15")

        patch = build_update_patch(event, EventUpdate(new_time="10:00"), "Asia/Seoul")

        assert patch["start"] == {"dateTime": "2025-01-15T10:00:00", "timeZone": "Asia/Seoul", "date": None}
        assert patch["end"] == {"dateTime": "2025-01-15T11:00:00", "timeZone": "Asia/Seoul", "date": None}
