"""
Assistant Router - the /ai endpoints of the calendar assistant.

HTTP handling only. Chat goes through IntentService; the other routes
call the individual services directly.

```
┌──────────────────┐
│ "내일 3시 회의"   │
└────────┬─────────┘
         ▼
┌──────────────────┐
│ Assistant Router │  ← auth, locale, HTTP errors (this file)
└────────┬─────────┘
         ▼
┌──────────────────┐
│  IntentService   │  ← classify + dispatch
└────────┬─────────┘
   ┌─────┴──────┐
   ▼            ▼
 Gemini   Google Calendar
```

Every route needs a JWT (Authorization header) and a Google OAuth
token (X-Google-Access-Token header), except /ai/stats which needs only
the JWT.
"""

import base64
import binascii
import logging
from datetime import timedelta
from typing import Optional, Tuple

from fastapi import APIRouter, Depends, HTTPException, Query, status

from app.ai.intent.extractor import event_extractor
from app.ai.intent.schemas import UserContext
from app.ai.monitoring import ai_monitor
from app.ai.prompts.helpers import SUPPORTED_LANGUAGES, localize, resolve_locale
from app.core.config import settings
from app.core.timeutils import day_bounds, ensure_aware, is_valid_timezone, now_in
from app.deps import get_calendar_client, get_current_user
from app.environments.base import APIError, AuthenticationError, ScopeNotGrantedError
from app.environments.google.calendar.client import GoogleCalendarClient
from app.models.user import User
from app.schemas.chat import (
    ChatRequest,
    ChatResponse,
    DailyBriefingResponse,
    DuplicateCheckRequest,
    DuplicateCheckResponse,
    EventBriefingResponse,
    FreeSlotsResponse,
    ParseImageRequest,
    ParseImageResponse,
    SuggestionsResponse,
)
from app.services.ai_context_manager import ai_context_manager
from app.services.briefing_service import FREE_DAY_MESSAGE, briefing_service
from app.services.duplicate_checker import check_duplicate_event_with_cache, format_duplicate_warning
from app.services.intent_service import intent_service


logger = logging.getLogger("calendar_ai.routers.assistant")

router = APIRouter(prefix="/ai", tags=["assistant"])

# Events this close to a candidate are compared in duplicate checks
DUPLICATE_WINDOW = timedelta(days=7)

# Past events used to learn the user's habits for suggestions
PATTERN_LOOKBACK = timedelta(days=30)

FREE_SLOT_WINDOW = timedelta(days=7)


# ---------------------------------------------------------------------------
# HELPER FUNCTIONS
# ---------------------------------------------------------------------------

def _resolve_user_settings(
    user: User,
    timezone: Optional[str] = None,
    locale: Optional[str] = None,
    message: str = "",
) -> Tuple[str, str]:
    """
    (timezone, locale) for this request.

    Request values win over the profile; a missing locale is detected
    from the message itself.
    """
    if timezone is not None and not is_valid_timezone(timezone):
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail=f"Unknown timezone: {timezone}",
        )
    if locale is not None and locale not in SUPPORTED_LANGUAGES:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail=f"Unsupported locale: {locale}",
        )
    tz_name = timezone or user.timezone or settings.DEFAULT_TIMEZONE
    return tz_name, resolve_locale(locale or user.locale, message)


def _calendar_http_error(e: APIError) -> HTTPException:
    """Map a Google Calendar failure onto an HTTP error."""
    if isinstance(e, AuthenticationError):
        return HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Google access token is invalid or expired",
        )
    if isinstance(e, ScopeNotGrantedError):
        return HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Google Calendar access was not granted",
        )
    return HTTPException(
        status_code=status.HTTP_502_BAD_GATEWAY,
        detail=f"Google Calendar error: {e}",
    )


# ---------------------------------------------------------------------------
# CHAT
# ---------------------------------------------------------------------------

@router.post("/chat", response_model=ChatResponse)
async def chat(
    request: ChatRequest,
    current_user: User = Depends(get_current_user),
    calendar: GoogleCalendarClient = Depends(get_calendar_client),
):
    """
    Process one chat message.

    **Examples:**
    - "내일 오후 3시 팀 회의 추가해줘"
    - "이번 주 일정 보여줘"
    - "회의 시간 4시로 바꿔줘"
    - "오늘 브리핑 해줘"
    - "Add lunch with Jisoo tomorrow at noon"
    """
    tz_name, locale = _resolve_user_settings(
        current_user, request.timezone, request.locale, request.message
    )
    context = UserContext(
        session_id=str(current_user.id),
        current_time=now_in(tz_name),
        timezone=tz_name,
        locale=locale,
    )

    try:
        result = await intent_service.process_message(
            message=request.message,
            context=context,
            selected_event_id=request.selected_event_id,
            pending_event_data=request.pending_event_data,
            force_create=request.force_create,
            calendar=calendar,
        )
    except Exception as e:
        logger.error(f"Failed to process chat message: {e}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to process message: {str(e)}",
        )

    return ChatResponse(**result.to_dict())


# ---------------------------------------------------------------------------
# IMAGE PARSING
# ---------------------------------------------------------------------------

@router.post("/parse-image", response_model=ParseImageResponse)
async def parse_image(
    request: ParseImageRequest,
    current_user: User = Depends(get_current_user),
    calendar: GoogleCalendarClient = Depends(get_calendar_client),
):
    """Extract an event from a poster, invitation or screenshot."""
    try:
        image = base64.b64decode(request.image_base64, validate=True)
    except (binascii.Error, ValueError):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="image_base64 is not valid base64",
        )

    tz_name, _ = _resolve_user_settings(current_user, request.timezone)
    event = await event_extractor.parse_event_from_image(
        image, request.mime_type, tz_name, now=now_in(tz_name)
    )
    if event is None:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail="No event could be recognized in the image",
        )
    return ParseImageResponse(event=event)


# ---------------------------------------------------------------------------
# DUPLICATE CHECK
# ---------------------------------------------------------------------------

@router.post("/duplicates/check", response_model=DuplicateCheckResponse)
async def check_duplicates(
    request: DuplicateCheckRequest,
    current_user: User = Depends(get_current_user),
    calendar: GoogleCalendarClient = Depends(get_calendar_client),
):
    """
    Compare an event with the calendar and with events this user created
    in the last few minutes.
    """
    tz_name, locale = _resolve_user_settings(
        current_user, request.timezone, request.locale, request.event.title
    )
    start = ensure_aware(request.event.start_local(), tz_name)

    try:
        existing = await calendar.list_events(
            time_min=start - DUPLICATE_WINDOW,
            time_max=start + DUPLICATE_WINDOW,
        )
    except APIError as e:
        raise _calendar_http_error(e)

    result = check_duplicate_event_with_cache(
        request.event,
        existing,
        str(current_user.id),
        timezone=tz_name,
        locale=locale,
    )
    return DuplicateCheckResponse(
        **result.to_dict(tz_name),
        warning=format_duplicate_warning(result, locale),
    )


# ---------------------------------------------------------------------------
# BRIEFINGS
# ---------------------------------------------------------------------------

@router.get("/briefing", response_model=DailyBriefingResponse)
async def get_daily_briefing(
    timezone: Optional[str] = None,
    locale: Optional[str] = None,
    current_user: User = Depends(get_current_user),
    calendar: GoogleCalendarClient = Depends(get_calendar_client),
):
    """Summary of today's events."""
    tz_name, locale = _resolve_user_settings(current_user, timezone, locale)
    now = now_in(tz_name)
    start, end = day_bounds(now.date(), tz_name)

    try:
        events = await calendar.list_events(time_min=start, time_max=end)
    except APIError as e:
        raise _calendar_http_error(e)

    if not events:
        return DailyBriefingResponse(briefing=localize(locale, FREE_DAY_MESSAGE))

    briefing = await briefing_service.generate_daily_briefing(
        events, locale=locale, now=now, timezone=tz_name
    )
    if briefing is None:
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail="Briefing generation failed",
        )
    return DailyBriefingResponse(
        briefing=briefing,
        events=[e.to_summary_dict(tz_name) for e in events],
    )


@router.get("/briefing/{event_id}", response_model=EventBriefingResponse)
async def get_event_briefing(
    event_id: str,
    timezone: Optional[str] = None,
    locale: Optional[str] = None,
    current_user: User = Depends(get_current_user),
    calendar: GoogleCalendarClient = Depends(get_calendar_client),
):
    """Preparation notes for one event."""
    tz_name, locale = _resolve_user_settings(current_user, timezone, locale)

    try:
        event = await calendar.get_event(event_id)
    except APIError as e:
        raise _calendar_http_error(e)

    if event is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Event not found",
        )

    briefing = await briefing_service.generate_event_briefing(
        event, now=now_in(tz_name), locale=locale, timezone=tz_name
    )
    return EventBriefingResponse(**briefing.to_dict())


# ---------------------------------------------------------------------------
# SUGGESTIONS AND FREE SLOTS
# ---------------------------------------------------------------------------

@router.get("/suggestions", response_model=SuggestionsResponse)
async def get_suggestions(
    timezone: Optional[str] = None,
    locale: Optional[str] = None,
    current_user: User = Depends(get_current_user),
    calendar: GoogleCalendarClient = Depends(get_calendar_client),
):
    """Follow-up prompts based on the time of day and the user's habits."""
    tz_name, locale = _resolve_user_settings(current_user, timezone, locale)
    session_id = str(current_user.id)
    now = now_in(tz_name)

    try:
        if ai_context_manager.get_pattern(session_id) is None:
            past = await calendar.list_events(time_min=now - PATTERN_LOOKBACK, time_max=now)
            ai_context_manager.learn_user_pattern(session_id, past, tz_name)
        upcoming = await calendar.list_upcoming_events(max_results=10)
    except APIError as e:
        raise _calendar_http_error(e)

    return SuggestionsResponse(
        suggestions=ai_context_manager.generate_smart_suggestions(session_id, now, upcoming, locale)
    )


@router.get("/free-slots", response_model=FreeSlotsResponse)
async def get_free_slots(
    duration: int = Query(default=60, ge=15, le=8 * 60),
    timezone: Optional[str] = None,
    current_user: User = Depends(get_current_user),
    calendar: GoogleCalendarClient = Depends(get_calendar_client),
):
    """Up to three free slots of `duration` minutes within working hours."""
    tz_name, _ = _resolve_user_settings(current_user, timezone)
    now = now_in(tz_name)

    try:
        events = await calendar.list_events(time_min=now, time_max=now + FREE_SLOT_WINDOW)
    except APIError as e:
        raise _calendar_http_error(e)

    slots = ai_context_manager.suggest_optimal_time(duration, events, str(current_user.id), now)
    return FreeSlotsResponse(duration=duration, slots=slots)


# ---------------------------------------------------------------------------
# MONITORING
# ---------------------------------------------------------------------------

@router.get("/stats")
async def get_ai_stats(
    current_user: User = Depends(get_current_user),
):
    """
    AI usage statistics: requests, tokens, estimated cost, intents,
    errors by stage and duplicate warnings.
    """
    return ai_monitor.get_stats().to_dict()
