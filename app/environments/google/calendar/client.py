"""
Google Calendar API Client - Fetch and manage calendar events.

This client wraps the Calendar v3 REST API with httpx. It handles
authentication headers, error mapping and response parsing; it does not
obtain or refresh OAuth tokens.

Key Features:
=============
1. List events in a time range (recurring events expanded, ordered by start)
2. Get / create / patch / delete single events on the primary calendar
3. Errors surface as APIError subclasses with the HTTP status attached

API Reference:
==============
- Events API: https://developers.google.com/calendar/api/v3/reference/events

Usage Example:
==============
    from app.environments.google.calendar import GoogleCalendarClient

    client = GoogleCalendarClient(access_token="ya29.xxx")

    events = await client.list_events(time_min=start, time_max=end)
    for event in events:
        print(f"{event.get_time_display()} - {event.get_display_title()}")
"""

import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

import httpx

from app.core.timeutils import to_rfc3339
from app.environments.base import (
    APIError,
    AuthenticationError,
    EnvironmentService,
    ScopeNotGrantedError,
)
from app.environments.google.calendar.schemas import (
    CalendarEvent,
    CalendarEventsResponse,
    EventCreateRequest,
)


logger = logging.getLogger("calendar_ai.environments.google.calendar")


class GoogleCalendarClient(EnvironmentService):
    """
    Google Calendar API client.

    Attributes:
        access_token: Google OAuth access token with calendar.events scope

    Example:
        client = GoogleCalendarClient(access_token="ya29.xxx")
        event = await client.get_event("abc123")
    """

    service_name = "calendar"
    required_scopes = [
        "https://www.googleapis.com/auth/calendar.events",
    ]

    BASE_URL = "https://www.googleapis.com/calendar/v3"

    # Upper bound enforced by the API for events.list
    MAX_RESULTS_LIMIT = 2500

    def __init__(
        self,
        access_token: str,
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """
        Initialize the Calendar client.

        Args:
            access_token: Valid Google OAuth access token with calendar scope
            timeout: Per-request timeout in seconds
            transport: Optional httpx transport (tests use httpx.MockTransport)
        """
        self.access_token = access_token
        self.timeout = timeout
        self._transport = transport

    # -------------------------------------------------------------------------
    # HTTP
    # -------------------------------------------------------------------------

    def _get_headers(self) -> dict:
        return {
            "Authorization": f"Bearer {self.access_token}",
            "Accept": "application/json",
        }

    async def _request(
        self,
        method: str,
        endpoint: str,
        params: Optional[dict] = None,
        json: Optional[dict] = None,
    ) -> Dict[str, Any]:
        """
        Make an authenticated request to the Calendar API.

        Returns:
            Parsed JSON response ({} for empty bodies, e.g. DELETE)

        Raises:
            AuthenticationError: 401, the token is expired or revoked
            ScopeNotGrantedError: 403, the calendar scope is missing
            APIError: Any other non-2xx status or a network failure
        """
        url = f"{self.BASE_URL}{endpoint}"

        async with httpx.AsyncClient(transport=self._transport, timeout=self.timeout) as client:
            try:
                response = await client.request(
                    method=method,
                    url=url,
                    headers=self._get_headers(),
                    params=params,
                    json=json,
                )
            except httpx.RequestError as e:
                logger.error(f"Calendar API network error: {e}")
                raise APIError(f"Network error: {e}")

        if response.status_code == 401:
            logger.error("Calendar API: Unauthorized (token may be expired)")
            raise AuthenticationError(
                "Unauthorized - access token may be expired",
                status_code=401,
                response=response.text,
            )

        if response.status_code == 403:
            logger.error("Calendar API: Forbidden (scope may be missing)")
            raise ScopeNotGrantedError(
                "Forbidden - calendar scope may not be granted",
                status_code=403,
                response=response.text,
            )

        if response.status_code >= 400:
            logger.error(f"Calendar API error: {response.status_code} - {response.text[:200]}")
            raise APIError(
                f"Calendar API error: {response.status_code}",
                status_code=response.status_code,
                response=response.text,
            )

        if response.status_code == 204 or not response.content:
            return {}
        return response.json()

    # -------------------------------------------------------------------------
    # READ
    # -------------------------------------------------------------------------

    async def list_events(
        self,
        time_min: datetime,
        time_max: Optional[datetime] = None,
        max_results: int = 250,
        query: Optional[str] = None,
        calendar_id: str = "primary",
    ) -> List[CalendarEvent]:
        """
        List events between time_min and time_max.

        Recurring events are expanded into instances and the result is
        ordered by start time.

        Args:
            time_min: Inclusive lower bound (aware datetimes recommended)
            time_max: Exclusive upper bound, or None for open-ended
            max_results: Maximum number of events to return
            query: Optional free-text filter (API "q" parameter)
        """
        params = {
            "maxResults": min(max_results, self.MAX_RESULTS_LIMIT),
            "timeMin": to_rfc3339(time_min),
            "singleEvents": "true",
            "orderBy": "startTime",
        }
        if time_max:
            params["timeMax"] = to_rfc3339(time_max)
        if query:
            params["q"] = query

        logger.info(
            "Fetching calendar events",
            extra={
                "calendar_id": calendar_id,
                "max_results": max_results,
                "time_min": params["timeMin"],
                "time_max": params.get("timeMax"),
            }
        )

        data = await self._request("GET", f"/calendars/{calendar_id}/events", params=params)
        events = CalendarEventsResponse(**data).items
        events = [e for e in events if e.status != "cancelled"]

        logger.info(f"Fetched {len(events)} calendar events")
        return events

    async def list_upcoming_events(
        self,
        max_results: int = 10,
        time_max: Optional[datetime] = None,
        calendar_id: str = "primary",
    ) -> List[CalendarEvent]:
        """Events from now on; used to give the classifier recent context."""
        return await self.list_events(
            time_min=datetime.now(timezone.utc),
            time_max=time_max,
            max_results=max_results,
            calendar_id=calendar_id,
        )

    async def get_event(
        self,
        event_id: str,
        calendar_id: str = "primary",
    ) -> Optional[CalendarEvent]:
        """
        Get a single calendar event by ID.

        Returns:
            CalendarEvent if found, None if the API answers 404 or 410

        Raises:
            APIError: For any other failure
        """
        try:
            data = await self._request("GET", f"/calendars/{calendar_id}/events/{event_id}")
        except APIError as e:
            if e.status_code in (404, 410):
                logger.info(f"Event not found: {event_id}")
                return None
            raise
        return CalendarEvent(**data)

    async def validate_access(self) -> bool:
        """Cheap probe: list one event; False on 401/403."""
        try:
            await self.list_upcoming_events(max_results=1)
            return True
        except (AuthenticationError, ScopeNotGrantedError):
            return False

    # -------------------------------------------------------------------------
    # WRITE
    # -------------------------------------------------------------------------

    async def create_event(
        self,
        request: EventCreateRequest,
        calendar_id: str = "primary",
    ) -> CalendarEvent:
        """Insert a timed event and return the stored resource."""
        body = request.to_api_body()

        logger.info(
            "Creating calendar event",
            extra={
                "summary": request.summary,
                "start": body["start"]["dateTime"],
                "timezone": request.timezone,
            }
        )

        data = await self._request("POST", f"/calendars/{calendar_id}/events", json=body)
        event = CalendarEvent(**data)

        logger.info(f"Created event: {event.id}")
        return event

    async def update_event(
        self,
        event_id: str,
        patch: Dict[str, Any],
        calendar_id: str = "primary",
    ) -> CalendarEvent:
        """
        PATCH an event with a partial body (events.patch semantics).

        Raises:
            ValueError: If patch is empty
            APIError: If the event does not exist or the update fails
        """
        if not patch:
            raise ValueError("No updates provided")

        logger.info(
            "Updating calendar event",
            extra={"event_id": event_id, "fields": sorted(patch.keys())}
        )

        data = await self._request(
            "PATCH", f"/calendars/{calendar_id}/events/{event_id}", json=patch
        )
        return CalendarEvent(**data)

    async def delete_event(
        self,
        event_id: str,
        calendar_id: str = "primary",
    ) -> bool:
        """
        Delete a calendar event.

        Returns:
            True if deleted

        Raises:
            APIError: If deletion fails
        """
        logger.info(
            "Deleting calendar event",
            extra={"event_id": event_id, "calendar_id": calendar_id}
        )

        await self._request("DELETE", f"/calendars/{calendar_id}/events/{event_id}")

        logger.info(f"Deleted event: {event_id}")
        return True
