"""
Google Calendar integration.

    from app.environments.google.calendar import GoogleCalendarClient

    client = GoogleCalendarClient(access_token="ya29.xxx")
    events = await client.list_upcoming_events(max_results=10)
"""

from app.environments.google.calendar.client import GoogleCalendarClient
from app.environments.google.calendar.schemas import (
    CalendarEvent,
    CalendarEventsResponse,
    EventAttendee,
    EventCreateRequest,
    EventTime,
)

__all__ = [
    "GoogleCalendarClient",
    "CalendarEvent",
    "CalendarEventsResponse",
    "EventAttendee",
    "EventCreateRequest",
    "EventTime",
]
