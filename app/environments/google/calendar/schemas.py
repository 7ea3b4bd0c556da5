"""
Google Calendar Schemas - Data structures for calendar operations.

These Pydantic models mirror the Google Calendar API event resource in a
typed form. Field aliases (dateTime, timeZone, ...) match the wire format,
so API payloads can be validated directly: CalendarEvent(**item).

Reference: https://developers.google.com/calendar/api/v3/reference/events
"""

from datetime import datetime, timedelta, time
from typing import Optional, List, Dict, Any

from pydantic import BaseModel, ConfigDict, Field

from app.core.timeutils import get_zone


class EventTime(BaseModel):
    """
    Event start or end time.

    Google Calendar uses one of two formats:
    - dateTime: For timed events (e.g., "2025-01-15T10:00:00+09:00")
    - date: For all-day events (e.g., "2025-01-15")
    """
    model_config = ConfigDict(populate_by_name=True)

    date_time: Optional[datetime] = Field(None, alias="dateTime")
    date: Optional[str] = Field(None)
    time_zone: Optional[str] = Field(None, alias="timeZone")

    def is_all_day(self) -> bool:
        """Check if this is an all-day event (date only, no time)."""
        return self.date is not None and self.date_time is None

    def to_local(self, tz_name: Optional[str] = None) -> Optional[datetime]:
        """
        Resolve to an aware datetime in the given zone.

        All-day dates become local midnight. A naive dateTime is read in
        its own timeZone field, or in tz_name when that is missing too.
        """
        zone = get_zone(tz_name)
        if self.date_time:
            value = self.date_time
            if value.tzinfo is None:
                value = value.replace(tzinfo=get_zone(self.time_zone or tz_name))
            return value.astimezone(zone)
        if self.date:
            day = datetime.strptime(self.date, "%Y-%m-%d").date()
            return datetime.combine(day, time(0, 0), tzinfo=zone)
        return None


class EventAttendee(BaseModel):
    """A person invited to a calendar event."""
    model_config = ConfigDict(populate_by_name=True)

    email: str = Field(..., description="Attendee's email address")
    display_name: Optional[str] = Field(None, alias="displayName")
    organizer: Optional[bool] = Field(False)
    self_: Optional[bool] = Field(False, alias="self")
    response_status: Optional[str] = Field(None, alias="responseStatus")


class CalendarEvent(BaseModel):
    """
    A Google Calendar event.

    Contains the fields the assistant reads: title, times, place, people.
    Unknown API fields are ignored.
    """
    model_config = ConfigDict(populate_by_name=True)

    id: str = Field(..., description="Unique event identifier")
    summary: Optional[str] = Field(None, description="Event title")
    description: Optional[str] = Field(None)
    location: Optional[str] = Field(None)

    start: Optional[EventTime] = Field(None)
    end: Optional[EventTime] = Field(None)

    status: Optional[str] = Field(None, description="confirmed, tentative, cancelled")
    html_link: Optional[str] = Field(None, alias="htmlLink")
    attendees: Optional[List[EventAttendee]] = Field(None)
    recurring_event_id: Optional[str] = Field(None, alias="recurringEventId")
    created: Optional[datetime] = Field(None)
    updated: Optional[datetime] = Field(None)

    def is_all_day(self) -> bool:
        if self.start:
            return self.start.is_all_day()
        return False

    def get_display_title(self) -> str:
        return self.summary or "(No title)"

    def start_datetime(self, tz_name: Optional[str] = None) -> Optional[datetime]:
        if not self.start:
            return None
        return self.start.to_local(tz_name)

    def end_datetime(self, tz_name: Optional[str] = None) -> Optional[datetime]:
        """End in tz_name; missing ends default to 1 hour (or 1 day if all-day)."""
        if self.end:
            value = self.end.to_local(tz_name)
            if value:
                return value
        start = self.start_datetime(tz_name)
        if start is None:
            return None
        return start + (timedelta(days=1) if self.is_all_day() else timedelta(hours=1))

    def duration_minutes(self) -> int:
        start, end = self.start_datetime(), self.end_datetime()
        if not start or not end:
            return 60
        return max(int((end - start).total_seconds() // 60), 0)

    def attendee_emails(self) -> List[str]:
        return [a.email for a in (self.attendees or [])]

    def get_time_display(self, tz_name: Optional[str] = None, locale: str = "en") -> str:
        """'14:00' for timed events, a localized all-day label otherwise."""
        if not self.start:
            return ""
        if self.is_all_day():
            return "종일" if locale == "ko" else "All day"
        start_dt = self.start_datetime(tz_name)
        return start_dt.strftime("%H:%M") if start_dt else ""

    def to_summary_dict(self, tz_name: Optional[str] = None) -> Dict[str, Any]:
        """Compact, JSON-safe view used in API responses and prompts."""
        start_dt = self.start_datetime(tz_name)
        end_dt = self.end_datetime(tz_name)
        return {
            "id": self.id,
            "summary": self.get_display_title(),
            "start": start_dt.isoformat() if start_dt else None,
            "end": end_dt.isoformat() if end_dt else None,
            "is_all_day": self.is_all_day(),
            "location": self.location,
            "description": self.description,
            "attendees": self.attendee_emails(),
            "html_link": self.html_link,
        }


class CalendarEventsResponse(BaseModel):
    """Response from the Calendar Events list API."""
    model_config = ConfigDict(populate_by_name=True)

    kind: Optional[str] = Field(None)
    summary: Optional[str] = Field(None, description="Calendar title")
    time_zone: Optional[str] = Field(None, alias="timeZone")
    items: List[CalendarEvent] = Field(default_factory=list)
    next_page_token: Optional[str] = Field(None, alias="nextPageToken")


# ---------------------------------------------------------------------------
# EVENT CREATION
# ---------------------------------------------------------------------------

WALL_CLOCK_FORMAT = "%Y-%m-%dT%H:%M:%S"


class EventCreateRequest(BaseModel):
    """
    Request schema for creating a timed calendar event.

    Start and end are local wall-clock times in `timezone`. They are sent
    unconverted together with timeZone, so Google stores "14:00 in Seoul"
    regardless of the server's own zone.

        EventCreateRequest.from_local(
            summary="팀 회의",
            start=datetime(2025, 1, 15, 14, 0),
            duration_minutes=60,
            timezone="Asia/Seoul",
        )
    """
    summary: str = Field(..., description="Event title/summary")
    start_datetime: datetime = Field(..., description="Local wall-clock start (naive)")
    end_datetime: datetime = Field(..., description="Local wall-clock end (naive)")
    timezone: str = Field(default="UTC", description="IANA zone of the wall-clock times")
    location: Optional[str] = Field(None)
    description: Optional[str] = Field(None)
    attendees: List[str] = Field(default_factory=list)

    @classmethod
    def from_local(
        cls,
        summary: str,
        start: datetime,
        duration_minutes: int,
        timezone: str,
        location: Optional[str] = None,
        description: Optional[str] = None,
        attendees: Optional[List[str]] = None,
    ) -> "EventCreateRequest":
        """Build from a start and a duration; the end may roll past midnight."""
        start = start.replace(tzinfo=None, second=0, microsecond=0)
        return cls(
            summary=summary,
            start_datetime=start,
            end_datetime=start + timedelta(minutes=duration_minutes),
            timezone=timezone,
            location=location,
            description=description,
            attendees=attendees or [],
        )

    def to_api_body(self) -> Dict[str, Any]:
        """Google Calendar events.insert body."""
        body: Dict[str, Any] = {
            "summary": self.summary,
            "start": {
                "dateTime": self.start_datetime.strftime(WALL_CLOCK_FORMAT),
                "timeZone": self.timezone,
            },
            "end": {
                "dateTime": self.end_datetime.strftime(WALL_CLOCK_FORMAT),
                "timeZone": self.timezone,
            },
        }
        if self.location:
            body["location"] = self.location
        if self.description:
            body["description"] = self.description
        if self.attendees:
            body["attendees"] = [{"email": email} for email in self.attendees]
        return body
