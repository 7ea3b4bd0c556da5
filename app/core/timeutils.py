"""
Timezone helpers shared by the date parser, calendar client and handlers.

All "local" reasoning (today, tomorrow, 3시) happens in the user's IANA
timezone. Google Calendar receives either RFC3339 instants (for list
queries) or wall-clock strings plus a timeZone field (for event bodies).
"""

from datetime import date, datetime, time, timedelta, timezone
from typing import Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from app.core.config import settings


def is_valid_timezone(name: str) -> bool:
    try:
        ZoneInfo(name)
        return True
    except (ZoneInfoNotFoundError, ValueError):
        return False


def get_zone(name: Optional[str] = None) -> ZoneInfo:
    """Resolve an IANA name, falling back to DEFAULT_TIMEZONE and then UTC."""
    for candidate in (name, settings.DEFAULT_TIMEZONE):
        if candidate and is_valid_timezone(candidate):
            return ZoneInfo(candidate)
    return ZoneInfo("UTC")


def now_in(tz_name: Optional[str] = None) -> datetime:
    return datetime.now(get_zone(tz_name))


def ensure_aware(value: datetime, tz_name: Optional[str] = None) -> datetime:
    """Attach the user's zone to a naive datetime; leave aware ones alone."""
    if value.tzinfo is None:
        return value.replace(tzinfo=get_zone(tz_name))
    return value


def to_local_naive(value: datetime, tz_name: Optional[str] = None) -> datetime:
    """Convert to the user's wall clock and drop tzinfo (for comparisons)."""
    if value.tzinfo is None:
        return value
    return value.astimezone(get_zone(tz_name)).replace(tzinfo=None)


def start_of_day(value: datetime) -> datetime:
    return value.replace(hour=0, minute=0, second=0, microsecond=0)


def day_bounds(day: date, tz_name: Optional[str] = None) -> tuple[datetime, datetime]:
    """Local midnight to the next local midnight for a calendar day."""
    zone = get_zone(tz_name)
    start = datetime.combine(day, time(0, 0), tzinfo=zone)
    return start, start + timedelta(days=1)


def to_rfc3339(value: datetime) -> str:
    """Format an instant for Google Calendar query params (timeMin/timeMax)."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.isoformat()


def parse_iso(value: str) -> datetime:
    """Parse an RFC3339/ISO string, accepting the trailing 'Z' form."""
    if value.endswith("Z"):
        value = value[:-1] + "+00:00"
    return datetime.fromisoformat(value)


def js_weekday(value: datetime | date) -> int:
    """Weekday with Sunday=0 ... Saturday=6."""
    return (value.weekday() + 1) % 7
