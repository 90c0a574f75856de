"""Calendar ingestion: iCalendar parsing and .ics / CalDAV fetching."""

from .caldav_fetcher import (
    CalendarFetcher,
    CalendarFetchError,
    CalendarSourceUnreachableError,
    MalformedCalendarPayloadError,
)
from .ical_parser import IcalParser, parse_ical_date, parse_icalendar
from .models import CalendarEvent, OccupancyResult, RoomCalendarSource

__all__ = [
    "CalendarEvent",
    "CalendarFetchError",
    "CalendarFetcher",
    "CalendarSourceUnreachableError",
    "IcalParser",
    "MalformedCalendarPayloadError",
    "OccupancyResult",
    "RoomCalendarSource",
    "parse_ical_date",
    "parse_icalendar",
]
