"""Line-oriented iCalendar parser producing CalendarEvent records.

Only the handful of VEVENT properties the occupancy display needs are read.
Text values are passed through exactly as they appear on the line: backslash
escapes are not decoded and folded continuation lines are not joined.
"""

import datetime
import logging
import re
from typing import Any, Optional

from dateutil import parser as date_parser

from ..core.timezone_utils import get_local_timezone
from .models import CalendarEvent

logger = logging.getLogger(__name__)

# Positional layout of a basic-format date-time: YYYYMMDDTHHMMSS[Z]
MIN_DATETIME_LENGTH = 15

_ORGANIZER_CN_RE = re.compile(r"CN=([^;:]+)")

_SUMMARY_PREFIX = "SUMMARY:"
_DESCRIPTION_PREFIX = "DESCRIPTION:"


def parse_ical_date(
    value: str,
    tz: datetime.tzinfo,
    honor_utc_marker: bool = False,
) -> Optional[datetime.datetime]:
    """Parse an iCalendar date or date-time value into an aware datetime.

    Values of 15 characters or more are sliced positionally as
    ``YYYYMMDDTHHMMSS[Z]`` and read as wall-clock time in ``tz``. A trailing
    ``Z`` is only honoured as UTC when ``honor_utc_marker`` is set. Shorter
    values (e.g. ``VALUE=DATE`` days) go through dateutil's free-form parser.

    Args:
        value: Raw property value (text after the last colon)
        tz: Timezone for floating values
        honor_utc_marker: Interpret a trailing ``Z`` as UTC

    Returns:
        Timezone-aware datetime, or None when the value cannot be parsed
    """
    if len(value) >= MIN_DATETIME_LENGTH:
        try:
            parsed = datetime.datetime(
                int(value[0:4]),
                int(value[4:6]),
                int(value[6:8]),
                int(value[9:11]),
                int(value[11:13]),
                int(value[13:15]),
            )
        except ValueError:
            logger.debug("Unparseable iCalendar date-time %r", value)
            return None

        if value.endswith("Z"):
            if honor_utc_marker:
                return parsed.replace(tzinfo=datetime.timezone.utc)
            logger.debug("UTC marker on %r read as local time", value)
        return parsed.replace(tzinfo=tz)

    try:
        parsed = date_parser.parse(value)
    except (ValueError, OverflowError):
        logger.debug("Unparseable iCalendar date %r", value)
        return None

    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=tz)
    return parsed


class IcalParser:
    """Extracts VEVENT blocks from iCalendar text."""

    def __init__(
        self,
        tz: Optional[datetime.tzinfo] = None,
        honor_utc_marker: bool = False,
    ) -> None:
        """Initialize the parser.

        Args:
            tz: Timezone for floating date-times (defaults to host local time)
            honor_utc_marker: Interpret ``Z``-suffixed date-times as UTC
        """
        self.tz = tz or get_local_timezone()
        self.honor_utc_marker = honor_utc_marker

    def parse(self, raw_text: str) -> list[CalendarEvent]:
        """Parse iCalendar text into events.

        An event is emitted on ``END:VEVENT``. A ``BEGIN:VEVENT`` that is never
        closed is dropped, including when a second ``BEGIN:VEVENT`` replaces it.
        """
        events: list[CalendarEvent] = []
        current: Optional[dict[str, Any]] = None

        for raw_line in raw_text.split("\n"):
            line = raw_line.strip()

            if line == "BEGIN:VEVENT":
                current = {}
            elif line == "END:VEVENT" and current is not None:
                events.append(CalendarEvent(**current))
                current = None
            elif current is not None:
                self._apply_line(current, line)

        if current is not None:
            logger.debug("Dropping unterminated VEVENT at end of input")

        return events

    def _apply_line(self, fields: dict[str, Any], line: str) -> None:
        if line.startswith(_SUMMARY_PREFIX):
            fields["name"] = line[len(_SUMMARY_PREFIX):]
        elif line.startswith("DTSTART"):
            fields["date_from"] = self._parse_date(line.split(":")[-1])
        elif line.startswith("DTEND"):
            fields["date_to"] = self._parse_date(line.split(":")[-1])
        elif line.startswith("ORGANIZER"):
            match = _ORGANIZER_CN_RE.search(line)
            if match:
                fields["organizer"] = match.group(1)
        elif line.startswith(_DESCRIPTION_PREFIX):
            fields["description"] = line[len(_DESCRIPTION_PREFIX):]

    def _parse_date(self, value: str) -> Optional[datetime.datetime]:
        return parse_ical_date(value, self.tz, self.honor_utc_marker)


def parse_icalendar(
    raw_text: str,
    tz: Optional[datetime.tzinfo] = None,
    honor_utc_marker: bool = False,
) -> list[CalendarEvent]:
    """Parse iCalendar text with a one-off IcalParser."""
    return IcalParser(tz, honor_utc_marker).parse(raw_text)
