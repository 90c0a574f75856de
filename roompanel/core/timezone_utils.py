"""Timezone and current-time helpers for roompanel."""

from __future__ import annotations

import datetime
import logging
import os
import zoneinfo

from dateutil import parser as date_parser
from dateutil import tz as date_tz

logger = logging.getLogger(__name__)

TEST_TIME_ENV = "ROOMPANEL_TEST_TIME"


class TimeProvider:
    """Provides current time with test time override support."""

    def now_utc(self) -> datetime.datetime:
        """Return current UTC time with tzinfo.

        Can be overridden via the ROOMPANEL_TEST_TIME environment variable.
        Format: ISO 8601 datetime string (e.g., "2025-10-27T08:20:00+03:00").
        A naive override is assumed to already be UTC.

        Returns:
            Current time in UTC with timezone info
        """
        test_time = os.environ.get(TEST_TIME_ENV)
        if test_time:
            try:
                dt = date_parser.isoparse(test_time)
                if dt.tzinfo is not None:
                    return dt.astimezone(datetime.timezone.utc)
                return dt.replace(tzinfo=datetime.timezone.utc)
            except (ValueError, OverflowError) as e:
                logger.warning("Failed to parse %s=%r: %s", TEST_TIME_ENV, test_time, e)

        return datetime.datetime.now(datetime.timezone.utc)


_time_provider = TimeProvider()


def now_utc() -> datetime.datetime:
    """Return the current UTC time (honours ROOMPANEL_TEST_TIME)."""
    return _time_provider.now_utc()


def get_local_timezone(name: str | None = None) -> datetime.tzinfo:
    """Resolve the timezone used to interpret floating calendar times.

    Args:
        name: Optional IANA identifier (e.g. "Europe/Moscow"). When missing or
            unknown, the host's local timezone is used.

    Returns:
        A tzinfo suitable for ``datetime.replace(tzinfo=...)``
    """
    if name:
        try:
            return zoneinfo.ZoneInfo(name)
        except (zoneinfo.ZoneInfoNotFoundError, ValueError):
            logger.warning("Unknown timezone %r, falling back to host local time", name)

    return date_tz.tzlocal()


def start_of_day(instant: datetime.datetime, tz: datetime.tzinfo) -> datetime.datetime:
    """Return local midnight (in ``tz``) of the day containing ``instant``.

    Naive instants are taken to already be wall-clock time in ``tz``.
    """
    if instant.tzinfo is None:
        local = instant.replace(tzinfo=tz)
    else:
        local = instant.astimezone(tz)
    return local.replace(hour=0, minute=0, second=0, microsecond=0)


def format_caldav_utc(instant: datetime.datetime) -> str:
    """Format an aware instant as a CalDAV UTC timestamp (``YYYYMMDDTHHMMSSZ``)."""
    return instant.astimezone(datetime.timezone.utc).strftime("%Y%m%dT%H%M%SZ")
