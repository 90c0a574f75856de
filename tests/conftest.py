"""Shared fixtures for roompanel tests."""

import datetime
import zoneinfo
from collections.abc import AsyncIterator, Generator
from typing import Any, Callable, Optional

import pytest

from roompanel.calendar.models import CalendarEvent
from roompanel.core.http_client import close_all_clients

MOSCOW = zoneinfo.ZoneInfo("Europe/Moscow")


@pytest.fixture
def moscow_tz() -> datetime.tzinfo:
    """Deterministic display timezone (no DST, UTC+3) used across tests."""
    return MOSCOW


@pytest.fixture
def reference_time() -> datetime.datetime:
    """Monday 2024-01-15 09:30 Moscow time."""
    return datetime.datetime(2024, 1, 15, 9, 30, tzinfo=MOSCOW)


@pytest.fixture(autouse=True)
def clean_test_environment(monkeypatch: Any) -> Generator[None, Any, None]:
    """Clear roompanel environment variables so host settings never leak into tests."""
    for key in (
        "ROOMPANEL_TEST_TIME",
        "ROOMPANEL_DEBUG",
        "ROOMPANEL_LOG_LEVEL",
        "ROOMPANEL_CALDAV_URL",
        "ROOMPANEL_ROOMS_FILE",
        "ROOMPANEL_STATUS_VALUES",
        "ROOMPANEL_TIMEZONE",
    ):
        monkeypatch.delenv(key, raising=False)
    yield


@pytest.fixture(autouse=True)
async def cleanup_shared_http_clients() -> AsyncIterator[None]:
    """Close pooled httpx clients after every test to prevent resource leaks."""
    yield
    await close_all_clients()


def _make_event(
    name: Optional[str],
    start: Optional[tuple[int, int]],
    end: Optional[tuple[int, int]],
    day: int = 15,
    organizer: Optional[str] = None,
) -> CalendarEvent:
    """Build an event on January ``day`` 2024 from (hour, minute) pairs in Moscow time."""

    def _at(hm: Optional[tuple[int, int]]) -> Optional[datetime.datetime]:
        if hm is None:
            return None
        return datetime.datetime(2024, 1, day, hm[0], hm[1], tzinfo=MOSCOW)

    return CalendarEvent(name=name, date_from=_at(start), date_to=_at(end), organizer=organizer)


@pytest.fixture
def make_event() -> Callable[..., CalendarEvent]:
    """Factory fixture building Moscow-time events, e.g. ``make_event("Sync", (9, 0), (10, 0))``."""
    return _make_event


# ==================== ICS Test Data Fixtures ====================


@pytest.fixture
def sample_ics_two_events() -> str:
    """Two VEVENT blocks interleaved with calendar-level and unrelated lines (CRLF)."""
    return "\r\n".join(
        [
            "BEGIN:VCALENDAR",
            "VERSION:2.0",
            "PRODID:-//roompanel test//EN",
            "X-WR-CALNAME:Room 1",
            "BEGIN:VEVENT",
            "UID:evt-1@example.com",
            "DTSTART;TZID=Europe/Moscow:20240115T090000",
            "DTEND;TZID=Europe/Moscow:20240115T100000",
            "SUMMARY:Daily standup",
            "ORGANIZER;CN=Alice Smith:mailto:alice@example.com",
            "DESCRIPTION:Status round",
            "LOCATION:Room 1",
            "END:VEVENT",
            "BEGIN:VTIMEZONE",
            "TZID:Europe/Moscow",
            "END:VTIMEZONE",
            "BEGIN:VEVENT",
            "UID:evt-2@example.com",
            "DTSTART;TZID=Europe/Moscow:20240115T110000",
            "DTEND;TZID=Europe/Moscow:20240115T120000",
            "SUMMARY:Design review: phase 2",
            "END:VEVENT",
            "END:VCALENDAR",
            "",
        ]
    )


@pytest.fixture
def sample_ics_two_days() -> str:
    """One event on the reference day and one on the following day."""
    return "\n".join(
        [
            "BEGIN:VCALENDAR",
            "BEGIN:VEVENT",
            "DTSTART:20240115T140000",
            "DTEND:20240115T150000",
            "SUMMARY:Today",
            "END:VEVENT",
            "BEGIN:VEVENT",
            "DTSTART:20240116T140000",
            "DTEND:20240116T150000",
            "SUMMARY:Tomorrow",
            "END:VEVENT",
            "END:VCALENDAR",
        ]
    )
