"""Room status service: fetch a room's calendar and resolve its occupancy."""

from __future__ import annotations

import datetime
import logging
from typing import Callable, Optional, Protocol

from ..calendar.models import CalendarEvent, OccupancyResult, RoomCalendarSource
from ..core.timezone_utils import now_utc
from .occupancy import resolve_occupancy

logger = logging.getLogger(__name__)


class EventFetcher(Protocol):
    async def fetch(
        self,
        url: str,
        username: Optional[str],
        password: Optional[str],
        reference_date: datetime.datetime,
    ) -> list[CalendarEvent]: ...


class RoomStatusService:
    """Runs one fetch -> parse -> resolve cycle per call.

    Holds no calendar state between calls; concurrent resolutions (for the
    same room or different rooms) are independent.
    """

    def __init__(
        self,
        fetcher: EventFetcher,
        time_provider: Callable[[], datetime.datetime] = now_utc,
    ) -> None:
        self._fetcher = fetcher
        self._time_provider = time_provider

    async def resolve(
        self,
        source: Optional[RoomCalendarSource],
        now: Optional[datetime.datetime] = None,
    ) -> OccupancyResult:
        """Resolve occupancy for one calendar source.

        A missing source or empty URL means "always free" and never touches
        the network.

        Args:
            source: Snapshot of the room's calendar configuration
            now: Reference instant (defaults to the time provider)

        Returns:
            OccupancyResult for ``now``
        """
        now = now or self._time_provider()

        if source is None or not source.is_configured:
            logger.debug("No calendar configured; reporting free")
            return resolve_occupancy([], now)

        events = await self._fetcher.fetch(
            source.caldav_url or "", source.username, source.password, now
        )
        result = resolve_occupancy(events, now)
        logger.debug(
            "Resolved %d events: is_free=%s current=%r next=%r",
            len(result.events),
            result.is_free,
            result.current_event.display_name if result.current_event else None,
            result.next_event.display_name if result.next_event else None,
        )
        return result
