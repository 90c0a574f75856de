"""Occupancy resolution: which event is on now, which is next.

This module is the single source of truth for free/busy decisions used by
both the JSON API and the room display page.
"""

from __future__ import annotations

import datetime
from collections.abc import Iterable

from ..calendar.models import CalendarEvent, OccupancyResult


def _start_sort_key(event: CalendarEvent) -> tuple[bool, datetime.datetime]:
    # Undated events go last so they can never shadow a real booking
    if event.date_from is None:
        return (True, datetime.datetime.min.replace(tzinfo=datetime.timezone.utc))
    return (False, event.date_from)


def sort_events(events: Iterable[CalendarEvent]) -> list[CalendarEvent]:
    """Stable ascending sort by start time; undated events sort last."""
    return sorted(events, key=_start_sort_key)


def resolve_occupancy(events: Iterable[CalendarEvent], now: datetime.datetime) -> OccupancyResult:
    """Resolve the room state at ``now``.

    Args:
        events: Events in any order, possibly overlapping
        now: Timezone-aware reference instant

    Returns:
        OccupancyResult with at most one current event. The first event in
        start order that is active at ``now`` wins overlaps. The next event is
        the first one starting strictly after ``now``, chosen independently
        of the current one.

    Raises:
        ValueError: If ``now`` is naive
    """
    if now.tzinfo is None:
        raise ValueError("resolve_occupancy requires a timezone-aware reference time")

    ordered = sort_events(events)

    current_event = next((event for event in ordered if event.is_active_at(now)), None)
    next_event = next(
        (event for event in ordered if event.date_from is not None and event.date_from > now),
        None,
    )

    return OccupancyResult(
        events=ordered,
        current_event=current_event,
        next_event=next_event,
        reference_time=now,
    )
