"""Unit tests for occupancy resolution and the OccupancyResult model."""

import datetime

import pytest

from roompanel.calendar.models import CalendarEvent, OccupancyResult
from roompanel.domain.occupancy import resolve_occupancy, sort_events

pytestmark = [pytest.mark.unit, pytest.mark.fast]


class TestResolveOccupancy:
    """Tests for resolve_occupancy."""

    def test_resolve_when_inside_event_then_busy_with_remaining_minutes(
        self, make_event, reference_time
    ) -> None:
        meeting = make_event("Standup", (9, 0), (10, 0))

        result = resolve_occupancy([meeting], reference_time)

        assert result.is_free is False
        assert result.current_event == meeting
        assert result.remaining_minutes == 30
        assert result.next_event is None

    def test_resolve_when_no_events_then_free(self, reference_time) -> None:
        result = resolve_occupancy([], reference_time)

        assert result.is_free is True
        assert result.current_event is None
        assert result.next_event is None
        assert result.remaining_minutes is None
        assert result.events == []

    def test_resolve_when_overlapping_events_then_single_current(
        self, make_event, reference_time
    ) -> None:
        """The earliest-starting active event wins an overlap."""
        long_block = make_event("Workshop", (8, 0), (12, 0))
        short = make_event("Sync", (9, 15), (9, 45))

        result = resolve_occupancy([short, long_block], reference_time)

        assert result.current_event == long_block
        assert result.remaining_minutes == 150

    def test_resolve_when_event_ends_now_then_free(self, make_event, reference_time) -> None:
        """The end bound is exclusive."""
        result = resolve_occupancy([make_event("Early", (9, 0), (9, 30))], reference_time)

        assert result.is_free is True

    def test_resolve_when_event_starts_now_then_busy(self, make_event, reference_time) -> None:
        """The start bound is inclusive."""
        result = resolve_occupancy([make_event("Now", (9, 30), (10, 0))], reference_time)

        assert result.is_free is False
        assert result.remaining_minutes == 30

    def test_resolve_when_later_events_then_next_is_first_future_start(
        self, make_event, reference_time
    ) -> None:
        events = [
            make_event("Afternoon", (14, 0), (15, 0)),
            make_event("Current", (9, 0), (10, 0)),
            make_event("Late morning", (11, 0), (12, 0)),
        ]

        result = resolve_occupancy(events, reference_time)

        assert result.current_event is not None
        assert result.current_event.name == "Current"
        assert result.next_event is not None
        assert result.next_event.name == "Late morning"
        assert result.next_event.date_from > reference_time
        assert [e.name for e in result.events] == ["Current", "Late morning", "Afternoon"]

    def test_resolve_when_event_missing_end_then_never_current(
        self, make_event, reference_time
    ) -> None:
        result = resolve_occupancy([make_event("Open ended", (9, 0), None)], reference_time)

        assert result.is_free is True

    def test_resolve_when_remaining_is_fractional_then_floored(self, moscow_tz) -> None:
        now = datetime.datetime(2024, 1, 15, 9, 30, 45, tzinfo=moscow_tz)
        meeting = CalendarEvent(
            name="Sync",
            date_from=datetime.datetime(2024, 1, 15, 9, 0, tzinfo=moscow_tz),
            date_to=datetime.datetime(2024, 1, 15, 10, 0, tzinfo=moscow_tz),
        )

        result = resolve_occupancy([meeting], now)

        first_read = result.remaining_minutes
        assert first_read == 29
        assert result.remaining_minutes == first_read

    def test_resolve_when_different_offsets_then_compared_as_instants(
        self, make_event, reference_time
    ) -> None:
        """A UTC-stamped event is current when it covers the same instant."""
        utc_meeting = CalendarEvent(
            name="Remote",
            date_from=datetime.datetime(2024, 1, 15, 6, 0, tzinfo=datetime.timezone.utc),
            date_to=datetime.datetime(2024, 1, 15, 7, 0, tzinfo=datetime.timezone.utc),
        )

        result = resolve_occupancy([utc_meeting], reference_time)

        assert result.current_event == utc_meeting
        assert result.remaining_minutes == 30

    def test_resolve_when_naive_reference_then_raises(self, make_event) -> None:
        with pytest.raises(ValueError):
            resolve_occupancy([], datetime.datetime(2024, 1, 15, 9, 30))


class TestSortEvents:
    """Tests for sort_events."""

    def test_sort_when_equal_starts_then_input_order_kept(self, make_event) -> None:
        first = make_event("First", (9, 0), (10, 0))
        second = make_event("Second", (9, 0), (9, 30))

        assert [e.name for e in sort_events([first, second])] == ["First", "Second"]
        assert [e.name for e in sort_events([second, first])] == ["Second", "First"]

    def test_sort_when_undated_events_then_last(self, make_event) -> None:
        undated = make_event("Undated", None, None)
        dated = make_event("Dated", (18, 0), (19, 0))

        assert [e.name for e in sort_events([undated, dated])] == ["Dated", "Undated"]


class TestOccupancyResult:
    """Tests for derived OccupancyResult fields."""

    def test_is_free_when_current_event_then_false(self, make_event, reference_time) -> None:
        result = OccupancyResult(
            current_event=make_event("Busy", (9, 0), (10, 0)),
            reference_time=reference_time,
        )

        assert result.is_free is False

    def test_model_dump_when_serialized_then_derived_fields_included(
        self, make_event, reference_time
    ) -> None:
        result = OccupancyResult(
            events=[make_event("Busy", (9, 0), (10, 0))],
            current_event=make_event("Busy", (9, 0), (10, 0)),
            reference_time=reference_time,
        )

        dumped = result.model_dump()

        assert dumped["is_free"] is False
        assert dumped["remaining_minutes"] == 30

    def test_display_name_when_missing_then_placeholder(self) -> None:
        assert CalendarEvent().display_name == "Event"
        assert CalendarEvent(name="Retro").display_name == "Retro"
