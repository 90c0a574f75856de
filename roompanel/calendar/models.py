"""Data models for calendar ingestion and occupancy resolution."""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, computed_field

DEFAULT_EVENT_NAME = "Event"


class CalendarEvent(BaseModel):
    """One diary entry parsed from an iCalendar payload.

    Every field is optional: a VEVENT block may omit any property and the
    parser never rejects an event for a missing value.
    """

    name: Optional[str] = None
    date_from: Optional[datetime] = None
    date_to: Optional[datetime] = None
    organizer: Optional[str] = None
    description: Optional[str] = None

    @property
    def display_name(self) -> str:
        """Title shown on displays, with a placeholder for untitled events."""
        return self.name or DEFAULT_EVENT_NAME

    def is_active_at(self, now: datetime) -> bool:
        """Return True when ``date_from <= now < date_to``."""
        if self.date_from is None or self.date_to is None:
            return False
        return self.date_from <= now < self.date_to


class RoomCalendarSource(BaseModel):
    """Calendar location and credentials for one room."""

    caldav_url: Optional[str] = None
    username: str = ""
    password: str = Field(default="", repr=False)

    @property
    def is_configured(self) -> bool:
        return bool(self.caldav_url and self.caldav_url.strip())


class OccupancyResult(BaseModel):
    """Output of one occupancy resolution cycle.

    ``is_free`` and ``remaining_minutes`` are derived from ``current_event`` and
    ``reference_time`` so they can never disagree with them.
    """

    model_config = ConfigDict(frozen=True)

    events: list[CalendarEvent] = Field(default_factory=list)
    current_event: Optional[CalendarEvent] = None
    next_event: Optional[CalendarEvent] = None
    reference_time: datetime

    @computed_field  # type: ignore[prop-decorator]
    @property
    def is_free(self) -> bool:
        return self.current_event is None

    @computed_field  # type: ignore[prop-decorator]
    @property
    def remaining_minutes(self) -> Optional[int]:
        """Whole minutes until the current event ends (floored, may be negative)."""
        if self.current_event is None or self.current_event.date_to is None:
            return None
        delta = self.current_event.date_to - self.reference_time
        return int(delta.total_seconds() // 60)
