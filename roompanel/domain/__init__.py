"""Occupancy domain logic: resolution, status tokens and the room status service."""

from .occupancy import resolve_occupancy, sort_events
from .room_status import RoomStatusService
from .status_signal import DisplaySync, StatusSignalMapper, StatusToken, status_for

__all__ = [
    "DisplaySync",
    "RoomStatusService",
    "StatusSignalMapper",
    "StatusToken",
    "resolve_occupancy",
    "sort_events",
    "status_for",
]
