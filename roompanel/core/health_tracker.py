"""Health tracking for the roompanel server."""

from __future__ import annotations

import os
import time
from dataclasses import dataclass
from typing import Literal, Optional


@dataclass
class HealthStatus:
    """Health status information for the server."""

    status: Literal["ok", "idle"]
    server_time_iso: str
    uptime_seconds: int
    pid: int
    room_count: int
    resolutions: int
    last_resolution_age_seconds: Optional[int]


class HealthTracker:
    """Counts occupancy resolutions served since startup.

    Resolutions are request driven, so there is no background task to watch;
    a server that never resolved a room reports "idle" rather than a failure.
    """

    def __init__(self) -> None:
        self._start_time: float = time.time()
        self._resolutions: int = 0
        self._last_resolution: Optional[float] = None

    def record_resolution(self) -> None:
        """Record that one room's occupancy was resolved."""
        self._resolutions += 1
        self._last_resolution = time.time()

    def get_uptime_seconds(self) -> int:
        return int(time.time() - self._start_time)

    def get_last_resolution_age_seconds(self) -> Optional[int]:
        if self._last_resolution is None:
            return None
        return int(time.time() - self._last_resolution)

    def get_health_status(self, current_time_iso: str, room_count: int) -> HealthStatus:
        """Get comprehensive health status.

        Args:
            current_time_iso: Current time in ISO format
            room_count: Number of rooms currently in the registry

        Returns:
            HealthStatus object with all health information
        """
        return HealthStatus(
            status="ok" if self._resolutions else "idle",
            server_time_iso=current_time_iso,
            uptime_seconds=self.get_uptime_seconds(),
            pid=os.getpid(),
            room_count=room_count,
            resolutions=self._resolutions,
            last_resolution_age_seconds=self.get_last_resolution_age_seconds(),
        )
