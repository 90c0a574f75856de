"""JSON API routes: room registry, per-room events and health."""

from __future__ import annotations

import datetime
import logging
from collections.abc import Callable
from dataclasses import asdict
from typing import Any, Optional

from aiohttp import web

from roompanel.calendar.models import CalendarEvent
from roompanel.core.config_manager import DEFAULT_SERVER_PORT, get_config_value
from roompanel.core.health_tracker import HealthTracker
from roompanel.domain.room_status import RoomStatusService
from roompanel.domain.status_signal import status_for
from roompanel.panel_logging import get_logging_status
from roompanel.rooms.store import RoomStore

logger = logging.getLogger(__name__)


def register_api_routes(
    app: web.Application,
    config: Any,
    room_store: RoomStore,
    status_service: RoomStatusService,
    health_tracker: HealthTracker,
    time_provider: Callable[[], datetime.datetime],
    event_to_api_model: Callable[[CalendarEvent], dict[str, Any]],
    serialize_iso: Callable[[Optional[datetime.datetime]], Optional[str]],
    get_server_ips: Callable[[], list[str]],
) -> None:
    """Register JSON API routes.

    Args:
        app: aiohttp web application
        config: Application configuration
        room_store: Room registry
        status_service: Resolves a room's occupancy on demand
        health_tracker: Health tracking instance
        time_provider: Function to get current UTC time
        event_to_api_model: Function to serialize an event for the API
        serialize_iso: Function to serialize datetime to ISO string
        get_server_ips: Function listing the host's LAN addresses
    """

    async def list_rooms(_request: web.Request) -> web.Response:
        """Registry view used by kiosk setup screens to pick a room."""
        rooms = {room.id: room.to_public_dict() for room in room_store.list_rooms()}
        return web.json_response(
            {
                "rooms": rooms,
                "serverIPs": get_server_ips(),
                "port": int(get_config_value(config, "server_port", DEFAULT_SERVER_PORT)),
            }
        )

    async def room_events(request: web.Request) -> web.Response:
        room_id = request.match_info["room_id"]
        room = room_store.get_room(room_id)
        if room is None:
            logger.info("Events requested for unknown room %r", room_id)
            return web.json_response({"error": "Room not found"}, status=404)

        result = await status_service.resolve(room.calendar_source, now=time_provider())
        health_tracker.record_resolution()

        current = result.current_event
        next_event = result.next_event
        return web.json_response(
            {
                "events": [event_to_api_model(ev) for ev in result.events],
                "currentEvent": event_to_api_model(current) if current else None,
                "nextEvent": event_to_api_model(next_event) if next_event else None,
                "isFree": result.is_free,
                "remainingMinutes": result.remaining_minutes,
                "status": status_for(result.is_free).value,
            }
        )

    async def health(_request: web.Request) -> web.Response:
        now_iso = serialize_iso(time_provider())
        status = health_tracker.get_health_status(now_iso or "", len(room_store.list_rooms()))
        payload = asdict(status)
        payload["logging"] = get_logging_status()
        return web.json_response(payload)

    app.router.add_get("/api/rooms", list_rooms)
    app.router.add_get("/api/rooms/{room_id}/events", room_events)
    app.router.add_get("/api/health", health)

    logger.debug("Registered API routes: /api/rooms, /api/rooms/{room_id}/events, /api/health")
