"""roompanel.api.server: aiohttp server for room status displays.

This module wires the room registry, the calendar fetcher and the status
signal mapper into a small web application:
- JSON API: GET /api/rooms, GET /api/rooms/{room_id}/events, GET /api/health
- Kiosk display: GET /room/{room_id} (status token synchronisation), GET /

Occupancy is resolved per request; the only state shared between requests is
the pooled HTTP client and the health counters.
"""

from __future__ import annotations

import asyncio
import contextlib
import datetime
import logging
import signal
import socket
from typing import Any, Callable, Optional

import psutil
from aiohttp import web

from roompanel.calendar.caldav_fetcher import CalendarFetcher
from roompanel.calendar.models import CalendarEvent
from roompanel.core.config_manager import (
    DEFAULT_DISPLAY_RELOAD_SECONDS,
    DEFAULT_FETCH_TIMEOUT_SECONDS,
    DEFAULT_ROOMS_FILE,
    DEFAULT_SERVER_BIND,
    DEFAULT_SERVER_PORT,
    DEFAULT_STATUS_PARAM,
    get_config_value,
)
from roompanel.core.health_tracker import HealthTracker
from roompanel.core.http_client import close_all_clients
from roompanel.core.timezone_utils import get_local_timezone, now_utc
from roompanel.domain.room_status import RoomStatusService
from roompanel.domain.status_signal import StatusSignalMapper
from roompanel.middleware import correlation_id_middleware
from roompanel.panel_logging import configure_panel_logging
from roompanel.rooms.store import InMemoryRoomStore, JsonFileRoomStore, RoomRecord, RoomStore

logger = logging.getLogger(__name__)


def build_room_store(config: Any) -> RoomStore:
    """Create the room registry for this process.

    A room configured directly through the environment (``single_room``)
    takes precedence over the JSON registry file.
    """
    single_room = get_config_value(config, "single_room")
    if single_room:
        room = RoomRecord.model_validate(single_room)
        logger.info("Serving single configured room %r", room.id)
        return InMemoryRoomStore([room])

    rooms_file = get_config_value(config, "rooms_file", DEFAULT_ROOMS_FILE)
    logger.info("Serving rooms from registry file %s", rooms_file)
    return JsonFileRoomStore(rooms_file)


def build_status_service(config: Any, tz: Optional[datetime.tzinfo] = None) -> RoomStatusService:
    """Create the occupancy service with a fetcher configured from ``config``."""
    fetcher = CalendarFetcher(
        timeout=float(get_config_value(config, "fetch_timeout_seconds", DEFAULT_FETCH_TIMEOUT_SECONDS)),
        tz=tz or get_local_timezone(get_config_value(config, "timezone")),
        honor_utc_marker=get_config_value(config, "ical_utc_marker", "ignore") == "honor",
        filter_report_window=bool(get_config_value(config, "filter_report_window", False)),
    )
    return RoomStatusService(fetcher, time_provider=now_utc)


def build_status_mapper(config: Any) -> StatusSignalMapper:
    return StatusSignalMapper(
        param_name=get_config_value(config, "status_param", DEFAULT_STATUS_PARAM),
        url_values=get_config_value(config, "status_values"),
    )


def _serialize_iso(dt: datetime.datetime | None) -> str | None:
    if dt is None:
        return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=datetime.timezone.utc)
    return dt.isoformat()


def _event_to_api_model(ev: CalendarEvent) -> dict[str, Any]:
    """Serialize a CalendarEvent to API response fields.

    Times keep the offset they were parsed with, so clients see the same
    wall-clock values as the calendar.
    """
    return {
        "name": ev.name,
        "dateFrom": _serialize_iso(ev.date_from),
        "dateTo": _serialize_iso(ev.date_to),
        "organizer": ev.organizer,
        "description": ev.description,
    }


def get_server_ips() -> list[str]:
    """List the host's non-loopback IPv4 addresses (shown to kiosk setup screens)."""
    ips: list[str] = []
    try:
        interfaces = psutil.net_if_addrs()
    except OSError as e:
        logger.warning("Could not enumerate network interfaces: %s", e)
        return ips

    for addresses in interfaces.values():
        for address in addresses:
            if address.family == socket.AF_INET and not address.address.startswith("127."):
                ips.append(address.address)
    return ips


async def _make_app(
    config: Any,
    room_store: Optional[RoomStore] = None,
    status_service: Optional[RoomStatusService] = None,
    time_provider: Callable[[], datetime.datetime] = now_utc,
    health_tracker: Optional[HealthTracker] = None,
) -> web.Application:
    """Create aiohttp web application with routes wired to the registry and fetcher.

    Collaborators default to the ones described by ``config``; tests inject
    their own store, service and clock.
    """
    app = web.Application(middlewares=[correlation_id_middleware])

    display_tz = get_local_timezone(get_config_value(config, "timezone"))
    room_store = room_store or build_room_store(config)
    status_service = status_service or build_status_service(config, display_tz)
    health_tracker = health_tracker or HealthTracker()
    mapper = build_status_mapper(config)

    from roompanel.api.routes import register_api_routes, register_display_routes

    register_api_routes(
        app=app,
        config=config,
        room_store=room_store,
        status_service=status_service,
        health_tracker=health_tracker,
        time_provider=time_provider,
        event_to_api_model=_event_to_api_model,
        serialize_iso=_serialize_iso,
        get_server_ips=get_server_ips,
    )

    register_display_routes(
        app=app,
        room_store=room_store,
        status_service=status_service,
        mapper=mapper,
        health_tracker=health_tracker,
        time_provider=time_provider,
        display_tz=display_tz,
        reload_seconds=int(
            get_config_value(config, "display_reload_seconds", DEFAULT_DISPLAY_RELOAD_SECONDS)
        ),
    )

    async def _cleanup(_app: web.Application) -> None:
        await close_all_clients()
        logger.debug("Shared HTTP clients cleaned up")

    app.on_cleanup.append(_cleanup)
    return app


async def _serve(config: Any, external_stop_event: asyncio.Event | None = None) -> None:
    """Internal coroutine to run the server until signalled to stop.

    Args:
        config: Server configuration object/dict.
        external_stop_event: Optional event to signal shutdown. If provided,
            signal handlers will NOT be registered (caller owns signal handling).
    """
    stop_event = external_stop_event or asyncio.Event()

    logger.debug(
        "Creating web application. Config: %s",
        ", ".join(
            f"{k}={'<redacted>' if k == 'single_room' else v!r}"
            for k, v in (config.items() if isinstance(config, dict) else [("config", repr(config))])
        ),
    )
    app = await _make_app(config)

    runner = web.AppRunner(app)
    await runner.setup()

    host = get_config_value(config, "server_bind", DEFAULT_SERVER_BIND)
    port = int(get_config_value(config, "server_port", DEFAULT_SERVER_PORT))
    site = web.TCPSite(runner, host=host, port=port)
    try:
        await site.start()
    except OSError:
        logger.exception("Failed to start server on %s:%d", host, port)
        await runner.cleanup()
        raise

    logger.info("Server started successfully on %s:%d", host, port)
    for ip in get_server_ips():
        logger.info("Room displays reachable at http://%s:%d/room/<room_id>", ip, port)

    if external_stop_event is None:
        loop = asyncio.get_running_loop()

        def _on_signal() -> None:
            logger.info("Shutdown signal received")
            stop_event.set()

        for sig in (signal.SIGINT, signal.SIGTERM):
            with contextlib.suppress(NotImplementedError):
                loop.add_signal_handler(sig, _on_signal)
    else:
        logger.debug("Using external stop event - skipping signal handler registration")

    await stop_event.wait()
    logger.info("Stop event received, shutting down")

    await runner.cleanup()
    logger.info("Server shutdown complete")


def start_server(config: Any) -> None:
    """Start the asyncio event loop and HTTP server.

    Args:
        config: dict or dataclass-like object with keys:
            - server_bind: host to bind (str)
            - server_port: port (int)
            - rooms_file: path of the room registry JSON (str)
            - single_room: room record configured from the environment (dict)
            - fetch_timeout_seconds: upper bound for one calendar fetch (float)
            - display_reload_seconds: display page reload interval (int)
            - timezone: IANA timezone for day windows and floating times (str)
            - ical_utc_marker: "ignore" or "honor" (str)
            - filter_report_window: day-filter CalDAV REPORT results (bool)
            - status_param / status_values: display URL token settings
            - debug_logging: enable debug logging for roompanel (bool)

    This function blocks the calling thread and runs until a SIGINT/SIGTERM is received.
    """
    debug_mode = bool(get_config_value(config, "debug_logging", False))
    configure_panel_logging(debug_mode=debug_mode)
    logger.info("Logging configuration applied: debug_mode=%s", debug_mode)

    try:
        logger.debug("Running asyncio event loop for server")
        asyncio.run(_serve(config))
    except KeyboardInterrupt:
        logger.info("Interrupted by user")
    except Exception:
        logger.exception("Server terminated unexpectedly")
        raise
