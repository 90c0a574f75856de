"""Kiosk display routes: the per-room status page and the room index."""

from __future__ import annotations

import datetime
import logging
from collections.abc import Callable

from aiohttp import web

from roompanel.api.room_page import render_room_index, render_room_page
from roompanel.core.health_tracker import HealthTracker
from roompanel.domain.room_status import RoomStatusService
from roompanel.domain.status_signal import StatusSignalMapper
from roompanel.rooms.store import RoomStore

logger = logging.getLogger(__name__)


def register_display_routes(
    app: web.Application,
    room_store: RoomStore,
    status_service: RoomStatusService,
    mapper: StatusSignalMapper,
    health_tracker: HealthTracker,
    time_provider: Callable[[], datetime.datetime],
    display_tz: datetime.tzinfo,
    reload_seconds: int,
) -> None:
    """Register the display page routes.

    Args:
        app: aiohttp web application
        room_store: Room registry
        status_service: Resolves a room's occupancy on demand
        mapper: Status token mapper planning sync redirects
        health_tracker: Health tracking instance
        time_provider: Function to get current UTC time
        display_tz: Timezone used for clock values on the page
        reload_seconds: Interval of the page's self reload
    """

    async def room_display(request: web.Request) -> web.Response:
        room_id = request.match_info["room_id"]
        room = room_store.get_room(room_id)
        if room is None:
            logger.info("Display requested for unknown room %r", room_id)
            return web.Response(text="Room not found", status=404)

        result = await status_service.resolve(room.calendar_source, now=time_provider())
        health_tracker.record_resolution()

        sync = mapper.plan(request.path, request.query, result.is_free)
        if sync.redirect_to is not None:
            logger.debug("Room %s status is %s; redirecting to %s", room_id, sync.token.value, sync.redirect_to)
            raise web.HTTPFound(sync.redirect_to)

        page = render_room_page(
            room=room,
            result=result,
            token=sync.token,
            reload_seconds=reload_seconds,
            tz=display_tz,
        )
        return web.Response(text=page, content_type="text/html")

    async def room_index(_request: web.Request) -> web.Response:
        return web.Response(text=render_room_index(room_store.list_rooms()), content_type="text/html")

    app.router.add_get("/room/{room_id}", room_display)
    app.router.add_get("/", room_index)

    logger.debug("Registered display routes: /room/{room_id}, /")
