"""HTML rendering for the room display page and the room index."""

from __future__ import annotations

import datetime
from html import escape
from string import Template
from typing import Optional
from urllib.parse import quote

from ..calendar.models import CalendarEvent, OccupancyResult
from ..domain.status_signal import StatusToken
from ..rooms.store import RoomRecord

_PAGE = Template("""<!DOCTYPE html>
<html lang="en">
<head>
    <meta charset="UTF-8">
    <meta name="viewport" content="width=device-width, initial-scale=1.0">
    <meta http-equiv="refresh" content="$reload_seconds">
    <title>$title</title>
    <style>
        * { margin: 0; padding: 0; box-sizing: border-box; }
        body { font-family: sans-serif; min-height: 100vh; color: #fff; display: flex;
               flex-direction: column; $background }
        .glass { background: rgba(255, 255, 255, 0.1); padding: 20px; border-radius: 15px; margin: 10px; }
        .header { display: flex; justify-content: space-between; align-items: center; }
        .main { display: flex; flex: 1; gap: 15px; padding: 15px; }
        .status { flex: 1; display: flex; flex-direction: column; justify-content: center; align-items: center; }
        .status.free { background: rgba(0, 239, 64, 0.35); }
        .status.busy { background: rgba(255, 0, 0, 0.35); }
        .status h2 { font-size: 5rem; }
        .status .event-name { font-size: 2rem; margin-top: 10px; }
        .schedule { max-width: 300px; flex: 1; }
        .schedule ul { list-style: none; }
        .schedule li { padding: 12px; margin-bottom: 8px; border-radius: 10px; background: rgba(255, 255, 255, 0.1); }
        .schedule li.current { border-left: 4px solid #dc3545; }
        .footer { text-align: center; }
    </style>
</head>
<body data-status="$status">
    <div class="glass header"><h1>$room_name</h1><div id="clock">$clock</div></div>
    <div class="main">
        <div class="glass status $status">$status_block</div>
        <div class="glass schedule"><h2>Today</h2><ul>$schedule</ul></div>
    </div>
    $footer
</body>
</html>""")

_INDEX = Template("""<!DOCTYPE html>
<html lang="en">
<head><meta charset="UTF-8"><title>Rooms</title></head>
<body>
    <h1>Rooms</h1>
    <ul>$items</ul>
</body>
</html>""")

_DEFAULT_BACKGROUND = "background: linear-gradient(135deg, #1a1a2e 0%, #16213e 100%);"


def format_clock(value: Optional[datetime.datetime], tz: datetime.tzinfo) -> str:
    """Format an instant as local ``HH:MM``; missing values render as ``--:--``."""
    if value is None:
        return "--:--"
    return value.astimezone(tz).strftime("%H:%M")


def _schedule_item(event: CalendarEvent, current: Optional[CalendarEvent], tz: datetime.tzinfo) -> str:
    is_current = event is current
    label = f"{format_clock(event.date_from, tz)} - {format_clock(event.date_to, tz)}"
    if is_current:
        label += " (now)"
    css = ' class="current"' if is_current else ""
    return f'<li{css}><span class="time">{escape(label)}</span> <span class="name">{escape(event.display_name)}</span></li>'


def _status_block(result: OccupancyResult, tz: datetime.tzinfo) -> str:
    current = result.current_event
    if current is None:
        return "<h2>Free</h2>"

    details = []
    if current.organizer:
        details.append(f"<p>Organizer: {escape(current.organizer)}</p>")
    details.append(f"<p>Time: {format_clock(current.date_from, tz)} - {format_clock(current.date_to, tz)}</p>")
    # Negative values mean the meeting is ending right now
    remaining = max(0, result.remaining_minutes or 0)
    details.append(f'<p id="remaining">Ends in: {remaining} min.</p>')

    return (
        "<h2>Busy</h2>"
        f'<div class="event-name">{escape(current.display_name)}</div>'
        f'<div class="details">{"".join(details)}</div>'
    )


def _footer(result: OccupancyResult, tz: datetime.tzinfo) -> str:
    if result.current_event is not None:
        text = escape(result.current_event.display_name)
    elif result.next_event is not None:
        next_event = result.next_event
        text = f"Next: {escape(next_event.display_name)} at {format_clock(next_event.date_from, tz)}"
    else:
        return ""
    return f'<div class="glass footer"><span>{text}</span></div>'


def _background_style(background: Optional[str]) -> str:
    """CSS background declaration for a room image path or URL.

    Anything that could end the ``url('...')`` token, ``<`` and ``>`` included,
    is percent-encoded.
    """
    if not background:
        return _DEFAULT_BACKGROUND
    safe_url = quote(background, safe="/:.-_~?=&%+#")
    return f"background: url('{safe_url}') center center / cover no-repeat;"


def render_room_page(
    room: RoomRecord,
    result: OccupancyResult,
    token: StatusToken,
    reload_seconds: int,
    tz: datetime.tzinfo,
) -> str:
    """Render the kiosk display page for one room.

    The page reloads itself in place every ``reload_seconds``; a reload whose
    URL carries a stale token is redirected by the display route.
    """
    schedule = "".join(_schedule_item(event, result.current_event, tz) for event in result.events)
    room_name = escape(room.name or room.id)

    return _PAGE.substitute(
        reload_seconds=int(reload_seconds),
        title=f"Room {room_name}",
        background=_background_style(room.background),
        status=token.value,
        room_name=room_name,
        clock=format_clock(result.reference_time, tz),
        status_block=_status_block(result, tz),
        schedule=schedule or "<li>No events</li>",
        footer=_footer(result, tz),
    )


def render_room_index(rooms: list[RoomRecord]) -> str:
    """Render a plain list of links to every room's display page."""
    items = "".join(
        f'<li><a href="/room/{escape(room.id)}">{escape(room.name or room.id)}</a></li>'
        for room in rooms
    )
    return _INDEX.substitute(items=items or "<li>No rooms configured</li>")
