"""Read-only access to the room registry.

The registry itself (room CRUD, background uploads) is maintained by a
separate admin tool that persists rooms as a JSON object keyed by room id.
roompanel only reads it: every call takes a fresh snapshot so edits made by
the admin tool show up on the next request without a restart.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Iterable
from pathlib import Path
from typing import Optional, Protocol

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from ..calendar.models import RoomCalendarSource

logger = logging.getLogger(__name__)


class RoomRecord(BaseModel):
    """A room as stored by the registry (camelCase keys on disk)."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    id: str
    name: str = ""
    caldav_url: Optional[str] = Field(default=None, alias="caldavUrl")
    username: Optional[str] = None
    password: Optional[str] = Field(default=None, repr=False)
    background: Optional[str] = None
    created_at: Optional[str] = Field(default=None, alias="createdAt")

    @property
    def calendar_source(self) -> RoomCalendarSource:
        return RoomCalendarSource(
            caldav_url=self.caldav_url or None,
            username=self.username or "",
            password=self.password or "",
        )

    def to_public_dict(self) -> dict[str, Optional[str]]:
        """Registry view safe to expose over the API (no password)."""
        return self.model_dump(by_alias=True, exclude={"password"})


class RoomStore(Protocol):
    """Registry interface injected into the web layer."""

    def get_room(self, room_id: str) -> Optional[RoomRecord]: ...

    def list_rooms(self) -> list[RoomRecord]: ...


class InMemoryRoomStore:
    """Room store backed by a dict; used for single-room setups and tests."""

    def __init__(self, rooms: Iterable[RoomRecord] = ()) -> None:
        self._rooms = {room.id: room for room in rooms}

    def get_room(self, room_id: str) -> Optional[RoomRecord]:
        return self._rooms.get(room_id)

    def list_rooms(self) -> list[RoomRecord]:
        return list(self._rooms.values())


class JsonFileRoomStore:
    """Room store reading the registry's ``rooms.json`` on every call.

    A missing or unreadable file yields no rooms; individual invalid records
    are skipped with a warning.
    """

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)

    def _load(self) -> dict[str, RoomRecord]:
        if not self.path.exists():
            logger.debug("Rooms file not found: %s", self.path)
            return {}

        try:
            with self.path.open("r", encoding="utf-8") as fh:
                data = json.load(fh)
        except (OSError, json.JSONDecodeError) as exc:
            logger.warning("Failed to read rooms file %s: %s", self.path, exc)
            return {}

        if not isinstance(data, dict):
            logger.warning("Rooms file %s must contain a JSON object", self.path)
            return {}

        rooms: dict[str, RoomRecord] = {}
        for room_id, raw in data.items():
            if not isinstance(raw, dict):
                logger.warning("Skipping room %r: record is not an object", room_id)
                continue
            try:
                rooms[room_id] = RoomRecord.model_validate({**raw, "id": room_id})
            except ValidationError as exc:
                logger.warning("Skipping invalid room %r: %s", room_id, exc)
        return rooms

    def get_room(self, room_id: str) -> Optional[RoomRecord]:
        return self._load().get(room_id)

    def list_rooms(self) -> list[RoomRecord]:
        return list(self._load().values())
