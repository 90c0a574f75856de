"""Room registry adapters."""

from .store import InMemoryRoomStore, JsonFileRoomStore, RoomRecord, RoomStore

__all__ = ["InMemoryRoomStore", "JsonFileRoomStore", "RoomRecord", "RoomStore"]
