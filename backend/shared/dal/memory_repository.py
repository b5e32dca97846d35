"""Process-local repository backed by plain dicts."""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING

from shared.dal.models import StoredRoom, StoredUser
from shared.dal.repository import BingoRepository

if TYPE_CHECKING:
    from datetime import datetime


class InMemoryBingoRepository(BingoRepository):
    """Repository that keeps everything in memory.

    Nothing survives a restart. Used for tests and for deployments that do
    not need the persisted mirror at all.
    """

    def __init__(self) -> None:
        self._rooms: dict[str, int] = {}  # room -> user_count
        self._users: dict[str, StoredUser] = {}  # connection_id -> user
        self._drawn: dict[str, list[int]] = {}  # room -> numbers in draw order
        self._timers: dict[str, datetime] = {}  # room -> expires_at
        self._lock = asyncio.Lock()

    async def upsert_room(self, room: str, user_count: int) -> None:
        async with self._lock:
            self._rooms[room] = user_count

    async def delete_room(self, room: str) -> None:
        async with self._lock:
            self._rooms.pop(room, None)
            self._drawn.pop(room, None)
            self._timers.pop(room, None)

    async def get_room(self, room: str) -> StoredRoom | None:
        user_count = self._rooms.get(room)
        if user_count is None:
            return None
        return StoredRoom(room_name=room, user_count=user_count)

    async def list_room_names(self) -> list[str]:
        return sorted(self._rooms)

    async def upsert_user(self, user: StoredUser) -> None:
        async with self._lock:
            self._users[user.connection_id] = user

    async def delete_user(self, connection_id: str) -> None:
        async with self._lock:
            self._users.pop(connection_id, None)

    async def insert_drawn_number(self, room: str, number: int) -> None:
        """Append a number. Duplicates are ignored, mirroring the SQL UNIQUE constraint."""
        async with self._lock:
            numbers = self._drawn.setdefault(room, [])
            if number not in numbers:
                numbers.append(number)

    async def list_drawn_numbers(self, room: str) -> list[int]:
        return list(self._drawn.get(room, []))

    async def count_users_in_room(self, room: str) -> int:
        return sum(1 for user in self._users.values() if user.room == room)

    async def set_room_timer(self, room: str, expires_at: datetime) -> None:
        async with self._lock:
            self._timers[room] = expires_at

    async def clear_room_timer(self, room: str) -> None:
        async with self._lock:
            self._timers.pop(room, None)

    async def reset(self) -> None:
        async with self._lock:
            self._rooms.clear()
            self._users.clear()
            self._drawn.clear()
            self._timers.clear()
