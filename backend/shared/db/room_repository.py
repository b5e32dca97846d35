"""SQLite-backed bingo repository."""

from __future__ import annotations

import asyncio
import sqlite3
from typing import TYPE_CHECKING

import structlog

from shared.dal.models import StoredRoom, StoredUser
from shared.dal.repository import BingoRepository

if TYPE_CHECKING:
    from datetime import datetime

    from shared.db.connection import Database

logger = structlog.get_logger()


class SqliteBingoRepository(BingoRepository):
    """SQLite implementation of BingoRepository.

    Writes are serialized with an asyncio.Lock so a commit never interleaves
    with another coroutine's statement on the shared connection.
    """

    def __init__(self, db: Database) -> None:
        self._db = db
        self._lock = asyncio.Lock()

    async def upsert_room(self, room: str, user_count: int) -> None:
        async with self._lock:
            self._db.connection.execute(
                "INSERT INTO rooms (room_name, user_count) VALUES (?, ?) "
                "ON CONFLICT (room_name) DO UPDATE SET user_count = excluded.user_count",
                (room, user_count),
            )
            self._db.connection.commit()

    async def delete_room(self, room: str) -> None:
        async with self._lock:
            conn = self._db.connection
            try:
                conn.execute("DELETE FROM rooms WHERE room_name = ?", (room,))
                conn.execute("DELETE FROM drawn_numbers WHERE room = ?", (room,))
                conn.execute("DELETE FROM room_timers WHERE room = ?", (room,))
                conn.commit()
            except sqlite3.Error:
                conn.rollback()
                raise

    async def get_room(self, room: str) -> StoredRoom | None:
        row = self._db.connection.execute(
            "SELECT room_name, user_count FROM rooms WHERE room_name = ?",
            (room,),
        ).fetchone()
        if row is None:
            return None
        return StoredRoom(room_name=row[0], user_count=row[1])

    async def list_room_names(self) -> list[str]:
        rows = self._db.connection.execute("SELECT room_name FROM rooms ORDER BY room_name").fetchall()
        return [row[0] for row in rows]

    async def upsert_user(self, user: StoredUser) -> None:
        async with self._lock:
            self._db.connection.execute(
                "INSERT INTO users (socket_id, username, room, is_admin, line_count) VALUES (?, ?, ?, ?, ?) "
                "ON CONFLICT (socket_id) DO UPDATE SET line_count = excluded.line_count",
                (user.connection_id, user.username, user.room, int(user.is_admin), user.line_count),
            )
            self._db.connection.commit()

    async def delete_user(self, connection_id: str) -> None:
        async with self._lock:
            self._db.connection.execute("DELETE FROM users WHERE socket_id = ?", (connection_id,))
            self._db.connection.commit()

    async def insert_drawn_number(self, room: str, number: int) -> None:
        """Record a drawn number. Logs a warning and returns on a duplicate."""
        async with self._lock:
            try:
                self._db.connection.execute(
                    "INSERT INTO drawn_numbers (room, number) VALUES (?, ?)",
                    (room, number),
                )
                self._db.connection.commit()
            except sqlite3.IntegrityError:
                self._db.connection.rollback()
                logger.warning("drawn number already stored, ignoring duplicate", room=room, number=number)

    async def list_drawn_numbers(self, room: str) -> list[int]:
        rows = self._db.connection.execute(
            "SELECT number FROM drawn_numbers WHERE room = ? ORDER BY id",
            (room,),
        ).fetchall()
        return [row[0] for row in rows]

    async def count_users_in_room(self, room: str) -> int:
        row = self._db.connection.execute("SELECT COUNT(*) FROM users WHERE room = ?", (room,)).fetchone()
        return row[0]

    async def set_room_timer(self, room: str, expires_at: datetime) -> None:
        async with self._lock:
            self._db.connection.execute(
                "INSERT INTO room_timers (room, expires_at) VALUES (?, ?) "
                "ON CONFLICT (room) DO UPDATE SET expires_at = excluded.expires_at",
                (room, expires_at.isoformat()),
            )
            self._db.connection.commit()

    async def clear_room_timer(self, room: str) -> None:
        async with self._lock:
            self._db.connection.execute("DELETE FROM room_timers WHERE room = ?", (room,))
            self._db.connection.commit()

    async def reset(self) -> None:
        async with self._lock:
            conn = self._db.connection
            try:
                conn.execute("BEGIN")
                for table in ("users", "rooms", "drawn_numbers", "room_timers"):
                    conn.execute(f"DELETE FROM {table}")  # noqa: S608
                conn.execute("COMMIT")
            except sqlite3.Error:
                conn.execute("ROLLBACK")
                raise

    async def close(self) -> None:
        self._db.close()
