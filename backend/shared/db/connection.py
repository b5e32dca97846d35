"""SQLite database connection and schema management."""

import os
import sqlite3
from pathlib import Path

import structlog

logger = structlog.get_logger()

_DB_FILE_PERMISSIONS = 0o600
_IN_MEMORY = ":memory:"

_SCHEMA_SQL = """\
CREATE TABLE IF NOT EXISTS users (
    socket_id TEXT PRIMARY KEY,
    username TEXT NOT NULL,
    room TEXT NOT NULL,
    is_admin INTEGER NOT NULL,
    line_count INTEGER DEFAULT 0
);

CREATE TABLE IF NOT EXISTS rooms (
    room_name TEXT PRIMARY KEY,
    user_count INTEGER NOT NULL DEFAULT 0
);

CREATE TABLE IF NOT EXISTS drawn_numbers (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    room TEXT NOT NULL,
    number INTEGER NOT NULL,
    drawn_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
    UNIQUE (room, number)
);

CREATE TABLE IF NOT EXISTS room_timers (
    room TEXT PRIMARY KEY,
    expires_at TIMESTAMP NOT NULL
);

CREATE INDEX IF NOT EXISTS idx_users_room ON users (room);
CREATE INDEX IF NOT EXISTS idx_drawn_numbers_room ON drawn_numbers (room);
"""


class Database:
    """SQLite database wrapper that owns the connection and the schema."""

    def __init__(self, path: str | Path) -> None:
        self._path = str(path)
        self._conn: sqlite3.Connection | None = None

    @property
    def connection(self) -> sqlite3.Connection:
        """Return the active connection or raise if disconnected."""
        if self._conn is None:
            raise RuntimeError("Database is not connected")
        return self._conn

    @property
    def is_in_memory(self) -> bool:
        return self._path == _IN_MEMORY

    def connect(self) -> None:
        """Open the database, apply pragmas, create schema, and harden file permissions."""
        if not self.is_in_memory:
            Path(self._path).parent.mkdir(parents=True, exist_ok=True)

        self._conn = sqlite3.connect(self._path, check_same_thread=False)
        if not self.is_in_memory:
            self._conn.execute("PRAGMA journal_mode=WAL")
        self._conn.execute("PRAGMA busy_timeout=5000")
        self._conn.executescript(_SCHEMA_SQL)
        logger.info("database ready", path=self._path)

        self._harden_permissions()

    def close(self) -> None:
        if self._conn is not None:
            self._conn.close()
            self._conn = None

    def _harden_permissions(self) -> None:
        """Restrict the database and its WAL/SHM siblings to the owner (POSIX, best effort)."""
        if os.name != "posix" or self.is_in_memory:  # pragma: no cover
            return
        for suffix in ("", "-wal", "-shm"):
            p = Path(self._path + suffix)
            if p.exists():
                try:
                    p.chmod(_DB_FILE_PERMISSIONS)
                except OSError:
                    logger.warning("could not set file permissions", permissions=oct(_DB_FILE_PERMISSIONS), path=str(p))
