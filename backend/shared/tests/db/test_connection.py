"""Tests for Database connection and schema."""

from __future__ import annotations

import sqlite3
import sys
from typing import TYPE_CHECKING

import pytest

from shared.db.connection import Database

if TYPE_CHECKING:
    from pathlib import Path

_BINGO_TABLES = {"users", "rooms", "drawn_numbers", "room_timers"}


def _table_names(db: Database) -> set[str]:
    rows = db.connection.execute("SELECT name FROM sqlite_master WHERE type='table'").fetchall()
    return {row[0] for row in rows}


class TestConnect:
    def test_creates_schema_and_connects(self, tmp_path: Path) -> None:
        db = Database(tmp_path / "test.db")
        db.connect()

        assert _BINGO_TABLES <= _table_names(db)
        db.close()

    def test_reconnect_keeps_existing_rows(self, tmp_path: Path) -> None:
        db = Database(tmp_path / "test.db")
        db.connect()
        db.connection.execute("INSERT INTO rooms (room_name, user_count) VALUES ('lobby', 2)")
        db.connection.commit()
        db.close()

        db.connect()
        row = db.connection.execute("SELECT user_count FROM rooms WHERE room_name = 'lobby'").fetchone()
        assert row[0] == 2
        db.close()

    def test_in_memory_database(self) -> None:
        db = Database(":memory:")
        db.connect()

        assert db.is_in_memory
        assert _BINGO_TABLES <= _table_names(db)
        db.close()

    def test_drawn_numbers_unique_per_room(self, tmp_path: Path) -> None:
        db = Database(tmp_path / "test.db")
        db.connect()
        db.connection.execute("INSERT INTO drawn_numbers (room, number) VALUES ('a', 7)")
        db.connection.execute("INSERT INTO drawn_numbers (room, number) VALUES ('b', 7)")

        with pytest.raises(sqlite3.IntegrityError):
            db.connection.execute("INSERT INTO drawn_numbers (room, number) VALUES ('a', 7)")
        db.close()

    def test_connection_raises_when_disconnected(self, tmp_path: Path) -> None:
        db = Database(tmp_path / "test.db")
        with pytest.raises(RuntimeError, match="not connected"):
            _ = db.connection

    def test_connection_raises_after_close(self, tmp_path: Path) -> None:
        db = Database(tmp_path / "test.db")
        db.connect()
        db.close()
        with pytest.raises(RuntimeError, match="not connected"):
            _ = db.connection

    def test_creates_parent_directories(self, tmp_path: Path) -> None:
        db = Database(tmp_path / "nested" / "dir" / "test.db")
        db.connect()
        assert (tmp_path / "nested" / "dir" / "test.db").exists()
        db.close()

    @pytest.mark.skipif(sys.platform == "win32", reason="POSIX permissions")
    def test_database_file_is_owner_only(self, tmp_path: Path) -> None:
        db = Database(tmp_path / "test.db")
        db.connect()
        assert (tmp_path / "test.db").stat().st_mode & 0o777 == 0o600
        db.close()
