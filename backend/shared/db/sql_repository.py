"""SQLAlchemy-backed bingo repository for networked SQL servers (MySQL, PostgreSQL)."""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING, Any

import structlog
from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    Integer,
    MetaData,
    String,
    Table,
    UniqueConstraint,
    create_engine,
    delete,
    func,
    insert,
    select,
    update,
)
from sqlalchemy.exc import IntegrityError

from shared.dal.models import StoredRoom, StoredUser
from shared.dal.repository import BingoRepository

if TYPE_CHECKING:
    from collections.abc import Callable
    from datetime import datetime

    from sqlalchemy.engine import Connection, Engine

logger = structlog.get_logger()

metadata = MetaData()

users = Table(
    "users",
    metadata,
    Column("socket_id", String(64), primary_key=True),
    Column("username", String(255), nullable=False),
    Column("room", String(255), nullable=False, index=True),
    Column("is_admin", Boolean, nullable=False),
    Column("line_count", Integer, default=0),
)

rooms = Table(
    "rooms",
    metadata,
    Column("room_name", String(255), primary_key=True),
    Column("user_count", Integer, nullable=False, default=0),
)

drawn_numbers = Table(
    "drawn_numbers",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("room", String(255), nullable=False, index=True),
    Column("number", Integer, nullable=False),
    Column("drawn_at", DateTime, server_default=func.now()),
    UniqueConstraint("room", "number", name="uq_drawn_numbers_room_number"),
)

room_timers = Table(
    "room_timers",
    metadata,
    Column("room", String(255), primary_key=True),
    Column("expires_at", DateTime, nullable=False),
)


def create_sql_engine(database_url: str) -> Engine:
    """Build an engine; pool_pre_ping drops connections the server has closed."""
    connect_args = {"check_same_thread": False} if database_url.startswith("sqlite") else {}
    return create_engine(database_url, connect_args=connect_args, pool_pre_ping=True)


class SqlAlchemyBingoRepository(BingoRepository):
    """BingoRepository over any SQLAlchemy-supported database.

    Engine calls are blocking, so each operation runs in a worker thread
    to keep the event loop free while the server round-trip is in flight.
    """

    def __init__(self, engine: Engine) -> None:
        self._engine = engine

    @classmethod
    def from_url(cls, database_url: str) -> SqlAlchemyBingoRepository:
        """Connect and create the schema. Raises if the server is unreachable."""
        engine = create_sql_engine(database_url)
        metadata.create_all(engine)
        logger.info("sql storage ready", dialect=engine.dialect.name)
        return cls(engine)

    async def _run(self, fn: Callable[[Connection], Any]) -> Any:  # noqa: ANN401
        def _in_transaction() -> Any:  # noqa: ANN401
            with self._engine.begin() as conn:
                return fn(conn)

        return await asyncio.to_thread(_in_transaction)

    async def upsert_room(self, room: str, user_count: int) -> None:
        def _op(conn: Connection) -> None:
            result = conn.execute(update(rooms).where(rooms.c.room_name == room).values(user_count=user_count))
            if result.rowcount == 0:
                conn.execute(insert(rooms).values(room_name=room, user_count=user_count))

        await self._run(_op)

    async def delete_room(self, room: str) -> None:
        def _op(conn: Connection) -> None:
            conn.execute(delete(rooms).where(rooms.c.room_name == room))
            conn.execute(delete(drawn_numbers).where(drawn_numbers.c.room == room))
            conn.execute(delete(room_timers).where(room_timers.c.room == room))

        await self._run(_op)

    async def get_room(self, room: str) -> StoredRoom | None:
        def _op(conn: Connection) -> StoredRoom | None:
            row = conn.execute(select(rooms.c.room_name, rooms.c.user_count).where(rooms.c.room_name == room)).first()
            if row is None:
                return None
            return StoredRoom(room_name=row.room_name, user_count=row.user_count)

        return await self._run(_op)

    async def list_room_names(self) -> list[str]:
        def _op(conn: Connection) -> list[str]:
            return list(conn.execute(select(rooms.c.room_name).order_by(rooms.c.room_name)).scalars())

        return await self._run(_op)

    async def upsert_user(self, user: StoredUser) -> None:
        def _op(conn: Connection) -> None:
            result = conn.execute(
                update(users).where(users.c.socket_id == user.connection_id).values(line_count=user.line_count),
            )
            if result.rowcount == 0:
                conn.execute(
                    insert(users).values(
                        socket_id=user.connection_id,
                        username=user.username,
                        room=user.room,
                        is_admin=user.is_admin,
                        line_count=user.line_count,
                    ),
                )

        await self._run(_op)

    async def delete_user(self, connection_id: str) -> None:
        await self._run(lambda conn: conn.execute(delete(users).where(users.c.socket_id == connection_id)))

    async def insert_drawn_number(self, room: str, number: int) -> None:
        """Record a drawn number. Logs a warning and returns on a duplicate."""
        try:
            await self._run(lambda conn: conn.execute(insert(drawn_numbers).values(room=room, number=number)))
        except IntegrityError:
            logger.warning("drawn number already stored, ignoring duplicate", room=room, number=number)

    async def list_drawn_numbers(self, room: str) -> list[int]:
        def _op(conn: Connection) -> list[int]:
            stmt = select(drawn_numbers.c.number).where(drawn_numbers.c.room == room).order_by(drawn_numbers.c.id)
            return list(conn.execute(stmt).scalars())

        return await self._run(_op)

    async def count_users_in_room(self, room: str) -> int:
        def _op(conn: Connection) -> int:
            return conn.execute(select(func.count()).select_from(users).where(users.c.room == room)).scalar_one()

        return await self._run(_op)

    async def set_room_timer(self, room: str, expires_at: datetime) -> None:
        # Stored as naive UTC; not every dialect keeps the offset.
        naive = expires_at.replace(tzinfo=None)

        def _op(conn: Connection) -> None:
            result = conn.execute(update(room_timers).where(room_timers.c.room == room).values(expires_at=naive))
            if result.rowcount == 0:
                conn.execute(insert(room_timers).values(room=room, expires_at=naive))

        await self._run(_op)

    async def clear_room_timer(self, room: str) -> None:
        await self._run(lambda conn: conn.execute(delete(room_timers).where(room_timers.c.room == room)))

    async def reset(self) -> None:
        def _op(conn: Connection) -> None:
            for table in (users, rooms, drawn_numbers, room_timers):
                conn.execute(delete(table))

        await self._run(_op)

    async def close(self) -> None:
        await asyncio.to_thread(self._engine.dispose)
