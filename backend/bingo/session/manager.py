from __future__ import annotations

from datetime import UTC, datetime, timedelta
from typing import TYPE_CHECKING, Any

import structlog

from bingo.messaging.types import (
    ErrorMessage,
    LineCountUpdateMessage,
    LockCardsMessage,
    LoginErrorMessage,
    LoginSuccessMessage,
    LogoutSuccessMessage,
    NumberDrawnMessage,
    PlayersUpdateMessage,
    RoomsListUpdateMessage,
)
from bingo.session.broadcast import broadcast
from bingo.session.errors import BingoError, BingoErrorCode, NotAdminError, NotLoggedInError
from bingo.session.locks import RoomLocks
from bingo.session.models import RoomState
from bingo.session.reconciler import Reconciler
from bingo.session.room_registry import RoomRegistry
from bingo.session.session_store import SessionTable
from bingo.session.timer_manager import RoomTimerManager
from bingo.session.views import compute_line_count_view, compute_players_view
from shared.dal import InMemoryBingoRepository, StoredUser

if TYPE_CHECKING:
    from collections.abc import Awaitable

    from bingo.messaging.protocol import ConnectionProtocol
    from bingo.session.models import RoomView, Session
    from shared.dal import BingoRepository

logger = structlog.get_logger()

DEFAULT_RECONCILE_INTERVAL_SECONDS = 60.0


class SessionManager:
    """Owns every piece of room and session state for one server process.

    Each inbound event runs its mutation and the resulting broadcasts under
    the lock of the room it touches, so same-room events are applied one at
    a time and every client sees them in the same order. Storage writes run
    after the lock is released and never fail the event.
    """

    def __init__(
        self,
        *,
        admin_secret: str,
        repository: BingoRepository | None = None,
        room_grace_seconds: float = 0,
        lock_started_rooms: bool = False,
        reconcile_interval_seconds: float = DEFAULT_RECONCILE_INTERVAL_SECONDS,
    ) -> None:
        self._repository = repository if repository is not None else InMemoryBingoRepository()
        self._room_grace_seconds = room_grace_seconds
        self._connections: dict[str, ConnectionProtocol] = {}
        self._locks = RoomLocks()
        self._timers = RoomTimerManager()
        self._registry = RoomRegistry(
            self._timers,
            on_expire=self.expire_room,
            grace_seconds=room_grace_seconds,
            lock_started_rooms=lock_started_rooms,
        )
        self._sessions = SessionTable(self._registry, admin_secret)
        self._reconciler = Reconciler(self, interval=reconcile_interval_seconds)

    # --- introspection ---

    @property
    def connection_count(self) -> int:
        return len(self._connections)

    @property
    def session_count(self) -> int:
        return len(self._sessions)

    @property
    def room_count(self) -> int:
        return self._registry.room_count

    @property
    def rooms_pending_deletion(self) -> list[str]:
        return self._timers.pending_rooms

    @property
    def reconciler(self) -> Reconciler:
        return self._reconciler

    def get_session(self, connection_id: str) -> Session | None:
        return self._sessions.get(connection_id)

    def get_room(self, room: str) -> RoomView | None:
        return self._registry.get_room(room)

    def list_rooms(self) -> list[RoomView]:
        return self._registry.list_rooms()

    def list_room_names(self) -> list[str]:
        return self._registry.list_room_names()

    # --- lifecycle ---

    async def start(self) -> None:
        """Purge sessions left over from a previous process and start the reconciliation loop.

        A storage failure here propagates: the server must not start on a
        backend it cannot reach.
        """
        await self._repository.reset()
        self._reconciler.start()

    async def shutdown(self) -> None:
        await self._reconciler.stop()
        self._timers.cancel_all()
        try:
            await self._repository.close()
        except Exception:
            logger.exception("failed to close storage")

    # --- connections ---

    async def connect(self, connection: ConnectionProtocol) -> None:
        """Register a new connection and send it the current room list."""
        self._connections[connection.connection_id] = connection
        await self._send(connection, RoomsListUpdateMessage(room_names=self.list_room_names()).to_wire())

    async def disconnect(self, connection: ConnectionProtocol) -> None:
        """Drop the connection and, if it was logged in, its session."""
        self._connections.pop(connection.connection_id, None)
        await self._leave(connection.connection_id)

    # --- inbound events ---

    async def login(
        self,
        connection: ConnectionProtocol,
        *,
        username: str,
        room: str,
        is_admin: bool,
        admin_secret: str | None = None,
    ) -> None:
        room_key = room.strip()
        async with self._locks.hold(room_key):
            try:
                session, view = self._sessions.login(
                    connection.connection_id,
                    username,
                    room,
                    is_admin=is_admin,
                    admin_secret=admin_secret,
                )
            except BingoError as e:
                logger.info("login rejected", room=room_key, error_code=e.code.value)
                await self._send(connection, LoginErrorMessage(code=e.code, message=e.message).to_wire())
                return

            logger.info(
                "user logged in",
                room=session.room,
                username=session.username,
                is_admin=session.is_admin,
                room_created=view.created,
            )
            await self._send(
                connection,
                LoginSuccessMessage(room=session.room, is_admin=session.is_admin).to_wire(),
            )
            await self.broadcast_rooms_list()
            await self._push_admin_views(session.room)

        await self._persist("upsert_room", self._repository.upsert_room(session.room, view.member_count))
        await self._persist("upsert_user", self._repository.upsert_user(self._stored_user(session)))
        await self._persist("clear_room_timer", self._repository.clear_room_timer(session.room))

    async def request_rooms_list(self, connection: ConnectionProtocol) -> None:
        await self._send(connection, RoomsListUpdateMessage(room_names=self.list_room_names()).to_wire())

    async def draw_number(self, connection: ConnectionProtocol, number: int) -> None:
        session = self._sessions.get(connection.connection_id)
        if session is None:
            await self._send_error(connection, NotLoggedInError())
            return
        if not session.is_admin:
            await self._send_error(connection, NotAdminError())
            return

        room = session.room
        async with self._locks.hold(room):
            try:
                self._registry.record_draw(room, number)
            except BingoError as e:
                await self._send_error(connection, e)
                return

            logger.info("number drawn", room=room, number=number)
            members = self._room_connections(room)
            await broadcast(members, NumberDrawnMessage(number=number).to_wire())
            await broadcast(members, LockCardsMessage().to_wire())
            await self._push_admin_views(room)

        await self._persist("insert_drawn_number", self._repository.insert_drawn_number(room, number))

    async def update_line_count(self, connection: ConnectionProtocol, line_count: int) -> None:
        """Record a player's progress. Updates from unknown or admin connections are ignored."""
        session = self._sessions.get(connection.connection_id)
        if session is None or session.is_admin:
            return

        async with self._locks.hold(session.room):
            if self._sessions.record_progress(connection.connection_id, line_count) is None:
                return
            logger.debug("line count updated", room=session.room, username=session.username, line_count=line_count)
            await self._send_to_admins(
                session.room,
                LineCountUpdateMessage(line_counts=compute_line_count_view(self._sessions, session.room)).to_wire(),
            )

        await self._persist("upsert_user", self._repository.upsert_user(self._stored_user(session)))

    async def logout(self, connection: ConnectionProtocol) -> None:
        """End the session but keep the connection open."""
        if connection.connection_id not in self._sessions:
            await self._send_error(connection, NotLoggedInError())
            return
        await self._leave(connection.connection_id)
        await self._send(connection, LogoutSuccessMessage().to_wire())

    async def send_internal_error(self, connection: ConnectionProtocol) -> None:
        await self._send(
            connection,
            ErrorMessage(code=BingoErrorCode.INTERNAL_ERROR, message="Internal server error").to_wire(),
        )

    # --- room lifecycle ---

    async def expire_room(self, room: str) -> None:
        """Idle timer callback: delete the room unless someone rejoined during the grace period."""
        async with self._locks.hold(room):
            if not self._registry.expire_room(room):
                return
            await self.broadcast_rooms_list()
        await self._persist("delete_room", self._repository.delete_room(room))

    async def reconcile_room(self, room: str) -> None:
        """Overwrite drifted member counts from the session table and retire idle rooms."""
        async with self._locks.hold(room):
            actual = self._sessions.count_in_room(room)
            previous = self._registry.set_member_count(room, actual)
            if previous is None:
                return
            if previous != actual:
                logger.warning("member count drift corrected", room=room, recorded=previous, actual=actual)
            retired: RoomState | None = None
            if actual == 0 and not self._timers.has_timer(room):
                retired = self._registry.retire_if_idle(room)
                logger.info("idle room swept", room=room, room_state=retired.value)

        if retired is not None:
            await self._persist_room_state(room, retired, actual)
        else:
            await self._resync_stored_room(room)

    async def prune_stored_rooms(self) -> None:
        """Delete stored room rows whose room no longer exists in memory."""
        try:
            stored_rooms = await self._repository.list_room_names()
        except Exception:
            logger.exception("storage operation failed", action="list_room_names")
            return
        for room in stored_rooms:
            async with self._locks.hold(room):
                orphaned = not self._registry.has_room(room)
            if orphaned:
                logger.warning("orphaned stored room removed", room=room)
                await self._persist("delete_room", self._repository.delete_room(room))

    async def broadcast_rooms_list(self) -> None:
        await broadcast(
            self._connections.values(),
            RoomsListUpdateMessage(room_names=self.list_room_names()).to_wire(),
        )

    # --- internals ---

    async def _leave(self, connection_id: str) -> None:
        session = self._sessions.get(connection_id)
        if session is None:
            return

        room = session.room
        async with self._locks.hold(room):
            removed = self._sessions.remove(connection_id)
            if removed is None:
                return
            _, state = removed
            logger.info("user left", room=room, username=session.username, room_state=state.value)
            await self.broadcast_rooms_list()
            if state not in (RoomState.DELETED, RoomState.MISSING):
                await self._push_admin_views(room)
            view = self._registry.get_room(room)

        await self._persist("delete_user", self._repository.delete_user(connection_id))
        await self._persist_room_state(room, state, view.member_count if view is not None else 0)

    async def _persist_room_state(self, room: str, state: RoomState, member_count: int) -> None:
        if state is RoomState.DELETED:
            await self._persist("delete_room", self._repository.delete_room(room))
        elif state is RoomState.PENDING_DELETION:
            await self._persist("upsert_room", self._repository.upsert_room(room, member_count))
            expires_at = datetime.now(UTC) + timedelta(seconds=self._room_grace_seconds)
            await self._persist("set_room_timer", self._repository.set_room_timer(room, expires_at))
        elif state is RoomState.ACTIVE:
            await self._persist("upsert_room", self._repository.upsert_room(room, member_count))

    async def _resync_stored_room(self, room: str) -> None:
        """Rewrite the stored mirror of a live room where it has drifted.

        Storage is read without the room lock, so the room is looked up again
        under the lock before anything is written back.
        """
        try:
            stored = await self._repository.get_room(room)
            stored_users = await self._repository.count_users_in_room(room)
            stored_numbers = set(await self._repository.list_drawn_numbers(room))
        except Exception:
            logger.exception("storage operation failed", action="read_room", room=room)
            return

        async with self._locks.hold(room):
            view = self._registry.get_room(room)
            if view is None:
                logger.info("room gone during resync, skipping write", room=room)
                return
            sessions = self._sessions.sessions_in_room(room)

        if stored is None or stored.user_count != view.member_count:
            logger.info("stored room row out of sync, rewriting", room=room, user_count=view.member_count)
            await self._persist("upsert_room", self._repository.upsert_room(room, view.member_count))
        if stored_users != len(sessions):
            logger.info("stored users out of sync, rewriting", room=room, stored=stored_users, live=len(sessions))
            for session in sessions:
                await self._persist("upsert_user", self._repository.upsert_user(self._stored_user(session)))
        for number in view.drawn_numbers:
            if number not in stored_numbers:
                logger.info("restoring drawn number", room=room, number=number)
                await self._persist("insert_drawn_number", self._repository.insert_drawn_number(room, number))

    async def _persist(self, action: str, operation: Awaitable[None]) -> None:
        """Await a storage write. Failures are logged; in-memory state stays authoritative."""
        try:
            await operation
        except Exception:
            logger.exception("storage operation failed", action=action)

    @staticmethod
    def _stored_user(session: Session) -> StoredUser:
        return StoredUser(
            connection_id=session.connection_id,
            username=session.username,
            room=session.room,
            is_admin=session.is_admin,
            line_count=session.line_count,
        )

    def _room_connections(self, room: str) -> list[ConnectionProtocol]:
        return [
            conn
            for s in self._sessions.sessions_in_room(room)
            if (conn := self._connections.get(s.connection_id)) is not None
        ]

    async def _send_to_admins(self, room: str, message: dict[str, Any]) -> None:
        admins = [
            conn
            for s in self._sessions.admins_in_room(room)
            if (conn := self._connections.get(s.connection_id)) is not None
        ]
        await broadcast(admins, message)

    async def _push_admin_views(self, room: str) -> None:
        players = compute_players_view(self._sessions, room)
        await self._send_to_admins(room, PlayersUpdateMessage(players=players.players, count=players.count).to_wire())
        await self._send_to_admins(
            room,
            LineCountUpdateMessage(line_counts=compute_line_count_view(self._sessions, room)).to_wire(),
        )

    async def _send(self, connection: ConnectionProtocol, message: dict[str, Any]) -> None:
        await broadcast((connection,), message)

    async def _send_error(self, connection: ConnectionProtocol, error: BingoError) -> None:
        logger.info("error sent to client", error_code=error.code.value, error_message=error.message)
        await self._send(connection, ErrorMessage(code=error.code, message=error.message).to_wire())
