from __future__ import annotations

import hmac
from typing import TYPE_CHECKING

from bingo.session.errors import AlreadyLoggedInError, InvalidAdminSecretError, LoginValidationError
from bingo.session.models import RoomState, Session

if TYPE_CHECKING:
    from bingo.session.models import RoomView
    from bingo.session.room_registry import RoomRegistry


def _clean(value: object) -> str:
    if not isinstance(value, str):
        raise LoginValidationError
    cleaned = value.strip()
    if not cleaned:
        raise LoginValidationError
    return cleaned


class SessionTable:
    """In-memory map of connection id to logged-in session.

    Insertion order is preserved, which is the order players are listed in
    admin views. Room admission is delegated to the registry.
    """

    def __init__(self, registry: RoomRegistry, admin_secret: str) -> None:
        self._registry = registry
        self._admin_secret = admin_secret.encode()
        self._sessions: dict[str, Session] = {}  # connection_id -> Session

    def __len__(self) -> int:
        return len(self._sessions)

    def __contains__(self, connection_id: object) -> bool:
        return connection_id in self._sessions

    def get(self, connection_id: str) -> Session | None:
        return self._sessions.get(connection_id)

    def _check_admin_secret(self, candidate: str | None) -> None:
        if candidate is None or not hmac.compare_digest(candidate.encode(), self._admin_secret):
            raise InvalidAdminSecretError

    def login(
        self,
        connection_id: str,
        username: object,
        room: object,
        *,
        is_admin: bool,
        admin_secret: str | None = None,
    ) -> tuple[Session, RoomView]:
        """Validate credentials and admit the connection into a room.

        Raises a BingoError subclass on any rejection; the table and the
        registry are left untouched in that case.
        """
        username = _clean(username)
        room = _clean(room)
        if connection_id in self._sessions:
            raise AlreadyLoggedInError
        if is_admin:
            self._check_admin_secret(admin_secret)

        view = self._registry.create_or_join(room, as_admin=is_admin, admin_online=self.has_admin(room))
        session = Session(connection_id=connection_id, username=username, room=room, is_admin=is_admin)
        self._sessions[connection_id] = session
        return session, view

    def record_progress(self, connection_id: str, line_count: int) -> Session | None:
        """Store a player's completed-line count. Unknown and admin connections are ignored."""
        session = self._sessions.get(connection_id)
        if session is None or session.is_admin:
            return None
        session.line_count = line_count
        return session

    def remove(self, connection_id: str) -> tuple[Session, RoomState] | None:
        session = self._sessions.pop(connection_id, None)
        if session is None:
            return None
        return session, self._registry.leave(session.room)

    def sessions_in_room(self, room: str) -> list[Session]:
        return [s for s in self._sessions.values() if s.room == room]

    def players_in_room(self, room: str) -> list[Session]:
        return [s for s in self._sessions.values() if s.room == room and not s.is_admin]

    def admins_in_room(self, room: str) -> list[Session]:
        return [s for s in self._sessions.values() if s.room == room and s.is_admin]

    def has_admin(self, room: str) -> bool:
        return any(s.is_admin and s.room == room for s in self._sessions.values())

    def count_in_room(self, room: str) -> int:
        return sum(1 for s in self._sessions.values() if s.room == room)
