from __future__ import annotations

from typing import TYPE_CHECKING

import structlog

from bingo.session.errors import (
    DuplicateNumberError,
    InvalidNumberError,
    NoAdminOnlineError,
    RoomLockedError,
    RoomNotFoundError,
)
from bingo.session.models import MAX_NUMBER, MIN_NUMBER, Room, RoomState, RoomView

if TYPE_CHECKING:
    from bingo.session.timer_manager import ExpireCallback, RoomTimerManager

logger = structlog.get_logger()


class RoomRegistry:
    """Authoritative in-memory state for every live room.

    Callers hold the room lock around every mutating call. The registry does
    not know about sessions; admin presence is passed in by the session table.
    """

    def __init__(
        self,
        timers: RoomTimerManager,
        *,
        on_expire: ExpireCallback,
        grace_seconds: float = 0,
        lock_started_rooms: bool = False,
    ) -> None:
        self._rooms: dict[str, Room] = {}
        self._timers = timers
        self._on_expire = on_expire
        self._grace_seconds = grace_seconds
        self._lock_started_rooms = lock_started_rooms

    @property
    def room_count(self) -> int:
        return len(self._rooms)

    def _view(self, room: Room, *, created: bool = False) -> RoomView:
        return RoomView(
            name=room.name,
            member_count=room.member_count,
            drawn_numbers=tuple(room.drawn_numbers),
            has_started=room.has_started,
            created=created,
            pending_deletion=self._timers.has_timer(room.name),
        )

    def get_room(self, name: str) -> RoomView | None:
        room = self._rooms.get(name)
        return self._view(room) if room is not None else None

    def has_room(self, name: str) -> bool:
        return name in self._rooms

    def list_room_names(self) -> list[str]:
        """Names of every present room, including those pending deletion, in creation order."""
        return list(self._rooms)

    def list_rooms(self) -> list[RoomView]:
        return [self._view(room) for room in self._rooms.values()]

    def create_or_join(self, name: str, *, as_admin: bool, admin_online: bool) -> RoomView:
        """Admit one member into a room, creating it for an admin if absent.

        Raises RoomNotFoundError, NoAdminOnlineError or RoomLockedError for
        players; admins are always admitted. Nothing is mutated on failure.
        """
        room = self._rooms.get(name)
        created = False
        if room is None:
            if not as_admin:
                raise RoomNotFoundError
            room = self._rooms[name] = Room(name=name)
            created = True
            logger.info("room created", room=name)
        elif not as_admin:
            if not admin_online:
                raise NoAdminOnlineError
            if self._lock_started_rooms and room.has_started:
                raise RoomLockedError

        room.member_count += 1
        if self._timers.cancel(name):
            logger.info("room deletion cancelled, member rejoined", room=name)
        return self._view(room, created=created)

    def record_draw(self, name: str, number: int) -> tuple[int, ...]:
        """Append a drawn number. Return the room's drawn numbers afterwards."""
        room = self._rooms.get(name)
        if room is None:
            raise RoomNotFoundError
        if isinstance(number, bool) or not MIN_NUMBER <= number <= MAX_NUMBER:
            raise InvalidNumberError
        if number in room.drawn_numbers:
            raise DuplicateNumberError
        room.drawn_numbers.append(number)
        return tuple(room.drawn_numbers)

    def leave(self, name: str) -> RoomState:
        room = self._rooms.get(name)
        if room is None:
            return RoomState.MISSING
        room.member_count = max(room.member_count - 1, 0)
        if room.member_count > 0:
            return RoomState.ACTIVE
        return self._retire(name)

    def retire_if_idle(self, name: str) -> RoomState:
        """Apply the empty-room policy to a room left at zero members with no timer armed."""
        room = self._rooms.get(name)
        if room is None:
            return RoomState.MISSING
        if room.member_count > 0:
            return RoomState.ACTIVE
        if self._timers.has_timer(name):
            return RoomState.PENDING_DELETION
        return self._retire(name)

    def _retire(self, name: str) -> RoomState:
        if self._grace_seconds <= 0:
            self.delete_room(name)
            return RoomState.DELETED
        self._timers.schedule(name, self._grace_seconds, self._on_expire)
        logger.info("room empty, deletion scheduled", room=name, grace_seconds=self._grace_seconds)
        return RoomState.PENDING_DELETION

    def expire_room(self, name: str) -> bool:
        """Delete a room whose grace period ran out. Return False if someone rejoined."""
        room = self._rooms.get(name)
        if room is None or room.member_count > 0:
            return False
        self.delete_room(name)
        return True

    def delete_room(self, name: str) -> bool:
        self._timers.cancel(name)
        if self._rooms.pop(name, None) is None:
            return False
        logger.info("room deleted", room=name)
        return True

    def set_member_count(self, name: str, count: int) -> int | None:
        """Overwrite a room's member count. Return the previous value, or None if absent."""
        room = self._rooms.get(name)
        if room is None:
            return None
        previous = room.member_count
        room.member_count = max(count, 0)
        return previous
