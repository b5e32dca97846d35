"""Abstract interface for bingo room persistence."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from datetime import datetime

    from shared.dal.models import StoredRoom, StoredUser


class BingoRepository(ABC):
    """Storage contract consumed by the session layer.

    Implementations can use memory, SQLite, or a networked SQL server.
    Storage is best-effort: callers log failures and carry on with
    in-memory state, so implementations should raise rather than retry.
    """

    @abstractmethod
    async def upsert_room(self, room: str, user_count: int) -> None: ...

    @abstractmethod
    async def delete_room(self, room: str) -> None:
        """Remove the room with its drawn numbers and any pending timer row."""

    @abstractmethod
    async def get_room(self, room: str) -> StoredRoom | None: ...

    @abstractmethod
    async def list_room_names(self) -> list[str]:
        """Return the name of every stored room row."""

    @abstractmethod
    async def upsert_user(self, user: StoredUser) -> None: ...

    @abstractmethod
    async def delete_user(self, connection_id: str) -> None: ...

    @abstractmethod
    async def insert_drawn_number(self, room: str, number: int) -> None: ...

    @abstractmethod
    async def list_drawn_numbers(self, room: str) -> list[int]:
        """Return the room's numbers in draw order."""

    @abstractmethod
    async def count_users_in_room(self, room: str) -> int: ...

    @abstractmethod
    async def set_room_timer(self, room: str, expires_at: datetime) -> None: ...

    @abstractmethod
    async def clear_room_timer(self, room: str) -> None: ...

    @abstractmethod
    async def reset(self) -> None:
        """Drop all users, rooms, numbers and timers left by a previous process."""

    async def close(self) -> None:  # noqa: B027
        """Release backend resources. No-op by default."""
