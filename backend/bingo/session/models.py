from dataclasses import dataclass, field
from enum import StrEnum

MIN_NUMBER = 1
MAX_NUMBER = 36
MAX_LINE_COUNT = 14


class RoomState(StrEnum):
    """Outcome of a member leaving a room."""

    ACTIVE = "active"
    DELETED = "deleted"
    PENDING_DELETION = "pending_deletion"
    MISSING = "missing"


@dataclass
class Session:
    """A logged-in connection.

    Lifecycle:
    - Created by SessionTable.login once the registry admits the connection
    - line_count changes on updateLineCount (players only)
    - Removed on logout or when the connection closes
    """

    connection_id: str
    username: str
    room: str
    is_admin: bool
    line_count: int = 0


@dataclass
class Room:
    name: str
    member_count: int = 0
    drawn_numbers: list[int] = field(default_factory=list)

    @property
    def has_started(self) -> bool:
        return bool(self.drawn_numbers)


@dataclass(frozen=True)
class RoomView:
    """Snapshot of a room returned to callers outside the registry."""

    name: str
    member_count: int
    drawn_numbers: tuple[int, ...]
    has_started: bool
    created: bool = False
    pending_deletion: bool = False
