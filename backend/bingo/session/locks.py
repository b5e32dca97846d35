import asyncio
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager


class RoomLocks:
    """Per-room asyncio locks, created on demand.

    A lock is discarded once no coroutine holds or waits for it, so the map
    only grows with the number of rooms under contention at the same time.
    """

    def __init__(self) -> None:
        self._locks: dict[str, asyncio.Lock] = {}
        self._users: dict[str, int] = {}  # room -> holders + waiters

    @asynccontextmanager
    async def hold(self, room: str) -> AsyncIterator[None]:
        lock = self._locks.get(room)
        if lock is None:
            lock = self._locks[room] = asyncio.Lock()
        self._users[room] = self._users.get(room, 0) + 1
        try:
            async with lock:
                yield
        finally:
            remaining = self._users[room] - 1
            if remaining:
                self._users[room] = remaining
            else:
                del self._users[room]
                del self._locks[room]
