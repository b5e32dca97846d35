"""Cancellable idle-deletion timers, one per room."""

import asyncio
import logging
from collections.abc import Awaitable, Callable

logger = logging.getLogger(__name__)

# Callback type: (room_name) -> Awaitable[None]
ExpireCallback = Callable[[str], Awaitable[None]]


class RoomTimerManager:
    """Own the idle-deletion task for each empty room.

    Scheduling and cancelling are expected to happen while the caller holds
    the room lock. The timer task does not take the lock itself; the expiry
    callback is responsible for re-acquiring it and re-checking emptiness.
    """

    def __init__(self) -> None:
        self._tasks: dict[str, asyncio.Task[None]] = {}

    def schedule(self, room: str, delay: float, on_expire: ExpireCallback) -> None:
        """Arm the timer for a room, replacing any timer already running."""
        self.cancel(room)
        self._tasks[room] = asyncio.create_task(self._run(room, delay, on_expire), name=f"room-timer:{room}")

    def cancel(self, room: str) -> bool:
        """Cancel a pending timer. Return True if one was running."""
        task = self._tasks.pop(room, None)
        if task is None:
            return False
        task.cancel()
        return True

    def has_timer(self, room: str) -> bool:
        return room in self._tasks

    @property
    def pending_rooms(self) -> list[str]:
        return list(self._tasks)

    def cancel_all(self) -> None:
        for task in self._tasks.values():
            task.cancel()
        self._tasks.clear()

    async def _run(self, room: str, delay: float, on_expire: ExpireCallback) -> None:
        await asyncio.sleep(delay)
        # Only drop the entry if it still points at this task; a reschedule
        # may have replaced it between the sleep and here.
        if self._tasks.get(room) is asyncio.current_task():
            del self._tasks[room]
        try:
            await on_expire(room)
        except Exception:
            logger.exception("room timer callback failed for %s", room)
