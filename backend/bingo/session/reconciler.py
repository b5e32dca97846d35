"""Periodic sweep that corrects member-count drift and retires idle rooms."""

from __future__ import annotations

import asyncio
import contextlib
from typing import TYPE_CHECKING

import structlog

if TYPE_CHECKING:
    from bingo.session.manager import SessionManager

logger = structlog.get_logger()


class Reconciler:
    def __init__(self, manager: SessionManager, *, interval: float) -> None:
        self._manager = manager
        self._interval = interval
        self._task: asyncio.Task[None] | None = None
        self._sweeping = False

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        """Start the periodic sweep task. Idempotent."""
        if self._interval <= 0 or self.is_running:
            return
        self._task = asyncio.create_task(self._loop(), name="room-reconciler")

    async def stop(self) -> None:
        if self._task is not None:
            self._task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._task
            self._task = None

    async def _loop(self) -> None:
        while True:
            await asyncio.sleep(self._interval)
            try:
                await self.sweep()
            except Exception:
                logger.exception("room reconciliation encountered an error")

    async def sweep(self) -> bool:
        """Reconcile every room once, drop orphaned stored rooms, then broadcast the room list.

        Return False without doing anything if a sweep is already in flight.
        """
        if self._sweeping:
            logger.debug("reconciliation sweep already running, skipping tick")
            return False
        self._sweeping = True
        try:
            for room in self._manager.list_room_names():
                await self._manager.reconcile_room(room)
            await self._manager.prune_stored_rooms()
            await self._manager.broadcast_rooms_list()
        finally:
            self._sweeping = False
        return True
