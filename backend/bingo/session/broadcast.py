"""Shared broadcast utility for sending one message to a group of connections."""

from __future__ import annotations

import contextlib
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from collections.abc import Iterable

    from bingo.messaging.protocol import ConnectionProtocol


async def broadcast(connections: Iterable[ConnectionProtocol], message: dict[str, Any]) -> None:
    """Send a message to every connection, best effort.

    The iterable is snapshotted first so a concurrent disconnect that mutates
    the source collection while we yield on send_message cannot break the loop.
    A failed send to one connection does not stop delivery to the rest.
    """
    for connection in list(connections):
        with contextlib.suppress(RuntimeError, OSError):
            await connection.send_message(message)
