import asyncio
from typing import Any
from uuid import uuid4

from bingo.messaging.encoder import DecodeError, decode, encode
from bingo.messaging.protocol import ConnectionProtocol


class MockConnection(ConnectionProtocol):
    """In-memory connection that records every message sent to it.

    Outgoing messages are round-tripped through the MessagePack codec so
    tests see exactly what a client would decode.
    """

    def __init__(self, connection_id: str | None = None) -> None:
        self._connection_id = connection_id or str(uuid4())
        self._inbox: asyncio.Queue[dict[str, Any] | Exception] = asyncio.Queue()
        self._outbox: list[dict[str, Any]] = []
        self._closed = False
        self._close_code: int | None = None

    @property
    def connection_id(self) -> str:
        return self._connection_id

    @property
    def sent_messages(self) -> list[dict[str, Any]]:
        return self._outbox.copy()

    @property
    def is_closed(self) -> bool:
        return self._closed

    @property
    def close_code(self) -> int | None:
        return self._close_code

    def messages_of_type(self, message_type: str) -> list[dict[str, Any]]:
        return [m for m in self._outbox if m.get("type") == message_type]

    def last_of_type(self, message_type: str) -> dict[str, Any] | None:
        matching = self.messages_of_type(message_type)
        return matching[-1] if matching else None

    def clear(self) -> None:
        self._outbox.clear()

    async def send_message(self, data: dict[str, Any]) -> None:
        if self._closed:
            raise RuntimeError("Connection is closed")
        # round-trip through the wire codec for test inspection
        self._outbox.append(decode(encode(data)))

    async def receive_message(self) -> dict[str, Any]:
        if self._closed:
            raise RuntimeError("Connection is closed")
        item = await self._inbox.get()
        if isinstance(item, Exception):
            raise item
        return item

    async def close(self, code: int = 1000, reason: str = "") -> None:
        self._closed = True
        self._close_code = code

    async def simulate_receive(self, data: dict[str, Any]) -> None:
        """
        Simulate receiving a message from the client.
        """
        await self._inbox.put(data)

    async def simulate_bad_frame(self, reason: str = "failed to decode MessagePack data") -> None:
        await self._inbox.put(DecodeError(reason))

    async def simulate_disconnect(self) -> None:
        await self._inbox.put(ConnectionError("client went away"))
