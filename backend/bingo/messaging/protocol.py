"""Abstract connection protocol shared by the WebSocket transport and test doubles."""

from abc import ABC, abstractmethod
from typing import Any


class ConnectionProtocol(ABC):
    """
    Abstract interface for a client connection.

    The session layer only ever sends message dicts and closes connections,
    so it can be exercised without a real WebSocket. Framing (MessagePack or
    JSON) is the implementation's concern.
    """

    @property
    @abstractmethod
    def connection_id(self) -> str:
        """Unique identifier for this connection."""
        ...

    @abstractmethod
    async def send_message(self, data: dict[str, Any]) -> None:
        """
        Send one message to the client.
        """
        ...

    @abstractmethod
    async def receive_message(self) -> dict[str, Any]:
        """
        Receive one message from the client.

        Raises messaging.encoder.DecodeError for a frame that is not a message.
        """
        ...

    @abstractmethod
    async def close(self, code: int = 1000, reason: str = "") -> None:
        """
        Close the connection.
        """
        ...
