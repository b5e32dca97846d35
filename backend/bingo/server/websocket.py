from __future__ import annotations

import contextlib
from typing import TYPE_CHECKING, Any
from uuid import uuid4

import structlog
from starlette.websockets import WebSocket, WebSocketDisconnect

from bingo.messaging.encoder import DecodeError, Encoding, decode, decode_json, encode, encode_json
from bingo.messaging.protocol import ConnectionProtocol
from bingo.messaging.types import ErrorMessage
from bingo.session.errors import BingoErrorCode
from shared.logging import connection_log_context

logger = structlog.get_logger()

if TYPE_CHECKING:
    from bingo.messaging.router import MessageRouter

# Disconnect after this many consecutive decode errors
_MAX_DECODE_ERRORS = 5


class WebSocketConnection(ConnectionProtocol):
    def __init__(
        self,
        websocket: WebSocket,
        encoding: Encoding = Encoding.MSGPACK,
        connection_id: str | None = None,
    ) -> None:
        self._websocket = websocket
        self._encoding = encoding
        self._connection_id = connection_id or str(uuid4())

    @property
    def connection_id(self) -> str:
        return self._connection_id

    async def send_message(self, data: dict[str, Any]) -> None:
        try:
            if self._encoding is Encoding.JSON:
                await self._websocket.send_text(encode_json(data))
            else:
                await self._websocket.send_bytes(encode(data))
        except WebSocketDisconnect:
            raise ConnectionError("WebSocket already disconnected") from None

    async def receive_message(self) -> dict[str, Any]:
        frame = await self._websocket.receive()
        if frame["type"] == "websocket.disconnect":
            raise ConnectionError("WebSocket disconnected")

        if self._encoding is Encoding.JSON:
            text = frame.get("text")
            if text is None:
                raise DecodeError("expected a text frame")
            return decode_json(text)

        data = frame.get("bytes")
        if data is None:
            raise DecodeError("expected a binary frame")
        return decode(data)

    async def close(self, code: int = 1000, reason: str = "") -> None:
        with contextlib.suppress(WebSocketDisconnect, RuntimeError):
            await self._websocket.close(code=code, reason=reason)


def _resolve_encoding(websocket: WebSocket) -> Encoding | None:
    value = websocket.query_params.get("encoding", Encoding.MSGPACK.value).lower()
    try:
        return Encoding(value)
    except ValueError:
        return None


async def websocket_endpoint(websocket: WebSocket, router: MessageRouter) -> None:
    encoding = _resolve_encoding(websocket)
    if encoding is None:
        await websocket.close(code=4000, reason="invalid_encoding")
        return

    await websocket.accept()

    connection = WebSocketConnection(websocket, encoding=encoding)
    with connection_log_context(connection.connection_id, encoding=encoding.value):
        logger.info("websocket connected")
        await serve_connection(connection, router)


async def serve_connection(connection: ConnectionProtocol, router: MessageRouter) -> None:
    """Register the connection and run its receive loop.

    Five consecutive undecodable frames close the socket with code 4004.
    However the loop ends, the connection is handed to handle_disconnect.
    """
    decode_errors = 0

    try:
        await router.handle_connect(connection)
        while True:
            try:
                data = await connection.receive_message()
            except DecodeError as e:
                decode_errors += 1
                logger.warning("decode error", error=str(e), strikes=decode_errors)
                await connection.send_message(
                    ErrorMessage(code=BingoErrorCode.INVALID_MESSAGE, message=str(e)).to_wire(),
                )
                if decode_errors >= _MAX_DECODE_ERRORS:
                    logger.info("too many decode errors, disconnecting")
                    await connection.close(code=4004, reason="too_many_decode_errors")
                    return
                continue

            decode_errors = 0
            await router.handle_message(connection, data)
    except (WebSocketDisconnect, RuntimeError, ConnectionError):
        pass
    finally:
        logger.info("websocket disconnected")
        await router.handle_disconnect(connection)
