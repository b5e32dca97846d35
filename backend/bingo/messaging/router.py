from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from pydantic import ValidationError

from bingo.messaging.types import (
    ClientMessageType,
    DrawNumberMessage,
    ErrorMessage,
    LoginErrorMessage,
    LoginMessage,
    LogoutMessage,
    RequestRoomsListMessage,
    UpdateLineCountMessage,
    parse_client_message,
)
from bingo.session.errors import BingoErrorCode, InvalidNumberError, LoginValidationError

if TYPE_CHECKING:
    from bingo.messaging.protocol import ConnectionProtocol
    from bingo.session.manager import SessionManager

logger = logging.getLogger(__name__)


class MessageRouter:
    """
    Routes incoming messages to the session manager.

    This class contains pure dispatch logic and can be tested
    without real WebSocket connections.
    """

    def __init__(self, session_manager: SessionManager) -> None:
        self._session_manager = session_manager

    async def handle_message(
        self,
        connection: ConnectionProtocol,
        raw_message: dict[str, Any],
    ) -> None:
        try:
            message = parse_client_message(raw_message)
        except (ValidationError, KeyError, TypeError, ValueError) as e:
            logger.warning("invalid message from %s: %s", connection.connection_id, e)
            await self._reject_invalid(connection, raw_message.get("type"), e)
            return

        try:
            await self._dispatch(connection, message)
        except Exception:
            logger.exception("unhandled error while processing %s from %s", message.type, connection.connection_id)
            await self._session_manager.send_internal_error(connection)

    async def _dispatch(self, connection: ConnectionProtocol, message: Any) -> None:  # noqa: ANN401
        if isinstance(message, LoginMessage):
            await self._session_manager.login(
                connection,
                username=message.username,
                room=message.room,
                is_admin=message.is_admin,
                admin_secret=message.admin_secret,
            )
        elif isinstance(message, RequestRoomsListMessage):
            await self._session_manager.request_rooms_list(connection)
        elif isinstance(message, DrawNumberMessage):
            await self._session_manager.draw_number(connection, message.number)
        elif isinstance(message, UpdateLineCountMessage):
            await self._session_manager.update_line_count(connection, message.line_count)
        elif isinstance(message, LogoutMessage):
            await self._session_manager.logout(connection)

    async def _reject_invalid(self, connection: ConnectionProtocol, message_type: object, error: Exception) -> None:
        """Report a payload that failed validation.

        A malformed login is a login failure, and a non-integer draw is an
        invalid number; anything else is a generic invalid message.
        """
        if message_type == ClientMessageType.LOGIN:
            reply = LoginErrorMessage(code=BingoErrorCode.INVALID_LOGIN, message=LoginValidationError.default_message)
        elif message_type == ClientMessageType.DRAW_NUMBER:
            reply = ErrorMessage(code=BingoErrorCode.INVALID_NUMBER, message=InvalidNumberError.default_message)
        else:
            reply = ErrorMessage(code=BingoErrorCode.INVALID_MESSAGE, message=str(error))
        await connection.send_message(reply.to_wire())

    async def handle_connect(self, connection: ConnectionProtocol) -> None:
        await self._session_manager.connect(connection)

    async def handle_disconnect(self, connection: ConnectionProtocol) -> None:
        await self._session_manager.disconnect(connection)
