from enum import StrEnum
from typing import Annotated, Any, Literal

from pydantic import BaseModel, ConfigDict, Field, StrictBool, StrictInt, StringConstraints, TypeAdapter
from pydantic.alias_generators import to_camel

from bingo.session.errors import BingoErrorCode

_MAX_NAME_LENGTH = 64
_MAX_SECRET_LENGTH = 256

# Surrounding whitespace is stripped before the length check.
LoginName = Annotated[str, StringConstraints(strip_whitespace=True, max_length=_MAX_NAME_LENGTH)]


class ClientMessageType(StrEnum):
    LOGIN = "login"
    REQUEST_ROOMS_LIST = "requestRoomsList"
    DRAW_NUMBER = "drawNumber"
    UPDATE_LINE_COUNT = "updateLineCount"
    LOGOUT = "logout"


class ServerMessageType(StrEnum):
    ROOMS_LIST_UPDATE = "roomsListUpdate"
    LOGIN_SUCCESS = "loginSuccess"
    LOGIN_ERROR = "loginError"
    ERROR = "errorMessage"
    NUMBER_DRAWN = "numberDrawn"
    LOCK_CARDS = "lockCards"
    PLAYERS_UPDATE = "playersUpdate"
    LINE_COUNT_UPDATE = "lineCountUpdate"
    LOGOUT_SUCCESS = "logoutSuccess"


class WireModel(BaseModel):
    """Base for every wire message: snake_case in Python, camelCase on the wire."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_wire(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True)


# --- client -> server ---


class LoginMessage(WireModel):
    type: Literal[ClientMessageType.LOGIN] = ClientMessageType.LOGIN
    username: LoginName
    room: LoginName
    is_admin: StrictBool = False
    admin_secret: str | None = Field(default=None, max_length=_MAX_SECRET_LENGTH)


class RequestRoomsListMessage(WireModel):
    type: Literal[ClientMessageType.REQUEST_ROOMS_LIST] = ClientMessageType.REQUEST_ROOMS_LIST


class DrawNumberMessage(WireModel):
    type: Literal[ClientMessageType.DRAW_NUMBER] = ClientMessageType.DRAW_NUMBER
    number: StrictInt


class UpdateLineCountMessage(WireModel):
    type: Literal[ClientMessageType.UPDATE_LINE_COUNT] = ClientMessageType.UPDATE_LINE_COUNT
    line_count: StrictInt


class LogoutMessage(WireModel):
    type: Literal[ClientMessageType.LOGOUT] = ClientMessageType.LOGOUT


ClientMessage = Annotated[
    LoginMessage | RequestRoomsListMessage | DrawNumberMessage | UpdateLineCountMessage | LogoutMessage,
    Field(discriminator="type"),
]

_client_message_adapter = TypeAdapter(ClientMessage)


def parse_client_message(data: dict[str, Any]) -> ClientMessage:
    """Parse a decoded frame into a typed client message.

    Raises pydantic.ValidationError when the type is unknown or the payload
    does not match it.
    """
    return _client_message_adapter.validate_python(data)


# --- server -> client ---


class RoomsListUpdateMessage(WireModel):
    type: Literal[ServerMessageType.ROOMS_LIST_UPDATE] = ServerMessageType.ROOMS_LIST_UPDATE
    room_names: list[str]


class LoginSuccessMessage(WireModel):
    type: Literal[ServerMessageType.LOGIN_SUCCESS] = ServerMessageType.LOGIN_SUCCESS
    room: str
    is_admin: bool
    message: str = "Login successful"


class LoginErrorMessage(WireModel):
    type: Literal[ServerMessageType.LOGIN_ERROR] = ServerMessageType.LOGIN_ERROR
    code: BingoErrorCode
    message: str


class ErrorMessage(WireModel):
    type: Literal[ServerMessageType.ERROR] = ServerMessageType.ERROR
    code: BingoErrorCode
    message: str


class NumberDrawnMessage(WireModel):
    type: Literal[ServerMessageType.NUMBER_DRAWN] = ServerMessageType.NUMBER_DRAWN
    number: int


class LockCardsMessage(WireModel):
    type: Literal[ServerMessageType.LOCK_CARDS] = ServerMessageType.LOCK_CARDS


class PlayersUpdateMessage(WireModel):
    type: Literal[ServerMessageType.PLAYERS_UPDATE] = ServerMessageType.PLAYERS_UPDATE
    players: list[str]
    count: int


class LineCountUpdateMessage(WireModel):
    """Usernames grouped by completed lines; keys 0..14 are always present."""

    type: Literal[ServerMessageType.LINE_COUNT_UPDATE] = ServerMessageType.LINE_COUNT_UPDATE
    line_counts: dict[int, list[str]]


class LogoutSuccessMessage(WireModel):
    type: Literal[ServerMessageType.LOGOUT_SUCCESS] = ServerMessageType.LOGOUT_SUCCESS
