"""Domain errors raised by the room registry and the session table.

Each error carries the wire code sent back to the caller. Login failures are
reported as ``loginError``; everything else as ``errorMessage``.
"""

from enum import StrEnum


class BingoErrorCode(StrEnum):
    INVALID_LOGIN = "invalid_login"
    ALREADY_LOGGED_IN = "already_logged_in"
    INVALID_ADMIN_SECRET = "invalid_admin_secret"
    ROOM_NOT_FOUND = "room_not_found"
    NO_ADMIN_ONLINE = "no_admin_online"
    ROOM_LOCKED = "room_locked"
    NOT_ADMIN = "not_admin"
    NOT_LOGGED_IN = "not_logged_in"
    INVALID_NUMBER = "invalid_number"
    DUPLICATE_NUMBER = "duplicate_number"
    INVALID_MESSAGE = "invalid_message"
    INTERNAL_ERROR = "internal_error"


class BingoError(Exception):
    """Base class for rejections that are reported to the calling connection."""

    code: BingoErrorCode = BingoErrorCode.INTERNAL_ERROR
    default_message = "Internal server error"

    def __init__(self, message: str | None = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)


class LoginValidationError(BingoError):
    code = BingoErrorCode.INVALID_LOGIN
    default_message = "Username and room are required"


class AlreadyLoggedInError(BingoError):
    code = BingoErrorCode.ALREADY_LOGGED_IN
    default_message = "This connection is already logged in"


class InvalidAdminSecretError(BingoError):
    code = BingoErrorCode.INVALID_ADMIN_SECRET
    default_message = "Invalid admin password"


class RoomNotFoundError(BingoError):
    code = BingoErrorCode.ROOM_NOT_FOUND
    default_message = "Room does not exist"


class NoAdminOnlineError(BingoError):
    code = BingoErrorCode.NO_ADMIN_ONLINE
    default_message = "No admin is online in this room"


class RoomLockedError(BingoError):
    code = BingoErrorCode.ROOM_LOCKED
    default_message = "The game in this room has already started"


class NotAdminError(BingoError):
    code = BingoErrorCode.NOT_ADMIN
    default_message = "Only an admin can do that"


class NotLoggedInError(BingoError):
    code = BingoErrorCode.NOT_LOGGED_IN
    default_message = "Log in first"


class InvalidNumberError(BingoError):
    code = BingoErrorCode.INVALID_NUMBER
    default_message = "Number must be between 1 and 36"


class DuplicateNumberError(BingoError):
    code = BingoErrorCode.DUPLICATE_NUMBER
    default_message = "This number has already been drawn"


LOGIN_ERRORS = (
    LoginValidationError,
    AlreadyLoggedInError,
    InvalidAdminSecretError,
    RoomNotFoundError,
    NoAdminOnlineError,
    RoomLockedError,
)
