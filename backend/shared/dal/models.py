"""Persistence models for the data access layer."""

from pydantic import BaseModel, Field


class StoredUser(BaseModel, frozen=True):
    """One logged-in connection as written to storage."""

    connection_id: str = Field(min_length=1)
    username: str
    room: str
    is_admin: bool
    line_count: int = 0


class StoredRoom(BaseModel, frozen=True):
    """Persisted room row. user_count mirrors the live member count."""

    room_name: str
    user_count: int = 0
