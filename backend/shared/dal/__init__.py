"""Data access layer: repository interface, persistence models, in-memory backend."""

from shared.dal.memory_repository import InMemoryBingoRepository
from shared.dal.models import StoredRoom, StoredUser
from shared.dal.repository import BingoRepository

__all__ = [
    "BingoRepository",
    "InMemoryBingoRepository",
    "StoredRoom",
    "StoredUser",
]
