"""SQL storage backends: embedded SQLite and SQLAlchemy for networked servers."""

from shared.db.connection import Database
from shared.db.room_repository import SqliteBingoRepository
from shared.db.sql_repository import SqlAlchemyBingoRepository

__all__ = [
    "Database",
    "SqlAlchemyBingoRepository",
    "SqliteBingoRepository",
]
