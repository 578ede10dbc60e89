"""SQLite database layer: connection management and repository implementations."""

from shared.db.card_repository import SqliteCardRepository
from shared.db.connection import Database
from shared.db.game_repository import SqliteGameRepository
from shared.db.player_repository import SqlitePlayerRepository
from shared.db.store import SqliteDataStore
from shared.db.timeline_repository import SqliteTimelineRepository

__all__ = [
    "Database",
    "SqliteCardRepository",
    "SqliteDataStore",
    "SqliteGameRepository",
    "SqlitePlayerRepository",
    "SqliteTimelineRepository",
]
