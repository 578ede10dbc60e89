"""DataStore backed by a single SQLite database file."""

from __future__ import annotations

import contextlib
from typing import TYPE_CHECKING

from shared.dal.models import utcnow
from shared.dal.store import DataStore
from shared.db.card_repository import SqliteCardRepository
from shared.db.game_repository import SqliteGameRepository
from shared.db.player_repository import SqlitePlayerRepository
from shared.db.timeline_repository import SqliteTimelineRepository

if TYPE_CHECKING:
    from collections.abc import AsyncIterator, Callable
    from datetime import datetime

    from shared.db.connection import Database


class SqliteDataStore(DataStore):
    """Repositories sharing one Database connection and its write lock."""

    def __init__(self, db: Database, *, clock: Callable[[], datetime] = utcnow) -> None:
        self._db = db
        super().__init__(
            games=SqliteGameRepository(db, clock),
            players=SqlitePlayerRepository(db, clock),
            cards=SqliteCardRepository(db),
            timeline=SqliteTimelineRepository(db, clock),
        )

    @contextlib.asynccontextmanager
    async def transaction(self) -> AsyncIterator[None]:
        async with self._db.transaction():
            yield

    async def close(self) -> None:
        self._db.close()
