"""Selection of the DataStore backend at startup."""

from __future__ import annotations

from typing import TYPE_CHECKING

import structlog

from shared.dal.memory import MemoryDataStore
from shared.db.connection import Database
from shared.db.store import SqliteDataStore

if TYPE_CHECKING:
    from pathlib import Path

    from shared.dal.store import DataStore

logger = structlog.get_logger()


def create_data_store(*, use_memory: bool, database_path: str | Path) -> DataStore:
    """Build the configured backend. The SQLite backend is connected before returning."""
    if use_memory:
        logger.info("using in-memory data store")
        return MemoryDataStore()
    db = Database(database_path)
    db.connect()
    return SqliteDataStore(db)
