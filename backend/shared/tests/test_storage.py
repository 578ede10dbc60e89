"""Tests for DataStore backend selection."""

from shared.dal.memory import MemoryDataStore
from shared.db import SqliteDataStore
from shared.storage import create_data_store


class TestCreateDataStore:
    async def test_memory_backend(self, tmp_path):
        store = create_data_store(use_memory=True, database_path=tmp_path / "unused.db")

        assert isinstance(store, MemoryDataStore)
        assert not (tmp_path / "unused.db").exists()
        await store.close()

    async def test_sqlite_backend_is_connected(self, tmp_path):
        store = create_data_store(use_memory=False, database_path=tmp_path / "data" / "games.db")

        assert isinstance(store, SqliteDataStore)
        assert (tmp_path / "data" / "games.db").exists()
        assert await store.cards.count() == 0
        await store.close()

    async def test_accepts_string_path(self, tmp_path):
        store = create_data_store(use_memory=False, database_path=str(tmp_path / "games.db"))

        game = await store.games.create("ABC123")

        assert await store.games.get_by_id(game.id) == game
        await store.close()
