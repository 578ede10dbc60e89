"""Tests for Database connection, schema and write transactions."""

from __future__ import annotations

import sqlite3
import sys
from datetime import UTC, datetime
from typing import TYPE_CHECKING

import pytest

from shared.dal.errors import CorruptRecordError, StorageError
from shared.db.connection import Database, to_db_timestamp
from shared.db.player_repository import SqlitePlayerRepository

if TYPE_CHECKING:
    from pathlib import Path

_TABLES = {"cards", "games", "players", "timeline_cards"}


@pytest.fixture
def db(tmp_path: Path):
    database = Database(tmp_path / "test.db")
    database.connect()
    yield database
    database.close()


def _insert_game(conn: sqlite3.Connection, game_id: str = "g1", room_code: str = "ABC123") -> None:
    conn.execute(
        "INSERT INTO games (id, room_code, max_players, phase, state, created_at, updated_at) "
        "VALUES (?, ?, 8, 'WAITING', '{}', '2025-01-15T12:00:00.000000+00:00', '2025-01-15T12:00:00.000000+00:00')",
        (game_id, room_code),
    )


def _game_ids(db: Database) -> list[str]:
    return [row["id"] for row in db.connection.execute("SELECT id FROM games").fetchall()]


class TestConnect:
    def test_creates_schema_and_connects(self, db: Database) -> None:
        rows = db.connection.execute("SELECT name FROM sqlite_master WHERE type='table'").fetchall()
        assert _TABLES <= {row[0] for row in rows}

    def test_pragmas(self, db: Database) -> None:
        assert db.connection.execute("PRAGMA journal_mode").fetchone()[0] == "wal"
        assert db.connection.execute("PRAGMA foreign_keys").fetchone()[0] == 1

    def test_reconnect_keeps_data(self, tmp_path: Path) -> None:
        db = Database(tmp_path / "test.db")
        db.connect()
        _insert_game(db.connection)
        db.close()
        db.connect()

        assert _game_ids(db) == ["g1"]
        db.close()

    def test_connection_raises_when_disconnected(self, tmp_path: Path) -> None:
        db = Database(tmp_path / "test.db")
        with pytest.raises(StorageError, match="not connected"):
            _ = db.connection

    def test_connection_raises_after_close(self, tmp_path: Path) -> None:
        db = Database(tmp_path / "test.db")
        db.connect()
        db.close()
        with pytest.raises(StorageError, match="not connected"):
            _ = db.connection

    def test_creates_parent_directories(self, tmp_path: Path) -> None:
        db = Database(tmp_path / "nested" / "dir" / "test.db")
        db.connect()
        assert (tmp_path / "nested" / "dir" / "test.db").exists()
        db.close()

    @pytest.mark.skipif(sys.platform == "win32", reason="POSIX permissions")
    def test_restricts_file_permissions(self, tmp_path: Path) -> None:
        db = Database(tmp_path / "test.db")
        db.connect()
        assert (tmp_path / "test.db").stat().st_mode & 0o777 == 0o600
        db.close()


class TestTransaction:
    async def test_commits_on_success(self, db: Database) -> None:
        async with db.transaction() as conn:
            _insert_game(conn)

        assert _game_ids(db) == ["g1"]

    async def test_rolls_back_on_error(self, db: Database) -> None:
        with pytest.raises(ValueError, match="boom"):
            async with db.transaction() as conn:
                _insert_game(conn)
                raise ValueError("boom")

        assert _game_ids(db) == []
        assert not db.connection.in_transaction

    async def test_nested_use_joins_outer(self, db: Database) -> None:
        with pytest.raises(ValueError, match="boom"):
            async with db.transaction():
                async with db.transaction() as conn:
                    _insert_game(conn)
                assert db.connection.in_transaction
                raise ValueError("boom")

        assert _game_ids(db) == []

    async def test_cascade_delete(self, db: Database) -> None:
        async with db.transaction() as conn:
            _insert_game(conn)
            conn.execute(
                "INSERT INTO players (id, game_id, name, hand_cards, created_at) "
                "VALUES ('p1', 'g1', 'Ann', '[]', '2025-01-15T12:00:00.000000+00:00')",
            )
            conn.execute("DELETE FROM games WHERE id = 'g1'")

        assert db.connection.execute("SELECT COUNT(*) FROM players").fetchone()[0] == 0

    async def test_unique_room_code(self, db: Database) -> None:
        async with db.transaction() as conn:
            _insert_game(conn)
        with pytest.raises(sqlite3.IntegrityError):
            async with db.transaction() as conn:
                _insert_game(conn, game_id="g2")


@pytest.fixture
def locked_db(tmp_path: Path):
    """A Database whose file is write-locked by a second connection."""
    database = Database(tmp_path / "test.db")
    database.connect()
    database.connection.execute("PRAGMA busy_timeout=50")
    other = sqlite3.connect(tmp_path / "test.db", isolation_level=None)
    other.execute("BEGIN IMMEDIATE")
    yield database
    other.execute("ROLLBACK")
    other.close()
    database.close()


class TestBackendErrors:
    async def test_locked_database_raises_storage_error(self, locked_db: Database) -> None:
        with pytest.raises(StorageError, match="Could not start write transaction"):
            async with locked_db.transaction() as conn:
                _insert_game(conn)

        assert not locked_db.connection.in_transaction

    async def test_write_lock_released_after_failed_begin(self, locked_db: Database) -> None:
        with pytest.raises(StorageError):
            async with locked_db.transaction():
                pass

        assert not locked_db.write_lock.held_by_current_task

    async def test_repository_write_on_locked_database(self, locked_db: Database) -> None:
        players = SqlitePlayerRepository(locked_db)

        with pytest.raises(StorageError):
            await players.update_hand("p1", ["c1"])

    async def test_repository_read_failure(self, db: Database) -> None:
        db.connection.execute("DROP TABLE timeline_cards")
        db.connection.execute("DROP TABLE players")

        with pytest.raises(StorageError, match="no such table"):
            await SqlitePlayerRepository(db).get_by_id("p1")

    async def test_undecodable_hand_is_corrupt(self, db: Database) -> None:
        _insert_game(db.connection)
        db.connection.execute(
            "INSERT INTO players (id, game_id, name, hand_cards, created_at) "
            "VALUES ('p1', 'g1', 'Ann', 'not json', '2025-01-15T12:00:00.000000+00:00')",
        )

        with pytest.raises(CorruptRecordError):
            await SqlitePlayerRepository(db).get_by_id("p1")


class TestTimestamps:
    def test_fixed_width(self) -> None:
        whole = to_db_timestamp(datetime(2025, 1, 15, 12, 0, 0, tzinfo=UTC))
        fractional = to_db_timestamp(datetime(2025, 1, 15, 12, 0, 0, 5, tzinfo=UTC))

        assert whole == "2025-01-15T12:00:00.000000+00:00"
        assert len(whole) == len(fractional)
        assert whole < fractional
