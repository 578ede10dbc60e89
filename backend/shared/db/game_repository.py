"""SQLite-backed game repository."""

from __future__ import annotations

import json
import sqlite3
import uuid
from datetime import timedelta
from typing import TYPE_CHECKING, Any

import structlog

from shared.dal.errors import DuplicateRoomCodeError, RecordNotFoundError
from shared.dal.game_repository import GameRepository
from shared.dal.models import (
    DEFAULT_MAX_PLAYERS,
    Game,
    GamePhase,
    GameSnapshot,
    GameWithPlayers,
    initial_game_state,
    utcnow,
)
from shared.db.connection import to_db_timestamp, translate_errors
from shared.db.player_repository import player_from_row
from shared.db.timeline_repository import TIMELINE_SELECT_SQL, entry_from_row

if TYPE_CHECKING:
    from collections.abc import Callable
    from datetime import datetime

    from shared.db.connection import Database

logger = structlog.get_logger()


def game_from_row(row: sqlite3.Row) -> Game:
    return Game(
        id=row["id"],
        room_code=row["room_code"],
        max_players=row["max_players"],
        phase=row["phase"],
        state=json.loads(row["state"]),
        created_at=row["created_at"],
        updated_at=row["updated_at"],
    )


class SqliteGameRepository(GameRepository):
    """SQLite implementation of GameRepository.

    The state blob is stored as JSON text; room_code carries a UNIQUE
    constraint so concurrent creators cannot share a code.
    """

    def __init__(self, db: Database, clock: Callable[[], datetime] = utcnow) -> None:
        self._db = db
        self._clock = clock

    @translate_errors
    async def create(self, room_code: str, max_players: int = DEFAULT_MAX_PLAYERS) -> Game:
        now = self._clock()
        game = Game(
            id=uuid.uuid4().hex,
            room_code=room_code,
            max_players=max_players,
            state=initial_game_state(),
            created_at=now,
            updated_at=now,
        )
        async with self._db.transaction() as conn:
            try:
                conn.execute(
                    "INSERT INTO games (id, room_code, max_players, phase, state, created_at, updated_at) "
                    "VALUES (?, ?, ?, ?, ?, ?, ?)",
                    (
                        game.id,
                        game.room_code,
                        game.max_players,
                        game.phase.value,
                        json.dumps(game.state),
                        to_db_timestamp(now),
                        to_db_timestamp(now),
                    ),
                )
            except sqlite3.IntegrityError as exc:
                raise DuplicateRoomCodeError(f"Room code '{room_code}' already in use") from exc
        return game

    @translate_errors
    async def find_by_room_code(self, room_code: str) -> Game | None:
        row = self._db.connection.execute("SELECT * FROM games WHERE room_code = ?", (room_code,)).fetchone()
        return None if row is None else game_from_row(row)

    @translate_errors
    async def get_by_id(self, game_id: str) -> Game | None:
        row = self._db.connection.execute("SELECT * FROM games WHERE id = ?", (game_id,)).fetchone()
        return None if row is None else game_from_row(row)

    @translate_errors
    async def get_with_players(self, room_code: str) -> GameWithPlayers | None:
        game = await self.find_by_room_code(room_code)
        if game is None:
            return None
        return GameWithPlayers(**game.model_dump(), players=self._players_of(game.id))

    @translate_errors
    async def get_with_players_by_id(self, game_id: str) -> GameWithPlayers | None:
        game = await self.get_by_id(game_id)
        if game is None:
            return None
        return GameWithPlayers(**game.model_dump(), players=self._players_of(game.id))

    @translate_errors
    async def get_snapshot(self, room_code: str) -> GameSnapshot | None:
        game = await self.find_by_room_code(room_code)
        if game is None:
            return None
        rows = self._db.connection.execute(TIMELINE_SELECT_SQL, (game.id,)).fetchall()
        return GameSnapshot(
            **game.model_dump(),
            players=self._players_of(game.id),
            timeline=tuple(entry_from_row(row) for row in rows),
        )

    @translate_errors
    async def update_state(self, identifier: str, state: dict[str, Any]) -> Game:
        return await self._update(
            "id = ? OR room_code = ?",
            (identifier, identifier),
            f"Game '{identifier}' not found",
            state=json.dumps(state),
        )

    @translate_errors
    async def update_phase(self, room_code: str, phase: GamePhase) -> Game:
        return await self._update(
            "room_code = ?",
            (room_code,),
            f"Game with room code '{room_code}' not found",
            phase=phase.value,
        )

    @translate_errors
    async def player_count(self, room_code: str) -> int:
        row = self._db.connection.execute(
            "SELECT COUNT(p.id) FROM players p JOIN games g ON g.id = p.game_id WHERE g.room_code = ?",
            (room_code,),
        ).fetchone()
        return row[0]

    @translate_errors
    async def cleanup_inactive(self, hours_old: float = 24) -> int:
        cutoff = self._clock() - timedelta(hours=hours_old)
        async with self._db.transaction() as conn:
            cursor = conn.execute(
                "DELETE FROM games WHERE phase IN (?, ?) AND updated_at < ?",
                (GamePhase.WAITING.value, GamePhase.FINISHED.value, to_db_timestamp(cutoff)),
            )
        return cursor.rowcount

    async def _update(self, where: str, params: tuple[str, ...], missing: str, **columns: str) -> Game:
        assignments = ", ".join(f"{column} = ?" for column in columns)
        async with self._db.transaction() as conn:
            rows = conn.execute(
                f"UPDATE games SET {assignments}, updated_at = ? WHERE {where} RETURNING *",  # noqa: S608
                (*columns.values(), to_db_timestamp(self._clock()), *params),
            ).fetchall()
        if not rows:
            raise RecordNotFoundError(missing)
        return game_from_row(rows[0])

    def _players_of(self, game_id: str) -> tuple:
        rows = self._db.connection.execute(
            "SELECT * FROM players WHERE game_id = ? ORDER BY rowid",
            (game_id,),
        ).fetchall()
        return tuple(player_from_row(row) for row in rows)
