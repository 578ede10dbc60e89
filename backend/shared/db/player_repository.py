"""SQLite-backed player repository."""

from __future__ import annotations

import json
import logging
import sqlite3
import uuid
from typing import TYPE_CHECKING

from shared.dal.errors import CapacityExceededError, DuplicateNameError, RecordNotFoundError
from shared.dal.models import Player, utcnow
from shared.dal.player_repository import PlayerRepository
from shared.db.connection import to_db_timestamp, translate_errors

if TYPE_CHECKING:
    from collections.abc import Callable, Sequence
    from datetime import datetime

    from shared.db.connection import Database

logger = logging.getLogger(__name__)


def player_from_row(row: sqlite3.Row) -> Player:
    return Player(
        id=row["id"],
        game_id=row["game_id"],
        name=row["name"],
        hand_cards=tuple(json.loads(row["hand_cards"])),
        is_current_turn=bool(row["is_current_turn"]),
        score=row["score"],
        created_at=row["created_at"],
    )


class SqlitePlayerRepository(PlayerRepository):
    """SQLite implementation of PlayerRepository.

    Seating runs the capacity check and the INSERT in one write transaction
    so concurrent joins cannot overfill a game. Name uniqueness is enforced
    by the UNIQUE (game_id, name) constraint and mapped from IntegrityError.
    """

    def __init__(self, db: Database, clock: Callable[[], datetime] = utcnow) -> None:
        self._db = db
        self._clock = clock

    @translate_errors
    async def add_to_game(self, room_code: str, name: str) -> Player:
        async with self._db.transaction() as conn:
            game = conn.execute(
                "SELECT g.id, g.max_players, COUNT(p.id) AS seated FROM games g "
                "LEFT JOIN players p ON p.game_id = g.id WHERE g.room_code = ? GROUP BY g.id",
                (room_code,),
            ).fetchone()
            if game is None:
                raise RecordNotFoundError(f"Game with room code '{room_code}' not found")
            if game["seated"] >= game["max_players"]:
                raise CapacityExceededError(f"Game '{room_code}' is full")
            player = Player(
                id=uuid.uuid4().hex,
                game_id=game["id"],
                name=name,
                is_current_turn=game["seated"] == 0,
                created_at=self._clock(),
            )
            try:
                conn.execute(
                    "INSERT INTO players (id, game_id, name, hand_cards, is_current_turn, score, created_at) "
                    "VALUES (?, ?, ?, ?, ?, ?, ?)",
                    (
                        player.id,
                        player.game_id,
                        player.name,
                        json.dumps(list(player.hand_cards)),
                        int(player.is_current_turn),
                        player.score,
                        to_db_timestamp(player.created_at),
                    ),
                )
            except sqlite3.IntegrityError as exc:
                raise DuplicateNameError(f"Name '{name}' already taken in game '{room_code}'") from exc
        logger.debug("seated player %s in game %s", player.id, room_code)
        return player

    @translate_errors
    async def update_hand(self, player_id: str, card_ids: Sequence[str]) -> Player:
        return await self._update(player_id, "hand_cards = ?", json.dumps(list(card_ids)))

    @translate_errors
    async def set_current_turn(self, player_id: str) -> Player:
        async with self._db.transaction() as conn:
            conn.execute(
                "UPDATE players SET is_current_turn = (id = ?) "
                "WHERE game_id = (SELECT game_id FROM players WHERE id = ?)",
                (player_id, player_id),
            )
            return await self._require(player_id)

    @translate_errors
    async def update_score(self, player_id: str, score: int) -> Player:
        return await self._update(player_id, "score = ?", score)

    @translate_errors
    async def get_by_id(self, player_id: str) -> Player | None:
        row = self._db.connection.execute("SELECT * FROM players WHERE id = ?", (player_id,)).fetchone()
        return None if row is None else player_from_row(row)

    @translate_errors
    async def get_by_game_id(self, game_id: str) -> list[Player]:
        rows = self._db.connection.execute(
            "SELECT * FROM players WHERE game_id = ? ORDER BY rowid",
            (game_id,),
        ).fetchall()
        return [player_from_row(row) for row in rows]

    async def _update(self, player_id: str, assignment: str, value: str | int) -> Player:
        async with self._db.transaction() as conn:
            rows = conn.execute(
                f"UPDATE players SET {assignment} WHERE id = ? RETURNING *",  # noqa: S608
                (value, player_id),
            ).fetchall()
        if not rows:
            raise RecordNotFoundError(f"Player '{player_id}' not found")
        return player_from_row(rows[0])

    async def _require(self, player_id: str) -> Player:
        player = await self.get_by_id(player_id)
        if player is None:
            raise RecordNotFoundError(f"Player '{player_id}' not found")
        return player
