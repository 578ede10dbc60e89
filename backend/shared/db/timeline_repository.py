"""SQLite-backed timeline repository."""

from __future__ import annotations

import sqlite3
import uuid
from typing import TYPE_CHECKING

from shared.dal.errors import RecordNotFoundError
from shared.dal.models import Card, TimelineCard, TimelineEntry, utcnow
from shared.dal.timeline_repository import TimelineRepository
from shared.db.connection import to_db_timestamp, translate_errors

if TYPE_CHECKING:
    from collections.abc import Callable
    from datetime import datetime

    from shared.db.connection import Database

TIMELINE_SELECT_SQL = """\
SELECT t.id, t.game_id, t.card_id, t.position, t.placed_at,
       c.name, c.description, c.chronological_value, c.difficulty, c.category, c.image_url
FROM timeline_cards t
JOIN cards c ON c.id = t.card_id
WHERE t.game_id = ?
ORDER BY t.position
"""


def entry_from_row(row: sqlite3.Row) -> TimelineEntry:
    card = Card(
        id=row["card_id"],
        name=row["name"],
        description=row["description"],
        chronological_value=row["chronological_value"],
        difficulty=row["difficulty"],
        category=row["category"],
        image_url=row["image_url"],
    )
    return TimelineEntry(
        id=row["id"],
        game_id=row["game_id"],
        card_id=row["card_id"],
        position=row["position"],
        placed_at=row["placed_at"],
        card=card,
    )


class SqliteTimelineRepository(TimelineRepository):
    """SQLite implementation of TimelineRepository.

    Shifting and inserting run inside one write transaction, so readers
    never observe a gap or a duplicate position.
    """

    def __init__(self, db: Database, clock: Callable[[], datetime] = utcnow) -> None:
        self._db = db
        self._clock = clock

    @translate_errors
    async def add_card(self, game_id: str, card_id: str, position: int) -> TimelineCard:
        async with self._db.transaction() as conn:
            if conn.execute("SELECT 1 FROM games WHERE id = ?", (game_id,)).fetchone() is None:
                raise RecordNotFoundError(f"Game '{game_id}' not found")
            length = conn.execute("SELECT COUNT(*) FROM timeline_cards WHERE game_id = ?", (game_id,)).fetchone()[0]
            placed = TimelineCard(
                id=uuid.uuid4().hex,
                game_id=game_id,
                card_id=card_id,
                position=max(0, min(position, length)),
                placed_at=self._clock(),
            )
            conn.execute(
                "UPDATE timeline_cards SET position = position + 1 WHERE game_id = ? AND position >= ?",
                (game_id, placed.position),
            )
            try:
                conn.execute(
                    "INSERT INTO timeline_cards (id, game_id, card_id, position, placed_at) VALUES (?, ?, ?, ?, ?)",
                    (placed.id, game_id, card_id, placed.position, to_db_timestamp(placed.placed_at)),
                )
            except sqlite3.IntegrityError as exc:
                raise RecordNotFoundError(f"Card '{card_id}' not found") from exc
        return placed

    @translate_errors
    async def get_by_game_id(self, game_id: str) -> list[TimelineEntry]:
        rows = self._db.connection.execute(TIMELINE_SELECT_SQL, (game_id,)).fetchall()
        return [entry_from_row(row) for row in rows]

    @translate_errors
    async def get_for_room(self, room_code: str) -> list[TimelineEntry]:
        row = self._db.connection.execute("SELECT id FROM games WHERE room_code = ?", (room_code,)).fetchone()
        if row is None:
            raise RecordNotFoundError(f"Game with room code '{room_code}' not found")
        return await self.get_by_game_id(row["id"])

    @translate_errors
    async def remove(self, timeline_card_id: str) -> None:
        async with self._db.transaction() as conn:
            removed = conn.execute(
                "DELETE FROM timeline_cards WHERE id = ? RETURNING game_id, position",
                (timeline_card_id,),
            ).fetchall()
            if not removed:
                return
            conn.execute(
                "UPDATE timeline_cards SET position = position - 1 WHERE game_id = ? AND position > ?",
                (removed[0]["game_id"], removed[0]["position"]),
            )
