"""SQLite-backed card catalog."""

from __future__ import annotations

import sqlite3
from typing import TYPE_CHECKING

from shared.dal.card_repository import CardRepository
from shared.dal.models import Card
from shared.db.connection import translate_errors

if TYPE_CHECKING:
    from collections.abc import Iterable, Sequence

    from shared.dal.models import Difficulty
    from shared.db.connection import Database

_UPSERT_SQL = """\
INSERT INTO cards (id, name, description, chronological_value, difficulty, category, image_url)
VALUES (:id, :name, :description, :chronological_value, :difficulty, :category, :image_url)
ON CONFLICT (id) DO UPDATE SET
    name = excluded.name,
    description = excluded.description,
    chronological_value = excluded.chronological_value,
    difficulty = excluded.difficulty,
    category = excluded.category,
    image_url = excluded.image_url
"""


def card_from_row(row: sqlite3.Row) -> Card:
    return Card.model_validate(dict(row))


class SqliteCardRepository(CardRepository):
    def __init__(self, db: Database) -> None:
        self._db = db

    @translate_errors
    async def get_by_id(self, card_id: str) -> Card | None:
        row = self._db.connection.execute("SELECT * FROM cards WHERE id = ?", (card_id,)).fetchone()
        return None if row is None else card_from_row(row)

    @translate_errors
    async def get_by_category(self, category: str) -> list[Card]:
        rows = self._db.connection.execute(
            "SELECT * FROM cards WHERE category = ? ORDER BY chronological_value",
            (category,),
        ).fetchall()
        return [card_from_row(row) for row in rows]

    @translate_errors
    async def get_all(self) -> list[Card]:
        rows = self._db.connection.execute("SELECT * FROM cards ORDER BY rowid").fetchall()
        return [card_from_row(row) for row in rows]

    @translate_errors
    async def get_by_ids(self, card_ids: Sequence[str]) -> list[Card]:
        if not card_ids:
            return []
        placeholders = ", ".join("?" for _ in card_ids)
        rows = self._db.connection.execute(
            f"SELECT * FROM cards WHERE id IN ({placeholders})",  # noqa: S608
            tuple(card_ids),
        ).fetchall()
        by_id = {row["id"]: card_from_row(row) for row in rows}
        return [by_id[cid] for cid in card_ids if cid in by_id]

    @translate_errors
    async def get_random(self, count: int, difficulty: Difficulty | None = None) -> list[Card]:
        if count <= 0:
            return []
        if difficulty is None:
            rows = self._db.connection.execute("SELECT * FROM cards ORDER BY RANDOM() LIMIT ?", (count,)).fetchall()
        else:
            rows = self._db.connection.execute(
                "SELECT * FROM cards WHERE difficulty = ? ORDER BY RANDOM() LIMIT ?",
                (difficulty.value, count),
            ).fetchall()
        return [card_from_row(row) for row in rows]

    @translate_errors
    async def count(self) -> int:
        return self._db.connection.execute("SELECT COUNT(*) FROM cards").fetchone()[0]

    @translate_errors
    async def add_many(self, cards: Iterable[Card]) -> int:
        params = [card.model_dump(mode="json") for card in cards]
        async with self._db.transaction() as conn:
            conn.executemany(_UPSERT_SQL, params)
        return len(params)
