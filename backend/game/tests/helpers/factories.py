"""Builders for cards, stores and services used across the game tests."""

from __future__ import annotations

from datetime import UTC, datetime, timedelta
from typing import TYPE_CHECKING

from game.logic.rng import SEED_BYTES, GameRng
from game.logic.service import TimelineGameService
from game.logic.settings import GameSettings
from game.session.locks import GameLockRegistry
from shared.dal.memory import MemoryDataStore
from shared.dal.models import Card
from shared.db import Database, SqliteDataStore

if TYPE_CHECKING:
    from collections.abc import Sequence
    from pathlib import Path

    from shared.dal.store import DataStore

# A fixed seed for deterministic tests (64 hex chars = 32 bytes)
FIXED_SEED = "ab" * SEED_BYTES


def make_card(card_id: str, value: int, *, name: str | None = None, category: str = "history") -> Card:
    return Card(
        id=card_id,
        name=name if name is not None else f"Event {card_id}",
        chronological_value=value,
        category=category,
    )


def make_catalog(size: int = 12) -> list[Card]:
    """Cards c00..c{size-1} with strictly increasing values spaced a century apart."""
    return [make_card(f"c{i:02d}", 1000 + 100 * i) for i in range(size)]


class FakeClock:
    """Settable clock for stores that stamp records with the current time."""

    def __init__(self, start: datetime | None = None) -> None:
        self.now = start or datetime(2025, 1, 15, 12, 0, 0, tzinfo=UTC)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: float) -> None:
        self.now += timedelta(**kwargs)


async def make_store(cards: Sequence[Card] | None = None, *, clock: FakeClock | None = None) -> MemoryDataStore:
    store = MemoryDataStore(clock=clock) if clock is not None else MemoryDataStore()
    await store.cards.add_many(make_catalog() if cards is None else cards)
    return store


async def make_sqlite_store(path: Path, cards: Sequence[Card] | None = None) -> SqliteDataStore:
    db = Database(path)
    db.connect()
    store = SqliteDataStore(db)
    await store.cards.add_many(make_catalog() if cards is None else cards)
    return store


def make_service(store: DataStore, *, seed: str = FIXED_SEED, **settings: object) -> TimelineGameService:
    return TimelineGameService(
        store,
        locks=GameLockRegistry(),
        settings=GameSettings(**settings),
        rng=GameRng(seed),
    )


async def place_in_order(store: DataStore, game_id: str, card_ids: Sequence[str]) -> None:
    """Append card_ids to the game's timeline in the given order."""
    for position, card_id in enumerate(card_ids):
        await store.timeline.add_card(game_id, card_id, position)
