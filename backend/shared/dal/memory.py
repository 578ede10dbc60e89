"""In-memory DataStore used by tests and single-process development servers.

Records are immutable pydantic models, so a transaction snapshot is a
shallow copy of the four tables and a rollback swaps them back in.
"""

from __future__ import annotations

import contextlib
import random
import uuid
from dataclasses import dataclass, field
from datetime import timedelta
from typing import TYPE_CHECKING, Any

import structlog

from shared.dal.card_repository import CardRepository
from shared.dal.errors import (
    CapacityExceededError,
    DuplicateNameError,
    DuplicateRoomCodeError,
    RecordNotFoundError,
)
from shared.dal.game_repository import GameRepository
from shared.dal.locking import TaskWriteLock
from shared.dal.models import (
    DEFAULT_MAX_PLAYERS,
    Card,
    Game,
    GamePhase,
    GameSnapshot,
    GameWithPlayers,
    Player,
    TimelineCard,
    TimelineEntry,
    utcnow,
)
from shared.dal.player_repository import PlayerRepository
from shared.dal.store import DataStore
from shared.dal.timeline_repository import TimelineRepository

if TYPE_CHECKING:
    from collections.abc import AsyncIterator, Callable, Iterable, Sequence
    from datetime import datetime

    from shared.dal.models import Difficulty

logger = structlog.get_logger()

_REAPABLE_PHASES = frozenset({GamePhase.WAITING, GamePhase.FINISHED})


def _new_id() -> str:
    return uuid.uuid4().hex


@dataclass
class _Tables:
    games: dict[str, Game] = field(default_factory=dict)  # game_id -> Game
    players: dict[str, Player] = field(default_factory=dict)  # player_id -> Player, join order
    cards: dict[str, Card] = field(default_factory=dict)
    timeline: dict[str, TimelineCard] = field(default_factory=dict)

    def copy(self) -> _Tables:
        return _Tables(dict(self.games), dict(self.players), dict(self.cards), dict(self.timeline))

    def restore(self, snapshot: _Tables) -> None:
        self.games = snapshot.games
        self.players = snapshot.players
        self.cards = snapshot.cards
        self.timeline = snapshot.timeline

    def game_by_room(self, room_code: str) -> Game | None:
        return next((g for g in self.games.values() if g.room_code == room_code), None)

    def players_of(self, game_id: str) -> list[Player]:
        return [p for p in self.players.values() if p.game_id == game_id]

    def placements_of(self, game_id: str) -> list[TimelineCard]:
        return sorted((tc for tc in self.timeline.values() if tc.game_id == game_id), key=lambda tc: tc.position)

    def entries_of(self, game_id: str) -> list[TimelineEntry]:
        return [
            TimelineEntry(**tc.model_dump(), card=self.cards[tc.card_id])
            for tc in self.placements_of(game_id)
            if tc.card_id in self.cards
        ]


class _MemoryRepository:
    def __init__(self, tables: _Tables, lock: TaskWriteLock, clock: Callable[[], datetime]) -> None:
        self._tables = tables
        self._lock = lock
        self._clock = clock


class MemoryGameRepository(_MemoryRepository, GameRepository):
    async def create(self, room_code: str, max_players: int = DEFAULT_MAX_PLAYERS) -> Game:
        async with self._lock.hold():
            if self._tables.game_by_room(room_code) is not None:
                raise DuplicateRoomCodeError(f"Room code '{room_code}' already in use")
            now = self._clock()
            game = Game(id=_new_id(), room_code=room_code, max_players=max_players, created_at=now, updated_at=now)
            self._tables.games[game.id] = game
            return game

    async def find_by_room_code(self, room_code: str) -> Game | None:
        return self._tables.game_by_room(room_code)

    async def get_by_id(self, game_id: str) -> Game | None:
        return self._tables.games.get(game_id)

    async def get_with_players(self, room_code: str) -> GameWithPlayers | None:
        game = self._tables.game_by_room(room_code)
        if game is None:
            return None
        return GameWithPlayers(**game.model_dump(), players=tuple(self._tables.players_of(game.id)))

    async def get_with_players_by_id(self, game_id: str) -> GameWithPlayers | None:
        game = self._tables.games.get(game_id)
        if game is None:
            return None
        return await self.get_with_players(game.room_code)

    async def get_snapshot(self, room_code: str) -> GameSnapshot | None:
        game = self._tables.game_by_room(room_code)
        if game is None:
            return None
        return GameSnapshot(
            **game.model_dump(),
            players=tuple(self._tables.players_of(game.id)),
            timeline=tuple(self._tables.entries_of(game.id)),
        )

    async def update_state(self, identifier: str, state: dict[str, Any]) -> Game:
        async with self._lock.hold():
            game = self._tables.games.get(identifier) or self._tables.game_by_room(identifier)
            if game is None:
                raise RecordNotFoundError(f"Game '{identifier}' not found")
            return self._replace(game, state=dict(state))

    async def update_phase(self, room_code: str, phase: GamePhase) -> Game:
        async with self._lock.hold():
            game = self._tables.game_by_room(room_code)
            if game is None:
                raise RecordNotFoundError(f"Game with room code '{room_code}' not found")
            return self._replace(game, phase=phase)

    async def player_count(self, room_code: str) -> int:
        game = self._tables.game_by_room(room_code)
        if game is None:
            return 0
        return len(self._tables.players_of(game.id))

    async def cleanup_inactive(self, hours_old: float = 24) -> int:
        async with self._lock.hold():
            cutoff = self._clock() - timedelta(hours=hours_old)
            stale = {
                g.id for g in self._tables.games.values() if g.updated_at < cutoff and g.phase in _REAPABLE_PHASES
            }
            for game_id in stale:
                del self._tables.games[game_id]
            self._tables.players = {k: p for k, p in self._tables.players.items() if p.game_id not in stale}
            self._tables.timeline = {k: tc for k, tc in self._tables.timeline.items() if tc.game_id not in stale}
            return len(stale)

    def _replace(self, game: Game, **changes: Any) -> Game:  # noqa: ANN401
        updated = game.model_copy(update={**changes, "updated_at": self._clock()})
        self._tables.games[game.id] = updated
        return updated


class MemoryPlayerRepository(_MemoryRepository, PlayerRepository):
    async def add_to_game(self, room_code: str, name: str) -> Player:
        async with self._lock.hold():
            game = self._tables.game_by_room(room_code)
            if game is None:
                raise RecordNotFoundError(f"Game with room code '{room_code}' not found")
            existing = self._tables.players_of(game.id)
            if len(existing) >= game.max_players:
                raise CapacityExceededError(f"Game '{room_code}' is full")
            if any(p.name == name for p in existing):
                raise DuplicateNameError(f"Name '{name}' already taken in game '{room_code}'")
            player = Player(
                id=_new_id(),
                game_id=game.id,
                name=name,
                is_current_turn=not existing,
                created_at=self._clock(),
            )
            self._tables.players[player.id] = player
            return player

    async def update_hand(self, player_id: str, card_ids: Sequence[str]) -> Player:
        return await self._update(player_id, hand_cards=tuple(card_ids))

    async def set_current_turn(self, player_id: str) -> Player:
        async with self._lock.hold():
            player = self._require(player_id)
            for other in self._tables.players_of(player.game_id):
                if other.is_current_turn != (other.id == player_id):
                    self._tables.players[other.id] = other.model_copy(update={"is_current_turn": other.id == player_id})
            return self._tables.players[player_id]

    async def update_score(self, player_id: str, score: int) -> Player:
        return await self._update(player_id, score=score)

    async def get_by_id(self, player_id: str) -> Player | None:
        return self._tables.players.get(player_id)

    async def get_by_game_id(self, game_id: str) -> list[Player]:
        return self._tables.players_of(game_id)

    async def _update(self, player_id: str, **changes: Any) -> Player:  # noqa: ANN401
        async with self._lock.hold():
            updated = self._require(player_id).model_copy(update=changes)
            self._tables.players[player_id] = updated
            return updated

    def _require(self, player_id: str) -> Player:
        player = self._tables.players.get(player_id)
        if player is None:
            raise RecordNotFoundError(f"Player '{player_id}' not found")
        return player


class MemoryCardRepository(_MemoryRepository, CardRepository):
    def __init__(
        self,
        tables: _Tables,
        lock: TaskWriteLock,
        clock: Callable[[], datetime],
        rng: random.Random,
    ) -> None:
        super().__init__(tables, lock, clock)
        self._rng = rng

    async def get_by_id(self, card_id: str) -> Card | None:
        return self._tables.cards.get(card_id)

    async def get_by_category(self, category: str) -> list[Card]:
        cards = [c for c in self._tables.cards.values() if c.category == category]
        return sorted(cards, key=lambda c: c.chronological_value)

    async def get_all(self) -> list[Card]:
        return list(self._tables.cards.values())

    async def get_by_ids(self, card_ids: Sequence[str]) -> list[Card]:
        return [self._tables.cards[cid] for cid in card_ids if cid in self._tables.cards]

    async def get_random(self, count: int, difficulty: Difficulty | None = None) -> list[Card]:
        pool = [c for c in self._tables.cards.values() if difficulty is None or c.difficulty == difficulty]
        return self._rng.sample(pool, k=max(0, min(count, len(pool))))

    async def count(self) -> int:
        return len(self._tables.cards)

    async def add_many(self, cards: Iterable[Card]) -> int:
        async with self._lock.hold():
            written = 0
            for card in cards:
                self._tables.cards[card.id] = card
                written += 1
            return written


class MemoryTimelineRepository(_MemoryRepository, TimelineRepository):
    async def add_card(self, game_id: str, card_id: str, position: int) -> TimelineCard:
        async with self._lock.hold():
            if game_id not in self._tables.games:
                raise RecordNotFoundError(f"Game '{game_id}' not found")
            if card_id not in self._tables.cards:
                raise RecordNotFoundError(f"Card '{card_id}' not found")
            placements = self._tables.placements_of(game_id)
            position = max(0, min(position, len(placements)))
            for tc in placements[position:]:
                self._tables.timeline[tc.id] = tc.model_copy(update={"position": tc.position + 1})
            placed = TimelineCard(
                id=_new_id(),
                game_id=game_id,
                card_id=card_id,
                position=position,
                placed_at=self._clock(),
            )
            self._tables.timeline[placed.id] = placed
            return placed

    async def get_by_game_id(self, game_id: str) -> list[TimelineEntry]:
        return self._tables.entries_of(game_id)

    async def get_for_room(self, room_code: str) -> list[TimelineEntry]:
        game = self._tables.game_by_room(room_code)
        if game is None:
            raise RecordNotFoundError(f"Game with room code '{room_code}' not found")
        return self._tables.entries_of(game.id)

    async def remove(self, timeline_card_id: str) -> None:
        async with self._lock.hold():
            removed = self._tables.timeline.pop(timeline_card_id, None)
            if removed is None:
                return
            for index, tc in enumerate(self._tables.placements_of(removed.game_id)):
                if tc.position != index:
                    self._tables.timeline[tc.id] = tc.model_copy(update={"position": index})


class MemoryDataStore(DataStore):
    """Dict-backed DataStore. One instance per process; nothing is persisted."""

    def __init__(
        self,
        *,
        clock: Callable[[], datetime] = utcnow,
        rng: random.Random | None = None,
    ) -> None:
        self._tables = _Tables()
        self._lock = TaskWriteLock()
        super().__init__(
            games=MemoryGameRepository(self._tables, self._lock, clock),
            players=MemoryPlayerRepository(self._tables, self._lock, clock),
            cards=MemoryCardRepository(self._tables, self._lock, clock, rng or random.Random()),  # noqa: S311
            timeline=MemoryTimelineRepository(self._tables, self._lock, clock),
        )

    @contextlib.asynccontextmanager
    async def transaction(self) -> AsyncIterator[None]:
        async with self._lock.hold() as outermost:
            if not outermost:
                yield
                return
            snapshot = self._tables.copy()
            try:
                yield
            except BaseException:
                self._tables.restore(snapshot)
                logger.debug("memory transaction rolled back")
                raise
