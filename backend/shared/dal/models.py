"""Persistence models shared by every storage backend."""

from __future__ import annotations

from datetime import UTC, datetime
from enum import StrEnum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

DEFAULT_MAX_PLAYERS = 8
TURN_STATE_KEY = "turnState"


def utcnow() -> datetime:
    return datetime.now(tz=UTC)


def initial_game_state() -> dict[str, Any]:
    """Blob stored with a freshly created game, before any turn state exists."""
    return {"currentTurn": 0, "round": 1, "maxRounds": 5}


class GamePhase(StrEnum):
    """Lifecycle of a game. Transitions only move forward."""

    WAITING = "WAITING"
    PLAYING = "PLAYING"
    FINISHED = "FINISHED"


class Difficulty(StrEnum):
    EASY = "EASY"
    MEDIUM = "MEDIUM"
    HARD = "HARD"


class Record(BaseModel):
    """Immutable record; dumps with camelCase keys when by_alias=True."""

    model_config = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True)


class Card(Record):
    id: str
    name: str
    description: str = ""
    chronological_value: int  # total order key; negative for BCE, not a calendar date
    difficulty: Difficulty = Difficulty.MEDIUM
    category: str = ""
    image_url: str | None = None


class Game(Record):
    id: str
    room_code: str
    max_players: int = DEFAULT_MAX_PLAYERS
    phase: GamePhase = GamePhase.WAITING
    state: dict[str, Any] = Field(default_factory=initial_game_state)
    created_at: datetime
    updated_at: datetime


class Player(Record):
    id: str
    game_id: str
    name: str
    hand_cards: tuple[str, ...] = ()
    is_current_turn: bool = False
    score: int = 0
    created_at: datetime


class TimelineCard(Record):
    id: str
    game_id: str
    card_id: str
    position: int  # dense 0..N-1 per game
    placed_at: datetime


class TimelineEntry(TimelineCard):
    """Timeline placement joined with the card it references."""

    card: Card

    @property
    def chronological_value(self) -> int:
        return self.card.chronological_value


class GameWithPlayers(Game):
    players: tuple[Player, ...] = ()


class GameSnapshot(GameWithPlayers):
    """Game with players and its ordered timeline, as served to polling clients."""

    timeline: tuple[TimelineEntry, ...] = ()


class TurnState(Record):
    """Typed view of the turnState entry inside Game.state."""

    current_player_id: str | None = None
    current_player_name: str | None = None
    turn_order: tuple[str, ...] = ()
    turn_number: int = 1

    def advance_to(self, player: Player) -> TurnState:
        """Return the state after handing the turn to player."""
        return self.model_copy(
            update={
                "current_player_id": player.id,
                "current_player_name": player.name,
                "turn_number": self.turn_number + 1,
            },
        )
