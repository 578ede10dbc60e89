"""Data access layer: repository interfaces and shared persistence models."""

from shared.dal.card_repository import CardRepository
from shared.dal.errors import (
    CapacityExceededError,
    CorruptRecordError,
    DuplicateNameError,
    DuplicateRoomCodeError,
    RecordNotFoundError,
    StorageError,
)
from shared.dal.game_repository import GameRepository
from shared.dal.memory import MemoryDataStore
from shared.dal.models import (
    Card,
    Difficulty,
    Game,
    GamePhase,
    GameSnapshot,
    GameWithPlayers,
    Player,
    TimelineCard,
    TimelineEntry,
    TurnState,
)
from shared.dal.player_repository import PlayerRepository
from shared.dal.store import DataStore
from shared.dal.timeline_repository import TimelineRepository

__all__ = [
    "CapacityExceededError",
    "Card",
    "CardRepository",
    "CorruptRecordError",
    "DataStore",
    "Difficulty",
    "DuplicateNameError",
    "DuplicateRoomCodeError",
    "Game",
    "GamePhase",
    "GameRepository",
    "GameSnapshot",
    "GameWithPlayers",
    "MemoryDataStore",
    "Player",
    "PlayerRepository",
    "RecordNotFoundError",
    "StorageError",
    "TimelineCard",
    "TimelineEntry",
    "TimelineRepository",
    "TurnState",
]
