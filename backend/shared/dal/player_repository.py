"""Abstract interface for player persistence."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Sequence

    from shared.dal.models import Player


class PlayerRepository(ABC):
    """Abstract interface for player persistence.

    Mutations raise RecordNotFoundError for unknown player ids.
    """

    @abstractmethod
    async def add_to_game(self, room_code: str, name: str) -> Player:
        """Seat a new player. The first player of a game gets the current turn.

        Raises CapacityExceededError when the game is full and
        DuplicateNameError when the name is taken within the game.
        """

    @abstractmethod
    async def update_hand(self, player_id: str, card_ids: Sequence[str]) -> Player: ...

    @abstractmethod
    async def set_current_turn(self, player_id: str) -> Player:
        """Flag player as current, clearing the flag on every other player of the game."""

    @abstractmethod
    async def update_score(self, player_id: str, score: int) -> Player: ...

    @abstractmethod
    async def get_by_id(self, player_id: str) -> Player | None: ...

    @abstractmethod
    async def get_by_game_id(self, game_id: str) -> list[Player]:
        """Players of a game in join order."""
