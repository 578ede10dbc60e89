"""Abstract interface for game persistence."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Any

from pydantic import ValidationError

from shared.dal.errors import CorruptRecordError, RecordNotFoundError
from shared.dal.models import DEFAULT_MAX_PLAYERS, TURN_STATE_KEY, TurnState

if TYPE_CHECKING:
    from shared.dal.models import Game, GamePhase, GameSnapshot, GameWithPlayers


class GameRepository(ABC):
    """Abstract interface for game persistence.

    Game.state is an opaque blob owned by the store. The turn-state helpers
    below are the only place it is translated to and from TurnState; other
    keys in the blob are preserved untouched.
    """

    @abstractmethod
    async def create(self, room_code: str, max_players: int = DEFAULT_MAX_PLAYERS) -> Game:
        """Create a WAITING game. Raises DuplicateRoomCodeError if the code is in use."""

    @abstractmethod
    async def find_by_room_code(self, room_code: str) -> Game | None: ...

    @abstractmethod
    async def get_by_id(self, game_id: str) -> Game | None: ...

    @abstractmethod
    async def get_with_players(self, room_code: str) -> GameWithPlayers | None: ...

    @abstractmethod
    async def get_with_players_by_id(self, game_id: str) -> GameWithPlayers | None: ...

    @abstractmethod
    async def get_snapshot(self, room_code: str) -> GameSnapshot | None: ...

    @abstractmethod
    async def update_state(self, identifier: str, state: dict[str, Any]) -> Game:
        """Replace the state blob of the game matching identifier (id or room code)."""

    @abstractmethod
    async def update_phase(self, room_code: str, phase: GamePhase) -> Game: ...

    @abstractmethod
    async def player_count(self, room_code: str) -> int: ...

    @abstractmethod
    async def cleanup_inactive(self, hours_old: float = 24) -> int:
        """Delete WAITING/FINISHED games untouched for hours_old hours. Returns the count."""

    async def is_full(self, room_code: str) -> bool:
        game = await self.find_by_room_code(room_code)
        if game is None:
            return False
        return await self.player_count(room_code) >= game.max_players

    async def get_turn_state(self, game_id: str) -> TurnState | None:
        """Decode the turn state of a game, or None if the game or its turn state is absent."""
        game = await self.get_by_id(game_id)
        if game is None:
            return None
        raw = game.state.get(TURN_STATE_KEY)
        if raw is None:
            return None
        try:
            return TurnState.model_validate(raw)
        except ValidationError as exc:
            raise CorruptRecordError(f"turn state of game '{game_id}' is malformed") from exc

    async def save_turn_state(self, game_id: str, turn_state: TurnState) -> Game:
        game = await self.get_by_id(game_id)
        if game is None:
            raise RecordNotFoundError(f"Game '{game_id}' not found")
        state = {**game.state, TURN_STATE_KEY: turn_state.model_dump(mode="json", by_alias=True)}
        return await self.update_state(game_id, state)
