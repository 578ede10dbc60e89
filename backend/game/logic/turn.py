"""
Turn order state machine.

A game has no turn state until initialize_turn_order runs; from then on
exactly one player is current and next_turn rotates circularly through the
fixed turn order. Game over is derived on read (every hand empty) rather
than stored here.

Mutations fail loudly: missing players or turn state raise
TurnOperationError, contradictions in persisted state raise
InvariantViolationError. Read accessors degrade to empty defaults so that
polling clients keep working through transient storage errors.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import structlog

from game.logic.exceptions import GameNotFoundError, InvariantViolationError, TurnOperationError
from game.logic.types import TurnInfo
from shared.dal.errors import CorruptRecordError, RecordNotFoundError, StorageError
from shared.dal.models import TurnState

if TYPE_CHECKING:
    from game.logic.rng import GameRng
    from shared.dal.models import Player
    from shared.dal.store import DataStore

logger = structlog.get_logger()


class TurnController:
    def __init__(self, store: DataStore, rng: GameRng) -> None:
        self._store = store
        self._rng = rng

    async def initialize_turn_order(self, game_id: str) -> TurnState:
        """Shuffle the players into a turn order and hand the first turn to its head."""
        try:
            async with self._store.transaction():
                players = await self._store.players.get_by_game_id(game_id)
                if not players:
                    raise TurnOperationError(f"Cannot initialize turn order for game '{game_id}' without players")
                order = self._rng.shuffle(players)
                first = order[0]
                state = TurnState(
                    current_player_id=first.id,
                    current_player_name=first.name,
                    turn_order=tuple(p.id for p in order),
                    turn_number=1,
                )
                await self._store.games.save_turn_state(game_id, state)
                await self._store.players.set_current_turn(first.id)
        except RecordNotFoundError as exc:
            raise GameNotFoundError(f"Game '{game_id}' not found") from exc
        except StorageError as exc:
            raise TurnOperationError("Failed to initialize turn order") from exc
        logger.info("turn order initialized", game_id=game_id, first_player_id=first.id, players=len(order))
        return state

    async def next_turn(self, game_id: str) -> TurnState:
        """Advance to the next player in turn order and bump the turn number."""
        try:
            async with self._store.transaction():
                state = await self._load_turn_state(game_id)
                if state is None:
                    raise TurnOperationError(f"Game '{game_id}' has no turn state")
                if state.current_player_id not in state.turn_order:
                    logger.error(
                        "current player missing from turn order",
                        game_id=game_id,
                        player_id=state.current_player_id,
                    )
                    raise InvariantViolationError(f"Current player not found in turn order of game '{game_id}'")

                index = state.turn_order.index(state.current_player_id)
                next_id = state.turn_order[(index + 1) % len(state.turn_order)]
                next_player = await self._store.players.get_by_id(next_id)
                if next_player is None:
                    logger.error("turn order references missing player", game_id=game_id, player_id=next_id)
                    raise InvariantViolationError(f"Next player '{next_id}' not found")

                new_state = state.advance_to(next_player)
                await self._store.players.set_current_turn(next_player.id)
                await self._store.games.save_turn_state(game_id, new_state)
        except StorageError as exc:
            raise TurnOperationError("Failed to advance turn") from exc
        logger.debug("turn advanced", game_id=game_id, player_id=next_player.id, turn_number=new_state.turn_number)
        return new_state

    async def reset_turn_order(self, game_id: str) -> TurnState:
        return await self.initialize_turn_order(game_id)

    async def get_turn_state(self, game_id: str) -> TurnState | None:
        try:
            return await self._load_turn_state(game_id)
        except Exception:
            logger.warning("turn state unavailable", game_id=game_id, exc_info=True)
            return None

    async def get_current_player(self, game_id: str) -> Player | None:
        try:
            players = await self._store.players.get_by_game_id(game_id)
        except Exception:
            logger.warning("current player unavailable", game_id=game_id, exc_info=True)
            return None
        return next((p for p in players if p.is_current_turn), None)

    async def is_player_turn(self, player_id: str, game_id: str) -> bool:
        current = await self.get_current_player(game_id)
        return current is not None and current.id == player_id

    async def get_turn_order(self, game_id: str) -> list[Player]:
        """Players in turn order; ids that no longer resolve are skipped."""
        state = await self.get_turn_state(game_id)
        if state is None:
            return []
        try:
            players = {p.id: p for p in await self._store.players.get_by_game_id(game_id)}
        except Exception:
            logger.warning("turn order unavailable", game_id=game_id, exc_info=True)
            return []
        return [players[pid] for pid in state.turn_order if pid in players]

    async def turn_info(self, game_id: str) -> TurnInfo:
        try:
            players = await self._store.players.get_by_game_id(game_id)
            state = await self._load_turn_state(game_id)
        except Exception:
            logger.warning("turn info unavailable", game_id=game_id, exc_info=True)
            return TurnInfo()
        by_id = {p.id: p for p in players}
        order = tuple(by_id[pid] for pid in state.turn_order if pid in by_id) if state else ()
        return TurnInfo(
            current_player=next((p for p in players if p.is_current_turn), None),
            turn_order=order,
            turn_number=state.turn_number if state else 0,
            is_game_over=bool(players) and all(not p.hand_cards for p in players),
        )

    async def _load_turn_state(self, game_id: str) -> TurnState | None:
        try:
            return await self._store.games.get_turn_state(game_id)
        except CorruptRecordError as exc:
            logger.error("corrupt turn state", game_id=game_id)
            raise InvariantViolationError(f"Turn state of game '{game_id}' is corrupt") from exc
