"""
Game orchestration: room lifecycle and placement attempts.

TimelineGameService composes the validator, deck manager and turn
controller over one DataStore. Every state-changing call for a game runs
under that game's lock, and multi-step mutations run inside a single
store transaction so a failed step leaves nothing half applied.
"""

from __future__ import annotations

import string
from typing import TYPE_CHECKING

import structlog
from structlog.contextvars import bound_contextvars

from game.logic.deck import DeckManager
from game.logic.exceptions import (
    CardNotInHandError,
    ConflictError,
    GameNotFoundError,
    GamePhaseError,
    InvalidActionError,
    NameTakenError,
    PlayerNotFoundError,
    RoomFullError,
    WrongTurnError,
)
from game.logic.rng import GameRng
from game.logic.settings import GameSettings, validate_settings
from game.logic.turn import TurnController
from game.logic.types import PlacementOutcome, RejectionReason
from game.logic.validator import TimelineValidator
from shared.dal.errors import (
    CapacityExceededError,
    DuplicateNameError,
    DuplicateRoomCodeError,
    RecordNotFoundError,
)
from shared.dal.models import GamePhase

if TYPE_CHECKING:
    from game.logic.types import TimelineStats, TurnInfo, ValidationResult
    from game.session.locks import GameLockRegistry
    from shared.dal.models import Card, Game, GameSnapshot, GameWithPlayers, Player, TimelineEntry, TurnState
    from shared.dal.store import DataStore

logger = structlog.get_logger()

ROOM_CODE_ALPHABET = string.ascii_uppercase + string.digits
MAX_PLAYER_NAME_LENGTH = 50


def normalize_room_code(room_code: str) -> str:
    return room_code.strip().upper()


def normalize_player_name(name: str) -> str:
    cleaned = name.strip()
    if not cleaned:
        raise InvalidActionError("Player name is required")
    if len(cleaned) > MAX_PLAYER_NAME_LENGTH:
        raise InvalidActionError(f"Player name must be at most {MAX_PLAYER_NAME_LENGTH} characters")
    return cleaned


class TimelineGameService:
    """Single entry point for everything that changes a game."""

    def __init__(
        self,
        store: DataStore,
        *,
        locks: GameLockRegistry,
        settings: GameSettings | None = None,
        rng: GameRng | None = None,
    ) -> None:
        self._store = store
        self._locks = locks
        self._settings = settings or GameSettings()
        validate_settings(self._settings)
        rng = rng or GameRng()
        self._room_code_rng = rng.spawn("room-code")
        self.validator = TimelineValidator(store)
        self.deck = DeckManager(store, rng.spawn("deck"))
        self.turns = TurnController(store, rng.spawn("turn-order"))

    @property
    def settings(self) -> GameSettings:
        return self._settings

    @property
    def store(self) -> DataStore:
        return self._store

    # --- Room lifecycle ---

    async def create_game(self, host_name: str, max_players: int | None = None) -> tuple[Game, Player]:
        """Create a WAITING game under a fresh room code and seat the host."""
        name = normalize_player_name(host_name)
        capacity = self._settings.max_players if max_players is None else max_players
        if capacity < 1:
            raise InvalidActionError(f"max_players must be positive, got {capacity}")

        for attempt in range(1, self._settings.room_code_attempts + 1):
            room_code = self._new_room_code()
            try:
                async with self._store.transaction():
                    game = await self._store.games.create(room_code, capacity)
                    host = await self._store.players.add_to_game(room_code, name)
            except DuplicateRoomCodeError:
                logger.debug("room code collision", room_code=room_code, attempt=attempt)
                continue
            logger.info("game created", game_id=game.id, room_code=room_code, max_players=capacity)
            return game, host

        raise ConflictError("Could not allocate a unique room code, try again")

    async def join_game(self, room_code: str, player_name: str) -> tuple[Game, Player]:
        room_code = normalize_room_code(room_code)
        name = normalize_player_name(player_name)
        game = await self._require_game_by_code(room_code)
        async with self._locks.hold(game.id):
            with bound_contextvars(game_id=game.id):
                game = await self._require_game_by_code(room_code)
                if game.phase != GamePhase.WAITING:
                    raise GamePhaseError(f"Game '{room_code}' has already started")
                try:
                    player = await self._store.players.add_to_game(room_code, name)
                except CapacityExceededError as exc:
                    raise RoomFullError(f"Game '{room_code}' is full") from exc
                except DuplicateNameError as exc:
                    raise NameTakenError(f"Player name '{name}' is already taken") from exc
                except RecordNotFoundError as exc:
                    raise GameNotFoundError(f"Game '{room_code}' not found") from exc
                logger.info("player joined", player_id=player.id)
        return game, player

    async def start_game(self, room_code: str) -> TurnState:
        """Deal hands, shuffle the turn order and move the game to PLAYING."""
        room_code = normalize_room_code(room_code)
        game = await self._require_game_by_code(room_code)
        async with self._locks.hold(game.id):
            with bound_contextvars(game_id=game.id):
                game = await self._require_game_by_code(room_code)
                if game.phase != GamePhase.WAITING:
                    raise GamePhaseError(f"Game '{room_code}' is not waiting for players")
                players = await self._store.players.get_by_game_id(game.id)
                if len(players) < self._settings.min_players_to_start:
                    raise ConflictError(
                        f"At least {self._settings.min_players_to_start} player(s) required to start",
                    )
                async with self._store.transaction():
                    await self.deck.deal_initial_cards(game.id, self._settings.cards_per_player)
                    state = await self.turns.initialize_turn_order(game.id)
                    await self._store.games.update_phase(room_code, GamePhase.PLAYING)
                logger.info("game started", players=len(players))
        return state

    # --- Placement ---

    async def attempt_placement(self, game_id: str, player_id: str, card_id: str, position: int) -> PlacementOutcome:
        """Validate and apply one placement, then pass the turn or finish the game.

        A correct card goes onto the timeline. An incorrect card is discarded
        and replaced from the deck. Either way the turn passes unless the game
        ended. Raises WrongTurnError if player_id does not hold the turn.
        """
        async with self._locks.hold(game_id):
            with bound_contextvars(game_id=game_id, player_id=player_id, card_id=card_id):
                game = await self._require_game(game_id)
                if game.phase != GamePhase.PLAYING:
                    raise GamePhaseError(f"Game '{game.room_code}' is not in progress")
                player = await self._store.players.get_by_id(player_id)
                if player is None or player.game_id != game_id:
                    raise PlayerNotFoundError(f"Player '{player_id}' not found in this game")
                if not await self.turns.is_player_turn(player_id, game_id):
                    current = await self.turns.get_current_player(game_id)
                    logger.info("placement rejected, wrong turn")
                    raise WrongTurnError(player_id=player_id, current_player_id=current.id if current else None)
                if card_id not in player.hand_cards:
                    raise CardNotInHandError(f"Card '{card_id}' is not in the player's hand")

                async with self._store.transaction():
                    validation = await self.validator.validate_placement(game_id, card_id, position)
                    if validation.is_valid:
                        outcome = await self._accept_placement(game, player, card_id, validation)
                    else:
                        outcome = await self._reject_placement(game, player, card_id, validation)
                logger.info(
                    "placement resolved",
                    is_valid=validation.is_valid,
                    position=position,
                    game_over=outcome.game_over,
                )
                return outcome

    async def _accept_placement(
        self,
        game: Game,
        player: Player,
        card_id: str,
        validation: ValidationResult,
    ) -> PlacementOutcome:
        await self._store.timeline.add_card(game.id, card_id, validation.actual_position)
        player = await self.deck.remove_card_from_hand(player.id, card_id)
        points = player.score + self._settings.points_per_correct_placement
        player = await self._store.players.update_score(player.id, points)

        if not player.hand_cards:
            await self._store.games.update_phase(game.room_code, GamePhase.FINISHED)
            logger.info("game finished", winner_id=player.id)
            return PlacementOutcome(success=True, validation=validation, game_over=True, winner_id=player.id)

        state = await self.turns.next_turn(game.id)
        return PlacementOutcome(success=True, validation=validation, new_turn_state=state)

    async def _reject_placement(
        self,
        game: Game,
        player: Player,
        card_id: str,
        validation: ValidationResult,
    ) -> PlacementOutcome:
        player = await self.deck.remove_card_from_hand(player.id, card_id)
        drawn = await self.deck.draw_card_for_player(player.id)

        if drawn is None and not player.hand_cards:
            await self._store.games.update_phase(game.room_code, GamePhase.FINISHED)
            logger.info("game finished, deck exhausted")
            return PlacementOutcome(
                success=False,
                validation=validation,
                game_over=True,
                deck_exhausted=True,
                reason=RejectionReason.INCORRECT_POSITION,
            )

        state = await self.turns.next_turn(game.id)
        return PlacementOutcome(
            success=False,
            validation=validation,
            new_turn_state=state,
            drawn_card=drawn,
            deck_exhausted=drawn is None,
            reason=RejectionReason.INCORRECT_POSITION,
        )

    # --- Read paths ---

    async def resolve_game(self, room_code: str) -> Game:
        return await self._require_game_by_code(normalize_room_code(room_code))

    async def get_game(self, room_code: str) -> GameWithPlayers:
        game = await self._store.games.get_with_players(normalize_room_code(room_code))
        if game is None:
            raise GameNotFoundError(f"Game '{room_code}' not found")
        return game

    async def get_snapshot(self, room_code: str) -> GameSnapshot:
        snapshot = await self._store.games.get_snapshot(normalize_room_code(room_code))
        if snapshot is None:
            raise GameNotFoundError(f"Game '{room_code}' not found")
        return snapshot

    async def get_timeline(self, room_code: str) -> list[TimelineEntry]:
        try:
            return await self._store.timeline.get_for_room(normalize_room_code(room_code))
        except RecordNotFoundError as exc:
            raise GameNotFoundError(f"Game '{room_code}' not found") from exc

    async def get_player_hand(self, player_id: str) -> list[Card]:
        return await self.deck.get_player_hand(player_id)

    async def turn_info(self, game_id: str) -> TurnInfo:
        return await self.turns.turn_info(game_id)

    async def timeline_stats(self, game_id: str) -> TimelineStats:
        return await self.validator.timeline_stats(game_id)

    async def hint(self, card_id: str) -> str:
        return await self.validator.hint(card_id)

    async def remaining_cards(self, game_id: str) -> int:
        return await self.deck.remaining_cards_count(game_id)

    # --- Housekeeping ---

    async def cleanup_inactive_games(self, hours_old: float | None = None) -> int:
        """Delete stale WAITING/FINISHED games and drop the locks they leave behind."""
        hours = self._settings.inactive_game_hours if hours_old is None else hours_old
        removed = await self._store.games.cleanup_inactive(hours)
        if removed:
            live = {gid for gid in self._locks.game_ids() if await self._store.games.get_by_id(gid) is not None}
            self._locks.prune(live)
            logger.info("cleaned up inactive games", count=removed, hours_old=hours)
        return removed

    # --- Internals ---

    def _new_room_code(self) -> str:
        return "".join(self._room_code_rng.choice(ROOM_CODE_ALPHABET) for _ in range(self._settings.room_code_length))

    async def _require_game(self, game_id: str) -> Game:
        game = await self._store.games.get_by_id(game_id)
        if game is None:
            raise GameNotFoundError(f"Game '{game_id}' not found")
        return game

    async def _require_game_by_code(self, room_code: str) -> Game:
        game = await self._store.games.find_by_room_code(room_code)
        if game is None:
            raise GameNotFoundError(f"Game '{room_code}' not found")
        return game
