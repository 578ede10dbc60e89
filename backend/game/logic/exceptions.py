"""Typed domain exceptions for the timeline game.

Every rule violation and failed operation raised by game logic is a
GameError subclass. The HTTP layer branches on the three broad classes
(NotFoundError, ConflictError, InvalidActionError) to pick a status code;
anything else is treated as a server-side failure.
"""


class GameError(Exception):
    """Base exception for game-level failures."""


class NotFoundError(GameError):
    """A referenced game, player or card does not exist."""


class GameNotFoundError(NotFoundError):
    pass


class PlayerNotFoundError(NotFoundError):
    pass


class CardNotFoundError(NotFoundError):
    pass


class ConflictError(GameError):
    """The request is well-formed but conflicts with current game state.

    Retrying the same request will not help; the caller has to pick a
    different room, name, card or wait for its turn.
    """


class RoomFullError(ConflictError):
    pass


class NameTakenError(ConflictError):
    pass


class WrongTurnError(ConflictError):
    """Player attempted an action while another player holds the turn."""

    def __init__(self, *, player_id: str, current_player_id: str | None) -> None:
        self.player_id = player_id
        self.current_player_id = current_player_id
        super().__init__(f"It is not player {player_id}'s turn")


class GamePhaseError(ConflictError):
    """Action is not allowed in the game's current phase."""


class CardNotInHandError(ConflictError):
    pass


class InvalidActionError(GameError):
    """Malformed request, e.g. a placement position outside the timeline."""


class InvariantViolationError(GameError):
    """Persisted state contradicts a game invariant (corrupt turn state, dangling reference).

    Never repaired automatically.
    """


class ValidationFailedError(GameError):
    """A placement could not be validated. Wraps the underlying cause."""


class DeckOperationError(GameError):
    """Dealing, drawing or removing cards failed. Wraps the underlying cause."""


class TurnOperationError(GameError):
    """Initializing or advancing the turn order failed. Wraps the underlying cause."""
