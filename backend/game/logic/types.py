"""
Result models returned by the game logic.

All models are frozen and dump with camelCase keys (by_alias=True) so the
HTTP layer can serve them unchanged.
"""

from enum import StrEnum

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from shared.dal.models import Card, Player, TurnState


class _Result(BaseModel):
    model_config = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True)


class ValidationResult(_Result):
    """Verdict on one proposed placement."""

    is_valid: bool
    correct_position: int
    actual_position: int
    message: str
    card_name: str
    card_date: int


class TimelineStats(_Result):
    total_cards: int = 0
    correct_placements: int = 0
    incorrect_placements: int = 0
    accuracy: float = 0


class TurnInfo(_Result):
    current_player: Player | None = None
    turn_order: tuple[Player, ...] = ()
    turn_number: int = 0
    is_game_over: bool = False


class RejectionReason(StrEnum):
    INCORRECT_POSITION = "incorrect_position"
    WRONG_TURN = "wrong_turn"


class PlacementOutcome(_Result):
    """Everything a placement attempt changed, in one response."""

    success: bool
    validation: ValidationResult | None = None
    new_turn_state: TurnState | None = None
    game_over: bool = False
    winner_id: str | None = None
    drawn_card: Card | None = None
    deck_exhausted: bool = False
    reason: RejectionReason | None = None
    message: str | None = None
