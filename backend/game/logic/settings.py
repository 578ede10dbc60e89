"""Centralized gameplay settings for the timeline game."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field

from game.logic.exceptions import InvalidActionError
from shared.dal.models import DEFAULT_MAX_PLAYERS


class GameSettings(BaseModel):
    """
    Configuration for room creation, dealing and scoring.

    Defaults match the behavior of the public game rooms.
    """

    model_config = ConfigDict(frozen=True)

    # --- Rooms ---
    max_players: int = Field(default=DEFAULT_MAX_PLAYERS, ge=1)
    min_players_to_start: int = Field(default=1, ge=1)
    room_code_length: int = Field(default=6, ge=4)
    room_code_attempts: int = Field(default=5, ge=1)

    # --- Cards and scoring ---
    cards_per_player: int = Field(default=4, ge=1)
    points_per_correct_placement: int = Field(default=1, ge=0)

    # --- Housekeeping ---
    inactive_game_hours: float = Field(default=24, gt=0)


def validate_settings(settings: GameSettings) -> None:
    """Reject combinations the individual field constraints cannot express.

    Raises InvalidActionError listing every problem found.
    """
    errors: list[str] = []

    if settings.min_players_to_start > settings.max_players:
        errors.append(
            f"min_players_to_start={settings.min_players_to_start} exceeds max_players={settings.max_players}",
        )

    if errors:
        raise InvalidActionError("; ".join(errors))
