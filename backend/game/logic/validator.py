"""Chronological placement validation.

The pure functions at the top decide placements against an in-memory
timeline; TimelineValidator wraps them with the storage reads.
"""

from __future__ import annotations

from itertools import pairwise
from typing import TYPE_CHECKING

import structlog

from game.logic.exceptions import CardNotFoundError, InvalidActionError, ValidationFailedError
from game.logic.types import TimelineStats, ValidationResult
from shared.dal.errors import StorageError

if TYPE_CHECKING:
    from collections.abc import Sequence

    from shared.dal.models import Card, TimelineEntry
    from shared.dal.store import DataStore

logger = structlog.get_logger()

HINT_FALLBACK = "Try to place this card in chronological order with the other events."
IN_ORDER_MESSAGE = "Timeline is in correct order"


def find_correct_position(
    card_value: int,
    timeline: Sequence[TimelineEntry],
    exclude_card_id: str | None = None,
) -> int:
    """Index that keeps the timeline ascending: before the first strictly greater value.

    Equal values stay in front of the new card. The excluded card is dropped
    before counting, so the result indexes the timeline without it.
    """
    position = 0
    for entry in timeline:
        if exclude_card_id is not None and entry.card_id == exclude_card_id:
            continue
        if card_value < entry.chronological_value:
            break
        position += 1
    return position


def evaluate_placement(card: Card, timeline: Sequence[TimelineEntry], position: int) -> ValidationResult:
    """Check whether inserting card at position keeps the timeline non-decreasing."""
    if not 0 <= position <= len(timeline):
        raise InvalidActionError(f"Position {position} is outside the timeline (0..{len(timeline)})")

    values = [entry.chronological_value for entry in timeline]
    values.insert(position, card.chronological_value)
    if all(earlier <= later for earlier, later in pairwise(values)):
        return ValidationResult(
            is_valid=True,
            correct_position=position,
            actual_position=position,
            message=IN_ORDER_MESSAGE,
            card_name=card.name,
            card_date=card.chronological_value,
        )

    correct = find_correct_position(card.chronological_value, timeline, exclude_card_id=card.id)
    direction = "earlier" if correct < position else "later"
    return ValidationResult(
        is_valid=False,
        correct_position=correct,
        actual_position=position,
        message=f'Card "{card.name}" is in the wrong position. It should be placed {direction} in the timeline.',
        card_name=card.name,
        card_date=card.chronological_value,
    )


def compute_timeline_stats(timeline: Sequence[TimelineEntry]) -> TimelineStats:
    total = len(timeline)
    if total <= 1:
        return TimelineStats(total_cards=total, accuracy=100)
    correct = sum(1 for a, b in pairwise(timeline) if a.chronological_value <= b.chronological_value)
    pairs = total - 1
    return TimelineStats(
        total_cards=total,
        correct_placements=correct,
        incorrect_placements=pairs - correct,
        accuracy=round(correct / pairs * 100, 2),
    )


def describe_chronological_value(value: int) -> str:
    return f"{-value} BCE" if value < 0 else str(value)


class TimelineValidator:
    def __init__(self, store: DataStore) -> None:
        self._store = store

    async def validate_placement(self, game_id: str, card_id: str, position: int) -> ValidationResult:
        """Validate a proposed placement against the game's stored timeline.

        Raises CardNotFoundError for an unknown card, InvalidActionError for an
        out-of-range position and ValidationFailedError when storage fails.
        """
        try:
            card = await self._store.cards.get_by_id(card_id)
            if card is None:
                raise CardNotFoundError(f"Card '{card_id}' not found")
            timeline = await self._store.timeline.get_by_game_id(game_id)
        except StorageError as exc:
            logger.exception("could not validate placement", game_id=game_id, card_id=card_id)
            raise ValidationFailedError("Failed to validate card placement") from exc
        return evaluate_placement(card, timeline, position)

    async def correct_position(self, game_id: str, card_id: str) -> int:
        try:
            card = await self._store.cards.get_by_id(card_id)
            if card is None:
                raise CardNotFoundError(f"Card '{card_id}' not found")
            timeline = await self._store.timeline.get_by_game_id(game_id)
        except StorageError as exc:
            raise ValidationFailedError("Failed to get correct position") from exc
        return find_correct_position(card.chronological_value, timeline, exclude_card_id=card.id)

    async def timeline_stats(self, game_id: str) -> TimelineStats:
        """Pairwise ordering statistics of the placed timeline. Zeros on any failure."""
        try:
            timeline = await self._store.timeline.get_by_game_id(game_id)
        except Exception:
            logger.warning("timeline stats unavailable", game_id=game_id, exc_info=True)
            return TimelineStats()
        return compute_timeline_stats(timeline)

    async def hint(self, card_id: str) -> str:
        """Human-readable hint naming the card and its date. Never raises."""
        try:
            card = await self._store.cards.get_by_id(card_id)
        except Exception:
            logger.warning("hint lookup failed", card_id=card_id, exc_info=True)
            return HINT_FALLBACK
        if card is None:
            return HINT_FALLBACK
        return f'The event "{card.name}" happened in {describe_chronological_value(card.chronological_value)}.'
