"""Abstract interface for timeline placements."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from shared.dal.models import TimelineCard, TimelineEntry


class TimelineRepository(ABC):
    """Placement records of a game's timeline.

    Positions stay dense (0..N-1): inserting shifts every placement at or
    after the target position by one, removing closes the gap.
    """

    @abstractmethod
    async def add_card(self, game_id: str, card_id: str, position: int) -> TimelineCard:
        """Insert a placement. Positions past the end are clamped to append."""

    @abstractmethod
    async def get_by_game_id(self, game_id: str) -> list[TimelineEntry]:
        """Placements joined with their cards, ordered by position."""

    @abstractmethod
    async def get_for_room(self, room_code: str) -> list[TimelineEntry]:
        """Same as get_by_game_id, addressed by room code. Raises RecordNotFoundError."""

    @abstractmethod
    async def remove(self, timeline_card_id: str) -> None:
        """Remove a placement and renumber the rest. Unknown ids are a no-op."""
