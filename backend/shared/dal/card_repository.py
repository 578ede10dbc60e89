"""Abstract interface for the card catalog."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Iterable, Sequence

    from shared.dal.models import Card, Difficulty


class CardRepository(ABC):
    """Read-mostly catalog of event cards. Cards are written once at seed time."""

    @abstractmethod
    async def get_by_id(self, card_id: str) -> Card | None: ...

    @abstractmethod
    async def get_by_category(self, category: str) -> list[Card]:
        """Cards of a category in chronological order."""

    @abstractmethod
    async def get_all(self) -> list[Card]: ...

    @abstractmethod
    async def get_by_ids(self, card_ids: Sequence[str]) -> list[Card]:
        """Cards in the order of card_ids; unknown ids are skipped."""

    @abstractmethod
    async def get_random(self, count: int, difficulty: Difficulty | None = None) -> list[Card]:
        """Up to count distinct random cards. Returns fewer when the catalog is smaller."""

    @abstractmethod
    async def count(self) -> int: ...

    @abstractmethod
    async def add_many(self, cards: Iterable[Card]) -> int:
        """Insert or replace cards by id. Returns the number written."""
