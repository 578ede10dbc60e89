"""DataStore: the repositories of one backend plus a cross-repository transaction."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from contextlib import AbstractAsyncContextManager

    from shared.dal.card_repository import CardRepository
    from shared.dal.game_repository import GameRepository
    from shared.dal.player_repository import PlayerRepository
    from shared.dal.timeline_repository import TimelineRepository


class DataStore(ABC):
    """Bundle of the four repositories backed by the same storage.

    The game core is written against this interface only.
    """

    def __init__(
        self,
        *,
        games: GameRepository,
        players: PlayerRepository,
        cards: CardRepository,
        timeline: TimelineRepository,
    ) -> None:
        self.games = games
        self.players = players
        self.cards = cards
        self.timeline = timeline

    @abstractmethod
    def transaction(self) -> AbstractAsyncContextManager[None]:
        """All-or-nothing scope for a multi-step mutation.

        Commits when the block exits normally and rolls back on any exception,
        cancellation included. Nested use inside the same task joins the outer
        transaction.
        """

    async def close(self) -> None:  # noqa: B027
        """Release backend resources. No-op by default."""
