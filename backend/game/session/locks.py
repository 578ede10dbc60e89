"""Per-game mutual exclusion for state-changing operations."""

from __future__ import annotations

import asyncio
import contextlib
import logging
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import AsyncIterator

logger = logging.getLogger(__name__)


class GameLockRegistry:
    """One asyncio.Lock per game id.

    Joins, starts and placements for the same game run one at a time;
    different games proceed independently. Locks are created on first use
    and dropped by prune() once their game is gone.
    """

    def __init__(self) -> None:
        self._game_locks: dict[str, asyncio.Lock] = {}  # game_id -> Lock

    def __len__(self) -> int:
        return len(self._game_locks)

    def game_ids(self) -> set[str]:
        return set(self._game_locks)

    def lock_for(self, game_id: str) -> asyncio.Lock:
        lock = self._game_locks.get(game_id)
        if lock is None:
            lock = asyncio.Lock()
            self._game_locks[game_id] = lock
        return lock

    @contextlib.asynccontextmanager
    async def hold(self, game_id: str) -> AsyncIterator[None]:
        async with self.lock_for(game_id):
            yield

    def prune(self, live_game_ids: set[str]) -> int:
        """Drop idle locks of games that no longer exist. Returns the number removed."""
        stale = [
            game_id
            for game_id, lock in self._game_locks.items()
            if game_id not in live_game_ids and not lock.locked()
        ]
        for game_id in stale:
            del self._game_locks[game_id]
        if stale:
            logger.debug("pruned %d game locks", len(stale))
        return len(stale)
