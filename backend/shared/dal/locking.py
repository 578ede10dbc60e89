"""Write serialization shared by the storage backends."""

from __future__ import annotations

import asyncio
import contextlib
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import AsyncIterator


class TaskWriteLock:
    """asyncio.Lock that the owning task may re-enter.

    A DataStore transaction holds the lock for its whole duration; the
    repository calls made inside it re-enter instead of deadlocking, while
    writers from other tasks wait until the transaction finishes.
    """

    def __init__(self) -> None:
        self._lock = asyncio.Lock()
        self._owner: asyncio.Task | None = None

    @property
    def held_by_current_task(self) -> bool:
        return self._owner is not None and self._owner is asyncio.current_task()

    @contextlib.asynccontextmanager
    async def hold(self) -> AsyncIterator[bool]:
        """Hold the lock; yields True for the outermost holder, False when re-entered."""
        if self.held_by_current_task:
            yield False
            return
        async with self._lock:
            self._owner = asyncio.current_task()
            try:
                yield True
            finally:
                self._owner = None
