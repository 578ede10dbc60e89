"""Background sweep that deletes inactive games."""

from __future__ import annotations

import asyncio
import contextlib
import logging
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from game.logic.service import TimelineGameService

logger = logging.getLogger(__name__)


class InactiveGameReaper:
    """Periodically calls cleanup_inactive_games on the service.

    A failing sweep is logged and the loop keeps running.
    """

    def __init__(
        self,
        service: TimelineGameService,
        *,
        interval_seconds: float,
        hours_old: float | None = None,
    ) -> None:
        self._service = service
        self._interval_seconds = interval_seconds
        self._hours_old = hours_old
        self._task: asyncio.Task[None] | None = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        """Start the periodic reaper task. Idempotent."""
        if self.running:
            return
        self._task = asyncio.create_task(self._reaper_loop())

    async def stop(self) -> None:
        """Stop the reaper task."""
        if self._task is not None:
            self._task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._task
            self._task = None

    async def sweep(self) -> int:
        removed = await self._service.cleanup_inactive_games(self._hours_old)
        if removed:
            logger.info("reaper removed %d inactive games", removed)
        return removed

    async def _reaper_loop(self) -> None:
        while True:
            await asyncio.sleep(self._interval_seconds)
            try:
                await self.sweep()
            except Exception:
                logger.exception("game reaper encountered an error")
