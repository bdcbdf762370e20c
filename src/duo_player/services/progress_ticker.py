"""Shared periodic progress push for both slots."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Sequence
from contextlib import suppress

from .presentation import PresentationSurface
from .slot_controller import SlotController

logger = logging.getLogger(__name__)


class ProgressTicker:
    """One repeating tick, alive while at least one slot is playing.

    Ticks are skipped while any seek control is being dragged, so the
    pushed progress never fights the user's thumb.
    """

    def __init__(
        self,
        slots: Sequence[SlotController],
        surface: PresentationSurface,
        *,
        interval_s: float = 1.0,
    ) -> None:
        self._slots = tuple(slots)
        self._surface = surface
        self._interval = interval_s
        self._dragging: set[int] = set()
        self._task: asyncio.Task[None] | None = None

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    @property
    def is_suspended(self) -> bool:
        return bool(self._dragging)

    def sync(self) -> None:
        """Start or stop the tick to match current slot transport states."""
        task = self._task
        running = task is not None and not task.done()
        if any(slot.is_playing for slot in self._slots):
            if not running:
                self._task = asyncio.create_task(self._run())
                logger.debug("Progress ticker started")
        elif task is not None and running and task is not asyncio.current_task():
            task.cancel()
            self._task = None
            logger.debug("Progress ticker stopped")

    def begin_drag(self, slot_id: int) -> None:
        self._dragging.add(slot_id)

    def end_drag(self, slot_id: int) -> None:
        self._dragging.discard(slot_id)

    async def tick(self) -> None:
        if self._dragging:
            return
        for slot in self._slots:
            percent = await slot.poll_progress()
            if percent is not None:
                self._surface.set_progress(slot.slot_id, percent)

    async def stop(self) -> None:
        task = self._task
        self._task = None
        if task is None:
            return
        task.cancel()
        with suppress(asyncio.CancelledError):
            await task

    async def _run(self) -> None:
        try:
            while any(slot.is_playing for slot in self._slots):
                await asyncio.sleep(self._interval)
                await self.tick()
        except asyncio.CancelledError:
            pass
