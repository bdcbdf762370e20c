"""Fake playback engine for deterministic testing and VLC-less machines."""

from __future__ import annotations

import asyncio
from collections.abc import Iterable
from contextlib import suppress
from dataclasses import dataclass
from typing import Literal

from duo_player.errors import DeviceUnsupported
from duo_player.media_formats import MediaKind

from .playback_engine import (
    Completed,
    EngineEvent,
    EngineEventHandler,
    Failed,
    Prepared,
)

FakeStatus = Literal["idle", "preparing", "prepared", "playing", "paused", "ended"]


@dataclass
class _EngineState:
    status: FakeStatus = "idle"
    locator: str | None = None
    position_ms: int = 0
    duration_ms: int = 0
    looping: bool = False
    device: str | None = None


class FakePlaybackEngine:
    """In-memory engine that simulates preparation and playback progress.

    With ``auto_prepare=False`` preparation only finishes when a test calls
    `complete_prepare`, which also lets tests deliver late events after
    `dispose`.
    """

    def __init__(
        self,
        kind: MediaKind = MediaKind.AUDIO,
        *,
        tick_interval_ms: int = 250,
        duration_ms: int = 180_000,
        prepare_delay_ms: int = 0,
        auto_prepare: bool = True,
        fail_code: int | None = None,
        known_devices: Iterable[str] | None = None,
    ) -> None:
        self.kind = kind
        self._tick_interval_ms = tick_interval_ms
        self._duration_ms = duration_ms
        self._prepare_delay_ms = prepare_delay_ms
        self._auto_prepare = auto_prepare
        self._fail_code = fail_code
        self._known_devices = (
            frozenset(known_devices) if known_devices is not None else None
        )
        self._state = _EngineState()
        self._handler: EngineEventHandler | None = None
        self._lock = asyncio.Lock()
        self._prepare_task: asyncio.Task[None] | None = None
        self._ticker_task: asyncio.Task[None] | None = None
        self.disposed = False
        self.calls: list[str] = []
        self.applied_devices: list[str] = []

    @property
    def status(self) -> FakeStatus:
        return self._state.status

    @property
    def looping(self) -> bool:
        return self._state.looping

    @property
    def device(self) -> str | None:
        return self._state.device

    def set_event_handler(self, handler: EngineEventHandler) -> None:
        self._handler = handler

    async def load(self, locator: str) -> None:
        self.calls.append("load")
        async with self._lock:
            self._state.status = "preparing"
            self._state.locator = locator
            self._state.position_ms = 0
        if self._auto_prepare:
            self._prepare_task = asyncio.create_task(self._prepare_later())

    async def play(self) -> None:
        self.calls.append("play")
        async with self._lock:
            if self._state.status not in {"prepared", "paused", "ended"}:
                return
            if self._state.position_ms >= self._state.duration_ms:
                self._state.position_ms = 0
            self._state.status = "playing"
        self._ensure_ticker()

    async def pause(self) -> None:
        self.calls.append("pause")
        async with self._lock:
            if self._state.status == "playing":
                self._state.status = "paused"

    async def seek_to(self, position_ms: int) -> None:
        self.calls.append(f"seek_to:{position_ms}")
        async with self._lock:
            self._state.position_ms = _clamp(position_ms, 0, self._state.duration_ms)

    async def get_position_ms(self) -> int:
        async with self._lock:
            return self._state.position_ms

    async def get_duration_ms(self) -> int:
        async with self._lock:
            return self._state.duration_ms

    async def set_looping(self, enabled: bool) -> None:
        self.calls.append(f"set_looping:{enabled}")
        async with self._lock:
            self._state.looping = enabled

    async def set_output_device(self, handle: str) -> bool:
        self.calls.append(f"set_output_device:{handle}")
        if self._known_devices is not None and handle not in self._known_devices:
            raise DeviceUnsupported(handle, "not present on fake engine")
        async with self._lock:
            self._state.device = handle
        self.applied_devices.append(handle)
        return True

    async def dispose(self) -> None:
        self.calls.append("dispose")
        self.disposed = True
        for task in (self._prepare_task, self._ticker_task):
            if task is None or task is asyncio.current_task():
                continue
            task.cancel()
            with suppress(asyncio.CancelledError):
                await task
        self._prepare_task = None
        self._ticker_task = None
        async with self._lock:
            self._state.status = "idle"

    async def complete_prepare(self) -> None:
        """Finish preparation now, even if the engine was disposed."""
        if self._fail_code is not None:
            await self._emit(Failed(self._fail_code, "fake prepare failure"))
            return
        async with self._lock:
            if not self.disposed:
                self._state.status = "prepared"
                self._state.duration_ms = self._duration_ms
        await self._emit(Prepared(self._duration_ms))

    async def finish(self) -> None:
        """Jump to the end of the media as if playback ran out."""
        async with self._lock:
            self._state.position_ms = self._state.duration_ms
        await self._reach_end()

    async def fail(self, code: int, message: str = "fake playback failure") -> None:
        async with self._lock:
            self._state.status = "idle"
        await self._emit(Failed(code, message))

    async def _prepare_later(self) -> None:
        if self._prepare_delay_ms > 0:
            await asyncio.sleep(self._prepare_delay_ms / 1000)
        await self.complete_prepare()

    def _ensure_ticker(self) -> None:
        if self._ticker_task is not None and not self._ticker_task.done():
            return
        self._ticker_task = asyncio.create_task(self._ticker_loop())

    async def _ticker_loop(self) -> None:
        try:
            while not self.disposed:
                await asyncio.sleep(self._tick_interval_ms / 1000)
                await self._tick()
        except asyncio.CancelledError:
            pass

    async def _tick(self) -> None:
        async with self._lock:
            if self._state.status != "playing" or self._state.duration_ms <= 0:
                return
            next_pos = self._state.position_ms + self._tick_interval_ms
            self._state.position_ms = min(next_pos, self._state.duration_ms)
            ended = next_pos >= self._state.duration_ms
        if ended:
            await self._reach_end()

    async def _reach_end(self) -> None:
        async with self._lock:
            if self._state.looping:
                # Native looping wraps in place but still reports each end.
                self._state.position_ms = 0
                self._state.status = "playing"
            else:
                self._state.status = "ended"
        await self._emit(Completed())

    async def _emit(self, event: EngineEvent) -> None:
        if self._handler is None:
            return
        await self._handler(event)


def _clamp(value: int, min_value: int, max_value: int) -> int:
    return max(min_value, min(value, max_value))
