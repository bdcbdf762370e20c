"""Playback engine contract and event payloads.

Adapters depend on this protocol so slot coordination stays engine-agnostic.
Concrete engines (fake/VLC) translate engine-specific behavior into these
commands and events. Events must be delivered on the asyncio loop that
called ``load``.
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Protocol

from duo_player.media_formats import MediaKind


@dataclass(frozen=True)
class EngineEvent:
    """Marker base type for engine-originated events."""

    pass


@dataclass(frozen=True)
class Prepared(EngineEvent):
    """Media finished preparing and can be played."""

    duration_ms: int


@dataclass(frozen=True)
class Completed(EngineEvent):
    """Playback reached the end of the media."""

    pass


@dataclass(frozen=True)
class Failed(EngineEvent):
    """Decode, prepare or playback failure."""

    code: int
    message: str = ""


EngineEventHandler = Callable[[EngineEvent], Awaitable[None]]


class PlaybackEngine(Protocol):
    """Decode-and-render engine behind one adapter."""

    def set_event_handler(self, handler: EngineEventHandler) -> None: ...

    async def load(self, locator: str) -> None: ...

    async def play(self) -> None: ...

    async def pause(self) -> None: ...

    async def seek_to(self, position_ms: int) -> None: ...

    async def get_position_ms(self) -> int: ...

    async def get_duration_ms(self) -> int: ...

    async def set_looping(self, enabled: bool) -> None: ...

    async def set_output_device(self, handle: str) -> bool: ...

    async def dispose(self) -> None: ...


EngineFactory = Callable[[MediaKind], PlaybackEngine]
"""Builds a fresh engine for one load of the given media kind."""
