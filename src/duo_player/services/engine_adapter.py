"""Uniform adapter over one playback engine instance.

One adapter serves exactly one load. The adapter subscribes to its engine for
the engine's whole lifetime and forwards events as ``(adapter, event)``;
after `dispose` every engine event is dropped, so a late ``Prepared`` from a
superseded load can never reach slot state.

Two variants exist and are selected once per load by media kind:

- `AudioEngineAdapter` keeps the engine's native looping disabled. Loop
  restarts are driven by the owner on ``Completed`` so output routing can be
  re-applied before every repeat.
- `VideoEngineAdapter` passes looping straight to the engine and buffers a
  ``play()`` issued before preparation finished.
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable
from typing import ClassVar

from duo_player.errors import DeviceUnsupported, EngineError
from duo_player.media_formats import MediaKind

from .playback_engine import (
    Completed,
    EngineEvent,
    EngineFactory,
    Failed,
    PlaybackEngine,
    Prepared,
)

logger = logging.getLogger(__name__)

ERROR_UNEXPECTED = -1

AdapterEventHandler = Callable[["PlaybackEngineAdapter", EngineEvent], Awaitable[None]]


class PlaybackEngineAdapter:
    """Engine wrapper exposing the slot-facing playback contract."""

    kind: ClassVar[MediaKind]
    supports_native_looping: ClassVar[bool] = False

    def __init__(
        self,
        engine: PlaybackEngine,
        on_event: AdapterEventHandler,
        *,
        slot_id: int = 0,
    ) -> None:
        self._engine = engine
        self._on_event = on_event
        self._slot_id = slot_id
        self._loaded = False
        self._prepared = False
        self._playing = False
        self._disposed = False
        self._duration_ms = 0
        self._loop_requested = False
        engine.set_event_handler(self._handle_engine_event)

    @property
    def is_prepared(self) -> bool:
        return self._prepared

    @property
    def is_playing(self) -> bool:
        return self._playing

    @property
    def is_disposed(self) -> bool:
        return self._disposed

    @property
    def loop_requested(self) -> bool:
        return self._loop_requested

    async def load(self, locator: str) -> None:
        """Start preparing ``locator``; completion arrives as an event."""
        if self._disposed:
            raise RuntimeError("Adapter already disposed.")
        if self._loaded:
            raise RuntimeError("Adapter already loaded; dispose and recreate it.")
        self._loaded = True
        failure: Failed | None = None
        try:
            await self._engine.load(locator)
            await self._after_load()
        except EngineError as exc:
            failure = Failed(exc.code, exc.message)
        except Exception as exc:  # pragma: no cover - engine safety net
            failure = Failed(ERROR_UNEXPECTED, str(exc))
        if failure is not None:
            logger.warning(
                "Engine load failed: %s",
                failure.message or failure.code,
                extra={"slot_id": self._slot_id, "code": failure.code},
            )
            await self._handle_engine_event(failure)

    async def play(self) -> None:
        if self._disposed or self._playing:
            return
        if not self._prepared:
            self._play_before_prepared()
            return
        await self._engine.play()
        self._playing = True

    async def pause(self) -> None:
        if self._disposed or not self._playing:
            return
        await self._engine.pause()
        self._playing = False

    async def seek_to(self, position_ms: int) -> int:
        """Seek within ``[0, duration]`` and return the clamped target."""
        if self._disposed:
            return 0
        duration = await self.get_duration_ms()
        target = max(0, min(int(position_ms), duration))
        await self._engine.seek_to(target)
        return target

    async def get_position_ms(self) -> int:
        if self._disposed or not self._prepared:
            return 0
        return max(0, await self._engine.get_position_ms())

    async def get_duration_ms(self) -> int:
        if self._disposed or not self._prepared:
            return 0
        duration = await self._engine.get_duration_ms()
        if duration > 0:
            self._duration_ms = duration
        return self._duration_ms

    async def set_looping(self, enabled: bool) -> None:
        raise NotImplementedError

    async def set_output_device(self, handle: str) -> bool:
        """Route output to ``handle``; failures keep the previous device."""
        if self._disposed or not self._loaded:
            return False
        try:
            applied = await self._engine.set_output_device(handle)
        except DeviceUnsupported as exc:
            logger.warning(
                "Output device rejected: %s",
                exc,
                extra={"slot_id": self._slot_id, "device": handle},
            )
            return False
        except Exception as exc:  # pragma: no cover - engine safety net
            logger.warning(
                "Output device routing failed: %s",
                exc,
                extra={"slot_id": self._slot_id, "device": handle},
            )
            return False
        if not applied:
            logger.warning(
                "Output device not applied",
                extra={"slot_id": self._slot_id, "device": handle},
            )
        return applied

    async def dispose(self) -> None:
        if self._disposed:
            return
        self._disposed = True
        self._playing = False
        try:
            await self._engine.dispose()
        except Exception as exc:  # pragma: no cover - engine safety net
            logger.warning(
                "Engine dispose failed: %s", exc, extra={"slot_id": self._slot_id}
            )

    async def _after_load(self) -> None:
        return None

    def _play_before_prepared(self) -> None:
        logger.debug("Ignoring play before prepare", extra={"slot_id": self._slot_id})

    async def _after_prepared(self) -> None:
        return None

    async def _handle_engine_event(self, event: EngineEvent) -> None:
        if self._disposed:
            logger.debug(
                "Dropping %s from disposed adapter",
                type(event).__name__,
                extra={"slot_id": self._slot_id},
            )
            return
        if isinstance(event, Prepared):
            self._prepared = True
            self._duration_ms = max(0, event.duration_ms)
            await self._after_prepared()
        elif isinstance(event, (Completed, Failed)):
            self._playing = False
        await self._on_event(self, event)


class AudioEngineAdapter(PlaybackEngineAdapter):
    """Audio-only variant; loops are restarted by the owner."""

    kind = MediaKind.AUDIO
    supports_native_looping = False

    async def set_looping(self, enabled: bool) -> None:
        self._loop_requested = enabled
        if self._loaded and not self._disposed:
            await self._engine.set_looping(False)

    async def _after_load(self) -> None:
        await self._engine.set_looping(False)


class VideoEngineAdapter(PlaybackEngineAdapter):
    """Video-capable variant with native looping and buffered play."""

    kind = MediaKind.VIDEO
    supports_native_looping = True

    def __init__(
        self,
        engine: PlaybackEngine,
        on_event: AdapterEventHandler,
        *,
        slot_id: int = 0,
    ) -> None:
        super().__init__(engine, on_event, slot_id=slot_id)
        self._play_pending = False

    async def set_looping(self, enabled: bool) -> None:
        self._loop_requested = enabled
        if self._loaded and not self._disposed:
            await self._engine.set_looping(enabled)

    async def pause(self) -> None:
        self._play_pending = False
        await super().pause()

    async def _after_load(self) -> None:
        await self._engine.set_looping(self._loop_requested)

    def _play_before_prepared(self) -> None:
        self._play_pending = True

    async def _after_prepared(self) -> None:
        if self._play_pending:
            self._play_pending = False
            await self.play()


def create_adapter(
    kind: MediaKind,
    engine_factory: EngineFactory,
    on_event: AdapterEventHandler,
    *,
    slot_id: int = 0,
) -> PlaybackEngineAdapter:
    """Build the adapter variant for ``kind`` around a fresh engine."""
    engine = engine_factory(kind)
    if kind is MediaKind.AUDIO:
        return AudioEngineAdapter(engine, on_event, slot_id=slot_id)
    return VideoEngineAdapter(engine, on_event, slot_id=slot_id)
