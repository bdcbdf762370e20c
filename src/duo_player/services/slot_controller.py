"""Per-slot playback state machine.

`SlotController` is the transport authority for one slot. It owns the slot's
`SlotState`, the one live `PlaybackEngineAdapter`, and every mutation of
both. Engine events flow up through the adapter into this controller; UI
commands flow down through it into the adapter.

Transitions::

    idle -> preparing -> playing | error
    playing <-> paused
    playing -> completed            (end of media, loop off)
    playing -> playing              (end of media, loop on: restart at 0)
    any -> preparing                (new load supersedes the old one)

Engine failures only ever move this slot to ``error``; they are never raised
to the caller and never touch the sibling slot.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from dataclasses import dataclass, replace
from os import PathLike
from typing import Literal

from duo_player.errors import format_user_error
from duo_player.media_formats import MediaKind, classify

from .device_router import DeviceRouter, OutputDevice
from .engine_adapter import PlaybackEngineAdapter, create_adapter
from .playback_engine import (
    Completed,
    EngineEvent,
    EngineFactory,
    Failed,
    Prepared,
)
from .presentation import PresentationSurface

logger = logging.getLogger(__name__)

TransportState = Literal["idle", "preparing", "playing", "paused", "completed", "error"]

TRANSPORT_LABELS: dict[TransportState, str] = {
    "idle": "PLAY",
    "preparing": "LOADING",
    "playing": "PAUSE",
    "paused": "PLAY",
    "completed": "PLAY",
    "error": "ERROR",
}
NO_SOURCE_LABEL = "No media loaded"


@dataclass(frozen=True)
class PendingResume:
    """Position to restore once a sibling's picker round-trip finishes."""

    position_ms: int


@dataclass(frozen=True)
class SlotSnapshot:
    """Point-in-time view of a slot taken before a host interruption."""

    is_playing: bool
    position_ms: int


@dataclass(frozen=True)
class SlotState:
    """Everything one slot knows; replaced wholesale on every change."""

    slot_id: int
    media_locator: str | None = None
    engine_kind: MediaKind | None = None
    transport: TransportState = "idle"
    loop_enabled: bool = True
    selected_device: OutputDevice | None = None
    last_known_position_ms: int = 0
    duration_ms: int = 0
    pending_resume: PendingResume | None = None
    error: str | None = None


class SlotController:
    """Owns one slot's state and adapter."""

    def __init__(
        self,
        slot_id: int,
        *,
        engine_factory: EngineFactory,
        device_router: DeviceRouter,
        surface: PresentationSurface,
        loop_enabled: bool = True,
        on_transport_changed: Callable[[int], None] | None = None,
    ) -> None:
        self._engine_factory = engine_factory
        self._device_router = device_router
        self._surface = surface
        self._on_transport_changed = on_transport_changed
        self._state = SlotState(slot_id=slot_id, loop_enabled=loop_enabled)
        self._adapter: PlaybackEngineAdapter | None = None
        self._swap_lock = asyncio.Lock()

    @property
    def slot_id(self) -> int:
        return self._state.slot_id

    @property
    def state(self) -> SlotState:
        return self._state

    @property
    def adapter(self) -> PlaybackEngineAdapter | None:
        return self._adapter

    @property
    def is_playing(self) -> bool:
        return self._state.transport == "playing"

    async def load_media(self, locator: str | PathLike[str]) -> None:
        """Replace whatever this slot plays with ``locator``.

        The previous adapter is disposed before the new one exists, and loads
        run one at a time, so the slot never holds two adapters.
        """
        locator_text = str(locator)
        kind = classify(locator_text)
        async with self._swap_lock:
            await self._replace_adapter(locator_text, kind)

    async def _replace_adapter(self, locator_text: str, kind: MediaKind) -> None:
        previous = self._adapter
        self._adapter = None
        if previous is not None:
            await previous.dispose()
        adapter = create_adapter(
            kind,
            self._engine_factory,
            self._handle_adapter_event,
            slot_id=self.slot_id,
        )
        self._adapter = adapter
        self._set_state(
            media_locator=locator_text,
            engine_kind=kind,
            transport="preparing",
            last_known_position_ms=0,
            duration_ms=0,
            error=None,
        )
        logger.info(
            "Loading %s media: %s",
            kind.value,
            locator_text,
            extra={"slot_id": self.slot_id},
        )
        await adapter.set_looping(self._state.loop_enabled)
        await adapter.load(locator_text)

    async def toggle_play_pause(self) -> None:
        adapter = self._adapter
        if adapter is None:
            return
        transport = self._state.transport
        if transport == "playing":
            position = await adapter.get_position_ms()
            await adapter.pause()
            self._set_state(transport="paused", last_known_position_ms=position)
        elif transport == "paused":
            await adapter.play()
            self._set_state(transport="playing")
        elif transport == "completed":
            await adapter.seek_to(0)
            await adapter.play()
            self._set_state(transport="playing", last_known_position_ms=0)
            self._surface.set_progress(self.slot_id, 0)

    async def toggle_loop(self) -> None:
        enabled = not self._state.loop_enabled
        self._set_state(loop_enabled=enabled)
        if self._adapter is not None:
            await self._adapter.set_looping(enabled)
        logger.debug(
            "Loop %s", "on" if enabled else "off", extra={"slot_id": self.slot_id}
        )

    async def select_device(self, device: OutputDevice) -> bool:
        """Remember ``device`` and route the live adapter to it if any."""
        self._set_state(selected_device=device)
        if self._adapter is None:
            return False
        return await self._device_router.apply(self._adapter, device)

    async def seek_from_user(self, percent: float) -> int | None:
        """Seek to ``percent`` (0-100) of the current duration."""
        adapter = self._adapter
        if adapter is None:
            return None
        duration = await adapter.get_duration_ms()
        if duration <= 0:
            return None
        fraction = max(0.0, min(float(percent), 100.0)) / 100
        position = await adapter.seek_to(int(fraction * duration))
        self._set_state(last_known_position_ms=position, duration_ms=duration)
        return position

    async def snapshot(self) -> SlotSnapshot:
        if self._adapter is None or not self.is_playing:
            return SlotSnapshot(is_playing=False, position_ms=0)
        position = await self._adapter.get_position_ms()
        self._set_state(last_known_position_ms=position)
        return SlotSnapshot(is_playing=True, position_ms=position)

    def mark_pending_resume(self, position_ms: int) -> None:
        self._set_state(pending_resume=PendingResume(position_ms))

    def clear_pending_resume(self) -> None:
        if self._state.pending_resume is not None:
            self._set_state(pending_resume=None)

    async def suspend_for_interrupt(self) -> None:
        """Pause the engine for a host interruption without a user pause."""
        if self._adapter is not None:
            await self._adapter.pause()

    async def resume_pending(self) -> bool:
        """Restore the pending resume position and play; clears it once."""
        pending = self._state.pending_resume
        if pending is None:
            return False
        self._set_state(pending_resume=None)
        adapter = self._adapter
        if adapter is None or adapter.is_disposed:
            return False
        position = await adapter.seek_to(pending.position_ms)
        await adapter.play()
        self._set_state(transport="playing", last_known_position_ms=position)
        logger.info(
            "Resumed at %d ms after interruption",
            position,
            extra={"slot_id": self.slot_id},
        )
        return True

    async def record_position(self) -> int:
        if self._adapter is None:
            return self._state.last_known_position_ms
        position = await self._adapter.get_position_ms()
        self._set_state(last_known_position_ms=position)
        return position

    async def restore_position_if_regressed(self) -> bool:
        """Seek back to the recorded position if the engine fell behind it."""
        adapter = self._adapter
        if adapter is None or not self.is_playing:
            return False
        recorded = self._state.last_known_position_ms
        if await adapter.get_position_ms() >= recorded:
            return False
        await adapter.seek_to(recorded)
        logger.info(
            "Restored position %d ms after resume",
            recorded,
            extra={"slot_id": self.slot_id},
        )
        return True

    async def poll_progress(self) -> int | None:
        """Return progress percent for the ticker, or None to skip this slot."""
        adapter = self._adapter
        if adapter is None or self._state.transport not in {"playing", "paused"}:
            return None
        duration = await adapter.get_duration_ms()
        if duration <= 0:
            return None
        position = await adapter.get_position_ms()
        self._set_state(last_known_position_ms=position, duration_ms=duration)
        return round(position / duration * 100)

    async def dispose(self) -> None:
        async with self._swap_lock:
            adapter = self._adapter
            self._adapter = None
            if adapter is not None:
                await adapter.dispose()
        self._set_state(transport="idle", pending_resume=None)

    def render(self) -> None:
        """Push every label and indicator for this slot to the surface."""
        state = self._state
        slot_id = state.slot_id
        self._surface.set_transport_label(slot_id, TRANSPORT_LABELS[state.transport])
        self._surface.set_loop_indicator(slot_id, state.loop_enabled)
        self._surface.set_device_label(
            slot_id, self._device_router.display_name(state.selected_device)
        )
        self._surface.set_source_label(
            slot_id, state.media_locator or NO_SOURCE_LABEL
        )

    async def _handle_adapter_event(
        self, adapter: PlaybackEngineAdapter, event: EngineEvent
    ) -> None:
        if adapter is not self._adapter:
            logger.debug(
                "Ignoring %s from superseded adapter",
                type(event).__name__,
                extra={"slot_id": self.slot_id},
            )
            return
        if isinstance(event, Prepared):
            await self._on_prepared(adapter, event)
        elif isinstance(event, Completed):
            await self._on_completed(adapter)
        elif isinstance(event, Failed):
            self._on_failed(event)

    async def _on_prepared(
        self, adapter: PlaybackEngineAdapter, event: Prepared
    ) -> None:
        await self._apply_selected_device(adapter)
        await adapter.play()
        self._set_state(
            transport="playing",
            duration_ms=max(0, event.duration_ms),
            last_known_position_ms=0,
        )
        self._surface.set_progress(self.slot_id, 0)
        logger.info("Playback started", extra={"slot_id": self.slot_id})

    async def _on_completed(self, adapter: PlaybackEngineAdapter) -> None:
        if self._state.loop_enabled:
            await self._apply_selected_device(adapter)
            await adapter.seek_to(0)
            await adapter.play()
            self._set_state(transport="playing", last_known_position_ms=0)
            self._surface.set_progress(self.slot_id, 0)
            logger.debug("Loop restart", extra={"slot_id": self.slot_id})
            return
        self._set_state(
            transport="completed", last_known_position_ms=self._state.duration_ms
        )
        logger.info("Playback completed", extra={"slot_id": self.slot_id})

    def _on_failed(self, event: Failed) -> None:
        self._set_state(
            transport="error",
            error=format_user_error(
                what_failed=f"Player {self.slot_id} could not play the media.",
                likely_cause="Unsupported format, unreadable file, or engine failure.",
                next_step="Pick another file or check the playback engine setup.",
                detail=f"code {event.code}: {event.message}"
                if event.message
                else f"code {event.code}",
            ),
        )
        logger.warning(
            "Playback error: %s",
            event.message or event.code,
            extra={"slot_id": self.slot_id, "code": event.code},
        )

    async def _apply_selected_device(self, adapter: PlaybackEngineAdapter) -> None:
        device = self._state.selected_device
        if device is not None:
            await self._device_router.apply(adapter, device)

    def _set_state(self, **changes: object) -> None:
        previous = self._state.transport
        self._state = replace(self._state, **changes)  # type: ignore[arg-type]
        self.render()
        if self._state.transport != previous and self._on_transport_changed:
            self._on_transport_changed(self.slot_id)
