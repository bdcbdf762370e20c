"""Top-level coordinator owning both playback slots.

`DualPlayerService` routes UI commands to a slot by id, keeps the shared
progress ticker in step with slot transport, runs source changes through
the lifecycle coordinator and consumes the host hooks (pause, resume,
destroy). The two `SlotController` instances share no mutable state.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from os import PathLike

from duo_player.runtime_config import RuntimeConfig

from .device_router import DeviceEnumerator, DeviceRouter, OutputDevice
from .lifecycle import LifecycleCoordinator, MediaSourcePicker
from .playback_engine import EngineFactory
from .presentation import PresentationSurface
from .progress_ticker import ProgressTicker
from .slot_controller import SlotController

logger = logging.getLogger(__name__)

SLOT_IDS = (1, 2)


class DualPlayerService:
    """Owns two slots plus the ticker, router and lifecycle coordinator."""

    def __init__(
        self,
        *,
        engine_factory: EngineFactory,
        device_enumerator: DeviceEnumerator,
        surface: PresentationSurface,
        config: RuntimeConfig | None = None,
    ) -> None:
        config = config or RuntimeConfig()
        self._surface = surface
        self._destroyed = False
        self.device_router = DeviceRouter(device_enumerator)
        self._slots = {
            slot_id: SlotController(
                slot_id,
                engine_factory=engine_factory,
                device_router=self.device_router,
                surface=surface,
                loop_enabled=config.loop_by_default,
                on_transport_changed=self._handle_transport_changed,
            )
            for slot_id in SLOT_IDS
        }
        self.lifecycle = LifecycleCoordinator(
            self._slots, suspend_on_interrupt=config.suspend_on_interrupt
        )
        self.ticker = ProgressTicker(
            list(self._slots.values()), surface, interval_s=config.tick_interval_s
        )

    @property
    def slots(self) -> Mapping[int, SlotController]:
        return self._slots

    def slot(self, slot_id: int) -> SlotController:
        try:
            return self._slots[slot_id]
        except KeyError:
            raise ValueError(f"Unknown slot {slot_id}") from None

    def start(self) -> None:
        """Render the initial state of both slots."""
        for slot in self._slots.values():
            slot.render()
            self._surface.set_progress(slot.slot_id, 0)

    async def load_media(self, slot_id: int, locator: str | PathLike[str]) -> None:
        await self.slot(slot_id).load_media(locator)

    async def toggle_play_pause(self, slot_id: int) -> None:
        await self.slot(slot_id).toggle_play_pause()

    async def toggle_loop(self, slot_id: int) -> None:
        await self.slot(slot_id).toggle_loop()

    async def list_output_devices(self) -> list[OutputDevice]:
        return await self.device_router.list_output_devices()

    async def select_device(self, slot_id: int, device: OutputDevice) -> bool:
        return await self.slot(slot_id).select_device(device)

    async def seek_from_user(self, slot_id: int, percent: float) -> int | None:
        return await self.slot(slot_id).seek_from_user(percent)

    def begin_seek_drag(self, slot_id: int) -> None:
        self.ticker.begin_drag(self.slot(slot_id).slot_id)

    def end_seek_drag(self, slot_id: int) -> None:
        self.ticker.end_drag(slot_id)

    async def request_source_change(
        self, slot_id: int, picker: MediaSourcePicker
    ) -> bool:
        return await self.lifecycle.request_source_change(slot_id, picker)

    async def on_pause(self) -> None:
        """Host lost focus: remember where every slot was."""
        for slot in self._slots.values():
            await slot.record_position()
        logger.debug("Host paused; positions recorded")

    async def on_resume(self) -> None:
        """Host regained focus: undo any position regression.

        Slots with a pending resume are left to the lifecycle coordinator.
        """
        for slot in self._slots.values():
            if slot.state.pending_resume is None:
                await slot.restore_position_if_regressed()

    async def on_destroy(self) -> None:
        """Release both adapters; safe to call more than once."""
        if self._destroyed:
            return
        self._destroyed = True
        await self.ticker.stop()
        for slot in self._slots.values():
            await slot.dispose()
        logger.info("Player slots released")

    def _handle_transport_changed(self, slot_id: int) -> None:
        if self._destroyed:
            return
        logger.debug(
            "Transport now %s",
            self._slots[slot_id].state.transport,
            extra={"slot_id": slot_id},
        )
        self.ticker.sync()
