"""Textual TUI app hosting two independent player slots."""

from __future__ import annotations

import logging
from pathlib import Path

from textual.app import App, ComposeResult
from textual.containers import Horizontal
from textual.events import AppBlur, AppFocus
from textual.screen import ModalScreen
from textual.widgets import Footer, Header

from .events import SeekDragFinished, SeekDragStarted, SeekRequested, SlotCommand
from .media_formats import MediaKind
from .runtime_config import BackendName, RuntimeConfig
from .services.device_router import (
    DeviceCategory,
    DeviceEnumerator,
    OutputDevice,
    StaticDeviceEnumerator,
    VLCDeviceEnumerator,
)
from .services.dual_player import SLOT_IDS, DualPlayerService
from .services.fake_engine import FakePlaybackEngine
from .services.playback_engine import EngineFactory, PlaybackEngine
from .services.vlc_engine import VLCPlaybackEngine
from .ui.modals.device_picker import DevicePickerModal
from .ui.modals.file_tree_picker import ModalMediaPicker
from .ui.modals.notice import NoticeModal
from .ui.slot_panel import SlotPanel

logger = logging.getLogger(__name__)

FAKE_DEVICES = (
    OutputDevice("fake-speaker", "Built-in speaker", DeviceCategory.BUILTIN_SPEAKER),
    OutputDevice("fake-headphones", "Wired headphones", DeviceCategory.WIRED_HEADSET),
    OutputDevice("fake-bluetooth", "Bluetooth headset", DeviceCategory.BLUETOOTH),
)


class DuoPlayerApp(App):
    """Two-slot player; also the presentation surface for the service."""

    TITLE = "duo-player"
    CSS = """
    Screen {
        layout: vertical;
    }

    #slots {
        height: 1fr;
    }

    SlotPanel {
        width: 1fr;
    }

    ModalScreen {
        align: center middle;
    }

    #modal-body {
        padding: 1 2;
        border: solid white;
        width: 60%;
        height: auto;
        max-height: 80%;
    }

    #file-tree-options, #device-options {
        height: auto;
        max-height: 20;
    }
    """
    BINDINGS = [
        ("escape", "dismiss_modal", "Dismiss"),
        ("1", "open_source(1)", "Open 1"),
        ("a", "play_pause(1)", "Play 1"),
        ("s", "toggle_loop(1)", "Loop 1"),
        ("d", "choose_device(1)", "Device 1"),
        ("2", "open_source(2)", "Open 2"),
        ("j", "play_pause(2)", "Play 2"),
        ("k", "toggle_loop(2)", "Loop 2"),
        ("l", "choose_device(2)", "Device 2"),
        ("q", "quit", "Quit"),
    ]

    def __init__(
        self,
        *,
        config: RuntimeConfig | None = None,
        auto_init: bool = True,
        start_dir: Path | None = None,
    ) -> None:
        super().__init__()
        self.config = config or RuntimeConfig()
        self.backend_name: BackendName = self.config.backend
        self.service: DualPlayerService | None = None
        self.startup_failed = False
        self.panels = {
            slot_id: SlotPanel(slot_id, id=f"slot-{slot_id}") for slot_id in SLOT_IDS
        }
        self._auto_init = auto_init
        self._picker = ModalMediaPicker(self, start_dir=start_dir or Path.cwd())
        self._reported_errors: dict[int, str | None] = {}

    def compose(self) -> ComposeResult:
        yield Header()
        yield Horizontal(*self.panels.values(), id="slots")
        yield Footer()

    def on_mount(self) -> None:
        if self._auto_init:
            self._initialize()

    def _initialize(self) -> None:
        try:
            backend_name = self.config.backend
            try:
                engine_factory, enumerator = _build_backend(backend_name)
            except Exception as exc:
                if backend_name == "fake":
                    raise
                logger.exception("Failed to start backend %s: %s", backend_name, exc)
                backend_name = "fake"
                engine_factory, enumerator = _build_backend(backend_name)
                self.push_screen(
                    NoticeModal(
                        "VLC backend unavailable; using fake backend.",
                        "Cause: VLC/libVLC runtime is not available.\n"
                        "Next step: install VLC/libVLC, then restart with "
                        "--backend vlc.",
                    )
                )
            self.backend_name = backend_name
            self.sub_title = f"backend: {backend_name}"
            self.service = DualPlayerService(
                engine_factory=engine_factory,
                device_enumerator=enumerator,
                surface=self,
                config=self.config,
            )
            self.service.start()
        except Exception as exc:
            logger.exception("Failed to initialize app: %s", exc)
            self.startup_failed = True
            self.push_screen(
                NoticeModal(
                    "Failed to initialize duo-player.",
                    "Likely cause: playback backend startup failure.\n"
                    "Next step: re-run with --verbose and review the log file.",
                )
            )

    async def on_unmount(self) -> None:
        if self.service is not None:
            await self.service.on_destroy()

    async def on_app_blur(self, event: AppBlur) -> None:
        del event
        if self.service is not None:
            await self.service.on_pause()

    async def on_app_focus(self, event: AppFocus) -> None:
        del event
        if self.service is not None:
            await self.service.on_resume()

    # Presentation surface

    def set_progress(self, slot_id: int, percent: int) -> None:
        self.panels[slot_id].set_progress(percent)

    def set_transport_label(self, slot_id: int, text: str) -> None:
        self.panels[slot_id].set_transport_label(text)
        self._report_slot_error(slot_id)

    def set_loop_indicator(self, slot_id: int, on: bool) -> None:
        self.panels[slot_id].set_loop_indicator(on)

    def set_device_label(self, slot_id: int, text: str) -> None:
        self.panels[slot_id].set_device_label(text)

    def set_source_label(self, slot_id: int, text: str) -> None:
        self.panels[slot_id].set_source_label(text)

    # Actions

    def action_dismiss_modal(self) -> None:
        if isinstance(self.screen, ModalScreen):
            self.screen.dismiss(None)

    def action_open_source(self, slot_id: int) -> None:
        self.run_worker(self._change_source(slot_id), group="source-change")

    async def action_play_pause(self, slot_id: int) -> None:
        if self.service is not None:
            await self.service.toggle_play_pause(slot_id)

    async def action_toggle_loop(self, slot_id: int) -> None:
        if self.service is not None:
            await self.service.toggle_loop(slot_id)

    def action_choose_device(self, slot_id: int) -> None:
        self.run_worker(self._choose_device(slot_id), group="device-picker")

    async def action_quit(self) -> None:
        self.exit()

    # Widget messages

    async def on_slot_command(self, message: SlotCommand) -> None:
        message.stop()
        if message.action == "open":
            self.action_open_source(message.slot_id)
        elif message.action == "toggle_play":
            await self.action_play_pause(message.slot_id)
        elif message.action == "toggle_loop":
            await self.action_toggle_loop(message.slot_id)
        elif message.action == "device":
            self.action_choose_device(message.slot_id)

    def on_seek_drag_started(self, message: SeekDragStarted) -> None:
        message.stop()
        if self.service is not None:
            self.service.begin_seek_drag(message.slot_id)

    async def on_seek_requested(self, message: SeekRequested) -> None:
        message.stop()
        if self.service is not None:
            await self.service.seek_from_user(message.slot_id, message.percent)

    def on_seek_drag_finished(self, message: SeekDragFinished) -> None:
        message.stop()
        if self.service is not None:
            self.service.end_seek_drag(message.slot_id)

    async def _change_source(self, slot_id: int) -> None:
        service = self.service
        if service is None:
            return
        if service.lifecycle.busy:
            logger.debug("Source change already open", extra={"slot_id": slot_id})
            return
        await service.request_source_change(slot_id, self._picker)

    async def _choose_device(self, slot_id: int) -> None:
        service = self.service
        if service is None:
            return
        devices = await service.list_output_devices()
        device = await self.push_screen_wait(DevicePickerModal(slot_id, devices))
        if device is None:
            return
        applied = await service.select_device(slot_id, device)
        if not applied and service.slot(slot_id).adapter is not None:
            self.notify(
                "Output device could not be applied; keeping the current route.",
                title=f"Player {slot_id}",
                severity="warning",
            )

    def _report_slot_error(self, slot_id: int) -> None:
        if self.service is None:
            return
        error = self.service.slot(slot_id).state.error
        if error == self._reported_errors.get(slot_id):
            return
        self._reported_errors[slot_id] = error
        if error:
            self.notify(error, title=f"Player {slot_id}", severity="error")


def _probe_vlc() -> None:
    import vlc

    instance = vlc.Instance()
    if instance is None:
        raise RuntimeError("libVLC could not be initialised")
    instance.release()


def _fake_engine(kind: MediaKind) -> PlaybackEngine:
    return FakePlaybackEngine(
        kind, known_devices=[device.handle for device in FAKE_DEVICES]
    )


def _build_backend(name: BackendName) -> tuple[EngineFactory, DeviceEnumerator]:
    logger.info("Playback backend selected: %s", name)
    if name == "vlc":
        _probe_vlc()
        return VLCPlaybackEngine, VLCDeviceEnumerator()
    return _fake_engine, StaticDeviceEnumerator(FAKE_DEVICES)
