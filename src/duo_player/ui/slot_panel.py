"""One player slot: source line, seek bar and transport buttons."""

from __future__ import annotations

from textual.app import ComposeResult
from textual.containers import Horizontal
from textual.widget import Widget
from textual.widgets import Static

from .seek_bar import SeekBar
from .text_button import TextButton


class SlotPanel(Widget):
    """Renders everything the presentation surface pushes for one slot."""

    DEFAULT_CSS = """
    SlotPanel {
        height: auto;
        border: solid white;
        padding: 0 1;
        layout: vertical;
    }

    SlotPanel .slot-title {
        height: 1;
        text-style: bold;
    }

    SlotPanel .slot-source {
        height: 1;
        text-wrap: nowrap;
        overflow: hidden;
    }

    SlotPanel .slot-controls {
        height: 1;
        margin-top: 1;
    }
    """

    def __init__(self, slot_id: int, **kwargs) -> None:
        super().__init__(**kwargs)
        self.slot_id = slot_id
        self.title_label = Static(f"Player {slot_id}", classes="slot-title")
        self.source = Static("", classes="slot-source", markup=False)
        self.seek_bar = SeekBar(slot_id=slot_id, id=f"seek-{slot_id}")
        self.open_button = TextButton(
            "OPEN", slot_id=slot_id, action="open", id=f"open-{slot_id}"
        )
        self.play_button = TextButton(
            "PLAY", slot_id=slot_id, action="toggle_play", id=f"play-{slot_id}"
        )
        self.loop_button = TextButton(
            "LOOP", slot_id=slot_id, action="toggle_loop", id=f"loop-{slot_id}"
        )
        self.device_button = TextButton(
            "DEV", slot_id=slot_id, action="device", id=f"device-{slot_id}"
        )

    def compose(self) -> ComposeResult:
        yield self.title_label
        yield self.source
        yield self.seek_bar
        yield Horizontal(
            self.open_button,
            self.play_button,
            self.loop_button,
            self.device_button,
            classes="slot-controls",
        )

    def set_progress(self, percent: int) -> None:
        self.seek_bar.set_percent(percent)

    def set_transport_label(self, text: str) -> None:
        self.play_button.update(text)

    def set_loop_indicator(self, on: bool) -> None:
        self.loop_button.update(f"LOOP {'ON' if on else 'OFF'}")
        self.loop_button.set_class(on, "-on")

    def set_device_label(self, text: str) -> None:
        self.device_button.update(f"DEV {text}")

    def set_source_label(self, text: str) -> None:
        self.source.update(text)
