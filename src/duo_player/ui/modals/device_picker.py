"""Modal listing output devices for one slot."""

from __future__ import annotations

from textual.app import ComposeResult
from textual.containers import Horizontal, Vertical
from textual.screen import ModalScreen
from textual.widgets import Button, Label, OptionList
from textual.widgets.option_list import Option

from duo_player.services.device_router import DeviceRouter, OutputDevice


class DevicePickerModal(ModalScreen[OutputDevice | None]):
    """Dismisses with the chosen `OutputDevice`, or None when cancelled."""

    BINDINGS = [
        ("escape", "cancel", "Cancel"),
    ]

    def __init__(self, slot_id: int, devices: list[OutputDevice]) -> None:
        super().__init__()
        self._slot_id = slot_id
        self._devices = list(devices)
        self._list = OptionList(id="device-options")

    def compose(self) -> ComposeResult:
        title = f"Output device for player {self._slot_id}"
        body = (
            "Choose where this player's audio goes."
            if self._devices
            else "No output devices found; the system default stays in use."
        )
        yield Vertical(
            Label(title),
            Label(body),
            self._list,
            Horizontal(Button("Cancel", id="cancel")),
            id="modal-body",
        )

    def on_mount(self) -> None:
        self._list.set_options(
            Option(device_prompt(device), id=str(index))
            for index, device in enumerate(self._devices)
        )
        self._list.focus()

    def on_option_list_option_selected(self, event: OptionList.OptionSelected) -> None:
        index = event.option_index
        if 0 <= index < len(self._devices):
            self.dismiss(self._devices[index])

    def on_button_pressed(self, event: Button.Pressed) -> None:
        if event.button.id == "cancel":
            self.action_cancel()

    def action_cancel(self) -> None:
        self.dismiss(None)


def device_prompt(device: OutputDevice) -> str:
    label = DeviceRouter.display_name(device)
    if device.description:
        return f"{label} ({device.description})"
    return label
