"""Single-line text button bound to one slot action."""

from __future__ import annotations

from textual.events import Click, Key
from textual.widgets import Static

from duo_player.events import SlotAction, SlotCommand


class TextButton(Static):
    DEFAULT_CSS = """
    .text-button {
        background: $panel;
        color: $text;
        height: 1;
        padding: 0 1;
        margin-right: 1;
        content-align: center middle;
    }

    .text-button:focus {
        background: $boost;
        color: $text;
    }

    .text-button.-on {
        background: $success;
    }
    """

    def __init__(
        self,
        label: str,
        *,
        slot_id: int,
        action: SlotAction,
        classes: str | None = "text-button",
        **kwargs,
    ) -> None:
        super().__init__(label, classes=classes, **kwargs)
        self.slot_id = slot_id
        self.action = action
        self.can_focus = True

    def on_click(self, event: Click) -> None:
        self._emit()
        event.stop()

    def on_key(self, event: Key) -> None:
        if event.key not in {"enter", "space"}:
            return
        self._emit()
        event.stop()

    def _emit(self) -> None:
        self.post_message(SlotCommand(self.slot_id, self.action))
