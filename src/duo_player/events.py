"""UI messages routed from slot widgets to the application.

Service-side state never travels through these; the coordinator renders
into the app through the presentation surface instead.
"""

from __future__ import annotations

from typing import Literal

from textual.message import Message

SlotAction = Literal["open", "toggle_play", "toggle_loop", "device"]


class SlotCommand(Message):
    """A slot control was activated."""

    def __init__(self, slot_id: int, action: SlotAction) -> None:
        super().__init__()
        self.slot_id = slot_id
        self.action = action


class SeekDragStarted(Message):
    """User grabbed a slot's seek bar."""

    def __init__(self, slot_id: int) -> None:
        super().__init__()
        self.slot_id = slot_id


class SeekRequested(Message):
    """User moved a slot's seek bar to ``percent``."""

    def __init__(self, slot_id: int, percent: int, is_final: bool) -> None:
        super().__init__()
        self.slot_id = slot_id
        self.percent = percent
        self.is_final = is_final


class SeekDragFinished(Message):
    """User released a slot's seek bar."""

    def __init__(self, slot_id: int) -> None:
        super().__init__()
        self.slot_id = slot_id
