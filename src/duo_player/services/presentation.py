"""Presentation surface contract the coordinator renders slot state into."""

from __future__ import annotations

from typing import Protocol


class PresentationSurface(Protocol):
    """UI sink for per-slot progress, labels and indicators.

    Called only from the UI loop. ``percent`` is an integer in ``[0, 100]``.
    """

    def set_progress(self, slot_id: int, percent: int) -> None: ...

    def set_transport_label(self, slot_id: int, text: str) -> None: ...

    def set_loop_indicator(self, slot_id: int, on: bool) -> None: ...

    def set_device_label(self, slot_id: int, text: str) -> None: ...

    def set_source_label(self, slot_id: int, text: str) -> None: ...
