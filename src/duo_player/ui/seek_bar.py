"""Per-slot seek bar: renders progress and reports user drags."""

from __future__ import annotations

from time import monotonic

from rich.text import Text
from textual.events import Blur, Key, MouseDown, MouseMove, MouseUp
from textual.widget import Widget

from duo_player.events import SeekDragFinished, SeekDragStarted, SeekRequested


class SeekBar(Widget):
    """Progress bar in whole percent with mouse + keyboard seeking.

    A press starts a drag (`SeekDragStarted`), moves emit throttled
    `SeekRequested` messages, and the release emits a final `SeekRequested`
    followed by `SeekDragFinished`. Programmatic `set_percent` calls are
    ignored while the user holds the thumb.
    """

    DEFAULT_CSS = """
    SeekBar {
        height: 1;
    }
    SeekBar:focus {
        background: $boost;
    }
    """

    def __init__(
        self,
        *,
        slot_id: int,
        percent: int = 0,
        key_step: int = 5,
        emit_interval: float = 0.05,
        **kwargs,
    ) -> None:
        super().__init__(**kwargs)
        self.slot_id = slot_id
        self.percent = _clamp_percent(percent)
        self.key_step = key_step
        self.emit_interval = emit_interval
        self._dragging = False
        self._last_emit = 0.0
        self._last_interaction = 0.0
        self.drag_timeout = 0.5
        self._bar_start = 0
        self._bar_length = 0
        self.can_focus = True

    @property
    def is_dragging(self) -> bool:
        return self._dragging

    def set_percent(self, percent: int) -> None:
        self._maybe_end_stale_drag()
        if self._dragging:
            return
        self.percent = _clamp_percent(percent)
        self.refresh()

    def render(self) -> Text:
        width = self.size.width
        value_text = f"{self.percent:>3d}%"
        bar_length = width - len(value_text) - 1
        if bar_length < 1:
            self._bar_start = 0
            self._bar_length = 0
            return Text(value_text[: max(width, 0)], no_wrap=True)
        self._bar_start = 0
        self._bar_length = bar_length
        return Text(f"{self._render_bar(bar_length)} {value_text}", no_wrap=True)

    def on_mouse_down(self, event: MouseDown) -> None:
        if event.button != 1:
            return
        if not self._point_in_bar(event.x):
            return
        self.focus()
        self._dragging = True
        self._last_interaction = monotonic()
        self.capture_mouse()
        self.post_message(SeekDragStarted(self.slot_id))
        self._set_from_x(event.x, is_final=False)
        event.stop()

    def on_mouse_move(self, event: MouseMove) -> None:
        if not self._dragging:
            return
        self._last_interaction = monotonic()
        self._set_from_x(event.x, is_final=False)
        event.stop()

    def on_mouse_up(self, event: MouseUp) -> None:
        if not self._dragging:
            return
        self._last_interaction = monotonic()
        self.release_mouse()
        self._set_from_x(event.x, is_final=True)
        self._finish_drag()
        event.stop()

    def on_blur(self, event: Blur) -> None:
        if not self._dragging:
            return
        self.release_mouse()
        self._finish_drag()
        self.refresh()
        event.stop()

    def on_key(self, event: Key) -> None:
        if event.key not in {"left", "right"}:
            return
        delta = -self.key_step if event.key == "left" else self.key_step
        self._set_percent(self.percent + delta, is_final=True)
        event.stop()

    def _render_bar(self, bar_length: int) -> str:
        if bar_length == 1:
            return "●"
        thumb_index = round(self.percent / 100 * (bar_length - 1))
        thumb_index = max(0, min(thumb_index, bar_length - 1))
        chars = ["-"] * bar_length
        for index in range(thumb_index):
            chars[index] = "="
        chars[thumb_index] = "●"
        return "".join(chars)

    def _point_in_bar(self, x: int) -> bool:
        if self._bar_length <= 0:
            return False
        return self._bar_start <= x < self._bar_start + self._bar_length

    def _set_from_x(self, x: int, *, is_final: bool) -> None:
        if self._bar_length <= 0:
            return
        relative = x - self._bar_start
        fraction = 0.0 if self._bar_length == 1 else relative / (self._bar_length - 1)
        self._set_percent(round(fraction * 100), is_final=is_final)

    def _set_percent(self, percent: int, *, is_final: bool) -> None:
        percent = _clamp_percent(percent)
        self.percent = percent
        now = monotonic()
        if is_final or now - self._last_emit >= self.emit_interval:
            self._last_emit = now
            self.post_message(SeekRequested(self.slot_id, percent, is_final))
        self.refresh()

    def _finish_drag(self) -> None:
        self._dragging = False
        self.post_message(SeekDragFinished(self.slot_id))

    def _maybe_end_stale_drag(self) -> None:
        if not self._dragging or self._last_interaction <= 0:
            return
        if monotonic() - self._last_interaction <= self.drag_timeout:
            return
        self.release_mouse()
        self._finish_drag()


def _clamp_percent(value: int) -> int:
    return max(0, min(int(value), 100))
