"""VLC playback engine using python-vlc."""

from __future__ import annotations

import asyncio
import logging
import queue
import threading
from collections.abc import Coroutine
from dataclasses import dataclass
from typing import Any, cast

from duo_player.errors import DeviceUnsupported, EngineError
from duo_player.media_formats import MediaKind
from duo_player.utils.async_utils import run_blocking

from .playback_engine import (
    Completed,
    EngineEvent,
    EngineEventHandler,
    Failed,
    Prepared,
)

logger = logging.getLogger(__name__)

PARSE_TIMEOUT_MS = 10_000
ERROR_ENGINE_UNAVAILABLE = 100
ERROR_OPEN_FAILED = 101
ERROR_PARSE_FAILED = 102
ERROR_PARSE_TIMEOUT = 103
ERROR_PLAYBACK = 104


@dataclass
class _Command:
    name: str
    args: tuple[Any, ...]
    future: asyncio.Future[Any] | None


class VLCPlaybackEngine:
    """Playback engine backed by a dedicated VLC thread.

    The thread owns the libVLC instance and player; the asyncio side only
    talks to it through the command queue. Preparation is libVLC media
    parsing, polled from the thread loop.
    """

    def __init__(self, kind: MediaKind, *, poll_interval_ms: int = 100) -> None:
        self.kind = kind
        self._poll_interval = poll_interval_ms / 1000
        self._handler: EngineEventHandler | None = None
        self._loop: asyncio.AbstractEventLoop | None = None
        self._queue: queue.Queue[_Command] = queue.Queue()
        self._thread: threading.Thread | None = None
        self._stop_event = threading.Event()
        self._disposed = False
        # Thread-owned playback bookkeeping.
        self._pending_media: Any = None
        self._pending_seek_ms: int | None = None
        self._looping = False
        self._end_reported = False
        self._error_reported = False

    def set_event_handler(self, handler: EngineEventHandler) -> None:
        self._handler = handler

    async def load(self, locator: str) -> None:
        await self._start()
        await self._submit("load", locator)

    async def play(self) -> None:
        await self._submit("play")

    async def pause(self) -> None:
        await self._submit("pause")

    async def seek_to(self, position_ms: int) -> None:
        await self._submit("seek_to", position_ms)

    async def get_position_ms(self) -> int:
        return int(await self._submit("get_position_ms"))

    async def get_duration_ms(self) -> int:
        return int(await self._submit("get_duration_ms"))

    async def set_looping(self, enabled: bool) -> None:
        await self._submit("set_looping", enabled)

    async def set_output_device(self, handle: str) -> bool:
        return bool(await self._submit("set_output_device", handle))

    async def dispose(self) -> None:
        self._disposed = True
        thread = self._thread
        if thread is None:
            return
        self._thread = None
        self._stop_event.set()
        self._queue.put(_Command("wake", (), None))
        await run_blocking(thread.join, 2.0)
        if thread.is_alive():
            logger.warning("VLC engine thread did not stop within 2.0 seconds")

    async def _start(self) -> None:
        if self._thread is not None:
            return
        if self._disposed:
            raise RuntimeError("VLC engine already disposed.")
        self._loop = asyncio.get_running_loop()
        ready_future: asyncio.Future[None] = self._loop.create_future()
        self._stop_event.clear()
        self._thread = threading.Thread(
            target=self._thread_main,
            args=(ready_future,),
            name=f"VLCEngineThread-{self.kind.value}",
            daemon=True,
        )
        self._thread.start()
        await ready_future

    async def _submit(self, name: str, *args: Any) -> Any:
        if self._loop is None or self._thread is None:
            raise RuntimeError("VLC engine not started.")
        future: asyncio.Future[Any] = self._loop.create_future()
        self._queue.put(_Command(name, args, future))
        return await future

    def _thread_main(self, ready_future: asyncio.Future[None]) -> None:
        try:
            import vlc

            instance = vlc.Instance()
            player = instance.media_player_new()
        except Exception as exc:  # pragma: no cover - depends on VLC install
            self._notify_future_exception(
                ready_future,
                EngineError(
                    ERROR_ENGINE_UNAVAILABLE,
                    "VLC engine unavailable. Ensure VLC/libVLC is installed.",
                ),
            )
            logger.error("VLC engine failed to start: %s", exc)
            return

        self._notify_future_result(ready_future, None)
        while not self._stop_event.is_set():
            try:
                cmd = self._queue.get(timeout=self._poll_interval)
            except queue.Empty:
                cmd = None

            if cmd is not None and cmd.name != "wake":
                try:
                    result = self._handle_command(cmd, instance, player)
                    self._notify_future_result(cmd.future, result)
                except Exception as exc:
                    self._notify_future_exception(cmd.future, exc)

            self._poll_player(player)

        player.stop()
        player.release()

    def _handle_command(self, cmd: _Command, instance: Any, player: Any) -> Any:
        name = cmd.name
        if name == "load":
            (locator,) = cmd.args
            if "://" in locator:
                media = instance.media_new(locator)
            else:
                media = instance.media_new_path(locator)
            if media is None:
                raise EngineError(ERROR_OPEN_FAILED, f"cannot open {locator}")
            if self.kind is MediaKind.AUDIO:
                media.add_option(":no-video")
            player.set_media(media)
            if media.parse_with_options(_parse_flags(), PARSE_TIMEOUT_MS) == -1:
                raise EngineError(ERROR_PARSE_FAILED, f"cannot parse {locator}")
            self._pending_media = media
            self._end_reported = False
            self._error_reported = False
            return None
        if name == "play":
            if _map_state(player) in {"ended", "stopped"}:
                player.stop()
                player.play()
                if self._pending_seek_ms is not None:
                    player.set_time(self._pending_seek_ms)
            else:
                player.play()
            self._pending_seek_ms = None
            self._end_reported = False
            return None
        if name == "pause":
            player.set_pause(1)
            return None
        if name == "seek_to":
            (pos,) = cmd.args
            if _map_state(player) in {"ended", "stopped"}:
                self._pending_seek_ms = int(pos)
            else:
                player.set_time(int(pos))
            return None
        if name == "set_looping":
            (enabled,) = cmd.args
            self._looping = bool(enabled)
            return None
        if name == "set_output_device":
            (handle,) = cmd.args
            known = {device_id for device_id, _ in list_output_devices(player)}
            if handle not in known:
                raise DeviceUnsupported(handle, "not reported by libVLC")
            player.audio_output_device_set(None, handle)
            return True
        if name == "get_position_ms":
            return max(player.get_time(), 0)
        if name == "get_duration_ms":
            length = max(player.get_length(), 0)
            media = player.get_media()
            if length == 0 and media is not None:
                length = max(media.get_duration(), 0)
            return length
        raise ValueError(f"Unknown command {name}")

    def _poll_player(self, player: Any) -> None:
        if self._pending_media is not None:
            parse_state = _map_parse_status(self._pending_media)
            if parse_state == "done":
                duration = max(self._pending_media.get_duration(), 0)
                self._pending_media = None
                self._emit_event(Prepared(duration))
            elif parse_state in {"failed", "skipped"}:
                self._pending_media = None
                self._emit_event(Failed(ERROR_PARSE_FAILED, "media parsing failed"))
            elif parse_state == "timeout":
                self._pending_media = None
                self._emit_event(Failed(ERROR_PARSE_TIMEOUT, "media parsing timed out"))

        state = _map_state(player)
        if state == "ended" and not self._end_reported:
            self._end_reported = True
            if self._looping:
                player.stop()
                player.play()
                self._end_reported = False
            self._emit_event(Completed())
        elif state == "error" and not self._error_reported:
            self._error_reported = True
            self._emit_event(Failed(ERROR_PLAYBACK, "libVLC reported a playback error"))

    def _emit_event(self, event: EngineEvent) -> None:
        if self._disposed or self._handler is None or self._loop is None:
            return
        coro = self._handler(event)
        asyncio.run_coroutine_threadsafe(
            cast(Coroutine[Any, Any, None], coro), self._loop
        )

    def _notify_future_result(
        self, future: asyncio.Future[Any] | None, value: Any
    ) -> None:
        if future is None or self._loop is None:
            return
        self._loop.call_soon_threadsafe(_resolve_future_result, future, value)

    def _notify_future_exception(
        self, future: asyncio.Future[Any] | None, exc: Exception
    ) -> None:
        if future is None or self._loop is None:
            return
        self._loop.call_soon_threadsafe(_resolve_future_exception, future, exc)


def list_output_devices(player: Any) -> list[tuple[str, str]]:
    """Return ``(device_id, description)`` pairs for the player's audio output."""
    import vlc

    devices = player.audio_output_device_enum()
    found: list[tuple[str, str]] = []
    node = devices
    while node:
        item = node.contents
        found.append((_decode(item.device), _decode(item.description)))
        node = item.next
    if devices:
        vlc.libvlc_audio_output_device_list_release(devices)
    return found


def _resolve_future_result(future: asyncio.Future[Any], value: Any) -> None:
    if not future.done():
        future.set_result(value)


def _resolve_future_exception(future: asyncio.Future[Any], exc: Exception) -> None:
    if not future.done():
        future.set_exception(exc)


def _decode(value: Any) -> str:
    if isinstance(value, bytes):
        return value.decode("utf-8", errors="replace")
    return "" if value is None else str(value)


def _parse_flags() -> Any:
    import vlc

    return vlc.MediaParseFlag.local


def _map_parse_status(media: Any) -> str:
    try:
        status = media.get_parsed_status()
    except Exception:
        return "failed"
    return getattr(status, "name", "").lower()


def _map_state(player: Any) -> str:
    try:
        state = player.get_state()
    except Exception:
        return "error"
    name = getattr(state, "name", "").lower()
    if name in {"playing", "paused", "stopped", "ended", "error", "opening"}:
        return name
    return "idle"
