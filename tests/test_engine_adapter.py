"""Tests for the audio/video engine adapters."""

from __future__ import annotations

import asyncio
import logging

import pytest

from duo_player.errors import EngineError
from duo_player.media_formats import MediaKind
from duo_player.services.engine_adapter import (
    AudioEngineAdapter,
    PlaybackEngineAdapter,
    VideoEngineAdapter,
    create_adapter,
)
from duo_player.services.fake_engine import FakePlaybackEngine
from duo_player.services.playback_engine import Completed, EngineEvent, Failed, Prepared


def _run(coro):
    return asyncio.run(coro)


class _Events:
    def __init__(self) -> None:
        self.received: list[tuple[PlaybackEngineAdapter, EngineEvent]] = []

    async def __call__(
        self, adapter: PlaybackEngineAdapter, event: EngineEvent
    ) -> None:
        self.received.append((adapter, event))

    @property
    def events(self) -> list[EngineEvent]:
        return [event for _adapter, event in self.received]


def _engine(kind: MediaKind = MediaKind.AUDIO, **kwargs) -> FakePlaybackEngine:
    kwargs.setdefault("auto_prepare", False)
    kwargs.setdefault("tick_interval_ms", 60_000)
    kwargs.setdefault("duration_ms", 200_000)
    return FakePlaybackEngine(kind, **kwargs)


def test_create_adapter_picks_variant_by_kind() -> None:
    built: list[MediaKind] = []

    def factory(kind: MediaKind) -> FakePlaybackEngine:
        built.append(kind)
        return _engine(kind)

    audio = create_adapter(MediaKind.AUDIO, factory, _Events())
    video = create_adapter(MediaKind.VIDEO, factory, _Events())
    assert isinstance(audio, AudioEngineAdapter)
    assert isinstance(video, VideoEngineAdapter)
    assert built == [MediaKind.AUDIO, MediaKind.VIDEO]


def test_position_and_duration_are_zero_before_prepare() -> None:
    async def run() -> None:
        adapter = AudioEngineAdapter(_engine(), _Events())
        await adapter.load("song.mp3")
        assert await adapter.get_position_ms() == 0
        assert await adapter.get_duration_ms() == 0
        await adapter.dispose()

    _run(run())


def test_prepared_event_is_forwarded_with_adapter() -> None:
    async def run() -> None:
        engine = _engine()
        events = _Events()
        adapter = AudioEngineAdapter(engine, events)
        await adapter.load("song.mp3")
        await engine.complete_prepare()
        assert events.received == [(adapter, Prepared(200_000))]
        assert adapter.is_prepared
        assert await adapter.get_duration_ms() == 200_000
        await adapter.dispose()

    _run(run())


def test_second_load_on_same_adapter_is_rejected() -> None:
    async def run() -> None:
        adapter = AudioEngineAdapter(_engine(), _Events())
        await adapter.load("a.mp3")
        with pytest.raises(RuntimeError, match="already loaded"):
            await adapter.load("b.mp3")
        await adapter.dispose()

    _run(run())


def test_engine_error_on_load_becomes_failed_event() -> None:
    class _BrokenEngine(FakePlaybackEngine):
        async def load(self, locator: str) -> None:
            raise EngineError(101, f"cannot open {locator}")

    async def run() -> None:
        events = _Events()
        adapter = AudioEngineAdapter(_BrokenEngine(auto_prepare=False), events)
        await adapter.load("missing.mp3")
        assert events.events == [Failed(101, "cannot open missing.mp3")]

    _run(run())


def test_audio_play_is_ignored_until_prepared() -> None:
    async def run() -> None:
        engine = _engine()
        adapter = AudioEngineAdapter(engine, _Events())
        await adapter.load("song.mp3")
        await adapter.play()
        assert "play" not in engine.calls
        assert not adapter.is_playing
        await engine.complete_prepare()
        assert "play" not in engine.calls
        await adapter.play()
        await adapter.play()
        assert engine.calls.count("play") == 1
        assert adapter.is_playing
        await adapter.dispose()

    _run(run())


def test_video_play_before_prepare_is_buffered() -> None:
    async def run() -> None:
        engine = _engine(MediaKind.VIDEO)
        adapter = VideoEngineAdapter(engine, _Events())
        await adapter.load("clip.mp4")
        await adapter.play()
        assert "play" not in engine.calls
        await engine.complete_prepare()
        assert engine.calls.count("play") == 1
        assert adapter.is_playing
        assert engine.status == "playing"
        await adapter.dispose()

    _run(run())


def test_video_pause_cancels_buffered_play() -> None:
    async def run() -> None:
        engine = _engine(MediaKind.VIDEO)
        adapter = VideoEngineAdapter(engine, _Events())
        await adapter.load("clip.mp4")
        await adapter.play()
        await adapter.pause()
        await engine.complete_prepare()
        assert "play" not in engine.calls
        await adapter.dispose()

    _run(run())


def test_pause_is_noop_when_not_playing() -> None:
    async def run() -> None:
        engine = _engine()
        adapter = AudioEngineAdapter(engine, _Events())
        await adapter.load("song.mp3")
        await engine.complete_prepare()
        await adapter.pause()
        assert "pause" not in engine.calls
        await adapter.dispose()

    _run(run())


def test_seek_clamps_to_duration_and_returns_target() -> None:
    async def run() -> None:
        engine = _engine()
        adapter = AudioEngineAdapter(engine, _Events())
        await adapter.load("song.mp3")
        await engine.complete_prepare()
        assert await adapter.seek_to(250_000) == 200_000
        assert await adapter.seek_to(-5) == 0
        assert await adapter.seek_to(1_500) == 1_500
        assert engine.calls[-3:] == ["seek_to:200000", "seek_to:0", "seek_to:1500"]
        await adapter.dispose()

    _run(run())


def test_audio_adapter_keeps_native_looping_off() -> None:
    async def run() -> None:
        engine = _engine()
        adapter = AudioEngineAdapter(engine, _Events())
        await adapter.set_looping(True)
        await adapter.load("song.mp3")
        assert engine.looping is False
        await adapter.set_looping(True)
        assert engine.looping is False
        assert adapter.loop_requested is True
        assert "set_looping:True" not in engine.calls
        await adapter.dispose()

    _run(run())


def test_video_adapter_passes_looping_to_engine() -> None:
    async def run() -> None:
        engine = _engine(MediaKind.VIDEO)
        adapter = VideoEngineAdapter(engine, _Events())
        await adapter.set_looping(True)
        await adapter.load("clip.mp4")
        assert engine.looping is True
        await adapter.set_looping(False)
        assert engine.looping is False
        await adapter.dispose()

    _run(run())


def test_rejected_output_device_is_logged_and_reported(caplog) -> None:
    async def run() -> bool:
        engine = _engine(known_devices=["speaker"])
        adapter = AudioEngineAdapter(engine, _Events(), slot_id=2)
        await adapter.load("song.mp3")
        assert await adapter.set_output_device("speaker") is True
        result = await adapter.set_output_device("unplugged")
        assert engine.device == "speaker"
        await adapter.dispose()
        return result

    with caplog.at_level(logging.WARNING):
        assert _run(run()) is False
    assert any(
        "Output device rejected" in record.message
        and getattr(record, "slot_id", None) == 2
        for record in caplog.records
    )


def test_output_device_before_load_is_not_applied() -> None:
    async def run() -> None:
        engine = _engine()
        adapter = AudioEngineAdapter(engine, _Events())
        assert await adapter.set_output_device("speaker") is False
        assert engine.applied_devices == []

    _run(run())


def test_late_prepared_after_dispose_is_dropped() -> None:
    async def run() -> None:
        engine = _engine()
        events = _Events()
        adapter = AudioEngineAdapter(engine, events)
        await adapter.load("song.mp3")
        await adapter.dispose()
        await engine.complete_prepare()
        await engine.fail(7)
        assert events.received == []
        assert not adapter.is_prepared
        assert await adapter.get_position_ms() == 0

    _run(run())


def test_dispose_is_idempotent() -> None:
    async def run() -> None:
        engine = _engine()
        adapter = AudioEngineAdapter(engine, _Events())
        await adapter.load("song.mp3")
        await adapter.dispose()
        await adapter.dispose()
        assert engine.calls.count("dispose") == 1
        assert adapter.is_disposed

    _run(run())


def test_completed_and_failed_clear_playing_flag() -> None:
    async def run() -> None:
        engine = _engine()
        events = _Events()
        adapter = AudioEngineAdapter(engine, events)
        await adapter.load("song.mp3")
        await engine.complete_prepare()
        await adapter.play()
        await engine.finish()
        assert not adapter.is_playing
        assert events.events[-1] == Completed()
        await adapter.play()
        assert adapter.is_playing
        await engine.fail(9, "decoder crashed")
        assert not adapter.is_playing
        assert events.events[-1] == Failed(9, "decoder crashed")
        await adapter.dispose()

    _run(run())
