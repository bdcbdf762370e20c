"""Tests for the cross-slot snapshot/restore around the source picker."""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable, Sequence

import pytest

from duo_player.errors import SourceUnresolved
from duo_player.media_formats import ACCEPTED_MEDIA_CATEGORIES
from duo_player.services.device_router import DeviceRouter, StaticDeviceEnumerator
from duo_player.services.fake_engine import FakePlaybackEngine
from duo_player.services.lifecycle import (
    LifecycleCoordinator,
    SourceChange,
    resolve_locator,
)
from duo_player.services.slot_controller import PendingResume, SlotController


def _run(coro):
    return asyncio.run(coro)


class _StubPicker:
    def __init__(
        self,
        result: str | None,
        *,
        while_open: Callable[[], Awaitable[None]] | None = None,
        error: Exception | None = None,
    ) -> None:
        self.result = result
        self.while_open = while_open
        self.error = error
        self.accepted: tuple[str, ...] | None = None

    async def pick(self, accepted: Sequence[str]) -> str | None:
        self.accepted = tuple(accepted)
        if self.while_open is not None:
            await self.while_open()
        if self.error is not None:
            raise self.error
        return self.result


def _slots(engine_factory, surface) -> dict[int, SlotController]:
    router = DeviceRouter(StaticDeviceEnumerator([]))
    return {
        slot_id: SlotController(
            slot_id,
            engine_factory=engine_factory,
            device_router=router,
            surface=surface,
        )
        for slot_id in (1, 2)
    }


async def _start_playing(slot: SlotController, engine_factory, position_ms: int):
    await slot.load_media(f"slot{slot.slot_id}.mp3")
    engine = engine_factory.last
    await engine.complete_prepare()
    await engine.seek_to(position_ms)
    return engine


def test_sibling_playing_at_42000_survives_picker_for_idle_slot(
    engine_factory, surface
) -> None:
    async def run() -> None:
        slots = _slots(engine_factory, surface)
        coordinator = LifecycleCoordinator(slots)
        engine1 = await _start_playing(slots[1], engine_factory, 42_000)
        seen_while_open: list[str] = []

        async def while_open() -> None:
            seen_while_open.append(slots[1].state.transport)
            assert slots[1].state.pending_resume is not None
            assert engine1.status == "paused"

        picker = _StubPicker(None, while_open=while_open)
        loaded = await coordinator.request_source_change(2, picker)

        assert loaded is False
        assert slots[2].state.transport == "idle"
        assert slots[2].adapter is None
        assert slots[2].state.pending_resume is None
        assert seen_while_open == ["playing"]
        assert slots[1].state.transport == "playing"
        assert slots[1].state.pending_resume is None
        assert engine1.status == "playing"
        assert await engine1.get_position_ms() == 42_000
        assert coordinator.pending is None
        for slot in slots.values():
            await slot.dispose()

    _run(run())


def test_sibling_is_untouched_when_picker_does_not_suspend(
    engine_factory, surface
) -> None:
    async def run() -> None:
        slots = _slots(engine_factory, surface)
        coordinator = LifecycleCoordinator(slots, suspend_on_interrupt=False)
        engine1 = await _start_playing(slots[1], engine_factory, 42_000)
        calls_before = list(engine1.calls)

        async def while_open() -> None:
            assert engine1.status == "playing"

        await coordinator.request_source_change(
            2, _StubPicker(None, while_open=while_open)
        )
        new_calls = engine1.calls[len(calls_before) :]
        assert new_calls == []
        assert slots[1].state.transport == "playing"
        assert slots[1].state.pending_resume is None
        assert coordinator.busy is False
        for slot in slots.values():
            await slot.dispose()

    _run(run())


def test_sibling_resumes_even_when_target_load_fails(
    engine_factory, surface, tmp_path
) -> None:
    media = tmp_path / "bad.mp3"
    media.write_bytes(b"")

    async def run() -> None:
        slots = _slots(engine_factory, surface)
        coordinator = LifecycleCoordinator(slots)
        engine2 = await _start_playing(slots[2], engine_factory, 90_000)
        loaded = await coordinator.request_source_change(1, _StubPicker(str(media)))
        assert loaded is True
        engine1 = engine_factory.last
        await engine1.fail(3, "unsupported codec")
        assert slots[1].state.transport == "error"
        assert slots[2].state.transport == "playing"
        assert engine2.status == "playing"
        assert await engine2.get_position_ms() == 90_000
        for slot in slots.values():
            await slot.dispose()

    _run(run())


def test_unresolvable_result_aborts_load_and_restores_sibling(
    engine_factory, surface, tmp_path
) -> None:
    async def run() -> None:
        slots = _slots(engine_factory, surface)
        coordinator = LifecycleCoordinator(slots)
        engine2 = await _start_playing(slots[2], engine_factory, 5_000)
        missing = str(tmp_path / "gone.mp3")
        loaded = await coordinator.request_source_change(1, _StubPicker(missing))
        assert loaded is False
        assert slots[1].state.transport == "idle"
        assert slots[1].state.media_locator is None
        assert engine2.status == "playing"
        for slot in slots.values():
            await slot.dispose()

    _run(run())


def test_picker_failure_still_restores_sibling(engine_factory, surface) -> None:
    async def run() -> None:
        slots = _slots(engine_factory, surface)
        coordinator = LifecycleCoordinator(slots)
        engine2 = await _start_playing(slots[2], engine_factory, 7_000)
        picker = _StubPicker(None, error=RuntimeError("picker crashed"))
        with pytest.raises(RuntimeError, match="picker crashed"):
            await coordinator.request_source_change(1, picker)
        assert coordinator.pending is None
        assert engine2.status == "playing"
        assert await engine2.get_position_ms() == 7_000
        for slot in slots.values():
            await slot.dispose()

    _run(run())


def test_picker_receives_accepted_categories(engine_factory, surface) -> None:
    async def run() -> None:
        coordinator = LifecycleCoordinator(_slots(engine_factory, surface))
        picker = _StubPicker(None)
        await coordinator.request_source_change(1, picker)
        assert picker.accepted == ACCEPTED_MEDIA_CATEGORIES

    _run(run())


def test_url_result_loads_without_file_check(engine_factory, surface) -> None:
    async def run() -> None:
        slots = _slots(engine_factory, surface)
        coordinator = LifecycleCoordinator(slots)
        url = "https://example.com/live/stream.ogg"
        assert await coordinator.request_source_change(2, _StubPicker(url)) is True
        assert slots[2].state.media_locator == url
        assert slots[2].state.transport == "preparing"
        await slots[2].dispose()

    _run(run())


def test_only_one_source_change_may_be_pending(engine_factory, surface) -> None:
    async def run() -> None:
        coordinator = LifecycleCoordinator(_slots(engine_factory, surface))
        change = await coordinator.begin_source_change(1)
        assert change.other_slot_id == 2
        assert change.other_snapshot.is_playing is False
        with pytest.raises(RuntimeError, match="already pending"):
            await coordinator.begin_source_change(2)
        with pytest.raises(RuntimeError, match="No source change pending"):
            await coordinator.complete_source_change(2, None)
        assert await coordinator.complete_source_change(1, None) is False
        assert coordinator.pending is None

    _run(run())


def test_coordinator_requires_two_slots(engine_factory, surface) -> None:
    slots = _slots(engine_factory, surface)
    with pytest.raises(ValueError):
        LifecycleCoordinator({1: slots[1]})


def test_resolve_locator_rules(tmp_path) -> None:
    media = tmp_path / "song.mp3"
    media.write_bytes(b"")
    assert resolve_locator(1, f"  {media}  ") == str(media)
    assert resolve_locator(1, "rtsp://camera.local/feed") == "rtsp://camera.local/feed"
    with pytest.raises(SourceUnresolved, match="picker cancelled"):
        resolve_locator(1, None)
    with pytest.raises(SourceUnresolved, match="empty locator"):
        resolve_locator(2, "   ")
    with pytest.raises(SourceUnresolved, match="no such file"):
        resolve_locator(2, str(tmp_path / "missing.mp3"))


class _YieldingPositionEngine(FakePlaybackEngine):
    """Position reads suspend once, like a round-trip to an engine thread."""

    async def get_position_ms(self) -> int:
        await asyncio.sleep(0)
        return await super().get_position_ms()


class _YieldingEngineFactory:
    def __init__(self) -> None:
        self.engines: list[FakePlaybackEngine] = []

    def __call__(self, kind) -> FakePlaybackEngine:
        engine = _YieldingPositionEngine(
            kind, auto_prepare=False, tick_interval_ms=60_000, duration_ms=200_000
        )
        self.engines.append(engine)
        return engine

    @property
    def last(self) -> FakePlaybackEngine:
        return self.engines[-1]


def test_overlapping_source_changes_let_only_the_first_through(surface) -> None:
    factory = _YieldingEngineFactory()

    async def run() -> None:
        slots = _slots(factory, surface)
        coordinator = LifecycleCoordinator(slots)
        engine1 = await _start_playing(slots[1], factory, 42_000)
        engine2 = await _start_playing(slots[2], factory, 7_000)

        first, second = await asyncio.gather(
            coordinator.begin_source_change(1),
            coordinator.begin_source_change(2),
            return_exceptions=True,
        )

        assert isinstance(first, SourceChange)
        assert first.slot_id == 1
        assert isinstance(second, RuntimeError)
        assert "already pending" in str(second)
        assert coordinator.busy is True
        assert slots[1].state.pending_resume is None
        assert engine1.status == "playing"
        assert slots[2].state.pending_resume == PendingResume(7_000)
        assert engine2.status == "paused"

        assert await coordinator.complete_source_change(1, None) is False
        assert coordinator.busy is False
        assert slots[2].state.pending_resume is None
        assert slots[2].state.transport == "playing"
        assert engine2.status == "playing"
        assert await engine2.get_position_ms() == 7_000
        for slot in slots.values():
            await slot.dispose()

    _run(run())


def test_failed_snapshot_releases_the_claim(engine_factory, surface) -> None:
    async def run() -> None:
        slots = _slots(engine_factory, surface)
        coordinator = LifecycleCoordinator(slots)

        async def broken_snapshot():
            raise RuntimeError("engine gone")

        slots[2].snapshot = broken_snapshot  # type: ignore[method-assign]
        with pytest.raises(RuntimeError, match="engine gone"):
            await coordinator.begin_source_change(1)
        assert coordinator.busy is False
        assert coordinator.pending is None
        assert slots[2].state.pending_resume is None

        change = await coordinator.begin_source_change(2)
        assert change.other_slot_id == 1
        assert await coordinator.complete_source_change(2, None) is False
        assert coordinator.busy is False

    _run(run())
