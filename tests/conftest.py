"""Test configuration."""

from __future__ import annotations

import asyncio
import sys
from collections import defaultdict
from pathlib import Path
from typing import Any

import pytest

ROOT = Path(__file__).resolve().parents[1]
SRC = ROOT / "src"
if str(SRC) not in sys.path:
    sys.path.insert(0, str(SRC))

import duo_player.services.device_router as device_router_module  # noqa: E402
import duo_player.ui.modals.file_tree_picker as file_tree_picker_module  # noqa: E402
from duo_player.media_formats import MediaKind  # noqa: E402
from duo_player.services.fake_engine import FakePlaybackEngine  # noqa: E402


class RecordingSurface:
    """Presentation surface that keeps everything pushed to it."""

    def __init__(self) -> None:
        self.progress: dict[int, list[int]] = defaultdict(list)
        self.transport: dict[int, str] = {}
        self.loop: dict[int, bool] = {}
        self.device: dict[int, str] = {}
        self.source: dict[int, str] = {}

    def set_progress(self, slot_id: int, percent: int) -> None:
        self.progress[slot_id].append(percent)

    def set_transport_label(self, slot_id: int, text: str) -> None:
        self.transport[slot_id] = text

    def set_loop_indicator(self, slot_id: int, on: bool) -> None:
        self.loop[slot_id] = on

    def set_device_label(self, slot_id: int, text: str) -> None:
        self.device[slot_id] = text

    def set_source_label(self, slot_id: int, text: str) -> None:
        self.source[slot_id] = text


class EngineRecorder:
    """Engine factory keeping every fake engine it builds, in order."""

    def __init__(self, **engine_kwargs: object) -> None:
        self.engine_kwargs = engine_kwargs
        self.engines: list[FakePlaybackEngine] = []

    def __call__(self, kind: MediaKind) -> FakePlaybackEngine:
        kwargs: dict[str, Any] = dict(self.engine_kwargs)
        engine = FakePlaybackEngine(kind, **kwargs)
        self.engines.append(engine)
        return engine

    @property
    def last(self) -> FakePlaybackEngine:
        return self.engines[-1]


@pytest.fixture(autouse=True)
def run_blocking_inline(monkeypatch: pytest.MonkeyPatch):
    """Run blocking adapters inline in tests to avoid thread hangs in CI/sandbox."""

    async def _inline(func, /, *args, **kwargs):
        return func(*args, **kwargs)

    monkeypatch.setattr(device_router_module, "run_blocking", _inline)
    monkeypatch.setattr(file_tree_picker_module, "run_blocking", _inline)


@pytest.fixture(autouse=True)
def ensure_current_event_loop():
    """Provide a current event loop for sync tests."""
    loop = asyncio.new_event_loop()
    try:
        asyncio.set_event_loop(loop)
        yield
    finally:
        loop.close()
        asyncio.set_event_loop(None)


@pytest.fixture
def surface() -> RecordingSurface:
    return RecordingSurface()


@pytest.fixture
def make_engine_factory():
    """Build engine recorders; preparation only finishes on `complete_prepare`."""

    def _make(**overrides: object) -> EngineRecorder:
        kwargs: dict[str, object] = {
            "auto_prepare": False,
            "tick_interval_ms": 60_000,
            "duration_ms": 200_000,
        }
        kwargs.update(overrides)
        return EngineRecorder(**kwargs)

    return _make


@pytest.fixture
def engine_factory(make_engine_factory) -> EngineRecorder:
    return make_engine_factory()
