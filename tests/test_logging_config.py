"""Tests for logging configuration and entrypoint wiring."""

from __future__ import annotations

import json
import logging
from pathlib import Path
from types import SimpleNamespace

import duo_player.cli as cli_module
from duo_player.logging_utils import LOG_FILE_NAME, setup_logging


def _flush_root_handlers() -> None:
    for handler in logging.getLogger().handlers:
        flush = getattr(handler, "flush", None)
        if callable(flush):
            flush()


def _restore_root(original_handlers, original_level) -> None:
    root = logging.getLogger()
    for handler in root.handlers:
        if handler not in original_handlers:
            handler.close()
    root.handlers.clear()
    for handler in original_handlers:
        root.addHandler(handler)
    root.setLevel(original_level)


def test_setup_logging_default_path_writes_json_with_slot_context(tmp_path) -> None:
    root = logging.getLogger()
    original_handlers = list(root.handlers)
    original_level = root.level
    try:
        log_path = setup_logging(log_dir=tmp_path, level="INFO", console=False)
        assert log_path == tmp_path / LOG_FILE_NAME
        logging.getLogger("duo_player.test").info(
            "slot-log-line", extra={"slot_id": 2}
        )
        _flush_root_handlers()
        lines = log_path.read_text(encoding="utf-8").splitlines()
        payload = json.loads(lines[-1])
        assert payload["message"] == "slot-log-line"
        assert payload["level"] == "INFO"
        assert payload["logger"] == "duo_player.test"
        assert payload["context"] == {"slot_id": 2}
    finally:
        _restore_root(original_handlers, original_level)


def test_setup_logging_custom_log_file_and_level(tmp_path) -> None:
    root = logging.getLogger()
    original_handlers = list(root.handlers)
    original_level = root.level
    custom_path = tmp_path / "custom" / "player.log"
    try:
        setup_logging(log_dir=tmp_path, level="WARNING", log_file=custom_path)
        logger = logging.getLogger("duo_player.test")
        logger.info("dropped-line")
        logger.warning("kept-line")
        _flush_root_handlers()
        text = custom_path.read_text(encoding="utf-8")
        assert "kept-line" in text
        assert "dropped-line" not in text
        assert not (tmp_path / LOG_FILE_NAME).exists()
    finally:
        _restore_root(original_handlers, original_level)


def test_setup_logging_console_handler_is_optional(tmp_path) -> None:
    root = logging.getLogger()
    original_handlers = list(root.handlers)
    original_level = root.level
    try:
        setup_logging(log_dir=tmp_path, console=False)
        assert len(root.handlers) == 1
        setup_logging(log_dir=tmp_path, console=True)
        assert len(root.handlers) == 2
    finally:
        _restore_root(original_handlers, original_level)


def test_cli_main_passes_effective_level_and_runtime_config(
    monkeypatch, tmp_path
) -> None:
    args = SimpleNamespace(
        verbose=True,
        quiet=True,
        log_file=str(tmp_path / "cli.log"),
        backend="fake",
        tick_interval=9.0,
        no_loop=True,
        keep_playing_during_picker=False,
    )
    captured: dict[str, object] = {}

    class FakeParser:
        def parse_args(self, argv=None):
            return args

    class FakeApp:
        startup_failed = False

        def __init__(self, *, config) -> None:
            captured["config"] = config

        def run(self) -> None:
            captured["ran"] = True

    def fake_setup_logging(
        *, log_dir: Path, level: str, log_file: Path | None, console: bool
    ):
        captured["level"] = level
        captured["log_file"] = log_file
        captured["console"] = console

    monkeypatch.setattr(cli_module, "build_parser", lambda: FakeParser())
    monkeypatch.setattr(cli_module, "setup_logging", fake_setup_logging)
    monkeypatch.setattr(cli_module, "log_dir", lambda: tmp_path / "logs")
    monkeypatch.setattr(cli_module, "DuoPlayerApp", FakeApp)

    rc = cli_module.main()

    assert rc == 0
    assert captured["level"] == "WARNING"
    assert captured["log_file"] == tmp_path / "cli.log"
    assert captured["console"] is False
    assert captured["ran"] is True
    config = captured["config"]
    assert config.backend == "fake"
    assert config.tick_interval_s == 5.0
    assert config.loop_by_default is False
    assert config.suspend_on_interrupt is True


def test_cli_main_reports_startup_failure(monkeypatch, tmp_path) -> None:
    class FailedApp:
        startup_failed = True

        def __init__(self, *, config) -> None:
            del config

        def run(self) -> None:
            return None

    monkeypatch.setattr(cli_module, "setup_logging", lambda **_kwargs: None)
    monkeypatch.setattr(cli_module, "log_dir", lambda: tmp_path / "logs")
    monkeypatch.setattr(cli_module, "DuoPlayerApp", FailedApp)

    assert cli_module.main(["--backend", "fake"]) == 1
