"""Process entrypoint for the duo-player TUI.

Parses runtime options, sets up logging, runs `DuoPlayerApp` and maps the
startup outcome to an exit code.
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

from . import __version__
from .app import DuoPlayerApp
from .logging_utils import setup_logging
from .paths import log_dir
from .runtime_config import (
    BACKEND_NAMES,
    DEFAULT_BACKEND,
    TICK_INTERVAL_MAX_S,
    TICK_INTERVAL_MIN_S,
    build_runtime_config,
    resolve_log_level,
)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="duo-player",
        description="Play two media sources side by side, each with its own "
        "transport, loop flag and output device.",
    )
    parser.add_argument(
        "--version", action="version", version=f"%(prog)s {__version__}"
    )
    parser.add_argument("--verbose", action="store_true", help="Enable verbose output")
    parser.add_argument(
        "--quiet", action="store_true", help="Only show warnings and errors"
    )
    parser.add_argument("--log-file", help="Write logs to a file path")
    parser.add_argument(
        "--backend",
        choices=BACKEND_NAMES,
        default=DEFAULT_BACKEND,
        help="Playback backend to use (fake or vlc).",
    )
    parser.add_argument(
        "--tick-interval",
        type=float,
        help=(
            "Seconds between progress updates "
            f"(clamped to {TICK_INTERVAL_MIN_S}-{TICK_INTERVAL_MAX_S})."
        ),
    )
    parser.add_argument(
        "--no-loop",
        action="store_true",
        help="Start both players with looping turned off.",
    )
    parser.add_argument(
        "--keep-playing-during-picker",
        action="store_true",
        help="Do not pause the other player while a file picker is open.",
    )
    return parser


def main(argv: list[str] | None = None) -> int:
    """Run the TUI and translate startup outcome to an exit code."""
    parser = build_parser()
    args = parser.parse_args(argv)
    logger = logging.getLogger(__name__)
    try:
        level = resolve_log_level(verbose=args.verbose, quiet=args.quiet)
        setup_logging(
            log_dir=log_dir(),
            level=level,
            log_file=Path(args.log_file) if args.log_file else None,
            console=False,
        )
        config = build_runtime_config(
            backend=args.backend,
            tick_interval=args.tick_interval,
            no_loop=args.no_loop,
            keep_playing_during_picker=args.keep_playing_during_picker,
        )
        logger.info("Starting duo-player", extra={"backend": config.backend})
        app = DuoPlayerApp(config=config)
        app.run()
        return 1 if app.startup_failed else 0
    except Exception as exc:  # pragma: no cover - top-level safety net
        logger.exception("Fatal startup error: %s", exc)
        print(
            "Startup failed. Verify backend/log configuration and re-run with "
            "--verbose.",
            file=sys.stderr,
        )
        return 1


if __name__ == "__main__":
    raise SystemExit(main())
