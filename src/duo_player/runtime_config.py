"""Runtime configuration normalization helpers.

These helpers keep CLI flag interpretation deterministic across entrypoints.
Nothing here is persisted; every launch starts from flags and defaults.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Literal

BackendName = Literal["fake", "vlc"]
BACKEND_NAMES: tuple[BackendName, ...] = ("fake", "vlc")
DEFAULT_BACKEND: BackendName = "vlc"
DEFAULT_TICK_INTERVAL_S = 1.0
TICK_INTERVAL_MIN_S = 0.2
TICK_INTERVAL_MAX_S = 5.0


@dataclass(frozen=True)
class RuntimeConfig:
    """Effective settings for one application run."""

    backend: BackendName = DEFAULT_BACKEND
    tick_interval_s: float = DEFAULT_TICK_INTERVAL_S
    loop_by_default: bool = True
    suspend_on_interrupt: bool = True


def resolve_log_level(*, verbose: bool, quiet: bool) -> str:
    """Resolve effective log level from CLI flags.

    Precedence is deterministic: --quiet overrides --verbose.
    """
    if quiet:
        return "WARNING"
    if verbose:
        return "DEBUG"
    return "INFO"


def normalize_backend_name(value: str | None) -> BackendName:
    """Normalize a backend name, falling back to the default backend."""
    if value is not None:
        normalized = value.strip().lower()
        for name in BACKEND_NAMES:
            if normalized == name:
                return name
    return DEFAULT_BACKEND


def clamp_tick_interval(value: float | None) -> float:
    """Clamp the progress tick interval (seconds)."""
    if value is None:
        return DEFAULT_TICK_INTERVAL_S
    return max(TICK_INTERVAL_MIN_S, min(float(value), TICK_INTERVAL_MAX_S))


def build_runtime_config(
    *,
    backend: str | None = None,
    tick_interval: float | None = None,
    no_loop: bool = False,
    keep_playing_during_picker: bool = False,
) -> RuntimeConfig:
    """Build the effective runtime config from raw CLI values."""
    return RuntimeConfig(
        backend=normalize_backend_name(backend),
        tick_interval_s=clamp_tick_interval(tick_interval),
        loop_by_default=not no_loop,
        suspend_on_interrupt=not keep_playing_during_picker,
    )
