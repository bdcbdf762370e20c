"""Error taxonomy shared by engines, adapters and slot coordination.

None of these escape the slot that owns them: engine failures become a slot
transport state, unresolved sources abort the pending load, and rejected
device routes are logged and reported as a failed apply.
"""

from __future__ import annotations


class DuoPlayerError(Exception):
    """Base type for recoverable duo-player failures."""


class EngineError(DuoPlayerError):
    """Decode/prepare/playback failure carrying an engine-specific code."""

    def __init__(self, code: int, message: str = "") -> None:
        self.code = code
        self.message = message
        detail = f": {message}" if message else ""
        super().__init__(f"engine error {code}{detail}")


class SourceUnresolved(DuoPlayerError):
    """Picker returned nothing usable for the requested slot."""

    def __init__(self, slot_id: int, detail: str = "no locator returned") -> None:
        self.slot_id = slot_id
        self.detail = detail
        super().__init__(f"slot {slot_id}: source unresolved ({detail})")


class DeviceUnsupported(DuoPlayerError):
    """Output routing request rejected by the engine."""

    def __init__(self, handle: str, reason: str = "unsupported device") -> None:
        self.handle = handle
        self.reason = reason
        super().__init__(f"device {handle!r} rejected: {reason}")


def format_user_error(
    *, what_failed: str, likely_cause: str, next_step: str, detail: str | None = None
) -> str:
    """Build the multi-line message shown for a slot in the error state."""
    message = f"{what_failed}\nLikely cause: {likely_cause}\nNext step: {next_step}"
    if detail:
        message = f"{message}\nDetails: {detail}"
    return message
