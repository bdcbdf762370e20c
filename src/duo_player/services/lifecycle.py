"""Cross-slot snapshot/restore around a media source picker round-trip.

Picking a new source for one slot interrupts the host. Some hosts suspend
background playback while the picker is up, so the *other* slot is
snapshotted before the picker opens and restored after the result is
processed, whatever happened to the target slot's load.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from pathlib import Path
from typing import Protocol

from duo_player.errors import SourceUnresolved
from duo_player.media_formats import ACCEPTED_MEDIA_CATEGORIES

from .slot_controller import SlotController, SlotSnapshot

logger = logging.getLogger(__name__)


class MediaSourcePicker(Protocol):
    """One-shot picker; returns a locator or None when cancelled."""

    async def pick(self, accepted: Sequence[str]) -> str | None: ...


@dataclass(frozen=True)
class SourceChange:
    """In-flight source change for ``slot_id`` and the sibling snapshot."""

    slot_id: int
    other_slot_id: int
    other_snapshot: SlotSnapshot


def resolve_locator(slot_id: int, result: str | None) -> str:
    """Validate a picker result.

    Raises `SourceUnresolved` for a cancelled or blank result and for a
    plain local path that does not exist. URLs are passed through untouched.
    """
    if result is None:
        raise SourceUnresolved(slot_id, "picker cancelled")
    locator = result.strip()
    if not locator:
        raise SourceUnresolved(slot_id, "empty locator")
    if "://" not in locator and not Path(locator).expanduser().is_file():
        raise SourceUnresolved(slot_id, f"no such file: {locator}")
    return locator


class LifecycleCoordinator:
    """Serializes source changes so only one picker round-trip is pending.

    A change is claimed before the first await in `begin_source_change` and
    released only after the sibling has been restored.
    """

    def __init__(
        self,
        slots: Mapping[int, SlotController],
        *,
        suspend_on_interrupt: bool = True,
    ) -> None:
        if len(slots) != 2:
            raise ValueError("LifecycleCoordinator needs exactly two slots")
        self._slots = dict(slots)
        self._suspend_on_interrupt = suspend_on_interrupt
        self._pending: SourceChange | None = None
        self._claimed_slot: int | None = None

    @property
    def pending(self) -> SourceChange | None:
        return self._pending

    @property
    def busy(self) -> bool:
        """True from the start of `begin` until the sibling is restored."""
        return self._claimed_slot is not None

    def other_slot_id(self, slot_id: int) -> int:
        for candidate in self._slots:
            if candidate != slot_id:
                return candidate
        raise KeyError(slot_id)

    async def begin_source_change(self, slot_id: int) -> SourceChange:
        """Snapshot the sibling of ``slot_id`` before the picker opens."""
        if self._claimed_slot is not None:
            raise RuntimeError(
                f"Source change for slot {self._claimed_slot} already pending"
            )
        if slot_id not in self._slots:
            raise KeyError(slot_id)
        self._claimed_slot = slot_id
        other_id = self.other_slot_id(slot_id)
        other = self._slots[other_id]
        try:
            snapshot = await other.snapshot()
            if snapshot.is_playing:
                other.mark_pending_resume(snapshot.position_ms)
                if self._suspend_on_interrupt:
                    await other.suspend_for_interrupt()
        except BaseException:
            other.clear_pending_resume()
            self._claimed_slot = None
            raise
        change = SourceChange(slot_id, other_id, snapshot)
        self._pending = change
        logger.info(
            "Source change started; sibling %s",
            f"playing at {snapshot.position_ms} ms" if snapshot.is_playing else "idle",
            extra={"slot_id": slot_id, "other_slot_id": other_id},
        )
        return change

    async def complete_source_change(self, slot_id: int, result: str | None) -> bool:
        """Load the picked source (if any) then restore the sibling.

        Returns whether a load was started for ``slot_id``.
        """
        change = self._pending
        if change is None or change.slot_id != slot_id:
            raise RuntimeError(f"No source change pending for slot {slot_id}")
        loaded = False
        try:
            locator = resolve_locator(slot_id, result)
        except SourceUnresolved as exc:
            logger.info("%s", exc, extra={"slot_id": slot_id})
        else:
            await self._slots[slot_id].load_media(locator)
            loaded = True
        finally:
            self._pending = None
            try:
                await self._restore_sibling(change)
            finally:
                self._claimed_slot = None
        return loaded

    async def request_source_change(
        self, slot_id: int, picker: MediaSourcePicker
    ) -> bool:
        """Run the whole snapshot -> pick -> load -> restore round-trip."""
        await self.begin_source_change(slot_id)
        result: str | None = None
        try:
            result = await picker.pick(ACCEPTED_MEDIA_CATEGORIES)
        finally:
            loaded = await self.complete_source_change(slot_id, result)
        return loaded

    async def _restore_sibling(self, change: SourceChange) -> None:
        other = self._slots[change.other_slot_id]
        if not change.other_snapshot.is_playing:
            other.clear_pending_resume()
            return
        if not self._suspend_on_interrupt:
            # Kept playing through the picker; its live position stands.
            other.clear_pending_resume()
            return
        if not await other.resume_pending():
            logger.warning(
                "Sibling could not be resumed",
                extra={"slot_id": change.other_slot_id},
            )
