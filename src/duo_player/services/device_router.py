"""Output device enumeration, labelling and per-adapter routing."""

from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Protocol

from duo_player.utils.async_utils import run_blocking

if TYPE_CHECKING:
    from .engine_adapter import PlaybackEngineAdapter

logger = logging.getLogger(__name__)

DEFAULT_DEVICE_LABEL = "Default"
OTHER_DEVICE_LABEL = "Other device"


class DeviceCategory(str, Enum):
    BUILTIN_SPEAKER = "builtin_speaker"
    WIRED_HEADSET = "wired_headset"
    BLUETOOTH = "bluetooth"
    HDMI = "hdmi"
    USB = "usb"
    OTHER = "other"


DEVICE_LABELS = {
    DeviceCategory.BUILTIN_SPEAKER: "Speaker",
    DeviceCategory.WIRED_HEADSET: "Headphones",
    DeviceCategory.BLUETOOTH: "Bluetooth",
    DeviceCategory.HDMI: "HDMI",
    DeviceCategory.USB: "USB",
}

# First match wins: a bluetooth or USB headset is labelled by its transport.
_CATEGORY_KEYWORDS: tuple[tuple[DeviceCategory, tuple[str, ...]], ...] = (
    (DeviceCategory.HDMI, ("hdmi", "displayport")),
    (DeviceCategory.BLUETOOTH, ("bluez", "bluetooth", "a2dp")),
    (DeviceCategory.USB, ("usb",)),
    (DeviceCategory.WIRED_HEADSET, ("headphone", "headset")),
    (DeviceCategory.BUILTIN_SPEAKER, ("speaker", "built-in", "builtin", "internal")),
)


@dataclass(frozen=True)
class OutputDevice:
    """One audio sink as reported by the enumeration capability."""

    handle: str
    description: str = ""
    category: DeviceCategory = DeviceCategory.OTHER
    is_sink: bool = True


class DeviceEnumerator(Protocol):
    """Blocking query for the live device list; no change notifications."""

    def list_devices(self) -> list[OutputDevice]: ...


class StaticDeviceEnumerator:
    """Fixed device list, used with the fake engine."""

    def __init__(self, devices: Iterable[OutputDevice]) -> None:
        self._devices = tuple(devices)

    def list_devices(self) -> list[OutputDevice]:
        return list(self._devices)


class VLCDeviceEnumerator:
    """Query libVLC's audio output devices with a throwaway player."""

    def list_devices(self) -> list[OutputDevice]:
        import vlc

        from .vlc_engine import list_output_devices

        instance = vlc.Instance()
        player = instance.media_player_new()
        try:
            pairs = list_output_devices(player)
        finally:
            player.release()
            instance.release()
        return [
            OutputDevice(
                handle=device_id,
                description=description,
                category=categorize_device(device_id, description),
            )
            for device_id, description in pairs
            if device_id
        ]


def categorize_device(device_id: str, description: str) -> DeviceCategory:
    """Infer a device category from its id and human description."""
    haystack = f"{device_id} {description}".lower()
    for category, keywords in _CATEGORY_KEYWORDS:
        if any(keyword in haystack for keyword in keywords):
            return category
    return DeviceCategory.OTHER


class DeviceRouter:
    """Lists sinks on demand and applies a chosen sink to an adapter."""

    def __init__(self, enumerator: DeviceEnumerator) -> None:
        self._enumerator = enumerator

    async def list_output_devices(self) -> list[OutputDevice]:
        """Re-query the enumerator and keep output sinks only."""
        try:
            devices = await run_blocking(self._enumerator.list_devices)
        except Exception as exc:
            logger.warning("Output device enumeration failed: %s", exc)
            return []
        return [device for device in devices if device.is_sink]

    @staticmethod
    def display_name(device: OutputDevice | None) -> str:
        if device is None:
            return DEFAULT_DEVICE_LABEL
        return DEVICE_LABELS.get(device.category, OTHER_DEVICE_LABEL)

    async def apply(
        self, adapter: PlaybackEngineAdapter | None, device: OutputDevice
    ) -> bool:
        """Route ``adapter`` output to ``device``; never raises."""
        if adapter is None or adapter.is_disposed:
            return False
        applied = await adapter.set_output_device(device.handle)
        logger.info(
            "Output device %s: %s",
            "applied" if applied else "not applied",
            self.display_name(device),
            extra={"device": device.handle},
        )
        return applied
