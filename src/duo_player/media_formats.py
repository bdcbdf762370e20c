"""Media type classification and picker format helpers."""

from __future__ import annotations

from enum import Enum
from os import PathLike

AUDIO_SUFFIXES = frozenset({"mp3", "wav", "aac", "flac", "m4a", "ogg", "wma"})
"""Suffixes played through the audio-only engine; everything else is video."""

VIDEO_SUFFIXES = frozenset(
    {"3gp", "avi", "flv", "m4v", "mkv", "mov", "mp4", "mpeg", "mpg", "webm", "wmv"}
)
"""Container suffixes the picker lists in addition to the audio set."""

PICKER_SUFFIXES = AUDIO_SUFFIXES | VIDEO_SUFFIXES

ACCEPTED_MEDIA_CATEGORIES = ("video/*", "audio/*", "application/octet-stream")
"""Media categories requested from the source picker."""


class MediaKind(str, Enum):
    """Engine kind a locator is played with."""

    AUDIO = "audio"
    VIDEO = "video"


def locator_suffix(locator: str | PathLike[str]) -> str:
    """Return the lower-cased text after the last dot, or "" when there is none.

    A dot in the first position does not count, so ".mp3" has no suffix.
    """
    text = str(locator)
    dot_index = text.rfind(".")
    if dot_index <= 0:
        return ""
    return text[dot_index + 1 :].lower()


def classify(locator: str | PathLike[str]) -> MediaKind:
    """Classify a locator by suffix.

    Unknown or missing suffixes classify as VIDEO.
    """
    if locator_suffix(locator) in AUDIO_SUFFIXES:
        return MediaKind.AUDIO
    return MediaKind.VIDEO


def is_pickable_media(locator: str | PathLike[str]) -> bool:
    """Return whether the picker should list this file."""
    return locator_suffix(locator) in PICKER_SUFFIXES
