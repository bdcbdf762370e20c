"""Tree picker modal returning one local audio or video file."""

from __future__ import annotations

import os
from collections.abc import Sequence
from dataclasses import dataclass
from pathlib import Path

from textual.app import App, ComposeResult
from textual.containers import Horizontal, Vertical
from textual.screen import ModalScreen
from textual.widgets import Button, Label, OptionList
from textual.widgets.option_list import Option

from duo_player.media_formats import ACCEPTED_MEDIA_CATEGORIES, is_pickable_media
from duo_player.utils.async_utils import run_blocking


@dataclass(frozen=True)
class TreeEntry:
    path: Path
    label: str
    is_dir: bool


class FileTreePickerModal(ModalScreen[str | None]):
    """Browse directories and dismiss with the chosen file path, or None."""

    BINDINGS = [
        ("escape", "cancel", "Cancel"),
        ("enter", "open_or_choose", "Open/Choose"),
        ("backspace", "up_directory", "Up"),
        ("ctrl+r", "show_roots", "Drives"),
    ]

    def __init__(
        self,
        title: str = "Open media",
        *,
        start_dir: Path | None = None,
        accepted: Sequence[str] = ACCEPTED_MEDIA_CATEGORIES,
    ) -> None:
        super().__init__()
        self._title = title
        self._start_dir = start_dir
        self._accepted = tuple(accepted)
        self._current_dir: Path | None = None
        self._entries: list[TreeEntry] = []
        self._path_label = Label("", id="file-tree-current-path")
        self._hint_label = Label("", id="file-tree-hint")
        self._list = OptionList(id="file-tree-options")

    @property
    def current_dir(self) -> Path | None:
        return self._current_dir

    @property
    def entries(self) -> list[TreeEntry]:
        return list(self._entries)

    def compose(self) -> ComposeResult:
        yield Vertical(
            Label(self._title),
            self._path_label,
            self._hint_label,
            self._list,
            Horizontal(Button("Cancel", id="cancel")),
            id="modal-body",
        )

    async def on_mount(self) -> None:
        self._list.focus()
        start = self._start_dir
        if start is not None and start.is_dir():
            await self._load_dir(start)
        else:
            await self._show_roots()

    async def action_show_roots(self) -> None:
        await self._show_roots()

    async def action_up_directory(self) -> None:
        if self._current_dir is None:
            return
        parent = self._current_dir.parent
        if parent == self._current_dir:
            await self._show_roots()
            return
        await self._load_dir(parent)

    async def action_open_or_choose(self) -> None:
        entry = self._highlighted_entry()
        if entry is None:
            return
        if entry.is_dir:
            await self._load_dir(entry.path)
            return
        self.dismiss(str(entry.path))

    def action_cancel(self) -> None:
        self.dismiss(None)

    async def on_option_list_option_selected(
        self, event: OptionList.OptionSelected
    ) -> None:
        del event
        await self.action_open_or_choose()

    def on_button_pressed(self, event: Button.Pressed) -> None:
        if event.button.id == "cancel":
            self.action_cancel()

    async def _show_roots(self) -> None:
        self._current_dir = None
        self._entries = await run_blocking(_list_roots)
        self._refresh_options()
        self._update_labels()

    async def _load_dir(self, directory: Path) -> None:
        self._current_dir = directory
        self._entries = await run_blocking(_list_directory_entries, directory)
        self._refresh_options()
        self._update_labels()

    def _refresh_options(self) -> None:
        self._list.set_options(
            Option(_entry_prompt(entry), id=str(index))
            for index, entry in enumerate(self._entries)
        )

    def _update_labels(self) -> None:
        location = (
            "Drives / roots" if self._current_dir is None else str(self._current_dir)
        )
        self._path_label.update(f"Location: {location}")
        self._hint_label.update(
            f"Showing {', '.join(self._accepted)} | Enter=open/choose | "
            "Backspace=up | Ctrl+R=drives"
        )

    def _highlighted_entry(self) -> TreeEntry | None:
        index = self._list.highlighted
        if index is None:
            return None
        if not (0 <= index < len(self._entries)):
            return None
        return self._entries[index]


def _entry_prompt(entry: TreeEntry) -> str:
    if entry.is_dir:
        return f"[DIR] {entry.label}"
    return entry.label


def _list_roots() -> list[TreeEntry]:
    roots: list[Path]
    if os.name == "nt":
        roots = [Path(f"{drive}:\\") for drive in "ABCDEFGHIJKLMNOPQRSTUVWXYZ"]
        roots = [root for root in roots if root.exists()]
    else:
        roots = [Path("/")]
    return [
        TreeEntry(path=root, label=_display_name(root, is_dir=True), is_dir=True)
        for root in roots
    ]


def _list_directory_entries(directory: Path) -> list[TreeEntry]:
    """List subdirectories and pickable media files, each sorted by name."""
    entries: list[TreeEntry] = []
    if not directory.is_dir():
        return entries
    parent = directory.parent
    if parent != directory:
        entries.append(TreeEntry(path=parent, label="..", is_dir=True))
    dirs: list[TreeEntry] = []
    files: list[TreeEntry] = []
    try:
        with os.scandir(directory) as listing:
            for item in listing:
                path = Path(item.path)
                if item.is_dir(follow_symlinks=False):
                    label = _display_name(path, is_dir=True)
                    dirs.append(TreeEntry(path=path, label=label, is_dir=True))
                elif item.is_file() and is_pickable_media(path):
                    label = _display_name(path, is_dir=False)
                    files.append(TreeEntry(path=path, label=label, is_dir=False))
    except OSError:
        return entries
    dirs.sort(key=lambda entry: entry.label.lower())
    files.sort(key=lambda entry: entry.label.lower())
    return [*entries, *dirs, *files]


def _display_name(path: Path, *, is_dir: bool) -> str:
    name = path.name or str(path)
    return f"{name}/" if is_dir and name != ".." else name


class ModalMediaPicker:
    """Source picker backed by `FileTreePickerModal`.

    `pick` waits for the modal to be dismissed, so it must run inside a
    Textual worker.
    """

    def __init__(self, app: App, *, start_dir: Path | None = None) -> None:
        self._app = app
        self._start_dir = start_dir

    async def pick(self, accepted: Sequence[str]) -> str | None:
        modal = FileTreePickerModal(start_dir=self._start_dir, accepted=accepted)
        return await self._app.push_screen_wait(modal)
