"""Shared pytest fixtures for folder-sync tests."""

from __future__ import annotations

from pathlib import Path
from typing import Callable

import pytest

from folder_sync.settings import Settings
from folder_sync.sync import Archive, FolderSync, LocalStore, MemoryStore


class RecordingLocalStore(LocalStore):
    """LocalStore whose watch() records the callback instead of starting
    a watchdog observer, so tests can fire change events by hand."""

    watchers: dict[str, Callable[[str], None]] = {}
    unsubscribed: list[str] = []

    def watch(self, path, on_change):
        key = str(self.root)
        RecordingLocalStore.watchers[key] = on_change

        def unsubscribe():
            RecordingLocalStore.unsubscribed.append(key)
            RecordingLocalStore.watchers.pop(key, None)

        return unsubscribe


def write_tree(root: Path, files: dict[str, str]) -> None:
    """Create *files* (relative path -> text) under *root*."""
    for rel, content in files.items():
        fp = root / rel.lstrip("/")
        fp.parent.mkdir(parents=True, exist_ok=True)
        fp.write_text(content, encoding="utf-8")


def read_tree(root: Path) -> dict[str, str]:
    """Return every file under *root* as ``{"/rel/path": text}``."""
    return {
        "/" + p.relative_to(root).as_posix(): p.read_text(encoding="utf-8")
        for p in sorted(root.rglob("*"))
        if p.is_file()
    }


@pytest.fixture(autouse=True)
def _reset_recording_store():
    RecordingLocalStore.watchers = {}
    RecordingLocalStore.unsubscribed = []
    yield


@pytest.fixture
def settings() -> Settings:
    """Settings with an empty default ignore list."""
    return Settings(default_dat_ignore="")


@pytest.fixture
def folder(tmp_path: Path) -> Path:
    path = tmp_path / "folder"
    path.mkdir()
    return path


@pytest.fixture
def make_archive(folder: Path):
    """Factory for an in-memory archive linked to ``folder``."""

    def _make(
        files: dict[str, str] | None = None,
        writable: bool = True,
        linked: bool = True,
        key: str = "archive-1",
    ) -> Archive:
        return Archive(
            key=key,
            store=MemoryStore(files or {}, writable=writable),
            local_sync_path=str(folder) if linked else None,
        )

    return _make


@pytest.fixture
async def engine(settings: Settings):
    """A FolderSync with a short debounce and recording watchers."""
    fs = FolderSync(
        settings,
        local_store_factory=RecordingLocalStore,
        debounce_delay=0.05,
    )
    yield fs
    await fs.close()
