"""Store backends consumed by the diff/apply primitives.

A store is a file tree addressed with ``/``-rooted posix paths.  Two
implementations ship with the package:

- ``LocalStore`` -- a directory on disk.  ``..`` segments cannot climb
  above its root; symlinks inside it are followed.  Supports ``watch()``
  through a ``watchdog`` observer.
- ``MemoryStore`` -- an in-process tree, used as an archive backend and
  in tests.

Both report a missing path from ``stat()`` as ``None`` and surface every
other failure as ``StoreIOError``.  Mutating a non-writable store raises
``ArchiveNotWritableError``.
"""

from __future__ import annotations

import logging
import os
import stat as stat_module
import time
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from pathlib import Path
from typing import Protocol

from watchdog.events import (
    EVENT_TYPE_CREATED,
    EVENT_TYPE_DELETED,
    EVENT_TYPE_MODIFIED,
    EVENT_TYPE_MOVED,
    FileSystemEvent,
    FileSystemEventHandler,
)
from watchdog.observers import Observer

from folder_sync.errors import ArchiveNotWritableError, StoreIOError
from folder_sync.sync.models import EntryType
from folder_sync.sync.paths import join_path, normalize_path, parent_path

logger = logging.getLogger(__name__)

# Event types that indicate the tree changed (opened/closed are noise).
_CHANGE_EVENT_TYPES = frozenset(
    {
        EVENT_TYPE_CREATED,
        EVENT_TYPE_DELETED,
        EVENT_TYPE_MODIFIED,
        EVENT_TYPE_MOVED,
    }
)


@dataclass(frozen=True)
class EntryStat:
    """Metadata for a single store entry."""

    type: EntryType
    size: int = 0
    mtime: float = 0.0

    def is_file(self) -> bool:
        return self.type == EntryType.FILE

    def is_dir(self) -> bool:
        return self.type == EntryType.DIR


class Store(Protocol):
    """Capability interface shared by local folders and archives."""

    writable: bool

    def stat(self, path: str) -> EntryStat | None: ...

    def read_file(self, path: str) -> bytes: ...

    def readdir(self, path: str) -> list[str]: ...

    def write_file(
        self, path: str, data: bytes, mtime: float | None = None
    ) -> None: ...

    def mkdir(self, path: str) -> None: ...

    def unlink(self, path: str) -> None: ...

    def rmdir(self, path: str) -> None: ...


Unsubscribe = Callable[[], None]


# ---------------------------------------------------------------------------
# Local filesystem
# ---------------------------------------------------------------------------


class _ChangeForwarder(FileSystemEventHandler):
    """Forward watchdog events as store-relative paths."""

    def __init__(self, root: Path, on_change: Callable[[str], None]) -> None:
        self._root = root
        self._on_change = on_change

    def on_any_event(self, event: FileSystemEvent) -> None:
        if event.event_type not in _CHANGE_EVENT_TYPES:
            return
        src = Path(os.fsdecode(event.src_path))
        try:
            rel = src.relative_to(self._root).as_posix()
        except ValueError:
            return
        self._on_change(normalize_path(rel))


class LocalStore:
    """A store rooted at a directory on disk.

    Args:
        root: Directory the store is scoped to.
        writable: When ``False`` every mutating call is rejected.
    """

    def __init__(self, root: str | os.PathLike[str], writable: bool = True):
        self.root = Path(root).expanduser().resolve()
        self.writable = writable

    def __repr__(self) -> str:
        return f"LocalStore({str(self.root)!r})"

    def _resolve(self, path: str) -> Path:
        # normalize_path clamps ".." at the root; symlinks are followed
        rel = normalize_path(path).lstrip("/")
        return self.root / rel if rel else self.root

    def _check_writable(self) -> None:
        if not self.writable:
            raise ArchiveNotWritableError()

    def stat(self, path: str) -> EntryStat | None:
        target = self._resolve(path)
        try:
            st = target.stat()
        except (FileNotFoundError, NotADirectoryError):
            return None
        except OSError as exc:
            raise StoreIOError(f"Cannot stat {path}: {exc}") from exc
        if stat_module.S_ISDIR(st.st_mode):
            return EntryStat(EntryType.DIR, 0, st.st_mtime)
        return EntryStat(EntryType.FILE, st.st_size, st.st_mtime)

    def read_file(self, path: str) -> bytes:
        try:
            return self._resolve(path).read_bytes()
        except OSError as exc:
            raise StoreIOError(f"Cannot read {path}: {exc}") from exc

    def readdir(self, path: str) -> list[str]:
        try:
            return sorted(os.listdir(self._resolve(path)))
        except OSError as exc:
            raise StoreIOError(f"Cannot list {path}: {exc}") from exc

    def write_file(
        self, path: str, data: bytes, mtime: float | None = None
    ) -> None:
        self._check_writable()
        target = self._resolve(path)
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_bytes(data)
            if mtime is not None:
                os.utime(target, (mtime, mtime))
        except OSError as exc:
            raise StoreIOError(f"Cannot write {path}: {exc}") from exc

    def mkdir(self, path: str) -> None:
        self._check_writable()
        try:
            self._resolve(path).mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise StoreIOError(f"Cannot create {path}: {exc}") from exc

    def unlink(self, path: str) -> None:
        self._check_writable()
        try:
            self._resolve(path).unlink()
        except OSError as exc:
            raise StoreIOError(f"Cannot delete {path}: {exc}") from exc

    def rmdir(self, path: str) -> None:
        self._check_writable()
        try:
            self._resolve(path).rmdir()
        except OSError as exc:
            raise StoreIOError(f"Cannot delete {path}: {exc}") from exc

    def watch(
        self, path: str, on_change: Callable[[str], None]
    ) -> Unsubscribe:
        """Watch *path* recursively and call *on_change* per changed path.

        The callback runs on the observer thread.

        Returns:
            A callable that stops the observer.
        """
        target = self._resolve(path)
        observer = Observer()
        observer.schedule(
            _ChangeForwarder(self.root, on_change),
            str(target),
            recursive=True,
        )
        observer.start()
        logger.debug("Watching %s", target)

        def unsubscribe() -> None:
            observer.stop()
            observer.join(timeout=10)
            logger.debug("Stopped watching %s", target)

        return unsubscribe


# ---------------------------------------------------------------------------
# In-memory tree
# ---------------------------------------------------------------------------


class MemoryStore:
    """An in-memory store.

    Args:
        files: Initial files, path to content (``str`` is UTF-8 encoded).
        writable: When ``False`` every mutating call is rejected.
    """

    def __init__(
        self,
        files: Mapping[str, bytes | str] | None = None,
        writable: bool = True,
    ) -> None:
        self._files: dict[str, tuple[bytes, float]] = {}
        self._dirs: set[str] = {"/"}
        for path, data in (files or {}).items():
            if isinstance(data, str):
                data = data.encode("utf-8")
            self._put(normalize_path(path), data, time.time())
        self.writable = writable

    def __repr__(self) -> str:
        return f"MemoryStore({len(self._files)} files)"

    def _put(self, path: str, data: bytes, mtime: float) -> None:
        if path in self._dirs:
            raise StoreIOError(f"Is a directory: {path}")
        self._make_dirs(parent_path(path))
        self._files[path] = (data, mtime)

    def _make_dirs(self, path: str) -> None:
        missing: list[str] = []
        while path not in self._dirs:
            if path in self._files:
                raise StoreIOError(f"Not a directory: {path}")
            missing.append(path)
            path = parent_path(path)
        self._dirs.update(missing)

    def _check_writable(self) -> None:
        if not self.writable:
            raise ArchiveNotWritableError()

    def stat(self, path: str) -> EntryStat | None:
        path = normalize_path(path)
        if path in self._dirs:
            return EntryStat(EntryType.DIR)
        if path in self._files:
            data, mtime = self._files[path]
            return EntryStat(EntryType.FILE, len(data), mtime)
        return None

    def read_file(self, path: str) -> bytes:
        path = normalize_path(path)
        if path not in self._files:
            raise StoreIOError(f"No such file: {path}")
        return self._files[path][0]

    def read_text(self, path: str, encoding: str = "utf-8") -> str:
        return self.read_file(path).decode(encoding)

    def readdir(self, path: str) -> list[str]:
        path = normalize_path(path)
        if path not in self._dirs:
            raise StoreIOError(f"No such directory: {path}")
        names = {
            p.rsplit("/", 1)[1]
            for p in (*self._dirs, *self._files)
            if p != "/" and parent_path(p) == path
        }
        return sorted(names)

    def write_file(
        self, path: str, data: bytes, mtime: float | None = None
    ) -> None:
        self._check_writable()
        self._put(
            normalize_path(path),
            data,
            time.time() if mtime is None else mtime,
        )

    def mkdir(self, path: str) -> None:
        self._check_writable()
        self._make_dirs(normalize_path(path))

    def unlink(self, path: str) -> None:
        self._check_writable()
        path = normalize_path(path)
        if path not in self._files:
            raise StoreIOError(f"No such file: {path}")
        del self._files[path]

    def rmdir(self, path: str) -> None:
        self._check_writable()
        path = normalize_path(path)
        if path == "/" or path not in self._dirs:
            raise StoreIOError(f"Cannot remove directory: {path}")
        if self.readdir(path):
            raise StoreIOError(f"Directory not empty: {path}")
        self._dirs.discard(path)

    def files(self) -> dict[str, str]:
        """Return every file as ``{path: utf-8 text}``, sorted by path."""
        return {
            path: data.decode("utf-8", errors="replace")
            for path, (data, _) in sorted(self._files.items())
        }


def walk_files(store: Store, path: str = "/") -> list[str]:
    """Return every file path below *path*, depth-first in sorted order."""
    found: list[str] = []
    for name in store.readdir(path):
        child = join_path(path, name)
        st = store.stat(child)
        if st is None:
            continue
        if st.is_dir():
            found.extend(walk_files(store, child))
        else:
            found.append(child)
    return found
