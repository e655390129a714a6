"""Validation for folders that are about to be linked for sync.

A sync folder may not be one of the user's well-known OS folders (home,
desktop, documents, ...) since syncing would mirror, and potentially
delete, unrelated personal files.  Subfolders of those are fine.

Well-known folders are resolved the XDG way: ``user-dirs.dirs`` entries
when present, otherwise ``~/<Name>``.
"""

from __future__ import annotations

import logging
import os
import re
import sys
from pathlib import Path

from folder_sync.core.async_utils import run_sync
from folder_sync.errors import (
    NotAFolderError,
    NotFoundError,
    ProtectedPathError,
)

logger = logging.getLogger(__name__)

PROTECTED_FOLDER_NAMES = (
    "home",
    "desktop",
    "documents",
    "downloads",
    "music",
    "pictures",
    "videos",
)

# name -> (XDG key, default folder name under home)
_XDG_FOLDERS: dict[str, tuple[str, str]] = {
    "desktop": ("XDG_DESKTOP_DIR", "Desktop"),
    "documents": ("XDG_DOCUMENTS_DIR", "Documents"),
    "downloads": ("XDG_DOWNLOAD_DIR", "Downloads"),
    "music": ("XDG_MUSIC_DIR", "Music"),
    "pictures": ("XDG_PICTURES_DIR", "Pictures"),
    "videos": ("XDG_VIDEOS_DIR", "Movies" if sys.platform == "darwin" else "Videos"),
}

_USER_DIRS_LINE = re.compile(r'^\s*(XDG_\w+_DIR)\s*=\s*"(.*)"\s*$')


def _read_user_dirs(home: Path) -> dict[str, str]:
    config_home = Path(os.environ.get("XDG_CONFIG_HOME") or home / ".config")
    user_dirs = config_home / "user-dirs.dirs"
    if not user_dirs.is_file():
        return {}
    entries: dict[str, str] = {}
    try:
        text = user_dirs.read_text(encoding="utf-8")
    except OSError as exc:
        logger.warning("Cannot read %s: %s", user_dirs, exc)
        return {}
    for line in text.splitlines():
        match = _USER_DIRS_LINE.match(line)
        if match:
            entries[match.group(1)] = match.group(2).replace("$HOME", str(home))
    return entries


def get_os_folder(name: str) -> Path:
    """Return the current user's well-known folder called *name*.

    Raises:
        KeyError: If *name* is not one of ``PROTECTED_FOLDER_NAMES``.
    """
    home = Path.home()
    if name == "home":
        return home
    xdg_key, default = _XDG_FOLDERS[name]
    configured = _read_user_dirs(home).get(xdg_key)
    return Path(configured) if configured else home / default


def _same_path(a: Path, b: Path) -> bool:
    return os.path.normpath(a.expanduser().resolve()) == os.path.normpath(
        b.expanduser().resolve()
    )


def assert_safe_path(path: str | os.PathLike[str]) -> None:
    """Validate a folder that is about to be used as a sync root.

    Raises:
        ProtectedPathError: If *path* is one of the OS folders.
        NotFoundError: If *path* does not exist.
        NotAFolderError: If *path* is not a directory.
    """
    candidate = Path(path)
    for name in PROTECTED_FOLDER_NAMES:
        if _same_path(candidate, get_os_folder(name)):
            raise ProtectedPathError(
                f"This is the OS {name} folder, which is protected. "
                "Please pick another folder or subfolder."
            )

    if not candidate.exists():
        raise NotFoundError(f"Folder not found: {path}")
    if not candidate.is_dir():
        raise NotAFolderError("Invalid target folder: not a folder")


async def assert_safe_path_async(path: str | os.PathLike[str]) -> None:
    """Async wrapper around ``assert_safe_path``."""
    await run_sync(assert_safe_path, path)
