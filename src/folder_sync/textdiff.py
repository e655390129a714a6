"""Text helpers for comparing a single file between folder and archive.

* ``is_file_name_binary`` guesses from the file extension via
  ``mimetypes``; it may be inconclusive (``None``).
* ``is_file_content_binary`` sniffs the first bytes of the file with
  ``charset_normalizer``.
* ``diff_lines`` produces line runs from ``difflib`` opcodes.
"""

from __future__ import annotations

import difflib
import mimetypes
import posixpath

from charset_normalizer import from_bytes

from folder_sync.sync.models import LineChange
from folder_sync.sync.stores import Store

SNIFF_BYTES = 512

# Extensions mimetypes gets wrong or does not know
_TEXT_EXTENSIONS = frozenset(
    {".ts", ".tsx", ".jsx", ".md", ".markdown", ".toml", ".yaml", ".yml", ".vue"}
)
_TEXT_APPLICATION_TYPES = frozenset(
    {
        "application/json",
        "application/javascript",
        "application/xml",
        "application/x-sh",
        "application/x-python-code",
        "application/toml",
        "application/yaml",
    }
)
_BINARY_TOP_LEVEL = ("image/", "audio/", "video/", "font/")
_BINARY_APPLICATION_TYPES = frozenset(
    {
        "application/octet-stream",
        "application/pdf",
        "application/zip",
        "application/gzip",
        "application/x-tar",
        "application/vnd.ms-fontobject",
        "application/wasm",
    }
)


def is_file_name_binary(path: str) -> bool | None:
    """Guess from the extension whether *path* is a binary file.

    Returns:
        ``True`` for binary types, ``False`` for text types and ``None``
        when the extension says nothing either way.
    """
    ext = posixpath.splitext(path)[1].lower()
    if ext in _TEXT_EXTENSIONS:
        return False
    mime, _ = mimetypes.guess_type(path, strict=False)
    if mime is None:
        return None
    if mime.startswith("text/") or mime in _TEXT_APPLICATION_TYPES:
        return False
    if mime.startswith(_BINARY_TOP_LEVEL) or mime in _BINARY_APPLICATION_TYPES:
        return True
    return None


def is_file_content_binary(store: Store, path: str) -> bool:
    """Sniff the start of *path* in *store* for binary content."""
    sample = store.read_file(path)[:SNIFF_BYTES]
    if not sample:
        return False
    if b"\x00" in sample:
        return True
    return from_bytes(sample).best() is None


def diff_lines(old: str, new: str) -> list[LineChange]:
    """Line-level diff of *old* against *new*.

    Unchanged runs come through as-is; a replaced run is reported as the
    removed lines followed by the added lines.
    """
    old_lines = old.splitlines(True)
    new_lines = new.splitlines(True)
    matcher = difflib.SequenceMatcher(None, old_lines, new_lines, autojunk=False)

    changes: list[LineChange] = []
    for tag, i1, i2, j1, j2 in matcher.get_opcodes():
        if tag == "equal":
            changes.append(
                LineChange(value="".join(old_lines[i1:i2]), count=i2 - i1)
            )
            continue
        if tag in ("replace", "delete"):
            changes.append(
                LineChange(
                    value="".join(old_lines[i1:i2]),
                    count=i2 - i1,
                    removed=True,
                )
            )
        if tag in ("replace", "insert"):
            changes.append(
                LineChange(
                    value="".join(new_lines[j1:j2]),
                    count=j2 - j1,
                    added=True,
                )
            )
    return changes


def format_line_changes(changes: list[LineChange]) -> str:
    """Render line runs with ``+``/``-``/`` `` prefixes for display."""
    out: list[str] = []
    for change in changes:
        prefix = "+" if change.added else "-" if change.removed else " "
        for line in change.value.splitlines():
            out.append(f"{prefix} {line}")
    return "\n".join(out)
