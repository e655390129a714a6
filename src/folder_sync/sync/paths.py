"""Helpers for the ``/``-rooted posix paths used by every store."""

from __future__ import annotations

import posixpath


def normalize_path(path: str) -> str:
    """Return *path* as a normalised, ``/``-rooted posix path.

    Backslashes are treated as separators.  ``..`` segments can never
    climb above the root.
    """
    path = path.replace("\\", "/")
    return posixpath.normpath("/" + path.lstrip("/"))


def join_path(parent: str, name: str) -> str:
    """Join a child *name* onto a normalised *parent* path."""
    if parent == "/":
        return "/" + name
    return f"{parent}/{name}"


def parent_path(path: str) -> str:
    """Return the parent of a normalised path (``/`` for top-level)."""
    return posixpath.dirname(path) or "/"
