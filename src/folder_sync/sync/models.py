"""Data contracts for the folder/archive sync engine.

Defines the core types shared across the sync modules:

- ``ChangeKind`` / ``EntryType``: what happened to a path, and what it is.
- ``ChangeEntry``: one element of an ordered changeset.
- ``SyncDirection``: which side a sync just wrote to.
- ``SyncOptions``: per-call configuration for a sync or diff.
- ``SyncEvent``: notification delivered to listeners after an apply.
- ``LineChange``: one hunk of a single-file line diff.
- ``Archive``: a remote store together with its linked local folder.

Pydantic models are frozen.  ``Archive`` is a plain dataclass because its
link path changes over its lifetime.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Any

from pydantic import BaseModel

if TYPE_CHECKING:
    from .stores import Store


class ChangeKind(str, Enum):
    """Kind of change a changeset entry describes."""

    ADD = "add"
    MODIFY = "modify"
    REMOVE = "remove"


class EntryType(str, Enum):
    """Filesystem entry type."""

    FILE = "file"
    DIR = "dir"


class SyncDirection(str, Enum):
    """The side that was just written to."""

    ARCHIVE = "archive"
    FOLDER = "folder"


class ChangeEntry(BaseModel):
    """A single change needed to make the right tree match the left.

    Attributes:
        change: add, modify, or remove.
        type: Type of the entry on the side that is being copied from
            (the right side's type for removals).
        path: Normalised ``/``-rooted path.
    """

    change: ChangeKind
    type: EntryType
    path: str

    model_config = {"frozen": True}


class SyncOptions(BaseModel):
    """Per-call sync configuration.

    Attributes:
        shallow: Do not descend into added or removed folders; they are
            reported as a single entry.
        compare_content: Compare file bytes, not just size and mtime.
        paths: Explicit allow-list of paths.  Overrides ignore rules.
        add_only: Keep only ``add`` entries of the computed changeset.
        local_sync_path: Use this folder instead of the archive's link.
    """

    shallow: bool = True
    compare_content: bool = True
    paths: tuple[str, ...] | None = None
    add_only: bool = False
    local_sync_path: str | None = None

    model_config = {"frozen": True}

    @classmethod
    def coerce(
        cls, opts: SyncOptions | Mapping[str, Any] | None = None
    ) -> SyncOptions:
        """Build options from a loosely-typed mapping.

        Flags that are not booleans fall back to their defaults and
        non-string entries in ``paths`` are dropped, so callers passing
        user-supplied dicts never fail validation.
        """
        if opts is None:
            return cls()
        if isinstance(opts, SyncOptions):
            return opts

        values: dict[str, Any] = {}
        for name in ("shallow", "compare_content", "add_only"):
            if isinstance(opts.get(name), bool):
                values[name] = opts[name]
        paths = opts.get("paths")
        if isinstance(paths, (list, tuple)):
            values["paths"] = tuple(p for p in paths if isinstance(p, str))
        local_sync_path = opts.get("local_sync_path")
        if isinstance(local_sync_path, str) and local_sync_path:
            values["local_sync_path"] = local_sync_path
        return cls(**values)


class SyncEvent(BaseModel):
    """Emitted after every successful apply.

    Attributes:
        archive_key: Identity of the archive that was synced.
        direction: The side that was written to.
    """

    archive_key: str
    direction: SyncDirection

    model_config = {"frozen": True}


class LineChange(BaseModel):
    """One run of lines in a single-file diff.

    A run is unchanged when neither ``added`` nor ``removed`` is set.
    """

    value: str
    count: int
    added: bool = False
    removed: bool = False

    model_config = {"frozen": True}


@dataclass
class Archive:
    """A versioned archive and the folder it is linked to (if any)."""

    key: str
    store: Store
    local_sync_path: str | None = None

    @property
    def writable(self) -> bool:
        return bool(getattr(self.store, "writable", False))
