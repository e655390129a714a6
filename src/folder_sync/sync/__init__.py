"""Folder/archive sync engine.

Public API for keeping a local folder and a versioned archive in sync in
either direction.

Modules:

- ``engine``   -- ``FolderSync``: directional syncs, merge, linking.
- ``watcher``  -- ``WatchController``: debounced folder watching.
- ``tree``     -- ``diff_trees`` / ``apply_right`` primitives.
- ``filters``  -- allow-list and ignore-rule path filters.
- ``ignore``   -- ``.datignore`` loading and parsing.
- ``stores``   -- ``Store`` protocol, ``LocalStore``, ``MemoryStore``.
- ``models``   -- ``ChangeEntry``, ``SyncOptions``, ``SyncEvent``, ...

Usage example
-------------
::

    from folder_sync.sync import Archive, FolderSync, LocalStore

    archive = Archive(key="site", store=LocalStore("/srv/archives/site"))
    engine = FolderSync()

    await engine.link_folder(archive, "/home/me/projects/site")
    await engine.sync_archive_to_folder(archive)
    await engine.close()
"""

from .engine import FolderSync
from .models import (
    Archive,
    ChangeEntry,
    ChangeKind,
    EntryType,
    LineChange,
    SyncDirection,
    SyncEvent,
    SyncOptions,
)
from .stores import EntryStat, LocalStore, MemoryStore, Store
from .tree import apply_right, diff_trees, filter_add_only
from .watcher import WatchController, WatchSession

__all__ = [
    "Archive",
    "ChangeEntry",
    "ChangeKind",
    "EntryStat",
    "EntryType",
    "FolderSync",
    "LineChange",
    "LocalStore",
    "MemoryStore",
    "Store",
    "SyncDirection",
    "SyncEvent",
    "SyncOptions",
    "WatchController",
    "WatchSession",
    "apply_right",
    "diff_trees",
    "filter_add_only",
]
