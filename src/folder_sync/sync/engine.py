"""Sync engine that keeps a local folder and an archive consistent.

The ``FolderSync`` ties together ignore rules, path filters, the tree
diff/apply primitives, and the folder watcher.  A sync run:

1. Resolves the local folder (``opts.local_sync_path`` or the archive's
   link).  No folder means nothing to sync, which is not an error.
2. Builds the path filter (allow-list or ``.datignore`` rules).
3. Diffs the source side against the destination side.
4. Drops everything but additions in add-only mode.
5. Applies the changeset to the destination.
6. Notifies listeners with a ``SyncEvent``.

Store errors during the diff abort the run before anything is written;
errors during the apply abort the remaining entries.  Either way the
caller sees one exception and no event is emitted.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Mapping
from typing import Any

from folder_sync.core.async_utils import run_sync
from folder_sync.errors import (
    ArchiveNotWritableError,
    InvalidEncodingError,
    SourceTooLargeError,
)
from folder_sync.safety import assert_safe_path_async
from folder_sync.settings import Settings
from folder_sync.sync.filters import PathFilter, build_filter
from folder_sync.sync.ignore import read_ignore_rules
from folder_sync.sync.models import (
    Archive,
    ChangeEntry,
    LineChange,
    SyncDirection,
    SyncEvent,
    SyncOptions,
)
from folder_sync.sync.paths import normalize_path
from folder_sync.sync.stores import LocalStore, Store
from folder_sync.sync.tree import apply_right, diff_trees, filter_add_only
from folder_sync.sync.watcher import WatchController
from folder_sync.textdiff import (
    diff_lines,
    is_file_content_binary,
    is_file_name_binary,
)

logger = logging.getLogger(__name__)

OptionsArg = SyncOptions | Mapping[str, Any] | None
SyncListener = Callable[[SyncEvent], None]


class FolderSync:
    """Sync archives with their linked local folders.

    Args:
        settings: Settings lookup; supplies the default ignore rules,
            debounce delay, diff size ceiling, and manifest path.
        local_store_factory: Builds the store for a local folder path.
        debounce_delay: Override for the watcher quiet period (seconds).
    """

    def __init__(
        self,
        settings: Settings | None = None,
        *,
        local_store_factory: Callable[[str], Store] = LocalStore,
        debounce_delay: float | None = None,
    ) -> None:
        self.settings = settings or Settings()
        sync_settings = self.settings.config.sync
        self.local_store_factory = local_store_factory
        self.max_diff_size = sync_settings.max_diff_size
        self.manifest_file = sync_settings.manifest_file
        self.watcher = WatchController(
            self.sync_folder_to_archive,
            delay=debounce_delay
            if debounce_delay is not None
            else sync_settings.debounce_seconds,
        )
        self._listeners: list[SyncListener] = []

    # ------------------------------------------------------------------
    # Listeners
    # ------------------------------------------------------------------

    def add_listener(self, listener: SyncListener) -> None:
        """Call *listener* with a ``SyncEvent`` after every applied sync."""
        self._listeners.append(listener)

    def remove_listener(self, listener: SyncListener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    def _emit(self, event: SyncEvent) -> None:
        for listener in list(self._listeners):
            try:
                listener(event)
            except Exception:
                logger.exception("Sync listener %r failed", listener)

    # ------------------------------------------------------------------
    # Directional sync
    # ------------------------------------------------------------------

    async def sync_archive_to_folder(
        self, archive: Archive, opts: OptionsArg = None
    ) -> None:
        """Write archive content into the linked folder.

        Skipped (not queued) while a watch-triggered folder-to-archive
        sync is pending or running for the archive.
        """
        if self.watcher.is_pending(archive.key):
            logger.info(
                "Not syncing %s to folder: folder sync pending", archive.key
            )
            return
        await self._sync(archive, False, SyncOptions.coerce(opts))

    async def sync_folder_to_archive(
        self, archive: Archive, opts: OptionsArg = None
    ) -> None:
        """Write folder content into the archive.

        Raises:
            ArchiveNotWritableError: If the archive is read-only.
        """
        if not archive.writable:
            raise ArchiveNotWritableError()
        await self._sync(archive, True, SyncOptions.coerce(opts))

    async def diff_listing(
        self, archive: Archive, opts: OptionsArg = None
    ) -> list[ChangeEntry] | None:
        """List what a folder-to-archive sync would change.

        Returns:
            The changeset, or ``None`` when no folder is linked.
        """
        options = SyncOptions.coerce(opts)
        local_path = options.local_sync_path or archive.local_sync_path
        if not local_path:
            return None
        local = self.local_store_factory(local_path)
        path_filter = await run_sync(self._build_filter, local, options)
        return await run_sync(
            diff_trees,
            local,
            archive.store,
            shallow=options.shallow,
            compare_content=options.compare_content,
            filter=path_filter,
        )

    async def diff_file(
        self, archive: Archive, filepath: str
    ) -> list[LineChange] | None:
        """Line diff of one file, archive version against folder version.

        A side where the file is missing compares as empty text.

        Returns:
            Line runs, or ``None`` when no folder is linked.

        Raises:
            InvalidEncodingError: If either side is binary.
            SourceTooLargeError: If either side exceeds ``max_diff_size``.
        """
        if not archive.local_sync_path:
            return None
        local = self.local_store_factory(archive.local_sync_path)
        filepath = normalize_path(filepath)

        by_name = is_file_name_binary(filepath)
        if by_name is True:
            raise InvalidEncodingError("Cannot diff a binary file")

        for store in (local, archive.store):
            await run_sync(self._check_diffable, store, filepath, by_name)

        new_text = await run_sync(_read_text, local, filepath)
        old_text = await run_sync(_read_text, archive.store, filepath)
        return diff_lines(old_text, new_text)

    def _check_diffable(
        self, store: Store, filepath: str, by_name: bool | None
    ) -> None:
        st = store.stat(filepath)
        if st is None or not st.is_file():
            return
        # size first, so the sniff never reads more than max_diff_size
        if st.size > self.max_diff_size:
            raise SourceTooLargeError()
        if by_name is None and is_file_content_binary(store, filepath):
            raise InvalidEncodingError("Cannot diff a binary file")

    # ------------------------------------------------------------------
    # Linking
    # ------------------------------------------------------------------

    async def merge_archive_and_folder(
        self, archive: Archive, local_sync_path: str
    ) -> None:
        """Merge an archive into a folder, folder files taking precedence.

        1. Copy the archive manifest into the folder.
        2. Copy every archive file the folder lacks (add-only).
        3. Sync the folder back into the archive.
        """
        await self._sync(
            archive,
            False,
            SyncOptions(
                local_sync_path=local_sync_path, paths=(self.manifest_file,)
            ),
        )
        await self._sync(
            archive,
            False,
            SyncOptions(
                local_sync_path=local_sync_path, shallow=False, add_only=True
            ),
        )
        await self._sync(
            archive,
            True,
            SyncOptions(local_sync_path=local_sync_path, shallow=False),
        )

    async def link_folder(self, archive: Archive, local_sync_path: str) -> None:
        """Link *archive* to a folder and start watching it.

        Raises:
            ProtectedPathError, NotFoundError, NotAFolderError: If the
                folder fails validation.  Nothing is written in that case.
            ArchiveNotWritableError: If the archive is read-only.
        """
        await assert_safe_path_async(local_sync_path)
        if not archive.writable:
            raise ArchiveNotWritableError()
        if archive.local_sync_path != local_sync_path:
            await self.merge_archive_and_folder(archive, local_sync_path)
        archive.local_sync_path = local_sync_path
        self.configure_folder_to_archive_watcher(archive)

    def unlink_folder(self, archive: Archive) -> None:
        """Stop watching and forget the archive's folder."""
        self.watcher.detach(archive.key)
        archive.local_sync_path = None

    def configure_folder_to_archive_watcher(self, archive: Archive) -> None:
        """(Re)attach the folder watcher to match the archive's link."""
        logger.debug(
            "configure watcher for %s: %s", archive.key, archive.local_sync_path
        )
        self.watcher.detach(archive.key)
        if archive.local_sync_path:
            store = self.local_store_factory(archive.local_sync_path)
            self.watcher.attach(archive, store)

    async def close(self) -> None:
        """Stop all watchers and wait for running watch syncs."""
        await self.watcher.close()

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    def _build_filter(self, local: Store, options: SyncOptions) -> PathFilter:
        return build_filter(
            options, lambda: read_ignore_rules(local, self.settings)
        )

    async def _sync(
        self, archive: Archive, to_archive: bool, options: SyncOptions
    ) -> None:
        local_path = options.local_sync_path or archive.local_sync_path
        if not local_path:
            return
        local = self.local_store_factory(local_path)
        path_filter = await run_sync(self._build_filter, local, options)

        left, right = (local, archive.store) if to_archive else (archive.store, local)
        direction = SyncDirection.ARCHIVE if to_archive else SyncDirection.FOLDER

        changes = await run_sync(
            diff_trees,
            left,
            right,
            shallow=options.shallow,
            compare_content=options.compare_content,
            filter=path_filter,
        )
        if options.add_only:
            changes = filter_add_only(changes)
        logger.debug(
            "syncing to %s (%s): %s",
            direction.value,
            archive.key,
            [f"{c.change.value} {c.path}" for c in changes],
        )

        await run_sync(apply_right, left, right, changes, filter=path_filter)
        self._emit(SyncEvent(archive_key=archive.key, direction=direction))


def _read_text(store: Store, filepath: str) -> str:
    st = store.stat(filepath)
    if st is None or not st.is_file():
        return ""
    return store.read_file(filepath).decode("utf-8", errors="replace")
