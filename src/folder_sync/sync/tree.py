"""Tree diff and apply primitives.

``diff_trees(left, right)`` produces an ordered changeset describing how
the right store must change to match the left store.
``apply_right(left, right, changes)`` performs those changes on the
right store.  Both operate on any ``Store``.

Changeset ordering: siblings are visited in sorted name order, additions
are emitted parents-first and removals children-first, so applying the
entries in order never writes into a missing folder or removes a
non-empty one.

Shallow diffs report a folder that exists on one side only as a single
entry.  ``apply_right`` copies the whole folder for such an entry; when a
deep diff has already listed the folder's children it only creates the
folder itself.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence

from folder_sync.sync.filters import PathFilter
from folder_sync.sync.models import ChangeEntry, ChangeKind, EntryType
from folder_sync.sync.paths import join_path
from folder_sync.sync.stores import EntryStat, Store

logger = logging.getLogger(__name__)

# Filesystems disagree on mtime resolution (FAT is 2s)
MTIME_TOLERANCE = 2.0


def _include_all(_path: str) -> bool:
    return False


def _probe(path: str, st: EntryStat) -> str:
    """Path as offered to a filter (folders get a trailing slash)."""
    return path + "/" if st.is_dir() else path


# ---------------------------------------------------------------------------
# Diff
# ---------------------------------------------------------------------------


def diff_trees(
    left: Store,
    right: Store,
    *,
    shallow: bool = True,
    compare_content: bool = True,
    filter: PathFilter | None = None,
) -> list[ChangeEntry]:
    """Compute the changes needed to make *right* match *left*.

    Args:
        left: Source store.
        right: Destination store.
        shallow: Report folders that exist on one side only as a single
            entry instead of listing their contents.
        compare_content: Compare bytes of same-size files.  When
            ``False`` same-size files are compared by mtime.
        filter: Exclusion predicate; ``True`` skips the path (and, for
            folders, everything inside it).

    Returns:
        Ordered list of ``ChangeEntry``.

    Raises:
        StoreIOError: If either store fails to list, stat, or read.
    """
    changes: list[ChangeEntry] = []
    _diff_dir(
        left,
        right,
        "/",
        shallow,
        compare_content,
        filter or _include_all,
        changes,
    )
    return changes


def _diff_dir(
    left: Store,
    right: Store,
    path: str,
    shallow: bool,
    compare_content: bool,
    exclude: PathFilter,
    changes: list[ChangeEntry],
) -> None:
    left_names = set(left.readdir(path))
    right_st = right.stat(path)
    right_names = (
        set(right.readdir(path))
        if right_st is not None and right_st.is_dir()
        else set()
    )

    for name in sorted(left_names | right_names):
        child = join_path(path, name)
        lst = left.stat(child) if name in left_names else None
        rst = right.stat(child) if name in right_names else None
        st = lst if lst is not None else rst
        if st is None or exclude(_probe(child, st)):
            continue

        if rst is None:
            _diff_added(left, child, st, shallow, exclude, changes)
        elif lst is None:
            _diff_removed(right, child, rst, shallow, exclude, changes)
        elif lst.is_dir() and rst.is_dir():
            _diff_dir(
                left, right, child, shallow, compare_content, exclude, changes
            )
        elif lst.is_dir() != rst.is_dir():
            changes.append(
                ChangeEntry(change=ChangeKind.MODIFY, type=lst.type, path=child)
            )
            if lst.is_dir() and not shallow:
                _walk_added(left, child, exclude, changes)
        elif _files_differ(left, right, child, lst, rst, compare_content):
            changes.append(
                ChangeEntry(
                    change=ChangeKind.MODIFY, type=EntryType.FILE, path=child
                )
            )


def _diff_added(
    left: Store,
    path: str,
    st: EntryStat,
    shallow: bool,
    exclude: PathFilter,
    changes: list[ChangeEntry],
) -> None:
    changes.append(ChangeEntry(change=ChangeKind.ADD, type=st.type, path=path))
    if st.is_dir() and not shallow:
        _walk_added(left, path, exclude, changes)


def _walk_added(
    left: Store, path: str, exclude: PathFilter, changes: list[ChangeEntry]
) -> None:
    for name in left.readdir(path):
        child = join_path(path, name)
        st = left.stat(child)
        if st is None or exclude(_probe(child, st)):
            continue
        _diff_added(left, child, st, False, exclude, changes)


def _diff_removed(
    right: Store,
    path: str,
    st: EntryStat,
    shallow: bool,
    exclude: PathFilter,
    changes: list[ChangeEntry],
) -> None:
    if st.is_dir() and not shallow:
        for name in right.readdir(path):
            child = join_path(path, name)
            child_st = right.stat(child)
            if child_st is None or exclude(_probe(child, child_st)):
                continue
            _diff_removed(right, child, child_st, False, exclude, changes)
    changes.append(
        ChangeEntry(change=ChangeKind.REMOVE, type=st.type, path=path)
    )


def _files_differ(
    left: Store,
    right: Store,
    path: str,
    lst: EntryStat,
    rst: EntryStat,
    compare_content: bool,
) -> bool:
    if lst.size != rst.size:
        return True
    if compare_content:
        return left.read_file(path) != right.read_file(path)
    return abs(lst.mtime - rst.mtime) >= MTIME_TOLERANCE


def filter_add_only(changes: Sequence[ChangeEntry]) -> list[ChangeEntry]:
    """Keep only ``add`` entries.

    Additions nested under a dropped entry (a folder replacing a file)
    are dropped too, since their parent is never created.
    """
    kept: list[ChangeEntry] = []
    dropped: list[str] = []
    for entry in changes:
        if entry.change != ChangeKind.ADD:
            dropped.append(entry.path + "/")
            continue
        if any(entry.path.startswith(prefix) for prefix in dropped):
            continue
        kept.append(entry)
    return kept


# ---------------------------------------------------------------------------
# Apply
# ---------------------------------------------------------------------------


def apply_right(
    left: Store,
    right: Store,
    changes: Sequence[ChangeEntry],
    *,
    filter: PathFilter | None = None,
) -> None:
    """Apply *changes* to *right*, copying content from *left*.

    Entries are applied in order and the first failure aborts the rest.

    Args:
        left: Source store.
        right: Destination store.
        changes: Changeset produced by ``diff_trees``.
        filter: Exclusion predicate used when a whole folder is copied.

    Raises:
        StoreIOError: On the first failing entry.
        ArchiveNotWritableError: If *right* is read-only.
    """
    exclude = filter or _include_all
    listed = {entry.path for entry in changes}

    for entry in changes:
        logger.debug(
            "apply %s %s %s", entry.change.value, entry.type.value, entry.path
        )
        if entry.change == ChangeKind.REMOVE:
            _remove(right, entry.path)
            continue

        if entry.change == ChangeKind.MODIFY:
            existing = right.stat(entry.path)
            if existing is not None and existing.type != entry.type:
                _remove(right, entry.path)

        if entry.type == EntryType.DIR:
            right.mkdir(entry.path)
            prefix = entry.path + "/"
            if not any(p.startswith(prefix) for p in listed):
                _copy_tree(left, right, entry.path, exclude)
        else:
            _copy_file(left, right, entry.path)


def _copy_file(left: Store, right: Store, path: str) -> None:
    st = left.stat(path)
    data = left.read_file(path)
    right.write_file(path, data, mtime=st.mtime if st else None)


def _copy_tree(
    left: Store, right: Store, path: str, exclude: PathFilter
) -> None:
    for name in left.readdir(path):
        child = join_path(path, name)
        st = left.stat(child)
        if st is None or exclude(_probe(child, st)):
            continue
        if st.is_dir():
            right.mkdir(child)
            _copy_tree(left, right, child, exclude)
        else:
            _copy_file(left, right, child)


def _remove(store: Store, path: str) -> None:
    st = store.stat(path)
    if st is None:
        return
    if st.is_dir():
        for name in store.readdir(path):
            _remove(store, join_path(path, name))
        store.rmdir(path)
    else:
        store.unlink(path)
