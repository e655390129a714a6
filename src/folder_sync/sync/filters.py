"""Path filters for the diff stage.

A filter is a predicate over ``/``-rooted paths returning ``True`` when
the path must be *excluded* from the diff and ``False`` when it is
included.  Directories are offered with a trailing ``/`` so that
directory-only ignore rules (``build/``) can match them.

Two mutually exclusive modes:

* **Allow-list** -- ``SyncOptions.paths`` is set.  A path is included when
  it is a target, lies inside a target, or is an ancestor of a target
  (the diff has to walk through ancestors to reach the target).
* **Ignore rules** -- otherwise.  A path is excluded when any rule
  matches.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable

from folder_sync.sync.ignore import compile_ignore_rules
from folder_sync.sync.models import SyncOptions
from folder_sync.sync.paths import normalize_path

PathFilter = Callable[[str], bool]


def make_filter_by_paths(target_paths: Iterable[str]) -> PathFilter:
    """Build an allow-list filter from *target_paths*."""
    targets = [normalize_path(p) for p in target_paths]

    def exclude(filepath: str) -> bool:
        filepath = normalize_path(filepath)
        for target in targets:
            if filepath == target:
                return False
            # inside the target
            if filepath.startswith(target.rstrip("/") + "/"):
                return False
            # a parent folder of the target
            if target.startswith(filepath.rstrip("/") + "/"):
                return False
        return True

    return exclude


def make_filter_by_ignore_rules(rules: list[str]) -> PathFilter:
    """Build a filter that excludes anything matched by *rules*."""
    spec = compile_ignore_rules(rules)

    def exclude(filepath: str) -> bool:
        rel = filepath.lstrip("/")
        if not rel:
            return False
        return spec.match_file(rel)

    return exclude


def build_filter(
    options: SyncOptions, load_rules: Callable[[], list[str]]
) -> PathFilter:
    """Choose the filter mode for *options*.

    Args:
        options: Normalised sync options.
        load_rules: Called only in ignore-rule mode to fetch the rules.
    """
    if options.paths is not None:
        return make_filter_by_paths(options.paths)
    return make_filter_by_ignore_rules(load_rules())
