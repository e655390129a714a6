"""Ignore-rule loading for folder sync.

Rules come from a ``.datignore`` file at the root of the local folder,
falling back to the ``default_dat_ignore`` setting when the file is
missing or empty.  Rules use gitignore-style glob syntax and are matched
with ``pathspec``:

* A rule with a leading ``/`` is anchored to the folder root.
* Any other rule matches at every depth (it is rewritten to ``**/rule``).
* ``/.git`` and ``/.dat`` are always appended; version-control and
  archive metadata are never synced.

Rules are re-read on every call so edits to ``.datignore`` take effect on
the next sync.
"""

from __future__ import annotations

import logging
import posixpath
from typing import Protocol

from pathspec import GitIgnoreSpec

from folder_sync.errors import StoreIOError
from folder_sync.sync.stores import Store

logger = logging.getLogger(__name__)

IGNORE_FILE_NAME = ".datignore"
ALWAYS_IGNORED = ("/.git", "/.dat")
DEFAULT_IGNORE_SETTING = "default_dat_ignore"


class SettingsReader(Protocol):
    def get(self, key: str) -> str | None: ...


def _normalize_rule(rule: str) -> str:
    trailing = "/" if rule.endswith("/") and rule != "/" else ""
    return posixpath.normpath(rule) + trailing


def parse_ignore_rules(text: str) -> list[str]:
    """Turn raw ignore-file text into an ordered list of rules.

    Args:
        text: Ignore file content, one rule per line.  Blank lines and
            ``#`` comments are skipped.

    Returns:
        Normalised rules, unanchored ones prefixed with ``**/``, followed
        by the always-ignored metadata directories.
    """
    rules: list[str] = []
    for line in text.splitlines():
        rule = line.strip()
        if not rule or rule.startswith("#"):
            continue
        if not rule.startswith("/"):
            rule = "**/" + rule
        rules.append(rule)
    rules.extend(ALWAYS_IGNORED)
    return [_normalize_rule(rule) for rule in rules]


def read_ignore_rules(store: Store, settings: SettingsReader) -> list[str]:
    """Read ``.datignore`` from *store* and parse it.

    A missing or empty rule file is the normal case, not an error; the
    default rule text from *settings* is used instead.
    """
    try:
        raw = store.read_file("/" + IGNORE_FILE_NAME).decode(
            "utf-8", errors="replace"
        )
    except StoreIOError:
        raw = ""
    if not raw.strip():
        logger.debug("No %s found, using default rules", IGNORE_FILE_NAME)
        raw = settings.get(DEFAULT_IGNORE_SETTING) or ""
    return parse_ignore_rules(raw)


def compile_ignore_rules(rules: list[str]) -> GitIgnoreSpec:
    """Compile rules into a gitignore-style matcher."""
    return GitIgnoreSpec.from_lines(rules)
