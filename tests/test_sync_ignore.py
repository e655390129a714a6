"""Tests for sync/ignore.py -- .datignore loading and parsing.

Covers:
- parse_ignore_rules(): anchoring, comments, fixed metadata rules
- read_ignore_rules(): rule file vs default-settings fallback, no caching
- matching semantics through the compiled PathSpec
"""

from __future__ import annotations

import warnings

from folder_sync.settings import Settings
from folder_sync.sync.ignore import (
    ALWAYS_IGNORED,
    compile_ignore_rules,
    parse_ignore_rules,
    read_ignore_rules,
)
from folder_sync.sync.stores import MemoryStore

# ---------------------------------------------------------------------------
# parse_ignore_rules
# ---------------------------------------------------------------------------


class TestParseIgnoreRules:
    """Tests for parse_ignore_rules()."""

    def test_unanchored_rule_gets_recursive_prefix(self):
        assert parse_ignore_rules("*.log")[0] == "**/*.log"

    def test_anchored_rule_is_kept(self):
        assert parse_ignore_rules("/build")[0] == "/build"

    def test_blank_lines_and_comments_skipped(self):
        rules = parse_ignore_rules("\n# a comment\n\nfoo\n")
        assert rules == ["**/foo", *ALWAYS_IGNORED]

    def test_metadata_dirs_always_appended(self):
        """.git and .dat are excluded even with no user rules."""
        assert parse_ignore_rules("") == ["/.git", "/.dat"]

    def test_rules_are_normalized(self):
        rules = parse_ignore_rules("/a/./b\nc/../d")
        assert rules[0] == "/a/b"
        assert rules[1] == "**/d"

    def test_directory_rule_keeps_trailing_slash(self):
        assert parse_ignore_rules("build/")[0] == "**/build/"

    def test_windows_line_endings(self):
        rules = parse_ignore_rules("a\r\nb\r\n")
        assert rules[:2] == ["**/a", "**/b"]


# ---------------------------------------------------------------------------
# read_ignore_rules
# ---------------------------------------------------------------------------


class TestReadIgnoreRules:
    """Tests for read_ignore_rules()."""

    def test_reads_rule_file_from_store(self):
        store = MemoryStore({"/.datignore": "secret.txt\n"})
        rules = read_ignore_rules(store, Settings(default_dat_ignore="x"))
        assert rules == ["**/secret.txt", "/.git", "/.dat"]

    def test_missing_file_uses_default_setting(self):
        store = MemoryStore()
        rules = read_ignore_rules(store, Settings(default_dat_ignore="x\ny"))
        assert rules == ["**/x", "**/y", "/.git", "/.dat"]

    def test_empty_file_uses_default_setting(self):
        store = MemoryStore({"/.datignore": "   \n"})
        rules = read_ignore_rules(store, Settings(default_dat_ignore="x"))
        assert rules[0] == "**/x"

    def test_missing_default_setting_yields_fixed_rules(self):
        class NoSettings:
            def get(self, key):
                return None

        assert read_ignore_rules(MemoryStore(), NoSettings()) == [
            "/.git",
            "/.dat",
        ]

    def test_edits_are_picked_up_on_next_read(self):
        """Rules are never cached between calls."""
        store = MemoryStore({"/.datignore": "a\n"})
        settings = Settings(default_dat_ignore="")
        assert read_ignore_rules(store, settings)[0] == "**/a"
        store.write_file("/.datignore", b"b\n")
        assert read_ignore_rules(store, settings)[0] == "**/b"


# ---------------------------------------------------------------------------
# Matching
# ---------------------------------------------------------------------------


class TestRuleMatching:
    """Matching semantics of the compiled rules."""

    def test_unanchored_rule_matches_at_any_depth(self):
        spec = compile_ignore_rules(parse_ignore_rules("notes.txt"))
        assert spec.match_file("notes.txt")
        assert spec.match_file("a/notes.txt")
        assert spec.match_file("a/b/c/notes.txt")

    def test_anchored_rule_matches_only_at_root(self):
        spec = compile_ignore_rules(parse_ignore_rules("/notes.txt"))
        assert spec.match_file("notes.txt")
        assert not spec.match_file("a/notes.txt")

    def test_star_stays_within_segment(self):
        spec = compile_ignore_rules(parse_ignore_rules("/src/*.tmp"))
        assert spec.match_file("src/x.tmp")
        assert not spec.match_file("src/deep/x.tmp")

    def test_metadata_dirs_match(self):
        spec = compile_ignore_rules(parse_ignore_rules(""))
        assert spec.match_file(".git")
        assert spec.match_file(".git/HEAD")
        assert spec.match_file(".dat/metadata")
        assert not spec.match_file("sub/.git")

    def test_compiles_without_deprecation_warnings(self):
        with warnings.catch_warnings():
            warnings.simplefilter("error")
            spec = compile_ignore_rules(parse_ignore_rules("*.log\n/build/"))
        assert spec.match_file("logs/x.log")
        assert spec.match_file("build/out.bin")
