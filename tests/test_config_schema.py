"""Tests for config_schema.py and settings.py."""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from folder_sync.config_schema import (
    DEFAULT_IGNORE_RULES,
    FolderSyncConfig,
    LoggingConfig,
    SyncSettings,
    build_config,
)
from folder_sync.settings import Settings


class TestSyncSettings:
    """Tests for the sync section."""

    def test_defaults(self):
        s = SyncSettings()
        assert s.debounce_seconds == 1.0
        assert s.max_diff_size == 100 * 1024
        assert s.manifest_file == "/dat.json"
        assert s.default_ignore == DEFAULT_IGNORE_RULES

    @pytest.mark.parametrize("value", [0, -1, 61])
    def test_debounce_out_of_range(self, value):
        with pytest.raises(ValidationError):
            SyncSettings(debounce_seconds=value)

    def test_max_diff_size_must_be_positive(self):
        with pytest.raises(ValidationError):
            SyncSettings(max_diff_size=0)

    def test_frozen(self):
        s = SyncSettings()
        with pytest.raises(ValidationError):
            s.debounce_seconds = 5


class TestBuildConfig:
    """Tests for build_config()."""

    def test_empty_dict_gives_defaults(self):
        assert build_config({}) == FolderSyncConfig()

    def test_sections_parsed(self):
        config = build_config(
            {
                "sync": {"debounce_seconds": 2.5, "default_ignore": "*.bak"},
                "logging": {"level": "DEBUG", "file": "/tmp/fs.log"},
            }
        )
        assert config.sync.debounce_seconds == 2.5
        assert config.sync.default_ignore == "*.bak"
        assert config.logging == LoggingConfig(
            level="DEBUG", file="/tmp/fs.log"
        )

    def test_missing_section_gets_defaults(self):
        config = build_config({"logging": {"level": "WARNING"}})
        assert config.sync == SyncSettings()

    def test_invalid_value_raises(self):
        with pytest.raises(ValidationError):
            build_config({"sync": {"debounce_seconds": "soon"}})


class TestSettings:
    """Tests for the Settings lookup."""

    def test_default_ignore_from_config(self):
        config = build_config({"sync": {"default_ignore": "*.bak"}})
        assert Settings(config).get("default_dat_ignore") == "*.bak"

    def test_override_wins(self):
        config = build_config({"sync": {"default_ignore": "*.bak"}})
        settings = Settings(config, default_dat_ignore="")
        assert settings.get("default_dat_ignore") == ""

    def test_unknown_key_is_none(self):
        assert Settings().get("nope") is None

    def test_zero_config(self):
        assert Settings().config == FolderSyncConfig()
