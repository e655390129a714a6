"""Key/value settings view consumed by the sync engine."""

from __future__ import annotations

from folder_sync.config_schema import FolderSyncConfig


class Settings:
    """Read-only settings lookup backed by a ``FolderSyncConfig``.

    Known keys:
        ``default_dat_ignore`` -- ignore rules used when a folder has no
        ``.datignore``.

    Extra values passed as keyword arguments take precedence, which lets
    callers and tests override single keys.
    """

    def __init__(
        self, config: FolderSyncConfig | None = None, **overrides: str
    ) -> None:
        self.config = config or FolderSyncConfig()
        self._values: dict[str, str] = {
            "default_dat_ignore": self.config.sync.default_ignore,
        }
        self._values.update(overrides)

    def get(self, key: str) -> str | None:
        return self._values.get(key)
