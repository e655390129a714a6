"""Configuration schema for folder_sync.

Defines Pydantic models for the config structure with dedicated sections
for sync behaviour and logging.

Usage:
    from folder_sync.config_loader import load_hierarchical_config
    from folder_sync.config_schema import build_config

    raw = load_hierarchical_config()
    config = build_config(raw)
"""

from __future__ import annotations

from pydantic import BaseModel, Field


DEFAULT_IGNORE_RULES = """\
.git
.dat
node_modules
*.log
**/.DS_Store
Thumbs.db
"""


# ---------------------------------------------------------------------------
# Section models
# ---------------------------------------------------------------------------


class SyncSettings(BaseModel):
    """Sync engine settings.

    Every field has a default so a missing ``sync`` section is valid.
    """

    debounce_seconds: float = Field(
        default=1.0,
        gt=0,
        le=60,
        description="Quiet period after a folder change before syncing",
    )
    max_diff_size: int = Field(
        default=100 * 1024,
        ge=1,
        description="Largest file (bytes) accepted by the line diff",
    )
    default_ignore: str = Field(
        default=DEFAULT_IGNORE_RULES,
        description="Ignore rules used when a folder has no .datignore",
    )
    manifest_file: str = Field(
        default="/dat.json",
        description="Archive descriptor copied first when merging",
    )

    model_config = {"frozen": True}


class LoggingConfig(BaseModel):
    """Logging configuration.

    Attributes:
        level: Log level name (DEBUG, INFO, WARNING, ERROR, CRITICAL).
        file: Optional log file path.
    """

    level: str = Field(default="INFO", description="Log level")
    file: str | None = Field(default=None, description="Log file path")

    model_config = {"frozen": True}


# ---------------------------------------------------------------------------
# Top-level config
# ---------------------------------------------------------------------------


class FolderSyncConfig(BaseModel):
    """Top-level configuration.

    ``FolderSyncConfig()`` (zero-config) is always valid.
    """

    sync: SyncSettings = Field(default_factory=SyncSettings)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    model_config = {"frozen": True}


def build_config(raw_data: dict) -> FolderSyncConfig:
    """Construct a ``FolderSyncConfig`` from the raw dict returned by
    ``load_hierarchical_config()``.

    Missing sections get defaults.

    Raises:
        pydantic.ValidationError: If a present value is out of range.
    """
    if not raw_data:
        return FolderSyncConfig()

    return FolderSyncConfig(**raw_data)
