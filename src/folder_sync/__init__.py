"""folder-sync: keep a local folder and a versioned archive in sync."""

__version__ = "0.3.0"

from .errors import (
    ArchiveNotWritableError,
    FolderSyncError,
    InvalidEncodingError,
    NotAFolderError,
    NotFoundError,
    ProtectedPathError,
    SourceTooLargeError,
    StoreIOError,
)
from .safety import assert_safe_path
from .sync import Archive, FolderSync, LocalStore, MemoryStore, SyncOptions

__all__ = [
    "Archive",
    "ArchiveNotWritableError",
    "FolderSync",
    "FolderSyncError",
    "InvalidEncodingError",
    "LocalStore",
    "MemoryStore",
    "NotAFolderError",
    "NotFoundError",
    "ProtectedPathError",
    "SourceTooLargeError",
    "StoreIOError",
    "SyncOptions",
    "__version__",
    "assert_safe_path",
]
