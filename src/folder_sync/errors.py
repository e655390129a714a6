"""Exception hierarchy for folder-sync.

Validation errors (``NotFoundError``, ``NotAFolderError``,
``ProtectedPathError``, ``ArchiveNotWritableError``,
``InvalidEncodingError``, ``SourceTooLargeError``) are raised to the
immediate caller and never retried.  ``StoreIOError`` wraps any
underlying read/stat/write failure and aborts the sync it occurred in.
"""


class FolderSyncError(Exception):
    """Base class for all folder-sync errors."""

    default_message = "Folder sync failed"

    def __init__(self, message: str | None = None) -> None:
        super().__init__(message or self.default_message)


class NotFoundError(FolderSyncError):
    default_message = "File not found"


class NotAFolderError(FolderSyncError):
    default_message = "Target is not a folder"


class ProtectedPathError(FolderSyncError):
    default_message = "This folder is protected and cannot be used for sync"


class ArchiveNotWritableError(FolderSyncError):
    default_message = "Cannot write to this archive; not the owner"


class InvalidEncodingError(FolderSyncError):
    default_message = "Invalid encoding"


class SourceTooLargeError(FolderSyncError):
    default_message = "File is too large to compare"


class StoreIOError(FolderSyncError):
    """A store-level read, stat, or write failure.

    The originating ``OSError`` (if any) is available as ``__cause__``.
    """

    default_message = "Store I/O failure"
