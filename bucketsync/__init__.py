"""bucketsync - keep a directory of parquet archive files in sync with S3."""

from .catalog import KeyItem, RemoteCatalog
from .exceptions import (
    FilesystemError,
    FingerprintError,
    FingerprintUtilityMissing,
    MergeFailure,
    MissingMetadataError,
    NetworkError,
    SyncConfigError,
    SyncError,
)
from .fingerprint import md5sum
from .retry import exponential_retry
from .sync import (
    DirectoryScanner,
    FileComparator,
    LocalFileRecord,
    SyncAction,
    SyncDecision,
    SyncEngine,
    SyncOperations,
    SyncReport,
)

__version__ = "0.1.0"

__all__ = [
    "__version__",
    "DirectoryScanner",
    "FileComparator",
    "FilesystemError",
    "FingerprintError",
    "FingerprintUtilityMissing",
    "KeyItem",
    "LocalFileRecord",
    "MergeFailure",
    "MissingMetadataError",
    "NetworkError",
    "RemoteCatalog",
    "SyncAction",
    "SyncConfigError",
    "SyncDecision",
    "SyncEngine",
    "SyncError",
    "SyncOperations",
    "SyncReport",
    "exponential_retry",
    "md5sum",
]
