"""Exceptions raised by bucketsync."""


class SyncError(Exception):
    """Base exception for all bucket synchronization errors."""

    pass


class NetworkError(SyncError):
    """Transport or object-store failure (retried before being raised)."""

    pass


class MissingMetadataError(SyncError):
    """Remote object or response lacks required metadata (e.g. an ETag)."""

    pass


class FilesystemError(SyncError):
    """Local filesystem operation failed."""

    pass


class FingerprintError(SyncError):
    """Content fingerprint could not be computed for a file."""

    pass


class FingerprintUtilityMissing(FingerprintError):
    """The external fingerprint utility is not installed on this host."""

    def __init__(self, utility: str):
        self.utility = utility
        super().__init__(f"{utility} is not installed")


class MergeFailure(SyncError):
    """Reading, merging or writing a conflicting data file failed."""

    pass


class SyncConfigError(Exception):
    """Invalid configuration value."""

    pass
