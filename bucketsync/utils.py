"""Utility functions for bucketsync."""

import random
import string
from datetime import datetime
from pathlib import PurePosixPath
from typing import Optional

# =============================================================================
# Constants for sync operations
# =============================================================================

# Chunk size used when streaming object bodies to disk (1 MB)
DEFAULT_CHUNK_SIZE: int = 1024 * 1024

# Parallel transfers; matches botocore's default max_pool_connections
DEFAULT_MAX_WORKERS: int = 10

# Exponential retry envelope (seconds)
RETRY_INITIAL_TIMEOUT: float = 1.0
RETRY_MAX_TIMEOUT: float = 64.0
RETRY_MAX_FACTOR: float = 4.0

# Prefix of temporary download files created next to their destination
TEMP_FILE_PREFIX: str = ".tmp_"


# =============================================================================
# Timestamp utilities
# =============================================================================


def to_unix_seconds(value: Optional[datetime]) -> Optional[int]:
    """Convert a timezone-aware datetime to whole Unix seconds.

    Args:
        value: Datetime as returned by boto3 (e.g. an object's LastModified)

    Returns:
        Seconds since the epoch (truncated) or None if value is not a datetime

    Examples:
        >>> from datetime import timezone
        >>> to_unix_seconds(datetime(2024, 1, 1, tzinfo=timezone.utc))
        1704067200
    """
    if not isinstance(value, datetime):
        return None
    return int(value.timestamp())


# =============================================================================
# Size formatting utilities
# =============================================================================


def format_size(size_bytes: int) -> str:
    """Format file size in human-readable format.

    Args:
        size_bytes: Size in bytes

    Returns:
        Formatted size string (e.g., "1.5 MB", "256 B")
    """
    if size_bytes < 1024:
        return f"{size_bytes} B"
    elif size_bytes < 1024 * 1024:
        return f"{size_bytes / 1024:.1f} KB"
    elif size_bytes < 1024 * 1024 * 1024:
        return f"{size_bytes / 1024 / 1024:.1f} MB"
    else:
        return f"{size_bytes / 1024 / 1024 / 1024:.1f} GB"


# =============================================================================
# Temporary file naming
# =============================================================================


def random_suffix(length: int = 8) -> str:
    """Return a random alphanumeric string.

    Args:
        length: Number of characters

    Returns:
        String of ASCII letters and digits
    """
    alphabet = string.ascii_letters + string.digits
    return "".join(random.choices(alphabet, k=length))


def is_plain_name(key: str) -> bool:
    """Check whether a remote key can be used as a file name in one directory.

    Examples:
        >>> is_plain_name("weather_data_2024_03.parquet")
        True
        >>> is_plain_name("../escape.parquet"), is_plain_name("sub/a.parquet")
        (False, False)
    """
    if key in ("", ".", ".."):
        return False
    return PurePosixPath(key).name == key and "\\" not in key


def strip_etag(etag: Optional[str]) -> Optional[str]:
    """Trim the surrounding quote characters S3 puts around ETags.

    Examples:
        >>> strip_etag('"d41d8cd98f00b204e9800998ecf8427e"')
        'd41d8cd98f00b204e9800998ecf8427e'
        >>> strip_etag(None) is None
        True
    """
    if etag is None:
        return None
    return etag.strip('"')
