"""Configuration loaded from environment variables."""

import os
from pathlib import Path
from typing import Optional

from .exceptions import SyncConfigError
from .utils import DEFAULT_MAX_WORKERS

DEFAULT_BUCKET = "weather-data-backup"
DEFAULT_TITLE = "weather-data"
DEFAULT_CACHE_DIR_NAME = ".weather-data-cache"

_TRUE_VALUES = {"1", "true", "yes", "on"}
_FALSE_VALUES = {"0", "false", "no", "off", ""}


def _parse_bool(name: str, value: str) -> bool:
    normalized = value.strip().lower()
    if normalized in _TRUE_VALUES:
        return True
    if normalized in _FALSE_VALUES:
        return False
    raise SyncConfigError(f"{name} must be a boolean, got {value!r}")


def _parse_positive_int(name: str, value: str) -> int:
    try:
        parsed = int(value)
    except ValueError as e:
        raise SyncConfigError(f"{name} must be an integer, got {value!r}") from e
    if parsed < 1:
        raise SyncConfigError(f"{name} must be at least 1, got {parsed}")
    return parsed


class Config:
    """Sync settings.

    Every setting can be overridden with an environment variable:

    * ``BUCKETSYNC_BUCKET``: bucket name
    * ``BUCKETSYNC_CACHE_DIR``: local directory holding the archive files
    * ``BUCKETSYNC_HASH_MODE``: compare fingerprints instead of sizes
    * ``BUCKETSYNC_WORKERS``: number of parallel transfers
    * ``BUCKETSYNC_ENDPOINT_URL``: S3-compatible endpoint (optional)
    * ``BUCKETSYNC_TITLE``: label used in the sync summary
    """

    def __init__(self, environ: Optional[dict[str, str]] = None):
        self._environ = os.environ if environ is None else environ

    def _get(self, name: str) -> Optional[str]:
        return self._environ.get(name)

    @property
    def bucket(self) -> str:
        return self._get("BUCKETSYNC_BUCKET") or DEFAULT_BUCKET

    @property
    def cache_dir(self) -> Path:
        value = self._get("BUCKETSYNC_CACHE_DIR")
        if value:
            return Path(value).expanduser()
        return Path.home() / DEFAULT_CACHE_DIR_NAME

    @property
    def hash_mode(self) -> bool:
        value = self._get("BUCKETSYNC_HASH_MODE")
        if value is None:
            return False
        return _parse_bool("BUCKETSYNC_HASH_MODE", value)

    @property
    def max_workers(self) -> int:
        value = self._get("BUCKETSYNC_WORKERS")
        if value is None:
            return DEFAULT_MAX_WORKERS
        return _parse_positive_int("BUCKETSYNC_WORKERS", value)

    @property
    def endpoint_url(self) -> Optional[str]:
        return self._get("BUCKETSYNC_ENDPOINT_URL") or None

    @property
    def title(self) -> str:
        return self._get("BUCKETSYNC_TITLE") or DEFAULT_TITLE


config = Config()
