"""Content fingerprints computed with the external md5sum utility."""

import logging
import shutil
import subprocess
from pathlib import Path
from typing import Callable

from .exceptions import FingerprintError, FingerprintUtilityMissing

logger = logging.getLogger(__name__)

MD5SUM = "md5sum"

Fingerprint = Callable[[Path], str]
"""Signature shared by all fingerprint functions: path -> hex digest."""


def md5sum(path: Path) -> str:
    """Compute the MD5 digest of a file by shelling out to ``md5sum``.

    The digest matches the ETag S3 assigns to single-part uploads, which is
    what makes it usable as a tie-breaker against remote objects.

    Args:
        path: File to fingerprint

    Returns:
        Lowercase hexadecimal digest

    Raises:
        FingerprintUtilityMissing: If md5sum is not installed
        FingerprintError: If md5sum fails or prints something unexpected
    """
    executable = shutil.which(MD5SUM)
    if executable is None:
        raise FingerprintUtilityMissing(MD5SUM)

    try:
        proc = subprocess.run(
            [executable, str(path)],
            stdout=subprocess.PIPE,
            stderr=subprocess.PIPE,
            text=True,
        )
    except FileNotFoundError as e:
        raise FingerprintUtilityMissing(MD5SUM) from e
    except OSError as e:
        raise FingerprintError(f"Failed to run {MD5SUM} on {path}: {e}") from e

    if proc.returncode != 0:
        raise FingerprintError(
            f"{MD5SUM} failed for {path}: {(proc.stderr or '').strip()}"
        )

    fields = (proc.stdout or "").split()
    if not fields:
        raise FingerprintError(f"{MD5SUM} returned no output for {path}")

    digest = fields[0].lstrip("\\")
    logger.debug(f"md5sum {path.name}: {digest}")
    return digest
