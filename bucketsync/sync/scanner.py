"""Local directory scanning for sync operations."""

import logging
import stat
from dataclasses import dataclass
from pathlib import Path

from ..exceptions import FilesystemError
from ..utils import TEMP_FILE_PREFIX

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LocalFileRecord:
    """A regular file directly inside the synchronized directory."""

    path: Path
    """Absolute path to the file"""

    mtime: int
    """Last modification time (whole Unix seconds)"""

    size: int
    """File size in bytes"""

    @property
    def name(self) -> str:
        """File name, which is also the remote key."""
        return self.path.name


class DirectoryScanner:
    """Scans a directory (non-recursively) for regular files."""

    def scan_local(self, directory: Path) -> list[LocalFileRecord]:
        """Scan the direct children of a directory.

        Subdirectories, other non-regular entries and leftover temporary
        download files (``.tmp_*``) are ignored. Any error while reading an
        entry aborts the scan.

        Args:
            directory: Directory to scan

        Returns:
            List of LocalFileRecord objects sorted by name

        Raises:
            FilesystemError: If the directory or one of its entries cannot be read
        """
        if not directory.exists():
            raise FilesystemError(f"Local directory does not exist: {directory}")
        if not directory.is_dir():
            raise FilesystemError(f"Local path is not a directory: {directory}")

        files: list[LocalFileRecord] = []
        try:
            for item in directory.iterdir():
                if item.name.startswith(TEMP_FILE_PREFIX):
                    logger.debug(f"Skipping temporary download file {item.name}")
                    continue
                st = item.stat()
                if not stat.S_ISREG(st.st_mode):
                    continue
                files.append(
                    LocalFileRecord(path=item, mtime=int(st.st_mtime), size=st.st_size)
                )
        except OSError as e:
            raise FilesystemError(f"Failed to scan {directory}: {e}") from e

        files.sort(key=lambda f: f.name)
        logger.debug(f"Found {len(files)} local file(s) in {directory}")
        return files
