"""File comparison logic for sync operations."""

import logging
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Optional

from ..catalog import KeyItem
from ..fingerprint import Fingerprint, md5sum
from ..utils import is_plain_name
from .scanner import LocalFileRecord

logger = logging.getLogger(__name__)


class SyncAction(str, Enum):
    """Actions that can be taken during sync."""

    UPLOAD = "upload"
    """Upload local file to remote"""

    DOWNLOAD = "download"
    """Download remote file to local"""

    SKIP = "skip"
    """Skip file (no action needed)"""


@dataclass(frozen=True)
class SyncDecision:
    """Represents a decision about how to sync a file."""

    action: SyncAction
    """Action to take"""

    reason: str
    """Human-readable reason for this decision"""

    key: str
    """Remote key (equal to the local file name)"""

    local_path: Path
    """Local path the key maps to"""

    key_item: Optional[KeyItem] = None
    """Remote object (if exists)"""

    local_file: Optional[LocalFileRecord] = None
    """Local file (if exists)"""


class FileComparator:
    """Compares remote keys and local files to determine sync actions.

    Two comparison modes exist for pairs whose timestamps differ:

    * hash mode: the local MD5 fingerprint is compared with the remote ETag
    * size mode: byte sizes are compared

    Pairs with equal timestamps are always skipped.
    """

    def __init__(self, hash_mode: bool, fingerprint: Fingerprint = md5sum):
        """Initialize file comparator.

        Args:
            hash_mode: Compare content fingerprints instead of sizes
            fingerprint: Function computing a local file's fingerprint
        """
        self.hash_mode = hash_mode
        self.fingerprint = fingerprint
        self._fingerprints: dict[Path, str] = {}

    def compare_downloads(
        self,
        key_items: list[KeyItem],
        local_files: list[LocalFileRecord],
        local_dir: Path,
    ) -> list[SyncDecision]:
        """Decide, for every remote key, whether it must be downloaded.

        Args:
            key_items: Remote catalog
            local_files: Snapshot of the local directory
            local_dir: Directory downloads are written to

        Returns:
            One SyncDecision per remote key
        """
        local_map = {f.name: f for f in local_files}
        decisions = [
            self._compare_download(key_item, local_map.get(key_item.key), local_dir)
            for key_item in key_items
        ]
        self._log_decisions(decisions)
        return decisions

    def compare_uploads(
        self,
        key_items: list[KeyItem],
        local_files: list[LocalFileRecord],
    ) -> list[SyncDecision]:
        """Decide, for every local file, whether it must be uploaded.

        Args:
            key_items: Remote catalog
            local_files: Snapshot of the local directory

        Returns:
            One SyncDecision per local file
        """
        remote_map = {k.key: k for k in key_items}
        decisions = [
            self._compare_upload(local_file, remote_map.get(local_file.name))
            for local_file in local_files
        ]
        self._log_decisions(decisions)
        return decisions

    def _log_decisions(self, decisions: list[SyncDecision]) -> None:
        for decision in decisions:
            logger.debug(f"{decision.action.value} {decision.key}: {decision.reason}")

    def _local_fingerprint(self, local_file: LocalFileRecord) -> str:
        if local_file.path not in self._fingerprints:
            self._fingerprints[local_file.path] = self.fingerprint(local_file.path)
        return self._fingerprints[local_file.path]

    def _compare_download(
        self,
        key_item: KeyItem,
        local_file: Optional[LocalFileRecord],
        local_dir: Path,
    ) -> SyncDecision:
        """Compare a remote key against its local counterpart."""
        local_path = local_dir / key_item.key

        def decide(action: SyncAction, reason: str) -> SyncDecision:
            return SyncDecision(
                action=action,
                reason=reason,
                key=key_item.key,
                local_path=local_path,
                key_item=key_item,
                local_file=local_file,
            )

        # Keys with path separators or dot components never map into local_dir
        if not is_plain_name(key_item.key):
            logger.debug(f"Ignoring remote key {key_item.key!r}: not a file name")
            return decide(SyncAction.SKIP, "Key is not a plain file name")

        if local_file is None:
            return decide(SyncAction.DOWNLOAD, "New remote file")

        if local_file.mtime == key_item.timestamp:
            return decide(SyncAction.SKIP, "Same timestamp")

        if self.hash_mode:
            if self._local_fingerprint(local_file) != key_item.etag:
                return decide(SyncAction.DOWNLOAD, "Fingerprint differs from ETag")
            return decide(SyncAction.SKIP, "Fingerprint matches ETag")

        if key_item.size != local_file.size:
            reason = f"Sizes differ ({local_file.size} vs {key_item.size})"
            return decide(SyncAction.DOWNLOAD, reason)
        return decide(SyncAction.SKIP, "Same size")

    def _compare_upload(
        self, local_file: LocalFileRecord, key_item: Optional[KeyItem]
    ) -> SyncDecision:
        """Compare a local file against its remote counterpart."""

        def decide(action: SyncAction, reason: str) -> SyncDecision:
            return SyncDecision(
                action=action,
                reason=reason,
                key=local_file.name,
                local_path=local_file.path,
                key_item=key_item,
                local_file=local_file,
            )

        if key_item is None:
            return decide(SyncAction.UPLOAD, "New local file")

        if local_file.mtime == key_item.timestamp:
            return decide(SyncAction.SKIP, "Same timestamp")

        if self.hash_mode:
            if self._local_fingerprint(local_file) != key_item.etag:
                return decide(SyncAction.UPLOAD, "Fingerprint differs from ETag")
            return decide(SyncAction.SKIP, "Fingerprint matches ETag")

        # Only a strictly larger local file replaces the remote copy
        if local_file.size > key_item.size:
            reason = f"Local file is larger ({local_file.size} vs {key_item.size})"
            return decide(SyncAction.UPLOAD, reason)
        return decide(SyncAction.SKIP, "Local file is not larger")
