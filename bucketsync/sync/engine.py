"""Core sync engine for executing sync operations."""

import logging
import time
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Optional

from rich.progress import Progress, SpinnerColumn, TextColumn

from ..catalog import RemoteCatalog
from ..exceptions import FingerprintUtilityMissing, SyncError
from ..fingerprint import Fingerprint, md5sum
from ..output import OutputFormatter
from ..utils import DEFAULT_MAX_WORKERS
from .comparator import FileComparator, SyncAction, SyncDecision
from .operations import SyncOperations
from .scanner import DirectoryScanner

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SyncReport:
    """Outcome of one sync_directory call."""

    title: str
    bucket: str
    n_keys: int
    """Number of well-formed remote objects listed"""

    uploaded: int
    downloaded: int
    failed: tuple[tuple[str, str], ...] = field(default_factory=tuple)
    """(key, error message) for every transfer that failed"""

    def summary(self) -> str:
        """Human-readable one-line summary.

        Examples:
            >>> SyncReport("weather-data", "bucket", 3, 1, 2).summary()
            'weather-data bucket s3_bucket nkeys 3 uploaded 1 downloaded 2'
        """
        msg = (
            f"{self.title} {self.bucket} s3_bucket nkeys {self.n_keys} "
            f"uploaded {self.uploaded} downloaded {self.downloaded}"
        )
        if self.failed:
            msg += f" failed {len(self.failed)}"
        return msg

    def __str__(self) -> str:
        return self.summary()


class SyncEngine:
    """Keeps a local directory and a bucket consistent in both directions.

    Deletions are never propagated. Concurrent calls against the same
    directory and bucket are not safe and must be serialized by the caller.
    """

    def __init__(
        self,
        client: Any,
        output: Optional[OutputFormatter] = None,
        max_workers: int = DEFAULT_MAX_WORKERS,
        fingerprint: Fingerprint = md5sum,
        retry_options: Optional[dict[str, Any]] = None,
    ):
        """Initialize sync engine.

        Args:
            client: boto3 S3 client
            output: Output formatter for displaying progress/status
            max_workers: Number of parallel transfers per phase
            fingerprint: Function computing a local file's fingerprint
            retry_options: Extra keyword arguments for exponential_retry
        """
        self.client = client
        self.output = output or OutputFormatter(quiet=True)
        self.max_workers = max_workers
        self.fingerprint = fingerprint
        self.scanner = DirectoryScanner()
        self.catalog = RemoteCatalog(client, retry_options=retry_options)
        self.operations = SyncOperations(
            client, fingerprint=fingerprint, retry_options=retry_options
        )

    def sync_directory(
        self,
        title: str,
        local_dir: Path,
        bucket: str,
        hash_mode: bool,
        rescan_after_download: bool = False,
    ) -> SyncReport:
        """Sync a local directory with a bucket.

        Downloads run to completion before uploads are evaluated. Upload
        decisions are made from the snapshot taken before the downloads
        unless ``rescan_after_download`` is set.

        Args:
            title: Label used in the summary
            local_dir: Directory to sync (only direct children are considered)
            bucket: Bucket name
            hash_mode: Compare fingerprints instead of sizes when timestamps differ
            rescan_after_download: Re-scan the directory before deciding uploads

        Returns:
            SyncReport with the counts of listed keys and performed transfers

        Raises:
            FilesystemError: If the local directory cannot be scanned
            NetworkError: If the bucket cannot be listed
            FingerprintUtilityMissing: If md5sum is not installed

        Examples:
            >>> engine = SyncEngine(boto3.client("s3"))
            >>> report = engine.sync_directory("weather-data", Path("~/cache"),
            ...                                "my-bucket", hash_mode=True)
            >>> print(report.summary())
        """
        start_time = time.time()

        with Progress(
            SpinnerColumn(),
            TextColumn("[progress.description]{task.description}"),
            transient=True,
            disable=self.output.quiet,
        ) as progress:
            task = progress.add_task("Scanning local directory...", total=None)
            local_files = self.scanner.scan_local(local_dir)
            progress.update(task, description=f"Found {len(local_files)} local file(s)")

            task = progress.add_task(f"Listing {bucket}...", total=None)
            key_items = self.catalog.list_keys(bucket)
            progress.update(task, description=f"Found {len(key_items)} remote key(s)")

        comparator = FileComparator(hash_mode, fingerprint=self.fingerprint)
        downloads = self._actionable(
            comparator.compare_downloads(key_items, local_files, local_dir)
        )
        downloaded, download_failures = self._execute_transfers(
            downloads, bucket, "Downloading"
        )

        if rescan_after_download:
            local_files = self.scanner.scan_local(local_dir)
            comparator = FileComparator(hash_mode, fingerprint=self.fingerprint)
        uploads = self._actionable(comparator.compare_uploads(key_items, local_files))
        uploaded, upload_failures = self._execute_transfers(
            uploads, bucket, "Uploading"
        )

        report = SyncReport(
            title=title,
            bucket=bucket,
            n_keys=len(key_items),
            uploaded=len(uploaded),
            downloaded=len(downloaded),
            failed=tuple(download_failures + upload_failures),
        )
        logger.debug(f"Sync of {local_dir} finished in {time.time() - start_time:.2f}s")
        self._display_summary(report)
        return report

    def plan(
        self, local_dir: Path, bucket: str, hash_mode: bool
    ) -> tuple[list[SyncDecision], list[SyncDecision]]:
        """Compute download and upload decisions without transferring anything.

        Args:
            local_dir: Directory being synced
            bucket: Bucket name
            hash_mode: Compare fingerprints instead of sizes

        Returns:
            Tuple of (download decisions, upload decisions), including skips
        """
        local_files = self.scanner.scan_local(local_dir)
        key_items = self.catalog.list_keys(bucket)
        comparator = FileComparator(hash_mode, fingerprint=self.fingerprint)
        return (
            comparator.compare_downloads(key_items, local_files, local_dir),
            comparator.compare_uploads(key_items, local_files),
        )

    def _actionable(self, decisions: list[SyncDecision]) -> list[SyncDecision]:
        return [d for d in decisions if d.action != SyncAction.SKIP]

    def _execute_single_decision(self, decision: SyncDecision, bucket: str) -> str:
        if decision.action == SyncAction.DOWNLOAD:
            return self.operations.download_file(
                bucket, decision.key, decision.local_path
            )
        return self.operations.upload_file(bucket, decision.key, decision.local_path)

    def _execute_transfers(
        self, decisions: list[SyncDecision], bucket: str, label: str
    ) -> tuple[list[tuple[Path, str]], list[tuple[str, str]]]:
        """Execute transfers in parallel using ThreadPoolExecutor.

        A failing transfer is logged and recorded; the others keep going.

        Returns:
            Tuple of ((path, key) for completed transfers, (key, error) for failures)
        """
        completed: list[tuple[Path, str]] = []
        failures: list[tuple[str, str]] = []
        if not decisions:
            return completed, failures

        logger.debug(
            f"{label} {len(decisions)} file(s) with {self.max_workers} workers"
        )

        with Progress(disable=self.output.quiet, transient=True) as progress:
            task = progress.add_task(f"{label}...", total=len(decisions))

            with ThreadPoolExecutor(max_workers=self.max_workers) as executor:
                futures = {
                    executor.submit(self._execute_single_decision, d, bucket): d
                    for d in decisions
                }

                for future in as_completed(futures):
                    decision = futures[future]
                    try:
                        etag = future.result()
                    except FingerprintUtilityMissing:
                        for pending in futures:
                            pending.cancel()
                        raise
                    except SyncError as e:
                        logger.error(f"Error syncing {decision.key}: {e}")
                        self.output.error(f"Error syncing {decision.key}: {e}")
                        failures.append((decision.key, str(e)))
                    else:
                        logger.debug(f"{decision.key} done, etag {etag}")
                        completed.append((decision.local_path, decision.key))
                    progress.update(task, advance=1)

        return completed, failures

    def _display_summary(self, report: SyncReport) -> None:
        if self.output.quiet:
            return

        self.output.print("")
        self.output.success("Sync complete!")
        if report.uploaded or report.downloaded:
            self.output.info(f"  Uploaded: {report.uploaded}")
            self.output.info(f"  Downloaded: {report.downloaded}")
        else:
            self.output.info("No changes needed - everything is in sync!")
        if report.failed:
            self.output.warning(f"  Failed: {len(report.failed)}")
