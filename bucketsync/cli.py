"""CLI interface for bucketsync."""

import logging
from pathlib import Path
from typing import Any, Optional

import boto3
import click
from botocore.config import Config as BotoConfig
from botocore.exceptions import BotoCoreError

from . import columnar
from .catalog import RemoteCatalog
from .config import config
from .exceptions import (
    FingerprintUtilityMissing,
    NetworkError,
    SyncConfigError,
    SyncError,
)
from .output import OutputFormatter
from .sync import SyncAction, SyncEngine
from .utils import format_size

logger = logging.getLogger(__name__)


def create_s3_client(endpoint_url: Optional[str], max_workers: int) -> Any:
    """Create a boto3 S3 client sized for the number of parallel transfers.

    botocore's own retries are disabled: every remote call is already
    wrapped in exponential_retry.

    Args:
        endpoint_url: Optional S3-compatible endpoint
        max_workers: Number of parallel transfers (connection pool size)

    Returns:
        boto3 S3 client

    Raises:
        NetworkError: If botocore cannot build the client (e.g. no region)
    """
    boto_config = BotoConfig(
        max_pool_connections=max_workers,
        retries={"max_attempts": 1, "mode": "standard"},
    )
    try:
        return boto3.client("s3", endpoint_url=endpoint_url, config=boto_config)
    except BotoCoreError as e:
        raise NetworkError(f"Failed to create S3 client: {e}") from e


@click.group()
@click.option("--quiet", "-q", is_flag=True, help="Suppress non-essential output")
@click.option("--json", is_flag=True, help="Output in JSON format")
@click.option(
    "--verbose",
    "-v",
    is_flag=True,
    help="Enable verbose/debug logging output",
)
@click.version_option(package_name="bucketsync")
@click.pass_context
def main(ctx: Any, quiet: bool, json: bool, verbose: bool) -> None:
    """bucketsync - Keep a directory of archive files in sync with S3."""
    ctx.ensure_object(dict)
    ctx.obj["out"] = OutputFormatter(json_output=json, quiet=quiet)

    if verbose:
        logging.basicConfig(
            level=logging.DEBUG,
            format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
            datefmt="%H:%M:%S",
        )
        logging.getLogger("bucketsync").setLevel(logging.DEBUG)
    else:
        logging.basicConfig(level=logging.WARNING)


@main.command()
@click.argument(
    "directory",
    type=click.Path(file_okay=False, path_type=Path),
    required=False,
)
@click.option("--bucket", "-b", help="Bucket name (default: BUCKETSYNC_BUCKET)")
@click.option(
    "--hash-mode/--size-mode",
    default=None,
    help="Compare MD5 fingerprints or sizes when timestamps differ",
)
@click.option("--workers", "-w", type=int, default=None, help="Parallel transfers")
@click.option("--title", "-t", default=None, help="Label used in the summary")
@click.option("--endpoint-url", default=None, help="S3-compatible endpoint URL")
@click.option(
    "--rescan",
    is_flag=True,
    help="Re-scan the directory after downloads before deciding uploads",
)
@click.option(
    "--dry-run", is_flag=True, help="Show what would be synced without syncing"
)
@click.pass_context
def sync(
    ctx: Any,
    directory: Optional[Path],
    bucket: Optional[str],
    hash_mode: Optional[bool],
    workers: Optional[int],
    title: Optional[str],
    endpoint_url: Optional[str],
    rescan: bool,
    dry_run: bool,
) -> None:
    """Sync DIRECTORY with a bucket in both directions.

    DIRECTORY defaults to BUCKETSYNC_CACHE_DIR (~/.weather-data-cache).
    Files are never deleted on either side; conflicting parquet files are
    merged row by row.

    Examples:
        bucketsync sync                              # Sync the cache directory
        bucketsync sync ./data -b my-bucket          # Explicit directory and bucket
        bucketsync sync --hash-mode                  # Compare MD5 against ETags
        bucketsync sync --dry-run                    # Preview sync changes
    """
    out: OutputFormatter = ctx.obj["out"]

    try:
        local_dir = directory or config.cache_dir
        bucket = bucket or config.bucket
        use_hash = config.hash_mode if hash_mode is None else hash_mode
        max_workers = workers or config.max_workers
        title = title or config.title
        endpoint_url = endpoint_url or config.endpoint_url
    except SyncConfigError as e:
        out.error(f"Configuration error: {e}")
        ctx.exit(1)
        return

    if not out.quiet:
        out.info(f"Syncing: {local_dir} <-> s3://{bucket}")
        out.info(f"Mode: {'hash' if use_hash else 'size'}")
        if dry_run:
            out.info("Dry run: No changes will be made")
        out.print("")

    try:
        client = create_s3_client(endpoint_url, max_workers)
        engine = SyncEngine(client, output=out, max_workers=max_workers)

        if dry_run:
            downloads, uploads = engine.plan(local_dir, bucket, use_hash)
            planned = [
                d for d in downloads + uploads if d.action != SyncAction.SKIP
            ]
            if out.json_output:
                out.output_json(
                    [
                        {"action": d.action.value, "key": d.key, "reason": d.reason}
                        for d in planned
                    ]
                )
            else:
                for d in planned:
                    out.info(f"  {d.action.value:<9} {d.key} ({d.reason})")
                if not planned:
                    out.info("No changes needed - everything is in sync!")
            return

        report = engine.sync_directory(
            title, local_dir, bucket, use_hash, rescan_after_download=rescan
        )
        if out.json_output:
            out.output_json(
                {
                    "title": report.title,
                    "bucket": report.bucket,
                    "nkeys": report.n_keys,
                    "uploaded": report.uploaded,
                    "downloaded": report.downloaded,
                    "failed": [
                        {"key": key, "error": err} for key, err in report.failed
                    ],
                }
            )
        else:
            click.echo(report.summary())
    except KeyboardInterrupt:
        out.warning("\nSync cancelled by user")
        ctx.exit(130)
    except FingerprintUtilityMissing as e:
        out.error(f"Error: {e} (install coreutils or use --size-mode)")
        ctx.exit(1)
    except SyncError as e:
        out.error(f"Error: {e}")
        ctx.exit(1)


@main.command()
@click.option("--bucket", "-b", help="Bucket name (default: BUCKETSYNC_BUCKET)")
@click.option("--endpoint-url", default=None, help="S3-compatible endpoint URL")
@click.pass_context
def ls(ctx: Any, bucket: Optional[str], endpoint_url: Optional[str]) -> None:
    """List the objects of a bucket as seen by the sync engine."""
    out: OutputFormatter = ctx.obj["out"]
    bucket = bucket or config.bucket

    try:
        client = create_s3_client(endpoint_url or config.endpoint_url, 1)
        key_items = RemoteCatalog(client).list_keys(bucket)
    except SyncError as e:
        out.error(f"Error: {e}")
        ctx.exit(1)
        return

    if out.json_output:
        out.output_json(
            [
                {
                    "key": k.key,
                    "etag": k.etag,
                    "timestamp": k.timestamp,
                    "size": k.size,
                }
                for k in key_items
            ]
        )
        return

    for k in key_items:
        click.echo(f"{k.timestamp:>12} {format_size(k.size):>10} {k.etag} {k.key}")
    out.info(f"{len(key_items)} key(s)")


@main.command()
@click.argument("new", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.argument(
    "existing", type=click.Path(exists=True, dir_okay=False, path_type=Path)
)
@click.pass_context
def merge(ctx: Any, new: Path, existing: Path) -> None:
    """Merge the rows of NEW into EXISTING (rows of EXISTING win on duplicates)."""
    out: OutputFormatter = ctx.obj["out"]

    try:
        rows, cols = columnar.merge_files(new, existing)
    except SyncError as e:
        out.error(f"Error: {e}")
        ctx.exit(1)
        return

    out.success(f"wrote {existing.name} ({rows}, {cols})")
