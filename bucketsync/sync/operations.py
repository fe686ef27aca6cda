"""Sync operations wrapper for unified upload/download interface."""

import logging
import os
from pathlib import Path
from typing import Any, Optional

from botocore.exceptions import BotoCoreError, ClientError

from .. import columnar
from ..exceptions import FilesystemError, MissingMetadataError, NetworkError
from ..fingerprint import Fingerprint, md5sum
from ..retry import exponential_retry
from ..utils import DEFAULT_CHUNK_SIZE, TEMP_FILE_PREFIX, random_suffix, strip_etag

logger = logging.getLogger(__name__)

# Local filesystem errors are not retried
RETRYABLE_ERRORS = (NetworkError, MissingMetadataError)


class SyncOperations:
    """Uploads and downloads against the object store, each under retry."""

    def __init__(
        self,
        client: Any,
        fingerprint: Fingerprint = md5sum,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
        retry_options: Optional[dict[str, Any]] = None,
    ):
        """Initialize sync operations.

        Args:
            client: boto3 S3 client, shared read-only between workers
            fingerprint: Function computing a local file's fingerprint
            chunk_size: Size of the chunks streamed to disk on download
            retry_options: Extra keyword arguments for exponential_retry
        """
        self.client = client
        self.fingerprint = fingerprint
        self.chunk_size = chunk_size
        self.retry_options = {"retry_on": RETRYABLE_ERRORS, **(retry_options or {})}

    def download_file(self, bucket: str, key: str, local_path: Path) -> str:
        """Download an object without clobbering an existing local file.

        The object is first streamed to a temporary sibling file. If nothing
        exists at ``local_path`` the temporary file is renamed into place.
        Otherwise both files are fingerprinted: identical content is a no-op,
        differing content is merged row by row into ``local_path``.

        Args:
            bucket: Bucket name
            key: Object key
            local_path: Final destination

        Returns:
            ETag of the downloaded object

        Raises:
            NetworkError: If the transfer keeps failing
            MergeFailure: If the conflicting files cannot be merged
            FilesystemError: If the temporary file cannot be moved or removed
        """
        tmp_path = local_path.with_name(f"{TEMP_FILE_PREFIX}{random_suffix()}")
        etag = exponential_retry(
            lambda: self._download_to_file(bucket, key, tmp_path),
            **self.retry_options,
        )
        logger.debug(f"input {tmp_path} output {local_path}")

        if not local_path.exists():
            try:
                os.replace(tmp_path, local_path)
            except OSError as e:
                raise FilesystemError(
                    f"Failed to move {tmp_path} to {local_path}: {e}"
                ) from e
            return etag

        if self.fingerprint(tmp_path) == self.fingerprint(local_path):
            logger.debug(f"{key} unchanged, discarding download")
        else:
            rows, cols = columnar.merge_files(tmp_path, local_path)
            logger.info(f"Merged {key} into {local_path} ({rows} rows, {cols} cols)")
        self._remove(tmp_path)
        return etag

    def upload_file(self, bucket: str, key: str, path: Path) -> str:
        """Upload a local file to the object store.

        Args:
            bucket: Bucket name
            key: Object key
            path: File to upload

        Returns:
            ETag assigned by the store

        Raises:
            NetworkError: If the transfer keeps failing
            MissingMetadataError: If the store never returns an ETag
        """
        return exponential_retry(
            lambda: self._upload_from_file(bucket, key, path),
            **self.retry_options,
        )

    def _download_to_file(self, bucket: str, key: str, path: Path) -> str:
        try:
            response = self.client.get_object(Bucket=bucket, Key=key)
            etag = strip_etag(response.get("ETag"))
            if etag is None:
                raise MissingMetadataError(f"No ETag for s3://{bucket}/{key}")
            body = response["Body"]
            with open(path, "wb") as f:
                for chunk in body.iter_chunks(self.chunk_size):
                    f.write(chunk)
        except (BotoCoreError, ClientError) as e:
            raise NetworkError(f"Failed to download s3://{bucket}/{key}: {e}") from e
        except OSError as e:
            raise FilesystemError(f"Failed to write {path}: {e}") from e
        return etag

    def _upload_from_file(self, bucket: str, key: str, path: Path) -> str:
        try:
            with open(path, "rb") as f:
                response = self.client.put_object(Bucket=bucket, Key=key, Body=f)
        except (BotoCoreError, ClientError) as e:
            raise NetworkError(
                f"Failed to upload {path} to s3://{bucket}/{key}: {e}"
            ) from e
        except OSError as e:
            raise FilesystemError(f"Failed to read {path}: {e}") from e

        etag = strip_etag(response.get("ETag"))
        if etag is None:
            raise MissingMetadataError(f"Missing ETag for s3://{bucket}/{key}")
        return etag

    def _remove(self, path: Path) -> None:
        try:
            path.unlink()
        except OSError as e:
            raise FilesystemError(f"Failed to remove {path}: {e}") from e
