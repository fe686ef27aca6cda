"""Remote object listing with automatic marker pagination."""

import logging
from dataclasses import dataclass, field
from typing import Any, Optional

from botocore.exceptions import BotoCoreError, ClientError

from .exceptions import NetworkError
from .retry import exponential_retry
from .utils import strip_etag, to_unix_seconds

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class KeyItem:
    """Synchronization metadata for one remote object.

    Two items are equal when their keys match, whatever their tag,
    timestamp or size.
    """

    key: str
    """Object key (also the local file name)"""

    etag: str = field(compare=False)
    """Entity tag with the surrounding quotes removed"""

    timestamp: int = field(compare=False)
    """Remote last-modified time (Unix seconds)"""

    size: int = field(compare=False)
    """Object size in bytes"""

    @classmethod
    def from_s3_object(cls, obj: dict[str, Any]) -> Optional["KeyItem"]:
        """Create a KeyItem from an entry of a ListObjects ``Contents`` list.

        Args:
            obj: Raw object dictionary as returned by boto3

        Returns:
            KeyItem, or None if key, ETag, LastModified or Size is missing
        """
        key = obj.get("Key")
        if not key:
            return None
        etag = strip_etag(obj.get("ETag"))
        if etag is None:
            return None
        timestamp = to_unix_seconds(obj.get("LastModified"))
        if timestamp is None:
            return None
        size = obj.get("Size")
        if size is None:
            return None
        return cls(key=key, etag=etag, timestamp=timestamp, size=int(size))


class RemoteCatalog:
    """Fetches the complete listing of a bucket."""

    def __init__(self, client: Any, retry_options: Optional[dict[str, Any]] = None):
        """Initialize the catalog.

        Args:
            client: boto3 S3 client
            retry_options: Extra keyword arguments for exponential_retry
        """
        self.client = client
        self.retry_options = {"retry_on": NetworkError, **(retry_options or {})}

    def list_keys(self, bucket: str) -> list[KeyItem]:
        """List every well-formed object in a bucket.

        The whole paginated listing is retried as one unit, so a failure on
        any page restarts from the first page. Objects lacking a key, ETag,
        timestamp or size are dropped.

        Args:
            bucket: Bucket name

        Returns:
            List of KeyItem objects in listing order

        Raises:
            NetworkError: If the listing keeps failing
        """
        return exponential_retry(
            lambda: self._list_keys_once(bucket), **self.retry_options
        )

    def _list_keys_once(self, bucket: str) -> list[KeyItem]:
        key_items: list[KeyItem] = []
        marker: Optional[str] = None
        pages = 0

        while True:
            output = self._list_objects(bucket, marker)
            pages += 1
            contents = output.get("Contents") or []

            if contents and contents[-1].get("Key"):
                marker = contents[-1]["Key"]

            for obj in contents:
                key_item = KeyItem.from_s3_object(obj)
                if key_item is None:
                    logger.debug(f"Dropping malformed object: {obj.get('Key')!r}")
                    continue
                key_items.append(key_item)

            if not output.get("IsTruncated"):
                break

        logger.debug(f"Listed {len(key_items)} key(s) from {bucket} in {pages} page(s)")
        return key_items

    def _list_objects(self, bucket: str, marker: Optional[str]) -> dict[str, Any]:
        kwargs: dict[str, Any] = {"Bucket": bucket}
        if marker is not None:
            kwargs["Marker"] = marker
        try:
            return self.client.list_objects(**kwargs)
        except (BotoCoreError, ClientError) as e:
            raise NetworkError(f"Failed to list {bucket}: {e}") from e
