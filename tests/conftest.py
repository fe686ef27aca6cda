"""Shared fixtures: an in-memory S3 client and parquet helpers."""

import hashlib
import io
import os
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Optional

import pandas as pd
import pytest
from botocore.response import StreamingBody


def file_md5(path: Path) -> str:
    """In-process stand-in for the md5sum utility."""
    return hashlib.md5(path.read_bytes()).hexdigest()


def write_table(path: Path, ids: range, mtime: Optional[int] = None) -> Path:
    """Write a small weather-like parquet file with one row per id."""
    df = pd.DataFrame(
        {
            "id": [f"row-{i}" for i in ids],
            "temperature": [float(i) / 10 for i in ids],
        }
    )
    df.to_parquet(path, index=False)
    if mtime is not None:
        os.utime(path, (mtime, mtime))
    return path


def table_bytes(ids: range) -> bytes:
    buf = io.BytesIO()
    pd.DataFrame(
        {
            "id": [f"row-{i}" for i in ids],
            "temperature": [float(i) / 10 for i in ids],
        }
    ).to_parquet(buf, index=False)
    return buf.getvalue()


class FakeS3Client:
    """Minimal in-memory implementation of the boto3 calls used by bucketsync."""

    def __init__(self, page_size: int = 1000, clock: int = 1_700_000_000):
        self.page_size = page_size
        self.clock = clock
        self.objects: dict[str, dict[str, Any]] = {}
        self.list_calls: list[Optional[str]] = []
        self.put_calls: list[str] = []
        self.get_calls: list[str] = []

    def add_object(
        self,
        key: str,
        data: bytes,
        timestamp: Optional[int] = None,
        etag: Optional[str] = None,
    ) -> None:
        self.objects[key] = {
            "data": data,
            "etag": etag or hashlib.md5(data).hexdigest(),
            "timestamp": self.clock if timestamp is None else timestamp,
        }

    def list_objects(self, Bucket: str, Marker: Optional[str] = None) -> dict:
        self.list_calls.append(Marker)
        keys = sorted(k for k in self.objects if Marker is None or k > Marker)
        page = keys[: self.page_size]
        contents = [
            {
                "Key": key,
                "ETag": f'"{self.objects[key]["etag"]}"',
                "LastModified": datetime.fromtimestamp(
                    self.objects[key]["timestamp"], tz=timezone.utc
                ),
                "Size": len(self.objects[key]["data"]),
            }
            for key in page
        ]
        return {"Contents": contents, "IsTruncated": len(keys) > len(page)}

    def get_object(self, Bucket: str, Key: str) -> dict:
        self.get_calls.append(Key)
        obj = self.objects[Key]
        return {
            "Body": StreamingBody(io.BytesIO(obj["data"]), len(obj["data"])),
            "ETag": f'"{obj["etag"]}"',
        }

    def put_object(self, Bucket: str, Key: str, Body: Any) -> dict:
        self.put_calls.append(Key)
        self.add_object(Key, Body.read())
        return {"ETag": f'"{self.objects[Key]["etag"]}"'}


class FixedRandom:
    """Random generator whose randrange always returns the same value."""

    def __init__(self, value: int):
        self.value = value

    def randrange(self, stop: int) -> int:
        return self.value


@pytest.fixture
def s3_client():
    """Provide an empty in-memory S3 client."""
    return FakeS3Client()


@pytest.fixture
def no_sleep():
    """Retry options that never sleep and always draw the maximum factor."""
    return {"sleep": lambda seconds: None, "rng": FixedRandom(999)}
