"""Tests for the sync engine."""

import os
from unittest.mock import Mock

import pytest
from botocore.exceptions import ClientError
from conftest import FakeS3Client, file_md5, table_bytes, write_table

from bucketsync import columnar
from bucketsync.exceptions import (
    FilesystemError,
    FingerprintUtilityMissing,
    NetworkError,
)
from bucketsync.sync.comparator import SyncAction
from bucketsync.sync.engine import SyncEngine, SyncReport


@pytest.fixture
def sync_engine(s3_client, no_sleep):
    """Create a sync engine on the in-memory client."""
    return SyncEngine(s3_client, fingerprint=file_md5, retry_options=no_sleep)


class TestSyncReport:
    def test_summary(self):
        report = SyncReport("weather-data", "bucket", 3, 1, 2)

        assert report.summary() == (
            "weather-data bucket s3_bucket nkeys 3 uploaded 1 downloaded 2"
        )
        assert str(report) == report.summary()

    def test_summary_mentions_failures(self):
        report = SyncReport("t", "b", 1, 0, 0, failed=(("a.parquet", "boom"),))

        assert report.summary().endswith("failed 1")


class TestSyncDirectory:
    """End-to-end passes against the in-memory client."""

    def test_missing_directory_aborts(self, sync_engine, tmp_path):
        with pytest.raises(FilesystemError, match="does not exist"):
            sync_engine.sync_directory("t", tmp_path / "nope", "bucket", True)

    def test_file_instead_of_directory_aborts(self, sync_engine, tmp_path):
        (tmp_path / "file").write_text("x")

        with pytest.raises(FilesystemError, match="not a directory"):
            sync_engine.sync_directory("t", tmp_path / "file", "bucket", True)

    def test_listing_failure_aborts(self, tmp_path, no_sleep):
        client = Mock()
        client.list_objects.side_effect = ClientError(
            {"Error": {"Code": "AccessDenied"}}, "ListObjects"
        )
        engine = SyncEngine(client, fingerprint=file_md5, retry_options=no_sleep)

        with pytest.raises(NetworkError):
            engine.sync_directory("t", tmp_path, "bucket", True)

    def test_empty_sides(self, sync_engine, tmp_path):
        report = sync_engine.sync_directory("t", tmp_path, "bucket", True)

        assert (report.n_keys, report.uploaded, report.downloaded) == (0, 0, 0)
        assert report.failed == ()

    def test_local_only_file_is_uploaded(self, sync_engine, s3_client, tmp_path):
        path = write_table(tmp_path / "b.parquet", range(10))

        report = sync_engine.sync_directory("t", tmp_path, "bucket", True)

        assert report.uploaded == 1
        assert report.downloaded == 0
        assert s3_client.objects["b.parquet"]["data"] == path.read_bytes()

    def test_remote_only_file_is_downloaded(self, sync_engine, s3_client, tmp_path):
        s3_client.add_object("a.parquet", table_bytes(range(10)))

        report = sync_engine.sync_directory("t", tmp_path, "bucket", False)

        assert report.n_keys == 1
        assert report.downloaded == 1
        assert report.uploaded == 0
        assert columnar.row_count(columnar.read(tmp_path / "a.parquet")) == 10

    def test_conflict_scenario_merges_and_uploads(
        self, sync_engine, s3_client, tmp_path
    ):
        """Local 100 rows (mtime 10) vs remote 80 rows (tag X, mtime 20)."""
        write_table(tmp_path / "a.parquet", range(0, 100), mtime=10)
        s3_client.add_object(
            "a.parquet", table_bytes(range(100, 180)), timestamp=20, etag="X"
        )

        report = sync_engine.sync_directory("t", tmp_path, "bucket", True)

        assert report.downloaded == 1
        # Upload decisions come from the pre-download snapshot
        assert report.uploaded == 1
        merged = columnar.read(tmp_path / "a.parquet")
        assert columnar.row_count(merged) >= 100
        assert columnar.row_count(merged) == 180
        stored = s3_client.objects["a.parquet"]["data"]
        assert stored == (tmp_path / "a.parquet").read_bytes()

    def test_equal_timestamp_is_skipped(self, sync_engine, s3_client, tmp_path):
        write_table(tmp_path / "c.parquet", range(5), mtime=5)
        s3_client.add_object("c.parquet", table_bytes(range(50)), timestamp=5)

        report = sync_engine.sync_directory("t", tmp_path, "bucket", True)

        assert (report.uploaded, report.downloaded) == (0, 0)
        assert s3_client.get_calls == []
        assert s3_client.put_calls == []

    def test_second_pass_is_idempotent(self, sync_engine, s3_client, tmp_path):
        write_table(tmp_path / "b.parquet", range(10), mtime=1_000)
        s3_client.add_object("a.parquet", table_bytes(range(20)), timestamp=2_000)

        first = sync_engine.sync_directory("t", tmp_path, "bucket", True)
        second = sync_engine.sync_directory("t", tmp_path, "bucket", True)

        assert (first.uploaded, first.downloaded) == (1, 1)
        assert (second.n_keys, second.uploaded, second.downloaded) == (2, 0, 0)

    def test_size_mode_asymmetry(self, sync_engine, s3_client, tmp_path):
        """A smaller local file is downloaded into, but never uploaded."""
        write_table(tmp_path / "a.parquet", range(5), mtime=10)
        s3_client.add_object("a.parquet", table_bytes(range(500)), timestamp=20)

        report = sync_engine.sync_directory("t", tmp_path, "bucket", False)

        assert report.downloaded == 1
        assert report.uploaded == 0
        assert columnar.row_count(columnar.read(tmp_path / "a.parquet")) == 500

    def test_rescan_after_download_avoids_redundant_upload(
        self, sync_engine, s3_client, tmp_path
    ):
        s3_client.add_object("a.parquet", table_bytes(range(10)), timestamp=20)

        report = sync_engine.sync_directory(
            "t", tmp_path, "bucket", True, rescan_after_download=True
        )

        assert report.downloaded == 1
        assert report.uploaded == 0

    def test_subdirectories_are_ignored(self, sync_engine, s3_client, tmp_path):
        (tmp_path / "nested").mkdir()
        write_table(tmp_path / "nested" / "x.parquet", range(3))

        report = sync_engine.sync_directory("t", tmp_path, "bucket", True)

        assert report.uploaded == 0
        assert s3_client.objects == {}

    def test_single_failure_does_not_abort_pass(self, s3_client, no_sleep, tmp_path):
        s3_client.add_object("good.parquet", table_bytes(range(3)))
        s3_client.add_object("bad.parquet", table_bytes(range(3)))
        write_table(tmp_path / "local.parquet", range(3))

        original_get = s3_client.get_object

        def get_object(Bucket, Key):
            if Key == "bad.parquet":
                raise ClientError({"Error": {"Code": "InternalError"}}, "GetObject")
            return original_get(Bucket=Bucket, Key=Key)

        s3_client.get_object = get_object
        engine = SyncEngine(s3_client, fingerprint=file_md5, retry_options=no_sleep)

        report = engine.sync_directory("t", tmp_path, "bucket", True)

        assert report.downloaded == 1
        assert report.uploaded == 1
        assert [key for key, _ in report.failed] == ["bad.parquet"]
        assert (tmp_path / "good.parquet").exists()
        assert not (tmp_path / "bad.parquet").exists()

    def test_missing_fingerprint_utility_is_fatal(self, s3_client, tmp_path):
        write_table(tmp_path / "a.parquet", range(3), mtime=10)
        s3_client.add_object("a.parquet", table_bytes(range(4)), timestamp=20)
        fingerprint = Mock(side_effect=FingerprintUtilityMissing("md5sum"))
        engine = SyncEngine(s3_client, fingerprint=fingerprint)

        with pytest.raises(FingerprintUtilityMissing):
            engine.sync_directory("t", tmp_path, "bucket", True)

    def test_merge_failure_is_file_scoped(self, sync_engine, s3_client, tmp_path):
        """A conflicting file that cannot be merged does not stop the pass."""
        bad = tmp_path / "bad.parquet"
        bad.write_bytes(b"not a parquet file")
        os.utime(bad, (10, 10))
        s3_client.add_object("bad.parquet", table_bytes(range(3)), timestamp=20)
        s3_client.add_object("good.parquet", table_bytes(range(3)))

        report = sync_engine.sync_directory("t", tmp_path, "bucket", True)

        assert report.downloaded == 1
        assert [key for key, _ in report.failed] == ["bad.parquet"]
        assert "Failed to merge" in report.failed[0][1]
        assert bad.read_bytes() == b"not a parquet file"
        assert (tmp_path / "good.parquet").exists()

    def test_leftover_temp_files_are_never_uploaded(
        self, sync_engine, s3_client, tmp_path
    ):
        (tmp_path / ".tmp_AbCd1234").write_bytes(b"partial download")
        write_table(tmp_path / "a.parquet", range(3))

        report = sync_engine.sync_directory("t", tmp_path, "bucket", True)

        assert report.uploaded == 1
        assert list(s3_client.objects) == ["a.parquet"]

    def test_key_outside_directory_is_ignored(self, sync_engine, s3_client, tmp_path):
        local_dir = tmp_path / "cache"
        local_dir.mkdir()
        s3_client.add_object("../escape.parquet", table_bytes(range(3)))

        report = sync_engine.sync_directory("t", local_dir, "bucket", True)

        assert report.n_keys == 1
        assert report.downloaded == 0
        assert not (tmp_path / "escape.parquet").exists()
        assert s3_client.get_calls == []

    def test_nested_key_is_ignored_on_every_pass(
        self, sync_engine, s3_client, tmp_path
    ):
        (tmp_path / "sub").mkdir()
        s3_client.add_object("sub/a.parquet", table_bytes(range(3)))

        first = sync_engine.sync_directory("t", tmp_path, "bucket", True)
        second = sync_engine.sync_directory("t", tmp_path, "bucket", True)

        assert (first.downloaded, second.downloaded) == (0, 0)
        assert not (tmp_path / "sub" / "a.parquet").exists()


class TestPlan:
    def test_plan_does_not_transfer(self, sync_engine, s3_client, tmp_path):
        write_table(tmp_path / "b.parquet", range(3))
        s3_client.add_object("a.parquet", table_bytes(range(3)))

        downloads, uploads = sync_engine.plan(tmp_path, "bucket", True)

        assert [(d.key, d.action) for d in downloads] == [
            ("a.parquet", SyncAction.DOWNLOAD)
        ]
        assert [(d.key, d.action) for d in uploads] == [
            ("b.parquet", SyncAction.UPLOAD)
        ]
        assert s3_client.get_calls == []
        assert s3_client.put_calls == []
        assert not (tmp_path / "a.parquet").exists()


def test_engine_uses_shared_client():
    client = FakeS3Client()
    engine = SyncEngine(client)

    assert engine.catalog.client is client
    assert engine.operations.client is client
