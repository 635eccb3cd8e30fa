"""Tests for the S3 copy backend with a mocked client."""

import pytest
from unittest.mock import AsyncMock, MagicMock

from botocore.exceptions import ClientError

from walbackup.backup.copiers.s3 import S3CopyTask, S3FileSystem, object_key
from walbackup.models import BackupInfo, BackupType


def mock_session(s3):
    session = MagicMock()
    session.client.return_value.__aenter__.return_value = s3
    return session


@pytest.fixture
def backup_info():
    return BackupInfo(backup_id="b1", tables=["t1"], target_root_dir="/backup", workers=2)


def test_object_key():
    assert object_key("", "/backup/b1/WALs/rs1.100") == "backup/b1/WALs/rs1.100"
    assert object_key("cluster-a", "/backup/b1/WALs/rs1.100") == "cluster-a/backup/b1/WALs/rs1.100"


@pytest.mark.asyncio
async def test_upload_one_object_per_file(backup_info):
    task = S3CopyTask({"s3_bucket": "bkt", "s3_prefix": "pfx"})
    s3 = AsyncMock()
    task.session = mock_session(s3)

    status = await task.copy(
        backup_info, None, {}, BackupType.INCREMENTAL,
        ["/hbase/WALs/rs1/rs1.100", "/hbase/WALs/rs2/rs2.200", "/backup/b1/WALs"]
    )

    assert status == 0
    keys = sorted(call.args[2] for call in s3.upload_file.await_args_list)
    assert keys == ["pfx/backup/b1/WALs/rs1.100", "pfx/backup/b1/WALs/rs2.200"]


@pytest.mark.asyncio
async def test_vanished_source_is_skipped(backup_info):
    task = S3CopyTask({"s3_bucket": "bkt"})
    s3 = AsyncMock()
    s3.upload_file.side_effect = [FileNotFoundError("gone"), None]
    task.session = mock_session(s3)
    backup_info.workers = 1

    status = await task.copy(backup_info, None, {}, BackupType.INCREMENTAL, ["/a/x.1", "/a/y.2", "/dst"])

    assert status == 0


@pytest.mark.asyncio
async def test_client_error_fails_copy(backup_info):
    task = S3CopyTask({"s3_bucket": "bkt"})
    s3 = AsyncMock()
    s3.upload_file.side_effect = ClientError({"Error": {"Code": "AccessDenied"}}, "PutObject")
    task.session = mock_session(s3)

    status = await task.copy(backup_info, None, {}, BackupType.INCREMENTAL, ["/a/x.1", "/dst"])

    assert status == 1


@pytest.mark.asyncio
async def test_cancel_skips_queued_uploads(backup_info):
    task = S3CopyTask({"s3_bucket": "bkt"})
    s3 = AsyncMock()
    backup_info.workers = 1

    async def upload_then_cancel(src, bucket, key):
        await task.cancel("b1")

    s3.upload_file.side_effect = upload_then_cancel
    task.session = mock_session(s3)

    status = await task.copy(backup_info, None, {}, BackupType.INCREMENTAL, ["/a/x.1", "/a/y.2", "/dst"])

    assert status == 1
    assert s3.upload_file.await_count == 1


@pytest.mark.asyncio
async def test_filesystem_exists():
    fs = S3FileSystem("bkt")
    s3 = AsyncMock()
    s3.head_object.side_effect = [{}, ClientError({"Error": {"Code": "404"}}, "HeadObject")]
    fs.session = mock_session(s3)

    assert await fs.exists("/backup/b1/WALs/rs1.100") is True
    assert await fs.exists("/backup/b1/WALs/rs1.200") is False
    assert s3.head_object.await_args_list[0].kwargs == {"Bucket": "bkt", "Key": "backup/b1/WALs/rs1.100"}


def test_target_filesystem_is_bucket():
    task = S3CopyTask({"s3_bucket": "bkt", "s3_prefix": "pfx"})

    fs = task.target_filesystem()

    assert isinstance(fs, S3FileSystem)
    assert (fs.bucket, fs.prefix) == ("bkt", "pfx")
