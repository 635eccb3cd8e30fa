"""Tests for the DistCp copy backend, with the subprocess mocked out."""

import pytest
from unittest.mock import AsyncMock, MagicMock, patch

from walbackup.backup.copiers.distcp import DistCpCopyTask, HadoopFileSystem
from walbackup.exceptions import BackupIOError
from walbackup.models import BackupInfo, BackupType


def make_process(returncode=0, stdout=b"", stderr=b""):
    proc = MagicMock()
    proc.returncode = returncode
    proc.communicate = AsyncMock(return_value=(stdout, stderr))
    return proc


@pytest.fixture
def backup_info():
    return BackupInfo(backup_id="b1", tables=["t1"], target_root_dir="/backup", workers=8, bandwidth=50)


def test_build_command(backup_info):
    task = DistCpCopyTask({"distcp_command": "/opt/hadoop/bin/hadoop"})

    cmd = task.build_command(backup_info, ["/a/x.1", "/a/y.2"], "/backup/b1/WALs")

    assert cmd == [
        "/opt/hadoop/bin/hadoop", "distcp", "-m", "8", "-bandwidth", "50",
        "/a/x.1", "/a/y.2", "/backup/b1/WALs",
    ]


def test_build_command_without_bandwidth_limit():
    info = BackupInfo(backup_id="b1", tables=["t1"], target_root_dir="/backup")

    cmd = DistCpCopyTask().build_command(info, ["/a/x.1"], "/dst")

    assert cmd == ["hadoop", "distcp", "-m", "1", "/a/x.1", "/dst"]


@pytest.mark.asyncio
async def test_copy_returns_process_exit_code(backup_info):
    task = DistCpCopyTask()
    with patch("asyncio.create_subprocess_exec", AsyncMock(return_value=make_process(0))) as mock_exec:
        status = await task.copy(backup_info, None, {}, BackupType.INCREMENTAL, ["/a/x.1", "/dst"])

    assert status == 0
    assert mock_exec.call_args.args[:2] == ("hadoop", "distcp")
    assert task._jobs == {}


@pytest.mark.asyncio
async def test_copy_failure_status(backup_info):
    proc = make_process(2, stderr=b"java.io.FileNotFoundException")
    with patch("asyncio.create_subprocess_exec", AsyncMock(return_value=proc)):
        status = await DistCpCopyTask().copy(backup_info, None, {}, BackupType.INCREMENTAL, ["/a/x.1", "/dst"])

    assert status == 2


@pytest.mark.asyncio
async def test_missing_binary_raises_io_error(backup_info):
    with patch("asyncio.create_subprocess_exec", AsyncMock(side_effect=FileNotFoundError("hadoop"))):
        with pytest.raises(BackupIOError):
            await DistCpCopyTask().copy(backup_info, None, {}, BackupType.INCREMENTAL, ["/a/x.1", "/dst"])


@pytest.mark.asyncio
async def test_cancel_terminates_running_job():
    task = DistCpCopyTask()
    proc = make_process(None)
    task._jobs["b1"] = proc

    await task.cancel("b1")
    await task.cancel("other")

    proc.terminate.assert_called_once()


@pytest.mark.asyncio
async def test_hadoop_filesystem():
    fs = HadoopFileSystem()
    listing = b"/hbase/WALs/rs1/rs1.100\n/hbase/WALs/rs1/rs1.200\n"
    missing = b"ls: `/missing': No such file or directory\n"

    with patch("asyncio.create_subprocess_exec", AsyncMock(return_value=make_process(0, stdout=listing))):
        assert await fs.list_dir("/hbase/WALs/rs1") == ["rs1.100", "rs1.200"]
    with patch("asyncio.create_subprocess_exec", AsyncMock(return_value=make_process(1, stderr=missing))):
        assert await fs.exists("/hbase/WALs/rs1/rs1.300") is False
        assert await fs.list_dir("/missing") == []


@pytest.fixture
def failing_hadoop(tmp_path):
    """A hadoop command that always fails with a transport error."""
    stub = tmp_path / "hadoop"
    stub.write_text("#!/bin/sh\necho 'Call to namenode failed: Connection refused' >&2\nexit 255\n")
    stub.chmod(0o755)
    return str(stub)


@pytest.mark.asyncio
async def test_hadoop_filesystem_errors_are_not_absence(failing_hadoop):
    fs = HadoopFileSystem(failing_hadoop)

    with pytest.raises(BackupIOError, match="Connection refused"):
        await fs.exists("/logs/active/rs1/wal.100")
    with pytest.raises(BackupIOError, match="exited with 255"):
        await fs.list_dir("/logs/active/rs1")


@pytest.mark.asyncio
async def test_list_dir_failure_other_than_missing_raises():
    fs = HadoopFileSystem()
    proc = make_process(1, stderr=b"ls: Permission denied: user=backup")

    with patch("asyncio.create_subprocess_exec", AsyncMock(return_value=proc)):
        with pytest.raises(BackupIOError, match="Permission denied"):
            await fs.list_dir("/hbase/WALs")
