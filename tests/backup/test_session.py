"""Tests for IncrementalCopySession."""

import pytest

from walbackup.backup.locator import LogFileLocator
from walbackup.backup.session import MAX_COPY_ATTEMPTS, IncrementalCopySession
from walbackup.exceptions import (
    CopyTaskError,
    CorruptBackupStateError,
    IncrementalCopyIncompleteError,
)
from walbackup.models import BackupInfo

from tests.backup.mock_copy_tasks import FakeFileSystem, RecordingCopyTask

TARGET = "/backup/b1/WALs"
SEG1 = "/logs/active/rs1/seg1"
SEG2 = "/logs/active/rs2/seg2"
SEG2_ARCHIVED = "/logs/archived/rs2/seg2"


@pytest.fixture
def backup_info():
    return BackupInfo(backup_id="b1", tables=["t1"], target_root_dir="/backup")


def make_session(wal_config, source_paths, statuses=None, lose=()):
    source = FakeFileSystem(source_paths)
    target = FakeFileSystem()
    task = RecordingCopyTask(source, target, statuses=statuses, lose=lose)
    locator = LogFileLocator(wal_config, source, target)
    return IncrementalCopySession(task, locator), task, target


@pytest.mark.asyncio
async def test_all_files_copied_first_attempt(wal_config, backup_info):
    session, task, target = make_session(wal_config, [SEG1, SEG2])

    outcome = await session.run(backup_info, [SEG1, SEG2], TARGET)

    assert outcome.attempts == 1
    assert outcome.copied_files == [SEG1, SEG2]
    assert task.calls == [[SEG1, SEG2, TARGET]]
    assert target.paths == {f"{TARGET}/seg1", f"{TARGET}/seg2"}


@pytest.mark.asyncio
async def test_rotated_file_is_retried_from_archive(wal_config, backup_info):
    """seg2 rotates to the archived directory while the first copy runs."""
    session, task, target = make_session(
        wal_config, [SEG1, SEG2, SEG2_ARCHIVED], lose=[SEG2]
    )

    outcome = await session.run(backup_info, [SEG1, SEG2], TARGET)

    assert outcome.attempts == 2
    assert task.calls == [[SEG1, SEG2, TARGET], [SEG2_ARCHIVED, TARGET]]
    assert outcome.copied_files == [SEG1, SEG2_ARCHIVED]
    assert f"{TARGET}/seg2" in target.paths


@pytest.mark.asyncio
async def test_missing_file_without_active_marker_is_corrupt(wal_config, backup_info):
    other = "/other/rs2/seg2"
    session, task, _ = make_session(wal_config, [SEG1, other], lose=[other])

    with pytest.raises(CorruptBackupStateError) as exc_info:
        await session.run(backup_info, [SEG1, other], TARGET)

    assert exc_info.value.path == other
    assert other in str(exc_info.value)
    assert len(task.calls) == 1


@pytest.mark.asyncio
async def test_non_zero_status_fails_without_retry(wal_config, backup_info):
    session, task, _ = make_session(wal_config, [SEG1, SEG2], statuses=[1])

    with pytest.raises(CopyTaskError) as exc_info:
        await session.run(backup_info, [SEG1, SEG2], TARGET)

    assert exc_info.value.status == 1
    assert exc_info.value.files == [SEG1, SEG2]
    assert len(task.calls) == 1


@pytest.mark.asyncio
async def test_still_missing_after_retry_is_incomplete(wal_config, backup_info):
    session, task, _ = make_session(
        wal_config, [SEG1, SEG2, SEG2_ARCHIVED], lose=[SEG2, SEG2_ARCHIVED]
    )

    with pytest.raises(IncrementalCopyIncompleteError) as exc_info:
        await session.run(backup_info, [SEG1, SEG2], TARGET)

    assert exc_info.value.missing_files == [SEG2_ARCHIVED]
    assert len(task.calls) == 2


@pytest.mark.asyncio
async def test_copy_backend_called_at_most_twice(wal_config, backup_info):
    files = [f"/logs/active/rs{i}/seg{i}" for i in range(20)]
    session, task, _ = make_session(wal_config, files, lose=files + [f.replace("active", "archived") for f in files])

    with pytest.raises(IncrementalCopyIncompleteError) as exc_info:
        await session.run(backup_info, files, TARGET)

    assert len(task.calls) == MAX_COPY_ATTEMPTS == 2
    assert len(exc_info.value.missing_files) == 20


@pytest.mark.asyncio
async def test_absent_sources_are_dropped_before_copy(wal_config, backup_info):
    session, task, _ = make_session(wal_config, [SEG2])

    outcome = await session.run(backup_info, [SEG1, SEG2], TARGET)

    assert task.calls == [[SEG2, TARGET]]
    assert outcome.copied_files == [SEG2]


@pytest.mark.asyncio
async def test_empty_file_list_is_noop(wal_config, backup_info):
    session, task, _ = make_session(wal_config, [])

    outcome = await session.run(backup_info, [], TARGET)

    assert outcome.copied_files == []
    assert outcome.attempts == 0
    assert task.calls == []


@pytest.mark.asyncio
async def test_replay_after_sources_moved_copies_nothing(wal_config, backup_info):
    session, task, target = make_session(wal_config, [SEG1, SEG2])
    await session.run(backup_info, [SEG1, SEG2], TARGET)
    assert len(task.calls) == 1

    # an earlier run already transferred and removed the sources
    session.locator.source_fs.paths.clear()
    outcome = await session.run(backup_info, [SEG1, SEG2], TARGET)

    assert len(task.calls) == 1
    assert outcome.copied_files == []
    assert target.paths == {f"{TARGET}/seg1", f"{TARGET}/seg2"}


@pytest.mark.asyncio
async def test_cancel_forwards_to_running_job(wal_config, backup_info):
    session, task, _ = make_session(wal_config, [SEG1])

    assert await session.cancel() is False

    async def copy_and_cancel(*args, **kwargs):
        assert await session.cancel() is True
        return 1

    task.copy = copy_and_cancel
    with pytest.raises(CopyTaskError):
        await session.run(backup_info, [SEG1], TARGET)
    assert task.cancelled == ["b1"]
