"""Tests for the restore command line driver."""

import pytest
from unittest.mock import AsyncMock, patch

from walbackup.config import BackupConfig
from walbackup.exceptions import BackupError
from walbackup.models import BackupInfo, BackupState
from walbackup.restore.driver import (
    EXIT_BACKUP_DISABLED,
    EXIT_BACKUP_SET_EMPTY,
    EXIT_BACKUP_SET_ERROR,
    EXIT_FAILURE,
    EXIT_RESTORE_FAILED,
    EXIT_SUCCESS,
    EXIT_TABLE_MAPPING_MISMATCH,
    EXIT_USAGE,
    RestoreDriver,
    build_parser,
    main,
)


async def add_complete_backup(store, backup_id="b1", tables=("t1", "t2")):
    info = BackupInfo(
        backup_id=backup_id,
        tables=list(tables),
        target_root_dir="/backup",
        state=BackupState.COMPLETE,
    )
    await store.create_backup_info(info)


@pytest.fixture
def driver(store, backup_config):
    return RestoreDriver(config=backup_config, store=store)


def test_parser_options():
    args = build_parser().parse_args(["/backup", "b1", "t1,t2", "-o", "-c", "-m", "n1,n2"])

    assert args.backup_root_dir == "/backup"
    assert args.backup_id == "b1"
    assert args.tables == "t1,t2"
    assert args.overwrite and args.check
    assert args.mapping == "n1,n2"
    assert args.backup_set is None


@pytest.mark.asyncio
async def test_restore_tables(driver, store, memory_table):
    await add_complete_backup(store)

    assert await driver.run(["/backup", "b1", "t1,t2", "-m", "n1,n2", "-o"]) == EXIT_SUCCESS

    rows = await memory_table.scan("restore:")
    assert [r.row for r in rows] == ["restore:b1"]


@pytest.mark.asyncio
async def test_check_only_does_not_submit(driver, store, memory_table):
    await add_complete_backup(store)

    assert await driver.run(["/backup", "b1", "t1", "-c"]) == EXIT_SUCCESS
    assert await memory_table.scan("restore:") == []


@pytest.mark.asyncio
async def test_restore_backup_set(driver, store):
    await add_complete_backup(store)
    await store.add_to_backup_set("nightly", ["t1", "t2"])

    assert await driver.run(["/backup", "b1", "-s", "nightly"]) == EXIT_SUCCESS


@pytest.mark.asyncio
async def test_backup_disabled(store, capsys):
    driver = RestoreDriver(config=BackupConfig(enabled=False), store=store)

    assert await driver.run(["/backup", "b1", "t1"]) == EXIT_BACKUP_DISABLED
    assert "BACKUP_ENABLED=true" in capsys.readouterr().err


@pytest.mark.asyncio
async def test_missing_tables_and_set(driver):
    assert await driver.run(["/backup", "b1"]) == EXIT_USAGE


@pytest.mark.asyncio
async def test_unparseable_arguments(driver, capsys):
    assert await driver.run(["/backup"]) == EXIT_FAILURE
    assert "Error when parsing command-line arguments" in capsys.readouterr().out


@pytest.mark.asyncio
async def test_backup_set_lookup_error(driver, store):
    store.describe_backup_set = AsyncMock(side_effect=BackupError("store unavailable"))

    assert await driver.run(["/backup", "b1", "-s", "nightly"]) == EXIT_BACKUP_SET_ERROR


@pytest.mark.asyncio
async def test_backup_set_empty(driver, capsys):
    assert await driver.run(["/backup", "b1", "-s", "nightly"]) == EXIT_BACKUP_SET_EMPTY
    assert "either empty or does not exist" in capsys.readouterr().out


@pytest.mark.asyncio
async def test_mapping_mismatch(driver, store):
    await add_complete_backup(store)

    assert await driver.run(["/backup", "b1", "t1,t2", "-m", "n1"]) == EXIT_TABLE_MAPPING_MISMATCH


@pytest.mark.asyncio
async def test_restore_failure(driver, store):
    assert await driver.run(["/backup", "missing", "t1"]) == EXIT_RESTORE_FAILED

    await add_complete_backup(store)
    assert await driver.run(["/backup", "b1", "t9"]) == EXIT_RESTORE_FAILED
    assert await driver.run(["/elsewhere", "b1", "t1"]) == EXIT_RESTORE_FAILED


def test_main_reads_env_file(tmp_path, monkeypatch):
    env_file = tmp_path / "backup.env"
    env_file.write_text("BACKUP_ENABLED=false\n")
    monkeypatch.setenv("BACKUP_ENABLED", "true")

    with patch("walbackup.restore.driver.logging.basicConfig"):
        assert main(["/backup", "b1", "t1", "--env-file", str(env_file)]) == EXIT_BACKUP_DISABLED
