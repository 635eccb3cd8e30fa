"""Incremental table backup: prepare, copy log segments, record timestamps."""

from typing import Dict, List, Optional

from returns.result import Failure, Result, Success

from .._utils import logger
from ..base import BaseFileSystem, BaseLogListComputer, LogListResult
from ..config import BackupConfig
from ..exceptions import BackupCancelledError, ConfigurationError
from ..models import BackupInfo, BackupPhase, BackupRequest, BackupType
from .bookkeeping import update_log_timestamps
from .copy_task import BaseCopyTask
from .factory import CopyTaskFactory
from .lifecycle import BackupLifecycleManager
from .locator import LogFileLocator
from .log_list import DirectoryLogListComputer
from .session import CopyOutcome, IncrementalCopySession
from .system_table import BackupSystemTable


class IncrementalTableBackupClient:
    """Drive one incremental backup run from PREPARE to COMPLETE.

    Build a new run with ``create`` or rehydrate a persisted one with
    ``resume``. Each phase returns a ``Result``; the first failure moves the
    run to FAILED (or CANCELLED when a cancel was requested) exactly once and
    the original error is raised to the caller.
    """

    def __init__(
        self,
        backup_info: BackupInfo,
        store: BackupSystemTable,
        config: BackupConfig,
        copy_task: BaseCopyTask,
        log_list_computer: Optional[BaseLogListComputer] = None,
        source_fs: Optional[BaseFileSystem] = None,
        target_fs: Optional[BaseFileSystem] = None
    ):
        self.backup_info = backup_info
        self.store = store
        self.config = config
        self.global_config = config.to_dict()
        self.copy_task = copy_task
        self.manager = BackupLifecycleManager(store, config)
        self.locator = LogFileLocator(
            config.wal,
            source_fs or copy_task.source_filesystem(),
            target_fs or copy_task.target_filesystem()
        )
        self.log_list_computer = log_list_computer or DirectoryLogListComputer(config.wal, self.locator.source_fs)
        self.session = IncrementalCopySession(copy_task, self.locator, self.manager, self.global_config)
        self._cancel_requested = False

    @classmethod
    def create(
        cls,
        store: BackupSystemTable,
        config: BackupConfig,
        backup_id: str,
        request: BackupRequest,
        copy_task: Optional[BaseCopyTask] = None,
        **kwargs
    ) -> "IncrementalTableBackupClient":
        """Build a client for a new run. The copy backend is resolved here, once."""
        if not config.enabled:
            raise ConfigurationError("Backup is not enabled. Set BACKUP_ENABLED=true to enable it")
        if request.backup_type != BackupType.INCREMENTAL:
            raise ConfigurationError(f"Incremental client cannot run a {request.backup_type.value} backup")
        copy_task = copy_task or CopyTaskFactory.create(config.copy.backend, config.to_dict())
        manager = BackupLifecycleManager(store, config)
        backup_info = manager.create_backup_info(backup_id, request)
        return cls(backup_info, store, config, copy_task, **kwargs)

    @classmethod
    def resume(
        cls,
        store: BackupSystemTable,
        config: BackupConfig,
        snapshot: str,
        copy_task: Optional[BaseCopyTask] = None,
        **kwargs
    ) -> "IncrementalTableBackupClient":
        """Rehydrate a client around a persisted run snapshot."""
        backup_info = BackupInfo.from_snapshot(snapshot)
        copy_task = copy_task or CopyTaskFactory.create(config.copy.backend, config.to_dict())
        return cls(backup_info, store, config, copy_task, **kwargs)

    async def execute(self) -> BackupInfo:
        info = self.backup_info
        begun = await self._run_phase(self.manager.begin, info)
        await self._raise_on_failure(begun, "Unexpected exception in incremental-backup: begin")

        prepared = await self._run_phase(self._prepare)
        await self._raise_on_failure(prepared, "Unexpected exception in incremental-backup: prepare")
        log_list: LogListResult = prepared.unwrap()

        copied = await self._run_phase(self._incremental_copy, log_list.files)
        await self._raise_on_failure(copied, "Unexpected exception in incremental-backup: incremental copy")

        booked = await self._run_phase(self._bookkeeping, log_list.new_timestamps)
        await self._raise_on_failure(booked, "Unexpected exception in incremental-backup: bookkeeping")

        try:
            await self.manager.complete(info)
        except Exception as e:
            await self.manager.fail(info, e, "Unexpected exception in incremental-backup: complete")
            raise
        return info

    async def cancel(self) -> None:
        """Request cancellation. Ignored once bookkeeping has started."""
        if self.backup_info.is_terminal or self.backup_info.phase in (BackupPhase.BOOKKEEPING, BackupPhase.COMPLETE):
            logger.info(f"Backup {self.backup_info.backup_id} is past the cancellation point")
            return
        self._cancel_requested = True
        await self.session.cancel()

    async def _run_phase(self, phase_fn, *args) -> Result:
        if self._cancel_requested:
            return Failure(BackupCancelledError(self.backup_info.backup_id))
        try:
            return Success(await phase_fn(*args))
        except Exception as e:
            return Failure(e)

    async def _raise_on_failure(self, result: Result, message: str) -> None:
        if not isinstance(result, Failure):
            return
        error = result.failure()
        if self._cancel_requested:
            await self.manager.cancel(self.backup_info)
            if isinstance(error, BackupCancelledError):
                raise error
            raise BackupCancelledError(self.backup_info.backup_id) from error
        await self.manager.fail(self.backup_info, error, message)
        raise error

    async def _prepare(self) -> LogListResult:
        previous = await self.store.read_log_timestamp_map()
        return await self.log_list_computer.compute(self.backup_info, previous)

    async def _incremental_copy(self, files: List[str]) -> CopyOutcome:
        info = self.backup_info
        info.incr_backup_file_list = files
        await self.manager.advance(info, BackupPhase.INCREMENTAL_COPY)

        outcome = await self.session.run(info, files, info.log_target_dir)
        await self.store.record_wal_files(info.backup_id, outcome.copied_files)
        info.incr_backup_file_list = outcome.copied_files
        return outcome

    async def _bookkeeping(self, new_timestamps: Dict[str, int]) -> Optional[int]:
        await self.manager.advance(self.backup_info, BackupPhase.BOOKKEEPING)
        return await update_log_timestamps(self.store, self.backup_info, new_timestamps)
