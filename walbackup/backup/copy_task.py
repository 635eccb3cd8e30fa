"""Pluggable bulk copy contract."""

from abc import ABC, abstractmethod
from typing import Any, List, Optional

from ..base import BaseFileSystem, LocalFileSystem
from ..models import BackupInfo, BackupType


class BaseCopyTask(ABC):
    """Executes one bulk copy invocation and supports best-effort cancellation.

    Implementations receive the sources followed by the destination directory
    as the final element of ``paths``. Failure is binary: 0 means every
    reachable source was handed to the copy mechanism, anything else is a
    failure of the copy job. Transport faults raise ``BackupIOError``.
    """

    def __init__(self, global_config: Optional[dict] = None):
        self.global_config = global_config or {}

    @abstractmethod
    async def copy(
        self,
        backup_info: BackupInfo,
        manager: Any,
        config: dict,
        backup_type: BackupType,
        paths: List[str]
    ) -> int:
        """Copy backup data to destination.

        Args:
            backup_info: Run being copied; its backup_id is the job handle
            manager: Lifecycle manager owning the run
            config: Global configuration dict
            backup_type: FULL or INCREMENTAL
            paths: Source paths followed by the destination directory

        Returns:
            0 on success, non-zero on failure
        """
        raise NotImplementedError

    @abstractmethod
    async def cancel(self, job_handle: str) -> None:
        """Request cancellation of a running copy job.

        Returns once the request is issued, without waiting for the job to stop.
        """
        raise NotImplementedError

    def source_filesystem(self) -> BaseFileSystem:
        return LocalFileSystem()

    def target_filesystem(self) -> BaseFileSystem:
        return LocalFileSystem()


def split_paths(paths: List[str]):
    """Split copy arguments into (sources, destination)."""
    if len(paths) < 2:
        raise ValueError("copy needs at least one source and a destination")
    return list(paths[:-1]), paths[-1]
