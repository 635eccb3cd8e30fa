"""Incremental copy of log segments with a rotation-aware retry."""

from dataclasses import dataclass, field
from typing import Any, List, Optional

from .._utils import logger
from ..exceptions import CopyTaskError, IncrementalCopyIncompleteError
from ..models import BackupInfo, BackupType
from .copy_task import BaseCopyTask
from .locator import LogFileLocator

# A segment rotates out of the active directory at most once during a copy
# window; anything still missing after the archived-path retry is lost.
MAX_COPY_ATTEMPTS = 2


@dataclass
class CopyOutcome:
    """Files actually copied (rotated paths already rewritten) and attempts used."""
    copied_files: List[str] = field(default_factory=list)
    attempts: int = 0


class IncrementalCopySession:
    """Copies one file list to a log target directory.

    Source files that no longer exist are dropped before copying, so replaying
    a session over files an earlier run already moved is a no-op. After a
    successful copy job, any file absent at the destination is assumed to have
    been rotated into the archived log directory and is copied once more from
    there.
    """

    def __init__(
        self,
        copy_task: BaseCopyTask,
        locator: LogFileLocator,
        manager: Any = None,
        global_config: Optional[dict] = None
    ):
        self.copy_task = copy_task
        self.locator = locator
        self.manager = manager
        self.global_config = global_config or {}
        self._active_job: Optional[str] = None

    async def run(self, backup_info: BackupInfo, file_list: List[str], log_target_dir: str) -> CopyOutcome:
        logger.info("Incremental copy is starting.")
        files = await self.locator.filter_existing(file_list)
        if not files:
            logger.info(f"No incremental log files left to copy for {backup_info.backup_id}")
            return CopyOutcome()

        copied = list(files)
        batch = list(files)
        attempt = 0
        while True:
            attempt += 1
            self._active_job = backup_info.backup_id
            try:
                status = await self.copy_task.copy(
                    backup_info,
                    self.manager,
                    self.global_config,
                    BackupType.INCREMENTAL,
                    batch + [log_target_dir]
                )
            finally:
                self._active_job = None

            if status != 0:
                logger.error(f"Copy incremental log files failed with return code: {status}.")
                raise CopyTaskError(status, batch, log_target_dir)

            missing = await self.locator.missing_at_destination(copied, log_target_dir)
            if not missing:
                break

            if attempt >= MAX_COPY_ATTEMPTS:
                logger.error(f"Copy could not finish the following files: {','.join(missing)}")
                raise IncrementalCopyIncompleteError(missing)

            converted = self.locator.to_archived_all(missing)
            logger.warning(
                f"{len(missing)} file(s) moved to the archived log directory during copy, "
                f"retrying: {','.join(converted)}"
            )
            missing_set = set(missing)
            copied = [path for path in copied if path not in missing_set] + converted
            batch = converted

        logger.info(f"Incremental copy of {len(copied)} file(s) to {log_target_dir} finished after {attempt} attempt(s).")
        return CopyOutcome(copied_files=copied, attempts=attempt)

    async def cancel(self) -> bool:
        """Forward a cancellation request to the running copy job, if any."""
        if self._active_job is None:
            return False
        await self.copy_task.cancel(self._active_job)
        return True
