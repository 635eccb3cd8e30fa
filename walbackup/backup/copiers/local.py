"""Local filesystem copy backend."""

import asyncio
import os
import shutil
from typing import Any, Dict, List, Optional, Set

from ..._utils import logger
from ...exceptions import BackupIOError
from ...models import BackupInfo, BackupType
from ..copy_task import BaseCopyTask, split_paths


class LocalCopyTask(BaseCopyTask):
    """Copy files into a flat destination directory on a mounted filesystem.

    Sources that vanish before they are copied are skipped, the same way a
    distributed copy job skips inputs that disappear under it; the caller is
    expected to verify the destination afterwards.
    """

    def __init__(self, global_config: Optional[dict] = None):
        super().__init__(global_config)
        self._jobs: Dict[str, asyncio.Task] = {}
        self._cancel_requested: Set[str] = set()

    async def copy(
        self,
        backup_info: BackupInfo,
        manager: Any,
        config: dict,
        backup_type: BackupType,
        paths: List[str]
    ) -> int:
        sources, target_dir = split_paths(paths)
        workers = max(1, backup_info.workers)

        job = asyncio.create_task(self._copy_files(sources, target_dir, workers))
        self._jobs[backup_info.backup_id] = job
        try:
            copied = await job
        except asyncio.CancelledError:
            if backup_info.backup_id in self._cancel_requested:
                logger.warning(f"Copy job {backup_info.backup_id} was cancelled")
                return 1
            raise
        finally:
            self._jobs.pop(backup_info.backup_id, None)
            self._cancel_requested.discard(backup_info.backup_id)

        logger.info(f"{backup_type.value} copy of {copied}/{len(sources)} file(s) to {target_dir} finished")
        return 0

    async def _copy_files(self, sources: List[str], target_dir: str, workers: int) -> int:
        try:
            await asyncio.to_thread(os.makedirs, target_dir, exist_ok=True)
        except OSError as e:
            raise BackupIOError(f"Cannot create {target_dir}: {e}") from e

        semaphore = asyncio.Semaphore(workers)

        async def copy_one(src: str) -> bool:
            dst = os.path.join(target_dir, os.path.basename(src))
            async with semaphore:
                try:
                    await asyncio.to_thread(shutil.copy2, src, dst)
                except FileNotFoundError:
                    logger.warning(f"Source vanished during copy: {src}")
                    return False
                except OSError as e:
                    raise BackupIOError(f"Failed to copy {src} to {dst}: {e}") from e
            return True

        tasks = [asyncio.create_task(copy_one(src)) for src in sources]
        try:
            results = await asyncio.gather(*tasks)
        except BaseException:
            # stop the remaining copies before the error surfaces
            for task in tasks:
                task.cancel()
            await asyncio.gather(*tasks, return_exceptions=True)
            raise
        return sum(results)

    async def cancel(self, job_handle: str) -> None:
        job = self._jobs.get(job_handle)
        if job is None or job.done():
            logger.debug(f"No running copy job for {job_handle}")
            return
        self._cancel_requested.add(job_handle)
        job.cancel()
        logger.info(f"Cancellation requested for copy job {job_handle}")
