"""Hadoop DistCp copy backend.

Runs ``<command> distcp`` as a subprocess. The parallelism of the copy job
belongs to the cluster; this backend only passes the worker and bandwidth
hints through.
"""

import asyncio
from typing import Any, Dict, List, Optional

from ..._utils import logger
from ...base import BaseFileSystem
from ...exceptions import BackupIOError
from ...models import BackupInfo, BackupType
from ..copy_task import BaseCopyTask, split_paths


async def _run(cmd: List[str]):
    try:
        proc = await asyncio.create_subprocess_exec(
            *cmd,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE
        )
    except OSError as e:
        raise BackupIOError(f"Cannot run {cmd[0]}: {e}") from e
    return proc


class HadoopFileSystem(BaseFileSystem):
    """Filesystem view through the ``hadoop fs`` command line."""

    def __init__(self, command: str = "hadoop"):
        self.command = command

    async def exists(self, path: str) -> bool:
        """``-test -e`` exits 1 for an absent path; any other failure is an error."""
        proc = await _run([self.command, "fs", "-test", "-e", path])
        _, stderr = await proc.communicate()
        if proc.returncode == 0:
            return True
        if proc.returncode == 1:
            return False
        raise BackupIOError(
            f"Cannot check {path}: {self.command} fs exited with {proc.returncode}: "
            f"{stderr.decode('utf-8', errors='replace').strip()}"
        )

    async def list_dir(self, path: str) -> List[str]:
        proc = await _run([self.command, "fs", "-ls", "-C", path])
        stdout, stderr = await proc.communicate()
        if proc.returncode != 0:
            message = stderr.decode("utf-8", errors="replace").strip()
            if "No such file or directory" in message:
                return []
            raise BackupIOError(
                f"Cannot list {path}: {self.command} fs exited with {proc.returncode}: {message}"
            )
        names = [line.rstrip("/").rsplit("/", 1)[-1] for line in stdout.decode("utf-8").splitlines() if line]
        return sorted(names)


class DistCpCopyTask(BaseCopyTask):

    def __init__(self, global_config: Optional[dict] = None):
        super().__init__(global_config)
        self.command = self.global_config.get("distcp_command", "hadoop")
        self._jobs: Dict[str, asyncio.subprocess.Process] = {}

    def build_command(self, backup_info: BackupInfo, sources: List[str], target_dir: str) -> List[str]:
        cmd = [self.command, "distcp", "-m", str(max(1, backup_info.workers))]
        if backup_info.bandwidth > 0:
            cmd += ["-bandwidth", str(backup_info.bandwidth)]
        return cmd + sources + [target_dir]

    async def copy(
        self,
        backup_info: BackupInfo,
        manager: Any,
        config: dict,
        backup_type: BackupType,
        paths: List[str]
    ) -> int:
        sources, target_dir = split_paths(paths)
        cmd = self.build_command(backup_info, sources, target_dir)
        logger.debug(f"Running {' '.join(cmd[:6])} ... ({len(sources)} source(s))")

        proc = await _run(cmd)
        self._jobs[backup_info.backup_id] = proc
        try:
            _, stderr = await proc.communicate()
        finally:
            self._jobs.pop(backup_info.backup_id, None)

        if proc.returncode != 0:
            logger.error(
                f"DistCp for {backup_type.value} backup {backup_info.backup_id} exited with "
                f"{proc.returncode}: {stderr.decode('utf-8', errors='replace').strip()[-2000:]}"
            )
        return proc.returncode

    async def cancel(self, job_handle: str) -> None:
        proc = self._jobs.get(job_handle)
        if proc is None or proc.returncode is not None:
            logger.debug(f"No running DistCp job for {job_handle}")
            return
        try:
            proc.terminate()
        except ProcessLookupError:
            return
        logger.info(f"Sent termination to DistCp job {job_handle}")

    def source_filesystem(self) -> BaseFileSystem:
        return HadoopFileSystem(self.command)

    def target_filesystem(self) -> BaseFileSystem:
        return HadoopFileSystem(self.command)
