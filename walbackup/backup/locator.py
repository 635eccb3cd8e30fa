"""Locate log segments at source and destination, and follow archived rotations."""

import posixpath
from typing import List, Optional

from .._utils import logger
from ..base import BaseFileSystem
from ..config import WALConfig
from ..exceptions import CorruptBackupStateError


class LogFileLocator:
    """Answers which log files exist and where a rotated segment now lives.

    The storage engine moves a segment from ``<root>/<active>/...`` to
    ``<root>/<archived>/...`` once it is no longer live, keeping the rest of
    the path.
    """

    def __init__(
        self,
        wal_config: WALConfig,
        source_fs: BaseFileSystem,
        target_fs: Optional[BaseFileSystem] = None
    ):
        self.wal_config = wal_config
        self.source_fs = source_fs
        self.target_fs = target_fs or source_fs
        self.active_marker = f"/{wal_config.active_dir_name}/"
        self.archived_marker = f"/{wal_config.archived_dir_name}/"

    async def filter_existing(self, paths: List[str]) -> List[str]:
        """Keep the source paths that currently exist, in their original order."""
        existing = []
        for path in paths:
            if await self.source_fs.exists(path):
                existing.append(path)
            else:
                logger.warning(f"Can't find file: {path}")
        return existing

    @staticmethod
    def destination_path(path: str, target_dir: str) -> str:
        return posixpath.join(target_dir, posixpath.basename(path))

    async def missing_at_destination(self, paths: List[str], target_dir: str) -> List[str]:
        """Return the source paths whose copy is not present in target_dir."""
        missing = []
        for path in paths:
            if not await self.target_fs.exists(self.destination_path(path, target_dir)):
                missing.append(path)
        return missing

    def is_active(self, path: str) -> bool:
        return self.active_marker in path

    def to_archived(self, path: str) -> str:
        """Rewrite an active-log path to the archived-log directory.

        Raises:
            CorruptBackupStateError: If the path has no active-log directory segment
        """
        if not self.is_active(path):
            logger.error(f"Copy incremental log files failed, file is missing: {path}")
            raise CorruptBackupStateError(path)
        return path.replace(self.active_marker, self.archived_marker, 1)

    def to_archived_all(self, paths: List[str]) -> List[str]:
        return [self.to_archived(path) for path in paths]
