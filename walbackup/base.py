import asyncio
import os
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Dict, List

from .exceptions import BackupIOError
from .models import BackupInfo, TimestampMap


class BaseFileSystem(ABC):
    """Minimal filesystem view used to check source and destination paths."""

    @abstractmethod
    async def exists(self, path: str) -> bool:
        raise NotImplementedError

    @abstractmethod
    async def list_dir(self, path: str) -> List[str]:
        """Return entry names under path, or an empty list if it does not exist."""
        raise NotImplementedError


class LocalFileSystem(BaseFileSystem):

    async def exists(self, path: str) -> bool:
        try:
            return await asyncio.to_thread(os.path.exists, path)
        except OSError as e:
            raise BackupIOError(f"Cannot check {path}: {e}") from e

    async def list_dir(self, path: str) -> List[str]:
        try:
            return sorted(await asyncio.to_thread(os.listdir, path))
        except FileNotFoundError:
            return []
        except OSError as e:
            raise BackupIOError(f"Cannot list {path}: {e}") from e


@dataclass
class LogListResult:
    """Log segments to copy for one run and the per-server timestamps they reach."""
    files: List[str] = field(default_factory=list)
    new_timestamps: Dict[str, int] = field(default_factory=dict)


class BaseLogListComputer(ABC):
    """Computes which log segments an incremental backup must copy."""

    @abstractmethod
    async def compute(
        self,
        backup_info: BackupInfo,
        previous_timestamps: TimestampMap
    ) -> LogListResult:
        raise NotImplementedError
