from .copy_task import BaseCopyTask
from .factory import CopyTaskFactory
from .incremental import IncrementalTableBackupClient
from .lifecycle import BackupLifecycleManager
from .locator import LogFileLocator
from .session import MAX_COPY_ATTEMPTS, CopyOutcome, IncrementalCopySession
from .system_table import BackupSystemTable

__all__ = [
    "BaseCopyTask",
    "CopyTaskFactory",
    "IncrementalTableBackupClient",
    "BackupLifecycleManager",
    "LogFileLocator",
    "MAX_COPY_ATTEMPTS",
    "CopyOutcome",
    "IncrementalCopySession",
    "BackupSystemTable",
]
