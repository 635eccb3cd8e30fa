"""Exceptions raised by the backup engine and the restore command line."""

from typing import List, Optional


class BackupError(Exception):
    """Base exception for backup/restore errors."""
    pass


class BackupIOError(BackupError, OSError):
    """Filesystem or network fault while talking to a source or destination."""
    pass


class CopyTaskError(BackupError):
    def __init__(self, status: int, files: List[str], target_dir: str):
        self.status = status
        self.files = list(files)
        self.target_dir = target_dir
        super().__init__(
            f"Copy of {len(self.files)} file(s) to {target_dir} failed with return code {status}"
        )


class IncrementalCopyIncompleteError(BackupError):
    def __init__(self, missing_files: List[str]):
        self.missing_files = list(missing_files)
        super().__init__(
            f"Copy could not finish the following files: {','.join(self.missing_files)}"
        )


class CorruptBackupStateError(BackupError):
    def __init__(self, path: str, target_dir: Optional[str] = None):
        self.path = path
        self.target_dir = target_dir
        msg = f"File is missing and is not under an active log directory: {path}"
        if target_dir:
            msg = f"Copy to {target_dir} failed. {msg}"
        super().__init__(msg)


class ConfigurationError(BackupError):
    pass


class ArgumentValidationError(BackupError):
    pass


class BackupSetNotFoundError(ArgumentValidationError):
    def __init__(self, name: str):
        self.name = name
        super().__init__(f"Backup set '{name}' is either empty or does not exist")


class IllegalPhaseTransitionError(BackupError):
    pass


class BackupCancelledError(BackupError):
    def __init__(self, backup_id: str):
        self.backup_id = backup_id
        super().__init__(f"Backup {backup_id} was cancelled")
