from .config import BackupConfig
from .models import (
    BackupInfo,
    BackupPhase,
    BackupRequest,
    BackupState,
    BackupType,
    RestoreRequest,
    generate_backup_id,
)

__version__ = "0.1.0"
__author__ = "walbackup"
__url__ = "https://github.com/walbackup/walbackup"

__all__ = [
    "BackupConfig",
    "BackupInfo",
    "BackupPhase",
    "BackupRequest",
    "BackupState",
    "BackupType",
    "RestoreRequest",
    "generate_backup_id",
]
