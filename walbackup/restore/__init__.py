from .admin import BackupAdmin
from .driver import RestoreDriver, main

__all__ = ["BackupAdmin", "RestoreDriver", "main"]
