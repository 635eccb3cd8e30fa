"""Validate and submit restore requests against recorded backup images."""

from .._utils import logger
from ..exceptions import ArgumentValidationError, BackupError
from ..models import BackupState, RestoreRequest
from ..backup.system_table import BackupSystemTable


class BackupAdmin:
    """Administrative entry point used by the restore command line.

    Log replay into the cluster happens outside this process; ``restore``
    checks that the request can be satisfied by the recorded image and
    submits it.
    """

    def __init__(self, store: BackupSystemTable):
        self.store = store

    async def restore(self, request: RestoreRequest) -> None:
        info = await self.store.read_backup_info(request.backup_id)
        if info is None:
            raise BackupError(f"Backup image {request.backup_id} not found")
        if info.state != BackupState.COMPLETE:
            raise BackupError(f"Backup image {request.backup_id} is {info.state.value}, not COMPLETE")
        if info.target_root_dir.rstrip("/") != request.backup_root_dir.rstrip("/"):
            raise ArgumentValidationError(
                f"Backup {request.backup_id} is stored under {info.target_root_dir}, "
                f"not {request.backup_root_dir}"
            )

        unknown = [t for t in request.from_tables if t not in info.tables]
        if unknown:
            raise ArgumentValidationError(f"Tables {unknown} are not in backup image {request.backup_id}")

        if request.check:
            logger.info(f"Dependency check passed for backup image {request.backup_id}")
            return

        await self.store.record_restore_request(request)
        targets = request.to_tables or request.from_tables
        logger.info(
            f"Submitted restore of {request.from_tables} from {request.backup_id} to {targets}"
            f"{' (overwrite)' if request.overwrite else ''}"
        )
