"""Phase and state tracking for a single backup run."""

from typing import Optional

from .._utils import current_millis, logger
from ..config import BackupConfig
from ..exceptions import ArgumentValidationError, IllegalPhaseTransitionError
from ..models import BackupInfo, BackupPhase, BackupRequest, BackupState
from .system_table import BackupSystemTable


class BackupLifecycleManager:
    """Sequence the phases of one backup run and guarantee a clean terminal state.

    Every transition writes a snapshot of the run to the metadata store. Once a
    run is FAILED or CANCELLED it stays that way; nothing here retries a run.
    """

    def __init__(self, store: BackupSystemTable, config: Optional[BackupConfig] = None):
        self.store = store
        self.config = config or BackupConfig()

    def create_backup_info(self, backup_id: str, request: BackupRequest) -> BackupInfo:
        return BackupInfo(
            backup_id=backup_id,
            type=request.backup_type,
            tables=request.tables,
            target_root_dir=request.target_root_dir,
            workers=request.workers if request.workers is not None else self.config.copy.workers,
            bandwidth=request.bandwidth if request.bandwidth is not None else self.config.copy.bandwidth,
        )

    async def begin(self, backup_info: BackupInfo) -> None:
        if backup_info.state != BackupState.RUNNING or backup_info.phase != BackupPhase.REQUEST:
            raise IllegalPhaseTransitionError(
                f"Backup {backup_info.backup_id} cannot begin from "
                f"{backup_info.state.value}/{backup_info.phase.value}"
            )
        if not backup_info.tables:
            raise ArgumentValidationError(f"Backup {backup_info.backup_id} has no tables")

        backup_info.start_ts = current_millis()
        backup_info.phase = BackupPhase.PREPARE
        try:
            await self.store.create_backup_info(backup_info)
        except Exception:
            backup_info.start_ts = None
            backup_info.phase = BackupPhase.REQUEST
            raise
        logger.info(
            f"Backup {backup_info.backup_id} started ({backup_info.type.value}) "
            f"for tables {backup_info.tables}"
        )

    async def advance(self, backup_info: BackupInfo, phase: BackupPhase) -> None:
        """Move to a later phase. Out-of-order moves are programming errors."""
        if backup_info.state != BackupState.RUNNING:
            raise IllegalPhaseTransitionError(
                f"Backup {backup_info.backup_id} is {backup_info.state.value}, cannot enter {phase.value}"
            )
        if phase == BackupPhase.COMPLETE:
            raise IllegalPhaseTransitionError("Use complete() to finish a backup")
        if not backup_info.phase.precedes(phase):
            raise IllegalPhaseTransitionError(
                f"Backup {backup_info.backup_id} cannot move from "
                f"{backup_info.phase.value} to {phase.value}"
            )
        backup_info.phase = phase
        await self.store.update_backup_info(backup_info)
        logger.info(f"Backup {backup_info.backup_id} entered phase {phase.value}")

    async def fail(self, backup_info: BackupInfo, cause: BaseException, message: str) -> None:
        """Mark the run FAILED and persist it. Repeated calls have no effect.

        The cause is recorded, not raised; surfacing it is the caller's job.
        """
        await self._terminate(backup_info, BackupState.FAILED, cause, message)

    async def cancel(self, backup_info: BackupInfo, message: str = "Backup cancelled") -> None:
        await self._terminate(backup_info, BackupState.CANCELLED, None, message)

    async def _terminate(
        self,
        backup_info: BackupInfo,
        state: BackupState,
        cause: Optional[BaseException],
        message: str
    ) -> None:
        if backup_info.is_terminal:
            logger.debug(
                f"Backup {backup_info.backup_id} already {backup_info.state.value}, "
                f"ignoring {state.value}"
            )
            return

        backup_info.state = state
        backup_info.failed_msg = message
        backup_info.cause = f"{type(cause).__name__}: {cause}" if cause is not None else None
        backup_info.end_ts = current_millis()

        if cause is not None:
            logger.error(f"{message} Backup {backup_info.backup_id} failed in {backup_info.phase.value}: {cause}")
        else:
            logger.warning(f"{message}: {backup_info.backup_id} in {backup_info.phase.value}")

        if backup_info.phase == BackupPhase.REQUEST:
            # begin() never recorded this run; the id may belong to another one
            logger.warning(f"Backup {backup_info.backup_id} was never recorded, {state.value} state not persisted")
            return

        try:
            await self.store.update_backup_info(backup_info)
        except Exception as e:
            logger.error(
                f"Could not persist {state.value} state of backup {backup_info.backup_id}: {e}",
                exc_info=True
            )

    async def complete(self, backup_info: BackupInfo) -> None:
        """Finish a run whose bookkeeping has been written."""
        if backup_info.state != BackupState.RUNNING or backup_info.phase != BackupPhase.BOOKKEEPING:
            raise IllegalPhaseTransitionError(
                f"Backup {backup_info.backup_id} cannot complete from "
                f"{backup_info.state.value}/{backup_info.phase.value}"
            )
        backup_info.phase = BackupPhase.COMPLETE
        backup_info.state = BackupState.COMPLETE
        backup_info.end_ts = current_millis()
        await self.store.update_backup_info(backup_info)
        logger.info(
            f"Backup {backup_info.backup_id} completed in "
            f"{(backup_info.end_ts - (backup_info.start_ts or backup_info.end_ts)) / 1000:.1f}s"
        )
