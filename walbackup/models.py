"""Data models for backup runs and restore requests."""

import posixpath
from enum import Enum
from typing import Dict, List, Optional

from pydantic import BaseModel, Field, field_validator, model_validator

from ._utils import current_millis, unique_ordered

# table -> region server -> last consumed log timestamp
TimestampMap = Dict[str, Dict[str, int]]


class BackupType(str, Enum):
    FULL = "FULL"
    INCREMENTAL = "INCREMENTAL"


class BackupState(str, Enum):
    """Coarse outcome of a backup run."""
    RUNNING = "RUNNING"
    COMPLETE = "COMPLETE"
    FAILED = "FAILED"
    CANCELLED = "CANCELLED"

    @property
    def is_terminal(self) -> bool:
        return self is not BackupState.RUNNING


class BackupPhase(str, Enum):
    """Fine-grained step within a running backup."""
    REQUEST = "REQUEST"
    PREPARE = "PREPARE"
    INCREMENTAL_COPY = "INCREMENTAL_COPY"
    BOOKKEEPING = "BOOKKEEPING"
    COMPLETE = "COMPLETE"

    @property
    def order(self) -> int:
        return _PHASE_ORDER.index(self)

    def precedes(self, other: "BackupPhase") -> bool:
        return self.order < other.order


_PHASE_ORDER = list(BackupPhase)


class BackupInfo(BaseModel):
    """State of a single backup run, persisted at every phase boundary."""

    backup_id: str = Field(..., min_length=1)
    type: BackupType = BackupType.INCREMENTAL
    tables: List[str] = Field(default_factory=list)
    target_root_dir: str
    state: BackupState = BackupState.RUNNING
    phase: BackupPhase = BackupPhase.REQUEST
    incr_backup_file_list: List[str] = Field(default_factory=list)
    log_target_dir: Optional[str] = None
    workers: int = 1
    bandwidth: int = 0
    start_ts: Optional[int] = None
    end_ts: Optional[int] = None
    failed_msg: Optional[str] = None
    cause: Optional[str] = None
    incr_timestamp_map: TimestampMap = Field(default_factory=dict)

    @field_validator("tables", "incr_backup_file_list")
    @classmethod
    def dedupe(cls, v):
        return unique_ordered(v)

    @model_validator(mode="after")
    def default_log_target_dir(self):
        if self.log_target_dir is None:
            self.log_target_dir = posixpath.join(self.target_root_dir, self.backup_id, "WALs")
        return self

    @property
    def is_terminal(self) -> bool:
        return self.state.is_terminal

    def to_snapshot(self) -> str:
        return self.model_dump_json()

    @classmethod
    def from_snapshot(cls, snapshot: str) -> "BackupInfo":
        return cls.model_validate_json(snapshot)


class BackupRequest(BaseModel):
    backup_type: BackupType = BackupType.INCREMENTAL
    tables: List[str] = Field(..., min_length=1)
    target_root_dir: str = Field(..., min_length=1)
    # None falls back to the copy backend configuration
    workers: Optional[int] = Field(None, gt=0)
    bandwidth: Optional[int] = Field(None, ge=0)


class RestoreRequest(BaseModel):
    backup_root_dir: str
    backup_id: str
    check: bool = False
    from_tables: List[str] = Field(default_factory=list)
    to_tables: Optional[List[str]] = None
    overwrite: bool = False


def generate_backup_id() -> str:
    """Generate backup ID from the current time.

    Returns:
        Backup ID in format: backup_<epoch millis>
    """
    return f"backup_{current_millis()}"
