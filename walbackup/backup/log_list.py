"""Compute the log segments an incremental backup has to copy."""

import posixpath
from typing import Dict, Optional

from .._utils import get_rs_log_timestamp_mins, logger, unique_ordered
from ..base import BaseFileSystem, BaseLogListComputer, LogListResult
from ..config import WALConfig
from ..models import BackupInfo, TimestampMap


def parse_segment_timestamp(name: str) -> Optional[int]:
    """Segments are named ``<prefix>.<creation millis>``; anything else is skipped."""
    _, _, suffix = name.rpartition(".")
    return int(suffix) if suffix.isdigit() else None


class DirectoryLogListComputer(BaseLogListComputer):
    """Scan ``<root>/<active>/<server>/`` and ``<root>/<archived>/<server>/``.

    A segment is selected when it is newer than the lowest timestamp any of
    the run's tables has recorded for that server; servers with no recorded
    timestamp contribute every segment. The newest segment in each active
    server directory is still being written and is left for a later run.
    """

    def __init__(self, wal_config: WALConfig, fs: BaseFileSystem):
        self.wal_config = wal_config
        self.fs = fs

    async def compute(self, backup_info: BackupInfo, previous_timestamps: TimestampMap) -> LogListResult:
        run_map = {t: previous_timestamps[t] for t in backup_info.tables if t in previous_timestamps}
        server_mins = get_rs_log_timestamp_mins(run_map)

        files = []
        new_timestamps: Dict[str, int] = {}
        for dir_name in (self.wal_config.active_dir_name, self.wal_config.archived_dir_name):
            base = posixpath.join(self.wal_config.root_dir, dir_name)
            is_active = dir_name == self.wal_config.active_dir_name
            for server in await self.fs.list_dir(base):
                server_dir = posixpath.join(base, server)
                segments = []
                for name in await self.fs.list_dir(server_dir):
                    ts = parse_segment_timestamp(name)
                    if ts is None:
                        logger.debug(f"Skipping non-segment file {server_dir}/{name}")
                        continue
                    segments.append((ts, name))
                segments.sort()
                if is_active and segments:
                    # the newest active segment is still open for writes
                    _, open_name = segments.pop()
                    logger.debug(f"Leaving open segment {server_dir}/{open_name} for a later backup")
                for ts, name in segments:
                    if server in server_mins and ts <= server_mins[server]:
                        continue
                    files.append(posixpath.join(server_dir, name))
                    new_timestamps[server] = max(ts, new_timestamps.get(server, ts))

        for server, ts in server_mins.items():
            new_timestamps.setdefault(server, ts)

        files = unique_ordered(files)
        logger.info(
            f"Found {len(files)} log segment(s) on {len(new_timestamps)} server(s) "
            f"for backup {backup_info.backup_id}"
        )
        return LogListResult(files=files, new_timestamps=new_timestamps)
