"""Per-table log timestamps and the global start code.

The start code is the lowest log timestamp recorded for any region server
across all tables; log segments older than it may be reclaimed. It is always
written after the timestamp map it is derived from, so a crash between the
two writes leaves the previous, smaller start code in place.
"""

from typing import Dict, Optional

from .._utils import get_min_value, get_rs_log_timestamp_mins, logger
from ..models import BackupInfo, TimestampMap
from .system_table import BackupSystemTable


def compute_start_code(timestamp_map: TimestampMap) -> Optional[int]:
    return get_min_value(get_rs_log_timestamp_mins(timestamp_map))


async def update_log_timestamps(
    store: BackupSystemTable,
    backup_info: BackupInfo,
    new_timestamps: Dict[str, int]
) -> Optional[int]:
    """Record this run's log timestamps and advance the start code.

    Returns:
        The persisted start code, or None if no timestamps are recorded at all
    """
    previous_map = await store.read_log_timestamp_map()
    backup_info.incr_timestamp_map = {
        table: dict(servers) for table, servers in previous_map.items() if table in backup_info.tables
    }

    await store.write_region_server_log_timestamp(backup_info.tables, new_timestamps)

    full_map = await store.read_log_timestamp_map()
    new_start_code = compute_start_code(full_map)
    if new_start_code is None:
        logger.info("No log timestamps recorded; start code left unset")
        return None

    current = await store.read_start_code()
    if current is not None and new_start_code < current:
        logger.warning(
            f"Computed start code {new_start_code} is below the stored {current}; keeping {current}"
        )
        return current

    await store.write_start_code(new_start_code)
    logger.info(f"Backup start code is now {new_start_code}")
    return new_start_code
