import logging
import time
from typing import Dict, Iterable, List, Optional

logger = logging.getLogger("walbackup")

TABLENAME_DELIMITER = ","


def set_logger_level(level: int) -> None:
    logger.setLevel(level)


def current_millis() -> int:
    return int(time.time() * 1000)


def parse_table_names(tables: Optional[str]) -> Optional[List[str]]:
    """Split a comma-delimited table list from the command line.

    Returns None when no list was given, so callers can tell "absent" apart
    from an explicit list.
    """
    if tables is None:
        return None
    names = [t.strip() for t in tables.split(TABLENAME_DELIMITER) if t.strip()]
    return names


def join_table_names(tables: Iterable[str]) -> str:
    return TABLENAME_DELIMITER.join(tables)


def unique_ordered(items: Iterable[str]) -> List[str]:
    seen = set()
    result = []
    for item in items:
        if item not in seen:
            seen.add(item)
            result.append(item)
    return result


def get_rs_log_timestamp_mins(timestamp_map: Dict[str, Dict[str, int]]) -> Dict[str, int]:
    """Collapse a per-table map into the smallest timestamp per region server."""
    mins: Dict[str, int] = {}
    for server_map in timestamp_map.values():
        for server, ts in server_map.items():
            if server not in mins or ts < mins[server]:
                mins[server] = ts
    return mins


def get_min_value(values: Dict[str, int]) -> Optional[int]:
    if not values:
        return None
    return min(values.values())
