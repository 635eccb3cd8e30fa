"""Durable backup metadata kept in a single table.

Row layout:
    session:<backup_id>   session:context    -> BackupInfo snapshot (JSON)
    wals:<hash>           meta:path|backup_id|file
    rslogts:<table>       rs:<server>        -> last consumed log timestamp
    startcode             meta:startcode
    backupset:<name>      meta:tables        -> comma-delimited table list
    restore:<backup_id>   meta:request       -> RestoreRequest (JSON)
"""

import posixpath
from typing import Dict, List, Optional

import xxhash

from .._utils import join_table_names, logger, parse_table_names, unique_ordered
from ..client import AsyncTable, Delete, Get, Put, decode_long, encode_long
from ..exceptions import BackupError
from ..models import BackupInfo, BackupState, RestoreRequest, TimestampMap

SESSION_PREFIX = "session:"
WALS_PREFIX = "wals:"
RS_LOG_TS_PREFIX = "rslogts:"
BACKUP_SET_PREFIX = "backupset:"
RESTORE_PREFIX = "restore:"
START_CODE_ROW = "startcode"

SESSION_FAMILY = "session"
META_FAMILY = "meta"
RS_FAMILY = "rs"


def wal_row_key(path: str) -> str:
    return f"{WALS_PREFIX}{xxhash.xxh64_hexdigest(path.encode('utf-8'))}"


class BackupSystemTable:
    """Metadata store for backup runs, log timestamps and the global start code."""

    def __init__(self, table: AsyncTable):
        self.table = table

    async def close(self) -> None:
        await self.table.close()

    # Backup run records

    async def create_backup_info(self, backup_info: BackupInfo) -> None:
        row = f"{SESSION_PREFIX}{backup_info.backup_id}"
        if await self.table.exists(Get(row)):
            raise BackupError(f"Backup {backup_info.backup_id} already exists")
        await self._write_session(row, backup_info)
        logger.debug(f"Created backup record {backup_info.backup_id}")

    async def update_backup_info(self, backup_info: BackupInfo) -> None:
        await self._write_session(f"{SESSION_PREFIX}{backup_info.backup_id}", backup_info)
        logger.debug(
            f"Persisted backup {backup_info.backup_id}: "
            f"state={backup_info.state.value} phase={backup_info.phase.value}"
        )

    async def _write_session(self, row: str, backup_info: BackupInfo) -> None:
        put = Put(row).add_column(SESSION_FAMILY, "context", backup_info.to_snapshot().encode("utf-8"))
        await self.table.put(put)

    async def read_backup_info(self, backup_id: str) -> Optional[BackupInfo]:
        result = await self.table.get(Get(f"{SESSION_PREFIX}{backup_id}"))
        data = result.value(SESSION_FAMILY, "context")
        if data is None:
            return None
        return BackupInfo.from_snapshot(data.decode("utf-8"))

    async def list_backup_infos(self, state: Optional[BackupState] = None) -> List[BackupInfo]:
        infos = []
        for result in await self.table.scan(SESSION_PREFIX):
            data = result.value(SESSION_FAMILY, "context")
            if data is None:
                continue
            info = BackupInfo.from_snapshot(data.decode("utf-8"))
            if state is None or info.state == state:
                infos.append(info)
        infos.sort(key=lambda b: b.start_ts or 0, reverse=True)
        return infos

    # WAL files

    async def record_wal_files(self, backup_id: str, files: List[str]) -> None:
        for path in files:
            put = (
                Put(wal_row_key(path))
                .add_column(META_FAMILY, "path", path.encode("utf-8"))
                .add_column(META_FAMILY, "backup_id", backup_id.encode("utf-8"))
                .add_column(META_FAMILY, "file", posixpath.basename(path).encode("utf-8"))
            )
            await self.table.put(put)
        logger.debug(f"Recorded {len(files)} WAL file(s) for backup {backup_id}")

    async def read_wal_files(self, backup_id: Optional[str] = None) -> List[str]:
        files = []
        for result in await self.table.scan(WALS_PREFIX):
            owner = result.value(META_FAMILY, "backup_id")
            if backup_id is not None and (owner is None or owner.decode("utf-8") != backup_id):
                continue
            files.append(result.value(META_FAMILY, "path").decode("utf-8"))
        return sorted(files)

    # Log timestamps and start code

    async def read_log_timestamp_map(self) -> TimestampMap:
        timestamp_map: TimestampMap = {}
        for result in await self.table.scan(RS_LOG_TS_PREFIX):
            table_name = result.row[len(RS_LOG_TS_PREFIX):]
            servers = {
                qualifier: decode_long(value)
                for (family, qualifier), value in result.cells.items()
                if family == RS_FAMILY
            }
            if servers:
                timestamp_map[table_name] = servers
        return timestamp_map

    async def write_region_server_log_timestamp(
        self,
        tables: List[str],
        new_timestamps: Dict[str, int]
    ) -> None:
        """Record new per-server timestamps for the given tables only."""
        if not new_timestamps:
            return
        for table_name in tables:
            put = Put(f"{RS_LOG_TS_PREFIX}{table_name}")
            for server, ts in new_timestamps.items():
                put.add_column(RS_FAMILY, server, encode_long(ts))
            await self.table.put(put)
        logger.debug(f"Wrote log timestamps for {len(new_timestamps)} server(s) on tables {tables}")

    async def read_start_code(self) -> Optional[int]:
        result = await self.table.get(Get(START_CODE_ROW).add_column(META_FAMILY, "startcode"))
        value = result.value(META_FAMILY, "startcode")
        return decode_long(value) if value is not None else None

    async def write_start_code(self, start_code: int) -> None:
        await self.table.put(Put(START_CODE_ROW).add_column(META_FAMILY, "startcode", encode_long(start_code)))
        logger.debug(f"Wrote backup start code {start_code}")

    # Backup sets

    async def add_to_backup_set(self, name: str, tables: List[str]) -> List[str]:
        current = await self.describe_backup_set(name) or []
        merged = unique_ordered(current + list(tables))
        await self.table.put(
            Put(f"{BACKUP_SET_PREFIX}{name}").add_column(META_FAMILY, "tables", join_table_names(merged).encode("utf-8"))
        )
        return merged

    async def describe_backup_set(self, name: str) -> Optional[List[str]]:
        """Return the tables of a backup set, or None if it is missing or empty."""
        result = await self.table.get(Get(f"{BACKUP_SET_PREFIX}{name}"))
        value = result.value(META_FAMILY, "tables")
        if value is None:
            return None
        tables = parse_table_names(value.decode("utf-8"))
        return tables or None

    async def list_backup_sets(self) -> List[str]:
        return [r.row[len(BACKUP_SET_PREFIX):] for r in await self.table.scan(BACKUP_SET_PREFIX)]

    async def delete_backup_set(self, name: str) -> bool:
        row = f"{BACKUP_SET_PREFIX}{name}"
        if not await self.table.exists(Get(row)):
            return False
        await self.table.delete(Delete(row))
        return True

    # Restore requests

    async def record_restore_request(self, request: RestoreRequest) -> None:
        await self.table.put(
            Put(f"{RESTORE_PREFIX}{request.backup_id}")
            .add_column(META_FAMILY, "request", request.model_dump_json().encode("utf-8"))
        )
