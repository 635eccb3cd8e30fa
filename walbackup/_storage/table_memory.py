"""In-process table backend, used for tests and single-node deployments."""

from dataclasses import dataclass, field
from typing import Dict, List

from ..client import (
    Append,
    AsyncTable,
    Column,
    Delete,
    Get,
    Increment,
    Put,
    Result,
    decode_long,
    encode_long,
)


@dataclass
class MemoryTable(AsyncTable):
    _rows: Dict[str, Dict[Column, bytes]] = field(init=False, default_factory=dict)

    def _select(self, row: str, columns: List[Column]) -> Result:
        cells = self._rows.get(row, {})
        if columns:
            cells = {c: cells[c] for c in columns if c in cells}
        return Result(row, dict(cells))

    async def get(self, get: Get) -> Result:
        return self._select(get.row, get.columns)

    async def put(self, put: Put) -> None:
        self._rows.setdefault(put.row, {}).update(put.values)

    async def delete(self, delete: Delete) -> None:
        if not delete.columns:
            self._rows.pop(delete.row, None)
            return
        cells = self._rows.get(delete.row)
        if cells is None:
            return
        for column in delete.columns:
            cells.pop(column, None)
        if not cells:
            del self._rows[delete.row]

    async def append(self, append: Append) -> Result:
        cells = self._rows.setdefault(append.row, {})
        for column, value in append.values.items():
            cells[column] = cells.get(column, b"") + value
        return self._select(append.row, list(append.values))

    async def increment(self, increment: Increment) -> Result:
        cells = self._rows.setdefault(increment.row, {})
        for column, amount in increment.amounts.items():
            current = decode_long(cells[column]) if column in cells else 0
            cells[column] = encode_long(current + amount)
        return self._select(increment.row, list(increment.amounts))

    async def scan(self, row_prefix: str) -> List[Result]:
        return [
            Result(row, dict(cells))
            for row, cells in sorted(self._rows.items())
            if row.startswith(row_prefix)
        ]
