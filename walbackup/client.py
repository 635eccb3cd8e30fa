"""Asynchronous single-table data access client.

Each operation returns a single awaitable result. An ``AsyncTable`` instance
is not safe for concurrent use from multiple callers.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional, Tuple

Column = Tuple[str, str]  # (family, qualifier)


class Durability(str, Enum):
    USE_DEFAULT = "USE_DEFAULT"
    SKIP_WAL = "SKIP_WAL"
    ASYNC_WAL = "ASYNC_WAL"
    SYNC_WAL = "SYNC_WAL"
    FSYNC_WAL = "FSYNC_WAL"


def encode_long(value: int) -> bytes:
    return str(value).encode("ascii")


def decode_long(value: bytes) -> int:
    return int(value.decode("ascii"))


@dataclass
class Get:
    row: str
    columns: List[Column] = field(default_factory=list)

    def add_column(self, family: str, qualifier: str) -> "Get":
        self.columns.append((family, qualifier))
        return self


@dataclass
class Put:
    row: str
    values: Dict[Column, bytes] = field(default_factory=dict)
    durability: Durability = Durability.USE_DEFAULT

    def add_column(self, family: str, qualifier: str, value: bytes) -> "Put":
        self.values[(family, qualifier)] = value
        return self


@dataclass
class Delete:
    """Delete a whole row, or only the listed columns."""
    row: str
    columns: List[Column] = field(default_factory=list)

    def add_column(self, family: str, qualifier: str) -> "Delete":
        self.columns.append((family, qualifier))
        return self


@dataclass
class Append:
    row: str
    values: Dict[Column, bytes] = field(default_factory=dict)

    def add_column(self, family: str, qualifier: str, value: bytes) -> "Append":
        self.values[(family, qualifier)] = value
        return self


@dataclass
class Increment:
    row: str
    amounts: Dict[Column, int] = field(default_factory=dict)
    durability: Durability = Durability.USE_DEFAULT

    def add_column(self, family: str, qualifier: str, amount: int) -> "Increment":
        self.amounts[(family, qualifier)] = amount
        return self


@dataclass
class Result:
    row: str
    cells: Dict[Column, bytes] = field(default_factory=dict)

    @property
    def is_empty(self) -> bool:
        return not self.cells

    def value(self, family: str, qualifier: str) -> Optional[bytes]:
        return self.cells.get((family, qualifier))


@dataclass
class AsyncTable(ABC):
    namespace: str
    global_config: dict = field(default_factory=dict)

    @abstractmethod
    async def get(self, get: Get) -> Result:
        """Read the requested columns of a row; an absent row gives an empty Result."""
        raise NotImplementedError

    @abstractmethod
    async def put(self, put: Put) -> None:
        raise NotImplementedError

    @abstractmethod
    async def delete(self, delete: Delete) -> None:
        raise NotImplementedError

    @abstractmethod
    async def append(self, append: Append) -> Result:
        """Append bytes to the existing cell values and return the new values."""
        raise NotImplementedError

    @abstractmethod
    async def increment(self, increment: Increment) -> Result:
        """Add to counter cells (missing cells start at 0) and return the new values."""
        raise NotImplementedError

    @abstractmethod
    async def scan(self, row_prefix: str) -> List[Result]:
        """Return all rows whose key starts with row_prefix, ordered by row key."""
        raise NotImplementedError

    async def close(self) -> None:
        pass

    async def exists(self, get: Get) -> bool:
        result = await self.get(get)
        return not result.is_empty

    async def increment_column_value(
        self,
        row: str,
        family: str,
        qualifier: str,
        amount: int,
        durability: Durability = Durability.SYNC_WAL
    ) -> int:
        """Atomically increment a single column and return its new value."""
        increment = Increment(row, durability=durability).add_column(family, qualifier, amount)
        result = await self.increment(increment)
        return decode_long(result.value(family, qualifier))
