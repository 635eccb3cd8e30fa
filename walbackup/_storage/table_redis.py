"""Redis-backed table for production deployments.

Each row is a Redis hash under ``<namespace>:<row>``; hash fields are
``<family>:<qualifier>``.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

import redis.asyncio as aioredis
from redis.backoff import ExponentialBackoff
from redis.exceptions import ConnectionError as RedisConnectionError
from redis.exceptions import RedisError
from redis.retry import Retry

from .._utils import logger
from ..client import (
    Append,
    AsyncTable,
    Column,
    Delete,
    Get,
    Increment,
    Put,
    Result,
    encode_long,
)
from ..exceptions import BackupIOError


def _field(column: Column) -> str:
    return f"{column[0]}:{column[1]}"


def _column(field_name) -> Column:
    if isinstance(field_name, bytes):
        field_name = field_name.decode("utf-8")
    family, _, qualifier = field_name.partition(":")
    return family, qualifier


@dataclass
class RedisTable(AsyncTable):
    _redis_client: Optional[Any] = field(init=False, default=None)
    _connection_pool: Optional[Any] = field(init=False, default=None)
    _initialized: bool = field(init=False, default=False)

    def __post_init__(self):
        self._prefix = f"{self.namespace}:"

        self.redis_url = self.global_config.get("redis_url", "redis://localhost:6379")
        self.redis_password = self.global_config.get("redis_password", None)
        self.max_connections = self.global_config.get("redis_max_connections", 50)
        self.socket_timeout = self.global_config.get("redis_socket_timeout", 5.0)
        self.connection_timeout = self.global_config.get("redis_connection_timeout", 5.0)

    async def _ensure_initialized(self):
        """Ensure Redis connection is initialized."""
        if self._initialized:
            return

        retry = Retry(
            ExponentialBackoff(cap=10, base=1),
            retries=3,
            supported_errors=(RedisConnectionError, TimeoutError, ConnectionError)
        )

        self._connection_pool = aioredis.ConnectionPool.from_url(
            self.redis_url,
            password=self.redis_password,
            max_connections=self.max_connections,
            socket_timeout=self.socket_timeout,
            socket_connect_timeout=self.connection_timeout,
            decode_responses=False,
            retry=retry
        )
        self._redis_client = aioredis.Redis(connection_pool=self._connection_pool)

        try:
            await self._redis_client.ping()
            logger.info(f"Connected to Redis for table: {self.namespace}")
        except RedisError as e:
            logger.error(f"Redis connection failed: {e}")
            raise BackupIOError(f"Redis connection failed: {e}") from e

        self._initialized = True

    def _get_key(self, row: str) -> str:
        return f"{self._prefix}{row}"

    def _to_result(self, row: str, mapping: Dict) -> Result:
        return Result(row, {_column(k): v for k, v in mapping.items() if v is not None})

    async def get(self, get: Get) -> Result:
        await self._ensure_initialized()
        key = self._get_key(get.row)
        try:
            if get.columns:
                values = await self._redis_client.hmget(key, [_field(c) for c in get.columns])
                return self._to_result(get.row, dict(zip([_field(c) for c in get.columns], values)))
            return self._to_result(get.row, await self._redis_client.hgetall(key))
        except RedisError as e:
            logger.error(f"Redis get error for {get.row}: {e}")
            raise BackupIOError(f"Redis get failed for {get.row}: {e}") from e

    async def put(self, put: Put) -> None:
        if not put.values:
            return
        await self._ensure_initialized()
        try:
            await self._redis_client.hset(
                self._get_key(put.row),
                mapping={_field(c): v for c, v in put.values.items()}
            )
        except RedisError as e:
            logger.error(f"Redis put error for {put.row}: {e}")
            raise BackupIOError(f"Redis put failed for {put.row}: {e}") from e

    async def delete(self, delete: Delete) -> None:
        await self._ensure_initialized()
        key = self._get_key(delete.row)
        try:
            if delete.columns:
                await self._redis_client.hdel(key, *[_field(c) for c in delete.columns])
            else:
                await self._redis_client.delete(key)
        except RedisError as e:
            logger.error(f"Redis delete error for {delete.row}: {e}")
            raise BackupIOError(f"Redis delete failed for {delete.row}: {e}") from e

    async def append(self, append: Append) -> Result:
        await self._ensure_initialized()
        key = self._get_key(append.row)
        cells = {}
        try:
            for column, value in append.values.items():
                current = await self._redis_client.hget(key, _field(column)) or b""
                cells[column] = current + value
            if cells:
                await self._redis_client.hset(key, mapping={_field(c): v for c, v in cells.items()})
        except RedisError as e:
            logger.error(f"Redis append error for {append.row}: {e}")
            raise BackupIOError(f"Redis append failed for {append.row}: {e}") from e
        return Result(append.row, cells)

    async def increment(self, increment: Increment) -> Result:
        await self._ensure_initialized()
        key = self._get_key(increment.row)
        cells = {}
        try:
            async with self._redis_client.pipeline() as pipe:
                columns = list(increment.amounts)
                for column in columns:
                    pipe.hincrby(key, _field(column), increment.amounts[column])
                values = await pipe.execute()
        except RedisError as e:
            logger.error(f"Redis increment error for {increment.row}: {e}")
            raise BackupIOError(f"Redis increment failed for {increment.row}: {e}") from e
        for column, value in zip(columns, values):
            cells[column] = encode_long(int(value))
        return Result(increment.row, cells)

    async def scan(self, row_prefix: str) -> List[Result]:
        await self._ensure_initialized()
        pattern = f"{self._prefix}{row_prefix}*"
        rows = []
        try:
            async for key in self._redis_client.scan_iter(match=pattern, count=1000):
                if isinstance(key, bytes):
                    key = key.decode("utf-8")
                row = key[len(self._prefix):]
                rows.append(self._to_result(row, await self._redis_client.hgetall(key)))
        except RedisError as e:
            logger.error(f"Redis scan error for prefix {row_prefix}: {e}")
            raise BackupIOError(f"Redis scan failed for prefix {row_prefix}: {e}") from e
        rows.sort(key=lambda r: r.row)
        return rows

    async def close(self) -> None:
        if self._redis_client:
            await self._redis_client.aclose()
        if self._connection_pool:
            await self._connection_pool.disconnect()
        self._initialized = False
