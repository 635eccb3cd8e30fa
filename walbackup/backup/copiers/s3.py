"""Amazon S3 copy backend."""

import asyncio
import os
import posixpath
from typing import Any, List, Optional, Set

import aioboto3
from botocore.exceptions import (
    BotoCoreError,
    ClientError,
    ConnectionClosedError,
    EndpointConnectionError,
)
from tenacity import (
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from ..._utils import logger
from ...base import BaseFileSystem
from ...exceptions import BackupIOError
from ...models import BackupInfo, BackupType
from ..copy_task import BaseCopyTask, split_paths


def object_key(prefix: str, path: str) -> str:
    """Map an absolute destination path to an object key under prefix."""
    key = path.lstrip("/")
    return posixpath.join(prefix, key) if prefix else key


class S3FileSystem(BaseFileSystem):
    """Destination view of a bucket, addressing objects by absolute path."""

    def __init__(self, bucket: str, prefix: str = "", region: Optional[str] = None):
        self.bucket = bucket
        self.prefix = prefix
        self.region = region or os.getenv("AWS_REGION", "us-east-1")
        self.session = aioboto3.Session()

    async def exists(self, path: str) -> bool:
        async with self.session.client("s3", region_name=self.region) as s3:
            try:
                await s3.head_object(Bucket=self.bucket, Key=object_key(self.prefix, path))
                return True
            except ClientError as e:
                if e.response.get("Error", {}).get("Code") in ("404", "NoSuchKey", "NotFound"):
                    return False
                raise BackupIOError(f"Cannot check s3://{self.bucket}/{path}: {e}") from e
            except BotoCoreError as e:
                raise BackupIOError(f"Cannot check s3://{self.bucket}/{path}: {e}") from e

    async def list_dir(self, path: str) -> List[str]:
        key_prefix = object_key(self.prefix, path).rstrip("/") + "/"
        names = []
        async with self.session.client("s3", region_name=self.region) as s3:
            paginator = s3.get_paginator("list_objects_v2")
            try:
                async for page in paginator.paginate(Bucket=self.bucket, Prefix=key_prefix, Delimiter="/"):
                    for obj in page.get("Contents", []):
                        names.append(obj["Key"][len(key_prefix):])
                    for sub in page.get("CommonPrefixes", []):
                        names.append(sub["Prefix"][len(key_prefix):].rstrip("/"))
            except (BotoCoreError, ClientError) as e:
                raise BackupIOError(f"Cannot list s3://{self.bucket}/{key_prefix}: {e}") from e
        return sorted(names)


class S3CopyTask(BaseCopyTask):
    """Upload log segments to a bucket, one object per file."""

    def __init__(self, global_config: Optional[dict] = None):
        super().__init__(global_config)
        self.bucket = self.global_config.get("s3_bucket")
        self.prefix = self.global_config.get("s3_prefix", "")
        self.region = self.global_config.get("s3_region") or os.getenv("AWS_REGION", "us-east-1")
        self.session = aioboto3.Session()
        self._running: Set[str] = set()
        self._cancelled: Set[str] = set()

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=1, max=10),
        retry=retry_if_exception_type((EndpointConnectionError, ConnectionClosedError)),
        reraise=True,
    )
    async def _upload(self, s3, src: str, key: str) -> None:
        await s3.upload_file(src, self.bucket, key)

    async def copy(
        self,
        backup_info: BackupInfo,
        manager: Any,
        config: dict,
        backup_type: BackupType,
        paths: List[str]
    ) -> int:
        sources, target_dir = split_paths(paths)
        job_handle = backup_info.backup_id
        self._running.add(job_handle)
        semaphore = asyncio.Semaphore(max(1, backup_info.workers))

        async def upload_one(s3, src: str) -> None:
            key = object_key(self.prefix, posixpath.join(target_dir, posixpath.basename(src)))
            async with semaphore:
                if job_handle in self._cancelled:
                    return
                try:
                    await self._upload(s3, src, key)
                except FileNotFoundError:
                    logger.warning(f"Source vanished during upload: {src}")

        try:
            async with self.session.client("s3", region_name=self.region) as s3:
                await asyncio.gather(*(upload_one(s3, src) for src in sources))
        except (BotoCoreError, ClientError) as e:
            logger.error(f"Upload to s3://{self.bucket}/{target_dir} failed: {e}")
            return 1
        finally:
            self._running.discard(job_handle)
            cancelled = job_handle in self._cancelled
            self._cancelled.discard(job_handle)

        if cancelled:
            logger.warning(f"Upload job {job_handle} was cancelled")
            return 1
        logger.info(f"{backup_type.value} upload of {len(sources)} file(s) to s3://{self.bucket}/{target_dir} finished")
        return 0

    async def cancel(self, job_handle: str) -> None:
        if job_handle not in self._running:
            logger.debug(f"No running upload job for {job_handle}")
            return
        # uploads already in flight finish; queued ones are skipped
        self._cancelled.add(job_handle)
        logger.info(f"Cancellation requested for upload job {job_handle}")

    def target_filesystem(self) -> BaseFileSystem:
        return S3FileSystem(self.bucket, self.prefix, self.region)
