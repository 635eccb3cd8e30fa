"""Configuration management for walbackup."""

import os
from dataclasses import dataclass, field
from typing import Optional


@dataclass(frozen=True)
class WALConfig:
    """Write-ahead-log directory layout of the storage cluster."""
    root_dir: str = "/hbase"
    active_dir_name: str = "WALs"
    archived_dir_name: str = "oldWALs"

    @classmethod
    def from_env(cls) -> 'WALConfig':
        """Create config from environment variables."""
        return cls(
            root_dir=os.getenv("WAL_ROOT_DIR", "/hbase"),
            active_dir_name=os.getenv("WAL_ACTIVE_DIR_NAME", "WALs"),
            archived_dir_name=os.getenv("WAL_ARCHIVED_DIR_NAME", "oldWALs")
        )

    def __post_init__(self):
        """Validate configuration."""
        for name in (self.active_dir_name, self.archived_dir_name):
            if not name or "/" in name:
                raise ValueError(f"log directory name must be a single path segment, got {name!r}")
        if self.active_dir_name == self.archived_dir_name:
            raise ValueError("active and archived log directory names must differ")


@dataclass(frozen=True)
class CopyConfig:
    """Bulk copy backend configuration."""
    backend: str = "local"  # local, distcp, s3
    workers: int = 4
    bandwidth: int = 100  # MB/s per worker
    distcp_command: str = "hadoop"

    # S3 specific settings
    s3_bucket: Optional[str] = None
    s3_region: str = "us-east-1"
    s3_prefix: str = ""

    @classmethod
    def from_env(cls) -> 'CopyConfig':
        """Create config from environment variables."""
        return cls(
            backend=os.getenv("COPY_BACKEND", "local"),
            workers=int(os.getenv("COPY_WORKERS", "4")),
            bandwidth=int(os.getenv("COPY_BANDWIDTH", "100")),
            distcp_command=os.getenv("DISTCP_COMMAND", "hadoop"),
            s3_bucket=os.getenv("S3_BUCKET", None),
            s3_region=os.getenv("AWS_REGION", "us-east-1"),
            s3_prefix=os.getenv("S3_PREFIX", "")
        )

    def __post_init__(self):
        """Validate configuration."""
        valid_backends = {"local", "distcp", "s3"}
        if self.backend not in valid_backends:
            raise ValueError(f"Unknown copy backend: {self.backend}. Available: {valid_backends}")
        if self.workers <= 0:
            raise ValueError(f"workers must be positive, got {self.workers}")
        if self.bandwidth <= 0:
            raise ValueError(f"bandwidth must be positive, got {self.bandwidth}")
        if self.backend == "s3" and not self.s3_bucket:
            raise ValueError("s3_bucket is required for the s3 copy backend")


@dataclass(frozen=True)
class MetadataConfig:
    """Backup metadata store configuration."""
    backend: str = "memory"  # memory, redis
    namespace: str = "backup:system"

    # Redis specific settings
    redis_url: str = "redis://localhost:6379"
    redis_password: Optional[str] = None
    redis_max_connections: int = 50
    redis_connection_timeout: float = 5.0
    redis_socket_timeout: float = 5.0

    @classmethod
    def from_env(cls) -> 'MetadataConfig':
        """Create config from environment variables."""
        return cls(
            backend=os.getenv("METADATA_BACKEND", "memory"),
            namespace=os.getenv("METADATA_NAMESPACE", "backup:system"),
            redis_url=os.getenv("REDIS_URL", "redis://localhost:6379"),
            redis_password=os.getenv("REDIS_PASSWORD", None),
            redis_max_connections=int(os.getenv("REDIS_MAX_CONNECTIONS", "50")),
            redis_connection_timeout=float(os.getenv("REDIS_CONNECTION_TIMEOUT", "5.0")),
            redis_socket_timeout=float(os.getenv("REDIS_SOCKET_TIMEOUT", "5.0"))
        )

    def __post_init__(self):
        """Validate configuration."""
        valid_backends = {"memory", "redis"}
        if self.backend not in valid_backends:
            raise ValueError(f"Unknown metadata backend: {self.backend}. Available: {valid_backends}")
        if not self.namespace:
            raise ValueError("namespace must not be empty")
        if self.redis_max_connections <= 0:
            raise ValueError(f"redis_max_connections must be positive, got {self.redis_max_connections}")


@dataclass(frozen=True)
class BackupConfig:
    """Main backup engine configuration."""
    enabled: bool = True
    wal: WALConfig = field(default_factory=WALConfig)
    copy: CopyConfig = field(default_factory=CopyConfig)
    metadata: MetadataConfig = field(default_factory=MetadataConfig)

    @classmethod
    def from_env(cls) -> 'BackupConfig':
        """Create complete config from environment variables."""
        return cls(
            enabled=os.getenv("BACKUP_ENABLED", "true").lower() == "true",
            wal=WALConfig.from_env(),
            copy=CopyConfig.from_env(),
            metadata=MetadataConfig.from_env()
        )

    def to_dict(self) -> dict:
        """Flatten config into the global_config dict handed to backends."""
        config_dict = {
            'backup_enabled': self.enabled,
            'wal_root_dir': self.wal.root_dir,
            'wal_active_dir_name': self.wal.active_dir_name,
            'wal_archived_dir_name': self.wal.archived_dir_name,
            'copy_backend': self.copy.backend,
            'copy_workers': self.copy.workers,
            'copy_bandwidth': self.copy.bandwidth,
            'metadata_namespace': self.metadata.namespace,
        }

        if self.copy.backend == "distcp":
            config_dict['distcp_command'] = self.copy.distcp_command
        elif self.copy.backend == "s3":
            config_dict['s3_bucket'] = self.copy.s3_bucket
            config_dict['s3_region'] = self.copy.s3_region
            config_dict['s3_prefix'] = self.copy.s3_prefix

        if self.metadata.backend == "redis":
            config_dict['redis_url'] = self.metadata.redis_url
            config_dict['redis_password'] = self.metadata.redis_password
            config_dict['redis_max_connections'] = self.metadata.redis_max_connections
            config_dict['redis_connection_timeout'] = self.metadata.redis_connection_timeout
            config_dict['redis_socket_timeout'] = self.metadata.redis_socket_timeout

        return config_dict
