"""Global pytest configuration and fixtures."""

import pytest
import sys
from pathlib import Path

# Add parent directory to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from walbackup._storage.table_memory import MemoryTable
from walbackup.backup.system_table import BackupSystemTable
from walbackup.config import BackupConfig, WALConfig


@pytest.fixture
def memory_table():
    return MemoryTable(namespace="test:system")


@pytest.fixture
def store(memory_table):
    return BackupSystemTable(memory_table)


@pytest.fixture
def wal_config():
    """Log layout used by the copy scenarios: /logs/active and /logs/archived."""
    return WALConfig(root_dir="/logs", active_dir_name="active", archived_dir_name="archived")


@pytest.fixture
def backup_config(wal_config):
    return BackupConfig(wal=wal_config)
