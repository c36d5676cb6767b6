"""
Storage Services Package

Provides abstract interfaces and concrete implementations for data storage.
JSON files are the on-disk backend; in-memory backends serve tests.
"""

from fundledger.services.storage.interface import (
    GUEST_USER_KEY,
    AuditStorageInterface,
    CloudBackupInterface,
    SnapshotCorruptedError,
    SnapshotStorageInterface,
    StorageError,
    user_key_for,
)
from fundledger.services.storage.json_file import (
    JsonFileCloudBackup,
    JsonFileSnapshotStorage,
    JsonLinesAuditStorage,
)
from fundledger.services.storage.memory import (
    InMemoryAuditStorage,
    InMemoryCloudBackup,
    InMemorySnapshotStorage,
)

__all__ = [
    "GUEST_USER_KEY",
    "user_key_for",
    # Interfaces
    "AuditStorageInterface",
    "CloudBackupInterface",
    "SnapshotStorageInterface",
    # Exceptions
    "SnapshotCorruptedError",
    "StorageError",
    # JSON file implementation
    "JsonFileCloudBackup",
    "JsonFileSnapshotStorage",
    "JsonLinesAuditStorage",
    # In-memory implementation
    "InMemoryAuditStorage",
    "InMemoryCloudBackup",
    "InMemorySnapshotStorage",
]
