"""Services package."""

from fundledger.services.backup import (
    BackupImportError,
    build_backup,
    export_backup,
    merge_backup,
    parse_backup,
)
from fundledger.services.storage import (
    AuditStorageInterface,
    CloudBackupInterface,
    InMemoryAuditStorage,
    InMemoryCloudBackup,
    InMemorySnapshotStorage,
    JsonFileCloudBackup,
    JsonFileSnapshotStorage,
    JsonLinesAuditStorage,
    SnapshotCorruptedError,
    SnapshotStorageInterface,
    StorageError,
)

__all__ = [
    # Backup codec
    "BackupImportError",
    "build_backup",
    "export_backup",
    "merge_backup",
    "parse_backup",
    # Storage services
    "AuditStorageInterface",
    "CloudBackupInterface",
    "InMemoryAuditStorage",
    "InMemoryCloudBackup",
    "InMemorySnapshotStorage",
    "JsonFileCloudBackup",
    "JsonFileSnapshotStorage",
    "JsonLinesAuditStorage",
    "SnapshotCorruptedError",
    "SnapshotStorageInterface",
    "StorageError",
]
