"""
Backup export/import.

A backup is a JSON document with the same camelCase keys as a snapshot,
plus `exportedAt` and `version`. Import is partial: only the keys present
in the file replace current state, and a file that fails to parse
changes nothing.
"""

import json
from datetime import datetime, timezone
from typing import Union

import structlog
from pydantic import ValidationError

from fundledger.config import get_settings
from fundledger.models.finance import BackupFile, LedgerSnapshot


logger = structlog.get_logger(__name__)


class BackupImportError(Exception):
    """Backup file is not valid JSON or doesn't match the backup schema."""
    pass


def build_backup(snapshot: LedgerSnapshot, exported_at: datetime = None) -> BackupFile:
    """Wrap a snapshot as a complete backup file."""
    return BackupFile(
        **{name: getattr(snapshot, name) for name in LedgerSnapshot.model_fields},
        exported_at=exported_at or datetime.now(timezone.utc),
        version=get_settings().ledger.backup_version,
    )


def export_backup(snapshot: LedgerSnapshot, exported_at: datetime = None) -> str:
    """Serialize a snapshot as backup JSON text."""
    backup = build_backup(snapshot, exported_at)
    logger.info(
        "backup_exported",
        version=backup.version,
        transactions=len(snapshot.transactions),
    )
    return backup.model_dump_json(by_alias=True, indent=2)


def parse_backup(data: Union[str, bytes, dict]) -> BackupFile:
    """
    Parse backup content.

    Args:
        data: JSON text, raw bytes, or an already-decoded dict

    Raises:
        BackupImportError: If the content is not JSON or fails validation
    """
    if isinstance(data, (str, bytes)):
        try:
            data = json.loads(data)
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            raise BackupImportError(f"Backup is not valid JSON: {e}")

    if not isinstance(data, dict):
        raise BackupImportError("Backup must be a JSON object")

    try:
        return BackupFile.model_validate(data)
    except ValidationError as e:
        raise BackupImportError(f"Backup does not match the expected format: {e}")


def merge_backup(current: LedgerSnapshot, backup: BackupFile) -> LedgerSnapshot:
    """New snapshot: `current` with every key present in `backup` replaced."""
    changes = {name: getattr(backup, name) for name in backup.present_keys}
    return current.model_copy(update=changes)
