"""
JSON File Storage Implementation

One JSON document per user key under the configured data directory:

    <data_dir>/snapshots/<key>.json   ledger snapshot
    <data_dir>/cloud/<key>.json       last simulated cloud backup
    <data_dir>/audit.jsonl            append-only audit trail

Writes go to a temporary file that is then renamed over the target, so
a crash mid-write leaves the previous snapshot intact. Transient OS
errors are retried with exponential backoff.
"""

import json
import os
from datetime import datetime
from pathlib import Path
from typing import Optional
from urllib.parse import quote

import structlog
from pydantic import ValidationError
from tenacity import (
    Retrying,
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from fundledger.config import get_settings
from fundledger.models.audit import LedgerEvent
from fundledger.models.finance import LedgerSnapshot
from fundledger.services.storage.interface import (
    AuditStorageInterface,
    CloudBackupInterface,
    SnapshotCorruptedError,
    SnapshotStorageInterface,
    StorageError,
)


logger = structlog.get_logger(__name__)


def _file_name(user_key: str) -> str:
    """Filesystem-safe, collision-free name for a user key."""
    return quote(user_key, safe="@._-") + ".json"


def _atomic_write(path: Path, text: str) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp = path.with_name(path.name + ".tmp")
    tmp.write_text(text, encoding="utf-8")
    os.replace(tmp, path)


class JsonFileSnapshotStorage(SnapshotStorageInterface):
    """Snapshot persistence on the local filesystem."""

    def __init__(
        self,
        data_dir: Optional[Path] = None,
        retry_attempts: Optional[int] = None,
    ):
        settings = get_settings().storage
        self._dir = Path(data_dir or settings.data_dir) / "snapshots"
        self._attempts = retry_attempts or settings.save_retry_attempts

    def path_for(self, user_key: str) -> Path:
        return self._dir / _file_name(user_key)

    def load(self, user_key: str) -> Optional[LedgerSnapshot]:
        path = self.path_for(user_key)
        if not path.exists():
            return None
        try:
            return LedgerSnapshot.model_validate_json(path.read_text(encoding="utf-8"))
        except (ValidationError, UnicodeDecodeError) as e:
            raise SnapshotCorruptedError(f"Snapshot for {user_key} is corrupted: {e}")
        except OSError as e:
            raise StorageError(f"Failed to read snapshot for {user_key}: {e}")

    def save(self, user_key: str, snapshot: LedgerSnapshot) -> bool:
        path = self.path_for(user_key)
        try:
            for attempt in Retrying(
                stop=stop_after_attempt(self._attempts),
                wait=wait_exponential(multiplier=0.1, min=0.1, max=2),
                retry=retry_if_exception_type(OSError),
                reraise=True,
            ):
                with attempt:
                    _atomic_write(path, snapshot.to_json())
        except OSError as e:
            raise StorageError(f"Failed to save snapshot for {user_key}: {e}")

        logger.debug("snapshot_saved", user_key=user_key, path=str(path))
        return True

    def delete(self, user_key: str) -> bool:
        path = self.path_for(user_key)
        try:
            path.unlink()
            return True
        except FileNotFoundError:
            return False
        except OSError as e:
            raise StorageError(f"Failed to delete snapshot for {user_key}: {e}")


class JsonFileCloudBackup(CloudBackupInterface):
    """Where the simulated cloud sync drops its backups."""

    def __init__(self, data_dir: Optional[Path] = None):
        self._dir = Path(data_dir or get_settings().storage.data_dir) / "cloud"

    def _read(self, user_key: str) -> Optional[dict]:
        path = self._dir / _file_name(user_key)
        if not path.exists():
            return None
        try:
            return json.loads(path.read_text(encoding="utf-8"))
        except (OSError, UnicodeDecodeError, json.JSONDecodeError) as e:
            raise SnapshotCorruptedError(f"Cloud backup for {user_key} is unreadable: {e}")

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=0.1, min=0.1, max=2),
        retry=retry_if_exception_type(OSError),
        reraise=True,
    )
    def _write(self, user_key: str, document: dict) -> None:
        _atomic_write(self._dir / _file_name(user_key), json.dumps(document, indent=2))

    def push_backup(
        self,
        user_key: str,
        snapshot: LedgerSnapshot,
        synced_at: datetime,
    ) -> bool:
        document = {
            "syncedAt": synced_at.isoformat(),
            "backup": snapshot.to_document(),
        }
        try:
            self._write(user_key, document)
        except OSError as e:
            raise StorageError(f"Failed to push cloud backup for {user_key}: {e}")
        return True

    def get_last_sync_time(self, user_key: str) -> Optional[datetime]:
        document = self._read(user_key)
        if not document:
            return None
        try:
            return datetime.fromisoformat(document["syncedAt"])
        except (KeyError, TypeError, ValueError) as e:
            raise SnapshotCorruptedError(f"Cloud backup for {user_key} has no valid sync time: {e}")

    def get_backup(self, user_key: str) -> Optional[LedgerSnapshot]:
        document = self._read(user_key)
        if not document:
            return None
        try:
            return LedgerSnapshot.model_validate(document["backup"])
        except (KeyError, TypeError, ValidationError) as e:
            raise SnapshotCorruptedError(f"Cloud backup for {user_key} is corrupted: {e}")


class JsonLinesAuditStorage(AuditStorageInterface):
    """
    Append-only audit trail, one JSON object per line.

    Append failures are swallowed: audit logging must not break a command.
    """

    def __init__(self, path: Optional[Path] = None):
        settings = get_settings().storage
        self._path = Path(path or Path(settings.data_dir) / settings.audit_file_name)

    def append_event(self, event: LedgerEvent) -> bool:
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            with self._path.open("a", encoding="utf-8") as fh:
                fh.write(event.to_json_line() + "\n")
            return True
        except OSError as e:
            logger.warning("audit_append_failed", error=str(e), event_id=str(event.event_id))
            return False

    def _read_all(self) -> list[LedgerEvent]:
        if not self._path.exists():
            return []
        events = []
        with self._path.open(encoding="utf-8") as fh:
            for line in fh:
                line = line.strip()
                if not line:
                    continue
                try:
                    events.append(LedgerEvent.model_validate_json(line))
                except ValidationError:
                    logger.warning("audit_line_skipped", reason="malformed")
        return events

    def get_events_by_entity(
        self,
        entity_type: str,
        entity_id: str,
    ) -> list[LedgerEvent]:
        events = [
            e for e in self._read_all()
            if e.entity_type == entity_type and e.entity_id == entity_id
        ]
        events.sort(key=lambda e: e.timestamp)
        return events

    def get_recent_events(self, limit: int = 100) -> list[LedgerEvent]:
        events = self._read_all()
        events.sort(key=lambda e: e.timestamp, reverse=True)
        return events[:limit]
