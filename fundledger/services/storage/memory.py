"""In-memory storage backends, used by tests and embedding callers."""

from datetime import datetime
from typing import Optional

from fundledger.models.audit import LedgerEvent
from fundledger.models.finance import LedgerSnapshot
from fundledger.services.storage.interface import (
    AuditStorageInterface,
    CloudBackupInterface,
    SnapshotStorageInterface,
)


class InMemorySnapshotStorage(SnapshotStorageInterface):
    """
    Keeps serialized snapshots in a dict.

    Snapshots are stored as JSON so a later mutation of the live ledger
    can't leak into what was "persisted".
    """

    def __init__(self):
        self._documents: dict[str, str] = {}
        self.save_count = 0

    def load(self, user_key: str) -> Optional[LedgerSnapshot]:
        document = self._documents.get(user_key)
        if document is None:
            return None
        return LedgerSnapshot.model_validate_json(document)

    def save(self, user_key: str, snapshot: LedgerSnapshot) -> bool:
        self._documents[user_key] = snapshot.to_json()
        self.save_count += 1
        return True

    def delete(self, user_key: str) -> bool:
        return self._documents.pop(user_key, None) is not None

    def keys(self) -> list[str]:
        return list(self._documents)


class InMemoryCloudBackup(CloudBackupInterface):
    def __init__(self):
        self._backups: dict[str, tuple[str, datetime]] = {}

    def push_backup(
        self,
        user_key: str,
        snapshot: LedgerSnapshot,
        synced_at: datetime,
    ) -> bool:
        self._backups[user_key] = (snapshot.to_json(), synced_at)
        return True

    def get_last_sync_time(self, user_key: str) -> Optional[datetime]:
        entry = self._backups.get(user_key)
        return entry[1] if entry else None

    def get_backup(self, user_key: str) -> Optional[LedgerSnapshot]:
        entry = self._backups.get(user_key)
        return LedgerSnapshot.model_validate_json(entry[0]) if entry else None


class InMemoryAuditStorage(AuditStorageInterface):
    def __init__(self):
        self.events: list[LedgerEvent] = []

    def append_event(self, event: LedgerEvent) -> bool:
        self.events.append(event)
        return True

    def get_events_by_entity(
        self,
        entity_type: str,
        entity_id: str,
    ) -> list[LedgerEvent]:
        return [
            e for e in self.events
            if e.entity_type == entity_type and e.entity_id == entity_id
        ]

    def get_recent_events(self, limit: int = 100) -> list[LedgerEvent]:
        return list(reversed(self.events))[:limit]
