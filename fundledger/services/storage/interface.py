"""
Abstract Storage Interfaces

Business logic only talks to these interfaces. The JSON-file backend is
what the app uses on disk; the in-memory backend is for tests and for
callers that handle persistence themselves.

Snapshots are keyed by user key: "guest" when nobody is signed in,
otherwise the user's email. Different keys never share data.
"""

from abc import ABC, abstractmethod
from datetime import datetime
from typing import Optional

from fundledger.models.audit import LedgerEvent
from fundledger.models.finance import LedgerSnapshot


GUEST_USER_KEY = "guest"


def user_key_for(email: Optional[str]) -> str:
    """Snapshot key for an identity (or the lack of one)."""
    if email is None or not email.strip():
        return GUEST_USER_KEY
    return email.strip().lower()


class SnapshotStorageInterface(ABC):
    """
    Persistence adapter for ledger snapshots.

    `save` is called after every mutating command. Callers treat it as
    fire-and-forget: a failure is logged and the in-memory state stays
    authoritative for the session.
    """

    @abstractmethod
    def load(self, user_key: str) -> Optional[LedgerSnapshot]:
        """
        Load the snapshot for a user key.

        Returns:
            The snapshot, or None if nothing was ever saved for this key

        Raises:
            SnapshotCorruptedError: If stored data can't be parsed
        """
        pass

    @abstractmethod
    def save(self, user_key: str, snapshot: LedgerSnapshot) -> bool:
        """
        Persist a snapshot, replacing any previous one for the key.

        Raises:
            StorageError: If the write fails
        """
        pass

    @abstractmethod
    def delete(self, user_key: str) -> bool:
        """Remove the stored snapshot. Returns False if there was none."""
        pass


class CloudBackupInterface(ABC):
    """Target of the simulated cloud sync."""

    @abstractmethod
    def push_backup(
        self,
        user_key: str,
        snapshot: LedgerSnapshot,
        synced_at: datetime,
    ) -> bool:
        """Store a backup snapshot and the time it was taken."""
        pass

    @abstractmethod
    def get_last_sync_time(self, user_key: str) -> Optional[datetime]:
        """When the last backup for this key was pushed, if ever."""
        pass

    @abstractmethod
    def get_backup(self, user_key: str) -> Optional[LedgerSnapshot]:
        """The last pushed backup, if any."""
        pass


class AuditStorageInterface(ABC):
    """
    Abstract interface for audit log storage.

    Audit logs are append-only - we never delete or modify them.
    """

    @abstractmethod
    def append_event(self, event: LedgerEvent) -> bool:
        """Append an audit event to the log."""
        pass

    @abstractmethod
    def get_events_by_entity(
        self,
        entity_type: str,
        entity_id: str,
    ) -> list[LedgerEvent]:
        """All events for one entity, oldest first."""
        pass

    @abstractmethod
    def get_recent_events(self, limit: int = 100) -> list[LedgerEvent]:
        """The most recent events, newest first."""
        pass


class StorageError(Exception):
    """Base exception for storage operations."""
    pass


class SnapshotCorruptedError(StorageError):
    """Stored snapshot exists but can't be parsed."""
    pass
