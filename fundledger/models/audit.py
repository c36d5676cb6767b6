"""
Audit Models for FundLedger

Every command that changes the ledger leaves an event behind, so the
history of balances can be reconstructed and failures can be traced.

Audit logs are append-only. Events are never modified or deleted.
"""

import json
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class LedgerEventType(str, Enum):
    """Types of events we audit."""
    # Transaction lifecycle
    TRANSACTION_CREATED = "transaction_created"
    TRANSACTION_REJECTED = "transaction_rejected"
    TRANSACTION_TRASHED = "transaction_trashed"
    TRANSACTION_RESTORED = "transaction_restored"
    TRANSACTION_PURGED = "transaction_purged"
    TRASH_CLEARED = "trash_cleared"

    # Entity stores
    FUND_ADDED = "fund_added"
    FUND_UPDATED = "fund_updated"
    FUND_DELETED = "fund_deleted"
    FUND_DELETE_REFUSED = "fund_delete_refused"
    CATEGORY_ADDED = "category_added"
    CATEGORY_UPDATED = "category_updated"
    CATEGORY_DELETED = "category_deleted"
    CURRENCY_ADDED = "currency_added"
    CURRENCY_REMOVED = "currency_removed"
    LANGUAGE_CHANGED = "language_changed"

    # Balances
    BALANCES_RECONCILED = "balances_reconciled"

    # Data movement
    SNAPSHOT_LOADED = "snapshot_loaded"
    SNAPSHOT_SAVE_FAILED = "snapshot_save_failed"
    BACKUP_EXPORTED = "backup_exported"
    BACKUP_IMPORTED = "backup_imported"
    BACKUP_IMPORT_FAILED = "backup_import_failed"
    CLOUD_SYNC_COMPLETED = "cloud_sync_completed"
    CLOUD_SYNC_FAILED = "cloud_sync_failed"
    USER_SWITCHED = "user_switched"


class AuditSeverity(str, Enum):
    """Severity level for audit events."""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"


class LedgerEvent(BaseModel):
    """A single audit event."""

    event_id: UUID = Field(
        default_factory=uuid4,
        description="Unique event identifier"
    )
    timestamp: datetime = Field(
        default_factory=_utcnow,
        description="When the event occurred (UTC)"
    )

    event_type: LedgerEventType
    severity: AuditSeverity = AuditSeverity.INFO

    # What entity is this about?
    entity_type: Optional[str] = Field(
        default=None,
        description="Type of entity (e.g., 'transaction', 'fund', 'backup')"
    )
    entity_id: Optional[str] = None

    user_key: Optional[str] = Field(
        default=None,
        description="Snapshot owner the event happened under"
    )

    description: str = Field(..., max_length=500)
    details: dict[str, Any] = Field(default_factory=dict)
    error_message: Optional[str] = None

    is_user_action: bool = Field(
        default=True,
        description="Was this triggered by a user command?"
    )

    def to_log_dict(self) -> dict:
        """Convert to a dictionary suitable for structured logging."""
        return {
            "event_id": str(self.event_id),
            "timestamp": self.timestamp.isoformat(),
            "event_type": self.event_type.value,
            "severity": self.severity.value,
            "entity_type": self.entity_type,
            "entity_id": self.entity_id,
            "user_key": self.user_key,
            "description": self.description,
            "details": self.details,
            "error_message": self.error_message,
            "is_user_action": self.is_user_action,
        }

    def to_json_line(self) -> str:
        """One line of the append-only audit file."""
        return json.dumps(self.to_log_dict(), default=str)


class LedgerEventBuilder:
    """
    Helper class to build audit events with common patterns.

    Usage:
        event = LedgerEventBuilder.transaction_created(tx)
        event = LedgerEventBuilder.fund_delete_refused(fund_id)
    """

    @staticmethod
    def transaction_created(
        transaction_id: str,
        transaction_type: str,
        amount: str,
        currency: str,
    ) -> LedgerEvent:
        return LedgerEvent(
            event_type=LedgerEventType.TRANSACTION_CREATED,
            entity_type="transaction",
            entity_id=transaction_id,
            description=f"{transaction_type.capitalize()} recorded: {amount} {currency}",
            details={
                "type": transaction_type,
                "amount": amount,
                "currency": currency,
            },
        )

    @staticmethod
    def transaction_rejected(issues: list[dict]) -> LedgerEvent:
        return LedgerEvent(
            event_type=LedgerEventType.TRANSACTION_REJECTED,
            severity=AuditSeverity.WARNING,
            entity_type="transaction",
            description=f"Transaction rejected with {len(issues)} issues",
            details={"issues": issues},
        )

    @staticmethod
    def transaction_transition(
        event_type: LedgerEventType,
        transaction_id: str,
    ) -> LedgerEvent:
        verb = event_type.value.replace("transaction_", "")
        return LedgerEvent(
            event_type=event_type,
            entity_type="transaction",
            entity_id=transaction_id,
            description=f"Transaction {verb}: {transaction_id}",
        )

    @staticmethod
    def trash_cleared(purged_ids: list[str]) -> LedgerEvent:
        return LedgerEvent(
            event_type=LedgerEventType.TRASH_CLEARED,
            entity_type="transaction",
            description=f"Trash cleared: {len(purged_ids)} transactions purged",
            details={"purged_ids": purged_ids},
        )

    @staticmethod
    def entity_changed(
        event_type: LedgerEventType,
        entity_type: str,
        entity_id: str,
        details: Optional[dict] = None,
    ) -> LedgerEvent:
        return LedgerEvent(
            event_type=event_type,
            entity_type=entity_type,
            entity_id=entity_id,
            description=f"{event_type.value.replace('_', ' ').capitalize()}: {entity_id}",
            details=details or {},
        )

    @staticmethod
    def fund_delete_refused(fund_id: str) -> LedgerEvent:
        return LedgerEvent(
            event_type=LedgerEventType.FUND_DELETE_REFUSED,
            severity=AuditSeverity.WARNING,
            entity_type="fund",
            entity_id=fund_id,
            description=f"Refused to delete system fund: {fund_id}",
        )

    @staticmethod
    def balances_reconciled(drift: list[dict]) -> LedgerEvent:
        return LedgerEvent(
            event_type=LedgerEventType.BALANCES_RECONCILED,
            severity=AuditSeverity.WARNING if drift else AuditSeverity.INFO,
            entity_type="balance",
            description=f"Balances rebuilt from transactions ({len(drift)} cells drifted)",
            details={"drift": drift},
        )

    @staticmethod
    def snapshot_loaded(user_key: str, found: bool) -> LedgerEvent:
        return LedgerEvent(
            event_type=LedgerEventType.SNAPSHOT_LOADED,
            entity_type="snapshot",
            entity_id=user_key,
            user_key=user_key,
            description=(
                f"Snapshot loaded for {user_key}" if found
                else f"No snapshot for {user_key}; seeded defaults"
            ),
            details={"found": found},
            is_user_action=False,
        )

    @staticmethod
    def snapshot_save_failed(user_key: str, error_message: str) -> LedgerEvent:
        return LedgerEvent(
            event_type=LedgerEventType.SNAPSHOT_SAVE_FAILED,
            severity=AuditSeverity.ERROR,
            entity_type="snapshot",
            entity_id=user_key,
            user_key=user_key,
            description=f"Failed to persist snapshot for {user_key}",
            error_message=error_message,
            is_user_action=False,
        )

    @staticmethod
    def backup_exported(version: str, transaction_count: int) -> LedgerEvent:
        return LedgerEvent(
            event_type=LedgerEventType.BACKUP_EXPORTED,
            entity_type="backup",
            description=f"Backup v{version} exported with {transaction_count} transactions",
            details={"version": version, "transaction_count": transaction_count},
        )

    @staticmethod
    def backup_imported(keys: list[str], version: Optional[str]) -> LedgerEvent:
        return LedgerEvent(
            event_type=LedgerEventType.BACKUP_IMPORTED,
            entity_type="backup",
            description=f"Backup imported ({', '.join(keys) or 'no keys'})",
            details={"keys": keys, "version": version},
        )

    @staticmethod
    def backup_import_failed(error_message: str) -> LedgerEvent:
        return LedgerEvent(
            event_type=LedgerEventType.BACKUP_IMPORT_FAILED,
            severity=AuditSeverity.WARNING,
            entity_type="backup",
            description="Backup import rejected; state unchanged",
            error_message=error_message,
        )

    @staticmethod
    def cloud_sync(user_key: str, synced_at: Optional[datetime], error_message: Optional[str] = None) -> LedgerEvent:
        if error_message:
            return LedgerEvent(
                event_type=LedgerEventType.CLOUD_SYNC_FAILED,
                severity=AuditSeverity.ERROR,
                entity_type="snapshot",
                entity_id=user_key,
                user_key=user_key,
                description=f"Cloud sync failed for {user_key}",
                error_message=error_message,
                is_user_action=False,
            )
        return LedgerEvent(
            event_type=LedgerEventType.CLOUD_SYNC_COMPLETED,
            entity_type="snapshot",
            entity_id=user_key,
            user_key=user_key,
            description=f"Cloud sync completed for {user_key}",
            details={"synced_at": synced_at.isoformat() if synced_at else None},
            is_user_action=False,
        )

    @staticmethod
    def user_switched(previous_key: str, user_key: str) -> LedgerEvent:
        return LedgerEvent(
            event_type=LedgerEventType.USER_SWITCHED,
            entity_type="snapshot",
            entity_id=user_key,
            user_key=user_key,
            description=f"Switched from {previous_key} to {user_key}",
            details={"previous_key": previous_key},
        )
