"""
Finance Store

The application root. It owns the entity stores, the transaction
lifecycle manager and the balance ledger, and exposes one explicit
handler per command.

Every successful command:
1. Mutates in-memory state (validation first, so a rejected command
   changes nothing)
2. Persists the new snapshot (fire-and-forget: failures are logged,
   in-memory state stays authoritative)
3. Leaves an audit event
4. Calls the `on_change(snapshot)` hook and returns the snapshot

Rejected commands raise and persist nothing.
"""

from decimal import Decimal
from pathlib import Path
from typing import Any, Callable, Optional, Union

import structlog

from fundledger.audit import AuditLogger
from fundledger.config import get_settings
from fundledger.ledger import BalanceLedger, TransactionLifecycle
from fundledger.models.audit import LedgerEventBuilder, LedgerEventType
from fundledger.models.finance import (
    Balance,
    Category,
    Fund,
    Language,
    LedgerSnapshot,
    Transaction,
    TransactionDraft,
)
from fundledger.queries import QueryExecutor
from fundledger.services.backup import (
    BackupImportError,
    export_backup,
    merge_backup,
    parse_backup,
)
from fundledger.services.storage import (
    JsonFileCloudBackup,
    JsonFileSnapshotStorage,
    JsonLinesAuditStorage,
    SnapshotCorruptedError,
    SnapshotStorageInterface,
    StorageError,
    user_key_for,
)
from fundledger.services.sync import CloudSyncService
from fundledger.stores import (
    CategoryStore,
    CurrencyList,
    FundStore,
    ProtectedFundError,
    default_snapshot,
)
from fundledger.validation import TransactionRejectedError, TransactionValidator


logger = structlog.get_logger(__name__)

ChangeHook = Callable[[LedgerSnapshot], None]


class FinanceStore:
    """
    Explicit store object for one signed-in (or guest) user.

    Args:
        storage: Snapshot persistence. If None, nothing is persisted.
        audit_logger: Where audit events go. Defaults to local-only logging.
        sync_service: Optional simulated cloud sync.
        on_change: Called with the new snapshot after every command.
        user_email: Identity whose snapshot to load; None for the guest.
    """

    def __init__(
        self,
        storage: Optional[SnapshotStorageInterface] = None,
        audit_logger: Optional[AuditLogger] = None,
        sync_service: Optional[CloudSyncService] = None,
        on_change: Optional[ChangeHook] = None,
        user_email: Optional[str] = None,
    ):
        self._storage = storage
        self._audit = audit_logger or AuditLogger()
        self._sync = sync_service
        self._on_change = on_change

        self._ledger = BalanceLedger()
        self._lifecycle = TransactionLifecycle(self._ledger)
        self._funds = FundStore()
        self._categories = CategoryStore()
        self._currencies = CurrencyList()
        self._exchange_rates: dict[str, Decimal] = {}
        self._language = Language.EN
        self._validator = TransactionValidator(self._funds, self._categories, self._currencies)

        self._user_key = user_key_for(user_email)
        self._load()

    # =========================================================================
    # STATE
    # =========================================================================

    @property
    def user_key(self) -> str:
        return self._user_key

    @property
    def funds(self) -> list[Fund]:
        return self._funds.all()

    @property
    def categories(self) -> list[Category]:
        return self._categories.all()

    @property
    def transactions(self) -> list[Transaction]:
        return self._lifecycle.transactions

    @property
    def balances(self) -> list[Balance]:
        return self._ledger.balances()

    @property
    def exchange_rates(self) -> dict[str, Decimal]:
        return dict(self._exchange_rates)

    @property
    def available_currencies(self) -> list[str]:
        return self._currencies.all()

    @property
    def language(self) -> Language:
        return self._language

    def snapshot(self) -> LedgerSnapshot:
        """Detached copy of the current state."""
        return LedgerSnapshot(
            funds=self._funds.all(),
            categories=self._categories.all(),
            transactions=self._lifecycle.transactions,
            balances=self._ledger.balances(),
            exchange_rates=dict(self._exchange_rates),
            available_currencies=self._currencies.all(),
            language=self._language,
        ).model_copy(deep=True)

    def _apply_snapshot(self, snapshot: LedgerSnapshot) -> None:
        snapshot = snapshot.model_copy(deep=True)
        self._funds.load(snapshot.funds)
        self._categories.load(snapshot.categories)
        self._lifecycle.load(snapshot.transactions)
        self._ledger.load(snapshot.balances)
        self._exchange_rates = dict(snapshot.exchange_rates)
        self._currencies.load(snapshot.available_currencies)
        self._language = snapshot.language

    def _load(self) -> None:
        """Load the current user's snapshot, seeding defaults when there is none."""
        snapshot = None
        if self._storage is not None:
            try:
                snapshot = self._storage.load(self._user_key)
            except SnapshotCorruptedError as e:
                logger.error("snapshot_corrupted", user_key=self._user_key, error=str(e))
            except StorageError as e:
                logger.error("snapshot_load_failed", user_key=self._user_key, error=str(e))

        found = snapshot is not None
        self._apply_snapshot(snapshot if found else default_snapshot())
        self._audit.bind_user(self._user_key)
        self._audit.log(LedgerEventBuilder.snapshot_loaded(self._user_key, found))

    def _notify(self, snapshot: LedgerSnapshot) -> LedgerSnapshot:
        if self._on_change is not None:
            self._on_change(snapshot)
        return snapshot

    def _commit(self) -> LedgerSnapshot:
        """Persist, notify and hand back the new snapshot."""
        snapshot = self.snapshot()

        if self._storage is not None:
            try:
                self._storage.save(self._user_key, snapshot)
            except StorageError as e:
                logger.error("snapshot_save_failed", user_key=self._user_key, error=str(e))
                self._audit.log(LedgerEventBuilder.snapshot_save_failed(self._user_key, str(e)))

        return self._notify(snapshot)

    # =========================================================================
    # QUERIES
    # =========================================================================

    def queries(self) -> QueryExecutor:
        """Query executor over the current state."""
        return QueryExecutor(self.snapshot())

    def fund_balance(self, fund_id: str, currency: str) -> Decimal:
        return self._ledger.get(fund_id, currency)

    def sum_by_currency(self, currency: str) -> Decimal:
        return self.queries().sum_by_currency(currency)

    def total_balance_in_currency(self, currency: str) -> Decimal:
        return self.queries().total_balance_in_currency(currency)

    def trashed_transactions(self) -> list[Transaction]:
        return self._lifecycle.trashed()

    # =========================================================================
    # TRANSACTIONS
    # =========================================================================

    def add_transaction(self, data: Union[TransactionDraft, dict[str, Any]]) -> LedgerSnapshot:
        """
        Validate and record a transaction.

        Raises:
            TransactionRejectedError: If validation finds any error
        """
        try:
            draft = self._validator.check(data)
        except TransactionRejectedError as e:
            self._audit.log(LedgerEventBuilder.transaction_rejected(e.result.as_dicts()))
            raise

        tx = self._lifecycle.create(draft)
        self._audit.log(LedgerEventBuilder.transaction_created(
            transaction_id=tx.id,
            transaction_type=tx.type.value,
            amount=str(tx.amount),
            currency=tx.currency,
        ))
        return self._commit()

    def trash_transaction(self, transaction_id: str) -> LedgerSnapshot:
        if self._lifecycle.trash(transaction_id) is not None:
            self._audit.log(LedgerEventBuilder.transaction_transition(
                LedgerEventType.TRANSACTION_TRASHED, transaction_id,
            ))
        return self._commit()

    def restore_transaction(self, transaction_id: str) -> LedgerSnapshot:
        if self._lifecycle.restore(transaction_id) is not None:
            self._audit.log(LedgerEventBuilder.transaction_transition(
                LedgerEventType.TRANSACTION_RESTORED, transaction_id,
            ))
        return self._commit()

    def purge_transaction(self, transaction_id: str) -> LedgerSnapshot:
        if self._lifecycle.purge(transaction_id) is not None:
            self._audit.log(LedgerEventBuilder.transaction_transition(
                LedgerEventType.TRANSACTION_PURGED, transaction_id,
            ))
        return self._commit()

    def clear_trash(self) -> LedgerSnapshot:
        purged = self._lifecycle.purge_all_trashed()
        self._audit.log(LedgerEventBuilder.trash_cleared([tx.id for tx in purged]))
        return self._commit()

    def reconcile_balances(self) -> LedgerSnapshot:
        """Recompute every balance from the active transactions."""
        drift = self._ledger.rebuild(self._lifecycle.transactions)
        self._audit.log(LedgerEventBuilder.balances_reconciled(drift))
        return self._commit()

    # =========================================================================
    # FUNDS, CATEGORIES, CURRENCIES
    # =========================================================================

    def add_fund(self, **fields: Any) -> LedgerSnapshot:
        fund = self._funds.add(**fields)
        self._audit.log(LedgerEventBuilder.entity_changed(
            LedgerEventType.FUND_ADDED, "fund", fund.id, {"name": fund.name},
        ))
        return self._commit()

    def update_fund(self, fund_id: str, **changes: Any) -> LedgerSnapshot:
        if self._funds.update(fund_id, **changes) is not None:
            self._audit.log(LedgerEventBuilder.entity_changed(
                LedgerEventType.FUND_UPDATED, "fund", fund_id, {"fields": sorted(changes)},
            ))
        return self._commit()

    def delete_fund(self, fund_id: str) -> LedgerSnapshot:
        """
        Delete a fund. Its balances and transactions are left as they are.

        Raises:
            ProtectedFundError: For the system-default fund
        """
        try:
            removed = self._funds.delete(fund_id)
        except ProtectedFundError:
            self._audit.log(LedgerEventBuilder.fund_delete_refused(fund_id))
            raise

        if removed is not None:
            self._audit.log(LedgerEventBuilder.entity_changed(
                LedgerEventType.FUND_DELETED, "fund", fund_id,
            ))
        return self._commit()

    def add_category(self, **fields: Any) -> LedgerSnapshot:
        category = self._categories.add(**fields)
        self._audit.log(LedgerEventBuilder.entity_changed(
            LedgerEventType.CATEGORY_ADDED, "category", category.id, {"name": category.name},
        ))
        return self._commit()

    def update_category(self, category_id: str, **changes: Any) -> LedgerSnapshot:
        if self._categories.update(category_id, **changes) is not None:
            self._audit.log(LedgerEventBuilder.entity_changed(
                LedgerEventType.CATEGORY_UPDATED, "category", category_id, {"fields": sorted(changes)},
            ))
        return self._commit()

    def delete_category(self, category_id: str) -> LedgerSnapshot:
        if self._categories.delete(category_id) is not None:
            self._audit.log(LedgerEventBuilder.entity_changed(
                LedgerEventType.CATEGORY_DELETED, "category", category_id,
            ))
        return self._commit()

    def add_currency(self, code: str) -> LedgerSnapshot:
        added = self._currencies.add(code)
        if added is not None:
            self._audit.log(LedgerEventBuilder.entity_changed(
                LedgerEventType.CURRENCY_ADDED, "currency", added,
            ))
        return self._commit()

    def remove_currency(self, code: str) -> LedgerSnapshot:
        removed = self._currencies.remove(code)
        if removed is not None:
            self._audit.log(LedgerEventBuilder.entity_changed(
                LedgerEventType.CURRENCY_REMOVED, "currency", removed,
            ))
        return self._commit()

    def set_language(self, language: Union[Language, str]) -> LedgerSnapshot:
        self._language = Language(language)
        self._audit.log(LedgerEventBuilder.entity_changed(
            LedgerEventType.LANGUAGE_CHANGED, "language", self._language.value,
        ))
        return self._commit()

    # =========================================================================
    # BACKUP, IDENTITY, SYNC
    # =========================================================================

    def export_backup(self) -> str:
        """Backup JSON for the current state. Read-only: nothing is persisted."""
        snapshot = self.snapshot()
        document = export_backup(snapshot)
        self._audit.log(LedgerEventBuilder.backup_exported(
            get_settings().ledger.backup_version, len(snapshot.transactions),
        ))
        return document

    def import_backup(self, data: Union[str, bytes, dict]) -> LedgerSnapshot:
        """
        Overwrite the keys present in a backup file.

        The file is fully parsed before anything is applied; a malformed
        file leaves state untouched.

        Raises:
            BackupImportError: If the file is malformed
        """
        try:
            backup = parse_backup(data)
        except BackupImportError as e:
            self._audit.log(LedgerEventBuilder.backup_import_failed(str(e)))
            raise

        self._apply_snapshot(merge_backup(self.snapshot(), backup))
        self._audit.log(LedgerEventBuilder.backup_imported(backup.present_keys, backup.version))
        return self._commit()

    def switch_user(self, email: Optional[str]) -> LedgerSnapshot:
        """
        Load the snapshot of another identity (None for the guest).

        Nothing is saved: an unreadable snapshot stays on disk until the
        next successful command replaces it.
        """
        previous = self._user_key
        self._user_key = user_key_for(email)
        self._load()
        self._audit.log(LedgerEventBuilder.user_switched(previous, self._user_key))
        return self._notify(self.snapshot())

    async def sync(self):
        """
        Push the current state to the cloud backup.

        The snapshot is captured before the sync delay starts.
        Returns the sync time, or None when sync is off or skipped.
        """
        if self._sync is None:
            return None
        return await self._sync.sync(self._user_key, self.snapshot())

    def last_sync_time(self):
        if self._sync is None:
            return None
        return self._sync.last_sync_time(self._user_key)


def create_app_components(
    data_dir: Optional[Path] = None,
    user_email: Optional[str] = None,
    on_change: Optional[ChangeHook] = None,
    use_storage: bool = True,
) -> FinanceStore:
    """
    Factory function to create a fully wired store.

    Args:
        data_dir: Where snapshots, cloud backups and the audit file live.
                  Defaults to the configured data directory.
        user_email: Identity to load; None for the guest.
        on_change: Hook called with each new snapshot.
        use_storage: Set to False for a purely in-memory store.
    """
    if not use_storage:
        return FinanceStore(on_change=on_change, user_email=user_email)

    data_dir = Path(data_dir or get_settings().storage.data_dir)
    audit_logger = AuditLogger(JsonLinesAuditStorage(data_dir / get_settings().storage.audit_file_name))
    sync_service = CloudSyncService(JsonFileCloudBackup(data_dir), audit_logger=audit_logger)

    return FinanceStore(
        storage=JsonFileSnapshotStorage(data_dir),
        audit_logger=audit_logger,
        sync_service=sync_service,
        on_change=on_change,
        user_email=user_email,
    )
