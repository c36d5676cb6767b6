"""
Transaction Lifecycle Manager

States per transaction:

    Active --trash--> Trashed --restore--> Active
    Active | Trashed --purge--> Purged (record removed)

Each transition calls the ledger engine so that balances always equal
the summed effect of the active transactions. Operating on an id that
doesn't exist, or that is already in the target state, is a no-op and
returns None.
"""

from datetime import datetime, timezone
from typing import Callable, Iterable, Optional
from uuid import uuid4

import structlog

from fundledger.ledger.engine import COMMIT, REVERSE, BalanceLedger
from fundledger.models.finance import Transaction, TransactionDraft


logger = structlog.get_logger(__name__)


def new_transaction_id() -> str:
    return uuid4().hex


class TransactionLifecycle:
    """
    Owns the transaction list and every transition of `is_deleted`.

    Transactions are kept newest first. Everything handed out is a copy;
    the stored records change only through the transitions below.
    """

    def __init__(
        self,
        ledger: BalanceLedger,
        transactions: Iterable[Transaction] = (),
        id_factory: Callable[[], str] = new_transaction_id,
        clock: Callable[[], datetime] = lambda: datetime.now(timezone.utc),
    ):
        self._ledger = ledger
        self._transactions: list[Transaction] = []
        self._id_factory = id_factory
        self._clock = clock
        self.load(transactions)

    @property
    def transactions(self) -> list[Transaction]:
        return [tx.model_copy(deep=True) for tx in self._transactions]

    def load(self, transactions: Iterable[Transaction]) -> None:
        """Replace the transaction list without touching balances."""
        self._transactions = [tx.model_copy(deep=True) for tx in transactions]

    def _find(self, transaction_id: str) -> Optional[Transaction]:
        for tx in self._transactions:
            if tx.id == transaction_id:
                return tx
        return None

    def get(self, transaction_id: str) -> Optional[Transaction]:
        tx = self._find(transaction_id)
        return tx.model_copy(deep=True) if tx is not None else None

    def active(self) -> list[Transaction]:
        return [tx.model_copy(deep=True) for tx in self._transactions if tx.is_active]

    def trashed(self) -> list[Transaction]:
        return [tx.model_copy(deep=True) for tx in self._transactions if tx.is_trashed]

    # -------------------------------------------------------------------------
    # Transitions
    # -------------------------------------------------------------------------

    def create(self, draft: TransactionDraft) -> Transaction:
        """Commit a draft as a new Active transaction and apply its effect."""
        transaction_id = self._id_factory()
        while self._find(transaction_id) is not None:
            transaction_id = self._id_factory()

        tx = draft.commit(transaction_id)
        self._transactions.insert(0, tx)
        self._ledger.apply_effect(tx, COMMIT)

        logger.info(
            "transaction_created",
            transaction_id=tx.id,
            type=tx.type.value,
            amount=str(tx.amount),
            currency=tx.currency,
        )
        return tx.model_copy(deep=True)

    def trash(self, transaction_id: str) -> Optional[Transaction]:
        """Move an Active transaction to the trash, reversing its effect."""
        tx = self._find(transaction_id)
        if tx is None or tx.is_trashed:
            logger.debug("trash_skipped", transaction_id=transaction_id, found=tx is not None)
            return None

        self._ledger.apply_effect(tx, REVERSE)
        tx.is_deleted = True
        tx.deleted_at = self._clock()

        logger.info("transaction_trashed", transaction_id=tx.id)
        return tx.model_copy(deep=True)

    def restore(self, transaction_id: str) -> Optional[Transaction]:
        """Bring a Trashed transaction back, reapplying its effect."""
        tx = self._find(transaction_id)
        if tx is None or tx.is_active:
            logger.debug("restore_skipped", transaction_id=transaction_id, found=tx is not None)
            return None

        self._ledger.apply_effect(tx, COMMIT)
        tx.is_deleted = False
        tx.deleted_at = None

        logger.info("transaction_restored", transaction_id=tx.id)
        return tx.model_copy(deep=True)

    def purge(self, transaction_id: str) -> Optional[Transaction]:
        """
        Remove a transaction permanently.

        A Trashed transaction's effect was already reversed by `trash`.
        An Active one is reversed here first so balances never keep the
        effect of a record that no longer exists.
        """
        tx = self._find(transaction_id)
        if tx is None:
            return None

        if tx.is_active:
            self._ledger.apply_effect(tx, REVERSE)
            logger.warning("active_transaction_purged", transaction_id=tx.id)

        self._transactions = [t for t in self._transactions if t.id != transaction_id]
        logger.info("transaction_purged", transaction_id=tx.id)
        return tx

    def purge_all_trashed(self) -> list[Transaction]:
        """Remove every Trashed transaction. Balances are not touched."""
        purged = self.trashed()
        if purged:
            self._transactions = [tx for tx in self._transactions if tx.is_active]
        logger.info("trash_cleared", purged=len(purged))
        return purged
