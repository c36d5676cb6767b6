"""Balance ledger and transaction lifecycle package."""

from fundledger.ledger.engine import COMMIT, REVERSE, BalanceLedger, Leg
from fundledger.ledger.lifecycle import TransactionLifecycle, new_transaction_id

__all__ = [
    "COMMIT",
    "REVERSE",
    "BalanceLedger",
    "Leg",
    "TransactionLifecycle",
    "new_transaction_id",
]
