"""
Balance Ledger Engine

Translates a transaction into one or two signed adjustments of
(fund, currency) balance cells and applies them.

INVARIANT: for every cell,
    balance(f, c) == sum of effect(tx) over all active transactions touching (f, c)

The engine is the only writer of balance amounts. It performs no
validation: it trusts well-formed Transaction records and never fails on
them. Callers decide whether a transaction is fit to be applied.
"""

from decimal import Decimal
from typing import Iterable, NamedTuple

import structlog

from fundledger.models.finance import Balance, Transaction, TransactionType


logger = structlog.get_logger(__name__)

COMMIT = 1
REVERSE = -1


class Leg(NamedTuple):
    """One signed adjustment of one balance cell."""
    fund_id: str
    currency: str
    delta: Decimal


class BalanceLedger:
    """
    Keyed collection of balance cells with apply/reverse bookkeeping.

    Cells are upserted and never removed, even when they return to zero.
    """

    def __init__(self, balances: Iterable[Balance] = ()):
        self._cells: dict[tuple[str, str], Balance] = {}
        self.load(balances)

    @staticmethod
    def effects(tx: Transaction) -> list[Leg]:
        """
        The committed effect of a transaction.

        INCOME credits the source cell, EXPENSE debits it. TRANSFER debits
        the source cell and, only when target fund, target currency and
        exchange rate are all present, credits the target cell with the
        received amount when the transfer records one, else
        amount * exchange_rate. A transfer missing any target field
        produces the debit leg alone.
        """
        if tx.type == TransactionType.INCOME:
            return [Leg(tx.source_fund_id, tx.currency, tx.amount)]

        if tx.type == TransactionType.EXPENSE:
            return [Leg(tx.source_fund_id, tx.currency, -tx.amount)]

        legs = [Leg(tx.source_fund_id, tx.currency, -tx.amount)]
        if tx.has_transfer_target:
            legs.append(
                Leg(tx.target_fund_id, tx.target_currency, tx.credited_amount)
            )
        return legs

    def apply_effect(self, tx: Transaction, sign: int) -> list[Leg]:
        """
        Apply (sign=+1) or reverse (sign=-1) a transaction's effect.

        Returns the legs actually applied. Applying then reversing the
        same transaction restores every touched cell exactly.
        """
        if sign not in (COMMIT, REVERSE):
            raise ValueError(f"sign must be +1 or -1, got {sign!r}")

        applied = []
        for leg in self.effects(tx):
            delta = leg.delta if sign == COMMIT else -leg.delta
            self._adjust(leg.fund_id, leg.currency, delta)
            applied.append(Leg(leg.fund_id, leg.currency, delta))

        logger.debug(
            "ledger_effect_applied",
            transaction_id=tx.id,
            sign=sign,
            legs=[(leg.fund_id, leg.currency, str(leg.delta)) for leg in applied],
        )
        return applied

    def _adjust(self, fund_id: str, currency: str, delta: Decimal) -> None:
        key = (fund_id, currency)
        cell = self._cells.get(key)
        if cell is None:
            self._cells[key] = Balance(fund_id=fund_id, currency=currency, amount=delta)
        else:
            cell.amount = cell.amount + delta

    # -------------------------------------------------------------------------
    # Reads
    # -------------------------------------------------------------------------

    def get(self, fund_id: str, currency: str) -> Decimal:
        """Amount of a cell, 0 when the cell doesn't exist."""
        cell = self._cells.get((fund_id, currency.upper()))
        return cell.amount if cell else Decimal("0")

    def balances(self) -> list[Balance]:
        """Copies of all cells in creation order."""
        return [cell.model_copy() for cell in self._cells.values()]

    def __len__(self) -> int:
        return len(self._cells)

    def __contains__(self, key: tuple[str, str]) -> bool:
        return key in self._cells

    # -------------------------------------------------------------------------
    # Bulk operations
    # -------------------------------------------------------------------------

    def load(self, balances: Iterable[Balance]) -> None:
        """
        Replace all cells.

        Duplicate (fund, currency) records are folded into one cell.
        """
        self._cells = {}
        for balance in balances:
            if balance.key in self._cells:
                self._cells[balance.key].amount += balance.amount
            else:
                self._cells[balance.key] = balance.model_copy()

    @classmethod
    def expected_from(cls, transactions: Iterable[Transaction]) -> "BalanceLedger":
        """A fresh ledger holding the summed effect of all active transactions."""
        ledger = cls()
        for tx in transactions:
            if tx.is_active:
                ledger.apply_effect(tx, COMMIT)
        return ledger

    def drift(self, transactions: Iterable[Transaction]) -> list[dict]:
        """
        Cells whose stored amount differs from the transaction log.

        Cells missing on either side count as zero.
        """
        expected = self.expected_from(transactions)
        keys = list(self._cells) + [k for k in expected._cells if k not in self._cells]

        drifted = []
        for fund_id, currency in keys:
            stored = self.get(fund_id, currency)
            computed = expected.get(fund_id, currency)
            if stored != computed:
                drifted.append({
                    "fund_id": fund_id,
                    "currency": currency,
                    "stored": str(stored),
                    "expected": str(computed),
                })
        return drifted

    def rebuild(self, transactions: Iterable[Transaction]) -> list[dict]:
        """
        Recompute every cell from the transaction log.

        Existing cells are kept (reset to their recomputed value, which may
        be zero) so cell identity survives. Returns the drift that was
        corrected.
        """
        transactions = list(transactions)
        drifted = self.drift(transactions)
        expected = self.expected_from(transactions)

        for key, cell in self._cells.items():
            cell.amount = expected.get(*key)
        for key, cell in expected._cells.items():
            if key not in self._cells:
                self._cells[key] = cell

        if drifted:
            logger.warning("ledger_rebuilt_with_drift", drifted_cells=len(drifted))
        return drifted
