"""
Query Execution Engine

Read-only aggregates over a ledger snapshot: balances per fund and
currency, totals converted through the stored exchange rates, the
dashboard's per-currency summaries and the income/expense reports.

Every figure is computed from stored data only. Trashed transactions are
never counted; stored balances are used as-is (see `reconcile_balances`
on the store for recomputing them).
"""

from datetime import date, timedelta
from decimal import Decimal
from enum import Enum
from typing import Callable, Iterable, Optional

from pydantic import BaseModel, Field

from fundledger.config import get_settings
from fundledger.models.finance import (
    Balance,
    LedgerSnapshot,
    Money,
    Transaction,
    TransactionType,
)


ZERO = Decimal("0")

# Name used for transactions whose category no longer exists
UNCATEGORIZED_NAME = "Other"


class ReportView(str, Enum):
    """Which transactions the category breakdown covers."""
    ALL = "all"
    INCOME = "income"
    EXPENSE = "expense"


# =============================================================================
# RESULT MODELS
# =============================================================================

class CurrencySummary(BaseModel):
    """Dashboard card for one currency."""
    currency: str
    income: Money = ZERO
    expense: Money = ZERO
    available: Money = Field(default=ZERO, description="Sum of every fund's balance in this currency")


class ReportSummary(BaseModel):
    currency: str
    income: Money = ZERO
    expense: Money = ZERO
    net: Money = ZERO


class CategoryTotal(BaseModel):
    name: str
    value: Money


class DailyFlow(BaseModel):
    """Income and expense recorded on one calendar day."""
    day: date
    label: str = Field(..., description="Short weekday name, e.g. 'Mon'")
    income: Money = ZERO
    expense: Money = ZERO


def _total(transactions: Iterable[Transaction]) -> Decimal:
    return sum((tx.amount for tx in transactions), ZERO)


class QueryExecutor:
    """
    Executes read queries against one ledger snapshot.

    The executor never mutates what it is given; build a new one (or let
    the store do it) after every change.
    """

    def __init__(
        self,
        snapshot: LedgerSnapshot,
        base_currency: Optional[str] = None,
        today: Optional[Callable[[], date]] = None,
    ):
        self._snapshot = snapshot
        self._base = (base_currency or get_settings().ledger.base_currency).upper()
        self._today = today or date.today

    # -------------------------------------------------------------------------
    # Balances
    # -------------------------------------------------------------------------

    def fund_balance(self, fund_id: str, currency: str) -> Decimal:
        """Stored balance of one cell, 0 when the cell doesn't exist."""
        currency = currency.upper()
        for balance in self._snapshot.balances:
            if balance.fund_id == fund_id and balance.currency == currency:
                return balance.amount
        return ZERO

    def fund_holdings(self, fund_id: str) -> list[Balance]:
        """Non-zero balances held by one fund."""
        return [
            b for b in self._snapshot.balances
            if b.fund_id == fund_id and b.amount != 0
        ]

    def sum_by_currency(self, currency: str) -> Decimal:
        """Total across all funds for one currency."""
        currency = currency.upper()
        return sum(
            (b.amount for b in self._snapshot.balances if b.currency == currency),
            ZERO,
        )

    def total_balance_in_currency(self, target_currency: str) -> Decimal:
        """
        Every balance converted into one currency.

        Balances are first converted into the base currency using the
        stored rates (a missing or zero rate counts as 1), then divided by
        the target's rate unless the target is the base currency.
        """
        rates = self._snapshot.exchange_rates
        target_currency = target_currency.upper()

        total_in_base = sum(
            (b.amount * (rates.get(b.currency) or Decimal(1)) for b in self._snapshot.balances),
            ZERO,
        )
        if target_currency == self._base:
            return total_in_base
        return total_in_base / (rates.get(target_currency) or Decimal(1))

    # -------------------------------------------------------------------------
    # Transactions
    # -------------------------------------------------------------------------

    def active_transactions(self, currency: Optional[str] = None) -> list[Transaction]:
        txs = [tx for tx in self._snapshot.transactions if tx.is_active]
        if currency is not None:
            currency = currency.upper()
            txs = [tx for tx in txs if tx.currency == currency]
        return txs

    def trashed_transactions(self) -> list[Transaction]:
        return [tx for tx in self._snapshot.transactions if tx.is_trashed]

    def currency_summaries(self) -> list[CurrencySummary]:
        """
        Dashboard income/expense/available per available currency.

        Currencies where all three figures are zero are left out.
        """
        active = self.active_transactions()
        summaries = []
        for currency in self._snapshot.available_currencies:
            summary = CurrencySummary(
                currency=currency,
                income=_total(
                    tx for tx in active
                    if tx.type == TransactionType.INCOME and tx.currency == currency
                ),
                expense=_total(
                    tx for tx in active
                    if tx.type == TransactionType.EXPENSE and tx.currency == currency
                ),
                available=self.sum_by_currency(currency),
            )
            if summary.available or summary.income or summary.expense:
                summaries.append(summary)
        return summaries

    def report_summary(self, currency: str) -> ReportSummary:
        """Income, expense and net for one currency. Transfers are excluded."""
        txs = self.active_transactions(currency)
        income = _total(tx for tx in txs if tx.type == TransactionType.INCOME)
        expense = _total(tx for tx in txs if tx.type == TransactionType.EXPENSE)
        return ReportSummary(
            currency=currency.upper(),
            income=income,
            expense=expense,
            net=income - expense,
        )

    def category_breakdown(
        self,
        currency: str,
        view: ReportView = ReportView.ALL,
    ) -> list[CategoryTotal]:
        """
        Totals per category name, largest first.

        The overview (ALL) shows where money went, so it covers expenses.
        """
        wanted = TransactionType.INCOME if view == ReportView.INCOME else TransactionType.EXPENSE
        names = {c.id: c.name for c in self._snapshot.categories}

        totals: dict[str, Decimal] = {}
        for tx in self.active_transactions(currency):
            if tx.type != wanted:
                continue
            name = names.get(tx.category_id, UNCATEGORIZED_NAME)
            totals[name] = totals.get(name, ZERO) + tx.amount

        return [
            CategoryTotal(name=name, value=value)
            for name, value in sorted(totals.items(), key=lambda item: item[1], reverse=True)
        ]

    def daily_flow(self, currency: str, days: int = 7) -> list[DailyFlow]:
        """Income and expense for each of the last `days` days, oldest first."""
        txs = self.active_transactions(currency)
        today = self._today()

        flow = []
        for offset in range(days - 1, -1, -1):
            day = today - timedelta(days=offset)
            on_day = [tx for tx in txs if tx.transaction_date == day]
            flow.append(DailyFlow(
                day=day,
                label=day.strftime("%a"),
                income=_total(tx for tx in on_day if tx.type == TransactionType.INCOME),
                expense=_total(tx for tx in on_day if tx.type == TransactionType.EXPENSE),
            ))
        return flow
