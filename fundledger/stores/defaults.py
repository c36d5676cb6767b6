"""Seed data for a user who has never saved a snapshot."""

from fundledger.config import get_settings
from fundledger.models.finance import (
    SYSTEM_FUND_ID,
    Category,
    Fund,
    Language,
    LedgerSnapshot,
    TransactionType,
)


def default_funds() -> list[Fund]:
    return [
        Fund(
            id=SYSTEM_FUND_ID,
            name="Cash",
            supported_currencies=["BDT", "USD", "MVR"],
            is_system_default=True,
            is_custom=False,
        ),
    ]


def default_categories() -> list[Category]:
    income, expense = TransactionType.INCOME, TransactionType.EXPENSE
    return [
        Category(id="cat-inc-1", name="Salary", type=income, icon="fa-money-check-dollar"),
        Category(id="cat-inc-2", name="Freelance", type=income, icon="fa-laptop-code"),
        Category(id="cat-inc-3", name="Personal income", type=income, icon="fa-hand-holding-dollar"),
        Category(id="cat-inc-4", name="Others", type=income, icon="fa-circle-plus"),
        Category(id="cat-exp-1", name="Food", type=expense, icon="fa-bowl-food"),
        Category(id="cat-exp-2", name="Daily usage things", type=expense, icon="fa-basket-shopping"),
        Category(id="cat-exp-3", name="Personal expenses", type=expense, icon="fa-user-tag"),
        Category(id="cat-exp-4", name="Family Maintenance", type=expense, icon="fa-house-chimney-user"),
        Category(id="cat-exp-7", name="Others", type=expense, icon="fa-receipt"),
    ]


def default_snapshot() -> LedgerSnapshot:
    """A fresh ledger: seeded funds and categories, no money yet."""
    settings = get_settings().ledger
    return LedgerSnapshot(
        funds=default_funds(),
        categories=default_categories(),
        transactions=[],
        balances=[],
        exchange_rates=settings.exchange_rates_map,
        available_currencies=settings.currencies_list,
        language=Language(settings.default_language),
    )
