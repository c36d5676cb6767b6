"""Entity stores package."""

from fundledger.stores.defaults import default_categories, default_funds, default_snapshot
from fundledger.stores.entities import (
    CategoryStore,
    CurrencyList,
    FundStore,
    ProtectedFundError,
)

__all__ = [
    "CategoryStore",
    "CurrencyList",
    "FundStore",
    "ProtectedFundError",
    "default_categories",
    "default_funds",
    "default_snapshot",
]
