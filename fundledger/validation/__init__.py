"""Transaction validation package."""

from fundledger.validation.validator import (
    TransactionRejectedError,
    TransactionValidator,
    get_user_friendly_summary,
)

__all__ = [
    "TransactionRejectedError",
    "TransactionValidator",
    "get_user_friendly_summary",
]
