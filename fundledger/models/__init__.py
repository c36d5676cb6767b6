"""
Data Models Package

This package contains all Pydantic models used in FundLedger.
All data flowing through the system must conform to these schemas.
"""

from fundledger.models.finance import (
    SYSTEM_FUND_ID,
    TRANSFER_CATEGORY_ID,
    BackupFile,
    Balance,
    Category,
    Currency,
    ExchangeRates,
    Fund,
    Language,
    LedgerSnapshot,
    Money,
    Transaction,
    TransactionDraft,
    TransactionType,
    ValidationIssue,
    ValidationResult,
)
from fundledger.models.audit import (
    AuditSeverity,
    LedgerEvent,
    LedgerEventBuilder,
    LedgerEventType,
)

__all__ = [
    # Finance models
    "SYSTEM_FUND_ID",
    "TRANSFER_CATEGORY_ID",
    "BackupFile",
    "Balance",
    "Category",
    "Currency",
    "ExchangeRates",
    "Fund",
    "Language",
    "LedgerSnapshot",
    "Money",
    "Transaction",
    "TransactionDraft",
    "TransactionType",
    "ValidationIssue",
    "ValidationResult",
    # Audit models
    "AuditSeverity",
    "LedgerEvent",
    "LedgerEventBuilder",
    "LedgerEventType",
]
