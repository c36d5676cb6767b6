"""Query execution package."""

from fundledger.queries.executor import (
    CategoryTotal,
    CurrencySummary,
    DailyFlow,
    QueryExecutor,
    ReportSummary,
    ReportView,
)

__all__ = [
    "CategoryTotal",
    "CurrencySummary",
    "DailyFlow",
    "QueryExecutor",
    "ReportSummary",
    "ReportView",
]
