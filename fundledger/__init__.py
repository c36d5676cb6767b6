"""
FundLedger - Personal Finance Ledger

Tracks income, expenses and transfers across funds (accounts) and
currencies, keeping per-fund-per-currency balances consistent while
transactions are added, trashed, restored and purged.

DESIGN PRINCIPLES:
1. Balances always equal the summed effect of active transactions
2. Validate before mutating; a rejected command changes nothing
3. Persistence failures never lose in-memory state
4. Every command is auditable
5. Storage layer is swappable
"""

__version__ = "1.0.0"
__author__ = "FundLedger Team"
