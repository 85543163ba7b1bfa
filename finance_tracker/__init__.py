"""
Finance Tracker - Ledger Core Package

The accounting engine behind a personal finance tracker: accounts,
double-entry postings, aggregate reporting and recurring transactions.

DESIGN PRINCIPLES:
1. All money is integer cents - no floating point amounts
2. Fail early, fail visibly (no partial writes)
3. Income/expense balances are derived, never stored
4. Every command is auditable
5. Storage layer is swappable
"""

__version__ = "1.0.0"
__author__ = "Finance Tracker Team"
