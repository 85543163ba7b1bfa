"""Ledger package: accounts, postings and balance integrity."""

from finance_tracker.ledger.ledger import Ledger
from finance_tracker.ledger.locks import EntityLocks

__all__ = ["EntityLocks", "Ledger"]
