"""
In-Memory Storage

Thread-safe dict-backed implementation of the storage interfaces.

Used by tests and by embedding applications that persist through
`FinanceTracker.export_data()`. Models are frozen and are returned as stored.
"""

import threading
from typing import Optional
from uuid import UUID

from finance_tracker.models.account import LedgerAccount
from finance_tracker.models.audit import AuditEvent
from finance_tracker.models.net_worth import NetWorthSnapshot
from finance_tracker.models.recurring import RecurringRule
from finance_tracker.models.transaction import Transaction
from finance_tracker.services.storage.interface import (
    AuditStorageInterface,
    DuplicateError,
    LedgerStorageInterface,
)


class InMemoryLedgerStorage(LedgerStorageInterface):
    """
    Ledger storage held in process memory.

    Dicts preserve insertion order, which gives creation-ordered listings.
    """

    def __init__(self):
        self._lock = threading.RLock()
        self._accounts: dict[UUID, LedgerAccount] = {}
        self._transactions: dict[UUID, Transaction] = {}
        self._rules: dict[UUID, RecurringRule] = {}
        self._snapshots: list[NetWorthSnapshot] = []

    # -- accounts -------------------------------------------------------------

    def save_account(self, account: LedgerAccount) -> None:
        with self._lock:
            self._accounts[account.id] = account

    def get_account(self, account_id: UUID) -> Optional[LedgerAccount]:
        with self._lock:
            return self._accounts.get(account_id)

    def list_accounts(self) -> list[LedgerAccount]:
        with self._lock:
            return list(self._accounts.values())

    def delete_account(self, account_id: UUID) -> bool:
        with self._lock:
            return self._accounts.pop(account_id, None) is not None

    # -- transactions ---------------------------------------------------------

    def save_transaction(self, transaction: Transaction) -> None:
        with self._lock:
            if transaction.id in self._transactions:
                raise DuplicateError(f"Transaction {transaction.id} already exists")
            self._transactions[transaction.id] = transaction

    def get_transaction(self, transaction_id: UUID) -> Optional[Transaction]:
        with self._lock:
            return self._transactions.get(transaction_id)

    def list_transactions(self, account_id: Optional[UUID] = None) -> list[Transaction]:
        with self._lock:
            transactions = list(self._transactions.values())
        if account_id is None:
            return transactions
        return [txn for txn in transactions if txn.touches(account_id)]

    def delete_transaction(self, transaction_id: UUID) -> bool:
        with self._lock:
            return self._transactions.pop(transaction_id, None) is not None

    # -- recurring rules ------------------------------------------------------

    def save_rule(self, rule: RecurringRule) -> None:
        with self._lock:
            self._rules[rule.id] = rule

    def get_rule(self, rule_id: UUID) -> Optional[RecurringRule]:
        with self._lock:
            return self._rules.get(rule_id)

    def list_rules(self) -> list[RecurringRule]:
        with self._lock:
            return list(self._rules.values())

    def delete_rule(self, rule_id: UUID) -> bool:
        with self._lock:
            return self._rules.pop(rule_id, None) is not None

    # -- snapshots ------------------------------------------------------------

    def append_snapshot(self, snapshot: NetWorthSnapshot) -> None:
        with self._lock:
            self._snapshots.append(snapshot)

    def list_snapshots(self) -> list[NetWorthSnapshot]:
        with self._lock:
            return list(self._snapshots)


class InMemoryAuditStorage(AuditStorageInterface):
    """Append-only audit log held in process memory."""

    def __init__(self):
        self._lock = threading.Lock()
        self._events: list[AuditEvent] = []

    def append_event(self, event: AuditEvent) -> bool:
        with self._lock:
            self._events.append(event)
        return True

    def get_events_by_correlation_id(self, correlation_id: UUID) -> list[AuditEvent]:
        with self._lock:
            return [e for e in self._events if e.correlation_id == correlation_id]

    def get_events_by_entity(self, entity_type: str, entity_id: UUID) -> list[AuditEvent]:
        with self._lock:
            return [
                e for e in self._events
                if e.entity_type == entity_type and e.entity_id == entity_id
            ]

    def get_recent_events(self, limit: int = 100) -> list[AuditEvent]:
        with self._lock:
            return list(reversed(self._events[-limit:]))
