"""
Abstract Storage Interface

DESIGN DECISION: We define an abstract interface for storage operations.
This allows us to:
1. Swap the in-memory backend for a real database later
2. Use in-memory storage for testing
3. Keep ledger logic decoupled from storage implementation

The interface is intentionally simple - we're not building a full ORM.
Just the operations the ledger, scheduler and aggregator need.

Storage is record-level only. Atomicity across records (both sides of a
posting, a posting plus its rule cursor) is the Ledger's job.
"""

from abc import ABC, abstractmethod
from typing import Optional
from uuid import UUID

from finance_tracker.models.account import LedgerAccount
from finance_tracker.models.audit import AuditEvent
from finance_tracker.models.net_worth import NetWorthSnapshot
from finance_tracker.models.recurring import RecurringRule
from finance_tracker.models.transaction import Transaction


class AccountStorageInterface(ABC):
    """Persistence for accounts."""

    @abstractmethod
    def save_account(self, account: LedgerAccount) -> None:
        """
        Insert or replace an account.

        Raises:
            StorageError: If save fails
        """
        pass

    @abstractmethod
    def get_account(self, account_id: UUID) -> Optional[LedgerAccount]:
        """Return the account, or None if it does not exist."""
        pass

    @abstractmethod
    def list_accounts(self) -> list[LedgerAccount]:
        """All accounts in creation order."""
        pass

    @abstractmethod
    def delete_account(self, account_id: UUID) -> bool:
        """Delete an account. Returns False if it did not exist."""
        pass


class TransactionStorageInterface(ABC):
    """Persistence for posted transactions."""

    @abstractmethod
    def save_transaction(self, transaction: Transaction) -> None:
        """
        Insert a transaction.

        Raises:
            StorageError: If save fails
            DuplicateError: If the ID already exists
        """
        pass

    @abstractmethod
    def get_transaction(self, transaction_id: UUID) -> Optional[Transaction]:
        pass

    @abstractmethod
    def list_transactions(self, account_id: Optional[UUID] = None) -> list[Transaction]:
        """
        List transactions in insertion order.

        Args:
            account_id: Only transactions touching this account
        """
        pass

    @abstractmethod
    def delete_transaction(self, transaction_id: UUID) -> bool:
        pass


class RecurringStorageInterface(ABC):
    """Persistence for recurring rules."""

    @abstractmethod
    def save_rule(self, rule: RecurringRule) -> None:
        pass

    @abstractmethod
    def get_rule(self, rule_id: UUID) -> Optional[RecurringRule]:
        pass

    @abstractmethod
    def list_rules(self) -> list[RecurringRule]:
        pass

    @abstractmethod
    def delete_rule(self, rule_id: UUID) -> bool:
        pass


class SnapshotStorageInterface(ABC):
    """
    Persistence for net worth snapshots.

    Snapshots are append-only - we never modify them.
    """

    @abstractmethod
    def append_snapshot(self, snapshot: NetWorthSnapshot) -> None:
        pass

    @abstractmethod
    def list_snapshots(self) -> list[NetWorthSnapshot]:
        pass


class LedgerStorageInterface(
    AccountStorageInterface,
    TransactionStorageInterface,
    RecurringStorageInterface,
    SnapshotStorageInterface,
):
    """Everything the ledger core persists, behind one backend."""
    pass


class AuditStorageInterface(ABC):
    """
    Abstract interface for audit log storage.

    Audit logs are append-only - we never delete or modify them.
    """

    @abstractmethod
    def append_event(self, event: AuditEvent) -> bool:
        """
        Append an audit event to the log.

        Returns:
            True if logged successfully
        """
        pass

    @abstractmethod
    def get_events_by_correlation_id(
        self,
        correlation_id: UUID,
    ) -> list[AuditEvent]:
        """Related events in chronological order."""
        pass

    @abstractmethod
    def get_events_by_entity(
        self,
        entity_type: str,
        entity_id: UUID,
    ) -> list[AuditEvent]:
        """Events for one entity in chronological order."""
        pass

    @abstractmethod
    def get_recent_events(
        self,
        limit: int = 100,
    ) -> list[AuditEvent]:
        """Most recent events, newest first."""
        pass


class StorageError(Exception):
    """Base exception for storage operations."""
    pass


class DuplicateError(StorageError):
    """Attempted to insert a duplicate entity."""
    pass
