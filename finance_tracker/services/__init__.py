"""Services package."""

from finance_tracker.services.storage import (
    AccountStorageInterface,
    AuditStorageInterface,
    DuplicateError,
    InMemoryAuditStorage,
    InMemoryLedgerStorage,
    LedgerStorageInterface,
    RecurringStorageInterface,
    SnapshotStorageInterface,
    StorageError,
    TransactionStorageInterface,
)

__all__ = [
    # Storage services
    "AccountStorageInterface",
    "AuditStorageInterface",
    "DuplicateError",
    "InMemoryAuditStorage",
    "InMemoryLedgerStorage",
    "LedgerStorageInterface",
    "RecurringStorageInterface",
    "SnapshotStorageInterface",
    "StorageError",
    "TransactionStorageInterface",
]
