"""Shared fixtures: in-memory storage and a small chart of accounts."""

from datetime import date

import pytest

from finance_tracker.audit import AuditLogger
from finance_tracker.ledger import Ledger
from finance_tracker.orchestrator import create_app_components
from finance_tracker.queries import Aggregator
from finance_tracker.scheduler import RecurrenceScheduler
from finance_tracker.services.storage import InMemoryAuditStorage, InMemoryLedgerStorage


@pytest.fixture
def storage():
    return InMemoryLedgerStorage()


@pytest.fixture
def audit_storage():
    return InMemoryAuditStorage()


@pytest.fixture
def audit_logger(audit_storage):
    return AuditLogger(audit_storage)


@pytest.fixture
def ledger(storage, audit_logger):
    return Ledger(storage, audit_logger=audit_logger)


@pytest.fixture
def aggregator(ledger, audit_logger):
    return Aggregator(ledger, audit_logger=audit_logger)


@pytest.fixture
def scheduler(ledger, audit_logger):
    return RecurrenceScheduler(ledger, audit_logger=audit_logger)


@pytest.fixture
def tracker(storage, audit_storage):
    return create_app_components(storage=storage, audit_storage=audit_storage)


@pytest.fixture
def accounts(ledger):
    """Checking ($1,000), credit card, salary and groceries."""
    return {
        "checking": ledger.create_account("Checking", "asset", 100_000),
        "card": ledger.create_account("Credit Card", "liability", 0),
        "salary": ledger.create_account("Salary", "income"),
        "groceries": ledger.create_account("Groceries", "expense"),
    }


@pytest.fixture
def today():
    return date(2024, 3, 15)
