"""
Main Orchestrator for the Finance Tracker

This module ties together the ledger core and defines the surface a UI or
background job talks to:
1. Commands (accounts, transactions, recurring rules, snapshots)
2. Queries (balances, transaction lists, net worth, period metrics)
3. Backup (export / import of the whole ledger)

DESIGN DECISION: The orchestrator enforces the boundaries:
- Balances change only through the Ledger
- Recurring transactions are produced only by the RecurrenceScheduler
- Every user action gets a correlation ID, so its audit events group together

Money crosses this boundary as int cents and calendar days as `date`.
"""

from datetime import date, datetime
from typing import Iterable, Optional, Union
from uuid import UUID

from finance_tracker.audit import AuditLogger, create_correlation_id
from finance_tracker.exceptions import InvalidStateError, ValidationError
from finance_tracker.ledger import Ledger
from finance_tracker.ledger.ledger import ACCOUNT_LOCK, REGISTRY_KEY, REGISTRY_LOCK
from finance_tracker.models.account import (
    AccountStatus,
    AccountType,
    AccountWithBalance,
    LedgerAccount,
    StoredBalanceAccount,
)
from finance_tracker.models.audit import AuditEventBuilder, AuditEventType
from finance_tracker.models.export import EXPORT_FORMAT_VERSION, ExportData
from finance_tracker.models.net_worth import (
    CategoryTotal,
    MonthlyCashFlow,
    NetWorthCalculation,
    NetWorthSnapshot,
    NetWorthSummary,
    PeriodMetrics,
)
from finance_tracker.models.recurring import (
    ProcessingResult,
    RecurrenceFrequency,
    RecurringProcessingStatus,
    RecurringRule,
    SchedulerPassResult,
)
from finance_tracker.models.transaction import (
    ClassifiedTransaction,
    Transaction,
    TransactionFilter,
)
from finance_tracker.queries import Aggregator
from finance_tracker.scheduler import RecurrenceScheduler
from finance_tracker.services.storage import (
    AuditStorageInterface,
    InMemoryAuditStorage,
    InMemoryLedgerStorage,
    LedgerStorageInterface,
)


class FinanceTracker:
    """
    Facade over Ledger, Aggregator and RecurrenceScheduler.

    All three share one storage backend and one lock registry, so a
    scheduler pass and a user posting against the same account serialize
    correctly.
    """

    def __init__(
        self,
        storage: LedgerStorageInterface,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self._storage = storage
        self._audit_logger = audit_logger
        self._ledger = Ledger(storage, audit_logger=audit_logger)
        self._aggregator = Aggregator(self._ledger, audit_logger=audit_logger)
        self._scheduler = RecurrenceScheduler(self._ledger, audit_logger=audit_logger)

    @property
    def ledger(self) -> Ledger:
        return self._ledger

    @property
    def aggregator(self) -> Aggregator:
        return self._aggregator

    @property
    def scheduler(self) -> RecurrenceScheduler:
        return self._scheduler

    # =========================================================================
    # ACCOUNT COMMANDS
    # =========================================================================

    def create_account(
        self,
        name: str,
        account_type: Union[AccountType, str],
        initial_balance: int = 0,
        parent_account_id: Optional[UUID] = None,
    ) -> LedgerAccount:
        return self._ledger.create_account(
            name,
            account_type,
            initial_balance,
            parent_account_id,
            correlation_id=create_correlation_id(),
        )

    def update_account(self, account_id: UUID, **changes) -> LedgerAccount:
        """Accepts `name` and/or `parent_account_id`."""
        return self._ledger.update_account(
            account_id, correlation_id=create_correlation_id(), **changes
        )

    def archive_account(self, account_id: UUID) -> LedgerAccount:
        return self._ledger.archive_account(account_id, correlation_id=create_correlation_id())

    def restore_account(self, account_id: UUID) -> LedgerAccount:
        return self._ledger.restore_account(account_id, correlation_id=create_correlation_id())

    def delete_account(self, account_id: UUID) -> None:
        self._ledger.delete_account(account_id, correlation_id=create_correlation_id())

    # =========================================================================
    # TRANSACTION COMMANDS
    # =========================================================================

    def post_transaction(
        self,
        from_account_id: UUID,
        to_account_id: UUID,
        amount: int,
        description: str,
        on_date: Union[date, datetime],
        category: Optional[str] = None,
        tags: Optional[Iterable[str]] = None,
    ) -> ClassifiedTransaction:
        return self._ledger.post_transaction(
            from_account_id,
            to_account_id,
            amount,
            description,
            on_date,
            category=category,
            tags=tags,
            correlation_id=create_correlation_id(),
        )

    def delete_transaction(self, transaction_id: UUID) -> Transaction:
        return self._ledger.delete_transaction(transaction_id, correlation_id=create_correlation_id())

    # =========================================================================
    # RECURRING COMMANDS
    # =========================================================================

    def create_recurring(
        self,
        from_account_id: UUID,
        to_account_id: UUID,
        amount: int,
        description: str,
        frequency: Union[RecurrenceFrequency, str],
        anchor_date: Optional[date] = None,
    ) -> RecurringRule:
        return self._scheduler.create_rule(
            from_account_id,
            to_account_id,
            amount,
            description,
            frequency,
            anchor_date=anchor_date,
            correlation_id=create_correlation_id(),
        )

    def update_recurring(self, rule_id: UUID, **changes) -> RecurringRule:
        """Accepts `amount`, `description` and/or `frequency`."""
        return self._scheduler.update_rule(rule_id, correlation_id=create_correlation_id(), **changes)

    def pause_recurring(self, rule_id: UUID) -> RecurringRule:
        return self._scheduler.pause_rule(rule_id, correlation_id=create_correlation_id())

    def resume_recurring(self, rule_id: UUID) -> RecurringRule:
        return self._scheduler.resume_rule(rule_id, correlation_id=create_correlation_id())

    def delete_recurring(self, rule_id: UUID) -> None:
        self._scheduler.delete_rule(rule_id, correlation_id=create_correlation_id())

    def process_recurring(self, rule_id: UUID, today: date) -> ProcessingResult:
        return self._scheduler.process(rule_id, today, correlation_id=create_correlation_id())

    def run_scheduler(self, today: date) -> SchedulerPassResult:
        return self._scheduler.run_pass(today, correlation_id=create_correlation_id())

    def record_snapshot(self, on_date: date) -> NetWorthSnapshot:
        return self._aggregator.record_snapshot(on_date, correlation_id=create_correlation_id())

    # =========================================================================
    # QUERIES
    # =========================================================================

    def get_account(self, account_id: UUID) -> AccountWithBalance:
        return self._ledger.get_account_with_balance(account_id)

    def list_accounts(
        self,
        account_type: Optional[Union[AccountType, str]] = None,
        status: Optional[Union[AccountStatus, str]] = None,
        search_term: Optional[str] = None,
    ) -> list[AccountWithBalance]:
        return self._ledger.list_accounts_with_balances(account_type, status, search_term)

    def list_transactions(self, **filters) -> list[ClassifiedTransaction]:
        """Keyword arguments are TransactionFilter fields."""
        return self._ledger.list_transactions(TransactionFilter(**filters))

    def net_worth(self) -> NetWorthCalculation:
        return self._aggregator.current_net_worth()

    def period_metrics(self, reference_date: date) -> PeriodMetrics:
        return self._aggregator.current_period_metrics(reference_date)

    def cash_flow_trend(self, reference_date: date, months: int = 6) -> list[MonthlyCashFlow]:
        return self._aggregator.cash_flow_trend(reference_date, months)

    def expenses_by_category(self, start: date, end: date) -> list[CategoryTotal]:
        return self._aggregator.expenses_by_category(start, end)

    def recurring_with_status(self, today: date) -> list[RecurringProcessingStatus]:
        return self._scheduler.list_rules_with_status(today)

    def net_worth_history(
        self,
        start: Optional[date] = None,
        end: Optional[date] = None,
    ) -> list[NetWorthSnapshot]:
        return self._aggregator.net_worth_history(start, end)

    def net_worth_summary(self, today: date) -> NetWorthSummary:
        return self._aggregator.net_worth_summary(today)

    # =========================================================================
    # BACKUP
    # =========================================================================

    def export_data(self) -> ExportData:
        """Snapshot of every account, transaction, rule and net worth snapshot."""
        data = ExportData(
            accounts=self._storage.list_accounts(),
            transactions=self._ledger.all_transactions(),
            recurring=self._storage.list_rules(),
            net_worth_snapshots=self._aggregator.net_worth_history(),
        )
        self._log_transfer(AuditEventType.DATA_EXPORTED, data)
        return data

    def import_data(self, data: Union[ExportData, dict, str]) -> ExportData:
        """
        Load an export into an empty tracker.

        The data is checked as a whole before anything is written:
        references must resolve and every stored balance must equal its
        opening balance plus its postings.

        Raises:
            InvalidStateError: The tracker already holds data
            ValidationError: Unsupported version or inconsistent data
        """
        if isinstance(data, str):
            data = ExportData.model_validate_json(data)
        elif isinstance(data, dict):
            data = ExportData.model_validate(data)

        if data.version != EXPORT_FORMAT_VERSION:
            raise ValidationError.single(
                "version",
                "UNSUPPORTED_VERSION",
                f"Export version {data.version} is not supported (expected {EXPORT_FORMAT_VERSION})",
            )

        locks = self._ledger.locks
        account_ids = [account.id for account in data.accounts]
        # Account creation and postings against imported ids wait for the whole load
        with locks.hold(REGISTRY_LOCK, REGISTRY_KEY), locks.hold(ACCOUNT_LOCK, *account_ids):
            if self._storage.list_accounts() or self._storage.list_transactions() or self._storage.list_rules():
                raise InvalidStateError("NOT_EMPTY", "Import requires an empty ledger")

            self._check_import(data)

            for account in data.accounts:
                self._storage.save_account(account)
            for transaction in sorted(data.transactions, key=lambda t: t.sort_key()):
                self._storage.save_transaction(transaction)
            for rule in data.recurring:
                self._storage.save_rule(rule)
            for snapshot in data.net_worth_snapshots:
                self._storage.append_snapshot(snapshot)

        self._log_transfer(AuditEventType.DATA_IMPORTED, data)
        return data

    def _check_import(self, data: ExportData) -> None:
        accounts = {account.id: account for account in data.accounts}

        def require(account_id: Optional[UUID], field: str) -> None:
            if account_id is not None and account_id not in accounts:
                raise ValidationError.single(
                    field,
                    "UNKNOWN_ACCOUNT",
                    f"Account {account_id} referenced by the import does not exist",
                )

        for account in data.accounts:
            require(account.parent_account_id, "accounts.parent_account_id")
        for transaction in data.transactions:
            require(transaction.from_account_id, "transactions.from_account_id")
            require(transaction.to_account_id, "transactions.to_account_id")
        for rule in data.recurring:
            require(rule.from_account_id, "recurring.from_account_id")
            require(rule.to_account_id, "recurring.to_account_id")

        for account in data.accounts:
            if not isinstance(account, StoredBalanceAccount):
                continue
            expected = account.opening_balance + sum(
                t.signed_amount_for(account.id) for t in data.transactions
            )
            if expected != account.balance:
                raise ValidationError.single(
                    "accounts.balance",
                    "BALANCE_MISMATCH",
                    f"Account '{account.name}' balance {account.balance} does not match "
                    f"its transactions ({expected})",
                )

    def _log_transfer(self, event_type: AuditEventType, data: ExportData) -> None:
        if self._audit_logger:
            self._audit_logger.log(AuditEventBuilder.data_transferred(
                event_type=event_type,
                counts=data.counts,
                correlation_id=create_correlation_id(),
            ))


def create_app_components(
    storage: Optional[LedgerStorageInterface] = None,
    audit_storage: Optional[AuditStorageInterface] = None,
) -> FinanceTracker:
    """
    Factory function to create a wired FinanceTracker.

    Args:
        storage: Ledger backend. Defaults to in-memory.
        audit_storage: Audit backend. Defaults to in-memory.
    """
    audit_logger = AuditLogger(audit_storage or InMemoryAuditStorage())
    return FinanceTracker(storage or InMemoryLedgerStorage(), audit_logger=audit_logger)
