"""
Aggregation Engine

DESIGN DECISION: Aggregation is DETERMINISTIC and read-only.
Every figure is computed from the ledger's current data at call time.
Nothing here mutates balances; the only write is appending a snapshot.

The module-level functions are pure (data in, numbers out) so they can be
tested without storage. `Aggregator` binds them to a Ledger and the
snapshot store.
"""

from datetime import date, timedelta
from typing import Iterable, Optional

from dateutil.relativedelta import relativedelta

from finance_tracker.audit import AuditLogger
from finance_tracker.exceptions import ValidationError
from finance_tracker.ledger import Ledger
from finance_tracker.models.account import AccountType
from finance_tracker.models.audit import AuditEventBuilder
from finance_tracker.models.base import utc_now
from finance_tracker.models.category import UNCATEGORIZED, get_category
from finance_tracker.models.net_worth import (
    CategoryTotal,
    MonthlyCashFlow,
    NetWorthCalculation,
    NetWorthSnapshot,
    NetWorthSummary,
    PeriodMetrics,
)
from finance_tracker.models.transaction import (
    ClassifiedTransaction,
    TransactionClassification,
)
from finance_tracker.services.storage import SnapshotStorageInterface


# =============================================================================
# PURE AGGREGATIONS
# =============================================================================

def net_worth(accounts: Iterable, now=None) -> NetWorthCalculation:
    """
    Sum active asset and liability balances.

    Parents and children are counted independently: every account's balance
    is self-contained, so there is no roll-up. Archived accounts are excluded.
    """
    total_assets = 0
    total_liabilities = 0
    asset_count = 0
    liability_count = 0

    for account in accounts:
        if not account.is_active:
            continue
        if account.type == AccountType.ASSET:
            total_assets += account.balance
            asset_count += 1
        elif account.type == AccountType.LIABILITY:
            total_liabilities += account.balance
            liability_count += 1

    return NetWorthCalculation(
        total_assets=total_assets,
        total_liabilities=total_liabilities,
        net_worth=total_assets - total_liabilities,
        asset_count=asset_count,
        liability_count=liability_count,
        calculated_at=now or utc_now(),
    )


def month_key(day: date) -> str:
    return day.strftime("%Y-%m")


def percent_change(current: int, previous: int) -> float:
    """
    Percentage change from `previous` to `current`.

    NOTE: returns 0.0 when `previous` is 0, even if `current` is not.
    """
    if previous == 0:
        return 0.0
    return (current - previous) / abs(previous) * 100


def period_metrics(
    transactions: Iterable[ClassifiedTransaction],
    reference_date: date,
) -> PeriodMetrics:
    """
    Income and expenses for the calendar month of `reference_date`
    against the calendar month before it. Transfers are ignored.
    """
    current_period = month_key(reference_date)
    previous_period = month_key(reference_date - relativedelta(months=1))

    totals = {
        (current_period, TransactionClassification.INCOME): 0,
        (current_period, TransactionClassification.EXPENSE): 0,
        (previous_period, TransactionClassification.INCOME): 0,
        (previous_period, TransactionClassification.EXPENSE): 0,
    }
    for txn in transactions:
        key = (month_key(txn.calendar_date), txn.classification)
        if key in totals:
            totals[key] += txn.amount

    income = totals[(current_period, TransactionClassification.INCOME)]
    expenses = totals[(current_period, TransactionClassification.EXPENSE)]
    previous_income = totals[(previous_period, TransactionClassification.INCOME)]
    previous_expenses = totals[(previous_period, TransactionClassification.EXPENSE)]

    return PeriodMetrics(
        period=current_period,
        previous_period=previous_period,
        income=income,
        expenses=expenses,
        previous_income=previous_income,
        previous_expenses=previous_expenses,
        income_change_pct=percent_change(income, previous_income),
        expense_change_pct=percent_change(expenses, previous_expenses),
    )


def cash_flow_trend(
    transactions: Iterable[ClassifiedTransaction],
    reference_date: date,
    months: int = 6,
) -> list[MonthlyCashFlow]:
    """Monthly income/expense totals, oldest month first, ending at `reference_date`'s month."""
    if months < 1:
        raise ValidationError.single("months", "INVALID_RANGE", "months must be at least 1")

    first_month = reference_date.replace(day=1) - relativedelta(months=months - 1)
    buckets = {
        month_key(first_month + relativedelta(months=offset)): MonthlyCashFlow(
            month=month_key(first_month + relativedelta(months=offset))
        )
        for offset in range(months)
    }

    for txn in transactions:
        bucket = buckets.get(month_key(txn.calendar_date))
        if bucket is None:
            continue
        if txn.classification == TransactionClassification.INCOME:
            bucket.income += txn.amount
            bucket.income_count += 1
        elif txn.classification == TransactionClassification.EXPENSE:
            bucket.expenses += txn.amount
            bucket.expense_count += 1

    return list(buckets.values())


def expenses_by_category(
    transactions: Iterable[ClassifiedTransaction],
    start: date,
    end: date,
    account_names: Optional[dict] = None,
) -> list[CategoryTotal]:
    """
    Expense totals between `start` and `end` (inclusive), largest first.

    Transactions without a category are grouped by their expense account,
    named through `account_names` when given.
    """
    if end < start:
        raise ValidationError.single("end", "INVALID_RANGE", "end cannot be before start")

    account_names = account_names or {}
    groups: dict[str, CategoryTotal] = {}

    for txn in transactions:
        if txn.classification != TransactionClassification.EXPENSE:
            continue
        if not start <= txn.calendar_date <= end:
            continue

        category_id = txn.transaction.category
        if category_id:
            key = category_id
            category = get_category(category_id)
            name = category.name if category else category_id
        else:
            expense_account_id = txn.transaction.to_account_id
            key = f"account:{expense_account_id}"
            name = account_names.get(expense_account_id, UNCATEGORIZED)

        group = groups.get(key)
        if group is None:
            group = groups[key] = CategoryTotal(key=key, name=name, amount=0, count=0)
        group.amount += txn.amount
        group.count += 1

    return sorted(groups.values(), key=lambda g: (-g.amount, g.name))


# =============================================================================
# LEDGER-BOUND AGGREGATOR
# =============================================================================

class Aggregator:
    """
    Reporting over a Ledger, plus the net worth snapshot history.

    Snapshots are append-only. Recording one never changes the ledger.
    """

    SUMMARY_WINDOWS = {
        "30_days": 30,
        "90_days": 90,
        "1_year": 365,
    }

    def __init__(
        self,
        ledger: Ledger,
        snapshot_storage: Optional[SnapshotStorageInterface] = None,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self._ledger = ledger
        self._snapshots = snapshot_storage or ledger.storage
        self._audit_logger = audit_logger

    def current_net_worth(self) -> NetWorthCalculation:
        return net_worth(self._ledger.list_accounts())

    def current_period_metrics(self, reference_date: date) -> PeriodMetrics:
        return period_metrics(self._classified(), reference_date)

    def cash_flow_trend(self, reference_date: date, months: int = 6) -> list[MonthlyCashFlow]:
        return cash_flow_trend(self._classified(), reference_date, months)

    def expenses_by_category(self, start: date, end: date) -> list[CategoryTotal]:
        names = {account.id: account.name for account in self._ledger.list_accounts()}
        return expenses_by_category(self._classified(), start, end, names)

    def record_snapshot(self, on_date: date, correlation_id=None) -> NetWorthSnapshot:
        """Compute the current net worth and append it as a snapshot dated `on_date`."""
        calculation = self.current_net_worth()
        snapshot = NetWorthSnapshot(
            date=on_date,
            total_assets=calculation.total_assets,
            total_liabilities=calculation.total_liabilities,
            net_worth=calculation.net_worth,
        )
        self._snapshots.append_snapshot(snapshot)

        if self._audit_logger:
            self._audit_logger.log(AuditEventBuilder.snapshot_recorded(
                snapshot_id=snapshot.id,
                snapshot_date=snapshot.date,
                net_worth=snapshot.net_worth,
                correlation_id=correlation_id,
            ))
        return snapshot

    def net_worth_history(
        self,
        start: Optional[date] = None,
        end: Optional[date] = None,
    ) -> list[NetWorthSnapshot]:
        """Snapshots in date order, optionally limited to [start, end]."""
        if start and end and end < start:
            raise ValidationError.single("end", "INVALID_RANGE", "end cannot be before start")
        snapshots = [
            snapshot for snapshot in self._snapshots.list_snapshots()
            if (start is None or snapshot.date >= start)
            and (end is None or snapshot.date <= end)
        ]
        return sorted(snapshots, key=lambda s: (s.date, s.created_at))

    def net_worth_summary(self, today: date) -> NetWorthSummary:
        """
        Current net worth with changes against the latest snapshot taken on
        or before 30, 90 and 365 days ago. A window with no snapshot that old
        reports None.
        """
        current = self.current_net_worth()
        history = self.net_worth_history(end=today)
        changes = {}

        for label, days in self.SUMMARY_WINDOWS.items():
            cutoff = today - timedelta(days=days)
            baseline = None
            for snapshot in history:
                if snapshot.date > cutoff:
                    break
                baseline = snapshot
            if baseline is None:
                continue
            changes[f"change_{label}"] = current.net_worth - baseline.net_worth
            changes[f"percent_change_{label}"] = percent_change(
                current.net_worth, baseline.net_worth
            )

        return NetWorthSummary(current=current, **changes)

    def _classified(self) -> list[ClassifiedTransaction]:
        return self._ledger.list_transactions()
