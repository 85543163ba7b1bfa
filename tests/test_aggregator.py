"""Tests for net worth, period metrics and reporting aggregations."""

from datetime import date
from uuid import uuid4

import pytest

from finance_tracker.exceptions import ValidationError
from finance_tracker.models import (
    AccountStatus,
    AccountType,
    ClassifiedTransaction,
    DerivedBalanceAccount,
    StoredBalanceAccount,
    Transaction,
)
from finance_tracker.queries import (
    cash_flow_trend,
    expenses_by_category,
    net_worth,
    percent_change,
    period_metrics,
)


def classified(from_type, to_type, amount, on, category=None, to_account_id=None):
    """Build a classified transaction without a ledger."""
    txn = Transaction(
        from_account_id=uuid4(),
        to_account_id=to_account_id or uuid4(),
        amount=amount,
        description="test",
        date=on,
        category=category,
    )
    return ClassifiedTransaction(
        transaction=txn,
        from_account_type=from_type,
        to_account_type=to_type,
    )


def income(amount, on):
    return classified(AccountType.INCOME, AccountType.ASSET, amount, on)


def expense(amount, on, category=None, to_account_id=None):
    return classified(AccountType.ASSET, AccountType.EXPENSE, amount, on, category, to_account_id)


def transfer(amount, on):
    return classified(AccountType.ASSET, AccountType.LIABILITY, amount, on)


class TestNetWorth:
    """Net worth over stored-balance accounts."""

    def test_basic_calculation(self):
        """Test assets minus liabilities with per-type counts."""
        result = net_worth([
            StoredBalanceAccount(name="Checking", type="asset", balance=100_000),
            StoredBalanceAccount(name="Card", type="liability", balance=30_000),
        ])
        assert result.total_assets == 100_000
        assert result.total_liabilities == 30_000
        assert result.net_worth == 70_000
        assert result.asset_count == 1
        assert result.liability_count == 1

    def test_archived_accounts_excluded(self):
        result = net_worth([
            StoredBalanceAccount(name="Checking", type="asset", balance=100_000),
            StoredBalanceAccount(
                name="Old", type="asset", balance=5_000, status=AccountStatus.ARCHIVED,
            ),
        ])
        assert result.total_assets == 100_000
        assert result.asset_count == 1

    def test_parent_and_child_counted_independently(self):
        parent = StoredBalanceAccount(name="Bank", type="asset", balance=1_000)
        child = StoredBalanceAccount(
            name="Savings", type="asset", balance=2_000, parent_account_id=parent.id,
        )
        result = net_worth([parent, child])
        assert result.total_assets == 3_000
        assert result.asset_count == 2

    def test_derived_accounts_ignored(self):
        result = net_worth([DerivedBalanceAccount(name="Salary", type="income")])
        assert result.net_worth == 0
        assert result.asset_count == 0

    def test_empty(self):
        result = net_worth([])
        assert result.net_worth == 0


class TestPercentChange:
    """Change percentage convention."""

    def test_regular_change(self):
        assert percent_change(150, 100) == 50.0
        assert percent_change(50, 100) == -50.0

    def test_zero_previous_is_zero(self):
        """Test the documented convention rather than infinity."""
        assert percent_change(500, 0) == 0.0

    def test_negative_previous(self):
        """Test that improving from a negative base reads as positive."""
        assert percent_change(-50, -100) == 50.0


class TestPeriodMetrics:
    """Calendar-month income and expense comparison."""

    def test_current_against_previous_month(self):
        transactions = [
            income(300_000, date(2024, 3, 1)),
            expense(5_000, date(2024, 3, 20)),
            income(200_000, date(2024, 2, 1)),
            expense(10_000, date(2024, 2, 29)),
            transfer(99_999, date(2024, 3, 2)),
            income(1, date(2024, 1, 31)),
        ]
        metrics = period_metrics(transactions, date(2024, 3, 15))
        assert metrics.period == "2024-03"
        assert metrics.previous_period == "2024-02"
        assert metrics.income == 300_000
        assert metrics.expenses == 5_000
        assert metrics.previous_income == 200_000
        assert metrics.previous_expenses == 10_000
        assert metrics.income_change_pct == 50.0
        assert metrics.expense_change_pct == -50.0

    def test_january_compares_with_december(self):
        metrics = period_metrics([expense(100, date(2023, 12, 31))], date(2024, 1, 10))
        assert metrics.previous_period == "2023-12"
        assert metrics.previous_expenses == 100
        assert metrics.expense_change_pct == -100.0

    def test_no_previous_data(self):
        metrics = period_metrics([income(1_000, date(2024, 3, 1))], date(2024, 3, 31))
        assert metrics.income_change_pct == 0.0


class TestCashFlowTrend:
    """Monthly buckets."""

    def test_buckets_oldest_first(self):
        transactions = [
            income(1_000, date(2024, 1, 5)),
            expense(300, date(2024, 1, 6)),
            expense(200, date(2024, 3, 1)),
            expense(999, date(2023, 12, 31)),
            transfer(5_000, date(2024, 2, 1)),
        ]
        trend = cash_flow_trend(transactions, date(2024, 3, 15), months=3)
        assert [m.month for m in trend] == ["2024-01", "2024-02", "2024-03"]
        assert trend[0].income == 1_000
        assert trend[0].expenses == 300
        assert trend[0].net == 700
        assert trend[0].expense_count == 1
        assert trend[1].income == 0 and trend[1].expenses == 0
        assert trend[2].expenses == 200

    def test_rejects_zero_months(self):
        with pytest.raises(ValidationError):
            cash_flow_trend([], date(2024, 3, 1), months=0)


class TestExpensesByCategory:
    """Grouping with fallback to the expense account."""

    def test_groups_and_sorts(self):
        dining = uuid4()
        transactions = [
            expense(4_000, date(2024, 3, 2), category="food-groceries"),
            expense(1_000, date(2024, 3, 3), category="food-groceries"),
            expense(2_500, date(2024, 3, 4), to_account_id=dining),
            expense(9_999, date(2024, 4, 1), category="food-groceries"),
            income(50_000, date(2024, 3, 1)),
        ]
        totals = expenses_by_category(
            transactions, date(2024, 3, 1), date(2024, 3, 31), {dining: "Restaurants"},
        )
        assert [(t.name, t.amount, t.count) for t in totals] == [
            ("Groceries", 5_000, 2),
            ("Restaurants", 2_500, 1),
        ]
        assert totals[1].key == f"account:{dining}"

    def test_unknown_account_is_uncategorized(self):
        totals = expenses_by_category(
            [expense(100, date(2024, 3, 1))], date(2024, 3, 1), date(2024, 3, 1),
        )
        assert totals[0].name == "Uncategorized"

    def test_rejects_inverted_range(self):
        with pytest.raises(ValidationError):
            expenses_by_category([], date(2024, 3, 2), date(2024, 3, 1))


class TestAggregator:
    """Ledger-bound aggregation and snapshots."""

    def test_current_net_worth(self, aggregator, accounts, ledger):
        ledger.post_transaction(
            accounts["checking"].id, accounts["card"].id, 25_000, "Pay card", date(2024, 3, 1),
        )
        result = aggregator.current_net_worth()
        # Uniform signed postings: the card balance moves up by what was sent to it
        assert result.total_assets == 75_000
        assert result.total_liabilities == 25_000
        assert result.net_worth == 50_000

    def test_period_metrics_from_ledger(self, aggregator, accounts, ledger):
        ledger.post_transaction(accounts["salary"].id, accounts["checking"].id, 200_000, "Pay", date(2024, 2, 1))
        ledger.post_transaction(accounts["salary"].id, accounts["checking"].id, 250_000, "Pay", date(2024, 3, 1))
        ledger.post_transaction(accounts["checking"].id, accounts["groceries"].id, 8_000, "Shop", date(2024, 3, 3))
        metrics = aggregator.current_period_metrics(date(2024, 3, 15))
        assert metrics.income == 250_000
        assert metrics.previous_income == 200_000
        assert metrics.income_change_pct == 25.0
        assert metrics.expenses == 8_000

    def test_expenses_by_category_uses_account_names(self, aggregator, accounts, ledger):
        ledger.post_transaction(accounts["checking"].id, accounts["groceries"].id, 800, "Shop", date(2024, 3, 3))
        totals = aggregator.expenses_by_category(date(2024, 3, 1), date(2024, 3, 31))
        assert totals[0].name == "Groceries"

    def test_snapshots_are_history(self, aggregator, accounts, ledger, audit_storage):
        aggregator.record_snapshot(date(2024, 2, 1))
        ledger.post_transaction(accounts["salary"].id, accounts["checking"].id, 50_000, "Pay", date(2024, 2, 15))
        aggregator.record_snapshot(date(2024, 3, 1))

        history = aggregator.net_worth_history()
        assert [s.date for s in history] == [date(2024, 2, 1), date(2024, 3, 1)]
        assert [s.net_worth for s in history] == [100_000, 150_000]
        assert aggregator.net_worth_history(start=date(2024, 2, 2)) == history[1:]

        latest = audit_storage.get_recent_events(limit=1)[0]
        assert latest.event_type.value == "snapshot_recorded"

    def test_summary_changes(self, aggregator, accounts, ledger):
        aggregator.record_snapshot(date(2024, 1, 1))
        ledger.post_transaction(accounts["salary"].id, accounts["checking"].id, 50_000, "Pay", date(2024, 2, 1))

        summary = aggregator.net_worth_summary(date(2024, 3, 15))
        assert summary.current.net_worth == 150_000
        assert summary.change_30_days == 50_000
        assert summary.percent_change_30_days == 50.0
        # No snapshot is 90 days old yet
        assert summary.change_90_days is None
        assert summary.change_1_year is None
