"""
Tests for Finance Tracker models

Test strategy:
1. Unit tests for individual models and their validators
2. Ledger, scheduler and aggregator behaviour lives in their own modules
3. No storage needed here
"""

import pytest
from datetime import date, datetime, timezone
from uuid import uuid4

from pydantic import ValidationError as PydanticValidationError

from finance_tracker.models import (
    AccountType,
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
    CategoryGroup,
    ClassifiedTransaction,
    DerivedBalanceAccount,
    NetWorthSnapshot,
    RecurringRule,
    StoredBalanceAccount,
    Transaction,
    TransactionClassification,
    TransactionFilter,
    build_account,
    classify,
    get_category_name,
    suggest_categories,
)
from finance_tracker.models.category import expense_categories, income_categories


class TestAccountModels:
    """Tests for the two account variants."""

    def test_build_account_picks_variant(self):
        """Test that stored and derived types get the right model."""
        checking = build_account(name="Checking", type="asset", balance=500)
        salary = build_account(name="Salary", type="income", balance=0)
        assert isinstance(checking, StoredBalanceAccount)
        assert checking.opening_balance == 500
        assert isinstance(salary, DerivedBalanceAccount)
        assert not hasattr(salary, "balance")

    def test_name_strips_whitespace(self):
        account = StoredBalanceAccount(name="  Savings  ", type="asset")
        assert account.name == "Savings"

    def test_stored_variant_rejects_derived_type(self):
        with pytest.raises(PydanticValidationError):
            StoredBalanceAccount(name="Salary", type="income")

    def test_derived_variant_rejects_stored_type(self):
        with pytest.raises(PydanticValidationError):
            DerivedBalanceAccount(name="Checking", type="asset")

    def test_balance_must_be_int_cents(self):
        """Test that floats never sneak in as balances."""
        with pytest.raises(PydanticValidationError):
            StoredBalanceAccount(name="Checking", type="asset", balance=10.5)

    def test_balance_delta_returns_copy(self):
        account = StoredBalanceAccount(name="Checking", type="asset", balance=1_000)
        updated = account.with_balance_delta(-250)
        assert updated.balance == 750
        assert account.balance == 1_000
        assert updated.id == account.id

    def test_derived_balance_recomputed(self):
        salary = DerivedBalanceAccount(name="Salary", type="income")
        checking = uuid4()
        transactions = [
            Transaction(from_account_id=salary.id, to_account_id=checking, amount=300,
                        description="Pay", date=date(2024, 1, 1)),
            Transaction(from_account_id=checking, to_account_id=uuid4(), amount=50,
                        description="Other", date=date(2024, 1, 2)),
        ]
        assert salary.recompute_balance(transactions) == -300

    def test_stored_balance_flag(self):
        assert AccountType.ASSET.has_stored_balance
        assert not AccountType.EXPENSE.has_stored_balance


class TestTransactionModels:
    """Tests for transactions and classification."""

    def test_date_becomes_start_of_day(self):
        txn = Transaction(
            from_account_id=uuid4(), to_account_id=uuid4(), amount=100,
            description="Coffee", date=date(2024, 3, 15),
        )
        assert txn.date == datetime(2024, 3, 15)
        assert txn.calendar_date == date(2024, 3, 15)

    def test_rejects_same_account(self):
        account_id = uuid4()
        with pytest.raises(PydanticValidationError):
            Transaction(
                from_account_id=account_id, to_account_id=account_id, amount=100,
                description="Loop", date=date(2024, 3, 15),
            )

    def test_rejects_non_positive_amount(self):
        for amount in (0, -1, 1.5):
            with pytest.raises(PydanticValidationError):
                Transaction(
                    from_account_id=uuid4(), to_account_id=uuid4(), amount=amount,
                    description="Bad", date=date(2024, 3, 15),
                )

    def test_signed_amount(self):
        txn = Transaction(
            from_account_id=uuid4(), to_account_id=uuid4(), amount=100,
            description="Move", date=date(2024, 3, 15),
        )
        assert txn.signed_amount_for(txn.to_account_id) == 100
        assert txn.signed_amount_for(txn.from_account_id) == -100
        assert txn.signed_amount_for(uuid4()) == 0

    def test_sort_key_mixes_naive_and_aware_dates(self):
        """Test that timezone-aware and naive dates still order."""
        naive = Transaction(
            from_account_id=uuid4(), to_account_id=uuid4(), amount=1,
            description="A", date=datetime(2024, 3, 1, 9),
        )
        aware = Transaction(
            from_account_id=uuid4(), to_account_id=uuid4(), amount=1,
            description="B", date=datetime(2024, 3, 1, 10, tzinfo=timezone.utc),
        )
        assert sorted([aware, naive], key=lambda t: t.sort_key()) == [naive, aware]

    def test_classification_table(self):
        """Test every pairing that is not income or expense is a transfer."""
        assert classify(AccountType.INCOME, AccountType.ASSET) == TransactionClassification.INCOME
        assert classify(AccountType.ASSET, AccountType.EXPENSE) == TransactionClassification.EXPENSE
        assert classify(AccountType.ASSET, AccountType.LIABILITY) == TransactionClassification.TRANSFER
        assert classify(AccountType.LIABILITY, AccountType.EXPENSE) == TransactionClassification.TRANSFER
        assert classify(AccountType.INCOME, AccountType.LIABILITY) == TransactionClassification.TRANSFER

    def test_classified_transaction_shortcuts(self):
        txn = Transaction(
            from_account_id=uuid4(), to_account_id=uuid4(), amount=700,
            description="Shop", date=date(2024, 3, 2),
        )
        classified = ClassifiedTransaction(
            transaction=txn,
            from_account_type=AccountType.ASSET,
            to_account_type=AccountType.EXPENSE,
        )
        assert classified.id == txn.id
        assert classified.amount == 700
        assert classified.classification == TransactionClassification.EXPENSE

    def test_filter_matching(self):
        txn = Transaction(
            from_account_id=uuid4(), to_account_id=uuid4(), amount=100,
            description="Weekly Groceries", date=date(2024, 3, 10), category="food-groceries",
        )
        assert TransactionFilter(search_term="grocer").matches(txn)
        assert TransactionFilter(account_id=txn.from_account_id).matches(txn)
        assert TransactionFilter(start_date=date(2024, 3, 10), end_date=date(2024, 3, 10)).matches(txn)
        assert not TransactionFilter(start_date=date(2024, 3, 11)).matches(txn)
        assert not TransactionFilter(category="home-rent").matches(txn)

    def test_filter_rejects_inverted_range(self):
        with pytest.raises(PydanticValidationError):
            TransactionFilter(start_date=date(2024, 3, 2), end_date=date(2024, 3, 1))


class TestRecurringModels:
    """Tests for the recurring rule template."""

    def test_schedule_cursor(self):
        rule = RecurringRule(
            from_account_id=uuid4(), to_account_id=uuid4(), amount=100,
            description="Gym", frequency="monthly", anchor_date=date(2024, 1, 31),
        )
        assert rule.is_active
        assert rule.schedule_cursor == date(2024, 1, 31)
        processed = rule.model_copy(update={"last_processed_date": date(2024, 2, 29)})
        assert processed.schedule_cursor == date(2024, 2, 29)

    def test_anchor_defaults_to_creation_day(self):
        rule = RecurringRule(
            from_account_id=uuid4(), to_account_id=uuid4(), amount=100,
            description="Gym", frequency="weekly",
        )
        assert rule.schedule_anchor == rule.created_at.date()

    def test_rejects_unknown_frequency(self):
        with pytest.raises(PydanticValidationError):
            RecurringRule(
                from_account_id=uuid4(), to_account_id=uuid4(), amount=100,
                description="Gym", frequency="fortnightly",
            )


class TestNetWorthModels:
    """Tests for snapshot consistency."""

    def test_snapshot_requires_consistent_total(self):
        with pytest.raises(PydanticValidationError):
            NetWorthSnapshot(
                date=date(2024, 3, 1), total_assets=100, total_liabilities=30, net_worth=80,
            )

    def test_snapshot_negative_net_worth(self):
        snapshot = NetWorthSnapshot(
            date=date(2024, 3, 1), total_assets=100, total_liabilities=300, net_worth=-200,
        )
        assert snapshot.net_worth == -200


class TestCategories:
    """Tests for the category catalogue."""

    def test_category_names(self):
        assert get_category_name("food-dining") == "Dining Out"
        assert get_category_name("no-such-category") == "Uncategorized"

    def test_income_and_expense_split(self):
        assert all(c.group == CategoryGroup.INCOME for c in income_categories())
        assert all(c.group != CategoryGroup.INCOME for c in expense_categories())

    def test_suggestions_from_description(self):
        suggestions = suggest_categories("Shell gas station")
        assert suggestions[0].id == "transport-fuel"
        assert suggest_categories("zzz") == []
        assert len(suggest_categories("rent water internet phone", limit=2)) == 2


class TestAuditModels:
    """Tests for audit-related models."""

    def test_audit_event_creation(self):
        """Test AuditEvent model creation."""
        event = AuditEvent(
            event_type=AuditEventType.ACCOUNT_CREATED,
            description="Test account created",
        )
        assert event.event_type == AuditEventType.ACCOUNT_CREATED
        assert event.severity == AuditSeverity.INFO

    def test_audit_event_to_log_dict(self):
        """Test conversion to log dictionary."""
        event = AuditEvent(
            event_type=AuditEventType.TRANSACTION_POSTED,
            description="Transaction posted",
            details={"amount": 1000},
        )
        log_dict = event.to_log_dict()
        assert "event_id" in log_dict
        assert log_dict["event_type"] == "transaction_posted"
        assert log_dict["details"]["amount"] == 1000

    def test_audit_event_builder_account_created(self):
        """Test AuditEventBuilder.account_created."""
        correlation_id = uuid4()
        account_id = uuid4()

        event = AuditEventBuilder.account_created(
            account_id=account_id,
            name="Checking",
            account_type="asset",
            initial_balance=1_000,
            correlation_id=correlation_id,
        )

        assert event.event_type == AuditEventType.ACCOUNT_CREATED
        assert event.entity_id == account_id
        assert event.correlation_id == correlation_id
        assert event.details["initial_balance"] == 1_000

    def test_audit_event_builder_account_changed(self):
        event = AuditEventBuilder.account_changed(
            event_type=AuditEventType.ACCOUNT_ARCHIVED,
            account_id=uuid4(),
            name="Old card",
        )
        assert event.description == "Account archived: Old card"

    def test_audit_event_builder_recurring_failed(self):
        """Test that failures are warnings carrying the error."""
        event = AuditEventBuilder.recurring_failed(
            rule_id=uuid4(),
            occurrence_date=date(2024, 2, 29),
            error_type="InvalidStateError",
            error_message="Account 'Rent' is archived",
        )
        assert event.severity == AuditSeverity.WARNING
        assert event.error_code == "InvalidStateError"
        assert event.details["occurrence_date"] == "2024-02-29"


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
