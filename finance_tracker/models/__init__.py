"""
Data Models Package

This package contains all Pydantic models used by the ledger core.
All data flowing through the system must conform to these schemas.
"""

from finance_tracker.models.account import (
    DERIVED_BALANCE_TYPES,
    STORED_BALANCE_TYPES,
    Account,
    AccountStatus,
    AccountType,
    AccountWithBalance,
    DerivedBalanceAccount,
    LedgerAccount,
    StoredBalanceAccount,
    build_account,
)
from finance_tracker.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)
from finance_tracker.models.category import (
    CATEGORIES,
    CategoryGroup,
    TransactionCategory,
    get_category,
    get_category_name,
    suggest_categories,
)
from finance_tracker.models.export import ExportData
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
    RecurringStatus,
    RuleFailure,
    SchedulerPassResult,
)
from finance_tracker.models.transaction import (
    ClassifiedTransaction,
    Transaction,
    TransactionClassification,
    TransactionFilter,
    classify,
)
from finance_tracker.models.validation import ValidationIssue

__all__ = [
    # Account models
    "DERIVED_BALANCE_TYPES",
    "STORED_BALANCE_TYPES",
    "Account",
    "AccountStatus",
    "AccountType",
    "AccountWithBalance",
    "DerivedBalanceAccount",
    "LedgerAccount",
    "StoredBalanceAccount",
    "build_account",
    # Audit models
    "AuditEvent",
    "AuditEventBuilder",
    "AuditEventType",
    "AuditSeverity",
    # Categories
    "CATEGORIES",
    "CategoryGroup",
    "TransactionCategory",
    "get_category",
    "get_category_name",
    "suggest_categories",
    # Export
    "ExportData",
    # Reporting models
    "CategoryTotal",
    "MonthlyCashFlow",
    "NetWorthCalculation",
    "NetWorthSnapshot",
    "NetWorthSummary",
    "PeriodMetrics",
    # Recurring models
    "ProcessingResult",
    "RecurrenceFrequency",
    "RecurringProcessingStatus",
    "RecurringRule",
    "RecurringStatus",
    "RuleFailure",
    "SchedulerPassResult",
    # Transaction models
    "ClassifiedTransaction",
    "Transaction",
    "TransactionClassification",
    "TransactionFilter",
    "classify",
    # Validation
    "ValidationIssue",
]
