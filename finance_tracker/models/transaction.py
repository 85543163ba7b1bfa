"""
Transaction Models

A transaction is a single debit/credit pair: money leaves `from_account_id`
and arrives at `to_account_id`. The amount is always positive; direction is
carried by the account pair, never by the sign.

CRITICAL: Classification (income / expense / transfer) is NOT stored on the
transaction. It is recomputed from the current account types every time a
ClassifiedTransaction read model is built.
"""

from datetime import date, datetime, time
from enum import Enum
from typing import Optional
from uuid import UUID, uuid4

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    field_validator,
    model_validator,
)

from finance_tracker.models.account import AccountType
from finance_tracker.models.base import utc_now


class TransactionClassification(str, Enum):
    """Economic nature of a transaction, derived from its account types."""
    INCOME = "income"
    EXPENSE = "expense"
    TRANSFER = "transfer"


def classify(from_type: AccountType, to_type: AccountType) -> TransactionClassification:
    """
    Classify a money movement by its account types.

    income:  income account -> asset account
    expense: asset account  -> expense account
    anything else is a transfer
    """
    if from_type == AccountType.INCOME and to_type == AccountType.ASSET:
        return TransactionClassification.INCOME
    if from_type == AccountType.ASSET and to_type == AccountType.EXPENSE:
        return TransactionClassification.EXPENSE
    return TransactionClassification.TRANSFER


class Transaction(BaseModel):
    """A posted transaction. Immutable once recorded."""
    model_config = ConfigDict(str_strip_whitespace=True, frozen=True)

    id: UUID = Field(default_factory=uuid4)
    from_account_id: UUID = Field(..., description="Source account")
    to_account_id: UUID = Field(..., description="Destination account")
    amount: int = Field(
        ...,
        gt=0,
        strict=True,
        description="Amount in cents (always positive)"
    )
    description: str = Field(..., min_length=1)
    date: datetime = Field(..., description="When the money moved")
    category: Optional[str] = Field(
        default=None,
        description="Category ID (see models.category)"
    )
    tags: list[str] = Field(default_factory=list)
    recurring_rule_id: Optional[UUID] = Field(
        default=None,
        description="Rule that generated this transaction, if any"
    )
    created_at: datetime = Field(default_factory=utc_now)

    @field_validator('date', mode='before')
    @classmethod
    def date_to_datetime(cls, v):
        """A bare calendar date means the start of that day."""
        if isinstance(v, date) and not isinstance(v, datetime):
            return datetime.combine(v, time.min)
        return v

    @model_validator(mode='after')
    def validate_accounts_differ(self) -> 'Transaction':
        if self.from_account_id == self.to_account_id:
            raise ValueError("From and To accounts must be different")
        return self

    @property
    def calendar_date(self) -> "date":
        # `date` is shadowed by the field inside the class body
        return self.date.date()

    def touches(self, account_id: UUID) -> bool:
        return account_id in (self.from_account_id, self.to_account_id)

    def signed_amount_for(self, account_id: UUID) -> int:
        """+amount for the destination side, -amount for the source side, 0 otherwise."""
        if account_id == self.to_account_id:
            return self.amount
        if account_id == self.from_account_id:
            return -self.amount
        return 0

    def sort_key(self) -> tuple:
        """Chronological ordering key (naive date, then creation time)."""
        return (self.date.replace(tzinfo=None), self.created_at)


class ClassifiedTransaction(BaseModel):
    """
    Read model: a transaction plus the account types it moved between.

    Built fresh on every read, so the classification always reflects the
    current account types.
    """
    model_config = ConfigDict(frozen=True)

    transaction: Transaction
    from_account_type: AccountType
    to_account_type: AccountType

    @property
    def classification(self) -> TransactionClassification:
        return classify(self.from_account_type, self.to_account_type)

    @property
    def id(self) -> UUID:
        return self.transaction.id

    @property
    def amount(self) -> int:
        return self.transaction.amount

    @property
    def calendar_date(self) -> date:
        return self.transaction.calendar_date


class TransactionFilter(BaseModel):
    """
    Filter options for listing transactions.

    All filters are optional and combined with AND.
    """

    account_id: Optional[UUID] = Field(
        default=None,
        description="Transactions touching this account on either side"
    )
    from_account_id: Optional[UUID] = None
    to_account_id: Optional[UUID] = None
    start_date: Optional[date] = Field(
        default=None,
        description="Inclusive lower bound on the calendar date"
    )
    end_date: Optional[date] = Field(
        default=None,
        description="Inclusive upper bound on the calendar date"
    )
    category: Optional[str] = None
    search_term: Optional[str] = Field(
        default=None,
        description="Case-insensitive substring of the description"
    )
    limit: Optional[int] = Field(default=None, ge=1)
    offset: int = Field(default=0, ge=0)

    @model_validator(mode='after')
    def validate_date_range(self) -> 'TransactionFilter':
        if self.start_date and self.end_date and self.end_date < self.start_date:
            raise ValueError("end_date cannot be before start_date")
        return self

    def matches(self, txn: Transaction) -> bool:
        if self.account_id and not txn.touches(self.account_id):
            return False
        if self.from_account_id and txn.from_account_id != self.from_account_id:
            return False
        if self.to_account_id and txn.to_account_id != self.to_account_id:
            return False
        if self.start_date and txn.calendar_date < self.start_date:
            return False
        if self.end_date and txn.calendar_date > self.end_date:
            return False
        if self.category and txn.category != self.category:
            return False
        if self.search_term and self.search_term.lower() not in txn.description.lower():
            return False
        return True
