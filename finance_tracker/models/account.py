"""
Account Models

Accounts come in two capability variants:

- StoredBalanceAccount (asset, liability): the balance is authoritative and
  persisted. Only the Ledger adjusts it, through posted transactions.
- DerivedBalanceAccount (income, expense): there is no stored balance. The
  balance is always recomputed from the transactions touching the account.

DESIGN DECISION: Models are frozen. A state change produces a new model via
model_copy, so a half-applied posting can never leak out of the Ledger.
"""

from datetime import datetime
from enum import Enum
from typing import TYPE_CHECKING, Any, Iterable, Optional, Union
from uuid import UUID, uuid4

from pydantic import BaseModel, ConfigDict, Field, field_validator

from finance_tracker.models.base import utc_now

if TYPE_CHECKING:
    from finance_tracker.models.transaction import Transaction


# =============================================================================
# ENUMS
# =============================================================================

class AccountType(str, Enum):
    """
    Accounting category of an account.

    - asset: what you own
    - liability: what you owe
    - income: where money comes from
    - expense: where money goes
    """
    ASSET = "asset"
    LIABILITY = "liability"
    INCOME = "income"
    EXPENSE = "expense"

    @property
    def has_stored_balance(self) -> bool:
        return self in STORED_BALANCE_TYPES


class AccountStatus(str, Enum):
    """Archived accounts stay visible for reporting but reject new transactions."""
    ACTIVE = "active"
    ARCHIVED = "archived"


STORED_BALANCE_TYPES = frozenset({AccountType.ASSET, AccountType.LIABILITY})
DERIVED_BALANCE_TYPES = frozenset({AccountType.INCOME, AccountType.EXPENSE})


# =============================================================================
# ACCOUNT VARIANTS
# =============================================================================

class Account(BaseModel):
    """Fields shared by every account variant."""
    model_config = ConfigDict(str_strip_whitespace=True, frozen=True)

    id: UUID = Field(
        default_factory=uuid4,
        description="Unique account ID"
    )
    name: str = Field(
        ...,
        min_length=1,
        description="Display name, unique within the account type"
    )
    type: AccountType
    status: AccountStatus = Field(
        default=AccountStatus.ACTIVE,
        description="Lifecycle status"
    )
    parent_account_id: Optional[UUID] = Field(
        default=None,
        description="Parent account of the same type (sub-account tree)"
    )
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)

    @property
    def is_active(self) -> bool:
        return self.status == AccountStatus.ACTIVE

    @property
    def has_stored_balance(self) -> bool:
        return self.type.has_stored_balance


class StoredBalanceAccount(Account):
    """
    Asset or liability account with an authoritative stored balance.

    The balance is adjusted only through `with_balance_delta`, which the
    Ledger calls while holding the account lock.
    """

    balance: int = Field(
        default=0,
        strict=True,
        description="Current balance in cents"
    )
    opening_balance: int = Field(
        default=0,
        strict=True,
        description="Balance at creation, before any posting"
    )

    @field_validator('type')
    @classmethod
    def validate_stored_type(cls, v: AccountType) -> AccountType:
        if v not in STORED_BALANCE_TYPES:
            raise ValueError(f"Account type '{v.value}' does not store a balance")
        return v

    def with_balance_delta(self, delta: int, at: Optional[datetime] = None) -> "StoredBalanceAccount":
        """Return a copy with `delta` cents applied. Ledger use only."""
        return self.model_copy(update={
            "balance": self.balance + delta,
            "updated_at": at or utc_now(),
        })


class DerivedBalanceAccount(Account):
    """Income or expense account. Its balance is a query, never a field."""

    @field_validator('type')
    @classmethod
    def validate_derived_type(cls, v: AccountType) -> AccountType:
        if v not in DERIVED_BALANCE_TYPES:
            raise ValueError(f"Account type '{v.value}' has a stored balance")
        return v

    def recompute_balance(self, transactions: Iterable["Transaction"]) -> int:
        """Signed sum of every transaction touching this account."""
        return sum(txn.signed_amount_for(self.id) for txn in transactions)


LedgerAccount = Union[StoredBalanceAccount, DerivedBalanceAccount]


class AccountWithBalance(Account):
    """
    Read model returned by account queries.

    `balance` is the stored value for asset/liability accounts and the
    recomputed transaction sum for income/expense accounts.
    """

    balance: int = Field(..., description="Current balance in cents")
    transaction_count: int = Field(
        default=0,
        ge=0,
        description="Number of transactions touching this account"
    )


def build_account(**fields: Any) -> LedgerAccount:
    """
    Construct the right account variant for `fields['type']`.

    Raises pydantic's ValidationError on malformed fields.
    """
    account_type = AccountType(fields["type"])
    if account_type.has_stored_balance:
        fields.setdefault("opening_balance", fields.get("balance", 0))
        return StoredBalanceAccount(**fields)
    fields.pop("balance", None)
    fields.pop("opening_balance", None)
    return DerivedBalanceAccount(**fields)
