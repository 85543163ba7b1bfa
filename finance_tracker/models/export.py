"""
Export Model

Versioned backup of the whole ledger. Serialize with
`ExportData.model_dump_json()` and restore with
`ExportData.model_validate_json(...)`.
"""

from datetime import datetime
from typing import Union

from pydantic import BaseModel, Field

from finance_tracker.models.account import DerivedBalanceAccount, StoredBalanceAccount
from finance_tracker.models.base import utc_now
from finance_tracker.models.net_worth import NetWorthSnapshot
from finance_tracker.models.recurring import RecurringRule
from finance_tracker.models.transaction import Transaction


EXPORT_FORMAT_VERSION = "1.0"


class ExportData(BaseModel):
    """Complete ledger state for backup/restore."""

    version: str = Field(default=EXPORT_FORMAT_VERSION)
    exported_at: datetime = Field(default_factory=utc_now)
    accounts: list[Union[StoredBalanceAccount, DerivedBalanceAccount]] = Field(default_factory=list)
    transactions: list[Transaction] = Field(default_factory=list)
    recurring: list[RecurringRule] = Field(default_factory=list)
    net_worth_snapshots: list[NetWorthSnapshot] = Field(default_factory=list)

    @property
    def counts(self) -> dict[str, int]:
        return {
            "accounts": len(self.accounts),
            "transactions": len(self.transactions),
            "recurring": len(self.recurring),
            "net_worth_snapshots": len(self.net_worth_snapshots),
        }
