"""
Net Worth and Reporting Models

Snapshots are point-in-time records and immutable once created.
Calculations and metrics are computed on demand and never persisted.
"""

from datetime import date, datetime
from typing import Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, ConfigDict, Field, model_validator

from finance_tracker.models.base import utc_now


class NetWorthSnapshot(BaseModel):
    """Recorded net worth on a given date."""
    model_config = ConfigDict(frozen=True)

    id: UUID = Field(default_factory=uuid4)
    date: date
    total_assets: int = Field(..., description="Sum of asset balances in cents")
    total_liabilities: int = Field(..., description="Sum of liability balances in cents")
    net_worth: int = Field(..., description="total_assets - total_liabilities")
    created_at: datetime = Field(default_factory=utc_now)

    @model_validator(mode='after')
    def validate_net_worth(self) -> 'NetWorthSnapshot':
        if self.net_worth != self.total_assets - self.total_liabilities:
            raise ValueError("net_worth must equal total_assets - total_liabilities")
        return self


class NetWorthCalculation(BaseModel):
    """Current net worth, computed without saving a snapshot."""

    total_assets: int
    total_liabilities: int
    net_worth: int
    asset_count: int = Field(..., ge=0)
    liability_count: int = Field(..., ge=0)
    calculated_at: datetime = Field(
        default_factory=utc_now,
        description="When the computation ran (not when the data changed)"
    )


class NetWorthSummary(BaseModel):
    """Current net worth with changes against earlier snapshots."""

    current: NetWorthCalculation
    change_30_days: Optional[int] = None
    change_90_days: Optional[int] = None
    change_1_year: Optional[int] = None
    percent_change_30_days: Optional[float] = None
    percent_change_90_days: Optional[float] = None
    percent_change_1_year: Optional[float] = None


class PeriodMetrics(BaseModel):
    """
    Income and expenses for a calendar month against the month before.

    NOTE: change percentages are 0.0 when the previous month total is 0.
    That is a display convention, not a true rate of change.
    """

    period: str = Field(..., description="Current month, YYYY-MM")
    previous_period: str = Field(..., description="Preceding month, YYYY-MM")
    income: int
    expenses: int
    previous_income: int
    previous_expenses: int
    income_change_pct: float
    expense_change_pct: float


class MonthlyCashFlow(BaseModel):
    """Income and expense totals for one calendar month."""

    month: str = Field(..., description="YYYY-MM")
    income: int = 0
    expenses: int = 0
    income_count: int = 0
    expense_count: int = 0

    @property
    def net(self) -> int:
        return self.income - self.expenses


class CategoryTotal(BaseModel):
    """Expense total for one category (or uncategorized expense account)."""

    key: str
    name: str
    amount: int
    count: int
