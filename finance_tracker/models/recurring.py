"""
Recurring Transaction Models

A RecurringRule is a template for transactions that repeat on a schedule.

Per-rule state machine:
    Active <-> Paused                      (user controlled)
    Active: Pending -> Due -> Processed -> Pending (next period)

`last_processed_date` is the schedule cursor. It advances by exactly one
period per successful processing and never moves on failure.
"""

from datetime import date, datetime
from enum import Enum
from typing import Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, ConfigDict, Field, model_validator

from finance_tracker.models.base import utc_now


class RecurrenceFrequency(str, Enum):
    """How often a rule produces a transaction."""
    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"
    YEARLY = "yearly"


class RecurringStatus(str, Enum):
    """Paused rules are skipped by the scheduler but keep their anchor."""
    ACTIVE = "active"
    PAUSED = "paused"


class RecurringRule(BaseModel):
    """A recurring transaction template."""
    model_config = ConfigDict(str_strip_whitespace=True, frozen=True)

    id: UUID = Field(default_factory=uuid4)
    from_account_id: UUID
    to_account_id: UUID
    amount: int = Field(
        ...,
        gt=0,
        strict=True,
        description="Amount in cents per occurrence"
    )
    description: str = Field(..., min_length=1)
    frequency: RecurrenceFrequency
    status: RecurringStatus = RecurringStatus.ACTIVE
    last_processed_date: Optional[date] = Field(
        default=None,
        description="Occurrence date most recently satisfied"
    )
    anchor_date: Optional[date] = Field(
        default=None,
        description="Schedule anchor; defaults to the creation date"
    )
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)

    @model_validator(mode='after')
    def validate_accounts_differ(self) -> 'RecurringRule':
        if self.from_account_id == self.to_account_id:
            raise ValueError("Cannot create recurring transaction to the same account")
        return self

    @property
    def is_active(self) -> bool:
        return self.status == RecurringStatus.ACTIVE

    @property
    def schedule_anchor(self) -> date:
        """Date the schedule counts from before anything has been processed."""
        return self.anchor_date or self.created_at.date()

    @property
    def schedule_cursor(self) -> date:
        """Last satisfied occurrence, or the anchor when nothing was processed yet."""
        return self.last_processed_date or self.schedule_anchor


class ProcessingResult(BaseModel):
    """Outcome of one `process` call on one rule."""

    rule_id: UUID
    processed: bool = Field(
        ...,
        description="True when a transaction was posted"
    )
    occurrence_date: Optional[date] = Field(
        default=None,
        description="Occurrence satisfied by this call"
    )
    transaction_id: Optional[UUID] = None
    next_due_date: date = Field(
        ...,
        description="Next occurrence after this call"
    )
    reason: Optional[str] = Field(
        default=None,
        description="Why nothing was posted (e.g. 'not_due')"
    )


class RecurringProcessingStatus(BaseModel):
    """Due status of a rule as seen on a given day."""

    rule: RecurringRule
    needs_processing: bool
    next_process_date: date
    days_since_last_process: Optional[int] = Field(
        default=None,
        description="Days since last_processed_date (None if never processed)"
    )


class RuleFailure(BaseModel):
    """A rule whose processing failed during a scheduler pass."""

    rule_id: UUID
    occurrence_date: date
    error_type: str
    message: str


class SchedulerPassResult(BaseModel):
    """Summary of a full scheduler pass over all rules."""

    run_date: date
    results: list[ProcessingResult] = Field(default_factory=list)
    failures: list[RuleFailure] = Field(default_factory=list)
    rules_checked: int = 0
    rules_skipped_paused: int = 0

    @property
    def transactions_posted(self) -> int:
        return sum(1 for result in self.results if result.processed)

    @property
    def has_failures(self) -> bool:
        return len(self.failures) > 0
