"""
Recurrence Scheduler

Turns recurring rules into ledger transactions, exactly once per period.

DESIGN DECISION: `last_processed_date` is the only schedule state.
- It advances by exactly one period per successful `process` call
- It never advances when posting fails, so the period stays due
- Processing holds the rule lock for the whole read-check-post-advance
  sequence, so two concurrent passes cannot both see the same period as due

Missed periods are backfilled one at a time. `process` handles one period;
`run_pass` keeps calling it until the rule is no longer due, producing one
transaction per missed period rather than a single collapsed catch-up.
"""

from datetime import date, timedelta
from typing import Optional, Union
from uuid import UUID

import structlog
from dateutil.relativedelta import relativedelta
from pydantic import ValidationError as PydanticValidationError

from finance_tracker.audit import AuditLogger, create_correlation_id
from finance_tracker.config import get_settings
from finance_tracker.exceptions import InvalidStateError, LedgerError, NotFoundError
from finance_tracker.ledger import Ledger
from finance_tracker.ledger.ledger import ACCOUNT_LOCK
from finance_tracker.models.audit import AuditEventBuilder, AuditEventType
from finance_tracker.models.base import utc_now
from finance_tracker.models.recurring import (
    ProcessingResult,
    RecurrenceFrequency,
    RecurringProcessingStatus,
    RecurringRule,
    RecurringStatus,
    RuleFailure,
    SchedulerPassResult,
)
from finance_tracker.models.validation import ValidationIssue
from finance_tracker.services.storage import RecurringStorageInterface, StorageError
from finance_tracker.validation import LedgerValidator

RULE_LOCK = "recurring_rule"

logger = structlog.get_logger(__name__)


# =============================================================================
# CALENDAR ARITHMETIC
# =============================================================================

def _is_month_end(day: date) -> bool:
    return (day + timedelta(days=1)).month != day.month


def _target_day(from_date: date, anchor: date) -> int:
    """
    Day of month the next monthly/yearly step should land on.

    A cursor sitting on a clamped month end (Feb 28 for a Jan 31 anchor)
    returns to the anchor's day, so the schedule does not drift earlier.
    """
    if anchor.day > from_date.day and _is_month_end(from_date):
        return anchor.day
    return from_date.day


def next_occurrence(rule: RecurringRule, from_date: date) -> date:
    """
    One period after `from_date`.

    daily +1 day, weekly +7 days, monthly +1 calendar month, yearly +1
    calendar year. Month and year steps clamp to the last valid day
    (Jan 31 -> Feb 28/29, Feb 29 2020 -> Feb 28 2021).
    """
    if rule.frequency == RecurrenceFrequency.DAILY:
        return from_date + timedelta(days=1)
    if rule.frequency == RecurrenceFrequency.WEEKLY:
        return from_date + timedelta(days=7)

    day = _target_day(from_date, rule.schedule_anchor)
    if rule.frequency == RecurrenceFrequency.MONTHLY:
        return from_date + relativedelta(months=1, day=day)
    return from_date + relativedelta(years=1, day=day)


def is_due(rule: RecurringRule, today: date) -> bool:
    """Active, and the next occurrence after the cursor is on or before `today`."""
    return rule.is_active and next_occurrence(rule, rule.schedule_cursor) <= today


# =============================================================================
# SCHEDULER
# =============================================================================

class RecurrenceScheduler:
    """
    Recurring rule commands and idempotent processing.

    Usage:
        scheduler = RecurrenceScheduler(ledger)
        rule = scheduler.create_rule(salary.id, checking.id, 500_000, "Salary", "monthly")
        scheduler.run_pass(date.today())
    """

    def __init__(
        self,
        ledger: Ledger,
        storage: Optional[RecurringStorageInterface] = None,
        audit_logger: Optional[AuditLogger] = None,
        validator: Optional[LedgerValidator] = None,
    ):
        self._ledger = ledger
        self._storage = storage or ledger.storage
        self._audit_logger = audit_logger
        self._validator = validator or LedgerValidator()
        self._locks = ledger.locks

        settings = get_settings().ledger
        self._description_suffix = settings.recurring_description_suffix
        self._max_description_length = settings.max_description_length
        self._max_catch_up_periods = settings.max_catch_up_periods

    next_occurrence = staticmethod(next_occurrence)
    is_due = staticmethod(is_due)

    # =========================================================================
    # RULE COMMANDS
    # =========================================================================

    def create_rule(
        self,
        from_account_id: UUID,
        to_account_id: UUID,
        amount: int,
        description: str,
        frequency: Union[RecurrenceFrequency, str],
        anchor_date: Optional[date] = None,
        correlation_id: Optional[UUID] = None,
    ) -> RecurringRule:
        """
        Create an active rule. The first occurrence is one period after
        `anchor_date` (default: today).

        Raises:
            ValidationError: Bad amount, description or frequency
            NotFoundError: Either account does not exist
            InvalidStateError: Either account is archived
        """
        issues = self._validator.validate_recurring(
            from_account_id, to_account_id, amount, description, frequency,
        )
        issues.extend(self._validate_generated_description(description))
        self._validator.ensure_valid(issues)

        with self._locks.hold(ACCOUNT_LOCK, from_account_id, to_account_id):
            for account_id in (from_account_id, to_account_id):
                account = self._ledger.get_account(account_id)
                if not account.is_active:
                    raise InvalidStateError(
                        "ACCOUNT_ARCHIVED",
                        f"Account '{account.name}' is archived",
                    )

            try:
                rule = RecurringRule(
                    from_account_id=from_account_id,
                    to_account_id=to_account_id,
                    amount=amount,
                    description=description,
                    frequency=RecurrenceFrequency(frequency),
                    anchor_date=anchor_date or date.today(),
                )
            except PydanticValidationError as e:
                raise self._validator.from_model_error(e) from e

            self._storage.save_rule(rule)

        self._log_rule_change(
            AuditEventType.RECURRING_CREATED,
            rule,
            {"amount": rule.amount, "frequency": rule.frequency.value},
            correlation_id,
        )
        return rule

    def update_rule(
        self,
        rule_id: UUID,
        amount: Optional[int] = None,
        description: Optional[str] = None,
        frequency: Optional[Union[RecurrenceFrequency, str]] = None,
        correlation_id: Optional[UUID] = None,
    ) -> RecurringRule:
        """Change amount, description or frequency. The schedule cursor is kept."""
        issues = []
        if amount is not None:
            issues.extend(self._validator.validate_positive_amount(amount))
        if description is not None:
            issues.extend(self._validator.validate_description(description))
            issues.extend(self._validate_generated_description(description))
        if frequency is not None:
            issues.extend(self._validator.validate_frequency(frequency))
        self._validator.ensure_valid(issues)

        changes = {}
        if amount is not None:
            changes["amount"] = amount
        if description is not None:
            changes["description"] = description.strip()
        if frequency is not None:
            changes["frequency"] = RecurrenceFrequency(frequency)

        with self._locks.hold(RULE_LOCK, rule_id):
            rule = self._require_rule(rule_id)
            if not changes:
                return rule
            updated = rule.model_copy(update={**changes, "updated_at": utc_now()})
            self._storage.save_rule(updated)

        self._log_rule_change(
            AuditEventType.RECURRING_UPDATED,
            updated,
            {key: getattr(value, "value", value) for key, value in changes.items()},
            correlation_id,
        )
        return updated

    def pause_rule(self, rule_id: UUID, correlation_id: Optional[UUID] = None) -> RecurringRule:
        return self._set_status(rule_id, RecurringStatus.PAUSED, AuditEventType.RECURRING_PAUSED, correlation_id)

    def resume_rule(self, rule_id: UUID, correlation_id: Optional[UUID] = None) -> RecurringRule:
        """
        Reactivate a paused rule.

        The anchor and cursor are untouched, so periods that fell due while
        paused are backfilled by the next pass.
        """
        return self._set_status(rule_id, RecurringStatus.ACTIVE, AuditEventType.RECURRING_RESUMED, correlation_id)

    def delete_rule(self, rule_id: UUID, correlation_id: Optional[UUID] = None) -> None:
        """Delete a rule. Transactions it already produced are kept."""
        with self._locks.hold(RULE_LOCK, rule_id):
            rule = self._require_rule(rule_id)
            self._storage.delete_rule(rule.id)
        self._log_rule_change(AuditEventType.RECURRING_DELETED, rule, None, correlation_id)

    # =========================================================================
    # QUERIES
    # =========================================================================

    def get_rule(self, rule_id: UUID) -> RecurringRule:
        return self._require_rule(rule_id)

    def list_rules(self, status: Optional[Union[RecurringStatus, str]] = None) -> list[RecurringRule]:
        status = RecurringStatus(status) if status else None
        rules = [
            rule for rule in self._storage.list_rules()
            if status is None or rule.status == status
        ]
        return sorted(rules, key=lambda r: r.created_at)

    def processing_status(
        self,
        rule: Union[RecurringRule, UUID],
        today: date,
    ) -> RecurringProcessingStatus:
        if not isinstance(rule, RecurringRule):
            rule = self._require_rule(rule)
        last = rule.last_processed_date
        return RecurringProcessingStatus(
            rule=rule,
            needs_processing=is_due(rule, today),
            next_process_date=next_occurrence(rule, rule.schedule_cursor),
            days_since_last_process=(today - last).days if last else None,
        )

    def list_rules_with_status(
        self,
        today: date,
        status: Optional[Union[RecurringStatus, str]] = None,
    ) -> list[RecurringProcessingStatus]:
        return [self.processing_status(rule, today) for rule in self.list_rules(status)]

    # =========================================================================
    # PROCESSING
    # =========================================================================

    def process(
        self,
        rule: Union[RecurringRule, UUID],
        today: date,
        correlation_id: Optional[UUID] = None,
    ) -> ProcessingResult:
        """
        Post the rule's transaction for its next period, if that period is due.

        The rule is re-read under its lock, so a stale `rule` argument can
        never cause a second posting for a period that was already handled.

        Raises:
            NotFoundError: Unknown rule
            InvalidStateError: Rule is paused
            LedgerError / StorageError: Posting failed; the period stays due
        """
        rule_id = rule.id if isinstance(rule, RecurringRule) else rule

        with self._locks.hold(RULE_LOCK, rule_id):
            current = self._require_rule(rule_id)
            if not current.is_active:
                raise InvalidStateError(
                    "RULE_PAUSED",
                    f"Cannot process paused recurring rule '{current.description}'",
                )

            occurrence = next_occurrence(current, current.schedule_cursor)
            if occurrence > today:
                return ProcessingResult(
                    rule_id=current.id,
                    processed=False,
                    next_due_date=occurrence,
                    reason="not_due",
                )

            try:
                posted = self._ledger.post_transaction(
                    from_account_id=current.from_account_id,
                    to_account_id=current.to_account_id,
                    amount=current.amount,
                    description=f"{current.description}{self._description_suffix}",
                    date=occurrence,
                    recurring_rule_id=current.id,
                    correlation_id=correlation_id,
                )
            except (LedgerError, StorageError) as e:
                self._log_failure(current.id, occurrence, e, correlation_id)
                raise

            advanced = current.model_copy(update={
                "last_processed_date": occurrence,
                "updated_at": utc_now(),
            })
            try:
                self._storage.save_rule(advanced)
            except StorageError as e:
                # Cursor did not move, so the posting must not survive either
                try:
                    self._ledger.delete_transaction(posted.id, correlation_id=correlation_id)
                except (LedgerError, StorageError) as rollback_error:
                    logger.error(
                        "recurring_rollback_failed",
                        rule_id=str(current.id),
                        transaction_id=str(posted.id),
                        error=str(rollback_error),
                    )
                    if self._audit_logger:
                        self._audit_logger.log_error(
                            error_type="RECURRING_ROLLBACK_FAILED",
                            error_message=str(rollback_error),
                            details={
                                "rule_id": str(current.id),
                                "transaction_id": str(posted.id),
                            },
                            correlation_id=correlation_id,
                        )
                    raise
                self._log_failure(current.id, occurrence, e, correlation_id)
                raise

        if self._audit_logger:
            self._audit_logger.log_recurring_processed(
                rule_id=current.id,
                transaction_id=posted.id,
                occurrence_date=occurrence,
                correlation_id=correlation_id,
            )
        return ProcessingResult(
            rule_id=current.id,
            processed=True,
            occurrence_date=occurrence,
            transaction_id=posted.id,
            next_due_date=next_occurrence(advanced, occurrence),
        )

    def run_pass(
        self,
        today: date,
        correlation_id: Optional[UUID] = None,
    ) -> SchedulerPassResult:
        """
        Process every active rule until none is due.

        A failing rule stops its own catch-up and is reported in
        `failures`; the pass carries on with the other rules.
        """
        correlation_id = correlation_id or create_correlation_id()
        result = SchedulerPassResult(run_date=today)

        for rule in self.list_rules():
            result.rules_checked += 1
            if not rule.is_active:
                result.rules_skipped_paused += 1
                continue

            for _ in range(self._max_catch_up_periods):
                try:
                    outcome = self.process(rule.id, today, correlation_id)
                except InvalidStateError as e:
                    if e.code == "RULE_PAUSED":
                        result.rules_skipped_paused += 1
                    else:
                        result.failures.append(self._failure(rule.id, today, e))
                    break
                except (LedgerError, StorageError) as e:
                    result.failures.append(self._failure(rule.id, today, e))
                    break

                if not outcome.processed:
                    break
                result.results.append(outcome)
            else:
                logger.warning(
                    "catch_up_limit_reached",
                    rule_id=str(rule.id),
                    max_periods=self._max_catch_up_periods,
                )

        logger.info(
            "scheduler_pass_completed",
            run_date=today.isoformat(),
            rules_checked=result.rules_checked,
            transactions_posted=result.transactions_posted,
            failures=len(result.failures),
            correlation_id=str(correlation_id),
        )
        if self._audit_logger:
            self._audit_logger.log(AuditEventBuilder.scheduler_pass_completed(
                run_date=today,
                transactions_posted=result.transactions_posted,
                failures=len(result.failures),
                correlation_id=correlation_id,
            ))
        return result

    # =========================================================================
    # INTERNALS
    # =========================================================================

    def _require_rule(self, rule_id: UUID) -> RecurringRule:
        rule = self._storage.get_rule(rule_id)
        if rule is None:
            raise NotFoundError("recurring_rule", rule_id)
        return rule

    def _validate_generated_description(self, description) -> list[ValidationIssue]:
        """The posted description carries a suffix and must still fit."""
        if not isinstance(description, str):
            return []
        limit = self._max_description_length - len(self._description_suffix)
        if len(description.strip()) > limit:
            return [ValidationIssue(
                field="description",
                code="MAX_LENGTH",
                message=f"Recurring description must be {limit} characters or less",
            )]
        return []

    def _set_status(
        self,
        rule_id: UUID,
        status: RecurringStatus,
        event_type: AuditEventType,
        correlation_id: Optional[UUID],
    ) -> RecurringRule:
        with self._locks.hold(RULE_LOCK, rule_id):
            rule = self._require_rule(rule_id)
            if rule.status == status:
                return rule
            updated = rule.model_copy(update={"status": status, "updated_at": utc_now()})
            self._storage.save_rule(updated)
        self._log_rule_change(event_type, updated, None, correlation_id)
        return updated

    def _failure(self, rule_id: UUID, today: date, error: Exception) -> RuleFailure:
        """Describe a failed rule, dated at the period that stayed due."""
        rule = self._storage.get_rule(rule_id)
        occurrence = next_occurrence(rule, rule.schedule_cursor) if rule else today
        logger.warning(
            "recurring_rule_failed",
            rule_id=str(rule_id),
            occurrence_date=occurrence.isoformat(),
            error_type=type(error).__name__,
            error=str(error),
        )
        return RuleFailure(
            rule_id=rule_id,
            occurrence_date=occurrence,
            error_type=getattr(error, "code", type(error).__name__),
            message=str(error),
        )

    def _log_failure(
        self,
        rule_id: UUID,
        occurrence: date,
        error: Exception,
        correlation_id: Optional[UUID],
    ) -> None:
        if self._audit_logger:
            self._audit_logger.log_recurring_failed(
                rule_id=rule_id,
                occurrence_date=occurrence,
                error=error,
                correlation_id=correlation_id,
            )

    def _log_rule_change(
        self,
        event_type: AuditEventType,
        rule: RecurringRule,
        details: Optional[dict],
        correlation_id: Optional[UUID],
    ) -> None:
        if self._audit_logger:
            self._audit_logger.log(AuditEventBuilder.recurring_changed(
                event_type=event_type,
                rule_id=rule.id,
                description=rule.description,
                details=details,
                correlation_id=correlation_id,
            ))
