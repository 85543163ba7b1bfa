"""
Ledger Input Validation

DESIGN DECISION: Validation happens in two distinct stages:

STAGE 1 - FIELD VALIDATION (this module):
- Type checking (amounts must be integer cents)
- Required field presence
- Length limits from LedgerSettings
- Same-account transfers

STAGE 2 - REFERENCE VALIDATION (Ledger / RecurrenceScheduler):
- Referenced accounts exist (NotFoundError)
- Referenced accounts are active (InvalidStateError)
- Parent accounts share the child's type, no cycles

WHY TWO STAGES:
1. Field checks need no storage and can report every problem at once
2. Reference checks must run under the entity locks

IMPORTANT: Validation NEVER silently fixes issues.
It reports them so the caller can correct the input.
"""

from typing import Any, Optional
from uuid import UUID

from pydantic import ValidationError as PydanticValidationError

from finance_tracker.config import get_settings
from finance_tracker.exceptions import ValidationError
from finance_tracker.models.account import AccountType
from finance_tracker.models.recurring import RecurrenceFrequency
from finance_tracker.models.validation import ValidationIssue
from finance_tracker.money import Money


class LedgerValidator:
    """Field-level validation of ledger commands."""

    def __init__(self, max_name_length: Optional[int] = None, max_description_length: Optional[int] = None):
        settings = get_settings().ledger
        self._max_name_length = max_name_length or settings.max_name_length
        self._max_description_length = max_description_length or settings.max_description_length

    @staticmethod
    def ensure_valid(issues: list[ValidationIssue]) -> None:
        """Raise ValidationError carrying every issue, if there are any."""
        if issues:
            raise ValidationError(issues)

    @staticmethod
    def from_model_error(error: PydanticValidationError) -> ValidationError:
        """Translate a pydantic model error into the ledger's ValidationError."""
        return ValidationError([
            ValidationIssue(
                field=".".join(str(part) for part in detail["loc"]) or "model",
                code=detail["type"].upper(),
                message=detail["msg"],
            )
            for detail in error.errors()
        ])

    def validate_name(self, name: Any) -> list[ValidationIssue]:
        if not isinstance(name, str) or not name.strip():
            return [ValidationIssue(
                field="name",
                code="REQUIRED_FIELD",
                message="Name is required",
            )]
        if len(name.strip()) > self._max_name_length:
            return [ValidationIssue(
                field="name",
                code="MAX_LENGTH",
                message=f"Name must be {self._max_name_length} characters or less",
            )]
        return []

    def validate_description(self, description: Any) -> list[ValidationIssue]:
        if not isinstance(description, str) or not description.strip():
            return [ValidationIssue(
                field="description",
                code="REQUIRED_FIELD",
                message="Description is required",
            )]
        if len(description.strip()) > self._max_description_length:
            return [ValidationIssue(
                field="description",
                code="MAX_LENGTH",
                message=f"Description must be {self._max_description_length} characters or less",
            )]
        return []

    def validate_positive_amount(self, amount: Any) -> list[ValidationIssue]:
        if not Money.is_valid_transaction_amount(amount):
            return [ValidationIssue(
                field="amount",
                code="INVALID_AMOUNT",
                message="Amount must be a positive integer in cents",
            )]
        return []

    def validate_distinct_accounts(self, from_account_id: UUID, to_account_id: UUID) -> list[ValidationIssue]:
        if from_account_id == to_account_id:
            return [ValidationIssue(
                field="to_account_id",
                code="SAME_ACCOUNT",
                message="From and To accounts must be different",
            )]
        return []

    def validate_new_account(
        self,
        name: Any,
        account_type: Any,
        initial_balance: Any,
    ) -> list[ValidationIssue]:
        """
        Validate account creation input.

        Income/expense balances are derived from transactions, so they can
        only start at zero.
        """
        issues = self.validate_name(name)

        resolved_type = None
        try:
            resolved_type = AccountType(account_type)
        except ValueError:
            issues.append(ValidationIssue(
                field="type",
                code="INVALID_TYPE",
                message=f"Type must be one of: {', '.join(t.value for t in AccountType)}",
            ))

        if not Money.is_valid_amount(initial_balance):
            issues.append(ValidationIssue(
                field="balance",
                code="INVALID_AMOUNT",
                message="Balance must be a valid integer amount in cents",
            ))
        elif resolved_type is not None and not resolved_type.has_stored_balance and initial_balance != 0:
            issues.append(ValidationIssue(
                field="balance",
                code="DERIVED_BALANCE",
                message=f"{resolved_type.value.capitalize()} accounts start at zero; "
                        "their balance is derived from transactions",
            ))

        return issues

    def validate_transaction(
        self,
        from_account_id: UUID,
        to_account_id: UUID,
        amount: Any,
        description: Any,
    ) -> list[ValidationIssue]:
        issues = self.validate_distinct_accounts(from_account_id, to_account_id)
        issues.extend(self.validate_positive_amount(amount))
        issues.extend(self.validate_description(description))
        return issues

    def validate_recurring(
        self,
        from_account_id: UUID,
        to_account_id: UUID,
        amount: Any,
        description: Any,
        frequency: Any,
    ) -> list[ValidationIssue]:
        issues = self.validate_transaction(from_account_id, to_account_id, amount, description)
        issues.extend(self.validate_frequency(frequency))
        return issues

    def validate_frequency(self, frequency: Any) -> list[ValidationIssue]:
        try:
            RecurrenceFrequency(frequency)
        except ValueError:
            return [ValidationIssue(
                field="frequency",
                code="INVALID_FREQUENCY",
                message=f"Frequency must be one of: {', '.join(f.value for f in RecurrenceFrequency)}",
            )]
        return []
