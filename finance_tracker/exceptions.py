"""
Ledger Exceptions

Every failure inside the ledger core is reported synchronously with one of
three error kinds:

- ValidationError: malformed or out-of-range input
- NotFoundError: a referenced account or rule does not exist
- InvalidStateError: the operation conflicts with the current state

None of them is retried inside the core. A failed command leaves prior
state unchanged, so the caller can safely retry.
"""

from typing import Optional
from uuid import UUID

from finance_tracker.models.validation import ValidationIssue


class LedgerError(Exception):
    """Base exception for all ledger core errors."""
    pass


class ValidationError(LedgerError):
    """
    Input failed validation.

    Carries the full list of issues found, not just the first one.
    """

    def __init__(self, issues: list[ValidationIssue]):
        if not issues:
            raise ValueError("ValidationError requires at least one issue")
        self.issues = list(issues)
        super().__init__("; ".join(issue.message for issue in self.issues))

    @property
    def field(self) -> str:
        """Field of the first issue."""
        return self.issues[0].field

    @property
    def code(self) -> str:
        """Code of the first issue."""
        return self.issues[0].code

    @classmethod
    def single(cls, field: str, code: str, message: str) -> "ValidationError":
        return cls([ValidationIssue(field=field, code=code, message=message)])


class NotFoundError(LedgerError):
    """Referenced entity does not exist."""

    def __init__(
        self,
        entity_type: str,
        entity_id: Optional[UUID],
        message: Optional[str] = None,
    ):
        self.entity_type = entity_type
        self.entity_id = entity_id
        super().__init__(message or f"{entity_type.capitalize()} {entity_id} not found")


class InvalidStateError(LedgerError):
    """Operation is incompatible with the entity's current state."""

    def __init__(self, code: str, message: str):
        self.code = code
        super().__init__(message)
