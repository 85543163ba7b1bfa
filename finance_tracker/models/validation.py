"""
Validation Models

Validation never silently fixes input. Every problem found is reported as a
ValidationIssue so the caller can show all of them at once.
"""

from pydantic import BaseModel, Field


class ValidationIssue(BaseModel):
    """A single validation issue found."""

    field: str = Field(
        ...,
        description="Field with the issue"
    )
    code: str = Field(
        ...,
        description="Machine-readable issue code (e.g., 'REQUIRED_FIELD', 'MAX_LENGTH')"
    )
    message: str = Field(
        ...,
        description="Human-readable description of the issue"
    )
