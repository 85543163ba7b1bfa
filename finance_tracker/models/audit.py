"""
Audit Models for Finance Tracker

Every command that changes ledger state is logged for audit purposes.
This provides:
1. Complete traceability of balances back to postings
2. Debugging information when a posting or recurring run fails
3. The ability to reconstruct history

DESIGN DECISION: Audit logs are append-only. We never delete or modify them.
"""

from datetime import date, datetime
from enum import Enum
from typing import Any, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field

from finance_tracker.models.base import utc_now


class AuditEventType(str, Enum):
    """
    Types of events we audit.

    Every ledger command has its own event type.
    """
    # Accounts
    ACCOUNT_CREATED = "account_created"
    ACCOUNT_UPDATED = "account_updated"
    ACCOUNT_ARCHIVED = "account_archived"
    ACCOUNT_RESTORED = "account_restored"
    ACCOUNT_DELETED = "account_deleted"

    # Transactions
    TRANSACTION_POSTED = "transaction_posted"
    TRANSACTION_REJECTED = "transaction_rejected"
    TRANSACTION_DELETED = "transaction_deleted"

    # Recurring rules
    RECURRING_CREATED = "recurring_created"
    RECURRING_UPDATED = "recurring_updated"
    RECURRING_PAUSED = "recurring_paused"
    RECURRING_RESUMED = "recurring_resumed"
    RECURRING_DELETED = "recurring_deleted"
    RECURRING_PROCESSED = "recurring_processed"
    RECURRING_PROCESSING_FAILED = "recurring_processing_failed"
    SCHEDULER_PASS_COMPLETED = "scheduler_pass_completed"

    # Reporting
    SNAPSHOT_RECORDED = "snapshot_recorded"

    # Data management
    DATA_EXPORTED = "data_exported"
    DATA_IMPORTED = "data_imported"

    # System events
    SYSTEM_ERROR = "system_error"


class AuditSeverity(str, Enum):
    """Severity level for audit events."""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class AuditEvent(BaseModel):
    """
    A single audit event.

    This is the core unit of our audit trail.
    Every ledger command creates one of these.
    """

    # Identity
    event_id: UUID = Field(
        default_factory=uuid4,
        description="Unique event identifier"
    )
    timestamp: datetime = Field(
        default_factory=utc_now,
        description="When the event occurred (UTC)"
    )

    # Event classification
    event_type: AuditEventType = Field(
        ...,
        description="Type of event"
    )
    severity: AuditSeverity = Field(
        default=AuditSeverity.INFO,
        description="Event severity"
    )

    # Context - what entity is this about?
    entity_type: Optional[str] = Field(
        default=None,
        description="Type of entity (e.g., 'account', 'transaction', 'recurring_rule')"
    )
    entity_id: Optional[UUID] = Field(
        default=None,
        description="ID of the entity this event relates to"
    )

    # Correlation - for tracking related events
    correlation_id: Optional[UUID] = Field(
        default=None,
        description="ID to correlate related events (e.g., all postings of one scheduler pass)"
    )

    description: str = Field(
        ...,
        max_length=500,
        description="Human-readable description of what happened"
    )

    details: dict[str, Any] = Field(
        default_factory=dict,
        description="Additional event-specific data"
    )

    # Error information (if applicable)
    error_code: Optional[str] = None
    error_message: Optional[str] = None

    def to_log_dict(self) -> dict:
        """
        Convert to a dictionary suitable for structured logging.
        """
        return {
            "event_id": str(self.event_id),
            "timestamp": self.timestamp.isoformat(),
            "event_type": self.event_type.value,
            "severity": self.severity.value,
            "entity_type": self.entity_type,
            "entity_id": str(self.entity_id) if self.entity_id else None,
            "correlation_id": str(self.correlation_id) if self.correlation_id else None,
            "description": self.description,
            "details": self.details,
            "error_code": self.error_code,
            "error_message": self.error_message,
        }


class AuditEventBuilder:
    """
    Helper class to build audit events with common patterns.

    Usage:
        event = AuditEventBuilder.account_created(account_id, name, "asset", 0)
        event = AuditEventBuilder.transaction_posted(txn_id, ..., correlation_id)
    """

    @staticmethod
    def account_created(
        account_id: UUID,
        name: str,
        account_type: str,
        initial_balance: int,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.ACCOUNT_CREATED,
            entity_type="account",
            entity_id=account_id,
            correlation_id=correlation_id,
            description=f"Account created: {name} ({account_type})",
            details={
                "name": name,
                "account_type": account_type,
                "initial_balance": initial_balance,
            },
        )

    @staticmethod
    def account_changed(
        event_type: AuditEventType,
        account_id: UUID,
        name: str,
        changes: Optional[dict[str, Any]] = None,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        """Updated / archived / restored / deleted."""
        action = event_type.value.removeprefix("account_")
        return AuditEvent(
            event_type=event_type,
            entity_type="account",
            entity_id=account_id,
            correlation_id=correlation_id,
            description=f"Account {action}: {name}",
            details=changes or {},
        )

    @staticmethod
    def transaction_posted(
        transaction_id: UUID,
        from_account_id: UUID,
        to_account_id: UUID,
        amount: int,
        classification: str,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.TRANSACTION_POSTED,
            entity_type="transaction",
            entity_id=transaction_id,
            correlation_id=correlation_id,
            description=f"Transaction posted: {amount} cents ({classification})",
            details={
                "from_account_id": str(from_account_id),
                "to_account_id": str(to_account_id),
                "amount": amount,
                "classification": classification,
            },
        )

    @staticmethod
    def transaction_rejected(
        from_account_id: UUID,
        to_account_id: UUID,
        amount: Any,
        error_code: str,
        error_message: str,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.TRANSACTION_REJECTED,
            severity=AuditSeverity.WARNING,
            entity_type="transaction",
            correlation_id=correlation_id,
            description="Transaction rejected",
            details={
                "from_account_id": str(from_account_id),
                "to_account_id": str(to_account_id),
                "amount": repr(amount),
            },
            error_code=error_code,
            error_message=error_message,
        )

    @staticmethod
    def transaction_deleted(
        transaction_id: UUID,
        amount: int,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.TRANSACTION_DELETED,
            entity_type="transaction",
            entity_id=transaction_id,
            correlation_id=correlation_id,
            description=f"Transaction deleted and reversed: {amount} cents",
            details={"amount": amount},
        )

    @staticmethod
    def recurring_changed(
        event_type: AuditEventType,
        rule_id: UUID,
        description: str,
        details: Optional[dict[str, Any]] = None,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        """Created / updated / paused / resumed / deleted."""
        action = event_type.value.removeprefix("recurring_")
        return AuditEvent(
            event_type=event_type,
            entity_type="recurring_rule",
            entity_id=rule_id,
            correlation_id=correlation_id,
            description=f"Recurring rule {action}: {description}",
            details=details or {},
        )

    @staticmethod
    def recurring_processed(
        rule_id: UUID,
        transaction_id: UUID,
        occurrence_date: date,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.RECURRING_PROCESSED,
            entity_type="recurring_rule",
            entity_id=rule_id,
            correlation_id=correlation_id,
            description=f"Recurring rule processed for {occurrence_date.isoformat()}",
            details={
                "transaction_id": str(transaction_id),
                "occurrence_date": occurrence_date.isoformat(),
            },
        )

    @staticmethod
    def recurring_failed(
        rule_id: UUID,
        occurrence_date: date,
        error_type: str,
        error_message: str,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.RECURRING_PROCESSING_FAILED,
            severity=AuditSeverity.WARNING,
            entity_type="recurring_rule",
            entity_id=rule_id,
            correlation_id=correlation_id,
            description=f"Recurring rule failed for {occurrence_date.isoformat()}; will retry",
            details={"occurrence_date": occurrence_date.isoformat()},
            error_code=error_type,
            error_message=error_message,
        )

    @staticmethod
    def scheduler_pass_completed(
        run_date: date,
        transactions_posted: int,
        failures: int,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SCHEDULER_PASS_COMPLETED,
            severity=AuditSeverity.WARNING if failures else AuditSeverity.INFO,
            correlation_id=correlation_id,
            description=(
                f"Scheduler pass for {run_date.isoformat()}: "
                f"{transactions_posted} posted, {failures} failed"
            ),
            details={
                "run_date": run_date.isoformat(),
                "transactions_posted": transactions_posted,
                "failures": failures,
            },
        )

    @staticmethod
    def snapshot_recorded(
        snapshot_id: UUID,
        snapshot_date: date,
        net_worth: int,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SNAPSHOT_RECORDED,
            entity_type="net_worth_snapshot",
            entity_id=snapshot_id,
            correlation_id=correlation_id,
            description=f"Net worth snapshot recorded for {snapshot_date.isoformat()}",
            details={"net_worth": net_worth},
        )

    @staticmethod
    def data_transferred(
        event_type: AuditEventType,
        counts: dict[str, int],
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        """Exported / imported."""
        action = event_type.value.removeprefix("data_")
        return AuditEvent(
            event_type=event_type,
            correlation_id=correlation_id,
            description=f"Ledger data {action}",
            details=counts,
        )

    @staticmethod
    def system_error(
        error_type: str,
        error_message: str,
        details: Optional[dict] = None,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SYSTEM_ERROR,
            severity=AuditSeverity.ERROR,
            description=f"System error: {error_type}",
            error_message=error_message,
            details=details or {},
            correlation_id=correlation_id,
        )
