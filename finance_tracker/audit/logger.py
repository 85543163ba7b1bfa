"""
Audit Logger

DESIGN DECISION: Every ledger command is logged.
This provides:
1. Complete traceability of balances back to postings
2. Debugging capability when recurring runs fail
3. History the user can review

The audit logger:
- Gracefully handles storage failures (never breaks a posting)
- Supports correlation IDs to trace related events
"""

import logging
from datetime import date
from typing import Optional
from uuid import UUID, uuid4

import structlog

from finance_tracker.config import get_settings
from finance_tracker.models.audit import AuditEvent, AuditEventBuilder, AuditSeverity
from finance_tracker.services.storage import AuditStorageInterface


def configure_logging(level: Optional[str] = None, json_output: Optional[bool] = None) -> None:
    """
    Configure structlog for local logging.

    Defaults come from AppSettings (log_level, log_json).
    """
    app_settings = get_settings().app
    level = level or app_settings.log_level
    json_output = app_settings.log_json if json_output is None else json_output

    logging.basicConfig(format="%(message)s", level=getattr(logging, level))

    renderer = (
        structlog.processors.JSONRenderer()
        if json_output
        else structlog.dev.ConsoleRenderer()
    )
    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            renderer,
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


configure_logging()


class AuditLogger:
    """
    Central audit logging service.

    Logs events both to:
    1. Structured local log (for debugging)
    2. Audit storage (for persistence and user visibility)
    """

    def __init__(
        self,
        storage: Optional[AuditStorageInterface] = None,
    ):
        """
        Initialize audit logger.

        Args:
            storage: Storage backend for persistence.
                    If None, only logs locally.
        """
        self._storage = storage
        self._logger = structlog.get_logger("finance_tracker.audit")

    @property
    def storage(self) -> Optional[AuditStorageInterface]:
        return self._storage

    def log(self, event: AuditEvent) -> bool:
        """
        Log an audit event.

        Always logs locally. Persists to storage if available.

        Returns True if storage write succeeded (or no storage configured).
        """
        log_dict = event.to_log_dict()

        if event.severity in (AuditSeverity.ERROR, AuditSeverity.CRITICAL):
            self._logger.error("audit_event", **log_dict)
        elif event.severity == AuditSeverity.WARNING:
            self._logger.warning("audit_event", **log_dict)
        elif event.severity == AuditSeverity.DEBUG:
            self._logger.debug("audit_event", **log_dict)
        else:
            self._logger.info("audit_event", **log_dict)

        if self._storage:
            try:
                return self._storage.append_event(event)
            except Exception as e:
                # Log failure but don't raise
                self._logger.error(
                    "audit_storage_failed",
                    error=str(e),
                    event_id=str(event.event_id),
                )
                return False

        return True

    def log_account_created(
        self,
        account_id: UUID,
        name: str,
        account_type: str,
        initial_balance: int,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log account creation."""
        self.log(AuditEventBuilder.account_created(
            account_id=account_id,
            name=name,
            account_type=account_type,
            initial_balance=initial_balance,
            correlation_id=correlation_id,
        ))

    def log_transaction_posted(
        self,
        transaction_id: UUID,
        from_account_id: UUID,
        to_account_id: UUID,
        amount: int,
        classification: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log a successful posting."""
        self.log(AuditEventBuilder.transaction_posted(
            transaction_id=transaction_id,
            from_account_id=from_account_id,
            to_account_id=to_account_id,
            amount=amount,
            classification=classification,
            correlation_id=correlation_id,
        ))

    def log_transaction_rejected(
        self,
        from_account_id: UUID,
        to_account_id: UUID,
        amount: object,
        error: Exception,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log a posting that was refused."""
        self.log(AuditEventBuilder.transaction_rejected(
            from_account_id=from_account_id,
            to_account_id=to_account_id,
            amount=amount,
            error_code=getattr(error, "code", type(error).__name__),
            error_message=str(error),
            correlation_id=correlation_id,
        ))

    def log_recurring_processed(
        self,
        rule_id: UUID,
        transaction_id: UUID,
        occurrence_date: date,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log a recurring rule producing its transaction."""
        self.log(AuditEventBuilder.recurring_processed(
            rule_id=rule_id,
            transaction_id=transaction_id,
            occurrence_date=occurrence_date,
            correlation_id=correlation_id,
        ))

    def log_recurring_failed(
        self,
        rule_id: UUID,
        occurrence_date: date,
        error: Exception,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log a recurring rule that could not post (it stays due)."""
        self.log(AuditEventBuilder.recurring_failed(
            rule_id=rule_id,
            occurrence_date=occurrence_date,
            error_type=type(error).__name__,
            error_message=str(error),
            correlation_id=correlation_id,
        ))

    def log_error(
        self,
        error_type: str,
        error_message: str,
        details: Optional[dict] = None,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log an error."""
        self.log(AuditEventBuilder.system_error(
            error_type=error_type,
            error_message=error_message,
            details=details,
            correlation_id=correlation_id,
        ))


def create_correlation_id() -> UUID:
    """
    Create a new correlation ID for tracking related events.

    Use this at the start of a user action or scheduler pass.
    Pass it through all subsequent operations.
    """
    return uuid4()
