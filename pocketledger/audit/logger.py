"""
Audit Logger

DESIGN DECISION: Every significant action in the system is logged.
This provides:
1. Complete traceability of money movement
2. Debugging capability
3. A history of declined operations, not only successful ones

The audit logger:
- Is synchronous - ledger operations are synchronous and short
- Gracefully handles failures (doesn't crash the app if logging fails)
- Supports correlation IDs to trace related events
"""

import logging
from decimal import Decimal
from typing import Optional
from uuid import UUID, uuid4

import structlog

from pocketledger.models.audit import AuditEvent, AuditEventBuilder
from pocketledger.models.ledger import ErrorCode, LedgerRecord
from pocketledger.services.storage import AuditStorageInterface


# Configure structlog for local logging
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
        structlog.processors.JSONRenderer()
    ],
    wrapper_class=structlog.stdlib.BoundLogger,
    context_class=dict,
    logger_factory=structlog.stdlib.LoggerFactory(),
    cache_logger_on_first_use=True,
)


def configure_logging(level: str = "INFO") -> None:
    """Route stdlib logging (and so structlog) to stderr at the given level."""
    numeric_level = getattr(logging, level.upper(), logging.INFO)
    logging.basicConfig(format="%(message)s", level=numeric_level)
    logging.getLogger().setLevel(numeric_level)


class AuditLogger:
    """
    Central audit logging service.

    Logs events both to:
    1. Structured local log (for debugging)
    2. Audit storage (for persistence), when configured
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
        self._logger = structlog.get_logger("pocketledger.audit")

    def log(self, event: AuditEvent) -> bool:
        """
        Log an audit event.

        Always logs locally. Persists to storage if available.

        Returns True if storage write succeeded (or no storage configured).
        """
        log_dict = event.to_log_dict()

        if event.severity.value in ("error", "critical"):
            self._logger.error("audit_event", **log_dict)
        elif event.severity.value == "warning":
            self._logger.warning("audit_event", **log_dict)
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

    def log_user_registered(
        self,
        username: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        self.log(AuditEventBuilder.user_registered(username, correlation_id))

    def log_registration_declined(
        self,
        username: str,
        code: ErrorCode,
        reason: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        self.log(AuditEventBuilder.registration_declined(username, code, reason, correlation_id))

    def log_login(
        self,
        username: str,
        succeeded: bool,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        if succeeded:
            self.log(AuditEventBuilder.login_succeeded(username, correlation_id))
        else:
            self.log(AuditEventBuilder.login_failed(username, correlation_id))

    def log_income(
        self,
        username: str,
        record: LedgerRecord,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        self.log(AuditEventBuilder.income_recorded(username, record, correlation_id))

    def log_expense(
        self,
        username: str,
        record: LedgerRecord,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        self.log(AuditEventBuilder.expense_recorded(username, record, correlation_id))

    def log_budget_set(
        self,
        username: str,
        category: str,
        limit: Decimal,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        self.log(AuditEventBuilder.budget_set(username, category, limit, correlation_id))

    def log_budget_exceeded(
        self,
        username: str,
        category: str,
        amount: Decimal,
        remaining_before: Decimal,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        self.log(
            AuditEventBuilder.budget_exceeded(
                username, category, amount, remaining_before, correlation_id
            )
        )

    def log_operation_rejected(
        self,
        username: str,
        operation: str,
        code: ErrorCode,
        reason: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        self.log(
            AuditEventBuilder.operation_rejected(
                username, operation, code, reason, correlation_id
            )
        )

    def log_transfer_completed(
        self,
        sender: str,
        recipient: str,
        amount: Decimal,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        self.log(AuditEventBuilder.transfer_completed(sender, recipient, amount, correlation_id))

    def log_transfer_declined(
        self,
        sender: str,
        recipient: str,
        amount: Decimal,
        code: ErrorCode,
        reason: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        self.log(
            AuditEventBuilder.transfer_declined(
                sender, recipient, amount, code, reason, correlation_id
            )
        )

    def log_registry_loaded(self, user_count: int, source: str) -> None:
        self.log(AuditEventBuilder.registry_loaded(user_count, source))

    def log_registry_load_failed(self, source: str, error_message: str) -> None:
        self.log(AuditEventBuilder.registry_load_failed(source, error_message))

    def log_registry_saved(self, user_count: int, target: str) -> None:
        self.log(AuditEventBuilder.registry_saved(user_count, target))

    def log_save_failed(self, target: str, error_message: str) -> None:
        self.log(AuditEventBuilder.save_failed(target, error_message))


def create_correlation_id() -> UUID:
    """
    Create a new correlation ID for tracking related events.

    Use this at the start of a new user action (e.g., one command).
    Pass it through all subsequent operations.
    """
    return uuid4()
