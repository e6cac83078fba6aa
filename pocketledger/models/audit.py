"""
Audit Models for pocketledger

Every significant action in the system is logged for audit purposes.
This provides:
1. Complete traceability of all money movement
2. Debugging information when things go wrong
3. A record of declined operations, not just successful ones

DESIGN DECISION: Audit logs are append-only. We never delete or modify them.
"""

from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Any, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field

from pocketledger.models.ledger import ErrorCode, LedgerRecord, utc_now


class AuditEventType(str, Enum):
    """
    Types of events we audit.
    """
    # Accounts
    USER_REGISTERED = "user_registered"
    REGISTRATION_DECLINED = "registration_declined"
    LOGIN_SUCCEEDED = "login_succeeded"
    LOGIN_FAILED = "login_failed"

    # Wallet
    INCOME_RECORDED = "income_recorded"
    EXPENSE_RECORDED = "expense_recorded"
    BUDGET_SET = "budget_set"
    BUDGET_EXCEEDED = "budget_exceeded"
    OPERATION_REJECTED = "operation_rejected"

    # Transfers
    TRANSFER_COMPLETED = "transfer_completed"
    TRANSFER_DECLINED = "transfer_declined"

    # Persistence
    REGISTRY_LOADED = "registry_loaded"
    REGISTRY_LOAD_FAILED = "registry_load_failed"
    REGISTRY_SAVED = "registry_saved"
    SAVE_FAILED = "save_failed"


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
    Every significant action creates one of these.
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

    # Context - whose wallet is this about?
    username: Optional[str] = Field(
        default=None,
        description="User the event relates to"
    )

    # Correlation - for tracking related events
    correlation_id: Optional[UUID] = Field(
        default=None,
        description="ID to correlate related events (e.g., one command)"
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

    is_user_action: bool = Field(
        default=False,
        description="Was this triggered by a user action?"
    )

    def to_log_dict(self) -> dict:
        """
        Convert to a dictionary suitable for structured logging.
        """
        return {
            "event_id": str(self.event_id),
            "timestamp": self.timestamp.isoformat(),
            "event_type": self.event_type.value,
            "severity": self.severity.value,
            "username": self.username,
            "correlation_id": str(self.correlation_id) if self.correlation_id else None,
            "description": self.description,
            "details": self.details,
            "error_code": self.error_code,
            "error_message": self.error_message,
            "is_user_action": self.is_user_action,
        }

    def to_json_line(self) -> str:
        """Serialize as one line of a JSON-lines audit file."""
        return self.model_dump_json()


def _record_details(record: LedgerRecord) -> dict:
    return {
        "amount": str(record.amount),
        "category": record.category,
        "direction": record.direction.value,
        "timestamp": record.timestamp.isoformat(),
    }


class AuditEventBuilder:
    """
    Helper class to build audit events with common patterns.

    Usage:
        event = AuditEventBuilder.income_recorded("alice", record, correlation_id)
        event = AuditEventBuilder.transfer_declined("alice", "bob", amount, code, msg)
    """

    @staticmethod
    def user_registered(
        username: str,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.USER_REGISTERED,
            username=username,
            correlation_id=correlation_id,
            description=f"User registered: {username}",
            is_user_action=True,
        )

    @staticmethod
    def registration_declined(
        username: str,
        code: ErrorCode,
        reason: str,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.REGISTRATION_DECLINED,
            severity=AuditSeverity.WARNING,
            username=username,
            correlation_id=correlation_id,
            description="Registration declined",
            error_code=code.value,
            error_message=reason,
            is_user_action=True,
        )

    @staticmethod
    def login_succeeded(
        username: str,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.LOGIN_SUCCEEDED,
            username=username,
            correlation_id=correlation_id,
            description=f"User logged in: {username}",
            is_user_action=True,
        )

    @staticmethod
    def login_failed(
        username: str,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        # Never record whether the username exists
        return AuditEvent(
            event_type=AuditEventType.LOGIN_FAILED,
            severity=AuditSeverity.WARNING,
            username=username,
            correlation_id=correlation_id,
            description="Login failed",
            error_code=ErrorCode.AUTHENTICATION_FAILED.value,
            is_user_action=True,
        )

    @staticmethod
    def income_recorded(
        username: str,
        record: LedgerRecord,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.INCOME_RECORDED,
            username=username,
            correlation_id=correlation_id,
            description=f"Income recorded: {record.category} +{record.amount}",
            details=_record_details(record),
            is_user_action=True,
        )

    @staticmethod
    def expense_recorded(
        username: str,
        record: LedgerRecord,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.EXPENSE_RECORDED,
            username=username,
            correlation_id=correlation_id,
            description=f"Expense recorded: {record.category} -{record.amount}",
            details=_record_details(record),
            is_user_action=True,
        )

    @staticmethod
    def budget_set(
        username: str,
        category: str,
        limit: Decimal,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.BUDGET_SET,
            username=username,
            correlation_id=correlation_id,
            description=f"Budget set: {category} = {limit}",
            details={
                "category": category,
                "limit": str(limit),
            },
            is_user_action=True,
        )

    @staticmethod
    def budget_exceeded(
        username: str,
        category: str,
        amount: Decimal,
        remaining_before: Decimal,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.BUDGET_EXCEEDED,
            severity=AuditSeverity.WARNING,
            username=username,
            correlation_id=correlation_id,
            description=f"Budget exceeded for category: {category}",
            details={
                "category": category,
                "amount": str(amount),
                "remaining_before": str(remaining_before),
            },
        )

    @staticmethod
    def operation_rejected(
        username: str,
        operation: str,
        code: ErrorCode,
        reason: str,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.OPERATION_REJECTED,
            severity=AuditSeverity.WARNING,
            username=username,
            correlation_id=correlation_id,
            description=f"{operation} rejected",
            details={"operation": operation},
            error_code=code.value,
            error_message=reason,
            is_user_action=True,
        )

    @staticmethod
    def transfer_completed(
        sender: str,
        recipient: str,
        amount: Decimal,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.TRANSFER_COMPLETED,
            username=sender,
            correlation_id=correlation_id,
            description=f"Transfer completed: {sender} -> {recipient} {amount}",
            details={
                "sender": sender,
                "recipient": recipient,
                "amount": str(amount),
            },
            is_user_action=True,
        )

    @staticmethod
    def transfer_declined(
        sender: str,
        recipient: str,
        amount: Decimal,
        code: ErrorCode,
        reason: str,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.TRANSFER_DECLINED,
            severity=AuditSeverity.WARNING,
            username=sender,
            correlation_id=correlation_id,
            description=f"Transfer declined: {sender} -> {recipient}",
            details={
                "sender": sender,
                "recipient": recipient,
                "amount": str(amount),
            },
            error_code=code.value,
            error_message=reason,
            is_user_action=True,
        )

    @staticmethod
    def registry_loaded(user_count: int, source: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.REGISTRY_LOADED,
            description=f"Registry loaded with {user_count} users",
            details={"user_count": user_count, "source": source},
        )

    @staticmethod
    def registry_load_failed(source: str, error_message: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.REGISTRY_LOAD_FAILED,
            severity=AuditSeverity.ERROR,
            description="Registry could not be loaded, starting empty",
            details={"source": source},
            error_message=error_message,
        )

    @staticmethod
    def registry_saved(user_count: int, target: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.REGISTRY_SAVED,
            description=f"Registry saved with {user_count} users",
            details={"user_count": user_count, "target": target},
        )

    @staticmethod
    def save_failed(target: str, error_message: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SAVE_FAILED,
            severity=AuditSeverity.ERROR,
            description="Registry save failed",
            details={"target": target},
            error_message=error_message,
        )
