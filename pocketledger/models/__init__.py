"""
Data Models Package

This package contains all Pydantic models used in pocketledger.
All data flowing through the system must conform to these schemas.
"""

from pocketledger.models.ledger import (
    CategoryKind,
    Direction,
    ErrorCode,
    ExpenseResult,
    LedgerRecord,
    OperationResult,
    RegistrySnapshot,
    TransferResult,
    UserSnapshot,
    WalletSnapshot,
)
from pocketledger.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)

__all__ = [
    # Ledger models
    "CategoryKind",
    "Direction",
    "ErrorCode",
    "ExpenseResult",
    "LedgerRecord",
    "OperationResult",
    "RegistrySnapshot",
    "TransferResult",
    "UserSnapshot",
    "WalletSnapshot",
    # Audit models
    "AuditEvent",
    "AuditEventBuilder",
    "AuditEventType",
    "AuditSeverity",
]
