"""
Core Data Models for pocketledger

These models define the strict schemas for all data flowing through the system.
They are designed to:
1. Enforce type safety at runtime
2. Keep money in Decimal - never binary floating point
3. Be serializable for storage and logging
4. Support the audit trail

DESIGN DECISION: Ledger records are frozen. Once a record is appended to a
wallet it is a fact; nothing downstream may edit it.
"""

from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import Optional

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    model_validator,
)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


# =============================================================================
# ENUMS - Finite set of valid values
# =============================================================================

class Direction(str, Enum):
    """Which way money moved for a ledger record."""
    INCOME = "income"
    EXPENSE = "expense"


class CategoryKind(str, Enum):
    """
    Permanent type of a category.

    CRITICAL: A category gets its kind on first use and keeps it.
    An unseen category has no kind at all (absent from the index).
    """
    INCOME = "income"
    EXPENSE = "expense"


class ErrorCode(str, Enum):
    """Machine-readable reasons for declined or rejected operations."""
    INVALID_AMOUNT = "invalid_amount"
    INVALID_CATEGORY = "invalid_category"
    CATEGORY_TYPE_CONFLICT = "category_type_conflict"
    INSUFFICIENT_FUNDS = "insufficient_funds"
    SELF_TRANSFER = "self_transfer"
    RECIPIENT_NOT_FOUND = "recipient_not_found"
    USER_ALREADY_EXISTS = "user_already_exists"
    INVALID_CREDENTIALS = "invalid_credentials"
    AUTHENTICATION_FAILED = "authentication_failed"


# =============================================================================
# CORE LEDGER MODEL
# =============================================================================

class LedgerRecord(BaseModel):
    """
    A single income or expense fact.

    Owned by exactly one wallet. The wallet validates amount and category
    before constructing one, so the constraints here are a second line.
    """
    model_config = ConfigDict(frozen=True)

    amount: Decimal = Field(
        ...,
        gt=0,
        description="Amount moved, always positive"
    )
    timestamp: datetime = Field(
        default_factory=utc_now,
        description="When the record was created (UTC)"
    )
    direction: Direction = Field(
        ...,
        description="Income or expense"
    )
    category: str = Field(
        ...,
        min_length=1,
        description="Category name (case-sensitive)"
    )


# =============================================================================
# OPERATION RESULTS
# =============================================================================

class ExpenseResult(BaseModel):
    """
    Outcome of a successful expense.

    budget_exceeded is advisory only - the expense has already been recorded.
    """
    model_config = ConfigDict(frozen=True)

    record: LedgerRecord
    budget_exceeded: bool = Field(
        default=False,
        description="Did the amount exceed what was left of the category budget?"
    )
    remaining_before: Decimal = Field(
        ...,
        description="Category budget remaining before this expense"
    )
    remaining_after: Decimal = Field(
        ...,
        description="Category budget remaining after this expense (may be negative)"
    )


class OperationResult(BaseModel):
    """
    Success or a declined business outcome.

    Declines (unknown recipient, taken username, ...) are results,
    not exceptions.
    """

    success: bool
    code: Optional[ErrorCode] = None
    message: str = ""

    @model_validator(mode='after')
    def validate_code(self) -> 'OperationResult':
        """A declined result must say why."""
        if not self.success and self.code is None:
            raise ValueError("Declined result requires an error code")
        return self

    @classmethod
    def ok(cls, message: str = "") -> 'OperationResult':
        return cls(success=True, message=message)

    @classmethod
    def declined(cls, code: ErrorCode, message: str) -> 'OperationResult':
        return cls(success=False, code=code, message=message)


class TransferResult(OperationResult):
    """Outcome of a transfer. On success carries both halves."""

    debit: Optional[LedgerRecord] = Field(
        default=None,
        description="Expense record appended to the sender's wallet"
    )
    credit: Optional[LedgerRecord] = Field(
        default=None,
        description="Income record appended to the recipient's wallet"
    )
    budget_exceeded: bool = Field(
        default=False,
        description="The sender's transfer category went over its budget"
    )


# =============================================================================
# PERSISTENCE SNAPSHOTS
# =============================================================================

class WalletSnapshot(BaseModel):
    """Serializable state of one wallet."""

    balance: Decimal = Decimal("0")
    records: list[LedgerRecord] = Field(default_factory=list)
    budgets: dict[str, Decimal] = Field(default_factory=dict)


class UserSnapshot(BaseModel):
    """Serializable state of one user."""

    username: str = Field(..., min_length=1)
    password_hash: str = Field(..., min_length=1)
    wallet: WalletSnapshot = Field(default_factory=WalletSnapshot)


class RegistrySnapshot(BaseModel):
    """
    Everything persisted between runs.

    Usernames must be unique; a snapshot with duplicates is corrupt.
    """

    version: int = Field(default=1, ge=1)
    saved_at: datetime = Field(default_factory=utc_now)
    users: list[UserSnapshot] = Field(default_factory=list)

    @model_validator(mode='after')
    def validate_unique_usernames(self) -> 'RegistrySnapshot':
        names = [user.username for user in self.users]
        if len(names) != len(set(names)):
            raise ValueError("Duplicate usernames in registry snapshot")
        return self
