"""
Typed exceptions for ledger operations.

Every exception carries an ErrorCode so callers can branch on type or code
instead of parsing message text. All of them are recoverable, user-facing
outcomes.
"""

from decimal import Decimal
from typing import Optional

from pocketledger.models.ledger import CategoryKind, ErrorCode


class LedgerError(Exception):
    """Base exception for ledger operations."""

    code: ErrorCode = ErrorCode.INVALID_AMOUNT

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class InvalidAmountError(LedgerError, ValueError):
    """Amount is not a positive, finite decimal."""

    code = ErrorCode.INVALID_AMOUNT


class InvalidCategoryError(LedgerError, ValueError):
    """Category name is missing or blank."""

    code = ErrorCode.INVALID_CATEGORY


class CategoryTypeConflictError(LedgerError):
    """Income written to an expense category, or the reverse."""

    code = ErrorCode.CATEGORY_TYPE_CONFLICT

    def __init__(self, category: str, existing_kind: CategoryKind, message: str):
        super().__init__(message)
        self.category = category
        self.existing_kind = existing_kind


class InsufficientFundsError(LedgerError):
    """Expense or transfer exceeds the balance."""

    code = ErrorCode.INSUFFICIENT_FUNDS

    def __init__(self, balance: Decimal, amount: Decimal):
        super().__init__("Insufficient funds.")
        self.balance = balance
        self.amount = amount


class SelfTransferError(LedgerError, ValueError):
    """Sender and recipient are the same user."""

    code = ErrorCode.SELF_TRANSFER

    def __init__(self, username: str):
        super().__init__("The recipient is the current user. You cannot transfer money to yourself.")
        self.username = username


class RecipientNotFoundError(LedgerError):
    """Transfer recipient is not registered."""

    code = ErrorCode.RECIPIENT_NOT_FOUND

    def __init__(self, username: str):
        super().__init__("No recipient with that username was found.")
        self.username = username


class UserAlreadyExistsError(LedgerError):
    """Username is already registered."""

    code = ErrorCode.USER_ALREADY_EXISTS

    def __init__(self, username: str):
        super().__init__("A user with this name already exists.")
        self.username = username


class AuthenticationFailedError(LedgerError):
    """
    Wrong username or password.

    The message is identical for both cases.
    """

    code = ErrorCode.AUTHENTICATION_FAILED

    def __init__(self, username: Optional[str] = None):
        super().__init__("Invalid username or password.")
        self.username = username
