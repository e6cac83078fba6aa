"""Ledger package: wallets and their errors."""

from pocketledger.ledger.errors import (
    AuthenticationFailedError,
    CategoryTypeConflictError,
    InsufficientFundsError,
    InvalidAmountError,
    InvalidCategoryError,
    LedgerError,
    RecipientNotFoundError,
    SelfTransferError,
    UserAlreadyExistsError,
)
from pocketledger.ledger.wallet import (
    LEDGER_CONTEXT,
    MAX_INTEGER_DIGITS,
    MAX_SCALE,
    Wallet,
    WalletView,
    add_exact,
    subtract_exact,
    to_amount,
    to_category,
)

__all__ = [
    # Errors
    "AuthenticationFailedError",
    "CategoryTypeConflictError",
    "InsufficientFundsError",
    "InvalidAmountError",
    "InvalidCategoryError",
    "LedgerError",
    "RecipientNotFoundError",
    "SelfTransferError",
    "UserAlreadyExistsError",
    # Wallet
    "LEDGER_CONTEXT",
    "MAX_INTEGER_DIGITS",
    "MAX_SCALE",
    "Wallet",
    "WalletView",
    "add_exact",
    "subtract_exact",
    "to_amount",
    "to_category",
]
