"""
Wallet - balance, records and budgets for one user.

DESIGN DECISION: Category typing is lazy and permanent.
There is no separate "create category" step. The first write decides:
- add_income        → the category becomes an INCOME category
- add_expense       → the category becomes an EXPENSE category (limit 0)
- set_budget        → the category becomes an EXPENSE category
After that, the other direction is refused forever.

The kind of each category is kept in an index updated on every write,
together with a per-category spent total, so no operation has to scan
the record history.

INVARIANTS (hold after every public call):
1. No category holds both INCOME and EXPENSE records
2. balance == sum(INCOME amounts) - sum(EXPENSE amounts)
3. Budget limits exist only for EXPENSE categories

Every operation validates fully before touching state. A rejected call
leaves the wallet exactly as it was.
"""

import threading
from decimal import Context, Decimal, DecimalException, Inexact, InvalidOperation, Overflow
from typing import Any, Optional

import structlog

from pocketledger.ledger.errors import (
    CategoryTypeConflictError,
    InsufficientFundsError,
    InvalidAmountError,
    InvalidCategoryError,
)
from pocketledger.models.ledger import (
    CategoryKind,
    Direction,
    ExpenseResult,
    LedgerRecord,
    WalletSnapshot,
)


logger = structlog.get_logger(__name__)

ZERO = Decimal("0")

# Bounds on a single amount. With them every total the wallet keeps fits
# LEDGER_CONTEXT without rounding.
MAX_INTEGER_DIGITS = 40
MAX_SCALE = 30

LEDGER_CONTEXT = Context(prec=100, traps=[InvalidOperation, Inexact, Overflow])


def add_exact(left: Decimal, right: Decimal) -> Decimal:
    """Add in LEDGER_CONTEXT. A sum that would be rounded is refused."""
    try:
        return LEDGER_CONTEXT.add(left, right)
    except (Inexact, Overflow):
        raise InvalidAmountError("The result cannot be represented exactly. Use a smaller amount.")


def subtract_exact(left: Decimal, right: Decimal) -> Decimal:
    """Subtract in LEDGER_CONTEXT. A difference that would be rounded is refused."""
    try:
        return LEDGER_CONTEXT.subtract(left, right)
    except (Inexact, Overflow):
        raise InvalidAmountError("The result cannot be represented exactly. Use a smaller amount.")


def to_amount(value: Any) -> Decimal:
    """
    Coerce user input to a positive, finite Decimal.

    Accepts Decimal, int and numeric strings. Floats are refused outright:
    money never passes through binary floating point.

    Raises:
        InvalidAmountError: for anything that isn't a positive number
    """
    if isinstance(value, bool) or isinstance(value, float):
        raise InvalidAmountError(
            "Amount must be a decimal number, not a float. Use a string such as \"150.00\"."
        )

    if isinstance(value, Decimal):
        amount = value
    elif isinstance(value, int):
        amount = Decimal(value)
    elif isinstance(value, str):
        try:
            amount = Decimal(value.strip())
        except DecimalException:
            raise InvalidAmountError(
                f"Invalid amount \"{value}\". Enter a number, for example: 150.00"
            )
    else:
        raise InvalidAmountError(f"Unsupported amount type: {type(value).__name__}")

    if not amount.is_finite() or amount <= 0:
        raise InvalidAmountError("Amount must be a positive number.")

    if amount.adjusted() >= MAX_INTEGER_DIGITS or -amount.as_tuple().exponent > MAX_SCALE:
        raise InvalidAmountError(
            f"Amount must have at most {MAX_INTEGER_DIGITS} digits before the decimal point "
            f"and {MAX_SCALE} after it."
        )

    return amount


def to_category(value: Any) -> str:
    """Validate a category name. Names are case-sensitive and kept as given."""
    if not isinstance(value, str) or not value.strip():
        raise InvalidCategoryError("Category name must not be empty.")
    return value


class Wallet:
    """
    One user's money.

    Thread safety: every public method holds the wallet's re-entrant lock.
    Callers coordinating several wallets (transfers) may hold the lock
    themselves across a check_* / add_* pair.
    """

    def __init__(self):
        self._lock = threading.RLock()
        self._balance = ZERO
        self._records: list[LedgerRecord] = []
        self._budgets: dict[str, Decimal] = {}

        # category → kind, and category → total EXPENSE amount
        self._kinds: dict[str, CategoryKind] = {}
        self._spent: dict[str, Decimal] = {}

    @property
    def lock(self) -> threading.RLock:
        return self._lock

    # =========================================================================
    # QUERIES
    # =========================================================================

    @property
    def balance(self) -> Decimal:
        with self._lock:
            return self._balance

    def records(self) -> list[LedgerRecord]:
        """All records in insertion (chronological) order. Returns a copy."""
        with self._lock:
            return list(self._records)

    def budgets(self) -> dict[str, Decimal]:
        """Category → limit. Returns a copy."""
        with self._lock:
            return dict(self._budgets)

    def categories(self) -> dict[str, CategoryKind]:
        """Category → kind for every category seen so far. Returns a copy."""
        with self._lock:
            return dict(self._kinds)

    def category_kind(self, category: str) -> Optional[CategoryKind]:
        with self._lock:
            return self._kinds.get(category)

    def category_exists(self, category: str) -> bool:
        with self._lock:
            return category in self._kinds

    def is_income_category(self, category: str) -> bool:
        with self._lock:
            return self._kinds.get(category) == CategoryKind.INCOME

    def is_expense_category(self, category: str) -> bool:
        with self._lock:
            return self._kinds.get(category) == CategoryKind.EXPENSE

    def budget_limit(self, category: str) -> Decimal:
        with self._lock:
            return self._budgets.get(category, ZERO)

    def budget_spent(self, category: str) -> Decimal:
        with self._lock:
            return self._spent.get(category, ZERO)

    def budget_remaining(self, category: str) -> Decimal:
        """
        Limit minus everything spent in the category.

        Negative means over budget - a valid state, not an error.
        """
        with self._lock:
            return subtract_exact(self.budget_limit(category), self.budget_spent(category))

    def view(self) -> "WalletView":
        return WalletView(self)

    # =========================================================================
    # VALIDATION (no side effects)
    # =========================================================================

    def check_income(self, category: Any, amount: Any) -> tuple[str, Decimal]:
        """
        Validate an income without recording it.

        Returns:
            (category, amount) as they would be recorded
        """
        amount = to_amount(amount)
        category = to_category(category)

        with self._lock:
            if self._kinds.get(category) == CategoryKind.EXPENSE:
                raise CategoryTypeConflictError(
                    category,
                    CategoryKind.EXPENSE,
                    f"Category \"{category}\" is used for expenses. Income cannot be added to it.",
                )
            add_exact(self._balance, amount)
        return category, amount

    def check_expense(self, category: Any, amount: Any) -> tuple[str, Decimal, Decimal]:
        """
        Validate an expense without recording it.

        Returns:
            (category, amount, remaining budget before the expense)
        """
        amount = to_amount(amount)
        category = to_category(category)

        with self._lock:
            if self._kinds.get(category) == CategoryKind.INCOME:
                raise CategoryTypeConflictError(
                    category,
                    CategoryKind.INCOME,
                    f"Category \"{category}\" is used for income. Expenses cannot be added to it.",
                )

            # An unseen category counts as an expense category with limit 0
            remaining = self.budget_remaining(category)

            if amount > self._balance:
                raise InsufficientFundsError(self._balance, amount)

            subtract_exact(self._balance, amount)
            subtract_exact(remaining, amount)
            add_exact(self._spent.get(category, ZERO), amount)

        return category, amount, remaining

    # =========================================================================
    # MUTATIONS
    # =========================================================================

    def add_income(self, category: Any, amount: Any) -> LedgerRecord:
        """
        Record income and raise the balance.

        Raises:
            InvalidAmountError, InvalidCategoryError, CategoryTypeConflictError
        """
        with self._lock:
            category, amount = self.check_income(category, amount)
            new_balance = add_exact(self._balance, amount)

            record = LedgerRecord(
                amount=amount,
                direction=Direction.INCOME,
                category=category,
            )
            self._kinds.setdefault(category, CategoryKind.INCOME)
            self._records.append(record)
            self._balance = new_balance
            return record

    def add_expense(self, category: Any, amount: Any) -> ExpenseResult:
        """
        Record an expense and lower the balance.

        A never-seen category is created as an expense category with
        budget limit 0, so the first expense in it always reports
        over budget until a budget is set.

        Raises:
            InvalidAmountError, InvalidCategoryError,
            CategoryTypeConflictError, InsufficientFundsError
        """
        with self._lock:
            category, amount, remaining = self.check_expense(category, amount)
            # Totals first; nothing below can fail
            new_spent = add_exact(self._spent.get(category, ZERO), amount)
            new_balance = subtract_exact(self._balance, amount)
            remaining_after = subtract_exact(remaining, amount)

            record = LedgerRecord(
                amount=amount,
                direction=Direction.EXPENSE,
                category=category,
            )
            self._kinds.setdefault(category, CategoryKind.EXPENSE)
            self._budgets.setdefault(category, ZERO)
            self._spent[category] = new_spent
            self._records.append(record)
            self._balance = new_balance

            return ExpenseResult(
                record=record,
                budget_exceeded=amount > remaining,
                remaining_before=remaining,
                remaining_after=remaining_after,
            )

    def set_budget(self, category: Any, amount: Any) -> Decimal:
        """
        Set (overwrite, never accumulate) the limit of an expense category.

        Raises:
            InvalidAmountError, InvalidCategoryError, CategoryTypeConflictError
        """
        amount = to_amount(amount)
        category = to_category(category)

        with self._lock:
            if self._kinds.get(category) == CategoryKind.INCOME:
                raise CategoryTypeConflictError(
                    category,
                    CategoryKind.INCOME,
                    f"Category \"{category}\" is used for income. A budget cannot be set for it.",
                )
            self._kinds.setdefault(category, CategoryKind.EXPENSE)
            self._budgets[category] = amount
            return amount

    # =========================================================================
    # PERSISTENCE
    # =========================================================================

    def to_snapshot(self) -> WalletSnapshot:
        with self._lock:
            return WalletSnapshot(
                balance=self._balance,
                records=list(self._records),
                budgets=dict(self._budgets),
            )

    @classmethod
    def from_snapshot(cls, snapshot: WalletSnapshot) -> "Wallet":
        """
        Rebuild a wallet by replaying stored records.

        Records are persisted facts, so the balance check is not re-run.
        The typing invariants are: a snapshot that breaks them is corrupt.

        Raises:
            ValueError: if the snapshot mixes income and expense in a category
            InvalidAmountError: if a stored amount is out of bounds
        """
        wallet = cls()

        for record in snapshot.records:
            amount = to_amount(record.amount)
            kind = (
                CategoryKind.INCOME
                if record.direction == Direction.INCOME
                else CategoryKind.EXPENSE
            )
            existing = wallet._kinds.setdefault(record.category, kind)
            if existing != kind:
                raise ValueError(
                    f"Category \"{record.category}\" holds both income and expense records"
                )

            if kind == CategoryKind.INCOME:
                wallet._balance = add_exact(wallet._balance, amount)
            else:
                wallet._balance = subtract_exact(wallet._balance, amount)
                wallet._budgets.setdefault(record.category, ZERO)
                wallet._spent[record.category] = add_exact(
                    wallet._spent.get(record.category, ZERO), amount
                )
            wallet._records.append(record)

        for category, limit in snapshot.budgets.items():
            if wallet._kinds.setdefault(category, CategoryKind.EXPENSE) != CategoryKind.EXPENSE:
                raise ValueError(f"Income category \"{category}\" has a budget")
            if limit < 0:
                raise ValueError(f"Negative budget for category \"{category}\"")
            if limit > 0:
                to_amount(limit)
            wallet._budgets[category] = limit

        if wallet._balance != snapshot.balance:
            logger.warning(
                "wallet_balance_mismatch",
                stored=str(snapshot.balance),
                replayed=str(wallet._balance),
            )

        return wallet


class WalletView:
    """
    Read-only window onto a wallet.

    This is what reports get. It exposes queries only; every collection
    it returns is a copy.
    """

    __slots__ = ("_wallet",)

    def __init__(self, wallet: Wallet):
        self._wallet = wallet

    @property
    def balance(self) -> Decimal:
        return self._wallet.balance

    def records(self) -> list[LedgerRecord]:
        return self._wallet.records()

    def budgets(self) -> dict[str, Decimal]:
        return self._wallet.budgets()

    def categories(self) -> dict[str, CategoryKind]:
        return self._wallet.categories()

    def category_exists(self, category: str) -> bool:
        return self._wallet.category_exists(category)

    def is_income_category(self, category: str) -> bool:
        return self._wallet.is_income_category(category)

    def budget_limit(self, category: str) -> Decimal:
        return self._wallet.budget_limit(category)

    def budget_spent(self, category: str) -> Decimal:
        return self._wallet.budget_spent(category)

    def budget_remaining(self, category: str) -> Decimal:
        return self._wallet.budget_remaining(category)
