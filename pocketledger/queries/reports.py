"""
Wallet Reports

DESIGN DECISION: Reports are READ-ONLY.
A reporter is built from a WalletView, which exposes queries only, so
nothing in here can change a balance, a record or a budget.

All figures come from the wallet itself (balance, records, budgets,
remaining budget). Reports never compute money on their own beyond
summing the record snapshot they were given.
"""

from decimal import Decimal
from typing import Optional

from pocketledger.config import get_settings
from pocketledger.ledger.wallet import ZERO, WalletView, add_exact
from pocketledger.models.ledger import CategoryKind, Direction, LedgerRecord


_LABELS = {
    Direction.INCOME: "Income",
    Direction.EXPENSE: "Expense",
}

_PLURALS = {
    Direction.INCOME: "income",
    Direction.EXPENSE: "expense",
}

_SEPARATOR = "--------------------------"


class WalletReporter:
    """
    Renders human-readable text reports for one wallet.
    """

    def __init__(self, view: WalletView, timestamp_format: Optional[str] = None):
        self._view = view
        self._timestamp_format = timestamp_format or get_settings().app.timestamp_format

    # =========================================================================
    # OVERVIEWS
    # =========================================================================

    def overview(self) -> str:
        return (
            f"{self.balance()}\n---------------\n"
            f"{self.overview_by_direction(Direction.INCOME)}\n"
            f"{self.overview_by_direction(Direction.EXPENSE)}"
        )

    def overview_by_direction(self, direction: Direction) -> str:
        title = "INCOME" if direction == Direction.INCOME else "EXPENSES"
        return (
            f"\n{title}\n{'=' * len(title)}\n"
            f"{self.summary_by_direction(direction)}\n\n"
            f"{self.budget_by_direction(direction)}\n\n"
            f"{self.transactions(direction)}"
        )

    # =========================================================================
    # BALANCE & TOTALS
    # =========================================================================

    def balance(self) -> str:
        return f"Current balance: {self._view.balance}"

    def total(self, direction: Direction) -> Decimal:
        total = ZERO
        for record in self._view.records():
            if record.direction == direction:
                total = add_exact(total, record.amount)
        return total

    def summary(self) -> str:
        return (
            f"{self.summary_by_direction(Direction.INCOME)}\n"
            f"{self.summary_by_direction(Direction.EXPENSE)}"
        )

    def summary_by_direction(self, direction: Direction) -> str:
        label = "income" if direction == Direction.INCOME else "expenses"
        return f"Total {label}: {self.total(direction)}"

    # =========================================================================
    # BUDGETS
    # =========================================================================

    def budget(self) -> str:
        return (
            f"{self.budget_by_direction(Direction.INCOME)}\n\n"
            f"{self.budget_by_direction(Direction.EXPENSE)}"
        )

    def budget_by_direction(self, direction: Direction) -> str:
        """
        Per-category view for one direction.

        Expense categories include budgeted ones with no spending yet.
        """
        kind = CategoryKind(direction.value)
        categories = sorted(
            name for name, k in self._view.categories().items() if k == kind
        )

        if not categories:
            return f"No {_PLURALS[direction]} categories available."

        header = "Income" if direction == Direction.INCOME else "Budget"
        lines = [f"{header} across all categories: {', '.join(categories)}", _SEPARATOR]
        for category in categories:
            lines.append("")
            lines.append(self._category_block(category, title="Category"))
        return "\n".join(lines)

    def category_budget(self, categories: list[str]) -> str:
        if not categories:
            return "No categories given."

        blocks = []
        for category in categories:
            if not self._view.category_exists(category):
                blocks.append(f"No budget for category \"{category}\".")
            elif self._view.is_income_category(category):
                blocks.append(self._category_block(category, title="Category"))
            else:
                blocks.append(self._category_block(category, title="Budget for category"))
        return "\n\n".join(blocks)

    def _category_block(self, category: str, title: str) -> str:
        heading = f"{title}: {category}"
        underline = "-" * len(heading)

        if self._view.is_income_category(category):
            income = ZERO
            for record in self._view.records():
                if record.category == category and record.direction == Direction.INCOME:
                    income = add_exact(income, record.amount)
            return f"{heading}\n{underline}\nIncome: {income}"

        return (
            f"{heading}\n{underline}\n"
            f"Budget: {self._view.budget_limit(category)}, "
            f"spent: {self._view.budget_spent(category)}\n"
            f"Remaining budget: {self._view.budget_remaining(category)}"
        )

    # =========================================================================
    # TRANSACTIONS
    # =========================================================================

    def transactions(self, direction: Optional[Direction] = None) -> str:
        records = self._view.records()
        if direction is not None:
            records = [r for r in records if r.direction == direction]

        if not records:
            if direction is None:
                return "No transactions found."
            return f"No {_PLURALS[direction]} transactions found."

        title = "All transactions:" if direction is None else f"All {_PLURALS[direction]} transactions:"
        lines = [title, "-" * len(title)]
        lines.extend(self._format_record(r) for r in records)
        return "\n".join(lines)

    def category_transactions(self, categories: list[str]) -> str:
        if not categories:
            return "No categories given."

        records = self._view.records()
        blocks = []
        for category in categories:
            matching = [r for r in records if r.category == category]
            if not matching:
                blocks.append(f"No transactions for category \"{category}\".")
                continue

            heading = f"Transactions for category: {category}"
            lines = [heading, "-" * len(heading)]
            lines.extend(
                f"{self._format_timestamp(r)} - {_LABELS[r.direction]}: {r.amount}"
                for r in matching
            )
            blocks.append("\n".join(lines))
        return "\n\n".join(blocks)

    def _format_record(self, record: LedgerRecord) -> str:
        return (
            f"{self._format_timestamp(record)} - {_LABELS[record.direction]}: "
            f"{record.amount} (Category: {record.category})"
        )

    def _format_timestamp(self, record: LedgerRecord) -> str:
        # Stored in UTC, shown in local time
        return record.timestamp.astimezone().strftime(self._timestamp_format)
