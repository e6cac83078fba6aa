"""
Command Processor

Turns one line of text into one call on the flows, and the outcome into
one block of text. Holds the session (who is logged in).

Argument counts and amount formats are checked here, before anything
reaches the ledger. Ledger errors are caught at this edge and shown as
"Error: <message>"; nothing below this layer prints.
"""

from decimal import Decimal, DecimalException
from typing import Callable, Optional

from pydantic import BaseModel

from pocketledger.audit import create_correlation_id
from pocketledger.config import get_settings
from pocketledger.ledger import LedgerError
from pocketledger.models.ledger import Direction
from pocketledger.orchestrator import (
    AccountFlow,
    TransferFlow,
    WalletFlow,
    create_app_components,
)
from pocketledger.queries import WalletReporter
from pocketledger.services.registry import User


HELP_TEXT = """\
Available commands:
help - Show available commands
register <username> <password> - Register a new user
login <username> <password> - Log in
logout - Log out
exit - Save and quit

Wallet commands:
-------------------------------
add-income <category> <amount> - Add income
add-expense <category> <amount> - Add an expense
set-budget <category> <amount> - Set the budget for a category
add-transfer <recipient> <amount> - Send money to another user

Overview commands:
------------------------------------
show-overview - Show the wallet overview
    show-balance - Show the current balance
    show-summary - Show total income and expenses
    show-budget - Show the budget overview
    show-transactions - List all transactions
    show-category-budget <category1> [category2] ... - Budget for the given categories
    show-category-transactions <category1> [category2] ... - Transactions for the given categories

Income commands:
-----------------------------------------
show-overview-income - Show the income overview
    show-summary-income - Show total income
    show-budget-income - Show income by category
    show-transactions-income - List income transactions

Expense commands:
------------------------------------------
show-overview-expense - Show the expense overview
    show-summary-expense - Show total expenses
    show-budget-expense - Show the expense budget overview
    show-transactions-expense - List expense transactions"""


class CommandResponse(BaseModel):
    """Text to show the user, and whether the session should end."""

    output: str = ""
    should_exit: bool = False


def parse_amount(text: str) -> Optional[Decimal]:
    """Parse a decimal amount. Returns None if the text isn't a number."""
    try:
        return Decimal(text)
    except DecimalException:
        return None


class CommandProcessor:
    """
    Line-oriented command dispatcher.

    Usage:
        processor = CommandProcessor(account_flow, wallet_flow, transfer_flow)
        response = processor.execute("add-income Salary 1000")
    """

    def __init__(
        self,
        account_flow: AccountFlow,
        wallet_flow: WalletFlow,
        transfer_flow: TransferFlow,
        timestamp_format: Optional[str] = None,
    ):
        self._accounts = account_flow
        self._wallets = wallet_flow
        self._transfers = transfer_flow
        self._timestamp_format = timestamp_format
        self._current_user: Optional[User] = None

        # name → (handler, usage)
        self._report_commands: dict[str, tuple[Callable[[WalletReporter], str], str]] = {
            "show-overview": (lambda r: r.overview(), "show-overview"),
            "show-balance": (lambda r: r.balance(), "show-balance"),
            "show-summary": (lambda r: r.summary(), "show-summary"),
            "show-budget": (lambda r: r.budget(), "show-budget"),
            "show-transactions": (lambda r: r.transactions(), "show-transactions"),
            "show-overview-income": (
                lambda r: r.overview_by_direction(Direction.INCOME), "show-overview-income"
            ),
            "show-summary-income": (
                lambda r: r.summary_by_direction(Direction.INCOME), "show-summary-income"
            ),
            "show-budget-income": (
                lambda r: r.budget_by_direction(Direction.INCOME), "show-budget-income"
            ),
            "show-transactions-income": (
                lambda r: r.transactions(Direction.INCOME), "show-transactions-income"
            ),
            "show-overview-expense": (
                lambda r: r.overview_by_direction(Direction.EXPENSE), "show-overview-expense"
            ),
            "show-summary-expense": (
                lambda r: r.summary_by_direction(Direction.EXPENSE), "show-summary-expense"
            ),
            "show-budget-expense": (
                lambda r: r.budget_by_direction(Direction.EXPENSE), "show-budget-expense"
            ),
            "show-transactions-expense": (
                lambda r: r.transactions(Direction.EXPENSE), "show-transactions-expense"
            ),
        }

    @property
    def current_user(self) -> Optional[User]:
        return self._current_user

    # =========================================================================
    # DISPATCH
    # =========================================================================

    def execute(self, line: str) -> CommandResponse:
        """Run one command line and return what to show."""
        parts = line.split()
        if not parts:
            return CommandResponse()

        command, args = parts[0], parts[1:]

        try:
            if command == "help":
                return CommandResponse(output=HELP_TEXT)
            if command == "register":
                return self._register(args)
            if command == "login":
                return self._login(args)
            if command == "logout":
                return self._logout(args)
            if command == "exit":
                return self._exit(args)
            if command == "add-income":
                return self._add_income(args)
            if command == "add-expense":
                return self._add_expense(args)
            if command == "set-budget":
                return self._set_budget(args)
            if command == "add-transfer":
                return self._add_transfer(args)
            if command == "show-category-budget":
                return self._show_categories(args, "show-category-budget", budget=True)
            if command == "show-category-transactions":
                return self._show_categories(args, "show-category-transactions", budget=False)
            if command in self._report_commands:
                return self._show_report(command, args)
        except LedgerError as e:
            return CommandResponse(output=f"Error: {e.message}")

        return CommandResponse(output="Unknown command. Type 'help' for a list of commands.")

    def run(
        self,
        read_line: Callable[[str], str] = input,
        write: Callable[[str], None] = print,
    ) -> None:
        """Interactive loop. Ends on 'exit' or end of input; saves either way."""
        while True:
            write("==================================================")
            write("Enter a command ('help' for the list of commands):")
            try:
                line = read_line(">> ")
            except (EOFError, KeyboardInterrupt):
                self._accounts.save()
                write("Goodbye!")
                return

            response = self.execute(line)
            if response.output:
                write(response.output)
            if response.should_exit:
                return

    # =========================================================================
    # ARGUMENT CHECKS
    # =========================================================================

    def _login_required(self) -> Optional[CommandResponse]:
        if self._current_user is None:
            return CommandResponse(output="Please log in first.")
        return None

    @staticmethod
    def _expect_none(args: list[str], usage: str) -> Optional[CommandResponse]:
        if args:
            return CommandResponse(
                output=f"Error: This command takes no arguments. Usage: {usage}"
            )
        return None

    @staticmethod
    def _expect_pair(args: list[str], missing: str, usage: str) -> Optional[CommandResponse]:
        if len(args) < 2:
            return CommandResponse(output=f"Error: {missing} Usage: {usage}")
        if len(args) > 2:
            return CommandResponse(output=f"Error: Too many arguments. Usage: {usage}")
        return None

    def _wallet_args(
        self,
        args: list[str],
        usage: str,
    ) -> tuple[Optional[CommandResponse], Optional[str], Optional[Decimal]]:
        problem = self._login_required() or self._expect_pair(
            args, "Specify a category and an amount.", usage
        )
        if problem:
            return problem, None, None

        amount = parse_amount(args[1])
        if amount is None:
            return (
                CommandResponse(
                    output="Error: Invalid amount format. Enter a number, for example: 150.00"
                ),
                None,
                None,
            )
        return None, args[0], amount

    # =========================================================================
    # ACCOUNT COMMANDS
    # =========================================================================

    def _register(self, args: list[str]) -> CommandResponse:
        usage = "register <username> <password>"
        problem = self._expect_pair(args, "Specify a username and a password.", usage)
        if problem:
            return problem

        result = self._accounts.register(args[0], args[1], create_correlation_id())
        return CommandResponse(output=result.message)

    def _login(self, args: list[str]) -> CommandResponse:
        usage = "login <username> <password>"
        problem = self._expect_pair(args, "Specify a username and a password.", usage)
        if problem:
            return problem

        # A failed login ends any previous session
        self._current_user = None
        self._current_user = self._accounts.login(args[0], args[1], create_correlation_id())
        return CommandResponse(output="Logged in successfully.")

    def _logout(self, args: list[str]) -> CommandResponse:
        problem = self._login_required() or self._expect_none(args, "logout")
        if problem:
            return problem

        self._current_user = None
        return CommandResponse(output="You have been logged out.")

    def _exit(self, args: list[str]) -> CommandResponse:
        problem = self._expect_none(args, "exit")
        if problem:
            return problem

        if not self._accounts.save():
            return CommandResponse(
                output="Warning: your data could not be saved.\nGoodbye!",
                should_exit=True,
            )
        return CommandResponse(output="Goodbye!", should_exit=True)

    # =========================================================================
    # WALLET COMMANDS
    # =========================================================================

    def _add_income(self, args: list[str]) -> CommandResponse:
        problem, category, amount = self._wallet_args(args, "add-income <category> <amount>")
        if problem:
            return problem

        self._wallets.add_income(self._current_user, category, amount, create_correlation_id())
        return CommandResponse(output="Income added.")

    def _add_expense(self, args: list[str]) -> CommandResponse:
        problem, category, amount = self._wallet_args(args, "add-expense <category> <amount>")
        if problem:
            return problem

        result = self._wallets.add_expense(
            self._current_user, category, amount, create_correlation_id()
        )
        output = "Expense added."
        if result.budget_exceeded:
            output += f"\nBudget limit exceeded for category: {category}"
        return CommandResponse(output=output)

    def _set_budget(self, args: list[str]) -> CommandResponse:
        problem, category, amount = self._wallet_args(args, "set-budget <category> <amount>")
        if problem:
            return problem

        self._wallets.set_budget(self._current_user, category, amount, create_correlation_id())
        return CommandResponse(output=f"Budget set for category \"{category}\".")

    def _add_transfer(self, args: list[str]) -> CommandResponse:
        usage = "add-transfer <recipient> <amount>"
        problem = self._login_required()
        if problem:
            return problem
        if len(args) != 2:
            return CommandResponse(
                output=f"Error: The command needs a recipient username and an amount. Usage: {usage}"
            )

        amount = parse_amount(args[1])
        if amount is None:
            return CommandResponse(
                output="Error: Invalid amount format. Enter a number, for example: 150.00"
            )

        result = self._transfers.transfer(
            self._current_user, args[0], amount, create_correlation_id()
        )
        if not result.success:
            return CommandResponse(output=f"Error: {result.message}")

        output = result.message
        if result.budget_exceeded:
            output += f"\nBudget limit exceeded for category: {result.debit.category}"
        return CommandResponse(output=output)

    # =========================================================================
    # REPORT COMMANDS
    # =========================================================================

    def _reporter(self) -> WalletReporter:
        return WalletReporter(
            self._current_user.wallet.view(),
            timestamp_format=self._timestamp_format,
        )

    def _show_report(self, command: str, args: list[str]) -> CommandResponse:
        render, usage = self._report_commands[command]
        problem = self._login_required() or self._expect_none(args, usage)
        if problem:
            return problem
        return CommandResponse(output=render(self._reporter()))

    def _show_categories(self, args: list[str], command: str, budget: bool) -> CommandResponse:
        problem = self._login_required()
        if problem:
            return problem
        if not args:
            return CommandResponse(
                output=f"Error: Specify at least one category. Usage: {command} <category1> [category2] ..."
            )

        reporter = self._reporter()
        if budget:
            return CommandResponse(output=reporter.category_budget(args))
        return CommandResponse(output=reporter.category_transactions(args))


def main() -> None:
    """Console entry point."""
    settings = get_settings()
    account_flow, wallet_flow, transfer_flow = create_app_components(settings)
    processor = CommandProcessor(
        account_flow,
        wallet_flow,
        transfer_flow,
        timestamp_format=settings.app.timestamp_format,
    )
    processor.run()


if __name__ == "__main__":
    main()
