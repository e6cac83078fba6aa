"""
Main Orchestrator for pocketledger

This module ties together all the components and defines the
end-to-end flows for:
1. Accounts (register → login → save)
2. Wallet changes (income, expense, budget)
3. Transfers (validate both wallets → debit sender → credit recipient)

DESIGN DECISION: The orchestrator enforces the boundaries:
- A transfer touches two wallets as one step - never just one of them
- Declines are audited as carefully as successes
- Persistence happens only at explicit save points, never mid-transfer
"""

from contextlib import ExitStack
from decimal import Decimal
from typing import Any, Callable, Optional
from uuid import UUID

from pocketledger.audit import AuditLogger, configure_logging, create_correlation_id
from pocketledger.config import Settings, get_settings
from pocketledger.ledger import (
    AuthenticationFailedError,
    CategoryTypeConflictError,
    InsufficientFundsError,
    LedgerError,
    RecipientNotFoundError,
    SelfTransferError,
    to_amount,
)
from pocketledger.models.ledger import (
    ErrorCode,
    ExpenseResult,
    LedgerRecord,
    OperationResult,
    TransferResult,
)
from pocketledger.services.registry import PasswordHasher, Registry, User
from pocketledger.services.storage import (
    JsonFileRegistryStorage,
    JsonLinesAuditStorage,
    RegistryStorageInterface,
)


TRANSFER_OUT_CATEGORY = "Transfer to {recipient}"
TRANSFER_IN_CATEGORY = "Transfer from {sender}"


class TransferOrchestrator:
    """
    Moves money between two users' wallets as a single step.

    Steps:
    1. Refuse self-transfers and malformed amounts (raised)
    2. Decline if the sender can't cover the amount (result)
    3. Decline if the recipient isn't registered (result)
    4. Lock both wallets in username order
    5. Validate BOTH sides, then commit BOTH sides

    Because both locks are held from validation to commit, nothing can
    change either wallet in between, and no reader can observe the
    sender debited without the recipient credited.
    """

    def __init__(self, registry: Registry):
        self._registry = registry

    def transfer(
        self,
        sender: User,
        recipient_username: str,
        amount: Any,
    ) -> TransferResult:
        """
        Transfer money from sender to recipient.

        Raises:
            SelfTransferError: recipient is the sender
            InvalidAmountError: amount is not a positive number

        Returns:
            TransferResult - declined (with a code) for insufficient funds,
            unknown recipient, or a category conflict on either side
        """
        if recipient_username == sender.username:
            raise SelfTransferError(sender.username)

        amount = to_amount(amount)
        recipient = self._registry.lookup(recipient_username)

        participants = [sender]
        if recipient is not None:
            participants.append(recipient)
        participants.sort(key=lambda user: user.username)

        with ExitStack() as stack:
            for user in participants:
                stack.enter_context(user.wallet.lock)

            if sender.wallet.balance < amount:
                return TransferResult(
                    success=False,
                    code=ErrorCode.INSUFFICIENT_FUNDS,
                    message="You do not have enough funds for this transfer.",
                )

            if recipient is None:
                missing = RecipientNotFoundError(recipient_username)
                return TransferResult(success=False, code=missing.code, message=missing.message)

            debit_category = TRANSFER_OUT_CATEGORY.format(recipient=recipient.username)
            credit_category = TRANSFER_IN_CATEGORY.format(sender=sender.username)

            try:
                sender.wallet.check_expense(debit_category, amount)
                recipient.wallet.check_income(credit_category, amount)
            except (CategoryTypeConflictError, InsufficientFundsError) as e:
                return TransferResult(success=False, code=e.code, message=e.message)

            # Both sides validated under lock - these cannot fail now
            debit = sender.wallet.add_expense(debit_category, amount)
            credit = recipient.wallet.add_income(credit_category, amount)

        return TransferResult(
            success=True,
            message="Transfer completed successfully.",
            debit=debit.record,
            credit=credit,
            budget_exceeded=debit.budget_exceeded,
        )


class AccountFlow:
    """
    Orchestrates registration, login and saving.

    A successful registration is saved straight away so a new user
    survives a crash.
    """

    def __init__(
        self,
        registry: Registry,
        storage: Optional[RegistryStorageInterface] = None,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self._registry = registry
        self._storage = storage
        self._audit_logger = audit_logger

    @property
    def registry(self) -> Registry:
        return self._registry

    def register(
        self,
        username: str,
        password: str,
        correlation_id: Optional[UUID] = None,
    ) -> OperationResult:
        correlation_id = correlation_id or create_correlation_id()

        result = self._registry.register(username, password)

        if self._audit_logger:
            if result.success:
                self._audit_logger.log_user_registered(username, correlation_id)
            else:
                self._audit_logger.log_registration_declined(
                    username, result.code, result.message, correlation_id
                )

        if result.success:
            self.save()

        return result

    def login(
        self,
        username: str,
        password: str,
        correlation_id: Optional[UUID] = None,
    ) -> User:
        """
        Authenticate a user.

        Raises:
            AuthenticationFailedError: same error for unknown user and wrong password
        """
        correlation_id = correlation_id or create_correlation_id()

        user = self._registry.authenticate(username, password)

        if self._audit_logger:
            self._audit_logger.log_login(username, user is not None, correlation_id)

        if user is None:
            raise AuthenticationFailedError(username)
        return user

    def save(self) -> bool:
        """
        Persist the registry.

        Returns False on failure; never raises. Without storage there is
        nothing to do and the call succeeds.
        """
        if self._storage is None:
            return True

        saved = self._registry.save(self._storage)

        if self._audit_logger:
            if saved:
                self._audit_logger.log_registry_saved(len(self._registry), self._storage.location)
            else:
                self._audit_logger.log_save_failed(
                    self._storage.location, "Registry could not be written"
                )
        return saved


class WalletFlow:
    """
    Orchestrates single-wallet changes.

    Every outcome is audited. Rejections are audited and re-raised, so
    the caller still decides how to present them.
    """

    def __init__(
        self,
        audit_logger: Optional[AuditLogger] = None,
        on_change: Optional[Callable[[], bool]] = None,
    ):
        self._audit_logger = audit_logger
        self._on_change = on_change

    def add_income(
        self,
        user: User,
        category: Any,
        amount: Any,
        correlation_id: Optional[UUID] = None,
    ) -> LedgerRecord:
        correlation_id = correlation_id or create_correlation_id()

        try:
            record = user.wallet.add_income(category, amount)
        except LedgerError as e:
            self._rejected(user, "add_income", e, correlation_id)
            raise

        if self._audit_logger:
            self._audit_logger.log_income(user.username, record, correlation_id)
        self._changed()
        return record

    def add_expense(
        self,
        user: User,
        category: Any,
        amount: Any,
        correlation_id: Optional[UUID] = None,
    ) -> ExpenseResult:
        correlation_id = correlation_id or create_correlation_id()

        try:
            result = user.wallet.add_expense(category, amount)
        except LedgerError as e:
            self._rejected(user, "add_expense", e, correlation_id)
            raise

        if self._audit_logger:
            self._audit_logger.log_expense(user.username, result.record, correlation_id)
            if result.budget_exceeded:
                self._audit_logger.log_budget_exceeded(
                    user.username,
                    result.record.category,
                    result.record.amount,
                    result.remaining_before,
                    correlation_id,
                )
        self._changed()
        return result

    def set_budget(
        self,
        user: User,
        category: Any,
        amount: Any,
        correlation_id: Optional[UUID] = None,
    ) -> Decimal:
        correlation_id = correlation_id or create_correlation_id()

        try:
            limit = user.wallet.set_budget(category, amount)
        except LedgerError as e:
            self._rejected(user, "set_budget", e, correlation_id)
            raise

        if self._audit_logger:
            self._audit_logger.log_budget_set(user.username, category, limit, correlation_id)
        self._changed()
        return limit

    def _rejected(
        self,
        user: User,
        operation: str,
        error: LedgerError,
        correlation_id: UUID,
    ) -> None:
        if self._audit_logger:
            self._audit_logger.log_operation_rejected(
                user.username, operation, error.code, error.message, correlation_id
            )

    def _changed(self) -> None:
        if self._on_change:
            self._on_change()


class TransferFlow:
    """
    Orchestrates transfers between users.

    Wraps TransferOrchestrator with auditing. Malformed requests
    (self-transfer, bad amount) are audited and re-raised; business
    declines come back as a TransferResult.
    """

    def __init__(
        self,
        orchestrator: TransferOrchestrator,
        audit_logger: Optional[AuditLogger] = None,
        on_change: Optional[Callable[[], bool]] = None,
    ):
        self._orchestrator = orchestrator
        self._audit_logger = audit_logger
        self._on_change = on_change

    def transfer(
        self,
        sender: User,
        recipient_username: str,
        amount: Any,
        correlation_id: Optional[UUID] = None,
    ) -> TransferResult:
        correlation_id = correlation_id or create_correlation_id()

        try:
            result = self._orchestrator.transfer(sender, recipient_username, amount)
        except LedgerError as e:
            if self._audit_logger:
                self._audit_logger.log_operation_rejected(
                    sender.username, "transfer", e.code, e.message, correlation_id
                )
            raise

        if self._audit_logger:
            amount = to_amount(amount)
            if result.success:
                self._audit_logger.log_transfer_completed(
                    sender.username, recipient_username, amount, correlation_id
                )
            else:
                self._audit_logger.log_transfer_declined(
                    sender.username,
                    recipient_username,
                    amount,
                    result.code,
                    result.message,
                    correlation_id,
                )

        if result.success and self._on_change:
            self._on_change()
        return result


def create_app_components(
    settings: Optional[Settings] = None,
    use_storage: bool = True,
) -> tuple[AccountFlow, WalletFlow, TransferFlow]:
    """
    Factory function to create all application components.

    Args:
        settings: Settings to use. Defaults to get_settings().
        use_storage: Whether to load and save the registry file.
                    Set to False for an in-memory session.

    Returns:
        (account_flow, wallet_flow, transfer_flow)
    """
    settings = settings or get_settings()
    app_settings = settings.app
    storage_settings = settings.storage
    security_settings = settings.security

    configure_logging(app_settings.log_level)

    audit_storage = None
    if use_storage and storage_settings.audit_log_path:
        audit_storage = JsonLinesAuditStorage(storage_settings.audit_log_path)
    audit_logger = AuditLogger(audit_storage)

    hasher = PasswordHasher(security_settings.password_hash_iterations)
    registry_storage = None

    if use_storage:
        registry_storage = JsonFileRegistryStorage(
            path=storage_settings.registry_path,
            retry_attempts=storage_settings.save_retry_attempts,
        )
        registry = Registry.load(
            registry_storage,
            hasher=hasher,
            min_password_length=security_settings.min_password_length,
            on_error=lambda message: audit_logger.log_registry_load_failed(
                registry_storage.location, message
            ),
        )
        audit_logger.log_registry_loaded(len(registry), registry_storage.location)
    else:
        registry = Registry(
            hasher=hasher,
            min_password_length=security_settings.min_password_length,
        )

    account_flow = AccountFlow(
        registry=registry,
        storage=registry_storage,
        audit_logger=audit_logger,
    )

    on_change = account_flow.save if app_settings.autosave_on_change else None

    wallet_flow = WalletFlow(
        audit_logger=audit_logger,
        on_change=on_change,
    )

    transfer_flow = TransferFlow(
        orchestrator=TransferOrchestrator(registry),
        audit_logger=audit_logger,
        on_change=on_change,
    )

    return account_flow, wallet_flow, transfer_flow
