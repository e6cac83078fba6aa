"""
Tests for transfers and the application flows

Transfers are checked for all-or-nothing behaviour, including under
concurrent opposite transfers. Flows are checked for what they audit.
"""

import threading
import pytest
from decimal import Decimal

from pocketledger.config import Settings
from pocketledger.ledger import (
    AuthenticationFailedError,
    CategoryTypeConflictError,
    InsufficientFundsError,
    InvalidAmountError,
    SelfTransferError,
)
from pocketledger.models.audit import AuditEventType
from pocketledger.models.ledger import Direction, ErrorCode
from pocketledger.orchestrator import (
    AccountFlow,
    TransferFlow,
    TransferOrchestrator,
    WalletFlow,
    create_app_components,
)
from pocketledger.services.storage import JsonFileRegistryStorage, JsonLinesAuditStorage


@pytest.fixture
def alice(registry):
    registry.register("alice", "pw")
    user = registry.lookup("alice")
    user.wallet.add_income("Salary", "100")
    return user


@pytest.fixture
def bob(registry):
    registry.register("bob", "pw")
    return registry.lookup("bob")


@pytest.fixture
def orchestrator(registry):
    return TransferOrchestrator(registry)


class TestTransferOrchestrator:
    """Tests for TransferOrchestrator.transfer."""

    def test_successful_transfer(self, orchestrator, alice, bob):
        """Scenario B: alice sends bob 40 out of 100."""
        result = orchestrator.transfer(alice, "bob", "40")

        assert result.success is True
        assert result.message == "Transfer completed successfully."
        assert alice.wallet.balance == Decimal("60")
        assert bob.wallet.balance == Decimal("40")

        assert result.debit.direction == Direction.EXPENSE
        assert result.debit.category == "Transfer to bob"
        assert result.credit.direction == Direction.INCOME
        assert result.credit.category == "Transfer from alice"
        assert alice.wallet.records()[-1] == result.debit
        assert bob.wallet.records()[-1] == result.credit

    def test_transfer_reports_sender_budget(self, orchestrator, alice, bob):
        """The transfer category starts at a zero budget like any other expense."""
        assert orchestrator.transfer(alice, "bob", "10").budget_exceeded is True

        alice.wallet.set_budget("Transfer to bob", "100")
        assert orchestrator.transfer(alice, "bob", "10").budget_exceeded is False

    def test_insufficient_funds_declined(self, orchestrator, alice, bob):
        """Scenario C: more than the balance."""
        result = orchestrator.transfer(alice, "bob", "150")

        assert result.success is False
        assert result.code == ErrorCode.INSUFFICIENT_FUNDS
        assert alice.wallet.balance == Decimal("100")
        assert bob.wallet.records() == []

    def test_unknown_recipient_declined(self, orchestrator, alice):
        result = orchestrator.transfer(alice, "ghost", "10")

        assert result.success is False
        assert result.code == ErrorCode.RECIPIENT_NOT_FOUND
        assert len(alice.wallet.records()) == 1

    def test_insufficient_funds_checked_before_recipient(self, orchestrator, alice):
        result = orchestrator.transfer(alice, "ghost", "1000")
        assert result.code == ErrorCode.INSUFFICIENT_FUNDS

    def test_self_transfer_raises(self, orchestrator, alice):
        """Scenario E."""
        with pytest.raises(SelfTransferError):
            orchestrator.transfer(alice, "alice", "10")
        assert alice.wallet.balance == Decimal("100")

    @pytest.mark.parametrize("amount", ["0", "-5", "abc", 1.5])
    def test_invalid_amount_raises(self, orchestrator, alice, bob, amount):
        with pytest.raises(InvalidAmountError):
            orchestrator.transfer(alice, "bob", amount)

    def test_recipient_category_conflict_leaves_both_untouched(self, orchestrator, alice, bob):
        """If the recipient can't be credited, the sender is not debited."""
        bob.wallet.set_budget("Transfer from alice", "50")

        result = orchestrator.transfer(alice, "bob", "40")

        assert result.success is False
        assert result.code == ErrorCode.CATEGORY_TYPE_CONFLICT
        assert alice.wallet.balance == Decimal("100")
        assert len(alice.wallet.records()) == 1
        assert not alice.wallet.category_exists("Transfer to bob")
        assert bob.wallet.balance == Decimal("0")
        assert bob.wallet.records() == []

    def test_sender_category_conflict_leaves_both_untouched(self, orchestrator, alice, bob):
        alice.wallet.add_income("Transfer to bob", "5")

        result = orchestrator.transfer(alice, "bob", "40")

        assert result.code == ErrorCode.CATEGORY_TYPE_CONFLICT
        assert alice.wallet.balance == Decimal("105")
        assert bob.wallet.records() == []

    def test_repeated_transfers_reuse_categories(self, orchestrator, alice, bob):
        orchestrator.transfer(alice, "bob", "10")
        orchestrator.transfer(alice, "bob", "15")
        orchestrator.transfer(bob, "alice", "5")

        assert alice.wallet.balance == Decimal("80")
        assert bob.wallet.balance == Decimal("20")
        assert alice.wallet.budget_spent("Transfer to bob") == Decimal("25")
        assert alice.wallet.is_income_category("Transfer from bob")

    def test_concurrent_opposite_transfers_conserve_money(self, registry, orchestrator, alice, bob):
        """Opposite transfers in parallel must neither deadlock nor lose money."""
        bob.wallet.add_income("Salary", "100")
        errors = []

        def send(sender, recipient_name):
            try:
                for _ in range(50):
                    orchestrator.transfer(sender, recipient_name, "1")
            except Exception as e:
                errors.append(e)

        threads = [
            threading.Thread(target=send, args=(alice, "bob")),
            threading.Thread(target=send, args=(bob, "alice")),
        ]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join(timeout=30)

        assert not any(thread.is_alive() for thread in threads)
        assert errors == []
        assert alice.wallet.balance + bob.wallet.balance == Decimal("200")
        assert alice.wallet.balance == Decimal("100")


class TestAccountFlow:
    """Tests for AccountFlow."""

    def test_register_and_login_are_audited(self, registry, audit_logger, audit_storage):
        flow = AccountFlow(registry, audit_logger=audit_logger)

        assert flow.register("alice", "pw").success is True
        assert flow.register("alice", "pw").success is False
        user = flow.login("alice", "pw")

        assert user.username == "alice"
        assert audit_storage.types("alice") == [
            AuditEventType.USER_REGISTERED,
            AuditEventType.REGISTRATION_DECLINED,
            AuditEventType.LOGIN_SUCCEEDED,
        ]

    def test_failed_login_raises_generic_error(self, registry, audit_logger, audit_storage):
        flow = AccountFlow(registry, audit_logger=audit_logger)
        flow.register("alice", "pw")

        with pytest.raises(AuthenticationFailedError) as wrong_password:
            flow.login("alice", "nope")
        with pytest.raises(AuthenticationFailedError) as unknown_user:
            flow.login("nobody", "pw")

        assert wrong_password.value.message == unknown_user.value.message
        assert audit_storage.types()[-2:] == [
            AuditEventType.LOGIN_FAILED,
            AuditEventType.LOGIN_FAILED,
        ]

    def test_registration_is_saved(self, registry, tmp_path):
        storage = JsonFileRegistryStorage(path=str(tmp_path / "users.json"), retry_attempts=1)
        flow = AccountFlow(registry, storage=storage)

        flow.register("alice", "pw")

        snapshot = storage.load()
        assert [u.username for u in snapshot.users] == ["alice"]

    def test_save_without_storage_succeeds(self, registry):
        assert AccountFlow(registry).save() is True


class TestWalletFlow:
    """Tests for WalletFlow."""

    def test_income_and_expense_audited(self, alice, audit_logger, audit_storage):
        flow = WalletFlow(audit_logger=audit_logger)

        flow.add_income(alice, "Bonus", "50")
        result = flow.add_expense(alice, "Food", "20")

        assert result.budget_exceeded is True
        assert audit_storage.types("alice") == [
            AuditEventType.INCOME_RECORDED,
            AuditEventType.EXPENSE_RECORDED,
            AuditEventType.BUDGET_EXCEEDED,
        ]

    def test_rejection_audited_and_reraised(self, alice, audit_logger, audit_storage):
        flow = WalletFlow(audit_logger=audit_logger)

        with pytest.raises(CategoryTypeConflictError):
            flow.add_expense(alice, "Salary", "1")
        with pytest.raises(InsufficientFundsError):
            flow.add_expense(alice, "Car", "1000")

        rejected = [e for e in audit_storage.events if e.event_type == AuditEventType.OPERATION_REJECTED]
        assert [e.error_code for e in rejected] == ["category_type_conflict", "insufficient_funds"]

    def test_on_change_called_only_on_success(self, alice):
        calls = []
        flow = WalletFlow(on_change=lambda: calls.append(1) or True)

        flow.set_budget(alice, "Food", "10")
        with pytest.raises(CategoryTypeConflictError):
            flow.set_budget(alice, "Salary", "10")

        assert len(calls) == 1


class TestTransferFlow:
    """Tests for TransferFlow."""

    def test_completed_and_declined_audited(self, orchestrator, alice, bob, audit_logger, audit_storage):
        flow = TransferFlow(orchestrator, audit_logger=audit_logger)

        assert flow.transfer(alice, "bob", "30").success is True
        assert flow.transfer(alice, "bob", "500").success is False

        assert audit_storage.types("alice") == [
            AuditEventType.TRANSFER_COMPLETED,
            AuditEventType.TRANSFER_DECLINED,
        ]
        declined = audit_storage.events[-1]
        assert declined.error_code == "insufficient_funds"

    def test_self_transfer_audited_and_reraised(self, orchestrator, alice, audit_logger, audit_storage):
        flow = TransferFlow(orchestrator, audit_logger=audit_logger)

        with pytest.raises(SelfTransferError):
            flow.transfer(alice, "alice", "10")

        assert audit_storage.events[-1].event_type == AuditEventType.OPERATION_REJECTED
        assert audit_storage.events[-1].error_code == "self_transfer"


class TestCreateAppComponents:
    """Tests for the component factory."""

    @pytest.fixture
    def settings(self, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        monkeypatch.setenv("POCKETLEDGER_STORAGE_REGISTRY_PATH", str(tmp_path / "users.json"))
        monkeypatch.setenv("POCKETLEDGER_STORAGE_AUDIT_LOG_PATH", str(tmp_path / "audit.jsonl"))
        monkeypatch.setenv("POCKETLEDGER_STORAGE_SAVE_RETRY_ATTEMPTS", "1")
        monkeypatch.setenv("POCKETLEDGER_SECURITY_PASSWORD_HASH_ITERATIONS", "1000")
        monkeypatch.setenv("AUTOSAVE_ON_CHANGE", "true")
        return Settings()

    def test_in_memory_components(self, settings, tmp_path):
        account_flow, wallet_flow, transfer_flow = create_app_components(settings, use_storage=False)

        account_flow.register("alice", "pw")
        user = account_flow.login("alice", "pw")
        wallet_flow.add_income(user, "Salary", "10")

        assert user.wallet.balance == Decimal("10")
        assert not (tmp_path / "users.json").exists()

    def test_data_survives_restart(self, settings, tmp_path):
        account_flow, wallet_flow, transfer_flow = create_app_components(settings)
        account_flow.register("alice", "pw")
        account_flow.register("bob", "pw")
        alice = account_flow.login("alice", "pw")
        wallet_flow.add_income(alice, "Salary", "100")
        transfer_flow.transfer(alice, "bob", "25")

        # Autosave is on, so no explicit save
        account_flow, _, _ = create_app_components(settings)
        bob = account_flow.login("bob", "pw")

        assert account_flow.login("alice", "pw").wallet.balance == Decimal("75")
        assert bob.wallet.balance == Decimal("25")
        assert bob.wallet.is_income_category("Transfer from alice")
        assert (tmp_path / "audit.jsonl").exists()

    def test_corrupt_registry_file_starts_empty(self, settings, tmp_path):
        (tmp_path / "users.json").write_text("{not json", encoding="utf-8")

        account_flow, _, _ = create_app_components(settings)

        assert len(account_flow.registry) == 0
        events = JsonLinesAuditStorage(str(tmp_path / "audit.jsonl")).get_recent_events()
        assert AuditEventType.REGISTRY_LOAD_FAILED in [e.event_type for e in events]


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
