"""
Tests for pocketledger models

Test strategy:
1. Unit tests for individual components (models, wallet, registry)
2. Integration tests for flows (with in-memory or temp-file storage)
3. No shared state between tests
"""

import pytest
from decimal import Decimal
from uuid import uuid4

from pydantic import ValidationError

from pocketledger.models.ledger import (
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


class TestLedgerRecord:
    """Tests for the LedgerRecord model."""

    def test_record_creation(self):
        """Test LedgerRecord creation."""
        record = LedgerRecord(
            amount=Decimal("150.00"),
            direction=Direction.INCOME,
            category="Salary",
        )
        assert record.amount == Decimal("150.00")
        assert record.direction == Direction.INCOME
        assert record.timestamp.tzinfo is not None

    def test_record_is_frozen(self):
        """Test that records cannot be modified after creation."""
        record = LedgerRecord(
            amount=Decimal("10"),
            direction=Direction.EXPENSE,
            category="Food",
        )
        with pytest.raises(ValidationError):
            record.amount = Decimal("20")

    def test_record_rejects_non_positive_amount(self):
        """Test that zero and negative amounts are rejected."""
        for amount in (Decimal("0"), Decimal("-5")):
            with pytest.raises(ValueError):
                LedgerRecord(amount=amount, direction=Direction.INCOME, category="Salary")

    def test_record_rejects_empty_category(self):
        """Test that the category must be non-empty."""
        with pytest.raises(ValueError):
            LedgerRecord(amount=Decimal("1"), direction=Direction.INCOME, category="")

    def test_record_json_keeps_decimal_precision(self):
        """Test that amounts survive JSON without float rounding."""
        record = LedgerRecord(
            amount=Decimal("0.10"),
            direction=Direction.EXPENSE,
            category="Fees",
        )
        restored = LedgerRecord.model_validate_json(record.model_dump_json())
        assert restored.amount == Decimal("0.10")
        assert restored == record


class TestResults:
    """Tests for operation result models."""

    def test_ok_result(self):
        result = OperationResult.ok("done")
        assert result.success is True
        assert result.code is None

    def test_declined_result_requires_code(self):
        """Test that a declined result must carry a reason code."""
        with pytest.raises(ValueError, match="Declined result requires an error code"):
            OperationResult(success=False, message="nope")

    def test_declined_result(self):
        result = OperationResult.declined(ErrorCode.USER_ALREADY_EXISTS, "taken")
        assert result.success is False
        assert result.code == ErrorCode.USER_ALREADY_EXISTS

    def test_transfer_result_defaults(self):
        result = TransferResult(
            success=False,
            code=ErrorCode.RECIPIENT_NOT_FOUND,
            message="missing",
        )
        assert result.debit is None
        assert result.credit is None

    def test_expense_result(self):
        record = LedgerRecord(amount=Decimal("250"), direction=Direction.EXPENSE, category="Rent")
        result = ExpenseResult(
            record=record,
            budget_exceeded=True,
            remaining_before=Decimal("200"),
            remaining_after=Decimal("-50"),
        )
        assert result.budget_exceeded is True
        assert result.remaining_after == Decimal("-50")


class TestSnapshots:
    """Tests for persistence snapshot models."""

    def test_registry_snapshot_rejects_duplicate_usernames(self):
        with pytest.raises(ValueError, match="Duplicate usernames"):
            RegistrySnapshot(
                users=[
                    UserSnapshot(username="alice", password_hash="x"),
                    UserSnapshot(username="alice", password_hash="y"),
                ]
            )

    def test_wallet_snapshot_defaults(self):
        snapshot = WalletSnapshot()
        assert snapshot.balance == Decimal("0")
        assert snapshot.records == []
        assert snapshot.budgets == {}


class TestAuditModels:
    """Tests for audit-related models."""

    def test_audit_event_creation(self):
        """Test AuditEvent model creation."""
        event = AuditEvent(
            event_type=AuditEventType.USER_REGISTERED,
            description="Test user registered",
        )
        assert event.event_type == AuditEventType.USER_REGISTERED
        assert event.severity == AuditSeverity.INFO

    def test_audit_event_to_log_dict(self):
        """Test conversion to log dictionary."""
        event = AuditEvent(
            event_type=AuditEventType.BUDGET_SET,
            description="Budget set",
            details={"category": "Rent", "limit": "500"},
        )
        log_dict = event.to_log_dict()
        assert "event_id" in log_dict
        assert log_dict["event_type"] == "budget_set"
        assert log_dict["details"]["category"] == "Rent"

    def test_audit_event_json_line_round_trip(self):
        """Test conversion to a JSON line and back."""
        event = AuditEvent(
            event_type=AuditEventType.LOGIN_FAILED,
            description="Login failed",
            is_user_action=True,
        )
        line = event.to_json_line()
        assert "\n" not in line
        assert AuditEvent.model_validate_json(line).event_id == event.event_id

    def test_builder_income_recorded(self):
        """Test AuditEventBuilder.income_recorded."""
        correlation_id = uuid4()
        record = LedgerRecord(amount=Decimal("1000"), direction=Direction.INCOME, category="Salary")

        event = AuditEventBuilder.income_recorded("alice", record, correlation_id)

        assert event.event_type == AuditEventType.INCOME_RECORDED
        assert event.username == "alice"
        assert event.correlation_id == correlation_id
        assert event.details["amount"] == "1000"
        assert event.is_user_action is True

    def test_builder_budget_exceeded_is_warning(self):
        event = AuditEventBuilder.budget_exceeded(
            "alice", "Rent", Decimal("250"), Decimal("200")
        )
        assert event.severity == AuditSeverity.WARNING
        assert event.details["remaining_before"] == "200"

    def test_builder_transfer_declined(self):
        event = AuditEventBuilder.transfer_declined(
            "alice",
            "bob",
            Decimal("150"),
            ErrorCode.INSUFFICIENT_FUNDS,
            "not enough",
        )
        assert event.event_type == AuditEventType.TRANSFER_DECLINED
        assert event.error_code == "insufficient_funds"
        assert event.details["recipient"] == "bob"

    def test_builder_login_failed_does_not_reveal_reason(self):
        event = AuditEventBuilder.login_failed("mallory")
        assert event.error_code == "authentication_failed"
        assert event.details == {}


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
