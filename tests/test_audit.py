"""
Tests for the audit logger
"""

import pytest
from decimal import Decimal

from pocketledger.audit import AuditLogger, create_correlation_id
from pocketledger.models.audit import AuditEvent, AuditEventType, AuditSeverity
from pocketledger.models.ledger import Direction, ErrorCode, LedgerRecord
from pocketledger.services.storage import StorageUnavailableError

from conftest import InMemoryAuditStorage


class FailingAuditStorage(InMemoryAuditStorage):
    def append_event(self, event: AuditEvent) -> bool:
        raise StorageUnavailableError("disk full")


class TestAuditLogger:
    """Tests for AuditLogger."""

    def test_without_storage_always_succeeds(self):
        logger = AuditLogger()
        event = AuditEvent(event_type=AuditEventType.USER_REGISTERED, description="x")
        assert logger.log(event) is True

    def test_storage_failure_does_not_raise(self):
        """Losing an audit line must never break a ledger operation."""
        logger = AuditLogger(FailingAuditStorage())
        event = AuditEvent(event_type=AuditEventType.USER_REGISTERED, description="x")
        assert logger.log(event) is False

    def test_helpers_share_correlation_id(self, audit_logger, audit_storage):
        correlation_id = create_correlation_id()
        record = LedgerRecord(amount=Decimal("20"), direction=Direction.EXPENSE, category="Food")

        audit_logger.log_expense("alice", record, correlation_id)
        audit_logger.log_budget_exceeded("alice", "Food", Decimal("20"), Decimal("0"), correlation_id)
        audit_logger.log_income(
            "bob",
            LedgerRecord(amount=Decimal("1"), direction=Direction.INCOME, category="Gift"),
        )

        related = audit_storage.get_events_by_correlation_id(correlation_id)
        assert [e.event_type for e in related] == [
            AuditEventType.EXPENSE_RECORDED,
            AuditEventType.BUDGET_EXCEEDED,
        ]
        assert related[1].severity == AuditSeverity.WARNING

    def test_save_failed_is_error(self, audit_logger, audit_storage):
        audit_logger.log_save_failed("users.json", "disk full")

        event = audit_storage.events[-1]
        assert event.event_type == AuditEventType.SAVE_FAILED
        assert event.severity == AuditSeverity.ERROR
        assert event.error_message == "disk full"

    def test_operation_rejected_carries_code(self, audit_logger, audit_storage):
        audit_logger.log_operation_rejected(
            "alice", "add_expense", ErrorCode.INSUFFICIENT_FUNDS, "Insufficient funds."
        )
        assert audit_storage.events[-1].error_code == "insufficient_funds"

    def test_correlation_ids_are_unique(self):
        assert create_correlation_id() != create_correlation_id()


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
