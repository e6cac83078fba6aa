"""Shared fixtures."""

from typing import Optional
from uuid import UUID

import pytest

from pocketledger.audit import AuditLogger
from pocketledger.models.audit import AuditEvent, AuditEventType
from pocketledger.services.registry import PasswordHasher, Registry
from pocketledger.services.storage import AuditStorageInterface


class InMemoryAuditStorage(AuditStorageInterface):
    """Keeps audit events in a list."""

    def __init__(self):
        self.events: list[AuditEvent] = []

    def append_event(self, event: AuditEvent) -> bool:
        self.events.append(event)
        return True

    def get_events_by_correlation_id(self, correlation_id: UUID) -> list[AuditEvent]:
        return [e for e in self.events if e.correlation_id == correlation_id]

    def get_recent_events(self, limit: int = 100) -> list[AuditEvent]:
        return list(reversed(self.events))[:limit]

    def types(self, username: Optional[str] = None) -> list[AuditEventType]:
        return [
            e.event_type for e in self.events
            if username is None or e.username == username
        ]


@pytest.fixture
def hasher() -> PasswordHasher:
    # Low iteration count keeps the suite fast
    return PasswordHasher(iterations=1000)


@pytest.fixture
def registry(hasher) -> Registry:
    return Registry(hasher=hasher, min_password_length=1)


@pytest.fixture
def audit_storage() -> InMemoryAuditStorage:
    return InMemoryAuditStorage()


@pytest.fixture
def audit_logger(audit_storage) -> AuditLogger:
    return AuditLogger(audit_storage)
