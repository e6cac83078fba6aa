"""
Abstract Storage Interface

DESIGN DECISION: We define an abstract interface for storage operations.
This allows us to:
1. Swap the JSON file for a real database later
2. Use in-memory storage for testing
3. Keep the ledger decoupled from how it is persisted

The registry is stored as one opaque snapshot: the core only ever calls
load() at startup and save() at explicit save points, never in the middle
of a wallet operation.
"""

from abc import ABC, abstractmethod
from typing import Optional
from uuid import UUID

from pocketledger.models.audit import AuditEvent
from pocketledger.models.ledger import RegistrySnapshot


class RegistryStorageInterface(ABC):
    """
    Abstract interface for registry persistence.
    """

    @property
    @abstractmethod
    def location(self) -> str:
        """Human-readable description of where data lives (for logs)."""
        pass

    @abstractmethod
    def load(self) -> Optional[RegistrySnapshot]:
        """
        Load the stored registry.

        Returns:
            The snapshot, or None if nothing has been stored yet

        Raises:
            CorruptDataError: If stored data can't be parsed
            StorageUnavailableError: If the backend can't be read
        """
        pass

    @abstractmethod
    def save(self, snapshot: RegistrySnapshot) -> bool:
        """
        Replace the stored registry with this snapshot.

        Returns:
            True if saved successfully

        Raises:
            StorageUnavailableError: If the write fails
        """
        pass


class AuditStorageInterface(ABC):
    """
    Abstract interface for audit log storage.

    Audit logs are append-only - we never delete or modify them.
    """

    @abstractmethod
    def append_event(self, event: AuditEvent) -> bool:
        """
        Append an audit event to the log.

        Returns:
            True if logged successfully
        """
        pass

    @abstractmethod
    def get_events_by_correlation_id(
        self,
        correlation_id: UUID,
    ) -> list[AuditEvent]:
        """
        Get all events for a correlation ID (e.g., one transfer command).

        Returns:
            List of related events in chronological order
        """
        pass

    @abstractmethod
    def get_recent_events(
        self,
        limit: int = 100,
    ) -> list[AuditEvent]:
        """
        Get the most recent audit events.

        Returns:
            List of recent events (newest first)
        """
        pass


class StorageError(Exception):
    """Base exception for storage operations."""
    pass


class CorruptDataError(StorageError):
    """Stored data exists but can't be parsed or breaks ledger invariants."""
    pass


class StorageUnavailableError(StorageError):
    """Could not read from or write to the storage backend."""
    pass
