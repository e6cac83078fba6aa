"""
JSON File Storage Implementation

DESIGN DECISION: A single JSON file holds the whole registry because:
1. Users can read and back up their data with any text editor
2. No database setup required
3. Pydantic already knows how to serialize every model we store

TRADEOFFS:
- The whole registry is rewritten on every save (fine for personal use)
- Writes go to a temporary file first and are swapped in with os.replace,
  so a crash mid-write never leaves a half-written registry behind

The implementation follows the abstract interface, so we can swap
to SQLite later without changing ledger logic.
"""

import os
import tempfile
from pathlib import Path
from typing import Optional
from uuid import UUID

from pydantic import ValidationError
from tenacity import (
    Retrying,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from pocketledger.config import get_settings
from pocketledger.models.audit import AuditEvent
from pocketledger.models.ledger import RegistrySnapshot
from pocketledger.services.storage.interface import (
    AuditStorageInterface,
    CorruptDataError,
    RegistryStorageInterface,
    StorageUnavailableError,
)


class JsonFileRegistryStorage(RegistryStorageInterface):
    """
    Registry persisted as one pretty-printed JSON document.
    """

    def __init__(
        self,
        path: Optional[str] = None,
        retry_attempts: Optional[int] = None,
    ):
        if path is None or retry_attempts is None:
            settings = get_settings().storage
            path = path if path is not None else settings.registry_path
            if retry_attempts is None:
                retry_attempts = settings.save_retry_attempts

        self._path = Path(path)
        self._retry_attempts = retry_attempts

    @property
    def location(self) -> str:
        return str(self._path)

    def load(self) -> Optional[RegistrySnapshot]:
        if not self._path.exists():
            return None

        try:
            raw = self._path.read_text(encoding="utf-8")
        except OSError as e:
            raise StorageUnavailableError(f"Failed to read {self._path}: {e}")

        try:
            return RegistrySnapshot.model_validate_json(raw)
        except ValidationError as e:
            raise CorruptDataError(f"Registry file {self._path} is not valid: {e}")

    def save(self, snapshot: RegistrySnapshot) -> bool:
        payload = snapshot.model_dump_json(indent=2)

        try:
            for attempt in Retrying(
                stop=stop_after_attempt(self._retry_attempts),
                wait=wait_exponential(multiplier=0.1, min=0.1, max=2),
                retry=retry_if_exception_type(OSError),
                reraise=True,
            ):
                with attempt:
                    self._write_atomically(payload)
        except OSError as e:
            raise StorageUnavailableError(f"Failed to write {self._path}: {e}")

        return True

    def _write_atomically(self, payload: str) -> None:
        directory = self._path.parent
        directory.mkdir(parents=True, exist_ok=True)

        fd, tmp_name = tempfile.mkstemp(
            prefix=f".{self._path.name}.",
            suffix=".tmp",
            dir=directory,
        )
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                handle.write(payload)
                handle.flush()
                os.fsync(handle.fileno())
            os.replace(tmp_name, self._path)
        except OSError:
            if os.path.exists(tmp_name):
                os.unlink(tmp_name)
            raise


class JsonLinesAuditStorage(AuditStorageInterface):
    """
    Audit events appended one JSON object per line.

    Unparseable lines are skipped when reading back; the log is never
    rewritten.
    """

    def __init__(self, path: Optional[str] = None):
        if path is None:
            path = get_settings().storage.audit_log_path
        if not path:
            raise StorageUnavailableError("No audit log path configured")
        self._path = Path(path)

    def append_event(self, event: AuditEvent) -> bool:
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            with self._path.open("a", encoding="utf-8") as handle:
                handle.write(event.to_json_line() + "\n")
        except OSError as e:
            raise StorageUnavailableError(f"Failed to append to {self._path}: {e}")
        return True

    def _read_events(self) -> list[AuditEvent]:
        if not self._path.exists():
            return []

        events = []
        with self._path.open("r", encoding="utf-8") as handle:
            for line in handle:
                line = line.strip()
                if not line:
                    continue
                try:
                    events.append(AuditEvent.model_validate_json(line))
                except ValidationError:
                    continue
        return events

    def get_events_by_correlation_id(
        self,
        correlation_id: UUID,
    ) -> list[AuditEvent]:
        return [e for e in self._read_events() if e.correlation_id == correlation_id]

    def get_recent_events(
        self,
        limit: int = 100,
    ) -> list[AuditEvent]:
        events = self._read_events()
        events.reverse()
        return events[:limit]
