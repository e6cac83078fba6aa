"""Services package."""

from pocketledger.services.storage import (
    AuditStorageInterface,
    CorruptDataError,
    JsonFileRegistryStorage,
    JsonLinesAuditStorage,
    RegistryStorageInterface,
    StorageError,
    StorageUnavailableError,
)
from pocketledger.services.registry import PasswordHasher, Registry, User

__all__ = [
    # Storage services
    "AuditStorageInterface",
    "CorruptDataError",
    "JsonFileRegistryStorage",
    "JsonLinesAuditStorage",
    "RegistryStorageInterface",
    "StorageError",
    "StorageUnavailableError",
    # Registry
    "PasswordHasher",
    "Registry",
    "User",
]
