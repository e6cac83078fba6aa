"""
Storage Services Package

Provides abstract interfaces and concrete implementations for data storage.
Currently implements JSON files as the backend, but designed to be swappable.
"""

from pocketledger.services.storage.interface import (
    AuditStorageInterface,
    CorruptDataError,
    RegistryStorageInterface,
    StorageError,
    StorageUnavailableError,
)
from pocketledger.services.storage.json_file import (
    JsonFileRegistryStorage,
    JsonLinesAuditStorage,
)

__all__ = [
    # Interfaces
    "AuditStorageInterface",
    "RegistryStorageInterface",
    # Exceptions
    "CorruptDataError",
    "StorageError",
    "StorageUnavailableError",
    # JSON file implementation
    "JsonFileRegistryStorage",
    "JsonLinesAuditStorage",
]
