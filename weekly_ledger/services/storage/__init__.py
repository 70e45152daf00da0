"""
Storage Services Package

Provides the abstract key-value interface the ledger persists through and
its concrete backends: in-memory, a local JSON file and Google Sheets.
"""

from weekly_ledger.services.storage.interface import (
    AuditStorageInterface,
    ConnectionError,
    KeyValueStoreInterface,
    SerializationError,
    StorageError,
)
from weekly_ledger.services.storage.memory import (
    InMemoryAuditStorage,
    InMemoryKeyValueStore,
)
from weekly_ledger.services.storage.json_file import JsonFileKeyValueStore

__all__ = [
    # Interfaces
    "AuditStorageInterface",
    "KeyValueStoreInterface",
    # Exceptions
    "ConnectionError",
    "SerializationError",
    "StorageError",
    # Local implementations
    "InMemoryAuditStorage",
    "InMemoryKeyValueStore",
    "JsonFileKeyValueStore",
]
