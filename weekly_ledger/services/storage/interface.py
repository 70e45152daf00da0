"""
Abstract Storage Interface

DESIGN DECISION: The ledger only needs a durable map from string keys to
JSON values. Keeping the contract that small allows us to:
1. Use an in-memory map for tests
2. Keep a single JSON file for local use
3. Swap in a remote store (Google Sheets today) without touching the ledger

Every method is async so a backend with real network I/O is a drop-in
replacement; callers await every call uniformly.
"""

from abc import ABC, abstractmethod
from typing import Any, Optional

from weekly_ledger.models.audit import AuditEvent


class KeyValueStoreInterface(ABC):
    """
    Abstract interface for the ledger's key-value persistence.

    Values must be JSON-serializable (dicts, lists, strings, numbers,
    booleans, None). Implementations never hand out references to their
    internal state.
    """

    @abstractmethod
    async def set(self, key: str, value: Any) -> bool:
        """
        Store a value under a key, replacing any previous value.

        Returns:
            True if stored successfully

        Raises:
            SerializationError: If the value is not JSON-serializable
            StorageError: If the backend write fails
        """
        pass

    @abstractmethod
    async def get(self, key: str, default: Any = None) -> Any:
        """
        Retrieve the value stored under a key.

        Returns:
            The stored value, or `default` if the key is absent
        """
        pass

    @abstractmethod
    async def remove(self, key: str) -> bool:
        """
        Delete a key.

        Returns:
            True if the key existed
        """
        pass

    @abstractmethod
    async def clear(self) -> bool:
        """
        Delete every key.

        Returns:
            True if cleared successfully
        """
        pass


class AuditStorageInterface(ABC):
    """
    Abstract interface for audit log storage.

    Audit logs are append-only - we never delete or modify them.
    """

    @abstractmethod
    async def append_event(self, event: AuditEvent) -> bool:
        """
        Append an audit event to the log.

        Returns:
            True if logged successfully
        """
        pass

    @abstractmethod
    async def get_events_by_entity(
        self,
        entity_type: str,
        entity_id: str,
    ) -> list[AuditEvent]:
        """
        Get all events for a specific entity.

        Args:
            entity_type: Type of entity (e.g., 'week', 'transaction')
            entity_id: The entity's ID

        Returns:
            List of events in chronological order
        """
        pass

    @abstractmethod
    async def get_recent_events(
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

    def __init__(self, message: str, key: Optional[str] = None):
        super().__init__(message)
        self.key = key


class SerializationError(StorageError):
    """Value could not be encoded as JSON."""
    pass


class ConnectionError(StorageError):
    """Could not connect to storage backend."""
    pass
