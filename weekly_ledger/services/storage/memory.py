"""
In-Memory Storage

Used by the test-suite and for throwaway sessions. Values are pushed through
a JSON round-trip on the way in and on the way out, so the in-memory store
rejects exactly what a durable backend would reject and callers can never
mutate stored state through a reference they were handed.
"""

import json
from typing import Any

from weekly_ledger.models.audit import AuditEvent
from weekly_ledger.services.storage.interface import (
    AuditStorageInterface,
    KeyValueStoreInterface,
    SerializationError,
)


class InMemoryKeyValueStore(KeyValueStoreInterface):
    """Key-value store backed by a dict of JSON strings."""

    def __init__(self, initial: dict[str, Any] = None):
        self._data: dict[str, str] = {}
        for key, value in (initial or {}).items():
            self._data[key] = _encode(key, value)

    async def set(self, key: str, value: Any) -> bool:
        self._data[key] = _encode(key, value)
        return True

    async def get(self, key: str, default: Any = None) -> Any:
        raw = self._data.get(key)
        if raw is None:
            return default
        return json.loads(raw)

    async def remove(self, key: str) -> bool:
        return self._data.pop(key, None) is not None

    async def clear(self) -> bool:
        self._data.clear()
        return True

    def keys(self) -> list[str]:
        return list(self._data)


class InMemoryAuditStorage(AuditStorageInterface):
    """Append-only list of audit events."""

    def __init__(self):
        self._events: list[AuditEvent] = []

    async def append_event(self, event: AuditEvent) -> bool:
        self._events.append(event)
        return True

    async def get_events_by_entity(
        self,
        entity_type: str,
        entity_id: str,
    ) -> list[AuditEvent]:
        events = [
            e for e in self._events
            if e.entity_type == entity_type and e.entity_id == entity_id
        ]
        return sorted(events, key=lambda e: e.timestamp)

    async def get_recent_events(self, limit: int = 100) -> list[AuditEvent]:
        events = sorted(self._events, key=lambda e: e.timestamp, reverse=True)
        return events[:limit]


def _encode(key: str, value: Any) -> str:
    try:
        return json.dumps(value)
    except (TypeError, ValueError) as e:
        raise SerializationError(
            f"Value for '{key}' is not JSON-serializable: {e}", key=key
        )
