"""
JSON File Storage

DESIGN DECISION: The whole key-value map lives in one JSON file, the local
equivalent of a browser's localStorage. The file is rewritten on every
change through a temporary file and an atomic rename, so a crash mid-write
leaves the previous version intact rather than a truncated file.

TRADEOFFS:
- Every write rewrites the whole file (fine for one person's expenses)
- Single writer only; two processes sharing a file will overwrite each other
"""

import json
import os
import tempfile
from pathlib import Path
from typing import Any, Union

from weekly_ledger.services.storage.interface import (
    KeyValueStoreInterface,
    SerializationError,
    StorageError,
)


class JsonFileKeyValueStore(KeyValueStoreInterface):
    """Durable key-value store kept in a single JSON document."""

    def __init__(self, path: Union[str, Path]):
        self._path = Path(path)
        self._data: dict[str, Any] = self._load()

    @property
    def path(self) -> Path:
        return self._path

    def _load(self) -> dict[str, Any]:
        if not self._path.exists():
            return {}
        try:
            with self._path.open("r", encoding="utf-8") as fh:
                data = json.load(fh)
        except (OSError, json.JSONDecodeError) as e:
            raise StorageError(f"Failed to read ledger file {self._path}: {e}")
        if not isinstance(data, dict):
            raise StorageError(
                f"Ledger file {self._path} does not contain a JSON object"
            )
        return data

    def _flush(self, data: dict[str, Any]) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(
            dir=self._path.parent, prefix=f".{self._path.name}.", suffix=".tmp"
        )
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as fh:
                json.dump(data, fh, ensure_ascii=False, indent=2)
            os.replace(tmp_name, self._path)
        except OSError as e:
            Path(tmp_name).unlink(missing_ok=True)
            raise StorageError(f"Failed to write ledger file {self._path}: {e}")

    async def set(self, key: str, value: Any) -> bool:
        try:
            # Round-trip so the cached copy matches what a reload would see
            encoded = json.loads(json.dumps(value))
        except (TypeError, ValueError) as e:
            raise SerializationError(
                f"Value for '{key}' is not JSON-serializable: {e}", key=key
            )
        updated = dict(self._data)
        updated[key] = encoded
        self._flush(updated)
        self._data = updated
        return True

    async def get(self, key: str, default: Any = None) -> Any:
        if key not in self._data:
            return default
        return json.loads(json.dumps(self._data[key]))

    async def remove(self, key: str) -> bool:
        if key not in self._data:
            return False
        updated = {k: v for k, v in self._data.items() if k != key}
        self._flush(updated)
        self._data = updated
        return True

    async def clear(self) -> bool:
        self._flush({})
        self._data = {}
        return True
