"""Key/value state store behind the decision store and bookmarks.

Everything that must survive a scene reload or a process restart goes through
a StateStore: affinity, last choice, flags, the save bookmark and the pending
jump record. Values are plain JSON types.

    MemoryStateStore — dict backed, for tests and throwaway sessions
    JsonStateStore   — one JSON object on disk, rewritten on every write
"""

from __future__ import annotations

import json
import logging
import os
from pathlib import Path
from typing import Any, Protocol

from vn_runtime.errors import PersistenceError

logger = logging.getLogger(__name__)


class StateStore(Protocol):
    def get(self, key: str, default: Any = None) -> Any: ...

    def set(self, key: str, value: Any) -> None: ...

    def delete(self, key: str) -> None: ...


class MemoryStateStore:
    def __init__(self, initial: dict[str, Any] | None = None) -> None:
        self._data: dict[str, Any] = dict(initial or {})

    def get(self, key: str, default: Any = None) -> Any:
        return self._data.get(key, default)

    def set(self, key: str, value: Any) -> None:
        self._data[key] = value

    def delete(self, key: str) -> None:
        self._data.pop(key, None)

    def snapshot(self) -> dict[str, Any]:
        return dict(self._data)


class JsonStateStore:
    """Durable store: every write is flushed before returning."""

    def __init__(self, path: Path) -> None:
        self._path = Path(path)
        try:
            self._data = self._read()
        except PersistenceError as e:
            logger.warning("%s — starting with empty state", e)
            self._data = {}

    @property
    def path(self) -> Path:
        return self._path

    def _read(self) -> dict[str, Any]:
        if not self._path.is_file():
            return {}
        try:
            data = json.loads(self._path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as e:
            raise PersistenceError(f"Unreadable state file {self._path}: {e}") from e
        if not isinstance(data, dict):
            raise PersistenceError(f"State file {self._path} is not a JSON object")
        return data

    def _write(self) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        tmp = self._path.with_suffix(self._path.suffix + ".tmp")
        tmp.write_text(json.dumps(self._data, indent=2), encoding="utf-8")
        os.replace(tmp, self._path)

    def get(self, key: str, default: Any = None) -> Any:
        return self._data.get(key, default)

    def set(self, key: str, value: Any) -> None:
        self._data[key] = value
        self._write()

    def delete(self, key: str) -> None:
        if key in self._data:
            del self._data[key]
            self._write()
