"""
Plain key-value persistence.

Learned name equivalences and manual citation overrides are small JSON
values stored under stable keys. ``JsonFileStore`` keeps every key in one
JSON document, loaded at construction and rewritten after each mutation.
"""

from __future__ import annotations

import json
import os
import tempfile
import threading
from pathlib import Path
from typing import Any, Dict, Iterator, Optional, Protocol, runtime_checkable

from kalvian_roots.logging import get_logger

log = get_logger("store")


@runtime_checkable
class KeyValueStore(Protocol):
    def get(self, key: str, default: Any = None) -> Any: ...

    def set(self, key: str, value: Any) -> None: ...

    def delete(self, key: str) -> None: ...

    def keys(self) -> Iterator[str]: ...


# -----------------------------
# In-memory
# -----------------------------

class InMemoryStore:
    """Dictionary-backed store for tests and one-shot runs."""

    def __init__(self, initial: Optional[Dict[str, Any]] = None):
        self._data: Dict[str, Any] = dict(initial or {})
        self._lock = threading.Lock()

    def get(self, key: str, default: Any = None) -> Any:
        with self._lock:
            return self._data.get(key, default)

    def set(self, key: str, value: Any) -> None:
        with self._lock:
            self._data[key] = value

    def delete(self, key: str) -> None:
        with self._lock:
            self._data.pop(key, None)

    def keys(self) -> Iterator[str]:
        with self._lock:
            return iter(sorted(self._data))


# -----------------------------
# JSON file
# -----------------------------

class JsonFileStore:
    """
    One JSON object on disk, one top-level member per key.

    Writes go to a temporary file in the same directory which then replaces
    the document, so a crash never leaves a half-written store behind.
    """

    def __init__(self, path: Path | str):
        self.path = Path(path)
        self._lock = threading.Lock()
        self._data: Dict[str, Any] = self._load()

    def _load(self) -> Dict[str, Any]:
        if not self.path.exists():
            return {}
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except json.JSONDecodeError as exc:
            log.warning(f"Ignoring unreadable store {self.path}: {exc}")
            return {}
        if not isinstance(data, dict):
            log.warning(f"Ignoring store {self.path}: top level is not an object")
            return {}
        log.debug(f"Loaded {len(data)} key(s) from {self.path}")
        return data

    def _flush(self, data: Dict[str, Any]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp = tempfile.mkstemp(
            prefix=f".{self.path.name}.", suffix=".tmp", dir=self.path.parent
        )
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(data, f, indent=2, ensure_ascii=False, sort_keys=True)
            os.replace(tmp, self.path)
        except BaseException:
            if os.path.exists(tmp):
                os.unlink(tmp)
            raise

    def get(self, key: str, default: Any = None) -> Any:
        with self._lock:
            return self._data.get(key, default)

    def set(self, key: str, value: Any) -> None:
        with self._lock:
            # memory follows the file only after a successful write
            data = {**self._data, key: value}
            self._flush(data)
            self._data = data

    def delete(self, key: str) -> None:
        with self._lock:
            if key in self._data:
                data = {k: v for k, v in self._data.items() if k != key}
                self._flush(data)
                self._data = data

    def keys(self) -> Iterator[str]:
        with self._lock:
            return iter(sorted(self._data))
