from __future__ import annotations

from .overrides import CitationOverrides
from .store import InMemoryStore, JsonFileStore, KeyValueStore

__all__ = [
    "CitationOverrides",
    "InMemoryStore",
    "JsonFileStore",
    "KeyValueStore",
]
