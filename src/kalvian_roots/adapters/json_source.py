"""
Reference adapter: families from a JSON file of already-parsed records.

Accepted layouts:

    [ {"familyId": "KORPI 6", ...}, ... ]
    {"families": [ ... ]}
    {"KORPI 6": {...}, "KORPI 5": "raw family text", ...}

A family's "text" is its JSON object re-serialized; a plain string entry is
passed through as-is and only parses if it is itself a JSON object. This
gives the builder the same extract -> parse -> validate path that the real
text extractor and AI parser provide.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Dict, Iterable, Optional

from kalvian_roots.core.exceptions import FamilyNotFound, ParsingFailed
from kalvian_roots.logging import get_logger
from kalvian_roots.registry.entities import Family
from kalvian_roots.registry.family_ids import (
    FamilyIdRegistry,
    looks_like_family_id,
    normalize_family_id,
)
from kalvian_roots.registry.serialization import family_from_dict

log = get_logger("json_source")


class JsonFamilySource:
    def __init__(self, entries: Dict[str, Any], registry: Optional[FamilyIdRegistry] = None):
        self._entries: Dict[str, Any] = {}
        for family_id, entry in entries.items():
            fid = normalize_family_id(family_id)
            if fid:
                self._entries[fid] = entry
        if registry is None:
            registry = FamilyIdRegistry(
                fid for fid in self._entries if looks_like_family_id(fid)
            )
        self.registry = registry
        self.requests: Dict[str, int] = {}

    # -- construction -------------------------------------------------------

    @classmethod
    def from_data(cls, data: Any, registry: Optional[FamilyIdRegistry] = None) -> "JsonFamilySource":
        if isinstance(data, dict) and isinstance(data.get("families"), list):
            data = data["families"]

        if isinstance(data, list):
            entries: Dict[str, Any] = {}
            for item in data:
                if not isinstance(item, dict):
                    raise ParsingFailed("family list entries must be objects")
                fid = item.get("familyId", item.get("family_id"))
                if not fid:
                    raise ParsingFailed("family list entry without familyId")
                entries[fid] = item
            return cls(entries, registry)

        if isinstance(data, dict):
            return cls(data, registry)

        raise ParsingFailed("families file must hold a list or an object")

    @classmethod
    def from_file(cls, path: Path | str, registry: Optional[FamilyIdRegistry] = None) -> "JsonFamilySource":
        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(path)
        with open(path, "r", encoding="utf-8") as f:
            try:
                data = json.load(f)
            except json.JSONDecodeError as exc:
                raise ParsingFailed(f"{path}: {exc}") from exc
        source = cls.from_data(data, registry)
        log.info(f"Loaded {len(source)} family record(s) from {path}")
        return source

    def __len__(self) -> int:
        return len(self._entries)

    @property
    def family_ids(self) -> Iterable[str]:
        return sorted(self._entries)

    # -- ports --------------------------------------------------------------

    async def extract_family_text(self, family_id: str) -> str:
        fid = normalize_family_id(family_id) or ""
        self.requests[fid] = self.requests.get(fid, 0) + 1
        entry = self._entries.get(fid)
        if entry is None:
            raise FamilyNotFound(fid)
        if isinstance(entry, str):
            return entry
        return json.dumps(entry, ensure_ascii=False)

    async def parse_family(self, family_id: str, text: str) -> Family:
        try:
            data = json.loads(text)
        except json.JSONDecodeError as exc:
            raise ParsingFailed(f"{family_id}: not a structured family record") from exc
        if isinstance(data, dict) and "familyId" not in data and "family_id" not in data:
            data = {**data, "familyId": family_id}
        return family_from_dict(data)

    def is_valid_family_id(self, family_id: str) -> bool:
        return self.registry.is_valid_family_id(family_id)
