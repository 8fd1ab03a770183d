# src/kalvian_roots/registry/family_ids.py
from __future__ import annotations

import re
from typing import Iterable, Iterator, Optional, Set


# -----------------------------
# Family ID normalization
# -----------------------------

# 'KORPI 6', 'PIENI-PORKOLA 5', 'ISO-PEITSO III 2', 'HYYPPÄ 10B'
FAMILY_ID_RE = re.compile(r"^[A-ZÄÖÅ][A-ZÄÖÅ-]*(?:\s+[IVX]+)?\s+\d+[A-Z]?$")


def normalize_family_id(family_id: Optional[str]) -> Optional[str]:
    """
    Normalize a family ID:
      - strip whitespace
      - collapse inner whitespace
      - uppercase
    """
    if family_id is None:
        return None

    fid = " ".join(str(family_id).split()).upper()
    return fid or None


def looks_like_family_id(text: Optional[str]) -> bool:
    """Syntactic check only; registration is checked by FamilyIdRegistry."""
    fid = normalize_family_id(text)
    return bool(fid and FAMILY_ID_RE.match(fid))


# -----------------------------
# Registry of known IDs
# -----------------------------

class FamilyIdRegistry:
    """
    Decides whether a tag is a resolvable reference or inert text.

    With no known IDs every syntactically valid ID counts as registered;
    once IDs are registered, only those do.
    """

    def __init__(self, known_ids: Optional[Iterable[str]] = None):
        self._known: Set[str] = set()
        for fid in known_ids or ():
            self.register(fid)

    def register(self, family_id: str) -> str:
        fid = normalize_family_id(family_id)
        if fid is None or not FAMILY_ID_RE.match(fid):
            raise ValueError(f"Invalid family ID: {family_id!r}")
        self._known.add(fid)
        return fid

    def is_valid_family_id(self, family_id: Optional[str]) -> bool:
        if not looks_like_family_id(family_id):
            return False
        if not self._known:
            return True
        return normalize_family_id(family_id) in self._known

    def __contains__(self, family_id: object) -> bool:
        return isinstance(family_id, str) and normalize_family_id(family_id) in self._known

    def __iter__(self) -> Iterator[str]:
        return iter(sorted(self._known))

    def __len__(self) -> int:
        return len(self._known)
