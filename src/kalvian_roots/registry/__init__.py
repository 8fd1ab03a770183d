from __future__ import annotations

from .entities import Couple, Family, Person
from .family_ids import FamilyIdRegistry, looks_like_family_id, normalize_family_id

__all__ = [
    "Couple",
    "Family",
    "FamilyIdRegistry",
    "Person",
    "looks_like_family_id",
    "normalize_family_id",
]
