from __future__ import annotations

from dataclasses import dataclass
from types import MappingProxyType
from typing import Dict, List, Mapping, Optional, Tuple

from kalvian_roots.registry.entities import Family, Person

# -----------------------------
# Slot / warning kinds
# -----------------------------

SLOT_AS_CHILD = "as_child"
SLOT_AS_PARENT = "as_parent"
SLOT_SPOUSE_AS_CHILD = "spouse_as_child"
SLOTS = (SLOT_AS_CHILD, SLOT_AS_PARENT, SLOT_SPOUSE_AS_CHILD)

WARN_FAMILY_NOT_FOUND = "family_not_found"
WARN_PARSING_FAILED = "parsing_failed"
WARN_INVALID_REFERENCE = "invalid_reference"
WARN_SUBJECT_NOT_FOUND = "subject_not_found"
WARN_AMBIGUOUS = "ambiguous_reference"
WARN_BIRTH_DATE_MISMATCH = "birth_date_mismatch"
WARN_MISPLACED_TAG = "misplaced_tag"


@dataclass(frozen=True, slots=True)
class ResolutionWarning:
    """One tolerated per-reference problem. The slot is simply absent (or has no subject)."""
    kind: str
    slot: Optional[str]
    key: str
    reference: Optional[str]
    message: str
    error: Optional[Exception] = None


class FamilyNetwork:
    """
    A nuclear family plus the families its tags point at.

    Every resolved family is stored once in ``families`` (keyed by family
    ID); the slot mappings only hold IDs. Built by FamilyNetworkBuilder;
    everything exposed here is a read-only view.
    """

    def __init__(self, main_family: Family):
        self.main_family = main_family
        self._families: Dict[str, Family] = {}
        self._slots: Dict[str, Dict[str, str]] = {slot: {} for slot in SLOTS}
        self._subjects: Dict[Tuple[str, str], Person] = {}
        self._warnings: List[ResolutionWarning] = []

    # -- builder side -------------------------------------------------------

    def _attach(self, slot: str, key: str, family: Family, subject: Optional[Person]) -> None:
        self._families.setdefault(family.family_id, family)
        self._slots[slot][key] = family.family_id
        if subject is not None:
            self._subjects[(slot, key)] = subject

    def _warn(self, warning: ResolutionWarning) -> None:
        self._warnings.append(warning)

    # -- views --------------------------------------------------------------

    @property
    def families(self) -> Mapping[str, Family]:
        return MappingProxyType(self._families)

    @property
    def as_child_families(self) -> Mapping[str, str]:
        return MappingProxyType(self._slots[SLOT_AS_CHILD])

    @property
    def as_parent_families(self) -> Mapping[str, str]:
        return MappingProxyType(self._slots[SLOT_AS_PARENT])

    @property
    def spouse_as_child_families(self) -> Mapping[str, str]:
        return MappingProxyType(self._slots[SLOT_SPOUSE_AS_CHILD])

    @property
    def subjects(self) -> Mapping[Tuple[str, str], Person]:
        return MappingProxyType(self._subjects)

    @property
    def warnings(self) -> List[ResolutionWarning]:
        return list(self._warnings)

    def slot_mapping(self, slot: str) -> Mapping[str, str]:
        return MappingProxyType(self._slots[slot])

    def _family_in(self, slot: str, key: str) -> Optional[Family]:
        fid = self._slots[slot].get(key)
        return self._families.get(fid) if fid else None

    def get_as_child_family(self, key: str) -> Optional[Family]:
        return self._family_in(SLOT_AS_CHILD, key)

    def get_as_parent_family(self, key: str) -> Optional[Family]:
        return self._family_in(SLOT_AS_PARENT, key)

    def get_spouse_as_child_family(self, spouse: str) -> Optional[Family]:
        return self._family_in(SLOT_SPOUSE_AS_CHILD, spouse)

    def subject_for(self, slot: str, key: str) -> Optional[Person]:
        return self._subjects.get((slot, key))

    def warnings_for(self, slot: str, key: str) -> List[ResolutionWarning]:
        return [w for w in self._warnings if w.slot == slot and w.key == key]

    @property
    def all_families(self) -> List[Family]:
        return [self.main_family, *self._families.values()]

    @property
    def total_resolved_families(self) -> int:
        return len(self._families)

    def summary(self) -> str:
        return "\n".join(
            [
                "FamilyNetwork Summary:",
                f"- Main Family: {self.main_family.family_id}",
                f"- AsChild Families: {len(self._slots[SLOT_AS_CHILD])}",
                f"- AsParent Families: {len(self._slots[SLOT_AS_PARENT])}",
                f"- Spouse AsChild Families: {len(self._slots[SLOT_SPOUSE_AS_CHILD])}",
                f"- Total Resolved: {self.total_resolved_families}",
                f"- Warnings: {len(self._warnings)}",
            ]
        )
