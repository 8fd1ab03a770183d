from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Dict, List, Optional

FULL_DATE_RE = re.compile(r"^\d{1,2}\.\d{1,2}\.\d{4}$")


# -----------------------------
# Person
# -----------------------------

@dataclass(slots=True)
class Person:
    """
    One person line from a family record.

    Dates stay in their source format ('22.12.1701', '1795', '73', 'n 1730').
    ``marriage_date`` is what the nuclear family printed (often two digits);
    ``full_marriage_date`` and the other enhancement fields only carry data
    merged in from referenced families.
    """
    name: str
    patronymic: Optional[str] = None
    birth_date: Optional[str] = None
    death_date: Optional[str] = None
    marriage_date: Optional[str] = None
    spouse: Optional[str] = None

    # {FAMILY ID} tags
    as_child_reference: Optional[str] = None
    as_parent_reference: Optional[str] = None

    # <ID> notation
    family_search_id: Optional[str] = None
    note_markers: List[str] = field(default_factory=list)

    # Enhancement fields
    father_name: Optional[str] = None
    mother_name: Optional[str] = None
    full_marriage_date: Optional[str] = None
    spouse_birth_date: Optional[str] = None
    spouse_parents_family_id: Optional[str] = None

    @property
    def display_name(self) -> str:
        if self.patronymic:
            return f"{self.name} {self.patronymic}"
        return self.name

    @property
    def id(self) -> str:
        return f"{self.name}-{self.patronymic or ''}-{self.birth_date or ''}"

    @property
    def best_marriage_date(self) -> Optional[str]:
        return self.full_marriage_date or self.marriage_date

    @property
    def is_married(self) -> bool:
        return bool(self.spouse or self.marriage_date or self.full_marriage_date)

    def validate_data(self) -> List[str]:
        warnings: List[str] = []
        if not self.name.strip():
            warnings.append("Person name is required")
        if self.birth_date and not FULL_DATE_RE.match(self.birth_date.strip()):
            warnings.append(f"Unusual birth date format: {self.birth_date}")
        if self.death_date and not FULL_DATE_RE.match(self.death_date.strip()):
            warnings.append(f"Unusual death date format: {self.death_date}")
        return warnings


# -----------------------------
# Couple
# -----------------------------

@dataclass(slots=True)
class Couple:
    husband: Optional[Person] = None
    wife: Optional[Person] = None
    marriage_date: Optional[str] = None
    full_marriage_date: Optional[str] = None
    children: List[Person] = field(default_factory=list)
    children_died_infancy: Optional[int] = None
    couple_notes: List[str] = field(default_factory=list)

    @property
    def parents(self) -> List[Person]:
        return [p for p in (self.husband, self.wife) if p is not None]

    @property
    def best_marriage_date(self) -> Optional[str]:
        return self.full_marriage_date or self.marriage_date

    def partner_of(self, person: Person) -> Optional[Person]:
        if self.husband is person or (self.husband is not None and self.husband == person):
            return self.wife
        if self.wife is person or (self.wife is not None and self.wife == person):
            return self.husband
        return None


# -----------------------------
# Family
# -----------------------------

@dataclass(slots=True)
class Family:
    """
    A family record ('KORPI 6', 'ISO-PEITSO III 2').

    Even a simple family has one couple; second and third couples are the
    additional-spouse sections of the source record.
    """
    family_id: str
    page_references: List[str] = field(default_factory=list)
    couples: List[Couple] = field(default_factory=list)
    notes: List[str] = field(default_factory=list)
    note_definitions: Dict[str, str] = field(default_factory=dict)

    @property
    def primary_couple(self) -> Optional[Couple]:
        return self.couples[0] if self.couples else None

    @property
    def all_parents(self) -> List[Person]:
        """Husbands and wives across couples, a remarried parent listed once."""
        parents: List[Person] = []
        for couple in self.couples:
            for p in couple.parents:
                if not any(p is q or p == q for q in parents):
                    parents.append(p)
        return parents

    @property
    def all_children(self) -> List[Person]:
        return [child for couple in self.couples for child in couple.children]

    @property
    def married_children(self) -> List[Person]:
        return [child for child in self.all_children if child.is_married]

    @property
    def total_children_died_infancy(self) -> int:
        return sum(c.children_died_infancy or 0 for c in self.couples)

    @property
    def page_reference_string(self) -> str:
        if not self.page_references:
            return "unknown pages"
        if len(self.page_references) == 1:
            return f"page {self.page_references[0]}"
        return f"pages {', '.join(self.page_references)}"

    @property
    def is_empty(self) -> bool:
        return not self.couples or not (self.all_parents or self.all_children)

    def find_couple_for(self, person: Person) -> Optional[Couple]:
        """The couple in which ``person`` is a husband or wife."""
        for couple in self.couples:
            if any(p is person for p in couple.parents):
                return couple
        for couple in self.couples:
            if person in couple.parents:
                return couple
        return None

    def find_couple_for_child(self, child: Person) -> Optional[Couple]:
        for couple in self.couples:
            if any(c is child for c in couple.children):
                return couple
        return None

    def validate_structure(self) -> List[str]:
        warnings: List[str] = []

        if not self.family_id:
            warnings.append("Family ID is required")
        if not self.page_references:
            warnings.append("Page references are required")
        if not self.couples:
            warnings.append("At least one couple is required")

        for index, couple in enumerate(self.couples, start=1):
            if couple.husband is None or not couple.husband.name:
                warnings.append(f"Couple {index}: Husband name is required")
            if couple.wife is None or not couple.wife.name:
                warnings.append(f"Couple {index}: Wife name is required")

            names = [c.name.lower() for c in couple.children]
            if len(names) != len(set(names)):
                warnings.append(f"Couple {index}: Duplicate child names found")

        return warnings
