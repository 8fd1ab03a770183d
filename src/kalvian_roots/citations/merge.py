from __future__ import annotations

from dataclasses import replace
from typing import Dict, List, Optional, Tuple

from kalvian_roots.citations.dates import is_full_date, is_year_only
from kalvian_roots.registry.entities import Family, Person

# Merged fields, in disclosure order
MERGE_FIELDS = ("death_date", "full_marriage_date", "spouse", "spouse_birth_date")

FIELD_LABELS: Dict[str, str] = {
    "death_date": "death date",
    "full_marriage_date": "marriage date",
    "spouse": "spouse",
    "spouse_birth_date": "spouse's birth date",
}


def _present(value: Optional[str]) -> bool:
    return bool(value and value.strip())


def copy_person(person: Person) -> Person:
    return replace(person, note_markers=list(person.note_markers))


def merge_fields(original: Person, candidate: Person) -> Tuple[Person, List[str]]:
    """
    Fill gaps in ``original`` from ``candidate``.

    Returns a merged copy and the names of the fields that changed. A value
    already present on ``original`` is never replaced, with one exception:
    a year-only marriage date yields to a full dd.mm.yyyy date, which is
    stored as ``full_marriage_date``.
    """
    merged = copy_person(original)
    changed: List[str] = []

    if not _present(original.death_date) and _present(candidate.death_date):
        merged.death_date = candidate.death_date
        changed.append("death_date")

    current = original.best_marriage_date
    offered = candidate.best_marriage_date
    if (not _present(current) or is_year_only(current)) and is_full_date(offered):
        merged.full_marriage_date = offered.strip()
        changed.append("full_marriage_date")

    if not _present(original.spouse) and _present(candidate.spouse):
        merged.spouse = candidate.spouse
        changed.append("spouse")

    if not _present(original.spouse_birth_date) and _present(candidate.spouse_birth_date):
        merged.spouse_birth_date = candidate.spouse_birth_date
        changed.append("spouse_birth_date")

    return merged, changed


def candidate_from_as_parent(subject: Person, family: Family) -> Person:
    """
    The subject as seen in the family they head: their own line plus the
    marriage date and spouse of their couple there.
    """
    candidate = copy_person(subject)
    couple = family.find_couple_for(subject)
    if couple is None:
        return candidate

    if is_full_date(couple.full_marriage_date):
        candidate.full_marriage_date = couple.full_marriage_date
    elif not _present(candidate.best_marriage_date) and _present(couple.best_marriage_date):
        candidate.marriage_date = couple.best_marriage_date
    elif is_full_date(couple.marriage_date) and not is_full_date(candidate.best_marriage_date):
        candidate.full_marriage_date = couple.marriage_date

    partner = couple.partner_of(subject)
    if partner is not None:
        if not _present(candidate.spouse):
            candidate.spouse = partner.display_name
        if not _present(candidate.spouse_birth_date):
            candidate.spouse_birth_date = partner.birth_date
    return candidate


def disclosure_line(name: str, field_name: str, value: str, pages: str) -> str:
    """'Maria's death date 12.03.1795 is on page 120'"""
    return f"{name}'s {FIELD_LABELS[field_name]} {value} is on {pages}"
