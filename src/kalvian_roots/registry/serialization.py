"""
serialization.py
Dict <-> entity conversion for families and networks.

Input side accepts both snake_case and the camelCase keys produced by the
upstream parser (``asChildReference``, ``pageReferences`` ...). A family may
also arrive in the flat legacy shape (``father`` / ``mother`` / ``children``
at the top level) and is then read as a single couple.

Output side is always snake_case, deterministic and JSON-safe.
"""

from __future__ import annotations

import re
from dataclasses import fields
from typing import Any, Dict, List, Mapping, Optional

from kalvian_roots.core.exceptions import ParsingFailed
from kalvian_roots.registry.entities import Couple, Family, Person
from kalvian_roots.registry.family_ids import normalize_family_id

_CAMEL_RE = re.compile(r"(?<!^)(?=[A-Z])")


def _snake(key: str) -> str:
    return _CAMEL_RE.sub("_", key).lower()


def _snaked(data: Mapping[str, Any]) -> Dict[str, Any]:
    return {_snake(str(k)): v for k, v in data.items()}


def _opt_str(value: Any) -> Optional[str]:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def _str_list(value: Any, what: str) -> List[str]:
    if value is None:
        return []
    if isinstance(value, str):
        return [value]
    if not isinstance(value, (list, tuple)):
        raise ParsingFailed(f"{what} must be a list")
    return [str(v) for v in value]


# -----------------------------
# Person
# -----------------------------

_PERSON_STR_FIELDS = (
    "patronymic",
    "birth_date",
    "death_date",
    "marriage_date",
    "spouse",
    "as_child_reference",
    "as_parent_reference",
    "family_search_id",
    "father_name",
    "mother_name",
    "full_marriage_date",
    "spouse_birth_date",
    "spouse_parents_family_id",
)


def person_from_dict(data: Any) -> Person:
    if not isinstance(data, Mapping):
        raise ParsingFailed(f"person entry must be an object, got {type(data).__name__}")
    d = _snaked(data)

    name = _opt_str(d.get("name"))
    if name is None:
        raise ParsingFailed("person entry has no name")

    person = Person(name=name)
    for attr in _PERSON_STR_FIELDS:
        setattr(person, attr, _opt_str(d.get(attr)))
    person.note_markers = _str_list(d.get("note_markers"), "noteMarkers")

    for attr in ("as_child_reference", "as_parent_reference", "spouse_parents_family_id"):
        value = getattr(person, attr)
        if value is not None:
            setattr(person, attr, normalize_family_id(value))
    return person


def person_to_dict(person: Person) -> Dict[str, Any]:
    out: Dict[str, Any] = {"name": person.name}
    for attr in _PERSON_STR_FIELDS:
        value = getattr(person, attr)
        if value is not None:
            out[attr] = value
    if person.note_markers:
        out["note_markers"] = list(person.note_markers)
    return out


# -----------------------------
# Couple / Family
# -----------------------------

def _optional_person(value: Any) -> Optional[Person]:
    return None if value is None else person_from_dict(value)


def couple_from_dict(data: Any) -> Couple:
    if not isinstance(data, Mapping):
        raise ParsingFailed("couple entry must be an object")
    d = _snaked(data)

    infancy = d.get("children_died_infancy")
    if infancy is not None:
        try:
            infancy = int(infancy)
        except (TypeError, ValueError) as exc:
            raise ParsingFailed(f"childrenDiedInfancy is not a number: {infancy!r}") from exc

    children = d.get("children") or []
    if not isinstance(children, list):
        raise ParsingFailed("children must be a list")

    return Couple(
        husband=_optional_person(d.get("husband", d.get("father"))),
        wife=_optional_person(d.get("wife", d.get("mother"))),
        marriage_date=_opt_str(d.get("marriage_date")),
        full_marriage_date=_opt_str(d.get("full_marriage_date")),
        children=[person_from_dict(c) for c in children],
        children_died_infancy=infancy,
        couple_notes=_str_list(d.get("couple_notes"), "coupleNotes"),
    )


def couple_to_dict(couple: Couple) -> Dict[str, Any]:
    out: Dict[str, Any] = {}
    if couple.husband is not None:
        out["husband"] = person_to_dict(couple.husband)
    if couple.wife is not None:
        out["wife"] = person_to_dict(couple.wife)
    if couple.marriage_date:
        out["marriage_date"] = couple.marriage_date
    if couple.full_marriage_date:
        out["full_marriage_date"] = couple.full_marriage_date
    out["children"] = [person_to_dict(c) for c in couple.children]
    if couple.children_died_infancy is not None:
        out["children_died_infancy"] = couple.children_died_infancy
    if couple.couple_notes:
        out["couple_notes"] = list(couple.couple_notes)
    return out


def family_from_dict(data: Any) -> Family:
    if not isinstance(data, Mapping):
        raise ParsingFailed("family must be an object")
    d = _snaked(data)

    family_id = normalize_family_id(d.get("family_id"))
    if family_id is None:
        raise ParsingFailed("family has no familyId")

    couples_raw = d.get("couples")
    if couples_raw is None and any(k in d for k in ("father", "mother", "husband", "wife")):
        couples_raw = [data]
    if couples_raw is None:
        couples_raw = []
    if not isinstance(couples_raw, list):
        raise ParsingFailed("couples must be a list")

    note_defs = d.get("note_definitions") or {}
    if not isinstance(note_defs, Mapping):
        raise ParsingFailed("noteDefinitions must be an object")

    return Family(
        family_id=family_id,
        page_references=_str_list(d.get("page_references"), "pageReferences"),
        couples=[couple_from_dict(c) for c in couples_raw],
        notes=_str_list(d.get("notes"), "notes"),
        note_definitions={str(k): str(v) for k, v in note_defs.items()},
    )


def family_to_dict(family: Family) -> Dict[str, Any]:
    return {
        "family_id": family.family_id,
        "page_references": list(family.page_references),
        "couples": [couple_to_dict(c) for c in family.couples],
        "notes": list(family.notes),
        "note_definitions": dict(family.note_definitions),
    }


# -----------------------------
# Network
# -----------------------------

def network_to_dict(network: Any) -> Dict[str, Any]:
    """
    JSON-safe view of a FamilyNetwork: the nuclear family, the flat family
    registry, the three slot mappings and the warnings.
    """
    warnings = []
    for w in network.warnings:
        warnings.append({f.name: getattr(w, f.name) for f in fields(w) if f.name != "error"})

    return {
        "main_family": network.main_family.family_id,
        "families": {
            fid: family_to_dict(fam) for fid, fam in sorted(network.families.items())
        },
        "as_child_families": dict(network.as_child_families),
        "as_parent_families": dict(network.as_parent_families),
        "spouse_as_child_families": dict(network.spouse_as_child_families),
        "warnings": warnings,
    }
