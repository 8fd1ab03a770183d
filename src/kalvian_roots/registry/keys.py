"""
Disambiguated person keys.

Network mappings and citation maps are keyed by a person's display name.
When two people in one family normalize to the same name (a father and son
both 'Matti Matinp.', two daughters named 'Maria' from different marriages)
every colliding person gets a qualified key instead:

    'Maria (child, b. 1751)'
    'Maria (child)'            no birth year available
    'Maria (child) #2'         still colliding

Collisions are detected over the whole family before any key is emitted.
"""

from __future__ import annotations

import re
from collections import Counter
from dataclasses import dataclass
from typing import Dict, List, Optional

from kalvian_roots.normalization.name_equivalence import normalize
from kalvian_roots.registry.entities import Family, Person

ROLE_PARENT = "parent"
ROLE_CHILD = "child"

_YEAR_RE = re.compile(r"(\d{4})")


@dataclass(frozen=True, slots=True)
class PersonKey:
    role: str
    person: Person
    key: str


def _birth_year(person: Person) -> Optional[str]:
    if not person.birth_date:
        return None
    m = _YEAR_RE.search(person.birth_date)
    return m.group(1) if m else None


def _qualified(person: Person, role: str) -> str:
    year = _birth_year(person)
    base = person.display_name.strip()
    if year:
        return f"{base} ({role}, b. {year})"
    return f"{base} ({role})"


def _members(family: Family) -> List[tuple]:
    members = [(ROLE_PARENT, p) for p in family.all_parents]
    members += [(ROLE_CHILD, c) for c in family.all_children]
    return members


def person_keys(family: Family) -> List[PersonKey]:
    """Keys for every parent and child of ``family``, in family order."""
    members = _members(family)
    counts = Counter(normalize(p.display_name) for _, p in members)

    keys: List[PersonKey] = []
    used: Counter = Counter()
    for role, person in members:
        if counts[normalize(person.display_name)] > 1:
            key = _qualified(person, role)
        else:
            key = person.display_name.strip()

        used[normalize(key)] += 1
        n = used[normalize(key)]
        if n > 1:
            key = f"{key} #{n}"
        keys.append(PersonKey(role=role, person=person, key=key))
    return keys


def key_map(family: Family) -> Dict[int, PersonKey]:
    """id(person) -> PersonKey, for lookups while walking the family."""
    return {id(pk.person): pk for pk in person_keys(family)}


def key_for(family: Family, person: Person, role: Optional[str] = None) -> Optional[str]:
    for pk in person_keys(family):
        if pk.person is person and (role is None or pk.role == role):
            return pk.key
    for pk in person_keys(family):
        if pk.person == person and (role is None or pk.role == role):
            return pk.key
    return None
