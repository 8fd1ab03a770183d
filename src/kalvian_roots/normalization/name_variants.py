"""
Built-in clusters of Finnish / Swedish given-name variants as they appear in
Kälviä parish records. Keys and members are already in normalized form
(lowercase, ä/ö/å folded).

The table is read-only; learned equivalences live in NameEquivalenceState.
"""

from __future__ import annotations

from types import MappingProxyType
from typing import Dict, FrozenSet, Iterable, Mapping

NAME_CLUSTERS: tuple = (
    ("liisa", "elisabet", "lisa", "elisa"),
    ("johan", "juho", "johannes", "juhana"),
    ("maria", "maija", "mari"),
    ("erik", "eero", "erkki"),
    ("kristina", "kirstin", "kirsti"),
    ("henrik", "heikki", "henrikki"),
    ("margareta", "margeta", "marketta"),
    ("katharina", "katariina", "kaarina"),
    ("gertrud", "kerttuli", "kerttu"),
    ("jakob", "jaakko"),
    ("mattias", "matti"),
    ("anders", "antti"),
    ("elias", "eljas"),
    ("brita", "riitta", "birgitta"),
    ("anna", "anni"),
    ("valborg", "walborg"),
)


def _build(clusters: Iterable[Iterable[str]]) -> Mapping[str, FrozenSet[str]]:
    table: Dict[str, set] = {}
    for cluster in clusters:
        members = set(cluster)
        for name in members:
            table.setdefault(name, set()).update(members - {name})
    return MappingProxyType({k: frozenset(v) for k, v in table.items()})


BUILTIN_EQUIVALENCES: Mapping[str, FrozenSet[str]] = _build(NAME_CLUSTERS)
