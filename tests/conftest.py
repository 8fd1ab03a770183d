import sys
from pathlib import Path

import pytest

# Ensure the project src directory is on sys.path for test imports
PROJECT_ROOT = Path(__file__).resolve().parent.parent
SRC_PATH = PROJECT_ROOT / "src"
if SRC_PATH not in sys.path:
    sys.path.insert(0, str(SRC_PATH))

from kalvian_roots.adapters.json_source import JsonFamilySource  # noqa: E402
from kalvian_roots.normalization.name_equivalence import NameEquivalenceEngine  # noqa: E402
from kalvian_roots.persistence.store import InMemoryStore  # noqa: E402


# -----------------------------
# KORPI 6 and the families it points at
# -----------------------------

def korpi_families():
    """
    KORPI 6 (nuclear) with:
      - father Matti from KORPI 5, mother Brita from HYYPPÄ 3
      - daughter Maria heading ISO-PEITSO III 2
      - daughter Liisa tagged with PIENI-PORKOLA 5 (not in the file)
      - Liisa's husband Juho from JÄNESNIEMI 5
    The resolved families carry tags of their own (KORPI 4, ISO-PEITSO II 1)
    which must never be followed.
    """
    return [
        {
            "familyId": "KORPI 6",
            "pageReferences": ["105", "106"],
            "couples": [
                {
                    "husband": {
                        "name": "Matti",
                        "patronymic": "Erikinp.",
                        "birthDate": "06.01.1759",
                        "deathDate": "02.05.1810",
                        "asChildReference": "KORPI 5",
                    },
                    "wife": {
                        "name": "Brita",
                        "patronymic": "Jaakont.",
                        "birthDate": "14.03.1762",
                        "asChildReference": "HYYPPÄ 3",
                    },
                    "marriageDate": "80",
                    "children": [
                        {
                            "name": "Maria",
                            "birthDate": "12.02.1781",
                            "spouse": "Antti Antinp.",
                            "marriageDate": "03",
                            "asParentReference": "ISO-PEITSO III 2",
                        },
                        {
                            "name": "Erik",
                            "birthDate": "05.05.1783",
                            "deathDate": "1784",
                        },
                        {
                            "name": "Liisa",
                            "birthDate": "22.09.1785",
                            "spouse": "Juho Juhonp.",
                            "marriageDate": "06",
                            "asParentReference": "PIENI-PORKOLA 5",
                            "spouseParentsFamilyId": "JÄNESNIEMI 5",
                        },
                        {
                            "name": "Jaakko",
                            "birthDate": "01.01.1788",
                        },
                    ],
                    "childrenDiedInfancy": 2,
                }
            ],
            "notes": ["Muutti Kokkolaan 1812."],
        },
        {
            "familyId": "KORPI 5",
            "pageReferences": ["100"],
            "couples": [
                {
                    "husband": {
                        "name": "Erik",
                        "patronymic": "Matinp.",
                        "birthDate": "1725",
                        "asChildReference": "KORPI 4",
                    },
                    "wife": {"name": "Kaisa", "patronymic": "Antint.", "birthDate": "1730"},
                    "marriageDate": "n 1750",
                    "children": [
                        {"name": "Johan", "birthDate": "10.10.1755"},
                        {
                            "name": "Matti",
                            "birthDate": "06.01.1759",
                            "asParentReference": "KORPI 6",
                        },
                        {"name": "Maria", "birthDate": "1761"},
                    ],
                }
            ],
        },
        {
            "familyId": "KORPI 4",
            "pageReferences": ["98"],
            "couples": [
                {
                    "husband": {"name": "Matti", "patronymic": "Heikinp."},
                    "wife": {"name": "Liisa"},
                    "children": [{"name": "Erik", "birthDate": "1725"}],
                }
            ],
        },
        {
            "familyId": "HYYPPÄ 3",
            "pageReferences": ["88"],
            "couples": [
                {
                    "husband": {"name": "Jaakko", "patronymic": "Jaakonp."},
                    "wife": {"name": "Anna", "patronymic": "Eliant."},
                    "children": [
                        {"name": "Brita", "birthDate": "14.03.1762"},
                        {"name": "Anna", "birthDate": "1764"},
                    ],
                }
            ],
        },
        {
            "familyId": "ISO-PEITSO III 2",
            "pageReferences": ["120"],
            "couples": [
                {
                    "husband": {
                        "name": "Antti",
                        "patronymic": "Antinp.",
                        "birthDate": "1778",
                        "asChildReference": "ISO-PEITSO II 1",
                    },
                    "wife": {
                        "name": "Maria",
                        "patronymic": "Matint.",
                        "birthDate": "12.02.1781",
                        "deathDate": "1846",
                        "asChildReference": "KORPI 6",
                    },
                    "fullMarriageDate": "14.10.1803",
                    "children": [{"name": "Kaisa", "birthDate": "1805"}],
                }
            ],
        },
        {
            "familyId": "ISO-PEITSO II 1",
            "pageReferences": ["118"],
            "couples": [
                {
                    "husband": {"name": "Antti", "patronymic": "Juhonp."},
                    "wife": {"name": "Valborg"},
                    "children": [{"name": "Antti", "birthDate": "1778"}],
                }
            ],
        },
        {
            "familyId": "JÄNESNIEMI 5",
            "pageReferences": ["140"],
            "couples": [
                {
                    "husband": {"name": "Johan", "patronymic": "Erikinp."},
                    "wife": {"name": "Kirsti"},
                    "children": [
                        {"name": "Juho", "birthDate": "1780"},
                        {"name": "Erkki", "birthDate": "1782"},
                    ],
                }
            ],
        },
    ]


@pytest.fixture
def families_data():
    return korpi_families()


@pytest.fixture
def source(families_data):
    return JsonFamilySource.from_data(families_data)


@pytest.fixture
def store():
    return InMemoryStore()


@pytest.fixture
def engine(store):
    return NameEquivalenceEngine(store)


class ScriptedHandler:
    """Confirmation handler with fixed answers; optionally waits on a gate first."""

    def __init__(self, answer=True, gate=None):
        self.answer = answer
        self.gate = gate
        self.calls = []

    async def confirm(self, pair):
        self.calls.append(pair)
        if self.gate is not None:
            await self.gate.wait()
        return self.answer


@pytest.fixture
def handler_factory():
    return ScriptedHandler
