# tests/test_registry.py

from __future__ import annotations

import pytest

from kalvian_roots.core.exceptions import ParsingFailed
from kalvian_roots.registry.entities import Couple, Family, Person
from kalvian_roots.registry.family_ids import (
    FamilyIdRegistry,
    looks_like_family_id,
    normalize_family_id,
)
from kalvian_roots.registry.keys import ROLE_CHILD, ROLE_PARENT, key_for, person_keys
from kalvian_roots.registry.serialization import (
    family_from_dict,
    family_to_dict,
    person_from_dict,
)


# -----------------------------
# Family IDs
# -----------------------------

def test_normalize_family_id_is_idempotent() -> None:
    assert normalize_family_id("  korpi   6 ") == "KORPI 6"
    assert normalize_family_id(normalize_family_id("iso-peitso iii 2")) == "ISO-PEITSO III 2"
    assert normalize_family_id("   ") is None
    assert normalize_family_id(None) is None


@pytest.mark.parametrize(
    "text",
    ["KORPI 6", "ISO-PEITSO III 2", "JÄNESNIEMI 5", "PIENI-PORKOLA 5", "HYYPPÄ 10B", "korpi 6"],
)
def test_looks_like_family_id_accepts(text: str) -> None:
    assert looks_like_family_id(text)


@pytest.mark.parametrize("text", ["KORPI", "6", "Korpi six", "", None, "{KORPI 6}"])
def test_looks_like_family_id_rejects(text) -> None:
    assert not looks_like_family_id(text)


def test_registry_membership() -> None:
    open_registry = FamilyIdRegistry()
    assert open_registry.is_valid_family_id("ANYTHING 1")
    assert not open_registry.is_valid_family_id("nothing")

    registry = FamilyIdRegistry(["korpi 6", "KORPI 5"])
    assert len(registry) == 2
    assert "KORPI 6" in registry
    assert registry.is_valid_family_id(" korpi 5")
    assert not registry.is_valid_family_id("KORPI 7")
    assert list(registry) == ["KORPI 5", "KORPI 6"]

    with pytest.raises(ValueError):
        registry.register("not an id")


# -----------------------------
# Entities
# -----------------------------

def test_person_derived_fields() -> None:
    p = Person(name="Maria", patronymic="Matint.", birth_date="12.02.1781", marriage_date="03")
    assert p.display_name == "Maria Matint."
    assert p.id == "Maria-Matint.-12.02.1781"
    assert p.best_marriage_date == "03"
    assert p.is_married

    p.full_marriage_date = "14.10.1803"
    assert p.best_marriage_date == "14.10.1803"

    assert Person(name="Erik").id == "Erik--"
    assert not Person(name="Erik").is_married


def test_person_validation_warnings() -> None:
    assert Person(name="Matti", birth_date="06.01.1759").validate_data() == []
    warnings = Person(name=" ", birth_date="n 1730").validate_data()
    assert "Person name is required" in warnings
    assert any("birth date" in w for w in warnings)


def test_family_views() -> None:
    matti = Person(name="Matti")
    first_wife = Person(name="Brita")
    second_wife = Person(name="Kaisa")
    a = Person(name="Maria", spouse="Antti")
    b = Person(name="Juho")
    family = Family(
        family_id="KORPI 6",
        page_references=["105"],
        couples=[
            Couple(husband=matti, wife=first_wife, children=[a], children_died_infancy=1),
            Couple(husband=matti, wife=second_wife, children=[b], children_died_infancy=2),
        ],
    )

    assert family.all_parents == [matti, first_wife, second_wife]
    assert family.all_children == [a, b]
    assert family.married_children == [a]
    assert family.total_children_died_infancy == 3
    assert family.page_reference_string == "page 105"
    assert family.find_couple_for(second_wife) is family.couples[1]
    assert family.couples[0].partner_of(matti) is first_wife
    assert family.couples[1].partner_of(second_wife) is matti

    family.page_references.append("106")
    assert family.page_reference_string == "pages 105, 106"

    assert Family(family_id="KORPI 9").page_reference_string == "unknown pages"


def test_family_structure_warnings() -> None:
    family = Family(family_id="", couples=[Couple(husband=Person(name="Matti"))])
    warnings = family.validate_structure()
    assert "Family ID is required" in warnings
    assert "Page references are required" in warnings
    assert "Couple 1: Wife name is required" in warnings


# -----------------------------
# Person keys
# -----------------------------

def test_plain_keys_without_collisions(families_data) -> None:
    family = family_from_dict(families_data[0])
    keys = [pk.key for pk in person_keys(family)]
    assert keys == ["Matti Erikinp.", "Brita Jaakont.", "Maria", "Erik", "Liisa", "Jaakko"]


def test_colliding_names_get_qualified_keys() -> None:
    father = Person(name="Matti", patronymic="Matinp.", birth_date="1730")
    son = Person(name="Matti", patronymic="Matinp.", birth_date="01.02.1760")
    maria_1 = Person(name="Maria")
    maria_2 = Person(name="maria ")
    family = Family(
        family_id="KORPI 1",
        couples=[Couple(husband=father, wife=Person(name="Anna"), children=[son, maria_1, maria_2])],
    )

    keys = {id(pk.person): pk for pk in person_keys(family)}
    assert keys[id(father)].key == "Matti Matinp. (parent, b. 1730)"
    assert keys[id(father)].role == ROLE_PARENT
    assert keys[id(son)].key == "Matti Matinp. (child, b. 1760)"
    assert keys[id(maria_1)].key == "Maria (child)"
    assert keys[id(maria_2)].key == "maria (child) #2"
    assert key_for(family, son, ROLE_CHILD) == "Matti Matinp. (child, b. 1760)"
    assert key_for(family, Person(name="Nobody")) is None


# -----------------------------
# Serialization
# -----------------------------

def test_family_from_camel_case(families_data) -> None:
    family = family_from_dict(families_data[0])
    assert family.family_id == "KORPI 6"
    assert family.page_references == ["105", "106"]
    father = family.primary_couple.husband
    assert father.as_child_reference == "KORPI 5"
    liisa = family.all_children[2]
    assert liisa.spouse_parents_family_id == "JÄNESNIEMI 5"
    assert family.primary_couple.children_died_infancy == 2


def test_family_from_snake_case_and_legacy_shape() -> None:
    family = family_from_dict(
        {
            "family_id": "korpi 2",
            "page_references": "12",
            "father": {"name": "Erik", "as_child_reference": " korpi  1 "},
            "mother": {"name": "Kaisa"},
            "marriage_date": "50",
            "children": [{"name": "Matti"}],
        }
    )
    assert family.family_id == "KORPI 2"
    assert family.page_references == ["12"]
    couple = family.primary_couple
    assert couple.husband.as_child_reference == "KORPI 1"
    assert couple.marriage_date == "50"
    assert [c.name for c in couple.children] == ["Matti"]


def test_to_dict_and_back_keeps_family(families_data) -> None:
    family = family_from_dict(families_data[0])
    again = family_from_dict(family_to_dict(family))
    assert again == family


@pytest.mark.parametrize(
    "data",
    [
        "not a dict",
        {"pageReferences": ["1"]},
        {"familyId": "KORPI 1", "couples": "nope"},
        {"familyId": "KORPI 1", "couples": [{"children": [{"birthDate": "1700"}]}]},
        {"familyId": "KORPI 1", "couples": [{"childrenDiedInfancy": "many"}]},
    ],
)
def test_unusable_input_raises_parsing_failed(data) -> None:
    with pytest.raises(ParsingFailed):
        family_from_dict(data)


def test_person_from_dict_requires_name() -> None:
    with pytest.raises(ParsingFailed):
        person_from_dict({"birthDate": "1700"})
