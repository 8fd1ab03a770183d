"""
Citation synthesizer.

Turns families and family networks into citation text:

    Information on page 105 includes:
    Matti Erikinp., 6 January 1759 - 2 May 1810
    Maria Jaakont., b. 3 March 1762
    m. 1780
    Children:
    → Maria, b. 12 February 1781, m. Antti Antinp. 1803
    Additional Information:
    Maria's death date 1846 is on page 120

Person citations pull in the families the network resolved for that person;
facts found there are merged with ``merge_fields`` and each gained field is
disclosed with the page it came from. Anything unresolved falls back to the
plain nuclear family citation.
"""

from __future__ import annotations

from typing import Dict, List, Optional, Union

from kalvian_roots.citations.dates import extract_year, format_date, format_marriage_date
from kalvian_roots.citations.merge import (
    MERGE_FIELDS,
    candidate_from_as_parent,
    disclosure_line,
    merge_fields,
)
from kalvian_roots.logging import get_logger
from kalvian_roots.network.family_network import (
    SLOT_AS_CHILD,
    SLOT_AS_PARENT,
    SLOT_SPOUSE_AS_CHILD,
    FamilyNetwork,
)
from kalvian_roots.registry.entities import Couple, Family, Person
from kalvian_roots.registry.keys import ROLE_CHILD, ROLE_PARENT, PersonKey, person_keys

log = get_logger("citations")

TARGET_MARK = "→ "
WIDOW_WORD = "leski"


# -----------------------------
# Line formatters
# -----------------------------

def _markers(person: Person) -> str:
    return f" {' '.join(person.note_markers)}" if person.note_markers else ""


def _lifespan(person: Person) -> str:
    if person.birth_date and person.death_date:
        return f"{format_date(person.birth_date)} - {format_date(person.death_date)}"
    if person.birth_date:
        return f"b. {format_date(person.birth_date)}"
    if person.death_date:
        return f"d. {format_date(person.death_date)}"
    return ""


def format_parent(person: Person, widow_of: Optional[str] = None) -> str:
    parts = [person.display_name]
    if widow_of:
        parts.append(f"widow of {widow_of}")
    span = _lifespan(person)
    if span:
        parts.append(span)
    return ", ".join(parts) + _markers(person)


def format_child(child: Person) -> str:
    line = child.name
    if child.birth_date:
        line += f", b. {format_date(child.birth_date)}"
    if child.spouse and child.spouse.strip():
        line += f", m. {child.spouse.strip()}"
        marriage = child.best_marriage_date
        if marriage:
            line += f" {format_marriage_date(marriage, extract_year(child.birth_date))}"
    if child.death_date:
        line += f", d. {format_date(child.death_date)}"
    return line + _markers(child)


def _couple_marriage(couple: Couple) -> Optional[str]:
    if couple.full_marriage_date:
        return format_date(couple.full_marriage_date)
    if couple.marriage_date:
        birth_year = None
        for parent in couple.parents:
            birth_year = extract_year(parent.birth_date)
            if birth_year is not None:
                break
        return format_marriage_date(couple.marriage_date, birth_year)
    return None


def _widow_notes(family: Family) -> List[str]:
    return [n for n in family.notes if WIDOW_WORD in n.lower()]


def _widow_of(note: str) -> Optional[str]:
    head = note.lower().split(f" {WIDOW_WORD}")[0]
    name = note[: len(head)].strip()
    return name or None


def _is(a: Optional[Person], b: Optional[Person]) -> bool:
    return a is not None and b is not None and a is b


# -----------------------------
# Synthesizer
# -----------------------------

class CitationSynthesizer:
    """Stateless; every method takes the family or network it renders."""

    # -- whole families -----------------------------------------------------

    def render_family(
        self,
        family: Family,
        target: Optional[Person] = None,
        replacements: Optional[Dict[int, Person]] = None,
    ) -> List[str]:
        """
        Citation lines for ``family``. ``target`` (matched by identity) gets
        the arrow mark; ``replacements`` swaps persons for merged copies.
        """
        replacements = replacements or {}

        def show(person: Person) -> Person:
            return replacements.get(id(person), person)

        def mark(person: Person) -> str:
            return TARGET_MARK if _is(person, target) else ""

        lines = [f"Information on {family.page_reference_string} includes:"]

        primary = family.primary_couple
        if primary is not None:
            for parent in primary.parents:
                lines.append(mark(parent) + format_parent(show(parent)))
            marriage = _couple_marriage(primary)
            if marriage:
                lines.append(f"m. {marriage}")
            if primary.children:
                lines.append("Children:")
                lines.extend(mark(c) + format_child(show(c)) for c in primary.children)

        widow_notes = _widow_notes(family)
        shared = primary.parents if primary is not None else []
        for index, couple in enumerate(family.couples[1:]):
            newcomers = [p for p in couple.parents if not any(p is s for s in shared)]
            spouse = newcomers[0] if newcomers else couple.wife or couple.husband
            widow_of = _widow_of(widow_notes[index]) if index < len(widow_notes) else None

            lines.append("Additional spouse:")
            if spouse is not None:
                lines.append(mark(spouse) + format_parent(show(spouse), widow_of))
            marriage = _couple_marriage(couple)
            if marriage:
                lines.append(f"m. {marriage}")
            if couple.children:
                lines.append("Children:")
                lines.extend(mark(c) + format_child(show(c)) for c in couple.children)

        notes = [n for n in family.notes if WIDOW_WORD not in n.lower()]
        for couple in family.couples:
            notes.extend(couple.couple_notes)
        if notes or family.note_definitions:
            lines.append("Note:")
            lines.extend(notes)
            for marker in sorted(family.note_definitions):
                lines.append(f"{marker} {family.note_definitions[marker]}")

        died = family.total_children_died_infancy
        if died > 0:
            lines.append(f"Children died as infants: {died}")

        return lines

    def family_citation(self, source: Union[FamilyNetwork, Family]) -> str:
        family = source.main_family if isinstance(source, FamilyNetwork) else source
        return "\n".join(self.render_family(family)) + "\n"

    # -- one person ---------------------------------------------------------

    def _key_of(self, person: Person, family: Family) -> Optional[PersonKey]:
        keys = person_keys(family)
        for pk in keys:
            if pk.person is person:
                return pk
        for pk in keys:
            if pk.person == person:
                return pk
        return None

    def person_citation(self, person: Person, network: FamilyNetwork) -> str:
        nuclear = network.main_family
        pk = self._key_of(person, nuclear)
        if pk is None:
            log.warning(f"{person.display_name} is not in {nuclear.family_id}")
            return self.family_citation(nuclear)

        if pk.role == ROLE_PARENT:
            family = network.get_as_child_family(pk.key)
            subject = network.subject_for(SLOT_AS_CHILD, pk.key)
            if family is not None and subject is not None:
                return "\n".join(self.render_family(family, target=subject)) + "\n"

        elif pk.role == ROLE_CHILD:
            family = network.get_as_parent_family(pk.key)
            subject = network.subject_for(SLOT_AS_PARENT, pk.key)
            if family is not None and subject is not None:
                enhanced = self._with_additions(nuclear, pk.person, subject, family)
                if enhanced is not None:
                    return enhanced

        return self.family_citation(nuclear)

    def _with_additions(
        self, nuclear: Family, child: Person, subject: Person, source: Family
    ) -> Optional[str]:
        candidate = candidate_from_as_parent(subject, source)
        merged, changed = merge_fields(child, candidate)
        if not changed:
            return None

        lines = self.render_family(nuclear, target=child, replacements={id(child): merged})
        lines.append("Additional Information:")
        pages = source.page_reference_string
        for field_name in MERGE_FIELDS:
            if field_name in changed:
                value = getattr(merged, field_name)
                lines.append(disclosure_line(child.name, field_name, value, pages))
        log.debug(f"{child.display_name}: merged {', '.join(changed)} from {source.family_id}")
        return "\n".join(lines) + "\n"

    def spouse_citation(self, spouse_name: str, network: FamilyNetwork) -> str:
        key = spouse_name.strip()
        family = network.get_spouse_as_child_family(key)
        if family is None:
            return self.family_citation(network.main_family)
        subject = network.subject_for(SLOT_SPOUSE_AS_CHILD, key)
        return "\n".join(self.render_family(family, target=subject)) + "\n"

    # -- everything ---------------------------------------------------------

    def citation_map(self, network: FamilyNetwork) -> Dict[str, str]:
        """
        Family ID -> nuclear citation, every person key -> person citation,
        every resolved spouse -> spouse citation.
        """
        nuclear = network.main_family
        citations: Dict[str, str] = {nuclear.family_id: self.family_citation(nuclear)}

        for pk in person_keys(nuclear):
            citations[pk.key] = self.person_citation(pk.person, network)

        for spouse in network.spouse_as_child_families:
            key = spouse if spouse not in citations else f"{spouse} (spouse)"
            citations[key] = self.spouse_citation(spouse, network)

        return citations
