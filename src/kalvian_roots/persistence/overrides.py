from __future__ import annotations

from typing import Dict, Optional

from kalvian_roots.logging import get_logger
from kalvian_roots.persistence.store import KeyValueStore
from kalvian_roots.registry.entities import Person

log = get_logger("overrides")

MANUAL_CITATIONS_KEY = "ManualCitations"


def override_key(family_id: str, person_id: str) -> str:
    return f"{family_id}|{person_id}"


class CitationOverrides:
    """
    Hand-edited citations, keyed ``"<familyId>|<personId>"``.

    An override always wins over a generated citation for the same person.
    """

    def __init__(self, store: KeyValueStore):
        self.store = store
        raw = store.get(MANUAL_CITATIONS_KEY) or {}
        if not isinstance(raw, dict):
            log.warning("Discarding malformed manual citations")
            raw = {}
        self._items: Dict[str, str] = {str(k): str(v) for k, v in raw.items()}

    def _save(self) -> None:
        self.store.set(MANUAL_CITATIONS_KEY, dict(self._items))

    def get(self, family_id: str, person: Person | str) -> Optional[str]:
        pid = person.id if isinstance(person, Person) else person
        return self._items.get(override_key(family_id, pid))

    def set(self, family_id: str, person: Person | str, text: str) -> None:
        pid = person.id if isinstance(person, Person) else person
        self._items[override_key(family_id, pid)] = text
        self._save()
        log.info(f"Manual citation saved for {pid} in {family_id}")

    def remove(self, family_id: str, person: Person | str) -> bool:
        pid = person.id if isinstance(person, Person) else person
        if self._items.pop(override_key(family_id, pid), None) is None:
            return False
        self._save()
        return True

    def all(self) -> Dict[str, str]:
        return dict(self._items)

    def __len__(self) -> int:
        return len(self._items)
