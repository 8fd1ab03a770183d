"""
Collaborator interfaces consumed by the network builder.

Text extraction and AI parsing live outside this package; anything with
these method shapes can be injected.
"""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from kalvian_roots.normalization.name_equivalence import NamePair
from kalvian_roots.registry.entities import Family


@runtime_checkable
class FamilyTextSource(Protocol):
    async def extract_family_text(self, family_id: str) -> str:
        """Raw text block of one family. Raises FamilyNotFound."""
        ...


@runtime_checkable
class FamilyParser(Protocol):
    async def parse_family(self, family_id: str, text: str) -> Family:
        """Structured family from its text block. Raises ParsingFailed."""
        ...


@runtime_checkable
class FamilyIdValidator(Protocol):
    def is_valid_family_id(self, family_id: str) -> bool: ...


@runtime_checkable
class ConfirmationHandler(Protocol):
    async def confirm(self, pair: NamePair) -> bool:
        """True when the user accepts ``pair`` as the same name."""
        ...
