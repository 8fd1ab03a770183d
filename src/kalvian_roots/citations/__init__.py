from __future__ import annotations

from .generator import CitationSynthesizer
from .merge import candidate_from_as_parent, merge_fields

__all__ = [
    "CitationSynthesizer",
    "candidate_from_as_parent",
    "merge_fields",
]
