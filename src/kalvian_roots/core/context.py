from __future__ import annotations
from dataclasses import dataclass, field
from typing import Any, Dict, Optional


@dataclass
class RootsContext:
    """
    Shared run context.
    Built once by the CLI (or a test) and handed to the workflow.
    """

    config: Any
    logger: Any

    store: Any = None
    families_path: Optional[str] = None

    stats: Dict[str, Any] = field(default_factory=dict)
    errors: list = field(default_factory=list)

    debug: bool = False
