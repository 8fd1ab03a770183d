
from __future__ import annotations

import asyncio
import json
from pathlib import Path
from typing import Any, Dict, List, Optional

from rich.console import Console
from rich.prompt import Confirm
from rich.table import Table

from kalvian_roots.adapters.json_source import JsonFamilySource
from kalvian_roots.config import get_config
from kalvian_roots.core.context import RootsContext
from kalvian_roots.core.workflow import WorkflowCoordinator
from kalvian_roots.logging import get_logger
from kalvian_roots.network.family_network import SLOTS, FamilyNetwork
from kalvian_roots.network.resolver import FamilyNetworkBuilder
from kalvian_roots.normalization.name_equivalence import NameEquivalenceEngine, NamePair
from kalvian_roots.persistence.overrides import CitationOverrides
from kalvian_roots.persistence.store import JsonFileStore

console = Console()


class RichConfirmationHandler:
    """Asks on the terminal; the blocking prompt runs in a worker thread."""

    def __init__(self, prompt_console: Optional[Console] = None):
        self.console = prompt_console or console

    async def confirm(self, pair: NamePair) -> bool:
        question = f"Are [bold]{pair.first}[/bold] and [bold]{pair.second}[/bold] the same name?"
        return await asyncio.to_thread(Confirm.ask, question, console=self.console, default=False)


def open_store(path: Optional[Path]) -> JsonFileStore:
    return JsonFileStore(path or get_config().store_path)


def build_workflow(
    families_json: Path,
    *,
    store: JsonFileStore,
    interactive: bool = False,
    debug: bool = False,
) -> WorkflowCoordinator:
    """
    Wire the JSON reference adapter, the name engine, the builder and the
    overrides into one workflow.
    """
    source = JsonFamilySource.from_file(families_json)
    handler = RichConfirmationHandler() if interactive else None
    engine = NameEquivalenceEngine(store, handler)
    builder = FamilyNetworkBuilder(source, source, source, engine)

    ctx = RootsContext(
        config=get_config(),
        logger=get_logger("workflow"),
        store=store,
        families_path=str(families_json),
        debug=debug,
    )
    return WorkflowCoordinator(
        ctx,
        source,
        source,
        builder,
        overrides=CitationOverrides(store),
    )


def find_citation_key(citations: Dict[str, str], wanted: str) -> Optional[str]:
    """Exact key first, then a case-insensitive match on the key or its name part."""
    if wanted in citations:
        return wanted
    low = wanted.strip().lower()
    matches: List[str] = [k for k in citations if k.lower() == low]
    if not matches:
        matches = [k for k in citations if k.lower().split(" (")[0] == low]
    if not matches:
        matches = [k for k in citations if k.lower().split()[0] == low]
    return matches[0] if len(matches) == 1 else None


def network_table(network: FamilyNetwork) -> Table:
    table = Table(title=f"Family network of {network.main_family.family_id}")
    table.add_column("Slot", style="bold")
    table.add_column("Person")
    table.add_column("Family")
    table.add_column("Subject")

    for slot in SLOTS:
        for key, fid in network.slot_mapping(slot).items():
            subject = network.subject_for(slot, key)
            table.add_row(slot.replace("_", " "), key, fid, subject.display_name if subject else "-")
    return table


def print_warnings(network: FamilyNetwork) -> None:
    for w in network.warnings:
        console.print(f"[yellow]warning[/yellow] {w.kind}: {w.message}")


def write_json(data: Any, *, out: Path | None):
    payload = json.dumps(data, indent=2, ensure_ascii=False)
    if out:
        out.write_text(payload, encoding="utf-8")
    else:
        print(payload)
