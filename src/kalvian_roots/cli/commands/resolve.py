from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console

from kalvian_roots.cli.utils import (
    build_workflow,
    find_citation_key,
    network_table,
    open_store,
    print_warnings,
    write_json,
)
from kalvian_roots.core.exceptions import RootsError
from kalvian_roots.logging import set_debug
from kalvian_roots.registry.serialization import network_to_dict

console = Console()


def resolve_command(
    families_json: Path = typer.Argument(..., exists=True, readable=True),
    family_id: str = typer.Argument(..., help="Nuclear family, e.g. 'KORPI 6'"),
    person: Optional[str] = typer.Option(
        None,
        "--person",
        "-p",
        help="Print the citation for this person key instead of the family",
    ),
    store: Optional[Path] = typer.Option(
        None,
        "--store",
        help="Key-value store file (learned names, manual citations)",
    ),
    interactive: bool = typer.Option(
        False,
        "--interactive",
        "-i",
        help="Ask before treating similar names as the same",
    ),
    as_json: bool = typer.Option(
        False,
        "--json",
        help="Print the resolved network as JSON",
    ),
    verbose: bool = typer.Option(
        False,
        "--verbose",
        "-v",
        help="Enable debug logging",
    ),
):
    """
    Resolve a family's cross-references and print its citation.
    """
    if verbose:
        set_debug(True)

    workflow = build_workflow(
        families_json,
        store=open_store(store),
        interactive=interactive,
        debug=verbose,
    )

    try:
        network = asyncio.run(workflow.run(family_id))
    except RootsError as exc:
        console.print(f"[red]error[/red] {exc}")
        raise typer.Exit(code=1)

    if as_json:
        write_json(network_to_dict(network), out=None)
        return

    citations = workflow.get_active_citations()
    if person:
        key = find_citation_key(dict(citations), person)
        if key is None:
            console.print(f"[red]error[/red] no single person matches '{person}'")
            console.print("Known keys: " + ", ".join(citations))
            raise typer.Exit(code=1)
        typer.echo(citations[key])
    else:
        typer.echo(citations[network.main_family.family_id])

    if verbose:
        console.print(network_table(network))
    print_warnings(network)
