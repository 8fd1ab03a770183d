from __future__ import annotations

from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.table import Table

from kalvian_roots.cli.utils import open_store
from kalvian_roots.persistence.overrides import CitationOverrides
from kalvian_roots.registry.family_ids import normalize_family_id

console = Console()

override_app = typer.Typer(help="Manage hand-edited citations", add_completion=False)


@override_app.command("set")
def set_command(
    family_id: str = typer.Argument(...),
    person_id: str = typer.Argument(..., help="'<name>-<patronymic>-<birth date>'"),
    text: str = typer.Argument(..., help="Citation text"),
    store: Optional[Path] = typer.Option(None, "--store", help="Key-value store file"),
):
    """
    Store a manual citation; it replaces the generated one from now on.
    """
    overrides = CitationOverrides(open_store(store))
    overrides.set(normalize_family_id(family_id), person_id, text)
    console.print(f"Saved manual citation for {person_id} in {normalize_family_id(family_id)}")


@override_app.command("show")
def show_command(
    family_id: Optional[str] = typer.Argument(None),
    store: Optional[Path] = typer.Option(None, "--store", help="Key-value store file"),
):
    """
    Show manual citations, optionally for one family.
    """
    overrides = CitationOverrides(open_store(store))
    prefix = f"{normalize_family_id(family_id)}|" if family_id else ""

    table = Table(title="Manual citations")
    table.add_column("Key", style="bold")
    table.add_column("Citation")
    for key, text in sorted(overrides.all().items()):
        if key.startswith(prefix):
            table.add_row(key, text)
    console.print(table)
