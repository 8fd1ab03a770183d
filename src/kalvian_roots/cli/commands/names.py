from __future__ import annotations

from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.table import Table

from kalvian_roots.cli.utils import open_store
from kalvian_roots.normalization.name_equivalence import NameEquivalenceEngine

console = Console()

names_app = typer.Typer(help="Inspect and teach given-name equivalences", add_completion=False)

STORE_OPTION = typer.Option(None, "--store", help="Key-value store file")


@names_app.command("check")
def check_command(
    first: str = typer.Argument(...),
    second: str = typer.Argument(...),
    store: Optional[Path] = STORE_OPTION,
):
    """
    Show whether two names are treated as the same, and how similar they are.
    """
    engine = NameEquivalenceEngine(open_store(store))
    same = engine.are_equivalent(first, second)
    score = engine.similarity(first, second)
    verdict = "[green]equivalent[/green]" if same else "[red]different[/red]"
    console.print(f"{first} / {second}: {verdict} (similarity {score:.2f})")


@names_app.command("learn")
def learn_command(
    first: str = typer.Argument(...),
    second: str = typer.Argument(...),
    store: Optional[Path] = STORE_OPTION,
):
    """
    Record two names as equivalent.
    """
    engine = NameEquivalenceEngine(open_store(store))
    engine.learn(first, second)
    console.print(f"Learned: {first} = {second}")


@names_app.command("list")
def list_command(
    store: Optional[Path] = STORE_OPTION,
):
    """
    List learned equivalences.
    """
    engine = NameEquivalenceEngine(open_store(store))
    report = engine.report()

    table = Table(title="Learned name equivalences")
    table.add_column("Name", style="bold")
    table.add_column("Equivalents")
    for name, others in report.learned.items():
        table.add_row(name, ", ".join(others))

    console.print(table)
    console.print(
        f"{report.learned_pairs} learned pair(s), "
        f"{report.builtin_groups} built-in name(s)"
    )
