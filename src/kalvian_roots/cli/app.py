
from __future__ import annotations

import typer
from rich.console import Console

from kalvian_roots.cli.commands.names import names_app
from kalvian_roots.cli.commands.override import override_app
from kalvian_roots.cli.commands.resolve import resolve_command

app = typer.Typer(
    name="kalvian-roots",
    help="Resolve Juuret Kälviällä family cross-references and build citations",
    add_completion=False,
)

console = Console()

app.command("resolve")(resolve_command)
app.add_typer(names_app, name="names")
app.add_typer(override_app, name="override")


def main():
    app()


if __name__ == "__main__":
    main()
