"""
CLI command modules for kalvian_roots.

``resolve`` is a single command; ``names`` and ``override`` are sub-apps.
"""

from kalvian_roots.cli.commands.names import names_app
from kalvian_roots.cli.commands.override import override_app
from kalvian_roots.cli.commands.resolve import resolve_command

__all__ = [
    "names_app",
    "override_app",
    "resolve_command",
]
