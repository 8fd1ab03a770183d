"""
CLI package for kalvian_roots.

Provides the Typer application entrypoint and shared CLI utilities.
"""

from kalvian_roots.cli.app import app, main

__all__ = [
    "app",
    "main",
]
