"""Command line interface for triagealign."""

from triagealign.cli.main import cli, main, tools, tools_main

__all__ = ["cli", "main", "tools", "tools_main"]
