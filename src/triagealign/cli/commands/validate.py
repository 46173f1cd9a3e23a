"""Installation validation command."""

from __future__ import annotations

import sys

import click

from triagealign import __version__
from triagealign.cli.exit_codes import EXIT_ERROR


@click.command()
@click.option("--full", is_flag=True, help="Also check that bowtie, bfast and samtools are on PATH")
def validate(full: bool) -> None:
    """Validate the triagealign installation and dependencies."""
    from triagealign.utils.validators import validate_installation

    click.echo("Validating triagealign installation...")
    issues = validate_installation(full_check=full)

    if issues:
        click.echo("✗ Issues found:")
        for issue in issues:
            click.echo(f"  - {issue}")
        sys.exit(EXIT_ERROR)

    click.echo("✓ All checks passed!")
    click.echo(f"  triagealign version: {__version__}")
