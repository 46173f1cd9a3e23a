"""`show-checkpoint` command implementation."""

from __future__ import annotations

from pathlib import Path

import click


@click.command(name="show-checkpoint")
@click.argument("output_prefix", type=click.Path(path_type=Path))
def show_checkpoint(output_prefix: Path) -> None:
    """Show resume state for the run written under OUTPUT_PREFIX."""
    from triagealign.config import Config
    from triagealign.core.pipeline import Pipeline

    cfg = Config(output_prefix=output_prefix)
    Pipeline(cfg).show_checkpoint_info()
