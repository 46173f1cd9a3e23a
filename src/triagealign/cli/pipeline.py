"""Shared pipeline execution helpers for the CLI."""

from __future__ import annotations

import logging
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

import click

from triagealign.cli.exit_codes import EXIT_ERROR, EXIT_SUCCESS
from triagealign.config import Config, load_config
from triagealign.exceptions import ConfigurationError
from triagealign.utils.logging import LEVEL_NAMES, setup_logging


@dataclass
class PipelineOptions:
    """Container for pipeline execution options.

    ``None`` means "not given on the command line", so the config file value
    (or the built-in default) applies.
    """

    reads: Optional[Path]
    qualities: Optional[Path]
    reference: Optional[Path]
    output_prefix: Optional[Path]
    config_path: Optional[Path] = None
    threads: Optional[int] = None
    mode: Optional[int] = None
    bowtie_index: Optional[Path] = None
    keep_tmp: bool = False
    start_from: Optional[int] = None
    stop_at: Optional[int] = None
    force: bool = False
    show_steps: bool = False
    dry_run: bool = False
    log_file: Optional[Path] = None
    verbose: int = 0


def show_pipeline_steps() -> None:
    """Show pipeline steps without creating any output (lightweight mode)."""
    from triagealign.core.pipeline import Pipeline

    click.echo("\ntriagealign Pipeline Steps:")
    click.echo("-" * 40)
    for i, step in enumerate(Pipeline.STEPS, 1):
        click.echo(f"  {i:2d}. {step.name:<22} - {step.description}")
    click.echo("-" * 40)
    click.echo(f"Total: {len(Pipeline.STEPS)} steps\n")


def _show_usage(ctx: Optional[click.Context]) -> None:
    if ctx is None:
        ctx = click.get_current_context(silent=True)
    if ctx is not None:
        click.echo(ctx.get_help())
    else:
        click.echo("Usage: triagealign -r REF -o PREFIX [-t 8] [-m 3] READS QUALS")


def build_config(opts: PipelineOptions) -> Config:
    """Merge config file values with CLI overrides (CLI wins)."""
    cfg = load_config(opts.config_path) if opts.config_path else Config()

    if opts.reads is not None:
        cfg.reads = opts.reads
    if opts.qualities is not None:
        cfg.qualities = opts.qualities
    if opts.reference is not None:
        cfg.reference = opts.reference
    if opts.output_prefix is not None:
        cfg.output_prefix = opts.output_prefix
    if opts.bowtie_index is not None:
        cfg.bowtie_index = opts.bowtie_index
    if opts.threads is not None:
        cfg.threads = opts.threads
    if opts.mode is not None:
        cfg.mode = opts.mode
    if opts.keep_tmp:
        cfg.keep_tmp = True
    return cfg


def execute_pipeline(
    opts: PipelineOptions,
    logger: logging.Logger,
    ctx: Optional[click.Context] = None,
) -> None:
    """
    Execute the triagealign pipeline with the given options.

    Args:
        opts: Pipeline execution options
        logger: Logger instance for output
        ctx: Optional Click context used to print usage text
    """
    if opts.show_steps:
        show_pipeline_steps()
        return

    cfg = build_config(opts)

    # Config logging applies only when no -v flag was given
    if opts.verbose == 0:
        level = LEVEL_NAMES.get(str(cfg.runtime.log_level).upper(), logging.WARNING)
        setup_logging(level=level, log_file=opts.log_file or cfg.runtime.log_file)

    if not (cfg.reference and cfg.output_prefix and cfg.reads and cfg.qualities):
        _show_usage(ctx)
        sys.exit(EXIT_SUCCESS)

    try:
        cfg.validate()
    except ConfigurationError as exc:
        click.echo(f"Error: {exc}", err=True)
        sys.exit(EXIT_ERROR)

    if opts.dry_run:
        logger.info("Dry run mode - showing what would be executed:")
        show_pipeline_steps()
        click.echo(f"Reads:        {cfg.reads}")
        click.echo(f"Qualities:    {cfg.qualities}")
        click.echo(f"Reference:    {cfg.reference}")
        click.echo(f"Bowtie index: {cfg.resolved_bowtie_index()}")
        click.echo(f"Output:       {cfg.output_prefix}.calmd.bam")
        click.echo(f"Using {cfg.threads} threads, selection mode {cfg.mode}")
        return

    from triagealign.core.pipeline import Pipeline

    pipeline = Pipeline(cfg)
    pipeline.run(start_from=opts.start_from, stop_at=opts.stop_at, force=opts.force)

    click.echo(f"Final alignments: {pipeline.layout.final_bam}")
