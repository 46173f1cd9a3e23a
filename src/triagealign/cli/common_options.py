"""Shared Click options for the triagealign commands."""

from __future__ import annotations

from pathlib import Path
from typing import Callable, TypeVar

import click

from triagealign.constants import SELECTION_MODES

F = TypeVar("F", bound=Callable[..., None])


def reference_option(func: F) -> F:
    """Reference genome option."""
    return click.option(
        "-r",
        "--reference",
        type=click.Path(dir_okay=False, path_type=Path),
        default=None,
        help="Reference genome FASTA (with prebuilt bowtie/bfast indexes)",
    )(func)


def output_prefix_option(func: F) -> F:
    """Output prefix option."""
    return click.option(
        "-o",
        "--output-prefix",
        type=click.Path(path_type=Path),
        default=None,
        help="Path prefix for every output file, e.g. out/sample",
    )(func)


def config_option(func: F) -> F:
    """Configuration file option."""
    return click.option(
        "-c",
        "--config",
        type=click.Path(exists=True, dir_okay=False, path_type=Path),
        help="Configuration file (YAML)",
    )(func)


def threads_option(func: F) -> F:
    """Threads option."""
    return click.option(
        "-t",
        "--threads",
        type=click.IntRange(min=1),
        default=None,
        help="Number of threads [default: 8]",
    )(func)


def mode_option(func: F) -> F:
    """BFAST postprocess selection mode."""
    return click.option(
        "-m",
        "--mode",
        type=click.Choice([str(m) for m in SELECTION_MODES]),
        default=None,
        help="Slow-pass selection: 3 best score (ties allowed), 2 unique only [default: 3]",
    )(func)


def bowtie_index_option(func: F) -> F:
    return click.option(
        "--bowtie-index",
        type=click.Path(path_type=Path),
        default=None,
        help="Colour-space bowtie index basename [default: <reference stem>_cs]",
    )(func)


def keep_tmp_option(func: F) -> F:
    """Keep temporary files option."""
    return click.option(
        "--keep-tmp",
        is_flag=True,
        default=False,
        help="Keep .bmf/.baf intermediates and the checkpoint",
    )(func)


def verbose_option(func: F) -> F:
    """Verbosity option."""
    return click.option(
        "-v",
        "--verbose",
        count=True,
        help="Increase log verbosity (-v for INFO, -vv for DEBUG)",
    )(func)


def log_file_option(func: F) -> F:
    return click.option(
        "--log-file",
        type=click.Path(dir_okay=False, path_type=Path),
        default=None,
        help="Also write a detailed DEBUG log to this file",
    )(func)


def run_control_options(func: F) -> F:
    """Step-range and inspection options for the run command."""
    options = [
        click.option("--start-from", type=int, default=None, help="Start at step N (1-based)"),
        click.option("--stop-at", type=int, default=None, help="Stop after step N (1-based)"),
        click.option("--force", is_flag=True, help="Ignore the checkpoint and re-run every step"),
        click.option("--show-steps", is_flag=True, help="Show pipeline steps and exit"),
        click.option("--dry-run", is_flag=True, help="Show actions without executing"),
    ]
    for option in reversed(options):
        func = option(func)
    return func
