"""Click application entrypoints for triagealign."""

from __future__ import annotations

import signal
import sys
from pathlib import Path
from types import FrameType
from typing import Optional

import click

from triagealign import __version__
from triagealign.cli.exit_codes import (
    EXIT_SUCCESS,
    EXIT_ERROR,
    EXIT_SIGINT,
    EXIT_SIGTERM,
)
from triagealign.exceptions import TriageAlignError
from triagealign.utils.logging import get_logger, level_from_verbosity, setup_logging

from .commands.checkpoint import show_checkpoint
from .commands.config import init_config
from .commands.validate import validate
from .common_options import (
    bowtie_index_option,
    config_option,
    keep_tmp_option,
    log_file_option,
    mode_option,
    output_prefix_option,
    reference_option,
    run_control_options,
    threads_option,
    verbose_option,
)
from .pipeline import PipelineOptions, execute_pipeline


class _Terminated(KeyboardInterrupt):
    """Raised from the SIGTERM handler."""


def _handle_signal(signum: int, frame: Optional[FrameType]) -> None:
    """Handle interrupt signals for graceful shutdown."""
    sig_name = "SIGINT" if signum == signal.SIGINT else "SIGTERM"
    click.echo(f"\n{sig_name} received, stopping...", err=True)
    if signum == signal.SIGTERM:
        raise _Terminated(sig_name)
    raise KeyboardInterrupt(sig_name)


def _print_version(ctx: click.Context, _param: click.Parameter, value: bool) -> None:
    if value and not ctx.resilient_parsing:
        click.echo(f"triagealign {__version__}")
        ctx.exit()


@click.command(context_settings=dict(help_option_names=["-h", "--help"]))
@click.option(
    "-V",
    "--version",
    is_flag=True,
    is_eager=True,
    expose_value=False,
    callback=_print_version,
    help="Show the version and exit.",
)
@reference_option
@output_prefix_option
@threads_option
@mode_option
@config_option
@bowtie_index_option
@keep_tmp_option
@verbose_option
@log_file_option
@run_control_options
@click.argument("reads", required=False, type=click.Path(dir_okay=False, path_type=Path))
@click.argument("qualities", required=False, type=click.Path(dir_okay=False, path_type=Path))
@click.pass_context
def cli(
    ctx: click.Context,
    reference: Optional[Path],
    output_prefix: Optional[Path],
    threads: Optional[int],
    mode: Optional[str],
    config: Optional[Path],
    bowtie_index: Optional[Path],
    keep_tmp: bool,
    verbose: int,
    log_file: Optional[Path],
    start_from: Optional[int],
    stop_at: Optional[int],
    force: bool,
    show_steps: bool,
    dry_run: bool,
    reads: Optional[Path],
    qualities: Optional[Path],
) -> None:
    """Two-pass colour-space alignment: bowtie first, BFAST for the rest.

    Run as: triagealign -r REF -o PREFIX [-t 8] [-m 3] READS QUALS
    """
    setup_logging(level=level_from_verbosity(verbose), log_file=log_file)
    logger = get_logger("cli")

    opts = PipelineOptions(
        reads=reads,
        qualities=qualities,
        reference=reference,
        output_prefix=output_prefix,
        config_path=config,
        threads=threads,
        mode=int(mode) if mode is not None else None,
        bowtie_index=bowtie_index,
        keep_tmp=keep_tmp,
        start_from=start_from,
        stop_at=stop_at,
        force=force,
        show_steps=show_steps,
        dry_run=dry_run,
        log_file=log_file,
        verbose=verbose,
    )
    try:
        execute_pipeline(opts, logger, ctx)
    except _Terminated:
        logger.info("Pipeline terminated")
        sys.exit(EXIT_SIGTERM)
    except KeyboardInterrupt:
        logger.info("Pipeline interrupted by user")
        sys.exit(EXIT_SIGINT)
    except TriageAlignError as exc:
        logger.error(f"Pipeline error: {exc}")
        sys.exit(EXIT_ERROR)
    except Exception as exc:
        logger.exception(f"Unexpected error: {exc}")
        sys.exit(EXIT_ERROR)


@click.group(context_settings=dict(help_option_names=["-h", "--help"]))
@click.version_option(__version__, "-V", "--version", prog_name="triagealign-tools")
def tools() -> None:
    """Helper commands: configuration template, installation check, checkpoint."""


tools.add_command(init_config)
tools.add_command(validate)
tools.add_command(show_checkpoint)


def _run_with_signals(command: click.Command, argv: list[str] | None) -> int:
    signal.signal(signal.SIGINT, _handle_signal)
    signal.signal(signal.SIGTERM, _handle_signal)

    try:
        command(argv, standalone_mode=True)
        return EXIT_SUCCESS
    except _Terminated:
        return EXIT_SIGTERM
    except KeyboardInterrupt:
        return EXIT_SIGINT
    except SystemExit as exc:
        if exc.code is None:
            return EXIT_SUCCESS
        return exc.code if isinstance(exc.code, int) else EXIT_ERROR
    except Exception as exc:
        click.echo(f"Error: {exc}", err=True)
        return EXIT_ERROR


def main(argv: list[str] | None = None) -> int:
    """Entry point for ``triagealign`` with signal handling."""
    return _run_with_signals(cli, argv)


def tools_main(argv: list[str] | None = None) -> int:
    """Entry point for ``triagealign-tools``."""
    return _run_with_signals(tools, argv)


if __name__ == "__main__":
    sys.exit(main())
