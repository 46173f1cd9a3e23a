"""Bowtie wrapper (colour-space fast pass)."""

from __future__ import annotations

import shlex
from pathlib import Path
from typing import Optional

from triagealign.constants import DEFAULT_SEED, MIN_BOWTIE_VERSION
from triagealign.external.base import ExternalTool, LineFilter


class Bowtie(ExternalTool):
    """Stringent, speed-optimised short-read alignment in colour space."""

    tool_name = "bowtie"
    required_version = MIN_BOWTIE_VERSION

    def align_command(
        self,
        index: Path,
        reads: Path,
        qualities: Path,
        unaligned_output: Path,
        seed: int = DEFAULT_SEED,
        max_placements: int = 1,
        seed_mismatches: int = 2,
        mapq: Optional[int] = None,
        additional_args: str = "",
    ) -> list[str]:
        """Build the bowtie command line; SAM goes to stdout.

        Reads with more than ``max_placements`` equally good placements, and
        reads without any, are written to ``unaligned_output`` instead of
        being reported.
        """
        cmd = [
            self.tool_name,
            "-C",
            "-f",
            "-Q", str(qualities),
            "-S",
            "-p", str(self.threads),
            "--seed", str(seed),
            "-n", str(seed_mismatches),
            "-m", str(max_placements),
            "--best",
            "--strata",
            "--un", str(unaligned_output),
        ]
        if mapq is not None:
            cmd.extend(["--mapq", str(mapq)])
        if additional_args:
            cmd.extend(shlex.split(additional_args))
        cmd.extend([str(index), str(reads)])
        return cmd

    def align_to_bam(
        self,
        index: Path,
        reads: Path,
        qualities: Path,
        unaligned_output: Path,
        bam_command: list[str],
        line_filter: Optional[LineFilter] = None,
        stderr_log: Optional[Path] = None,
        **options,
    ) -> None:
        """Align, stream SAM through ``line_filter`` and into ``bam_command``."""
        for path in (reads, qualities):
            if not Path(path).exists():
                raise FileNotFoundError(f"Input file not found: {path}")
        unaligned_output.parent.mkdir(parents=True, exist_ok=True)

        cmd = self.align_command(index, reads, qualities, unaligned_output, **options)
        self.run_piped(cmd, bam_command, line_filter=line_filter, stderr_log=stderr_log)
        self.logger.info(f"Diverted reads written to: {unaligned_output}")
