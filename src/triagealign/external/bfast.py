"""BFAST wrapper (colour-space slow pass).

BFAST runs as three sub-commands that must complete in order:

- ``match``: candidate placements per read from the reference indexes
- ``localalign``: scored local alignment of every candidate
- ``postprocess``: choose the reported alignment per read and emit SAM
"""

from __future__ import annotations

import shlex
from pathlib import Path
from typing import Optional

from triagealign.constants import SELECT_BEST_SCORE, SELECTION_MODES
from triagealign.exceptions import ConfigurationError
from triagealign.external.base import ExternalTool

# -A 1 selects colour space for every sub-command
COLOR_SPACE = "1"
# postprocess -O 1 writes SAM
OUTPUT_SAM = "1"


class Bfast(ExternalTool):
    """Sensitive three-stage aligner."""

    tool_name = "bfast"

    def match(
        self,
        reference: Path,
        reads: Path,
        output_bmf: Path,
        max_candidates: int = 384,
        additional_args: str = "",
        stderr_log: Optional[Path] = None,
    ) -> None:
        """Seed-match every read against the reference; writes ``output_bmf``."""
        cmd = [
            self.tool_name, "match",
            "-f", str(reference),
            "-A", COLOR_SPACE,
            "-r", str(reads),
            "-n", str(self.threads),
            "-M", str(max_candidates),
        ]
        if additional_args:
            cmd.extend(shlex.split(additional_args))
        self.run(cmd, stdout_file=output_bmf, stderr_log=stderr_log)
        self.logger.info(f"Candidate matches saved to: {output_bmf}")

    def localalign(
        self,
        reference: Path,
        matches_bmf: Path,
        output_baf: Path,
        additional_args: str = "",
        stderr_log: Optional[Path] = None,
    ) -> None:
        """Refine candidates into scored local alignments; writes ``output_baf``."""
        cmd = [
            self.tool_name, "localalign",
            "-f", str(reference),
            "-A", COLOR_SPACE,
            "-m", str(matches_bmf),
            "-n", str(self.threads),
        ]
        if additional_args:
            cmd.extend(shlex.split(additional_args))
        self.run(cmd, stdout_file=output_baf, stderr_log=stderr_log)
        self.logger.info(f"Local alignments saved to: {output_baf}")

    def postprocess_command(
        self,
        reference: Path,
        alignments_baf: Path,
        mode: int = SELECT_BEST_SCORE,
        min_mapq: int = 0,
    ) -> list[str]:
        """Build the postprocess command; SAM goes to stdout."""
        if mode not in SELECTION_MODES:
            raise ConfigurationError(f"Unsupported postprocess selection mode: {mode}")
        return [
            self.tool_name, "postprocess",
            "-f", str(reference),
            "-A", COLOR_SPACE,
            "-i", str(alignments_baf),
            "-a", str(mode),
            "-q", str(min_mapq),
            "-O", OUTPUT_SAM,
            "-n", str(self.threads),
        ]

    def postprocess_to_bam(
        self,
        reference: Path,
        alignments_baf: Path,
        bam_command: list[str],
        mode: int = SELECT_BEST_SCORE,
        min_mapq: int = 0,
        stderr_log: Optional[Path] = None,
    ) -> None:
        """Select final alignments and pipe the SAM into ``bam_command``."""
        cmd = self.postprocess_command(reference, alignments_baf, mode=mode, min_mapq=min_mapq)
        self.run_piped(cmd, bam_command, stderr_log=stderr_log)
