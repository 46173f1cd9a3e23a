"""Samtools wrapper."""

from __future__ import annotations

from pathlib import Path
from typing import Iterator, Optional

from triagealign.constants import MIN_SAMTOOLS_VERSION, SAM_FLAG_UNMAPPED
from triagealign.external.base import ExternalTool


class Samtools(ExternalTool):
    """Samtools BAM/SAM manipulation."""

    tool_name = "samtools"
    required_version = MIN_SAMTOOLS_VERSION

    def view_mapped_to_bam_command(self, output_bam: Path) -> list[str]:
        """Command that reads SAM on stdin and writes mapped records only as BAM."""
        return [
            self.tool_name, "view",
            "-b",
            "-F", str(SAM_FLAG_UNMAPPED),
            "-o", str(output_bam),
            "-",
        ]

    def sort_bam(
        self,
        input_bam: Path,
        output_bam: Path,
        memory: Optional[str] = None,
        stderr_log: Optional[Path] = None,
    ) -> None:
        """Coordinate-sort a SAM/BAM file."""
        cmd = [self.tool_name, "sort", "-@", str(self.threads)]
        if memory:
            cmd.extend(["-m", memory])
        cmd.extend(["-o", str(output_bam), str(input_bam)])

        output_bam.parent.mkdir(parents=True, exist_ok=True)
        stdout, stderr = self.run(cmd, capture_output=True, stderr_log=stderr_log)
        if stdout:
            self.logger.debug(f"samtools sort output: {stdout[:500]}")
        self.logger.info(f"Sorted BAM saved to: {output_bam}")

    def write_header(self, bam_file: Path, header_file: Path) -> None:
        """Extract the SAM header of ``bam_file`` into ``header_file``."""
        cmd = [self.tool_name, "view", "-H", str(bam_file)]
        self.run(cmd, stdout_file=header_file)
        self.logger.info(f"Header written to: {header_file}")

    def merge_bams(
        self,
        output_bam: Path,
        inputs: list[Path],
        header_file: Optional[Path] = None,
        stderr_log: Optional[Path] = None,
    ) -> None:
        """Merge sorted BAM files, overwriting any previous output."""
        cmd = [self.tool_name, "merge", "-f", "-@", str(self.threads)]
        if header_file is not None:
            cmd.extend(["-h", str(header_file)])
        cmd.append(str(output_bam))
        cmd.extend(str(p) for p in inputs)

        self.run(cmd, capture_output=True, stderr_log=stderr_log)
        self.logger.info(f"Merged {len(inputs)} BAM files into: {output_bam}")

    def index_bam(self, bam_file: Path) -> None:
        """Index BAM file."""
        cmd = [
            self.tool_name, "index",
            str(bam_file)
        ]

        stdout, stderr = self.run(cmd, capture_output=True)
        if stdout:
            self.logger.debug(f"samtools index output: {stdout[:500]}")
        self.logger.info(f"BAM index created: {bam_file}.bai")

    def calmd(
        self,
        input_bam: Path,
        reference_fasta: Path,
        output_bam: Path,
        stderr_log: Optional[Path] = None,
    ) -> None:
        """Recompute MD/NM and per-base alignment quality against the reference.

        Extended BAQ (-E), BQ tag computation (-r) and BAM output (-b).
        """
        cmd = [
            self.tool_name, "calmd",
            "-E",
            "-r",
            "-b",
            str(input_bam),
            str(reference_fasta),
        ]
        self.run(cmd, stdout_file=output_bam, stderr_log=stderr_log)
        self.logger.info(f"Recalibrated BAM saved to: {output_bam}")

    def count_records(self, bam_file: Path) -> int:
        """Return the number of alignment records in ``bam_file``."""
        cmd = [self.tool_name, "view", "-c", str(bam_file)]
        stdout, _ = self.run(cmd, capture_output=True)
        return int(stdout.strip() or 0)

    def iter_read_names(
        self, bam_file: Path, stderr_log: Optional[Path] = None
    ) -> Iterator[str]:
        """Yield the query name of every record in ``bam_file``."""
        cmd = [self.tool_name, "view", str(bam_file)]
        for line in self.stream_lines(cmd, stderr_log=stderr_log):
            if line:
                yield line.split("\t", 1)[0]
