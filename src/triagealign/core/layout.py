"""Artifact paths rooted at the output prefix."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path


def _with_suffix(prefix: Path, suffix: str) -> Path:
    # Path.with_suffix would clobber dotted sample names like "run.1"
    return prefix.parent / f"{prefix.name}{suffix}"


@dataclass(frozen=True)
class OutputLayout:
    """Every file the pipeline reads or writes under one output prefix."""

    prefix: Path

    @classmethod
    def from_prefix(cls, prefix: Path | str) -> "OutputLayout":
        return cls(Path(prefix))

    @property
    def output_dir(self) -> Path:
        return self.prefix.parent

    # Fast pass
    @property
    def fast_unsorted_bam(self) -> Path:
        return _with_suffix(self.prefix, ".bowtie.unsorted.bam")

    @property
    def fast_bam(self) -> Path:
        return _with_suffix(self.prefix, ".bowtie.bam")

    @property
    def diverted_reads(self) -> Path:
        return _with_suffix(self.prefix, ".bowtie.un")

    @property
    def diverted_qualities(self) -> Path:
        return _with_suffix(self.prefix, ".bowtie.un.qual")

    # Slow pass
    @property
    def trimmed_reads(self) -> Path:
        return _with_suffix(self.prefix, ".bfastq")

    @property
    def seed_matches(self) -> Path:
        return _with_suffix(self.prefix, ".bmf")

    @property
    def local_alignments(self) -> Path:
        return _with_suffix(self.prefix, ".baf")

    @property
    def slow_unsorted_bam(self) -> Path:
        return _with_suffix(self.prefix, ".bfast.unsorted.bam")

    @property
    def slow_bam(self) -> Path:
        return _with_suffix(self.prefix, ".bfast.bam")

    # Merge and recalibration
    @property
    def header(self) -> Path:
        return _with_suffix(self.prefix, ".header")

    @property
    def merged_bam(self) -> Path:
        return _with_suffix(self.prefix, ".merge.bam")

    @property
    def merged_index(self) -> Path:
        return _with_suffix(self.prefix, ".merge.bam.bai")

    @property
    def final_bam(self) -> Path:
        return _with_suffix(self.prefix, ".calmd.bam")

    @property
    def final_index(self) -> Path:
        return _with_suffix(self.prefix, ".calmd.bam.bai")

    # Bookkeeping
    @property
    def checkpoint(self) -> Path:
        return _with_suffix(self.prefix, ".checkpoint")

    @property
    def summary(self) -> Path:
        return _with_suffix(self.prefix, ".summary.tsv")

    @property
    def log_dir(self) -> Path:
        return _with_suffix(self.prefix, ".logs")

    def stage_log(self, stage: str) -> Path:
        return self.log_dir / f"{stage}.log"
