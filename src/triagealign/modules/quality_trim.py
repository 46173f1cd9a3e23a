"""
Quality Trim - moving-average trimming of diverted colour-space reads.

Reads the csfasta/qual pair that the fast pass diverted and writes a single
BFAST colour-space FASTQ for the slow pass.

Trimming works from the 3' end. The last colour call is removed while either
its own quality is below ``min_qual`` or the mean quality of the last
``window`` calls is below ``threshold``. The 5' end is left alone because
the primer base anchors colour-to-base decoding of the whole read. Reads left
with fewer than ``min_length`` colour calls are dropped and never reach the
slow pass.

Input forms:
- csfasta + qual (``#`` comment lines skipped, one integer per colour call,
  missing calls carry negative qualities)
- a single colour-space FASTQ when no qual file exists
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from itertools import zip_longest
from pathlib import Path
from typing import Iterator, Optional, TextIO, Union

import numpy as np

from triagealign.constants import PHRED_OFFSET
from triagealign.exceptions import ConfigurationError, FileFormatError
from triagealign.utils.logging import get_logger


@dataclass
class ColorSpaceRead:
    """One colour-space read: primer base, colour calls and their qualities."""

    name: str
    sequence: str
    qualities: np.ndarray

    @property
    def calls(self) -> int:
        return len(self.sequence) - 1

    def truncated(self, calls: int) -> "ColorSpaceRead":
        return ColorSpaceRead(
            name=self.name,
            sequence=self.sequence[: calls + 1],
            qualities=self.qualities[:calls],
        )

    def to_fastq(self) -> str:
        quals = np.clip(self.qualities, 0, 93) + PHRED_OFFSET
        qual_str = "".join(chr(int(q)) for q in quals)
        return f"@{self.name}\n{self.sequence}\n+\n{qual_str}\n"


@dataclass
class TrimStats:
    """Statistics for a trimming run."""

    total_reads: int = 0
    kept_reads: int = 0
    dropped_reads: int = 0
    trimmed_calls: int = 0

    @property
    def kept_percentage(self) -> float:
        if self.total_reads == 0:
            return 0.0
        return (self.kept_reads / self.total_reads) * 100


def parse_moving_average(value: Union[str, tuple[int, float], list]) -> tuple[int, float]:
    """Parse ``"W:T"`` (window size, minimum mean quality)."""
    if isinstance(value, (tuple, list)):
        parts = [str(v) for v in value]
    else:
        parts = str(value).split(":")
    if len(parts) != 2:
        raise ConfigurationError(f"moving_average must look like 'window:threshold', got {value!r}")
    try:
        window = int(parts[0])
        threshold = float(parts[1])
    except ValueError:
        raise ConfigurationError(f"Invalid moving_average value: {value!r}") from None
    if window < 1:
        raise ConfigurationError(f"moving_average window must be >= 1, got {window}")
    return window, threshold


def trimmed_length(
    qualities: np.ndarray, window: int, threshold: float, min_qual: float
) -> int:
    """Return how many leading colour calls survive 3' trimming."""
    q = np.clip(np.asarray(qualities, dtype=float), 0, None)
    csum = np.concatenate(([0.0], np.cumsum(q)))
    end = len(q)
    while end > 0:
        if q[end - 1] < min_qual:
            end -= 1
            continue
        start = max(0, end - window)
        if (csum[end] - csum[start]) / (end - start) < threshold:
            end -= 1
            continue
        break
    return end


def _records(handle: TextIO) -> Iterator[tuple[str, str, int]]:
    """Yield (name, body, header line) from a FASTA-like file, skipping ``#`` comments."""
    path = getattr(handle, "name", None)
    name: Optional[str] = None
    header_line = 0
    body: list[str] = []
    for line_no, line in enumerate(handle, 1):
        line = line.rstrip("\r\n")
        if not line or line.startswith("#"):
            continue
        if line.startswith(">"):
            if name is not None:
                yield name, " ".join(body), header_line
            header = line[1:].split()
            if not header:
                raise FileFormatError("Empty record name", path=path, line=line_no)
            name = header[0]
            header_line = line_no
            body = []
        else:
            if name is None:
                raise FileFormatError(
                    f"Data before first header: {line[:40]!r}", path=path, line=line_no
                )
            body.append(line.strip())
    if name is not None:
        yield name, " ".join(body), header_line


def _parse_qualities(text: str, name: str, path: Path, line: int) -> np.ndarray:
    try:
        return np.array([int(tok) for tok in text.split()], dtype=np.int16)
    except ValueError:
        raise FileFormatError(
            f"Non-integer quality value for read {name}", path=path, line=line
        ) from None


def iter_csfasta_with_qual(reads: Path, qualities: Path) -> Iterator[ColorSpaceRead]:
    """Yield reads from a csfasta file and its companion qual file in lockstep."""
    with open(reads, "r") as read_handle, open(qualities, "r") as qual_handle:
        pairs = zip_longest(_records(read_handle), _records(qual_handle))
        for read_record, qual_record in pairs:
            if read_record is None or qual_record is None:
                raise FileFormatError(
                    f"Read and quality files have different record counts (vs {qualities})",
                    path=reads,
                )
            name, sequence, read_line = read_record
            qual_name, qual_text, qual_line = qual_record
            if qual_name != name:
                raise FileFormatError(
                    f"Read/quality order mismatch: {name!r} vs {qual_name!r}",
                    path=qualities,
                    line=qual_line,
                )
            sequence = sequence.replace(" ", "")
            quals = _parse_qualities(qual_text, name, qualities, qual_line)
            if len(quals) != len(sequence) - 1:
                raise FileFormatError(
                    f"Read {name} has {len(sequence) - 1} colour calls but {len(quals)} qualities",
                    path=reads,
                    line=read_line,
                )
            yield ColorSpaceRead(name=name, sequence=sequence, qualities=quals)


def iter_colorspace_fastq(path: Path) -> Iterator[ColorSpaceRead]:
    """Yield reads from a colour-space FASTQ file."""
    line_no = 0
    with open(path, "r") as handle:
        while True:
            header = handle.readline()
            line_no += 1
            if not header:
                return
            if not header.strip():
                continue
            record_line = line_no
            sequence = handle.readline().rstrip("\r\n")
            plus = handle.readline()
            qual_str = handle.readline().rstrip("\r\n")
            line_no += 3
            if not header.startswith("@") or not plus.startswith("+"):
                raise FileFormatError(
                    f"Malformed FASTQ record: {header.strip()!r}", path=path, line=record_line
                )
            name = header[1:].split()[0]
            quals = np.array([ord(c) - PHRED_OFFSET for c in qual_str], dtype=np.int16)
            if len(quals) != len(sequence) - 1:
                raise FileFormatError(
                    f"Read {name} has {len(sequence) - 1} colour calls but {len(quals)} qualities",
                    path=path,
                    line=record_line,
                )
            yield ColorSpaceRead(name=name, sequence=sequence, qualities=quals)


class QualityTrimmer:
    """Trim and length-filter colour-space reads."""

    def __init__(
        self,
        moving_average: Union[str, tuple[int, float]] = "5:18",
        min_qual: int = 10,
        min_length: int = 25,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self.window, self.threshold = parse_moving_average(moving_average)
        self.min_qual = int(min_qual)
        self.min_length = int(min_length)
        if self.min_length < 1:
            raise ConfigurationError(f"min_length must be >= 1, got {min_length}")
        self.logger = logger or get_logger(self.__class__.__name__)
        self.stats = TrimStats()

    def trim(self, read: ColorSpaceRead) -> Optional[ColorSpaceRead]:
        """Return the trimmed read, or None when it falls below ``min_length``."""
        self.stats.total_reads += 1
        keep = trimmed_length(read.qualities, self.window, self.threshold, self.min_qual)
        self.stats.trimmed_calls += read.calls - keep
        if keep < self.min_length:
            self.stats.dropped_reads += 1
            return None
        self.stats.kept_reads += 1
        if keep == read.calls:
            return read
        return read.truncated(keep)

    def run(
        self, reads: Path, output_fastq: Path, qualities: Optional[Path] = None
    ) -> TrimStats:
        """Trim ``reads`` (+ ``qualities``) into ``output_fastq``."""
        if not reads.exists():
            raise FileNotFoundError(f"Diverted reads not found: {reads}")
        if qualities is not None and qualities.exists():
            source = iter_csfasta_with_qual(reads, qualities)
        else:
            self.logger.info(f"No quality file next to {reads}; reading it as FASTQ")
            source = iter_colorspace_fastq(reads)

        output_fastq.parent.mkdir(parents=True, exist_ok=True)
        with open(output_fastq, "w") as out:
            for read in source:
                trimmed = self.trim(read)
                if trimmed is not None:
                    out.write(trimmed.to_fastq())

        self.logger.info(
            f"Trimmed {self.stats.total_reads:,} reads: {self.stats.kept_reads:,} kept "
            f"({self.stats.kept_percentage:.1f}%), {self.stats.dropped_reads:,} dropped"
        )
        return self.stats
