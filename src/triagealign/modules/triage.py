"""
Triage - split fast-pass results into placed and diverted reads.

The fast pass partitions the input into two disjoint sets: reads it placed
confidently (reported, unmapped bit clear) and everything else (ambiguous,
too divergent or unaligned), which bowtie writes to its side channel and which
becomes the slow pass's only input. This module classifies SAM records into
those two sets, counts them, and checks after the merge that no read name
ended up in both passes.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, Sequence

from triagealign.constants import SAM_FLAG_COL, SAM_FLAG_UNMAPPED
from triagealign.exceptions import FileFormatError


class Placement(enum.Enum):
    PLACED = "placed"
    DIVERTED = "diverted"


def classify_record(fields: Sequence[str]) -> Placement:
    """Classify a split SAM alignment line by its FLAG column."""
    try:
        flag = int(fields[SAM_FLAG_COL])
    except (IndexError, ValueError):
        raise FileFormatError(f"Invalid SAM FLAG in record: {fields[:2]!r}") from None
    if flag & SAM_FLAG_UNMAPPED:
        return Placement.DIVERTED
    return Placement.PLACED


@dataclass
class TriageCounts:
    """Running totals of the placed/diverted split."""

    placed: int = 0
    diverted: int = 0

    @property
    def total(self) -> int:
        return self.placed + self.diverted

    @property
    def placed_percentage(self) -> float:
        if self.total == 0:
            return 0.0
        return (self.placed / self.total) * 100

    def observe(self, fields: Sequence[str]) -> Placement:
        placement = classify_record(fields)
        if placement is Placement.PLACED:
            self.placed += 1
        else:
            self.diverted += 1
        return placement


def count_fasta_records(path: Path) -> int:
    """Count ``>`` records in a (cs)fasta file, ignoring ``#`` comment lines."""
    count = 0
    with open(path, "r") as handle:
        for line in handle:
            if line.startswith(">"):
                count += 1
    return count


def shared_read_names(first: Iterable[str], second: Iterable[str]) -> set[str]:
    """Return read names present in both iterables.

    The first iterable is held in memory; pass the smaller pass first.
    """
    seen = set(first)
    return {name for name in second if name in seen}
