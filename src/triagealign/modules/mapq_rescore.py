"""
Mapping-quality rescoring for fast-pass SAM output.

Bowtie reports a flat mapping quality for every unique placement. This module
re-grades each alignment line from its tag values before the stream is
encoded to BAM:

- NM:i:0 together with CM:i:0 earns a fixed bonus and nothing else applies
- otherwise an ordered list of (tag substring, delta) penalties is applied,
  every rule checked independently against the record's optional fields
- a record carrying exactly one colour mismatch (CM:i:1 not followed by a
  digit) is then forced to a score of 1
- the result is floored at 0 and capped at 255, the largest MAPQ BAM can
  store (bowtie reports 255 for unique hits unless --mapq is given)

Header lines pass through untouched and only the MAPQ column is rewritten.
The two NM:i:1 rules both fire, so a single edit costs -9 in total.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Iterable, Iterator, Optional

from triagealign.constants import SAM_HEADER_MARKER, SAM_MAPQ_COL, SAM_MIN_COLUMNS
from triagealign.exceptions import FileFormatError
from triagealign.modules.triage import TriageCounts
from triagealign.utils.logging import get_logger


@dataclass(frozen=True)
class RescoreRule:
    """Add ``delta`` to the score when ``tag`` occurs in the record's tags."""

    tag: str
    delta: int

    def matches(self, tags: str) -> bool:
        return self.tag in tags


HIGH_CONFIDENCE_TAGS: tuple[str, ...] = ("NM:i:0", "CM:i:0")
HIGH_CONFIDENCE_BONUS: int = 10

PENALTY_RULES: tuple[RescoreRule, ...] = (
    RescoreRule("NM:i:1", -3),
    RescoreRule("XA:i:1", -3),
    RescoreRule("NM:i:1", -6),
    RescoreRule("CM:i:1", -2),
    RescoreRule("CM:i:2", -6),
    RescoreRule("CM:i:3", -9),
    RescoreRule("CM:i:4", -12),
    RescoreRule("CM:i:5", -15),
    RescoreRule("CM:i:6", -18),
    RescoreRule("CM:i:7", -20),
    RescoreRule("CM:i:8", -22),
    RescoreRule("CM:i:9", -24),
)

SINGLE_COLOR_MISMATCH = re.compile(r"CM:i:1(?!\d)")
SINGLE_COLOR_MISMATCH_SCORE: int = 1

MIN_MAPQ: int = 0
MAX_MAPQ: int = 255


def is_high_confidence(tags: str) -> bool:
    return all(tag in tags for tag in HIGH_CONFIDENCE_TAGS)


def rescore_mapq(mapq: int, tags: str, rules: Iterable[RescoreRule] = PENALTY_RULES) -> int:
    """Return the adjusted mapping quality for a record with the given tag text."""
    if is_high_confidence(tags):
        score = mapq + HIGH_CONFIDENCE_BONUS
    else:
        score = mapq
        for rule in rules:
            if rule.matches(tags):
                score += rule.delta

        if SINGLE_COLOR_MISMATCH.search(tags):
            score = SINGLE_COLOR_MISMATCH_SCORE

    return max(MIN_MAPQ, min(MAX_MAPQ, score))


def split_record(line: str) -> list[str]:
    """Split a SAM alignment line into columns, validating the mandatory ones."""
    fields = line.rstrip("\r\n").split("\t")
    if len(fields) < SAM_MIN_COLUMNS:
        raise FileFormatError(
            f"SAM record has {len(fields)} columns, expected at least {SAM_MIN_COLUMNS}: "
            f"{line[:80]!r}"
        )
    return fields


def rescore_line(line: str) -> str:
    """Rescore one SAM line; header lines are returned unchanged."""
    if line.startswith(SAM_HEADER_MARKER):
        return line
    fields = split_record(line)
    return _rescore_fields(fields)


def _rescore_fields(fields: list[str]) -> str:
    try:
        mapq = int(fields[SAM_MAPQ_COL])
    except ValueError:
        raise FileFormatError(
            f"Non-integer MAPQ {fields[SAM_MAPQ_COL]!r} for read {fields[0]}"
        ) from None
    tags = "\t".join(fields[SAM_MIN_COLUMNS:])
    fields[SAM_MAPQ_COL] = str(rescore_mapq(mapq, tags))
    return "\t".join(fields) + "\n"


@dataclass
class RescoreStats:
    """Counters collected while streaming."""

    header_lines: int = 0
    records: int = 0
    boosted: int = 0
    penalised: int = 0
    overridden: int = 0


class MapqRescorer:
    """Streaming SAM filter that rescores MAPQ and records the triage split."""

    def __init__(
        self,
        triage: Optional[TriageCounts] = None,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self.triage = triage if triage is not None else TriageCounts()
        self.stats = RescoreStats()
        self.logger = logger or get_logger(self.__class__.__name__)

    def __call__(self, lines: Iterable[str]) -> Iterator[str]:
        return self.filter(lines)

    def filter(self, lines: Iterable[str]) -> Iterator[str]:
        """Yield rescored lines; suitable as a ``run_piped`` line filter."""
        for line in lines:
            if line.startswith(SAM_HEADER_MARKER):
                self.stats.header_lines += 1
                yield line
                continue
            if not line.strip():
                continue

            fields = split_record(line)
            self.triage.observe(fields)
            self.stats.records += 1

            tags = "\t".join(fields[SAM_MIN_COLUMNS:])
            if is_high_confidence(tags):
                self.stats.boosted += 1
            elif SINGLE_COLOR_MISMATCH.search(tags):
                self.stats.overridden += 1
            elif any(rule.matches(tags) for rule in PENALTY_RULES):
                self.stats.penalised += 1

            yield _rescore_fields(fields)

        self.logger.debug(
            f"Rescored {self.stats.records:,} records: {self.stats.boosted:,} boosted, "
            f"{self.stats.penalised:,} penalised, {self.stats.overridden:,} overridden"
        )
