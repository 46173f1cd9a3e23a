"""Tests for the placed/diverted split."""

from pathlib import Path
import sys

import pytest

ROOT = Path(__file__).resolve().parents[2]
SRC = ROOT / "src"
if str(SRC) not in sys.path:
    sys.path.insert(0, str(SRC))

from triagealign.exceptions import FileFormatError
from triagealign.modules.triage import (
    Placement,
    TriageCounts,
    classify_record,
    count_fasta_records,
    shared_read_names,
)


class TestClassifyRecord:
    def test_unmapped_bit_diverts(self):
        assert classify_record(["r1", "4"]) is Placement.DIVERTED
        assert classify_record(["r1", "20"]) is Placement.DIVERTED

    def test_mapped_records_are_placed(self):
        assert classify_record(["r1", "0"]) is Placement.PLACED
        assert classify_record(["r1", "16"]) is Placement.PLACED

    def test_invalid_flag(self):
        with pytest.raises(FileFormatError):
            classify_record(["r1", "x"])
        with pytest.raises(FileFormatError):
            classify_record(["r1"])


class TestTriageCounts:
    def test_observe(self):
        counts = TriageCounts()
        for flag in ("0", "16", "4"):
            counts.observe(["r", flag])
        assert counts.placed == 2
        assert counts.diverted == 1
        assert counts.total == 3
        assert counts.placed_percentage == pytest.approx(200 / 3)

    def test_empty_percentage(self):
        assert TriageCounts().placed_percentage == 0.0


def test_count_fasta_records_skips_comments(tmp_path):
    reads = tmp_path / "r.csfasta"
    reads.write_text("# Title: run\n>r1\nT0123\n>r2\nT3210\n")
    assert count_fasta_records(reads) == 2


def test_shared_read_names():
    assert shared_read_names(["a", "b"], iter(["c", "b", "d"])) == {"b"}
    assert shared_read_names([], ["a"]) == set()
