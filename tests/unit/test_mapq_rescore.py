"""Tests for mapping-quality rescoring."""

from pathlib import Path
import sys

import pytest

ROOT = Path(__file__).resolve().parents[2]
SRC = ROOT / "src"
if str(SRC) not in sys.path:
    sys.path.insert(0, str(SRC))

from triagealign.config import Config
from triagealign.exceptions import FileFormatError
from triagealign.modules.mapq_rescore import (
    MAX_MAPQ,
    MapqRescorer,
    PENALTY_RULES,
    rescore_line,
    rescore_mapq,
)
from triagealign.modules.triage import TriageCounts


def sam_line(mapq=30, tags=(), flag=0, qname="r1"):
    fields = [qname, str(flag), "chr1", "100", str(mapq), "4M", "*", "0", "0", "ACGT", "IIII"]
    fields.extend(tags)
    return "\t".join(fields) + "\n"


def mapq_of(line):
    return int(line.split("\t")[4])


class TestRescoreMapq:
    """Rule cascade on the tag text."""

    def test_single_edit_with_alternative_hits_scores_18(self):
        # Both NM:i:1 rules fire: 30 - 3 - 3 - 6
        assert rescore_mapq(30, "NM:i:1\tXA:i:1") == 18

    def test_perfect_match_gets_bonus(self):
        assert rescore_mapq(30, "NM:i:0\tCM:i:0") == 40

    def test_bonus_skips_penalties(self):
        assert rescore_mapq(30, "XA:i:1\tNM:i:0\tCM:i:0") == 40

    def test_bonus_is_capped_at_bam_maximum(self):
        assert rescore_mapq(255, "NM:i:0\tCM:i:0") == 255
        assert rescore_mapq(250, "NM:i:0\tCM:i:0") == 255
        assert rescore_mapq(240, "NM:i:0\tCM:i:0") == 250

    def test_single_colour_mismatch_overrides_to_one(self):
        assert rescore_mapq(30, "CM:i:1") == 1
        assert rescore_mapq(0, "NM:i:1\tCM:i:1") == 1

    def test_multi_digit_colour_mismatch_is_not_overridden(self):
        # "CM:i:10" contains "CM:i:1" as a substring: -2 applies, the override does not
        assert rescore_mapq(30, "CM:i:10") == 28

    def test_colour_mismatch_penalty(self):
        assert rescore_mapq(30, "NM:i:0\tCM:i:2") == 24
        assert rescore_mapq(30, "CM:i:7") == 10

    def test_floor_at_zero(self):
        assert rescore_mapq(5, "NM:i:1\tCM:i:9") == 0

    def test_no_matching_tags_leaves_score(self):
        assert rescore_mapq(30, "MD:Z:4") == 30

    def test_rule_order(self):
        assert [r.tag for r in PENALTY_RULES[:3]] == ["NM:i:1", "XA:i:1", "NM:i:1"]
        assert [r.delta for r in PENALTY_RULES] == [
            -3, -3, -6, -2, -6, -9, -12, -15, -18, -20, -22, -24
        ]


class TestRescoreLine:
    """Line-level rewriting."""

    def test_header_passes_through(self):
        header = "@SQ\tSN:chr1\tLN:1000\n"
        assert rescore_line(header) == header

    def test_only_mapq_column_changes(self):
        line = sam_line(30, ["XA:i:0", "NM:i:1", "CM:i:3"])
        out = rescore_line(line)
        before = line.rstrip("\n").split("\t")
        after = out.rstrip("\n").split("\t")
        assert mapq_of(out) == 30 - 3 - 6 - 9
        assert after[:4] == before[:4]
        assert after[5:] == before[5:]

    def test_tags_are_only_read_from_optional_columns(self):
        line = sam_line(30, ["MD:Z:4"], qname="readCM:i:1")
        assert mapq_of(rescore_line(line)) == 30

    def test_short_record_raises(self):
        with pytest.raises(FileFormatError):
            rescore_line("r1\t0\tchr1\t100\t30\n")

    def test_non_integer_mapq_raises(self):
        line = sam_line(30).replace("\t30\t", "\tNA\t")
        with pytest.raises(FileFormatError, match="MAPQ"):
            rescore_line(line)


class TestMapqRescorer:
    """Streaming filter."""

    def test_filter_rescores_and_counts(self):
        triage = TriageCounts()
        rescorer = MapqRescorer(triage=triage)
        lines = [
            "@HD\tVN:1.0\n",
            sam_line(30, ["NM:i:0", "CM:i:0"]),
            sam_line(30, ["NM:i:1", "XA:i:1"], qname="r2"),
            "\n",
            sam_line(0, ["XM:i:0"], flag=4, qname="r3"),
        ]

        out = list(rescorer(lines))

        assert out[0] == "@HD\tVN:1.0\n"
        assert [mapq_of(line) for line in out[1:]] == [40, 18, 0]
        assert triage.placed == 2
        assert triage.diverted == 1
        assert rescorer.stats.header_lines == 1
        assert rescorer.stats.records == 3
        assert rescorer.stats.boosted == 1
        assert rescorer.stats.penalised == 1

    def test_filter_counts_overrides(self):
        rescorer = MapqRescorer()
        out = list(rescorer.filter([sam_line(30, ["CM:i:1"])]))
        assert mapq_of(out[0]) == 1
        assert rescorer.stats.overridden == 1

    def test_filter_propagates_format_errors(self):
        rescorer = MapqRescorer()
        with pytest.raises(FileFormatError):
            list(rescorer.filter(["garbage\n"]))

    def test_default_bowtie_output_stays_in_bam_range(self):
        # Without --mapq bowtie reports 255 for every unique hit
        assert Config().tools.bowtie["mapq"] is None
        lines = [
            sam_line(255, ["XA:i:0", "MD:Z:4", "NM:i:0", "CM:i:0"]),
            sam_line(255, ["XA:i:1", "MD:Z:4", "NM:i:1", "CM:i:0"], qname="r2"),
            sam_line(255, ["XA:i:0", "MD:Z:4", "NM:i:0", "CM:i:2"], qname="r3"),
        ]

        mapqs = [mapq_of(line) for line in MapqRescorer().filter(lines)]

        assert mapqs == [255, 243, 249]
        assert all(0 <= mapq <= MAX_MAPQ for mapq in mapqs)
