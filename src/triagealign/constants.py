"""Unified constants for triagealign.

SAM layout, selection modes and pipeline defaults shared across modules.
"""

# ================== SAM layout ==================
# Lines starting with this marker are header lines
SAM_HEADER_MARKER: str = "@"

# 0-based column indices of a SAM alignment line
SAM_FLAG_COL: int = 1
SAM_MAPQ_COL: int = 4

# Mandatory columns of an alignment line
SAM_MIN_COLUMNS: int = 11

# FLAG bit set on records without a placement
SAM_FLAG_UNMAPPED: int = 0x4


# ================== Slow-pass selection policy ==================
# BFAST postprocess -a values
SELECT_UNIQUE: int = 2
SELECT_BEST_SCORE: int = 3
SELECTION_MODES: tuple[int, ...] = (SELECT_UNIQUE, SELECT_BEST_SCORE)


# ================== Defaults ==================
DEFAULT_THREADS: int = 8
DEFAULT_SEED: int = 0
PHRED_OFFSET: int = 33


# ================== Tool versions ==================
MIN_BOWTIE_VERSION: str = "1.0"
MIN_SAMTOOLS_VERSION: str = "1.10"
