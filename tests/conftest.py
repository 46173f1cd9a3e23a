"""Pytest configuration for triagealign tests."""

import logging
import sys
from pathlib import Path

import pytest

# Add src directory to Python path
ROOT = Path(__file__).resolve().parents[1]
SRC = ROOT / "src"
if str(SRC) not in sys.path:
    sys.path.insert(0, str(SRC))


@pytest.fixture(autouse=True)
def reset_logging_after_test():
    """Reset the triagealign logger after each test.

    setup_logging() sets propagate=False, which would hide records from caplog
    in later tests.
    """
    yield
    app_logger = logging.getLogger("triagealign")
    for handler in list(app_logger.handlers):
        app_logger.removeHandler(handler)
    app_logger.setLevel(logging.NOTSET)
    app_logger.propagate = True


@pytest.fixture
def run_inputs(tmp_path):
    """Reference, csfasta and qual files that pass Config.validate()."""
    reference = tmp_path / "ref.fa"
    reads = tmp_path / "r.csfasta"
    quals = tmp_path / "r.qual"
    reference.write_text(">chr1\nACGTACGTACGT\n", encoding="utf-8")
    reads.write_text("# title\n>r1\nT0123\n>r2\nT3210\n", encoding="utf-8")
    quals.write_text("# title\n>r1\n20 20 20 20\n>r2\n20 20 20 20\n", encoding="utf-8")
    return {"reference": reference, "reads": reads, "qualities": quals}
