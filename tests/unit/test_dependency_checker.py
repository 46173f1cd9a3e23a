"""Tests for dependency_checker module."""

from pathlib import Path
import subprocess
import sys
from unittest.mock import patch, MagicMock

ROOT = Path(__file__).resolve().parents[2]
SRC = ROOT / "src"
if str(SRC) not in sys.path:
    sys.path.insert(0, str(SRC))

from triagealign.utils.dependency_checker import (
    DependencyChecker,
    TOOLS,
    Tool,
    compare_versions,
    get_tool_version,
)


class TestCompareVersions:
    def test_newer_or_equal(self):
        assert compare_versions("1.3.1", "1.0") is True
        assert compare_versions("1.10", "1.10") is True

    def test_older(self):
        assert compare_versions("1.9", "1.10") is False

    def test_unparseable_passes(self):
        assert compare_versions("not-a-version", "1.0") is True


class TestGetToolVersion:
    @patch("subprocess.run")
    def test_parses_banner(self, mock_run):
        mock_run.return_value = MagicMock(stdout="", stderr="bfast 0.7.0a\nusage: ...")
        assert get_tool_version("bfast", []) == "0.7.0"
        assert mock_run.call_args[0][0] == ["bfast"]

    @patch("subprocess.run", side_effect=subprocess.TimeoutExpired("bowtie", 5))
    def test_timeout(self, mock_run):
        assert get_tool_version("bowtie") is None


def test_tools_cover_the_pipeline():
    assert [tool.name for tool in TOOLS] == ["bowtie", "bfast", "samtools"]
    assert all(tool.required for tool in TOOLS)


class TestDependencyChecker:
    @patch("triagealign.utils.dependency_checker.find_tool", return_value=None)
    def test_all_missing(self, mock_find, capsys):
        checker = DependencyChecker()
        assert checker.check_all() is False
        assert [tool.name for tool in checker.missing_required] == ["bowtie", "bfast", "samtools"]

        checker.print_report()
        assert "Missing REQUIRED tools" in capsys.readouterr().out

    @patch("triagealign.utils.dependency_checker.get_tool_version", return_value="0.12.7")
    @patch("triagealign.utils.dependency_checker.find_tool", return_value="/bin/tool")
    def test_old_version_warns(self, mock_find, mock_version):
        tools = [Tool("bowtie", True, "fast pass", "conda install bowtie", min_version="1.0")]
        checker = DependencyChecker(tools=tools)
        assert checker.check_all() is True
        assert checker.version_warnings == ["bowtie: version 0.12.7 < recommended 1.0"]

    @patch("triagealign.utils.dependency_checker.find_tool")
    def test_optional_missing_does_not_fail(self, mock_find):
        mock_find.return_value = None
        tools = [Tool("extra", False, "optional", "n/a")]
        checker = DependencyChecker(tools=tools)
        assert checker.check_all() is True
        assert checker.missing_optional == tools
