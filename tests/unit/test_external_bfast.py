"""Tests for the BFAST wrapper."""

from pathlib import Path
import sys

import pytest
from unittest.mock import patch

ROOT = Path(__file__).resolve().parents[2]
SRC = ROOT / "src"
if str(SRC) not in sys.path:
    sys.path.insert(0, str(SRC))

from triagealign.exceptions import ConfigurationError
from triagealign.external.bfast import Bfast


class TestBfast:
    @patch.object(Bfast, "_check_installation")
    @patch.object(Bfast, "run")
    def test_match(self, mock_run, mock_check, tmp_path):
        mock_run.return_value = ("", "")
        bmf = tmp_path / "x.bmf"

        Bfast(threads=4).match(Path("ref.fa"), Path("x.bfastq"), bmf, stderr_log=tmp_path / "m.log")

        cmd = mock_run.call_args[0][0]
        assert cmd[:2] == ["bfast", "match"]
        assert cmd[cmd.index("-f") + 1] == "ref.fa"
        assert cmd[cmd.index("-A") + 1] == "1"
        assert cmd[cmd.index("-r") + 1] == "x.bfastq"
        assert cmd[cmd.index("-n") + 1] == "4"
        assert cmd[cmd.index("-M") + 1] == "384"
        assert mock_run.call_args[1]["stdout_file"] == bmf
        assert mock_run.call_args[1]["stderr_log"] == tmp_path / "m.log"

    @patch.object(Bfast, "_check_installation")
    @patch.object(Bfast, "run")
    def test_localalign(self, mock_run, mock_check, tmp_path):
        mock_run.return_value = ("", "")
        baf = tmp_path / "x.baf"

        Bfast().localalign(Path("ref.fa"), Path("x.bmf"), baf, additional_args="-U")

        cmd = mock_run.call_args[0][0]
        assert cmd[:2] == ["bfast", "localalign"]
        assert cmd[cmd.index("-m") + 1] == "x.bmf"
        assert cmd[-1] == "-U"
        assert mock_run.call_args[1]["stdout_file"] == baf

    @patch.object(Bfast, "_check_installation")
    def test_postprocess_command(self, mock_check):
        cmd = Bfast(threads=2).postprocess_command(Path("ref.fa"), Path("x.baf"), mode=2, min_mapq=5)
        assert cmd[:2] == ["bfast", "postprocess"]
        assert cmd[cmd.index("-i") + 1] == "x.baf"
        assert cmd[cmd.index("-a") + 1] == "2"
        assert cmd[cmd.index("-q") + 1] == "5"
        assert cmd[cmd.index("-O") + 1] == "1"

    @patch.object(Bfast, "_check_installation")
    def test_postprocess_rejects_unknown_mode(self, mock_check):
        with pytest.raises(ConfigurationError):
            Bfast().postprocess_command(Path("ref.fa"), Path("x.baf"), mode=4)

    @patch.object(Bfast, "_check_installation")
    @patch.object(Bfast, "run_piped")
    def test_postprocess_to_bam(self, mock_piped, mock_check):
        bam_cmd = ["samtools", "view", "-b", "-F", "4", "-o", "x.bam", "-"]
        Bfast().postprocess_to_bam(Path("ref.fa"), Path("x.baf"), bam_cmd)

        producer, consumer = mock_piped.call_args[0]
        assert producer[producer.index("-a") + 1] == "3"
        assert consumer == bam_cmd
