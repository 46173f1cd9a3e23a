"""Tests for the pipeline executor."""

from pathlib import Path
import json
import logging
import sys

import pytest
from unittest.mock import patch

ROOT = Path(__file__).resolve().parents[2]
SRC = ROOT / "src"
if str(SRC) not in sys.path:
    sys.path.insert(0, str(SRC))

from triagealign.config import Config
from triagealign.core.pipeline import Pipeline
from triagealign.core.steps.definitions import PIPELINE_STEPS
from triagealign.exceptions import PipelineError


@pytest.fixture
def config(run_inputs, tmp_path):
    cfg = Config(output_prefix=tmp_path / "out" / "sample", **run_inputs)
    cfg.runtime.enable_progress = False
    return cfg


def step_names(mock_execute):
    return [call.args[0].name for call in mock_execute.call_args_list]


class TestPipelineInit:
    def test_creates_output_dir_and_fresh_state(self, config):
        pipeline = Pipeline(config)
        assert pipeline.layout.output_dir.is_dir()
        assert pipeline.state_file == pipeline.layout.checkpoint
        assert pipeline.state.completed_steps == []
        assert pipeline.state.config_hash

    def test_requires_prefix(self, run_inputs):
        with pytest.raises(PipelineError):
            Pipeline(Config(**run_inputs))

    def test_config_hash_is_stable(self, config):
        assert Pipeline(config)._compute_config_hash() == Pipeline(config)._compute_config_hash()


class TestPipelineRun:
    def test_runs_every_step_and_removes_checkpoint(self, config):
        pipeline = Pipeline(config)
        with patch.object(Pipeline, "_execute_step", return_value=None) as mock_execute:
            pipeline.run()

        assert step_names(mock_execute) == [step.name for step in Pipeline.STEPS]
        assert not pipeline.state_file.exists()

    def test_keep_tmp_retains_checkpoint(self, config):
        config.keep_tmp = True
        pipeline = Pipeline(config)
        with patch.object(Pipeline, "_execute_step", return_value=["a.bam"]):
            pipeline.run()

        data = json.loads(pipeline.state_file.read_text())
        assert len(data["completed_steps"]) == len(Pipeline.STEPS)
        assert data["step_metadata"]["fast_pass"]["output_files"] == ["a.bam"]

    def test_failure_is_recorded_and_stops(self, config):
        def fail_at_trim(step):
            if step.name == "quality_trim":
                raise RuntimeError("trimmer exploded")
            return None

        pipeline = Pipeline(config)
        with patch.object(Pipeline, "_execute_step", side_effect=fail_at_trim) as mock_execute:
            with pytest.raises(PipelineError, match="quality_trim") as exc_info:
                pipeline.run()

        assert exc_info.value.step == "quality_trim"

        assert step_names(mock_execute) == ["check_dependencies", "fast_pass", "quality_trim"]
        data = json.loads(pipeline.state_file.read_text())
        assert data["failed_step"] == "quality_trim"
        assert data["completed_steps"] == ["check_dependencies", "fast_pass"]
        assert data["step_metadata"]["quality_trim"]["error_message"] == "trimmer exploded"

    def test_resume_skips_completed_steps(self, config):
        with patch.object(Pipeline, "_execute_step", return_value=None):
            Pipeline(config).run(stop_at=3)

        with patch.object(Pipeline, "_execute_step", return_value=None) as mock_execute:
            Pipeline(config).run()

        assert step_names(mock_execute)[0] == "seed_match"

    def test_force_reruns_everything(self, config):
        with patch.object(Pipeline, "_execute_step", return_value=None):
            Pipeline(config).run(stop_at=3)

        with patch.object(Pipeline, "_execute_step", return_value=None) as mock_execute:
            Pipeline(config).run(force=True)

        assert len(mock_execute.call_args_list) == len(Pipeline.STEPS)

    def test_stop_at_keeps_checkpoint(self, config):
        pipeline = Pipeline(config)
        with patch.object(Pipeline, "_execute_step", return_value=None):
            pipeline.run(stop_at=2)
        assert pipeline.state_file.exists()

    def test_start_from(self, config):
        with patch.object(Pipeline, "_execute_step", return_value=None) as mock_execute:
            Pipeline(config).run(start_from=7, stop_at=8)
        assert step_names(mock_execute) == ["sort_alignments", "merge_alignments"]

    @pytest.mark.parametrize(
        "kwargs", [{"start_from": 0}, {"stop_at": 11}, {"start_from": 5, "stop_at": 4}]
    )
    def test_invalid_range(self, config, kwargs):
        with pytest.raises(PipelineError):
            Pipeline(config).run(**kwargs)

    def test_missing_step_implementation(self, config):
        from triagealign.core.pipeline_types import PipelineStep

        with pytest.raises(PipelineError, match="not found"):
            Pipeline(config)._execute_step(PipelineStep("nope", "missing"))


def step_named(name):
    return next(step for step in PIPELINE_STEPS if step.name == name)


class TestStepArtifacts:
    def test_declared_names_resolve(self, config):
        pipeline = Pipeline(config)
        for step in PIPELINE_STEPS:
            for name in (*step.inputs, *step.outputs):
                assert isinstance(pipeline._resolve_artifact(name), Path), name

    def test_missing_inputs_stop_step_before_it_runs(self, config):
        pipeline = Pipeline(config)
        with patch.object(Pipeline, "_step_sort_alignments") as mock_step:
            with pytest.raises(PipelineError, match="fast_unsorted_bam, slow_unsorted_bam"):
                pipeline._execute_step(step_named("sort_alignments"))
        mock_step.assert_not_called()

    def test_outputs_are_logged(self, config, caplog):
        pipeline = Pipeline(config)
        pipeline.layout.diverted_reads.write_text(">r1\nT0123\n")

        def trim():
            pipeline.layout.trimmed_reads.write_text("@r1\nT0123\n+\n5555\n")
            return [str(pipeline.layout.trimmed_reads)]

        caplog.set_level(logging.DEBUG, logger="triagealign")
        with patch.object(Pipeline, "_step_quality_trim", side_effect=trim):
            outputs = pipeline._execute_step(step_named("quality_trim"))

        assert outputs == [str(pipeline.layout.trimmed_reads)]
        assert f"Created output file: {pipeline.layout.trimmed_reads} (17 bytes)" in caplog.text

    def test_run_reports_missing_inputs_as_step_failure(self, config):
        pipeline = Pipeline(config)
        with pytest.raises(PipelineError, match="quality_trim is missing inputs") as exc_info:
            pipeline.run(start_from=3, stop_at=3)
        assert exc_info.value.step == "quality_trim"
        assert pipeline.state.failed_step == "quality_trim"


class TestCheckpointLoading:
    def test_corrupted_checkpoint_starts_fresh(self, config):
        pipeline = Pipeline(config)
        pipeline.state_file.write_text("{not json")
        assert Pipeline(config).state.completed_steps == []

    def test_changed_config_with_fail_policy(self, config):
        with patch.object(Pipeline, "_execute_step", return_value=None):
            Pipeline(config).run(stop_at=1)

        config.threads = 2
        config.runtime.checkpoint_policy = "fail"
        with pytest.raises(PipelineError, match="checkpoint_policy=fail"):
            Pipeline(config)

    def test_changed_config_with_reset_policy(self, config):
        with patch.object(Pipeline, "_execute_step", return_value=None):
            Pipeline(config).run(stop_at=1)

        config.threads = 2
        config.runtime.checkpoint_policy = "reset"
        assert Pipeline(config).state.completed_steps == []


class TestDisplay:
    def test_show_steps(self, config, capsys):
        Pipeline(config).show_steps()
        out = capsys.readouterr().out
        assert "fast_pass" in out
        assert "Slow pass:" in out
        assert out.index("Fast pass:") < out.index("quality_trim") < out.index("Merge:")

    def test_show_checkpoint_without_checkpoint(self, config, capsys):
        Pipeline(config).show_checkpoint_info()
        assert "No checkpoint found" in capsys.readouterr().out
