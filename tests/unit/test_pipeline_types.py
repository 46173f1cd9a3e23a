"""Tests for pipeline descriptors and checkpoint state."""

from dataclasses import asdict
from pathlib import Path
import json
import sys

ROOT = Path(__file__).resolve().parents[2]
SRC = ROOT / "src"
if str(SRC) not in sys.path:
    sys.path.insert(0, str(SRC))

from triagealign.core.pipeline_types import (
    PipelineState,
    PipelineStep,
    StepGroup,
    StepRecord,
    StepStatus,
)
from triagealign.core.steps.definitions import PIPELINE_STEPS


class TestPipelineStep:
    def test_defaults(self):
        step = PipelineStep(name="fast_pass", description="Fast pass")
        assert step.group is StepGroup.FAST
        assert step.inputs == ()
        assert step.outputs == ()


class TestStepRecord:
    def test_creation(self):
        record = StepRecord(step_name="fast_pass", start_time=100.0)
        assert record.status == "running"
        assert record.end_time is None
        assert record.output_files == []

    def test_finish_sets_duration(self):
        record = StepRecord(step_name="fast_pass", start_time=0.0)
        record.finish(StepStatus.FAILED, "bowtie failed")
        assert record.status == "failed"
        assert record.duration == record.end_time
        assert record.error_message == "bowtie failed"


class TestPipelineState:
    def test_creation(self):
        state = PipelineState()
        assert state.current_step is None
        assert state.failed_step is None
        assert state.results == {}
        assert state.version == "2.0"

    def test_complete_step(self):
        state = PipelineState()
        state.start_step("fast_pass")
        assert state.current_step == "fast_pass"
        state.complete_step("fast_pass", ["x.bam"])

        meta = state.step_metadata["fast_pass"]
        assert state.completed_steps == ["fast_pass"]
        assert state.current_step is None
        assert meta.status == "completed"
        assert meta.duration is not None and meta.duration >= 0
        assert meta.output_files == ["x.bam"]

    def test_complete_step_is_idempotent(self):
        state = PipelineState(completed_steps=["fast_pass"])
        state.complete_step("fast_pass")
        assert state.completed_steps == ["fast_pass"]
        assert state.is_complete("fast_pass")

    def test_fail_step(self):
        state = PipelineState()
        state.start_step("seed_match")
        state.fail_step("seed_match", "bfast failed")

        assert state.failed_step == "seed_match"
        assert state.current_step is None
        assert state.step_metadata["seed_match"].status == "failed"
        assert state.step_metadata["seed_match"].error_message == "bfast failed"

    def test_retry_clears_failure(self):
        state = PipelineState()
        state.start_step("seed_match")
        state.fail_step("seed_match", "bfast failed")
        state.start_step("seed_match")
        state.complete_step("seed_match")

        assert state.failed_step is None
        assert state.step_metadata["seed_match"].error_message is None

    def test_checkpoint_round_trip_drops_unknown_steps(self):
        state = PipelineState(pipeline_start_time=1.0)
        for name in ("fast_pass", "retired_step"):
            state.start_step(name)
            state.complete_step(name, [f"{name}.out"])
        state.results["fast_placed_reads"] = 3

        data = json.loads(json.dumps(asdict(state)))
        restored = PipelineState.from_checkpoint(data, ["fast_pass", "quality_trim"], "abc")

        assert restored.completed_steps == ["fast_pass"]
        assert set(restored.step_metadata) == {"fast_pass"}
        assert restored.step_metadata["fast_pass"].output_files == ["fast_pass.out"]
        assert restored.results == {"fast_placed_reads": 3}
        assert restored.config_hash == "abc"


def test_step_order():
    assert [step.name for step in PIPELINE_STEPS] == [
        "check_dependencies",
        "fast_pass",
        "quality_trim",
        "seed_match",
        "local_align",
        "post_process",
        "sort_alignments",
        "merge_alignments",
        "index_and_recalibrate",
        "summarize",
    ]


def test_groups_are_contiguous():
    groups = [step.group for step in PIPELINE_STEPS]
    assert groups == sorted(groups, key=list(StepGroup).index)
