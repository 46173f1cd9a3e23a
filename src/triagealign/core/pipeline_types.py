"""Step descriptors and checkpointed run state.

Free of executor imports so step definitions can load without it.
"""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Iterable, List, Optional, Tuple

CHECKPOINT_VERSION = "2.0"


class ResultKeys:
    """Canonical keys for pipeline step results."""

    FAST_BAM = "fast_bam"
    FAST_PLACED = "fast_placed_reads"
    FAST_DIVERTED = "fast_diverted_reads"
    RESCORED_RECORDS = "rescored_records"
    TRIMMED_READS = "trimmed_reads"
    TRIM_TOTAL = "trim_total_reads"
    TRIM_KEPT = "trim_kept_reads"
    TRIM_DROPPED = "trim_dropped_reads"
    SEED_MATCHES = "seed_matches"
    LOCAL_ALIGNMENTS = "local_alignments"
    SLOW_BAM = "slow_bam"
    MERGED_BAM = "merged_bam"
    FINAL_BAM = "final_bam"
    SUMMARY_TSV = "summary_tsv"


class StepGroup(str, Enum):
    FAST = "Fast pass"
    SLOW = "Slow pass"
    MERGE = "Merge"


class StepStatus(str, Enum):
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"


@dataclass(frozen=True)
class PipelineStep:
    """One stage of the run.

    ``inputs`` and ``outputs`` name ``OutputLayout`` properties, or the
    ``reads``/``qualities`` config fields. The executor refuses to start a
    step whose inputs are missing.
    """

    name: str
    description: str
    group: StepGroup = StepGroup.FAST
    inputs: Tuple[str, ...] = ()
    outputs: Tuple[str, ...] = ()


@dataclass
class StepRecord:
    """Timing and outcome of one step attempt, as stored in the checkpoint."""

    step_name: str
    start_time: float
    end_time: Optional[float] = None
    duration: Optional[float] = None
    status: str = StepStatus.RUNNING.value
    error_message: Optional[str] = None
    output_files: List[str] = field(default_factory=list)

    def finish(self, status: StepStatus, error_message: Optional[str] = None) -> None:
        self.end_time = time.time()
        self.duration = self.end_time - self.start_time
        self.status = status.value
        self.error_message = error_message


@dataclass
class PipelineState:
    """Progress of one run under an output prefix."""

    completed_steps: List[str] = field(default_factory=list)
    current_step: Optional[str] = None
    failed_step: Optional[str] = None
    results: Dict[str, Any] = field(default_factory=dict)
    step_metadata: Dict[str, StepRecord] = field(default_factory=dict)
    pipeline_start_time: Optional[float] = None
    last_checkpoint_time: Optional[float] = None
    config_hash: Optional[str] = None
    version: str = CHECKPOINT_VERSION

    @classmethod
    def from_checkpoint(
        cls, data: Dict[str, Any], known_steps: Iterable[str], config_hash: str
    ) -> "PipelineState":
        """Rebuild state from checkpoint JSON, dropping steps that no longer exist."""
        known = set(known_steps)
        return cls(
            completed_steps=[name for name in data.get("completed_steps", []) if name in known],
            current_step=data.get("current_step"),
            failed_step=data.get("failed_step"),
            results=data.get("results", {}),
            step_metadata={
                name: StepRecord(**record)
                for name, record in data.get("step_metadata", {}).items()
                if name in known
            },
            pipeline_start_time=data.get("pipeline_start_time"),
            last_checkpoint_time=data.get("last_checkpoint_time"),
            config_hash=config_hash,
        )

    def is_complete(self, step_name: str) -> bool:
        return step_name in self.completed_steps

    def start_step(self, step_name: str) -> StepRecord:
        """Open a fresh record for ``step_name``; a retried step restarts its clock."""
        record = StepRecord(step_name=step_name, start_time=time.time())
        self.step_metadata[step_name] = record
        self.current_step = step_name
        return record

    def complete_step(self, step_name: str, output_files: Optional[List[str]] = None) -> None:
        record = self.step_metadata.get(step_name)
        if record is not None:
            record.finish(StepStatus.COMPLETED)
            record.output_files = list(output_files or [])
        if step_name not in self.completed_steps:
            self.completed_steps.append(step_name)
        self.current_step = None
        self.failed_step = None

    def fail_step(self, step_name: str, error_message: str) -> None:
        record = self.step_metadata.get(step_name)
        if record is not None:
            record.finish(StepStatus.FAILED, error_message)
        self.current_step = None
        self.failed_step = step_name

    def get_total_runtime(self) -> Optional[float]:
        """Seconds since the run that created this checkpoint started."""
        if not self.pipeline_start_time:
            return None
        return time.time() - self.pipeline_start_time
