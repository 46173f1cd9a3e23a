"""Main pipeline orchestrator for triagealign."""

from __future__ import annotations

import json
import os
import time
import hashlib
from datetime import datetime
from pathlib import Path
from typing import Any, Optional
from dataclasses import asdict

from triagealign.config import Config
from triagealign.exceptions import PipelineError
from triagealign.utils.progress import iter_progress
from triagealign.utils.logging import LogTemplates, get_logger
from triagealign.core.layout import OutputLayout
from triagealign.core.pipeline_types import CHECKPOINT_VERSION, PipelineState, PipelineStep
from triagealign.core.steps.definitions import PIPELINE_STEPS

# Step execution lives in `triagealign.core.steps.*` and is imported lazily by
# wrapper methods on `Pipeline` to keep imports light.


class Pipeline:
    """Sequential, fail-fast executor for the two-pass alignment."""

    STEPS = PIPELINE_STEPS

    state: PipelineState
    layout: OutputLayout

    def __init__(self, config: Config):
        self.config = config
        self.logger = get_logger(self.__class__.__name__)

        if config.output_prefix is None:
            raise PipelineError("Output prefix is required")
        self.layout = OutputLayout.from_prefix(config.output_prefix)
        self.layout.output_dir.mkdir(parents=True, exist_ok=True)

        self.state_file = self.layout.checkpoint
        self.state = self._load_state()

    def _set_result(self, key: str, value: Any) -> None:
        self.state.results[key] = value

    def _get_result(self, key: str, default: Any = None) -> Any:
        return self.state.results.get(key, default)

    def _compute_config_hash(self) -> str:
        """Compute hash of current configuration for validation.

        Paths are resolved to absolute form first so a relative and an absolute
        spelling of the same input hash identically.
        """
        config_copy = asdict(self.config)

        def normalize(value: Any) -> Any:
            if isinstance(value, dict):
                return {k: normalize(v) for k, v in value.items()}
            if isinstance(value, list):
                return [normalize(v) for v in value]
            if hasattr(value, "resolve"):
                try:
                    return str(value.resolve())
                except (OSError, ValueError):
                    return str(value)
            return value

        config_str = json.dumps(normalize(config_copy), sort_keys=True, default=str)
        return hashlib.sha256(config_str.encode()).hexdigest()[:20]

    def _load_state(self) -> PipelineState:
        """Load pipeline state from checkpoint with validation."""
        if not self.state_file.exists():
            return self._create_fresh_state()

        try:
            with open(self.state_file, "r") as f:
                data = json.load(f)

            if data.get("version") != CHECKPOINT_VERSION:
                self.logger.warning("Checkpoint from older version, starting fresh")
                return self._create_fresh_state()

            current_hash = self._compute_config_hash()
            saved_hash = data.get("config_hash")
            if saved_hash and saved_hash != current_hash:
                self.logger.warning("Configuration changed since last checkpoint")
                policy = self.config.runtime.checkpoint_policy
                if policy == "reset":
                    self.logger.info("Checkpoint policy = reset; starting fresh state")
                    return self._create_fresh_state()
                elif policy == "fail":
                    raise PipelineError("Config changed and checkpoint_policy=fail")
                else:
                    self.logger.info(
                        "Checkpoint policy = continue; resuming with existing checkpoint"
                    )

            state = PipelineState.from_checkpoint(
                data, (step.name for step in self.STEPS), current_hash
            )

            self.logger.info(
                f"Loaded checkpoint with {len(state.completed_steps)} completed steps"
            )
            if state.failed_step:
                self.logger.warning(f"Previous run failed at step: {state.failed_step}")
            return state

        except json.JSONDecodeError as e:
            self.logger.error(f"Checkpoint file corrupted (invalid JSON): {e}")
        except (KeyError, TypeError, ValueError) as e:
            self.logger.error(f"Checkpoint file has incompatible format: {e}")
        except OSError as e:
            self.logger.error(f"Could not read checkpoint file: {e}")

        self.logger.info("Starting with fresh state")
        return self._create_fresh_state()

    def _create_fresh_state(self) -> PipelineState:
        return PipelineState(
            completed_steps=[],
            config_hash=self._compute_config_hash(),
            pipeline_start_time=time.time(),
            version=CHECKPOINT_VERSION,
        )

    def _save_state(self) -> None:
        """Save pipeline state to checkpoint with atomic write."""
        self.state_file.parent.mkdir(parents=True, exist_ok=True)
        self.state.last_checkpoint_time = time.time()

        temp_file = self.state_file.with_name(self.state_file.name + ".tmp")
        try:
            checkpoint_data = asdict(self.state)
            checkpoint_data["_saved_at"] = datetime.now().isoformat()

            with open(temp_file, "w") as f:
                json.dump(checkpoint_data, f, indent=2, default=str)
                f.flush()
                os.fsync(f.fileno())

            temp_file.replace(self.state_file)
            self.logger.debug(f"Checkpoint saved to {self.state_file}")

        except (OSError, TypeError, ValueError) as e:
            self.logger.error(f"Failed to save checkpoint: {e}")
            if temp_file.exists():
                try:
                    temp_file.unlink()
                except OSError:
                    pass
            raise PipelineError(f"Failed to save checkpoint: {e}")

    def _finalize_outputs(self) -> None:
        """Drop the checkpoint after a clean run unless temporary files are kept."""
        if self.config.keep_tmp:
            self.logger.info(f"Checkpoint retained at: {self.state_file}")
            return
        try:
            if self.state_file.exists():
                self.state_file.unlink()
                self.logger.debug(f"Removed checkpoint: {self.state_file}")
        except OSError as exc:
            self.logger.warning(f"Could not remove checkpoint {self.state_file}: {exc}")

    def show_steps(self, detailed: bool = False) -> None:
        """Show pipeline steps with their status from the checkpoint."""
        import click

        click.echo("triagealign Pipeline Steps:")
        click.echo("=" * 70)

        name_width = max(16, max(len(s.name) for s in self.STEPS))
        idx_width = len(str(len(self.STEPS)))

        group = None
        for i, step in enumerate(self.STEPS, 1):
            if step.group is not group:
                group = step.group
                click.echo(f"{group.value}:")
            if self.state.is_complete(step.name):
                status = "✓"
            elif step.name == self.state.current_step:
                status = "◉"
            elif step.name == self.state.failed_step:
                status = "✗"
            else:
                status = "○"

            click.echo(
                f"{status} Step {i:{idx_width}d}: {step.name:<{name_width}} - {step.description}"
            )

            if detailed and step.name in self.state.step_metadata:
                meta = self.state.step_metadata[step.name]
                if meta.duration:
                    click.echo(f"    Duration: {meta.duration:.1f}s")
                if meta.error_message:
                    click.echo(f"    Error: {meta.error_message}")
                if meta.output_files:
                    click.echo(f"    Output files: {', '.join(meta.output_files)}")

        click.echo("=" * 70)

        if detailed and self.state.failed_step:
            click.echo(f"Previous run failed at: {self.state.failed_step}")
            click.echo("   Use --force to restart from the beginning, or re-run to resume")

    def show_checkpoint_info(self) -> None:
        """Show checkpoint information for debugging."""
        import click

        click.echo("\nCheckpoint Information")
        click.echo("=" * 50)

        if not self.state_file.exists():
            click.echo(f"No checkpoint found at: {self.state_file}")
            click.echo("Run the pipeline first to create a checkpoint.")
            return

        click.echo(f"Checkpoint file: {self.state_file}")
        click.echo(f"Output prefix: {self.layout.prefix}")
        click.echo("-" * 50)

        completed = len(self.state.completed_steps)
        click.echo(f"Progress: {completed}/{len(self.STEPS)} steps completed")
        if self.state.completed_steps:
            click.echo(f"Completed: {', '.join(self.state.completed_steps)}")
        if self.state.current_step:
            click.echo(f"Current step: {self.state.current_step}")
        if self.state.failed_step:
            click.echo(f"Failed at: {self.state.failed_step}")
            meta = self.state.step_metadata.get(self.state.failed_step)
            if meta and meta.error_message:
                click.echo(f"Error: {meta.error_message}")
        if self.state.last_checkpoint_time:
            ts = datetime.fromtimestamp(self.state.last_checkpoint_time)
            click.echo(f"Last saved: {ts.isoformat()}")

        click.echo("=" * 50)

    def run(
        self, start_from: Optional[int] = None, stop_at: Optional[int] = None, force: bool = False
    ) -> dict[str, Any]:
        """Run the steps in order, stopping at the first failure."""
        if force:
            self.state = self._create_fresh_state()
            self._save_state()

        total_steps = len(self.STEPS)
        if start_from is not None and not (1 <= start_from <= total_steps):
            raise PipelineError(f"start_from must be within 1..{total_steps}, got {start_from}")
        if stop_at is not None and not (1 <= stop_at <= total_steps):
            raise PipelineError(f"stop_at must be within 1..{total_steps}, got {stop_at}")
        if start_from is not None and stop_at is not None and start_from > stop_at:
            raise PipelineError(
                f"start_from ({start_from}) cannot be greater than stop_at ({stop_at})"
            )

        start_idx = (start_from - 1) if start_from else 0
        end_idx = stop_at if stop_at else total_steps

        steps_slice = self.STEPS[start_idx:end_idx]
        iterator = iter_progress(
            steps_slice,
            total=len(steps_slice),
            desc="Process",
            enabled=self.config.runtime.enable_progress,
        )
        for step_index, step in enumerate(iterator, start_idx):
            step_number = step_index + 1
            if self.state.is_complete(step.name) and not force:
                self.logger.info(
                    LogTemplates.STEP_SKIPPED.format(
                        step_name=step.name, reason="already completed"
                    )
                )
                continue

            self.logger.info(
                LogTemplates.STEP_START.format(
                    step_name=step.name, step_number=step_number, total=total_steps
                )
            )
            record = self.state.start_step(step.name)
            self._save_state()

            try:
                output_files = self._execute_step(step)
            except Exception as e:
                error_msg = str(e)
                self.state.fail_step(step.name, error_msg)
                self.logger.error(
                    LogTemplates.STEP_FAILURE.format(step_name=step.name, error=error_msg)
                )
                self._save_state()
                self.logger.info("Partial outputs are left in place for inspection")
                raise PipelineError(
                    f"Pipeline failed at step {step.name}: {error_msg}", step=step.name
                ) from e

            self.state.complete_step(step.name, output_files or [])
            self.logger.info(
                LogTemplates.STEP_SUCCESS.format(step_name=step.name, duration=record.duration)
            )
            self._save_state()

        if end_idx == total_steps:
            self._finalize_outputs()
            runtime = self.state.get_total_runtime()
            self.logger.info(f"Pipeline completed successfully: {self.layout.final_bam}")
            if runtime is not None:
                self.logger.info(f"Total runtime: {runtime:.1f}s")
        return self.state.results

    def _resolve_artifact(self, name: str) -> Optional[Path]:
        """Map a declared step input or output to its path."""
        if hasattr(self.layout, name):
            return getattr(self.layout, name)
        return getattr(self.config, name)

    def _execute_step(self, step: PipelineStep) -> Optional[list[str]]:
        """Execute a pipeline step and return output files."""
        method_name = f"_step_{step.name}"
        method = getattr(self, method_name, None)
        if method is None:
            raise PipelineError(f"Step implementation not found: {method_name}")

        missing = []
        for name in step.inputs:
            path = self._resolve_artifact(name)
            if path is None or not Path(path).exists():
                missing.append(name)
        if missing:
            raise PipelineError(f"Step {step.name} is missing inputs: {', '.join(missing)}")

        result = method()

        for name in step.outputs:
            path = Path(self._resolve_artifact(name))
            if path.exists():
                self.logger.debug(
                    LogTemplates.FILE_CREATED.format(path=path, size=path.stat().st_size)
                )
        if isinstance(result, list):
            return result
        return None

    # ===================== STEP IMPLEMENTATIONS =====================

    def _step_check_dependencies(self) -> None:
        from triagealign.core.steps.fast_pass import check_dependencies

        check_dependencies(self)

    def _step_fast_pass(self) -> list[str]:
        from triagealign.core.steps.fast_pass import fast_pass

        return fast_pass(self)

    def _step_quality_trim(self) -> list[str]:
        from triagealign.core.steps.slow_pass import quality_trim

        return quality_trim(self)

    def _step_seed_match(self) -> list[str]:
        from triagealign.core.steps.slow_pass import seed_match

        return seed_match(self)

    def _step_local_align(self) -> list[str]:
        from triagealign.core.steps.slow_pass import local_align

        return local_align(self)

    def _step_post_process(self) -> list[str]:
        from triagealign.core.steps.slow_pass import post_process

        return post_process(self)

    def _step_sort_alignments(self) -> list[str]:
        from triagealign.core.steps.merge import sort_alignments

        return sort_alignments(self)

    def _step_merge_alignments(self) -> list[str]:
        from triagealign.core.steps.merge import merge_alignments

        return merge_alignments(self)

    def _step_index_and_recalibrate(self) -> list[str]:
        from triagealign.core.steps.merge import index_and_recalibrate

        return index_and_recalibrate(self)

    def _step_summarize(self) -> list[str]:
        from triagealign.core.steps.merge import summarize

        return summarize(self)
