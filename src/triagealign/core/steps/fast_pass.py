"""Step executors for the pre-flight check and the bowtie fast pass."""

from __future__ import annotations

from typing import TYPE_CHECKING

from triagealign.core.pipeline_types import ResultKeys
from triagealign.exceptions import DependencyError, PipelineError
from triagealign.utils.logging import LogTemplates

if TYPE_CHECKING:
    from triagealign.core.pipeline import Pipeline


def check_dependencies(pipeline: Pipeline) -> None:
    """Step 1: Check bowtie, bfast and samtools."""
    from triagealign.utils.dependency_checker import DependencyChecker

    checker = DependencyChecker(logger=pipeline.logger.getChild("dependency_checker"))
    if not checker.check_all():
        checker.print_report()
        raise DependencyError(
            "Missing required dependencies. Please install missing tools and try again.",
            missing=[tool.name for tool in checker.missing_required],
        )

    pipeline.logger.info("All required dependencies are available")


def fast_pass(pipeline: Pipeline) -> list[str]:
    """Step 2: Align every read with bowtie, rescore MAPQ and encode placed reads."""
    from triagealign.external.bowtie import Bowtie
    from triagealign.external.samtools import Samtools
    from triagealign.modules.mapq_rescore import MapqRescorer
    from triagealign.modules.triage import TriageCounts

    config = pipeline.config
    layout = pipeline.layout
    if config.reads is None or config.qualities is None:
        raise PipelineError("Read and quality files are required")

    bowtie_cfg = config.tools.bowtie or {}
    if not isinstance(bowtie_cfg, dict):
        raise PipelineError(
            f"Invalid bowtie config; expected mapping, got {type(bowtie_cfg).__name__}"
        )

    bowtie = Bowtie(threads=config.threads)
    samtools = Samtools(threads=config.threads)

    triage = TriageCounts()
    rescorer = MapqRescorer(triage=triage, logger=pipeline.logger.getChild("mapq_rescore"))

    bowtie.align_to_bam(
        index=config.resolved_bowtie_index(),
        reads=config.reads,
        qualities=config.qualities,
        unaligned_output=layout.diverted_reads,
        bam_command=samtools.view_mapped_to_bam_command(layout.fast_unsorted_bam),
        line_filter=rescorer,
        stderr_log=layout.stage_log("fast_pass"),
        seed=int(bowtie_cfg.get("seed", 0)),
        max_placements=int(bowtie_cfg.get("max_placements", 1)),
        seed_mismatches=int(bowtie_cfg.get("seed_mismatches", 2)),
        mapq=bowtie_cfg.get("mapq"),
        additional_args=bowtie_cfg.get("additional_args", "") or "",
    )

    pipeline.logger.info(
        LogTemplates.TRIAGE_STATS.format(placed=triage.placed, diverted=triage.diverted)
    )

    pipeline._set_result(ResultKeys.FAST_PLACED, triage.placed)
    pipeline._set_result(ResultKeys.FAST_DIVERTED, triage.diverted)
    pipeline._set_result(ResultKeys.RESCORED_RECORDS, rescorer.stats.records)
    return [str(layout.fast_unsorted_bam), str(layout.diverted_reads)]
