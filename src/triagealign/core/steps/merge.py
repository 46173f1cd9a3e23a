"""Step executors for sorting, merging, recalibration and the run summary."""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING

import pandas as pd

from triagealign.core.pipeline_types import ResultKeys
from triagealign.exceptions import PipelineError, ValidationError

if TYPE_CHECKING:
    from triagealign.core.pipeline import Pipeline


def _samtools(pipeline: Pipeline):
    from triagealign.external.samtools import Samtools

    return Samtools(threads=pipeline.config.threads)


def sort_alignments(pipeline: Pipeline) -> list[str]:
    """Step 7: Coordinate-sort both passes and drop the unsorted files."""
    layout = pipeline.layout
    samtools = _samtools(pipeline)
    memory = pipeline.config.performance.sort_memory

    pairs = [
        (layout.slow_unsorted_bam, layout.slow_bam),
        (layout.fast_unsorted_bam, layout.fast_bam),
    ]
    for unsorted, _ in pairs:
        if not unsorted.exists():
            raise PipelineError(f"Unsorted alignments not found: {unsorted}")

    # Both unsorted inputs stay until both sorts have succeeded
    for unsorted, sorted_bam in pairs:
        samtools.sort_bam(
            unsorted,
            sorted_bam,
            memory=memory,
            stderr_log=layout.stage_log("sort_alignments"),
        )
    for unsorted, _ in pairs:
        unsorted.unlink()

    pipeline._set_result(ResultKeys.FAST_BAM, str(layout.fast_bam))
    pipeline._set_result(ResultKeys.SLOW_BAM, str(layout.slow_bam))
    return [str(layout.slow_bam), str(layout.fast_bam)]


def merge_alignments(pipeline: Pipeline) -> list[str]:
    """Step 8: Merge both passes under the slow-pass header."""
    layout = pipeline.layout
    samtools = _samtools(pipeline)

    samtools.write_header(layout.slow_bam, layout.header)
    samtools.merge_bams(
        layout.merged_bam,
        [layout.slow_bam, layout.fast_bam],
        header_file=layout.header,
        stderr_log=layout.stage_log("merge_alignments"),
    )

    pipeline._set_result(ResultKeys.MERGED_BAM, str(layout.merged_bam))
    return [str(layout.header), str(layout.merged_bam)]


def index_and_recalibrate(pipeline: Pipeline) -> list[str]:
    """Step 9: Index, calmd against the reference, index the final BAM."""
    layout = pipeline.layout
    reference = pipeline.config.reference
    if reference is None:
        raise PipelineError("Reference genome is required")

    samtools = _samtools(pipeline)
    samtools.index_bam(layout.merged_bam)
    samtools.calmd(
        layout.merged_bam,
        Path(reference),
        layout.final_bam,
        stderr_log=layout.stage_log("index_and_recalibrate"),
    )
    samtools.index_bam(layout.final_bam)

    pipeline._set_result(ResultKeys.FINAL_BAM, str(layout.final_bam))
    return [str(layout.merged_index), str(layout.final_bam), str(layout.final_index)]


def verify_disjoint(pipeline: Pipeline) -> None:
    """Fail if any read name was placed by both passes."""
    from triagealign.modules.triage import shared_read_names

    layout = pipeline.layout
    samtools = _samtools(pipeline)
    log = layout.stage_log("verify_disjoint")
    shared = shared_read_names(
        samtools.iter_read_names(layout.slow_bam, stderr_log=log),
        samtools.iter_read_names(layout.fast_bam, stderr_log=log),
    )
    if shared:
        examples = ", ".join(sorted(shared)[:5])
        raise ValidationError(
            f"{len(shared):,} reads were placed by both passes (e.g. {examples})",
            read_names=shared,
        )
    pipeline.logger.info("Fast-pass and slow-pass read sets are disjoint")


def summarize(pipeline: Pipeline) -> list[str]:
    """Step 10: Write the read accounting table."""
    from triagealign.modules.triage import count_fasta_records

    config = pipeline.config
    layout = pipeline.layout
    samtools = _samtools(pipeline)

    if config.runtime.verify_disjoint:
        verify_disjoint(pipeline)

    rows = [
        ("input_reads", count_fasta_records(Path(config.reads)) if config.reads else None),
        ("fast_placed", pipeline._get_result(ResultKeys.FAST_PLACED)),
        ("fast_diverted", pipeline._get_result(ResultKeys.FAST_DIVERTED)),
        ("trimmed_kept", pipeline._get_result(ResultKeys.TRIM_KEPT)),
        ("trimmed_dropped", pipeline._get_result(ResultKeys.TRIM_DROPPED)),
        ("fast_records", samtools.count_records(layout.fast_bam)),
        ("slow_records", samtools.count_records(layout.slow_bam)),
        ("merged_records", samtools.count_records(layout.final_bam)),
    ]
    df = pd.DataFrame(rows, columns=["metric", "value"])
    df["value"] = df["value"].astype("Int64")
    df.to_csv(layout.summary, sep="\t", index=False)

    pipeline.logger.info(f"Summary written to: {layout.summary}")
    pipeline._set_result(ResultKeys.SUMMARY_TSV, str(layout.summary))
    return [str(layout.summary)]
