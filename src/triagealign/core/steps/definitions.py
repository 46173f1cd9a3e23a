"""Canonical step ordering and user-facing metadata.

Steps run strictly in this order; each one only starts after its predecessor
finished successfully.
"""

from __future__ import annotations

from triagealign.core.pipeline_types import PipelineStep, StepGroup


PIPELINE_STEPS: list[PipelineStep] = [
    PipelineStep(
        "check_dependencies",
        "Check bowtie, bfast and samtools",
    ),
    PipelineStep(
        "fast_pass",
        "Bowtie fast pass with MAPQ rescoring",
        inputs=("reads", "qualities"),
        outputs=("fast_unsorted_bam", "diverted_reads", "diverted_qualities"),
    ),
    PipelineStep(
        "quality_trim",
        "Quality-trim diverted reads",
        group=StepGroup.SLOW,
        inputs=("diverted_reads",),
        outputs=("trimmed_reads",),
    ),
    PipelineStep(
        "seed_match",
        "BFAST match (candidate placements)",
        group=StepGroup.SLOW,
        inputs=("trimmed_reads",),
        outputs=("seed_matches",),
    ),
    PipelineStep(
        "local_align",
        "BFAST localalign (scored alignments)",
        group=StepGroup.SLOW,
        inputs=("seed_matches",),
        outputs=("local_alignments",),
    ),
    PipelineStep(
        "post_process",
        "BFAST postprocess (final selection)",
        group=StepGroup.SLOW,
        inputs=("local_alignments",),
        outputs=("slow_unsorted_bam",),
    ),
    PipelineStep(
        "sort_alignments",
        "Coordinate-sort both passes",
        group=StepGroup.MERGE,
        inputs=("fast_unsorted_bam", "slow_unsorted_bam"),
        outputs=("fast_bam", "slow_bam"),
    ),
    PipelineStep(
        "merge_alignments",
        "Merge passes under the slow-pass header",
        group=StepGroup.MERGE,
        inputs=("fast_bam", "slow_bam"),
        outputs=("header", "merged_bam"),
    ),
    PipelineStep(
        "index_and_recalibrate",
        "Index, calmd against the reference, index again",
        group=StepGroup.MERGE,
        inputs=("merged_bam",),
        outputs=("merged_index", "final_bam", "final_index"),
    ),
    PipelineStep(
        "summarize",
        "Write read accounting summary",
        group=StepGroup.MERGE,
        inputs=("final_bam",),
        outputs=("summary",),
    ),
]
