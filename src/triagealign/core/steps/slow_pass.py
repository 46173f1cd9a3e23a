"""Step executors for quality trimming and the three BFAST stages."""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING

from triagealign.core.pipeline_types import ResultKeys
from triagealign.exceptions import PipelineError
from triagealign.utils.logging import LogTemplates

if TYPE_CHECKING:
    from triagealign.core.pipeline import Pipeline


def _require(path: Path, label: str) -> Path:
    if not path.exists():
        raise PipelineError(f"{label} not found: {path}")
    return path


def _discard_intermediate(pipeline: Pipeline, path: Path) -> None:
    """Remove a consumed intermediate unless the run keeps temporary files."""
    if pipeline.config.keep_tmp:
        return
    try:
        path.unlink()
        pipeline.logger.debug(f"Removed intermediate file: {path}")
    except FileNotFoundError:
        pass


def quality_trim(pipeline: Pipeline) -> list[str]:
    """Step 3: Trim the diverted reads into a BFAST colour-space FASTQ."""
    from triagealign.modules.quality_trim import QualityTrimmer

    layout = pipeline.layout
    trim_cfg = pipeline.config.tools.quality_trim or {}
    if not isinstance(trim_cfg, dict):
        raise PipelineError(
            f"Invalid quality_trim config; expected mapping, got {type(trim_cfg).__name__}"
        )

    trimmer = QualityTrimmer(
        moving_average=trim_cfg.get("moving_average", "5:18"),
        min_qual=trim_cfg.get("min_qual", 10),
        min_length=trim_cfg.get("min_length", 25),
        logger=pipeline.logger.getChild("quality_trim"),
    )
    stats = trimmer.run(
        _require(layout.diverted_reads, "Diverted reads"),
        layout.trimmed_reads,
        qualities=layout.diverted_qualities,
    )

    pipeline.logger.info(
        LogTemplates.TRIM_STATS.format(
            kept=stats.kept_reads, dropped=stats.dropped_reads, min_length=trimmer.min_length
        )
    )
    pipeline._set_result(ResultKeys.TRIM_TOTAL, stats.total_reads)
    pipeline._set_result(ResultKeys.TRIM_KEPT, stats.kept_reads)
    pipeline._set_result(ResultKeys.TRIM_DROPPED, stats.dropped_reads)
    pipeline._set_result(ResultKeys.TRIMMED_READS, str(layout.trimmed_reads))
    return [str(layout.trimmed_reads)]


def seed_match(pipeline: Pipeline) -> list[str]:
    """Step 4: bfast match."""
    from triagealign.external.bfast import Bfast

    config = pipeline.config
    layout = pipeline.layout
    bfast_cfg = config.tools.bfast or {}

    bfast = Bfast(threads=config.threads)
    bfast.match(
        reference=config.reference,
        reads=_require(layout.trimmed_reads, "Trimmed reads"),
        output_bmf=layout.seed_matches,
        max_candidates=int(bfast_cfg.get("max_candidates", 384)),
        additional_args=bfast_cfg.get("additional_match_args", "") or "",
        stderr_log=layout.stage_log("seed_match"),
    )

    pipeline._set_result(ResultKeys.SEED_MATCHES, str(layout.seed_matches))
    return [str(layout.seed_matches)]


def local_align(pipeline: Pipeline) -> list[str]:
    """Step 5: bfast localalign; the consumed .bmf is discarded afterwards."""
    from triagealign.external.bfast import Bfast

    config = pipeline.config
    layout = pipeline.layout
    bfast_cfg = config.tools.bfast or {}

    bfast = Bfast(threads=config.threads)
    bfast.localalign(
        reference=config.reference,
        matches_bmf=_require(layout.seed_matches, "Seed matches"),
        output_baf=layout.local_alignments,
        additional_args=bfast_cfg.get("additional_localalign_args", "") or "",
        stderr_log=layout.stage_log("local_align"),
    )
    _discard_intermediate(pipeline, layout.seed_matches)

    pipeline._set_result(ResultKeys.LOCAL_ALIGNMENTS, str(layout.local_alignments))
    return [str(layout.local_alignments)]


def post_process(pipeline: Pipeline) -> list[str]:
    """Step 6: bfast postprocess streamed into an unsorted BAM of mapped records."""
    from triagealign.external.bfast import Bfast
    from triagealign.external.samtools import Samtools

    config = pipeline.config
    layout = pipeline.layout
    bfast_cfg = config.tools.bfast or {}

    bfast = Bfast(threads=config.threads)
    samtools = Samtools(threads=config.threads)
    bfast.postprocess_to_bam(
        reference=config.reference,
        alignments_baf=_require(layout.local_alignments, "Local alignments"),
        bam_command=samtools.view_mapped_to_bam_command(layout.slow_unsorted_bam),
        mode=config.mode,
        min_mapq=int(bfast_cfg.get("min_mapq", 0)),
        stderr_log=layout.stage_log("post_process"),
    )
    _discard_intermediate(pipeline, layout.local_alignments)

    return [str(layout.slow_unsorted_bam)]
