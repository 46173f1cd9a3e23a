"""Core pipeline functionality (triagealign)."""

from triagealign.core.layout import OutputLayout
from triagealign.core.pipeline import Pipeline
from triagealign.core.pipeline_types import PipelineState, PipelineStep, ResultKeys

__all__ = ["OutputLayout", "Pipeline", "PipelineState", "PipelineStep", "ResultKeys"]
