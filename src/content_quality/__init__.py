"""
content_quality -- multi-stage content quality pipeline.

Analyzes generated text against requirements (audience, tone, keywords),
scores it, decides approved / rejected / needs-refinement, and refines it
automatically within a bounded number of rounds.
"""

__version__ = "0.1.0"

from .errors import (  # noqa: E402
    AllStagesDegradedError,
    PipelineCancelledError,
    PipelineInternalError,
    QualityPipelineError,
    RefinementError,
    StageDegradedError,
    ValidationError,
)
from .pipeline import PipelineOptions, QualityPipeline, pipeline_status  # noqa: E402

__all__ = [
    "AllStagesDegradedError",
    "PipelineCancelledError",
    "PipelineInternalError",
    "PipelineOptions",
    "QualityPipeline",
    "QualityPipelineError",
    "RefinementError",
    "StageDegradedError",
    "ValidationError",
    "pipeline_status",
    "__version__",
]
