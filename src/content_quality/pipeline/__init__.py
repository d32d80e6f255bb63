"""
Quality pipeline -- scoring, approval, refinement and orchestration.

Components:
  - Scorer: weighted mean of stage scores into a QualityReport
  - ApprovalSystem: approved / rejected / needs-refinement with rationale
  - RefinementEngine: applies correctors to produce the next revision
  - QualityPipeline: the state machine that runs the rounds
  - build_audit: explainable summary of a finished run
"""

from .approval import (
    HARD_FLOOR_MARGIN,
    ApprovalCriteria,
    ApprovalDecision,
    ApprovalOutcome,
    ApprovalSystem,
)
from .orchestrator import (
    FinalValidationReport,
    PipelineOptions,
    PipelineState,
    QualityPipeline,
    default_analyzers,
    pipeline_status,
)
from .refinement import RefinementEngine, default_correctors
from .report import build_audit
from .scoring import DEFAULT_STAGE_WEIGHTS, QualityReport, Scorer, validate_weights

__all__ = [
    "DEFAULT_STAGE_WEIGHTS",
    "HARD_FLOOR_MARGIN",
    "ApprovalCriteria",
    "ApprovalDecision",
    "ApprovalOutcome",
    "ApprovalSystem",
    "FinalValidationReport",
    "PipelineOptions",
    "PipelineState",
    "QualityPipeline",
    "QualityReport",
    "RefinementEngine",
    "Scorer",
    "build_audit",
    "default_analyzers",
    "default_correctors",
    "pipeline_status",
    "validate_weights",
]
