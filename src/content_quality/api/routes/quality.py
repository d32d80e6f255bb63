"""
Quality Pipeline API -- run content through the pipeline.

  POST /api/v1/quality-pipeline  -- Analyze, approve and refine content
  GET  /api/v1/quality-pipeline  -- Status descriptor (stages, thresholds, features)

Errors from the pipeline's taxonomy are turned into ErrorResponse bodies
by the gateway's exception handler; this module only counts them.
"""

import logging

from fastapi import APIRouter, Request

from ...config import PipelineSettings, default_criteria
from ...errors import QualityPipelineError
from ...pipeline.approval import ApprovalCriteria
from ...pipeline.orchestrator import PipelineOptions, QualityPipeline, pipeline_status
from ..models.requests import PipelineOptionsPayload, QualityPipelineRequest
from ..models.responses import PipelineStatusResponse, QualityPipelineResponse

logger = logging.getLogger(__name__)
router = APIRouter()


def _build_options(payload: PipelineOptionsPayload | None, settings: PipelineSettings | None) -> PipelineOptions:
    if payload is None:
        return PipelineOptions()
    criteria = None
    if payload.approval_criteria is not None:
        criteria = ApprovalCriteria.from_mapping(
            payload.approval_criteria.model_dump(exclude_none=True),
            defaults=default_criteria(settings),
        )
    return PipelineOptions(
        force_refinement=payload.force_refinement,
        max_refinement_iterations=payload.max_refinement_iterations,
        approval_criteria=criteria,
        stage_timeout_seconds=payload.stage_timeout_seconds,
    )


@router.post("/quality-pipeline", response_model=QualityPipelineResponse)
async def run_pipeline(body: QualityPipelineRequest, request: Request) -> QualityPipelineResponse:
    """
    Run the content through every analyzer stage, score it, and refine it
    until it is approved, rejected, or the iteration budget is spent.
    """
    pipeline: QualityPipeline = request.app.state.pipeline
    settings: PipelineSettings | None = request.app.state.settings
    metrics = request.app.state.metrics

    requirements = body.requirements.model_dump() if body.requirements is not None else None

    try:
        options = _build_options(body.options, settings)
        final = await pipeline.run(body.content, requirements, options)
    except QualityPipelineError as e:
        metrics["runs_failed"] += 1
        logger.warning(f"[QualityAPI] Run failed: {e.code}")
        raise

    metrics["runs_completed"] += 1
    metrics["total_duration"] += final.processing_time_ms / 1000
    if final.success:
        metrics["approvals"] += 1

    return QualityPipelineResponse.model_validate(final.to_dict())


@router.get("/quality-pipeline", response_model=PipelineStatusResponse)
async def get_status(request: Request) -> PipelineStatusResponse:
    """Read-only descriptor for external dashboards."""
    return PipelineStatusResponse(**pipeline_status(request.app.state.settings))
