"""
Health and metrics endpoints.

  GET /health   -- Liveness probe (always returns 200 if process is alive)
  GET /metrics  -- Run counters since startup
"""

import logging
import time

from fastapi import APIRouter, Request

from ... import __version__
from ..models.responses import HealthResponse, MetricsResponse

logger = logging.getLogger(__name__)
router = APIRouter()


@router.get("/health", response_model=HealthResponse)
async def liveness(request: Request) -> HealthResponse:
    """Liveness probe -- returns 200 if the process is running."""
    start_time = getattr(request.app.state, "start_time", time.time())
    return HealthResponse(
        status="healthy",
        version=__version__,
        stages=len(request.app.state.pipeline.stage_names),
        uptime_seconds=round(time.time() - start_time, 1),
    )


@router.get("/metrics", response_model=MetricsResponse)
async def metrics(request: Request) -> MetricsResponse:
    """Basic operational metrics."""
    m = request.app.state.metrics
    completed = m["runs_completed"]
    avg_duration = m["total_duration"] / completed if completed > 0 else 0.0
    approval_rate = m["approvals"] / completed if completed > 0 else 0.0
    return MetricsResponse(
        runs_completed=completed,
        runs_failed=m["runs_failed"],
        approvals=m["approvals"],
        approval_rate=round(approval_rate, 3),
        average_duration_seconds=round(avg_duration, 3),
    )
