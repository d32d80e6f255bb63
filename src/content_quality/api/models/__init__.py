"""Pydantic models for API request/response contracts."""
from .requests import (
    ApprovalCriteriaPayload,
    PipelineOptionsPayload,
    QualityPipelineRequest,
    RequirementsPayload,
)
from .responses import (
    ErrorResponse,
    HealthResponse,
    MetricsResponse,
    PipelineStatusResponse,
    QualityPipelineResponse,
)
