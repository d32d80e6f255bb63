"""
Pydantic response models -- what the API returns.

The pipeline run response mirrors FinalValidationReport.to_dict(); nested
records stay plain dicts since their shape is owned by the pipeline.
"""

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# =============================================================================
# QUALITY PIPELINE
# =============================================================================


class ContentPair(CamelModel):
    original: str
    final: str


class QualityPipelineResponse(CamelModel):
    """Result of one pipeline run."""

    success: bool
    validation: dict = Field(default_factory=dict, description="Latest QualityReport")
    approval: dict = Field(default_factory=dict, description="Latest ApprovalDecision")
    content: ContentPair
    history: list[dict] = Field(default_factory=list)
    report: dict = Field(default_factory=dict, description="Validation audit")
    metadata: dict = Field(default_factory=dict)
    processing_time_ms: float = 0.0


class PipelineStatusResponse(CamelModel):
    """Read-only descriptor for dashboards and monitoring."""

    status: str = "operational"
    version: str
    stages: list[str] = Field(default_factory=list)
    thresholds: dict = Field(default_factory=dict)
    features: list[str] = Field(default_factory=list)


# =============================================================================
# HEALTH
# =============================================================================


class HealthResponse(BaseModel):
    """Health check response."""

    status: str = "healthy"
    version: str = "0.1.0"
    stages: int = 0
    uptime_seconds: float = 0.0


class MetricsResponse(BaseModel):
    """Basic operational metrics."""

    runs_completed: int = 0
    runs_failed: int = 0
    approvals: int = 0
    approval_rate: float = 0.0
    average_duration_seconds: float = 0.0


# =============================================================================
# COMMON
# =============================================================================


class ErrorResponse(BaseModel):
    """Standard error response."""

    error: str
    detail: str = ""
    status_code: int = 500
