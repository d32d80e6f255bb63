"""
Pydantic request models -- the API contract for pipeline runs.

  POST /api/v1/quality-pipeline -> QualityPipelineRequest

Fields are camelCase on the wire (snake_case is accepted too). Missing
content or requirements are reported by the pipeline as a validation_error
(400), so those fields are optional here.
"""

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class RequirementsPayload(CamelModel):
    """Who the content is for, how it should sound, what it must cover."""

    target_audience: str | None = Field(None, description="Intended readers, e.g. 'developers'")
    tone: str | None = Field(None, description="Desired tone, e.g. 'professional'")
    keywords: list[str] = Field(default_factory=list, description="Topics the content must cover")


class ApprovalCriteriaPayload(CamelModel):
    """Overrides for the approval thresholds. Missing fields use server settings."""

    minimum_overall_score: float | None = None
    per_stage_minimums: dict[str, float] | None = None
    max_high_severity_issues: int | None = None


class PipelineOptionsPayload(CamelModel):
    force_refinement: bool = False
    max_refinement_iterations: int | None = Field(
        None, description="Decisions recorded per run (1 = analyze once, no refinement)"
    )
    approval_criteria: ApprovalCriteriaPayload | None = None
    stage_timeout_seconds: float | None = None


class QualityPipelineRequest(CamelModel):
    """Submit content for analysis, approval and refinement."""

    content: str | None = Field(None, description="The text to evaluate")
    requirements: RequirementsPayload | None = None
    options: PipelineOptionsPayload | None = None
