"""
Error taxonomy for the content quality pipeline.

Every error carries a stable machine-readable ``code`` and the HTTP status
the API adapter maps it to. Callers can tell "content is bad" apart from
"pipeline is broken":

  ValidationError        -- malformed input, raised at pipeline entry
  StageDegradedError     -- one analyzer failed or timed out (absorbed)
  RefinementError        -- no corrector for a required high-severity issue
  PipelineCancelledError -- the caller cancelled the run
  PipelineInternalError  -- anything unexpected (generic message to callers)
"""


class QualityPipelineError(Exception):
    """Base class for all pipeline errors."""

    code = "quality_pipeline_error"
    http_status = 500


class ValidationError(QualityPipelineError, ValueError):
    """Raised when input validation fails. Contains a user-friendly message."""

    code = "validation_error"
    http_status = 400


class StageDegradedError(QualityPipelineError):
    """An analyzer stage failed or timed out. Non-fatal; recorded in the report."""

    code = "stage_degraded"

    def __init__(self, stage: str, reason: str):
        self.stage = stage
        self.reason = reason
        super().__init__(f"stage '{stage}' degraded: {reason}")


class RefinementError(QualityPipelineError):
    """No registered corrector exists for a high-severity issue kind."""

    code = "refinement_failed"
    http_status = 422


class PipelineCancelledError(QualityPipelineError):
    """The run was cancelled before it produced a final report."""

    code = "pipeline_cancelled"
    http_status = 409


class PipelineInternalError(QualityPipelineError):
    """Unexpected failure outside the stage and refinement error paths."""

    code = "pipeline_internal_error"
    http_status = 500

    public_message = "Internal error during quality pipeline processing"


class AllStagesDegradedError(PipelineInternalError):
    """Every analyzer stage of a round failed, so there is nothing to score."""

    code = "all_stages_degraded"
