"""
API Gateway -- FastAPI application factory.

Creates the FastAPI app with all routes and error handlers.
This is the entrypoint for uvicorn:

    uvicorn content_quality.api.gateway:create_app --factory --host 0.0.0.0 --port 8000

Or for development:

    uvicorn content_quality.api.gateway:app --reload

Security:
  - CORS restricted to configured origins (default: localhost only)
  - All external input validated at the pipeline boundary
  - Internal errors return a generic message; details stay in the logs

Route logic lives in routes/.
"""

import logging
import time

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .. import __version__
from ..config import PipelineSettings, get_settings
from ..errors import PipelineInternalError, QualityPipelineError, ValidationError
from ..pipeline.orchestrator import QualityPipeline
from .models.responses import ErrorResponse
from .routes import health, quality

logger = logging.getLogger(__name__)


def _error_response(code: str, detail: str, status_code: int) -> JSONResponse:
    body = ErrorResponse(error=code, detail=detail, status_code=status_code)
    return JSONResponse(status_code=status_code, content=body.model_dump())


async def _pipeline_error_handler(request: Request, exc: QualityPipelineError) -> JSONResponse:
    if isinstance(exc, PipelineInternalError):
        logger.error(f"[Gateway] {exc.code} on {request.url.path}: {exc}")
        return _error_response(exc.code, PipelineInternalError.public_message, exc.http_status)
    return _error_response(exc.code, str(exc), exc.http_status)


async def _request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    problems = "; ".join(
        f"{'.'.join(str(p) for p in err.get('loc', ()) if p != 'body')}: {err.get('msg', 'invalid')}"
        for err in exc.errors()
    )
    return _error_response(ValidationError.code, problems or "request body is malformed", ValidationError.http_status)


def create_app(
    settings: PipelineSettings | None = None,
    pipeline: QualityPipeline | None = None,
) -> FastAPI:
    """
    Application factory -- creates and configures the FastAPI app.

    Args:
        settings: Pipeline settings (read from the environment per run if None).
        pipeline: Pre-configured pipeline (creates the default six stages if None).
    """
    cors_origins = (settings or get_settings()).cors_origins

    application = FastAPI(
        title="Content Quality Pipeline API",
        description="Multi-stage content analysis, approval and refinement",
        version=__version__,
        docs_url="/docs",
        redoc_url="/redoc",
    )

    application.add_middleware(
        CORSMiddleware,
        allow_origins=list(cors_origins),
        allow_credentials=True,
        allow_methods=["GET", "POST"],
        allow_headers=["Authorization", "Content-Type"],
    )

    application.add_exception_handler(QualityPipelineError, _pipeline_error_handler)
    application.add_exception_handler(RequestValidationError, _request_validation_handler)

    # None means each request reads get_settings(), so reload_settings() takes effect
    application.state.settings = settings
    application.state.pipeline = pipeline or QualityPipeline(settings=settings)
    application.state.start_time = time.time()
    application.state.metrics = {
        "runs_completed": 0,
        "runs_failed": 0,
        "approvals": 0,
        "total_duration": 0.0,
    }

    application.include_router(health.router, tags=["Health"])
    application.include_router(
        quality.router, prefix="/api/v1", tags=["Quality Pipeline"]
    )

    logger.info("[Gateway] API gateway initialized")
    return application


app = create_app()
