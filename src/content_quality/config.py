"""
Pipeline settings -- thresholds, weights and timeouts from the environment.

Configuration via environment:
  QUALITY_MIN_SCORE=80            minimum overall score for approval
  QUALITY_MAX_HIGH_ISSUES=0       high-severity issues tolerated on approval
  QUALITY_STAGE_MINIMUMS=         per-stage minimums, e.g. "eeat=60,sources=50"
  QUALITY_MAX_ITERATIONS=3        decisions recorded per run (1 = no refinement)
  QUALITY_STAGE_TIMEOUT=10        seconds per analyzer stage
  QUALITY_STAGE_WEIGHTS=          weight overrides, e.g. "intent=0.2,eeat=0.2,..."
  QUALITY_VARIATION_SEED=0        seed for the variation corrector
  QUALITY_CHECK_SOURCES=false     check cited URLs over HTTP
  QUALITY_SOURCE_TIMEOUT=5        seconds per source reachability check
  CORS_ORIGINS=                   comma-separated allowed origins for the API

Malformed values fall back to the default with a warning. Settings are
read once and cached; reload_settings() re-reads them between runs. A run
keeps the snapshot it started with.
"""

import logging
import os
from dataclasses import dataclass, field

logger = logging.getLogger(__name__)

DEFAULT_CORS_ORIGINS = (
    "http://localhost:3000",
    "http://localhost:8000",
    "http://localhost:8080",
)

TRUE_VALUES = ("true", "1", "yes", "on")


@dataclass(frozen=True)
class PipelineSettings:
    min_score: float = 80.0
    max_high_issues: int = 0
    stage_minimums: dict[str, float] = field(default_factory=dict)
    max_iterations: int = 3
    stage_timeout: float = 10.0
    stage_weights: dict[str, float] | None = None
    variation_seed: int = 0
    check_sources: bool = False
    source_timeout: float = 5.0
    cors_origins: tuple[str, ...] = DEFAULT_CORS_ORIGINS


def _env_float(name: str, default: float, minimum: float | None = None) -> float:
    raw = os.environ.get(name, "").strip()
    if not raw:
        return default
    try:
        value = float(raw)
    except ValueError:
        logger.warning(f"[Config] {name}={raw!r} is not a number, using {default}")
        return default
    if minimum is not None and value < minimum:
        logger.warning(f"[Config] {name}={raw!r} is below {minimum}, using {default}")
        return default
    return value


def _env_int(name: str, default: int, minimum: int | None = None) -> int:
    raw = os.environ.get(name, "").strip()
    if not raw:
        return default
    try:
        value = int(raw)
    except ValueError:
        logger.warning(f"[Config] {name}={raw!r} is not an integer, using {default}")
        return default
    if minimum is not None and value < minimum:
        logger.warning(f"[Config] {name}={raw!r} is below {minimum}, using {default}")
        return default
    return value


def _env_mapping(name: str) -> dict[str, float] | None:
    """Parse "stage=number,stage=number". None when unset or malformed."""
    raw = os.environ.get(name, "").strip()
    if not raw:
        return None
    result = {}
    for part in raw.split(","):
        if not part.strip():
            continue
        key, sep, value = part.partition("=")
        try:
            if not sep or not key.strip():
                raise ValueError(part)
            result[key.strip()] = float(value)
        except ValueError:
            logger.warning(f"[Config] {name} entry {part.strip()!r} is malformed, ignoring {name}")
            return None
    return result


def load_settings() -> PipelineSettings:
    """Build settings from the current environment."""
    origins_env = os.environ.get("CORS_ORIGINS", "")
    origins = tuple(o.strip() for o in origins_env.split(",") if o.strip()) or DEFAULT_CORS_ORIGINS

    return PipelineSettings(
        min_score=_env_float("QUALITY_MIN_SCORE", 80.0, minimum=0.0),
        max_high_issues=_env_int("QUALITY_MAX_HIGH_ISSUES", 0, minimum=0),
        stage_minimums=_env_mapping("QUALITY_STAGE_MINIMUMS") or {},
        max_iterations=_env_int("QUALITY_MAX_ITERATIONS", 3, minimum=1),
        stage_timeout=_env_float("QUALITY_STAGE_TIMEOUT", 10.0, minimum=0.001),
        stage_weights=_env_mapping("QUALITY_STAGE_WEIGHTS"),
        variation_seed=_env_int("QUALITY_VARIATION_SEED", 0),
        check_sources=os.environ.get("QUALITY_CHECK_SOURCES", "").strip().lower() in TRUE_VALUES,
        source_timeout=_env_float("QUALITY_SOURCE_TIMEOUT", 5.0, minimum=0.001),
        cors_origins=origins,
    )


_settings: PipelineSettings | None = None


def get_settings() -> PipelineSettings:
    """Cached settings (loaded on first use)."""
    global _settings
    if _settings is None:
        _settings = load_settings()
    return _settings


def reload_settings() -> PipelineSettings:
    """Re-read the environment. Runs already in progress keep their snapshot."""
    global _settings
    _settings = load_settings()
    logger.info("[Config] Settings reloaded")
    return _settings


def default_criteria(settings: PipelineSettings | None = None):
    """ApprovalCriteria derived from settings."""
    from .pipeline.approval import ApprovalCriteria

    settings = settings or get_settings()
    return ApprovalCriteria(
        minimum_overall_score=settings.min_score,
        per_stage_minimums=dict(settings.stage_minimums),
        max_high_severity_issues=settings.max_high_issues,
    )
