"""
QualityPipeline -- the analyze / score / approve / refine state machine.

States:
  initializing -> analyzing -> scoring -> approval-check
      -> refining -> analyzing ...     (needs-refinement, budget left)
      -> finalizing -> done            (approved, rejected, budget spent)

Each round fans all analyzer stages out as asyncio tasks and joins them
before scoring; this is the only concurrency point. A stage that raises or
times out becomes a degraded result (score 0, one high-severity issue)
instead of failing the run, unless every stage of the round degraded.

Round N+1 never starts before round N's decision is recorded, and a
refinement pass that changes nothing ends the run. Nothing is shared
between runs: unless settings were injected, each run() reads
get_settings() once and derives its criteria, timeout, weights, stages
and correctors from that snapshot, so reload_settings() applies to the
next run.
"""

import asyncio
import logging
import time
from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any

from .. import __version__
from ..analyzers.eeat import EeatOptimizer
from ..analyzers.error_detection import ErrorDetectionCorrection
from ..analyzers.intent import IntentAnalyzer
from ..analyzers.links import LinkPlacer
from ..analyzers.models import (
    Analyzer,
    AnalyzerResult,
    ContentCandidate,
    Issue,
    IssueKind,
    Requirements,
    Severity,
)
from ..analyzers.sources import HttpSourceChecker, SourceValidator
from ..analyzers.variation import VariationDetector
from ..config import PipelineSettings, default_criteria, get_settings
from ..errors import (
    AllStagesDegradedError,
    PipelineCancelledError,
    PipelineInternalError,
    QualityPipelineError,
    RefinementError,
    StageDegradedError,
    ValidationError,
)
from ..security.validators import validate_length, validate_not_empty, validate_positive_number
from .approval import ApprovalCriteria, ApprovalDecision, ApprovalOutcome, ApprovalSystem
from .refinement import RefinementEngine, default_correctors
from .scoring import DEFAULT_STAGE_WEIGHTS, QualityReport, Scorer

logger = logging.getLogger(__name__)

MAX_CONTENT_LENGTH = 500_000

FEATURES = [
    "intent-alignment",
    "eeat-scoring",
    "source-validation",
    "link-placement",
    "variation-detection",
    "error-detection-correction",
    "weighted-scoring",
    "approval-gate",
    "automated-refinement",
    "validation-audit",
]


class PipelineState(str, Enum):
    INITIALIZING = "initializing"
    ANALYZING = "analyzing"
    SCORING = "scoring"
    APPROVAL_CHECK = "approval-check"
    REFINING = "refining"
    FINALIZING = "finalizing"
    DONE = "done"


@dataclass(frozen=True)
class PipelineOptions:
    """Per-run options. None means "use the settings value"."""

    force_refinement: bool = False
    max_refinement_iterations: int | None = None
    approval_criteria: ApprovalCriteria | None = None
    stage_timeout_seconds: float | None = None
    cancel_event: asyncio.Event | None = field(default=None, compare=False, repr=False)

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any] | None) -> "PipelineOptions":
        """Build options from camelCase or snake_case keys."""
        data = data or {}

        def pick(snake: str, camel: str):
            return data.get(snake, data.get(camel))

        criteria = pick("approval_criteria", "approvalCriteria")
        if criteria is not None and not isinstance(criteria, (Mapping, ApprovalCriteria)):
            raise ValidationError(
                f"approvalCriteria must be an object (got {type(criteria).__name__})"
            )
        iterations = pick("max_refinement_iterations", "maxRefinementIterations")
        timeout = pick("stage_timeout_seconds", "stageTimeoutSeconds")
        try:
            return cls(
                force_refinement=bool(pick("force_refinement", "forceRefinement") or False),
                max_refinement_iterations=None if iterations is None else int(iterations),
                approval_criteria=ApprovalCriteria.from_mapping(criteria) if isinstance(criteria, Mapping) else criteria,
                stage_timeout_seconds=None if timeout is None else float(timeout),
            )
        except ValidationError:
            raise
        except (TypeError, ValueError) as e:
            raise ValidationError(f"options are malformed: {e}") from e


@dataclass(frozen=True)
class FinalValidationReport:
    """Everything a finished run produced. Frozen once returned."""

    original_content: str
    final_content: str
    decision_history: tuple[ApprovalDecision, ...]
    total_iterations: int
    processing_time_ms: float
    requirements: Requirements
    criteria: ApprovalCriteria
    options: dict
    refinement_error: str | None = None
    state_trace: tuple[str, ...] = ()
    timestamp: str = ""

    @property
    def final_decision(self) -> ApprovalDecision:
        return self.decision_history[-1]

    @property
    def final_report(self) -> QualityReport:
        return self.final_decision.report

    @property
    def success(self) -> bool:
        return self.final_decision.approved

    def to_dict(self) -> dict:
        from .report import build_audit

        return {
            "success": self.success,
            "validation": self.final_report.to_dict(),
            "approval": self.final_decision.to_dict(),
            "content": {"original": self.original_content, "final": self.final_content},
            "history": [decision.to_dict() for decision in self.decision_history],
            "report": build_audit(self),
            "metadata": {
                "options": dict(self.options),
                "requirements": self.requirements.to_dict(),
                "timestamp": self.timestamp,
                "totalIterations": self.total_iterations,
                "refinementError": self.refinement_error,
                "stateTrace": list(self.state_trace),
            },
            "processingTimeMs": self.processing_time_ms,
        }


@dataclass(frozen=True)
class _RunComponents:
    analyzers: list[Analyzer]
    scorer: Scorer
    refinement: RefinementEngine


def default_analyzers(settings: PipelineSettings | None = None) -> list[Analyzer]:
    settings = settings or get_settings()
    checker = HttpSourceChecker(timeout=settings.source_timeout) if settings.check_sources else None
    return [
        IntentAnalyzer(),
        EeatOptimizer(),
        SourceValidator(checker=checker),
        LinkPlacer(),
        VariationDetector(),
        ErrorDetectionCorrection(),
    ]


def pipeline_status(settings: PipelineSettings | None = None) -> dict:
    """Read-only descriptor for monitoring."""
    settings = settings or get_settings()
    return {
        "status": "operational",
        "version": __version__,
        "stages": list(DEFAULT_STAGE_WEIGHTS),
        "thresholds": default_criteria(settings).to_dict(),
        "features": list(FEATURES),
    }


def _coerce_requirements(requirements: Requirements | Mapping | None) -> Requirements:
    if isinstance(requirements, Requirements):
        return requirements.validated()
    if requirements is None or isinstance(requirements, Mapping):
        return Requirements.from_mapping(requirements)
    raise ValidationError("requirements must be a Requirements record or a mapping")


class QualityPipeline:
    """Runs content through analyzers, scoring, approval and refinement.

    Usage:
        pipeline = QualityPipeline()
        report = await pipeline.run(
            text,
            {"targetAudience": "developers", "tone": "professional", "keywords": ["caching"]},
            PipelineOptions(max_refinement_iterations=2),
        )
        report.final_decision.outcome  # ApprovalOutcome.APPROVED
    """

    def __init__(
        self,
        analyzers: list[Analyzer] | None = None,
        scorer: Scorer | None = None,
        approval: ApprovalSystem | None = None,
        refinement: RefinementEngine | None = None,
        settings: PipelineSettings | None = None,
    ):
        # None means "read get_settings() at the start of every run"
        self._settings = settings
        self._analyzers = list(analyzers) if analyzers is not None else None
        self._scorer = scorer
        self._approval = approval or ApprovalSystem()
        self._refinement = refinement

        snapshot = settings or get_settings()
        stages = self._analyzers if self._analyzers is not None else default_analyzers(snapshot)
        if not stages:
            raise ValueError("QualityPipeline needs at least one analyzer")

        names = [a.name for a in stages]
        if len(set(names)) != len(names):
            raise ValueError(f"duplicate analyzer stage names: {names}")
        (scorer or Scorer(snapshot.stage_weights)).check_stages(names)

    @property
    def stage_names(self) -> list[str]:
        if self._analyzers is not None:
            return [a.name for a in self._analyzers]
        return [a.name for a in default_analyzers(self._settings or get_settings())]

    def _components(self, settings: PipelineSettings) -> "_RunComponents":
        """Analyzers, scorer and refinement engine for one run's settings snapshot."""
        analyzers = self._analyzers if self._analyzers is not None else default_analyzers(settings)
        try:
            scorer = self._scorer or Scorer(settings.stage_weights)
            scorer.check_stages([a.name for a in analyzers])
        except ValueError as e:
            logger.error(f"[QualityPipeline] Settings snapshot is unusable: {e}")
            raise PipelineInternalError(PipelineInternalError.public_message) from e
        refinement = self._refinement or RefinementEngine(default_correctors(settings))
        return _RunComponents(analyzers=analyzers, scorer=scorer, refinement=refinement)

    async def run(
        self,
        content: str,
        requirements: Requirements | Mapping,
        options: PipelineOptions | None = None,
    ) -> FinalValidationReport:
        start = time.perf_counter()
        options = options or PipelineOptions()
        settings = self._settings or get_settings()
        trace = [PipelineState.INITIALIZING]

        validate_not_empty(content, "content")
        validate_length(content, "content", max_length=MAX_CONTENT_LENGTH)
        requirements = _coerce_requirements(requirements)

        max_iterations = options.max_refinement_iterations
        if max_iterations is None:
            max_iterations = settings.max_iterations
        if max_iterations < 1:
            raise ValidationError(f"maxRefinementIterations must be at least 1 (got {max_iterations})")

        timeout = options.stage_timeout_seconds
        if timeout is None:
            timeout = settings.stage_timeout
        validate_positive_number(timeout, "stageTimeoutSeconds")

        criteria = options.approval_criteria or default_criteria(settings)
        components = self._components(settings)

        logger.info(
            f"[QualityPipeline] Starting run: {len(content)} chars, "
            f"{len(components.analyzers)} stages, max {max_iterations} iterations"
        )

        try:
            history, final_text, refinement_error = await self._loop(
                components, content, requirements, criteria, max_iterations, timeout, options, trace
            )
        except (QualityPipelineError, asyncio.CancelledError):
            raise
        except Exception as e:
            logger.error(f"[QualityPipeline] Unexpected failure: {type(e).__name__}: {e}", exc_info=True)
            raise PipelineInternalError(PipelineInternalError.public_message) from e

        trace.append(PipelineState.FINALIZING)
        elapsed_ms = round((time.perf_counter() - start) * 1000, 3)
        trace.append(PipelineState.DONE)

        final = history[-1]
        logger.info(
            f"[QualityPipeline] Done: {final.outcome.value} after {len(history)} iteration(s), "
            f"score {final.report.overall_score:.1f}, {elapsed_ms:.0f}ms"
        )
        logger.debug(f"[QualityPipeline] State trace: {' -> '.join(s.value for s in trace)}")

        return FinalValidationReport(
            original_content=content,
            final_content=final_text,
            decision_history=tuple(history),
            total_iterations=len(history),
            processing_time_ms=elapsed_ms,
            requirements=requirements,
            criteria=criteria,
            options={
                "forceRefinement": options.force_refinement,
                "maxRefinementIterations": max_iterations,
                "approvalCriteria": criteria.to_dict(),
                "stageTimeoutSeconds": timeout,
            },
            refinement_error=refinement_error,
            state_trace=tuple(s.value for s in trace),
            timestamp=datetime.now(timezone.utc).isoformat(),
        )

    async def _loop(
        self,
        components: "_RunComponents",
        content: str,
        requirements: Requirements,
        criteria: ApprovalCriteria,
        max_iterations: int,
        timeout: float,
        options: PipelineOptions,
        trace: list[PipelineState],
    ) -> tuple[list[ApprovalDecision], str, str | None]:
        candidate = ContentCandidate(text=content)
        history: list[ApprovalDecision] = []
        refinement_error: str | None = None
        refined = False

        while True:
            if options.cancel_event is not None and options.cancel_event.is_set():
                raise PipelineCancelledError("pipeline run was cancelled")

            trace.append(PipelineState.ANALYZING)
            logger.info(f"[QualityPipeline] Round {len(history) + 1}: analyzing revision {candidate.revision}")
            results = await self._analyze(
                components.analyzers, candidate, requirements, timeout, options.cancel_event
            )

            trace.append(PipelineState.SCORING)
            report = components.scorer.aggregate(results, revision=candidate.revision)

            trace.append(PipelineState.APPROVAL_CHECK)
            remaining = max_iterations - (len(history) + 1)
            decision = self._approval.decide(report, criteria, refinement_budget=remaining)
            history.append(decision)
            logger.info(
                f"[QualityPipeline] Round {len(history)}: {decision.outcome.value} "
                f"(score {report.overall_score:.1f}, {report.high_severity_count} high-severity)"
            )

            forced = options.force_refinement and not refined and decision.approved
            if remaining <= 0:
                break
            if decision.outcome is ApprovalOutcome.REJECTED:
                break
            if decision.approved and not forced:
                break

            trace.append(PipelineState.REFINING)
            try:
                refined_candidate = components.refinement.refine(candidate, report)
            except RefinementError as e:
                logger.warning(f"[QualityPipeline] Refinement stopped: {e}")
                refinement_error = str(e)
                break
            if refined_candidate.text == candidate.text:
                refinement_error = f"refinement made no changes to revision {candidate.revision}"
                logger.info(f"[QualityPipeline] Refinement stopped: {refinement_error}")
                break
            candidate = refined_candidate
            refined = True

        return history, candidate.text, refinement_error

    async def _analyze(
        self,
        analyzers: list[Analyzer],
        candidate: ContentCandidate,
        requirements: Requirements,
        timeout: float,
        cancel_event: asyncio.Event | None,
    ) -> list[AnalyzerResult]:
        tasks = [
            asyncio.create_task(
                self._run_stage(analyzer, candidate.text, requirements, timeout),
                name=f"stage:{analyzer.name}",
            )
            for analyzer in analyzers
        ]
        try:
            if cancel_event is None:
                results = list(await asyncio.gather(*tasks))
            else:
                results = await self._join_or_cancel(tasks, cancel_event)
        except BaseException:
            for task in tasks:
                task.cancel()
            raise

        if all(r.degraded for r in results):
            reasons = "; ".join(f"{r.stage_name}: {r.degraded_reason}" for r in results)
            raise AllStagesDegradedError(f"every analyzer stage degraded ({reasons})")
        return results

    async def _join_or_cancel(
        self, tasks: list[asyncio.Task], cancel_event: asyncio.Event
    ) -> list[AnalyzerResult]:
        waiter = asyncio.create_task(cancel_event.wait(), name="cancel-watch")
        try:
            pending = set(tasks)
            while pending:
                done, _ = await asyncio.wait(pending | {waiter}, return_when=asyncio.FIRST_COMPLETED)
                if waiter in done:
                    for task in tasks:
                        task.cancel()
                    await asyncio.gather(*tasks, return_exceptions=True)
                    logger.info("[QualityPipeline] Run cancelled during analysis")
                    raise PipelineCancelledError("pipeline run was cancelled")
                pending -= done
        finally:
            waiter.cancel()
        return [task.result() for task in tasks]

    async def _run_stage(
        self, analyzer: Analyzer, text: str, requirements: Requirements, timeout: float
    ) -> AnalyzerResult:
        try:
            result = await asyncio.wait_for(analyzer.analyze(text, requirements), timeout=timeout)
        except asyncio.TimeoutError:
            return self._degraded(analyzer.name, f"timed out after {timeout:.1f}s")
        except Exception as e:
            return self._degraded(analyzer.name, f"{type(e).__name__}: {e}")

        if not isinstance(result, AnalyzerResult):
            return self._degraded(analyzer.name, f"returned {type(result).__name__}, not AnalyzerResult")
        if result.stage_name != analyzer.name:
            return self._degraded(analyzer.name, f"returned a result for stage '{result.stage_name}'")
        return result

    def _degraded(self, stage: str, reason: str) -> AnalyzerResult:
        error = StageDegradedError(stage, reason)
        logger.warning(f"[QualityPipeline] {error}")
        return AnalyzerResult(
            stage_name=stage,
            score=0.0,
            issues=(Issue(
                kind=IssueKind.OTHER,
                message=str(error),
                severity=Severity.HIGH,
                code="stage.degraded",
                location=stage,
                suggestion="Check the stage's logs; the stage is scored 0 until it recovers",
            ),),
            degraded_reason=reason,
        )
