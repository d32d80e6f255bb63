"""
Scorer -- aggregates stage results into one weighted QualityReport.

Weights come from a fixed table (overridable through settings) and must
sum to 1.0. When only some stages run, the mean is normalized over the
weights of the stages present. Degraded stages count with score 0.
"""

import logging
import math
from dataclasses import dataclass, field

from ..analyzers.models import AnalyzerResult, Issue, Severity, clamp_score

logger = logging.getLogger(__name__)

DEFAULT_STAGE_WEIGHTS: dict[str, float] = {
    "intent": 0.15,
    "eeat": 0.25,
    "sources": 0.20,
    "links": 0.10,
    "variation": 0.10,
    "errors": 0.20,
}

WEIGHT_TOLERANCE = 1e-6


def validate_weights(weights: dict[str, float]) -> dict[str, float]:
    """Raise ValueError unless weights are non-negative and sum to 1.0."""
    if not weights:
        raise ValueError("stage weights cannot be empty")
    for stage, weight in weights.items():
        if weight < 0 or math.isnan(weight):
            raise ValueError(f"stage '{stage}' weight must be non-negative (got {weight})")
    total = sum(weights.values())
    if abs(total - 1.0) > WEIGHT_TOLERANCE:
        raise ValueError(f"stage weights must sum to 1.0 (got {total:.6f})")
    return weights


validate_weights(DEFAULT_STAGE_WEIGHTS)


@dataclass(frozen=True)
class QualityReport:
    """Aggregated result of one analysis round over one revision."""

    revision: int
    overall_score: float
    sub_scores: dict[str, float]
    issues: tuple[Issue, ...] = ()
    recommendations: tuple[str, ...] = ()
    degraded_stages: dict[str, str] = field(default_factory=dict)
    weights: dict[str, float] = field(default_factory=dict)

    @property
    def high_severity_count(self) -> int:
        return sum(1 for issue in self.issues if issue.severity is Severity.HIGH)

    def to_dict(self) -> dict:
        return {
            "revision": self.revision,
            "overallScore": self.overall_score,
            "subScores": dict(self.sub_scores),
            "issues": [issue.to_dict() for issue in self.issues],
            "recommendations": list(self.recommendations),
            "degradedStages": dict(self.degraded_stages),
            "highSeverityCount": self.high_severity_count,
        }


class Scorer:
    """Weighted mean of stage scores.

    Usage:
        scorer = Scorer()
        report = scorer.aggregate(results, revision=0)
    """

    def __init__(self, weights: dict[str, float] | None = None):
        self._weights = validate_weights(dict(weights or DEFAULT_STAGE_WEIGHTS))

    @property
    def weights(self) -> dict[str, float]:
        return dict(self._weights)

    def check_stages(self, stage_names: list[str]) -> None:
        """Raise ValueError for stage names missing from the weight table."""
        unknown = [name for name in stage_names if name not in self._weights]
        if unknown:
            raise ValueError(
                f"no weight configured for stage(s): {', '.join(unknown)} "
                f"(known: {', '.join(self._weights)})"
            )

    def effective_weights(self, stage_names: list[str]) -> dict[str, float]:
        """Weights of the given stages, renormalized to sum to 1.0."""
        self.check_stages(stage_names)
        total = sum(self._weights[name] for name in stage_names)
        if total <= 0:
            return {name: 1.0 / len(stage_names) for name in stage_names}
        return {name: self._weights[name] / total for name in stage_names}

    def aggregate(self, results: list[AnalyzerResult], revision: int = 0) -> QualityReport:
        if not results:
            raise ValueError("no analyzer results to aggregate")
        names = [r.stage_name for r in results]
        if len(set(names)) != len(names):
            raise ValueError(f"duplicate stage results: {names}")

        weights = self.effective_weights(names)
        overall = clamp_score(sum(r.score * weights[r.stage_name] for r in results))

        issues: list[Issue] = []
        recommendations: list[str] = []
        for result in results:
            issues.extend(result.issues)
            for rec in result.recommendations:
                if rec not in recommendations:
                    recommendations.append(rec)

        report = QualityReport(
            revision=revision,
            overall_score=overall,
            sub_scores={r.stage_name: r.score for r in results},
            issues=tuple(issues),
            recommendations=tuple(recommendations),
            degraded_stages={r.stage_name: r.degraded_reason for r in results if r.degraded},
            weights=weights,
        )
        logger.debug(f"[Scorer] revision={revision} overall={overall} sub_scores={report.sub_scores}")
        return report
