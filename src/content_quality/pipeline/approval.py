"""
ApprovalSystem -- deterministic pass / fail / refine gate.

  approved          overall >= minimum, every per-stage minimum met, and
                    high-severity issues <= the allowed maximum
  rejected          not approved, overall more than HARD_FLOOR_MARGIN below
                    the minimum, and no refinement budget left
  needs-refinement  everything else

Rationale lines name each failed criterion in a fixed order and format,
so identical inputs always give identical text.
"""

import logging
from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from ..errors import ValidationError
from .scoring import QualityReport

logger = logging.getLogger(__name__)

HARD_FLOOR_MARGIN = 20.0
APPROVED_RATIONALE = "all approval criteria met"


class ApprovalOutcome(str, Enum):
    APPROVED = "approved"
    REJECTED = "rejected"
    NEEDS_REFINEMENT = "needs-refinement"


@dataclass(frozen=True)
class ApprovalCriteria:
    """Thresholds a report must meet to be approved."""

    minimum_overall_score: float = 80.0
    per_stage_minimums: dict[str, float] = field(default_factory=dict)
    max_high_severity_issues: int = 0

    def __post_init__(self):
        if not 0.0 <= self.minimum_overall_score <= 100.0:
            raise ValidationError(
                f"minimumOverallScore must be between 0 and 100 (got {self.minimum_overall_score})"
            )
        if self.max_high_severity_issues < 0:
            raise ValidationError(
                f"maxHighSeverityIssues cannot be negative (got {self.max_high_severity_issues})"
            )
        for stage, minimum in self.per_stage_minimums.items():
            if not 0.0 <= minimum <= 100.0:
                raise ValidationError(
                    f"perStageMinimums.{stage} must be between 0 and 100 (got {minimum})"
                )

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any], defaults: "ApprovalCriteria | None" = None) -> "ApprovalCriteria":
        """Build criteria from camelCase or snake_case keys; missing keys use defaults."""
        base = defaults or cls()

        def pick(snake: str, camel: str, fallback):
            value = data.get(snake, data.get(camel))
            return fallback if value is None else value

        try:
            return cls(
                minimum_overall_score=float(pick("minimum_overall_score", "minimumOverallScore", base.minimum_overall_score)),
                per_stage_minimums={
                    str(k): float(v)
                    for k, v in dict(pick("per_stage_minimums", "perStageMinimums", base.per_stage_minimums)).items()
                },
                max_high_severity_issues=int(pick("max_high_severity_issues", "maxHighSeverityIssues", base.max_high_severity_issues)),
            )
        except ValidationError:
            raise
        except (TypeError, ValueError) as e:
            raise ValidationError(f"approvalCriteria is malformed: {e}") from e

    def to_dict(self) -> dict:
        return {
            "minimumOverallScore": self.minimum_overall_score,
            "perStageMinimums": dict(self.per_stage_minimums),
            "maxHighSeverityIssues": self.max_high_severity_issues,
        }


@dataclass(frozen=True)
class ApprovalDecision:
    outcome: ApprovalOutcome
    report: QualityReport
    rationale: tuple[str, ...]

    @property
    def approved(self) -> bool:
        return self.outcome is ApprovalOutcome.APPROVED

    def to_dict(self) -> dict:
        return {
            "outcome": self.outcome.value,
            "approved": self.approved,
            "revision": self.report.revision,
            "overallScore": self.report.overall_score,
            "rationale": list(self.rationale),
        }


class ApprovalSystem:
    """Turns a QualityReport into an ApprovalDecision.

    Usage:
        decision = ApprovalSystem().decide(report, ApprovalCriteria(), refinement_budget=2)
        decision.outcome  # ApprovalOutcome.NEEDS_REFINEMENT
    """

    def decide(
        self,
        report: QualityReport,
        criteria: ApprovalCriteria | None = None,
        refinement_budget: int = 0,
    ) -> ApprovalDecision:
        criteria = criteria or ApprovalCriteria()
        minimum = criteria.minimum_overall_score
        overall = report.overall_score
        failures: list[str] = []

        if overall < minimum:
            failures.append(f"overall score {overall:.1f} is below minimum {minimum:.1f}")

        for stage in sorted(criteria.per_stage_minimums):
            stage_minimum = criteria.per_stage_minimums[stage]
            if stage not in report.sub_scores:
                failures.append(f"stage '{stage}' did not run")
            elif report.sub_scores[stage] < stage_minimum:
                failures.append(
                    f"stage '{stage}' score {report.sub_scores[stage]:.1f} is below minimum {stage_minimum:.1f}"
                )

        high_count = report.high_severity_count
        if high_count > criteria.max_high_severity_issues:
            failures.append(
                f"{high_count} high-severity issues exceed maximum {criteria.max_high_severity_issues}"
            )

        if not failures:
            outcome = ApprovalOutcome.APPROVED
            rationale = (APPROVED_RATIONALE,)
        elif overall < minimum - HARD_FLOOR_MARGIN and refinement_budget <= 0:
            outcome = ApprovalOutcome.REJECTED
            failures.append(
                f"overall score {overall:.1f} is more than {HARD_FLOOR_MARGIN:.0f} points below "
                f"minimum {minimum:.1f} with no refinement budget remaining"
            )
            rationale = tuple(failures)
        else:
            outcome = ApprovalOutcome.NEEDS_REFINEMENT
            rationale = tuple(failures)

        logger.debug(f"[ApprovalSystem] revision={report.revision} outcome={outcome.value}")
        return ApprovalDecision(outcome=outcome, report=report, rationale=rationale)
