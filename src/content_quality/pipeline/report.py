"""Validation audit -- an explainable summary of a finished pipeline run."""

from collections import Counter
from typing import TYPE_CHECKING

from ..analyzers.models import IssueKind, Severity

if TYPE_CHECKING:
    from .orchestrator import FinalValidationReport

MAX_AUDIT_RECOMMENDATIONS = 10


def build_audit(final: "FinalValidationReport") -> dict:
    """Summarize the final decision, per-stage results and the score trajectory."""
    decision = final.final_decision
    report = decision.report
    minimums = final.criteria.per_stage_minimums

    stages = []
    for stage, score in report.sub_scores.items():
        minimum = minimums.get(stage)
        degraded = stage in report.degraded_stages
        stages.append({
            "stage": stage,
            "score": score,
            "weight": round(report.weights.get(stage, 0.0), 6),
            "minimum": minimum,
            "passed": not degraded and (minimum is None or score >= minimum),
            "degraded": degraded,
            "degradedReason": report.degraded_stages.get(stage),
        })

    severity_counts = Counter(issue.severity for issue in report.issues)
    kind_counts = Counter(issue.kind for issue in report.issues)

    recommendations: list[str] = []
    for rec in report.recommendations:
        if rec not in recommendations:
            recommendations.append(rec)

    return {
        "outcome": decision.outcome.value,
        "approved": decision.approved,
        "rationale": list(decision.rationale),
        "overallScore": report.overall_score,
        "minimumOverallScore": final.criteria.minimum_overall_score,
        "stages": stages,
        "issueCounts": {
            "total": len(report.issues),
            "bySeverity": {s.value: severity_counts.get(s, 0) for s in Severity},
            "byKind": {k.value: kind_counts.get(k, 0) for k in IssueKind},
        },
        "scoreTrajectory": [
            {
                "revision": d.report.revision,
                "overallScore": d.report.overall_score,
                "outcome": d.outcome.value,
            }
            for d in final.decision_history
        ],
        "recommendations": recommendations[:MAX_AUDIT_RECOMMENDATIONS],
        "refinementError": final.refinement_error,
    }
