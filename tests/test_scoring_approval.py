"""Scorer aggregation, approval gate and refinement dispatch."""

import pytest

from content_quality.analyzers.models import (
    AnalyzerResult,
    ContentCandidate,
    Issue,
    IssueKind,
    Severity,
)
from content_quality.errors import RefinementError, ValidationError
from content_quality.pipeline import (
    DEFAULT_STAGE_WEIGHTS,
    HARD_FLOOR_MARGIN,
    ApprovalCriteria,
    ApprovalOutcome,
    ApprovalSystem,
    QualityReport,
    RefinementEngine,
    Scorer,
    validate_weights,
)


def _issue(kind=IssueKind.GRAMMAR, severity=Severity.LOW, code="test.issue", location=""):
    return Issue(kind=kind, message="problem", severity=severity, code=code, location=location)


def _report(overall, sub_scores=None, issues=(), revision=0):
    return QualityReport(
        revision=revision,
        overall_score=overall,
        sub_scores=sub_scores or {"intent": overall},
        issues=tuple(issues),
    )


class TestWeights:
    """Weight table validation."""

    def test_defaults_sum_to_one(self):
        assert sum(DEFAULT_STAGE_WEIGHTS.values()) == pytest.approx(1.0)
        assert set(DEFAULT_STAGE_WEIGHTS) == {"intent", "eeat", "sources", "links", "variation", "errors"}

    def test_bad_sum_rejected(self):
        with pytest.raises(ValueError, match="sum to 1.0"):
            validate_weights({"intent": 0.5, "eeat": 0.4})

    def test_negative_weight_rejected(self):
        with pytest.raises(ValueError, match="non-negative"):
            validate_weights({"intent": 1.5, "eeat": -0.5})

    def test_empty_rejected(self):
        with pytest.raises(ValueError):
            validate_weights({})


class TestScorer:
    """Weighted mean of stage scores."""

    def test_weighted_mean(self):
        results = [
            AnalyzerResult(stage_name="intent", score=100.0),
            AnalyzerResult(stage_name="eeat", score=80.0),
            AnalyzerResult(stage_name="sources", score=60.0),
            AnalyzerResult(stage_name="links", score=100.0),
            AnalyzerResult(stage_name="variation", score=50.0),
            AnalyzerResult(stage_name="errors", score=90.0),
        ]
        report = Scorer().aggregate(results, revision=2)
        # 15 + 20 + 12 + 10 + 5 + 18
        assert report.overall_score == 80.0
        assert report.revision == 2
        assert report.sub_scores["variation"] == 50.0
        assert sum(report.weights.values()) == pytest.approx(1.0)

    def test_partial_stages_renormalized(self):
        results = [
            AnalyzerResult(stage_name="eeat", score=100.0),
            AnalyzerResult(stage_name="sources", score=0.0),
        ]
        report = Scorer().aggregate(results)
        # eeat 0.25 and sources 0.20 renormalize to 5/9 and 4/9
        assert report.overall_score == pytest.approx(55.56, abs=0.01)
        assert report.weights["eeat"] == pytest.approx(5 / 9)

    def test_issues_and_recommendations_merged(self):
        results = [
            AnalyzerResult(stage_name="intent", score=70.0, issues=(_issue(),), recommendations=("Add sources",)),
            AnalyzerResult(stage_name="eeat", score=70.0, issues=(_issue(severity=Severity.HIGH),),
                           recommendations=("Add sources", "Show experience")),
        ]
        report = Scorer().aggregate(results)
        assert len(report.issues) == 2
        assert report.high_severity_count == 1
        assert report.recommendations == ("Add sources", "Show experience")

    def test_degraded_stages_recorded(self):
        results = [
            AnalyzerResult(stage_name="intent", score=90.0),
            AnalyzerResult(stage_name="links", score=0.0, degraded_reason="timed out after 1.0s"),
        ]
        report = Scorer().aggregate(results)
        assert report.degraded_stages == {"links": "timed out after 1.0s"}

    def test_empty_results_rejected(self):
        with pytest.raises(ValueError):
            Scorer().aggregate([])

    def test_duplicate_results_rejected(self):
        results = [AnalyzerResult(stage_name="intent", score=1.0), AnalyzerResult(stage_name="intent", score=2.0)]
        with pytest.raises(ValueError, match="duplicate"):
            Scorer().aggregate(results)

    def test_unknown_stage_rejected(self):
        with pytest.raises(ValueError, match="tone"):
            Scorer().aggregate([AnalyzerResult(stage_name="tone", score=50.0)])

    def test_score_out_of_range_rejected(self):
        with pytest.raises(ValueError):
            AnalyzerResult(stage_name="intent", score=101.0)

    def test_custom_weights(self):
        scorer = Scorer({"intent": 0.5, "eeat": 0.5})
        report = scorer.aggregate([
            AnalyzerResult(stage_name="intent", score=100.0),
            AnalyzerResult(stage_name="eeat", score=50.0),
        ])
        assert report.overall_score == 75.0

    def test_report_serialization(self):
        report = Scorer().aggregate([AnalyzerResult(stage_name="intent", score=90.0, issues=(_issue(),))])
        data = report.to_dict()
        assert data["overallScore"] == 90.0
        assert data["subScores"] == {"intent": 90.0}
        assert data["issues"][0]["kind"] == "grammar"
        assert data["highSeverityCount"] == 0


class TestApprovalCriteria:
    """Criteria validation and mapping."""

    def test_defaults(self):
        criteria = ApprovalCriteria()
        assert criteria.minimum_overall_score == 80.0
        assert criteria.max_high_severity_issues == 0
        assert criteria.per_stage_minimums == {}

    @pytest.mark.parametrize("kwargs", [
        {"minimum_overall_score": 120.0},
        {"minimum_overall_score": -1.0},
        {"max_high_severity_issues": -1},
        {"per_stage_minimums": {"eeat": 150.0}},
    ])
    def test_out_of_range_rejected(self, kwargs):
        with pytest.raises(ValidationError):
            ApprovalCriteria(**kwargs)

    def test_from_camel_case_mapping(self):
        criteria = ApprovalCriteria.from_mapping(
            {"minimumOverallScore": 70, "perStageMinimums": {"eeat": 60}, "maxHighSeverityIssues": 2}
        )
        assert criteria.minimum_overall_score == 70.0
        assert criteria.per_stage_minimums == {"eeat": 60.0}
        assert criteria.max_high_severity_issues == 2

    def test_missing_keys_use_defaults(self):
        base = ApprovalCriteria(minimum_overall_score=90.0, max_high_severity_issues=1)
        criteria = ApprovalCriteria.from_mapping({"minimum_overall_score": 75}, defaults=base)
        assert criteria.minimum_overall_score == 75.0
        assert criteria.max_high_severity_issues == 1

    def test_malformed_mapping_rejected(self):
        with pytest.raises(ValidationError):
            ApprovalCriteria.from_mapping({"minimumOverallScore": "high"})


class TestApprovalSystem:
    """Deterministic outcomes and rationale text."""

    def test_approved(self):
        decision = ApprovalSystem().decide(_report(85.0))
        assert decision.outcome is ApprovalOutcome.APPROVED
        assert decision.approved
        assert decision.rationale == ("all approval criteria met",)

    def test_exactly_minimum_is_approved(self):
        assert ApprovalSystem().decide(_report(80.0)).approved

    def test_below_minimum_needs_refinement(self):
        decision = ApprovalSystem().decide(_report(75.0), refinement_budget=0)
        assert decision.outcome is ApprovalOutcome.NEEDS_REFINEMENT
        assert decision.rationale == ("overall score 75.0 is below minimum 80.0",)

    def test_far_below_without_budget_rejected(self):
        decision = ApprovalSystem().decide(_report(40.0), refinement_budget=0)
        assert decision.outcome is ApprovalOutcome.REJECTED
        assert decision.rationale == (
            "overall score 40.0 is below minimum 80.0",
            "overall score 40.0 is more than 20 points below minimum 80.0 with no refinement budget remaining",
        )

    def test_far_below_with_budget_needs_refinement(self):
        decision = ApprovalSystem().decide(_report(40.0), refinement_budget=1)
        assert decision.outcome is ApprovalOutcome.NEEDS_REFINEMENT

    def test_hard_floor_boundary_not_rejected(self):
        decision = ApprovalSystem().decide(_report(80.0 - HARD_FLOOR_MARGIN), refinement_budget=0)
        assert decision.outcome is ApprovalOutcome.NEEDS_REFINEMENT

    def test_high_severity_blocks_approval(self):
        report = _report(95.0, issues=[_issue(severity=Severity.HIGH), _issue(severity=Severity.HIGH)])
        decision = ApprovalSystem().decide(report)
        assert decision.outcome is ApprovalOutcome.NEEDS_REFINEMENT
        assert decision.rationale == ("2 high-severity issues exceed maximum 0",)

    def test_allowed_high_severity(self):
        report = _report(95.0, issues=[_issue(severity=Severity.HIGH)])
        assert ApprovalSystem().decide(report, ApprovalCriteria(max_high_severity_issues=1)).approved

    def test_rationale_order(self):
        report = _report(
            70.0,
            sub_scores={"intent": 90.0, "eeat": 40.0},
            issues=[_issue(severity=Severity.HIGH)],
        )
        criteria = ApprovalCriteria(per_stage_minimums={"sources": 50.0, "eeat": 60.0})
        decision = ApprovalSystem().decide(report, criteria, refinement_budget=2)
        assert decision.rationale == (
            "overall score 70.0 is below minimum 80.0",
            "stage 'eeat' score 40.0 is below minimum 60.0",
            "stage 'sources' did not run",
            "1 high-severity issues exceed maximum 0",
        )

    def test_identical_inputs_identical_decisions(self):
        report = _report(66.6, issues=[_issue(severity=Severity.HIGH)])
        first = ApprovalSystem().decide(report, refinement_budget=1)
        second = ApprovalSystem().decide(report, refinement_budget=1)
        assert first == second

    def test_decision_serialization(self):
        data = ApprovalSystem().decide(_report(85.0, revision=3)).to_dict()
        assert data == {
            "outcome": "approved",
            "approved": True,
            "revision": 3,
            "overallScore": 85.0,
            "rationale": ["all approval criteria met"],
        }


class RecordingCorrector:
    def __init__(self, kinds, log, suffix):
        self.kinds = frozenset(kinds)
        self.log = log
        self.suffix = suffix

    def apply(self, content, issue):
        self.log.append(issue.code)
        return content + self.suffix


class TestRefinementEngine:
    """Dispatch by kind, severity ordering and missing-corrector handling."""

    def test_applies_highest_severity_first(self):
        log = []
        engine = RefinementEngine([RecordingCorrector({IssueKind.GRAMMAR, IssueKind.EEAT}, log, "!")])
        report = _report(50.0, issues=[
            _issue(IssueKind.GRAMMAR, Severity.LOW, code="low.1"),
            _issue(IssueKind.EEAT, Severity.HIGH, code="high.1"),
            _issue(IssueKind.GRAMMAR, Severity.MEDIUM, code="medium.1"),
            _issue(IssueKind.EEAT, Severity.LOW, code="low.2"),
        ])
        candidate = engine.refine(ContentCandidate(text="x", revision=4), report)

        assert log == ["high.1", "medium.1", "low.1", "low.2"]
        assert candidate.revision == 5
        assert candidate.text == "x!!!!"

    def test_missing_high_severity_corrector_raises_before_applying(self):
        log = []
        engine = RefinementEngine([RecordingCorrector({IssueKind.GRAMMAR}, log, "!")])
        report = _report(50.0, issues=[
            _issue(IssueKind.GRAMMAR, Severity.HIGH),
            _issue(IssueKind.CITATION, Severity.HIGH),
        ])
        with pytest.raises(RefinementError, match="citation"):
            engine.refine(ContentCandidate(text="x"), report)
        assert log == []

    def test_missing_low_severity_corrector_skipped(self):
        engine = RefinementEngine([])
        report = _report(50.0, issues=[_issue(IssueKind.VARIATION, Severity.MEDIUM)])
        candidate = engine.refine(ContentCandidate(text="same"), report)
        assert candidate.text == "same"
        assert candidate.revision == 1

    def test_high_severity_issue_left_unchanged_raises(self):
        engine = RefinementEngine()
        report = _report(20.0, issues=[_issue(IssueKind.EEAT, Severity.HIGH, code="custom.eeat", location="eeat")])
        with pytest.raises(RefinementError, match="custom.eeat"):
            engine.refine(ContentCandidate(text="Some body text."), report)

    def test_degraded_stage_issue_cannot_be_refined(self):
        engine = RefinementEngine()
        report = _report(50.0, issues=[_issue(IssueKind.OTHER, Severity.HIGH, code="stage.degraded", location="links")])
        with pytest.raises(RefinementError, match="stage.degraded"):
            engine.refine(ContentCandidate(text="Some body text."), report)

    def test_unchanged_lower_severity_issue_tolerated(self):
        engine = RefinementEngine()
        report = _report(70.0, issues=[_issue(IssueKind.EEAT, Severity.MEDIUM, code="custom.eeat")])
        candidate = engine.refine(ContentCandidate(text="Some body text."), report)
        assert candidate.text == "Some body text."

    def test_high_severity_issue_fixed_by_second_corrector(self):
        log = []
        engine = RefinementEngine([
            RecordingCorrector({IssueKind.CITATION}, log, ""),
            RecordingCorrector({IssueKind.CITATION}, log, "!"),
        ])
        report = _report(50.0, issues=[_issue(IssueKind.CITATION, Severity.HIGH, code="cite.gap")])
        assert engine.refine(ContentCandidate(text="x"), report).text == "x!"

    def test_default_registry_covers_every_kind(self):
        assert RefinementEngine().registered_kinds == frozenset(IssueKind)

    def test_correctors_for_kind(self):
        engine = RefinementEngine()
        names = [type(c).__name__ for c in engine.correctors_for(IssueKind.CITATION)]
        assert names == ["SourceCorrector", "ErrorDetectionCorrection"]
