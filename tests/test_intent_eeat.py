"""IntentAnalyzer and EeatOptimizer stages, with their correctors."""

import pytest

from content_quality.analyzers import (
    EeatCorrector,
    EeatOptimizer,
    IntentAnalyzer,
    IntentCorrector,
    Issue,
    IssueKind,
    Requirements,
    Severity,
)
from content_quality.analyzers.eeat import ENHANCEMENTS
from content_quality.analyzers.intent import classify_intent, resolve_tone


def _requirements(keywords=("caching",), tone="authoritative", audience="developers"):
    return Requirements(target_audience=audience, tone=tone, keywords=tuple(keywords))


def _codes(result):
    return [issue.code for issue in result.issues]


class TestIntentClassification:
    """Keyword and phrase patterns decide the intent."""

    @pytest.mark.parametrize("text,intent", [
        ("how to bake bread step by step", "informational"),
        ("best laptops compared to tablets", "commercial"),
        ("buy now and get a discount", "transactional"),
        ("official site login", "navigational"),
        ("", "informational"),
        ("caching", "informational"),
    ])
    def test_classify(self, text, intent):
        assert classify_intent(text).intent == intent

    def test_phrases_count_double(self):
        hits = classify_intent("how to").hits
        assert hits["informational"] == 3  # "how" once plus "how to" twice

    def test_tone_aliases(self):
        assert resolve_tone("Professional") == "formal"
        assert resolve_tone("casual") == "casual"
        assert resolve_tone("whimsical") is None


class TestIntentAnalyzer:
    """Five scored components and their issues."""

    ALIGNED = (
        "This guide explains how caching works for developers. You will learn what caching is.\n\n"
        "Data from our study shows caching helps."
    )

    @pytest.mark.asyncio
    async def test_fully_aligned_content(self):
        result = await IntentAnalyzer().analyze(self.ALIGNED, _requirements())
        assert result.stage_name == "intent"
        assert result.score == 100.0
        assert result.issues == ()
        assert result.details["content_intent"] == "informational"

    @pytest.mark.asyncio
    async def test_partial_keyword_coverage(self):
        result = await IntentAnalyzer().analyze(self.ALIGNED, _requirements(keywords=("caching", "redis")))
        assert result.score == 80.0
        missing = [i for i in result.issues if i.code == "intent.keyword_missing"]
        assert len(missing) == 1
        assert missing[0].location == "redis"
        assert missing[0].severity is Severity.MEDIUM
        assert result.details["missing_keywords"] == ["redis"]

    @pytest.mark.asyncio
    async def test_nothing_aligned(self):
        result = await IntentAnalyzer().analyze("Hello there.", _requirements())
        # 0 keywords + 0 intro + 25 intent + 2 tone + 4 audience
        assert result.score == 31.0
        assert _codes(result) == [
            "intent.keyword_missing",
            "intent.keyword_not_in_intro",
            "intent.tone_mismatch",
            "intent.audience_not_addressed",
        ]
        assert result.issues[0].severity is Severity.HIGH
        assert all(i.kind is IssueKind.OTHER for i in result.issues)

    @pytest.mark.asyncio
    async def test_intent_mismatch(self):
        content = "The history of running shoes explained step by step."
        result = await IntentAnalyzer().analyze(content, _requirements(keywords=("buy running shoes",)))
        assert "intent.intent_mismatch" in _codes(result)
        assert result.details["target_intent"] == "transactional"
        assert result.details["content_intent"] == "informational"

    @pytest.mark.asyncio
    async def test_unknown_tone_not_penalized(self):
        result = await IntentAnalyzer().analyze(self.ALIGNED, _requirements(tone="whimsical"))
        assert "intent.tone_mismatch" not in _codes(result)


class TestIntentCorrector:
    """Intro sentences for missing keywords and audience."""

    CONTENT = "# Title\n\nCaching is fast.\n\nMore text."

    def _issue(self, code, location):
        return Issue(kind=IssueKind.OTHER, message="", severity=Severity.MEDIUM, code=code, location=location)

    def test_missing_keyword_added_to_intro(self):
        fixed = IntentCorrector().apply(self.CONTENT, self._issue("intent.keyword_missing", "redis"))
        assert fixed == "# Title\n\nCaching is fast. This article also covers redis.\n\nMore text."

    def test_present_keyword_left_alone(self):
        issue = self._issue("intent.keyword_missing", "caching")
        assert IntentCorrector().apply(self.CONTENT, issue) == self.CONTENT

    def test_primary_keyword_moved_into_intro(self):
        content = "Fast systems matter.\n\nRedis helps."
        fixed = IntentCorrector().apply(content, self._issue("intent.keyword_not_in_intro", "redis"))
        assert fixed.startswith("Fast systems matter. Redis is the focus of this article.")

    def test_audience_addressed(self):
        fixed = IntentCorrector().apply(self.CONTENT, self._issue("intent.audience_not_addressed", "developers"))
        assert "It is written for developers like you." in fixed

    def test_other_codes_untouched(self):
        for code in ("intent.intent_mismatch", "intent.tone_mismatch", "stage.degraded"):
            assert IntentCorrector().apply(self.CONTENT, self._issue(code, "x")) == self.CONTENT

    @pytest.mark.asyncio
    async def test_correction_raises_score(self):
        content = "Fast systems matter."
        requirements = _requirements(keywords=("caching",))
        before = await IntentAnalyzer().analyze(content, requirements)
        fixed = content
        for issue in before.issues:
            fixed = IntentCorrector().apply(fixed, issue)
        after = await IntentAnalyzer().analyze(fixed, requirements)
        assert after.score > before.score
        assert "intent.keyword_missing" not in _codes(after)


class TestEeatOptimizer:
    """Dimension scores and weak-dimension issues."""

    @pytest.mark.asyncio
    async def test_no_signals_all_dimensions_high_severity(self):
        result = await EeatOptimizer().analyze("The cat sat on the mat.", _requirements())
        assert result.stage_name == "eeat"
        assert result.score == 0.0
        assert _codes(result) == [
            "eeat.experience", "eeat.expertise", "eeat.authoritativeness", "eeat.trustworthiness",
        ]
        assert all(i.severity is Severity.HIGH for i in result.issues)
        assert all(i.kind is IssueKind.EEAT for i in result.issues)

    def test_trust_signals(self):
        text = (
            "To be honest, limitations include setup cost. However, although results are "
            "accurate and verified, consider that it depends on load."
        )
        dimensions = EeatOptimizer().score_dimensions(text)
        score, markers = dimensions["trustworthiness"]
        assert score == 100.0
        assert "to be honest" in markers

    @pytest.mark.asyncio
    async def test_strong_article_scores_higher(self, strong_article):
        weak = await EeatOptimizer().analyze("The cat sat on the mat.", _requirements())
        strong = await EeatOptimizer().analyze(strong_article, _requirements())
        assert strong.score > weak.score
        assert len(strong.issues) < len(weak.issues)
        assert set(strong.details["dimensions"]) == {
            "experience", "expertise", "authoritativeness", "trustworthiness",
        }

    def test_code_blocks_ignored(self):
        plain = EeatOptimizer().score_dimensions("Short note.")
        with_code = EeatOptimizer().score_dimensions("Short note.\n\n```\nresearch shows according to\n```")
        assert plain["expertise"][0] == with_code["expertise"][0]
        assert plain["authoritativeness"][0] == with_code["authoritativeness"][0]


class TestEeatCorrector:
    """Enhancement sentences go into the closing body paragraph."""

    CONTENT = "Intro.\n\nBody text.\n\n## References\n\n[1]: https://www.cdc.gov"

    def _issue(self, dimension):
        return Issue(kind=IssueKind.EEAT, message="", severity=Severity.LOW, code=f"eeat.{dimension}", location=dimension)

    def test_appends_before_references(self):
        fixed = EeatCorrector().apply(self.CONTENT, self._issue("trustworthiness"))
        assert fixed == (
            f"Intro.\n\nBody text. {ENHANCEMENTS['trustworthiness']}\n\n"
            "## References\n\n[1]: https://www.cdc.gov"
        )

    def test_idempotent(self):
        corrector = EeatCorrector()
        once = corrector.apply(self.CONTENT, self._issue("expertise"))
        assert corrector.apply(once, self._issue("expertise")) == once

    def test_unknown_dimension_untouched(self):
        assert EeatCorrector().apply(self.CONTENT, self._issue("vibes")) == self.CONTENT

    @pytest.mark.parametrize("dimension", ["experience", "expertise", "authoritativeness", "trustworthiness"])
    def test_enhancement_lifts_its_dimension(self, dimension):
        text = "Body text about caching."
        before = EeatOptimizer().score_dimensions(text)[dimension][0]
        fixed = EeatCorrector().apply(text, self._issue(dimension))
        after = EeatOptimizer().score_dimensions(fixed)[dimension][0]
        assert after > before
