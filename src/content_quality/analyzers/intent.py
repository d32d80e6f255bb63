"""
IntentAnalyzer -- does the content serve the intent behind its keywords?

Scores five components (max points in parentheses):
  - Keyword coverage (40): share of requirement keywords present
  - Introduction placement (15): primary keyword in the first paragraph
  - Intent alignment (25): content intent matches keyword intent
  - Tone fit (10): markers of the requested tone
  - Audience address (10): audience named or addressed directly

Intent is one of informational, navigational, transactional, commercial,
classified from keyword and phrase patterns.
"""

import logging
from dataclasses import dataclass

from .models import AnalyzerResult, Issue, IssueKind, Requirements, Severity, clamp_score
from .text import append_to_paragraph, body_paragraphs, contains_phrase, count_phrase, split_words

logger = logging.getLogger(__name__)

INTENTS = ("informational", "navigational", "transactional", "commercial")

INTENT_PATTERNS: dict[str, dict[str, list[str]]] = {
    "informational": {
        "keywords": ["what", "how", "why", "guide", "tutorial", "learn", "explain",
                     "tips", "examples", "definition", "meaning", "understand"],
        "phrases": ["how to", "what is", "step by step", "learn how", "explained",
                    "beginner's guide", "in this guide"],
    },
    "navigational": {
        "keywords": ["login", "official", "website", "homepage", "contact",
                     "download", "portal", "account", "dashboard"],
        "phrases": ["sign in", "log in", "official site", "contact us", "go to"],
    },
    "transactional": {
        "keywords": ["buy", "purchase", "order", "price", "pricing", "discount",
                     "deal", "coupon", "subscribe", "checkout", "cheap"],
        "phrases": ["add to cart", "buy now", "free trial", "order now", "sign up"],
    },
    "commercial": {
        "keywords": ["best", "top", "review", "reviews", "compare", "vs", "versus",
                     "alternative", "alternatives", "comparison", "rating"],
        "phrases": ["pros and cons", "compared to", "which is better", "top rated"],
    },
}

TONE_MARKERS: dict[str, list[str]] = {
    "formal": ["therefore", "furthermore", "consequently", "moreover", "however",
               "in addition", "accordingly"],
    "casual": ["awesome", "super", "cool", "stuff", "totally", "pretty much", "!"],
    "friendly": ["you", "your", "let's", "we", "together", "don't worry"],
    "authoritative": ["research", "evidence", "data", "study", "proven", "according to"],
}

TONE_ALIASES = {
    "professional": "formal",
    "academic": "formal",
    "informal": "casual",
    "conversational": "friendly",
    "warm": "friendly",
    "expert": "authoritative",
    "technical": "authoritative",
}

AUDIENCE_STOPWORDS = {"people", "users", "readers", "audience", "general", "public", "those", "with", "and", "the"}


@dataclass
class IntentClassification:
    """Intent with per-intent pattern hit counts."""

    intent: str
    hits: dict[str, int]


def classify_intent(text: str) -> IntentClassification:
    """Classify text intent. Ties resolve in INTENTS order; no hits is informational."""
    hits = {}
    for intent in INTENTS:
        patterns = INTENT_PATTERNS[intent]
        count = sum(count_phrase(text, word) for word in patterns["keywords"])
        count += 2 * sum(count_phrase(text, phrase) for phrase in patterns["phrases"])
        hits[intent] = count

    best = max(INTENTS, key=lambda i: hits[i])
    if hits[best] == 0:
        best = "informational"
    return IntentClassification(intent=best, hits=hits)


def resolve_tone(tone: str) -> str | None:
    key = tone.strip().lower()
    key = TONE_ALIASES.get(key, key)
    return key if key in TONE_MARKERS else None


def _tone_marker_count(text: str, tone: str) -> int:
    count = 0
    for marker in TONE_MARKERS[tone]:
        if marker.isalpha() or " " in marker or "'" in marker:
            count += count_phrase(text, marker)
        else:
            count += text.count(marker)
    return count


def _audience_terms(audience: str) -> list[str]:
    return [
        w.lower() for w in split_words(audience)
        if len(w) > 3 and w.lower() not in AUDIENCE_STOPWORDS
    ]


class IntentAnalyzer:
    """Scores keyword coverage and intent/tone/audience alignment.

    Usage:
        analyzer = IntentAnalyzer()
        result = await analyzer.analyze(text, requirements)
    """

    name = "intent"

    async def analyze(self, content: str, requirements: Requirements) -> AnalyzerResult:
        issues: list[Issue] = []
        recommendations: list[str] = []
        paragraphs = body_paragraphs(content)
        intro = paragraphs[0] if paragraphs else ""

        # Keyword coverage
        present = [k for k in requirements.keywords if contains_phrase(content, k)]
        missing = [k for k in requirements.keywords if k not in present]
        coverage = len(present) / len(requirements.keywords)
        severity = Severity.HIGH if not present else Severity.MEDIUM
        for keyword in missing:
            issues.append(Issue(
                kind=IssueKind.OTHER,
                message=f"Target keyword \"{keyword}\" does not appear in the content",
                severity=severity,
                code="intent.keyword_missing",
                location=keyword,
                suggestion=f"Cover \"{keyword}\" explicitly",
            ))
        keyword_points = 40.0 * coverage

        # Introduction placement
        primary = requirements.keywords[0]
        if contains_phrase(intro, primary):
            intro_points = 15.0
        elif any(contains_phrase(intro, k) for k in requirements.keywords):
            intro_points = 10.0
        else:
            intro_points = 0.0
            issues.append(Issue(
                kind=IssueKind.OTHER,
                message=f"Primary keyword \"{primary}\" is missing from the introduction",
                severity=Severity.MEDIUM,
                code="intent.keyword_not_in_intro",
                location=primary,
                suggestion="Mention the primary keyword in the first paragraph",
            ))

        # Intent alignment
        target = classify_intent(" ".join(requirements.keywords)).intent
        actual = classify_intent(content)
        if actual.intent == target:
            intent_points = 25.0
        elif actual.hits[target] > 0:
            intent_points = 15.0
        else:
            intent_points = 5.0
            issues.append(Issue(
                kind=IssueKind.OTHER,
                message=f"Content reads as {actual.intent} but the keywords signal {target} intent",
                severity=Severity.MEDIUM,
                code="intent.intent_mismatch",
                location=target,
                suggestion=f"Restructure the content to serve {target} intent",
            ))
            recommendations.append(f"Align the content with {target} search intent")

        # Tone
        tone = resolve_tone(requirements.tone)
        if tone is None:
            tone_points = 10.0
        else:
            markers = _tone_marker_count(content, tone)
            tone_points = 10.0 if markers >= 2 else 6.0 if markers == 1 else 2.0
            if markers == 0:
                issues.append(Issue(
                    kind=IssueKind.OTHER,
                    message=f"No markers of the requested {requirements.tone} tone found",
                    severity=Severity.LOW,
                    code="intent.tone_mismatch",
                    location=requirements.tone,
                    suggestion=f"Adjust wording toward a {requirements.tone} tone",
                ))
                recommendations.append(f"Use language that fits a {requirements.tone} tone")

        # Audience
        terms = _audience_terms(requirements.target_audience)
        addressed = any(contains_phrase(content, t) for t in terms) or count_phrase(content, "you") > 0
        if addressed:
            audience_points = 10.0
        else:
            audience_points = 4.0
            issues.append(Issue(
                kind=IssueKind.OTHER,
                message=f"Content never addresses its audience ({requirements.target_audience})",
                severity=Severity.LOW,
                code="intent.audience_not_addressed",
                location=requirements.target_audience,
                suggestion="Speak to the reader directly or name the audience",
            ))

        if missing:
            recommendations.append(f"Cover the missing keywords: {', '.join(missing)}")

        score = clamp_score(keyword_points + intro_points + intent_points + tone_points + audience_points)
        logger.debug(f"[IntentAnalyzer] intent={actual.intent} target={target} score={score}")

        return AnalyzerResult(
            stage_name=self.name,
            score=score,
            issues=tuple(issues),
            recommendations=tuple(recommendations),
            details={
                "content_intent": actual.intent,
                "target_intent": target,
                "keyword_coverage": round(coverage, 3),
                "missing_keywords": missing,
            },
        )


class IntentCorrector:
    """Fixes keyword coverage and audience address by adding intro sentences.

    Intent and tone mismatches need rewriting and are left alone.
    """

    kinds = frozenset({IssueKind.OTHER})

    def apply(self, content: str, issue: Issue) -> str:
        if issue.code == "intent.keyword_missing":
            if contains_phrase(content, issue.location):
                return content
            return append_to_paragraph(content, f"This article also covers {issue.location}.")
        if issue.code == "intent.keyword_not_in_intro":
            paragraphs = body_paragraphs(content)
            if paragraphs and contains_phrase(paragraphs[0], issue.location):
                return content
            topic = issue.location[:1].upper() + issue.location[1:]
            return append_to_paragraph(content, f"{topic} is the focus of this article.")
        if issue.code == "intent.audience_not_addressed":
            return append_to_paragraph(content, f"It is written for {issue.location} like you.")
        return content
