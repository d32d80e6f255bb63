"""
EeatOptimizer -- scores Experience, Expertise, Authoritativeness, Trustworthiness.

Each dimension is scored 0-100 from marker phrases plus supporting signals;
the stage score is their weighted mean with trust weighted highest.
"""

import logging
import re

from .models import AnalyzerResult, Issue, IssueKind, Requirements, Severity, clamp_score
from .text import append_to_paragraph, contains_phrase, count_phrase, find_links, split_words, strip_code

logger = logging.getLogger(__name__)

DIMENSION_WEIGHTS = {
    "experience": 0.20,
    "expertise": 0.25,
    "authoritativeness": 0.25,
    "trustworthiness": 0.30,
}

WEAK_DIMENSION_THRESHOLD = 50.0
CRITICAL_OVERALL_THRESHOLD = 25.0

EXPERIENCE_MARKERS = [
    "in my experience", "i have personally", "over the years", "from my work with",
    "having worked on", "in practice", "real-world application", "case study",
    "lessons learned", "practical example",
]

EXPERTISE_INDICATORS = [
    "research shows", "studies indicate", "according to experts", "industry standard",
    "best practice", "technical analysis", "specialized knowledge", "advanced technique",
    "professional methodology", "expert consensus",
]

AUTHORITY_PHRASES = [
    "according to", "as stated by", "referenced in", "published by", "certified by",
    "recognized by", "industry leader", "authoritative source", "peer-reviewed",
    "established methodology",
]

TRUST_MARKERS = [
    "it's important to note", "in full transparency", "to be honest", "limitations include",
    "consider that", "while effective", "evidence suggests", "verified information",
    "factual accuracy", "balanced perspective",
]

CREDIBLE_SOURCES = [
    "university", "institute", "journal", "research",
    "government", "official", "certified", "accredited",
]

BALANCED_WORDS = [
    "however", "although", "while", "consider",
    "alternatively", "on the other hand", "it depends",
]

PERSONAL_PRONOUN_PATTERN = re.compile(r"\b(?:i|me|my|we|our)\b", re.IGNORECASE)
EXPERIENCE_WORD_PATTERN = re.compile(
    r"\b(?:experience|experienced|learned|discovered|found|realized)\b", re.IGNORECASE
)
CITATION_SIGNAL_PATTERN = re.compile(r"\[\d+\]|\(\d{4}\)|et al\.|PhD|Dr\.|Professor", re.IGNORECASE)
TRANSPARENCY_PATTERN = re.compile(r"\b(?:honest|transparent|clear|accurate|factual|verified)\b", re.IGNORECASE)

RECOMMENDATIONS = {
    "experience": "Add personal insights, case studies or real-world examples",
    "expertise": "Cite research or industry standards and use precise terminology",
    "authoritativeness": "Reference credible sources and authoritative publications",
    "trustworthiness": "Acknowledge limitations and present a balanced perspective",
}

# Sentences the corrector appends for a weak dimension. Each contains a
# marker phrase of its own dimension.
ENHANCEMENTS = {
    "experience": "In practice, lessons learned from real projects show where these steps matter most.",
    "expertise": "Research shows that following an industry standard process reduces avoidable errors.",
    "authoritativeness": "According to published guidance from recognized institutes, these principles hold across domains.",
    "trustworthiness": "Limitations include differing circumstances, so consider that results may vary.",
}


def _found(content_lower: str, markers: list[str]) -> list[str]:
    return [m for m in markers if contains_phrase(content_lower, m)]


def score_experience(text: str, word_total: int) -> tuple[float, list[str]]:
    lower = text.lower()
    markers = _found(lower, EXPERIENCE_MARKERS)
    experience_words = len(EXPERIENCE_WORD_PATTERN.findall(text))
    density = (len(markers) + experience_words) / word_total * 100
    variety_bonus = min(len(markers) * 5, 20)
    pronoun_bonus = 10 if PERSONAL_PRONOUN_PATTERN.search(text) else 0
    return min(100.0, density * 10 + variety_bonus + pronoun_bonus), markers


def score_expertise(text: str, word_total: int) -> tuple[float, list[str]]:
    lower = text.lower()
    indicators = _found(lower, EXPERTISE_INDICATORS)
    technical = sum(1 for w in split_words(text) if len(w) >= 8)
    technical_density = technical / word_total * 100
    citations = len(CITATION_SIGNAL_PATTERN.findall(text))
    score = len(indicators) * 15 + min(technical_density * 5, 25) + min(citations * 10, 30)
    return min(100.0, score), indicators


def score_authoritativeness(text: str) -> tuple[float, list[str]]:
    lower = text.lower()
    signals = _found(lower, AUTHORITY_PHRASES)
    source_mentions = sum(1 for s in CREDIBLE_SOURCES if s in lower)
    link_count = sum(1 for link in find_links(text) if link.url.lower().startswith("http"))
    score = len(signals) * 12 + min(source_mentions * 10, 30) + min(link_count * 8, 24)
    return min(100.0, score), signals


def score_trustworthiness(text: str) -> tuple[float, list[str]]:
    lower = text.lower()
    elements = _found(lower, TRUST_MARKERS)
    balance = sum(1 for w in BALANCED_WORDS if count_phrase(lower, w))
    transparency = len(TRANSPARENCY_PATTERN.findall(text))
    score = len(elements) * 15 + min(balance * 12, 36) + min(transparency * 8, 24)
    return min(100.0, score), elements


class EeatOptimizer:
    """Scores the four E-E-A-T dimensions; one issue per weak dimension.

    Usage:
        optimizer = EeatOptimizer()
        result = await optimizer.analyze(text, requirements)
        result.details["dimensions"]  # {"experience": 42.0, ...}
    """

    name = "eeat"

    def score_dimensions(self, content: str) -> dict[str, tuple[float, list[str]]]:
        text = strip_code(content)
        word_total = max(len(split_words(text)), 1)
        return {
            "experience": score_experience(text, word_total),
            "expertise": score_expertise(text, word_total),
            "authoritativeness": score_authoritativeness(text),
            "trustworthiness": score_trustworthiness(text),
        }

    async def analyze(self, content: str, requirements: Requirements) -> AnalyzerResult:
        dimensions = self.score_dimensions(content)
        overall = clamp_score(sum(
            dimensions[name][0] * weight for name, weight in DIMENSION_WEIGHTS.items()
        ))

        issues = []
        recommendations = []
        for name in DIMENSION_WEIGHTS:
            score, _ = dimensions[name]
            if score >= WEAK_DIMENSION_THRESHOLD:
                continue
            if overall < CRITICAL_OVERALL_THRESHOLD:
                severity = Severity.HIGH
            elif score < 25:
                severity = Severity.MEDIUM
            else:
                severity = Severity.LOW
            issues.append(Issue(
                kind=IssueKind.EEAT,
                message=f"Weak {name} signals (score {score:.1f})",
                severity=severity,
                code=f"eeat.{name}",
                location=name,
                suggestion=RECOMMENDATIONS[name],
            ))
            recommendations.append(RECOMMENDATIONS[name])

        logger.debug(f"[EeatOptimizer] overall={overall} weak={[i.location for i in issues]}")

        return AnalyzerResult(
            stage_name=self.name,
            score=overall,
            issues=tuple(issues),
            recommendations=tuple(recommendations),
            details={
                "dimensions": {name: round(s, 2) for name, (s, _) in dimensions.items()},
                "markers": {name: found for name, (_, found) in dimensions.items()},
            },
        )


class EeatCorrector:
    """Appends a dimension-specific sentence to the closing body paragraph."""

    kinds = frozenset({IssueKind.EEAT})

    def apply(self, content: str, issue: Issue) -> str:
        dimension = issue.code.removeprefix("eeat.")
        sentence = ENHANCEMENTS.get(dimension)
        if sentence is None or sentence in content:
            return content
        return append_to_paragraph(content, sentence, which="last")
