"""
VariationDetector -- does the text read like it was written, or generated?

Signals:
  - Formulaic phrases ("delve into", "in today's world")
  - Repeated sentence openers
  - Uniform sentence length (low coefficient of variation)
  - Low lexical diversity (moving-average type-token ratio)
  - Repeated four-word phrases

VariationCorrector is the only component that uses randomness. Its
random.Random instances come from a seed (or an injected factory), keyed
per phrase, so refinement is reproducible.
"""

import logging
import random
import re
import statistics
from collections import Counter
from typing import Callable

from .models import AnalyzerResult, Issue, IssueKind, Requirements, Severity, clamp_score
from .text import count_phrase, split_sentences, split_words, strip_code

logger = logging.getLogger(__name__)

# Formulaic phrase -> plainer alternatives the corrector picks from.
FLAGGED_PHRASES: dict[str, list[str]] = {
    "in conclusion": ["overall", "to sum up", "all told"],
    "it is worth noting": ["notably", "note that"],
    "it's worth noting": ["notably", "note that"],
    "in today's world": ["today", "now"],
    "in this day and age": ["today", "these days"],
    "at the end of the day": ["ultimately", "in the end"],
    "without further ado": ["now"],
    "let's dive in": ["here is how it works"],
    "as we all know": ["as is widely known"],
    "needless to say": ["clearly"],
    "it goes without saying": ["clearly"],
    "last but not least": ["finally"],
    "first and foremost": ["first"],
    "each and every": ["every"],
    "when it comes to": ["for", "with"],
    "for all intents and purposes": ["in effect", "practically"],
    "delve into": ["explore", "examine", "look at"],
    "rich tapestry": ["wide range", "mix"],
    "in the realm of": ["in"],
    "navigate the": ["handle the", "work through the"],
    "unlock the": ["use the", "gain the"],
    "embark on": ["start", "begin"],
    "harness the power of": ["use", "make use of"],
    "game-changer": ["major improvement", "big step"],
    "game changer": ["major improvement", "big step"],
    "cutting-edge": ["modern", "recent"],
    "leverage the": ["use the", "apply the"],
}

OPENER_TRANSITIONS = ["Also", "In addition", "Meanwhile", "Beyond that", "Similarly"]

STOPWORDS = {
    "the", "a", "an", "and", "or", "of", "to", "in", "on", "for", "is", "are",
    "it", "that", "this", "with", "as", "be", "by", "at", "from", "you", "your",
}

HIGH_FLAGGED_COUNT = 6
MIN_SENTENCES_FOR_RHYTHM = 5
MIN_LENGTH_VARIATION = 0.25
MIN_WORDS_FOR_DIVERSITY = 100
MIN_LEXICAL_DIVERSITY = 0.45
DIVERSITY_WINDOW = 100
REPEATED_OPENER_MIN = 3
REPEATED_OPENER_SHARE = 0.3
NGRAM_SIZE = 4
NGRAM_REPEAT_MIN = 3


def sentence_length_variation(sentences: list[str]) -> float:
    """Coefficient of variation of sentence lengths in words."""
    lengths = [len(split_words(s)) for s in sentences if split_words(s)]
    if len(lengths) < 2:
        return 0.0
    mean = statistics.mean(lengths)
    return statistics.pstdev(lengths) / mean if mean else 0.0


def lexical_diversity(words: list[str], window: int = DIVERSITY_WINDOW) -> float:
    """Moving-average type-token ratio (stable across text lengths)."""
    lowered = [w.lower() for w in words]
    if len(lowered) <= window:
        return len(set(lowered)) / len(lowered) if lowered else 1.0
    step = window // 2
    ratios = [
        len(set(lowered[i:i + window])) / window
        for i in range(0, len(lowered) - window + 1, step)
    ]
    return statistics.mean(ratios)


def repeated_ngrams(words: list[str], size: int = NGRAM_SIZE, minimum: int = NGRAM_REPEAT_MIN) -> list[str]:
    lowered = [w.lower() for w in words]
    grams = Counter(
        " ".join(lowered[i:i + size]) for i in range(len(lowered) - size + 1)
    )
    return sorted(
        gram for gram, count in grams.items()
        if count >= minimum and not all(w in STOPWORDS for w in gram.split())
    )


def _opener(sentence: str) -> str | None:
    words = split_words(sentence)
    return words[0].lower() if words else None


class VariationDetector:
    """Flags formulaic, monotonous or repetitive text.

    Usage:
        detector = VariationDetector()
        result = await detector.analyze(text, requirements)
    """

    name = "variation"

    async def analyze(self, content: str, requirements: Requirements) -> AnalyzerResult:
        text = strip_code(content)
        sentences = [s for s in split_sentences(text) if not s.startswith("#")]
        words = split_words(text)
        issues: list[Issue] = []
        penalty = 0.0

        flagged = {p: count_phrase(text, p) for p in FLAGGED_PHRASES}
        flagged = {p: c for p, c in flagged.items() if c}
        total_flagged = sum(flagged.values())
        severity = Severity.HIGH if total_flagged >= HIGH_FLAGGED_COUNT else Severity.MEDIUM
        for phrase, count in flagged.items():
            issues.append(Issue(
                kind=IssueKind.VARIATION,
                message=f"Formulaic phrase \"{phrase}\" used {count} time(s)",
                severity=severity,
                code="variation.flagged_phrase",
                location=phrase,
                suggestion="Replace with plain, specific wording",
            ))
        penalty += min(total_flagged * 5.0, 40.0)

        openers = Counter(o for o in (_opener(s) for s in sentences) if o)
        for opener, count in sorted(openers.items()):
            if count >= REPEATED_OPENER_MIN and count / len(sentences) > REPEATED_OPENER_SHARE:
                issues.append(Issue(
                    kind=IssueKind.VARIATION,
                    message=f"{count} of {len(sentences)} sentences start with \"{opener}\"",
                    severity=Severity.MEDIUM,
                    code="variation.repeated_opener",
                    location=opener,
                    suggestion="Vary how sentences begin",
                ))
                penalty += 10.0

        variation = sentence_length_variation(sentences)
        if len(sentences) >= MIN_SENTENCES_FOR_RHYTHM and variation < MIN_LENGTH_VARIATION:
            issues.append(Issue(
                kind=IssueKind.VARIATION,
                message=f"Sentence lengths are uniform (variation {variation:.2f})",
                severity=Severity.LOW,
                code="variation.uniform_length",
                suggestion="Mix short and long sentences",
            ))
            penalty += 8.0

        diversity = lexical_diversity(words)
        if len(words) >= MIN_WORDS_FOR_DIVERSITY and diversity < MIN_LEXICAL_DIVERSITY:
            issues.append(Issue(
                kind=IssueKind.VARIATION,
                message=f"Low lexical diversity ({diversity:.2f})",
                severity=Severity.LOW,
                code="variation.low_diversity",
                suggestion="Use a wider vocabulary",
            ))
            penalty += 8.0

        repeats = repeated_ngrams(words)
        for gram in repeats:
            issues.append(Issue(
                kind=IssueKind.VARIATION,
                message=f"Phrase \"{gram}\" is repeated",
                severity=Severity.LOW,
                code="variation.repeated_phrase",
                location=gram,
                suggestion="Rephrase repeated wording",
            ))
        penalty += min(len(repeats) * 6.0, 24.0)

        recommendations = []
        if flagged:
            recommendations.append("Remove formulaic phrases")
        if any(i.code == "variation.repeated_opener" for i in issues):
            recommendations.append("Vary sentence openers")
        if any(i.code == "variation.uniform_length" for i in issues):
            recommendations.append("Vary sentence length")

        score = clamp_score(100.0 - penalty)
        logger.debug(f"[VariationDetector] flagged={total_flagged} cv={variation:.2f} score={score}")

        return AnalyzerResult(
            stage_name=self.name,
            score=score,
            issues=tuple(issues),
            recommendations=tuple(recommendations),
            details={
                "sentence_length_variation": round(variation, 3),
                "lexical_diversity": round(diversity, 3),
                "flagged_phrases": flagged,
            },
        )


def _match_case(original: str, replacement: str) -> str:
    if original[:1].isupper():
        return replacement[:1].upper() + replacement[1:]
    return replacement


class VariationCorrector:
    """Rewrites formulaic phrases and varies repeated openers.

    Randomness is keyed: the same seed and issue always give the same text.

    Usage:
        corrector = VariationCorrector(seed=7)
        fixed = corrector.apply(text, issue)
    """

    kinds = frozenset({IssueKind.VARIATION})

    def __init__(self, seed: int = 0, rng_factory: Callable[[str], random.Random] | None = None):
        self._seed = seed
        self._rng_factory = rng_factory

    def _rng(self, key: str) -> random.Random:
        if self._rng_factory is not None:
            return self._rng_factory(key)
        return random.Random(f"{self._seed}:{key}")

    def apply(self, content: str, issue: Issue) -> str:
        if issue.code == "variation.flagged_phrase":
            return self._replace_phrase(content, issue.location)
        if issue.code == "variation.repeated_opener":
            return self._vary_opener(content, issue.location)
        return content

    def _replace_phrase(self, content: str, phrase: str) -> str:
        alternatives = FLAGGED_PHRASES.get(phrase.lower())
        if not alternatives:
            return content
        rng = self._rng(phrase.lower())
        pattern = re.compile(rf"(?<!\w){re.escape(phrase)}(?!\w)", re.IGNORECASE)
        return pattern.sub(lambda m: _match_case(m.group(0), rng.choice(alternatives)), content)

    def _vary_opener(self, content: str, opener: str) -> str:
        rng = self._rng(f"opener:{opener.lower()}")
        pattern = re.compile(rf"(^|[.!?][ \t]+)({re.escape(opener)})\b", re.IGNORECASE | re.MULTILINE)
        seen = 0

        def _sub(match: re.Match) -> str:
            nonlocal seen
            seen += 1
            word = match.group(2)
            if seen % 2 == 1 or not word[:1].isupper():
                return match.group(0)
            lowered = word if word == "I" or word.isupper() else word[:1].lower() + word[1:]
            return f"{match.group(1)}{rng.choice(OPENER_TRANSITIONS)}, {lowered}"

        return pattern.sub(_sub, content)
