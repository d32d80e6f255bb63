"""
ErrorDetectionCorrection -- finds and fixes mechanical errors.

Rule categories:
  - Spelling: common misspellings ("recieve", "seperate")
  - Grammar: "could of", "alot", wordy phrases ("in order to")
  - Punctuation: space before punctuation, repeated marks, double spaces,
    lowercase sentence starts
  - Citations: "[citation needed]", empty "[]" and "[?]" markers
  - Links: empty targets, missing or misspelled schemes, empty anchor text

Works both as the "errors" analyzer stage and as a corrector in the
refinement engine. correct() applies rules in the fixed RULES order and
depends only on the issue set, so refinement is reproducible.

Fenced code blocks are never scanned or rewritten.
"""

import logging
import re
from collections import Counter
from dataclasses import dataclass
from typing import Callable
from urllib.parse import urlparse

from .models import AnalyzerResult, Issue, IssueKind, Requirements, Severity, clamp_score
from .text import CODE_FENCE_PATTERN

logger = logging.getLogger(__name__)

SPELLING = {
    "recieve": "receive",
    "seperate": "separate",
    "definately": "definitely",
    "occured": "occurred",
    "neccessary": "necessary",
    "accomodate": "accommodate",
    "embarass": "embarrass",
    "existance": "existence",
    "maintainance": "maintenance",
    "occassion": "occasion",
    "untill": "until",
    "wich": "which",
    "teh": "the",
    "begining": "beginning",
    "beleive": "believe",
    "enviroment": "environment",
    "goverment": "government",
    "independant": "independent",
}

GRAMMAR = {
    "could of": "could have",
    "would of": "would have",
    "should of": "should have",
    "must of": "must have",
    "alot": "a lot",
    "there own": "their own",
    "loose weight": "lose weight",
    "irregardless": "regardless",
}

WORDY_PHRASES = {
    "in order to": "to",
    "due to the fact that": "because",
    "at this point in time": "now",
    "in the event that": "if",
    "for the purpose of": "for",
}

SENTENCE_ABBREVIATIONS = ("e.g.", "i.e.", "etc.", "vs.", "et al.", "a.m.", "p.m.", "approx.")

SEVERITY_PENALTY = {Severity.HIGH: 20.0, Severity.MEDIUM: 8.0, Severity.LOW: 3.0}
MAX_PENALTY_PER_CODE = 24.0

SCHEME_PREFIX = re.compile(r"^([a-z]+):?/*", re.IGNORECASE)


@dataclass(frozen=True)
class _Rule:
    code: str
    kind: IssueKind
    severity: Severity
    pattern: re.Pattern
    replacement: str | Callable[[re.Match], str]
    message: str
    suggestion: str
    key: str | None = None
    guard: Callable[[re.Match], bool] | None = None

    def skip(self, match: re.Match) -> bool:
        return self.guard is not None and self.guard(match)


def _match_case(replacement: str) -> Callable[[re.Match], str]:
    def _sub(match: re.Match) -> str:
        original = match.group(0)
        if original[:1].isupper():
            return replacement[:1].upper() + replacement[1:]
        return replacement

    return _sub


def _follows_abbreviation(match: re.Match) -> bool:
    before = match.string[max(0, match.start() - 8):match.start()].lower()
    return before.endswith(SENTENCE_ABBREVIATIONS)


def _capitalize(match: re.Match) -> str:
    if _follows_abbreviation(match):
        return match.group(0)
    return match.group(1) + match.group(2).upper()


def _fix_scheme(match: re.Match) -> str:
    text, url = match.group(1), match.group(2)
    prefix = SCHEME_PREFIX.match(url)
    secure = prefix.group(1).lower().endswith("s")
    rest = url[prefix.end():]
    return f"[{text}]({'https' if secure else 'http'}://{rest})"


def _fill_anchor(match: re.Match) -> str:
    url = match.group(1)
    host = urlparse(url).hostname or url
    return f"[{host.removeprefix('www.')}]({url})"


def _dictionary_rules(
    table: dict[str, str], code: str, severity: Severity, label: str
) -> list[_Rule]:
    rules = []
    for wrong, right in table.items():
        rules.append(_Rule(
            code=code,
            kind=IssueKind.GRAMMAR,
            severity=severity,
            pattern=re.compile(rf"\b{re.escape(wrong)}\b", re.IGNORECASE),
            replacement=_match_case(right),
            message=f"{label}: \"{wrong}\" should be \"{right}\"",
            suggestion=right,
            key=wrong,
        ))
    return rules


RULES: list[_Rule] = [
    _Rule(
        code="errors.citation_needed",
        kind=IssueKind.CITATION,
        severity=Severity.HIGH,
        pattern=re.compile(
            r"[ \t]*(?:\[(?:citation|source)s? needed\]|\((?:citation|source)s? needed\)|\[needs citation\])",
            re.IGNORECASE,
        ),
        replacement="",
        message="Unresolved citation placeholder",
        suggestion="Cite a source for the claim or remove the placeholder",
    ),
    _Rule(
        code="errors.empty_citation",
        kind=IssueKind.CITATION,
        severity=Severity.MEDIUM,
        pattern=re.compile(r"[ \t]*\[\s*\??\s*\](?!\()"),
        replacement="",
        message="Empty citation marker",
        suggestion="Reference a numbered source or remove the marker",
    ),
    _Rule(
        code="errors.empty_link_target",
        kind=IssueKind.LINK_PLACEMENT,
        severity=Severity.MEDIUM,
        pattern=re.compile(r"(?<!!)\[([^\]\n]+)\]\(\s*\)"),
        replacement=r"\1",
        message="Link has no target URL",
        suggestion="Add the target URL or remove the link markup",
    ),
    _Rule(
        code="errors.link_missing_scheme",
        kind=IssueKind.LINK_PLACEMENT,
        severity=Severity.MEDIUM,
        pattern=re.compile(r"(?<!!)\[([^\]\n]+)\]\((www\.[^)\s]+)\)", re.IGNORECASE),
        replacement=r"[\1](https://\2)",
        message="Link URL is missing its scheme",
        suggestion="Prefix the URL with https://",
    ),
    _Rule(
        code="errors.link_bad_scheme",
        kind=IssueKind.LINK_PLACEMENT,
        severity=Severity.MEDIUM,
        pattern=re.compile(
            r"(?<!!)\[([^\]\n]+)\]\(((?:htp|htps|htttps?|hhtps?)://[^)\s]+|https?:/[^/)\s][^)\s]*|https?//[^)\s]+)\)",
            re.IGNORECASE,
        ),
        replacement=_fix_scheme,
        message="Link URL has a malformed scheme",
        suggestion="Use http:// or https://",
    ),
    _Rule(
        code="errors.empty_link_text",
        kind=IssueKind.LINK_PLACEMENT,
        severity=Severity.LOW,
        pattern=re.compile(r"(?<!!)\[\s*\]\((https?://[^)\s]+)\)", re.IGNORECASE),
        replacement=_fill_anchor,
        message="Link has no anchor text",
        suggestion="Describe the link target in the anchor text",
    ),
    *_dictionary_rules(SPELLING, "errors.spelling", Severity.LOW, "Spelling error"),
    *_dictionary_rules(GRAMMAR, "errors.grammar", Severity.MEDIUM, "Grammar error"),
    *_dictionary_rules(WORDY_PHRASES, "errors.wordy_phrase", Severity.LOW, "Wordy phrase"),
    _Rule(
        code="errors.space_before_punctuation",
        kind=IssueKind.GRAMMAR,
        severity=Severity.LOW,
        pattern=re.compile(r"(?<=\w)[ \t]+([,.!?;:])(?=\s|$)", re.MULTILINE),
        replacement=r"\1",
        message="Space before punctuation",
        suggestion="Remove the space before the punctuation mark",
    ),
    _Rule(
        code="errors.repeated_punctuation",
        kind=IssueKind.GRAMMAR,
        severity=Severity.LOW,
        pattern=re.compile(r"([!?,;])\1+|(?<!\.)\.\.(?!\.)"),
        replacement=lambda m: m.group(1) or ".",
        message="Repeated punctuation",
        suggestion="Use a single punctuation mark",
    ),
    _Rule(
        code="errors.double_space",
        kind=IssueKind.GRAMMAR,
        severity=Severity.LOW,
        pattern=re.compile(r"(?<=\S)[ ]{2,}(?=\S)"),
        replacement=" ",
        message="Multiple spaces between words",
        suggestion="Use a single space",
    ),
    _Rule(
        code="errors.lowercase_sentence_start",
        kind=IssueKind.GRAMMAR,
        severity=Severity.LOW,
        pattern=re.compile(r"(?<=[.!?])([ \t]+)([a-z])"),
        replacement=_capitalize,
        message="Sentence should start with a capital letter",
        suggestion="Capitalize the first letter",
        guard=_follows_abbreviation,
    ),
]

RULE_CODES = frozenset(rule.code for rule in RULES)


def _split_prose(content: str) -> list[tuple[str, bool]]:
    """Split content into (segment, is_code) pieces around fenced code blocks."""
    pieces = []
    last = 0
    for match in CODE_FENCE_PATTERN.finditer(content):
        pieces.append((content[last:match.start()], False))
        pieces.append((match.group(0), True))
        last = match.end()
    pieces.append((content[last:], False))
    return pieces


class ErrorDetectionCorrection:
    """Detects and corrects mechanical errors. Analyzer stage and corrector.

    Usage:
        edc = ErrorDetectionCorrection()
        issues = edc.detect("We could of used teh cache [citation needed].")
        fixed = edc.correct(text, issues)
        # "We could have used the cache."
    """

    name = "errors"
    kinds = frozenset({IssueKind.GRAMMAR, IssueKind.CITATION, IssueKind.LINK_PLACEMENT})

    def detect(self, content: str) -> list[Issue]:
        """Scan prose (not code blocks) for mechanical errors."""
        issues = []
        for segment, is_code in _split_prose(content):
            if is_code:
                continue
            for rule in RULES:
                for match in rule.pattern.finditer(segment):
                    if rule.skip(match):
                        continue
                    issues.append(Issue(
                        kind=rule.kind,
                        message=rule.message,
                        severity=rule.severity,
                        code=rule.code,
                        location=match.group(0).strip() or match.group(0),
                        suggestion=rule.suggestion,
                    ))
        return issues

    def correct(self, content: str, issues: list[Issue] | tuple[Issue, ...]) -> str:
        """Apply fixes for the given issues. Order comes from RULES, not from issues."""
        locations: dict[str, set[str]] = {}
        for issue in issues:
            if issue.code in RULE_CODES:
                locations.setdefault(issue.code, set()).add(issue.location.lower())
        if not locations:
            return content

        pieces = []
        for segment, is_code in _split_prose(content):
            if not is_code:
                for rule in RULES:
                    wanted = locations.get(rule.code)
                    if wanted is None:
                        continue
                    if rule.key is not None and rule.key not in wanted:
                        continue
                    segment = rule.pattern.sub(rule.replacement, segment)
            pieces.append(segment)
        corrected = "".join(pieces)

        if corrected != content:
            logger.debug(f"[ErrorDetection] Applied fixes for {sorted(locations)}")
        return corrected

    def apply(self, content: str, issue: Issue) -> str:
        """Corrector entry point: fix one issue (no-op for codes owned elsewhere)."""
        if issue.code not in RULE_CODES:
            return content
        return self.correct(content, [issue])

    async def analyze(self, content: str, requirements: Requirements) -> AnalyzerResult:
        issues = self.detect(content)

        penalty_by_code: Counter = Counter()
        for issue in issues:
            penalty_by_code[issue.code] += SEVERITY_PENALTY[issue.severity]
        total_penalty = sum(min(p, MAX_PENALTY_PER_CODE) for p in penalty_by_code.values())

        counts = Counter(issue.code for issue in issues)
        recommendations = [
            f"Fix {count} occurrence(s) of {code.removeprefix('errors.').replace('_', ' ')}"
            for code, count in sorted(counts.items())
        ]

        if issues:
            logger.debug(f"[ErrorDetection] {len(issues)} mechanical issues found")

        return AnalyzerResult(
            stage_name=self.name,
            score=clamp_score(100.0 - total_penalty),
            issues=tuple(issues),
            recommendations=tuple(recommendations),
            details={"issue_counts": dict(counts)},
        )
