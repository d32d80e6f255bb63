"""Data models shared by the analyzer stages and the pipeline."""

from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Protocol, runtime_checkable

from ..errors import ValidationError
from ..security.validators import validate_list_size, validate_not_empty

MAX_KEYWORDS = 50


class IssueKind(str, Enum):
    """Closed set of issue categories. Correctors register per kind."""

    CITATION = "citation"
    EEAT = "eeat"
    GRAMMAR = "grammar"
    LINK_PLACEMENT = "link-placement"
    VARIATION = "variation"
    OTHER = "other"


class Severity(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"

    @property
    def rank(self) -> int:
        return _SEVERITY_RANK[self]


_SEVERITY_RANK = {Severity.LOW: 1, Severity.MEDIUM: 2, Severity.HIGH: 3}


@dataclass(frozen=True)
class ContentCandidate:
    """One revision of the content under evaluation. Never mutated in place."""

    text: str
    revision: int = 0

    def next_revision(self, text: str) -> "ContentCandidate":
        return ContentCandidate(text=text, revision=self.revision + 1)


@dataclass(frozen=True)
class Requirements:
    """What the content must satisfy: who it is for, how it sounds, what it covers."""

    target_audience: str
    tone: str
    keywords: tuple[str, ...]

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any] | None) -> "Requirements":
        """Build requirements from a dict with snake_case or camelCase keys."""
        if not data:
            raise ValidationError("requirements must include targetAudience, tone and keywords")
        audience = data.get("target_audience", data.get("targetAudience"))
        keywords = data.get("keywords")
        if isinstance(keywords, str):
            keywords = [keywords]
        return cls(
            target_audience=audience,
            tone=data.get("tone"),
            keywords=tuple(keywords) if keywords else (),
        ).validated()

    def validated(self) -> "Requirements":
        """Return a normalized copy, raising ValidationError on missing fields."""
        audience = validate_not_empty(self.target_audience, "requirements.targetAudience")
        tone = validate_not_empty(self.tone, "requirements.tone")
        if not self.keywords:
            raise ValidationError("requirements.keywords must contain at least one keyword")
        validate_list_size(self.keywords, "requirements.keywords", max_items=MAX_KEYWORDS)
        keywords = tuple(
            validate_not_empty(k, f"requirements.keywords[{i}]")
            for i, k in enumerate(self.keywords)
        )
        return Requirements(target_audience=audience, tone=tone, keywords=keywords)

    def to_dict(self) -> dict:
        return {
            "targetAudience": self.target_audience,
            "tone": self.tone,
            "keywords": list(self.keywords),
        }


@dataclass(frozen=True)
class Issue:
    """A single problem found by an analyzer.

    Attributes:
        kind: Category the refinement engine dispatches on.
        message: Human-readable explanation of what's wrong.
        severity: low / medium / high. High issues gate approval.
        code: Stable machine code, e.g. "sources.dangling_marker".
        location: The text fragment that triggered the issue.
        suggestion: How to fix it.
    """

    kind: IssueKind
    message: str
    severity: Severity
    code: str = ""
    location: str = ""
    suggestion: str = ""

    def to_dict(self) -> dict:
        return {
            "kind": self.kind.value,
            "message": self.message,
            "severity": self.severity.value,
            "code": self.code,
            "location": self.location,
            "suggestion": self.suggestion,
        }


@dataclass(frozen=True)
class AnalyzerResult:
    """One stage's contribution to a QualityReport."""

    stage_name: str
    score: float
    issues: tuple[Issue, ...] = ()
    recommendations: tuple[str, ...] = ()
    degraded_reason: str | None = None
    details: dict = field(default_factory=dict, compare=False)

    def __post_init__(self):
        if not 0.0 <= self.score <= 100.0:
            raise ValueError(f"stage '{self.stage_name}' score {self.score} outside [0, 100]")

    @property
    def degraded(self) -> bool:
        return self.degraded_reason is not None


@runtime_checkable
class Analyzer(Protocol):
    """Interface every analyzer stage implements.

    Example:
        class ReadabilityAnalyzer:
            name = "readability"

            async def analyze(self, content, requirements):
                return AnalyzerResult(stage_name=self.name, score=90.0)
    """

    @property
    def name(self) -> str: ...

    async def analyze(self, content: str, requirements: Requirements) -> AnalyzerResult: ...


@runtime_checkable
class Corrector(Protocol):
    """Interface for an automated fix, registered per IssueKind.

    apply() must return the content unchanged for issues it does not handle.
    """

    @property
    def kinds(self) -> frozenset[IssueKind]: ...

    def apply(self, content: str, issue: Issue) -> str: ...


def clamp_score(value: float) -> float:
    """Clamp to [0, 100] and round to two decimals."""
    return round(max(0.0, min(100.0, value)), 2)
