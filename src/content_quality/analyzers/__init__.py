"""
Analyzer stages -- each scores one aspect of the content and lists issues.

Stages:
  - IntentAnalyzer ("intent"): keyword coverage, intent, tone, audience
  - EeatOptimizer ("eeat"): Experience, Expertise, Authoritativeness, Trust
  - SourceValidator ("sources"): citation safety, authority, markers
  - LinkPlacer ("links"): link placement (advisory)
  - VariationDetector ("variation"): formulaic and repetitive text
  - ErrorDetectionCorrection ("errors"): mechanical errors, also a corrector

Correctors (used by the refinement engine):
  IntentCorrector, EeatCorrector, SourceCorrector, LinkCorrector,
  VariationCorrector, ErrorDetectionCorrection
"""

from .eeat import EeatCorrector, EeatOptimizer
from .error_detection import ErrorDetectionCorrection
from .intent import IntentAnalyzer, IntentCorrector
from .links import LinkCorrector, LinkPlacementResult, LinkPlacer, LinkSuggestion, place_links
from .models import (
    Analyzer,
    AnalyzerResult,
    ContentCandidate,
    Corrector,
    Issue,
    IssueKind,
    Requirements,
    Severity,
)
from .sources import HttpSourceChecker, NullSourceChecker, SourceChecker, SourceCorrector, SourceValidator
from .variation import VariationCorrector, VariationDetector

__all__ = [
    "Analyzer",
    "AnalyzerResult",
    "ContentCandidate",
    "Corrector",
    "EeatCorrector",
    "EeatOptimizer",
    "ErrorDetectionCorrection",
    "HttpSourceChecker",
    "IntentAnalyzer",
    "IntentCorrector",
    "Issue",
    "IssueKind",
    "LinkCorrector",
    "LinkPlacementResult",
    "LinkPlacer",
    "LinkSuggestion",
    "NullSourceChecker",
    "Requirements",
    "Severity",
    "SourceChecker",
    "SourceCorrector",
    "SourceValidator",
    "VariationCorrector",
    "VariationDetector",
    "place_links",
]
