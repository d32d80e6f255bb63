"""
RefinementEngine -- applies automated corrections to produce the next revision.

Correctors register per IssueKind. Issues are applied highest severity
first (stable within a severity). A high-severity issue whose kind has no
corrector raises RefinementError before anything is applied, and so does a
high-severity issue that none of its correctors changed: either way the
next revision would only look improved.
"""

import logging

from ..analyzers.eeat import EeatCorrector
from ..analyzers.error_detection import ErrorDetectionCorrection
from ..analyzers.intent import IntentCorrector
from ..analyzers.links import LinkCorrector
from ..analyzers.models import ContentCandidate, Corrector, IssueKind, Severity
from ..analyzers.sources import SourceCorrector
from ..analyzers.variation import VariationCorrector
from ..config import PipelineSettings, get_settings
from ..errors import RefinementError
from .scoring import QualityReport

logger = logging.getLogger(__name__)


def default_correctors(settings: PipelineSettings | None = None) -> list[Corrector]:
    """One registry entry per issue kind; order within a kind is application order."""
    settings = settings or get_settings()
    return [
        SourceCorrector(),
        ErrorDetectionCorrection(),
        EeatCorrector(),
        LinkCorrector(),
        VariationCorrector(seed=settings.variation_seed),
        IntentCorrector(),
    ]


class RefinementEngine:
    """Dispatches issues to correctors by kind.

    Usage:
        engine = RefinementEngine(default_correctors())
        candidate = engine.refine(candidate, report)  # revision + 1
    """

    def __init__(self, correctors: list[Corrector] | None = None):
        self._registry: dict[IssueKind, list[Corrector]] = {}
        for corrector in correctors if correctors is not None else default_correctors():
            self.register(corrector)

    def register(self, corrector: Corrector) -> None:
        for kind in sorted(corrector.kinds, key=lambda k: k.value):
            self._registry.setdefault(kind, []).append(corrector)

    def correctors_for(self, kind: IssueKind) -> list[Corrector]:
        return list(self._registry.get(kind, []))

    @property
    def registered_kinds(self) -> frozenset[IssueKind]:
        return frozenset(self._registry)

    def refine(self, candidate: ContentCandidate, report: QualityReport) -> ContentCandidate:
        ordered = sorted(report.issues, key=lambda issue: -issue.severity.rank)

        uncovered = sorted(
            {i.kind.value for i in ordered if i.severity is Severity.HIGH and i.kind not in self._registry}
        )
        if uncovered:
            raise RefinementError(
                f"no corrector registered for high-severity issue kind(s): {', '.join(uncovered)}"
            )

        text = candidate.text
        applied = 0
        unaddressed: list[str] = []
        for issue in ordered:
            correctors = self._registry.get(issue.kind)
            if not correctors:
                logger.debug(f"[RefinementEngine] No corrector for {issue.kind.value}, skipping {issue.code}")
                continue
            changed = False
            for corrector in correctors:
                updated = corrector.apply(text, issue)
                if updated != text:
                    applied += 1
                    changed = True
                text = updated
            if issue.severity is Severity.HIGH and not changed and issue.code not in unaddressed:
                unaddressed.append(issue.code)

        if unaddressed:
            raise RefinementError(
                f"no corrector changed the content for high-severity issue(s): {', '.join(unaddressed)}"
            )

        logger.info(
            f"[RefinementEngine] Revision {candidate.revision} -> {candidate.revision + 1}: "
            f"{applied} corrections from {len(ordered)} issues"
        )
        return candidate.next_revision(text)
