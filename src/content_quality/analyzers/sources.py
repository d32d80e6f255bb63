"""
SourceValidator -- are the cited sources real, safe and authoritative?

Checks, per URL found in the content (Markdown links, HTML anchors, bare URLs):
  - Safety: non-http schemes and private/internal hosts are rejected
  - Authority: trusted-domain table, authority TLDs, low-trust hosts,
    HTTPS, peer review, editorial process
  - Reachability: optional, through a pluggable SourceChecker

And across the document:
  - Numbered citation markers ("[3]") must have a reference entry ("[3]: ...")

Ships with no network access by default. HttpSourceChecker does HEAD
requests with httpx when source checks are enabled in settings.
"""

import asyncio
import logging
import re
from dataclasses import dataclass, field
from typing import Protocol, runtime_checkable
from urllib.parse import urlparse

import httpx

from ..errors import ValidationError
from ..security.validators import validate_url
from .models import AnalyzerResult, Issue, IssueKind, Requirements, Severity, clamp_score
from .text import code_spans, find_links, in_spans

logger = logging.getLogger(__name__)

AUTHORITY_TLDS = {
    ".gov": (95, "government"),
    ".mil": (95, "government"),
    ".edu": (90, "educational"),
    ".ac.uk": (90, "educational"),
    ".int": (85, "organization"),
    ".org": (75, "organization"),
}

TRUSTED_SOURCES = {
    # Academic and research
    "harvard.edu": 95, "stanford.edu": 95, "mit.edu": 95, "oxford.ac.uk": 95,
    "cambridge.org": 95, "nature.com": 90, "science.org": 90, "sciencedirect.com": 85,
    "springer.com": 85, "wiley.com": 85, "pubmed.ncbi.nlm.nih.gov": 95,
    "scholar.google.com": 85,
    # News and media
    "reuters.com": 85, "apnews.com": 85, "bbc.com": 85, "npr.org": 85,
    "wsj.com": 80, "nytimes.com": 80, "ft.com": 80, "economist.com": 80,
    # Government and NGO
    "who.int": 95, "cdc.gov": 95, "nih.gov": 95, "fda.gov": 95,
    "europa.eu": 90, "un.org": 90, "worldbank.org": 90,
    # Professional organizations
    "ieee.org": 90, "acm.org": 90, "ama-assn.org": 90, "apa.org": 90,
    # Reference
    "britannica.com": 85, "wikipedia.org": 75, "statista.com": 80, "pewresearch.org": 85,
}

LOW_TRUST_HOSTS = [
    "blogspot.com", "wordpress.com", "medium.com", "tumblr.com",
    "wix.com", "weebly.com", "free.fr", "tripod.com",
]

PEER_REVIEW_DOMAINS = [
    "nature.com", "science.org", "sciencedirect.com", "springer.com", "wiley.com",
    "pubmed", "arxiv.org", "plos.org", "frontiersin.org", "mdpi.com",
]

EDITORIAL_DOMAINS = [
    "reuters.com", "apnews.com", "bbc.com", "npr.org", "wsj.com", "nytimes.com",
    "ft.com", "economist.com", "britannica.com", "harvard.edu", "stanford.edu",
]

MIN_AUTHORITY = 50
BASE_AUTHORITY = 30
REFERENCES_ONLY_SCORE = 60.0
NO_SOURCES_SCORE = 50.0

PENALTIES = {
    "sources.dangling_marker": 15.0,
    "sources.unsafe_url": 20.0,
    "sources.unreachable": 15.0,
}

CITATION_MARKER_PATTERN = re.compile(r"\[(\d{1,3})\](?![(:])")
REFERENCE_ENTRY_PATTERN = re.compile(r"^[ \t]*\[(\d{1,3})\]:?[ \t]+\S", re.MULTILINE)
URL_TERMINATOR = r"(?=[\s)\]\"'<>]|$)"


@dataclass
class SourceAssessment:
    """Authority assessment of one cited URL."""

    url: str
    domain: str
    domain_type: str
    authority: int
    is_https: bool
    category: str
    warnings: list[str] = field(default_factory=list)

    @property
    def valid(self) -> bool:
        return self.authority >= MIN_AUTHORITY


def _domain_of(url: str) -> str:
    host = (urlparse(url).hostname or "").lower()
    return host.removeprefix("www.")


def _domain_type(domain: str) -> str:
    if domain.endswith((".gov", ".mil")):
        return "government"
    if domain.endswith((".edu", ".ac.uk")) or ".edu." in domain:
        return "educational"
    if domain.endswith((".org", ".int")):
        return "organization"
    if domain.endswith((".com", ".net", ".biz")):
        return "commercial"
    return "unknown"


def _category(domain: str) -> str:
    if any(d in domain for d in PEER_REVIEW_DOMAINS):
        return "academic"
    if domain.endswith((".gov", ".mil")):
        return "government"
    if domain.endswith(".edu"):
        return "educational"
    if any(d in domain for d in EDITORIAL_DOMAINS):
        return "news"
    if domain.endswith(".org"):
        return "organization"
    if "wikipedia" in domain:
        return "reference"
    return "general"


def _matches_domain(domain: str, known: str) -> bool:
    return domain == known or domain.endswith("." + known)


def assess_source(url: str) -> SourceAssessment:
    """Score a URL's authority (0-100). Known trusted domains use their table score."""
    domain = _domain_of(url)
    is_https = url.lower().startswith("https://")
    warnings = []

    trusted = next((score for known, score in TRUSTED_SOURCES.items() if _matches_domain(domain, known)), None)
    if trusted is not None:
        authority = trusted
    else:
        authority = BASE_AUTHORITY
        for tld, (tld_score, _) in AUTHORITY_TLDS.items():
            if domain.endswith(tld):
                authority = tld_score
                break
        if not is_https:
            authority -= 10
        if any(d in domain for d in PEER_REVIEW_DOMAINS):
            authority += 15
        if any(d in domain for d in EDITORIAL_DOMAINS):
            authority += 10
        if not any(domain.endswith(tld) for tld in AUTHORITY_TLDS):
            warnings.append("Unknown source - additional verification recommended")

    if any(host in domain for host in LOW_TRUST_HOSTS):
        authority = min(authority, 40)
        warnings.append("Free hosting platform with limited editorial oversight")
    if not is_https:
        warnings.append("Source uses insecure HTTP connection")

    return SourceAssessment(
        url=url,
        domain=domain,
        domain_type=_domain_type(domain),
        authority=max(0, min(100, authority)),
        is_https=is_https,
        category=_category(domain),
        warnings=warnings,
    )


def source_quality(assessments: list[SourceAssessment]) -> float:
    """Valid-ratio, average authority and diversity, as one 0-100 number."""
    valid = [a for a in assessments if a.valid]
    if not valid:
        return 0.0
    ratio = len(valid) / len(assessments)
    average = sum(a.authority for a in valid) / len(valid)
    diversity = (
        min(len({a.category for a in valid}) * 3, 12)
        + min(len({a.domain_type for a in valid}) * 2, 8)
    )
    return ratio * 40 + average * 0.5 + diversity


@runtime_checkable
class SourceChecker(Protocol):
    """Reachability check for a cited URL.

    Projects can plug in their own (cached, allow-listed, ...) checker.
    """

    async def is_reachable(self, url: str) -> bool: ...


class NullSourceChecker:
    """Accepts every URL without touching the network."""

    async def is_reachable(self, url: str) -> bool:
        return True


class HttpSourceChecker:
    """Checks reachability with an HTTP HEAD (GET when HEAD is not allowed).

    Usage:
        checker = HttpSourceChecker(timeout=5.0)
        validator = SourceValidator(checker=checker)
    """

    def __init__(self, timeout: float = 5.0, transport: httpx.AsyncBaseTransport | None = None):
        self._timeout = timeout
        self._transport = transport

    async def is_reachable(self, url: str) -> bool:
        try:
            async with httpx.AsyncClient(
                timeout=self._timeout,
                follow_redirects=True,
                transport=self._transport,
            ) as client:
                response = await client.head(url)
                if response.status_code == 405:
                    response = await client.get(url)
                return response.status_code < 400
        except httpx.TimeoutException:
            logger.warning(f"[HttpSourceChecker] Timeout checking {url}")
            return False
        except httpx.HTTPError as e:
            logger.warning(f"[HttpSourceChecker] Request failed for {url}: {e}")
            return False


def find_citation_markers(content: str) -> list[tuple[str, int]]:
    """Inline numbered markers as (number, position). Reference entries are excluded."""
    spans = code_spans(content)
    markers = []
    for match in CITATION_MARKER_PATTERN.finditer(content):
        line_start = content.rfind("\n", 0, match.start()) + 1
        if not content[line_start:match.start()].strip():
            continue
        if in_spans(match.start(), spans):
            continue
        markers.append((match.group(1), match.start()))
    return markers


def find_reference_numbers(content: str) -> set[str]:
    return {m.group(1) for m in REFERENCE_ENTRY_PATTERN.finditer(content)}


class SourceValidator:
    """Validates cited sources and citation markers.

    Usage:
        validator = SourceValidator()
        result = await validator.analyze(text, requirements)
    """

    name = "sources"

    def __init__(self, checker: SourceChecker | None = None):
        self._checker = checker

    async def _unreachable(self, urls: list[str]) -> set[str]:
        if self._checker is None or not urls:
            return set()
        results = await asyncio.gather(*(self._checker.is_reachable(u) for u in urls))
        return {url for url, ok in zip(urls, results) if not ok}

    async def analyze(self, content: str, requirements: Requirements) -> AnalyzerResult:
        issues: list[Issue] = []
        recommendations: list[str] = []
        spans = code_spans(content)

        urls = []
        for link in find_links(content):
            if in_spans(link.start, spans) or not link.url or link.url.startswith("#"):
                continue
            if link.url not in urls:
                urls.append(link.url)

        safe_urls = []
        for url in urls:
            try:
                validate_url(url, field_name="source")
            except ValidationError as e:
                issues.append(Issue(
                    kind=IssueKind.CITATION,
                    message=f"Unsafe or invalid source URL: {e}",
                    severity=Severity.HIGH,
                    code="sources.unsafe_url",
                    location=url,
                    suggestion="Replace with a public http(s) source or remove the link",
                ))
                continue
            safe_urls.append(url)

        assessments = [assess_source(url) for url in safe_urls]
        for assessment in assessments:
            if not assessment.is_https:
                issues.append(Issue(
                    kind=IssueKind.CITATION,
                    message=f"Source {assessment.domain} uses insecure HTTP",
                    severity=Severity.MEDIUM,
                    code="sources.insecure_http",
                    location=assessment.url,
                    suggestion="Link the https:// version of the source",
                ))
            if not assessment.valid:
                issues.append(Issue(
                    kind=IssueKind.CITATION,
                    message=f"Low-authority source {assessment.domain} (authority {assessment.authority})",
                    severity=Severity.MEDIUM,
                    code="sources.low_authority",
                    location=assessment.url,
                    suggestion="Prefer government, academic or established editorial sources",
                ))

        for url in sorted(await self._unreachable(safe_urls)):
            issues.append(Issue(
                kind=IssueKind.CITATION,
                message=f"Source could not be reached: {url}",
                severity=Severity.HIGH,
                code="sources.unreachable",
                location=url,
                suggestion="Fix the URL or cite a source that is online",
            ))

        references = find_reference_numbers(content)
        dangling = []
        for number, _ in find_citation_markers(content):
            if number not in references and number not in dangling:
                dangling.append(number)
        for number in dangling:
            issues.append(Issue(
                kind=IssueKind.CITATION,
                message=f"Citation marker [{number}] has no matching reference entry",
                severity=Severity.HIGH,
                code="sources.dangling_marker",
                location=f"[{number}]",
                suggestion=f"Add a \"[{number}]: <source>\" reference entry or remove the marker",
            ))

        if not urls and not references:
            base = NO_SOURCES_SCORE
            issues.append(Issue(
                kind=IssueKind.CITATION,
                message="Content cites no sources",
                severity=Severity.MEDIUM,
                code="sources.no_sources",
                suggestion="Support key claims with authoritative sources",
            ))
        elif not urls:
            base = REFERENCES_ONLY_SCORE
        else:
            base = source_quality(assessments) if assessments else 0.0

        penalty = sum(PENALTIES.get(issue.code, 0.0) for issue in issues)
        score = clamp_score(base - penalty)

        valid = [a for a in assessments if a.valid]
        if len(valid) < 3:
            recommendations.append("Add more high-authority sources to strengthen credibility")
        if not any(a.category == "academic" for a in valid):
            recommendations.append("Include peer-reviewed academic sources for stronger authority")
        if len(assessments) - len(valid) > len(valid):
            recommendations.append("Replace low-authority sources with more credible alternatives")

        logger.debug(
            f"[SourceValidator] {len(urls)} URLs, {len(valid)} authoritative, "
            f"{len(dangling)} dangling markers, score={score}"
        )

        return AnalyzerResult(
            stage_name=self.name,
            score=score,
            issues=tuple(issues),
            recommendations=tuple(recommendations),
            details={
                "sources": [
                    {"url": a.url, "domain": a.domain, "authority": a.authority, "category": a.category}
                    for a in assessments
                ],
            },
        )


class SourceCorrector:
    """Removes dangling markers and unsafe or dead links, upgrades http to https."""

    kinds = frozenset({IssueKind.CITATION})

    def apply(self, content: str, issue: Issue) -> str:
        if issue.code == "sources.dangling_marker":
            number = issue.location.strip("[]")
            pattern = re.compile(rf"[ \t]*\[{re.escape(number)}\](?![(:])")

            def _drop(match: re.Match) -> str:
                line_start = content.rfind("\n", 0, match.start()) + 1
                if not content[line_start:match.start()].strip():
                    return match.group(0)
                return ""

            return pattern.sub(_drop, content)

        if issue.code in ("sources.unsafe_url", "sources.unreachable"):
            return self._remove_url(content, issue.location)

        if issue.code == "sources.insecure_http" and issue.location.lower().startswith("http://"):
            secure = "https://" + issue.location[len("http://"):]
            return re.sub(re.escape(issue.location) + URL_TERMINATOR, secure, content)

        return content

    def _remove_url(self, content: str, url: str) -> str:
        for link in reversed(find_links(content)):
            if link.url != url:
                continue
            if link.markup == link.url:
                start = link.start
                while start > 0 and content[start - 1] in " \t":
                    start -= 1
                content = content[:start] + content[link.end:]
            else:
                content = content[:link.start] + link.text + content[link.end:]
        return content
