"""
LinkPlacer -- are links placed where readers (and crawlers) expect them?

Checks:
  - Links inside headings or code blocks
  - More than MAX_LINKS_PER_PARAGRAPH links in one paragraph
  - Links crowded closer than MIN_LINK_DISTANCE characters
  - Generic anchors ("click here", "read more")
  - Over-linking (more than MAX_LINKS_PER_100_WORDS)
  - Keywords that are discussed but never linked

All issues are advisory: severity is capped at medium, so link placement
never blocks approval through the high-severity count.

place_links() inserts links on keyword matches, choosing the most natural
spot outside headings, code and quotes.
"""

import logging
import re
from dataclasses import dataclass, field
from urllib.parse import urlparse

from ..errors import ValidationError
from ..security.validators import validate_url
from .models import AnalyzerResult, Issue, IssueKind, Requirements, Severity, clamp_score
from .text import (
    Link,
    code_spans,
    contains_phrase,
    find_links,
    heading_spans,
    in_spans,
    strip_code,
    word_count,
)

logger = logging.getLogger(__name__)

MAX_LINKS_PER_PARAGRAPH = 2
MIN_LINK_DISTANCE = 100
MAX_LINKS_PER_100_WORDS = 3.0
MIN_WORDS_FOR_KEYWORD_LINKS = 150

GENERIC_ANCHORS = {
    "click here", "here", "read more", "learn more", "more", "this",
    "this link", "link", "this page", "this article", "see more",
}

PENALTY = {Severity.MEDIUM: 10.0, Severity.LOW: 4.0}

PARAGRAPH_PATTERN = re.compile(r"[^\n]*\S[^\n]*(?:\n[^\n]*\S[^\n]*)*")


@dataclass(frozen=True)
class LinkSuggestion:
    """A link to place: anchor on the first natural match of keyword."""

    keyword: str
    url: str


@dataclass
class LinkPlacementResult:
    content: str
    placed: int = 0
    skipped: int = 0
    positions: list[int] = field(default_factory=list)


def _advisory(severity: Severity) -> Severity:
    return Severity.MEDIUM if severity is Severity.HIGH else severity


def _paragraph_spans(content: str) -> list[tuple[int, int]]:
    return [(m.start(), m.end()) for m in PARAGRAPH_PATTERN.finditer(content)]


def _in_quote(content: str, position: int) -> bool:
    line_start = content.rfind("\n", 0, position) + 1
    return content[line_start:position].lstrip().startswith(">")


def _anchor_from_url(url: str) -> str:
    parsed = urlparse(url)
    segment = parsed.path.rstrip("/").rsplit("/", 1)[-1]
    segment = re.sub(r"\.\w+$", "", segment)
    words = re.sub(r"[-_]+", " ", segment).strip()
    if words:
        return words
    return (parsed.hostname or url).removeprefix("www.")


def _sentence_position(content: str, position: int, length: int) -> str:
    start = max(content.rfind(p, 0, position) for p in (".", "!", "?", "\n")) + 1
    ends = [i for i in (content.find(p, position + length) for p in (".", "!", "?", "\n")) if i != -1]
    end = min(ends) if ends else len(content)
    before = len(content[start:position].split())
    total = before + 1 + len(content[position + length:end].split())
    if before < total * 0.3:
        return "beginning"
    if before > total * 0.7:
        return "end"
    return "middle"


def _relevance(content: str, position: int, keyword: str) -> float:
    score = 30.0
    context = content[max(0, position - 100):position + len(keyword) + 100].lower()
    score -= 3 * max(0, context.count(keyword.lower()) - 1)
    placement = _sentence_position(content, position, len(keyword))
    score += {"middle": 15.0, "beginning": 10.0, "end": 5.0}[placement]
    return score


class LinkPlacer:
    """Checks link placement; also places new links contextually.

    Usage:
        placer = LinkPlacer()
        result = await placer.analyze(text, requirements)
        placed = placer.place_links(text, [LinkSuggestion("caching", "https://example.com/caching")])
    """

    name = "links"

    async def analyze(self, content: str, requirements: Requirements) -> AnalyzerResult:
        issues: list[Issue] = []
        links = find_links(content)
        headings = heading_spans(content)
        code = code_spans(content)

        def add(code_name: str, message: str, severity: Severity, location: str, suggestion: str):
            issues.append(Issue(
                kind=IssueKind.LINK_PLACEMENT,
                message=message,
                severity=_advisory(severity),
                code=code_name,
                location=location,
                suggestion=suggestion,
            ))

        prose_links: list[Link] = []
        for link in links:
            if in_spans(link.start, code):
                add("links.in_code_block", f"Link to {link.url} sits inside a code block",
                    Severity.LOW, link.markup, "Move the link out of the code block")
            elif in_spans(link.start, headings):
                add("links.in_heading", f"Link \"{link.text}\" is placed in a heading",
                    Severity.MEDIUM, link.markup, "Move the link into the body text")
            else:
                prose_links.append(link)

        for link in prose_links:
            if link.text.strip().lower() in GENERIC_ANCHORS:
                add("links.generic_anchor", f"Generic anchor text \"{link.text.strip()}\"",
                    Severity.MEDIUM, link.markup, "Use descriptive anchor text")

        for start, end in _paragraph_spans(content):
            inside = [l for l in prose_links if start <= l.start < end]
            if len(inside) > MAX_LINKS_PER_PARAGRAPH:
                add("links.paragraph_overloaded",
                    f"Paragraph has {len(inside)} links (max {MAX_LINKS_PER_PARAGRAPH})",
                    Severity.MEDIUM, content[start:end][:60], "Spread links across paragraphs")

        for previous, current in zip(prose_links, prose_links[1:]):
            if current.start - previous.end < MIN_LINK_DISTANCE:
                add("links.crowded", f"Link \"{current.text}\" is crowded against the previous link",
                    Severity.LOW, current.markup, f"Keep links at least {MIN_LINK_DISTANCE} characters apart")

        words = word_count(strip_code(content))
        density = len(prose_links) / words * 100 if words else 0.0
        if density > MAX_LINKS_PER_100_WORDS:
            add("links.over_linked", f"{density:.1f} links per 100 words",
                Severity.MEDIUM, "", f"Keep link density under {MAX_LINKS_PER_100_WORDS:.0f} per 100 words")

        if words >= MIN_WORDS_FOR_KEYWORD_LINKS:
            anchors = " ".join(l.text for l in prose_links)
            for keyword in requirements.keywords:
                if contains_phrase(strip_code(content), keyword) and not contains_phrase(anchors, keyword):
                    add("links.keyword_unlinked", f"Keyword \"{keyword}\" is never used as link anchor",
                        Severity.LOW, keyword, "Link the keyword to a relevant resource")

        score = clamp_score(100.0 - sum(PENALTY[i.severity] for i in issues))
        recommendations = sorted({i.suggestion for i in issues})

        logger.debug(f"[LinkPlacer] {len(links)} links, {len(issues)} placement issues")

        return AnalyzerResult(
            stage_name=self.name,
            score=score,
            issues=tuple(issues),
            recommendations=tuple(recommendations),
            details={"link_count": len(links), "links_per_100_words": round(density, 2)},
        )

    def place_links(
        self,
        content: str,
        suggestions: list[LinkSuggestion],
        max_links_per_paragraph: int = MAX_LINKS_PER_PARAGRAPH,
        min_distance: int = MIN_LINK_DISTANCE,
    ) -> LinkPlacementResult:
        """Insert Markdown links for each suggestion at its best keyword match.

        Suggestions with unsafe URLs or no eligible match are skipped.
        """
        result = LinkPlacementResult(content=content)
        for suggestion in suggestions:
            try:
                url = validate_url(suggestion.url, field_name="link")
            except ValidationError as e:
                logger.debug(f"[LinkPlacer] Skipping {suggestion.keyword}: {e}")
                result.skipped += 1
                continue

            position, matched = self._best_match(
                result.content, suggestion.keyword, max_links_per_paragraph, min_distance
            )
            if position is None:
                result.skipped += 1
                continue

            markup = f"[{matched}]({url})"
            result.content = result.content[:position] + markup + result.content[position + len(matched):]
            result.placed += 1
            result.positions.append(position)
        return result

    def _best_match(
        self, content: str, keyword: str, max_per_paragraph: int, min_distance: int
    ) -> tuple[int | None, str]:
        existing = find_links(content)
        headings = heading_spans(content)
        code = code_spans(content)
        paragraphs = _paragraph_spans(content)

        best: tuple[float, int, str] | None = None
        pattern = re.compile(rf"(?<!\w){re.escape(keyword)}(?!\w)", re.IGNORECASE)
        for match in pattern.finditer(content):
            position = match.start()
            if in_spans(position, headings) or in_spans(position, code) or _in_quote(content, position):
                continue
            if any(l.start <= position < l.end for l in existing):
                continue
            if any(abs(position - l.start) < min_distance or abs(position - l.end) < min_distance for l in existing):
                continue
            paragraph = next(((s, e) for s, e in paragraphs if s <= position < e), None)
            if paragraph and sum(1 for l in existing if paragraph[0] <= l.start < paragraph[1]) >= max_per_paragraph:
                continue
            score = _relevance(content, position, keyword)
            if best is None or score > best[0]:
                best = (score, position, match.group(0))

        if best is None:
            return None, ""
        return best[1], best[2]


def place_links(content: str, suggestions: list[LinkSuggestion]) -> LinkPlacementResult:
    return LinkPlacer().place_links(content, suggestions)


class LinkCorrector:
    """Repairs link placement: unwraps heading links and extra links, rewrites generic anchors."""

    kinds = frozenset({IssueKind.LINK_PLACEMENT})

    def apply(self, content: str, issue: Issue) -> str:
        if issue.code in ("links.in_heading", "links.crowded"):
            return self._unwrap(content, issue.location)
        if issue.code == "links.generic_anchor":
            return self._describe_anchor(content, issue.location)
        if issue.code == "links.paragraph_overloaded":
            return self._trim_paragraphs(content)
        return content

    def _unwrap(self, content: str, markup: str) -> str:
        for link in find_links(content):
            if link.markup == markup and link.markup != link.url:
                return content[:link.start] + link.text + content[link.end:]
        return content

    def _describe_anchor(self, content: str, markup: str) -> str:
        for link in find_links(content):
            if link.markup != markup or link.markup == link.url:
                continue
            anchor = _anchor_from_url(link.url)
            replacement = link.markup.replace(f">{link.text}<", f">{anchor}<", 1) \
                if link.markup.startswith("<") else f"[{anchor}]({link.url})"
            return content[:link.start] + replacement + content[link.end:]
        return content

    def _trim_paragraphs(self, content: str) -> str:
        headings = heading_spans(content)
        code = code_spans(content)
        links = [
            l for l in find_links(content)
            if l.markup != l.url and not in_spans(l.start, headings) and not in_spans(l.start, code)
        ]
        extra = []
        for start, end in _paragraph_spans(content):
            inside = [l for l in links if start <= l.start < end]
            extra.extend(inside[MAX_LINKS_PER_PARAGRAPH:])
        for link in sorted(extra, key=lambda l: l.start, reverse=True):
            content = content[:link.start] + link.text + content[link.end:]
        return content
