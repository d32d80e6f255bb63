"""Text helpers shared by the analyzers: sentences, words, paragraphs, links."""

import re
from dataclasses import dataclass

ABBREVIATIONS = (
    "Mr.", "Mrs.", "Ms.", "Dr.", "Prof.", "Sr.", "Jr.", "St.",
    "vs.", "etc.", "i.e.", "e.g.", "a.m.", "p.m.", "U.S.",
    "U.K.", "Fig.", "No.", "Vol.", "et al.",
)

HEADING_PATTERN = re.compile(r"^\s{0,3}#{1,6}\s+.*$", re.MULTILINE)
HTML_HEADING_PATTERN = re.compile(r"<h[1-6][^>]*>.*?</h[1-6]>", re.IGNORECASE | re.DOTALL)
CODE_FENCE_PATTERN = re.compile(r"```.*?(?:```|\Z)", re.DOTALL)
MARKDOWN_LINK_PATTERN = re.compile(r"(?<!!)\[([^\]\n]*)\]\(([^)\s]*)\)")
HTML_LINK_PATTERN = re.compile(
    r"<a\s[^>]*href=[\"']([^\"']*)[\"'][^>]*>(.*?)</a>", re.IGNORECASE | re.DOTALL
)
BARE_URL_PATTERN = re.compile(r"(?<![(\"'=\[])\bhttps?://[^\s<>()\"'\]]+", re.IGNORECASE)
WORD_PATTERN = re.compile(r"[A-Za-z][A-Za-z'-]*")
BLOCK_START_PATTERN = re.compile(r"^(?:#{1,6}\s|[-*+]\s|\d+\.\s|>)")


@dataclass(frozen=True)
class Link:
    """A link found in the content."""

    text: str
    url: str
    start: int
    end: int
    markup: str


def split_sentences(text: str) -> list[str]:
    """Split text into sentences using regex heuristics.

    Protects common abbreviations so "Dr. Smith" stays in one sentence.
    Headings and list markers end a sentence like a full stop does.
    """
    protected = text
    placeholders: dict[str, str] = {}
    for i, abbr in enumerate(ABBREVIATIONS):
        ph = f"__ABBR{i}__"
        placeholders[ph] = abbr
        protected = protected.replace(abbr, ph)

    blocks: list[str] = []
    current: list[str] = []
    for line in protected.split("\n"):
        stripped = line.strip()
        if BLOCK_START_PATTERN.match(stripped):
            if current:
                blocks.append(" ".join(current))
                current = []
            blocks.append(stripped)
        elif stripped:
            current.append(stripped)
        elif current:
            blocks.append(" ".join(current))
            current = []
    if current:
        blocks.append(" ".join(current))

    sentences = []
    for block in blocks:
        for raw in re.split(r"(?<=[.!?])\s+", block):
            for ph, abbr in placeholders.items():
                raw = raw.replace(ph, abbr)
            raw = " ".join(raw.split())
            if raw:
                sentences.append(raw)
    return sentences


def split_words(text: str) -> list[str]:
    """Split text into words, stripping punctuation."""
    return WORD_PATTERN.findall(text)


def split_paragraphs(text: str) -> list[str]:
    """Split text into paragraphs (non-empty lines separated by blank lines)."""
    paragraphs = []
    current: list[str] = []

    for line in text.split("\n"):
        stripped = line.strip()
        if stripped:
            current.append(stripped)
        elif current:
            paragraphs.append(" ".join(current))
            current = []

    if current:
        paragraphs.append(" ".join(current))
    return paragraphs


def body_paragraphs(text: str) -> list[str]:
    """Paragraphs that are not headings."""
    return [p for p in split_paragraphs(strip_code(text)) if not p.lstrip().startswith("#")]


def strip_code(text: str) -> str:
    """Remove fenced code blocks."""
    return CODE_FENCE_PATTERN.sub("", text)


def word_count(text: str) -> int:
    return len(split_words(text))


def contains_phrase(text: str, phrase: str) -> bool:
    """Case-insensitive whole-word phrase match."""
    return re.search(rf"(?<!\w){re.escape(phrase)}(?!\w)", text, re.IGNORECASE) is not None


def count_phrase(text: str, phrase: str) -> int:
    return len(re.findall(rf"(?<!\w){re.escape(phrase)}(?!\w)", text, re.IGNORECASE))


def find_links(text: str) -> list[Link]:
    """Find Markdown links, HTML anchors and bare URLs, in document order."""
    links = []
    taken: list[tuple[int, int]] = []

    for match in MARKDOWN_LINK_PATTERN.finditer(text):
        links.append(Link(match.group(1), match.group(2), match.start(), match.end(), match.group(0)))
        taken.append((match.start(), match.end()))

    for match in HTML_LINK_PATTERN.finditer(text):
        links.append(Link(match.group(2), match.group(1), match.start(), match.end(), match.group(0)))
        taken.append((match.start(), match.end()))

    for match in BARE_URL_PATTERN.finditer(text):
        if any(start <= match.start() < end for start, end in taken):
            continue
        url = match.group(0).rstrip(".,;:!?")
        links.append(Link(url, url, match.start(), match.start() + len(url), url))

    return sorted(links, key=lambda link: link.start)


def heading_spans(text: str) -> list[tuple[int, int]]:
    """Character spans of Markdown and HTML headings."""
    spans = [(m.start(), m.end()) for m in HEADING_PATTERN.finditer(text)]
    spans.extend((m.start(), m.end()) for m in HTML_HEADING_PATTERN.finditer(text))
    return spans


def code_spans(text: str) -> list[tuple[int, int]]:
    return [(m.start(), m.end()) for m in CODE_FENCE_PATTERN.finditer(text)]


def in_spans(position: int, spans: list[tuple[int, int]]) -> bool:
    return any(start <= position < end for start, end in spans)


REFERENCE_HEADING_PATTERN = re.compile(
    r"^\s{0,3}#{1,6}\s*(?:references|sources|bibliography|citations|further reading)\b",
    re.IGNORECASE,
)
_PROSE_EXCLUDED_STARTS = ("#", "```", ">", "-", "*", "+", "|", "<", "[")


def _is_prose_block(block: str) -> bool:
    stripped = block.strip()
    if not stripped or stripped.startswith(_PROSE_EXCLUDED_STARTS):
        return False
    return re.match(r"\d+\.\s", stripped) is None


def append_to_paragraph(content: str, sentence: str, which: str = "first") -> str:
    """Append a sentence to the first or last prose paragraph.

    Headings, lists, quotes, code blocks and anything after a references
    heading are skipped. Falls back to a new trailing paragraph.
    """
    pieces = re.split(r"(\n[ \t]*\n)", content)
    candidates = []
    in_code = False
    for index in range(0, len(pieces), 2):
        block = pieces[index]
        if REFERENCE_HEADING_PATTERN.match(block.strip()):
            break
        if not in_code and _is_prose_block(block):
            candidates.append(index)
        if block.count("```") % 2 == 1:
            in_code = not in_code

    if not candidates:
        return f"{content.rstrip()}\n\n{sentence}"

    target = candidates[0] if which == "first" else candidates[-1]
    pieces[target] = f"{pieces[target].rstrip()} {sentence}"
    return "".join(pieces)
