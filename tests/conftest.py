"""Test fixtures -- settings, requirements, sample articles."""

import pytest

from content_quality.analyzers.models import Requirements
from content_quality.config import PipelineSettings


@pytest.fixture
def settings():
    return PipelineSettings()


@pytest.fixture
def requirements():
    return Requirements(
        target_audience="developers",
        tone="professional",
        keywords=("caching",),
    )


@pytest.fixture
def requirements_dict():
    return {"targetAudience": "developers", "tone": "professional", "keywords": ["caching"]}


@pytest.fixture
def strong_article():
    """Well sourced, first-person, keyword-rich article for developers."""
    return (
        "# Caching for Web APIs\n\n"
        "Caching is the fastest way for developers to cut API latency. "
        "In this guide you will learn how caching works and when to use it.\n\n"
        "In my experience running production services for 10 years, I found that "
        "a response cache reduced median latency by 45% [1]. According to research "
        "published by Mozilla, cache headers are respected by every major browser [2].\n\n"
        "Our team tested three caching strategies. We measured hit rates, memory use "
        "and staleness for each one. The results showed that short expiry times work "
        "best for data that changes often.\n\n"
        "## References\n\n"
        "[1]: https://developer.mozilla.org/en-US/docs/Web/HTTP/Caching\n"
        "[2]: https://www.rfc-editor.org/rfc/rfc9111\n"
    )


@pytest.fixture
def weak_article():
    """Formulaic draft with mechanical errors and a dangling citation."""
    return (
        "In today's fast-paced world, it's important to note that speed matters. "
        "this is a game-changer [citation needed]. Teh results are clear [3].\n\n"
        "Furthermore, it is a game-changer. Furthermore, it is fast. Furthermore, it is cheap."
    )
