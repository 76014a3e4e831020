"""Briefing and outlining: derive the topic, PAA questions, target entities and
a planned outline from the request, without any external SERP lookup."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from urllib.parse import unquote, urlparse

_STOPWORDS = {
    "a", "an", "and", "are", "as", "at", "be", "best", "by", "for", "from", "guide",
    "how", "in", "into", "is", "it", "of", "on", "or", "our", "the", "this", "to",
    "top", "vs", "what", "when", "why", "with", "your", "you",
}

_SLUG_NOISE = re.compile(r"\.(html?|php|aspx?)$|^\d+$", re.I)


@dataclass
class ContentBrief:
    topic: str
    target_keyword: str
    paa_questions: list[str] = field(default_factory=list)
    target_entities: list[str] = field(default_factory=list)
    outline: list[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "topic": self.topic,
            "target_keyword": self.target_keyword,
            "paa_questions": list(self.paa_questions),
            "target_entities": list(self.target_entities),
            "outline": list(self.outline),
        }


def topic_from_url(url: str) -> str:
    """Human-readable topic from the last meaningful URL path segment.

    >>> topic_from_url("https://example.com/blog/best-running-shoes-2024/")
    'Best Running Shoes 2024'
    """
    parsed = urlparse(url)
    segments = [s for s in parsed.path.split("/") if s]
    for segment in reversed(segments):
        segment = _SLUG_NOISE.sub("", unquote(segment))
        words = [w for w in re.split(r"[-_+\s]+", segment) if w]
        if words:
            return " ".join(w.capitalize() for w in words)
    host = parsed.netloc.removeprefix("www.")
    return host.split(".")[0].capitalize() if host else "Content"


def _keyword(topic: str) -> str:
    return " ".join(topic.lower().split())


def extract_entities(topic: str, limit: int = 8) -> list[str]:
    """The full keyword phrase followed by its significant single words."""
    keyword = _keyword(topic)
    entities = [keyword] if keyword else []
    for word in re.findall(r"[a-z0-9][a-z0-9'-]*", keyword):
        if len(word) > 3 and word not in _STOPWORDS and word not in entities:
            entities.append(word)
    return entities[:limit]


def paa_questions(topic: str) -> list[str]:
    kw = _keyword(topic)
    return [
        f"What is {kw}?",
        f"How does {kw} work?",
        f"Why is {kw} important?",
        f"What are the benefits of {kw}?",
        f"How do I get started with {kw}?",
    ]


def plan_outline(topic: str) -> list[str]:
    return [
        f"What Is {topic}?",
        f"Why {topic} Matters",
        "How to Get Started",
        "Best Practices and Examples",
        "Common Mistakes to Avoid",
        "Frequently Asked Questions",
    ]


def build_brief(url: str, post_title: str | None = None) -> ContentBrief:
    topic = (post_title or "").strip() or topic_from_url(url)
    return ContentBrief(
        topic=topic,
        target_keyword=_keyword(topic),
        paa_questions=paa_questions(topic),
        target_entities=extract_entities(topic),
    )
