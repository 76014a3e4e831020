"""Prompt construction, reply parsing and normalization into ``ContentResult``."""

from __future__ import annotations

import json
import re
from pathlib import Path
from typing import Any

from jinja2 import Environment, FileSystemLoader

from perfector.errors import ProviderError
from perfector.jobs.models import ContentResult, ContentSection, utcnow
from perfector.quality.scorer import count_words, strip_html

DEFAULT_AUTHOR = "AI Content Expert"

PROMPTS_DIR = Path(__file__).resolve().parent.parent.parent / "prompts"


def build_generation_prompt(topic: str, min_words: int = 1500, max_words: int = 2500) -> str:
    env = Environment(loader=FileSystemLoader(str(PROMPTS_DIR)))
    template = env.get_template("generate_article.j2")
    return template.render(topic=topic, min_words=min_words, max_words=max_words)


def extract_json(text: str) -> dict[str, Any]:
    """Parse the first JSON object in a model reply (code fences tolerated)."""
    raw = (text or "").strip()
    if not raw:
        raise ProviderError("Empty response from AI provider")
    if raw.startswith("```"):
        raw = re.sub(r"^```\w*\n?", "", raw)
        raw = re.sub(r"\n?```\s*$", "", raw)
    match = re.search(r"\{[\s\S]*\}", raw)
    if match:
        raw = match.group(0)
    try:
        data = json.loads(raw)
    except json.JSONDecodeError as e:
        raise ProviderError(f"Failed to parse AI response as JSON: {e}") from e
    if not isinstance(data, dict):
        raise ProviderError("AI response JSON is not an object")
    return data


def _str_list(value: Any) -> list[str]:
    if not isinstance(value, list):
        return []
    return [str(v) for v in value if v]


def seo_heuristic(content: str, headings: list[str], meta_description: str, word_count: int) -> int:
    """Fast structural SEO signal; not a full quality pass."""
    score = 55
    if headings or re.search(r"<h2\b", content, re.I):
        score += 10
    if len(headings) >= 3:
        score += 10
    if re.search(r"<(ul|ol)\b", content, re.I):
        score += 5
    if 120 <= len(meta_description) <= 160:
        score += 5
    if word_count >= 1500:
        score += 10
    return min(95, score)


def readability_heuristic(content: str, word_count: int) -> int:
    """Rewards scannable structure: sub-headings, lists and short paragraphs."""
    score = 65
    if re.search(r"<h3\b", content, re.I):
        score += 5
    if re.search(r"<li\b", content, re.I):
        score += 10
    paragraphs = re.findall(r"<p\b", content, re.I)
    if paragraphs and word_count / len(paragraphs) <= 120:
        score += 10
    return min(90, score)


def normalize_generation(
    parsed: dict[str, Any],
    topic: str,
    provider: str = "",
    model: str = "",
) -> ContentResult:
    """Map a vendor's JSON article onto the canonical result shape."""
    content = str(parsed.get("content") or "")
    if not content.strip():
        raise ProviderError("AI response contained no content", provider=provider)

    word_count = count_words(strip_html(content))
    title = str(parsed.get("title") or topic)
    meta = str(parsed.get("metaDescription") or "")
    headings = _str_list(parsed.get("h2s"))
    excerpt = str(parsed.get("excerpt") or meta)

    return ContentResult(
        title=title,
        content=content,
        word_count=word_count,
        quality_score=min(95, 75 + word_count // 100),
        seo_score=seo_heuristic(content, headings, meta, word_count),
        readability_score=readability_heuristic(content, word_count),
        meta_description=meta,
        h1=str(parsed.get("h1") or title),
        headings=headings,
        sections=[
            ContentSection(type="tldr", content=str(parsed.get("tldrSummary") or "")),
            ContentSection(type="takeaways", data=_str_list(parsed.get("keyTakeaways"))),
            ContentSection(type="paragraph", content=content),
            ContentSection(type="summary", content=str(parsed.get("excerpt") or "")),
        ],
        excerpt=excerpt,
        author=DEFAULT_AUTHOR,
        published_at=utcnow(),
        provider=provider,
        model=model,
    )
