"""Enrichment: add TL;DR and key-takeaway blocks the draft is missing."""

from __future__ import annotations

import html
import re

from perfector.jobs.models import ContentResult
from perfector.quality.scorer import count_words, strip_html


def _section(result: ContentResult, section_type: str):
    for s in result.sections:
        if s.type == section_type:
            return s
    return None


def _has_block(content: str, css_class: str) -> bool:
    return re.search(rf'class="[^"]*\b{css_class}\b', content, re.I) is not None


def tldr_block(summary: str) -> str:
    return (
        '<div class="tldr"><p><strong>TL;DR:</strong> '
        f"{html.escape(summary)}</p></div>"
    )


def takeaways_block(items: list[str]) -> str:
    lis = "".join(f"<li>{html.escape(str(i))}</li>" for i in items)
    return f'<div class="key-takeaways"><h2>Key Takeaways</h2><ul>{lis}</ul></div>'


def enrich_content(result: ContentResult) -> tuple[ContentResult, list[str]]:
    """Return an enriched copy of ``result`` and the block types that were added."""
    added: list[str] = []
    content = result.content

    tldr = _section(result, "tldr")
    if not _has_block(content, "tldr") and tldr is not None and tldr.content.strip():
        content = tldr_block(tldr.content.strip()) + "\n" + content
        added.append("tldr")

    takeaways = _section(result, "takeaways")
    items = takeaways.data if takeaways is not None and isinstance(takeaways.data, list) else []
    if not _has_block(content, "key-takeaways") and items:
        content = content + "\n" + takeaways_block(items)
        added.append("key_takeaways")

    if not added:
        return result.model_copy(deep=True), added

    enriched = result.model_copy(deep=True)
    enriched.content = content
    enriched.word_count = count_words(strip_html(content))
    return enriched, added
