"""Locally synthesized placeholder article used when no provider is usable."""

from __future__ import annotations

import logging
import re
from pathlib import Path

from jinja2 import Environment, FileSystemLoader

from perfector.jobs.models import ContentResult, ContentSection, utcnow
from perfector.quality.scorer import count_words, strip_html

logger = logging.getLogger(__name__)

TEMPLATES_DIR = Path(__file__).resolve().parent.parent.parent / "templates"

FALLBACK_QUALITY_SCORE = 50

SUPPORTED_PROVIDERS = [
    {"name": "Google Gemini", "blurb": "Fast and cost-effective (free tier available)"},
    {"name": "OpenAI", "blurb": "High quality output"},
    {"name": "Anthropic Claude", "blurb": "Excellent for long-form content"},
    {"name": "Groq", "blurb": "Ultra-fast inference"},
    {"name": "OpenRouter", "blurb": "Many models behind one API key"},
]


def clean_topic(topic: str) -> str:
    return re.sub(r"^(Quick Optimize:|Optimized:)\s*", "", topic or "", flags=re.I).strip() or "Content"


def generate_fallback_content(topic: str) -> ContentResult:
    """Deterministic templated guide around ``topic`` (only ``published_at`` varies)."""
    name = clean_topic(topic)
    env = Environment(loader=FileSystemLoader(str(TEMPLATES_DIR)), autoescape=True)
    content = env.get_template("fallback_article.html.j2").render(
        topic=name, providers=SUPPORTED_PROVIDERS
    )
    title = f"{name}: A Comprehensive Guide"
    headings = ["How to Enable AI Content Generation", "Supported AI Providers", "What You'll Get with AI"]

    return ContentResult(
        title=title,
        content=content,
        word_count=count_words(strip_html(content)),
        quality_score=FALLBACK_QUALITY_SCORE,
        seo_score=50,
        readability_score=70,
        meta_description=f"Configure your AI provider to generate real content about {name}.",
        h1=title,
        headings=headings,
        sections=[
            ContentSection(
                type="tldr",
                content="Configure an AI provider in the settings to generate real content.",
            ),
            ContentSection(
                type="takeaways",
                data=["Configure an AI provider", "Enter your API key", "Get real AI-generated content"],
            ),
            ContentSection(type="paragraph", content=content),
        ],
        excerpt="Configure your AI provider for real content.",
        author="Page Perfector",
        published_at=utcnow(),
        provider="fallback",
        model="template",
        is_fallback=True,
    )


class FallbackAdapter:
    """Adapter that never calls out; always returns the templated guide."""

    provider_id = "fallback"
    default_model = "template"

    def generate(self, api_key: str | None, model: str | None, topic: str) -> ContentResult:
        logger.warning("[Fallback] Generating fallback content for: %s", topic)
        return generate_fallback_content(topic)
