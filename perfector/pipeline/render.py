"""Render a scored content result into publish-ready article HTML."""

from __future__ import annotations

import math
from pathlib import Path

from jinja2 import Environment, FileSystemLoader

from perfector.jobs.models import ContentResult, ScoreReport

TEMPLATES_DIR = Path(__file__).resolve().parent.parent.parent / "templates"

_env = Environment(loader=FileSystemLoader(str(TEMPLATES_DIR)), autoescape=True)

WORDS_PER_MINUTE = 225


def reading_minutes(word_count: int) -> int:
    return max(1, math.ceil(word_count / WORDS_PER_MINUTE))


def render_article(
    result: ContentResult,
    score: ScoreReport | None = None,
    site_id: str | None = None,
) -> str:
    template = _env.get_template("article.html.j2")
    return template.render(
        result=result,
        score=score,
        site_id=site_id,
        reading_minutes=reading_minutes(result.word_count),
    )
