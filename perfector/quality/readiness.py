"""Publish-readiness gate: named SEO/structure checks over a finished result."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Literal

from pydantic import BaseModel, Field

from perfector.jobs.models import ContentResult
from perfector.quality.scorer import strip_html

Severity = Literal["error", "warning", "info"]

DEFAULT_MIN_QUALITY_SCORE = 75


class InternalLink(BaseModel):
    anchor: str = ""
    target: str = ""
    position: int = 0


class ReadinessRecord(BaseModel):
    """The subset of a content result that the readiness checks inspect."""

    title: str = ""
    meta_description: str = ""
    h1: str = ""
    headings: list[str] = Field(default_factory=list)
    word_count: int = 0
    readability_score: int = 0
    keyword_density: float = 0.0  # percent
    lsi_keywords: list[str] = Field(default_factory=list)
    internal_links: list[InternalLink] = Field(default_factory=list)
    quality_score: int = 0

    @classmethod
    def from_content_result(
        cls,
        result: ContentResult,
        target_keyword: str | None = None,
        site_host: str | None = None,
    ) -> "ReadinessRecord":
        text = strip_html(result.content)
        return cls(
            title=result.title,
            meta_description=result.meta_description,
            h1=result.h1 or _first_heading(result.content, "h1"),
            headings=list(result.headings),
            word_count=result.word_count,
            readability_score=result.readability_score,
            keyword_density=keyword_density(text, target_keyword) if target_keyword else 0.0,
            internal_links=extract_internal_links(result.content, site_host),
            quality_score=result.quality_score,
        )


@dataclass
class ReadinessCheck:
    name: str
    passed: bool
    actual: str | int | float
    expected: str
    severity: Severity


@dataclass
class ReadinessReport:
    can_publish: bool
    overall_score: int
    checks: list[ReadinessCheck] = field(default_factory=list)
    errors: int = 0
    warnings: int = 0
    passed: int = 0


def keyword_density(text: str, keyword: str) -> float:
    """Keyword occurrences (phrase-aware) per 100 words, rounded to 2 places."""
    words = text.split()
    if not words or not keyword.strip():
        return 0.0
    hits = len(re.findall(rf"\b{re.escape(keyword.strip())}\b", text, re.IGNORECASE))
    kw_len = len(keyword.split())
    return round(hits * kw_len / len(words) * 100, 2)


_LINK_RE = re.compile(r"<a\s[^>]*href=\"([^\"]+)\"[^>]*>(.*?)</a>", re.I | re.S)


def extract_internal_links(content: str, site_host: str | None = None) -> list[InternalLink]:
    """Relative links, plus absolute links to ``site_host`` when given."""
    links = []
    for i, m in enumerate(_LINK_RE.finditer(content or "")):
        href = m.group(1)
        internal = href.startswith("/") and not href.startswith("//")
        if site_host and site_host in href:
            internal = True
        if internal:
            links.append(InternalLink(anchor=strip_html(m.group(2)), target=href, position=i))
    return links


def _first_heading(content: str, tag: str) -> str:
    m = re.search(rf"<{tag}[^>]*>(.*?)</{tag}>", content or "", re.I | re.S)
    return strip_html(m.group(1)) if m else ""


def check_publish_readiness(
    record: ReadinessRecord,
    target_keyword: str | None = None,
    min_quality_score: int = DEFAULT_MIN_QUALITY_SCORE,
) -> ReadinessReport:
    """Run every check; publishable when no error-severity check failed and the
    quality score meets ``min_quality_score``."""
    checks: list[ReadinessCheck] = []

    title_len = len(record.title)
    checks.append(ReadinessCheck(
        name="Title Length",
        passed=50 <= title_len <= 60,
        actual=title_len,
        expected="50-60 characters",
        severity="error" if title_len < 40 or title_len > 70 else "warning",
    ))

    if target_keyword:
        has_kw = target_keyword.lower() in record.title.lower()
        checks.append(ReadinessCheck(
            name="Title Contains Keyword",
            passed=has_kw,
            actual="Yes" if has_kw else "No",
            expected="Keyword in title",
            severity="warning",
        ))

    meta_len = len(record.meta_description)
    checks.append(ReadinessCheck(
        name="Meta Description Length",
        passed=150 <= meta_len <= 160,
        actual=meta_len,
        expected="150-160 characters",
        severity="error" if meta_len < 120 or meta_len > 180 else "warning",
    ))

    checks.append(ReadinessCheck(
        name="H1 Present",
        passed=bool(record.h1),
        actual="Yes" if record.h1 else "No",
        expected="H1 heading required",
        severity="error",
    ))

    h2_count = len(record.headings)
    checks.append(ReadinessCheck(
        name="H2 Subheadings",
        passed=3 <= h2_count <= 7,
        actual=h2_count,
        expected="3-7 subheadings",
        severity="error" if h2_count == 0 else "warning",
    ))

    checks.append(ReadinessCheck(
        name="Word Count",
        passed=record.word_count >= 1500,
        actual=record.word_count,
        expected="≥1500 words",
        severity="error" if record.word_count < 1000 else "warning",
    ))

    checks.append(ReadinessCheck(
        name="Readability Score",
        passed=record.readability_score >= 60,
        actual=record.readability_score,
        expected="≥60 (Flesch-Kincaid)",
        severity="error" if record.readability_score < 40 else "warning",
    ))

    density = record.keyword_density
    checks.append(ReadinessCheck(
        name="Keyword Density",
        passed=0.5 <= density <= 2.5,
        actual=f"{density}%",
        expected="0.5-2.5%",
        severity="error" if density > 3 else "warning",
    ))

    lsi_count = len(record.lsi_keywords)
    checks.append(ReadinessCheck(
        name="LSI Keywords",
        passed=lsi_count >= 3,
        actual=lsi_count,
        expected="≥3 LSI keywords",
        severity="info",
    ))

    link_count = len(record.internal_links)
    checks.append(ReadinessCheck(
        name="Internal Links",
        passed=link_count >= 2,
        actual=link_count,
        expected="≥2 internal links",
        severity="warning",
    ))

    quality = record.quality_score
    if quality < 50:
        q_severity: Severity = "error"
    elif quality < min_quality_score:
        q_severity = "warning"
    else:
        q_severity = "info"
    checks.append(ReadinessCheck(
        name="Quality Score",
        passed=quality >= min_quality_score,
        actual=quality,
        expected=f"≥{min_quality_score}",
        severity=q_severity,
    ))

    errors = sum(1 for c in checks if not c.passed and c.severity == "error")
    warnings = sum(1 for c in checks if not c.passed and c.severity == "warning")
    passed = sum(1 for c in checks if c.passed)

    earned = sum(10 if c.passed else 5 if c.severity == "warning" else 0 for c in checks)
    overall = int(earned / (len(checks) * 10) * 100 + 0.5)

    return ReadinessReport(
        can_publish=errors == 0 and quality >= min_quality_score,
        overall_score=overall,
        checks=checks,
        errors=errors,
        warnings=warnings,
        passed=passed,
    )
