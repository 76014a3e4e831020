"""Content quality scoring: readability, PAA completeness, entity coverage,
token diversity and engagement, combined into a weighted overall score.

Every function here is pure: the same content and reference lists always
produce the same ``ScoreReport``.

Uniqueness is a token-diversity proxy, not a duplicate-content or plagiarism
check against any external corpus.
"""

from __future__ import annotations

import html
import re
from pathlib import Path

import yaml
from pydantic import BaseModel, Field

from perfector.jobs.models import ScoreReport

RUBRICS_DIR = Path(__file__).resolve().parent.parent.parent / "rubrics"


class ScoringWeights(BaseModel):
    readability: float = 0.25
    completeness: float = 0.30
    entity_coverage: float = 0.20
    uniqueness: float = 0.15
    engagement: float = 0.10


class ScoringThresholds(BaseModel):
    readability: int = 70
    completeness: int = 75
    entity_coverage: int = 80
    engagement: int = 75


class ScoringConfig(BaseModel):
    weights: ScoringWeights = Field(default_factory=ScoringWeights)
    thresholds: ScoringThresholds = Field(default_factory=ScoringThresholds)
    min_word_count: int = 2000


def load_scoring_config(path: Path | None = None) -> ScoringConfig:
    """Load weights and thresholds from rubric YAML; built-in defaults if missing."""
    path = path or RUBRICS_DIR / "default.yaml"
    if not path.exists():
        return ScoringConfig()
    with open(path, encoding="utf-8") as f:
        data = yaml.safe_load(f) or {}
    return ScoringConfig.model_validate(data)


# ── Text helpers ────────────────────────────────────────────────────────

_TAG_RE = re.compile(r"<[^>]*>")
_SENTENCE_SPLIT_RE = re.compile(r"[.!?]+")
_WORD_RE = re.compile(r"[A-Za-z0-9']+")
_VOWEL_GROUP_RE = re.compile(r"[aeiouy]+", re.IGNORECASE)


def strip_html(content: str) -> str:
    """Drop tags and unescape entities, collapsing whitespace."""
    text = _TAG_RE.sub(" ", content or "")
    return " ".join(html.unescape(text).split())


def count_words(text: str) -> int:
    return len(text.split())


def _round(value: float) -> int:
    """Round half up (scores are never negative)."""
    return int(value + 0.5)


def _clamp(value: float, low: float = 0, high: float = 100) -> float:
    return max(low, min(high, value))


def count_syllables(word: str) -> int:
    """Vowel-group heuristic; every word has at least one syllable."""
    return max(1, len(_VOWEL_GROUP_RE.findall(word)))


# ── Dimensions ──────────────────────────────────────────────────────────

def calculate_readability(text: str) -> int:
    """Flesch-Kincaid grade mapped to 0-100 (lower grade -> higher score)."""
    words = text.split()
    if not words:
        return 0
    sentences = len([s for s in _SENTENCE_SPLIT_RE.split(text) if s.strip()]) or 1
    syllables = sum(count_syllables(w) for w in _WORD_RE.findall(text)) or len(words)
    grade = 0.39 * (len(words) / sentences) + 11.8 * (syllables / len(words)) - 15.59
    return _round(_clamp(100 - grade * 5))


def check_paa_coverage(text: str, questions: list[str]) -> int:
    """Percent of questions whose leading keywords appear in the text.

    A question counts as answered when any of its first three tokens occurs.
    """
    if not questions:
        return 100
    lower = text.lower()
    answered = 0
    for q in questions:
        keywords = q.split()[:3]
        if any(k.lower() in lower for k in keywords):
            answered += 1
    return _round(answered / len(questions) * 100)


def check_entity_coverage(text: str, entities: list[str]) -> int:
    if not entities:
        return 100
    lower = text.lower()
    covered = sum(1 for e in entities if e.lower() in lower)
    return _round(covered / len(entities) * 100)


def calculate_uniqueness(text: str) -> int:
    """Distinct-token ratio scaled by 1.5 and capped at 100."""
    tokens = text.lower().split()
    if not tokens:
        return 0
    diversity = len(set(tokens)) / len(tokens) * 100
    return min(100, _round(diversity * 1.5))


# Structural block types recognized in rendered HTML.
BLOCK_PATTERNS: dict[str, re.Pattern[str]] = {
    "tldr": re.compile(r"class=\"[^\"]*\btldr\b|\btl;\s*dr\b", re.I),
    "key_takeaways": re.compile(r"class=\"[^\"]*\bkey-takeaways\b|\bkey takeaways\b", re.I),
    "callout": re.compile(r"class=\"[^\"]*\bcallout\b", re.I),
    "checklist": re.compile(r"class=\"[^\"]*\bchecklist\b|type=\"checkbox\"", re.I),
    "faq": re.compile(r"class=\"[^\"]*\bfaq\b|\bfrequently asked questions\b", re.I),
    "video": re.compile(r"<video\b|<iframe\b", re.I),
    "quote": re.compile(r"<blockquote\b", re.I),
}

EXAMPLE_TERMS = ("example", "case study", "real-world", "scenario", "instance")
STORY_TERMS = ("story", "journey", "experienced", "discovered", "realized", "learned")
ACTION_TERMS = ("step", "action", "implement", "apply", "execute", "do this")


def detect_blocks(content: str) -> list[str]:
    """Block types present in the HTML, in ``BLOCK_PATTERNS`` order."""
    return [name for name, pattern in BLOCK_PATTERNS.items() if pattern.search(content or "")]


def calculate_engagement(content: str, text: str) -> int:
    score = 50
    score += len(detect_blocks(content)) * 5

    lower = text.lower()
    if any(k in lower for k in EXAMPLE_TERMS):
        score += 15
    if sum(1 for k in STORY_TERMS if k in lower) >= 2:
        score += 10
    action_count = sum(1 for k in ACTION_TERMS if k in lower)
    score += min(15, action_count * 3)
    return min(100, score)


# ── Report ──────────────────────────────────────────────────────────────

def score_content(
    content: str,
    paa_questions: list[str] | None = None,
    target_entities: list[str] | None = None,
    config: ScoringConfig | None = None,
) -> ScoreReport:
    """Score HTML (or plain text) content against PAA questions and target entities."""
    config = config or ScoringConfig()
    paa_questions = paa_questions or []
    target_entities = target_entities or []

    text = strip_html(content)
    word_count = count_words(text)

    readability = calculate_readability(text)
    completeness = check_paa_coverage(text, paa_questions)
    entity_coverage = check_entity_coverage(text, target_entities)
    uniqueness = calculate_uniqueness(text)
    engagement = calculate_engagement(content, text)

    w = config.weights
    overall = _round(
        readability * w.readability
        + completeness * w.completeness
        + entity_coverage * w.entity_coverage
        + uniqueness * w.uniqueness
        + engagement * w.engagement
    )

    t = config.thresholds
    failing: list[str] = []
    recs: list[str] = []
    if readability < t.readability:
        failing.append("Readability")
        recs.append("Use shorter sentences and paragraphs for better readability.")
    if completeness < t.completeness:
        failing.append("Completeness")
        recs.append("Answer more People Also Ask questions for better coverage.")
    if entity_coverage < t.entity_coverage:
        failing.append("Entity Coverage")
        recs.append("Include more target keywords and related entities.")
    if engagement < t.engagement:
        failing.append("Engagement")
        recs.append("Add more visual blocks: TL;DR, checklists, callouts, examples.")
    if word_count < config.min_word_count:
        recs.append(f"Expand content to 3000+ words (currently {word_count} words).")

    return ScoreReport(
        readability=readability,
        completeness=completeness,
        entity_coverage=entity_coverage,
        uniqueness=uniqueness,
        engagement=engagement,
        overall=overall,
        word_count=word_count,
        failing_aspects=tuple(failing),
        recommendations=tuple(recs),
    )
