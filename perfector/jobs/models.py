"""Job, stage and content-result schemas for the optimization pipeline."""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class JobMode(str, Enum):
    GENERATE = "generate"
    OPTIMIZE = "optimize"


class JobState(str, Enum):
    PENDING = "pending"
    BRIEFING = "briefing"
    OUTLINING = "outlining"
    DRAFTING = "drafting"
    ENRICHING = "enriching"
    QUALITY_CHECK = "quality_check"
    RENDERING = "rendering"
    COMPLETE = "complete"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (JobState.COMPLETE, JobState.FAILED)


# Forward order of non-terminal states; a job may only move right.
STATE_ORDER: list[JobState] = [
    JobState.PENDING,
    JobState.BRIEFING,
    JobState.OUTLINING,
    JobState.DRAFTING,
    JobState.ENRICHING,
    JobState.QUALITY_CHECK,
    JobState.RENDERING,
]


class StageStatus(str, Enum):
    PENDING = "pending"
    RUNNING = "running"
    COMPLETE = "complete"
    FAILED = "failed"


# (id, name, description) for the six pipeline stages, in execution order.
STAGE_DEFINITIONS: list[tuple[str, str, str]] = [
    ("briefing", "SERP Analysis", "Analyzing search intent, competitors, and entities"),
    ("outlining", "Outline Generation", "Creating H2/H3 structure with section objectives"),
    ("drafting", "Content Drafting", "Writing sections with tactical, high-quality content"),
    ("enriching", "Content Enrichment", "Adding examples, checklists, callouts, and visual blocks"),
    ("quality_check", "Quality Assurance", "Scoring content: readability, SEO, completeness, uniqueness"),
    ("rendering", "HTML Rendering", "Rendering components to publish-ready HTML"),
]


class Stage(BaseModel):
    id: str
    name: str
    description: str = ""
    status: StageStatus = StageStatus.PENDING
    progress: int = Field(default=0, ge=0, le=100)
    message: str = "Awaiting start"
    start_time: datetime | None = None
    duration_ms: int = 0
    data: dict[str, Any] | None = None


class ContentSection(BaseModel):
    """One typed block of generated content (tldr, takeaways, paragraph, summary...)."""

    type: str
    content: str = ""
    data: Any = None


class ContentResult(BaseModel):
    """Canonical generation output, whichever provider produced it."""

    title: str = ""
    content: str = ""  # HTML
    word_count: int = 0
    quality_score: int = 0
    seo_score: int = 0
    readability_score: int = 0
    meta_description: str = ""
    h1: str = ""
    headings: list[str] = Field(default_factory=list)
    sections: list[ContentSection] = Field(default_factory=list)
    excerpt: str = ""
    author: str = ""
    published_at: datetime = Field(default_factory=utcnow)
    provider: str = ""
    model: str = ""
    is_fallback: bool = False
    rendered_html: str = ""


class ScoreReport(BaseModel):
    """Multi-dimensional quality score. Immutable once produced."""

    model_config = ConfigDict(frozen=True)

    readability: int
    completeness: int
    entity_coverage: int
    uniqueness: int
    engagement: int
    overall: int
    word_count: int = 0
    failing_aspects: tuple[str, ...] = ()
    recommendations: tuple[str, ...] = ()


class StageUpdate(BaseModel):
    """Typed patch applied by ``JobStore.advance``.

    ``stage_progress`` defaults to ``progress``; pass 100 to close a stage
    while the job-level progress stays inside its band.
    """

    state: JobState
    step_id: str
    progress: int = Field(ge=0, le=100)
    message: str = ""
    data: dict[str, Any] | None = None
    stage_progress: int | None = Field(default=None, ge=0, le=100)


class Job(BaseModel):
    """One content generation/optimization request, tracked in memory."""

    job_id: str
    site_id: str = "default"
    mode: JobMode = JobMode.OPTIMIZE
    url: str | None = None
    state: JobState = JobState.PENDING
    progress: int = Field(default=0, ge=0, le=100)
    current_step: str = "Initializing"
    steps: list[Stage] = Field(default_factory=list)
    result: ContentResult | None = None
    score: ScoreReport | None = None
    error: str | None = None
    metadata: dict[str, Any] = Field(default_factory=dict)
    created_at: datetime = Field(default_factory=utcnow)
    started_at: datetime | None = None
    completed_at: datetime | None = None
    updated_at: datetime = Field(default_factory=utcnow)

    @property
    def is_terminal(self) -> bool:
        return self.state.is_terminal

    def stage(self, step_id: str) -> Stage | None:
        for s in self.steps:
            if s.id == step_id:
                return s
        return None


def initial_stages() -> list[Stage]:
    return [Stage(id=sid, name=name, description=desc) for sid, name, desc in STAGE_DEFINITIONS]
