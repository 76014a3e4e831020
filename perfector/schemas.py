"""Request and response models for the optimization API.

Field names are snake_case in Python and camelCase on the wire
(``siteId``, ``postTitle``, ``jobId``); both spellings are accepted on input.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from perfector.jobs.models import ContentResult, Job, ScoreReport, Stage
from perfector.quality.readiness import InternalLink


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# ---------------------------------------------------------------------------
# Jobs
# ---------------------------------------------------------------------------

class OptimizeRequest(CamelModel):
    """Body for POST /api/optimize. ``url`` is checked by the executor so that
    a bad value yields a 400 with a readable message."""

    url: str | None = None
    site_id: str = "default"
    mode: str = "optimize"
    post_title: str | None = None

    # Optional per-request AI overrides; the key never lands in job metadata.
    provider: str | None = None
    model: str | None = None
    api_key: str | None = None


class OptimizeStartResponse(CamelModel):
    job_id: str
    status: str = "started"
    progress: int = 0


class JobStatusResponse(CamelModel):
    job_id: str
    site_id: str
    mode: str
    url: str | None = None
    state: str
    progress: int
    current_step: str
    steps: list[Stage] = Field(default_factory=list)
    result: ContentResult | None = None
    score: ScoreReport | None = None
    error: str | None = None
    metadata: dict[str, Any] = Field(default_factory=dict)
    created_at: datetime
    started_at: datetime | None = None
    updated_at: datetime
    completed_at: datetime | None = None

    @classmethod
    def from_job(cls, job: Job) -> "JobStatusResponse":
        return cls(
            job_id=job.job_id,
            site_id=job.site_id,
            mode=job.mode.value,
            url=job.url,
            state=job.state.value,
            progress=job.progress,
            current_step=job.current_step,
            steps=job.steps,
            result=job.result,
            score=job.score,
            error=job.error,
            metadata=job.metadata,
            created_at=job.created_at,
            started_at=job.started_at,
            updated_at=job.updated_at,
            completed_at=job.completed_at,
        )


# ---------------------------------------------------------------------------
# Scoring & validation
# ---------------------------------------------------------------------------

class ScoreRequest(CamelModel):
    content: str
    paa_questions: list[str] = Field(default_factory=list)
    target_entities: list[str] = Field(default_factory=list)


class ContentStrategy(CamelModel):
    word_count: int = 0
    readability_score: int = 0
    keyword_density: float = 0.0
    lsi_keywords: list[str] = Field(default_factory=list)


class OptimizationPayload(CamelModel):
    optimized_title: str = ""
    meta_description: str = ""
    h1: str = ""
    h2s: list[str] = Field(default_factory=list)
    content_strategy: ContentStrategy = Field(default_factory=ContentStrategy)
    internal_links: list[InternalLink] = Field(default_factory=list)
    quality_score: int = 0


class ValidateContentRequest(CamelModel):
    optimization: OptimizationPayload | None = None
    target_keyword: str | None = None
    min_quality_score: int = 75


class ValidateProviderRequest(CamelModel):
    provider: str = ""
    api_key: str = ""
    model: str = ""
