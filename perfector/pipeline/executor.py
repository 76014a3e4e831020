"""Pipeline executor: drives one job through the six stages.

``start`` validates the request and registers a pending job; ``run`` walks
briefing → outlining → drafting → enriching → quality_check → rendering,
advancing the job store at the start and end of every stage, then records the
result and completes the job. ``run_safely`` is the background-task entry
point: any failure marks the job failed and is never re-raised.
"""

from __future__ import annotations

import logging
import time
import uuid
from typing import Callable

from perfector.config import Settings, get_settings
from perfector.errors import JobNotFoundError, ValidationError
from perfector.jobs.models import Job, JobMode, JobState, StageUpdate
from perfector.jobs.store import JobStore
from perfector.llm.base import ProviderConfig
from perfector.llm.router import GenerationRouter
from perfector.pipeline.brief import build_brief, plan_outline
from perfector.pipeline.enrich import enrich_content
from perfector.pipeline.render import render_article
from perfector.quality.scorer import ScoringConfig, load_scoring_config, score_content
from perfector.schemas import OptimizeRequest

logger = logging.getLogger(__name__)

# (state, job progress at stage start, job progress at stage end)
STAGE_BANDS: list[tuple[JobState, int, int]] = [
    (JobState.BRIEFING, 5, 15),
    (JobState.OUTLINING, 15, 30),
    (JobState.DRAFTING, 30, 45),
    (JobState.ENRICHING, 45, 60),
    (JobState.QUALITY_CHECK, 60, 75),
    (JobState.RENDERING, 75, 90),
]
RESULT_PROGRESS = 98


def new_job_id(mode: str, site_id: str) -> str:
    return f"{mode}_{site_id}_{int(time.time() * 1000)}_{uuid.uuid4().hex[:8]}"


class PipelineExecutor:
    def __init__(
        self,
        store: JobStore,
        router: GenerationRouter | None = None,
        settings: Settings | None = None,
        scoring_config: ScoringConfig | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.store = store
        self.settings = settings or get_settings()
        self.router = router or GenerationRouter.from_settings(self.settings)
        self.scoring_config = scoring_config or load_scoring_config(self.settings.rubric_path)
        self._sleep = sleep

    # ------------------------------------------------------------------
    # Entry points
    # ------------------------------------------------------------------

    def start(self, request: OptimizeRequest) -> Job:
        url = (request.url or "").strip()
        if not url or not url.startswith("http"):
            raise ValidationError("Invalid URL", {"url": request.url})
        try:
            mode = JobMode(request.mode)
        except ValueError:
            raise ValidationError(f"Invalid mode: {request.mode}", {"mode": request.mode})

        site_id = request.site_id or "default"
        job_id = new_job_id(mode.value, site_id)
        metadata = {
            "url": url,
            "post_title": request.post_title,
            "provider": request.provider or self.settings.perfector_llm_provider,
            "model": request.model,
        }
        return self.store.create(job_id, site_id, mode, url=url, metadata=metadata)

    def provider_config_for(self, request: OptimizeRequest | None = None) -> ProviderConfig:
        """Per-request overrides win; otherwise the configured default provider."""
        provider = (request.provider if request else None) or self.settings.perfector_llm_provider
        model = (request.model if request else None) or self.settings.model_for(provider) or ""
        api_key = (request.api_key if request else None) or self.settings.api_key_for(provider)
        return ProviderConfig(provider=provider.lower(), api_key=api_key, model=model)

    def run_safely(self, job_id: str, provider_config: ProviderConfig | None = None) -> None:
        try:
            self.run(job_id, provider_config)
        except Exception as e:
            logger.exception("Pipeline for job %s failed", job_id)
            try:
                self.store.fail(job_id, str(e) or e.__class__.__name__)
            except Exception:
                logger.exception("Could not mark job %s as failed", job_id)

    # ------------------------------------------------------------------
    # Stages
    # ------------------------------------------------------------------

    def run(self, job_id: str, provider_config: ProviderConfig | None = None) -> Job:
        job = self.store.get(job_id)
        if job is None:
            raise JobNotFoundError(job_id)

        config = provider_config or self.provider_config_for()
        started = time.monotonic()
        logger.info("Pipeline started for job %s (%s)", job_id, job.url)

        bands = iter(STAGE_BANDS)

        # briefing
        self._begin(job_id, next(bands), "Analyzing search intent and entities...")
        brief = build_brief(job.url or "", job.metadata.get("post_title"))
        self._end(job_id, JobState.BRIEFING, 15, "Brief ready", {
            "topic": brief.topic,
            "paa_questions": len(brief.paa_questions),
            "entities": len(brief.target_entities),
        })

        # outlining
        self._begin(job_id, next(bands), "Creating outline structure...")
        brief.outline = plan_outline(brief.topic)
        self._end(job_id, JobState.OUTLINING, 30, f"Outline with {len(brief.outline)} sections", {
            "outline": list(brief.outline),
        })

        # drafting
        self._begin(job_id, next(bands), f"Generating content with {config.provider}...")
        result = self.router.generate(config, brief.topic)
        self._end(job_id, JobState.DRAFTING, 45, f"Drafted {result.word_count} words", {
            "provider": result.provider,
            "model": result.model,
            "is_fallback": result.is_fallback,
            "word_count": result.word_count,
        })

        # enriching
        self._begin(job_id, next(bands), "Adding TL;DR and key takeaways...")
        result, added = enrich_content(result)
        self._end(job_id, JobState.ENRICHING, 60, "Enrichment complete", {"added_blocks": added})

        # quality_check
        self._begin(job_id, next(bands), "Scoring content quality...")
        score = score_content(
            result.content,
            brief.paa_questions,
            brief.target_entities,
            config=self.scoring_config,
        )
        result.quality_score = score.overall
        self._end(job_id, JobState.QUALITY_CHECK, 75, f"Quality score {score.overall}/100", {
            "overall": score.overall,
            "failing_aspects": list(score.failing_aspects),
        })

        # rendering
        self._begin(job_id, next(bands), "Rendering HTML...")
        result.rendered_html = render_article(result, score, site_id=job.site_id)
        self._end(job_id, JobState.RENDERING, 90, "HTML rendered")

        self.store.advance(job_id, StageUpdate(
            state=JobState.RENDERING,
            step_id=JobState.RENDERING.value,
            progress=RESULT_PROGRESS,
            message="Content ready",
            stage_progress=100,
        ))
        self.store.complete(job_id, result=result, score=score)
        logger.info(
            "Pipeline for job %s complete in %.2fs (score=%d, words=%d)",
            job_id, time.monotonic() - started, score.overall, result.word_count,
        )
        return self.store.get(job_id)

    def _begin(self, job_id: str, band: tuple[JobState, int, int], message: str) -> None:
        state, start, _ = band
        self.store.advance(job_id, StageUpdate(
            state=state,
            step_id=state.value,
            progress=start,
            message=message,
            stage_progress=0,
        ))
        delay_ms = self.settings.perfector_stage_delay_ms
        if delay_ms > 0:
            self._sleep(delay_ms / 1000)

    def _end(
        self,
        job_id: str,
        state: JobState,
        progress: int,
        message: str,
        data: dict | None = None,
    ) -> None:
        self.store.advance(job_id, StageUpdate(
            state=state,
            step_id=state.value,
            progress=progress,
            message=message,
            data=data,
            stage_progress=100,
        ))
