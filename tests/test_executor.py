"""Tests for the pipeline executor and its stage helpers."""

import re

import pytest

from perfector.errors import JobNotFoundError, ValidationError
from perfector.jobs.models import ContentResult, ContentSection, JobState, StageStatus
from perfector.llm.base import ProviderConfig
from perfector.llm.router import GenerationRouter
from perfector.pipeline.brief import build_brief, extract_entities, topic_from_url
from perfector.pipeline.enrich import enrich_content
from perfector.pipeline.executor import PipelineExecutor
from perfector.pipeline.render import reading_minutes, render_article
from perfector.schemas import OptimizeRequest


class _ExplodingRouter(GenerationRouter):
    def generate(self, config, topic):
        raise RuntimeError("router exploded")


# ---------------------------------------------------------------------------
# Start
# ---------------------------------------------------------------------------

class TestStart:

    def test_returns_pending_job(self, executor):
        job = executor.start(OptimizeRequest(url="https://example.com/trail-shoes", site_id="blog"))
        assert job.state == JobState.PENDING
        assert job.progress == 0
        assert re.fullmatch(r"optimize_blog_\d+_[0-9a-f]{8}", job.job_id)
        assert job.metadata["url"] == "https://example.com/trail-shoes"
        assert "api_key" not in job.metadata

    @pytest.mark.parametrize("url", [None, "", "ftp://example.com", "example.com"])
    def test_invalid_url(self, executor, url):
        with pytest.raises(ValidationError):
            executor.start(OptimizeRequest(url=url))

    def test_invalid_mode(self, executor):
        with pytest.raises(ValidationError):
            executor.start(OptimizeRequest(url="https://example.com", mode="publish"))

    def test_api_key_only_in_provider_config(self, executor):
        request = OptimizeRequest(url="https://example.com", provider="OpenAI", api_key="sk-test")
        job = executor.start(request)
        config = executor.provider_config_for(request)
        assert config.provider == "openai"
        assert config.api_key == "sk-test"
        assert config.model == "gpt-4o-mini"
        assert "sk-test" not in str(job.metadata)


# ---------------------------------------------------------------------------
# Run
# ---------------------------------------------------------------------------

class TestRun:

    def test_end_to_end_with_fallback(self, executor, store):
        job = executor.start(OptimizeRequest(url="https://example.com/blog/trail-running-shoes"))
        assert store.get(job.job_id).state == JobState.PENDING

        progress = []
        store.subscribe(job.job_id, lambda j: progress.append(j.progress))
        executor.run(job.job_id, ProviderConfig(provider="gemini", api_key=None))

        done = store.get(job.job_id)
        assert done.state == JobState.COMPLETE
        assert done.progress == 100
        assert done.result.word_count > 0
        assert done.result.is_fallback is True
        assert done.result.quality_score == done.score.overall
        assert "<article" in done.result.rendered_html
        assert all(s.status == StageStatus.COMPLETE for s in done.steps)
        assert progress == sorted(progress)
        assert {15, 30, 45, 60, 75, 90, 98, 100} <= set(progress)

    def test_enrichment_adds_blocks_to_fallback(self, executor, store):
        job = executor.start(OptimizeRequest(url="https://example.com/shoes"))
        executor.run(job.job_id)
        done = store.get(job.job_id)
        assert 'class="tldr"' in done.result.content
        assert done.stage("enriching").data == {"added_blocks": ["tldr", "key_takeaways"]}

    def test_post_title_overrides_slug(self, executor, store):
        job = executor.start(OptimizeRequest(url="https://example.com/p/123", post_title="Winter Hiking"))
        executor.run(job.job_id)
        assert store.get(job.job_id).stage("briefing").data["topic"] == "Winter Hiking"

    def test_stage_delay_uses_injected_sleep(self, store, settings):
        settings.perfector_stage_delay_ms = 20
        sleeps = []
        executor = PipelineExecutor(
            store, router=GenerationRouter(adapters={}), settings=settings, sleep=sleeps.append
        )
        job = executor.start(OptimizeRequest(url="https://example.com/a"))
        executor.run(job.job_id)
        assert sleeps == [0.02] * 6

    def test_unknown_job(self, executor):
        with pytest.raises(JobNotFoundError):
            executor.run("missing")

    def test_run_safely_marks_failure(self, store, settings):
        executor = PipelineExecutor(store, router=_ExplodingRouter(adapters={}), settings=settings)
        job = executor.start(OptimizeRequest(url="https://example.com/a"))
        executor.run_safely(job.job_id)
        failed = store.get(job.job_id)
        assert failed.state == JobState.FAILED
        assert failed.error == "router exploded"
        assert failed.stage("drafting").status == StageStatus.FAILED
        assert failed.stage("briefing").status == StageStatus.COMPLETE

    def test_run_safely_never_raises_for_unknown_job(self, executor):
        executor.run_safely("missing")


# ---------------------------------------------------------------------------
# Stage helpers
# ---------------------------------------------------------------------------

class TestBrief:

    @pytest.mark.parametrize("url,topic", [
        ("https://example.com/blog/best-running-shoes-2024/", "Best Running Shoes 2024"),
        ("https://example.com/guides/trail_running.html", "Trail Running"),
        ("https://www.example.com/", "Example"),
        ("https://example.com/posts/42", "Posts"),
    ])
    def test_topic_from_url(self, url, topic):
        assert topic_from_url(url) == topic

    def test_brief_contents(self):
        brief = build_brief("https://example.com/x", "Trail Running Shoes")
        assert brief.target_keyword == "trail running shoes"
        assert brief.paa_questions[0] == "What is trail running shoes?"
        assert brief.target_entities[0] == "trail running shoes"
        assert "running" in brief.target_entities

    def test_entities_are_bounded(self):
        entities = extract_entities("alpha bravo charlie delta echoes foxtrot golfer hotel india juliet")
        assert len(entities) == 8


class TestEnrich:

    def _result(self, content):
        return ContentResult(
            content=content,
            word_count=2,
            sections=[
                ContentSection(type="tldr", content="Short & sweet"),
                ContentSection(type="takeaways", data=["One", "<Two>"]),
            ],
        )

    def test_adds_missing_blocks_escaped(self):
        enriched, added = enrich_content(self._result("<p>Body text</p>"))
        assert added == ["tldr", "key_takeaways"]
        assert enriched.content.startswith('<div class="tldr">')
        assert "Short &amp; sweet" in enriched.content
        assert "&lt;Two&gt;" in enriched.content
        assert enriched.word_count > 2

    def test_existing_blocks_are_kept(self):
        original = self._result('<div class="tldr">x</div><div class="key-takeaways">y</div>')
        enriched, added = enrich_content(original)
        assert added == []
        assert enriched.content == original.content


def test_render_article(long_article):
    result = ContentResult(title="Trail <Shoes>", content=long_article, word_count=450)
    html = render_article(result, site_id="blog")
    assert "<h1>Trail &lt;Shoes&gt;</h1>" in html
    assert 'data-site="blog"' in html
    assert '<div class="tldr">' in html
    assert "2 min read" in html


def test_reading_minutes():
    assert reading_minutes(0) == 1
    assert reading_minutes(226) == 2
