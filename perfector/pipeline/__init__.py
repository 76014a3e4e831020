"""Six-stage content pipeline: brief, outline, draft, enrich, score, render."""

from perfector.pipeline.brief import ContentBrief, build_brief, plan_outline, topic_from_url
from perfector.pipeline.enrich import enrich_content
from perfector.pipeline.executor import PipelineExecutor, new_job_id
from perfector.pipeline.render import render_article

__all__ = [
    "ContentBrief",
    "PipelineExecutor",
    "build_brief",
    "enrich_content",
    "new_job_id",
    "plan_outline",
    "render_article",
    "topic_from_url",
]
