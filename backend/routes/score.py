"""Content scoring API."""

import logging

from fastapi import APIRouter, Request

from perfector.jobs.models import ScoreReport
from perfector.quality.scorer import score_content
from perfector.schemas import ScoreRequest

logger = logging.getLogger(__name__)
router = APIRouter()


@router.post("/score", response_model=ScoreReport)
def score(body: ScoreRequest, request: Request):
    """Score HTML content on readability, completeness, entities, uniqueness and engagement."""
    report = score_content(
        body.content,
        body.paa_questions,
        body.target_entities,
        config=request.app.state.executor.scoring_config,
    )
    logger.info("Scored %d words: overall=%d", report.word_count, report.overall)
    return report
