"""Validation API routes: publish readiness and AI provider keys."""

import logging
from dataclasses import asdict

from fastapi import APIRouter, HTTPException, Request

from perfector.llm.validation import ProviderValidationResult, validate_provider_key
from perfector.quality.readiness import ReadinessRecord, check_publish_readiness
from perfector.schemas import ValidateContentRequest, ValidateProviderRequest

logger = logging.getLogger(__name__)
router = APIRouter()


@router.post("/validate-content")
def validate_content(body: ValidateContentRequest):
    """Check whether an optimization result is ready to publish."""
    if body.optimization is None:
        raise HTTPException(status_code=400, detail="Missing optimization data")

    opt = body.optimization
    strategy = opt.content_strategy
    record = ReadinessRecord(
        title=opt.optimized_title,
        meta_description=opt.meta_description,
        h1=opt.h1,
        headings=opt.h2s,
        word_count=strategy.word_count,
        readability_score=strategy.readability_score,
        keyword_density=strategy.keyword_density,
        lsi_keywords=strategy.lsi_keywords,
        internal_links=opt.internal_links,
        quality_score=opt.quality_score,
    )
    report = check_publish_readiness(record, body.target_keyword, body.min_quality_score)
    logger.info(
        "Readiness check: can_publish=%s score=%d errors=%d warnings=%d",
        report.can_publish, report.overall_score, report.errors, report.warnings,
    )
    return {
        "success": True,
        "canPublish": report.can_publish,
        "overallScore": report.overall_score,
        "checks": [asdict(c) for c in report.checks],
        "summary": {
            "errors": report.errors,
            "warnings": report.warnings,
            "passed": report.passed,
            "total": len(report.checks),
        },
    }


@router.post("/validate-provider", response_model=ProviderValidationResult)
def validate_provider(body: ValidateProviderRequest, request: Request):
    """Call an AI provider with a one-token request to verify the API key."""
    settings = request.app.state.settings
    return validate_provider_key(
        body.provider,
        body.api_key,
        body.model,
        timeout=settings.perfector_validation_timeout,
    )
