"""Quality scoring and publish-readiness checks."""

from perfector.quality.readiness import (
    ReadinessCheck,
    ReadinessRecord,
    ReadinessReport,
    check_publish_readiness,
)
from perfector.quality.scorer import ScoringConfig, load_scoring_config, score_content

__all__ = [
    "ReadinessCheck",
    "ReadinessRecord",
    "ReadinessReport",
    "ScoringConfig",
    "check_publish_readiness",
    "load_scoring_config",
    "score_content",
]
