"""Job registry and progress tracking."""

from perfector.jobs.models import (
    ContentResult,
    ContentSection,
    Job,
    JobMode,
    JobState,
    ScoreReport,
    Stage,
    StageStatus,
    StageUpdate,
)
from perfector.jobs.store import JobStore, Subscription

__all__ = [
    "ContentResult",
    "ContentSection",
    "Job",
    "JobMode",
    "JobState",
    "JobStore",
    "ScoreReport",
    "Stage",
    "StageStatus",
    "StageUpdate",
    "Subscription",
]
