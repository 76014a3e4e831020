"""In-memory job registry with per-job serialized writes and push subscriptions."""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field
from typing import Any, Callable

from perfector.errors import InvalidTransitionError, JobNotFoundError, ValidationError
from perfector.jobs.models import (
    STATE_ORDER,
    ContentResult,
    Job,
    JobMode,
    JobState,
    ScoreReport,
    StageStatus,
    StageUpdate,
    initial_stages,
    utcnow,
)

logger = logging.getLogger(__name__)

JobListener = Callable[[Job], None]


@dataclass
class _JobRecord:
    job: Job
    lock: threading.RLock = field(default_factory=threading.RLock)
    listeners: list[JobListener] = field(default_factory=list)


class Subscription:
    """Handle returned by ``JobStore.subscribe``; call ``unsubscribe()`` to detach."""

    def __init__(self, store: "JobStore", job_id: str, callback: JobListener):
        self._store = store
        self.job_id = job_id
        self._callback = callback
        self.active = True

    def unsubscribe(self) -> None:
        if self.active:
            self._store._remove_listener(self.job_id, self._callback)
            self.active = False

    def __call__(self) -> None:
        self.unsubscribe()

    def __enter__(self) -> "Subscription":
        return self

    def __exit__(self, *exc: object) -> None:
        self.unsubscribe()


class JobStore:
    """Single source of truth for job status within one process.

    Each job has its own re-entrant lock: every mutation of that job, and the
    listener fan-out that follows it, happens while holding the lock, so
    writers to the same job are serialized and listeners see mutations in
    order. Jobs do not share locks with each other. Nothing is persisted.
    """

    def __init__(self) -> None:
        self._records: dict[str, _JobRecord] = {}
        self._lock = threading.Lock()  # guards the id -> record map only

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def create(
        self,
        job_id: str,
        site_id: str,
        mode: JobMode | str,
        url: str | None = None,
        metadata: dict[str, Any] | None = None,
    ) -> Job:
        job = Job(
            job_id=job_id,
            site_id=site_id,
            mode=JobMode(mode),
            url=url,
            steps=initial_stages(),
            metadata=dict(metadata or {}),
        )
        record = _JobRecord(job=job)
        with self._lock:
            if job_id in self._records:
                raise ValidationError(f"Job already exists: {job_id}")
            self._records[job_id] = record
        logger.info("Job %s created (mode=%s, site=%s)", job_id, job.mode.value, site_id)
        with record.lock:
            self._emit(record)
            return job.model_copy(deep=True)

    def advance(self, job_id: str, update: StageUpdate) -> None:
        record = self._record(job_id)
        with record.lock:
            job = record.job
            if job.is_terminal:
                logger.debug("Ignoring advance on terminal job %s (%s)", job_id, job.state.value)
                return
            if update.state.is_terminal:
                raise InvalidTransitionError(
                    f"advance() cannot set terminal state {update.state.value}; use complete()/fail()"
                )
            if STATE_ORDER.index(update.state) < STATE_ORDER.index(job.state):
                raise InvalidTransitionError(
                    f"Job {job_id} cannot move from {job.state.value} back to {update.state.value}"
                )
            progress = update.progress
            if progress < job.progress:
                logger.warning(
                    "Job %s progress regression %d -> %d clamped", job_id, job.progress, progress
                )
                progress = job.progress

            now = utcnow()
            job.state = update.state
            job.progress = progress
            job.current_step = update.step_id
            job.updated_at = now
            if job.started_at is None:
                job.started_at = now

            stage = job.stage(update.step_id)
            if stage is not None:
                stage_progress = update.stage_progress if update.stage_progress is not None else progress
                stage.status = StageStatus.COMPLETE if stage_progress == 100 else StageStatus.RUNNING
                stage.progress = stage_progress
                stage.message = update.message
                if update.data is not None:
                    stage.data = update.data
                if stage.start_time is None:
                    stage.start_time = now
                stage.duration_ms = int((now - stage.start_time).total_seconds() * 1000)
            else:
                logger.warning("Job %s has no stage %r", job_id, update.step_id)

            self._emit(record)

    def fail(self, job_id: str, error: str) -> None:
        record = self._record(job_id)
        with record.lock:
            job = record.job
            if job.is_terminal:
                logger.debug("Ignoring fail on terminal job %s (%s)", job_id, job.state.value)
                return
            now = utcnow()
            job.state = JobState.FAILED
            job.error = error
            job.completed_at = now
            job.updated_at = now
            for stage in job.steps:
                if stage.status == StageStatus.RUNNING:
                    stage.status = StageStatus.FAILED
                    stage.message = error
            logger.warning("Job %s failed: %s", job_id, error)
            self._emit(record)

    def complete(
        self,
        job_id: str,
        result: ContentResult | None = None,
        score: ScoreReport | None = None,
    ) -> None:
        record = self._record(job_id)
        with record.lock:
            job = record.job
            if job.is_terminal:
                logger.debug("Ignoring complete on terminal job %s (%s)", job_id, job.state.value)
                return
            now = utcnow()
            job.state = JobState.COMPLETE
            job.progress = 100
            job.completed_at = now
            job.updated_at = now
            if result is not None:
                job.result = result
            if score is not None:
                job.score = score
            logger.info("Job %s complete", job_id)
            self._emit(record)

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def get(self, job_id: str) -> Job | None:
        with self._lock:
            record = self._records.get(job_id)
        if record is None:
            return None
        with record.lock:
            return record.job.model_copy(deep=True)

    def list_jobs(self, limit: int = 50) -> list[Job]:
        with self._lock:
            records = list(self._records.values())
        snapshots = []
        for record in records:
            with record.lock:
                snapshots.append(record.job.model_copy(deep=True))
        snapshots.sort(key=lambda j: j.created_at, reverse=True)
        return snapshots[:limit]

    def __contains__(self, job_id: str) -> bool:
        with self._lock:
            return job_id in self._records

    def __len__(self) -> int:
        with self._lock:
            return len(self._records)

    # ------------------------------------------------------------------
    # Subscriptions
    # ------------------------------------------------------------------

    def subscribe(self, job_id: str, callback: JobListener) -> Subscription:
        """Invoke ``callback`` with a snapshot after every mutation of ``job_id``.

        There is no replay: mutations made before subscribing are not delivered.
        """
        record = self._record(job_id)
        with record.lock:
            record.listeners.append(callback)
        return Subscription(self, job_id, callback)

    def listener_count(self, job_id: str) -> int:
        record = self._record(job_id)
        with record.lock:
            return len(record.listeners)

    def _remove_listener(self, job_id: str, callback: JobListener) -> None:
        with self._lock:
            record = self._records.get(job_id)
        if record is None:
            return
        with record.lock:
            if callback in record.listeners:
                record.listeners.remove(callback)

    def _emit(self, record: _JobRecord) -> None:
        # Each listener gets its own copy so one cannot mutate what the next sees.
        for listener in list(record.listeners):
            try:
                listener(record.job.model_copy(deep=True))
            except Exception as e:
                logger.warning("Job listener for %s raised: %s", record.job.job_id, e)

    def _record(self, job_id: str) -> _JobRecord:
        with self._lock:
            record = self._records.get(job_id)
        if record is None:
            raise JobNotFoundError(job_id)
        return record
