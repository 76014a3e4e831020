"""Optimization job API.

POST /api/optimize
  → Validates the URL, registers a pending job, returns { jobId } with 202.
  → Background task runs briefing → ... → rendering.

GET /api/optimize/status?jobId=...  and  GET /api/jobs/{job_id}
  → Full job snapshot (state, progress, stages, result, score).

GET /api/jobs/{job_id}/events
  → Server-sent events: one snapshot per mutation until the job is terminal.
"""

from __future__ import annotations

import json
import logging
import queue
from typing import Iterator, Optional

from fastapi import APIRouter, BackgroundTasks, Header, HTTPException, Query, Request, status
from fastapi.responses import StreamingResponse

from perfector.errors import PerfectorError
from perfector.jobs.models import Job
from perfector.reliability.idempotency import idempotency_key, with_idempotency
from perfector.schemas import JobStatusResponse, OptimizeRequest, OptimizeStartResponse

logger = logging.getLogger(__name__)
router = APIRouter()

SSE_KEEPALIVE_SECONDS = 15.0


def _http_error(e: PerfectorError) -> HTTPException:
    return HTTPException(status_code=e.status_code, detail=e.to_dict()["error"])


@router.post(
    "/optimize",
    response_model=OptimizeStartResponse,
    status_code=status.HTTP_202_ACCEPTED,
)
def start_optimization(
    body: OptimizeRequest,
    request: Request,
    background_tasks: BackgroundTasks,
    idempotency_header: Optional[str] = Header(default=None, alias="Idempotency-Key"),
):
    """Start an optimization job and return immediately."""
    executor = request.app.state.executor
    created: list[Job] = []

    def _start() -> Job:
        job = executor.start(body)
        created.append(job)
        return job

    try:
        if idempotency_header:
            key = idempotency_key("optimize", idempotency_header, body.site_id, body.url)
            job = with_idempotency(key, _start)
        else:
            job = _start()
    except PerfectorError as e:
        raise _http_error(e)

    if created:
        background_tasks.add_task(
            executor.run_safely, job.job_id, executor.provider_config_for(body)
        )
        logger.info("Optimization job %s queued for %s", job.job_id, job.url)
    else:
        logger.info("Idempotent replay for job %s", job.job_id)

    return OptimizeStartResponse(job_id=job.job_id, status="started", progress=job.progress)


def _snapshot(request: Request, job_id: str) -> Job:
    job = request.app.state.store.get(job_id)
    if job is None:
        raise HTTPException(status_code=404, detail=f"Job not found: {job_id}")
    return job


@router.get("/optimize/status", response_model=JobStatusResponse)
def optimization_status(request: Request, job_id: str = Query(..., alias="jobId")):
    return JobStatusResponse.from_job(_snapshot(request, job_id))


@router.get("/jobs/{job_id}", response_model=JobStatusResponse)
def get_job(job_id: str, request: Request):
    return JobStatusResponse.from_job(_snapshot(request, job_id))


@router.get("/jobs", response_model=list[JobStatusResponse])
def list_jobs(request: Request, limit: int = Query(default=50, ge=1, le=500)):
    return [JobStatusResponse.from_job(j) for j in request.app.state.store.list_jobs(limit)]


def _sse(job: Job) -> str:
    payload = JobStatusResponse.from_job(job).model_dump(mode="json", by_alias=True)
    return f"event: job\ndata: {json.dumps(payload)}\n\n"


@router.get("/jobs/{job_id}/events")
def job_events(job_id: str, request: Request):
    """Stream job snapshots as server-sent events until the job finishes."""
    store = request.app.state.store
    _snapshot(request, job_id)

    updates: "queue.Queue[Job]" = queue.Queue()

    def stream() -> Iterator[str]:
        # The listener is attached only once the body is iterated, so a client
        # that disconnects before then leaves nothing behind.
        with store.subscribe(job_id, updates.put):
            # Subscribed before reading, so nothing between the two is lost.
            current = store.get(job_id)
            yield _sse(current)
            if current.is_terminal:
                return
            while True:
                try:
                    job = updates.get(timeout=SSE_KEEPALIVE_SECONDS)
                except queue.Empty:
                    yield ": keep-alive\n\n"
                    continue
                yield _sse(job)
                if job.is_terminal:
                    return

    return StreamingResponse(
        stream(),
        media_type="text/event-stream",
        headers={"Cache-Control": "no-cache", "Connection": "keep-alive"},
    )
