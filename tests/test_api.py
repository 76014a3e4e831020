"""Tests for the FastAPI backend (TestClient, no network)."""

import json
import threading
import time
from types import SimpleNamespace

import pytest
from fastapi import BackgroundTasks
from fastapi.testclient import TestClient

from backend.main import create_app
from backend.routes.jobs import job_events, start_optimization
from perfector.reliability.ratelimit import RateLimiter
from perfector.schemas import OptimizeRequest


@pytest.fixture
def client(settings, store, executor):
    app = create_app(settings=settings, store=store, executor=executor, rate_limiter=RateLimiter())
    return TestClient(app)


def test_health(client):
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json()["status"] == "ok"


def test_injected_empty_store_is_used(settings, store, executor):
    assert len(store) == 0
    app = create_app(settings=settings, store=store, executor=executor, rate_limiter=RateLimiter())
    assert app.state.store is store
    assert app.state.executor is executor

    client = TestClient(app)
    job_id = client.post("/api/optimize", json={"url": "https://example.com/a"}).json()["jobId"]
    assert store.get(job_id) is not None
    assert client.get("/api/optimize/status", params={"jobId": job_id}).status_code == 200


class TestOptimize:

    def test_start_and_poll_to_completion(self, client):
        response = client.post("/api/optimize", json={"url": "https://example.com/trail-shoes", "siteId": "blog"})
        assert response.status_code == 202
        body = response.json()
        assert body["status"] == "started"
        assert body["progress"] == 0
        job_id = body["jobId"]

        # TestClient runs background tasks before returning the response.
        status = client.get("/api/optimize/status", params={"jobId": job_id})
        assert status.status_code == 200
        job = status.json()
        assert job["state"] == "complete"
        assert job["progress"] == 100
        assert job["siteId"] == "blog"
        assert job["result"]["word_count"] > 0
        assert job["score"]["overall"] == job["result"]["quality_score"]

    @pytest.mark.parametrize("payload", [{}, {"url": "not-a-url"}])
    def test_invalid_url_is_400(self, client, payload):
        response = client.post("/api/optimize", json=payload)
        assert response.status_code == 400
        assert response.json()["detail"]["code"] == "VALIDATION_ERROR"

    def test_idempotency_key_returns_same_job(self, client, store):
        headers = {"Idempotency-Key": "abc-123"}
        payload = {"url": "https://example.com/a"}
        first = client.post("/api/optimize", json=payload, headers=headers).json()
        second = client.post("/api/optimize", json=payload, headers=headers).json()
        assert first["jobId"] == second["jobId"]
        assert len(store) == 1

    def test_concurrent_requests_with_same_key_start_one_job(self, executor, store, monkeypatch):
        original_start = executor.start

        def slow_start(body):
            time.sleep(0.2)
            return original_start(body)

        monkeypatch.setattr(executor, "start", slow_start)
        request = SimpleNamespace(app=SimpleNamespace(state=SimpleNamespace(executor=executor)))
        body = OptimizeRequest(url="https://example.com/a")
        responses, scheduled = [], []

        def post():
            tasks = BackgroundTasks()
            responses.append(start_optimization(body, request, tasks, idempotency_header="same-key"))
            scheduled.append(len(tasks.tasks))

        threads = [threading.Thread(target=post) for _ in range(2)]
        for t in threads:
            t.start()
        for t in threads:
            t.join(timeout=5)

        assert len({r.job_id for r in responses}) == 1
        assert len(store) == 1
        assert sorted(scheduled) == [0, 1]

    def test_unknown_job_is_404(self, client):
        assert client.get("/api/optimize/status", params={"jobId": "nope"}).status_code == 404
        assert client.get("/api/jobs/nope").status_code == 404

    def test_get_and_list_jobs(self, client):
        job_id = client.post("/api/optimize", json={"url": "https://example.com/a"}).json()["jobId"]
        assert client.get(f"/api/jobs/{job_id}").json()["jobId"] == job_id
        listed = client.get("/api/jobs").json()
        assert [j["jobId"] for j in listed] == [job_id]


def test_events_stream_ends_with_terminal_snapshot(client, store):
    store.create("j1", "s", "optimize", url="https://example.com")
    store.complete("j1")

    with client.stream("GET", "/api/jobs/j1/events") as response:
        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/event-stream")
        text = "".join(response.iter_text())

    data_lines = [line[len("data: "):] for line in text.splitlines() if line.startswith("data: ")]
    assert json.loads(data_lines[-1])["state"] == "complete"
    assert store.listener_count("j1") == 0


def test_events_unknown_job(client):
    assert client.get("/api/jobs/nope/events").status_code == 404


def test_events_subscribe_only_when_streamed(store):
    store.create("j1", "s", "optimize", url="https://example.com")
    request = SimpleNamespace(app=SimpleNamespace(state=SimpleNamespace(store=store)))

    # A client that goes away before the body is iterated leaves no listener.
    response = job_events("j1", request)
    assert response.media_type == "text/event-stream"
    assert store.listener_count("j1") == 0


def test_score_endpoint(client, long_article):
    response = client.post("/api/score", json={
        "content": long_article,
        "paaQuestions": ["What is a trail running shoe?"],
        "targetEntities": ["cushioning"],
    })
    assert response.status_code == 200
    report = response.json()
    assert report["completeness"] == 100
    assert 0 <= report["overall"] <= 100


class TestValidateContent:

    def _payload(self, **strategy):
        content_strategy = {"wordCount": 1800, "readabilityScore": 70, "keywordDensity": 1.2,
                            "lsiKeywords": ["a", "b", "c"]}
        content_strategy.update(strategy)
        return {
            "optimization": {
                "optimizedTitle": "Trail Running Shoes: How to Choose the Right Pair Today",
                "metaDescription": "m" * 155,
                "h1": "Trail Running Shoes",
                "h2s": ["A", "B", "C", "D", "E"],
                "contentStrategy": content_strategy,
                "internalLinks": [{"target": "/a"}, {"target": "/b"}],
                "qualityScore": 85,
            },
            "targetKeyword": "trail running shoes",
        }

    def test_publishable(self, client):
        body = client.post("/api/validate-content", json=self._payload()).json()
        assert body["canPublish"] is True
        assert body["summary"]["errors"] == 0
        assert body["summary"]["total"] == 11

    def test_short_content_blocked(self, client):
        payload = self._payload(wordCount=500)
        payload["optimization"]["qualityScore"] = 40
        body = client.post("/api/validate-content", json=payload).json()
        assert body["canPublish"] is False

    def test_missing_optimization_is_400(self, client):
        assert client.post("/api/validate-content", json={}).status_code == 400


def test_validate_provider_missing_fields(client):
    body = client.post("/api/validate-provider", json={"provider": "openai"}).json()
    assert body["success"] is False
    assert body["error_code"] == "MISSING_FIELDS"


def test_rate_limit_returns_429_with_retry_after(settings, store, executor):
    settings.perfector_rate_limit_max = 2
    app = create_app(settings=settings, store=store, executor=executor, rate_limiter=RateLimiter())
    client = TestClient(app)
    codes = [client.post("/api/score", json={"content": "x"}).status_code for _ in range(3)]
    assert codes == [200, 200, 429]

    response = client.post("/api/score", json={"content": "x"})
    assert response.status_code == 429
    assert int(response.headers["Retry-After"]) >= 1
    body = response.json()
    assert body["detail"]["code"] == "RATE_LIMITED"
    assert body["retryAfterMs"] > 0
    # Reads are never limited.
    assert client.get("/health").status_code == 200
