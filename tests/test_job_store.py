"""Tests for the in-memory job registry."""

import threading

import pytest

from perfector.errors import InvalidTransitionError, JobNotFoundError, ValidationError
from perfector.jobs.models import ContentResult, JobState, StageStatus, StageUpdate


def _update(state: JobState, progress: int, **kw) -> StageUpdate:
    return StageUpdate(state=state, step_id=state.value, progress=progress, **kw)


class TestCreate:

    def test_new_job_is_pending_with_six_stages(self, store):
        job = store.create("j1", "site-1", "optimize", url="https://example.com/a")
        assert job.state == JobState.PENDING
        assert job.progress == 0
        assert [s.id for s in job.steps] == [
            "briefing", "outlining", "drafting", "enriching", "quality_check", "rendering",
        ]
        assert all(s.status == StageStatus.PENDING for s in job.steps)
        assert job.started_at is None

    def test_duplicate_id_rejected(self, store):
        store.create("j1", "s", "optimize")
        with pytest.raises(ValidationError):
            store.create("j1", "s", "optimize")

    def test_unknown_mode_rejected(self, store):
        with pytest.raises(ValueError):
            store.create("j1", "s", "publish")


class TestAdvance:

    def test_unknown_job(self, store):
        with pytest.raises(JobNotFoundError):
            store.advance("missing", _update(JobState.BRIEFING, 5))

    def test_stage_running_then_complete(self, store):
        store.create("j1", "s", "optimize")
        store.advance("j1", _update(JobState.BRIEFING, 5, stage_progress=0, message="start"))
        job = store.get("j1")
        assert job.state == JobState.BRIEFING
        assert job.started_at is not None
        assert job.stage("briefing").status == StageStatus.RUNNING

        store.advance("j1", _update(JobState.BRIEFING, 15, stage_progress=100, data={"topic": "x"}))
        job = store.get("j1")
        stage = job.stage("briefing")
        assert job.progress == 15
        assert stage.status == StageStatus.COMPLETE
        assert stage.progress == 100
        assert stage.data == {"topic": "x"}
        assert stage.duration_ms >= 0

    def test_backward_state_rejected(self, store):
        store.create("j1", "s", "optimize")
        store.advance("j1", _update(JobState.DRAFTING, 30))
        with pytest.raises(InvalidTransitionError):
            store.advance("j1", _update(JobState.BRIEFING, 40))

    def test_terminal_state_via_advance_rejected(self, store):
        store.create("j1", "s", "optimize")
        with pytest.raises(InvalidTransitionError):
            store.advance("j1", StageUpdate(state=JobState.COMPLETE, step_id="rendering", progress=100))

    def test_progress_regression_is_clamped(self, store):
        store.create("j1", "s", "optimize")
        store.advance("j1", _update(JobState.DRAFTING, 40))
        store.advance("j1", _update(JobState.DRAFTING, 20))
        assert store.get("j1").progress == 40

    def test_advance_after_complete_is_ignored(self, store):
        store.create("j1", "s", "optimize")
        store.complete("j1")
        store.advance("j1", _update(JobState.RENDERING, 90))
        job = store.get("j1")
        assert job.state == JobState.COMPLETE
        assert job.progress == 100


class TestTerminal:

    def test_complete_sets_result(self, store):
        store.create("j1", "s", "optimize")
        store.complete("j1", result=ContentResult(title="T", word_count=10))
        job = store.get("j1")
        assert job.state == JobState.COMPLETE
        assert job.progress == 100
        assert job.completed_at is not None
        assert job.result.title == "T"

    def test_fail_marks_running_stage(self, store):
        store.create("j1", "s", "optimize")
        store.advance("j1", _update(JobState.DRAFTING, 30, stage_progress=0))
        store.fail("j1", "boom")
        job = store.get("j1")
        assert job.state == JobState.FAILED
        assert job.error == "boom"
        assert job.stage("drafting").status == StageStatus.FAILED

    def test_fail_is_idempotent_and_terminal_is_sticky(self, store):
        store.create("j1", "s", "optimize")
        store.fail("j1", "first")
        store.fail("j1", "second")
        store.complete("j1")
        job = store.get("j1")
        assert job.state == JobState.FAILED
        assert job.error == "first"


class TestReads:

    def test_get_returns_snapshot(self, store):
        store.create("j1", "s", "optimize")
        snapshot = store.get("j1")
        snapshot.progress = 99
        assert store.get("j1").progress == 0

    def test_get_unknown_returns_none(self, store):
        assert store.get("nope") is None

    def test_list_jobs_newest_first(self, store):
        for i in range(3):
            store.create(f"j{i}", "s", "optimize")
        assert len(store) == 3
        assert "j1" in store
        assert len(store.list_jobs(limit=2)) == 2


class TestSubscribe:

    def test_listener_sees_mutations_in_order(self, store):
        store.create("j1", "s", "optimize")
        seen = []
        sub = store.subscribe("j1", lambda job: seen.append((job.state, job.progress)))
        store.advance("j1", _update(JobState.BRIEFING, 5))
        store.advance("j1", _update(JobState.BRIEFING, 15))
        store.complete("j1")
        sub.unsubscribe()
        store.fail("j1", "ignored")
        assert seen == [
            (JobState.BRIEFING, 5),
            (JobState.BRIEFING, 15),
            (JobState.COMPLETE, 100),
        ]

    def test_raising_listener_does_not_break_writer(self, store):
        store.create("j1", "s", "optimize")

        def bad(job):
            raise RuntimeError("listener bug")

        with store.subscribe("j1", bad):
            store.advance("j1", _update(JobState.BRIEFING, 5))
        assert store.get("j1").progress == 5

    def test_subscribe_unknown_job(self, store):
        with pytest.raises(JobNotFoundError):
            store.subscribe("missing", lambda job: None)

    def test_each_listener_gets_its_own_snapshot(self, store):
        store.create("j1", "s", "optimize")
        seen = []

        def meddler(job):
            job.progress = 99
            job.metadata["touched"] = True
            job.steps[0].message = "rewritten"

        store.subscribe("j1", meddler)
        store.subscribe("j1", seen.append)
        store.advance("j1", _update(JobState.BRIEFING, 5, message="Building brief"))

        assert seen[0].progress == 5
        assert "touched" not in seen[0].metadata
        assert seen[0].steps[0].message == "Building brief"
        assert store.get("j1").progress == 5

    def test_listener_count_tracks_subscriptions(self, store):
        store.create("j1", "s", "optimize")
        with store.subscribe("j1", lambda job: None):
            assert store.listener_count("j1") == 1
        assert store.listener_count("j1") == 0


def test_concurrent_writers_keep_progress_monotonic(store):
    store.create("j1", "s", "optimize")
    observed = []
    store.subscribe("j1", lambda job: observed.append(job.progress))

    def writer(offset):
        for p in range(offset, 90, 4):
            store.advance("j1", _update(JobState.DRAFTING, p))

    threads = [threading.Thread(target=writer, args=(i,)) for i in range(4)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert observed == sorted(observed)
    assert store.get("j1").progress == max(observed)
