from datetime import datetime, timedelta, timezone

import pytest

from videogen.jobs.models import GenerationMode, JobResult, JobStatus
from videogen.jobs.store import InvalidTransition, JobNotFound, JobStore


class Clock:
    def __init__(self):
        self.now = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)

    def __call__(self):
        return self.now


def _result():
    return JobResult(
        video_uri="gs://bucket/videos/x.mp4",
        signed_url="https://signed/x",
        expires_at=datetime(2026, 3, 1, 13, 0, tzinfo=timezone.utc),
    )


def test_created_job_is_pending_and_owned():
    store = JobStore()
    job_id = store.create(GenerationMode.TEXT_TO_VIDEO, "alice")

    job = store.get(job_id, "alice")
    assert job.status == JobStatus.PENDING
    assert job.mode == GenerationMode.TEXT_TO_VIDEO
    assert job.result is None and job.error is None and job.completed_at is None


def test_job_ids_are_unique():
    store = JobStore()
    ids = {store.create(GenerationMode.TEXT_TO_VIDEO, "alice") for _ in range(100)}
    assert len(ids) == 100


def test_other_owner_sees_nothing():
    store = JobStore()
    job_id = store.create(GenerationMode.TEXT_TO_VIDEO, "alice")

    assert store.get(job_id, "mallory") is None
    assert store.get("no-such-job", "mallory") is None


def test_success_path_transitions():
    store = JobStore()
    job_id = store.create(GenerationMode.TEXT_TO_VIDEO, "alice")

    store.transition(job_id, status=JobStatus.PROCESSING)
    done = store.transition(
        job_id, status=JobStatus.COMPLETED, result=_result(), completed_at=datetime.now(timezone.utc)
    )

    assert done.status == JobStatus.COMPLETED
    assert store.get(job_id, "alice").result.video_uri == "gs://bucket/videos/x.mp4"


def test_reader_snapshot_is_not_mutated_by_later_transition():
    store = JobStore()
    job_id = store.create(GenerationMode.TEXT_TO_VIDEO, "alice")
    before = store.get(job_id, "alice")

    store.transition(job_id, status=JobStatus.PROCESSING)

    assert before.status == JobStatus.PENDING
    assert store.get(job_id, "alice").status == JobStatus.PROCESSING


def test_pending_cannot_skip_processing():
    store = JobStore()
    job_id = store.create(GenerationMode.TEXT_TO_VIDEO, "alice")
    with pytest.raises(InvalidTransition):
        store.transition(job_id, status=JobStatus.COMPLETED, result=_result())


def test_terminal_state_is_final():
    store = JobStore()
    job_id = store.create(GenerationMode.TEXT_TO_VIDEO, "alice")
    store.transition(job_id, status=JobStatus.PROCESSING)
    store.transition(job_id, status=JobStatus.FAILED, error="boom")

    with pytest.raises(InvalidTransition):
        store.transition(job_id, status=JobStatus.PROCESSING)
    with pytest.raises(InvalidTransition):
        store.transition(job_id, error="again")


def test_outcome_fields_must_match_status():
    store = JobStore()
    job_id = store.create(GenerationMode.TEXT_TO_VIDEO, "alice")
    store.transition(job_id, status=JobStatus.PROCESSING)

    with pytest.raises(ValueError):
        store.transition(job_id, status=JobStatus.COMPLETED)
    with pytest.raises(ValueError):
        store.transition(job_id, status=JobStatus.FAILED, error="x", result=_result())
    assert store.get(job_id, "alice").status == JobStatus.PROCESSING


def test_transition_unknown_job():
    with pytest.raises(JobNotFound):
        JobStore().transition("missing", status=JobStatus.PROCESSING)


def test_sweep_deletes_old_jobs_whatever_their_status():
    clock = Clock()
    store = JobStore(clock=clock)
    stuck = store.create(GenerationMode.TEXT_TO_VIDEO, "alice")
    store.transition(stuck, status=JobStatus.PROCESSING)
    finished = store.create(GenerationMode.TEXT_TO_VIDEO, "alice")
    store.transition(finished, status=JobStatus.PROCESSING)
    store.transition(finished, status=JobStatus.FAILED, error="boom")

    clock.now += timedelta(hours=23)
    fresh = store.create(GenerationMode.TEXT_TO_VIDEO, "alice")
    clock.now += timedelta(hours=2)

    assert store.sweep(timedelta(hours=24)) == 2
    assert store.get(stuck, "alice") is None
    assert store.get(finished, "alice") is None
    assert store.get(fresh, "alice").status == JobStatus.PENDING


def test_count_by_status():
    store = JobStore()
    job_id = store.create(GenerationMode.TEXT_TO_VIDEO, "alice")
    store.create(GenerationMode.TEXT_TO_VIDEO, "bob")
    store.transition(job_id, status=JobStatus.PROCESSING)

    assert store.count_by_status() == {"PENDING": 1, "PROCESSING": 1, "COMPLETED": 0, "FAILED": 0}
    assert len(store) == 2
