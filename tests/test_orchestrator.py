import asyncio
import threading
from datetime import timedelta

import pytest

from conftest import FAKE_VIDEO, FakeProvider, FakeStorage, make_settings
from videogen.errors import ProviderError, QuotaExceeded, UnsupportedMode
from videogen.jobs.models import GenerationMode, JobStatus
from videogen.jobs.orchestrator import GenerationOrchestrator
from videogen.jobs.requests import GenerationRequest
from videogen.jobs.store import JobStore
from videogen.limits.quota import QuotaLedger


class RecordingStore(JobStore):
    """JobStore that remembers every status it moved through."""

    def __init__(self):
        super().__init__()
        self.history = {}

    def create(self, mode, owner_id):
        job_id = super().create(mode, owner_id)
        self.history[job_id] = [JobStatus.PENDING]
        return job_id

    def transition(self, job_id, **fields):
        job = super().transition(job_id, **fields)
        if "status" in fields:
            self.history[job_id].append(job.status)
        return job


def _orchestrator(provider=None, storage=None, store=None, daily_quota=5, **overrides):
    if store is None:
        store = RecordingStore()
    quota = QuotaLedger(daily_limit=daily_quota)
    orchestrator = GenerationOrchestrator(
        store,
        quota,
        provider or FakeProvider(),
        storage or FakeStorage(),
        make_settings(**overrides),
    )
    return orchestrator, store, quota


def _run(coro):
    return asyncio.run(coro)


def test_submit_returns_pending_job_before_provider_runs():
    provider = FakeProvider()
    orchestrator, store, _ = _orchestrator(provider=provider)

    async def scenario():
        submission = await orchestrator.submit(
            GenerationRequest(prompt="A"), GenerationMode.TEXT_TO_VIDEO, "alice"
        )
        job = store.get(submission.job_id, "alice")
        calls_before_drain = len(provider.calls)
        await orchestrator.drain()
        return submission, job, calls_before_drain

    submission, job, calls = _run(scenario())
    assert job.status == JobStatus.PENDING
    assert calls == 0
    assert submission.quota.used == 1


def test_inline_bytes_are_uploaded_and_signed():
    provider, storage = FakeProvider(), FakeStorage()
    orchestrator, store, _ = _orchestrator(provider=provider, storage=storage, signed_url_ttl_seconds=600)

    async def scenario():
        submission = await orchestrator.submit(
            GenerationRequest(prompt="A", camera_style="cinematic"), GenerationMode.TEXT_TO_VIDEO, "alice"
        )
        await orchestrator.drain()
        return submission.job_id

    job_id = _run(scenario())
    job = store.get(job_id, "alice")

    assert store.history[job_id] == [JobStatus.PENDING, JobStatus.PROCESSING, JobStatus.COMPLETED]
    assert job.error is None
    assert job.result.video_uri == f"gs://test-bucket/videos/{job_id}.mp4"
    assert job.result.signed_url.endswith("?ttl=600")
    assert job.completed_at is not None
    assert job.result.expires_at - job.completed_at <= timedelta(seconds=600)
    assert storage.objects[f"videos/{job_id}.mp4"] == FAKE_VIDEO

    call = provider.calls[0]
    assert call["endpoint"] == provider.endpoint()
    assert call["instances"] == [{"prompt": "A. Camera style: cinematic"}]


def test_provider_locator_is_signed_without_upload():
    provider = FakeProvider(predictions=[{"gcsUri": "gs://veo-out/sample_0.mp4"}])
    storage = FakeStorage()
    orchestrator, store, _ = _orchestrator(provider=provider, storage=storage)

    async def scenario():
        submission = await orchestrator.submit(
            GenerationRequest(prompt="A"), GenerationMode.TEXT_TO_VIDEO, "alice"
        )
        await orchestrator.drain()
        return submission.job_id

    job = store.get(_run(scenario()), "alice")
    assert job.status == JobStatus.COMPLETED
    assert job.result.video_uri == "gs://veo-out/sample_0.mp4"
    assert job.result.signed_url.startswith("https://storage.example/veo-out/sample_0.mp4")
    assert storage.objects == {}


@pytest.mark.parametrize(
    "provider, message",
    [
        (FakeProvider(error=ProviderError("model overloaded")), "model overloaded"),
        (FakeProvider(error=RuntimeError("socket closed")), "socket closed"),
        (FakeProvider(predictions=[]), "No video generated in response"),
        (FakeProvider(predictions=[{"mimeType": "video/mp4"}]), "Unexpected response format from provider"),
        (FakeProvider(predictions=[{"bytesBase64Encoded": "***"}]), "Provider returned undecodable video bytes"),
    ],
)
def test_failures_become_failed_jobs(provider, message):
    orchestrator, store, _ = _orchestrator(provider=provider)

    async def scenario():
        submission = await orchestrator.submit(
            GenerationRequest(prompt="A"), GenerationMode.TEXT_TO_VIDEO, "alice"
        )
        await orchestrator.drain()
        return submission.job_id

    job_id = _run(scenario())
    job = store.get(job_id, "alice")

    assert store.history[job_id] == [JobStatus.PENDING, JobStatus.PROCESSING, JobStatus.FAILED]
    assert job.error == message
    assert job.result is None
    assert job.completed_at is not None


def test_storage_failure_fails_the_job():
    class BrokenStorage(FakeStorage):
        def upload(self, data, path, content_type="video/mp4"):
            raise OSError("disk full")

    orchestrator, store, _ = _orchestrator(storage=BrokenStorage())

    async def scenario():
        submission = await orchestrator.submit(
            GenerationRequest(prompt="A"), GenerationMode.TEXT_TO_VIDEO, "alice"
        )
        await orchestrator.drain()
        return submission.job_id

    job = store.get(_run(scenario()), "alice")
    assert job.status == JobStatus.FAILED
    assert job.error == "disk full"


def test_disabled_mode_is_rejected_before_quota():
    orchestrator, store, quota = _orchestrator(enable_image_to_video=False)

    async def scenario():
        await orchestrator.submit(GenerationRequest(prompt="A"), GenerationMode.IMAGE_TO_VIDEO, "alice")

    with pytest.raises(UnsupportedMode):
        _run(scenario())
    assert quota.usage("alice").used == 0
    assert len(store) == 0


def test_quota_exceeded_creates_no_job():
    orchestrator, store, _ = _orchestrator(daily_quota=1)

    async def scenario():
        await orchestrator.submit(GenerationRequest(prompt="A"), GenerationMode.TEXT_TO_VIDEO, "alice")
        with pytest.raises(QuotaExceeded):
            await orchestrator.submit(GenerationRequest(prompt="A"), GenerationMode.TEXT_TO_VIDEO, "alice")
        await orchestrator.drain()

    _run(scenario())
    assert len(store) == 1


def test_job_evicted_mid_flight_is_dropped_quietly():
    store = RecordingStore()

    class EvictingProvider(FakeProvider):
        def predict(self, endpoint, instances, parameters):
            store.sweep(timedelta(seconds=-1))
            return super().predict(endpoint, instances, parameters)

    orchestrator, _, _ = _orchestrator(provider=EvictingProvider(), store=store)

    async def scenario():
        submission = await orchestrator.submit(
            GenerationRequest(prompt="A"), GenerationMode.TEXT_TO_VIDEO, "alice"
        )
        await orchestrator.drain()
        return submission.job_id

    job_id = _run(scenario())
    assert store.get(job_id, "alice") is None
    assert store.history[job_id] == [JobStatus.PENDING, JobStatus.PROCESSING]


def test_supported_modes_follow_settings():
    orchestrator, _, _ = _orchestrator(enable_image_to_video=False, enable_video_to_video=True)
    assert orchestrator.supported_modes() == [GenerationMode.TEXT_TO_VIDEO, GenerationMode.VIDEO_TO_VIDEO]


def test_drain_cancels_tasks_past_timeout():
    release = threading.Event()

    class SlowProvider(FakeProvider):
        def predict(self, endpoint, instances, parameters):
            release.wait(5)
            return super().predict(endpoint, instances, parameters)

    orchestrator, store, _ = _orchestrator(provider=SlowProvider())

    async def scenario():
        submission = await orchestrator.submit(
            GenerationRequest(prompt="A"), GenerationMode.TEXT_TO_VIDEO, "alice"
        )
        await orchestrator.drain(timeout=0.05)
        in_flight = orchestrator.in_flight
        release.set()
        return submission.job_id, in_flight

    job_id, in_flight = _run(scenario())
    assert in_flight == 0
    assert store.get(job_id, "alice").status == JobStatus.PROCESSING
