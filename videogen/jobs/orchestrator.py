"""Generation orchestrator: admits jobs and runs them as detached asyncio tasks.

Each job gets its own task. Blocking provider and storage calls run in a
thread executor so the event loop keeps serving other requests. The task
is the only writer of its job record.
"""

import asyncio
import base64
import binascii
import logging
from dataclasses import dataclass
from datetime import timedelta
from typing import Any, Dict, List, Optional, Set

from videogen.config import Settings
from videogen.errors import ProviderError, UnsupportedMode
from videogen.jobs.models import GenerationMode, JobResult, JobStatus, utc_now
from videogen.jobs.requests import GenerationRequest
from videogen.jobs.store import InvalidTransition, JobNotFound, JobStore
from videogen.limits.quota import QuotaLedger, QuotaUsage
from videogen.providers.base import InferenceProvider
from videogen.providers.request_builder import build_instance, build_parameters
from videogen.storage.base import ObjectStorage

logger = logging.getLogger(__name__)


@dataclass
class Submission:
    job_id: str
    quota: QuotaUsage


class GenerationOrchestrator:

    def __init__(
        self,
        store: JobStore,
        quota: QuotaLedger,
        provider: InferenceProvider,
        storage: ObjectStorage,
        settings: Settings,
    ):
        self._store = store
        self._quota = quota
        self._provider = provider
        self._storage = storage
        self._settings = settings
        self._tasks: Set[asyncio.Task] = set()

    def supported_modes(self) -> List[GenerationMode]:
        enabled = {
            GenerationMode.TEXT_TO_VIDEO: self._settings.enable_text_to_video,
            GenerationMode.IMAGE_TO_VIDEO: self._settings.enable_image_to_video,
            GenerationMode.VIDEO_TO_VIDEO: self._settings.enable_video_to_video,
        }
        return [mode for mode, on in enabled.items() if on]

    def is_mode_supported(self, mode: GenerationMode) -> bool:
        return mode in self.supported_modes()

    @property
    def in_flight(self) -> int:
        return len(self._tasks)

    async def submit(
        self, request: GenerationRequest, mode: GenerationMode, owner_id: str
    ) -> Submission:
        """Admit a request and start generation without waiting for it.

        Order: mode check, quota consume, job creation, task spawn.
        """
        if not self.is_mode_supported(mode):
            raise UnsupportedMode(mode.value)

        usage = self._quota.consume(owner_id)
        job_id = self._store.create(mode, owner_id)
        logger.info("Job created job_id=%s uid=%s mode=%s", job_id, owner_id, mode.value)

        task = asyncio.create_task(self._run(job_id, request, mode), name=f"job-{job_id}")
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return Submission(job_id=job_id, quota=usage)

    async def drain(self, timeout: Optional[float] = None) -> None:
        """Wait for in-flight jobs; cancel whatever is left after timeout."""
        if not self._tasks:
            return
        pending = list(self._tasks)
        _, still_running = await asyncio.wait(pending, timeout=timeout)
        for task in still_running:
            task.cancel()
        if still_running:
            logger.warning("Cancelled %d unfinished job task(s) at shutdown", len(still_running))
            await asyncio.gather(*still_running, return_exceptions=True)

    async def _run(self, job_id: str, request: GenerationRequest, mode: GenerationMode) -> None:
        if not self._record(job_id, status=JobStatus.PROCESSING):
            return

        try:
            result = await self._generate(job_id, request, mode)
        except asyncio.CancelledError:
            raise
        except Exception as e:
            logger.exception("Generation failed job_id=%s mode=%s", job_id, mode.value)
            message = getattr(e, "message", None) or str(e) or type(e).__name__
            self._record(
                job_id,
                status=JobStatus.FAILED,
                error=message,
                completed_at=utc_now(),
            )
            return

        self._record(
            job_id,
            status=JobStatus.COMPLETED,
            result=result,
            completed_at=utc_now(),
        )
        logger.info("Generation completed job_id=%s mode=%s", job_id, mode.value)

    def _record(self, job_id: str, **fields) -> bool:
        """Apply a transition; False if the job is gone or already settled."""
        try:
            self._store.transition(job_id, **fields)
        except JobNotFound:
            logger.warning("Job evicted before it finished job_id=%s", job_id)
            return False
        except InvalidTransition as e:
            logger.error("Rejected transition: %s", e)
            return False
        return True

    async def _generate(
        self, job_id: str, request: GenerationRequest, mode: GenerationMode
    ) -> JobResult:
        loop = asyncio.get_running_loop()
        endpoint = self._provider.endpoint()
        instance = build_instance(request, mode)
        parameters = build_parameters(request, self._settings)

        logger.info(
            "Starting generation job_id=%s mode=%s aspect_ratio=%s duration=%s",
            job_id,
            mode.value,
            parameters["aspectRatio"],
            parameters["durationSeconds"],
        )
        predictions = await loop.run_in_executor(
            None, self._provider.predict, endpoint, [instance], parameters
        )
        return await self._store_artifact(job_id, predictions)

    async def _store_artifact(self, job_id: str, predictions: List[Dict[str, Any]]) -> JobResult:
        """Upload inline bytes or reuse the provider's locator, then sign it."""
        if not predictions:
            raise ProviderError("No video generated in response")

        loop = asyncio.get_running_loop()
        prediction = predictions[0]

        if prediction.get("bytesBase64Encoded"):
            try:
                video = base64.b64decode(prediction["bytesBase64Encoded"], validate=True)
            except (binascii.Error, ValueError) as e:
                raise ProviderError("Provider returned undecodable video bytes") from e
            locator = await loop.run_in_executor(
                None, self._storage.upload, video, f"videos/{job_id}.mp4"
            )
        elif prediction.get("gcsUri"):
            locator = prediction["gcsUri"]
        else:
            raise ProviderError("Unexpected response format from provider")

        ttl = self._settings.signed_url_ttl_seconds
        signed_url = await loop.run_in_executor(None, self._storage.sign_url, locator, ttl)
        return JobResult(
            video_uri=locator,
            signed_url=signed_url,
            expires_at=utc_now() + timedelta(seconds=ttl),
        )
