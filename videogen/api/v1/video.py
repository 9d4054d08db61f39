"""Video generation API: job submission, status polling, modes and quota."""

import logging
import uuid

from fastapi import APIRouter, Depends, Request
from fastapi.concurrency import run_in_threadpool

from videogen.api.admission import client_rate_limit, generation_user, rate_limited_user
from videogen.api.v1.schemas import Envelope, JobAccepted, JobStatusView
from videogen.auth.identity import Identity
from videogen.errors import NotFoundError
from videogen.jobs.models import GenerationMode
from videogen.jobs.requests import (
    CameraStyle,
    GenerationRequest,
    ImageToVideoRequest,
    Lighting,
    MotionLevel,
    Quality,
    VideoToVideoRequest,
    check_limits,
)
from videogen.limits.quota import QuotaUsage

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/video")

_ACCEPTED_MESSAGE = "Video generation started. Poll /v1/video/status/{jobId} for updates."


async def _submit(
    request: Request, body: GenerationRequest, mode: GenerationMode, user: Identity
) -> Envelope[JobAccepted]:
    await run_in_threadpool(check_limits, body, request.app.state.settings)

    logger.info(
        "Generation request received uid=%s mode=%s prompt=%r",
        user.id, mode.value, body.prompt[:100],
    )
    submission = await request.app.state.orchestrator.submit(body, mode, user.id)
    return Envelope(
        data=JobAccepted(
            job_id=submission.job_id,
            mode=mode,
            message=_ACCEPTED_MESSAGE,
            quota=submission.quota,
        )
    )


@router.post("/text", status_code=202, response_model=Envelope[JobAccepted])
async def text_to_video(
    request: Request,
    body: GenerationRequest,
    user: Identity = Depends(generation_user),
):
    """Generate a video from a text prompt."""
    return await _submit(request, body, GenerationMode.TEXT_TO_VIDEO, user)


@router.post("/image", status_code=202, response_model=Envelope[JobAccepted])
async def image_to_video(
    request: Request,
    body: ImageToVideoRequest,
    user: Identity = Depends(generation_user),
):
    """Generate a video from a base64 encoded starting image."""
    return await _submit(request, body, GenerationMode.IMAGE_TO_VIDEO, user)


@router.post("/video", status_code=202, response_model=Envelope[JobAccepted])
async def video_to_video(
    request: Request,
    body: VideoToVideoRequest,
    user: Identity = Depends(generation_user),
):
    """Generate a video from a source video. Disabled unless ENABLE_VIDEO_TO_VIDEO is set."""
    return await _submit(request, body, GenerationMode.VIDEO_TO_VIDEO, user)


@router.get(
    "/status/{job_id}",
    response_model=Envelope[JobStatusView],
    response_model_exclude_none=True,
)
async def get_job_status(
    request: Request,
    job_id: uuid.UUID,
    user: Identity = Depends(rate_limited_user),
):
    """Current status of one of the caller's jobs. Other owners' jobs are 'not found'."""
    job = request.app.state.jobs.get(str(job_id), user.id)
    if job is None:
        raise NotFoundError(f"Job {job_id} not found")
    return Envelope(data=JobStatusView.from_job(job))


@router.get("/quota", response_model=Envelope[QuotaUsage])
async def get_quota(request: Request, user: Identity = Depends(rate_limited_user)):
    return Envelope(data=request.app.state.quota.usage(user.id))


@router.get("/modes", dependencies=[Depends(client_rate_limit)])
async def get_modes(request: Request):
    """Enabled generation modes and accepted parameter values."""
    settings = request.app.state.settings
    orchestrator = request.app.state.orchestrator
    return {
        "success": True,
        "data": {
            "supportedModes": [mode.value for mode in orchestrator.supported_modes()],
            "parameters": {
                "durationSeconds": {
                    "allowed": settings.allowed_durations,
                    "default": settings.default_duration_seconds,
                },
                "aspectRatio": {
                    "allowed": settings.allowed_aspect_ratios,
                    "default": settings.default_aspect_ratio,
                },
                "fps": {
                    "allowed": settings.allowed_fps,
                    "default": settings.default_fps,
                },
                "cameraStyle": {"allowed": [v.value for v in CameraStyle]},
                "motionLevel": {"allowed": [v.value for v in MotionLevel]},
                "lighting": {"allowed": [v.value for v in Lighting]},
                "quality": {
                    "allowed": [v.value for v in Quality],
                    "default": settings.default_quality,
                },
                "maxPromptLength": settings.max_prompt_length,
            },
        },
    }
