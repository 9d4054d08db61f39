"""Builds provider instances and parameters from a validated request."""

from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple

from videogen.config import Settings
from videogen.jobs.models import GenerationMode
from videogen.jobs.requests import (
    GenerationRequest,
    ImageMimeType,
    ImageToVideoRequest,
    Quality,
    VideoToVideoRequest,
)


# Parameters forwarded to the provider only when the deployment toggle is on
# AND the caller supplied a value: (provider field, settings toggle, getter).
FORWARDED_PARAMETERS: List[Tuple[str, str, Callable[[GenerationRequest], Any]]] = [
    ("fps", "forward_fps", lambda r: r.fps),
    ("negativePrompt", "forward_negative_prompt", lambda r: r.negative_prompt or None),
    ("seed", "forward_seed", lambda r: r.seed),
    ("generateAudio", "forward_generate_audio", lambda r: r.generate_audio),
    ("resolution", "forward_resolution", lambda r: "1080p" if r.quality == Quality.HIGH else None),
]


def build_prompt(request: GenerationRequest) -> str:
    """Caller prompt followed by camera, motion and lighting directives."""
    parts = [request.prompt]
    if request.camera_style:
        parts.append(f"Camera style: {request.camera_style.value}")
    if request.motion_level:
        parts.append(f"Motion: {request.motion_level.value}")
    if request.lighting:
        parts.append(f"Lighting: {request.lighting.value}")
    return ". ".join(parts)


def normalize_duration(requested: Optional[int], allowed: Sequence[int], default: int) -> int:
    """Snap a duration to the nearest allowed value; ties go to the smaller one."""
    target = default if requested is None else requested
    return min(allowed, key=lambda value: (abs(value - target), value))


def build_parameters(request: GenerationRequest, settings: Settings) -> Dict[str, Any]:
    aspect_ratio = request.aspect_ratio.value if request.aspect_ratio else settings.default_aspect_ratio
    parameters: Dict[str, Any] = {
        "aspectRatio": aspect_ratio,
        "durationSeconds": normalize_duration(
            request.duration_seconds,
            settings.allowed_durations,
            settings.default_duration_seconds,
        ),
    }
    for field, toggle, getter in FORWARDED_PARAMETERS:
        value = getter(request)
        if getattr(settings, toggle) and value is not None:
            parameters[field] = value
    return parameters


def build_instance(request: GenerationRequest, mode: GenerationMode) -> Dict[str, Any]:
    instance: Dict[str, Any] = {"prompt": build_prompt(request)}
    if mode == GenerationMode.IMAGE_TO_VIDEO:
        if not isinstance(request, ImageToVideoRequest):
            raise ValueError("Image to video requires an ImageToVideoRequest")
        mime_type = request.image_mime_type or ImageMimeType.PNG
        instance["image"] = {
            "bytesBase64Encoded": request.image_base64,
            "mimeType": mime_type.value,
        }
    elif mode == GenerationMode.VIDEO_TO_VIDEO:
        if not isinstance(request, VideoToVideoRequest):
            raise ValueError("Video to video requires a VideoToVideoRequest")
        instance["video"] = {
            "bytesBase64Encoded": request.video_base64,
            "mimeType": request.video_mime_type.value,
        }
    return instance
