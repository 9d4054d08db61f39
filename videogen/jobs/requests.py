"""Validated generation request bodies.

Field names are snake_case in Python and camelCase on the wire.
Limits that depend on deployment settings (prompt length, durations,
aspect ratios, fps) are checked separately by check_limits().
"""

import base64
import binascii
import io
from enum import Enum
from typing import Any, Dict, List, Optional

from PIL import Image, UnidentifiedImageError
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from videogen.config import Settings
from videogen.errors import ValidationError


class AspectRatio(str, Enum):
    LANDSCAPE = "16:9"
    PORTRAIT = "9:16"
    SQUARE = "1:1"


class CameraStyle(str, Enum):
    CINEMATIC = "cinematic"
    HANDHELD = "handheld"
    DOCUMENTARY = "documentary"


class MotionLevel(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class Lighting(str, Enum):
    NATURAL = "natural"
    DRAMATIC = "dramatic"
    SOFT = "soft"


class Quality(str, Enum):
    STANDARD = "standard"
    HIGH = "high"


class ImageMimeType(str, Enum):
    PNG = "image/png"
    JPEG = "image/jpeg"
    WEBP = "image/webp"


class VideoMimeType(str, Enum):
    MP4 = "video/mp4"
    WEBM = "video/webm"


_PIL_FORMAT_MIME = {
    "PNG": ImageMimeType.PNG,
    "JPEG": ImageMimeType.JPEG,
    "WEBP": ImageMimeType.WEBP,
}


class GenerationRequest(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        str_strip_whitespace=True,
    )

    prompt: str = Field(min_length=1)
    duration_seconds: Optional[int] = None
    aspect_ratio: Optional[AspectRatio] = None
    fps: Optional[int] = None
    camera_style: Optional[CameraStyle] = None
    motion_level: Optional[MotionLevel] = None
    lighting: Optional[Lighting] = None
    quality: Optional[Quality] = None
    seed: Optional[int] = Field(default=None, ge=0)
    negative_prompt: Optional[str] = Field(default=None, max_length=500)
    generate_audio: Optional[bool] = None


class ImageToVideoRequest(GenerationRequest):
    image_base64: str = Field(min_length=1)
    image_mime_type: Optional[ImageMimeType] = None


class VideoToVideoRequest(GenerationRequest):
    video_base64: str = Field(min_length=1)
    video_mime_type: VideoMimeType = VideoMimeType.MP4


def _problem(field: str, message: str, value: Any = None) -> Dict[str, Any]:
    problem = {"field": field, "message": message}
    if value is not None:
        problem["value"] = value
    return problem


def _inspect_image(request: ImageToVideoRequest) -> Optional[Dict[str, Any]]:
    """Check the image decodes and fill in its MIME type when omitted."""
    try:
        raw = base64.b64decode(request.image_base64, validate=True)
    except (binascii.Error, ValueError):
        return _problem("imageBase64", "Image must be base64 encoded")

    try:
        with Image.open(io.BytesIO(raw)) as img:
            img_format = img.format
            img.verify()
    except (UnidentifiedImageError, OSError, SyntaxError):
        return _problem("imageBase64", "Image data could not be decoded")

    detected = _PIL_FORMAT_MIME.get(img_format or "")
    if detected is None:
        return _problem("imageBase64", "Image must be PNG, JPEG or WebP", img_format)
    if request.image_mime_type is None:
        request.image_mime_type = detected
    return None


def check_limits(request: GenerationRequest, settings: Settings) -> None:
    """Validate a request against the deployment's configured limits.

    Raises ValidationError listing every problem found.
    """
    problems: List[Dict[str, Any]] = []

    if len(request.prompt) > settings.max_prompt_length:
        problems.append(_problem(
            "prompt", f"Prompt must not exceed {settings.max_prompt_length} characters"
        ))

    if request.duration_seconds is not None and not (
        settings.min_duration_seconds <= request.duration_seconds <= settings.max_duration_seconds
    ):
        problems.append(_problem(
            "durationSeconds",
            f"Duration must be between {settings.min_duration_seconds} and "
            f"{settings.max_duration_seconds} seconds",
            request.duration_seconds,
        ))

    if request.aspect_ratio is not None and request.aspect_ratio.value not in settings.allowed_aspect_ratios:
        problems.append(_problem(
            "aspectRatio",
            f"Aspect ratio must be one of: {', '.join(settings.allowed_aspect_ratios)}",
            request.aspect_ratio.value,
        ))

    if request.fps is not None and request.fps not in settings.allowed_fps:
        problems.append(_problem(
            "fps",
            f"FPS must be one of: {', '.join(str(f) for f in settings.allowed_fps)}",
            request.fps,
        ))

    if isinstance(request, ImageToVideoRequest):
        if len(request.image_base64) > settings.max_image_base64_length:
            problems.append(_problem("imageBase64", "Image data too large"))
        else:
            problem = _inspect_image(request)
            if problem:
                problems.append(problem)

    if isinstance(request, VideoToVideoRequest) and len(request.video_base64) > settings.max_video_base64_length:
        problems.append(_problem("videoBase64", "Video data too large"))

    if problems:
        raise ValidationError("Validation failed", details=problems)
