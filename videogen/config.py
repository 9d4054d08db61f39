"""Application configuration via environment variables."""

from pydantic_settings import BaseSettings
from typing import List, Optional


class Settings(BaseSettings):
    # Runtime
    environment: str = "development"  # "development" or "production"
    log_level: str = "INFO"
    port: int = 8080
    allowed_origins: List[str] = ["*"]

    # Supabase (identity verification)
    supabase_url: str = ""
    supabase_anon_key: str = ""

    # Vertex AI / Veo
    gcp_project_id: Optional[str] = None
    gcp_region: str = "us-central1"
    veo_model_id: str = "veo-3.0-generate-preview"
    provider_timeout_seconds: float = 600.0

    # Generation modes enabled for this deployment
    enable_text_to_video: bool = True
    enable_image_to_video: bool = False
    enable_video_to_video: bool = False

    # Parameter forwarding allowlist; only enable after confirming the model schema
    forward_fps: bool = False
    forward_seed: bool = True
    forward_negative_prompt: bool = True
    forward_generate_audio: bool = False
    forward_resolution: bool = False

    # Request defaults and limits
    default_duration_seconds: int = 5
    default_aspect_ratio: str = "16:9"
    default_fps: int = 24
    default_quality: str = "standard"
    allowed_durations: List[int] = [4, 6, 8]
    min_duration_seconds: int = 4
    max_duration_seconds: int = 8
    allowed_aspect_ratios: List[str] = ["16:9", "9:16", "1:1"]
    allowed_fps: List[int] = [24, 30]
    max_prompt_length: int = 2000
    max_image_base64_length: int = 10 * 1024 * 1024
    max_video_base64_length: int = 40 * 1024 * 1024
    max_request_body_bytes: int = 50 * 1024 * 1024

    # Artifact storage
    storage_backend: str = "gcs"  # "gcs" or "local"
    gcs_bucket_name: Optional[str] = None
    local_storage_dir: Optional[str] = None
    public_base_url: str = "http://localhost:8080"
    local_signing_secret: str = "change-me"
    signed_url_ttl_seconds: int = 3600

    # Quota and rate limiting
    daily_quota: int = 50
    rate_limit_window_seconds: int = 60
    rate_limit_max_requests: int = 100
    generation_rate_limit_window_seconds: int = 60
    generation_rate_limit_max_requests: int = 10

    # Job retention and cleanup
    job_retention_hours: int = 24
    enable_periodic_cleanup: bool = False
    cleanup_interval_seconds: int = 3600
    shutdown_grace_seconds: float = 30.0

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8", "extra": "ignore"}

    @property
    def is_production(self) -> bool:
        return self.environment.lower() == "production"

    def missing_required(self) -> List[str]:
        """Names of deployment settings that must be set before serving traffic."""
        missing = []
        if not self.gcp_project_id:
            missing.append("GCP_PROJECT_ID")
        if self.storage_backend == "gcs" and not self.gcs_bucket_name:
            missing.append("GCS_BUCKET_NAME")
        if not self.supabase_url:
            missing.append("SUPABASE_URL")
        return missing


settings = Settings()
