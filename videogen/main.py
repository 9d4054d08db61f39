"""Video generation gateway - FastAPI application."""

import logging
import time
from contextlib import asynccontextmanager
from datetime import timedelta
from typing import Optional

import uvicorn
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware

from videogen.api.handlers import error_response, register_exception_handlers
from videogen.api.v1.health import router as health_root_router
from videogen.api.v1.router import v1_router
from videogen.auth.identity import IdentityVerifier
from videogen.auth.supabase_auth import SupabaseIdentityVerifier
from videogen.config import Settings, settings as default_settings
from videogen.jobs.janitor import Janitor
from videogen.jobs.orchestrator import GenerationOrchestrator
from videogen.jobs.store import JobStore
from videogen.limits.quota import QuotaLedger
from videogen.limits.rate_limiter import RateLimiter
from videogen.providers.base import InferenceProvider
from videogen.providers.vertex import VertexPredictionProvider
from videogen.storage.base import ObjectStorage
from videogen.storage.gcs import GCSStorage
from videogen.storage.local import LocalStorage

VERSION = "1.0.0"

logger = logging.getLogger("videogen")


def configure_logging(level: str) -> None:
    logging.basicConfig(
        level=level.upper(),
        format="[videogen] %(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )


def build_storage(settings: Settings) -> ObjectStorage:
    if settings.storage_backend == "local":
        return LocalStorage(
            public_base_url=settings.public_base_url,
            secret=settings.local_signing_secret,
            base_dir=settings.local_storage_dir,
        )
    if settings.storage_backend == "gcs":
        return GCSStorage(settings.gcs_bucket_name)
    raise ValueError(f"Unknown STORAGE_BACKEND: {settings.storage_backend}")


def create_app(
    settings: Optional[Settings] = None,
    verifier: Optional[IdentityVerifier] = None,
    provider: Optional[InferenceProvider] = None,
    storage: Optional[ObjectStorage] = None,
) -> FastAPI:
    """Build the app. Collaborators default to the production implementations."""
    if settings is None:
        settings = default_settings
    configure_logging(settings.log_level)

    jobs = JobStore()
    quota = QuotaLedger(settings.daily_quota)
    if storage is None:
        storage = build_storage(settings)
    if provider is None:
        provider = VertexPredictionProvider(
            project_id=settings.gcp_project_id,
            region=settings.gcp_region,
            model_id=settings.veo_model_id,
            timeout=settings.provider_timeout_seconds,
        )
    orchestrator = GenerationOrchestrator(jobs, quota, provider, storage, settings)
    janitor = Janitor(
        jobs,
        quota,
        storage,
        retention=timedelta(hours=settings.job_retention_hours),
        interval_seconds=settings.cleanup_interval_seconds,
    )

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Startup and shutdown logic."""
        logger.info(
            "Starting video generation gateway environment=%s region=%s model=%s storage=%s",
            settings.environment, settings.gcp_region, settings.veo_model_id, settings.storage_backend,
        )
        missing = settings.missing_required()
        if missing:
            if settings.is_production:
                raise RuntimeError(f"Missing required environment variables: {', '.join(missing)}")
            logger.warning("Missing environment variables: %s", ", ".join(missing))

        if settings.enable_periodic_cleanup:
            await janitor.start()
            logger.info("Periodic cleanup every %ss", settings.cleanup_interval_seconds)

        yield

        logger.info("Shutting down video generation gateway")
        await janitor.stop()
        await orchestrator.drain(timeout=settings.shutdown_grace_seconds)

    app = FastAPI(
        title="Video Generation Gateway",
        description="Asynchronous text/image to video generation backed by Vertex AI",
        version=VERSION,
        lifespan=lifespan,
    )

    app.state.settings = settings
    app.state.jobs = jobs
    app.state.quota = quota
    app.state.storage = storage
    app.state.verifier = verifier if verifier is not None else SupabaseIdentityVerifier(settings)
    app.state.orchestrator = orchestrator
    app.state.janitor = janitor
    app.state.general_limiter = RateLimiter(
        settings.rate_limit_max_requests, settings.rate_limit_window_seconds, name="general"
    )
    app.state.generation_limiter = RateLimiter(
        settings.generation_rate_limit_max_requests,
        settings.generation_rate_limit_window_seconds,
        name="generation",
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.allowed_origins,
        allow_methods=["GET", "POST"],
        allow_headers=["Content-Type", "Authorization"],
        max_age=86400,
    )

    @app.middleware("http")
    async def limit_body_size(request: Request, call_next):
        length = request.headers.get("content-length", "")
        if length.isdigit() and int(length) > settings.max_request_body_bytes:
            logger.warning(
                "Request body too large path=%s bytes=%s limit=%d",
                request.url.path, length, settings.max_request_body_bytes,
            )
            return error_response(
                413,
                "PAYLOAD_TOO_LARGE",
                f"Request body exceeds {settings.max_request_body_bytes} bytes",
            )
        return await call_next(request)

    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        start = time.perf_counter()
        response = await call_next(request)
        logger.info(
            "Request processed method=%s path=%s status=%d duration_ms=%.1f client=%s uid=%s",
            request.method,
            request.url.path,
            response.status_code,
            (time.perf_counter() - start) * 1000,
            request.client.host if request.client else "-",
            getattr(request.state, "user_id", "-"),
        )
        return response

    register_exception_handlers(app, settings)

    app.include_router(health_root_router, tags=["health"])  # GET /health at root
    app.include_router(v1_router)  # All /v1/* endpoints

    @app.get("/", include_in_schema=False)
    async def root():
        return {
            "success": True,
            "data": {
                "service": "Video Generation Gateway",
                "version": VERSION,
                "documentation": "/v1/video/modes",
                "health": "/v1/health",
            },
        }

    return app


app = create_app()


if __name__ == "__main__":
    uvicorn.run(app, host="0.0.0.0", port=default_settings.port)
