"""Health check endpoints."""

from datetime import datetime, timezone
import platform
import sys
import time

from fastapi import APIRouter, Request

from videogen.api.handlers import error_response

router = APIRouter(prefix="/health")

_STARTED = time.monotonic()


def _timestamp() -> str:
    return datetime.now(timezone.utc).isoformat()


@router.get("")
async def health_check(request: Request):
    """Service health and job ledger stats."""
    settings = request.app.state.settings
    return {
        "success": True,
        "data": {
            "status": "healthy",
            "timestamp": _timestamp(),
            "version": request.app.version,
            "environment": settings.environment,
            "region": settings.gcp_region,
            "jobs": request.app.state.jobs.count_by_status(),
            "inFlight": request.app.state.orchestrator.in_flight,
            "pythonVersion": sys.version.split()[0],
            "platform": platform.platform(),
        },
    }


@router.get("/live")
async def liveness():
    return {
        "success": True,
        "data": {
            "alive": True,
            "timestamp": _timestamp(),
            "uptime": round(time.monotonic() - _STARTED, 3),
        },
    }


@router.get("/ready")
async def readiness(request: Request):
    """Ready once the deployment's required settings are present."""
    missing = request.app.state.settings.missing_required()
    if missing:
        return error_response(503, "NOT_READY", "Service is not ready")
    return {"success": True, "data": {"ready": True, "timestamp": _timestamp()}}
