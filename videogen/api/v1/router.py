"""Aggregate all v1 API routers."""

from fastapi import APIRouter
from videogen.api.v1.health import router as health_router
from videogen.api.v1.video import router as video_router
from videogen.api.v1.files import router as files_router

v1_router = APIRouter(prefix="/v1")
v1_router.include_router(health_router, tags=["health"])
v1_router.include_router(video_router, tags=["video"])
v1_router.include_router(files_router, tags=["files"])
