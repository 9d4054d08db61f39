"""Download endpoint for videos kept in local storage.

Only active when STORAGE_BACKEND=local. Links carry their own expiry and
HMAC signature, so no bearer token is required.
"""

import os

from fastapi import APIRouter, Query, Request
from fastapi.responses import FileResponse

from videogen.errors import AppError, NotFoundError, StorageError
from videogen.storage.local import LocalStorage

router = APIRouter()


@router.get("/files/{path:path}")
async def download_file(
    request: Request,
    path: str,
    expires: int = Query(...),
    signature: str = Query(...),
):
    storage = request.app.state.storage
    if not isinstance(storage, LocalStorage):
        raise NotFoundError("File not found")

    if not storage.verify(path, expires, signature):
        raise AppError("Download link is invalid or has expired", 403, "FORBIDDEN")

    try:
        full_path = storage.resolve(path)
    except StorageError:
        raise NotFoundError("File not found") from None
    if not os.path.isfile(full_path):
        raise NotFoundError("File not found")

    return FileResponse(full_path, media_type="video/mp4", filename=os.path.basename(full_path))
