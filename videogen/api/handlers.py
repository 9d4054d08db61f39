"""Exception handlers that render the {success, error} envelope."""

import logging
from typing import Any, Dict, List, Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from videogen.config import Settings
from videogen.errors import AppError, RateLimitExceeded

logger = logging.getLogger(__name__)

GENERIC_MESSAGE = "An unexpected error occurred"


def error_response(
    status_code: int,
    code: str,
    message: str,
    details: Optional[List[Dict[str, Any]]] = None,
    headers: Optional[Dict[str, str]] = None,
) -> JSONResponse:
    error: Dict[str, Any] = {"code": code, "message": message}
    if details:
        error["details"] = details
    return JSONResponse(
        status_code=status_code,
        content={"success": False, "error": error},
        headers=headers,
    )


def register_exception_handlers(app: FastAPI, settings: Settings) -> None:

    @app.exception_handler(AppError)
    async def handle_app_error(request: Request, exc: AppError):
        message = exc.message
        if exc.status_code >= 500:
            logger.error(
                "Request failed %s %s code=%s message=%s",
                request.method, request.url.path, exc.code, exc.message,
            )
            if settings.is_production:
                message = GENERIC_MESSAGE
        else:
            logger.info(
                "Request rejected %s %s status=%d code=%s",
                request.method, request.url.path, exc.status_code, exc.code,
            )

        headers = None
        if isinstance(exc, RateLimitExceeded) and exc.retry_after:
            headers = {"Retry-After": str(exc.retry_after)}
        return error_response(exc.status_code, exc.code, message, exc.details, headers)

    @app.exception_handler(RequestValidationError)
    async def handle_validation_error(request: Request, exc: RequestValidationError):
        details = []
        for err in exc.errors():
            loc = [str(part) for part in err.get("loc", ()) if part not in ("body", "path", "query")]
            details.append({"field": ".".join(loc), "message": err.get("msg", "Invalid value")})
        return error_response(400, "VALIDATION_ERROR", "Validation failed", details)

    @app.exception_handler(StarletteHTTPException)
    async def handle_http_error(request: Request, exc: StarletteHTTPException):
        if exc.status_code == 404:
            return error_response(404, "NOT_FOUND", f"Route {request.method} {request.url.path} not found")
        if exc.status_code == 405:
            return error_response(405, "METHOD_NOT_ALLOWED", f"Method {request.method} not allowed")
        return error_response(exc.status_code, "HTTP_ERROR", str(exc.detail))

    @app.exception_handler(Exception)
    async def handle_unexpected(request: Request, exc: Exception):
        logger.error(
            "Unhandled error %s %s", request.method, request.url.path, exc_info=exc
        )
        message = GENERIC_MESSAGE if settings.is_production else str(exc) or GENERIC_MESSAGE
        return error_response(500, "INTERNAL_ERROR", message)
