"""Application error taxonomy.

Each error carries the HTTP status and machine-readable code used in the
response envelope. Admission-time errors are raised synchronously to the
caller; post-admission failures are recorded on the job instead.
"""

from typing import Any, Dict, List, Optional


class AppError(Exception):
    status_code = 500
    code = "INTERNAL_ERROR"

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        code: Optional[str] = None,
        details: Optional[List[Dict[str, Any]]] = None,
    ):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code
        if code is not None:
            self.code = code
        self.details = details or []


class ValidationError(AppError):
    status_code = 400
    code = "VALIDATION_ERROR"

    def __init__(self, message: str = "Validation failed", details=None):
        super().__init__(message, details=details)


class AuthenticationError(AppError):
    status_code = 401
    code = "AUTHENTICATION_ERROR"

    def __init__(self, message: str = "Authentication required"):
        super().__init__(message)


class NotFoundError(AppError):
    status_code = 404
    code = "NOT_FOUND"

    def __init__(self, message: str = "Resource not found"):
        super().__init__(message)


class RateLimitExceeded(AppError):
    status_code = 429
    code = "RATE_LIMIT_EXCEEDED"

    def __init__(self, message: str = "Too many requests, please try again later", retry_after: int = 0):
        super().__init__(message)
        self.retry_after = retry_after


class QuotaExceeded(AppError):
    status_code = 429
    code = "QUOTA_EXCEEDED"

    def __init__(self, owner_id: str, limit: int):
        super().__init__(
            f"Daily video generation quota exceeded. Limit: {limit} videos per day."
        )
        self.owner_id = owner_id
        self.limit = limit


class UnsupportedMode(AppError):
    status_code = 400
    code = "UNSUPPORTED_MODE"

    def __init__(self, mode: str):
        super().__init__(f"Video generation mode '{mode}' is not supported")
        self.mode = mode


class ProviderError(AppError):
    status_code = 502
    code = "PROVIDER_ERROR"


class StorageError(AppError):
    status_code = 502
    code = "STORAGE_ERROR"
