"""Admission pipeline as FastAPI dependencies.

identity -> general rate limit -> generation rate limit. Quota is consumed
later by the orchestrator, after the mode-support check.
"""

import logging
from typing import Optional

from fastapi import Depends, Header, Request

from videogen.auth.identity import Identity, InvalidToken
from videogen.errors import AuthenticationError, RateLimitExceeded
from videogen.limits.rate_limiter import RateLimiter

logger = logging.getLogger(__name__)


def get_current_user(request: Request, authorization: Optional[str] = Header(None)) -> Identity:
    """Verify the bearer token and return the caller's identity."""
    if not authorization:
        logger.warning("Request missing Authorization header path=%s", request.url.path)
        raise AuthenticationError("Authorization header is required")

    parts = authorization.split(" ")
    if len(parts) != 2 or parts[0] != "Bearer" or not parts[1]:
        logger.warning("Invalid Authorization header format path=%s", request.url.path)
        raise AuthenticationError("Invalid Authorization header format. Expected: Bearer <token>")

    try:
        identity = request.app.state.verifier.verify(parts[1])
    except InvalidToken as e:
        raise AuthenticationError(str(e) or "Invalid or expired authentication token.") from e

    request.state.user_id = identity.id
    return identity


def _enforce(limiter: RateLimiter, key: str, message: str) -> None:
    if not limiter.admit(key):
        retry_after = limiter.retry_after(key)
        logger.warning("Rate limit exceeded limiter=%s key=%s retry_after=%ds", limiter.name, key, retry_after)
        raise RateLimitExceeded(message, retry_after=retry_after)


def rate_limited_user(request: Request, user: Identity = Depends(get_current_user)) -> Identity:
    """Authenticated caller within the general request limit."""
    _enforce(request.app.state.general_limiter, user.id, "Too many requests, please try again later")
    return user


def generation_user(request: Request, user: Identity = Depends(rate_limited_user)) -> Identity:
    """Authenticated caller within the stricter job-creation limit."""
    _enforce(
        request.app.state.generation_limiter,
        user.id,
        "Video generation rate limit exceeded. Please wait before submitting more requests.",
    )
    return user


def client_rate_limit(request: Request) -> None:
    """General limit keyed by client address, for unauthenticated paths."""
    key = request.client.host if request.client else "unknown"
    _enforce(request.app.state.general_limiter, f"ip:{key}", "Too many requests, please try again later")
