"""Supabase JWT validation."""

import logging

from videogen.auth.identity import Identity, IdentityVerifier, InvalidToken
from videogen.config import Settings
from videogen.db.supabase_client import get_supabase

logger = logging.getLogger(__name__)


class SupabaseIdentityVerifier(IdentityVerifier):
    """Validates a Supabase access token by asking the auth server for its user."""

    def __init__(self, settings: Settings):
        self._settings = settings

    def verify(self, token: str) -> Identity:
        client = get_supabase(self._settings)
        try:
            user_response = client.auth.get_user(token)
        except Exception as e:
            logger.warning("Supabase token verification failed: %s", e)
            raise InvalidToken("Invalid or expired authentication token.") from e

        user = user_response.user if user_response else None
        if user is None:
            raise InvalidToken("Invalid or expired authentication token.")

        return Identity(
            id=user.id,
            email=user.email,
            claims={
                "role": user.role,
                "app_metadata": user.app_metadata or {},
            },
        )
