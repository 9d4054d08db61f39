"""Supabase client singleton used for token verification."""

from supabase import create_client, Client
from videogen.config import Settings

_client: Client | None = None


def get_supabase(settings: Settings) -> Client:
    """Get or create the Supabase client using the anon key."""
    global _client
    if _client is None:
        if not settings.supabase_url or not settings.supabase_anon_key:
            raise RuntimeError(
                "SUPABASE_URL and SUPABASE_ANON_KEY must be set"
            )
        _client = create_client(
            settings.supabase_url,
            settings.supabase_anon_key,
        )
    return _client
