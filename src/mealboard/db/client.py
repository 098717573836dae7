"""
Meal Board - Supabase Client.

Low-level database access. The reservation store builds its queries
on the client returned here.
"""

from supabase import Client, create_client

from mealboard.config import settings

# Singleton client instance
_client: Client | None = None


def get_client() -> Client:
    """
    Get the Supabase client.

    Uses singleton pattern to reuse connection.
    """
    global _client

    if _client is None:
        _client = create_client(
            settings.supabase_url,
            settings.supabase_anon_key,
        )

    return _client


def reset_client() -> None:
    """Drop the cached client (settings changed, or between tests)."""
    global _client
    _client = None
