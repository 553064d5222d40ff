"""Supabase client for the Python backend."""

import logging
from functools import lru_cache

from supabase import create_client, Client

from ..config import settings
from ..errors import PersistenceError

logger = logging.getLogger(__name__)


@lru_cache()
def get_supabase_client() -> Client | None:
    """Get cached Supabase client instance.

    Returns:
        Supabase Client instance if configured, None otherwise.
        Note: This does not test the connection - actual queries may fail with network errors.
    """
    if not settings.supabase_url or not settings.supabase_key:
        logger.warning("Supabase credentials not configured (missing URL or key)")
        return None

    try:
        return create_client(settings.supabase_url, settings.supabase_key)
    except Exception as e:
        logger.error(f"Failed to create Supabase client: {e}")
        return None


def require_client(client: Client | None = None) -> Client:
    """Return the given client, falling back to the cached one.

    Raises PersistenceError when no store is configured.
    """
    if client is not None:
        return client
    cached = get_supabase_client()
    if cached is None:
        raise PersistenceError(
            "Supabase is not configured. Set DAIRY_SUPABASE_URL and DAIRY_SUPABASE_KEY."
        )
    return cached
