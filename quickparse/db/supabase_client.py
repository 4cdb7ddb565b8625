"""
Supabase client initialization module.

This module provides a thread-safe singleton Supabase client for reading
existing lecture questions. When SUPABASE_SERVICE_ROLE_KEY is set, the client
uses it to bypass RLS so that every question of a lecture is visible. Falls
back to the anon key.
"""

import threading
from supabase import create_client, Client
from quickparse.config import get_settings

_client: Client | None = None
_lock = threading.Lock()


def get_supabase_client() -> Client:
    """
    Return the shared Supabase client (singleton), initializing once in a thread-safe way.

    Prefers ``supabase_service_role_key`` (bypasses RLS) when available,
    otherwise falls back to ``supabase_key`` (anon key).

    Returns:
        Client: Shared Supabase client instance

    Raises:
        ValueError: If SUPABASE_URL or both keys are missing, or the client cannot be created
    """
    global _client
    if _client is not None:
        return _client
    with _lock:
        if _client is not None:
            return _client
        settings = get_settings()
        if not settings.supabase_configured:
            raise ValueError(
                "Supabase is not configured: set SUPABASE_URL and SUPABASE_KEY "
                "(or SUPABASE_SERVICE_ROLE_KEY)"
            )
        key = settings.supabase_service_role_key or settings.supabase_key
        try:
            _client = create_client(settings.supabase_url, key)
            return _client
        except Exception as e:
            raise ValueError(f"Failed to create Supabase client: {str(e)}") from e


def reset_supabase_client() -> None:
    """Drop the cached client so the next call re-reads settings."""
    global _client
    with _lock:
        _client = None
