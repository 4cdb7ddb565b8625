"""Shared fixtures: isolated settings, fresh Supabase client and rate limiter."""

import pytest

from quickparse.config import get_settings
from quickparse.db.supabase_client import reset_supabase_client
from quickparse.middleware.rate_limit import limiter


@pytest.fixture(autouse=True)
def isolated_settings(monkeypatch, tmp_path):
    """Run every test without a .env file and without Supabase credentials."""
    monkeypatch.chdir(tmp_path)
    for name in (
        "SUPABASE_URL",
        "SUPABASE_KEY",
        "SUPABASE_SERVICE_ROLE_KEY",
        "QUESTIONS_TABLE",
        "MAX_INPUT_CHARS",
        "MULTILINE_STATEMENTS",
        "TRUSTED_PROXIES",
        "LOG_LEVEL",
    ):
        monkeypatch.delenv(name, raising=False)
    get_settings.cache_clear()
    reset_supabase_client()

    yield

    get_settings.cache_clear()
    reset_supabase_client()


@pytest.fixture(autouse=True)
def reset_rate_limiter() -> None:
    """Reset the rate limiter before each test."""
    limiter.reset()


@pytest.fixture
def sequential_ids():
    """Deterministic option id factory: opt_1, opt_2, ..."""
    counter = {"n": 0}

    def factory() -> str:
        counter["n"] += 1
        return f"opt_{counter['n']}"

    return factory
