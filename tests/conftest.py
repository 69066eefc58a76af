"""Pytest configuration and fixtures."""

import os

import pytest

# Set before any optigence import so module-level loggers see a valid config
os.environ["SUPABASE_URL"] = "https://test.supabase.co"
os.environ["SUPABASE_SERVICE_ROLE_KEY"] = "test-key"
os.environ["OPTIGENCE_ENV"] = "test"
os.environ.pop("OPENAI_API_KEY", None)
os.environ.pop("GCAL_REFRESH_TOKEN", None)
os.environ.pop("GOOGLE_CLIENT_ID", None)
os.environ.pop("GOOGLE_CLIENT_SECRET", None)
os.environ.pop("TOKEN_ENCRYPTION_KEY", None)


@pytest.fixture(autouse=True)
def fresh_settings():
    """Drop cached settings so per-test env changes take effect."""
    from optigence.core.config import get_settings

    get_settings.cache_clear()
    yield
    get_settings.cache_clear()
