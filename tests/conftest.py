"""Root test fixtures shared across all test types.

This conftest contains fixtures that can be used by both unit and integration tests.
Database-specific fixtures are in tests/integration/conftest.py.
"""

import os

# Set environment before any app imports
os.environ.setdefault("APP_ENV", "testing")
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite://")
os.environ.pop("RESEND_API_KEY", None)
os.environ.pop("TEXT_GENERATION_API_KEY", None)
os.environ.pop("ENGINE_API_KEY", None)

# ruff: noqa: E402 - Imports must be after env var setup
import pytest

from src.leadflow.core.config import Settings, get_settings
from tests.helpers import (
    FailingDispatcher,
    FailingTextGenerator,
    FakeDispatcher,
    FakeTextGenerator,
)

# Clear settings cache to ensure test environment variables are picked up
get_settings.cache_clear()


@pytest.fixture
def settings() -> Settings:
    """Settings with the engine key and external providers disabled."""
    return Settings(
        _env_file=None,
        engine_api_key=None,
        resend_api_key=None,
        text_generation_api_key=None,
    )


# --- Collaborator fakes (shared) ---


@pytest.fixture
def text_generator() -> FakeTextGenerator:
    return FakeTextGenerator()


@pytest.fixture
def failing_text_generator() -> FailingTextGenerator:
    return FailingTextGenerator()


@pytest.fixture
def dispatcher() -> FakeDispatcher:
    return FakeDispatcher()


@pytest.fixture
def failing_dispatcher() -> FailingDispatcher:
    return FailingDispatcher()
