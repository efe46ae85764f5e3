"""Shared fixtures for backend client tests."""

from __future__ import annotations

import pytest

from src.config import Settings


@pytest.fixture
def backend_settings() -> Settings:
    return Settings(api_base_url="https://api.test/", api_timeout_seconds=5)


async def fixed_token() -> str | None:
    return "tok_123"


async def no_token() -> str | None:
    return None
