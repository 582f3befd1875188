"""Shared fixtures for integration tests against a real Redis server.

All integration tests are skipped unless REDIS_URL is set, so the suite
runs in CI without a server while still supporting local testing.

Required env vars:
    REDIS_URL   — e.g., redis://localhost:6379/15 (the database is flushed)
"""

from __future__ import annotations

import os

import pytest

pytestmark = pytest.mark.integration


@pytest.fixture(scope="session")
def redis_url():
    """Return REDIS_URL or skip."""
    url = os.environ.get("REDIS_URL")
    if not url:
        pytest.skip("Integration tests require REDIS_URL")
    return url
