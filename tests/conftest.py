"""Pytest configuration and shared fixtures."""

from __future__ import annotations

import pytest

from graphshield.core.config import get_security_config
from graphshield.safety.masking import get_default_masker

# Re-export all fixtures from fixtures modules
from tests.fixtures.documents import *  # noqa: F401, F403
from tests.fixtures.mocks import *  # noqa: F401, F403


@pytest.fixture(autouse=True)
def isolated_config(monkeypatch: pytest.MonkeyPatch):
    """Give each test a configuration read from a clean environment."""
    for name in (
        "GRAPHSHIELD_ENV",
        "GRAPHSHIELD_MAX_QUERY_DEPTH",
        "GRAPHSHIELD_MAX_QUERY_COMPLEXITY",
        "GRAPHSHIELD_REQUEST_TIMEOUT",
        "GRAPHSHIELD_RATE_LIMIT",
        "GRAPHSHIELD_GRAPHQL_ENDPOINT",
        "GRAPHSHIELD_ENABLE_AUDIT_LOGGING",
    ):
        monkeypatch.delenv(name, raising=False)
    get_security_config.cache_clear()
    get_default_masker.cache_clear()
    yield
    get_security_config.cache_clear()
    get_default_masker.cache_clear()
