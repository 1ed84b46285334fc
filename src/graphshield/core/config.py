"""Gateway configuration sourced from environment variables.

All values are read once, when get_security_config() is first called.
Numeric values follow lenient integer parsing: a leading integer is used
("25ms" -> 25) and anything else degrades to ``nan`` instead of raising.
"""

from __future__ import annotations

import math
import os
import re
from dataclasses import dataclass, field
from enum import Enum
from functools import lru_cache

DEFAULT_ENDPOINT = "https://rickandmortyapi.com/graphql"

_LEADING_INT = re.compile(r"^\s*([+-]?\d+)")


class Environment(str, Enum):
    """Runtime environment of the gateway."""

    DEVELOPMENT = "development"
    PRODUCTION = "production"
    TEST = "test"

    @classmethod
    def parse(cls, value: str | None) -> Environment:
        """Map an environment name onto a known environment.

        Unknown names are treated as production so masking stays on.
        """
        normalized = (value or "").strip().lower()
        if normalized in ("dev", "development", "local"):
            return cls.DEVELOPMENT
        if normalized in ("test", "testing"):
            return cls.TEST
        return cls.PRODUCTION


def parse_int(raw: str | None, default: int) -> int | float:
    """Parse an integer the way the upstream client configuration does.

    Args:
        raw: Raw environment value.
        default: Value used when the variable is unset or empty.

    Returns:
        The parsed integer, or ``nan`` when no leading integer exists.

    Examples:
        >>> parse_int(None, 10)
        10
        >>> parse_int("25ms", 10)
        25
        >>> parse_int("abc", 10)
        nan
    """
    if not raw:
        return default
    match = _LEADING_INT.match(raw)
    if match is None:
        return math.nan
    return int(match.group(1))


def current_environment() -> Environment:
    """Return the environment named by GRAPHSHIELD_ENV."""
    return Environment.parse(os.environ.get("GRAPHSHIELD_ENV"))


@dataclass(frozen=True)
class SecurityConfig:
    """Limits and switches for the gateway.

    Attributes:
        max_query_depth: Maximum nesting of selection sets.
        max_query_complexity: Maximum weighted field count.
        request_timeout_ms: Timeout applied to each upstream call.
        rate_limit: Requests allowed per identifier per window.
        rate_limit_window_seconds: Length of a rate limit window.
        endpoint: Upstream GraphQL endpoint.
        enable_audit_logging: Whether operations are audit logged.
        environment: Runtime environment.
    """

    max_query_depth: int | float = 10
    max_query_complexity: int | float = 1000
    request_timeout_ms: int | float = 10000
    rate_limit: int | float = 60
    rate_limit_window_seconds: float = 60.0
    endpoint: str = DEFAULT_ENDPOINT
    enable_audit_logging: bool = True
    environment: Environment = field(default=Environment.PRODUCTION)

    @property
    def masking_enabled(self) -> bool:
        """Masking is on everywhere except development."""
        return self.environment is not Environment.DEVELOPMENT

    @classmethod
    def from_env(cls) -> SecurityConfig:
        """Create configuration from environment variables."""
        env = os.environ
        return cls(
            max_query_depth=parse_int(env.get("GRAPHSHIELD_MAX_QUERY_DEPTH"), 10),
            max_query_complexity=parse_int(env.get("GRAPHSHIELD_MAX_QUERY_COMPLEXITY"), 1000),
            request_timeout_ms=parse_int(env.get("GRAPHSHIELD_REQUEST_TIMEOUT"), 10000),
            rate_limit=parse_int(env.get("GRAPHSHIELD_RATE_LIMIT"), 60),
            endpoint=env.get("GRAPHSHIELD_GRAPHQL_ENDPOINT") or DEFAULT_ENDPOINT,
            enable_audit_logging=env.get("GRAPHSHIELD_ENABLE_AUDIT_LOGGING") != "false",
            environment=current_environment(),
        )


@lru_cache
def get_security_config() -> SecurityConfig:
    """Get the process-wide configuration, read once from the environment.

    Returns:
        Cached SecurityConfig instance
    """
    return SecurityConfig.from_env()
