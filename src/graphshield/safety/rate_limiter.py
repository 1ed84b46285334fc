"""Fixed-window rate limiting per identifier."""

from __future__ import annotations

import threading
import time
from collections.abc import Callable
from dataclasses import dataclass

import structlog

from graphshield.core.config import get_security_config
from graphshield.core.domain_types import RateLimitResult
from graphshield.core.exceptions import RateLimitExceededError

logger = structlog.get_logger()

DEFAULT_IDENTIFIER = "default"


@dataclass
class RateLimitEntry:
    """Request count for one identifier within its current window."""

    count: int
    window_reset_at: float


class RateLimiter:
    """Counts requests per identifier in fixed, non-overlapping windows.

    A window starts on the first request for an identifier and lasts
    ``window_seconds``. Once ``limit`` requests were allowed, further
    checks are refused until the window has passed; the next check after
    that starts a fresh window with no carry-over.

    Usage:
        limiter = RateLimiter(limit=60)
        verdict = limiter.check("characters")
        if not verdict.allowed:
            ...
    """

    def __init__(
        self,
        limit: int | float | None = None,
        window_seconds: float | None = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        """Initialize the rate limiter.

        Args:
            limit: Requests allowed per window; defaults to configuration.
            window_seconds: Window length; defaults to configuration.
            clock: Source of the current time in epoch seconds.
        """
        config = get_security_config()
        self.limit = config.rate_limit if limit is None else limit
        self.window_seconds = (
            config.rate_limit_window_seconds if window_seconds is None else window_seconds
        )
        self._clock = clock
        self._entries: dict[str, RateLimitEntry] = {}
        self._lock = threading.Lock()

    def check(self, identifier: str = DEFAULT_IDENTIFIER) -> RateLimitResult:
        """Record a request for ``identifier`` if its window allows it.

        Args:
            identifier: Rate limit key.

        Returns:
            RateLimitResult; refused checks are not counted.
        """
        with self._lock:
            now = self._clock()
            entry = self._entries.get(identifier)

            if entry is None or now > entry.window_reset_at:
                entry = RateLimitEntry(count=0, window_reset_at=now + self.window_seconds)

            if entry.count >= self.limit:
                logger.warning("rate_limit_exceeded", identifier=identifier)
                return RateLimitResult(
                    allowed=False,
                    remaining=0,
                    reset_time=entry.window_reset_at,
                )

            entry.count += 1
            self._entries[identifier] = entry

            return RateLimitResult(
                allowed=True,
                remaining=self.limit - entry.count,
                reset_time=entry.window_reset_at,
            )

    def enforce(self, identifier: str = DEFAULT_IDENTIFIER) -> RateLimitResult:
        """Check like :meth:`check` but raise when the request is refused.

        Raises:
            RateLimitExceededError: If the window is exhausted.
        """
        verdict = self.check(identifier)
        if not verdict.allowed:
            raise RateLimitExceededError(identifier, verdict.reset_time)
        return verdict

    def reset(self, identifier: str | None = None) -> None:
        """Reset rate limit for an identifier or all."""
        with self._lock:
            if identifier:
                self._entries.pop(identifier, None)
            else:
                self._entries.clear()
