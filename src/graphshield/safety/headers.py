"""Security headers attached to every outbound GraphQL request."""

from __future__ import annotations


def create_secure_headers() -> dict[str, str]:
    """Build the fixed set of request headers.

    Returns:
        Fresh dict; callers may add their own headers to it.
    """
    return {
        "Content-Type": "application/json",
        "X-Requested-With": "XMLHttpRequest",
        "Cache-Control": "no-cache, no-store, must-revalidate",
        "Pragma": "no-cache",
        "Expires": "0",
        "X-Content-Type-Options": "nosniff",
        "X-Frame-Options": "DENY",
        "X-XSS-Protection": "1; mode=block",
    }
