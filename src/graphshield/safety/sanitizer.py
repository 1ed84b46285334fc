"""Variable Sanitizer - strips script injection patterns from GraphQL variables.

This is a best-effort filter for values that may end up rendered by a
client. It is not an HTML sanitizer and makes no attempt to parse markup.
"""

from __future__ import annotations

import math
import re
from collections.abc import Mapping
from typing import Any

SCRIPT_BLOCK = re.compile(r"<script\b[^<]*(?:(?!</script>)<[^<]*)*</script>", re.IGNORECASE)
JAVASCRIPT_SCHEME = re.compile(r"javascript:", re.IGNORECASE)
EVENT_HANDLER = re.compile(r"on\w+\s*=", re.IGNORECASE)


def sanitize_string(value: str) -> str:
    """Remove script blocks, ``javascript:`` schemes and inline event handlers.

    Examples:
        >>> sanitize_string("<script>alert(1)</script>hello")
        'hello'
        >>> sanitize_string(" <img onerror=x> ")
        '<img x>'
    """
    value = SCRIPT_BLOCK.sub("", value)
    value = JAVASCRIPT_SCHEME.sub("", value)
    value = EVENT_HANDLER.sub("", value)
    return value.strip()


def _sanitize_number(value: int | float) -> int | float:
    if isinstance(value, float) and not math.isfinite(value):
        return 0
    return value


def sanitize_variables(variables: Mapping[str, Any]) -> dict[str, Any]:
    """Return a cleaned copy of a variables mapping.

    Rules per value:
    - None passes through
    - strings are cleaned with sanitize_string
    - booleans pass through
    - numbers pass if finite, otherwise become 0
    - lists/tuples have their string items cleaned, other items untouched
    - nested mappings are sanitized recursively
    - anything else passes through

    Args:
        variables: Variables supplied by the caller. Not modified.

    Returns:
        A new dict with the same keys in the same order.
    """
    sanitized: dict[str, Any] = {}
    for key, value in variables.items():
        if value is None:
            sanitized[key] = value
        elif isinstance(value, str):
            sanitized[key] = sanitize_string(value)
        elif isinstance(value, bool):
            sanitized[key] = value
        elif isinstance(value, (int, float)):
            sanitized[key] = _sanitize_number(value)
        elif isinstance(value, (list, tuple)):
            sanitized[key] = [
                sanitize_string(item) if isinstance(item, str) else item for item in value
            ]
        elif isinstance(value, Mapping):
            sanitized[key] = sanitize_variables(value)
        else:
            sanitized[key] = value
    return sanitized
