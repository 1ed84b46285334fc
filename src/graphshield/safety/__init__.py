"""Safety layer - guardrails applied to every outbound operation.

This module contains all safety-related components:
- Structural query validation (depth and complexity)
- Fixed-window rate limiting
- Variable sanitization
- Data masking for responses, logs and error messages
"""

from .analyzer import (
    analyze_query,
    analyze_query_complexity,
    analyze_query_depth,
    parse_document,
    validate_query,
)
from .headers import create_secure_headers
from .masking import (
    DataMasker,
    create_audit_log_data,
    get_default_masker,
    mask_query_for_logging,
    mask_response_data,
    mask_variables_for_logging,
    sanitize_error_message,
)
from .rate_limiter import RateLimiter
from .sanitizer import sanitize_string, sanitize_variables

__all__ = [
    "DataMasker",
    "RateLimiter",
    "analyze_query",
    "analyze_query_complexity",
    "analyze_query_depth",
    "create_audit_log_data",
    "create_secure_headers",
    "get_default_masker",
    "mask_query_for_logging",
    "mask_response_data",
    "mask_variables_for_logging",
    "parse_document",
    "sanitize_error_message",
    "sanitize_string",
    "sanitize_variables",
    "validate_query",
]
