"""graphshield - client-side safety gateway for GraphQL APIs.

Every outbound operation passes through the same envelope:
validate -> rate-limit -> sanitize -> execute -> mask-result.
"""

from graphshield.adapters.audit import AuditLogger
from graphshield.adapters.transport import HttpxTransport
from graphshield.core.config import Environment, SecurityConfig, get_security_config
from graphshield.core.domain_types import (
    MaskingConfig,
    OperationState,
    RateLimitResult,
    SecureQueryResult,
    ValidationResult,
)
from graphshield.core.orchestrator import SecureQueryOrchestrator, build_orchestrator
from graphshield.safety import (
    DataMasker,
    RateLimiter,
    parse_document,
    sanitize_variables,
    validate_query,
)

__all__ = [
    "AuditLogger",
    "DataMasker",
    "Environment",
    "HttpxTransport",
    "MaskingConfig",
    "OperationState",
    "RateLimitResult",
    "RateLimiter",
    "SecureQueryOrchestrator",
    "SecureQueryResult",
    "SecurityConfig",
    "ValidationResult",
    "build_orchestrator",
    "get_security_config",
    "parse_document",
    "sanitize_variables",
    "validate_query",
]
