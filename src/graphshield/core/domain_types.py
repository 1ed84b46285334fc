"""Domain types - Immutable Pydantic models shared across the gateway.

Verdicts, masking configuration, audit entries and operation results are
all frozen so that no component can alter a value after handing it on.
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, model_validator

DEFAULT_SENSITIVE_FIELDS: tuple[str, ...] = (
    "id",
    "created",
    "dimension",
    "episode.created",
    "origin.id",
    "location.id",
)

DEFAULT_PARTIAL_MASKING_FIELDS: tuple[str, ...] = ("name", "image", "air_date")


class ValidationResult(BaseModel):
    """Outcome of structural query validation.

    Attributes:
        valid: True exactly when no errors were found.
        errors: Validation messages in the order they were detected.
    """

    model_config = ConfigDict(frozen=True)

    valid: bool
    errors: tuple[str, ...] = ()

    @model_validator(mode="after")
    def _valid_matches_errors(self) -> ValidationResult:
        if self.valid != (len(self.errors) == 0):
            raise ValueError("valid must be True exactly when errors is empty")
        return self

    @classmethod
    def from_errors(cls, errors: list[str]) -> ValidationResult:
        """Build a result whose validity follows from the error list."""
        return cls(valid=not errors, errors=tuple(errors))


class RateLimitResult(BaseModel):
    """Verdict of a single rate limit check.

    Attributes:
        allowed: Whether the request may proceed.
        remaining: Requests left in the current window.
        reset_time: Epoch seconds at which the window ends.
    """

    model_config = ConfigDict(frozen=True)

    allowed: bool
    remaining: int | float
    reset_time: float


class MaskingConfig(BaseModel):
    """Configuration for a DataMasker.

    Attributes:
        enable_masking: Mask response data and error messages.
        mask_sensitive_fields: Apply field-name based masking.
        log_safe_mode: Mask variables, queries and audit data for logs.
        masking_pattern: Replacement token for masked values.
        sensitive_fields: Field-name fragments that are fully masked.
        partial_masking_fields: Field-name fragments that are partially masked.
    """

    model_config = ConfigDict(frozen=True)

    enable_masking: bool = True
    mask_sensitive_fields: bool = True
    log_safe_mode: bool = True
    masking_pattern: str = "***"
    sensitive_fields: tuple[str, ...] = DEFAULT_SENSITIVE_FIELDS
    partial_masking_fields: tuple[str, ...] = DEFAULT_PARTIAL_MASKING_FIELDS


class OperationState(str, Enum):
    """Lifecycle of one outbound operation."""

    IDLE = "idle"
    VALIDATING = "validating"
    BLOCKED = "blocked"
    RATE_LIMITED = "rate_limited"
    SANITIZING = "sanitizing"
    IN_FLIGHT = "in_flight"
    COMPLETED = "completed"
    FAILED = "failed"


class AuditLogEntry(BaseModel):
    """Masked record of one GraphQL operation."""

    model_config = ConfigDict(frozen=True)

    operation: str
    timestamp: datetime
    query: str
    variables: dict[str, Any] | None = None
    result: Any = None
    error: str | None = None
    environment: str
    has_error: bool = False


class SecureQueryResult(BaseModel):
    """What the orchestrator hands back to a subscriber.

    Attributes:
        data: Masked response data, if the operation completed.
        loading: Always False once a result exists.
        error: Masked, human-facing error message.
        is_query_valid: Whether structural validation passed.
        validation_errors: Validation messages when the query was blocked.
        rate_limited: Whether the rate limiter refused the operation.
        reset_time: Window reset time when rate limited.
        state: Final state of the operation.
    """

    model_config = ConfigDict(frozen=True)

    data: Any = None
    loading: bool = False
    error: str | None = None
    is_query_valid: bool = True
    validation_errors: tuple[str, ...] = Field(default_factory=tuple)
    rate_limited: bool = False
    reset_time: float | None = None
    state: OperationState = OperationState.IDLE
