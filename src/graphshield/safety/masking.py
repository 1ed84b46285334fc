"""Data Masker - masks sensitive values in responses, variables, queries and errors.

Masking is pattern based and best effort. Field names are matched against
configured fragments in both directions (case-insensitive): a field is
sensitive if a fragment is contained in the field name OR the field name
is contained in a fragment. Short fragments therefore match broadly.

Values handled by the deep walk form a closed set of JSON shapes:
None, bool, int/float, str, list/tuple and mappings. Anything else is
returned as is.
"""

from __future__ import annotations

import json
import math
import re
from collections.abc import Mapping
from functools import lru_cache
from typing import Any, NamedTuple, TypeAlias

import structlog
from graphql.language import Node
from graphql.utilities import ast_to_dict

from graphshield.core.config import Environment, get_security_config
from graphshield.core.domain_types import MaskingConfig
from graphshield.core.exceptions import AnalysisError
from graphshield.safety.analyzer import document_kind, get_definitions, operation_type

logger = structlog.get_logger()

JSONValue: TypeAlias = (
    None | bool | int | float | str | list["JSONValue"] | tuple["JSONValue", ...]
    | dict[str, "JSONValue"]
)

FALLBACK_ERROR_MESSAGE = "An error occurred while processing your request."
UNKNOWN_ERROR_MESSAGE = "Unknown error"

PARTIAL_MASK_MIN_LENGTH = 4
PARTIAL_MASK_VISIBLE_RATIO = 0.3


class MaskPattern(NamedTuple):
    """Pattern for masking one kind of leaked value in free text."""

    regex: re.Pattern[str]
    replacement: str | None
    description: str


# Applied in order; a None replacement means "use the masker's pattern".
ERROR_MASK_PATTERNS: list[MaskPattern] = [
    MaskPattern(
        regex=re.compile(r"\b\d{1,6}\b", re.ASCII),
        replacement=None,
        description="Numeric identifier",
    ),
    MaskPattern(
        regex=re.compile(r"https?://\S+"),
        replacement="[MASKED_URL]",
        description="URL",
    ),
    MaskPattern(
        regex=re.compile(r"[a-zA-Z0-9]{20,}"),
        replacement="[MASKED_TOKEN]",
        description="API key or token",
    ),
    MaskPattern(
        regex=re.compile(r"\b[A-Za-z0-9._%+-]+@[A-Za-z0-9.-]+\.[A-Z|a-z]{2,}\b"),
        replacement="[MASKED_EMAIL]",
        description="Email address",
    ),
]

# Known error families that get a generic message outside development.
GENERIC_ERROR_MESSAGES: dict[str, str] = {
    "Network error": "Unable to connect to the service. Please try again later.",
    "GraphQL error": "There was an issue processing your request.",
    "Timeout": "Request timed out. Please try again.",
    "Rate limit": "Too many requests. Please wait before trying again.",
}


def default_masking_config() -> MaskingConfig:
    """Build the masking configuration for the current environment."""
    return MaskingConfig(enable_masking=get_security_config().masking_enabled)


def error_message(error: Any) -> str | None:
    """Extract the message of an error-like value.

    Accepts exceptions, objects with a ``message`` attribute (such as
    GraphQLError), mappings with a ``"message"`` key and plain strings.
    """
    if error is None:
        return None
    if isinstance(error, str):
        return error
    if isinstance(error, Mapping):
        message = error.get("message")
        return str(message) if message else None
    message = getattr(error, "message", None)
    if message:
        return str(message)
    if isinstance(error, BaseException):
        return str(error) or None
    return None


def _field_value_pattern(field: str) -> re.Pattern[str]:
    return re.compile(re.escape(field) + r"""[:\s"']*([^\s"',}]+)""", re.IGNORECASE)


def _matches_fragment(field_name: Any, fragments: tuple[str, ...]) -> bool:
    name = str(field_name).lower()
    return any(
        fragment.lower() in name or name in fragment.lower() for fragment in fragments
    )


class DataMasker:
    """Masks sensitive data according to a MaskingConfig.

    Usage:
        masker = DataMasker(masking_pattern="###")
        safe = masker.mask_response_data(response)
        log.info("query_completed", variables=masker.mask_variables(variables))
    """

    def __init__(self, config: MaskingConfig | None = None, **overrides: Any) -> None:
        """Initialize the masker.

        Args:
            config: Base configuration; the environment default if omitted.
            **overrides: Individual MaskingConfig fields to override.
        """
        base = config or default_masking_config()
        if overrides:
            base = MaskingConfig(**{**base.model_dump(), **overrides})
        self.config = base
        self._field_patterns = {
            field: _field_value_pattern(field) for field in self.config.sensitive_fields
        }

    def mask_response_data(self, data: Any) -> Any:
        """Mask sensitive fields in response data.

        Args:
            data: JSON-like response payload.

        Returns:
            A masked copy, or the input itself when masking is disabled.
        """
        if not self.config.enable_masking:
            return data
        return self._deep_mask(data, audit=False)

    def mask_variables(self, variables: Mapping[str, Any]) -> Any:
        """Mask sensitive variables for logging.

        Gated by ``log_safe_mode`` rather than ``enable_masking``.
        """
        if not self.config.log_safe_mode:
            return variables
        return self._deep_mask(variables, audit=False)

    def create_audit_log_data(self, data: Any) -> Any:
        """Create audit-safe data: sensitive fields are removed, not masked."""
        if not self.config.log_safe_mode:
            return data
        return self._deep_mask(data, audit=True)

    def mask_query_for_logging(self, query: Any) -> str:
        """Serialize a document for logs.

        In log-safe mode only the document kind and the operation type of
        each definition are kept; field names never appear. Definitions
        that cannot be read are logged as an empty list.

        Returns:
            Compact JSON string.
        """
        if not self.config.log_safe_mode:
            if isinstance(query, Node):
                return _compact_json(ast_to_dict(query))
            return _compact_json(dict(query) if isinstance(query, Mapping) else query)

        safe_query: dict[str, Any] = {"kind": document_kind(query)}
        if not (isinstance(query, Mapping) and "definitions" not in query):
            try:
                definitions = get_definitions(query)
            except AnalysisError:
                definitions = ()
            safe_query["definitions"] = [
                {"kind": document_kind(definition), "operation": operation_type(definition)}
                for definition in definitions
            ]
        return _compact_json(safe_query)

    def mask_error_message(self, error: Any) -> str:
        """Mask identifiers, URLs, tokens, emails and sensitive fields in an error message.

        Args:
            error: Exception, GraphQL error, mapping or string.

        Returns:
            The masked message; a generic sentence if nothing is left.
        """
        message = error_message(error)
        if not self.config.enable_masking:
            return message or UNKNOWN_ERROR_MESSAGE

        masked = message or ""
        pattern = self.config.masking_pattern
        for mask in ERROR_MASK_PATTERNS:
            replacement = pattern if mask.replacement is None else mask.replacement
            masked = mask.regex.sub(lambda _m, r=replacement: r, masked)

        for field, field_pattern in self._field_patterns.items():
            masked = field_pattern.sub(lambda _m, f=field: f"{f}: {pattern}", masked)

        return masked or FALLBACK_ERROR_MESSAGE

    def is_sensitive_field(self, field_name: Any) -> bool:
        """Check a field name against the sensitive fragments."""
        if not self.config.mask_sensitive_fields:
            return False
        return _matches_fragment(field_name, self.config.sensitive_fields)

    def is_partial_masking_field(self, field_name: Any) -> bool:
        """Check a field name against the partial-mask fragments."""
        if not self.config.mask_sensitive_fields:
            return False
        return _matches_fragment(field_name, self.config.partial_masking_fields)

    def partial_mask(self, value: str) -> str:
        """Reveal the start and end of a string, masking the middle.

        Strings of four characters or fewer are fully masked. Otherwise 30%
        of the length (at least one character) is kept at each end.

        Examples:
            >>> DataMasker(enable_masking=True).partial_mask("Rick Sanch")
            'Ric***nch'
        """
        if len(value) <= PARTIAL_MASK_MIN_LENGTH:
            return self.config.masking_pattern
        visible = max(1, math.floor(len(value) * PARTIAL_MASK_VISIBLE_RATIO))
        return f"{value[:visible]}{self.config.masking_pattern}{value[-visible:]}"

    def _deep_mask(self, value: JSONValue, audit: bool) -> JSONValue:
        if isinstance(value, Mapping):
            return self._mask_mapping(value, audit)
        if isinstance(value, (list, tuple)):
            return [self._deep_mask(item, audit) for item in value]
        return value

    def _mask_mapping(self, value: Mapping[str, Any], audit: bool) -> dict[str, Any]:
        masked: dict[str, Any] = {}
        for key, item in value.items():
            if self.is_sensitive_field(key):
                if audit:
                    continue
                masked[key] = self.config.masking_pattern
            elif self.is_partial_masking_field(key) and isinstance(item, str):
                masked[key] = self.partial_mask(item)
            elif isinstance(item, (Mapping, list, tuple)):
                masked[key] = self._deep_mask(item, audit)
            else:
                masked[key] = item
        return masked


def _compact_json(value: Any) -> str:
    return json.dumps(value, separators=(",", ":"), default=str)


@lru_cache
def get_default_masker() -> DataMasker:
    """Get the process-wide masker built from the environment."""
    return DataMasker()


def mask_response_data(data: Any) -> Any:
    """Mask response data using the default masker."""
    return get_default_masker().mask_response_data(data)


def mask_variables_for_logging(variables: Mapping[str, Any]) -> Any:
    """Mask variables for logging using the default masker."""
    return get_default_masker().mask_variables(variables)


def mask_query_for_logging(query: Any) -> str:
    """Mask a query for logging using the default masker."""
    return get_default_masker().mask_query_for_logging(query)


def create_audit_log_data(data: Any) -> Any:
    """Create audit-safe data using the default masker."""
    return get_default_masker().create_audit_log_data(data)


def sanitize_error_message(
    error: Any,
    masker: DataMasker | None = None,
    environment: Environment | None = None,
) -> str:
    """Turn an error into a message that is safe to show to a user.

    Outside development, errors from known families (network, GraphQL,
    timeout, rate limit) are replaced with a fixed generic sentence.
    Everything else is masked with the masker.

    Args:
        error: Error-like value.
        masker: Masker to use; the default masker if omitted.
        environment: Environment to assume; the configured one if omitted.

    Returns:
        User-facing message.
    """
    masker = masker or get_default_masker()
    environment = environment or get_security_config().environment
    masked = masker.mask_error_message(error)

    if environment is Environment.DEVELOPMENT:
        return masked

    raw = (error_message(error) or "").lower()
    for family, generic in GENERIC_ERROR_MESSAGES.items():
        if family.lower() in raw:
            return generic

    return masked
