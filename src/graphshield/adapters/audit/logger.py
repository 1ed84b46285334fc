"""Audit logging of GraphQL operations with masked payloads."""

from __future__ import annotations

from collections.abc import Mapping
from datetime import UTC, datetime
from types import MappingProxyType
from typing import Any

import structlog

from graphshield.core.config import Environment, get_security_config
from graphshield.core.domain_types import AuditLogEntry
from graphshield.safety.masking import DataMasker, get_default_masker, sanitize_error_message

logger = structlog.get_logger()

# Document used when an operation is logged without its query.
EMPTY_DOCUMENT: Mapping[str, Any] = MappingProxyType({"kind": "Document", "definitions": ()})


class AuditLogger:
    """Records GraphQL operations without leaking sensitive data.

    What gets written depends on the environment:
    - test: nothing
    - production: operation name, timestamp and whether it failed
    - anything else: the full masked entry
    """

    def __init__(
        self,
        masker: DataMasker | None = None,
        environment: Environment | None = None,
    ) -> None:
        """Initialize the audit logger.

        Args:
            masker: Masker applied to queries, variables, results and errors.
            environment: Environment to log for; the configured one if omitted.
        """
        self.masker = masker or get_default_masker()
        self.environment = environment or get_security_config().environment

    def log_operation(
        self,
        operation: str,
        query: Any,
        variables: Mapping[str, Any] | None = None,
        result: Any = None,
        error: Any = None,
    ) -> AuditLogEntry | None:
        """Log a GraphQL operation.

        Args:
            operation: Tag such as QUERY_COMPLETED or UNSAFE_QUERY_BLOCKED.
            query: Parsed document, or None for operations without one.
            variables: Variables sent with the operation.
            result: Response data.
            error: Error raised by the operation.

        Returns:
            The masked entry, or None in the test environment.
        """
        if self.environment is Environment.TEST:
            return None

        entry = AuditLogEntry(
            operation=operation,
            timestamp=datetime.now(UTC),
            query=self.masker.mask_query_for_logging(
                EMPTY_DOCUMENT if query is None else query
            ),
            variables=(
                dict(self.masker.mask_variables(variables)) if variables is not None else None
            ),
            result=self.masker.create_audit_log_data(result) if result is not None else None,
            error=(
                sanitize_error_message(error, self.masker, self.environment)
                if error is not None
                else None
            ),
            environment=self.environment.value,
            has_error=error is not None,
        )

        if self.environment is Environment.PRODUCTION:
            logger.info(
                "graphql_operation",
                operation=entry.operation,
                timestamp=entry.timestamp.isoformat(),
                has_error=entry.has_error,
            )
        else:
            logger.info("graphql_operation", **entry.model_dump(mode="json"))

        return entry

    def create_audit_log(self, data: Any) -> Any:
        """Return audit-safe data with sensitive fields removed."""
        return self.masker.create_audit_log_data(data)
