"""Domain-specific exceptions.

All exceptions in graphshield inherit from GraphShieldError,
making it easy to catch every gateway error while still being able
to handle specific failure types.
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import Any


class GraphShieldError(Exception):
    """Base exception for all graphshield errors.

    All custom exceptions in the gateway should inherit from this class
    to enable catching all graphshield-specific errors with a single except clause.
    """

    pass


class QueryValidationError(GraphShieldError):
    """Query failed safety validation.

    Raised when a query document fails structural checks:
    - Nesting depth above the configured maximum
    - Weighted complexity above the configured maximum
    - Document without any definitions
    - Source text that cannot be parsed

    Attributes:
        errors: Individual validation messages, in the order they were found.
    """

    def __init__(self, message: str, errors: Sequence[str] | None = None) -> None:
        """Initialize QueryValidationError.

        Args:
            message: Error description.
            errors: Individual validation messages.
        """
        super().__init__(message)
        self.errors = list(errors or [])


class AnalysisError(GraphShieldError):
    """The query document could not be walked.

    Never escapes validate_query; it is converted into a single
    generic validation message there.
    """

    pass


class RateLimitExceededError(GraphShieldError):
    """Request window for an identifier is exhausted.

    Attributes:
        identifier: The rate limit key that was exhausted.
        reset_time: Epoch seconds at which the current window ends.
    """

    def __init__(self, identifier: str, reset_time: float) -> None:
        """Initialize RateLimitExceededError.

        Args:
            identifier: The rate limit key.
            reset_time: Epoch seconds at which the window resets.
        """
        super().__init__("Rate limit exceeded")
        self.identifier = identifier
        self.reset_time = reset_time


class TransportError(GraphShieldError):
    """Network or remote execution failure reported by the transport.

    Mirrors the shape of a GraphQL client error: a network-level cause and
    a list of errors returned by the remote server. Either may be empty.

    Attributes:
        network_error: Underlying network exception, if any.
        graphql_errors: Errors reported in the response body.
    """

    def __init__(
        self,
        message: str,
        network_error: BaseException | None = None,
        graphql_errors: Sequence[Any] | None = None,
    ) -> None:
        """Initialize TransportError.

        Args:
            message: Error description.
            network_error: Network exception that caused the failure.
            graphql_errors: Errors returned by the remote server.
        """
        super().__init__(message)
        self.message = message
        self.network_error = network_error
        self.graphql_errors = list(graphql_errors or [])


class QueryTimeoutError(GraphShieldError):
    """In-flight operation exceeded its time limit or was aborted.

    The message always starts with "Timeout" so that generic error
    sanitization maps it to a timeout notice.
    """

    def __init__(self, message: str = "Timeout: request exceeded time limit") -> None:
        """Initialize QueryTimeoutError."""
        super().__init__(message)
        self.message = message


class MutationBlockedError(GraphShieldError):
    """Mutation rejected before dispatch.

    Raised synchronously by the orchestrator so that callers short-circuit
    before any side effect is attempted.
    """

    pass
