"""Protocol definitions for external collaborators.

The orchestrator only depends on these protocols, never on a concrete
HTTP client, so tests and alternative transports can be plugged in.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any, Protocol, runtime_checkable


@runtime_checkable
class GraphQLTransport(Protocol):
    """Interface for the layer that actually talks to the upstream API.

    Implementations must provide:
    - Execution of a parsed document with variables
    - Support for caller-supplied request headers
    - Cooperative cancellation (the orchestrator cancels the awaiting task)

    Retries, if any, are the transport's concern.
    """

    async def execute(
        self,
        document: Any,
        variables: Mapping[str, Any],
        timeout_ms: int | float,
        headers: Mapping[str, str],
    ) -> Any:
        """Execute a GraphQL operation.

        Args:
            document: Parsed query document.
            variables: Already sanitized variables.
            timeout_ms: Time budget for the call in milliseconds.
            headers: Request headers to attach.

        Returns:
            The ``data`` payload of the response.

        Raises:
            TransportError: On network failure or remote execution errors.
            QueryTimeoutError: If the call exceeds its time budget.
        """
        ...
