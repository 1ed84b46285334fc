"""HTTP transport for GraphQL operations using httpx."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

import httpx
import structlog
from graphql import print_ast
from graphql.language import Node

from graphshield.core.config import get_security_config
from graphshield.core.exceptions import QueryTimeoutError, TransportError

logger = structlog.get_logger()


def document_source(document: Any) -> str:
    """Return GraphQL source text for a document.

    Accepts source strings, graphql-core nodes and JSON-style documents
    that still carry their source under ``loc.source.body``.

    Raises:
        ValueError: If no source text can be produced.
    """
    if isinstance(document, str):
        return document
    if isinstance(document, Node):
        return print_ast(document)
    if isinstance(document, Mapping):
        source = (document.get("loc") or {}).get("source") or {}
        body = source.get("body") if isinstance(source, Mapping) else None
        if body:
            return str(body)
    raise ValueError(f"Cannot produce GraphQL source from {type(document).__name__}")


class HttpxTransport:
    """Sends GraphQL operations to an HTTP endpoint.

    Network failures and non-2xx statuses are reported through
    ``TransportError.network_error``; errors in the response body through
    ``TransportError.graphql_errors``.
    """

    def __init__(
        self,
        endpoint: str | None = None,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        """Initialize the transport.

        Args:
            endpoint: GraphQL endpoint; the configured endpoint if omitted.
            client: Shared client; a short-lived client per call if omitted.
        """
        self.endpoint = endpoint or get_security_config().endpoint
        self._client = client

    async def execute(
        self,
        document: Any,
        variables: Mapping[str, Any],
        timeout_ms: int | float,
        headers: Mapping[str, str],
    ) -> Any:
        """POST the operation and return its ``data`` payload."""
        payload = {"query": document_source(document), "variables": dict(variables)}
        timeout = timeout_ms / 1000

        try:
            if self._client is not None:
                response = await self._post(self._client, payload, timeout, headers)
            else:
                async with httpx.AsyncClient() as client:
                    response = await self._post(client, payload, timeout, headers)
        except httpx.TimeoutException as e:
            logger.warning("graphql_request_timeout", timeout_ms=timeout_ms)
            raise QueryTimeoutError() from e
        except httpx.RequestError as e:
            logger.warning("graphql_request_failed", error_type=type(e).__name__)
            raise TransportError(f"Network error: {e}", network_error=e) from e

        network_error: httpx.HTTPStatusError | None = None
        if response.is_error:
            network_error = httpx.HTTPStatusError(
                f"Network error: upstream responded with status {response.status_code}",
                request=response.request,
                response=response,
            )

        try:
            body = response.json()
        except ValueError as e:
            raise TransportError(
                "Network error: response is not valid JSON",
                network_error=network_error or e,
            ) from e

        graphql_errors = body.get("errors") if isinstance(body, Mapping) else None
        if network_error is not None or graphql_errors:
            logger.info(
                "graphql_request_errored",
                status_code=response.status_code,
                error_count=len(graphql_errors or []),
            )
            raise TransportError(
                "GraphQL error" if graphql_errors else str(network_error),
                network_error=network_error,
                graphql_errors=graphql_errors,
            )

        return body.get("data") if isinstance(body, Mapping) else None

    async def _post(
        self,
        client: httpx.AsyncClient,
        payload: dict[str, Any],
        timeout: float,
        headers: Mapping[str, str],
    ) -> httpx.Response:
        return await client.post(
            self.endpoint,
            json=payload,
            headers=dict(headers),
            timeout=timeout,
        )
