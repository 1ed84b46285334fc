"""Transport adapters for executing GraphQL operations."""

from graphshield.adapters.transport.httpx_transport import HttpxTransport, document_source

__all__ = [
    "HttpxTransport",
    "document_source",
]
