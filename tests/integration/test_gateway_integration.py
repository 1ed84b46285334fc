"""Integration tests for the gateway running against a mocked upstream."""

from __future__ import annotations

import json
import math
from typing import Any

import httpx
import pytest
from graphql.language import DocumentNode
from structlog.testing import capture_logs

from graphshield import (
    HttpxTransport,
    OperationState,
    SecureQueryOrchestrator,
    build_orchestrator,
    parse_document,
)
from graphshield.safety.masking import GENERIC_ERROR_MESSAGES
from tests.fixtures.documents import CHARACTERS_QUERY, nested_query

pytestmark = pytest.mark.integration


class Upstream:
    """Records requests and answers with a fixed body."""

    def __init__(self, body: dict[str, Any], status_code: int = 200) -> None:
        self.body = body
        self.status_code = status_code
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return httpx.Response(self.status_code, json=self.body)

    def transport(self) -> HttpxTransport:
        client = httpx.AsyncClient(transport=httpx.MockTransport(self))
        return HttpxTransport("https://example.com/graphql", client=client)


@pytest.fixture
def upstream(sample_response: dict[str, Any]) -> Upstream:
    """Return an upstream answering with the characters response."""
    return Upstream({"data": sample_response})


def gateway(upstream: Upstream) -> SecureQueryOrchestrator:
    """Build a gateway from the environment on top of the mocked upstream."""
    return build_orchestrator(transport=upstream.transport())


class TestGatewayIntegration:
    """End-to-end scenarios through validation, limiting, transport and masking."""

    async def test_query_round_trip_masks_response(self, upstream: Upstream) -> None:
        """Test a full query in production: sanitized out, masked back."""
        orchestrator = gateway(upstream)

        result = await orchestrator.execute_query(
            parse_document(CHARACTERS_QUERY),
            {"name": "<script>steal()</script>Rick", "page": math.inf},
        )

        assert result.state is OperationState.COMPLETED
        first = result.data["characters"]["results"][0]
        assert first["id"] == "***"
        assert first["name"] == "Ric***hez"
        assert first["status"] == "Alive"

        sent = json.loads(upstream.requests[0].content)
        assert sent["variables"] == {"name": "Rick", "page": 0}
        assert upstream.requests[0].headers["Cache-Control"] == (
            "no-cache, no-store, must-revalidate"
        )

    async def test_deep_query_blocked_before_network(
        self, monkeypatch: pytest.MonkeyPatch, upstream: Upstream
    ) -> None:
        """Test that a 15-level query never reaches the upstream."""
        monkeypatch.setenv("GRAPHSHIELD_ENV", "development")
        orchestrator = gateway(upstream)

        with capture_logs() as logs:
            result = await orchestrator.execute_query(parse_document(nested_query(15)))

        assert result.state is OperationState.BLOCKED
        assert result.is_query_valid is False
        assert len(result.validation_errors) == 2
        assert upstream.requests == []
        audit = [log for log in logs if log["event"] == "graphql_operation"]
        assert [log["operation"] for log in audit] == ["UNSAFE_QUERY_BLOCKED"]
        assert audit[0]["has_error"] is True

    async def test_sixty_first_request_rate_limited(
        self, upstream: Upstream, characters_document: DocumentNode
    ) -> None:
        """Test that the 61st request in one window is refused."""
        orchestrator = gateway(upstream)

        results = [
            await orchestrator.execute_query(characters_document, identifier="client-a")
            for _ in range(61)
        ]

        assert all(r.state is OperationState.COMPLETED for r in results[:60])
        assert results[60].state is OperationState.RATE_LIMITED
        assert results[60].reset_time is not None
        assert len(upstream.requests) == 60

    async def test_configured_limits(
        self, monkeypatch: pytest.MonkeyPatch, upstream: Upstream
    ) -> None:
        """Test that limits are read from the environment."""
        monkeypatch.setenv("GRAPHSHIELD_MAX_QUERY_DEPTH", "2")
        orchestrator = gateway(upstream)

        result = await orchestrator.execute_query(parse_document(nested_query(3)))

        assert result.validation_errors == (
            "Query depth 3 exceeds maximum allowed depth of 2",
        )

    async def test_remote_error_production(self) -> None:
        """Test that remote errors are generic in production."""
        upstream = Upstream({"errors": [{"message": "Character 42 not found"}]}, 500)
        orchestrator = gateway(upstream)

        with capture_logs() as logs:
            result = await orchestrator.execute_query(parse_document(CHARACTERS_QUERY))

        assert result.state is OperationState.FAILED
        assert result.error == GENERIC_ERROR_MESSAGES["Network error"]
        audit = [log for log in logs if log["event"] == "graphql_operation"]
        assert set(audit[0]) == {"event", "log_level", "operation", "timestamp", "has_error"}

    async def test_remote_error_development(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """Test that development shows the remote error unmasked."""
        monkeypatch.setenv("GRAPHSHIELD_ENV", "development")
        upstream = Upstream({"data": None, "errors": [{"message": "Character 42 not found"}]})
        orchestrator = gateway(upstream)

        result = await orchestrator.execute_query(parse_document(CHARACTERS_QUERY))

        assert result.error == "Character 42 not found"

    async def test_remote_error_production_masked(self) -> None:
        """Test that other remote errors are masked in production."""
        upstream = Upstream({"data": None, "errors": [{"message": "Character 42 not found"}]})
        orchestrator = gateway(upstream)

        result = await orchestrator.execute_query(parse_document(CHARACTERS_QUERY))

        assert result.state is OperationState.FAILED
        assert result.error == "Character *** not found"

    async def test_mutation_round_trip(self, upstream: Upstream) -> None:
        """Test that an admitted mutation is sent with its document."""
        orchestrator = gateway(upstream)
        document = parse_document("mutation Rename($name: String) { rename(name: $name) { id } }")

        result = await orchestrator.execute_mutation(document, {"name": " Morty "})

        assert result.state is OperationState.COMPLETED
        sent = json.loads(upstream.requests[0].content)
        assert sent["query"].startswith("mutation Rename")
        assert sent["variables"] == {"name": "Morty"}
