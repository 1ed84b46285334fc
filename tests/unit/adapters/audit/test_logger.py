"""Unit tests for AuditLogger."""

from __future__ import annotations

from typing import Any

import pytest
from graphql.language import DocumentNode
from structlog.testing import capture_logs

from graphshield.adapters.audit import EMPTY_DOCUMENT, AuditLogger
from graphshield.core.config import Environment
from graphshield.safety.masking import GENERIC_ERROR_MESSAGES, DataMasker

SAFE_QUERY = '{"kind":"Document","definitions":[{"kind":"OperationDefinition","operation":"query"}]}'


class TestAuditLogger:
    """Tests for AuditLogger."""

    @pytest.fixture
    def dev_logger(self, masker: DataMasker) -> AuditLogger:
        """Return an audit logger for development."""
        return AuditLogger(masker, Environment.DEVELOPMENT)

    def test_development_logs_full_entry(
        self,
        dev_logger: AuditLogger,
        characters_document: DocumentNode,
        sample_response: dict[str, Any],
    ) -> None:
        """Test that development logs the whole masked entry."""
        with capture_logs() as logs:
            entry = dev_logger.log_operation(
                "QUERY_COMPLETED",
                characters_document,
                {"characterId": "42", "page": 1},
                sample_response,
            )

        assert entry is not None
        assert len(logs) == 1
        log = logs[0]
        assert log["event"] == "graphql_operation"
        assert log["log_level"] == "info"
        assert log["operation"] == "QUERY_COMPLETED"
        assert log["query"] == SAFE_QUERY
        assert log["variables"] == {"characterId": "***", "page": 1}
        assert log["environment"] == "development"
        assert log["has_error"] is False
        assert log["error"] is None
        first = log["result"]["characters"]["results"][0]
        assert "id" not in first
        assert first["name"] == "Ric***hez"

    def test_production_logs_summary_only(
        self, masker: DataMasker, characters_document: DocumentNode
    ) -> None:
        """Test that production only logs operation, timestamp and error flag."""
        audit = AuditLogger(masker, Environment.PRODUCTION)

        with capture_logs() as logs:
            entry = audit.log_operation(
                "QUERY_ERROR",
                characters_document,
                {"name": "Rick"},
                error={"message": "Network error: connection refused"},
            )

        assert len(logs) == 1
        assert set(logs[0]) == {"event", "log_level", "operation", "timestamp", "has_error"}
        assert logs[0]["operation"] == "QUERY_ERROR"
        assert logs[0]["has_error"] is True
        assert entry is not None
        assert entry.error == GENERIC_ERROR_MESSAGES["Network error"]

    def test_test_environment_logs_nothing(
        self, masker: DataMasker, characters_document: DocumentNode
    ) -> None:
        """Test that nothing is written in the test environment."""
        audit = AuditLogger(masker, Environment.TEST)

        with capture_logs() as logs:
            entry = audit.log_operation("QUERY_COMPLETED", characters_document)

        assert entry is None
        assert logs == []

    def test_missing_query_uses_empty_document(self, dev_logger: AuditLogger) -> None:
        """Test that operations without a document are still logged."""
        entry = dev_logger.log_operation("ERROR_HANDLING", None, error="boom")

        assert entry is not None
        assert entry.query == '{"kind":"Document","definitions":[]}'
        assert entry.variables is None
        assert entry.result is None
        assert entry.error == "boom"
        assert entry.has_error is True

    def test_error_is_masked(self, dev_logger: AuditLogger) -> None:
        """Test that error messages are masked before logging."""
        entry = dev_logger.log_operation(
            "QUERY_ERROR", EMPTY_DOCUMENT, error=RuntimeError("Character 42 not found")
        )

        assert entry is not None
        assert entry.error == "Character *** not found"

    def test_environment_from_configuration(self, masker: DataMasker) -> None:
        """Test that the environment defaults to the configured one."""
        assert AuditLogger(masker).environment is Environment.PRODUCTION

    def test_create_audit_log(self, dev_logger: AuditLogger) -> None:
        """Test audit-safe data creation."""
        assert dev_logger.create_audit_log({"id": "1", "status": "Alive"}) == {"status": "Alive"}

    def test_empty_document_is_read_only(self) -> None:
        """Test that the shared empty document cannot be modified."""
        with pytest.raises(TypeError):
            EMPTY_DOCUMENT["kind"] = "OperationDefinition"  # type: ignore[index]

        assert EMPTY_DOCUMENT["definitions"] == ()
