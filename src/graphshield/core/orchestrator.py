"""Secure Query Orchestrator - the safety envelope around one GraphQL operation.

Every operation goes through the same steps:
1. Validate the document structure (depth, complexity, definitions)
2. Check the rate limit for the caller's identifier
3. Sanitize variables; only the sanitized copy reaches the transport
4. Execute through the transport, bounded by a timeout and abort token
5. Mask the result or the error before handing it back

Steps 1-3 are synchronous. The transport call is the only await point.
"""

from __future__ import annotations

import asyncio
import contextlib
import math
from collections.abc import Coroutine, Mapping
from typing import Any

import structlog

from graphshield.adapters.audit import EMPTY_DOCUMENT, AuditLogger
from graphshield.adapters.transport import HttpxTransport
from graphshield.core.config import SecurityConfig, get_security_config
from graphshield.core.domain_types import OperationState, SecureQueryResult
from graphshield.core.exceptions import MutationBlockedError, QueryTimeoutError
from graphshield.core.interfaces import GraphQLTransport
from graphshield.safety.analyzer import validate_query
from graphshield.safety.headers import create_secure_headers
from graphshield.safety.masking import DataMasker, get_default_masker, sanitize_error_message
from graphshield.safety.rate_limiter import DEFAULT_IDENTIFIER, RateLimiter
from graphshield.safety.sanitizer import sanitize_variables

logger = structlog.get_logger()

VALIDATION_FAILED_MESSAGE = "Query validation failed"
RATE_LIMIT_MESSAGE = "Rate limit exceeded"


def select_error(error: Any) -> Any:
    """Pick the error that best describes a failure.

    A network error wins over remote execution errors; the first remote
    execution error wins over the failure itself.
    """
    if isinstance(error, Mapping):
        network_error = error.get("network_error") or error.get("networkError")
        graphql_errors = error.get("graphql_errors") or error.get("graphQLErrors")
    else:
        network_error = getattr(error, "network_error", None)
        graphql_errors = getattr(error, "graphql_errors", None)

    if network_error:
        return network_error
    if graphql_errors:
        return graphql_errors[0]
    return error


class SecureQueryOrchestrator:
    """Runs GraphQL operations inside the validate/limit/sanitize/mask envelope.

    Usage:
        orchestrator = SecureQueryOrchestrator(HttpxTransport(), RateLimiter())
        result = await orchestrator.execute_query(parse_document(source))
    """

    def __init__(
        self,
        transport: GraphQLTransport,
        rate_limiter: RateLimiter,
        masker: DataMasker | None = None,
        audit_logger: AuditLogger | None = None,
        config: SecurityConfig | None = None,
    ) -> None:
        """Initialize the orchestrator.

        Args:
            transport: Collaborator that performs the network call.
            rate_limiter: Shared limiter, created once per application.
            masker: Masker for results and errors.
            audit_logger: Audit logger; built from the masker if omitted.
            config: Limits and switches; the environment configuration if omitted.
        """
        self.transport = transport
        self.rate_limiter = rate_limiter
        self.config = config or get_security_config()
        self.masker = masker or get_default_masker()
        self.audit_logger = audit_logger or AuditLogger(self.masker, self.config.environment)

    async def execute_query(
        self,
        document: Any,
        variables: Mapping[str, Any] | None = None,
        *,
        identifier: str = DEFAULT_IDENTIFIER,
        timeout_ms: int | float | None = None,
        abort: asyncio.Event | None = None,
        enable_data_masking: bool = True,
        enable_audit_logging: bool | None = None,
    ) -> SecureQueryResult:
        """Execute a read operation.

        Args:
            document: Parsed query document.
            variables: Caller variables; never sent unsanitized.
            identifier: Rate limit key.
            timeout_ms: Time budget; the configured timeout if omitted.
            abort: Event that cancels the in-flight call when set.
            enable_data_masking: Mask the response data.
            enable_audit_logging: Override the configured audit switch.

        Returns:
            SecureQueryResult describing the final state.
        """
        audit = self._audit_enabled(enable_audit_logging)
        refused = self._admit(document, variables, identifier, "UNSAFE_QUERY_BLOCKED", audit)
        if refused is not None:
            return refused
        return await self._run(
            document,
            variables,
            timeout_ms=timeout_ms,
            abort=abort,
            enable_data_masking=enable_data_masking,
            audit=audit,
            operation="QUERY",
        )

    async def execute_lazy_query(
        self,
        document: Any,
        variables: Mapping[str, Any] | None = None,
        *,
        identifier: str = DEFAULT_IDENTIFIER,
        timeout_ms: int | float | None = None,
        abort: asyncio.Event | None = None,
        enable_data_masking: bool = True,
        enable_audit_logging: bool | None = None,
    ) -> SecureQueryResult | None:
        """Execute a deferred read operation.

        Returns:
            None if the operation was refused, otherwise the result.
        """
        audit = self._audit_enabled(enable_audit_logging)
        refused = self._admit(document, variables, identifier, "UNSAFE_LAZY_QUERY_BLOCKED", audit)
        if refused is not None:
            return None
        return await self._run(
            document,
            variables,
            timeout_ms=timeout_ms,
            abort=abort,
            enable_data_masking=enable_data_masking,
            audit=audit,
            operation="LAZY_QUERY",
        )

    def execute_mutation(
        self,
        document: Any,
        variables: Mapping[str, Any] | None = None,
        *,
        identifier: str = DEFAULT_IDENTIFIER,
        timeout_ms: int | float | None = None,
        abort: asyncio.Event | None = None,
        enable_data_masking: bool = True,
        enable_audit_logging: bool | None = None,
    ) -> Coroutine[Any, Any, SecureQueryResult]:
        """Gate a mutation and return an awaitable that executes it.

        The gate runs before this method returns, so a refused mutation
        raises here and nothing is ever dispatched.

        Raises:
            MutationBlockedError: If validation or the rate limit refused it.
        """
        audit = self._audit_enabled(enable_audit_logging)
        refused = self._admit(document, variables, identifier, "UNSAFE_MUTATION_BLOCKED", audit)
        if refused is not None:
            reason = "rate limit exceeded" if refused.rate_limited else "security validation failure"
            raise MutationBlockedError(f"Mutation blocked due to {reason}")
        return self._run(
            document,
            variables,
            timeout_ms=timeout_ms,
            abort=abort,
            enable_data_masking=enable_data_masking,
            audit=audit,
            operation="MUTATION",
        )

    def is_query_safe(self, document: Any, identifier: str = DEFAULT_IDENTIFIER) -> bool:
        """Check validation and the rate limit without dispatching.

        A passing check counts against the identifier's window.
        """
        if not validate_query(
            document, self.config.max_query_depth, self.config.max_query_complexity
        ).valid:
            return False
        return self.rate_limiter.check(identifier).allowed

    def handle_error(self, error: Any, enable_logging: bool = True) -> str:
        """Convert a failure into a masked, user-facing message.

        Args:
            error: Transport failure, exception or error mapping.
            enable_logging: Record an ERROR_HANDLING audit entry.

        Returns:
            Masked message.
        """
        message = sanitize_error_message(select_error(error), self.masker, self.config.environment)
        if enable_logging:
            self.audit_logger.log_operation("ERROR_HANDLING", EMPTY_DOCUMENT, error=error)
        return message

    def _audit_enabled(self, override: bool | None) -> bool:
        return self.config.enable_audit_logging if override is None else override

    def _admit(
        self,
        document: Any,
        variables: Mapping[str, Any] | None,
        identifier: str,
        blocked_tag: str,
        audit: bool,
    ) -> SecureQueryResult | None:
        """Run validation and the rate check; return a result only when refused."""
        log = logger.bind(identifier=identifier)
        log.debug("operation_state", state=OperationState.VALIDATING.value)

        validation = validate_query(
            document, self.config.max_query_depth, self.config.max_query_complexity
        )
        if not validation.valid:
            log.warning("query_blocked", error_count=len(validation.errors))
            if audit:
                self.audit_logger.log_operation(
                    blocked_tag,
                    document,
                    variables,
                    error={"message": "Query blocked due to security validation failure"},
                )
            return SecureQueryResult(
                error=VALIDATION_FAILED_MESSAGE,
                is_query_valid=False,
                validation_errors=validation.errors,
                state=OperationState.BLOCKED,
            )

        verdict = self.rate_limiter.check(identifier)
        if not verdict.allowed:
            log.warning("operation_rate_limited", reset_time=verdict.reset_time)
            if audit:
                self.audit_logger.log_operation(
                    "RATE_LIMIT_EXCEEDED",
                    document,
                    variables,
                    error={"message": RATE_LIMIT_MESSAGE},
                )
            return SecureQueryResult(
                error=RATE_LIMIT_MESSAGE,
                rate_limited=True,
                reset_time=verdict.reset_time,
                state=OperationState.RATE_LIMITED,
            )

        log.debug("operation_state", state=OperationState.SANITIZING.value)
        return None

    async def _run(
        self,
        document: Any,
        variables: Mapping[str, Any] | None,
        *,
        timeout_ms: int | float | None,
        abort: asyncio.Event | None,
        enable_data_masking: bool,
        audit: bool,
        operation: str,
    ) -> SecureQueryResult:
        sanitized = sanitize_variables(variables or {})
        timeout = self.config.request_timeout_ms if timeout_ms is None else timeout_ms

        log = logger.bind(operation=operation)
        log.debug("operation_state", state=OperationState.IN_FLIGHT.value)

        try:
            data = await self._dispatch(document, sanitized, timeout, abort)
        except Exception as e:
            log.warning("operation_failed", error_type=type(e).__name__)
            if audit:
                self.audit_logger.log_operation(
                    f"{operation}_ERROR", document, sanitized, error=select_error(e)
                )
            return SecureQueryResult(
                error=self.handle_error(e, enable_logging=False),
                state=OperationState.FAILED,
            )

        log.debug("operation_state", state=OperationState.COMPLETED.value)
        if audit:
            self.audit_logger.log_operation(f"{operation}_COMPLETED", document, sanitized, data)

        if enable_data_masking and data is not None:
            data = self.masker.mask_response_data(data)
        return SecureQueryResult(data=data, state=OperationState.COMPLETED)

    async def _dispatch(
        self,
        document: Any,
        variables: dict[str, Any],
        timeout_ms: int | float,
        abort: asyncio.Event | None,
    ) -> Any:
        """Await the transport, cancelling it on timeout or abort.

        Raises:
            QueryTimeoutError: If the call timed out or was aborted.
        """
        execution = asyncio.ensure_future(
            self.transport.execute(document, variables, timeout_ms, create_secure_headers())
        )
        waiters: set[asyncio.Future[Any]] = {execution}
        aborted: asyncio.Future[Any] | None = None
        if abort is not None:
            aborted = asyncio.ensure_future(abort.wait())
            waiters.add(aborted)

        timeout = timeout_ms / 1000 if math.isfinite(timeout_ms) else None
        try:
            done, _ = await asyncio.wait(
                waiters, timeout=timeout, return_when=asyncio.FIRST_COMPLETED
            )
        finally:
            if aborted is not None:
                aborted.cancel()
            if not execution.done():
                execution.cancel()

        if execution in done:
            return execution.result()

        with contextlib.suppress(asyncio.CancelledError):
            await execution

        if aborted is not None and aborted in done:
            raise QueryTimeoutError("Timeout: request aborted before completion")
        raise QueryTimeoutError(f"Timeout: request exceeded {timeout_ms}ms")


def build_orchestrator(
    transport: GraphQLTransport | None = None,
    config: SecurityConfig | None = None,
) -> SecureQueryOrchestrator:
    """Create an orchestrator wired from configuration.

    Call once at application start and share the instance, so that all
    operations see the same rate limiter.
    """
    config = config or get_security_config()
    return SecureQueryOrchestrator(
        transport=transport or HttpxTransport(config.endpoint),
        rate_limiter=RateLimiter(config.rate_limit, config.rate_limit_window_seconds),
        config=config,
    )
