"""Query Analyzer - structural depth and complexity of GraphQL documents.

The analyzer works on the shape of the document only; it knows nothing
about the upstream schema. Documents may be graphql-core ``DocumentNode``
objects or JSON-style mappings (``definitions`` / ``selectionSet`` /
``selections``). Missing structure contributes nothing and never raises.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from typing import Any

import structlog
from graphql import GraphQLSyntaxError, parse
from graphql.language import DocumentNode

from graphshield.core.config import get_security_config
from graphshield.core.domain_types import ValidationResult
from graphshield.core.exceptions import AnalysisError, QueryValidationError

logger = structlog.get_logger()

ANALYSIS_FAILED_MESSAGE = "Failed to analyze query structure"
NO_DEFINITIONS_MESSAGE = "Query must contain at least one definition"


def parse_document(source: str) -> DocumentNode:
    """Parse GraphQL source text into a document.

    Args:
        source: GraphQL query text.

    Returns:
        The parsed DocumentNode.

    Raises:
        QueryValidationError: If the source is not valid GraphQL.
    """
    try:
        return parse(source)
    except GraphQLSyntaxError as e:
        raise QueryValidationError("Failed to parse query", errors=[e.message]) from e


def _field(node: Any, *names: str) -> Any:
    """Read the first present attribute or key among ``names``."""
    if node is None:
        return None
    if isinstance(node, Mapping):
        for name in names:
            if name in node:
                return node[name]
        return None
    for name in names:
        value = getattr(node, name, None)
        if value is not None:
            return value
    return None


def _as_sequence(value: Any, what: str) -> Sequence[Any]:
    if value is None:
        return ()
    if isinstance(value, (str, bytes, Mapping)) or not isinstance(value, Sequence):
        raise AnalysisError(f"{what} must be a sequence, got {type(value).__name__}")
    return value


def get_definitions(document: Any) -> Sequence[Any]:
    """Return the definitions of a document, empty when absent."""
    return _as_sequence(_field(document, "definitions"), "definitions")


def get_selections(node: Any) -> Sequence[Any]:
    """Return the child selections of a node, empty when it has no selection set."""
    selection_set = _field(node, "selection_set", "selectionSet")
    if selection_set is None:
        return ()
    return _as_sequence(_field(selection_set, "selections"), "selections")


def _selection_depth(selection: Any, current_depth: int) -> int:
    depth = current_depth
    for child in get_selections(selection):
        depth = max(depth, _selection_depth(child, current_depth + 1))
    return depth


def analyze_query_depth(query: Any) -> int:
    """Compute the maximum nesting depth of selection sets.

    A top-level field without children has depth 1; a document without
    definitions or selection sets has depth 0.

    Args:
        query: Parsed document.

    Returns:
        Maximum depth across all operation definitions.

    Examples:
        >>> analyze_query_depth(parse("{ characters { results { name } } }"))
        3
    """
    max_depth = 0
    for definition in get_definitions(query):
        for selection in get_selections(definition):
            max_depth = max(max_depth, _selection_depth(selection, 1))
    return max_depth


def _selection_complexity(selection: Any, multiplier: int) -> int:
    complexity = multiplier
    for child in get_selections(selection):
        complexity += _selection_complexity(child, multiplier * 2)
    return complexity


def analyze_query_complexity(query: Any) -> int:
    """Estimate query cost as a weighted field count.

    Every selection adds its multiplier; the multiplier doubles with
    each level of nesting, starting at 1 for top-level fields.

    Examples:
        >>> analyze_query_complexity(parse("{ a b }"))
        2
        >>> analyze_query_complexity(parse("{ a { b } }"))
        3
    """
    complexity = 0
    for definition in get_definitions(query):
        for selection in get_selections(definition):
            complexity += _selection_complexity(selection, 1)
    return complexity


def validate_query(
    query: Any,
    max_depth: int | float | None = None,
    max_complexity: int | float | None = None,
) -> ValidationResult:
    """Validate a document against the depth and complexity limits.

    Errors accumulate rather than short-circuit. A document that cannot be
    walked yields a single generic error instead of an exception.

    Args:
        query: Parsed document.
        max_depth: Depth limit; defaults to the configured limit.
        max_complexity: Complexity limit; defaults to the configured limit.

    Returns:
        ValidationResult listing every violation found.
    """
    config = get_security_config()
    if max_depth is None:
        max_depth = config.max_query_depth
    if max_complexity is None:
        max_complexity = config.max_query_complexity

    errors: list[str] = []
    try:
        depth = analyze_query_depth(query)
        if depth > max_depth:
            errors.append(f"Query depth {depth} exceeds maximum allowed depth of {max_depth}")

        complexity = analyze_query_complexity(query)
        if complexity > max_complexity:
            errors.append(
                f"Query complexity {complexity} exceeds maximum allowed complexity "
                f"of {max_complexity}"
            )

        if not get_definitions(query):
            errors.append(NO_DEFINITIONS_MESSAGE)
    except Exception as e:
        logger.debug("query_analysis_failed", error_type=type(e).__name__)
        errors.append(ANALYSIS_FAILED_MESSAGE)

    return ValidationResult.from_errors(errors)


@dataclass(frozen=True)
class QueryAnalysis:
    """Structural summary of a document, safe to log."""

    depth: int
    complexity: int
    definition_count: int
    operations: tuple[str, ...]


def analyze_query(query: Any) -> QueryAnalysis:
    """Summarize a document without exposing any field names.

    Raises:
        AnalysisError: If the document cannot be walked.
    """
    definitions = get_definitions(query)
    operations = tuple(operation_type(definition) for definition in definitions)
    return QueryAnalysis(
        depth=analyze_query_depth(query),
        complexity=analyze_query_complexity(query),
        definition_count=len(definitions),
        operations=operations,
    )


def operation_type(definition: Any) -> str:
    """Return ``query``, ``mutation`` or ``subscription`` for a definition.

    Fragments and unknown nodes report ``unknown``.
    """
    operation = _field(definition, "operation")
    if operation is None:
        return "unknown"
    return str(getattr(operation, "value", operation)) or "unknown"


def document_kind(node: Any) -> str:
    """Return the GraphQL AST kind name of a node (``Document``, ``OperationDefinition``...)."""
    if isinstance(node, Mapping):
        return str(node.get("kind", "unknown"))
    name = type(node).__name__
    return name.removesuffix("Node") if name.endswith("Node") else name
