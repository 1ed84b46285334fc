"""Unit tests for the variable sanitizer."""

from __future__ import annotations

import math
from decimal import Decimal

import pytest

from graphshield.safety.sanitizer import sanitize_string, sanitize_variables


class TestSanitizeString:
    """Tests for sanitize_string."""

    def test_removes_script_block(self) -> None:
        """Test script block removal."""
        assert sanitize_string("<script>alert(1)</script>hello") == "hello"

    def test_removes_script_block_case_insensitive(self) -> None:
        """Test that script tags are matched regardless of case."""
        assert sanitize_string("a<SCRIPT type='x'>steal()</Script>b") == "ab"

    def test_script_removal_is_non_greedy(self) -> None:
        """Test that text between two script blocks survives."""
        value = "<script>a</script>keep<script>b</script>"

        assert sanitize_string(value) == "keep"

    def test_removes_javascript_scheme(self) -> None:
        """Test javascript: prefix removal."""
        assert sanitize_string("JavaScript:alert(1)") == "alert(1)"

    def test_removes_event_handlers(self) -> None:
        """Test inline event handler removal."""
        assert sanitize_string('<img src=x onerror = "boom">') == '<img src=x  "boom">'

    def test_trims_whitespace(self) -> None:
        """Test that surrounding whitespace is trimmed."""
        assert sanitize_string("  Rick  ") == "Rick"

    def test_plain_text_unchanged(self) -> None:
        """Test that ordinary values pass."""
        assert sanitize_string("Rick Sanchez") == "Rick Sanchez"


class TestSanitizeVariables:
    """Tests for sanitize_variables."""

    def test_sanitizes_strings(self) -> None:
        """Test string values are cleaned."""
        result = sanitize_variables({"x": "<script>alert(1)</script>hello"})

        assert result["x"] == "hello"

    def test_none_passes(self) -> None:
        """Test that None passes through."""
        assert sanitize_variables({"x": None}) == {"x": None}

    @pytest.mark.parametrize("value", [math.inf, -math.inf, math.nan])
    def test_non_finite_numbers_become_zero(self, value: float) -> None:
        """Test that infinities and NaN are coerced to 0."""
        assert sanitize_variables({"x": value})["x"] == 0

    def test_finite_numbers_pass(self) -> None:
        """Test that finite numbers are kept."""
        assert sanitize_variables({"page": 2, "ratio": 0.5}) == {"page": 2, "ratio": 0.5}

    def test_booleans_pass(self) -> None:
        """Test that booleans are not treated as numbers."""
        result = sanitize_variables({"flag": True, "other": False})

        assert result["flag"] is True
        assert result["other"] is False

    def test_list_string_items_sanitized(self) -> None:
        """Test that only string items in lists are cleaned."""
        result = sanitize_variables({"x": [1, "<script>a</script>b", 3]})

        assert result["x"] == [1, "b", 3]

    def test_list_non_string_items_untouched(self) -> None:
        """Test that nested objects inside lists are passed as is."""
        nested = {"name": "<script>x</script>"}

        result = sanitize_variables({"x": [nested, math.inf]})

        assert result["x"][0] is nested
        assert math.isinf(result["x"][1])

    def test_nested_mappings(self) -> None:
        """Test recursive sanitization."""
        result = sanitize_variables(
            {"filter": {"name": " javascript:Rick ", "page": math.inf, "inner": {"q": "a"}}}
        )

        assert result == {"filter": {"name": "Rick", "page": 0, "inner": {"q": "a"}}}

    def test_other_types_pass(self) -> None:
        """Test that unknown types pass without coercion."""
        value = Decimal("1.5")

        assert sanitize_variables({"x": value})["x"] is value

    def test_input_not_mutated(self) -> None:
        """Test that a new mapping is returned."""
        variables = {"name": "<script>x</script>Rick", "filter": {"q": " a "}}

        result = sanitize_variables(variables)

        assert result is not variables
        assert variables == {"name": "<script>x</script>Rick", "filter": {"q": " a "}}

    def test_key_order_preserved(self) -> None:
        """Test that keys keep their order."""
        result = sanitize_variables({"b": 1, "a": 2, "c": 3})

        assert list(result) == ["b", "a", "c"]
