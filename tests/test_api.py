"""Tests for the public API functions and package exports."""

from __future__ import annotations

from collections import OrderedDict

import pytest

import desired_state
from desired_state import api
from desired_state import (
    ComparisonOptions,
    MessageCatalog,
    RenderContext,
    StateComparison,
    compare_states,
    extract_arguments,
    states_equal,
    to_expression,
)

# ---------------------------------------------------------------------------
# Exports
# ---------------------------------------------------------------------------


class TestExports:
    def test_version(self) -> None:
        assert desired_state.__version__ == "0.1.0"

    def test_all_names_resolve(self) -> None:
        for name in desired_state.__all__:
            assert hasattr(desired_state, name), name

    def test_errors_share_a_root(self) -> None:
        for name in (
            "MalformedLiteral",
            "UnsupportedArgumentShape",
            "InvalidInputShape",
            "MissingPropertyList",
        ):
            assert issubclass(getattr(desired_state, name), desired_state.DesiredStateError)


# ---------------------------------------------------------------------------
# to_expression
# ---------------------------------------------------------------------------


class TestToExpression:
    def test_default_context(self) -> None:
        assert to_expression({"a": 1}) == "@{'a' = 1}"

    def test_overrides(self) -> None:
        assert to_expression([1, 2], expand=-1) == "1,2"

    def test_overrides_apply_on_top_of_context(self) -> None:
        text = to_expression({"a": 1, "b": 2}, RenderContext(strong=True), expand=-1)
        assert text == "[hashtable]@{'a'=[int]1;'b'=[int]2}"

    def test_invalid_override(self) -> None:
        with pytest.raises(ValueError, match="max_depth"):
            to_expression(1, max_depth=0)

    def test_unknown_override(self) -> None:
        with pytest.raises(TypeError):
            to_expression(1, colour=True)


# ---------------------------------------------------------------------------
# extract_arguments
# ---------------------------------------------------------------------------


class TestExtractArguments:
    def test_reads_back_serialized_map(self) -> None:
        value = {"Name": "svc", "Ports": [80, 443], "Opts": OrderedDict(a=True)}
        assert extract_arguments(to_expression(value)) == [value]

    def test_calls_do_not_share_state(self) -> None:
        first = extract_arguments("@{ a = 1 }")
        first[0]["a"] = 2
        assert extract_arguments("@{ a = 1 }") == [{"a": 1}]

    def test_repeated_text_reuses_parsed_syntax(self) -> None:
        text = "@{ cached = 'yes' }"
        first = api._EXTRACTOR.parse(text)
        assert extract_arguments(text) == [{"cached": "yes"}]
        assert api._EXTRACTOR.parse(text) is first


# ---------------------------------------------------------------------------
# compare_states / states_equal
# ---------------------------------------------------------------------------


class TestCompare:
    def test_compare_states_returns_trace(self) -> None:
        result = compare_states({"a": 1}, {"a": 2})
        assert isinstance(result, StateComparison)
        assert not result.in_desired_state
        assert result.mismatched_paths == ["a"]

    def test_compare_states_with_messages(self) -> None:
        result = compare_states({"a": 1}, {"a": 1}, messages=MessageCatalog(value_match="ok {path}"))
        assert result.messages == ["ok a"]

    def test_states_equal(self) -> None:
        assert states_equal({"a": [2, 1]}, {"a": [1, 2]}, ComparisonOptions(sort_arrays=True))
        assert not states_equal({"a": [2, 1]}, {"a": [1, 2]})

    def test_round_trip_then_compare(self) -> None:
        desired = {"Name": "svc", "Retries": 3, "Tags": ["a", "b"]}
        (current,) = extract_arguments(to_expression(desired))
        assert states_equal(current, desired, ComparisonOptions(reverse_check=True))
