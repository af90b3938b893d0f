"""Tests for StateComparator.

Tests cover:
- Flat and nested property bags
- Type checking and its loose-equality toggle
- Array comparison (order, sorting, lengths, empty / missing arrays)
- Credential user-name matching without secret comparison
- Code-block normalisation
- Property selection and exclusion, absent desired keys
- Reverse checking and discard-but-continue trace completeness
- Accepted input shapes and raised errors
"""

from __future__ import annotations

import logging
from collections import namedtuple
from dataclasses import dataclass
from typing import Any

import numpy as np
import pytest

from desired_state.errors import InvalidInputShape, MissingPropertyList
from desired_state.state import ComparisonOptions, MessageCatalog, StateComparator
from desired_state.values import Credential, ScriptBlock


@pytest.fixture
def comparator() -> StateComparator:
    return StateComparator()


def verdict(comparator: StateComparator, current: Any, desired: Any, **options: Any) -> bool:
    return comparator.compare(current, desired, ComparisonOptions(**options)).in_desired_state


# ---------------------------------------------------------------------------
# Scalars
# ---------------------------------------------------------------------------


class TestScalars:
    def test_equal_bags(self, comparator: StateComparator) -> None:
        result = comparator.compare({"a": 1, "b": "x"}, {"a": 1, "b": "x"})
        assert result.in_desired_state
        assert [entry.path for entry in result.trace] == ["a", "b"]
        assert all(entry.matched for entry in result.trace)

    def test_value_mismatch(self, comparator: StateComparator) -> None:
        result = comparator.compare({"a": 1}, {"a": 2})
        assert not result.in_desired_state
        assert result.mismatched_paths == ["a"]

    def test_missing_current_key(self, comparator: StateComparator) -> None:
        assert not verdict(comparator, {}, {"a": 1})

    def test_extra_current_keys_ignored(self, comparator: StateComparator) -> None:
        assert verdict(comparator, {"a": 1, "extra": 2}, {"a": 1})

    def test_strings_are_case_sensitive(self, comparator: StateComparator) -> None:
        assert not verdict(comparator, {"a": "Present"}, {"a": "present"})


class TestTypeChecking:
    def test_number_and_string_differ_by_default(self, comparator: StateComparator) -> None:
        result = comparator.compare({"P": 5}, {"P": "5"})
        assert not result.in_desired_state
        assert "type" in result.trace[0].message

    def test_number_and_string_equal_without_type_checking(
        self, comparator: StateComparator
    ) -> None:
        assert verdict(comparator, {"P": 5}, {"P": "5"}, skip_type_checking=True)
        assert verdict(comparator, {"P": "2.5"}, {"P": 2.5}, skip_type_checking=True)

    def test_loose_equality_still_compares_values(self, comparator: StateComparator) -> None:
        assert not verdict(comparator, {"P": "5"}, {"P": 6}, skip_type_checking=True)
        assert not verdict(comparator, {"P": "five"}, {"P": 5}, skip_type_checking=True)

    def test_none_is_not_a_type_mismatch(self, comparator: StateComparator) -> None:
        result = comparator.compare({"P": None}, {"P": 5})
        assert not result.in_desired_state
        assert "type" not in result.trace[0].message

    def test_container_type_mismatch(self, comparator: StateComparator) -> None:
        assert not verdict(comparator, {"a": [1]}, {"a": {"x": 1}})


# ---------------------------------------------------------------------------
# Arrays
# ---------------------------------------------------------------------------


class TestArrays:
    def test_order_matters_by_default(self, comparator: StateComparator) -> None:
        assert not verdict(comparator, {"L": [1, 2, 3]}, {"L": [3, 2, 1]})

    def test_sorting_ignores_order(self, comparator: StateComparator) -> None:
        assert verdict(comparator, {"L": [1, 2, 3]}, {"L": [3, 2, 1]}, sort_arrays=True)

    def test_tags_scenario(self, comparator: StateComparator) -> None:
        current = {"Tags": ["b", "a"]}
        desired = {"Tags": ["a", "b"]}
        result = comparator.compare(current, desired)
        assert not result.in_desired_state
        assert result.mismatched_paths == ["Tags[0]", "Tags[1]"]
        assert verdict(comparator, current, desired, sort_arrays=True)

    def test_unorderable_elements_sort_by_repr(self, comparator: StateComparator) -> None:
        assert verdict(
            comparator, {"L": ["a", 1]}, {"L": [1, "a"]}, sort_arrays=True
        )

    def test_sorted_maps_ignore_key_order(self, comparator: StateComparator) -> None:
        current = {"Rules": [{"b": 1}, {"a": 2, "c": 0}]}
        desired = {"Rules": [{"b": 1}, {"c": 0, "a": 2}]}
        assert verdict(comparator, current, desired)
        assert verdict(comparator, current, desired, sort_arrays=True)

    def test_sorted_maps_pair_by_content(self, comparator: StateComparator) -> None:
        current = {"Rules": [{"id": 2, "on": [{"y": 1, "x": 0}]}, {"id": 1}]}
        desired = {"Rules": [{"id": 1}, {"on": [{"x": 0, "y": 1}], "id": 2}]}
        assert not verdict(comparator, current, desired)
        assert verdict(comparator, current, desired, sort_arrays=True)

    def test_both_empty(self, comparator: StateComparator) -> None:
        assert verdict(comparator, {"L": []}, {"L": []})
        assert verdict(comparator, {"L": None}, {"L": []})

    def test_missing_current_array(self, comparator: StateComparator) -> None:
        result = comparator.compare({}, {"L": [1]})
        assert not result.in_desired_state
        assert "missing" in result.trace[0].message

    def test_length_mismatch(self, comparator: StateComparator) -> None:
        result = comparator.compare({"L": [1]}, {"L": [1, 2]})
        assert not result.in_desired_state
        assert "1 elements but should have 2" in result.trace[0].message

    def test_element_type_mismatch(self, comparator: StateComparator) -> None:
        result = comparator.compare({"L": [1, "2"]}, {"L": [1, 2]})
        assert result.mismatched_paths == ["L[1]"]

    def test_element_loose_equality(self, comparator: StateComparator) -> None:
        assert verdict(comparator, {"L": [1, "2"]}, {"L": [1, 2]}, skip_type_checking=True)

    def test_arrays_of_maps_recurse(self, comparator: StateComparator) -> None:
        current = {"Rules": [{"id": 1, "on": True}, {"id": 2, "on": True}]}
        desired = {"Rules": [{"id": 1, "on": True}, {"id": 3, "on": True}]}
        result = comparator.compare(current, desired)
        assert not result.in_desired_state
        assert result.mismatched_paths == ["Rules[1].id"]

    def test_nested_arrays(self, comparator: StateComparator) -> None:
        assert verdict(comparator, {"M": [[1, 2], [3]]}, {"M": [[1, 2], [3]]})
        assert not verdict(comparator, {"M": [[1, 2], [3]]}, {"M": [[1, 2], [4]]})

    def test_tuples_are_arrays(self, comparator: StateComparator) -> None:
        assert verdict(comparator, {"T": (2, 1)}, {"T": (1, 2)}, sort_arrays=True)

    def test_numpy_arrays(self, comparator: StateComparator) -> None:
        assert verdict(comparator, {"V": np.array([1, 2])}, {"V": np.array([1, 2])})
        assert not verdict(comparator, {"V": np.array([1, 2])}, {"V": np.array([1, 3])})


# ---------------------------------------------------------------------------
# Credentials
# ---------------------------------------------------------------------------


class TestCredentials:
    def test_bare_user_name_matches(self, comparator: StateComparator) -> None:
        assert verdict(comparator, {"C": "alice"}, {"C": Credential("alice", "pw")})

    def test_credential_matches_regardless_of_secret(self, comparator: StateComparator) -> None:
        current = {"C": Credential("alice", "other")}
        assert verdict(comparator, current, {"C": Credential("alice", "pw")})

    @pytest.mark.parametrize("current", ["bob", Credential("bob", "pw"), None])
    def test_user_name_mismatch(self, comparator: StateComparator, current: Any) -> None:
        assert not verdict(comparator, {"C": current}, {"C": Credential("alice", "pw")})

    def test_mismatch_does_not_stop_other_keys(self, comparator: StateComparator) -> None:
        current = {"C": "bob", "Name": "a"}
        desired = {"C": Credential("alice", "pw"), "Name": "b"}
        result = comparator.compare(current, desired)
        assert not result.in_desired_state
        assert result.mismatched_paths == ["C", "Name"]

    def test_secret_never_in_trace(self, comparator: StateComparator) -> None:
        result = comparator.compare(
            {"C": Credential("alice", "s3cret")}, {"C": Credential("alice", "s3cret")}
        )
        assert all("s3cret" not in message for message in result.messages)


# ---------------------------------------------------------------------------
# Code blocks
# ---------------------------------------------------------------------------


class TestCodeBlocks:
    def test_same_source_matches(self, comparator: StateComparator) -> None:
        assert verdict(comparator, {"S": ScriptBlock("x")}, {"S": ScriptBlock("x")})

    def test_invoked_result_against_string(self, comparator: StateComparator) -> None:
        desired = {"S": ScriptBlock("Get-Mode", function=lambda: "on")}
        assert verdict(comparator, {"S": "on"}, desired, skip_type_checking=True)
        assert not verdict(comparator, {"S": "off"}, desired, skip_type_checking=True)

    def test_unbound_block_compares_source(self, comparator: StateComparator) -> None:
        desired = {"S": ScriptBlock("Get-Mode")}
        assert verdict(comparator, {"S": "Get-Mode"}, desired, skip_type_checking=True)

    def test_block_against_string_is_type_mismatch_by_default(
        self, comparator: StateComparator
    ) -> None:
        desired = {"S": ScriptBlock("Get-Mode", function=lambda: "on")}
        assert not verdict(comparator, {"S": "on"}, desired)

    def test_array_elements(self, comparator: StateComparator) -> None:
        desired = {"L": [ScriptBlock("a", function=lambda: "on")]}
        assert verdict(comparator, {"L": ["on"]}, desired, skip_type_checking=True)


# ---------------------------------------------------------------------------
# Nested maps and property selection
# ---------------------------------------------------------------------------


class TestNestedMaps:
    def test_nested_mismatch_path(self, comparator: StateComparator) -> None:
        current = {"Svc": {"Port": 80, "Name": "web"}}
        desired = {"Svc": {"Port": 8080, "Name": "web"}}
        result = comparator.compare(current, desired)
        assert not result.in_desired_state
        assert result.mismatched_paths == ["Svc.Port"]

    def test_nested_calls_clear_properties(self, comparator: StateComparator) -> None:
        current = {"Svc": {"Port": 80}, "Other": 1}
        desired = {"Svc": {"Port": 80}, "Other": 2}
        assert verdict(comparator, current, desired, properties=["Svc"])

    def test_nested_calls_keep_exclusions(self, comparator: StateComparator) -> None:
        current = {"Svc": {"Port": 80, "Pid": 1}}
        desired = {"Svc": {"Port": 80, "Pid": 2}}
        assert verdict(comparator, current, desired, exclude_properties=["Pid"])


class TestPropertySelection:
    def test_restricted(self, comparator: StateComparator) -> None:
        assert verdict(comparator, {"a": 1, "b": 2}, {"a": 1, "b": 3}, properties=["a"])

    def test_excluded(self, comparator: StateComparator) -> None:
        assert verdict(comparator, {"a": 1, "b": 2}, {"a": 1, "b": 3}, exclude_properties=["b"])

    def test_listed_key_absent_from_desired(self, comparator: StateComparator) -> None:
        result = comparator.compare(
            {"a": 1, "z": 5}, {"a": 1}, ComparisonOptions(properties=["a", "z"])  # type: ignore[arg-type]
        )
        assert result.in_desired_state
        assert "nothing to enforce" in result.trace[-1].message


# ---------------------------------------------------------------------------
# Reverse check and trace completeness
# ---------------------------------------------------------------------------


class TestReverseCheck:
    def test_extra_current_key_fails_reverse(self, comparator: StateComparator) -> None:
        current = {"a": 1, "extra": 2}
        desired = {"a": 1}
        assert verdict(comparator, current, desired)
        assert not verdict(comparator, current, desired, reverse_check=True)

    def test_reverse_of_equal_bags(self, comparator: StateComparator) -> None:
        assert verdict(comparator, {"a": [1], "b": {"c": 2}}, {"a": [1], "b": {"c": 2}}, reverse_check=True)


class TestTraceCompleteness:
    def test_every_mismatch_is_reported(self, comparator: StateComparator) -> None:
        result = comparator.compare({"a": 1, "b": 2, "c": 3}, {"a": 0, "b": 0, "c": 3})
        assert result.mismatched_paths == ["a", "b"]
        assert [entry.matched for entry in result.trace] == [False, False, True]

    def test_verdict_never_recovers(self, comparator: StateComparator) -> None:
        current = {"a": 0, "n": {"x": 1}, "l": [{"y": 1}]}
        desired = {"a": 1, "n": {"x": 1}, "l": [{"y": 1}]}
        result = comparator.compare(current, desired)
        assert not result.in_desired_state
        assert not bool(result)

    def test_custom_messages(self) -> None:
        comparator = StateComparator(messages=MessageCatalog(value_mismatch="DRIFT {path}"))
        result = comparator.compare({"a": 1}, {"a": 2})
        assert result.messages == ["DRIFT a"]

    def test_entries_logged_at_debug(
        self, comparator: StateComparator, caplog: pytest.LogCaptureFixture
    ) -> None:
        caplog.set_level(logging.DEBUG, logger="desired_state.state.comparator")
        comparator.compare({"a": 1}, {"a": 2})
        assert any("no-match" in record.getMessage() for record in caplog.records)

    def test_compare_messages_only_built_for_debug(
        self,
        comparator: StateComparator,
        caplog: pytest.LogCaptureFixture,
        monkeypatch: pytest.MonkeyPatch,
    ) -> None:
        rendered: list[str] = []
        original = MessageCatalog.render

        def render(catalog: MessageCatalog, name: str, **values: Any) -> str:
            rendered.append(name)
            return original(catalog, name, **values)

        monkeypatch.setattr(MessageCatalog, "render", render)
        options = ComparisonOptions(reverse_check=True)

        caplog.set_level(logging.INFO, logger="desired_state.state.comparator")
        comparator.compare({"a": 1}, {"a": 1}, options)
        assert "value_match" in rendered
        assert "compare" not in rendered
        assert "reverse_check" not in rendered

        caplog.set_level(logging.DEBUG, logger="desired_state.state.comparator")
        comparator.compare({"a": 1}, {"a": 1}, options)
        assert "compare" in rendered
        assert "reverse_check" in rendered


# ---------------------------------------------------------------------------
# Input shapes
# ---------------------------------------------------------------------------


@dataclass
class ServiceConfig:
    name: str
    port: int


Endpoint = namedtuple("Endpoint", ["host", "port"])


class Settings:
    def __init__(self, name: str) -> None:
        self.name = name


class TestInputShapes:
    def test_dataclass_and_mapping(self, comparator: StateComparator) -> None:
        assert verdict(comparator, ServiceConfig("web", 80), {"name": "web", "port": 80})

    def test_namedtuple(self, comparator: StateComparator) -> None:
        assert verdict(comparator, {"host": "h", "port": 1}, Endpoint("h", 1))

    def test_nested_dataclass_value_is_normalized(self, comparator: StateComparator) -> None:
        current = {"svc": ServiceConfig("web", 80)}
        desired = {"svc": {"name": "web", "port": 80}}
        assert verdict(comparator, current, desired)

    def test_plain_object_as_current(self, comparator: StateComparator) -> None:
        assert verdict(comparator, Settings("a"), {"name": "a"})

    def test_plain_object_as_desired_needs_properties(self, comparator: StateComparator) -> None:
        with pytest.raises(MissingPropertyList):
            comparator.compare({"name": "a"}, Settings("a"))
        assert verdict(comparator, {"name": "a"}, Settings("a"), properties=["name"])

    @pytest.mark.parametrize(
        ("current", "desired"),
        [(5, {}), ({}, "x"), ([1], {}), ({}, None)],
    )
    def test_invalid_shapes(self, comparator: StateComparator, current: Any, desired: Any) -> None:
        with pytest.raises(InvalidInputShape):
            comparator.compare(current, desired)

    def test_inputs_not_mutated(self, comparator: StateComparator) -> None:
        current = {"L": [3, 1, 2], "N": {"a": 1}}
        desired = {"L": [1, 2, 3], "N": {"a": 1}}
        comparator.compare(current, desired, ComparisonOptions(sort_arrays=True, reverse_check=True))
        assert current == {"L": [3, 1, 2], "N": {"a": 1}}
        assert desired == {"L": [1, 2, 3], "N": {"a": 1}}
