"""Integration tests for the desired-state pytest plugin.

These tests verify that the assert_in_desired_state fixture is auto-discovered
via the pytest11 entry point and behaves correctly.

NOTE: These tests require desired-state to be installed (even in editable mode
via ``pip install -e .``). The pytest11 entry point is only registered at
install time -- running from a raw source checkout without installing will not
discover the fixture.
"""

from __future__ import annotations

import subprocess
import sys
from pathlib import Path
from typing import Any

import pytest

from desired_state import ComparisonOptions


def test_fixture_passes_matching_state(assert_in_desired_state: Any) -> None:
    """A current state holding every desired value passes."""
    assert_in_desired_state(
        {"Ensure": "Present", "Port": 80, "Extra": "ignored"},
        {"Ensure": "Present", "Port": 80},
    )


def test_fixture_fails_on_drift(assert_in_desired_state: Any) -> None:
    """A differing value raises AssertionError naming the path."""
    with pytest.raises(AssertionError, match=r"mismatched=\['Port'\]"):
        assert_in_desired_state({"Port": 8080}, {"Port": 80})


def test_fixture_option_fields(assert_in_desired_state: Any) -> None:
    """Keyword option fields are forwarded to ComparisonOptions."""
    assert_in_desired_state({"Tags": ["b", "a"]}, {"Tags": ["a", "b"]}, sort_arrays=True)

    with pytest.raises(AssertionError, match=r"mismatched="):
        assert_in_desired_state({"Tags": ["b", "a"]}, {"Tags": ["a", "b"]})


def test_fixture_options_object(assert_in_desired_state: Any) -> None:
    """An options object is honoured and may be refined by keyword fields."""
    options = ComparisonOptions(exclude_properties=["Pid"])  # type: ignore[arg-type]
    assert_in_desired_state({"Pid": 1, "Name": "svc"}, {"Pid": 2, "Name": "svc"}, options)

    with pytest.raises(AssertionError, match=r"Extra"):
        assert_in_desired_state(
            {"Pid": 1, "Name": "svc"},
            {"Pid": 2, "Name": "svc", "Extra": True},
            options,
            skip_type_checking=True,
        )


def test_fixture_error_message_contents(assert_in_desired_state: Any) -> None:
    """AssertionError message should contain the failed messages and both states."""
    with pytest.raises(AssertionError) as exc_info:
        assert_in_desired_state({"Port": 8080, "Name": "svc"}, {"Port": 80, "Name": "svc"})

    error_message = str(exc_info.value)
    assert "mismatched=" in error_message
    assert "'Port': value is 8080 but should be 80." in error_message
    assert "'Name'" not in error_message.split("current:")[0].split("\n", 1)[1]
    assert "current:" in error_message
    assert "desired:" in error_message


def test_fixture_returns_callable(assert_in_desired_state: Any) -> None:
    """The fixture should return a callable, not None or a direct assertion result."""
    assert callable(assert_in_desired_state)


def test_plugin_discovery() -> None:
    """Verify assert_in_desired_state appears in pytest --fixtures output."""
    result = subprocess.run(
        [sys.executable, "-m", "pytest", "--fixtures", "-q"],
        capture_output=True,
        text=True,
        cwd=str(Path(__file__).resolve().parents[2]),
    )
    assert "assert_in_desired_state" in result.stdout, (
        f"assert_in_desired_state not found in pytest --fixtures output.\n"
        f"stdout:\n{result.stdout}\n"
        f"stderr:\n{result.stderr}"
    )
