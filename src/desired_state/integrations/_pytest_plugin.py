"""pytest plugin for desired-state.

Auto-discovered by pytest via the pytest11 entry point declared in pyproject.toml.
When the package is installed (even in editable mode), pytest discovers this plugin
automatically -- no conftest.py changes are needed.
"""

from __future__ import annotations

from typing import Any

import pytest

from desired_state import ComparisonOptions, compare_states


@pytest.fixture(scope="session")
def assert_in_desired_state() -> Any:
    """Fixture that returns a callable desired-state asserter.

    The fixture is session-scoped because the returned callable is stateless
    (delegates to compare_states() which creates a fresh StateComparator per call).

    Usage in tests::

        def test_service(assert_in_desired_state):
            assert_in_desired_state({"Ensure": "Present"}, {"Ensure": "Present"})

        def test_drift(assert_in_desired_state):
            with pytest.raises(AssertionError, match=r"Ensure"):
                assert_in_desired_state({"Ensure": "Absent"}, {"Ensure": "Present"})

    Returns:
        A callable ``_assert(current, desired, options=None, **option_fields) -> None``
        that raises ``AssertionError`` when ``current`` is not in the desired state.
        ``option_fields`` are ``ComparisonOptions`` fields, e.g. ``sort_arrays=True``.
    """

    def _assert(
        current: Any,
        desired: Any,
        options: ComparisonOptions | None = None,
        **option_fields: Any,
    ) -> None:
        """Assert that ``current`` is in the ``desired`` state.

        Raises:
            AssertionError: With the mismatched paths and every failed trace
                message when the comparison verdict is False.
        """
        if option_fields:
            options = (options or ComparisonOptions()).evolve(**option_fields)
        result = compare_states(current, desired, options)
        if not result.in_desired_state:
            failures = "\n".join(
                f"  {entry.message}" for entry in result.trace if not entry.matched
            )
            raise AssertionError(
                f"state not in desired state: "
                f"mismatched={result.mismatched_paths}\n"
                f"{failures}\n"
                f"  current: {current!r}\n"
                f"  desired: {desired!r}"
            )

    return _assert
