"""Public API functions for desired-state.

This module provides the four user-facing functions: to_expression,
extract_arguments, compare_states and states_equal.  to_expression and
compare_states create a fresh ExpressionSerializer or StateComparator per
call.  extract_arguments shares one module-level LiteralExtractor so repeated
texts hit its parse cache; the values it returns are still built fresh per
call.
"""

from __future__ import annotations

from typing import Any

from desired_state.expression.context import RenderContext
from desired_state.expression.serializer import ExpressionSerializer
from desired_state.literal.extractor import LiteralExtractor
from desired_state.state.comparator import StateComparator
from desired_state.state.messages import MessageCatalog
from desired_state.state.options import ComparisonOptions
from desired_state.state.result import StateComparison

__all__ = ["compare_states", "extract_arguments", "states_equal", "to_expression"]

_EXTRACTOR = LiteralExtractor()


def to_expression(
    value: Any,
    context: RenderContext | None = None,
    **overrides: Any,
) -> str:
    """Render ``value`` as a literal expression.

    Args:
        value:     Any value: scalars, mappings, sequences, dates, enums,
                   secure values, credentials, code blocks or plain objects.
        context:   Rendering settings.  Defaults to ``RenderContext()``.
        overrides: ``RenderContext`` fields replacing those of ``context``,
                   e.g. ``to_expression(v, strong=True, expand=-1)``.

    Returns:
        Expression text with trailing whitespace removed.

    Raises:
        ValueError: An override produces an invalid ``RenderContext``.
    """
    context = context if context is not None else RenderContext()
    if overrides:
        context = context.evolve(**overrides)
    return ExpressionSerializer(context).serialize(value)


def extract_arguments(text: str) -> list[Any]:
    """Return the literal values in an argument-list fragment, never evaluating it.

    Args:
        text: Untrusted text such as ``"'a', @{ Name = 'x' }"``.

    Returns:
        One value per argument; a comma-list argument contributes one value per
        element.
        Parsed syntax is cached across calls; the returned values are not
        shared, so mutating them does not affect later results.

    Raises:
        MalformedLiteral:         ``text`` does not parse.
        UnsupportedArgumentShape: An argument is not a literal value shape.
    """
    return _EXTRACTOR.extract_arguments(text)


def compare_states(
    current: Any,
    desired: Any,
    options: ComparisonOptions | None = None,
    messages: MessageCatalog | None = None,
) -> StateComparison:
    """Compare a current state with a desired state and return verdict plus trace.

    Args:
        current:  The state as it is (mapping, dataclass, named tuple or object).
        desired:  The state as it should be.
        options:  Comparison rules.  Defaults to ``ComparisonOptions()``.
        messages: Trace message templates.  Defaults to ``DEFAULT_MESSAGES``.

    Returns:
        A ``StateComparison``; mismatches are reported there, never raised.

    Raises:
        InvalidInputShape:   Either input is not property-bag-like.
        MissingPropertyList: ``desired`` needs ``options.properties``.
    """
    return StateComparator(messages=messages).compare(current, desired, options)


def states_equal(
    current: Any,
    desired: Any,
    options: ComparisonOptions | None = None,
) -> bool:
    """Return True if ``current`` is in the ``desired`` state.

    Shorthand for ``compare_states(current, desired, options).in_desired_state``.
    """
    return compare_states(current, desired, options).in_desired_state
