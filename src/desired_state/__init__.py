"""desired-state: literal expressions, safe literal extraction and state comparison."""

from __future__ import annotations

from desired_state.api import (
    compare_states,
    extract_arguments,
    states_equal,
    to_expression,
)
from desired_state.errors import (
    DesiredStateError,
    InvalidInputShape,
    MalformedLiteral,
    MissingPropertyList,
    UnsupportedArgumentShape,
)
from desired_state.expression import Category, ExpressionSerializer, RenderContext, classify
from desired_state.literal import LiteralExtractor
from desired_state.state import (
    ComparisonOptions,
    MessageCatalog,
    StateComparator,
    StateComparison,
    TraceEntry,
)
from desired_state.values import Credential, ScriptBlock, SecureValue

__version__: str = "0.1.0"
__all__: list[str] = [
    "Category",
    "ComparisonOptions",
    "Credential",
    "DesiredStateError",
    "ExpressionSerializer",
    "InvalidInputShape",
    "LiteralExtractor",
    "MalformedLiteral",
    "MessageCatalog",
    "MissingPropertyList",
    "RenderContext",
    "ScriptBlock",
    "SecureValue",
    "StateComparator",
    "StateComparison",
    "TraceEntry",
    "UnsupportedArgumentShape",
    "classify",
    "compare_states",
    "extract_arguments",
    "states_equal",
    "to_expression",
]
