"""state subpackage: structural comparison of current and desired state.

Re-exports the public API:
- StateComparator: the recursive property-bag comparator
- ComparisonOptions: immutable comparison rules
- MessageCatalog / DEFAULT_MESSAGES: injectable trace message templates
- StateComparison / TraceEntry: verdict plus per-key trace
"""

from __future__ import annotations

from desired_state.state.comparator import StateComparator
from desired_state.state.messages import DEFAULT_MESSAGES, MessageCatalog
from desired_state.state.options import ComparisonOptions
from desired_state.state.result import StateComparison, TraceEntry

__all__ = [
    "DEFAULT_MESSAGES",
    "ComparisonOptions",
    "MessageCatalog",
    "StateComparator",
    "StateComparison",
    "TraceEntry",
]
