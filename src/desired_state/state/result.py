"""StateComparison and TraceEntry: the output of a state comparison.

A mismatch is an ordinary outcome, reported here as data rather than raised.
"""

from __future__ import annotations

from dataclasses import dataclass

__all__ = ["StateComparison", "TraceEntry"]


@dataclass(frozen=True, slots=True)
class TraceEntry:
    """One evaluated key or element.

    Attributes:
        path: Dotted location of the value, e.g. ``Service.Ports[1]``.
        matched: Whether the value was found to be in the desired state.
        message: Human-readable description rendered from the message catalog.
    """

    path: str
    matched: bool
    message: str


@dataclass(frozen=True, slots=True)
class StateComparison:
    """Result of a ``compare_states()`` call.

    Attributes:
        in_desired_state: The verdict.  False as soon as any compared key
            (forward or reverse) did not match.
        trace: Every evaluated key and element, in evaluation order, including
            those evaluated after the verdict became False.
    """

    in_desired_state: bool
    trace: tuple[TraceEntry, ...] = ()

    def __bool__(self) -> bool:
        return self.in_desired_state

    @property
    def mismatched_paths(self) -> list[str]:
        """Paths of failed entries, first occurrence order, without duplicates."""
        return list(dict.fromkeys(entry.path for entry in self.trace if not entry.matched))

    @property
    def messages(self) -> list[str]:
        return [entry.message for entry in self.trace]
