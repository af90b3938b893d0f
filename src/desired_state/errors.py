"""Exception hierarchy for desired-state.

Every error raised on purpose by the library derives from ``DesiredStateError``.
The concrete classes also inherit from the closest built-in exception so callers
that only know about ``ValueError`` / ``TypeError`` keep working.

Mismatches found by the comparator are NOT errors; they are reported as data
in a ``StateComparison``.  Only malformed inputs raise.
"""

from __future__ import annotations

__all__ = [
    "DesiredStateError",
    "InvalidInputShape",
    "MalformedLiteral",
    "MissingPropertyList",
    "UnsupportedArgumentShape",
]


class DesiredStateError(Exception):
    """Root of every exception raised by desired-state."""


class MalformedLiteral(DesiredStateError, ValueError):
    """Argument text could not be parsed as a list of literal arguments.

    Attributes:
        offset: Zero-based character offset where parsing failed.
    """

    def __init__(self, message: str, offset: int = 0) -> None:
        super().__init__(f"{message} (at offset {offset})")
        self.offset = offset


class UnsupportedArgumentShape(DesiredStateError, ValueError):
    """An argument parsed fine but is not a literal value shape.

    Raised for variable references, sub-expressions, commands and any cast
    that cannot be reconstructed without evaluation.

    Attributes:
        text: Source text of the rejected argument.
    """

    def __init__(self, message: str, text: str = "") -> None:
        super().__init__(f"{message}: {text!r}" if text else message)
        self.text = text


class InvalidInputShape(DesiredStateError, TypeError):
    """A comparator input is not a property-bag-like value."""


class MissingPropertyList(DesiredStateError, ValueError):
    """A comparison needs an explicit property list for this kind of source."""
