"""RenderContext: immutable settings and recursion state for the serializer.

A context is created once per top-level ``to_expression`` call.  Every descent
into a child value derives a new context through ``descend()`` which bumps
``current_depth`` and sets ``is_list_item`` for the child's subtree; all other
fields are copied unchanged.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Any, Final

__all__ = ["DEFAULT_MAX_DEPTH", "RenderContext"]

DEFAULT_MAX_DEPTH: Final[int] = 9
_NEWLINES: Final[frozenset[str]] = frozenset({"\n", "\r\n"})


@dataclass(frozen=True, slots=True)
class RenderContext:
    """Serializer configuration plus per-call recursion state.

    Attributes:
        max_depth: Depth at which child values are replaced by ``'...'``.
            The root value sits at depth 0.
        expand: Expansion threshold.  Containers at ``current_depth >= expand - 1``
            render inline; a negative value requests compact output
            (no spaces around separators).  Defaults to ``max_depth``.
        indent_size: Number of ``indent_char`` repetitions per nesting level.
        indent_char: A single whitespace character (``" "`` or ``"\\t"``).
        strong: Emit explicit type casts for round-trip type fidelity.
        explore: Drop every cast for structural inspection, unless ``strong``
            is also set.
        newline: Line separator for expanded containers.
        current_depth: Depth of the value being rendered.
        is_list_item: Whether the value being rendered is an element of a sequence.
    """

    max_depth: int = DEFAULT_MAX_DEPTH
    expand: int | None = None
    indent_size: int = 4
    indent_char: str = " "
    strong: bool = False
    explore: bool = False
    newline: str = "\n"
    current_depth: int = 0
    is_list_item: bool = False

    def __post_init__(self) -> None:
        if self.max_depth < 1:
            msg = f"max_depth must be >= 1, got {self.max_depth}"
            raise ValueError(msg)
        if self.indent_size < 0:
            msg = f"indent_size must be >= 0, got {self.indent_size}"
            raise ValueError(msg)
        if len(self.indent_char) != 1 or not self.indent_char.isspace():
            msg = f"indent_char must be a single whitespace character, got {self.indent_char!r}"
            raise ValueError(msg)
        if self.newline not in _NEWLINES:
            msg = f"newline must be '\\n' or '\\r\\n', got {self.newline!r}"
            raise ValueError(msg)
        if self.current_depth < 0:
            msg = f"current_depth must be >= 0, got {self.current_depth}"
            raise ValueError(msg)
        if self.expand is None:
            object.__setattr__(self, "expand", self.max_depth)

    # ------------------------------------------------------------------
    # Derived state
    # ------------------------------------------------------------------

    @property
    def compact(self) -> bool:
        return self.expand is not None and self.expand < 0

    @property
    def inline(self) -> bool:
        """True when containers at this depth must render on a single line."""
        if self.compact:
            return True
        return self.expand is not None and self.current_depth >= self.expand - 1

    @property
    def child_depth_exhausted(self) -> bool:
        """True when children of the current value fall on the depth limit."""
        return self.current_depth + 1 >= self.max_depth

    @property
    def casts_enabled(self) -> bool:
        return self.strong or not self.explore

    def indent(self, level: int | None = None) -> str:
        """Indentation string for ``level`` (defaults to the current depth)."""
        depth = self.current_depth if level is None else level
        return self.indent_char * (self.indent_size * depth)

    def evolve(self, **changes: Any) -> RenderContext:
        """Return a copy with ``changes`` applied.

        An ``expand`` that was left at its default follows a new ``max_depth``.
        """
        if "max_depth" in changes and "expand" not in changes and self.expand == self.max_depth:
            changes["expand"] = None
        return replace(self, **changes)

    def descend(self, *, list_item: bool = False) -> RenderContext:
        """Context for a child value one level deeper."""
        return replace(self, current_depth=self.current_depth + 1, is_list_item=list_item)
