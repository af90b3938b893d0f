"""Syntax nodes produced by the restricted literal parser.

Nodes are frozen so parsed trees can be cached and shared; turning a tree into
Python values is the extractor's job.  Every node keeps ``text``, the exact
source span it was parsed from, for error reporting.

- StringLiteral     : quoted, raw-block or bareword text
- ConstantLiteral   : number, ``$true``, ``$false`` or ``$null``
- MapLiteral        : ``@{ key = value; ... }``
- CollectionLiteral : comma list, ``@( ... )`` or unary-comma singleton
- CodeBlockLiteral  : ``{ ... }`` kept as source text
- CastLiteral       : ``[type]`` applied to an operand
- ExpressionNode    : anything that would need evaluation (variables,
                      sub-expressions, commands, operators, static calls)
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal

__all__ = [
    "CastLiteral",
    "CodeBlockLiteral",
    "CollectionLiteral",
    "ConstantLiteral",
    "ExpressionNode",
    "LiteralNode",
    "MapLiteral",
    "StringLiteral",
]


@dataclass(frozen=True, slots=True)
class StringLiteral:
    value: str
    text: str


@dataclass(frozen=True, slots=True)
class ConstantLiteral:
    value: bool | int | float | Decimal | None
    text: str


@dataclass(frozen=True, slots=True)
class MapLiteral:
    """Map entries in source order; keys are literal nodes too."""

    entries: tuple[tuple[LiteralNode, LiteralNode], ...]
    text: str


@dataclass(frozen=True, slots=True)
class CollectionLiteral:
    elements: tuple[LiteralNode, ...]
    text: str


@dataclass(frozen=True, slots=True)
class CodeBlockLiteral:
    """A code block; ``text`` includes the enclosing braces."""

    text: str

    @property
    def body(self) -> str:
        """Source text with one enclosing pair of braces removed."""
        if len(self.text) >= 2 and self.text[0] == "{" and self.text[-1] == "}":
            return self.text[1:-1]
        return self.text


@dataclass(frozen=True, slots=True)
class CastLiteral:
    """A cast; ``start`` is the offset of the ``[`` in the source."""

    type_name: str
    operand: LiteralNode
    text: str
    start: int = 0


@dataclass(frozen=True, slots=True)
class ExpressionNode:
    """Source span that is valid syntax but not a literal value."""

    text: str
    reason: str


LiteralNode = (
    StringLiteral
    | ConstantLiteral
    | MapLiteral
    | CollectionLiteral
    | CodeBlockLiteral
    | CastLiteral
    | ExpressionNode
)
