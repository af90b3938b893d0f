"""literal subpackage: safe extraction of literal arguments from text.

Re-exports the public API:
- LiteralExtractor: parse argument text and build Python values, never evaluating
- parse_arguments: the restricted recursive-descent parser on its own
- the syntax node types the parser produces

Example::

    from desired_state.literal import LiteralExtractor

    LiteralExtractor().extract_arguments("@{ Port = 443 }, 'web'")
    # [{'Port': 443}, 'web']
"""

from __future__ import annotations

from desired_state.literal.extractor import SUPPORTED_CASTS, LiteralExtractor
from desired_state.literal.nodes import (
    CastLiteral,
    CodeBlockLiteral,
    CollectionLiteral,
    ConstantLiteral,
    ExpressionNode,
    LiteralNode,
    MapLiteral,
    StringLiteral,
)
from desired_state.literal.parser import LiteralParser, parse_arguments

__all__ = [
    "SUPPORTED_CASTS",
    "CastLiteral",
    "CodeBlockLiteral",
    "CollectionLiteral",
    "ConstantLiteral",
    "ExpressionNode",
    "LiteralExtractor",
    "LiteralNode",
    "LiteralParser",
    "MapLiteral",
    "StringLiteral",
    "parse_arguments",
]
