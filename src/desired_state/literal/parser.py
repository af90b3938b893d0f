"""LiteralParser: recursive-descent parser for a literal argument list.

The input is treated as the argument list of a command invocation: arguments
are separated by whitespace, a comma list forms one collection argument, and
``-Name`` parameter tokens are skipped.  Inside brackets the parser switches to
expression mode, where barewords are commands rather than strings.

Nothing is ever evaluated.  Syntax that is valid but not a literal (variables,
``$(...)``, commands, operators, static calls) is captured verbatim as an
``ExpressionNode`` so that the extractor can reject it with
``UnsupportedArgumentShape``; syntax errors raise ``MalformedLiteral`` here.

Grammar (informal)::

    arguments := (PARAMETER | argument)*
    argument  := element ("," NL* element)*
    statement := element ("," NL* element)*                  # expression mode
    element   := "," NL* element | CAST element | primary operation?
    primary   := STRING | RAW_BLOCK | EXPANDABLE | NUMBER | VARIABLE
               | "@{" map "}" | "@(" statements ")" | "(" statement ")"
               | "{" ... "}" | "$(" ... ")" | BAREWORD
    map       := (entry (SEP entry)*)?        entry := key "=" NL* statement
"""

from __future__ import annotations

import re
from decimal import Decimal
from typing import Final

from desired_state.errors import MalformedLiteral
from desired_state.literal.lexer import Lexer, Token, TokenKind
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

__all__ = ["LiteralParser", "parse_arguments"]

_CONSTANTS: Final[dict[str, bool | None]] = {"true": True, "false": False, "null": None}

_OPERAND_START: Final[frozenset[TokenKind]] = frozenset(
    {
        TokenKind.STRING,
        TokenKind.RAW_BLOCK,
        TokenKind.EXPANDABLE,
        TokenKind.NUMBER,
        TokenKind.VARIABLE,
        TokenKind.SUBEXPR,
        TokenKind.MAP_OPEN,
        TokenKind.ARRAY_OPEN,
        TokenKind.CAST,
        TokenKind.LBRACE,
        TokenKind.LPAREN,
        TokenKind.BAREWORD,
    }
)
_OPERATORS: Final[frozenset[TokenKind]] = frozenset(
    {TokenKind.OPERATOR, TokenKind.PARAMETER, TokenKind.OTHER}
)
_STATEMENT_END: Final[frozenset[TokenKind]] = frozenset(
    {TokenKind.NEWLINE, TokenKind.SEMI, TokenKind.RPAREN, TokenKind.RBRACE, TokenKind.EOF}
)
_OPENERS: Final[frozenset[TokenKind]] = frozenset(
    {
        TokenKind.LBRACE,
        TokenKind.MAP_OPEN,
        TokenKind.LPAREN,
        TokenKind.ARRAY_OPEN,
        TokenKind.SUBEXPR,
    }
)

# "$" starting a variable or sub-expression inside a double-quoted string.
_EXPANSION = re.compile(r"(?<!`)\$(?=[\w{(?^:$])")
_ESCAPE = re.compile(r"`(.)", re.DOTALL)
_ESCAPES: Final[dict[str, str]] = {
    "0": "\0",
    "a": "\a",
    "b": "\b",
    "e": "\x1b",
    "f": "\f",
    "n": "\n",
    "r": "\r",
    "t": "\t",
    "v": "\v",
}


def parse_arguments(source: str) -> tuple[LiteralNode, ...]:
    """Parse ``source`` as a literal argument list (see ``LiteralParser``)."""
    return LiteralParser(source).parse_arguments()


class LiteralParser:
    """Single-use parser over one source string."""

    def __init__(self, source: str) -> None:
        self._source = source
        self._lexer = Lexer(source)
        self._last_end = 0

    def parse_arguments(self) -> tuple[LiteralNode, ...]:
        """Parse the whole source; raises ``MalformedLiteral`` on any syntax error."""
        arguments: list[LiteralNode] = []
        while True:
            token = self._peek()
            if token.kind is TokenKind.EOF:
                return tuple(arguments)
            if token.kind in (TokenKind.NEWLINE, TokenKind.SEMI, TokenKind.PARAMETER):
                self._next()
                continue
            if token.kind in (TokenKind.RPAREN, TokenKind.RBRACE, TokenKind.EQUALS):
                msg = f"unexpected {token.text!r}"
                raise MalformedLiteral(msg, token.start)
            arguments.append(self._parse_sequence(command_mode=True))

    # ------------------------------------------------------------------
    # Token plumbing
    # ------------------------------------------------------------------

    def _peek(self) -> Token:
        return self._lexer.peek()

    def _next(self) -> Token:
        token = self._lexer.next()
        self._last_end = token.end
        return token

    def _expect(self, kind: TokenKind, description: str) -> Token:
        token = self._next()
        if token.kind is not kind:
            found = token.text or "end of input"
            msg = f"expected {description}, found {found!r}"
            raise MalformedLiteral(msg, token.start)
        return token

    def _skip_balanced(self, opener: Token) -> None:
        self._last_end = self._lexer.skip_balanced(opener)

    def _skip_newlines(self) -> None:
        while self._peek().kind is TokenKind.NEWLINE:
            self._next()

    def _skip_separators(self) -> None:
        while self._peek().kind in (TokenKind.NEWLINE, TokenKind.SEMI):
            self._next()

    def _span(self, start: int) -> str:
        return self._source[start : self._last_end]

    # ------------------------------------------------------------------
    # Sequences and elements
    # ------------------------------------------------------------------

    def _parse_sequence(self, *, command_mode: bool) -> LiteralNode:
        start = self._peek().start
        first = self._parse_element(command_mode=command_mode)
        if self._peek().kind is not TokenKind.COMMA:
            return first
        elements = [first]
        while self._peek().kind is TokenKind.COMMA:
            self._next()
            self._skip_newlines()
            elements.append(self._parse_element(command_mode=command_mode))
        return CollectionLiteral(tuple(elements), self._span(start))

    def _parse_element(self, *, command_mode: bool) -> LiteralNode:
        token = self._peek()
        start = token.start
        if token.kind is TokenKind.COMMA:
            self._next()
            self._skip_newlines()
            inner = self._parse_element(command_mode=command_mode)
            return CollectionLiteral((inner,), self._span(start))
        if token.kind is TokenKind.CAST:
            self._next()
            if self._peek().kind is TokenKind.STATIC:
                return self._parse_static_access(start)
            operand = self._parse_element(command_mode=False)
            return CastLiteral(token.text[1:-1], operand, self._span(start), start)

        primary = self._parse_primary(command_mode=command_mode)
        if command_mode or self._peek().kind not in _OPERATORS:
            return primary
        while self._peek().kind in _OPERATORS:
            self._next()
            if self._peek().kind in _OPERAND_START:
                self._parse_element(command_mode=False)
        return ExpressionNode(self._span(start), "operator expression")

    def _parse_primary(self, *, command_mode: bool) -> LiteralNode:
        token = self._next()
        kind = token.kind
        if kind is TokenKind.STRING:
            return StringLiteral(token.text[1:-1].replace("''", "'"), token.text)
        if kind is TokenKind.RAW_BLOCK:
            return self._raw_block(token)
        if kind is TokenKind.EXPANDABLE:
            return self._expandable(token.text[1:-1], token)
        if kind is TokenKind.NUMBER:
            return ConstantLiteral(_number_value(token.text), token.text)
        if kind is TokenKind.VARIABLE:
            name = token.text[1:].lower()
            if name in _CONSTANTS:
                return ConstantLiteral(_CONSTANTS[name], token.text)
            return ExpressionNode(token.text, "variable reference")
        if kind is TokenKind.SUBEXPR:
            self._skip_balanced(token)
            return ExpressionNode(self._span(token.start), "sub-expression")
        if kind is TokenKind.MAP_OPEN:
            return self._parse_map(token)
        if kind is TokenKind.ARRAY_OPEN:
            return self._parse_array(token)
        if kind is TokenKind.LPAREN:
            return self._parse_group(token)
        if kind is TokenKind.LBRACE:
            self._skip_balanced(token)
            return CodeBlockLiteral(self._span(token.start))
        if command_mode and kind in (TokenKind.BAREWORD, TokenKind.OPERATOR, TokenKind.OTHER):
            return StringLiteral(token.text, token.text)
        if kind is TokenKind.BAREWORD:
            return self._skip_command(token)
        if kind in (TokenKind.OPERATOR, TokenKind.PARAMETER) and self._peek().kind in _OPERAND_START:
            self._parse_element(command_mode=False)
            return ExpressionNode(self._span(token.start), "unary operator expression")
        found = token.text or "end of input"
        msg = f"unexpected {found!r}"
        raise MalformedLiteral(msg, token.start)

    # ------------------------------------------------------------------
    # Bracketed forms
    # ------------------------------------------------------------------

    def _parse_map(self, opener: Token) -> MapLiteral:
        entries: list[tuple[LiteralNode, LiteralNode]] = []
        self._skip_separators()
        while self._peek().kind is not TokenKind.RBRACE:
            if self._peek().kind is TokenKind.EOF:
                msg = "unbalanced '@{'"
                raise MalformedLiteral(msg, opener.start)
            key = self._parse_key()
            self._expect(TokenKind.EQUALS, "'=' after map key")
            self._skip_newlines()
            entries.append((key, self._parse_sequence(command_mode=False)))
            following = self._peek()
            if following.kind in (TokenKind.NEWLINE, TokenKind.SEMI):
                self._skip_separators()
            elif following.kind is not TokenKind.RBRACE:
                found = following.text or "end of input"
                msg = f"expected ';', newline or '}}' after map entry, found {found!r}"
                raise MalformedLiteral(msg, following.start)
        self._next()
        return MapLiteral(tuple(entries), self._span(opener.start))

    def _parse_key(self) -> LiteralNode:
        token = self._peek()
        if token.kind is TokenKind.BAREWORD:
            self._next()
            return StringLiteral(token.text, token.text)
        if token.kind in _OPERAND_START:
            return self._parse_primary(command_mode=False)
        found = token.text or "end of input"
        msg = f"invalid map key {found!r}"
        raise MalformedLiteral(msg, token.start)

    def _parse_array(self, opener: Token) -> CollectionLiteral:
        items: list[LiteralNode] = []
        self._skip_separators()
        while self._peek().kind is not TokenKind.RPAREN:
            if self._peek().kind is TokenKind.EOF:
                msg = "unbalanced '@('"
                raise MalformedLiteral(msg, opener.start)
            statement = self._parse_sequence(command_mode=False)
            # Every statement's output is enumerated into the array.
            if isinstance(statement, CollectionLiteral):
                items.extend(statement.elements)
            else:
                items.append(statement)
            following = self._peek()
            if following.kind in (TokenKind.NEWLINE, TokenKind.SEMI):
                self._skip_separators()
            elif following.kind is not TokenKind.RPAREN:
                found = following.text or "end of input"
                msg = f"expected ';', newline or ')' in array, found {found!r}"
                raise MalformedLiteral(msg, following.start)
        self._next()
        return CollectionLiteral(tuple(items), self._span(opener.start))

    def _parse_group(self, opener: Token) -> LiteralNode:
        self._skip_newlines()
        first = self._peek()
        if first.kind in (TokenKind.BAREWORD, TokenKind.PARAMETER):
            self._skip_balanced(opener)
            return ExpressionNode(self._span(opener.start), "command invocation")
        if first.kind is TokenKind.RPAREN:
            msg = "empty parentheses"
            raise MalformedLiteral(msg, first.start)
        inner = self._parse_sequence(command_mode=False)
        self._skip_newlines()
        self._expect(TokenKind.RPAREN, "')'")
        return inner

    def _parse_static_access(self, start: int) -> ExpressionNode:
        self._next()
        self._expect(TokenKind.BAREWORD, "member name after '::'")
        following = self._peek()
        if following.kind is TokenKind.LPAREN and following.start == self._last_end:
            self._skip_balanced(self._next())
        return ExpressionNode(self._span(start), "static member access")

    def _skip_command(self, first: Token) -> ExpressionNode:
        while self._peek().kind not in _STATEMENT_END:
            token = self._next()
            if token.kind in _OPENERS:
                self._skip_balanced(token)
        return ExpressionNode(self._span(first.start), "command invocation")

    # ------------------------------------------------------------------
    # Strings
    # ------------------------------------------------------------------

    def _raw_block(self, token: Token) -> LiteralNode:
        inner = token.text[2:-2]
        newline = "\r\n" if inner.startswith("\r\n") else "\n"
        inner = inner[len(newline) :]
        if inner.endswith(newline):
            inner = inner[: -len(newline)]
        elif inner.endswith("\n"):
            inner = inner[:-1]
        if token.text[1] == '"':
            return self._expandable(inner, token)
        return StringLiteral(inner, token.text)

    @staticmethod
    def _expandable(body: str, token: Token) -> LiteralNode:
        if _EXPANSION.search(body):
            return ExpressionNode(token.text, "expandable string")
        value = _ESCAPE.sub(lambda m: _ESCAPES.get(m.group(1), m.group(1)), body)
        if token.kind is TokenKind.EXPANDABLE:
            value = value.replace('""', '"')
        return StringLiteral(value, token.text)


def _number_value(text: str) -> int | float | Decimal:
    lowered = text.lower()
    if "0x" in lowered:
        return int(lowered, 16)
    if lowered.endswith("d"):
        return Decimal(lowered[:-1])
    if lowered.endswith("l"):
        return int(lowered[:-1])
    if any(marker in lowered for marker in ".e"):
        return float(lowered)
    return int(lowered)
