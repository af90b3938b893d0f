"""Lexer: on-demand tokenizer for the literal argument dialect.

A single master regex recognises every token kind; the parser pulls tokens
one at a time so it can switch to raw scanning for code blocks and other
bracketed spans whose content is kept as text rather than parsed.

Unterminated quotes and raw blocks are the only lexical errors.  Characters
with no meaning in the literal subset come back as ``OTHER`` tokens and are
judged by the parser.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from enum import StrEnum, auto
from typing import Final

from desired_state.errors import MalformedLiteral

__all__ = ["Lexer", "Token", "TokenKind"]


class TokenKind(StrEnum):
    NEWLINE = auto()
    RAW_BLOCK = auto()
    STRING = auto()
    EXPANDABLE = auto()
    NUMBER = auto()
    SUBEXPR = auto()
    VARIABLE = auto()
    MAP_OPEN = auto()
    ARRAY_OPEN = auto()
    CAST = auto()
    STATIC = auto()
    LBRACE = auto()
    RBRACE = auto()
    LPAREN = auto()
    RPAREN = auto()
    COMMA = auto()
    SEMI = auto()
    EQUALS = auto()
    PARAMETER = auto()
    OPERATOR = auto()
    BAREWORD = auto()
    OTHER = auto()
    EOF = auto()


@dataclass(frozen=True, slots=True)
class Token:
    kind: TokenKind
    text: str
    start: int
    end: int


# Order matters: longer / more specific alternatives first.
_MASTER: Final = re.compile(
    r"""
    (?P<skip>[ \t\f\v]+|`\r?\n|<\#.*?\#>|\#[^\r\n]*)
  | (?P<newline>\r\n|\n|\r)
  | (?P<raw_block>@(?P<quote>['"])\r?\n(?:.*?\r?\n)?(?P=quote)@)
  | (?P<string>'(?:[^']|'')*')
  | (?P<expandable>"(?:[^"`]|`.|"")*")
  | (?P<number>-?(?:0[xX][0-9a-fA-F]+|(?:\d+\.\d*|\.\d+|\d+)(?:[eE][+-]?\d+)?)[dDlL]?
        (?=$|[\s,;=(){}\[\]]))
  | (?P<subexpr>\$\()
  | (?P<variable>\$(?:\{[^}]*\}|[\w?^$:]+)(?:\.[A-Za-z_]\w*)*)
  | (?P<map_open>@\{)
  | (?P<array_open>@\()
  | (?P<cast>\[[A-Za-z_][\w.]*(?:\[[^\]\r\n]*\])?\])
  | (?P<static>::)
  | (?P<lbrace>\{)
  | (?P<rbrace>\})
  | (?P<lparen>\()
  | (?P<rparen>\))
  | (?P<comma>,)
  | (?P<semi>;)
  | (?P<parameter>-[A-Za-z_][\w-]*)
  | (?P<equals>=)
  | (?P<operator>[-+*/%!|&<>.]+)
  | (?P<bareword>[^\s,;=(){}'"$@\#\[\]`|&<>]+)
  | (?P<unterminated>@?['"])
  | (?P<other>\S)
    """,
    re.VERBOSE | re.DOTALL,
)

_OPENERS: Final[dict[TokenKind, str]] = {
    TokenKind.LBRACE: "}",
    TokenKind.MAP_OPEN: "}",
    TokenKind.LPAREN: ")",
    TokenKind.ARRAY_OPEN: ")",
    TokenKind.SUBEXPR: ")",
}
_CLOSERS: Final[dict[TokenKind, str]] = {TokenKind.RBRACE: "}", TokenKind.RPAREN: ")"}


class Lexer:
    """Pull-based tokenizer over a single source string.

    Example::

        lexer = Lexer("@{ Name = 'x' }")
        lexer.next().kind   # TokenKind.MAP_OPEN
    """

    def __init__(self, source: str) -> None:
        self.source = source
        self.pos = 0
        self._peeked: Token | None = None

    def peek(self) -> Token:
        if self._peeked is None:
            self._peeked = self._scan()
        return self._peeked

    def next(self) -> Token:
        token = self.peek()
        self._peeked = None
        return token

    def skip_balanced(self, opener: Token) -> int:
        """Consume up to the bracket matching ``opener``; return the end offset.

        The content is tokenized (so quotes and comments are honoured) but
        never interpreted.  A token already peeked is part of the content.

        Raises:
            MalformedLiteral: On EOF or a mismatched closing bracket.
        """
        stack = [_OPENERS[opener.kind]]
        pending, self._peeked = self._peeked, None
        while stack:
            token = pending if pending is not None else self._scan()
            pending = None
            if token.kind is TokenKind.EOF:
                msg = f"unbalanced {opener.text!r}"
                raise MalformedLiteral(msg, opener.start)
            if token.kind in _OPENERS:
                stack.append(_OPENERS[token.kind])
            elif token.kind in _CLOSERS:
                if _CLOSERS[token.kind] != stack.pop():
                    msg = f"mismatched {token.text!r}"
                    raise MalformedLiteral(msg, token.start)
        return self.pos

    def _scan(self) -> Token:
        while True:
            if self.pos >= len(self.source):
                return Token(TokenKind.EOF, "", self.pos, self.pos)
            match = _MASTER.match(self.source, self.pos)
            if match is None:
                msg = "unexpected character"
                raise MalformedLiteral(msg, self.pos)
            group = match.lastgroup
            start, self.pos = match.start(), match.end()
            if group == "skip":
                continue
            if group == "unterminated":
                msg = "unterminated string"
                raise MalformedLiteral(msg, start)
            return Token(TokenKind(group), match.group(), start, self.pos)
