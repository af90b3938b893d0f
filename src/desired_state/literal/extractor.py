"""LiteralExtractor: turn argument text into Python literal values, safely.

The text is parsed by ``LiteralParser`` into an immutable syntax tree which is
then walked read-only to build plain Python values:

- string literal      -> ``str``
- number / constant   -> ``int`` / ``float`` / ``Decimal`` / ``bool`` / ``None``
- map literal         -> ``dict`` (``OrderedDict`` under ``[ordered]``)
- collection literal  -> ``list``
- code block          -> ``ScriptBlock`` with one pair of enclosing braces removed
- supported casts     -> the converted value (``[datetime]``, ``[guid]``, ...)

Top-level arguments must be a string, a map or a collection; a collection
argument contributes one value per element.  Anything that would need
evaluation raises ``UnsupportedArgumentShape``.

Parsed trees are cached per extractor in an LRU cache keyed by the input text.
The trees are immutable and values are rebuilt on every call, so callers can
freely mutate what they get back.
"""

from __future__ import annotations

import datetime as dt
import re
import threading
import uuid
from collections import OrderedDict
from collections.abc import Callable
from decimal import Decimal, InvalidOperation
from typing import Any, Final

from cachetools import LRUCache

from desired_state.errors import MalformedLiteral, UnsupportedArgumentShape
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
from desired_state.literal.parser import parse_arguments
from desired_state.logging import get_logger
from desired_state.values import ScriptBlock

__all__ = ["SUPPORTED_CASTS", "LiteralExtractor"]

logger = get_logger(__name__)

_TIMESPAN = re.compile(
    r"^(?P<sign>-)?(?:(?P<days>\d+)\.)?(?P<hours>\d{1,2}):(?P<minutes>\d{2}):(?P<seconds>\d{2})"
    r"(?:\.(?P<fraction>\d{1,7}))?$"
)


def _timespan(value: Any) -> dt.timedelta:
    match = _TIMESPAN.match(str(value))
    if match is None:
        msg = f"invalid timespan {value!r}"
        raise ValueError(msg)
    fraction = (match.group("fraction") or "").ljust(7, "0")
    span = dt.timedelta(
        days=int(match.group("days") or 0),
        hours=int(match.group("hours")),
        minutes=int(match.group("minutes")),
        seconds=int(match.group("seconds")),
        microseconds=int(fraction) // 10,
    )
    return -span if match.group("sign") else span


def _boolean(value: Any) -> bool:
    return value if isinstance(value, bool) else bool(value)


def _sequence(factory: Callable[[list[Any]], Any]) -> Callable[[Any], Any]:
    def convert(value: Any) -> Any:
        return factory(value if isinstance(value, list) else [value])

    return convert


def _mapping(factory: Callable[[Any], Any]) -> Callable[[Any], Any]:
    def convert(value: Any) -> Any:
        if not isinstance(value, dict):
            msg = f"expected a map literal, got {type(value).__name__}"
            raise ValueError(msg)
        return factory(value.items())

    return convert


SUPPORTED_CASTS: Final[dict[str, Callable[[Any], Any]]] = {
    "ordered": _mapping(OrderedDict),
    "hashtable": _mapping(dict),
    "array": _sequence(list),
    "tuple": _sequence(tuple),
    "set": _sequence(set),
    "frozenset": _sequence(frozenset),
    "string": str,
    "int": int,
    "long": int,
    "double": float,
    "decimal": lambda value: Decimal(str(value)),
    "bool": _boolean,
    "datetime": lambda value: dt.datetime.fromisoformat(str(value)),
    "date": lambda value: dt.date.fromisoformat(str(value)),
    "time": lambda value: dt.time.fromisoformat(str(value)),
    "timespan": _timespan,
    "guid": lambda value: uuid.UUID(str(value)),
    "regex": lambda value: re.compile(str(value)),
}


class LiteralExtractor:
    """Extracts literal argument values from untrusted text without evaluating it.

    Args:
        max_cache_size: Maximum number of parsed inputs kept in the per-instance
            LRU cache.  Defaults to 128.  The cache is guarded by a lock, so
            one instance may be shared between threads.

    Example::

        extractor = LiteralExtractor()
        extractor.extract_arguments("'a', @{ Name = 'x'; Check = { Test-Path $p } }")
        # ['a', {'Name': 'x', 'Check': ScriptBlock(source=' Test-Path $p ')}]
    """

    def __init__(self, max_cache_size: int = 128) -> None:
        self._cache: LRUCache[str, tuple[LiteralNode, ...]] = LRUCache(maxsize=max_cache_size)
        self._lock = threading.Lock()

    @property
    def cache_size(self) -> int:
        return int(self._cache.currsize)

    def parse(self, text: str) -> tuple[LiteralNode, ...]:
        """Return the syntax tree for ``text``, from the cache when possible.

        Raises:
            MalformedLiteral: When ``text`` is not a well-formed argument list.
        """
        with self._lock:
            cached = self._cache.get(text)
        if cached is not None:
            logger.trace("literal cache hit for %d chars", len(text))
            return cached
        try:
            nodes = parse_arguments(text)
        except MalformedLiteral as exc:
            logger.debug("cannot parse argument text: %s", exc)
            raise
        with self._lock:
            self._cache[text] = nodes
        return nodes

    def extract_arguments(self, text: str) -> list[Any]:
        """Return the literal values carried by ``text``.

        Raises:
            MalformedLiteral: The text does not parse; no values are returned.
            UnsupportedArgumentShape: An argument is not a string, map or
                collection literal, or contains a non-literal expression.
        """
        values: list[Any] = []
        for node in self.parse(text):
            values.extend(self._argument_values(node))
        return values

    # ------------------------------------------------------------------
    # Materialisation
    # ------------------------------------------------------------------

    def _argument_values(self, node: LiteralNode) -> list[Any]:
        if isinstance(node, CollectionLiteral):
            return [self._value(element) for element in node.elements]
        if isinstance(node, (StringLiteral, MapLiteral)):
            return [self._value(node)]
        if isinstance(node, CastLiteral) and isinstance(
            node.operand, (MapLiteral, CollectionLiteral)
        ):
            value = self._value(node)
            return [value] if isinstance(value, dict) else list(value)
        msg = "argument is not a string, map or collection literal"
        raise UnsupportedArgumentShape(msg, node.text)

    def _value(self, node: LiteralNode) -> Any:
        if isinstance(node, (StringLiteral, ConstantLiteral)):
            return node.value
        if isinstance(node, MapLiteral):
            return {self._key(key): self._value(value) for key, value in node.entries}
        if isinstance(node, CollectionLiteral):
            return [self._value(element) for element in node.elements]
        if isinstance(node, CodeBlockLiteral):
            return ScriptBlock(node.body)
        if isinstance(node, CastLiteral):
            return self._cast(node)
        if isinstance(node, ExpressionNode):
            msg = f"{node.reason} is not a literal value"
            raise UnsupportedArgumentShape(msg, node.text)
        msg = f"unknown literal node {type(node).__name__}"
        raise TypeError(msg)

    def _key(self, node: LiteralNode) -> Any:
        if isinstance(node, (StringLiteral, ConstantLiteral)):
            return node.value
        msg = "map key is not a string or number literal"
        raise UnsupportedArgumentShape(msg, node.text)

    def _cast(self, node: CastLiteral) -> Any:
        converter = SUPPORTED_CASTS.get(node.type_name.lower())
        if converter is None:
            msg = f"cast to [{node.type_name}] is not a literal shape"
            raise UnsupportedArgumentShape(msg, node.text)
        operand = self._value(node.operand)
        try:
            return converter(operand)
        except (ValueError, TypeError, InvalidOperation, re.error) as exc:
            msg = f"cannot convert {node.operand.text!r} to [{node.type_name}]: {exc}"
            raise MalformedLiteral(msg, node.start) from exc
