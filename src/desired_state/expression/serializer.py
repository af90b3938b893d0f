"""ExpressionSerializer: render a Python value tree as literal expression text.

The output dialect is PowerShell-compatible data-file syntax: ``$null``,
``$true``, single-quoted strings, ``@'...'@`` raw blocks, ``@{}`` maps,
comma lists / ``@()`` sequences, ``{...}`` code blocks and ``[type]`` casts.

Rendering is driven by ``classify()``: each value is classified exactly once
and handed to the handler for its ``Category``.  Containers recurse through
``_render_child`` which enforces the depth limit and derives the child context.

Layout rules for containers at depth ``d`` with threshold ``expand``:

- compact (``expand < 0``): everything inline, separators without spaces;
- inline (``d >= expand - 1``, single map pair, primitive arrays): one line;
- otherwise one element per line, indented one level deeper than ``d``.

Casts follow three rules: explore mode drops them all (unless strong typing
is also on); tags needed to keep the value's type (dates, ``[ordered]``,
non-default containers, markup) are emitted otherwise; every other tag is
emitted only under strong typing.
"""

from __future__ import annotations

import copy
import dataclasses
import datetime as dt
import math
import numbers
import operator
import re
from collections.abc import Callable, Iterable, Mapping
from decimal import Decimal
from enum import Enum, Flag
from pathlib import PurePath
from typing import Any, Final
from urllib.parse import ParseResult, SplitResult
from xml.etree import ElementTree

import numpy as np

from desired_state.expression.categories import (
    Category,
    classify,
    is_primitive_array,
    type_tag,
)
from desired_state.expression.context import RenderContext
from desired_state.logging import get_logger

__all__ = ["DEPTH_PLACEHOLDER", "ExpressionSerializer", "quote"]

logger = get_logger(__name__)

DEPTH_PLACEHOLDER: Final[str] = "'...'"

# A raw block cannot carry a line that starts with its own terminator.
_RAW_BLOCK_TERMINATOR = re.compile(r"(?:^|[\r\n])'@")


def quote(text: str) -> str:
    """Single-quote ``text``, doubling embedded quotes."""
    return "'" + text.replace("'", "''") + "'"


class ExpressionSerializer:
    """Converts values into re-parseable literal expression text.

    The serializer is stateless apart from its root ``RenderContext``; calling
    ``serialize`` twice on the same value yields identical text.

    Example::

        serializer = ExpressionSerializer(RenderContext(expand=2, indent_char="\\t", indent_size=1))
        serializer.serialize({"Name": "svc", "Retries": 3})
        # "@{\\n\\t'Name' = 'svc'\\n\\t'Retries' = 3\\n}"
    """

    def __init__(self, context: RenderContext | None = None) -> None:
        self._context = context if context is not None else RenderContext()
        self._handlers: dict[Category, Callable[[Any, RenderContext], str]] = {
            Category.NULL: self._render_null,
            Category.BOOLEAN: self._render_boolean,
            Category.TAGGED_STRING: self._render_tagged_string,
            Category.NUMBER: self._render_number,
            Category.STRING: self._render_string,
            Category.SECURE: self._render_secure,
            Category.CREDENTIAL: self._render_credential,
            Category.DATETIME: self._render_datetime,
            Category.ENUM: self._render_enum,
            Category.CODE_BLOCK: self._render_code_block,
            Category.HANDLE: self._render_handle,
            Category.MARKUP: self._render_markup,
            Category.TABLE: self._render_table,
            Category.ORDERED_MAP: self._render_ordered_map,
            Category.VALUE_SCALAR: self._render_value_scalar,
            Category.OBJECT: self._render_object,
            Category.MAP: self._render_mapping,
            Category.SEQUENCE: self._render_sequence,
        }

    @property
    def context(self) -> RenderContext:
        return self._context

    def serialize(self, value: Any) -> str:
        """Render ``value`` as expression text with trailing whitespace removed."""
        return self._render(value, self._context).rstrip()

    # ------------------------------------------------------------------
    # Dispatch
    # ------------------------------------------------------------------

    def _render(self, value: Any, ctx: RenderContext) -> str:
        category = classify(value)
        logger.trace("render %s at depth %d", category, ctx.current_depth)
        return self._handlers[category](value, ctx)

    def _render_child(self, value: Any, ctx: RenderContext, *, list_item: bool) -> str:
        if ctx.child_depth_exhausted:
            return DEPTH_PLACEHOLDER
        return self._render(value, ctx.descend(list_item=list_item))

    @staticmethod
    def _prefix(ctx: RenderContext, tag: str, *, always: bool = False) -> str:
        if not ctx.casts_enabled:
            return ""
        if always or ctx.strong:
            return f"[{tag}]"
        return ""

    # ------------------------------------------------------------------
    # Scalars
    # ------------------------------------------------------------------

    def _render_null(self, value: None, ctx: RenderContext) -> str:
        return "$null"

    def _render_boolean(self, value: Any, ctx: RenderContext) -> str:
        return self._prefix(ctx, "bool") + ("$true" if value else "$false")

    def _render_tagged_string(self, value: Any, ctx: RenderContext) -> str:
        if isinstance(value, re.Pattern):
            text = value.pattern if isinstance(value.pattern, str) else repr(value.pattern)
        elif isinstance(value, type):
            text = value.__qualname__ if value.__module__ == "builtins" else (
                f"{value.__module__}.{value.__qualname__}"
            )
        elif isinstance(value, (SplitResult, ParseResult)):
            text = value.geturl()
        elif isinstance(value, PurePath):
            text = value.as_posix()
        else:
            text = str(value)
        return self._prefix(ctx, type_tag(value)) + quote(text)

    def _render_number(self, value: Any, ctx: RenderContext) -> str:
        tag = type_tag(value)
        if isinstance(value, np.generic):
            value = value.item()
        if isinstance(value, numbers.Integral):
            return self._prefix(ctx, tag) + str(int(value))
        if isinstance(value, Decimal):
            if not value.is_finite():
                return self._prefix(ctx, tag, always=True) + quote(str(value))
            # The d suffix keeps the literal a Decimal instead of a float.
            return self._prefix(ctx, tag) + str(value) + "d"
        number = float(value)
        if not math.isfinite(number):
            text = "NaN" if math.isnan(number) else ("Infinity" if number > 0 else "-Infinity")
            return self._prefix(ctx, "double", always=True) + quote(text)
        return self._prefix(ctx, tag) + repr(number)

    def _render_string(self, value: str, ctx: RenderContext) -> str:
        return self._prefix(ctx, "string") + self._string_literal(value, ctx)

    def _string_literal(self, text: str, ctx: RenderContext) -> str:
        if ("\n" in text or "\r" in text) and not _RAW_BLOCK_TERMINATOR.search(text):
            return f"@'{ctx.newline}{text}{ctx.newline}'@"
        return quote(text)

    def _render_secure(self, value: Any, ctx: RenderContext) -> str:
        return f"(ConvertTo-SecureString {quote(value.reveal())} -AsPlainText -Force)"

    def _render_credential(self, value: Any, ctx: RenderContext) -> str:
        secret = self._render_secure(value.password, ctx)
        return f"[pscredential]::new({quote(value.username)}, {secret})"

    def _render_datetime(self, value: dt.date, ctx: RenderContext) -> str:
        return self._prefix(ctx, type_tag(value), always=True) + quote(value.isoformat())

    def _render_enum(self, value: Enum, ctx: RenderContext) -> str:
        tag = type_tag(value)
        if _is_unnamed_flag(value):
            return self._prefix(ctx, tag) + str(int(value.value))
        return self._prefix(ctx, tag) + quote(str(value.name))

    def _render_code_block(self, value: Any, ctx: RenderContext) -> str:
        source = value.source
        # A trailing comment would swallow the closing brace.
        if "#" in source:
            source += ctx.newline
        return "{" + source + "}"

    def _render_handle(self, value: Any, ctx: RenderContext) -> str:
        return self._prefix(ctx, type_tag(value)) + str(operator.index(value))

    def _render_value_scalar(self, value: Any, ctx: RenderContext) -> str:
        if isinstance(value, dt.timedelta):
            text = _timespan_text(value)
        elif isinstance(value, dt.time):
            text = value.isoformat()
        else:
            text = str(complex(value))
        return self._prefix(ctx, type_tag(value)) + quote(text)

    def _render_markup(self, value: Any, ctx: RenderContext) -> str:
        root = value.getroot() if isinstance(value, ElementTree.ElementTree) else value
        document = copy.deepcopy(root)
        if ctx.indent_size:
            ElementTree.indent(document, space=ctx.indent_char * ctx.indent_size)
        text = ElementTree.tostring(document, encoding="unicode")
        return self._prefix(ctx, "xml", always=True) + self._string_literal(text, ctx)

    # ------------------------------------------------------------------
    # Containers
    # ------------------------------------------------------------------

    def _render_table(self, value: Any, ctx: RenderContext) -> str:
        if isinstance(value, np.ndarray):
            names = value.dtype.names
            rows: list[Any] = [dict(zip(names, row, strict=True)) for row in value.ravel().tolist()]
        else:
            rows = list(value.to_dict(orient="records"))
        return self._render(rows, ctx)

    def _render_ordered_map(self, value: Mapping[Any, Any], ctx: RenderContext) -> str:
        prefix = self._prefix(ctx, "ordered", always=True)
        return prefix + self._map_body(value.items(), ctx)

    def _render_mapping(self, value: Mapping[Any, Any], ctx: RenderContext) -> str:
        prefix = self._prefix(ctx, type_tag(value), always=type(value) is not dict)
        return prefix + self._map_body(value.items(), ctx)

    def _render_object(self, value: Any, ctx: RenderContext) -> str:
        prefix = self._prefix(ctx, type_tag(value))
        return prefix + self._map_body(_object_properties(value), ctx)

    def _map_body(self, items: Iterable[tuple[Any, Any]], ctx: RenderContext) -> str:
        pairs = [
            (self._render_key(key), self._render_child(item, ctx, list_item=False))
            for key, item in items
        ]
        if not pairs:
            return "@{}"
        if ctx.compact:
            return "@{" + ";".join(f"{key}={item}" for key, item in pairs) + "}"
        if len(pairs) == 1 or ctx.inline:
            return "@{" + "; ".join(f"{key} = {item}" for key, item in pairs) + "}"
        inner = ctx.indent(ctx.current_depth + 1)
        lines = ctx.newline.join(f"{inner}{key} = {item}" for key, item in pairs)
        return "@{" + ctx.newline + lines + ctx.newline + ctx.indent() + "}"

    @staticmethod
    def _render_key(key: Any) -> str:
        if isinstance(key, numbers.Real) and not isinstance(key, (bool, Enum)):
            return str(key)
        return quote(str(key))

    def _render_sequence(self, value: Any, ctx: RenderContext) -> str:
        if isinstance(value, (set, frozenset)):
            items = _sorted_for_output(value)
        else:
            items = list(value)
        natural = type(value) is list
        prefix = self._prefix(ctx, type_tag(value), always=not natural)
        # A cast binds to the first operand only, so casted lists are parenthesised.
        wrap = ctx.is_list_item or bool(prefix)
        rendered = [self._render_child(item, ctx, list_item=True) for item in items]

        if not rendered:
            body = "@()"
        elif len(rendered) == 1:
            body = f"(,{rendered[0]})" if wrap else f",{rendered[0]}"
        elif ctx.inline or is_primitive_array(value):
            joined = ("," if ctx.compact else ", ").join(rendered)
            body = f"({joined})" if wrap else joined
        else:
            inner = ctx.indent(ctx.current_depth + 1)
            lines = ("," + ctx.newline).join(f"{inner}{item}" for item in rendered)
            opener = "(" if ctx.is_list_item else "@("
            body = opener + ctx.newline + lines + ctx.newline + ctx.indent() + ")"
        return prefix + body


# ----------------------------------------------------------------------
# Helpers
# ----------------------------------------------------------------------


def _is_unnamed_flag(value: Enum) -> bool:
    """True for flag combinations that have no single member name."""
    if not isinstance(value, Flag):
        return False
    return value.name is None or "|" in value.name


def _timespan_text(value: dt.timedelta) -> str:
    """Format as ``[-][d.]hh:mm:ss[.fffffff]``."""
    sign = "-" if value < dt.timedelta(0) else ""
    value = abs(value)
    hours, remainder = divmod(value.seconds, 3600)
    minutes, seconds = divmod(remainder, 60)
    text = f"{hours:02d}:{minutes:02d}:{seconds:02d}"
    if value.days:
        text = f"{value.days}.{text}"
    if value.microseconds:
        text = f"{text}.{value.microseconds:06d}0"
    return sign + text


def _sorted_for_output(values: Iterable[Any]) -> list[Any]:
    try:
        return sorted(values)
    except TypeError:
        return sorted(values, key=repr)


def _object_properties(value: Any) -> list[tuple[str, Any]]:
    """List the public properties of a structured object.

    Declared properties (dataclass fields, named-tuple fields, ``__slots__``)
    come first; public instance attributes follow.  Unset slots are skipped.
    """
    if dataclasses.is_dataclass(value):
        return [(f.name, getattr(value, f.name)) for f in dataclasses.fields(value)]
    if isinstance(value, tuple) and hasattr(value, "_asdict"):
        return list(value._asdict().items())

    names: list[str] = []
    for klass in reversed(type(value).__mro__):
        slots = klass.__dict__.get("__slots__", ())
        if isinstance(slots, str):
            slots = (slots,)
        names.extend(name for name in slots if not name.startswith("_"))
    instance_dict = getattr(value, "__dict__", None)
    if isinstance(instance_dict, Mapping):
        names.extend(
            name for name in instance_dict if not name.startswith("_") and name not in names
        )

    properties: list[tuple[str, Any]] = []
    for name in names:
        try:
            properties.append((name, getattr(value, name)))
        except AttributeError:
            continue
    return properties
