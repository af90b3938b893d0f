"""Value classification for the expression serializer.

``classify`` inspects the runtime shape of a value and returns the single
``Category`` that decides how it is rendered.  The checks run in a fixed order
and the first match wins; the order matters because several categories are
subsets of others (``bool`` subclasses ``int``, ``IntEnum`` members are ints,
named tuples are tuples, ``OrderedDict`` is a mapping, ...).

``type_tag`` returns the cast name used when a value is rendered with an
explicit type prefix.
"""

from __future__ import annotations

import array
import dataclasses
import datetime as dt
import ipaddress
import numbers
import re
import uuid
from collections import OrderedDict, deque
from collections.abc import Iterable, Mapping
from decimal import Decimal
from email.headerregistry import Address
from enum import Enum, StrEnum, auto
from pathlib import PurePath
from typing import Any, Final
from urllib.parse import ParseResult, SplitResult
from xml.etree import ElementTree

import numpy as np

from desired_state.values import Credential, ScriptBlock, SecureValue

__all__ = ["Category", "classify", "is_primitive_array", "type_tag"]


class Category(StrEnum):
    """Rendering categories, listed in classification order."""

    NULL = auto()
    BOOLEAN = auto()
    TAGGED_STRING = auto()
    NUMBER = auto()
    STRING = auto()
    SECURE = auto()
    CREDENTIAL = auto()
    DATETIME = auto()
    ENUM = auto()
    CODE_BLOCK = auto()
    HANDLE = auto()
    MARKUP = auto()
    TABLE = auto()
    ORDERED_MAP = auto()
    VALUE_SCALAR = auto()
    OBJECT = auto()
    MAP = auto()
    SEQUENCE = auto()


_IP_TYPES: Final[tuple[type, ...]] = (
    ipaddress.IPv4Address,
    ipaddress.IPv6Address,
    ipaddress.IPv4Network,
    ipaddress.IPv6Network,
    ipaddress.IPv4Interface,
    ipaddress.IPv6Interface,
)

# Printed as a quoted string; tagged with the type name under strong typing.
_TAGGED_STRING_TYPES: Final[tuple[type, ...]] = (
    re.Pattern,
    type,
    uuid.UUID,
    *_IP_TYPES,
    Address,
    PurePath,
    SplitResult,
    ParseResult,
)

_VALUE_SCALAR_TYPES: Final[tuple[type, ...]] = (
    dt.timedelta,
    dt.time,
    complex,
    np.complexfloating,
)

_TAG_NAMES: Final[dict[type, str]] = {
    bool: "bool",
    np.bool_: "bool",
    int: "int",
    float: "double",
    str: "string",
    Decimal: "decimal",
    dict: "hashtable",
    OrderedDict: "ordered",
    list: "array",
    tuple: "tuple",
    set: "set",
    frozenset: "frozenset",
    deque: "deque",
    bytes: "byte[]",
    bytearray: "bytearray",
    dt.datetime: "datetime",
    dt.date: "date",
    dt.time: "time",
    dt.timedelta: "timespan",
    complex: "complex",
    uuid.UUID: "guid",
    re.Pattern: "regex",
    type: "type",
    Address: "mailaddress",
    SplitResult: "uri",
    ParseResult: "uri",
    ElementTree.Element: "xml",
    ElementTree.ElementTree: "xml",
}

_PRIMITIVE_DTYPE_KINDS: Final[frozenset[str]] = frozenset("biuf")


def classify(value: Any) -> Category:
    """Return the rendering category of ``value``.

    Never raises: anything unrecognised falls through to ``Category.OBJECT``.
    """
    if value is None:
        return Category.NULL
    # bool before every numeric check: bool subclasses int.
    if isinstance(value, (bool, np.bool_)):
        return Category.BOOLEAN
    if isinstance(value, _TAGGED_STRING_TYPES):
        return Category.TAGGED_STRING
    if isinstance(value, (numbers.Real, Decimal)) and not isinstance(value, Enum):
        return Category.NUMBER
    if isinstance(value, str) and not isinstance(value, Enum):
        return Category.STRING
    if isinstance(value, SecureValue):
        return Category.SECURE
    if isinstance(value, Credential):
        return Category.CREDENTIAL
    if isinstance(value, (dt.datetime, dt.date)):
        return Category.DATETIME
    if isinstance(value, Enum):
        return Category.ENUM
    if isinstance(value, ScriptBlock):
        return Category.CODE_BLOCK
    if isinstance(value, np.ndarray):
        if value.ndim == 0:
            return classify(value.item())
        return Category.TABLE if value.dtype.names is not None else Category.SEQUENCE
    if hasattr(type(value), "__index__"):
        return Category.HANDLE
    if isinstance(value, (ElementTree.Element, ElementTree.ElementTree)):
        return Category.MARKUP
    if _is_table(value):
        return Category.TABLE
    if isinstance(value, OrderedDict):
        return Category.ORDERED_MAP
    if isinstance(value, _VALUE_SCALAR_TYPES):
        return Category.VALUE_SCALAR
    # Declared properties win over container behaviour (named tuples are iterable).
    if _has_declared_properties(value):
        return Category.OBJECT
    if isinstance(value, Mapping):
        return Category.MAP
    if isinstance(value, Iterable):
        return Category.SEQUENCE
    return Category.OBJECT


def is_primitive_array(value: Any) -> bool:
    """True for arrays whose elements are primitive numbers."""
    if isinstance(value, (bytes, bytearray)):
        return True
    if isinstance(value, np.ndarray):
        return value.dtype.kind in _PRIMITIVE_DTYPE_KINDS
    return isinstance(value, array.array)


def type_tag(value: Any) -> str:
    """Return the cast name for ``value``'s runtime type.

    Well-known types map to short names (``int``, ``hashtable``, ``datetime``);
    anything else uses its qualified class name.
    """
    value_type = type(value)
    for klass in value_type.__mro__:
        tag = _TAG_NAMES.get(klass)
        if tag is not None and not issubclass(value_type, Enum):
            return tag
    if isinstance(value, PurePath):
        return "path"
    if isinstance(value, _IP_TYPES):
        return "ipaddress"
    if isinstance(value, np.generic):
        return value.dtype.name
    if isinstance(value, np.ndarray):
        return f"{value.dtype.name}[]"
    if value_type.__module__ == "builtins":
        return value_type.__qualname__
    return f"{value_type.__module__}.{value_type.__qualname__}"


def _is_table(value: Any) -> bool:
    return callable(getattr(value, "to_dict", None)) and hasattr(value, "columns")


def _has_declared_properties(value: Any) -> bool:
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        return True
    return isinstance(value, tuple) and hasattr(value, "_fields")
