"""StateComparator: decide whether a current state matches a desired state.

Both states are property bags (mappings from property name to value).  For
every key of the working key set the comparator walks the same decision list:

1. credential in desired  -> compare user names only, never secrets
2. runtime types differ   -> unequal (unless type checking is off)
3. plain values equal     -> match (arrays and maps always go further)
4. key absent in desired  -> nothing to enforce, match
5. desired is an array    -> length, then element-wise, after optional sort
6. both are maps          -> recursive comparison with ``properties`` cleared
7. otherwise              -> value equality

A failed key sets the verdict to False but never stops the walk: later keys
and nested comparisons are still evaluated so the trace lists every mismatch
in one pass.  Their results are folded into the verdict with ``and`` so it
can never flip back to True.

Code blocks are not structurally comparable.  A ``ScriptBlock`` paired with a
string is replaced by the result of invoking it (when it is bound to a
callable), and by its source text otherwise.

Inputs are never mutated; structured values are read into fresh dicts.
"""

from __future__ import annotations

import logging
import numbers
from collections.abc import Iterator, Mapping
from dataclasses import fields, is_dataclass
from decimal import InvalidOperation
from typing import Any

import numpy as np

from desired_state.errors import InvalidInputShape, MissingPropertyList
from desired_state.logging import get_logger
from desired_state.state.messages import DEFAULT_MESSAGES, MessageCatalog
from desired_state.state.options import ComparisonOptions
from desired_state.state.result import StateComparison, TraceEntry
from desired_state.values import Credential, ScriptBlock, SecureValue

__all__ = ["StateComparator"]

logger = get_logger(__name__)

_SCALARS = (str, bytes, bytearray, numbers.Number, list, tuple, set, frozenset)
_OPAQUE_VALUES = (Credential, ScriptBlock, SecureValue)


class StateComparator:
    """Recursive comparator for property bags.

    Every ``compare()`` call builds its own trace; the comparator holds no
    per-call state, so one instance may be reused.

    Example::

        cmp = StateComparator()
        result = cmp.compare({"Tags": ["b", "a"]}, {"Tags": ["a", "b"]})
        result.in_desired_state      # False
        result.mismatched_paths      # ['Tags[0]', 'Tags[1]']
    """

    def __init__(self, messages: MessageCatalog | None = None) -> None:
        self._messages = messages if messages is not None else DEFAULT_MESSAGES

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def compare(
        self,
        current: Any,
        desired: Any,
        options: ComparisonOptions | None = None,
    ) -> StateComparison:
        """Compare ``current`` against ``desired``.

        Args:
            current: The state as it is.  A mapping, dataclass instance,
                named tuple or plain attribute object.
            desired: The state as it should be.  Same shapes as ``current``;
                a plain attribute object also needs ``options.properties``.
            options: Comparison rules.  Defaults to ``ComparisonOptions()``.

        Returns:
            A ``StateComparison`` with the verdict and the full trace.

        Raises:
            InvalidInputShape: Either input is not property-bag-like.
            MissingPropertyList: ``desired`` cannot be enumerated and no
                property list was given.
        """
        options = options if options is not None else ComparisonOptions()
        trace: list[TraceEntry] = []
        verdict = self._compare_bags(current, desired, options, "", trace)
        return StateComparison(in_desired_state=verdict, trace=tuple(trace))

    # ------------------------------------------------------------------
    # Property bags
    # ------------------------------------------------------------------

    def _compare_bags(
        self,
        current: Any,
        desired: Any,
        options: ComparisonOptions,
        prefix: str,
        trace: list[TraceEntry],
    ) -> bool:
        current_bag = _property_bag(current, "current", options)
        desired_bag = _property_bag(desired, "desired", options)

        result = True
        for key in options.key_set(desired_bag):
            path = f"{prefix}.{key}" if prefix else str(key)
            if logger.isEnabledFor(logging.DEBUG):
                logger.debug(self._messages.render("compare", path=path))
            current_value = _normalize(current_bag.get(key))
            desired_value = _normalize(desired_bag.get(key))
            matched = self._compare_value(
                current_value, desired_value, key in desired_bag, options, path, trace
            )
            result = matched and result

        if options.reverse_check:
            if logger.isEnabledFor(logging.DEBUG):
                logger.debug(self._messages.render("reverse_check"))
            reverse = self._compare_bags(desired, current, options.reverse_pass(), prefix, trace)
            result = reverse and result
        return result

    def _compare_value(
        self,
        current: Any,
        desired: Any,
        present: bool,
        options: ComparisonOptions,
        path: str,
        trace: list[TraceEntry],
    ) -> bool:
        if isinstance(desired, Credential):
            return self._compare_credential(current, desired, path, trace)

        if not options.skip_type_checking and _types_differ(current, desired):
            return self._record(
                trace,
                path,
                False,
                "type_mismatch",
                current=_show(current),
                desired=_show(desired),
                current_type=_type_name(current),
                desired_type=_type_name(desired),
            )

        if not _is_array(desired) and not isinstance(desired, Mapping):
            if _values_equal(current, desired, loose=options.skip_type_checking):
                return self._record(
                    trace, path, True, "value_match", current=_show(current), desired=_show(desired)
                )

        if not present:
            return self._record(trace, path, True, "key_absent")

        if _is_array(desired):
            return self._compare_arrays(current, desired, options, path, trace)

        if isinstance(desired, Mapping) and isinstance(current, Mapping):
            return self._compare_bags(current, desired, options.nested(), path, trace)

        current, desired = _resolve_code_blocks(current, desired)
        matched = _values_equal(current, desired, loose=options.skip_type_checking)
        return self._record(
            trace,
            path,
            matched,
            "value_match" if matched else "value_mismatch",
            current=_show(current),
            desired=_show(desired),
        )

    def _compare_credential(
        self, current: Any, desired: Credential, path: str, trace: list[TraceEntry]
    ) -> bool:
        username = current.username if isinstance(current, Credential) else current
        if username == desired.username:
            return self._record(trace, path, True, "credential_match", username=desired.username)
        return self._record(
            trace,
            path,
            False,
            "credential_mismatch",
            current=username,
            desired=desired.username,
        )

    # ------------------------------------------------------------------
    # Arrays
    # ------------------------------------------------------------------

    def _compare_arrays(
        self,
        current: Any,
        desired: Any,
        options: ComparisonOptions,
        path: str,
        trace: list[TraceEntry],
    ) -> bool:
        current_items = _as_items(current)
        desired_items = list(desired)

        if not current_items and not desired_items:
            return self._record(trace, path, True, "array_empty")
        if not current_items:
            return self._record(trace, path, False, "array_missing", desired=_show(desired))
        if len(current_items) != len(desired_items):
            return self._record(
                trace,
                path,
                False,
                "array_length",
                current=len(current_items),
                desired=len(desired_items),
            )

        if options.sort_arrays:
            current_items = _sorted(current_items)
            desired_items = _sorted(desired_items)

        result = True
        for index, (current_item, desired_item) in enumerate(
            zip(current_items, desired_items, strict=True)
        ):
            matched = self._compare_element(
                _normalize(current_item),
                _normalize(desired_item),
                options,
                f"{path}[{index}]",
                trace,
            )
            result = matched and result
        return result

    def _compare_element(
        self,
        current: Any,
        desired: Any,
        options: ComparisonOptions,
        path: str,
        trace: list[TraceEntry],
    ) -> bool:
        if not options.skip_type_checking and _types_differ(current, desired):
            return self._record(
                trace,
                path,
                False,
                "element_type_mismatch",
                current=_show(current),
                desired=_show(desired),
                current_type=_type_name(current),
                desired_type=_type_name(desired),
            )

        current, desired = _resolve_code_blocks(current, desired)

        if isinstance(desired, Mapping) and isinstance(current, Mapping):
            return self._compare_bags(current, desired, options.nested(), path, trace)
        if _is_array(desired):
            return self._compare_arrays(current, desired, options, path, trace)

        matched = _values_equal(current, desired, loose=options.skip_type_checking)
        return self._record(
            trace,
            path,
            matched,
            "value_match" if matched else "element_mismatch",
            current=_show(current),
            desired=_show(desired),
        )

    # ------------------------------------------------------------------
    # Trace
    # ------------------------------------------------------------------

    def _record(
        self,
        trace: list[TraceEntry],
        path: str,
        matched: bool,
        message: str,
        **values: Any,
    ) -> bool:
        text = self._messages.render(message, path=path, **values)
        logger.debug("[%s] %s", "match" if matched else "no-match", text)
        trace.append(TraceEntry(path=path, matched=matched, message=text))
        return matched


# ----------------------------------------------------------------------
# Shape helpers
# ----------------------------------------------------------------------


class _AttributeView(Mapping[str, Any]):
    """Read-only mapping over the public attributes of a plain object."""

    __slots__ = ("_target",)

    def __init__(self, target: Any) -> None:
        self._target = target

    def __getitem__(self, key: str) -> Any:
        if not isinstance(key, str) or key.startswith("_"):
            raise KeyError(key)
        try:
            return getattr(self._target, key)
        except AttributeError:
            raise KeyError(key) from None

    def __iter__(self) -> Iterator[str]:
        return iter(_public_attributes(self._target))

    def __len__(self) -> int:
        return len(_public_attributes(self._target))


def _public_attributes(target: Any) -> list[str]:
    names = [name for name in getattr(target, "__dict__", {}) if not name.startswith("_")]
    for cls in type(target).__mro__:
        slots = cls.__dict__.get("__slots__", ())
        for name in (slots,) if isinstance(slots, str) else slots:
            if not name.startswith("_") and name not in names and hasattr(target, name):
                names.append(name)
    return names


def _is_namedtuple(value: Any) -> bool:
    return isinstance(value, tuple) and hasattr(value, "_asdict") and hasattr(value, "_fields")


def _is_structured(value: Any) -> bool:
    if isinstance(value, _OPAQUE_VALUES):
        return False
    return (is_dataclass(value) and not isinstance(value, type)) or _is_namedtuple(value)


def _as_dict(value: Any) -> dict[str, Any]:
    if _is_namedtuple(value):
        return dict(value._asdict())
    return {f.name: getattr(value, f.name) for f in fields(value)}


def _normalize(value: Any) -> Any:
    """Dataclass instances and named tuples become a fresh property bag."""
    return _as_dict(value) if _is_structured(value) else value


def _property_bag(value: Any, role: str, options: ComparisonOptions) -> Mapping[Any, Any]:
    if isinstance(value, Mapping):
        return value
    if (is_dataclass(value) and not isinstance(value, type)) or _is_namedtuple(value):
        return _as_dict(value)
    if (
        value is None
        or isinstance(value, _SCALARS)
        or not (hasattr(value, "__dict__") or hasattr(type(value), "__slots__"))
    ):
        msg = f"{role} state must be a mapping or an object with properties, got {type(value).__name__}"
        raise InvalidInputShape(msg)
    if role == "desired" and options.properties is None:
        msg = (
            f"desired state of type {type(value).__name__} cannot be enumerated;"
            " pass the properties to compare"
        )
        raise MissingPropertyList(msg)
    return _AttributeView(value)


def _is_array(value: Any) -> bool:
    return isinstance(value, (list, np.ndarray)) or (
        isinstance(value, tuple) and not _is_namedtuple(value)
    )


def _as_items(value: Any) -> list[Any]:
    if value is None:
        return []
    if _is_array(value):
        return list(value)
    return [value]


def _sorted(items: list[Any]) -> list[Any]:
    try:
        return sorted(items)
    except TypeError:
        return sorted(items, key=_sort_key)


def _sort_key(value: Any) -> str:
    """Text form of ``value`` that ignores the key order of nested maps."""
    value = _normalize(value)
    if isinstance(value, Mapping):
        pairs = sorted(f"{_sort_key(key)}: {_sort_key(item)}" for key, item in value.items())
        return "{" + ", ".join(pairs) + "}"
    if _is_array(value):
        return "[" + ", ".join(_sort_key(item) for item in value) + "]"
    return repr(value)


# ----------------------------------------------------------------------
# Value helpers
# ----------------------------------------------------------------------


def _type_name(value: Any) -> str:
    cls = type(value)
    return f"{cls.__module__}.{cls.__qualname__}"


def _types_differ(current: Any, desired: Any) -> bool:
    if current is None or desired is None:
        return False
    return _type_name(current) != _type_name(desired)


def _resolve_code_blocks(current: Any, desired: Any) -> tuple[Any, Any]:
    return _code_block_value(current, desired), _code_block_value(desired, current)


def _code_block_value(value: Any, partner: Any) -> Any:
    if not isinstance(value, ScriptBlock):
        return value
    if isinstance(partner, str) and value.invocable:
        return value.invoke()
    return value.source


def _is_number(value: Any) -> bool:
    return isinstance(value, numbers.Number) and not isinstance(value, (bool, np.bool_))


def _parses_to(text: str, number: Any) -> bool:
    try:
        return bool(type(number)(text.strip()) == number)
    except (ValueError, TypeError, ArithmeticError, InvalidOperation):
        return False


def _values_equal(current: Any, desired: Any, *, loose: bool = False) -> bool:
    if isinstance(current, np.ndarray) or isinstance(desired, np.ndarray):
        return bool(np.array_equal(np.asarray(current), np.asarray(desired)))
    if bool(current == desired):
        return True
    if not loose:
        return False
    if isinstance(current, str) and _is_number(desired):
        return _parses_to(current, desired)
    if isinstance(desired, str) and _is_number(current):
        return _parses_to(desired, current)
    return False


def _show(value: Any) -> str:
    if isinstance(value, ScriptBlock):
        return f"{{{value.source}}}"
    return repr(value)
