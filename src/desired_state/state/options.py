"""ComparisonOptions: immutable settings for one state comparison.

Property lists are normalised to ``frozenset``s so options are hashable and can
be shared between the forward pass, the reverse pass and every nested call.
Derived calls never mutate an options value; they ``evolve()`` a copy.
"""

from __future__ import annotations

import dataclasses
from collections.abc import Iterable
from dataclasses import dataclass
from typing import Any

__all__ = ["ComparisonOptions"]


def _property_set(value: Any, name: str) -> frozenset[str] | None:
    if value is None:
        return None
    if isinstance(value, str):
        return frozenset({value})
    if not isinstance(value, Iterable):
        msg = f"{name} must be a property name or an iterable of names, got {type(value).__name__}"
        raise ValueError(msg)
    names = frozenset(value)
    for item in names:
        if not isinstance(item, str):
            msg = f"{name} entries must be strings, got {item!r}"
            raise ValueError(msg)
    return names


@dataclass(frozen=True, slots=True)
class ComparisonOptions:
    """Rules for comparing a current state against a desired state.

    Attributes:
        properties: Only compare these keys.  ``None`` compares every key of
            the desired state.
        exclude_properties: Keys never compared, even if listed in
            ``properties``.
        skip_type_checking: When True, values of different runtime types are
            compared by loose equality instead of being reported unequal.
        sort_arrays: Sort both arrays independently before comparing them
            element by element.
        reverse_check: After the forward pass, run the comparison again with
            current and desired swapped.
    """

    properties: frozenset[str] | None = None
    exclude_properties: frozenset[str] | None = None
    skip_type_checking: bool = False
    sort_arrays: bool = False
    reverse_check: bool = False

    def __post_init__(self) -> None:
        object.__setattr__(self, "properties", _property_set(self.properties, "properties"))
        object.__setattr__(
            self,
            "exclude_properties",
            _property_set(self.exclude_properties, "exclude_properties"),
        )

    def evolve(self, **changes: Any) -> ComparisonOptions:
        """Return a copy with ``changes`` applied."""
        return dataclasses.replace(self, **changes)

    def nested(self) -> ComparisonOptions:
        """Options for a recursive call into a nested map: ``properties`` cleared."""
        return self.evolve(properties=None)

    def reverse_pass(self) -> ComparisonOptions:
        """Options for the reverse pass, which must not recurse into another one."""
        return self.evolve(reverse_check=False)

    def key_set(self, desired_keys: Iterable[str]) -> list[str]:
        """Working key set: ``properties`` or ``desired_keys``, minus exclusions.

        Keys keep the order of ``desired_keys`` where possible; names listed
        only in ``properties`` follow in sorted order.
        """
        ordered = list(desired_keys)
        if self.properties is not None:
            present = [key for key in ordered if key in self.properties]
            extra = sorted(self.properties.difference(present))
            ordered = present + extra
        if self.exclude_properties:
            ordered = [key for key in ordered if key not in self.exclude_properties]
        return ordered
