"""MessageCatalog: the text of every comparator trace message.

A catalog is an immutable value passed to ``StateComparator``; there is no
process-wide default that callers can mutate.  Each field is a ``str.format``
template.  The placeholders available to each template are listed in the
attribute docs; templates may use any subset of them.
"""

from __future__ import annotations

from dataclasses import dataclass, fields
from string import Formatter
from typing import Any, Final

__all__ = ["DEFAULT_MESSAGES", "MessageCatalog"]

_PLACEHOLDERS: Final[dict[str, frozenset[str]]] = {
    "compare": frozenset({"path"}),
    "credential_match": frozenset({"path", "username"}),
    "credential_mismatch": frozenset({"path", "current", "desired"}),
    "type_mismatch": frozenset({"path", "current", "desired", "current_type", "desired_type"}),
    "value_match": frozenset({"path", "current", "desired"}),
    "value_mismatch": frozenset({"path", "current", "desired"}),
    "key_absent": frozenset({"path"}),
    "array_empty": frozenset({"path"}),
    "array_missing": frozenset({"path", "desired"}),
    "array_length": frozenset({"path", "current", "desired"}),
    "element_type_mismatch": frozenset(
        {"path", "current", "desired", "current_type", "desired_type"}
    ),
    "element_mismatch": frozenset({"path", "current", "desired"}),
    "reverse_check": frozenset(),
}


@dataclass(frozen=True, slots=True)
class MessageCatalog:
    """Trace message templates used by the comparator.

    Attributes:
        compare: Emitted before a key is compared.  ``{path}``.
        credential_match: Desired credential user name found.  ``{path}``,
            ``{username}``.
        credential_mismatch: User names differ.  ``{path}``, ``{current}``,
            ``{desired}``.
        type_mismatch: Runtime types differ.  ``{path}``, ``{current}``,
            ``{desired}``, ``{current_type}``, ``{desired_type}``.
        value_match / value_mismatch: Scalar result.  ``{path}``,
            ``{current}``, ``{desired}``.
        key_absent: The key is not in the desired state, so nothing is
            required of it.  ``{path}``.
        array_empty: Both arrays are empty or absent.  ``{path}``.
        array_missing: Current array absent, desired non-empty.  ``{path}``,
            ``{desired}``.
        array_length: Array lengths differ.  ``{path}``, ``{current}``,
            ``{desired}`` (the lengths).
        element_type_mismatch / element_mismatch: Per-element results with
            the same placeholders as the scalar messages.
        reverse_check: Emitted before the reverse pass.
    """

    compare: str = "Comparing '{path}'."
    credential_match: str = "'{path}': credential user name '{username}' matches."
    credential_mismatch: str = (
        "'{path}': credential user name is '{current}' but should be '{desired}'."
    )
    type_mismatch: str = (
        "'{path}': type is '{current_type}' but should be '{desired_type}'"
        " (current {current}, desired {desired})."
    )
    value_match: str = "'{path}': value {current} matches."
    value_mismatch: str = "'{path}': value is {current} but should be {desired}."
    key_absent: str = "'{path}': not present in the desired state, nothing to enforce."
    array_empty: str = "'{path}': both arrays are empty."
    array_missing: str = "'{path}': array is missing but should be {desired}."
    array_length: str = "'{path}': array has {current} elements but should have {desired}."
    element_type_mismatch: str = (
        "'{path}': element type is '{current_type}' but should be '{desired_type}'"
        " (current {current}, desired {desired})."
    )
    element_mismatch: str = "'{path}': element is {current} but should be {desired}."
    reverse_check: str = "Checking the reverse direction."

    def __post_init__(self) -> None:
        formatter = Formatter()
        for entry in fields(self):
            template = getattr(self, entry.name)
            if not isinstance(template, str):
                msg = f"{entry.name} must be a format string, got {type(template).__name__}"
                raise ValueError(msg)
            allowed = _PLACEHOLDERS[entry.name]
            try:
                used = {name for _, name, _, _ in formatter.parse(template) if name}
            except ValueError as exc:
                msg = f"{entry.name} is not a valid format string: {exc}"
                raise ValueError(msg) from exc
            unknown = used - allowed
            if unknown:
                msg = f"{entry.name} uses unknown placeholders {sorted(unknown)}"
                raise ValueError(msg)

    def render(self, name: str, **values: Any) -> str:
        """Format the template called ``name`` with ``values``."""
        template: str = getattr(self, name)
        return template.format(**values)


DEFAULT_MESSAGES: Final[MessageCatalog] = MessageCatalog()
