"""Value types that have no native Python counterpart.

``SecureValue`` wraps secret text and never shows it in ``repr``/``str``.
``Credential`` pairs a user name with a ``SecureValue``.
``ScriptBlock`` is a code block known by its source text, optionally bound to a
Python callable that produces its result when invoked.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from collections.abc import Callable

__all__ = ["Credential", "ScriptBlock", "SecureValue"]


@dataclass(frozen=True, slots=True)
class SecureValue:
    """Secret text.  Use ``reveal()`` to read it; ``repr`` is always masked."""

    _secret: str = field(repr=False)

    def reveal(self) -> str:
        return self._secret

    def __repr__(self) -> str:
        return "SecureValue('********')"

    __str__ = __repr__


@dataclass(frozen=True, slots=True)
class Credential:
    """A user name plus its secret.

    Attributes:
        username: Account name; the only part the comparator looks at.
        password: The secret, always held as a ``SecureValue``.
    """

    username: str
    password: SecureValue

    def __post_init__(self) -> None:
        if isinstance(self.password, str):
            object.__setattr__(self, "password", SecureValue(self.password))


@dataclass(frozen=True, slots=True)
class ScriptBlock:
    """A code block identified by its source text.

    Two blocks are equal when their source text is equal; the bound callable
    does not take part in equality.

    Attributes:
        source:   Source text without the enclosing braces.
        function: Optional callable run by ``invoke()``.
    """

    source: str
    function: Callable[[], Any] | None = field(default=None, compare=False, repr=False)

    @property
    def invocable(self) -> bool:
        return self.function is not None

    def invoke(self) -> Any:
        """Run the bound callable and return its result.

        Raises:
            TypeError: When no callable is bound to this block.
        """
        if self.function is None:
            msg = "ScriptBlock has no bound function to invoke"
            raise TypeError(msg)
        return self.function()

    def __str__(self) -> str:
        return self.source
