from __future__ import annotations

from typing import Any, Generic, TypeVar

T = TypeVar("T")

REDACTED = "********"


class Secret(Generic[T]):
    """
    Wrap a value that's supposed to be secret.

    This is an in-code reminder that we're handling sensitive data, and makes
    it harder to accidentally print or log the value. Call `reveal()` to get
    the wrapped value back.
    """

    __slots__ = ("_value",)

    def __init__(self, value: T) -> None:
        self._value = value

    def reveal(self) -> T:
        return self._value

    def __eq__(self, other: Any) -> bool:
        if not isinstance(other, Secret):
            return NotImplemented
        return self._value == other._value

    def __hash__(self) -> int:
        return hash(self._value)

    def __repr__(self) -> str:
        return REDACTED

    __str__ = __repr__

    def __format__(self, format_spec: str) -> str:
        return format(REDACTED, format_spec)
