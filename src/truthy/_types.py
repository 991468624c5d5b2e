"""Shared type variables and the optional/result wrapper shapes."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Generic, TypeVar

T = TypeVar("T")
E = TypeVar("E")


def _delegate(value: object) -> bool:
    # Deferred to avoid a circular import with _core.
    from truthy._core import is_truthy

    return is_truthy(value)


@dataclass(frozen=True)
class Some(Generic[T]):
    """
    Explicit presence of a value.

    ``None`` is the absent case. A bare value is treated as an implicit
    ``Some``, so this wrapper is only needed to state presence explicitly
    or to nest optionals (``Some(None)``).

    Example:
        is_truthy(Some(1))      # True
        is_truthy(Some(False))  # False - presence alone is not enough
    """

    value: T

    def __bool__(self) -> bool:
        return _delegate(self)


@dataclass(frozen=True)
class Ok(Generic[T]):
    """Success result carrying ``value``."""

    value: T

    def __bool__(self) -> bool:
        return _delegate(self)


@dataclass(frozen=True)
class Err(Generic[E]):
    """
    Failure result carrying ``error``.

    A failure is not automatically falsy: ``Err(e)`` is truthy iff ``e`` is.

    Example:
        is_truthy(Err("timeout"))  # True
        is_truthy(Err(""))         # False
    """

    error: E

    def __bool__(self) -> bool:
        return _delegate(self)


Option = Some[T] | None
"""An optional value: ``Some(value)`` or ``None``."""

Result = Ok[T] | Err[E]
"""A success or failure result."""
