"""Value-selecting combinators built on the truthiness predicate.

These are opt-in: enable them with ``TruthyConfig(enable_combinators=True)``,
either scoped via ``use_config()`` or for the current context via
``set_config()``.
"""

from __future__ import annotations

from collections.abc import Callable
from typing import Any, TypeVar

from truthy._config import get_config
from truthy._core import is_truthy
from truthy._types import Some, T

A = TypeVar("A")


class CombinatorsDisabledError(RuntimeError):
    """Raised when a combinator is called without enable_combinators."""

    def __init__(self, name: str):
        self.name = name
        super().__init__(
            f"{name}() requires the combinator extension; enable it with "
            "use_config(enable_combinators=True) or "
            "set_config(TruthyConfig(enable_combinators=True))"
        )


def _require_enabled(name: str) -> None:
    if not get_config().enable_combinators:
        raise CombinatorsDisabledError(name)


def truthy_and(value: Any, alt: A) -> Some[A] | None:
    """
    Return ``Some(alt)`` if ``value`` is truthy, else ``None``.

    ``value`` itself is discarded when truthy; compare truthy_or().

    Example:
        truthy_and(True, "X")   # Some("X")
        truthy_and(False, "X")  # None
    """
    _require_enabled("truthy_and")
    return Some(alt) if is_truthy(value) else None


def truthy_or(value: T, alt: T) -> Some[T]:
    """
    Return ``Some(value)`` if ``value`` is truthy, else ``Some(alt)``.

    Example:
        truthy_or("name", "anonymous")  # Some("name")
        truthy_or("", "anonymous")      # Some("anonymous")
    """
    _require_enabled("truthy_or")
    return Some(value) if is_truthy(value) else Some(alt)


def truthy_and_then(value: T, fn: Callable[[T], A]) -> Some[A] | None:
    """Like truthy_and(), but ``fn(value)`` is only called when ``value`` is truthy."""
    _require_enabled("truthy_and_then")
    return Some(fn(value)) if is_truthy(value) else None


def truthy_or_else(value: T, fn: Callable[[], T]) -> Some[T]:
    """Like truthy_or(), but ``fn()`` is only called when ``value`` is falsy."""
    _require_enabled("truthy_or_else")
    return Some(value) if is_truthy(value) else Some(fn())
