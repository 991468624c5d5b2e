"""The truthiness predicate and its per-shape rules."""

from __future__ import annotations

import logging
from array import array
from collections import deque
from collections.abc import Callable, Mapping, Sequence, Set, ValuesView
from decimal import Decimal
from numbers import Number
from types import ModuleType
from typing import Any, Protocol, overload, runtime_checkable

from truthy._types import Err, Ok, Some

logger = logging.getLogger(__name__)

TruthyRule = Callable[[Any], bool]
"""Signature of a per-type truthiness rule: (value) -> bool"""


@runtime_checkable
class Truthy(Protocol):
    """
    Protocol for values that define their own truthiness.

    Example:
        class Inventory:
            def __init__(self, count):
                self.count = count

            def is_truthy(self) -> bool:
                return self.count > 0

        is_truthy(Inventory(3))  # True
    """

    def is_truthy(self) -> bool:
        """Return whether this value is truthy."""
        ...


class UnsupportedTypeError(TypeError):
    """Raised when a value's type has no truthiness rule."""

    def __init__(self, value_type: type):
        self.value_type = value_type
        super().__init__(
            f"No truthiness rule for type {value_type.__qualname__!r}; "
            "implement is_truthy() or register a rule with truthy.register()"
        )


# =============================================================================
# Built-in Rules
# =============================================================================


def _is_nonzero(value: Any) -> bool:
    """Numbers: truthy unless equal to zero (so -0.0 is falsy, NaN is not)."""
    if isinstance(value, Decimal):
        # Comparing a signaling NaN raises InvalidOperation.
        return not value.is_zero()
    return value != 0


def _has_length(value: Any) -> bool:
    """Text, sequences, tuples and collections: truthy unless empty."""
    return len(value) > 0


# Checked in order; text and tuples must come before the Sequence ABC.
_BUILTIN_RULES: tuple[tuple[type | tuple[type, ...], TruthyRule], ...] = (
    ((str, bytes, bytearray), _has_length),
    (tuple, _has_length),
    (Number, _is_nonzero),
    ((Sequence, array, deque, memoryview), _has_length),
    ((Mapping, Set, ValuesView), _has_length),
)

_registry: dict[type, TruthyRule] = {}


# =============================================================================
# Registration
# =============================================================================


@overload
def register(cls: type, fn: TruthyRule) -> TruthyRule: ...


@overload
def register(cls: type, fn: None = None) -> Callable[[TruthyRule], TruthyRule]: ...


def register(
    cls: type, fn: TruthyRule | None = None
) -> TruthyRule | Callable[[TruthyRule], TruthyRule]:
    """
    Add a truthiness rule for ``cls`` and its subclasses.

    Registered rules take precedence over the built-in catalog and over a
    type's own ``is_truthy()`` method. The most specific registered class in
    the value's MRO wins.

    Can be used directly or as a decorator:

        register(Decimal, lambda d: not d.is_zero())

        @register(Path)
        def _path_exists(p):
            return p.exists()
    """

    def decorator(f: TruthyRule) -> TruthyRule:
        _registry[cls] = f
        logger.debug("Registered truthiness rule for %s", cls.__qualname__)
        return f

    if fn is not None:
        return decorator(fn)
    return decorator


def _lookup_registered(value_type: type) -> TruthyRule | None:
    for klass in value_type.__mro__:
        found = _registry.get(klass)
        if found is not None:
            return found
    return None


# =============================================================================
# Predicate
# =============================================================================


def _leaf_truthy(value: Any) -> bool:
    """Apply the rule for a value that is not an optional/result wrapper."""
    registered = _lookup_registered(type(value))
    if registered is not None:
        return bool(registered(value))

    # Classes and modules can carry an is_truthy attribute without being values.
    if isinstance(value, Truthy) and not isinstance(value, (type, ModuleType)):
        return bool(value.is_truthy())

    for types, rule_fn in _BUILTIN_RULES:
        if isinstance(value, types):
            return rule_fn(value)

    raise UnsupportedTypeError(type(value))


def is_truthy(value: Any) -> bool:
    """
    Check whether a value is truthy.

    Rules by shape:
        None                -> False
        Some(x), Ok(x)      -> is_truthy(x)
        Err(e)              -> is_truthy(e)  (a failure is not automatically falsy)
        numbers             -> value != 0
        str, bytes          -> len(value) > 0
        sequences, sets,
        mappings, tuples    -> len(value) > 0, whatever the elements are

    Wrapper chains such as Some(Ok(Some(x))) are unwrapped in a loop, so
    deep nesting never hits the recursion limit.

    Raises:
        UnsupportedTypeError: if no rule covers the value's type.
    """
    while True:
        if value is None:
            return False
        if isinstance(value, Some):
            value = value.value
        elif isinstance(value, Ok):
            value = value.value
        elif isinstance(value, Err):
            value = value.error
        else:
            return _leaf_truthy(value)


def is_falsy(value: Any) -> bool:
    """Not truthy."""
    return not is_truthy(value)
