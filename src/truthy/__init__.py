"""
Truthy - A Uniform Truthiness Predicate

Defines what "truthy" means for numbers, text, optional values, results,
sequences and tuples, plus opt-in value-selecting combinators and a small
expression language whose leaves are checked with the same predicate.

Rules:
    numbers             = truthy unless zero (sign ignored)
    str, bytes          = truthy unless empty
    None                = falsy
    Some(x), Ok(x)      = truthy iff x is truthy
    Err(e)              = truthy iff e is truthy (failure is not automatically falsy)
    sequences, tuples   = truthy unless empty, whatever the elements are

Example:
    from truthy import Err, Some, compile_expression, is_truthy

    is_truthy(0)               # False
    is_truthy(" ")             # True
    is_truthy(Some(False))     # False
    is_truthy(Err("timeout"))  # True
    is_truthy((0, "", None))   # True

    # Leaves are checked with is_truthy(); && binds tighter than ||
    can_post = compile_expression("logged_in && !muted || moderator")
    can_post(logged_in="alice", muted=0, moderator=None)  # True
"""

from __future__ import annotations

__version__ = "0.1.0"
__all__ = [
    # Core
    "Truthy",
    "TruthyRule",
    "is_truthy",
    "is_falsy",
    "register",
    "UnsupportedTypeError",
    # Shapes
    "Some",
    "Ok",
    "Err",
    "Option",
    "Result",
    # Combinators
    "truthy_and",
    "truthy_or",
    "truthy_and_then",
    "truthy_or_else",
    "CombinatorsDisabledError",
    # Expressions
    "compile_expression",
    "parse_expression",
    "rewrite",
    "ExpressionParser",
    "ExpressionError",
    "TruthyExpression",
    # Configuration
    "TruthyConfig",
    "get_config",
    "set_config",
    "use_config",
    # Tracing
    "TraceHook",
    "use_tracing",
    "PrintHook",
    "LoggingHook",
    "OpenTelemetryHook",
]

from truthy._combinators import (
    CombinatorsDisabledError,
    truthy_and,
    truthy_and_then,
    truthy_or,
    truthy_or_else,
)
from truthy._config import TruthyConfig, get_config, set_config, use_config
from truthy._core import (
    Truthy,
    TruthyRule,
    UnsupportedTypeError,
    is_falsy,
    is_truthy,
    register,
)
from truthy._expression import (
    ExpressionError,
    ExpressionParser,
    TruthyExpression,
    compile_expression,
    parse_expression,
    rewrite,
)
from truthy._tracing import (
    LoggingHook,
    OpenTelemetryHook,
    PrintHook,
    TraceHook,
    use_tracing,
)
from truthy._types import Err, Ok, Option, Result, Some
