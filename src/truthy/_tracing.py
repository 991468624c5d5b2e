"""Trace hooks for truthy expression evaluation."""

from __future__ import annotations

import logging
import time
from contextlib import contextmanager
from contextvars import ContextVar
from typing import Any, Protocol, runtime_checkable

# Optional OpenTelemetry imports - only needed if using OpenTelemetryHook
try:
    from opentelemetry.trace import Status as _Status
    from opentelemetry.trace import StatusCode as _StatusCode
    from opentelemetry.trace import set_span_in_context as _set_span_in_context

    _HAS_OPENTELEMETRY = True
except ImportError:
    _HAS_OPENTELEMETRY = False
    _Status = None
    _StatusCode = None
    _set_span_in_context = None


@runtime_checkable
class TraceHook(Protocol):
    """
    Protocol for trace hooks.

    Each node of an evaluated expression (AND, OR, NOT, Leaf(name)) is
    reported. Nodes skipped by short-circuiting are not.

    Example:
        class MyHook:
            def on_enter(self, name, value, depth):
                print(f"{'  ' * depth}-> {name}")
                return None  # span token

            def on_exit(self, span, name, ok, duration_ms, depth):
                print(f"{'  ' * depth}<- {name} {ok}")

            def on_error(self, span, name, error, duration_ms, depth):
                print(f"{'  ' * depth}<- {name} ERROR: {error}")
    """

    def on_enter(self, name: str, value: Any, depth: int) -> Any:
        """
        Called before a node is evaluated.

        Args:
            name: Node name ("AND", "OR", "NOT" or "Leaf(<identifier>)")
            value: The bound value for leaves, None for operators
            depth: Nesting depth (0 = root)

        Returns:
            Span token passed back to on_exit / on_error (can be None)
        """
        ...

    def on_exit(
        self, span: Any, name: str, ok: bool, duration_ms: float, depth: int
    ) -> None:
        """Called after a node produced its truthiness."""
        ...

    def on_error(
        self, span: Any, name: str, error: Exception, duration_ms: float, depth: int
    ) -> None:
        """Called if evaluating a node raised."""
        ...


_trace_hook: ContextVar[TraceHook | None] = ContextVar("truthy_trace_hook", default=None)


def get_trace_hook() -> TraceHook | None:
    return _trace_hook.get()


@contextmanager
def use_tracing(hook: TraceHook):
    """
    Context manager to trace every expression evaluation in scope.

    Example:
        with use_tracing(LoggingHook(logger)):
            expr.evaluate(user=user, session=session)
    """
    token = _trace_hook.set(hook)
    try:
        yield hook
    finally:
        _trace_hook.reset(token)


# =============================================================================
# Built-in Trace Hooks
# =============================================================================


class PrintHook:
    """
    Simple trace hook that prints to stdout.

    Example:
        with use_tracing(PrintHook()):
            compile_expression("a && !b")(a=1, b="")

        # Output:
        # -> AND
        #   -> Leaf(a)
        #   <- Leaf(a) ✔ (0.01ms)
        #   -> NOT
        # ...
    """

    def __init__(self, indent: str = "  ", show_value: bool = False):
        self.indent = indent
        self.show_value = show_value

    def on_enter(self, name: str, value: Any, depth: int) -> float:
        prefix = self.indent * depth
        if self.show_value and name.startswith("Leaf("):
            print(f"{prefix}-> {name} | value={value!r}")
        else:
            print(f"{prefix}-> {name}")
        return time.perf_counter()

    def on_exit(
        self, span: float, name: str, ok: bool, duration_ms: float, depth: int
    ) -> None:
        prefix = self.indent * depth
        status = "✔" if ok else "✗"
        print(f"{prefix}<- {name} {status} ({duration_ms:.2f}ms)")

    def on_error(
        self, span: float, name: str, error: Exception, duration_ms: float, depth: int
    ) -> None:
        prefix = self.indent * depth
        print(f"{prefix}<- {name} ERROR: {error} ({duration_ms:.2f}ms)")


class LoggingHook:
    """
    Trace hook that logs to a Python logger.

    Example:
        import logging
        logger = logging.getLogger("truthy")

        with use_tracing(LoggingHook(logger)):
            expr.evaluate(bindings)
    """

    def __init__(self, logger: logging.Logger, level: int = logging.DEBUG):
        self.logger = logger
        self.level = level

    def on_enter(self, name: str, value: Any, depth: int) -> dict:
        span = {"name": name, "depth": depth, "start": time.perf_counter()}
        self.logger.log(self.level, "[ENTER] %s (depth=%d)", name, depth)
        return span

    def on_exit(
        self, span: dict, name: str, ok: bool, duration_ms: float, depth: int
    ) -> None:
        status = "TRUTHY" if ok else "FALSY"
        self.logger.log(
            self.level, "[EXIT] %s -> %s (%.2fms)", name, status, duration_ms
        )

    def on_error(
        self, span: dict, name: str, error: Exception, duration_ms: float, depth: int
    ) -> None:
        self.logger.error("[ERROR] %s -> %s (%.2fms)", name, error, duration_ms)


class OpenTelemetryHook:
    """
    OpenTelemetry trace hook: one span per evaluated node, nested under
    the span of its parent operator.

    Span attributes:
        truthy.name, truthy.depth, truthy.node_type ("logical" | "leaf"),
        truthy.operator (for AND/OR/NOT), truthy.result, truthy.duration_ms

    Requires: pip install opentelemetry-api
    """

    def __init__(self, tracer, *, max_span_depth: int | None = None):
        if not _HAS_OPENTELEMETRY:
            raise ImportError(
                "OpenTelemetry is not installed. "
                "Install it with: pip install opentelemetry-api"
            )
        self.tracer = tracer
        self.max_span_depth = max_span_depth
        self._span_stack: list[Any] = []

    def on_enter(self, name: str, value: Any, depth: int) -> Any:
        # Guaranteed non-None because __init__ checks _HAS_OPENTELEMETRY
        assert _set_span_in_context is not None

        if self.max_span_depth is not None and depth > self.max_span_depth:
            return None

        parent = self._span_stack[-1] if self._span_stack else None
        parent_ctx = _set_span_in_context(parent) if parent else None
        span = self.tracer.start_span(name, context=parent_ctx)

        if name in {"AND", "OR", "NOT"}:
            span.set_attribute("truthy.node_type", "logical")
            span.set_attribute("truthy.operator", name)
        else:
            span.set_attribute("truthy.node_type", "leaf")
        span.set_attribute("truthy.name", name)
        span.set_attribute("truthy.depth", depth)

        self._span_stack.append(span)
        return span

    def on_exit(
        self, span: Any, name: str, ok: bool, duration_ms: float, depth: int
    ) -> None:
        if span is None:
            return
        span.set_attribute("truthy.result", ok)
        span.set_attribute("truthy.duration_ms", duration_ms)
        span.end()
        self._span_stack.pop()

    def on_error(
        self, span: Any, name: str, error: Exception, duration_ms: float, depth: int
    ) -> None:
        if span is None:
            return

        # Guaranteed non-None because __init__ checks _HAS_OPENTELEMETRY
        assert _Status is not None
        assert _StatusCode is not None

        span.set_attribute("truthy.duration_ms", duration_ms)
        span.record_exception(error)
        span.set_status(_Status(_StatusCode.ERROR, str(error)))
        span.end()
        self._span_stack.pop()
