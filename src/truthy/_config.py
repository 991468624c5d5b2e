"""Package configuration scoped with context variables."""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from contextlib import contextmanager
from contextvars import ContextVar
from dataclasses import dataclass, fields, replace
from typing import Any


@dataclass(frozen=True)
class TruthyConfig:
    """
    Configuration for optional behavior.

    Attributes:
        enable_combinators: If True, truthy_and/truthy_or and their lazy
            variants may be called. Off by default.
    """

    enable_combinators: bool = False

    def __post_init__(self) -> None:
        # Every option is a flag.
        for f in fields(self):
            value = getattr(self, f.name)
            if not isinstance(value, bool):
                raise ValueError(
                    f"Config option '{f.name}' must be a bool, got {type(value).__name__}"
                )

    @classmethod
    def check_options(cls, names: Iterable[str]) -> None:
        """Raise ValueError if any of ``names`` is not a config option."""
        known = {f.name for f in fields(cls)}
        unknown = set(names) - known
        if unknown:
            raise ValueError(
                f"Unknown config option(s): {', '.join(sorted(unknown))}. "
                f"Valid options: {', '.join(sorted(known))}"
            )

    @classmethod
    def from_mapping(cls, options: Mapping[str, Any]) -> TruthyConfig:
        """
        Build a config from a plain mapping such as a parsed settings file.

        Example:
            TruthyConfig.from_mapping({"enable_combinators": True})

        Raises:
            ValueError: on unknown keys or non-bool values.
        """
        cls.check_options(options)
        return cls(**options)


_config: ContextVar[TruthyConfig] = ContextVar("truthy_config", default=TruthyConfig())


def get_config() -> TruthyConfig:
    """Return the config active in the current context."""
    return _config.get()


def set_config(config: TruthyConfig) -> None:
    """Set the config for the current context (and tasks started from it)."""
    _config.set(config)


@contextmanager
def use_config(config: TruthyConfig | None = None, **overrides: bool):
    """
    Context manager to scope a config.

    Keyword overrides are applied on top of ``config`` (or of the currently
    active config when ``config`` is omitted).

    Example:
        with use_config(enable_combinators=True):
            truthy_or("", "fallback")  # Some("fallback")

    Raises:
        ValueError: on unknown options or non-bool values.
    """
    TruthyConfig.check_options(overrides)
    base = config if config is not None else _config.get()
    token = _config.set(replace(base, **overrides) if overrides else base)
    try:
        yield _config.get()
    finally:
        _config.reset(token)
