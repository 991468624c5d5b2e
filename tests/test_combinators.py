"""Tests for combinators: truthy_and, truthy_or, truthy_and_then, truthy_or_else."""

from __future__ import annotations

import pytest

from truthy import (
    CombinatorsDisabledError,
    Err,
    Some,
    TruthyConfig,
    truthy_and,
    truthy_and_then,
    truthy_or,
    truthy_or_else,
    use_config,
)


@pytest.fixture
def enabled():
    with use_config(enable_combinators=True) as config:
        yield config


# ---------------------------------------------------------------------------
# Feature flag
# ---------------------------------------------------------------------------


class TestFeatureFlag:
    def test_disabled_by_default(self):
        with pytest.raises(CombinatorsDisabledError, match="truthy_and"):
            truthy_and(True, "X")

    @pytest.mark.parametrize(
        "call",
        [
            lambda: truthy_or("", "X"),
            lambda: truthy_and_then(1, str),
            lambda: truthy_or_else(0, lambda: 1),
        ],
    )
    def test_every_combinator_is_gated(self, call):
        with pytest.raises(CombinatorsDisabledError):
            call()

    def test_enabled_via_config_object(self):
        with use_config(TruthyConfig(enable_combinators=True)):
            assert truthy_and(True, "X") == Some("X")

    def test_flag_restored_after_scope(self, enabled):
        with use_config(enable_combinators=False):
            with pytest.raises(CombinatorsDisabledError):
                truthy_or(1, 2)
        assert truthy_or(1, 2) == Some(1)


# ---------------------------------------------------------------------------
# truthy_and / truthy_or
# ---------------------------------------------------------------------------


class TestTruthyAnd:
    def test_truthy_returns_alt(self, enabled):
        assert truthy_and(True, "X") == Some("X")

    def test_falsy_returns_none(self, enabled):
        assert truthy_and(False, "X") is None

    def test_discards_own_value(self, enabled):
        assert truthy_and("original", "replacement") == Some("replacement")

    def test_alt_may_be_falsy(self, enabled):
        assert truthy_and(1, 0) == Some(0)

    def test_uses_predicate_rules(self, enabled):
        assert truthy_and(Err("boom"), "X") == Some("X")
        assert truthy_and([], "X") is None
        assert truthy_and((0,), "X") == Some("X")


class TestTruthyOr:
    def test_truthy_returns_self(self, enabled):
        assert truthy_or("original", "default") == Some("original")

    def test_falsy_returns_alt(self, enabled):
        assert truthy_or("", "default") == Some("default")

    def test_falsy_alt_still_wrapped(self, enabled):
        assert truthy_or(0, 0) == Some(0)

    def test_none_falls_back(self, enabled):
        assert truthy_or(None, 5) == Some(5)


# ---------------------------------------------------------------------------
# Lazy variants
# ---------------------------------------------------------------------------


class TestLazyVariants:
    def test_and_then_maps_truthy(self, enabled):
        assert truthy_and_then(2, lambda n: n - 1) == Some(1)

    def test_and_then_skips_falsy(self, enabled):
        calls = []
        assert truthy_and_then(0, calls.append) is None
        assert calls == []

    def test_or_else_keeps_truthy(self, enabled):
        calls = []
        assert truthy_or_else("foo", lambda: calls.append(1)) == Some("foo")
        assert calls == []

    def test_or_else_computes_fallback(self, enabled):
        assert truthy_or_else("", lambda: "default") == Some("default")
