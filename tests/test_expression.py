"""
Tests for truthy expressions: parsing, rewriting, rejection and evaluation

Run with: pytest tests/test_expression.py -v
"""

import itertools
import logging

import pytest

from truthy import (
    Err,
    ExpressionError,
    ExpressionParser,
    Ok,
    Some,
    TruthyExpression,
    compile_expression,
    is_truthy,
    parse_expression,
    rewrite,
)

# =============================================================================
# Rewriting
# =============================================================================


class TestRewrite:
    """Leaves are wrapped, operators and grouping are kept."""

    def test_basic(self):
        assert rewrite("x && y || !z") == (
            "is_truthy(x) and is_truthy(y) or not is_truthy(z)"
        )

    def test_single_leaf(self):
        assert rewrite("ready") == "is_truthy(ready)"

    def test_negation_wraps_before_negating(self):
        assert rewrite("!x") == "not is_truthy(x)"

    def test_parentheses_are_kept(self):
        assert rewrite("(a || b) && c") == (
            "(is_truthy(a) or is_truthy(b)) and is_truthy(c)"
        )
        assert rewrite("!(a && b)") == "not (is_truthy(a) and is_truthy(b))"

    def test_double_negation(self):
        assert rewrite("!!x") == "not not is_truthy(x)"

    def test_word_operators(self):
        assert rewrite("a AND NOT b or c") == rewrite("a && !b || c")

    def test_whitespace_newlines_and_comments(self):
        text = """
            has_email    # contact
            && !banned   # moderation
        """
        assert rewrite(text) == "is_truthy(has_email) and not is_truthy(banned)"

    def test_custom_predicate_name(self):
        assert rewrite("a || b", predicate="truthy.is_truthy") == (
            "truthy.is_truthy(a) or truthy.is_truthy(b)"
        )


# =============================================================================
# Parsing
# =============================================================================


class TestParse:
    """Parsed trees follow && over || precedence."""

    def test_precedence(self):
        assert parse_expression("a && !b || c") == {
            "or": [{"and": ["a", {"not": "b"}]}, "c"]
        }

    def test_grouping_overrides_precedence(self):
        assert parse_expression("a && (b || c)") == {
            "and": ["a", {"or": ["b", "c"]}]
        }

    def test_chains_are_flattened(self):
        assert parse_expression("a || b || c") == {"or": ["a", "b", "c"]}

    def test_names_in_order(self):
        parser = ExpressionParser("b && (a || b) && !c")
        assert parser.names == ("b", "a", "c")


# =============================================================================
# Rejection
# =============================================================================


class TestRejection:
    """Anything outside the grammar fails at compile time."""

    @pytest.mark.parametrize(
        "text, category, token",
        [
            ("is_valid(x)", "call", "is_valid("),
            ("a && check(b)", "call", "check("),
            ("user.active", "access", "."),
            ("items[0]", "index", "["),
            ("a && 1", "literal", "1"),
            ("a || 'b'", "literal", "'"),
            ("a && true", "literal", "true"),
            ("None || a", "literal", "None"),
            ("x + y", "operator", "+"),
            ("x & y", "operator", "&"),
            ("x | y", "operator", "|"),
            ("~x", "operator", "~"),
            ("x != y", "operator", "!="),
            ("x == y", "operator", "="),
            ("x < y", "operator", "<"),
        ],
    )
    def test_disallowed_tokens(self, text, category, token):
        with pytest.raises(ExpressionError) as exc_info:
            compile_expression(text)
        assert exc_info.value.category == category
        assert exc_info.value.token == token
        assert exc_info.value.position == text.index(token)

    def test_call_message_suggests_binding(self):
        with pytest.raises(ExpressionError, match="function calls are not permitted"):
            rewrite("f(x) && y")

    def test_is_value_error(self):
        with pytest.raises(ValueError):
            compile_expression("a + b")

    @pytest.mark.parametrize(
        "text, match",
        [
            ("", "empty"),
            ("   # only a comment", "empty"),
            ("a &&", "expression ended"),
            ("|| a", "expected a name"),
            ("(a || b", "expected '\\)'"),
            ("a)", "unbalanced"),
            ("a b", "expected '&&', '\\|\\|'"),
            ("()", "expected a name"),
            ("a && if", "reserved"),
            ("a $ b", "unexpected character"),
        ],
    )
    def test_syntax_errors(self, text, match):
        with pytest.raises(ExpressionError, match=match) as exc_info:
            compile_expression(text)
        assert exc_info.value.category == "syntax"

    def test_non_identifier_name(self):
        with pytest.raises(ExpressionError, match="valid Python identifiers") as exc_info:
            compile_expression("a && x²")
        assert exc_info.value.category == "syntax"
        assert exc_info.value.token == "x²"
        assert exc_info.value.position == 5

    def test_unknown_name(self):
        with pytest.raises(ExpressionError, match="unknown name") as exc_info:
            compile_expression("a && c", names=["a", "b"])
        assert exc_info.value.category == "unknown_name"
        assert exc_info.value.token == "c"
        assert exc_info.value.position == 5

    def test_known_names_accepted(self):
        expr = compile_expression("a && b", names={"a", "b", "c"})
        assert expr.names == ("a", "b")


# =============================================================================
# Evaluation
# =============================================================================


class TestEvaluate:
    """Compiled expressions behave like the native operators over is_truthy()."""

    def test_leaves_use_predicate(self):
        expr = compile_expression("a && b")
        assert expr(a=Err("boom"), b=(0,)) is True
        assert expr(a=Some(0), b=1) is False
        assert expr(a=Ok(" "), b=[None]) is True

    def test_mapping_and_keyword_bindings(self):
        expr = compile_expression("a || b")
        assert expr.evaluate({"a": 0, "b": "x"}) is True
        assert expr.evaluate({"a": 1, "b": 0}, a=0) is False

    def test_matches_native_operators(self):
        expr = compile_expression("x && y || !z")
        for x, y, z in itertools.product([0, 1, "", "s", None, []], repeat=3):
            expected = (is_truthy(x) and is_truthy(y)) or not is_truthy(z)
            assert expr(x=x, y=y, z=z) is expected

    def test_matches_rewritten_source(self):
        expr = compile_expression("!(a || b) && (c || !a)")
        for a, b, c in itertools.product([0, 1], repeat=3):
            namespace = {"is_truthy": is_truthy, "a": a, "b": b, "c": c}
            assert expr(a=a, b=b, c=c) is eval(expr.source, namespace)

    def test_and_short_circuits(self):
        expr = compile_expression("a && missing")
        assert expr(a=0) is False

    def test_or_short_circuits(self):
        expr = compile_expression("a || missing")
        assert expr(a=1) is True

    def test_unbound_name_raises(self):
        expr = compile_expression("a && missing")
        with pytest.raises(NameError, match="missing") as exc_info:
            expr(a=1)
        assert exc_info.value.name == "missing"

    def test_unsupported_leaf_propagates(self):
        expr = compile_expression("a")
        with pytest.raises(TypeError):
            expr(a=object())

    def test_deep_nesting(self):
        depth = 100
        text = "(" * depth + "a" + " && b)" * depth
        expr = compile_expression(text)
        assert expr(a=1, b=1) is True
        assert expr(a=1, b=0) is False


class TestTruthyExpression:
    def test_attributes(self):
        expr = compile_expression("a && !b")
        assert isinstance(expr, TruthyExpression)
        assert expr.text == "a && !b"
        assert expr.source == "is_truthy(a) and not is_truthy(b)"
        assert expr.names == ("a", "b")
        assert expr.tree == {"and": ["a", {"not": "b"}]}

    def test_repr_and_str(self):
        expr = compile_expression("a || b")
        assert repr(expr) == "TruthyExpression('a || b')"
        assert str(expr) == "is_truthy(a) or is_truthy(b)"

    def test_equality_by_source(self):
        assert compile_expression("a AND b") == compile_expression("a && b")
        assert len({compile_expression("a || b"), compile_expression("a OR b")}) == 1

    def test_compile_logs_source(self, caplog):
        with caplog.at_level(logging.DEBUG, logger="truthy._expression"):
            compile_expression("a && b")
        assert "is_truthy(a) and is_truthy(b)" in caplog.text
